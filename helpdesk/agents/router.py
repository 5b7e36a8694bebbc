"""
Intent Router / Flow State Machine

Decides, for each turn, which classification applies:
- greeting → welcome menu, flow cleared
- no active flow, or an explicit switch (menu number / "menu" / "salir"...)
  → ask the classifier and pin the flow
- otherwise → stay in the pinned flow without reclassifying

resolve_dispatch() then maps the classification to what runs next.
"""
import re
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel

from helpdesk.agents.oracle import IntentClassifier
from helpdesk.config import get_settings
from helpdesk.models.schemas import (
    Classification,
    ResponderDomain,
    UtilitySubClassification,
)
from helpdesk.models.session import Session
from helpdesk.utils.logger import get_logger

settings = get_settings()
logger = get_logger(__name__)

GREETING_PATTERN = re.compile(
    r"^(hola|buenos?\s*(d[ií]as|tardes|noches)|hey|que\s*tal|hi|buenas|saludos)\s*[.!?]*$",
    re.IGNORECASE,
)
MENU_NUMBER_PATTERN = re.compile(r"^\s*(\d{1,2})\s*$")
SWITCH_PATTERN = re.compile(r"^(menu|menú|cambiar|otro servicio|salir)", re.IGNORECASE)
ACCOUNT_ID_PATTERN = re.compile(r"\b(\d{6,10})\b")

WELCOME_MESSAGE = """Hola 👋 Soy *Santiago*, tu asistente del Gobierno del Estado de Querétaro.

Selecciona una opción o dime en qué te puedo ayudar:

1. Atención Ciudadana
2. Transporte Público - AMEQ 🚌
3. Servicios de Agua Potable - CEA 💧
4. Educación Básica - USEBEQ
5. Trámites Vehiculares 🚗
6. Atención Psicológica - SEJUVE
7. Atención a Mujeres - IQM
8. Cultura - Secretaría de Cultura 🎭
9. Registro Público - RPP
10. Conciliación Laboral - CCLQ
11. Instituto de la Vivienda - IVEQ 🏠
12. Atención APPQRO 📱
13. Programas Sociales - SEDESOQ
14. Hablar con un asesor 💬"""


def is_greeting(text: str) -> bool:
    return bool(GREETING_PATTERN.match(text.strip()))


def is_explicit_switch(text: str) -> bool:
    stripped = text.strip()
    return bool(MENU_NUMBER_PATTERN.match(stripped) or SWITCH_PATTERN.match(stripped))


def extract_account_id(text: str) -> Optional[str]:
    match = ACCOUNT_ID_PATTERN.search(text)
    return match.group(1) if match else None


# ============================================================================
# Dispatch
# ============================================================================

class HumanHandoff(BaseModel):
    kind: Literal["human_handoff"] = "human_handoff"


class UtilityBillingHandoff(BaseModel):
    kind: Literal["utility_handoff"] = "utility_handoff"


class RespondWith(BaseModel):
    kind: Literal["respond"] = "respond"
    domain: ResponderDomain


Dispatch = Union[HumanHandoff, UtilityBillingHandoff, RespondWith]

_UTILITY_SUB_DOMAINS: Dict[UtilitySubClassification, ResponderDomain] = {
    UtilitySubClassification.LEAK: ResponderDomain.UTILITY_LEAK,
    UtilitySubClassification.PAYMENTS: ResponderDomain.UTILITY_PAYMENTS,
    UtilitySubClassification.CONSUMPTION: ResponderDomain.UTILITY_CONSUMPTION,
    UtilitySubClassification.CONTRACT: ResponderDomain.UTILITY_CONTRACT,
    UtilitySubClassification.GENERAL_INFO: ResponderDomain.UTILITY_INFO,
}

_GOVERNMENT_DOMAINS: Dict[Classification, ResponderDomain] = {
    Classification.CITIZEN_ATTENTION: ResponderDomain.CITIZEN_ATTENTION,
    Classification.PUBLIC_TRANSPORT: ResponderDomain.PUBLIC_TRANSPORT,
    Classification.EDUCATION: ResponderDomain.EDUCATION,
    Classification.VEHICLE_PROCEDURES: ResponderDomain.VEHICLE_PROCEDURES,
    Classification.PSYCHOLOGY: ResponderDomain.PSYCHOLOGY,
    Classification.WOMEN_SUPPORT: ResponderDomain.WOMEN_SUPPORT,
    Classification.CULTURE: ResponderDomain.CULTURE,
    Classification.PUBLIC_REGISTRY: ResponderDomain.PUBLIC_REGISTRY,
    Classification.LABOR_CONCILIATION: ResponderDomain.LABOR_CONCILIATION,
    Classification.HOUSING: ResponderDomain.HOUSING,
    Classification.APPQRO: ResponderDomain.APPQRO,
    Classification.SOCIAL_PROGRAMS: ResponderDomain.SOCIAL_PROGRAMS,
    Classification.TICKETS: ResponderDomain.TICKETS,
    # Undecided turns get the general citizen-attention responder
    Classification.UNDECIDED: ResponderDomain.CITIZEN_ATTENTION,
}


def resolve_dispatch(
    classification: Classification,
    sub_classification: Optional[UtilitySubClassification] = None,
    utility_handoff_enabled: Optional[bool] = None,
) -> Dispatch:
    """
    Map a classification to the action that handles the turn.

    Args:
        classification: Turn classification
        sub_classification: Utility billing sub-type (ignored elsewhere)
        utility_handoff_enabled: Override for settings.utility_billing_handoff_enabled

    Returns:
        HumanHandoff, UtilityBillingHandoff or RespondWith(domain)
    """
    if utility_handoff_enabled is None:
        utility_handoff_enabled = settings.utility_billing_handoff_enabled

    if classification == Classification.SPEAK_TO_HUMAN:
        return HumanHandoff()

    if classification == Classification.UTILITY_BILLING:
        if utility_handoff_enabled:
            return UtilityBillingHandoff()
        sub = sub_classification or UtilitySubClassification.GENERAL_INFO
        return RespondWith(domain=_UTILITY_SUB_DOMAINS[sub])

    return RespondWith(domain=_GOVERNMENT_DOMAINS[classification])


# ============================================================================
# Routing
# ============================================================================

class RouteDecision(BaseModel):
    """Outcome of routing one turn"""
    kind: Literal["welcome", "classified", "continued"]
    classification: Classification
    sub_classification: Optional[UtilitySubClassification] = None
    confidence: Optional[float] = None


class FlowRouter:
    """Applies the greeting / switch / pinned-flow rules to a session"""

    def __init__(self, classifier: IntentClassifier):
        self.classifier = classifier

    async def route(
        self,
        session: Session,
        text: str,
        classifier_messages: List[Dict[str, Any]],
    ) -> RouteDecision:
        """
        Route a turn and update the session's flow state.

        Args:
            session: Conversation session (mutated)
            text: Raw citizen text
            classifier_messages: History plus the current user message, as
                handed to the classifier

        Returns:
            RouteDecision

        Raises:
            ClassificationError: Classifier produced nothing usable; the
                session is left untouched
        """
        stripped = text.strip()

        if is_greeting(stripped):
            session.clear_flow()
            session.classification = Classification.UNDECIDED
            logger.info(f"Greeting detected, showing menu{' (new conversation)' if session.is_new else ' (flow reset)'}")
            return RouteDecision(kind="welcome", classification=Classification.UNDECIDED)

        if session.active_flow is not None and not is_explicit_switch(stripped):
            account_id = extract_account_id(stripped)
            if account_id:
                session.account_id = account_id
                logger.info(f"Extracted account id from active flow: {account_id}")

            session.classification = session.active_flow
            logger.info(
                f"Continuing active flow: {session.active_flow.value}"
                + (f" ({session.active_sub_flow.value})" if session.active_sub_flow else "")
            )
            return RouteDecision(
                kind="continued",
                classification=session.active_flow,
                sub_classification=session.active_sub_flow,
            )

        result = await self.classifier.classify(classifier_messages)

        if result.extracted_account_id:
            session.account_id = result.extracted_account_id
            logger.info(f"Extracted account id: {result.extracted_account_id}")

        if result.classification == Classification.UNDECIDED:
            # Nothing to pin; the next turn is classified again
            session.clear_flow()
        else:
            session.pin_flow(result.classification, result.sub_classification)
        session.classification = result.classification

        return RouteDecision(
            kind="classified",
            classification=result.classification,
            sub_classification=result.sub_classification,
            confidence=result.confidence,
        )

"""
Pydantic models for the Citizen Helpdesk Intake backend

This module contains the routing vocabulary (classifications), the Turn API
request/response envelopes and the structured results returned by the
billing backend lookups.
"""
from enum import Enum
from typing import Optional, Dict, Any, List, Literal

from pydantic import BaseModel, Field, ConfigDict, model_validator

from helpdesk.utils.logger import get_logger

logger = get_logger(__name__)


# ============================================================================
# Enums
# ============================================================================

class Classification(str, Enum):
    """Service domains a turn can be routed to (Oracle vocabulary)"""
    CITIZEN_ATTENTION = "atencion_ciudadana"
    PUBLIC_TRANSPORT = "transporte_ameq"
    UTILITY_BILLING = "agua_cea"
    EDUCATION = "educacion_usebeq"
    VEHICLE_PROCEDURES = "tramites_vehiculares"
    PSYCHOLOGY = "psicologia_sejuve"
    WOMEN_SUPPORT = "mujeres_iqm"
    CULTURE = "cultura"
    PUBLIC_REGISTRY = "registro_publico_rpp"
    LABOR_CONCILIATION = "conciliacion_cclq"
    HOUSING = "vivienda_iveq"
    APPQRO = "appqro"
    SOCIAL_PROGRAMS = "programas_sedesoq"
    SPEAK_TO_HUMAN = "hablar_asesor"
    TICKETS = "tickets"
    UNDECIDED = "no_se"


class UtilitySubClassification(str, Enum):
    """Sub-domains that only exist inside utility billing"""
    LEAK = "fuga"
    PAYMENTS = "pagos"
    CONSUMPTION = "consumos"
    CONTRACT = "contrato"
    GENERAL_INFO = "informacion_cea"


class ResponderDomain(str, Enum):
    """Responders a turn can be dispatched to"""
    CITIZEN_ATTENTION = "atencion_ciudadana"
    PUBLIC_TRANSPORT = "transporte_ameq"
    EDUCATION = "educacion_usebeq"
    VEHICLE_PROCEDURES = "tramites_vehiculares"
    PSYCHOLOGY = "psicologia_sejuve"
    WOMEN_SUPPORT = "mujeres_iqm"
    CULTURE = "cultura"
    PUBLIC_REGISTRY = "registro_publico_rpp"
    LABOR_CONCILIATION = "conciliacion_cclq"
    HOUSING = "vivienda_iveq"
    APPQRO = "appqro"
    SOCIAL_PROGRAMS = "programas_sedesoq"
    TICKETS = "tickets"
    # Utility billing sub-flows (used when the external hand-off is disabled)
    UTILITY_LEAK = "cea_fuga"
    UTILITY_PAYMENTS = "cea_pagos"
    UTILITY_CONSUMPTION = "cea_consumos"
    UTILITY_CONTRACT = "cea_contrato"
    UTILITY_INFO = "cea_informacion"


# Menu numbers shown in the welcome message
MENU_OPTIONS: Dict[int, Classification] = {
    1: Classification.CITIZEN_ATTENTION,
    2: Classification.PUBLIC_TRANSPORT,
    3: Classification.UTILITY_BILLING,
    4: Classification.EDUCATION,
    5: Classification.VEHICLE_PROCEDURES,
    6: Classification.PSYCHOLOGY,
    7: Classification.WOMEN_SUPPORT,
    8: Classification.CULTURE,
    9: Classification.PUBLIC_REGISTRY,
    10: Classification.LABOR_CONCILIATION,
    11: Classification.HOUSING,
    12: Classification.APPQRO,
    13: Classification.SOCIAL_PROGRAMS,
    14: Classification.SPEAK_TO_HUMAN,
}


# ============================================================================
# Classification Oracle contract
# ============================================================================

class ClassificationResult(BaseModel):
    """
    Result returned by the classification collaborator.

    The sub-classification is only meaningful for utility billing: it is
    dropped for every other classification and defaults to general info
    when utility billing arrives without one.
    """
    model_config = ConfigDict(populate_by_name=True)

    classification: Classification
    sub_classification: Optional[UtilitySubClassification] = Field(None, alias="ceaSubType")
    extracted_account_id: Optional[str] = Field(None, alias="extractedContract")
    confidence: Optional[float] = Field(None, ge=0.0, le=1.0)

    @model_validator(mode="after")
    def enforce_sub_classification(self) -> "ClassificationResult":
        if self.classification != Classification.UTILITY_BILLING:
            if self.sub_classification is not None:
                logger.warning(
                    f"Dropping sub-classification {self.sub_classification.value} "
                    f"for {self.classification.value}"
                )
                self.sub_classification = None
        elif self.sub_classification is None:
            self.sub_classification = UtilitySubClassification.GENERAL_INFO

        if self.extracted_account_id is not None:
            self.extracted_account_id = self.extracted_account_id.strip() or None
        return self


# ============================================================================
# Turn API
# ============================================================================

class ContactCard(BaseModel):
    """Contact card sent to the channel on a hand-off"""
    full_name: str = Field(..., serialization_alias="fullName")
    phone_number: str = Field(..., serialization_alias="phoneNumber")
    organization: Optional[str] = None


class TurnMetadata(BaseModel):
    """Channel metadata; unknown keys are kept as opaque payload"""
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    channel: Optional[Literal["whatsapp", "web", "api"]] = None
    whatsapp: Optional[str] = None
    inbox_id: Optional[int] = Field(None, alias="inboxId")


class TurnRequest(BaseModel):
    """One inbound citizen message"""
    model_config = ConfigDict(populate_by_name=True)

    text: str = Field(..., min_length=1, max_length=4000)
    conversation_id: Optional[str] = Field(None, alias="conversationId", max_length=255)
    contact_id: Optional[int] = Field(None, alias="contactId")
    metadata: Optional[TurnMetadata] = None

    @model_validator(mode="before")
    @classmethod
    def accept_message_alias(cls, data: Any) -> Any:
        # Channel webhooks post the text as "message"
        if isinstance(data, dict) and "text" not in data and "message" in data:
            data = {**data, "text": data["message"]}
        return data


class TurnResponse(BaseModel):
    """Uniform result envelope for a turn"""
    output_text: str = Field(..., serialization_alias="outputText")
    conversation_id: str = Field(..., serialization_alias="conversationId")
    classification: Optional[Classification] = None
    ticket_folio: Optional[str] = Field(None, serialization_alias="ticketFolio")
    tools_used: List[str] = Field(default_factory=list, serialization_alias="toolsUsed")
    contact_card: Optional[ContactCard] = Field(None, serialization_alias="contactCard")
    error: Optional[str] = None
    processing_time_ms: Optional[int] = Field(None, serialization_alias="processingTimeMs")


# ============================================================================
# Billing backend lookups
# ============================================================================

class DebtConcept(BaseModel):
    """One line of the debt breakdown"""
    period: str
    concept: str
    amount: float
    due_date: str = ""
    state: Literal["vencido", "por_vencer", "pagado"]


class DebtData(BaseModel):
    total_debt: float
    overdue: float
    current: float
    concepts: List[DebtConcept] = Field(default_factory=list)
    client_name: str = ""
    address: str = ""


class DebtLookup(BaseModel):
    success: bool
    data: Optional[DebtData] = None
    error: Optional[str] = None


class ConsumptionRecord(BaseModel):
    period: str
    cubic_meters: float
    reading_date: str = ""
    reading_type: Literal["real", "estimada"] = "real"


class ConsumptionData(BaseModel):
    records: List[ConsumptionRecord] = Field(default_factory=list)
    monthly_average: float = 0.0
    trend: Literal["aumentando", "estable", "disminuyendo"] = "estable"


class ConsumptionLookup(BaseModel):
    success: bool
    data: Optional[ConsumptionData] = None
    error: Optional[str] = None


class ContractData(BaseModel):
    contract_number: str = ""
    holder: str = ""
    address: str = ""
    neighborhood: str = ""
    postal_code: str = ""
    tariff: str = ""
    status: Literal["activo", "suspendido", "cortado"] = "activo"
    start_date: str = ""
    meter_number: Optional[str] = None


class ContractLookup(BaseModel):
    success: bool
    data: Optional[ContractData] = None
    error: Optional[str] = None

"""
Tests for the turn orchestrator (LangGraph turn graph end to end)

Scenarios:
- Greeting → welcome menu, classification no_se
- Utility leak flow pinned across turns, cleared after the ticket
- Human hand-off opens an urgent ticket
- Utility billing hand-off returns the contact card
- Classification failure → apology, session untouched
- Contact-center linkage resolution
"""
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from helpdesk.agents.orchestrator import HUMAN_HANDOFF_TITLE, UTILITY_HANDOFF_MESSAGE
from helpdesk.agents.router import WELCOME_MESSAGE
from helpdesk.config import get_settings
from helpdesk.models.schemas import Classification, ResponderDomain, TurnRequest
from helpdesk.models.ticket import TicketCreateResult, TicketPriority, TicketType
from helpdesk.services.orchestrator import (
    APOLOGY_MESSAGE,
    TurnOrchestrator,
    date_preamble,
    is_phone_like,
    platform_conversation_id,
)
from helpdesk.services.session_store import SessionManager


@pytest.fixture
def ticket_service():
    service = MagicMock()
    service.create_ticket = AsyncMock(return_value=TicketCreateResult(success=True, folio="URG-20260106-0001"))
    return service


@pytest.fixture
def contact_repo():
    repo = MagicMock()
    repo.find_or_create_by_phone.return_value = 42
    return repo


@pytest.fixture
def orchestrator(classifier, responder, ticket_service, contact_repo, frozen_clock):
    return TurnOrchestrator(
        classifier=classifier,
        responder=responder,
        ticket_service=ticket_service,
        session_manager=SessionManager(clock=frozen_clock, ttl_seconds=3600, history_limit=20),
        contact_repo=contact_repo,
        clock=frozen_clock,
    )


@pytest.fixture
def handoff_disabled():
    with patch.object(get_settings(), "utility_billing_handoff_enabled", False):
        yield


def _turn(text, conversation_id="conv-1", **kwargs):
    return TurnRequest(text=text, conversation_id=conversation_id, **kwargs)


class TestHelpers:
    """Test preamble and id helpers"""

    def test_date_preamble(self, frozen_clock):
        assert date_preamble(frozen_clock.local_now()) == (
            "[Fecha: martes, 6 de enero de 2026, Hora: 12:00 (hora de Querétaro)]"
        )

    @pytest.mark.parametrize("value", ["+5214421234567", "5214421234567@s.whatsapp.net", "4421234567"])
    def test_phone_like(self, value):
        assert is_phone_like(value)
        assert platform_conversation_id(value) is None

    def test_numeric_conversation_id(self):
        assert platform_conversation_id("1234") == 1234
        assert platform_conversation_id("web-abc") is None


class TestGreeting:
    """Greeting turns"""

    @pytest.mark.asyncio
    async def test_hola_returns_welcome(self, orchestrator, classifier, responder):
        response = await orchestrator.run_turn(_turn("Hola"))

        assert response.output_text == WELCOME_MESSAGE
        assert response.classification == Classification.UNDECIDED
        assert response.error is None
        assert classifier.calls == []
        assert responder.calls == []

        session = orchestrator.sessions.peek("conv-1")
        assert session.history == [
            {"role": "user", "content": "Hola"},
            {"role": "assistant", "content": WELCOME_MESSAGE},
        ]

    @pytest.mark.asyncio
    async def test_greeting_resets_active_flow(self, orchestrator, classifier):
        classifier.queue(classification="cultura")
        await orchestrator.run_turn(_turn("Quiero información del museo"))
        assert orchestrator.sessions.peek("conv-1").active_flow == Classification.CULTURE

        await orchestrator.run_turn(_turn("Buenas tardes"))

        assert orchestrator.sessions.peek("conv-1").active_flow is None


class TestUtilityLeakFlow:
    """Leak report handled in-house (external hand-off disabled)"""

    @pytest.mark.asyncio
    async def test_leak_flow_pinned_until_ticket(self, orchestrator, classifier, responder, handoff_disabled):
        classifier.queue(classification="agua_cea", ceaSubType="fuga")
        responder.output_text = "¿Me indicas la dirección de la fuga?"

        first = await orchestrator.run_turn(_turn("Hay una fuga de agua en mi calle"))

        session = orchestrator.sessions.peek("conv-1")
        assert first.classification == Classification.UTILITY_BILLING
        assert first.ticket_folio is None
        assert session.active_flow == Classification.UTILITY_BILLING
        assert responder.calls[0]["domain"] == ResponderDomain.UTILITY_LEAK

        # Follow-up with the address stays in the flow without reclassifying
        responder.output_text = "Listo, tu folio es FUG-20260106-0001"
        responder.actions = ["create_ticket"]
        responder.folio = "FUG-20260106-0001"

        second = await orchestrator.run_turn(_turn("Calle Hidalgo 12, Centro"))

        assert len(classifier.calls) == 1
        assert responder.calls[1]["domain"] == ResponderDomain.UTILITY_LEAK
        assert second.ticket_folio == "FUG-20260106-0001"
        assert second.tools_used == ["create_ticket"]
        assert session.active_flow is None
        assert len(session.history) == 4

    @pytest.mark.asyncio
    async def test_responder_sees_preamble_and_history(self, orchestrator, classifier, responder, handoff_disabled):
        classifier.queue(classification="agua_cea", ceaSubType="pagos")

        await orchestrator.run_turn(_turn("¿Cuánto debo?"))
        await orchestrator.run_turn(_turn("Es el contrato 123456"))

        messages = responder.calls[1]["messages"]
        assert len(messages) == 3
        assert messages[-1]["content"].startswith("[Fecha: martes, 6 de enero de 2026")
        assert messages[-1]["content"].endswith("Es el contrato 123456")
        assert responder.calls[1]["context"].account_id == "123456"
        assert orchestrator.sessions.peek("conv-1").account_id == "123456"


class TestHandoffs:
    """Human and utility billing hand-offs"""

    @pytest.mark.asyncio
    async def test_human_handoff_creates_urgent_ticket(self, orchestrator, classifier, ticket_service, responder):
        classifier.queue(classification="hablar_asesor")

        response = await orchestrator.run_turn(_turn("Quiero hablar con una persona"))

        assert response.ticket_folio == "URG-20260106-0001"
        assert response.tools_used == ["create_ticket"]
        assert "URG-20260106-0001" in response.output_text
        assert responder.calls == []

        ticket_input = ticket_service.create_ticket.call_args[0][0]
        assert ticket_input.service_type == TicketType.URGENT
        assert ticket_input.priority == TicketPriority.URGENT
        assert ticket_input.title == HUMAN_HANDOFF_TITLE
        assert orchestrator.sessions.peek("conv-1").active_flow is None

    @pytest.mark.asyncio
    async def test_human_handoff_without_folio(self, orchestrator, classifier, ticket_service):
        ticket_service.create_ticket.return_value = TicketCreateResult(success=False, error="down")
        classifier.queue(classification="hablar_asesor")

        response = await orchestrator.run_turn(_turn("14"))

        assert "PENDING" in response.output_text
        assert response.ticket_folio is None

    @pytest.mark.asyncio
    async def test_utility_handoff_returns_contact_card(self, orchestrator, classifier, responder):
        classifier.queue(classification="agua_cea", ceaSubType="pagos")

        response = await orchestrator.run_turn(_turn("Quiero pagar mi recibo de agua"))

        assert response.output_text == UTILITY_HANDOFF_MESSAGE
        assert response.contact_card is not None
        assert response.contact_card.phone_number == get_settings().utility_handoff_phone
        assert responder.calls == []
        assert orchestrator.sessions.peek("conv-1").active_flow is None

        dumped = response.model_dump(by_alias=True)
        assert "contactCard" in dumped
        assert "phoneNumber" in dumped["contactCard"]


class TestFailures:
    """Classification and responder failures"""

    @pytest.mark.asyncio
    async def test_classification_failure_returns_apology(self, orchestrator):
        response = await orchestrator.run_turn(_turn("asdf qwer"))

        assert response.output_text == APOLOGY_MESSAGE
        assert response.error
        assert response.classification is None
        assert orchestrator.sessions.peek("conv-1").history == []

    @pytest.mark.asyncio
    async def test_responder_failure_returns_apology(self, orchestrator, classifier, responder):
        classifier.queue(classification="cultura")
        responder.respond = AsyncMock(side_effect=RuntimeError("model unavailable"))

        response = await orchestrator.run_turn(_turn("Horarios del museo"))

        assert response.output_text == APOLOGY_MESSAGE
        assert response.error == "model unavailable"


class TestLinkage:
    """Contact-center linkage resolution"""

    @pytest.mark.asyncio
    async def test_phone_conversation_id_not_linked(self, orchestrator, classifier, responder):
        classifier.queue(classification="cultura")

        await orchestrator.run_turn(_turn("Horarios del museo", conversation_id="+5214421234567"))

        assert responder.calls[0]["context"].linkage.conversation_id is None

    @pytest.mark.asyncio
    async def test_numeric_conversation_and_contact(self, orchestrator, classifier, responder):
        classifier.queue(classification="cultura")

        await orchestrator.run_turn(_turn("Horarios del museo", conversation_id="981", contactId=7))

        linkage = responder.calls[0]["context"].linkage
        assert linkage.conversation_id == 981
        assert linkage.contact_id == 7

    @pytest.mark.asyncio
    async def test_whatsapp_metadata_resolves_contact(self, orchestrator, classifier, responder, contact_repo):
        classifier.queue(classification="cultura")

        await orchestrator.run_turn(_turn(
            "Horarios del museo",
            metadata={"channel": "whatsapp", "whatsapp": "5214421234567@s.whatsapp.net"},
        ))

        contact_repo.find_or_create_by_phone.assert_called_once_with("5214421234567@s.whatsapp.net")
        assert responder.calls[0]["context"].linkage.contact_id == 42

    @pytest.mark.asyncio
    async def test_inbox_metadata_carried_into_linkage(self, orchestrator, classifier, responder):
        classifier.queue(classification="cultura")
        classifier.queue(classification="cultura")

        await orchestrator.run_turn(_turn("Horarios del museo", conversation_id="981", metadata={"inboxId": 3}))
        await orchestrator.run_turn(_turn("¿Y los domingos?", conversation_id="981"))

        assert responder.calls[0]["context"].linkage.inbox_id == 3
        assert responder.calls[1]["context"].linkage.inbox_id == 3

    @pytest.mark.asyncio
    async def test_missing_conversation_id_generated(self, orchestrator):
        response = await orchestrator.run_turn(TurnRequest(text="Hola"))

        assert response.conversation_id
        assert orchestrator.sessions.peek(response.conversation_id) is not None

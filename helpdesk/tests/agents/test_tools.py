"""
Unit tests for the responder tool registry

Tests:
- Argument validation and unknown tools
- Sticky account id across tools
- Ticket tools record folios on the context
- Billing lookups shaped for the responder
"""
from unittest.mock import AsyncMock, MagicMock

import pytest

from helpdesk.agents.tools import MISSING_ACCOUNT_ERROR, ToolContext, ToolRegistry
from helpdesk.models.schemas import (
    ConsumptionData,
    ConsumptionLookup,
    ConsumptionRecord,
    DebtConcept,
    DebtData,
    DebtLookup,
)
from helpdesk.models.ticket import (
    ContactLinkage,
    TicketCreateResult,
    TicketStatus,
    TicketType,
    TicketUpdateResult,
)


@pytest.fixture
def ticket_service():
    service = MagicMock()
    service.create_ticket = AsyncMock(return_value=TicketCreateResult(
        success=True, folio="FUG-20260106-0001", message="Ticket creado exitosamente con folio FUG-20260106-0001"
    ))
    service.update_ticket = AsyncMock(return_value=TicketUpdateResult(success=True, folio="FUG-20260106-0001"))
    service.list_tickets_for_account = AsyncMock(return_value={"success": True, "tickets": []})
    service.find_customer_by_account = AsyncMock(return_value={"success": True, "found": True})
    return service


@pytest.fixture
def billing_client():
    client = MagicMock()
    client.get_debt = AsyncMock(return_value=DebtLookup(
        success=True,
        data=DebtData(
            total_debt=1500.0,
            overdue=1000.0,
            current=500.0,
            concepts=[DebtConcept(period="Saldo anterior", concept="Adeudo", amount=1000.0, state="vencido")],
        ),
    ))
    client.get_consumption = AsyncMock(return_value=ConsumptionLookup(
        success=True,
        data=ConsumptionData(
            records=[
                ConsumptionRecord(period="JUN 2025", cubic_meters=20),
                ConsumptionRecord(period="DIC 2024", cubic_meters=10),
            ],
            monthly_average=15.4,
            trend="estable",
        ),
    ))
    client.get_contract_details = AsyncMock(return_value=DebtLookup(success=False, error="Contrato no encontrado"))
    return client


@pytest.fixture
def registry(ticket_service, billing_client):
    return ToolRegistry(ticket_service, billing_client)


class TestRegistry:
    """Test registry dispatch"""

    def test_all_tools_registered(self, registry):
        assert set(registry.names) == {
            "get_deuda", "get_consumo", "get_contract_details", "create_ticket",
            "create_general_ticket", "get_client_tickets", "search_customer_by_contract", "update_ticket",
        }

    def test_schemas(self, registry):
        schemas = registry.schemas(["get_deuda", "missing"])

        assert len(schemas) == 1
        assert schemas[0]["function"]["name"] == "get_deuda"
        assert "contrato" in schemas[0]["function"]["parameters"]["properties"]

    @pytest.mark.asyncio
    async def test_unknown_tool(self, registry):
        result = await registry.execute("borrar_todo", "{}", ToolContext())

        assert result["success"] is False
        assert "borrar_todo" in result["error"]

    @pytest.mark.asyncio
    async def test_invalid_json(self, registry):
        result = await registry.execute("get_deuda", "{not json", ToolContext())

        assert result["success"] is False
        assert result["error"].startswith("Argumentos inválidos")

    @pytest.mark.asyncio
    async def test_invalid_arguments(self, registry):
        result = await registry.execute("create_ticket", {"service_type": "fuga"}, ToolContext())

        assert result["success"] is False

    @pytest.mark.asyncio
    async def test_handler_exception_becomes_error(self, registry, billing_client):
        billing_client.get_debt.side_effect = RuntimeError("boom")

        result = await registry.execute("get_deuda", {"contrato": "123456"}, ToolContext())

        assert result == {"success": False, "error": "boom"}


class TestAccountTools:
    """Test billing lookups through the registry"""

    @pytest.mark.asyncio
    async def test_missing_account(self, registry):
        result = await registry.execute("get_deuda", "", ToolContext())

        assert result == {"success": False, "error": MISSING_ACCOUNT_ERROR}

    @pytest.mark.asyncio
    async def test_debt_summary(self, registry):
        context = ToolContext()

        result = await registry.execute("get_deuda", '{"contrato": "123456"}', context)

        assert result["totalDeuda"] == 1500.0
        assert result["resumen"] == "Saldo total: 1500.00 MXN (Vencido: 1000.00)"
        assert context.account_id == "123456"

    @pytest.mark.asyncio
    async def test_account_is_sticky(self, registry, billing_client):
        context = ToolContext(account_id="777777")

        await registry.execute("get_consumo", {}, context)

        billing_client.get_consumption.assert_awaited_once_with("777777")

    @pytest.mark.asyncio
    async def test_consumption_by_year(self, registry):
        result = await registry.execute("get_consumo", {"contrato": "123456"}, ToolContext())

        assert result["promedioMensual"] == 15
        assert result["añosDisponibles"] == ["2025", "2024"]
        assert len(result["consumosPorAño"]["2025"]) == 1

    @pytest.mark.asyncio
    async def test_lookup_failure_passed_through(self, registry):
        result = await registry.execute("get_contract_details", {"contrato": "1"}, ToolContext())

        assert result == {"success": False, "error": "Contrato no encontrado"}


class TestTicketTools:
    """Test ticket tools through the registry"""

    @pytest.mark.asyncio
    async def test_create_ticket_records_folio(self, registry, ticket_service):
        context = ToolContext(linkage=ContactLinkage(contact_id=4, conversation_id=88), account_id="123456")

        result = await registry.execute("create_ticket", {
            "service_type": "fuga",
            "titulo": "Fuga en banqueta",
            "descripcion": "Fuga de agua limpia",
            "ubicacion": "Calle Hidalgo 12",
            "priority": "alta",
        }, context)

        assert result["folio"] == "FUG-20260106-0001"
        assert context.last_folio == "FUG-20260106-0001"

        ticket_input, linkage = ticket_service.create_ticket.call_args[0]
        assert ticket_input.service_type == TicketType.LEAK
        assert ticket_input.account_id == "123456"
        assert ticket_input.location == "Calle Hidalgo 12"
        assert linkage.contact_id == 4

    @pytest.mark.asyncio
    async def test_general_ticket(self, registry, ticket_service):
        context = ToolContext()

        await registry.execute("create_general_ticket", {
            "service_type": "cultura",
            "titulo": "Informes taller",
            "descripcion": "Solicita horarios",
            "nombre_ciudadano": "Laura",
        }, context)

        ticket_input = ticket_service.create_ticket.call_args[0][0]
        assert ticket_input.service_type == TicketType.CULTURE
        assert ticket_input.client_name == "Laura"
        assert context.created_folios == ["FUG-20260106-0001"]

    @pytest.mark.asyncio
    async def test_update_ticket(self, registry, ticket_service):
        result = await registry.execute(
            "update_ticket", {"folio": "FUG-20260106-0001", "status": "resuelto"}, ToolContext()
        )

        assert result["success"] is True
        assert ticket_service.update_ticket.call_args.kwargs["status"] == TicketStatus.RESOLVED

    @pytest.mark.asyncio
    async def test_client_tickets_need_account(self, registry):
        result = await registry.execute("get_client_tickets", {}, ToolContext())

        assert result["error"] == MISSING_ACCOUNT_ERROR

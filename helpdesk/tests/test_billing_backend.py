"""
Unit tests for the utility billing backend client

Tests:
- Envelope construction (escaping)
- Debt / consumption / contract response parsing
- Fault and business error handling
- Client error wrapping (nothing raised to the caller)
"""
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from helpdesk.models.schemas import ConsumptionRecord
from helpdesk.services.billing_backend import (
    AccountBackendClient,
    build_debt_envelope,
    group_by_year,
    parse_consumption_response,
    parse_contract_response,
    parse_debt_response,
)


DEBT_RESPONSE = """<soap:Envelope xmlns:soap="http://schemas.xmlsoap.org/soap/envelope/">
<soap:Body><ns2:getDeudaResponse xmlns:ns2="http://interfazgenericagestiondeuda.occamcxf.occam.agbar.com/">
<resultadoDeuda>
    <codigoError>0</codigoError>
    <nombreCliente>MARIA LOPEZ</nombreCliente>
    <direccion>AV. UNIVERSIDAD 100</direccion>
    <deudaTotal>1,500.00</deudaTotal>
    <saldoAnteriorTotal>1000.00</saldoAnteriorTotal>
    <deuda>500.00</deuda>
</resultadoDeuda>
</ns2:getDeudaResponse></soap:Body></soap:Envelope>"""

FAULT_RESPONSE = """<soap:Envelope xmlns:soap="http://schemas.xmlsoap.org/soap/envelope/">
<soap:Body><soap:Fault><faultcode>soap:Server</faultcode>
<faultstring>Contrato no encontrado</faultstring></soap:Fault></soap:Body></soap:Envelope>"""


def _consumo(period: str, year: str, m3: str, estimated: bool = False) -> str:
    return (
        f"<Consumo><periodo>{period}</periodo><año>{year}</año>"
        f"<metrosCubicos>{m3}</metrosCubicos>"
        f"<fechaLectura>2025-06-30T00:00:00</fechaLectura>"
        f"<estimado>{'true' if estimated else 'false'}</estimado></Consumo>"
    )


def _consumption_document(values) -> str:
    items = "".join(_consumo("&lt;JUN&gt; - JUL", "2025", str(v)) for v in values)
    return f"<getConsumosResponse><consumos>{items}</consumos></getConsumosResponse>"


class TestEnvelopes:
    """Test request envelope construction"""

    def test_debt_envelope_escapes_account(self):
        envelope = build_debt_envelope("123<456>")
        assert "<valor>123&lt;456&gt;</valor>" in envelope
        assert "<tipoIdentificador>CONTRATO</tipoIdentificador>" in envelope
        assert "wsse:UsernameToken" in envelope


class TestParseDebt:
    """Test parse_debt_response"""

    def test_success(self):
        result = parse_debt_response(DEBT_RESPONSE)

        assert result.success is True
        assert result.data.total_debt == 1500.0
        assert result.data.overdue == 1000.0
        assert result.data.current == 500.0
        assert result.data.client_name == "MARIA LOPEZ"
        assert [c.state for c in result.data.concepts] == ["vencido", "por_vencer"]

    def test_zero_balance_has_no_concepts(self):
        result = parse_debt_response("<codigoError>0</codigoError><deuda>0</deuda>")

        assert result.success is True
        assert result.data.total_debt == 0.0
        assert result.data.concepts == []

    def test_fault(self):
        result = parse_debt_response(FAULT_RESPONSE)

        assert result.success is False
        assert result.error == "Contrato no encontrado"

    def test_business_error(self):
        result = parse_debt_response(
            "<codigoError>5</codigoError><descripcionError>Contrato dado de baja</descripcionError>"
        )

        assert result.success is False
        assert result.error == "Contrato dado de baja"


class TestParseConsumption:
    """Test parse_consumption_response"""

    def test_period_label_and_reading(self):
        document = "<consumos>" + _consumo("&lt;JUN&gt; - JUL", "2025", "18", estimated=True) + "</consumos>"
        result = parse_consumption_response(document)

        record = result.data.records[0]
        assert record.period == "JUN 2025"
        assert record.cubic_meters == 18.0
        assert record.reading_date == "2025-06-30"
        assert record.reading_type == "estimada"

    def test_average_uses_first_twelve(self):
        values = [10] * 12 + [100] * 4
        result = parse_consumption_response(_consumption_document(values))

        assert len(result.data.records) == 16
        assert result.data.monthly_average == 10.0

    def test_trend_increasing(self):
        result = parse_consumption_response(_consumption_document([30, 30, 30, 10, 10, 10]))
        assert result.data.trend == "aumentando"

    def test_trend_decreasing(self):
        result = parse_consumption_response(_consumption_document([5, 5, 5, 20, 20, 20]))
        assert result.data.trend == "disminuyendo"

    def test_trend_needs_six_records(self):
        result = parse_consumption_response(_consumption_document([50, 1, 1]))
        assert result.data.trend == "estable"

    def test_empty_history(self):
        result = parse_consumption_response("<consumos></consumos>")

        assert result.success is True
        assert result.data.records == []
        assert result.data.monthly_average == 0.0


class TestParseContract:
    """Test parse_contract_response"""

    def test_address_built_from_parts(self):
        document = (
            "<numeroContrato>123456</numeroContrato><titular>JUAN PEREZ</titular>"
            "<calle>HIDALGO</calle><numero>12</numero><municipio>QUERETARO</municipio>"
            "<cp>76000</cp><tipoUso>DOMESTICO</tipoUso>"
            "<fechaAlta>2010-03-01T00:00:00</fechaAlta>"
            '<fechaBaja xsi:nil="true"/>'
        )
        result = parse_contract_response(document)

        assert result.data.address == "HIDALGO 12, QUERETARO"
        assert result.data.postal_code == "76000"
        assert result.data.tariff == "DOMESTICO"
        assert result.data.status == "activo"
        assert result.data.start_date == "2010-03-01"

    def test_suspended_when_end_date_present(self):
        document = (
            "<numeroContrato>1</numeroContrato><dirCorrespondencia>CALLE 5</dirCorrespondencia>"
            "<fechaBaja>2024-01-01</fechaBaja>"
        )
        result = parse_contract_response(document)

        assert result.data.address == "CALLE 5"
        assert result.data.status == "suspendido"


class TestAccountBackendClient:
    """Test AccountBackendClient lookups"""

    def _client(self, response=None, side_effect=None):
        http_client = MagicMock()
        http_client.call = AsyncMock(return_value=response, side_effect=side_effect)
        return AccountBackendClient(http_client=http_client, base_url="https://billing.example/services/")

    @pytest.mark.asyncio
    async def test_get_debt_posts_envelope(self):
        response = MagicMock(is_success=True, status_code=200, text=DEBT_RESPONSE)
        client = self._client(response)

        result = await client.get_debt("123456")

        assert result.success is True
        args, kwargs = client.http_client.call.call_args
        assert args[0] == "https://billing.example/services/InterfazGenericaGestionDeudaWS"
        assert kwargs["method"] == "POST"
        assert "<valor>123456</valor>" in kwargs["body"]

    @pytest.mark.asyncio
    async def test_fault_with_http_500_is_parsed(self):
        response = MagicMock(is_success=False, status_code=500, text=FAULT_RESPONSE)
        client = self._client(response)

        result = await client.get_contract_details("999")

        assert result.success is False
        assert result.error == "Contrato no encontrado"

    @pytest.mark.asyncio
    async def test_http_error_status_becomes_failure(self):
        response = MagicMock(is_success=False, status_code=502, text="Bad Gateway")
        client = self._client(response)

        result = await client.get_consumption("123")

        assert result.success is False
        assert result.error.startswith("No se pudo consultar el consumo")

    @pytest.mark.asyncio
    async def test_transport_error_becomes_failure(self):
        client = self._client(side_effect=httpx.ConnectTimeout("timeout"))

        result = await client.get_debt("123")

        assert result.success is False
        assert "timeout" in result.error


class TestGroupByYear:
    """Test group_by_year"""

    def test_groups_by_suffix(self):
        records = [
            ConsumptionRecord(period="JUN 2025", cubic_meters=1),
            ConsumptionRecord(period="MAY 2025", cubic_meters=2),
            ConsumptionRecord(period="DIC 2024", cubic_meters=3),
            ConsumptionRecord(period="SIN", cubic_meters=4),
        ]
        grouped = group_by_year(records)

        assert [r.cubic_meters for r in grouped["2025"]] == [1, 2]
        assert len(grouped["2024"]) == 1
        assert len(grouped["Unknown"]) == 1

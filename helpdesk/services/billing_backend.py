"""
Utility Billing Backend Client

Account lookups against the legacy SOAP services:
- Debt / balance (InterfazGenericaGestionDeudaWS)
- Consumption history (InterfazOficinaVirtualClientesWS)
- Contract details (InterfazGenericaContratacionWS)

Every lookup goes through the resilient HTTP client. Failures of any kind
come back as a result with success=False and an error message; nothing is
raised to the caller.
"""
from typing import Dict, List, Optional
from xml.sax.saxutils import escape

from helpdesk.config import get_settings
from helpdesk.models.schemas import (
    ConsumptionData,
    ConsumptionLookup,
    ConsumptionRecord,
    ContractData,
    ContractLookup,
    DebtConcept,
    DebtData,
    DebtLookup,
)
from helpdesk.services.http_client import ResilientHttpClient
from helpdesk.utils.logger import get_logger
from helpdesk.utils.xml_parser import (
    detect_business_error,
    detect_fault,
    parse_float,
    parse_xml_array,
    parse_xml_value,
    unescape_entities,
)

settings = get_settings()
logger = get_logger(__name__)

SOAP_HEADERS = {"Content-Type": "text/xml;charset=UTF-8"}

_WSSE_NS = (
    'xmlns:wsse="http://docs.oasis-open.org/wss/2004/01/oasis-200401-wss-wssecurity-secext-1.0.xsd" '
    'xmlns:wsu="http://docs.oasis-open.org/wss/2004/01/oasis-200401-wss-wssecurity-utility-1.0.xsd"'
)
_PASSWORD_TYPE = (
    "http://docs.oasis-open.org/wss/2004/01/oasis-200401-wss-username-token-profile-1.0#PasswordText"
)


def _security_header(token_id: str) -> str:
    username = escape(settings.billing_ws_username)
    password = escape(settings.billing_ws_password)
    return f"""<soapenv:Header>
        <wsse:Security mustUnderstand="1">
            <wsse:UsernameToken wsu:Id="{token_id}">
                <wsse:Username>{username}</wsse:Username>
                <wsse:Password Type="{_PASSWORD_TYPE}">{password}</wsse:Password>
            </wsse:UsernameToken>
        </wsse:Security>
    </soapenv:Header>"""


def build_debt_envelope(account_id: str) -> str:
    return f"""<soapenv:Envelope xmlns:soapenv="http://schemas.xmlsoap.org/soap/envelope/" xmlns:int="http://interfazgenericagestiondeuda.occamcxf.occam.agbar.com/" {_WSSE_NS}>
    {_security_header("UsernameTokenWSGESTIONDEUDA")}
    <soapenv:Body>
        <int:getDeuda>
            <tipoIdentificador>CONTRATO</tipoIdentificador>
            <valor>{escape(account_id)}</valor>
            <explotacion>{settings.billing_explotacion}</explotacion>
            <idioma>es</idioma>
        </int:getDeuda>
    </soapenv:Body>
</soapenv:Envelope>"""


def build_consumption_envelope(account_id: str) -> str:
    return f"""<soapenv:Envelope xmlns:soapenv="http://schemas.xmlsoap.org/soap/envelope/" xmlns:occ="http://occamWS.ejb.negocio.occam.agbar.com" {_WSSE_NS}>
    {_security_header("UsernameToken-WSGESTIONDEUDA")}
    <soapenv:Body>
        <occ:getConsumos>
            <explotacion>{settings.billing_explotacion}</explotacion>
            <contrato>{escape(account_id)}</contrato>
            <idioma>es</idioma>
        </occ:getConsumos>
    </soapenv:Body>
</soapenv:Envelope>"""


def build_contract_envelope(account_id: str) -> str:
    return f"""<soapenv:Envelope xmlns:soapenv="http://schemas.xmlsoap.org/soap/envelope/" xmlns:occ="http://occamWS.ejb.negocio.occam.agbar.com">
    <soapenv:Header/>
    <soapenv:Body>
        <occ:consultaDetalleContrato>
            <numeroContrato>{escape(account_id)}</numeroContrato>
            <idioma>es</idioma>
        </occ:consultaDetalleContrato>
    </soapenv:Body>
</soapenv:Envelope>"""


# ============================================================================
# Response parsers
# ============================================================================

def parse_debt_response(document: str) -> DebtLookup:
    fault = detect_fault(document)
    if fault:
        return DebtLookup(success=False, error=fault)

    business_error = detect_business_error(document)
    if business_error:
        return DebtLookup(success=False, error=business_error)

    total = parse_float(parse_xml_value(document, "deudaTotal") or parse_xml_value(document, "deuda"))
    previous = parse_float(
        parse_xml_value(document, "saldoAnteriorTotal") or parse_xml_value(document, "saldoAnterior")
    )
    current = parse_float(parse_xml_value(document, "deuda"))

    # The backend has no itemised breakdown; summarise as previous + current period
    concepts: List[DebtConcept] = []
    if previous > 0:
        concepts.append(DebtConcept(
            period="Saldo anterior",
            concept="Adeudo de periodos anteriores",
            amount=previous,
            state="vencido",
        ))
    if current > 0:
        concepts.append(DebtConcept(
            period="Periodo actual",
            concept="Consumo del periodo",
            amount=current,
            state="por_vencer",
        ))

    return DebtLookup(
        success=True,
        data=DebtData(
            total_debt=total,
            overdue=previous,
            current=current,
            concepts=concepts,
            client_name=parse_xml_value(document, "nombreCliente") or "",
            address=parse_xml_value(document, "direccion") or "",
        ),
    )


def _consumption_trend(values: List[float]) -> str:
    if len(values) < 6:
        return "estable"
    recent = sum(values[0:3]) / 3
    older = sum(values[3:6]) / 3
    if recent > older * 1.2:
        return "aumentando"
    if recent < older * 0.8:
        return "disminuyendo"
    return "estable"


def parse_consumption_response(document: str) -> ConsumptionLookup:
    fault = detect_fault(document)
    if fault:
        return ConsumptionLookup(success=False, error=fault)

    business_error = detect_business_error(document)
    if business_error:
        return ConsumptionLookup(success=False, error=business_error)

    records: List[ConsumptionRecord] = []
    for raw in parse_xml_array(document, "consumos", "Consumo"):
        # Periods arrive entity-escaped with a range suffix, e.g. "&lt;JUN&gt; - JUL"
        period = unescape_entities(parse_xml_value(raw, "periodo"))
        period = period.replace("<", "").replace(">", "").split(" - ")[0].strip()
        year = parse_xml_value(raw, "año") or ""
        if year and period:
            period = f"{period} {year}"

        reading_date = parse_xml_value(raw, "fechaLectura") or ""
        records.append(ConsumptionRecord(
            period=period,
            cubic_meters=parse_float(parse_xml_value(raw, "metrosCubicos")),
            reading_date=reading_date.split("T")[0],
            reading_type="estimada" if parse_xml_value(raw, "estimado") == "true" else "real",
        ))

    recent = records[:12]
    average = sum(r.cubic_meters for r in recent) / len(recent) if recent else 0.0

    return ConsumptionLookup(
        success=True,
        data=ConsumptionData(
            records=records,
            monthly_average=average,
            trend=_consumption_trend([r.cubic_meters for r in records]),
        ),
    )


def parse_contract_response(document: str) -> ContractLookup:
    fault = detect_fault(document)
    if fault:
        return ContractLookup(success=False, error=fault)

    business_error = detect_business_error(document)
    if business_error:
        return ContractLookup(success=False, error=business_error)

    street = parse_xml_value(document, "calle") or ""
    number = parse_xml_value(document, "numero") or ""
    municipality = parse_xml_value(document, "municipio") or ""
    province = parse_xml_value(document, "provincia") or ""

    address = parse_xml_value(document, "dirCorrespondencia") or ""
    if not address and street:
        address = f"{street} {number}".strip()
        if municipality:
            address += f", {municipality}"

    # A populated fechaBaja means the contract was suspended; nil elements
    # come back as <fechaBaja xsi:nil="true"/> and do not match
    end_date = parse_xml_value(document, "fechaBaja")
    status = "suspendido" if end_date else "activo"

    start_date = parse_xml_value(document, "fechaAlta") or ""

    return ContractLookup(
        success=True,
        data=ContractData(
            contract_number=parse_xml_value(document, "numeroContrato") or "",
            holder=parse_xml_value(document, "titular") or "",
            address=address,
            neighborhood=municipality or province,
            postal_code=parse_xml_value(document, "codigoPostal") or parse_xml_value(document, "cp") or "",
            tariff=parse_xml_value(document, "descUso") or parse_xml_value(document, "tipoUso") or "",
            status=status,
            start_date=start_date.split("T")[0],
            meter_number=parse_xml_value(document, "numeroContador"),
        ),
    )


# ============================================================================
# Client
# ============================================================================

class AccountBackendClient:
    """
    Account lookups with retry/timeout/proxy handled by ResilientHttpClient
    """

    def __init__(self, http_client: Optional[ResilientHttpClient] = None, base_url: Optional[str] = None):
        self.http_client = http_client or ResilientHttpClient()
        self.base_url = (base_url or settings.billing_api_base).rstrip("/")
        self.max_retries = settings.http_max_retries
        self.base_delay = settings.http_retry_base_delay

    async def _post(self, service: str, envelope: str) -> str:
        response = await self.http_client.call(
            f"{self.base_url}/{service}",
            method="POST",
            headers=dict(SOAP_HEADERS),
            body=envelope,
            max_retries=self.max_retries,
            base_delay=self.base_delay,
        )
        # SOAP faults arrive with HTTP 500 and a fault body; let the parser read it
        if not response.is_success and "faultstring" not in response.text.lower():
            raise RuntimeError(f"HTTP {response.status_code} from {service}")
        return response.text

    async def get_debt(self, account_id: str) -> DebtLookup:
        """Balance and overdue amounts for a contract"""
        logger.info(f"Fetching debt for contract {account_id}")
        try:
            document = await self._post("InterfazGenericaGestionDeudaWS", build_debt_envelope(account_id))
            return parse_debt_response(document)
        except Exception as e:
            logger.error(f"Debt lookup failed for {account_id}: {e}")
            return DebtLookup(success=False, error=f"No se pudo consultar el saldo: {e}")

    async def get_consumption(self, account_id: str) -> ConsumptionLookup:
        """Consumption history with monthly average and trend"""
        logger.info(f"Fetching consumption for contract {account_id}")
        try:
            document = await self._post(
                "InterfazOficinaVirtualClientesWS", build_consumption_envelope(account_id)
            )
            return parse_consumption_response(document)
        except Exception as e:
            logger.error(f"Consumption lookup failed for {account_id}: {e}")
            return ConsumptionLookup(success=False, error=f"No se pudo consultar el consumo: {e}")

    async def get_contract_details(self, account_id: str) -> ContractLookup:
        """Holder, address, tariff and status of a contract"""
        logger.info(f"Fetching contract {account_id}")
        try:
            document = await self._post("InterfazGenericaContratacionWS", build_contract_envelope(account_id))
            return parse_contract_response(document)
        except Exception as e:
            logger.error(f"Contract lookup failed for {account_id}: {e}")
            return ContractLookup(success=False, error=f"No se pudo consultar el contrato: {e}")


def group_by_year(records: List[ConsumptionRecord]) -> Dict[str, List[ConsumptionRecord]]:
    """Group consumption records by the year suffix of their period label"""
    grouped: Dict[str, List[ConsumptionRecord]] = {}
    for record in records:
        parts = record.period.split(" ")
        year = parts[-1] if len(parts) > 1 else "Unknown"
        grouped.setdefault(year, []).append(record)
    return grouped

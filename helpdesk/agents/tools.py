"""
Responder tools

Side-effecting actions the domain responders may invoke: account lookups
against the billing backend and ticket operations. Every tool receives an
explicit ToolContext carrying the conversation's contact linkage and sticky
account id; results are plain dicts and failures come back as
{"success": False, "error": ...} rather than exceptions.
"""
import json
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Literal, Optional, Type, Union

from pydantic import BaseModel, Field, ValidationError

from helpdesk.models.ticket import (
    ContactLinkage,
    TicketCreate,
    TicketPriority,
    TicketStatus,
    TicketType,
)
from helpdesk.services.billing_backend import AccountBackendClient, group_by_year
from helpdesk.services.ticket_service import TicketService
from helpdesk.utils.logger import get_logger

logger = get_logger(__name__)

MISSING_ACCOUNT_ERROR = "Se requiere el número de contrato"


@dataclass
class ToolContext:
    """Per-turn state shared with the tools"""
    linkage: ContactLinkage = field(default_factory=ContactLinkage)
    account_id: Optional[str] = None
    created_folios: List[str] = field(default_factory=list)

    @property
    def last_folio(self) -> Optional[str]:
        return self.created_folios[-1] if self.created_folios else None


# ============================================================================
# Tool arguments
# ============================================================================

class AccountArgs(BaseModel):
    contrato: Optional[str] = Field(None, description="Número de contrato CEA (ej: 123456)")


class ContractNumberArgs(BaseModel):
    contract_number: Optional[str] = Field(None, description="Número de contrato CEA")


class CreateTicketArgs(BaseModel):
    service_type: Literal[
        "fuga", "aclaraciones", "pagos", "lecturas", "revision_recibo", "recibo_digital", "urgente"
    ] = Field(..., description="Tipo de ticket CEA")
    titulo: str = Field(..., description="Título breve del ticket")
    descripcion: str = Field(..., description="Descripción detallada del problema")
    contract_number: Optional[str] = Field(None, description="Número de contrato (si aplica)")
    email: Optional[str] = Field(None, description="Email del cliente (si aplica)")
    ubicacion: Optional[str] = Field(None, description="Ubicación de la fuga (solo para fugas)")
    priority: TicketPriority = Field(TicketPriority.MEDIUM, description="Prioridad del ticket")


class CreateGeneralTicketArgs(BaseModel):
    service_type: Literal[
        "atencion_ciudadana", "transporte", "educacion", "vehicular",
        "psicologia", "atencion_mujeres", "cultura", "registro_publico",
        "conciliacion_laboral", "vivienda", "appqro", "programas_sociales", "general",
    ] = Field(..., description="Tipo de servicio gubernamental")
    titulo: str = Field(..., description="Título breve del ticket")
    descripcion: str = Field(..., description="Descripción detallada de la solicitud")
    nombre_ciudadano: Optional[str] = Field(None, description="Nombre del ciudadano (si lo proporciona)")
    email: Optional[str] = Field(None, description="Email del ciudadano (si aplica)")
    priority: TicketPriority = Field(TicketPriority.MEDIUM, description="Prioridad del ticket")


class UpdateTicketArgs(BaseModel):
    folio: str = Field(..., description="Folio del ticket a actualizar")
    status: Optional[TicketStatus] = Field(None, description="Nuevo estado del ticket (opcional)")
    priority: Optional[TicketPriority] = Field(None, description="Nueva prioridad del ticket (opcional)")
    notes: Optional[str] = Field(None, description="Notas adicionales (opcional)")


ToolHandler = Callable[[Any, ToolContext], Awaitable[Dict[str, Any]]]


@dataclass
class ToolSpec:
    name: str
    description: str
    args_model: Type[BaseModel]
    handler: ToolHandler

    def openai_schema(self) -> Dict[str, Any]:
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.args_model.model_json_schema(),
            },
        }


class ToolRegistry:
    """Name → tool lookup with argument validation and uniform error payloads"""

    def __init__(self, ticket_service: TicketService, billing_client: AccountBackendClient):
        self.ticket_service = ticket_service
        self.billing_client = billing_client
        self._tools: Dict[str, ToolSpec] = {}

        self.register(ToolSpec(
            "get_deuda",
            "Obtiene el saldo y adeudo de un contrato CEA (total, vencido, por vencer y conceptos).",
            AccountArgs,
            self._get_debt,
        ))
        self.register(ToolSpec(
            "get_consumo",
            "Obtiene el historial de consumo de agua de un contrato, su promedio mensual y tendencia.",
            AccountArgs,
            self._get_consumption,
        ))
        self.register(ToolSpec(
            "get_contract_details",
            "Obtiene los detalles de un contrato CEA: titular, dirección, tarifa y estado.",
            AccountArgs,
            self._get_contract,
        ))
        self.register(ToolSpec(
            "create_ticket",
            "Crea un ticket de CEA (agua) y retorna el folio generado. Incluye siempre el folio en tu respuesta.",
            CreateTicketArgs,
            self._create_ticket,
        ))
        self.register(ToolSpec(
            "create_general_ticket",
            "Crea un ticket de seguimiento para cualquier servicio del Gobierno de Querétaro y retorna el folio.",
            CreateGeneralTicketArgs,
            self._create_general_ticket,
        ))
        self.register(ToolSpec(
            "get_client_tickets",
            "Obtiene los tickets de un cliente por número de contrato.",
            ContractNumberArgs,
            self._get_client_tickets,
        ))
        self.register(ToolSpec(
            "search_customer_by_contract",
            "Busca un cliente por su número de contrato en el directorio de contactos.",
            ContractNumberArgs,
            self._search_customer,
        ))
        self.register(ToolSpec(
            "update_ticket",
            "Actualiza el estado, la prioridad o las notas de un ticket existente.",
            UpdateTicketArgs,
            self._update_ticket,
        ))

    def register(self, spec: ToolSpec) -> None:
        self._tools[spec.name] = spec

    @property
    def names(self) -> List[str]:
        return list(self._tools)

    def schemas(self, names: List[str]) -> List[Dict[str, Any]]:
        """OpenAI tool definitions for the given tool names"""
        return [self._tools[name].openai_schema() for name in names if name in self._tools]

    async def execute(
        self,
        name: str,
        arguments: Union[str, Dict[str, Any], None],
        context: ToolContext,
    ) -> Dict[str, Any]:
        """
        Run a tool by name.

        Args:
            name: Tool name
            arguments: JSON string or dict of arguments
            context: Linkage and sticky account id of the current turn

        Returns:
            Tool result payload
        """
        spec = self._tools.get(name)
        if spec is None:
            logger.warning(f"Unknown tool requested: {name}")
            return {"success": False, "error": f"Herramienta desconocida: {name}"}

        try:
            if isinstance(arguments, str):
                arguments = json.loads(arguments) if arguments.strip() else {}
            args = spec.args_model.model_validate(arguments or {})
        except (json.JSONDecodeError, ValidationError) as e:
            logger.warning(f"Invalid arguments for {name}: {e}")
            return {"success": False, "error": f"Argumentos inválidos: {e}"}

        logger.info(f"Executing tool {name}")
        try:
            return await spec.handler(args, context)
        except Exception as e:
            logger.error(f"Tool {name} failed: {e}", exc_info=True)
            return {"success": False, "error": str(e) or "Error desconocido"}

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    @staticmethod
    def _account(explicit: Optional[str], context: ToolContext) -> Optional[str]:
        account_id = (explicit or "").strip() or context.account_id
        if account_id:
            context.account_id = account_id
        return account_id

    async def _get_debt(self, args: AccountArgs, context: ToolContext) -> Dict[str, Any]:
        account_id = self._account(args.contrato, context)
        if not account_id:
            return {"success": False, "error": MISSING_ACCOUNT_ERROR}

        lookup = await self.billing_client.get_debt(account_id)
        if not lookup.success:
            return {"success": False, "error": lookup.error}

        data = lookup.data
        summary = f"Saldo total: {data.total_debt:.2f} MXN"
        if data.overdue > 0:
            summary += f" (Vencido: {data.overdue:.2f})"
        return {
            "success": True,
            "contrato": account_id,
            "totalDeuda": data.total_debt,
            "vencido": data.overdue,
            "porVencer": data.current,
            "resumen": summary,
            "conceptos": [c.model_dump() for c in data.concepts[:5]],
        }

    async def _get_consumption(self, args: AccountArgs, context: ToolContext) -> Dict[str, Any]:
        account_id = self._account(args.contrato, context)
        if not account_id:
            return {"success": False, "error": MISSING_ACCOUNT_ERROR}

        lookup = await self.billing_client.get_consumption(account_id)
        if not lookup.success:
            return {"success": False, "error": lookup.error}

        data = lookup.data
        records = data.records[:36]
        by_year = group_by_year(records)
        years = sorted(by_year, reverse=True)
        average = round(data.monthly_average)
        return {
            "success": True,
            "contrato": account_id,
            "promedioMensual": average,
            "tendencia": data.trend,
            "consumos": [r.model_dump() for r in records[:12]],
            "consumosPorAño": {year: [r.model_dump() for r in items] for year, items in by_year.items()},
            "añosDisponibles": years,
            "resumen": (
                f"Promedio mensual: {average} m³ (Tendencia: {data.trend}). "
                f"Datos disponibles: {', '.join(years)}"
            ),
        }

    async def _get_contract(self, args: AccountArgs, context: ToolContext) -> Dict[str, Any]:
        account_id = self._account(args.contrato, context)
        if not account_id:
            return {"success": False, "error": MISSING_ACCOUNT_ERROR}

        lookup = await self.billing_client.get_contract_details(account_id)
        if not lookup.success:
            return {"success": False, "error": lookup.error}
        return {"success": True, **lookup.data.model_dump()}

    async def _open_ticket(self, ticket_input: TicketCreate, context: ToolContext) -> Dict[str, Any]:
        result = await self.ticket_service.create_ticket(ticket_input, context.linkage)
        if result.success and result.folio:
            context.created_folios.append(result.folio)
        return result.model_dump(exclude_none=True)

    async def _create_ticket(self, args: CreateTicketArgs, context: ToolContext) -> Dict[str, Any]:
        ticket_input = TicketCreate(
            service_type=TicketType(args.service_type),
            title=args.titulo,
            description=args.descripcion,
            account_id=self._account(args.contract_number, context),
            email=args.email,
            location=args.ubicacion,
            priority=args.priority,
        )
        return await self._open_ticket(ticket_input, context)

    async def _create_general_ticket(self, args: CreateGeneralTicketArgs, context: ToolContext) -> Dict[str, Any]:
        ticket_input = TicketCreate(
            service_type=TicketType(args.service_type),
            title=args.titulo,
            description=args.descripcion,
            email=args.email,
            priority=args.priority,
            client_name=args.nombre_ciudadano,
        )
        return await self._open_ticket(ticket_input, context)

    async def _get_client_tickets(self, args: ContractNumberArgs, context: ToolContext) -> Dict[str, Any]:
        account_id = self._account(args.contract_number, context)
        if not account_id:
            return {"success": False, "error": MISSING_ACCOUNT_ERROR}
        return await self.ticket_service.list_tickets_for_account(account_id)

    async def _search_customer(self, args: ContractNumberArgs, context: ToolContext) -> Dict[str, Any]:
        account_id = self._account(args.contract_number, context)
        if not account_id:
            return {"success": False, "error": MISSING_ACCOUNT_ERROR}
        return await self.ticket_service.find_customer_by_account(account_id)

    async def _update_ticket(self, args: UpdateTicketArgs, context: ToolContext) -> Dict[str, Any]:
        result = await self.ticket_service.update_ticket(
            args.folio,
            status=args.status,
            priority=args.priority,
            notes=args.notes,
        )
        return result.model_dump(exclude_none=True)

"""
Ticket data models

Folio-numbered cases opened for follow-up, plus the vocabularies that map
the conversational side (Spanish tool arguments) to the case-tracking
store's enums.
"""
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class TicketType(str, Enum):
    """Ticket categories; each maps to a 3-letter folio code"""
    # Utility billing (water)
    LEAK = "fuga"
    CLARIFICATIONS = "aclaraciones"
    PAYMENTS = "pagos"
    METER_READINGS = "lecturas"
    RECEIPT_REVIEW = "revision_recibo"
    DIGITAL_RECEIPT = "recibo_digital"
    URGENT = "urgente"
    # Government services
    CITIZEN_ATTENTION = "atencion_ciudadana"
    TRANSPORT = "transporte"
    EDUCATION = "educacion"
    VEHICLE = "vehicular"
    PSYCHOLOGY = "psicologia"
    WOMEN_SUPPORT = "atencion_mujeres"
    CULTURE = "cultura"
    PUBLIC_REGISTRY = "registro_publico"
    LABOR_CONCILIATION = "conciliacion_laboral"
    HOUSING = "vivienda"
    APPQRO = "appqro"
    SOCIAL_PROGRAMS = "programas_sociales"
    GENERAL = "general"

    @property
    def code(self) -> str:
        return TICKET_TYPE_CODES[self]

    @property
    def service_type(self) -> str:
        return SERVICE_TYPE_MAP.get(self, "general")


TICKET_TYPE_CODES: Dict[TicketType, str] = {
    TicketType.LEAK: "FUG",
    TicketType.CLARIFICATIONS: "ACL",
    TicketType.PAYMENTS: "PAG",
    TicketType.METER_READINGS: "LEC",
    TicketType.RECEIPT_REVIEW: "REV",
    TicketType.DIGITAL_RECEIPT: "DIG",
    TicketType.URGENT: "URG",
    TicketType.CITIZEN_ATTENTION: "ATC",
    TicketType.TRANSPORT: "TRA",
    TicketType.EDUCATION: "EDU",
    TicketType.VEHICLE: "VEH",
    TicketType.PSYCHOLOGY: "PSI",
    TicketType.WOMEN_SUPPORT: "MUJ",
    TicketType.CULTURE: "CUL",
    TicketType.PUBLIC_REGISTRY: "RPP",
    TicketType.LABOR_CONCILIATION: "CCL",
    TicketType.HOUSING: "VIV",
    TicketType.APPQRO: "APP",
    TicketType.SOCIAL_PROGRAMS: "SOC",
    TicketType.GENERAL: "GEN",
}

# Store-side service_type enum; government services share "general"
SERVICE_TYPE_MAP: Dict[TicketType, str] = {
    TicketType.LEAK: "leak_report",
    TicketType.CLARIFICATIONS: "clarifications",
    TicketType.PAYMENTS: "payment",
    TicketType.METER_READINGS: "report_reading",
    TicketType.RECEIPT_REVIEW: "receipt_review",
    TicketType.DIGITAL_RECEIPT: "digital_receipt",
    TicketType.URGENT: "human_agent",
}


class TicketStatus(str, Enum):
    """Ticket lifecycle states"""
    OPEN = "abierto"
    IN_PROGRESS = "en_proceso"
    WAITING_CLIENT = "esperando_cliente"
    WAITING_INTERNAL = "esperando_interno"
    ESCALATED = "escalado"
    RESOLVED = "resuelto"
    CLOSED = "cerrado"
    CANCELLED = "cancelado"

    @property
    def store_value(self) -> str:
        return STATUS_MAP[self]

    @classmethod
    def from_store(cls, value: str) -> "TicketStatus":
        for status, stored in STATUS_MAP.items():
            if stored == value or status.value == value:
                return status
        raise ValueError(f"Unknown ticket status: {value}")


STATUS_MAP: Dict[TicketStatus, str] = {
    TicketStatus.OPEN: "open",
    TicketStatus.IN_PROGRESS: "in_progress",
    TicketStatus.WAITING_CLIENT: "waiting_client",
    TicketStatus.WAITING_INTERNAL: "waiting_internal",
    TicketStatus.ESCALATED: "escalated",
    TicketStatus.RESOLVED: "resolved",
    TicketStatus.CLOSED: "closed",
    TicketStatus.CANCELLED: "cancelled",
}


class TicketPriority(str, Enum):
    """Ticket priorities"""
    URGENT = "urgente"
    HIGH = "alta"
    MEDIUM = "media"
    LOW = "baja"

    @property
    def store_value(self) -> str:
        return PRIORITY_MAP[self]


PRIORITY_MAP: Dict[TicketPriority, str] = {
    TicketPriority.URGENT: "urgent",
    TicketPriority.HIGH: "high",
    TicketPriority.MEDIUM: "medium",
    TicketPriority.LOW: "low",
}


class ContactLinkage(BaseModel):
    """
    Identifiers linking a ticket to the contact-center platform.

    Passed explicitly from the turn orchestrator down to ticket creation.
    """
    contact_id: Optional[int] = None
    conversation_id: Optional[int] = None
    inbox_id: Optional[int] = None


class TicketCreate(BaseModel):
    """Input for opening a ticket"""
    service_type: TicketType
    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1)
    account_id: Optional[str] = Field(None, max_length=32, description="Contract / account number")
    email: Optional[str] = None
    location: Optional[str] = None
    priority: TicketPriority = TicketPriority.MEDIUM
    client_name: Optional[str] = None
    contact_id: Optional[int] = None
    conversation_id: Optional[int] = None
    inbox_id: Optional[int] = None


class TicketCreateResult(BaseModel):
    """Outcome of a ticket creation; a folio is always present on success"""
    success: bool
    folio: Optional[str] = None
    ticket_id: Optional[str] = None
    message: Optional[str] = None
    warning: Optional[str] = None
    error: Optional[str] = None


class TicketUpdateResult(BaseModel):
    success: bool
    folio: str
    message: Optional[str] = None
    error: Optional[str] = None
    error_code: Optional[Literal["not_found", "invalid_transition", "store_error"]] = None


class Ticket(BaseModel):
    """Ticket row as stored in the case-tracking table"""
    model_config = ConfigDict(from_attributes=True)

    id: Optional[int] = None
    folio: str
    title: str
    description: str = ""
    status: str = "open"
    priority: str = "medium"
    ticket_type: str
    service_type: str = "general"
    channel: str = "whatsapp"
    contract_number: Optional[str] = None
    client_name: Optional[str] = None
    contact_id: Optional[int] = None
    conversation_id: Optional[int] = None
    inbox_id: Optional[int] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    resolution_notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None

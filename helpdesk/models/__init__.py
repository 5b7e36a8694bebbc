"""
Pydantic models for the Citizen Helpdesk Intake backend
"""

from helpdesk.models.schemas import (
    # Enums
    Classification,
    UtilitySubClassification,
    ResponderDomain,

    # Oracle contract
    ClassificationResult,

    # API Models
    TurnRequest,
    TurnResponse,
    TurnMetadata,
    ContactCard,
)
from helpdesk.models.session import Session
from helpdesk.models.ticket import (
    TicketType,
    TicketStatus,
    TicketPriority,
    ContactLinkage,
    TicketCreate,
    TicketCreateResult,
    TicketUpdateResult,
    Ticket,
)

__all__ = [
    # Enums
    "Classification",
    "UtilitySubClassification",
    "ResponderDomain",
    "TicketType",
    "TicketStatus",
    "TicketPriority",

    # Oracle contract
    "ClassificationResult",

    # API Models
    "TurnRequest",
    "TurnResponse",
    "TurnMetadata",
    "ContactCard",

    # Domain Models
    "Session",
    "ContactLinkage",
    "TicketCreate",
    "TicketCreateResult",
    "TicketUpdateResult",
    "Ticket",
]

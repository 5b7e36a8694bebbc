"""
Ticket Service

Opens folio-numbered cases in the case-tracking store and updates them.

Creation never fails from the caller's point of view: when the store is
unreachable a locally computed folio is returned with a warning.
"""
import asyncio
from typing import Any, Dict, List, Optional

from helpdesk.config import get_settings
from helpdesk.models.ticket import (
    ContactLinkage,
    TicketCreate,
    TicketCreateResult,
    TicketPriority,
    TicketStatus,
    TicketUpdateResult,
)
from helpdesk.repositories.contact_repository import ContactRepository
from helpdesk.repositories.ticket_repository import TicketRepository
from helpdesk.services.folio import FolioSequencer, build_sequencer, fallback_folio
from helpdesk.utils.clock import Clock
from helpdesk.utils.logger import get_logger

settings = get_settings()
logger = get_logger(__name__)

FALLBACK_WARNING = "Ticket creado localmente, sincronización pendiente"

VALID_TRANSITIONS: Dict[TicketStatus, List[TicketStatus]] = {
    TicketStatus.OPEN: [
        TicketStatus.IN_PROGRESS, TicketStatus.WAITING_CLIENT, TicketStatus.WAITING_INTERNAL,
        TicketStatus.ESCALATED, TicketStatus.RESOLVED, TicketStatus.CANCELLED,
    ],
    TicketStatus.IN_PROGRESS: [
        TicketStatus.WAITING_CLIENT, TicketStatus.WAITING_INTERNAL, TicketStatus.ESCALATED,
        TicketStatus.RESOLVED, TicketStatus.CANCELLED,
    ],
    TicketStatus.WAITING_CLIENT: [
        TicketStatus.IN_PROGRESS, TicketStatus.RESOLVED, TicketStatus.CANCELLED,
    ],
    TicketStatus.WAITING_INTERNAL: [
        TicketStatus.IN_PROGRESS, TicketStatus.ESCALATED, TicketStatus.RESOLVED, TicketStatus.CANCELLED,
    ],
    TicketStatus.ESCALATED: [
        TicketStatus.IN_PROGRESS, TicketStatus.RESOLVED, TicketStatus.CANCELLED,
    ],
    TicketStatus.RESOLVED: [TicketStatus.CLOSED, TicketStatus.IN_PROGRESS],
    TicketStatus.CLOSED: [],
    TicketStatus.CANCELLED: [],
}


def is_valid_transition(current: TicketStatus, new: TicketStatus) -> bool:
    return current == new or new in VALID_TRANSITIONS.get(current, [])


class TicketService:
    """Ticket intake and follow-up operations"""

    def __init__(
        self,
        ticket_repo: Optional[TicketRepository] = None,
        contact_repo: Optional[ContactRepository] = None,
        sequencer: Optional[FolioSequencer] = None,
        clock: Optional[Clock] = None,
        enforce_transitions: Optional[bool] = None,
    ):
        self.clock = clock or Clock()
        self.ticket_repo = ticket_repo or TicketRepository()
        self.contact_repo = contact_repo or ContactRepository()
        self.sequencer = sequencer or build_sequencer(self.ticket_repo, self.clock)
        self.enforce_transitions = (
            settings.enforce_ticket_transitions if enforce_transitions is None else enforce_transitions
        )

    async def create_ticket(
        self,
        ticket_input: TicketCreate,
        linkage: Optional[ContactLinkage] = None,
    ) -> TicketCreateResult:
        """
        Open a ticket.

        Contact linkage is resolved in order: explicit ids on the input, the
        linkage passed by the caller, then a lookup by account id in the
        contact directory.

        Args:
            ticket_input: Ticket data
            linkage: Contact-center identifiers of the current conversation

        Returns:
            TicketCreateResult; success with a warning when the folio was
            generated locally
        """
        linkage = linkage or ContactLinkage()
        logger.info(
            f"Creating {ticket_input.service_type.value} ticket "
            f"(contact={linkage.contact_id}, conversation={linkage.conversation_id})"
        )

        try:
            folio = await self.sequencer.next_folio(ticket_input.service_type)

            contact_id = ticket_input.contact_id if ticket_input.contact_id is not None else linkage.contact_id
            conversation_id = (
                ticket_input.conversation_id if ticket_input.conversation_id is not None
                else linkage.conversation_id
            )
            inbox_id = ticket_input.inbox_id if ticket_input.inbox_id is not None else linkage.inbox_id
            client_name = ticket_input.client_name or None

            if contact_id is not None and not client_name:
                client_name = await self._contact_name(contact_id)

            if contact_id is None and ticket_input.account_id:
                contact = await self._contact_for_account(ticket_input.account_id)
                if contact:
                    contact_id = contact.get("id")
                    client_name = client_name or contact.get("name")

            row = {
                "account_id": settings.agent_account_id,
                "folio": folio,
                "title": ticket_input.title,
                "description": ticket_input.description,
                "status": TicketStatus.OPEN.store_value,
                "priority": ticket_input.priority.store_value,
                "ticket_type": ticket_input.service_type.code,
                "service_type": ticket_input.service_type.service_type,
                "channel": settings.ticket_channel,
                "contract_number": ticket_input.account_id,
                "client_name": client_name or settings.default_client_name,
                "contact_id": contact_id,
                "conversation_id": conversation_id,
                "inbox_id": inbox_id,
                "metadata": {
                    "email": ticket_input.email,
                    "location": ticket_input.location,
                },
            }

            ticket = await asyncio.to_thread(self.ticket_repo.insert, row)

            logger.info(
                f"Created ticket {ticket.folio} (contact_id={contact_id}, conversation_id={conversation_id})"
            )
            return TicketCreateResult(
                success=True,
                folio=ticket.folio,
                ticket_id=str(ticket.id) if ticket.id is not None else None,
                message=f"Ticket creado exitosamente con folio {ticket.folio}",
            )

        except Exception as e:
            logger.error(f"Ticket persistence failed, using local folio: {e}", exc_info=True)
            folio = fallback_folio(ticket_input.service_type, self.clock)
            return TicketCreateResult(
                success=True,
                folio=folio,
                warning=FALLBACK_WARNING,
                message=f"Ticket registrado con folio {folio}",
            )

    async def _contact_name(self, contact_id: int) -> Optional[str]:
        try:
            contact = await asyncio.to_thread(self.contact_repo.get_by_id, contact_id)
        except Exception as e:
            logger.warning(f"Could not look up contact name for {contact_id}: {e}")
            return None
        return contact.get("name") if contact else None

    async def _contact_for_account(self, account_id: str) -> Optional[Dict[str, Any]]:
        try:
            return await asyncio.to_thread(self.contact_repo.find_by_account, account_id)
        except Exception as e:
            logger.warning(f"Could not look up contact for account {account_id}: {e}")
            return None

    async def update_ticket(
        self,
        folio: str,
        status: Optional[TicketStatus] = None,
        priority: Optional[TicketPriority] = None,
        notes: Optional[str] = None,
    ) -> TicketUpdateResult:
        """
        Partially update a ticket; moving to resolved stamps resolved_at.

        When transitions are enforced, the current status is read first and
        moves outside VALID_TRANSITIONS are rejected.
        """
        logger.info(f"Updating ticket {folio}")
        try:
            if status is not None and self.enforce_transitions:
                current = await asyncio.to_thread(self.ticket_repo.get_by_folio, folio)
                if current is None:
                    return TicketUpdateResult(
                        success=False, folio=folio, error=f"Ticket {folio} no encontrado", error_code="not_found"
                    )
                current_status = TicketStatus.from_store(current.status)
                if not is_valid_transition(current_status, status):
                    logger.warning(f"Rejected transition {current_status.value} -> {status.value} for {folio}")
                    return TicketUpdateResult(
                        success=False,
                        folio=folio,
                        error=f"Transición no permitida: {current_status.value} -> {status.value}",
                        error_code="invalid_transition",
                    )

            now = self.clock.now().isoformat()
            updates: Dict[str, Any] = {"updated_at": now}
            if status is not None:
                updates["status"] = status.store_value
            if priority is not None:
                updates["priority"] = priority.store_value
            if notes:
                updates["resolution_notes"] = notes
            if status == TicketStatus.RESOLVED:
                updates["resolved_at"] = now

            ticket = await asyncio.to_thread(self.ticket_repo.update_by_folio, folio, updates)
            if ticket is None:
                return TicketUpdateResult(
                    success=False, folio=folio, error=f"Ticket {folio} no encontrado", error_code="not_found"
                )

            return TicketUpdateResult(
                success=True,
                folio=folio,
                message=f"Ticket {folio} actualizado correctamente",
            )

        except Exception as e:
            logger.error(f"Failed to update ticket {folio}: {e}")
            return TicketUpdateResult(
                success=False, folio=folio, error=str(e) or "Error desconocido", error_code="store_error"
            )

    async def list_tickets_for_account(self, account_id: str, limit: int = 10) -> Dict[str, Any]:
        """Recent tickets for a contract, shaped for the responder tools"""
        try:
            tickets = await asyncio.to_thread(self.ticket_repo.list_by_contract, account_id, limit)
        except Exception as e:
            logger.error(f"Failed to list tickets for {account_id}: {e}")
            return {"success": False, "error": f"No se pudieron consultar los tickets: {e}"}

        if not tickets:
            return {
                "success": True,
                "tickets": [],
                "message": "No se encontraron tickets para este contrato",
            }

        return {
            "success": True,
            "tickets": [
                {
                    "folio": t.folio,
                    "status": t.status,
                    "titulo": t.title,
                    "service_type": t.service_type,
                    "created_at": t.created_at.isoformat() if t.created_at else None,
                    "descripcion": (t.description or "")[:100],
                }
                for t in tickets
            ],
            "count": len(tickets),
        }

    async def find_customer_by_account(self, account_id: str) -> Dict[str, Any]:
        """Contact directory lookup by contract number"""
        try:
            contact = await asyncio.to_thread(self.contact_repo.find_by_account, account_id)
        except Exception as e:
            logger.error(f"Customer search failed for {account_id}: {e}")
            return {"success": False, "error": str(e) or "Error desconocido"}

        if not contact:
            return {"success": False, "found": False, "message": "Cliente no encontrado"}

        attrs = contact.get("custom_attributes") or {}
        return {
            "success": True,
            "found": True,
            "customer": {
                "id": contact.get("id"),
                "nombre": contact.get("name") or "Sin nombre",
                "contrato": contact.get("identifier") or attrs.get("contract_number") or account_id,
                "email": contact.get("email") or attrs.get("email"),
                "whatsapp": contact.get("phone_number") or attrs.get("whatsapp"),
                "recibo_digital": bool(attrs.get("recibo_digital", False)),
            },
        }

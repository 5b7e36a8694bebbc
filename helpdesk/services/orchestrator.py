"""
Turn Orchestrator

Runs one inbound citizen message end to end:
1. Open a trace scope and load/create the session
2. Resolve contact-center linkage for ticket creation
3. Run the LangGraph turn graph (route → dispatch → close flow)
4. Append the exchange to the session history
5. Return the uniform TurnResponse envelope

Any failure inside the graph (classification included) yields an apology
message with the error set; it is never raised to the HTTP layer.
"""
import asyncio
import re
import uuid
from datetime import datetime
from typing import Optional

from helpdesk.agents.oracle import DomainResponder, IntentClassifier
from helpdesk.agents.orchestrator import TurnState, compile_turn_graph
from helpdesk.agents.router import FlowRouter, is_greeting
from helpdesk.agents.tools import ToolContext
from helpdesk.models.schemas import TurnRequest, TurnResponse
from helpdesk.models.session import Session
from helpdesk.repositories.contact_repository import ContactRepository
from helpdesk.services.session_store import SessionManager
from helpdesk.services.ticket_service import TicketService
from helpdesk.utils.clock import Clock
from helpdesk.utils.logger import get_logger
from helpdesk.utils.tracing import trace_scope

logger = get_logger(__name__)

APOLOGY_MESSAGE = "Lo siento, tuve un problema procesando tu mensaje. ¿Podrías intentar de nuevo?"

WEEKDAYS = ["lunes", "martes", "miércoles", "jueves", "viernes", "sábado", "domingo"]
MONTHS = [
    "enero", "febrero", "marzo", "abril", "mayo", "junio",
    "julio", "agosto", "septiembre", "octubre", "noviembre", "diciembre",
]

_PHONE_DIGITS = re.compile(r"^\d{10,}$")


def date_preamble(local_now: datetime) -> str:
    """Localized date/time line prepended to the text given to the collaborators"""
    weekday = WEEKDAYS[local_now.weekday()]
    month = MONTHS[local_now.month - 1]
    return (
        f"[Fecha: {weekday}, {local_now.day} de {month} de {local_now.year}, "
        f"Hora: {local_now.strftime('%H:%M')} (hora de Querétaro)]"
    )


def is_phone_like(value: str) -> bool:
    value = value.strip()
    return value.startswith("+") or value.endswith("@s.whatsapp.net") or bool(_PHONE_DIGITS.match(value))


def platform_conversation_id(conversation_id: str) -> Optional[int]:
    """
    Numeric conversation id usable as the contact-center conversation id.

    Phone numbers used as conversation keys are rejected so they never end
    up linked as conversation ids.
    """
    if is_phone_like(conversation_id):
        return None
    if conversation_id.strip().isdigit():
        return int(conversation_id)
    return None


class TurnOrchestrator:
    """Owns the session store and the compiled turn graph"""

    def __init__(
        self,
        classifier: IntentClassifier,
        responder: DomainResponder,
        ticket_service: TicketService,
        session_manager: Optional[SessionManager] = None,
        contact_repo: Optional[ContactRepository] = None,
        clock: Optional[Clock] = None,
    ):
        self.clock = clock or Clock()
        self.sessions = session_manager or SessionManager(clock=self.clock)
        self.responder = responder
        self.ticket_service = ticket_service
        self.contact_repo = contact_repo or ticket_service.contact_repo
        self.router = FlowRouter(classifier)
        self.graph = compile_turn_graph(self.router, responder, ticket_service)

    async def _resolve_linkage(self, session: Session, request: TurnRequest) -> None:
        platform_id = platform_conversation_id(session.conversation_id)
        if platform_id is not None:
            session.platform_conversation_id = platform_id
        elif is_phone_like(session.conversation_id):
            logger.info(f"Phone-like conversation id {session.conversation_id} not used for linkage")

        if request.metadata and request.metadata.inbox_id is not None:
            session.inbox_id = request.metadata.inbox_id

        if request.contact_id is not None:
            session.contact_id = request.contact_id
            return

        whatsapp = request.metadata.whatsapp if request.metadata else None
        if session.contact_id is None and whatsapp:
            contact_id = await asyncio.to_thread(self.contact_repo.find_or_create_by_phone, whatsapp)
            if contact_id is not None:
                session.contact_id = contact_id

    async def run_turn(self, request: TurnRequest) -> TurnResponse:
        """
        Process one citizen message.

        Args:
            request: Inbound turn

        Returns:
            TurnResponse envelope (apology text with error set on failure)
        """
        conversation_id = request.conversation_id or str(uuid.uuid4())

        with trace_scope("citizen-turn", conversation_id) as trace:
            logger.info(f"Turn start: conversation={conversation_id} input={request.text[:100]!r}")
            session = self.sessions.get(conversation_id)

            try:
                await self._resolve_linkage(session, request)

                stripped = request.text.strip()
                if is_greeting(stripped):
                    user_content = stripped
                else:
                    user_content = f"{date_preamble(self.clock.local_now())}\n{request.text}"
                user_message = {"role": "user", "content": user_content}

                state: TurnState = {
                    "session": session,
                    "text": request.text,
                    "messages": [*session.history, user_message],
                    "tool_context": ToolContext(linkage=session.linkage(), account_id=session.account_id),
                }
                result = await self.graph.ainvoke(state)

            except Exception as e:
                logger.error(f"Turn failed: {e}", exc_info=True)
                return TurnResponse(
                    output_text=APOLOGY_MESSAGE,
                    conversation_id=conversation_id,
                    error=str(e) or e.__class__.__name__,
                    processing_time_ms=trace.elapsed_ms,
                )

            output_text = result.get("output_text") or ""
            exchange = [user_message]
            if output_text:
                exchange.append({"role": "assistant", "content": output_text})
            session.append_history(exchange, self.sessions.history_limit)

            logger.info(
                f"Turn complete in {trace.elapsed_ms}ms: classification="
                f"{result['classification'].value if result.get('classification') else None} "
                f"tools={result.get('tools_used', [])}"
            )
            return TurnResponse(
                output_text=output_text,
                conversation_id=conversation_id,
                classification=result.get("classification"),
                ticket_folio=result.get("ticket_folio"),
                tools_used=result.get("tools_used", []),
                contact_card=result.get("contact_card"),
                processing_time_ms=trace.elapsed_ms,
            )

"""
LangGraph turn graph

Flow:
1. START → route_turn
2. route_turn → (welcome | human_handoff | utility_handoff | respond)
3. every branch → close_flow → END
"""
from typing import Any, Dict, List, Literal, Optional, TypedDict

from langgraph.graph import END, StateGraph
from typing_extensions import NotRequired

from helpdesk.agents.oracle import DomainResponder
from helpdesk.agents.router import (
    WELCOME_MESSAGE,
    Dispatch,
    FlowRouter,
    RespondWith,
    RouteDecision,
    resolve_dispatch,
)
from helpdesk.agents.tools import ToolContext
from helpdesk.config import get_settings
from helpdesk.models.schemas import Classification, ContactCard
from helpdesk.models.session import Session
from helpdesk.models.ticket import TicketCreate, TicketPriority, TicketType
from helpdesk.services.ticket_service import TicketService
from helpdesk.utils.logger import get_logger

settings = get_settings()
logger = get_logger(__name__)

HUMAN_HANDOFF_TITLE = "Solicitud de contacto con asesor humano"
UTILITY_HANDOFF_MESSAGE = (
    "Para temas de agua potable, la CEA cuenta con un asistente especializado que te puede "
    "ayudar con pagos, reportes de fugas, consulta de consumos y mas.\n\n"
    "Te comparto el contacto para que puedas escribirle directamente:"
)


class TurnState(TypedDict):
    """
    State carried through the turn graph.

    session and tool_context are shared objects; nodes mutate them in place
    and return the scalar fields they produce.
    """
    session: Session
    text: str
    messages: List[Dict[str, Any]]
    tool_context: ToolContext
    decision: NotRequired[Optional[RouteDecision]]
    dispatch: NotRequired[Optional[Dispatch]]
    classification: NotRequired[Optional[Classification]]
    output_text: NotRequired[str]
    tools_used: NotRequired[List[str]]
    ticket_folio: NotRequired[Optional[str]]
    contact_card: NotRequired[Optional[ContactCard]]


def creates_ticket(action: str) -> bool:
    return "create" in action and "ticket" in action


def utility_handoff_card() -> ContactCard:
    return ContactCard(
        full_name=settings.utility_handoff_name,
        phone_number=settings.utility_handoff_phone,
        organization=settings.utility_handoff_organization,
    )


def build_graph(
    router: FlowRouter,
    responder: DomainResponder,
    ticket_service: TicketService,
) -> StateGraph:
    """
    Assemble the turn graph around the given collaborators.

    Args:
        router: Flow router (owns the classifier)
        responder: Domain responder for RespondWith dispatches
        ticket_service: Used by the human hand-off
    """

    async def route_turn(state: TurnState) -> Dict[str, Any]:
        decision = await router.route(state["session"], state["text"], state["messages"])
        dispatch = None
        if decision.kind != "welcome":
            dispatch = resolve_dispatch(decision.classification, decision.sub_classification)
        logger.info(f"Router decision: {decision.kind} -> {dispatch.kind if dispatch else 'welcome'}")
        return {
            "decision": decision,
            "dispatch": dispatch,
            "classification": decision.classification,
        }

    def dispatch_condition(state: TurnState) -> Literal["welcome", "human_handoff", "utility_handoff", "respond"]:
        dispatch = state.get("dispatch")
        if dispatch is None:
            return "welcome"
        return dispatch.kind

    async def welcome(state: TurnState) -> Dict[str, Any]:
        return {"output_text": WELCOME_MESSAGE, "tools_used": []}

    async def human_handoff(state: TurnState) -> Dict[str, Any]:
        session = state["session"]
        logger.info("Creating urgent ticket for human advisor")
        result = await ticket_service.create_ticket(
            TicketCreate(
                service_type=TicketType.URGENT,
                title=HUMAN_HANDOFF_TITLE,
                description=(
                    "El ciudadano solicito hablar con un asesor humano. "
                    f"Mensaje original: {state['text']}"
                ),
                account_id=session.account_id,
                priority=TicketPriority.URGENT,
            ),
            state["tool_context"].linkage,
        )
        folio = result.folio or "PENDING"
        return {
            "output_text": (
                f"He creado tu solicitud con el folio {folio}. Te conectare con un asesor humano. "
                "Por favor espera un momento."
            ),
            "tools_used": ["create_ticket"],
            "ticket_folio": result.folio,
        }

    async def utility_handoff(state: TurnState) -> Dict[str, Any]:
        logger.info(f"Utility billing -> handing off to {settings.utility_handoff_phone}")
        return {
            "output_text": UTILITY_HANDOFF_MESSAGE,
            "tools_used": [],
            "contact_card": utility_handoff_card(),
        }

    async def respond(state: TurnState) -> Dict[str, Any]:
        dispatch: RespondWith = state["dispatch"]
        context = state["tool_context"]
        context.account_id = state["session"].account_id or context.account_id

        result = await responder.respond(dispatch.domain, state["messages"], context)
        return {
            "output_text": result.output_text,
            "tools_used": list(result.actions),
            "ticket_folio": result.ticket_folio,
        }

    async def close_flow(state: TurnState) -> Dict[str, Any]:
        session = state["session"]
        dispatch = state.get("dispatch")

        if dispatch is not None and dispatch.kind in ("human_handoff", "utility_handoff"):
            session.clear_flow()
        elif any(creates_ticket(action) for action in state.get("tools_used", [])):
            logger.info("Ticket created - flow complete, clearing active flow")
            session.clear_flow()

        context = state["tool_context"]
        if context.account_id:
            session.account_id = context.account_id
        return {}

    graph = StateGraph(TurnState)

    graph.add_node("route_turn", route_turn)
    graph.add_node("welcome", welcome)
    graph.add_node("human_handoff", human_handoff)
    graph.add_node("utility_handoff", utility_handoff)
    graph.add_node("respond", respond)
    graph.add_node("close_flow", close_flow)

    graph.set_entry_point("route_turn")

    graph.add_conditional_edges(
        "route_turn",
        dispatch_condition,
        {
            "welcome": "welcome",
            "human_handoff": "human_handoff",
            "utility_handoff": "utility_handoff",
            "respond": "respond",
        }
    )

    for node in ("welcome", "human_handoff", "utility_handoff", "respond"):
        graph.add_edge(node, "close_flow")

    graph.add_edge("close_flow", END)

    logger.info("Turn graph built successfully")
    return graph


def compile_turn_graph(
    router: FlowRouter,
    responder: DomainResponder,
    ticket_service: TicketService,
):
    """
    Build and compile the turn graph

    Returns:
        Compiled LangGraph workflow
    """
    compiled = build_graph(router, responder, ticket_service).compile()
    logger.info("Turn graph compiled successfully")
    return compiled

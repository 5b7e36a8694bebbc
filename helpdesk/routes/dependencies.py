"""
Request dependencies

Services are built once in the application lifespan and stored on
app.state; routes receive them through Depends so tests can override them.
"""
from fastapi import HTTPException, Request, status

from helpdesk.services.orchestrator import TurnOrchestrator
from helpdesk.services.ticket_service import TicketService


def get_orchestrator(request: Request) -> TurnOrchestrator:
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Service not ready")
    return orchestrator


def get_ticket_service(request: Request) -> TicketService:
    return get_orchestrator(request).ticket_service

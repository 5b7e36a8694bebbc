"""
Turn API

POST /api/v1/chat - process one citizen message
"""
from fastapi import APIRouter, Depends, status

from helpdesk.models.schemas import TurnRequest, TurnResponse
from helpdesk.routes.dependencies import get_orchestrator
from helpdesk.services.orchestrator import TurnOrchestrator
from helpdesk.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/api/v1", tags=["chat"])


@router.post(
    "/chat",
    response_model=TurnResponse,
    status_code=status.HTTP_200_OK,
    summary="Process a citizen message",
)
async def chat(
    request: TurnRequest,
    orchestrator: TurnOrchestrator = Depends(get_orchestrator),
) -> TurnResponse:
    """
    Route one inbound message and return the reply envelope.

    Failures inside the turn come back as 200 with the apology text and
    the error field set.
    """
    return await orchestrator.run_turn(request)

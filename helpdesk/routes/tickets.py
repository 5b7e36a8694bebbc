"""
Ticket-related API routes

- PATCH /api/v1/tickets/{folio} - update status / priority / notes
- GET /api/v1/tickets?account_id= - recent tickets for an account
"""
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from helpdesk.models.ticket import TicketPriority, TicketStatus, TicketUpdateResult
from helpdesk.routes.dependencies import get_ticket_service
from helpdesk.services.ticket_service import TicketService

router = APIRouter(prefix="/api/v1/tickets", tags=["tickets"])


class TicketUpdateRequest(BaseModel):
    """Partial ticket update"""
    status: Optional[TicketStatus] = None
    priority: Optional[TicketPriority] = None
    notes: Optional[str] = Field(None, max_length=4000)


_ERROR_STATUS = {
    "not_found": status.HTTP_404_NOT_FOUND,
    "invalid_transition": status.HTTP_409_CONFLICT,
    "store_error": status.HTTP_503_SERVICE_UNAVAILABLE,
}


@router.patch("/{folio}", response_model=TicketUpdateResult)
async def update_ticket(
    folio: str,
    body: TicketUpdateRequest,
    ticket_service: TicketService = Depends(get_ticket_service),
):
    """Update a ticket by folio"""
    result = await ticket_service.update_ticket(
        folio,
        status=body.status,
        priority=body.priority,
        notes=body.notes,
    )
    if not result.success:
        raise HTTPException(
            status_code=_ERROR_STATUS.get(result.error_code, status.HTTP_400_BAD_REQUEST),
            detail=result.error,
        )
    return result


@router.get("", response_model=Dict[str, Any])
async def list_tickets(
    account_id: str = Query(..., min_length=1, max_length=32),
    limit: int = Query(10, ge=1, le=50),
    ticket_service: TicketService = Depends(get_ticket_service),
):
    """List recent tickets for a contract / account number"""
    result = await ticket_service.list_tickets_for_account(account_id, limit)
    if not result.get("success"):
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=result.get("error"))
    return result

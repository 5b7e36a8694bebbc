"""
Repositories package for database operations

Provides repository classes for:
- tickets table and folio counters (TicketRepository)
- contacts table (ContactRepository)
"""
from helpdesk.repositories.contact_repository import ContactRepository
from helpdesk.repositories.ticket_repository import TicketRepository

__all__ = [
    "ContactRepository",
    "TicketRepository",
]

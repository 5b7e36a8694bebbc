"""
Business Logic Services
"""
from .billing_backend import AccountBackendClient
from .http_client import ResilientHttpClient
from .session_store import SessionManager
from .ticket_service import TicketService

__all__ = [
    "AccountBackendClient",
    "ResilientHttpClient",
    "SessionManager",
    "TicketService",
]

"""
Ticket Repository for the case-tracking tickets table

Features:
- Insert with folio as the unique business key
- Lookup of the last folio sharing a type+date prefix
- Atomic per-prefix sequence via the next_ticket_folio_sequence() function
- Partial updates keyed by folio
- Listing by account / contract number
"""
from typing import Any, Dict, List, Optional

from helpdesk.config import get_settings
from helpdesk.models.ticket import Ticket
from helpdesk.utils.logger import get_logger

logger = get_logger(__name__)
settings = get_settings()


class TicketRepository:
    """Repository for tickets table operations"""

    def __init__(self, supabase_client=None):
        """
        Initialize repository with Supabase client

        Args:
            supabase_client: Supabase client instance (uses default if None)
        """
        if supabase_client is None:
            from supabase import create_client
            self.client = create_client(
                settings.supabase_url,
                settings.supabase_write_key
            )
        else:
            self.client = supabase_client

        self.table_name = "tickets"
        self.sequence_function = "next_ticket_folio_sequence"
        logger.info(f"TicketRepository initialized for table: {self.table_name}")

    def insert(self, row: Dict[str, Any]) -> Ticket:
        """
        Insert a ticket row

        Args:
            row: Column values (folio must be set)

        Returns:
            Created Ticket
        """
        try:
            response = self.client.table(self.table_name).insert(row).execute()

            if not response.data:
                raise ValueError(f"Failed to create ticket {row.get('folio')}")

            ticket = Ticket(**response.data[0])
            logger.info(f"Inserted ticket {ticket.folio} (id={ticket.id})")
            return ticket

        except Exception as e:
            logger.error(f"Failed to insert ticket {row.get('folio')}: {e}")
            raise

    def last_folio_with_prefix(self, prefix: str) -> Optional[str]:
        """
        Get the lexicographically last folio starting with ``{prefix}-``

        Args:
            prefix: Folio prefix, e.g. "FUG-20260106"

        Returns:
            Folio string or None if no ticket uses the prefix yet
        """
        try:
            response = self.client.table(self.table_name)\
                .select("folio")\
                .like("folio", f"{prefix}-%")\
                .order("folio", desc=True)\
                .limit(1)\
                .execute()

            if not response.data:
                return None
            return response.data[0]["folio"]

        except Exception as e:
            logger.error(f"Failed to read last folio for {prefix}: {e}")
            raise

    def next_sequence(self, prefix: str) -> int:
        """
        Atomically increment and return the counter for a folio prefix

        Backed by an INSERT ... ON CONFLICT DO UPDATE upsert inside the
        next_ticket_folio_sequence() SQL function.
        """
        try:
            response = self.client.rpc(
                self.sequence_function,
                {"p_prefix": prefix}
            ).execute()

            value = response.data
            if isinstance(value, list):
                value = value[0] if value else None
            if isinstance(value, dict):
                value = next(iter(value.values()), None)
            if value is None:
                raise ValueError(f"Sequence function returned no value for {prefix}")
            return int(value)

        except Exception as e:
            logger.error(f"Failed to increment folio sequence for {prefix}: {e}")
            raise

    def get_by_folio(self, folio: str) -> Optional[Ticket]:
        try:
            response = self.client.table(self.table_name)\
                .select("*")\
                .eq("folio", folio)\
                .limit(1)\
                .execute()

            if not response.data:
                return None
            return Ticket(**response.data[0])

        except Exception as e:
            logger.error(f"Failed to get ticket {folio}: {e}")
            raise

    def update_by_folio(self, folio: str, updates: Dict[str, Any]) -> Optional[Ticket]:
        """
        Partially update a ticket

        Args:
            folio: Ticket folio
            updates: Columns to set

        Returns:
            Updated Ticket, or None when no row matched
        """
        try:
            response = self.client.table(self.table_name)\
                .update(updates)\
                .eq("folio", folio)\
                .execute()

            if not response.data:
                return None

            ticket = Ticket(**response.data[0])
            logger.info(f"Updated ticket {folio}: {sorted(updates)}")
            return ticket

        except Exception as e:
            logger.error(f"Failed to update ticket {folio}: {e}")
            raise

    def list_by_contract(self, contract_number: str, limit: int = 10) -> List[Ticket]:
        """
        List the most recent tickets for a contract number

        Args:
            contract_number: Account / contract identifier
            limit: Maximum results (default 10)
        """
        try:
            response = self.client.table(self.table_name)\
                .select("*")\
                .eq("contract_number", contract_number)\
                .order("created_at", desc=True)\
                .limit(limit)\
                .execute()

            return [Ticket(**item) for item in response.data]

        except Exception as e:
            logger.error(f"Failed to list tickets for contract {contract_number}: {e}")
            raise

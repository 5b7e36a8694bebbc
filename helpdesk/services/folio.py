"""
Folio generation

Format: {TYPE}-{YYYYMMDD}-{SEQUENCE}, e.g. FUG-20260106-0001, where the date
is the helpdesk's local date and the sequence restarts at 1 for every
type+date prefix.

Two sequencers are available:
- AtomicCounterSequencer: one atomic increment per prefix in the store
- LastFolioSequencer: reads the last folio for the prefix and adds one.
  Two concurrent creations can read the same last folio and compute the
  same number; it is only kept for stores without the counter function.
"""
import asyncio
import re
from datetime import datetime
from typing import Optional

from helpdesk.config import get_settings
from helpdesk.models.ticket import TicketType
from helpdesk.repositories.ticket_repository import TicketRepository
from helpdesk.utils.clock import Clock, local_zone
from helpdesk.utils.logger import get_logger

settings = get_settings()
logger = get_logger(__name__)

FOLIO_PATTERN = re.compile(r"^[A-Z]{3}-\d{8}-\d{4}$")
_SEQUENCE_SUFFIX = re.compile(r"-(\d{4})$")


def folio_prefix(ticket_type: TicketType, local_date: datetime) -> str:
    return f"{ticket_type.code}-{local_date.strftime('%Y%m%d')}"


MAX_SEQUENCE = 9999


def format_folio(prefix: str, sequence: int) -> str:
    """
    Raises:
        ValueError: sequence outside 1..9999, which the 4-digit suffix cannot hold
    """
    if not 1 <= sequence <= MAX_SEQUENCE:
        logger.error(f"Folio sequence {sequence} for {prefix} is outside 1..{MAX_SEQUENCE}")
        raise ValueError(f"Folio sequence exhausted for {prefix}")
    return f"{prefix}-{sequence:04d}"


def fallback_folio(ticket_type: TicketType, clock: Optional[Clock] = None) -> str:
    """
    Locally computed folio used when the store is unavailable.

    The suffix is the last 4 digits of the current epoch milliseconds, so
    uniqueness against the store is not guaranteed.
    """
    clock = clock or Clock()
    now = clock.now()
    local_now = now.astimezone(local_zone())
    millis = int(now.timestamp() * 1000)
    return f"{folio_prefix(ticket_type, local_now)}-{str(millis)[-4:]}"


class FolioSequencer:
    """Computes the next folio for a ticket type"""

    def __init__(self, repository: TicketRepository, clock: Optional[Clock] = None):
        self.repository = repository
        self.clock = clock or Clock()

    def current_prefix(self, ticket_type: TicketType) -> str:
        return folio_prefix(ticket_type, self.clock.local_now())

    async def next_folio(self, ticket_type: TicketType) -> str:
        raise NotImplementedError


class LastFolioSequencer(FolioSequencer):
    """Query-then-increment over the last folio sharing the prefix"""

    async def next_folio(self, ticket_type: TicketType) -> str:
        prefix = self.current_prefix(ticket_type)
        last_folio = await asyncio.to_thread(self.repository.last_folio_with_prefix, prefix)

        next_number = 1
        if last_folio:
            match = _SEQUENCE_SUFFIX.search(last_folio)
            if match:
                next_number = int(match.group(1)) + 1

        return format_folio(prefix, next_number)


class AtomicCounterSequencer(FolioSequencer):
    """Per-prefix counter incremented atomically by the store"""

    async def next_folio(self, ticket_type: TicketType) -> str:
        prefix = self.current_prefix(ticket_type)
        sequence = await asyncio.to_thread(self.repository.next_sequence, prefix)
        return format_folio(prefix, sequence)


def build_sequencer(
    repository: TicketRepository,
    clock: Optional[Clock] = None,
    strategy: Optional[str] = None,
) -> FolioSequencer:
    """Pick the sequencer configured by settings.folio_sequence_strategy"""
    strategy = (strategy or settings.folio_sequence_strategy).lower()
    if strategy == "atomic":
        return AtomicCounterSequencer(repository, clock)
    if strategy == "last_folio":
        logger.warning("Using last-folio sequencing; concurrent creations may collide")
        return LastFolioSequencer(repository, clock)
    raise ValueError(f"Unknown folio sequence strategy: {strategy}")

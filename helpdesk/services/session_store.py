"""
Session Store

In-memory conversation sessions with time-based eviction.

The manager is owned by the turn orchestrator. Turns for the same
conversation are expected to run sequentially; there is no per-entry
locking. The periodic sweep runs as an asyncio task and iterates over a
snapshot of the keys so turns may add sessions while it runs.
"""
import asyncio
from typing import Dict, Iterator, Optional

from helpdesk.config import get_settings
from helpdesk.models.session import Session
from helpdesk.utils.clock import Clock
from helpdesk.utils.logger import get_logger

settings = get_settings()
logger = get_logger(__name__)


class SessionManager:
    """Keyed session store with TTL eviction"""

    def __init__(
        self,
        clock: Optional[Clock] = None,
        ttl_seconds: Optional[int] = None,
        sweep_interval_seconds: Optional[int] = None,
        history_limit: Optional[int] = None,
    ):
        self.clock = clock or Clock()
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else settings.session_ttl_seconds
        self.sweep_interval_seconds = (
            sweep_interval_seconds if sweep_interval_seconds is not None
            else settings.session_sweep_interval_seconds
        )
        self.history_limit = history_limit if history_limit is not None else settings.session_history_limit
        self._sessions: Dict[str, Session] = {}
        self._sweeper: Optional[asyncio.Task] = None

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, conversation_id: str) -> bool:
        return conversation_id in self._sessions

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._sessions))

    def get(self, conversation_id: str) -> Session:
        """
        Get the session for a conversation, creating it on first access.

        Every access refreshes last_access.
        """
        now = self.clock.now()
        session = self._sessions.get(conversation_id)
        if session is not None:
            session.last_access = now
            return session

        session = Session(conversation_id=conversation_id, last_access=now)
        self._sessions[conversation_id] = session
        logger.debug(f"Created session {conversation_id}")
        return session

    def peek(self, conversation_id: str) -> Optional[Session]:
        """Read a session without refreshing it"""
        return self._sessions.get(conversation_id)

    def sweep(self) -> int:
        """
        Evict sessions idle longer than the TTL.

        Returns:
            Number of sessions evicted
        """
        now = self.clock.now()
        evicted = 0
        for conversation_id in list(self._sessions):
            session = self._sessions.get(conversation_id)
            if session is None:
                continue
            idle = (now - session.last_access).total_seconds()
            if idle > self.ttl_seconds:
                self._sessions.pop(conversation_id, None)
                evicted += 1

        if evicted:
            logger.info(f"Session sweep evicted {evicted} sessions ({len(self._sessions)} active)")
        return evicted

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self.sweep_interval_seconds)
            try:
                self.sweep()
            except Exception as e:
                logger.error(f"Session sweep failed: {e}", exc_info=True)

    def start(self) -> None:
        """Start the periodic sweep on the running event loop"""
        if self._sweeper is None or self._sweeper.done():
            self._sweeper = asyncio.create_task(self._sweep_loop())
            logger.info(
                f"Session sweeper started (ttl={self.ttl_seconds}s, "
                f"interval={self.sweep_interval_seconds}s)"
            )

    async def stop(self) -> None:
        if self._sweeper is None:
            return
        self._sweeper.cancel()
        try:
            await self._sweeper
        except asyncio.CancelledError:
            pass
        self._sweeper = None
        logger.info("Session sweeper stopped")

"""
Per-turn trace scope

Every inbound turn runs inside one trace scope. The trace id lives in a
context variable so log records emitted anywhere during the turn carry it.
"""
import logging
import time
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional

_current_trace: ContextVar[Optional["TraceScope"]] = ContextVar("helpdesk_trace", default=None)


class TraceScope:
    """Single logical trace for one turn"""

    def __init__(self, name: str, conversation_id: Optional[str] = None):
        self.name = name
        self.conversation_id = conversation_id
        self.trace_id = uuid.uuid4().hex[:16]
        self.started_at = time.perf_counter()

    @property
    def elapsed_ms(self) -> int:
        return int((time.perf_counter() - self.started_at) * 1000)


@contextmanager
def trace_scope(name: str, conversation_id: Optional[str] = None) -> Iterator[TraceScope]:
    """
    Open a trace scope for the duration of the block.

    Usage:
        with trace_scope("citizen-turn", conversation_id) as trace:
            ...
    """
    scope = TraceScope(name, conversation_id)
    token = _current_trace.set(scope)
    try:
        yield scope
    finally:
        _current_trace.reset(token)


def current_trace() -> Optional[TraceScope]:
    return _current_trace.get()


def current_trace_id() -> str:
    scope = _current_trace.get()
    return scope.trace_id if scope else "-"


class TraceIdFilter(logging.Filter):
    """Injects the active trace id into every log record"""

    def filter(self, record: logging.LogRecord) -> bool:
        record.trace_id = current_trace_id()
        return True

"""
pytest configuration and shared fixtures
"""
from datetime import datetime
from typing import Any, Dict, List, Optional
from unittest.mock import MagicMock

import pytest
from dateutil import tz

from helpdesk.agents.oracle import (
    ClassificationError,
    DomainResponder,
    IntentClassifier,
    ResponderResult,
)
from helpdesk.agents.tools import ToolContext
from helpdesk.models.schemas import ClassificationResult, ResponderDomain
from helpdesk.utils.clock import FrozenClock


def pytest_configure(config):
    """Register custom markers"""
    config.addinivalue_line(
        "markers", "requires_supabase: mark test as requiring Supabase service"
    )


def make_supabase_mock() -> MagicMock:
    """Chainable Supabase client mock; set execute.return_value.data per test"""
    client = MagicMock()
    client.table.return_value = client
    client.select.return_value = client
    client.insert.return_value = client
    client.update.return_value = client
    client.eq.return_value = client
    client.like.return_value = client
    client.or_.return_value = client
    client.order.return_value = client
    client.limit.return_value = client
    client.rpc.return_value = client
    client.execute.return_value = MagicMock(data=[])
    return client


@pytest.fixture
def mock_supabase():
    """Fixture for mock Supabase client"""
    return make_supabase_mock()


@pytest.fixture
def frozen_clock():
    """2026-01-06 18:00 UTC (12:00 in Querétaro)"""
    return FrozenClock(datetime(2026, 1, 6, 18, 0, tzinfo=tz.UTC))


class FakeClassifier(IntentClassifier):
    """Returns queued results in order; raises ClassificationError when empty"""

    def __init__(self, *results: Dict[str, Any]):
        self.results = list(results)
        self.calls: List[List[Dict[str, Any]]] = []

    def queue(self, **result: Any) -> None:
        self.results.append(result)

    async def classify(self, messages: List[Dict[str, Any]]) -> ClassificationResult:
        self.calls.append(list(messages))
        if not self.results:
            raise ClassificationError("Classification failed - no output")
        return ClassificationResult.model_validate(self.results.pop(0))


class FakeResponder(DomainResponder):
    """
    Records dispatches; optionally runs a scripted action against the tool
    context (e.g. to simulate a ticket creation)
    """

    def __init__(self, output_text: str = "respuesta", actions: Optional[List[str]] = None, folio: Optional[str] = None):
        self.output_text = output_text
        self.actions = actions or []
        self.folio = folio
        self.calls: List[Dict[str, Any]] = []

    @property
    def domains(self) -> List[ResponderDomain]:
        return list(ResponderDomain)

    async def respond(
        self,
        domain: ResponderDomain,
        messages: List[Dict[str, Any]],
        context: ToolContext,
    ) -> ResponderResult:
        self.calls.append({"domain": domain, "messages": list(messages), "context": context})
        if self.folio:
            context.created_folios.append(self.folio)
        return ResponderResult(
            output_text=self.output_text,
            actions=list(self.actions),
            ticket_folio=context.last_folio,
        )


@pytest.fixture
def classifier():
    """Scripted classifier; queue results with classifier.queue(...)"""
    return FakeClassifier()


@pytest.fixture
def responder():
    """Recording responder; tweak output_text / actions / folio per test"""
    return FakeResponder()

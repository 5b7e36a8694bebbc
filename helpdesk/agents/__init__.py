"""
Turn routing agents for the Citizen Helpdesk Intake backend

This module contains the flow router, the Oracle collaborators and the
LangGraph turn graph.
"""

from helpdesk.agents.oracle import (
    ClassificationError,
    DomainResponder,
    IntentClassifier,
    ResponderResult,
)
from helpdesk.agents.router import FlowRouter, resolve_dispatch
from helpdesk.agents.tools import ToolContext, ToolRegistry

__all__ = [
    "ClassificationError",
    "DomainResponder",
    "IntentClassifier",
    "ResponderResult",
    "FlowRouter",
    "resolve_dispatch",
    "ToolContext",
    "ToolRegistry",
]

"""
Conversation session model

One Session per conversation id. Holds the turn history handed to the
Oracle as context and the routing state that pins the citizen to a flow.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, model_validator

from helpdesk.models.schemas import Classification, UtilitySubClassification
from helpdesk.models.ticket import ContactLinkage


class Session(BaseModel):
    """
    Per-conversation routing state.

    Invariants:
        - at most one active flow
        - active_sub_flow is set only while active_flow is utility billing
        - history never exceeds the configured limit (oldest dropped)
    """
    conversation_id: str
    history: List[Dict[str, Any]] = Field(default_factory=list)
    last_access: datetime
    classification: Optional[Classification] = None
    active_flow: Optional[Classification] = None
    active_sub_flow: Optional[UtilitySubClassification] = None
    account_id: Optional[str] = None

    # Contact-center platform linkage
    contact_id: Optional[int] = None
    platform_conversation_id: Optional[int] = None
    inbox_id: Optional[int] = None

    @model_validator(mode="after")
    def check_sub_flow(self) -> "Session":
        if self.active_sub_flow is not None and self.active_flow != Classification.UTILITY_BILLING:
            raise ValueError("active_sub_flow requires active_flow == utility billing")
        return self

    @property
    def is_new(self) -> bool:
        return not self.history

    def pin_flow(
        self,
        classification: Classification,
        sub_flow: Optional[UtilitySubClassification] = None,
    ) -> None:
        """Pin the session to a flow; sub-flow is discarded outside utility billing"""
        self.active_flow = classification
        self.active_sub_flow = sub_flow if classification == Classification.UTILITY_BILLING else None

    def clear_flow(self) -> None:
        self.active_flow = None
        self.active_sub_flow = None

    def append_history(self, items: List[Dict[str, Any]], limit: int) -> None:
        self.history.extend(items)
        if len(self.history) > limit:
            self.history = self.history[-limit:]

    def linkage(self) -> ContactLinkage:
        return ContactLinkage(
            contact_id=self.contact_id,
            conversation_id=self.platform_conversation_id,
            inbox_id=self.inbox_id,
        )

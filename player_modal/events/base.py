"""Base event model for all events."""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field

from ..models import PlayerReference
from ..tabs import TabId
from .types import EventType, SessionState


class BaseEvent(BaseModel):
    """Base class for all events."""

    event_type: EventType
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class SessionStateChangedEvent(BaseEvent):
    """Fired on every session state transition, including Loading -> Loading."""

    event_type: EventType = EventType.SESSION_STATE_CHANGED
    previous_state: SessionState
    state: SessionState
    reference: Optional[PlayerReference] = Field(
        default=None, description="Player the session points at"
    )
    refresh_key: int = Field(..., description="Refresh counter at transition time")
    error_text: str = ""


class TabChangedEvent(BaseEvent):
    """Fired when the selected tab changes."""

    event_type: EventType = EventType.TAB_CHANGED
    previous_tab: TabId
    tab: TabId


class RefreshRequestedEvent(BaseEvent):
    """Fired when a workflow asks the session to re-fetch the player."""

    event_type: EventType = EventType.REFRESH_REQUESTED
    refresh_key: int
    reason: str = ""


class NoteStatusChangedEvent(BaseEvent):
    """Fired when the notes box status text changes."""

    event_type: EventType = EventType.NOTE_STATUS_CHANGED
    status: str

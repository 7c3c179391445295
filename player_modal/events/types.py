"""Event and state type definitions."""

from enum import Enum


class EventType(str, Enum):
    """All event types published by a modal session."""

    SESSION_STATE_CHANGED = "session.state_changed"
    TAB_CHANGED = "session.tab_changed"
    REFRESH_REQUESTED = "session.refresh_requested"
    NOTE_STATUS_CHANGED = "notes.status_changed"


class SessionState(str, Enum):
    """Lifecycle of the modal's player data."""

    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    FAILED = "failed"

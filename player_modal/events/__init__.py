"""
Session events for the player modal.

Render layers subscribe to these to know when to redraw; nothing in the core
depends on a handler being registered.
"""

from .base import (
    BaseEvent,
    NoteStatusChangedEvent,
    RefreshRequestedEvent,
    SessionStateChangedEvent,
    TabChangedEvent,
)
from .dispatcher import EventDispatcher
from .types import EventType, SessionState

__all__ = [
    "BaseEvent",
    "EventDispatcher",
    "EventType",
    "NoteStatusChangedEvent",
    "RefreshRequestedEvent",
    "SessionState",
    "SessionStateChangedEvent",
    "TabChangedEvent",
]

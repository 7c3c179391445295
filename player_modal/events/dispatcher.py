"""Event dispatcher - dispatches typed session events to registered handlers.

Dispatch is synchronous so handlers observe transitions in order: sync
handlers run inline, async handlers are scheduled on the running loop.
A failing handler is logged and never affects the session.
"""

import asyncio
import inspect
from typing import Awaitable, Callable, Dict, List, TypeVar, Union

from ..logger import log_exception, logger
from .base import (
    BaseEvent,
    NoteStatusChangedEvent,
    RefreshRequestedEvent,
    SessionStateChangedEvent,
    TabChangedEvent,
)
from .types import EventType

EventT = TypeVar("EventT", bound=BaseEvent)

# Handler type that can be sync or async for any event type
EventHandler = Union[Callable[[EventT], None], Callable[[EventT], Awaitable[None]]]


@log_exception("Event handler failed for {event.event_type}")
def _run_sync_handler(handler: Callable, event: BaseEvent) -> None:
    handler(event)


class EventDispatcher:
    """Dispatches events to registered handlers."""

    def __init__(self):
        self._handlers: Dict[EventType, List[Callable]] = {
            event_type: [] for event_type in EventType
        }
        self._pending: set[asyncio.Task] = set()

    # Registration methods - one per event type for type safety

    def on_session_state_changed(
        self, handler: EventHandler[SessionStateChangedEvent]
    ) -> None:
        """Register handler for session state transitions."""
        self._handlers[EventType.SESSION_STATE_CHANGED].append(handler)

    def on_tab_changed(self, handler: EventHandler[TabChangedEvent]) -> None:
        """Register handler for tab selection changes."""
        self._handlers[EventType.TAB_CHANGED].append(handler)

    def on_refresh_requested(
        self, handler: EventHandler[RefreshRequestedEvent]
    ) -> None:
        """Register handler for refresh requests."""
        self._handlers[EventType.REFRESH_REQUESTED].append(handler)

    def on_note_status_changed(
        self, handler: EventHandler[NoteStatusChangedEvent]
    ) -> None:
        """Register handler for notes status text changes."""
        self._handlers[EventType.NOTE_STATUS_CHANGED].append(handler)

    # Dispatch methods - one per event type for type safety

    def dispatch_session_state_changed(self, event: SessionStateChangedEvent) -> None:
        self._dispatch_event(event)

    def dispatch_tab_changed(self, event: TabChangedEvent) -> None:
        self._dispatch_event(event)

    def dispatch_refresh_requested(self, event: RefreshRequestedEvent) -> None:
        self._dispatch_event(event)

    def dispatch_note_status_changed(self, event: NoteStatusChangedEvent) -> None:
        self._dispatch_event(event)

    async def drain(self) -> None:
        """Wait for every scheduled async handler to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    # Internal dispatch logic

    def _dispatch_event(self, event: BaseEvent) -> None:
        handlers = self._handlers.get(event.event_type, [])
        if not handlers:
            logger.debug(f"No handlers registered for event: {event.event_type}")
            return

        for handler in handlers:
            if inspect.iscoroutinefunction(handler):
                task = asyncio.get_running_loop().create_task(handler(event))
                self._pending.add(task)
                task.add_done_callback(self._on_handler_done)
            else:
                _run_sync_handler(handler, event)

    def _on_handler_done(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(
                f"Async event handler failed: {type(error).__name__}: {error}",
                exc_info=error,
            )

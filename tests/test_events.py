"""Tests for the session event dispatcher."""

import asyncio

from player_modal.events import (
    EventDispatcher,
    NoteStatusChangedEvent,
    SessionState,
    SessionStateChangedEvent,
    TabChangedEvent,
)
from player_modal.tabs import TabId


class TestEventDispatcher:
    """Test event dispatcher functionality."""

    async def test_sync_handler_runs_inline(self):
        dispatcher = EventDispatcher()
        received = []
        dispatcher.on_tab_changed(received.append)

        dispatcher.dispatch_tab_changed(
            TabChangedEvent(previous_tab=TabId.INFO, tab=TabId.HISTORY)
        )

        assert len(received) == 1
        assert received[0].tab == TabId.HISTORY

    async def test_async_handler_is_scheduled(self):
        dispatcher = EventDispatcher()
        handler_called = asyncio.Event()
        received = []

        async def handler(event: NoteStatusChangedEvent) -> None:
            received.append(event.status)
            handler_called.set()

        dispatcher.on_note_status_changed(handler)
        dispatcher.dispatch_note_status_changed(NoteStatusChangedEvent(status="Saved!"))

        await asyncio.wait_for(handler_called.wait(), timeout=1.0)
        assert received == ["Saved!"]

    async def test_handler_error_does_not_stop_other_handlers(self, caplog):
        dispatcher = EventDispatcher()
        calls = []

        def broken(event):
            raise RuntimeError("render crashed")

        async def broken_async(event):
            raise RuntimeError("async render crashed")

        dispatcher.on_session_state_changed(broken)
        dispatcher.on_session_state_changed(broken_async)
        dispatcher.on_session_state_changed(calls.append)

        dispatcher.dispatch_session_state_changed(
            SessionStateChangedEvent(
                previous_state=SessionState.IDLE,
                state=SessionState.LOADING,
                refresh_key=0,
            )
        )
        await dispatcher.drain()

        assert len(calls) == 1
        assert "render crashed" in caplog.text
        assert "async render crashed" in caplog.text

    async def test_no_handlers_registered(self):
        dispatcher = EventDispatcher()

        dispatcher.dispatch_tab_changed(
            TabChangedEvent(previous_tab=TabId.INFO, tab=TabId.BAN)
        )

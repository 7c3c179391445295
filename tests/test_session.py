"""
Tests for the modal session state machine.

Tests cover:
- Idle -> Loading -> Loaded/Failed transitions
- Refresh signal issuing exactly one fetch
- Stale response protection across reference changes and refreshes
- Close grace delay and reopen behavior
- Teardown
"""

import asyncio
from unittest.mock import MagicMock

import httpx
import pytest

from player_modal.api import BackendApi
from player_modal.config import Settings
from player_modal.events import EventDispatcher, SessionState
from player_modal.models import PlayerReference
from player_modal.session import PlayerModalSession
from player_modal.tabs import TabId

from .fixtures.backend import SERVER_TIME, FakeBackend

ALICE = PlayerReference(license="aaa")
BOB = PlayerReference(license="bbb")
CAROL = PlayerReference(license="ccc")


@pytest.fixture
def backend():
    backend = FakeBackend()
    backend.add_player("aaa", "Alice")
    backend.add_player("bbb", "Bob", netid=7, isConnected=True)
    backend.add_player("ccc", "Carol")
    return backend


@pytest.fixture
async def session(backend):
    client = backend.client()
    api = BackendApi(client=client, toasts=MagicMock())
    session = PlayerModalSession(
        api,
        has_perm=lambda perm: True,
        settings=Settings(close_grace_seconds=0.05),
        dispatcher=EventDispatcher(),
    )
    yield session
    await session.aclose()
    await api.aclose()
    await client.aclose()


def record_states(session: PlayerModalSession) -> list:
    events = []
    session.events.on_session_state_changed(events.append)
    return events


class TestFetchLifecycle:
    """Test the basic fetch transitions."""

    async def test_new_session_is_idle(self, session):
        assert session.state == SessionState.IDLE
        assert session.reference is None
        assert session.snapshot is None
        assert session.error_text == ""
        assert session.refresh_key == 0
        assert session.active_tab == TabId.INFO

    async def test_open_enters_loading_synchronously(self, session):
        session.open(ALICE)

        assert session.state == SessionState.LOADING
        assert session.snapshot is None
        assert session.error_text == ""
        assert session.page_title == "Loading..."
        assert session.body_message == "Loading..."

    async def test_successful_fetch_loads_snapshot(self, session):
        session.open(BOB)
        await session.wait_settled()

        assert session.state == SessionState.LOADED
        assert session.snapshot.display_name == "Bob"
        assert session.server_time == SERVER_TIME
        assert session.error_text == ""
        assert session.page_title == "[7] Bob"
        assert session.body_message is None

    async def test_offline_player_title(self, session):
        session.open(ALICE)
        await session.wait_settled()

        assert session.page_title == "[OFFLINE] Alice"

    async def test_domain_error_fails_with_verbatim_text(self, session):
        session.open(PlayerReference(license="missing"))
        await session.wait_settled()

        assert session.state == SessionState.FAILED
        assert session.snapshot is None
        assert session.error_text == "Player not found"
        assert session.page_title == "Error!"
        assert session.body_message == "Error: Player not found"

    async def test_transport_error_fails(self, session, backend):
        backend.failures["/player"] = httpx.ConnectError("connection refused")

        session.open(ALICE)
        await session.wait_settled()

        assert session.state == SessionState.FAILED
        assert "connection refused" in session.error_text

    async def test_reference_is_sent_as_query(self, session, backend):
        session.open(PlayerReference(mutex="core", netid=7))
        await session.wait_settled()

        (call,) = backend.calls("GET", "/player")
        assert call.params == {"mutex": "core", "netid": "7"}
        assert session.snapshot.display_name == "Bob"

    async def test_state_events_in_order(self, session):
        events = record_states(session)

        session.open(ALICE)
        await session.wait_settled()

        assert [e.state for e in events] == [SessionState.LOADING, SessionState.LOADED]
        assert events[0].previous_state == SessionState.IDLE
        assert events[1].reference == ALICE


class TestRefresh:
    """Test the refresh signal."""

    async def test_invalidate_while_loaded_issues_one_fetch(self, session, backend):
        session.open(ALICE)
        await session.wait_settled()
        events = record_states(session)

        session.invalidate("test")

        assert session.refresh_key == 1
        assert session.state == SessionState.LOADING
        assert session.snapshot is None
        await session.wait_settled()
        assert session.state == SessionState.LOADED
        assert [e.state for e in events] == [SessionState.LOADING, SessionState.LOADED]
        assert len(backend.calls("GET", "/player")) == 2
        assert session.fetch_count == 2

    async def test_invalidate_while_failed_retries(self, session, backend):
        backend.failures["/player"] = httpx.ConnectError("down")
        session.open(ALICE)
        await session.wait_settled()
        assert session.state == SessionState.FAILED

        del backend.failures["/player"]
        session.invalidate()
        assert session.error_text == ""
        await session.wait_settled()

        assert session.state == SessionState.LOADED

    async def test_refresh_key_strictly_increases(self, session):
        session.open(ALICE)
        keys = []
        for _ in range(3):
            session.invalidate()
            keys.append(session.refresh_key)
        await session.wait_settled()

        assert keys == [1, 2, 3]
        assert session.fetch_count == 4
        assert session.state == SessionState.LOADED

    async def test_invalidate_while_loading_applies_only_latest(self, session, backend):
        gate = backend.hold("aaa")
        session.open(ALICE)
        await asyncio.sleep(0.01)

        # The held request is superseded; the refresh fetch is held too
        session.invalidate()
        del backend.gates["aaa"]
        gate.set()
        await session.wait_settled()

        assert session.state == SessionState.LOADED
        assert session.fetch_count == 2

    async def test_invalidate_while_closed_does_not_fetch(self, session, backend):
        refreshes = []
        session.events.on_refresh_requested(refreshes.append)

        session.invalidate()

        assert session.refresh_key == 1
        assert refreshes[0].refresh_key == 1
        assert session.state == SessionState.IDLE
        assert backend.calls("GET", "/player") == []


class TestReferenceChanges:
    """Test stale responses never overwrite newer state."""

    async def test_late_response_for_old_reference_is_dropped(self, session, backend):
        gate = backend.hold("aaa")
        events = record_states(session)

        session.open(ALICE)
        await asyncio.sleep(0.01)
        session.set_reference(BOB)
        await session.wait_settled()
        gate.set()
        await asyncio.sleep(0.01)

        assert session.snapshot.display_name == "Bob"
        assert session.reference == BOB
        assert all(e.reference != ALICE for e in events if e.state == SessionState.LOADED)

    async def test_last_reference_wins_for_any_release_order(self, session, backend):
        gates = [backend.hold(lic) for lic in ("aaa", "bbb", "ccc")]

        for ref in (ALICE, BOB, CAROL):
            session.set_reference(ref)
            await asyncio.sleep(0.01)
        for gate in reversed(gates):
            gate.set()
            await asyncio.sleep(0.01)
        await session.wait_settled()

        assert session.state == SessionState.LOADED
        assert session.snapshot.display_name == "Carol"

    async def test_reference_change_clears_snapshot_synchronously(self, session):
        session.open(ALICE)
        await session.wait_settled()

        session.set_reference(BOB)

        assert session.snapshot is None
        assert session.state == SessionState.LOADING

    async def test_same_reference_is_a_no_op(self, session, backend):
        session.open(ALICE)
        await session.wait_settled()

        session.set_reference(PlayerReference(license="aaa"))

        assert session.state == SessionState.LOADED
        assert len(backend.calls("GET", "/player")) == 1

    async def test_none_reference_closes(self, session):
        session.open(ALICE)
        await session.wait_settled()

        session.set_reference(None)

        assert session.is_open is False
        assert session.state == SessionState.IDLE


class TestClose:
    """Test closing, the grace delay and reopening."""

    async def test_close_goes_idle_and_wipes_after_grace(self, session):
        session.open(ALICE)
        await session.wait_settled()
        session.select_tab(TabId.HISTORY)

        session.close()

        assert session.state == SessionState.IDLE
        assert session.reference is None
        # Content stays for the closing animation
        assert session.snapshot is not None
        assert session.active_tab == TabId.HISTORY

        await asyncio.sleep(0.1)
        assert session.snapshot is None
        assert session.active_tab == TabId.INFO

    async def test_close_while_loading_drops_fetch(self, session, backend):
        gate = backend.hold("aaa")
        session.open(ALICE)
        await asyncio.sleep(0.01)

        session.close()
        gate.set()
        await session.wait_settled()

        assert session.state == SessionState.IDLE
        assert session.snapshot is None

    async def test_reopen_with_other_player_before_grace(self, session):
        session.open(ALICE)
        await session.wait_settled()
        session.select_tab(TabId.IDS)
        session.close()

        session.open(BOB)

        assert session.snapshot is None
        assert session.state == SessionState.LOADING
        assert session.active_tab == TabId.INFO
        await session.wait_settled()
        await asyncio.sleep(0.1)
        assert session.snapshot.display_name == "Bob"

    async def test_reopen_same_player_fetches_again(self, session, backend):
        session.open(ALICE)
        await session.wait_settled()
        session.close()

        session.open(ALICE)
        await session.wait_settled()

        assert session.state == SessionState.LOADED
        assert len(backend.calls("GET", "/player")) == 2

    async def test_close_twice_is_harmless(self, session):
        session.open(ALICE)
        await session.wait_settled()
        session.close()
        session.close()

        assert session.state == SessionState.IDLE

    async def test_aclose_drops_everything(self, session, backend):
        backend.hold("aaa")
        session.open(ALICE)
        await asyncio.sleep(0.01)

        await session.aclose()

        assert session.state == SessionState.IDLE
        assert session.snapshot is None
        assert session.is_open is False

    async def test_channel_teardown_while_loading_closes_modal(self, session, backend):
        gate = backend.hold("aaa")
        session.open(ALICE)
        await asyncio.sleep(0.01)

        session.api.abort_all()
        await session.wait_settled()
        gate.set()

        assert session.state == SessionState.IDLE
        assert session.is_open is False
        assert session.reference is None


class TestTabs:
    async def test_switching_tabs_never_fetches(self, session, backend):
        session.open(ALICE)
        await session.wait_settled()
        changes = []
        session.events.on_tab_changed(changes.append)

        for tab in (TabId.HISTORY, TabId.IDS, TabId.BAN, TabId.INFO):
            session.select_tab(tab)

        assert len(backend.calls("GET", "/player")) == 1
        assert [c.tab for c in changes] == [TabId.HISTORY, TabId.IDS, TabId.BAN, TabId.INFO]

"""Modal session: the per-dialog owner of the fetched player state.

State machine::

    Idle --open/reference--> Loading --ok--> Loaded
                             Loading --error--> Failed
    Loaded|Failed --invalidate/reference change--> Loading
    * --close--> Idle

Every trigger clears the previous snapshot synchronously and issues exactly
one fetch under a fresh cancellation token; the token of the fetch it
replaces is cancelled, so a superseded response can never be applied.
"""

import asyncio
from typing import Callable, Optional

from .api import BackendApi, CancellationToken
from .config import Settings
from .config import settings as default_settings
from .events import (
    EventDispatcher,
    RefreshRequestedEvent,
    SessionState,
    SessionStateChangedEvent,
    TabChangedEvent,
)
from .logger import logger
from .models import PlayerModalSuccess, PlayerReference, PlayerSnapshot
from .tabs import TabId, TabRouter

PermissionLookup = Callable[[str], bool]


class PlayerModalSession:
    """Fetch lifecycle and cross-tab refresh coordination for one player dialog."""

    def __init__(
        self,
        api: BackendApi,
        has_perm: PermissionLookup,
        settings: Optional[Settings] = None,
        dispatcher: Optional[EventDispatcher] = None,
    ):
        """Initialize an empty, closed session.

        Args:
            api: Backend channel used for every player-scoped call
            has_perm: Capability lookup of the logged-in admin
            settings: Injected configuration (grace delay, mobile flag)
            dispatcher: Event dispatcher render layers subscribe to
        """
        self.api = api
        self.has_perm = has_perm
        self.settings = settings or default_settings
        self.events = dispatcher or EventDispatcher()
        self.tabs = TabRouter(on_change=self._on_tab_changed)

        self._player_endpoint = api.endpoint(
            "GET", "/player", abort_on_unmount=True, response_model=PlayerModalSuccess
        )

        self._state = SessionState.IDLE
        self._is_open = False
        self._reference: Optional[PlayerReference] = None
        self._snapshot: Optional[PlayerSnapshot] = None
        self._server_time: Optional[int] = None
        self._error_text = ""
        self._refresh_key = 0
        self._fetch_count = 0

        self._token: Optional[CancellationToken] = None
        self._fetch_task: Optional[asyncio.Task] = None
        self._grace_handle: Optional[asyncio.TimerHandle] = None

    # Read-only state

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_open(self) -> bool:
        return self._is_open

    @property
    def reference(self) -> Optional[PlayerReference]:
        return self._reference

    @property
    def snapshot(self) -> Optional[PlayerSnapshot]:
        return self._snapshot

    @property
    def server_time(self) -> Optional[int]:
        return self._server_time

    @property
    def error_text(self) -> str:
        return self._error_text

    @property
    def refresh_key(self) -> int:
        return self._refresh_key

    @property
    def fetch_count(self) -> int:
        """Number of player fetches issued over the session's lifetime."""
        return self._fetch_count

    @property
    def active_tab(self) -> TabId:
        return self.tabs.active

    @property
    def page_title(self) -> str:
        if self._snapshot is not None:
            netid = self._snapshot.netid or "OFFLINE"
            return f"[{netid}] {self._snapshot.display_name}"
        if self._error_text:
            return "Error!"
        return "Loading..."

    @property
    def body_message(self) -> Optional[str]:
        """Text shown in place of the tabs, or None when the snapshot is present."""
        if self._snapshot is not None:
            return None
        if self._error_text:
            return f"Error: {self._error_text}"
        return "Loading..."

    # Lifecycle

    def open(self, reference: PlayerReference) -> None:
        """Open the dialog for a player and start fetching it."""
        self._cancel_grace()
        if not self._is_open:
            # A fresh open always starts on the default tab
            self.tabs.reset()
        self._is_open = True
        self._reference = reference
        logger.info(f"Opening player modal for {reference}")
        self._start_fetch()

    def set_reference(self, reference: Optional[PlayerReference]) -> None:
        """Point the dialog at another player. No-op for the same player."""
        if reference is None:
            self.close()
            return
        if self._is_open and reference == self._reference:
            return
        self.open(reference)

    def invalidate(self, reason: str = "") -> None:
        """Refresh signal: force a re-fetch of the current player."""
        self._refresh_key += 1
        self.events.dispatch_refresh_requested(
            RefreshRequestedEvent(refresh_key=self._refresh_key, reason=reason)
        )
        if not self._is_open or self._reference is None:
            logger.debug(f"Refresh #{self._refresh_key} ignored, modal is closed")
            return
        logger.debug(f"Refreshing player modal ({reason or 'no reason given'})")
        self._start_fetch()

    def close(self) -> None:
        """Close the dialog. Content is wiped once the grace delay elapses."""
        if not self._is_open:
            return
        self._is_open = False
        self._cancel_token()
        self._reference = None
        logger.info("Closing player modal")
        self._set_state(SessionState.IDLE)

        self._cancel_grace()
        self._grace_handle = asyncio.get_running_loop().call_later(
            self.settings.close_grace_seconds, self._after_close_grace
        )

    async def aclose(self) -> None:
        """Tear the session down: abort pending work and drop all content."""
        self.close()
        self._cancel_grace()
        self._cancel_token()
        self._player_endpoint.abort()
        if self._fetch_task is not None:
            await asyncio.wait([self._fetch_task])
        self._clear_content()
        self.tabs.reset()

    async def wait_settled(self) -> None:
        """Wait until the latest issued fetch has settled or been dropped."""
        while self._fetch_task is not None and not self._fetch_task.done():
            await asyncio.wait([self._fetch_task])

    def select_tab(self, tab: TabId | str) -> bool:
        return self.tabs.select(tab)

    # Internals

    def _start_fetch(self) -> None:
        reference = self._reference
        assert reference is not None

        self._cancel_token()
        token = CancellationToken()
        self._token = token

        self._clear_content()
        self._set_state(SessionState.LOADING)
        self._fetch_count += 1
        self._fetch_task = asyncio.get_running_loop().create_task(
            self._fetch(reference, token)
        )

    async def _fetch(self, reference: PlayerReference, token: CancellationToken) -> None:
        result = await self._player_endpoint(
            query_params=reference.to_query_params(), token=token
        )
        if token.cancelled:
            logger.debug(f"Dropped superseded fetch for {reference}")
            return
        if result is None:
            # Aborted by the channel itself (BackendApi torn down)
            logger.info(f"Fetch for {reference} aborted by the backend channel, closing")
            self.close()
            return

        self._token = None
        if result.success:
            data: PlayerModalSuccess = result.data
            self._snapshot = data.player
            self._server_time = data.server_time
            self._set_state(SessionState.LOADED)
        else:
            self._error_text = result.error or "Unknown error."
            logger.warning(f"Failed to load player {reference}: {self._error_text}")
            self._set_state(SessionState.FAILED)

    def _set_state(self, state: SessionState) -> None:
        previous, self._state = self._state, state
        self.events.dispatch_session_state_changed(
            SessionStateChangedEvent(
                previous_state=previous,
                state=state,
                reference=self._reference,
                refresh_key=self._refresh_key,
                error_text=self._error_text,
            )
        )

    def _clear_content(self) -> None:
        self._snapshot = None
        self._server_time = None
        self._error_text = ""

    def _cancel_token(self) -> None:
        if self._token is not None:
            self._token.cancel()
            self._token = None

    def _cancel_grace(self) -> None:
        if self._grace_handle is not None:
            self._grace_handle.cancel()
            self._grace_handle = None

    def _after_close_grace(self) -> None:
        self._grace_handle = None
        if self._is_open:
            return
        self._clear_content()
        self.tabs.reset()

    def _on_tab_changed(self, previous: TabId, tab: TabId) -> None:
        self.events.dispatch_tab_changed(TabChangedEvent(previous_tab=previous, tab=tab))

"""Tab view models. Each renders from the already fetched snapshot."""

from datetime import tzinfo
from typing import Optional

from .formatting import minutes_to_duration, ts_to_locale_date
from .history import LogActionBadge, history_items, summarize_log
from .models import ActionHistoryEntry, PlayerSnapshot
from .session import PlayerModalSession
from .tabs import TabId
from .workflows import NoteEditor, RevokeActionWorkflow, WhitelistToggle


def _loaded_snapshot(session: PlayerModalSession) -> PlayerSnapshot:
    if session.snapshot is None:
        raise RuntimeError("tab views need a loaded player")
    return session.snapshot


class InfoTabView:
    def __init__(self, session: PlayerModalSession, tz: Optional[tzinfo] = None):
        self.session = session
        self.player = _loaded_snapshot(session)
        self.tz = tz
        self.whitelist = WhitelistToggle(session)
        self.notes = NoteEditor(session)
        # Recomputed for every snapshot, never carried across fetches
        self.log_badges: list[LogActionBadge] = summarize_log(self.player.action_history)

    def _date(self, ts: Optional[int], missing: str = "--") -> str:
        return ts_to_locale_date(ts, tz=self.tz) if ts else missing

    @property
    def session_time_text(self) -> Optional[str]:
        """Only shown while the player is connected."""
        if not self.player.is_connected:
            return None
        return minutes_to_duration(self.player.session_time, units=("h", "m"))

    @property
    def play_time_text(self) -> str:
        return minutes_to_duration(self.player.play_time, units=("d", "h", "m"))

    @property
    def join_date_text(self) -> str:
        return self._date(self.player.ts_joined)

    @property
    def last_connection_text(self) -> Optional[str]:
        """Only shown while the player is offline."""
        if self.player.is_connected:
            return None
        return self._date(self.player.ts_last_connection)

    @property
    def whitelisted_text(self) -> str:
        return self._date(self.player.ts_whitelisted, missing="not yet")

    def view_history(self) -> None:
        self.session.select_tab(TabId.HISTORY)


class HistoryTabView:
    def __init__(self, session: PlayerModalSession):
        self.session = session
        player = _loaded_snapshot(session)
        self.items = history_items(player.action_history, session.server_time)
        self.revoker = RevokeActionWorkflow(session)

    def can_revoke(self, entry: ActionHistoryEntry) -> bool:
        return self.revoker.can_revoke(entry)

    async def revoke(self, entry: ActionHistoryEntry) -> bool:
        return await self.revoker.revoke(entry)


class IdsTabView:
    def __init__(self, session: PlayerModalSession):
        player = _loaded_snapshot(session)
        self.current_ids = list(player.ids)
        self.current_hwids = list(player.hwids)
        self.old_ids = [i for i in player.old_ids if i not in player.ids]
        self.old_hwids = [h for h in player.old_hwids if h not in player.hwids]

"""
Player modal core.

Fetch lifecycle, cross-tab refresh and write flows behind the per-player
administration dialog of the game-server panel.
"""

from .api import ApiEndpoint, ApiResult, BackendApi, CancellationToken, LoggingToastSink
from .history import BadgeSeverity, LogActionBadge, count_actions, summarize_log
from .models import (
    ActionHistoryEntry,
    ActionType,
    PlayerModalSuccess,
    PlayerReference,
    PlayerSnapshot,
)
from .session import PlayerModalSession
from .tabs import DEFAULT_TAB, TabId, TabRouter
from .views import HistoryTabView, IdsTabView, InfoTabView
from .workflows import (
    BanWorkflow,
    NoteEditor,
    RevokeActionWorkflow,
    WarnWorkflow,
    WhitelistToggle,
)

__all__ = [
    "ActionHistoryEntry",
    "ActionType",
    "ApiEndpoint",
    "ApiResult",
    "BackendApi",
    "BadgeSeverity",
    "BanWorkflow",
    "CancellationToken",
    "DEFAULT_TAB",
    "HistoryTabView",
    "IdsTabView",
    "InfoTabView",
    "LogActionBadge",
    "LoggingToastSink",
    "NoteEditor",
    "PlayerModalSession",
    "PlayerModalSuccess",
    "PlayerReference",
    "PlayerSnapshot",
    "RevokeActionWorkflow",
    "TabId",
    "TabRouter",
    "WarnWorkflow",
    "WhitelistToggle",
    "count_actions",
    "summarize_log",
]

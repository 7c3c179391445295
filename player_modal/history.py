"""Aggregates over the player's action log and the History tab view."""

from collections import Counter
from enum import Enum
from typing import Iterable, Optional

from pydantic import BaseModel

from .models import ActionHistoryEntry, ActionType


class BadgeSeverity(str, Enum):
    NEUTRAL = "neutral"
    MEDIUM = "medium"
    HIGH = "high"


_NONZERO_SEVERITY = {
    ActionType.BAN: BadgeSeverity.HIGH,
    ActionType.WARN: BadgeSeverity.MEDIUM,
}


class LogActionBadge(BaseModel):
    kind: ActionType
    count: int
    label: str
    severity: BadgeSeverity

    @property
    def text(self) -> str:
        return f"{self.count} {self.label}"


def _kind_value(kind: ActionType | str) -> str:
    return kind.value if isinstance(kind, ActionType) else kind


def count_actions(history: Iterable[ActionHistoryEntry]) -> Counter[str]:
    """Count log entries per kind. Keys are the wire values ("ban", "warn", ...)."""
    return Counter(_kind_value(entry.kind) for entry in history)


def action_badge(kind: ActionType, count: int) -> LogActionBadge:
    """Build the log counter badge: singular label only for exactly one entry."""
    title = kind.value.capitalize()
    label = title if count == 1 else f"{title}s"
    if count == 0:
        severity = BadgeSeverity.NEUTRAL
    else:
        severity = _NONZERO_SEVERITY.get(kind, BadgeSeverity.NEUTRAL)
    return LogActionBadge(kind=kind, count=count, label=label, severity=severity)


def summarize_log(history: Iterable[ActionHistoryEntry]) -> list[LogActionBadge]:
    counts = count_actions(history)
    return [
        action_badge(kind, counts.get(kind.value, 0))
        for kind in (ActionType.BAN, ActionType.WARN)
    ]


class HistoryItemView(BaseModel):
    entry: ActionHistoryEntry
    is_revoked: bool
    is_expired: bool

    @property
    def is_active(self) -> bool:
        return not (self.is_revoked or self.is_expired)


def history_items(
    history: Iterable[ActionHistoryEntry], server_time: Optional[int] = None
) -> list[HistoryItemView]:
    """Log entries newest first, flagged against the backend clock."""
    items = []
    for entry in sorted(history, key=lambda e: e.ts, reverse=True):
        is_expired = (
            server_time is not None and entry.exp is not None and entry.exp < server_time
        )
        items.append(
            HistoryItemView(
                entry=entry,
                is_revoked=entry.revoked_by is not None,
                is_expired=is_expired,
            )
        )
    return items

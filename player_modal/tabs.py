from enum import Enum
from typing import Callable, Optional

from pydantic import BaseModel


class TabId(str, Enum):
    INFO = "Info"
    HISTORY = "History"
    IDS = "IDs"
    BAN = "Ban"


DEFAULT_TAB = TabId.INFO


class TabSpec(BaseModel):
    tab: TabId
    icon: str
    destructive: bool = False


MODAL_TABS: list[TabSpec] = [
    TabSpec(tab=TabId.INFO, icon="info"),
    TabSpec(tab=TabId.HISTORY, icon="history"),
    TabSpec(tab=TabId.IDS, icon="list"),
    TabSpec(tab=TabId.BAN, icon="ban", destructive=True),
]


class TabRouter:
    """Which modal tab is selected. Selecting a tab never touches the network."""

    def __init__(self, on_change: Optional[Callable[[TabId, TabId], None]] = None):
        self._active = DEFAULT_TAB
        self._on_change = on_change

    @property
    def active(self) -> TabId:
        return self._active

    def select(self, tab: TabId | str) -> bool:
        """Select a tab by id or title. Returns True if the selection changed."""
        tab = TabId(tab)
        if tab == self._active:
            return False
        previous, self._active = self._active, tab
        if self._on_change is not None:
            self._on_change(previous, tab)
        return True

    def reset(self) -> bool:
        return self.select(DEFAULT_TAB)

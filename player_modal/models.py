"""Wire models for the player endpoints consumed by the modal."""

from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    """Base for backend payloads: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class ActionType(str, Enum):
    BAN = "ban"
    WARN = "warn"
    NOTE = "note"


class PlayerReference(WireModel):
    """Key set identifying a player: an online player (mutex + netid) or a license."""

    mutex: Optional[str] = None
    netid: Optional[int] = None
    license: Optional[str] = None

    @model_validator(mode="after")
    def check_keys(self) -> "PlayerReference":
        has_online_keys = self.mutex is not None and self.netid is not None
        if not has_online_keys and not self.license:
            raise ValueError("player reference needs either mutex+netid or license")
        return self

    def to_query_params(self) -> dict[str, str]:
        if self.mutex is not None and self.netid is not None:
            return {"mutex": self.mutex, "netid": str(self.netid)}
        return {"license": self.license or ""}

    def __str__(self) -> str:
        if self.mutex is not None and self.netid is not None:
            return f"#{self.netid}@{self.mutex}"
        return f"license:{self.license}"


class ActionHistoryEntry(WireModel):
    """One entry of the player's action log. Read-only on the client."""

    id: str
    kind: ActionType | str = Field(alias="type", union_mode="left_to_right")
    reason: str = ""
    author: str = ""
    ts: int
    exp: Optional[int] = None
    revoked_by: Optional[str] = None
    revoked_at: Optional[int] = None


class PlayerSnapshot(WireModel):
    display_name: str
    pure_name: str = ""
    is_registered: bool = False
    is_connected: bool = False
    license: Optional[str] = None
    ids: list[str] = Field(default_factory=list)
    hwids: list[str] = Field(default_factory=list)
    action_history: list[ActionHistoryEntry] = Field(default_factory=list)

    netid: Optional[int] = None
    # Minutes
    session_time: Optional[int] = None
    play_time: Optional[int] = None
    # Unix seconds
    ts_joined: Optional[int] = None
    ts_last_connection: Optional[int] = None
    ts_whitelisted: Optional[int] = None

    notes: str = ""
    notes_log: str = ""
    old_ids: list[str] = Field(default_factory=list)
    old_hwids: list[str] = Field(default_factory=list)


class PlayerModalSuccess(WireModel):
    """Successful `GET /player` payload."""

    server_time: int
    player: PlayerSnapshot


class GenericOkResponse(WireModel):
    """Successful payload of the mutation endpoints."""

    success: Literal[True]

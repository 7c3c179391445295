"""Write flows started from the modal tabs.

Workflows never patch the session snapshot. Anything that changes
backend-authoritative data (whitelist, bans, warns) asks the session to
re-fetch through ``invalidate()``; only transient status text is set locally.
"""

from typing import Any, Optional

from .errors import PermissionDeniedError, PlayerModalError, ValidationError
from .events import NoteStatusChangedEvent
from .logger import logger
from .models import ActionHistoryEntry, ActionType, GenericOkResponse, PlayerReference
from .session import PlayerModalSession

BAN_DURATIONS = (
    "2 hours",
    "8 hours",
    "1 day",
    "2 days",
    "1 week",
    "2 weeks",
    "permanent",
)


class MutationWorkflow:
    """Base for a single backend write bound to the session's current player."""

    path: str
    permission: Optional[str] = None

    def __init__(self, session: PlayerModalSession):
        self.session = session
        self.status = ""
        self._endpoint = session.api.endpoint(
            "POST", self.path, response_model=GenericOkResponse
        )

    @property
    def enabled(self) -> bool:
        return self.permission is None or self.session.has_perm(self.permission)

    @property
    def in_flight(self) -> bool:
        return self._endpoint.in_flight

    def _set_status(self, status: str) -> None:
        self.status = status

    def _require_permission(self, permission: Optional[str] = None) -> None:
        permission = permission or self.permission
        if permission is not None and not self.session.has_perm(permission):
            raise PermissionDeniedError(permission)

    def _require_idle(self) -> None:
        if self.in_flight:
            raise ValidationError("Another request is still in progress.")

    def _reject(self, error: PlayerModalError) -> bool:
        logger.warning(f"{type(self).__name__} rejected ({error.kind.value}): {error}")
        self._set_status(str(error))
        return False

    def _on_aborted(self) -> None:
        pass

    def _current_reference(self) -> PlayerReference:
        reference = self.session.reference
        if reference is None:
            raise ValidationError("No player selected.")
        return reference

    async def _dispatch(
        self,
        reference: PlayerReference,
        data: dict[str, Any],
        *,
        toast_loading_message: Optional[str] = None,
        success_msg: Optional[str] = None,
        refresh_reason: Optional[str] = None,
    ) -> bool:
        result = await self._endpoint(
            query_params=reference.to_query_params(),
            data=data,
            toast_loading_message=toast_loading_message,
            success_msg=success_msg,
        )
        if result is None:
            self._on_aborted()
            return False
        if not result.success:
            self._set_status(result.error or "Unknown error.")
            return False
        if refresh_reason is not None:
            self.session.invalidate(refresh_reason)
        return True


class NoteEditor(MutationWorkflow):
    """The Info tab notes box."""

    path = "/player/save_note"

    SAVING = "Saving..."
    SAVED = "Saved!"
    EDITED = "Press enter to save."
    EMPTY = "Cannot save an empty note."
    NOT_REGISTERED = "Cannot set notes for players that are not registered."

    def __init__(self, session: PlayerModalSession):
        super().__init__(session)
        snapshot = session.snapshot
        if snapshot is None:
            raise RuntimeError("NoteEditor needs a loaded player")
        self.reference = session.reference
        self.text = snapshot.notes
        self.status = snapshot.notes_log
        self._registered = snapshot.is_registered
        self._status_before_save = self.status

    @property
    def enabled(self) -> bool:
        return self._registered

    @property
    def placeholder(self) -> str:
        if self._registered:
            return "Type your notes about the player."
        return self.NOT_REGISTERED

    @property
    def show_save_button(self) -> bool:
        """Touch environments get an explicit button instead of Enter-to-save."""
        return self.session.settings.is_mobile

    def _set_status(self, status: str) -> None:
        self.status = status
        self.session.events.dispatch_note_status_changed(
            NoteStatusChangedEvent(status=status)
        )

    def _on_aborted(self) -> None:
        self._set_status(self._status_before_save)

    def edit(self, text: str) -> None:
        self.text = text
        self._set_status(self.EDITED)

    async def handle_key(self, key: str, shift: bool = False) -> bool:
        """Keyboard handler. Returns True when the key was consumed as a save."""
        if key != "Enter" or shift or self.session.settings.is_mobile:
            return False
        await self.save()
        return True

    async def save(self) -> bool:
        note = self.text.strip()
        try:
            if not self._registered:
                raise ValidationError(self.NOT_REGISTERED)
            if not note:
                raise ValidationError(self.EMPTY)
            if self.reference is None:
                raise ValidationError("No player selected.")
            self._require_idle()
        except PlayerModalError as e:
            return self._reject(e)

        self._status_before_save = self.status
        self._set_status(self.SAVING)
        saved = await self._dispatch(self.reference, {"note": note})
        if saved:
            self._set_status(self.SAVED)
        return saved


class WhitelistToggle(MutationWorkflow):
    """Add or remove the player's whitelist approval."""

    path = "/player/whitelist"
    permission = "players.whitelist"

    @property
    def is_whitelisted(self) -> bool:
        snapshot = self.session.snapshot
        return bool(snapshot and snapshot.ts_whitelisted)

    @property
    def label(self) -> str:
        return "Remove" if self.is_whitelisted else "Add WL"

    async def toggle(self) -> bool:
        try:
            self._require_permission()
            self._require_idle()
            reference = self._current_reference()
            if self.session.snapshot is None:
                raise ValidationError("Player data is still loading.")
        except PlayerModalError as e:
            return self._reject(e)

        return await self._dispatch(
            reference,
            {"status": not self.is_whitelisted},
            toast_loading_message="Updating whitelist...",
            success_msg="Whitelist changed.",
            refresh_reason="whitelist changed",
        )


class BanWorkflow(MutationWorkflow):
    """The Ban tab form."""

    path = "/player/ban"
    permission = "players.ban"
    durations = BAN_DURATIONS

    async def submit(self, reason: str, duration: str = "permanent") -> bool:
        reason = reason.strip()
        try:
            self._require_permission()
            self._require_idle()
            reference = self._current_reference()
            if not reason:
                raise ValidationError("The ban reason is required.")
            if duration not in self.durations:
                raise ValidationError(f"Invalid ban duration: {duration}")
        except PlayerModalError as e:
            return self._reject(e)

        return await self._dispatch(
            reference,
            {"reason": reason, "duration": duration},
            toast_loading_message="Banning player...",
            success_msg="Player banned.",
            refresh_reason="player banned",
        )


class WarnWorkflow(MutationWorkflow):
    path = "/player/warn"
    permission = "players.warn"

    async def submit(self, reason: str) -> bool:
        reason = reason.strip()
        try:
            self._require_permission()
            self._require_idle()
            reference = self._current_reference()
            if not reason:
                raise ValidationError("The warning reason is required.")
        except PlayerModalError as e:
            return self._reject(e)

        return await self._dispatch(
            reference,
            {"reason": reason},
            toast_loading_message="Warning player...",
            success_msg="Warning sent.",
            refresh_reason="player warned",
        )


class RevokeActionWorkflow(MutationWorkflow):
    """Revoke a ban or warn from the History tab."""

    path = "/history/revoke_action"

    @staticmethod
    def permission_for(entry: ActionHistoryEntry) -> str:
        if entry.kind == ActionType.BAN:
            return "players.ban"
        return "players.warn"

    def can_revoke(self, entry: ActionHistoryEntry) -> bool:
        return entry.revoked_by is None and self.session.has_perm(
            self.permission_for(entry)
        )

    async def revoke(self, entry: ActionHistoryEntry) -> bool:
        try:
            self._require_permission(self.permission_for(entry))
            self._require_idle()
            reference = self._current_reference()
            if entry.revoked_by is not None:
                raise ValidationError(f"Action {entry.id} was already revoked.")
        except PlayerModalError as e:
            return self._reject(e)

        return await self._dispatch(
            reference,
            {"actionId": entry.id},
            toast_loading_message="Revoking action...",
            success_msg="Action revoked.",
            refresh_reason=f"action {entry.id} revoked",
        )

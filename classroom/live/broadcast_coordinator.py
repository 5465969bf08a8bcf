"""Owns the live/offline state of the classroom broadcast on one client."""

from __future__ import annotations

import threading
from typing import Any, Callable, Dict, List, Optional

from classroom.helpers.logging_helper import (
    log_exception,
    log_info,
    log_module_import,
    log_warning,
)
from classroom.live.errors import BroadcastNotAllowed, MediaCaptureError, StoreUnavailable
from classroom.live.media_capture import MediaCapture, MediaStream
from classroom.live.models import (
    SESSION_KEY,
    BroadcastMode,
    BroadcastPhase,
    BroadcastState,
    LiveSession,
    Participant,
    PermissionEntry,
    PermissionKind,
    UserRole,
)
from classroom.live.permissions import LivePermissions
from classroom.live.session_store import SessionStore

log_module_import(__name__)


CoordinatorListener = Callable[[str, Dict[str, Any]], None]

_BROADCAST_ROLES = (UserRole.TEACHER, UserRole.ADMIN)


class BroadcastCoordinator:
    """Coordinates the broadcast state machine, local media and the session store.

    All state lives in one immutable ``BroadcastState`` that is replaced under
    ``_lock``; the store is only a best-effort mirror, while media failures
    abort and roll back.
    """

    def __init__(
        self,
        participant: Participant,
        store: SessionStore,
        media_capture: MediaCapture,
        *,
        permissions: Optional[LivePermissions] = None,
    ) -> None:
        self.participant = participant
        self.store = store
        self.media_capture = media_capture
        self.permissions = permissions or LivePermissions()
        self._lock = threading.RLock()
        self._state = BroadcastState.offline()
        self._stream: Optional[MediaStream] = None
        self._surfaces: List[Any] = []
        self._listeners: List[CoordinatorListener] = []
        self.last_error: str = ""

    # ------------------------------------------------------------------
    # Listener handling
    # ------------------------------------------------------------------
    def add_listener(self, callback: CoordinatorListener) -> None:
        with self._lock:
            if callback not in self._listeners:
                self._listeners.append(callback)

    def remove_listener(self, callback: CoordinatorListener) -> None:
        with self._lock:
            if callback in self._listeners:
                self._listeners.remove(callback)

    def _emit(self, event: str, **payload: Any) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for callback in listeners:
            try:
                callback(event, payload)
            except Exception as exc:  # pragma: no cover - listener safety
                log_exception(
                    f"listener raised: {exc}",
                    func_name="BroadcastCoordinator._emit",
                )

    # ------------------------------------------------------------------
    # State access
    # ------------------------------------------------------------------
    @property
    def state(self) -> BroadcastState:
        return self._state

    @property
    def is_live(self) -> bool:
        return self._state.is_live

    @property
    def stream(self) -> Optional[MediaStream]:
        return self._stream

    def _set_state(self, new_state: BroadcastState) -> None:
        with self._lock:
            if new_state == self._state:
                return
            self._state = new_state
        self._emit("state_changed", state=new_state)

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------
    def start_session(self, mode: BroadcastMode, requester_id: Optional[str] = None) -> BroadcastState:
        mode = BroadcastMode(mode)
        owner_id = requester_id or self.participant.id
        if self.participant.role not in _BROADCAST_ROLES:
            raise BroadcastNotAllowed(f"{self.participant.role.value} may not start a live session")

        with self._lock:
            self._release_stream()
            self.last_error = ""
            self._set_state(BroadcastState.starting(mode))

            try:
                self.store.upsert(LiveSession.create(mode, owner_id))
            except StoreUnavailable as exc:
                log_warning(f"Session not published, continuing locally: {exc}", func_name="BroadcastCoordinator.start_session")

            try:
                stream = self.media_capture.request_capture(audio=True, video=mode == BroadcastMode.VIDEO)
            except MediaCaptureError as exc:
                self.last_error = str(exc)
                log_warning(f"Media capture failed, rolling back: {exc}", func_name="BroadcastCoordinator.start_session")
                self._set_state(BroadcastState.offline(mode))
                self._delete_store_record()
                self._emit("media_error", message=str(exc))
                raise

            self._stream = stream
            self._apply_mic(True)
            self._set_state(BroadcastState.live(mode, camera_on=mode == BroadcastMode.VIDEO, mic_on=True))

        log_info(f"Live session started in {mode.value} mode by {owner_id}", func_name="BroadcastCoordinator.start_session")
        return self._state

    def end_session(self) -> BroadcastState:
        with self._lock:
            mode = self._state.mode
            was_live = self._state.is_live
            if was_live:
                self._set_state(BroadcastState(phase=BroadcastPhase.ENDING, mode=mode))
            # release whatever is held, whatever the flags say
            self._release_stream()
            self.permissions.clear()
            self._sync_surfaces()
            if self.participant.role in _BROADCAST_ROLES:
                self._delete_store_record()
            self._set_state(BroadcastState.offline(mode))
        if was_live:
            log_info("Live session ended", func_name="BroadcastCoordinator.end_session")
            self._emit("permissions_changed", permissions={}, raised_hands=[])
        return self._state

    # ------------------------------------------------------------------
    # Media toggles
    # ------------------------------------------------------------------
    def toggle_microphone(self) -> bool:
        with self._lock:
            current = self._state
            if current.phase != BroadcastPhase.LIVE:
                return False
            mic_on = not current.mic_on
            self._apply_mic(mic_on)
            self._set_state(BroadcastState.live(current.mode, camera_on=current.camera_on, mic_on=mic_on))
            return mic_on

    def toggle_camera(self) -> bool:
        with self._lock:
            current = self._state
            if current.phase != BroadcastPhase.LIVE:
                return False

            if not current.camera_on:
                try:
                    stream = self.media_capture.request_capture(audio=True, video=True)
                except MediaCaptureError as exc:
                    self.last_error = str(exc)
                    log_warning(f"Could not access camera: {exc}", func_name="BroadcastCoordinator.toggle_camera")
                    self._emit("media_error", message=str(exc))
                    raise
                self._release_stream()
                self._stream = stream
                self._apply_mic(True)
                self._set_state(BroadcastState.live(current.mode, camera_on=True, mic_on=True))
                return True

            if self._stream is not None:
                for track in self._stream.video_tracks():
                    track.stop()
            self._set_state(BroadcastState.live(current.mode, camera_on=False, mic_on=self._audio_is_live()))
            return False

    def _apply_mic(self, enabled: bool) -> None:
        if self._stream is None:
            return
        for track in self._stream.audio_tracks():
            track.enabled = enabled

    def _audio_is_live(self) -> bool:
        if self._stream is None:
            return False
        return any(track.is_live and track.enabled for track in self._stream.audio_tracks())

    def _release_stream(self) -> None:
        stream, self._stream = self._stream, None
        if stream is not None:
            stream.stop()

    def _delete_store_record(self) -> None:
        try:
            self.store.delete(SESSION_KEY)
        except StoreUnavailable as exc:
            log_warning(f"Unable to clear session record: {exc}", func_name="BroadcastCoordinator._delete_store_record")

    # ------------------------------------------------------------------
    # Presence reconciliation
    # ------------------------------------------------------------------
    def apply_remote_session(self, session: Optional[LiveSession]) -> bool:
        """Reconcile local state with the store's record; returns True when state changed."""

        with self._lock:
            current = self._state
            if session is not None and session.is_active:
                if current.is_live:
                    return False
                self._set_state(BroadcastState.live(session.mode))
                log_info(f"Joined live session in {session.mode.value} mode", func_name="BroadcastCoordinator.apply_remote_session")
                return True

            if not current.is_live:
                return False
            # the owner's client is the only authority over its own session
            if self.participant.role != UserRole.STUDENT:
                return False
            self._release_stream()
            self.permissions.clear()
            self._sync_surfaces()
            self._set_state(BroadcastState.offline(current.mode))
        log_info("Live session ended remotely", func_name="BroadcastCoordinator.apply_remote_session")
        return True

    # ------------------------------------------------------------------
    # Permissions and hand raising
    # ------------------------------------------------------------------
    def raise_hand(self, participant_id: Optional[str] = None) -> bool:
        participant_id = participant_id or self.participant.id
        with self._lock:
            added = self.permissions.raise_hand(participant_id)
            raised = self.permissions.raised_hands
        if added:
            self._emit("hand_raised", participant_id=participant_id, raised_hands=raised)
        return added

    def grant_permission(self, participant_id: str, kind: PermissionKind) -> PermissionEntry:
        if self.participant.role not in _BROADCAST_ROLES:
            raise BroadcastNotAllowed("Only the session owner may grant permissions")
        with self._lock:
            entry = self.permissions.grant_permission(participant_id, kind)
            self._sync_surfaces()
            snapshot = self.permissions.snapshot()
            raised = self.permissions.raised_hands
        log_info(f"Granted {PermissionKind(kind).value} to {participant_id}", func_name="BroadcastCoordinator.grant_permission")
        self._emit("permissions_changed", permissions=snapshot, raised_hands=raised)
        return entry

    def permission_for(self, participant_id: str) -> PermissionEntry:
        with self._lock:
            return self.permissions.get(participant_id)

    def is_read_only(self, participant_id: Optional[str] = None, role: Optional[UserRole] = None) -> bool:
        """A student's board is view-only until the owner grants them drawing."""

        participant_id = participant_id or self.participant.id
        if role is None:
            role = self.participant.role if participant_id == self.participant.id else UserRole.STUDENT
        if role != UserRole.STUDENT:
            return False
        return not self.permission_for(participant_id).can_draw

    # ------------------------------------------------------------------
    # Whiteboard gating
    # ------------------------------------------------------------------
    def attach_surface(self, surface) -> None:
        with self._lock:
            if surface not in self._surfaces:
                self._surfaces.append(surface)
            surface.read_only = self.is_read_only()

    def detach_surface(self, surface) -> None:
        with self._lock:
            if surface in self._surfaces:
                self._surfaces.remove(surface)

    def _sync_surfaces(self) -> None:
        read_only = self.is_read_only()
        for surface in self._surfaces:
            surface.read_only = read_only

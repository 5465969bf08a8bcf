from __future__ import annotations

from typing import Optional

from classroom.helpers.config_helper import ConfigHelper
from classroom.live.broadcast_coordinator import BroadcastCoordinator
from classroom.live.media_capture import LocalMediaCapture, MediaCapture
from classroom.live.models import Participant, normalize_role
from classroom.live.presence_poller import Scheduler, SessionPresencePoller, ThreadingScheduler
from classroom.live.session_store import SessionStore, create_session_store


def participant_from_config() -> Participant:
    return Participant(
        id=str(ConfigHelper.get("Identity", "id", fallback="teacher1") or "teacher1"),
        name=str(ConfigHelper.get("Identity", "name", fallback="") or ""),
        role=normalize_role(ConfigHelper.get("Identity", "role", fallback="TEACHER")),
    )


def create_live_session(
    participant: Optional[Participant] = None,
    *,
    store: Optional[SessionStore] = None,
    media_capture: Optional[MediaCapture] = None,
    scheduler: Optional[Scheduler] = None,
) -> tuple[BroadcastCoordinator, SessionPresencePoller]:
    """Wire a coordinator and its presence poller for the current client."""

    store = store or create_session_store()
    coordinator = BroadcastCoordinator(
        participant or participant_from_config(),
        store,
        media_capture or LocalMediaCapture.from_config(),
    )
    poller = SessionPresencePoller(coordinator, store, scheduler or ThreadingScheduler())
    return coordinator, poller


__all__ = ["BroadcastCoordinator", "SessionPresencePoller", "create_live_session", "participant_from_config"]

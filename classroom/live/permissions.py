from __future__ import annotations

from typing import Dict, List

from classroom.helpers.logging_helper import log_methods, log_module_import
from classroom.live.models import PermissionEntry, PermissionKind

log_module_import(__name__)


@log_methods
class LivePermissions:
    """Per-participant speak/draw rights and the hand-raise queue of one session.

    Held only in the broadcaster's memory; nothing here is persisted, and the
    whole table is dropped when the session ends.
    """

    def __init__(self) -> None:
        self._entries: Dict[str, PermissionEntry] = {}
        # dict keys keep insertion order, giving an ordered set
        self._raised: Dict[str, None] = {}

    def raise_hand(self, participant_id: str) -> bool:
        if participant_id in self._raised:
            return False
        self._raised[participant_id] = None
        return True

    def grant_permission(self, participant_id: str, kind: PermissionKind) -> PermissionEntry:
        kind = PermissionKind(kind)
        previous = self.get(participant_id)
        entry = PermissionEntry(
            can_speak=True if kind == PermissionKind.SPEAK else previous.can_speak,
            can_draw=True if kind == PermissionKind.DRAW else previous.can_draw,
        )
        self._entries[participant_id] = entry
        if kind == PermissionKind.SPEAK:
            self._raised.pop(participant_id, None)
        return entry

    def get(self, participant_id: str) -> PermissionEntry:
        return self._entries.get(participant_id) or PermissionEntry()

    def can_speak(self, participant_id: str) -> bool:
        return self.get(participant_id).can_speak

    def can_draw(self, participant_id: str) -> bool:
        return self.get(participant_id).can_draw

    def is_hand_raised(self, participant_id: str) -> bool:
        return participant_id in self._raised

    @property
    def raised_hands(self) -> List[str]:
        return list(self._raised)

    def snapshot(self) -> Dict[str, Dict[str, bool]]:
        return {participant_id: entry.to_dict() for participant_id, entry in self._entries.items()}

    def clear(self) -> None:
        self._entries.clear()
        self._raised.clear()

from __future__ import annotations

import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

SESSION_KEY = "current_broadcast"


class UserRole(str, Enum):
    ADMIN = "ADMIN"
    TEACHER = "TEACHER"
    STUDENT = "STUDENT"


def normalize_role(value: str | None) -> UserRole:
    try:
        candidate = str(value or "").upper().strip()
    except Exception:
        candidate = ""
    try:
        return UserRole(candidate)
    except ValueError:
        return UserRole.STUDENT


class BroadcastMode(str, Enum):
    VIDEO = "VIDEO"
    WHITEBOARD = "WHITEBOARD"


def normalize_mode(value: str | None) -> BroadcastMode:
    try:
        candidate = str(value or "").upper().strip()
    except Exception:
        candidate = ""
    return BroadcastMode.VIDEO if candidate == BroadcastMode.VIDEO.value else BroadcastMode.WHITEBOARD


class PermissionKind(str, Enum):
    SPEAK = "SPEAK"
    DRAW = "DRAW"


class BroadcastPhase(str, Enum):
    OFFLINE = "OFFLINE"
    STARTING = "STARTING"
    LIVE = "LIVE"
    ENDING = "ENDING"


@dataclass(frozen=True)
class Participant:
    id: str
    name: str = ""
    role: UserRole = UserRole.STUDENT

    @property
    def is_student(self) -> bool:
        return self.role == UserRole.STUDENT


@dataclass(frozen=True)
class PermissionEntry:
    can_speak: bool = False
    can_draw: bool = False

    def to_dict(self) -> Dict[str, bool]:
        return {"canSpeak": self.can_speak, "canDraw": self.can_draw}


@dataclass
class LiveSession:
    """Row stored under the fixed singleton key of the session store."""

    mode: BroadcastMode
    owner_id: str
    is_active: bool = True
    started_at: int = 0
    id: str = SESSION_KEY

    @classmethod
    def create(cls, mode: BroadcastMode, owner_id: str) -> "LiveSession":
        return cls(mode=mode, owner_id=owner_id, is_active=True, started_at=int(time.time() * 1000))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LiveSession":
        owner = data.get("teacher_id", data.get("owner_id", ""))
        try:
            started_at = int(data.get("started_at") or 0)
        except (TypeError, ValueError):
            started_at = 0
        return cls(
            id=str(data.get("id") or SESSION_KEY),
            is_active=bool(data.get("is_active", False)),
            mode=normalize_mode(data.get("mode")),
            owner_id=str(owner or ""),
            started_at=started_at,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "is_active": self.is_active,
            "mode": self.mode.value,
            "teacher_id": self.owner_id,
            "started_at": int(self.started_at),
        }


@dataclass(frozen=True)
class BroadcastState:
    """Tagged live state; flag combinations that cannot occur are rejected."""

    phase: BroadcastPhase = BroadcastPhase.OFFLINE
    mode: Optional[BroadcastMode] = None
    camera_on: bool = False
    mic_on: bool = False

    def __post_init__(self) -> None:
        if self.phase in (BroadcastPhase.OFFLINE, BroadcastPhase.ENDING):
            if self.camera_on or self.mic_on:
                raise ValueError(f"Media flags must be off while {self.phase.value}")
        elif self.mode is None:
            raise ValueError(f"A broadcast mode is required while {self.phase.value}")
        if self.phase == BroadcastPhase.STARTING and self.camera_on:
            raise ValueError("Camera can not be on before capture succeeded")

    @classmethod
    def offline(cls, mode: Optional[BroadcastMode] = None) -> "BroadcastState":
        return cls(phase=BroadcastPhase.OFFLINE, mode=mode)

    @classmethod
    def starting(cls, mode: BroadcastMode) -> "BroadcastState":
        # a session always starts with audio enabled
        return cls(phase=BroadcastPhase.STARTING, mode=mode, mic_on=True)

    @classmethod
    def live(cls, mode: BroadcastMode, *, camera_on: bool = False, mic_on: bool = False) -> "BroadcastState":
        return cls(phase=BroadcastPhase.LIVE, mode=mode, camera_on=camera_on, mic_on=mic_on)

    @property
    def is_live(self) -> bool:
        return self.phase in (BroadcastPhase.STARTING, BroadcastPhase.LIVE)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "phase": self.phase.value,
            "is_live": self.is_live,
            "mode": self.mode.value if self.mode else None,
            "camera_on": self.camera_on,
            "mic_on": self.mic_on,
        }

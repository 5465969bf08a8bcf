from __future__ import annotations

import uuid
from typing import Iterable, List, Optional, Protocol

from classroom.helpers.config_helper import ConfigHelper
from classroom.helpers.logging_helper import log_info, log_module_import, log_warning
from classroom.live.errors import MediaAccessDenied, MediaDeviceError

log_module_import(__name__)

AUDIO = "audio"
VIDEO = "video"


class MediaTrack:
    """A single captured audio or video track.

    Disabling a track mutes it but keeps the device open; stopping releases
    the device and is final.
    """

    def __init__(self, kind: str, label: str = "") -> None:
        if kind not in (AUDIO, VIDEO):
            raise ValueError(f"Unknown track kind: {kind}")
        self.id = uuid.uuid4().hex
        self.kind = kind
        self.label = label
        self.enabled = True
        self.ready_state = "live"

    @property
    def is_live(self) -> bool:
        return self.ready_state == "live"

    def stop(self) -> None:
        self.ready_state = "ended"

    def __repr__(self) -> str:
        return f"MediaTrack(kind={self.kind!r}, label={self.label!r}, enabled={self.enabled}, state={self.ready_state!r})"


class MediaStream:
    def __init__(self, tracks: Optional[Iterable[MediaTrack]] = None) -> None:
        self.id = uuid.uuid4().hex
        self._tracks: List[MediaTrack] = list(tracks or [])

    @property
    def tracks(self) -> List[MediaTrack]:
        return list(self._tracks)

    def audio_tracks(self) -> List[MediaTrack]:
        return [track for track in self._tracks if track.kind == AUDIO]

    def video_tracks(self) -> List[MediaTrack]:
        return [track for track in self._tracks if track.kind == VIDEO]

    def stop(self) -> None:
        for track in self._tracks:
            track.stop()


class MediaCapture(Protocol):
    def request_capture(self, audio: bool, video: bool) -> MediaStream: ...


class LocalMediaCapture:
    """Capture backed by the devices named in the ``[Media]`` config section.

    ``allow_capture = false`` models a refused permission prompt; an empty
    ``microphone``/``camera`` entry means the device is absent.
    """

    def __init__(
        self,
        *,
        microphone: Optional[str] = None,
        camera: Optional[str] = None,
        allow_capture: Optional[bool] = None,
    ) -> None:
        self.microphone = microphone
        self.camera = camera
        self.allow_capture = allow_capture

    @classmethod
    def from_config(cls) -> "LocalMediaCapture":
        return cls(
            microphone=str(ConfigHelper.get("Media", "microphone", fallback="default") or ""),
            camera=str(ConfigHelper.get("Media", "camera", fallback="default") or ""),
            allow_capture=ConfigHelper.getboolean("Media", "allow_capture", fallback=True),
        )

    def request_capture(self, audio: bool, video: bool) -> MediaStream:
        if not audio and not video:
            raise ValueError("At least one of audio or video must be requested")
        if self.allow_capture is False:
            log_warning("Media capture refused by configuration", func_name="LocalMediaCapture.request_capture")
            raise MediaAccessDenied("Could not access media devices. Please check permissions.")

        tracks: List[MediaTrack] = []
        if audio:
            if not self.microphone:
                raise MediaDeviceError("No microphone available")
            tracks.append(MediaTrack(AUDIO, self.microphone))
        if video:
            if not self.camera:
                raise MediaDeviceError("No camera available")
            tracks.append(MediaTrack(VIDEO, self.camera))

        log_info(
            f"Captured {len(tracks)} track(s) (audio={audio}, video={video})",
            func_name="LocalMediaCapture.request_capture",
        )
        return MediaStream(tracks)

import threading
from typing import Dict, List, Optional, Tuple

from classroom.helpers.logging_helper import log_info, log_module_import
from classroom.whiteboard.utils.drawing_surface import DEFAULT_SIZE, DrawingSurface

log_module_import(__name__)


class SurfaceRegistry:
    """One independent DrawingSurface per participant served by the web host.

    Browser participants cannot hold a Python raster, so the host keeps one on
    their behalf. Surfaces are never merged or mirrored between participants,
    and the whole registry is emptied when the session goes offline.
    """

    def __init__(self, *, size: Tuple[int, int] = DEFAULT_SIZE):
        self._lock = threading.Lock()
        self._surfaces: Dict[str, DrawingSurface] = {}
        self._size = size
        self._blank_png: Optional[bytes] = None

    @property
    def size(self) -> Tuple[int, int]:
        return self._size

    def get(self, participant_id: str, *, create: bool = False) -> Optional[DrawingSurface]:
        with self._lock:
            surface = self._surfaces.get(participant_id)
            if surface is None and create:
                surface = DrawingSurface(*self._size)
                self._surfaces[participant_id] = surface
                log_info(f"Created whiteboard surface for {participant_id}", func_name="SurfaceRegistry.get")
            return surface

    def blank_png(self) -> bytes:
        """PNG of an untouched board, shared by every participant without a surface."""

        with self._lock:
            if self._blank_png is None:
                self._blank_png = DrawingSurface(*self._size).to_png_bytes()
            return self._blank_png

    def participants(self) -> List[str]:
        with self._lock:
            return list(self._surfaces)

    def clear(self) -> int:
        with self._lock:
            count = len(self._surfaces)
            self._surfaces.clear()
        if count:
            log_info(f"Released {count} participant surface(s)", func_name="SurfaceRegistry.clear")
        return count

    def __len__(self) -> int:
        with self._lock:
            return len(self._surfaces)

import io
import threading
from typing import Iterable, Optional, Tuple

from PIL import Image, ImageDraw

from classroom.helpers.logging_helper import log_debug, log_info, log_module_import
from classroom.whiteboard.models.tool_state import ToolState
from classroom.whiteboard.utils.uploaded_images import decode_image

log_module_import(__name__)

BACKGROUND_COLOR = (255, 255, 255)
DEFAULT_SIZE: Tuple[int, int] = (1280, 720)
IMAGE_FIT_RATIO = 0.8

Point = Tuple[float, float]


def _resolve_size(width, height) -> Tuple[int, int]:
    try:
        return max(1, int(width)), max(1, int(height))
    except (TypeError, ValueError):
        return DEFAULT_SIZE


def _coerce_point(point: Iterable[float]) -> Point:
    try:
        x, y = point
        return float(x), float(y)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid point: {point!r}") from exc


def fit_image_placement(
    surface_size: Tuple[int, int], image_size: Tuple[int, int]
) -> Tuple[int, int, int, int]:
    """Return ``(x, y, width, height)`` of an image scaled to 80% of the best fit and centred."""

    surface_w, surface_h = surface_size
    image_w, image_h = image_size
    ratio = min(surface_w / image_w, surface_h / image_h) * IMAGE_FIT_RATIO
    scaled_w = max(1, int(round(image_w * ratio)))
    scaled_h = max(1, int(round(image_h * ratio)))
    return int((surface_w - scaled_w) / 2), int((surface_h - scaled_h) / 2), scaled_w, scaled_h


class DrawingSurface:
    """Raster whiteboard owned by one client.

    The buffer is opaque RGB and starts out solid white. Strokes are painted
    segment by segment as the pointer moves; there is no stroke history, so
    ``clear`` and ``initialize`` lose everything drawn so far. When
    ``read_only`` is set every mutating call is a silent no-op.
    """

    def __init__(self, width: int = DEFAULT_SIZE[0], height: int = DEFAULT_SIZE[1], *, read_only: bool = False):
        self._lock = threading.RLock()
        self._read_only = bool(read_only)
        self._last_point: Optional[Point] = None
        self._image = Image.new("RGB", _resolve_size(width, height), BACKGROUND_COLOR)

    @property
    def read_only(self) -> bool:
        return self._read_only

    @read_only.setter
    def read_only(self, value: bool) -> None:
        with self._lock:
            self._read_only = bool(value)
            if self._read_only:
                self._last_point = None

    @property
    def is_drawing(self) -> bool:
        return self._last_point is not None

    @property
    def size(self) -> Tuple[int, int]:
        return self._image.size

    @property
    def image(self) -> Image.Image:
        with self._lock:
            return self._image.copy()

    def initialize(self, width: int, height: int) -> None:
        """Resize the buffer and reset it to blank white (destructive)."""

        size = _resolve_size(width, height)
        with self._lock:
            self._image = Image.new("RGB", size, BACKGROUND_COLOR)
            self._last_point = None
        log_debug(f"Surface initialized at {size[0]}x{size[1]}", func_name="DrawingSurface.initialize")

    def begin_stroke(self, point: Iterable[float], tool_state: Optional[ToolState] = None) -> bool:
        with self._lock:
            if self._read_only:
                return False
            self._last_point = _coerce_point(point)
            return True

    def extend_stroke(self, point: Iterable[float], tool_state: ToolState) -> bool:
        with self._lock:
            if self._read_only or self._last_point is None:
                return False
            target = _coerce_point(point)
            self._draw_segment(self._last_point, target, tool_state.effective_width, tool_state.effective_color)
            self._last_point = target
            return True

    def end_stroke(self) -> bool:
        with self._lock:
            if self._last_point is None:
                return False
            self._last_point = None
            return True

    def pointer_leave(self) -> bool:
        # leaving the input region must not leave a stroke open
        return self.end_stroke()

    def draw_stroke(self, points: Iterable[Iterable[float]], tool_state: ToolState) -> bool:
        """Replay a whole pointer drag: begin at the first point, extend through the rest."""

        with self._lock:
            iterator = iter(points)
            first = next(iterator, None)
            if first is None or not self.begin_stroke(first, tool_state):
                return False
            try:
                for point in iterator:
                    self.extend_stroke(point, tool_state)
            finally:
                self.end_stroke()
            return True

    def clear(self) -> bool:
        with self._lock:
            if self._read_only:
                return False
            self._image.paste(BACKGROUND_COLOR, (0, 0, self._image.width, self._image.height))
            return True

    def insert_image(self, data: bytes) -> Optional[Tuple[int, int, int, int]]:
        """Composite an encoded image centred on the surface at 80% of the best fit.

        Returns the ``(x, y, width, height)`` placement, or ``None`` when the
        surface is read-only. Raises DecodeError before touching the buffer
        when ``data`` is not a readable image.
        """

        with self._lock:
            if self._read_only:
                return None
            decoded = decode_image(data)
            x, y, width, height = fit_image_placement(self._image.size, decoded.size)
            scaled = decoded.resize((width, height), Image.LANCZOS)
            self._image.paste(scaled, (x, y), scaled)
        log_info(
            f"Inserted {decoded.width}x{decoded.height} image at ({x}, {y}) scaled to {width}x{height}",
            func_name="DrawingSurface.insert_image",
        )
        return x, y, width, height

    def to_png_bytes(self) -> bytes:
        img = self.image
        buffer = io.BytesIO()
        try:
            img.save(buffer, format="PNG")
            return buffer.getvalue()
        finally:
            buffer.close()

    def _draw_segment(self, start: Point, end: Point, width: int, color: str) -> None:
        draw = ImageDraw.Draw(self._image)
        draw.line([start, end], fill=color, width=width)
        if width > 1:
            # round caps at both ends also give round joins between segments
            radius = width / 2.0
            for x, y in (start, end):
                draw.ellipse([x - radius, y - radius, x + radius, y + radius], fill=color)

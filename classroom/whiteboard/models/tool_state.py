from dataclasses import dataclass, replace
from enum import Enum

from classroom.helpers.logging_helper import log_module_import

log_module_import(__name__)

ERASER_WIDTH_MULTIPLIER = 6
ERASER_COLOR = "#FFFFFF"
DEFAULT_COLOR = "#000000"
DEFAULT_WIDTH = 2
MIN_WIDTH = 1
MAX_WIDTH = 20


class DrawingTool(str, Enum):
    PEN = "pen"
    ERASER = "eraser"


def normalize_tool(value: str | None) -> DrawingTool:
    candidate = str(value or "").lower().strip()
    return DrawingTool.ERASER if candidate == DrawingTool.ERASER.value else DrawingTool.PEN


def clamp_width(value) -> int:
    try:
        width = int(round(float(value)))
    except (TypeError, ValueError):
        return DEFAULT_WIDTH
    return max(MIN_WIDTH, min(MAX_WIDTH, width))


@dataclass(frozen=True)
class ToolState:
    tool: DrawingTool = DrawingTool.PEN
    color: str = DEFAULT_COLOR
    base_width: int = DEFAULT_WIDTH

    @property
    def effective_width(self) -> int:
        if self.tool == DrawingTool.ERASER:
            return self.base_width * ERASER_WIDTH_MULTIPLIER
        return self.base_width

    @property
    def effective_color(self) -> str:
        # erasing paints opaque white, it never clears to transparency
        return ERASER_COLOR if self.tool == DrawingTool.ERASER else self.color

    def with_tool(self, tool) -> "ToolState":
        return replace(self, tool=normalize_tool(getattr(tool, "value", tool)))

    def with_color(self, color: str) -> "ToolState":
        return replace(self, color=str(color or DEFAULT_COLOR))

    def with_width(self, width) -> "ToolState":
        return replace(self, base_width=clamp_width(width))

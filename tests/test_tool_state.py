from classroom.whiteboard.models.tool_state import (
    ERASER_COLOR,
    DrawingTool,
    ToolState,
    clamp_width,
    normalize_tool,
)


def test_pen_uses_its_own_color_and_width():
    state = ToolState(color="#123456", base_width=5)
    assert state.effective_width == 5
    assert state.effective_color == "#123456"


def test_eraser_is_white_and_six_times_wider():
    state = ToolState(color="#123456", base_width=3).with_tool("eraser")
    assert state.tool == DrawingTool.ERASER
    assert state.effective_width == 18
    assert state.effective_color == ERASER_COLOR
    # the pen colour is kept for when the user switches back
    assert state.with_tool(DrawingTool.PEN).effective_color == "#123456"


def test_width_is_clamped_to_slider_range():
    assert clamp_width(0) == 1
    assert clamp_width(35) == 20
    assert clamp_width("7.6") == 8
    assert clamp_width(None) == 2


def test_unknown_tool_falls_back_to_pen():
    assert normalize_tool("marker") == DrawingTool.PEN
    assert normalize_tool(" ERASER ") == DrawingTool.ERASER

from io import BytesIO

import pytest
from PIL import Image

from classroom.whiteboard.models.tool_state import DrawingTool, ToolState
from classroom.whiteboard.utils.drawing_surface import DrawingSurface, fit_image_placement
from classroom.whiteboard.utils.uploaded_images import DecodeError

WHITE = (255, 255, 255)
BLACK = (0, 0, 0)


def _png_bytes(size, color, mode="RGB"):
    buffer = BytesIO()
    Image.new(mode, size, color).save(buffer, format="PNG")
    return buffer.getvalue()


def _pen(width=2, color="#000000"):
    return ToolState(tool=DrawingTool.PEN, color=color, base_width=width)


@pytest.fixture
def surface():
    return DrawingSurface(100, 100)


def test_new_surface_is_blank_white(surface):
    assert surface.size == (100, 100)
    assert surface.image.getcolors() == [(100 * 100, WHITE)]


def test_pen_stroke_paints_segment_in_pen_color(surface):
    tool = _pen(width=4, color="#ff0000")
    assert surface.begin_stroke((10, 50), tool)
    assert surface.extend_stroke((90, 50), tool)
    surface.end_stroke()

    image = surface.image
    assert image.getpixel((50, 50)) == (255, 0, 0)
    assert image.getpixel((50, 40)) == WHITE
    assert image.getpixel((50, 60)) == WHITE


def test_eraser_paints_white_at_six_times_base_width(surface):
    surface.draw_stroke([(0, 50), (100, 50)], _pen(width=20))
    eraser = ToolState(tool=DrawingTool.ERASER, color="#ff0000", base_width=1)
    assert eraser.effective_width == 6

    surface.draw_stroke([(10, 50), (90, 50)], eraser)

    image = surface.image
    assert image.getpixel((50, 49)) == WHITE
    assert image.getpixel((50, 51)) == WHITE
    # outside the 6px eraser band the pen stroke survives
    assert image.getpixel((50, 44)) == BLACK
    assert image.getpixel((50, 56)) == BLACK


def test_click_without_movement_draws_nothing(surface):
    surface.begin_stroke((50, 50), _pen(width=10))
    surface.end_stroke()
    assert surface.image.getcolors() == [(100 * 100, WHITE)]


def test_extend_without_begin_is_ignored(surface):
    assert surface.extend_stroke((50, 50), _pen()) is False
    assert not surface.is_drawing


def test_pointer_leave_closes_the_stroke(surface):
    tool = _pen()
    surface.begin_stroke((10, 10), tool)
    assert surface.is_drawing
    surface.pointer_leave()
    assert not surface.is_drawing

    before = surface.to_png_bytes()
    assert surface.extend_stroke((80, 80), tool) is False
    assert surface.to_png_bytes() == before


def test_clear_resets_to_white(surface):
    surface.draw_stroke([(0, 0), (99, 99)], _pen(width=6))
    assert surface.clear()
    assert surface.image.getcolors() == [(100 * 100, WHITE)]


def test_initialize_resizes_and_wipes(surface):
    surface.draw_stroke([(0, 0), (99, 99)], _pen(width=6))
    surface.initialize(40, 30)
    assert surface.size == (40, 30)
    assert surface.image.getcolors() == [(40 * 30, WHITE)]


def test_fit_image_placement_keeps_aspect_and_centres():
    assert fit_image_placement((100, 100), (50, 50)) == (10, 10, 80, 80)
    assert fit_image_placement((100, 100), (200, 50)) == (10, 40, 80, 20)


def test_insert_image_is_centred_at_eighty_percent(surface):
    placement = surface.insert_image(_png_bytes((50, 50), (255, 0, 0)))
    assert placement == (10, 10, 80, 80)

    image = surface.image
    red, green, blue = image.getpixel((50, 50))
    assert red >= 250 and green <= 5 and blue <= 5
    assert image.getpixel((5, 5)) == WHITE
    assert image.getpixel((95, 95)) == WHITE


def test_insert_transparent_image_keeps_existing_content(surface):
    surface.draw_stroke([(0, 50), (100, 50)], _pen(width=10))
    surface.insert_image(_png_bytes((50, 50), (0, 0, 255, 0), mode="RGBA"))
    assert surface.image.getpixel((50, 50)) == BLACK


def test_undecodable_image_leaves_buffer_unchanged(surface):
    surface.draw_stroke([(0, 50), (100, 50)], _pen(width=10))
    before = surface.to_png_bytes()

    with pytest.raises(DecodeError):
        surface.insert_image(b"definitely not an image")
    with pytest.raises(DecodeError):
        surface.insert_image(b"")

    assert surface.to_png_bytes() == before


def test_read_only_surface_ignores_every_mutation():
    surface = DrawingSurface(100, 100, read_only=True)
    before = surface.to_png_bytes()

    assert surface.begin_stroke((10, 10), _pen()) is False
    assert surface.extend_stroke((90, 90), _pen()) is False
    assert surface.draw_stroke([(10, 10), (90, 90)], _pen(width=8)) is False
    assert surface.clear() is False
    assert surface.insert_image(_png_bytes((50, 50), (255, 0, 0))) is None

    assert surface.to_png_bytes() == before


def test_switching_to_read_only_drops_open_stroke(surface):
    surface.begin_stroke((10, 10), _pen())
    surface.read_only = True
    assert not surface.is_drawing

    surface.read_only = False
    assert surface.extend_stroke((90, 90), _pen()) is False


def test_invalid_point_raises_value_error(surface):
    with pytest.raises(ValueError):
        surface.begin_stroke("nope", _pen())

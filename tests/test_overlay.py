"""Tests for caption overlay layout and rendering."""

import pytest
from PIL import Image

from memeboard.services import overlay
from memeboard.services.overlay import (
    TextLine,
    font_size_for,
    layout_lines,
    render_overlay,
    render_preview,
    stroke_width_for,
    to_png,
)

SIZE = (500, 400)


class TestLayout:
    """Test caption line placement."""

    def test_font_metrics(self):
        assert font_size_for(500) == 42
        assert stroke_width_for(42) == 4
        assert stroke_width_for(12) == 2

    def test_top_only(self):
        assert layout_lines("hello", "", SIZE) == [TextLine("HELLO", 250, 42)]

    def test_top_lines_go_down(self):
        lines = layout_lines("one\ntwo", "", SIZE)
        assert [(line.text, line.y) for line in lines] == [("ONE", 42), ("TWO", 90)]

    def test_bottom_lines_grow_upward(self):
        lines = layout_lines("", "one\ntwo", SIZE)
        assert [(line.text, line.y) for line in lines] == [("ONE", 332), ("TWO", 380)]

    def test_single_bottom_line(self):
        assert layout_lines("", "bye", SIZE) == [TextLine("BYE", 250, 380)]

    def test_no_text(self):
        assert layout_lines("", "", SIZE) == []


class TestRender:
    """Test overlay rendering."""

    def test_canvas_size_ignores_source_aspect(self):
        source = Image.new("RGB", (1000, 200), "blue")

        result = render_overlay(source, "top", "bottom")

        assert result.size == SIZE
        assert result.mode == "RGBA"

    def test_source_untouched(self):
        source = Image.new("RGB", (100, 100), "blue")

        render_overlay(source, "top", "")

        assert source.size == (100, 100)
        assert source.getpixel((50, 5)) == (0, 0, 255)

    def test_text_is_drawn(self):
        source = Image.new("RGB", (100, 100), "blue")

        plain = render_overlay(source)
        captioned = render_overlay(source, "top text", "")

        assert plain.tobytes() != captioned.tobytes()

    def test_png_encoding(self):
        data = to_png(render_overlay(Image.new("RGB", (10, 10))))
        assert data.startswith(b"\x89PNG")

    @pytest.mark.asyncio
    async def test_preview_blank_when_image_fails(self, monkeypatch):
        async def broken(url):
            return None

        monkeypatch.setattr(overlay, "load_template_image", broken)

        image = await render_preview("https://img.example/missing.png", "top", "bottom")

        assert image.size == SIZE
        assert image.getbbox() is None

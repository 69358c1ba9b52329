"""
Caption overlay rendering for the meme generator.

The template image is stretched onto a fixed canvas (aspect ratio is not
kept) and the top and bottom captions are drawn upper-cased, centered, in a
bold display font with a dark outline and light fill.
"""

import logging
from dataclasses import dataclass
from io import BytesIO

import httpx
from PIL import Image, ImageDraw, ImageFont, UnidentifiedImageError

from memeboard.settings import settings

logger = logging.getLogger(__name__)

# Impact first, then common bold sans faces shipped with Linux distros
FONT_CANDIDATES = [
    "impact.ttf",
    "Impact.ttf",
    "/usr/share/fonts/truetype/msttcorefonts/Impact.ttf",
    "DejaVuSans-Bold.ttf",
    "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf",
    "LiberationSans-Bold.ttf",
]

LINE_GAP = 6
BOTTOM_MARGIN = 20
FILL_COLOR = "white"
STROKE_COLOR = "black"


@dataclass(frozen=True)
class TextLine:
    text: str
    x: int
    y: int  # baseline


def canvas_size() -> tuple[int, int]:
    return settings.overlay_width, settings.overlay_height


def font_size_for(width: int) -> int:
    return round(width / 12)


def stroke_width_for(font_size: int) -> int:
    return max(2, round(font_size / 10))


def layout_lines(top: str, bottom: str, size: tuple[int, int]) -> list[TextLine]:
    """Positions of every caption line on a canvas of ``size``.

    Top text starts one font-height below the top edge. Bottom text ends
    BOTTOM_MARGIN above the bottom edge and grows upward with more lines.
    """
    width, height = size
    font_size = font_size_for(width)
    step = font_size + LINE_GAP
    center = width // 2

    lines = []
    if top:
        for i, line in enumerate(top.split("\n")):
            lines.append(TextLine(line.upper(), center, font_size + i * step))
    if bottom:
        bottom_lines = bottom.split("\n")
        start = height - BOTTOM_MARGIN - (len(bottom_lines) - 1) * step
        for i, line in enumerate(bottom_lines):
            lines.append(TextLine(line.upper(), center, start + i * step))
    return lines


def load_font(font_size: int) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
    for candidate in FONT_CANDIDATES:
        try:
            return ImageFont.truetype(candidate, font_size)
        except OSError:
            continue
    logger.warning("No bold display font found; using Pillow's default font")
    return ImageFont.load_default(size=font_size)


def blank_canvas(size: tuple[int, int] | None = None) -> Image.Image:
    return Image.new("RGBA", size or canvas_size(), (0, 0, 0, 0))


def render_overlay(
    image: Image.Image,
    top: str = "",
    bottom: str = "",
    size: tuple[int, int] | None = None,
) -> Image.Image:
    """Composite ``top`` and ``bottom`` onto ``image`` stretched to ``size``.

    Pure: the source image is not modified.
    """
    size = size or canvas_size()
    canvas = image.convert("RGBA").resize(size, Image.Resampling.LANCZOS)

    font_size = font_size_for(size[0])
    font = load_font(font_size)
    stroke_width = stroke_width_for(font_size)
    draw = ImageDraw.Draw(canvas)

    for line in layout_lines(top, bottom, size):
        draw.text(
            (line.x, line.y),
            line.text,
            font=font,
            fill=FILL_COLOR,
            stroke_width=stroke_width,
            stroke_fill=STROKE_COLOR,
            anchor="ms",
        )

    return canvas


def to_png(image: Image.Image) -> bytes:
    output = BytesIO()
    image.save(output, format="PNG")
    return output.getvalue()


async def load_template_image(url: str) -> Image.Image | None:
    """Fetch and decode a template image; None when it can't be loaded."""
    try:
        async with httpx.AsyncClient(follow_redirects=True) as client:
            response = await client.get(url, timeout=settings.upload_timeout_seconds)
            response.raise_for_status()
        image = Image.open(BytesIO(response.content))
        image.load()
        return image
    except (httpx.HTTPError, UnidentifiedImageError, OSError) as e:
        logger.error("Failed to load template image %s: %s", url, e)
        return None


async def render_preview(url: str, top: str = "", bottom: str = "") -> Image.Image:
    """Overlay preview for a template URL.

    A failed image load leaves the canvas blank.
    """
    image = await load_template_image(url)
    if image is None:
        return blank_canvas()
    return render_overlay(image, top, bottom)

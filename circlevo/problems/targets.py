"""Target and starting-canvas builders for the evolution engine."""

from __future__ import annotations

from pathlib import Path

from loguru import logger
from PIL import Image, ImageDraw, ImageFont

from circlevo.exceptions import ValidationError
from circlevo.raster.buffer import RasterBuffer

DEFAULT_FONT = "DejaVuSans.ttf"


def _load_font(font_path: str | None, font_size: int) -> ImageFont.FreeTypeFont:
    try:
        return ImageFont.truetype(font_path or DEFAULT_FONT, font_size)
    except OSError:
        logger.warning(
            "[Targets] Font {} not found, using Pillow's default font",
            font_path or DEFAULT_FONT,
        )
        return ImageFont.load_default(size=font_size)


def render_text_target(
    text: str,
    width: int,
    height: int,
    *,
    font_size: int = 72,
    fill: str | tuple[int, int, int] = "black",
    font_path: str | None = None,
) -> RasterBuffer:
    """Render ``text`` centred on a transparent ``width`` x ``height`` canvas.

    Args:
        text: Text to draw; may be empty (gives a blank target)
        width: Canvas width in pixels
        height: Canvas height in pixels
        font_size: Font size in pixels
        fill: Text colour, any Pillow colour spec
        font_path: TrueType font file; DejaVu Sans (or Pillow's bundled font) if omitted

    Returns:
        Target buffer whose alpha channel traces the glyph silhouettes
    """
    if width <= 0 or height <= 0:
        raise ValidationError(f"Target size must be positive, got {width}x{height}")

    image = Image.new("RGBA", (width, height), (0, 0, 0, 0))
    if text:
        draw = ImageDraw.Draw(image)
        draw.text(
            (width / 2, height / 2),
            text,
            fill=fill,
            font=_load_font(font_path, font_size),
            anchor="mm",
        )
    return RasterBuffer.from_image(image)


def load_image_target(
    path: str | Path, size: tuple[int, int] | None = None
) -> RasterBuffer:
    """Load any Pillow-readable image as an RGBA target, optionally resized to ``size``."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Target image not found: {path}")
    with Image.open(path) as image:
        image = image.convert("RGBA")
        if size is not None:
            image = image.resize(size, Image.Resampling.LANCZOS)
        return RasterBuffer.from_image(image)


def blank_candidate(target: RasterBuffer) -> RasterBuffer:
    """Fully transparent starting canvas with the target's dimensions."""
    return RasterBuffer.blank(target.width, target.height)

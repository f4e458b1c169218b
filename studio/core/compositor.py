"""
Watermark Compositor
====================
Stamps a text or image watermark at every planned tile anchor using
PIL/Pillow.

Technical Notes:
- The stamp is rendered once, rotated once (expand=True prevents clipping)
  and composited at each anchor of the rotated grid
- All stamps go onto one transparent RGBA layer which is then
  alpha-composited over the source, so overlapping stamps blend correctly
- The source buffer is never modified; a new buffer is always returned
"""

import logging
from pathlib import Path
from typing import Optional

import numpy as np
from PIL import Image, ImageDraw, ImageFont

from .buffer import PixelBuffer
from .config import WatermarkConfig, WatermarkKind
from .layout import TileLayoutPlanner

logger = logging.getLogger(__name__)

# Candidate system fonts, tried in order when no font file is configured
SYSTEM_FONTS = (
    "msyh.ttc",  # Windows
    "/System/Library/Fonts/PingFang.ttc",  # macOS
    "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",  # Linux
)


class WatermarkCompositor:
    """
    Renders tiled watermarks onto pixel buffers.

    Fonts are loaded once per (path, size) and cached on the instance.
    """

    def __init__(self, planner: Optional[TileLayoutPlanner] = None):
        self.planner = planner or TileLayoutPlanner()
        self._cached_fonts: dict[tuple, ImageFont.ImageFont] = {}

    def _get_font(self, size: int, font_path=None):
        """
        Get or create a cached font object for the given size.

        Args:
            size: Font size in pixels.
            font_path: Optional font file; system fonts are tried otherwise.

        Returns:
            ImageFont object for drawing text.
        """
        key = (str(font_path) if font_path else None, size)
        if key in self._cached_fonts:
            return self._cached_fonts[key]

        candidates = []
        if font_path and Path(font_path).exists():
            candidates.append(str(font_path))
        candidates.extend(SYSTEM_FONTS)

        font = None
        for candidate in candidates:
            try:
                font = ImageFont.truetype(candidate, size)
                break
            except OSError:
                continue

        if font is None:
            font = ImageFont.load_default(size=size)

        self._cached_fonts[key] = font
        return font

    def clear_cache(self):
        self._cached_fonts.clear()

    def _create_text_stamp(self, config: WatermarkConfig) -> Image.Image:
        """Draw the configured text, unrotated, on a tight transparent canvas."""
        font = self._get_font(config.font_size, config.font_path)
        text = config.text.strip()

        # Measure the glyph run
        temp_draw = ImageDraw.Draw(Image.new("RGBA", (1, 1), (0, 0, 0, 0)))
        left, top, right, bottom = temp_draw.textbbox((0, 0), text, font=font)
        padding = max(2, config.font_size // 10)

        stamp = Image.new(
            "RGBA",
            (right - left + padding * 2, bottom - top + padding * 2),
            (0, 0, 0, 0)
        )
        draw = ImageDraw.Draw(stamp)
        draw.text((padding - left, padding - top), text, font=font, fill=(*config.color, config.alpha))
        return stamp

    def _create_image_stamp(self, config: WatermarkConfig) -> Image.Image:
        """Scale the stamp image so its longest side is image_size, and fade it."""
        source = config.stamp_image.to_image()
        ratio = config.image_size / max(source.width, source.height)
        new_size = (
            max(1, round(source.width * ratio)),
            max(1, round(source.height * ratio))
        )
        stamp = source.resize(new_size, Image.Resampling.LANCZOS)

        pixels = np.array(stamp, dtype=np.uint8)
        faded = np.rint(pixels[..., 3] * (config.alpha / 255.0))
        pixels[..., 3] = faded.astype(np.uint8)
        return Image.fromarray(pixels)

    def create_stamp(self, config: WatermarkConfig) -> Image.Image:
        """
        Build the rotated stamp for a configuration.

        Pillow rotates counter-clockwise, the layout rotates clockwise on
        screen, hence the sign flip.
        """
        if config.kind is WatermarkKind.IMAGE:
            stamp = self._create_image_stamp(config)
        else:
            stamp = self._create_text_stamp(config)

        # Bilinear never overshoots, so rotated edges stay within the configured alpha
        if config.rotation_degrees % 360 != 0:
            stamp = stamp.rotate(-config.rotation_degrees, expand=True, resample=Image.Resampling.BILINEAR)
        return stamp

    @staticmethod
    def _composite_at(layer: Image.Image, stamp: Image.Image, left: int, top: int):
        """Alpha-composite a stamp at (left, top), clipping it to the layer."""
        src_left = max(0, -left)
        src_top = max(0, -top)
        src_right = min(stamp.width, layer.width - left)
        src_bottom = min(stamp.height, layer.height - top)
        if src_left >= src_right or src_top >= src_bottom:
            return

        layer.alpha_composite(
            stamp,
            dest=(left + src_left, top + src_top),
            source=(src_left, src_top, src_right, src_bottom)
        )

    def render(self, buffer: PixelBuffer, config: WatermarkConfig) -> PixelBuffer:
        """
        Apply a tiled watermark to a buffer.

        Args:
            buffer: Source pixels; never modified.
            config: What to stamp and how.

        Returns:
            New PixelBuffer with the source as base layer and all stamps over it.

        Raises:
            InvalidBuffer: If the buffer violates its invariants.
            UnrenderableConfig: If the configuration cannot be rendered.
        """
        buffer.validate()
        config.validate()

        if config.alpha == 0:
            return PixelBuffer(width=buffer.width, height=buffer.height, pixels=buffer.pixels)

        placements = self.planner.plan(
            buffer.width,
            buffer.height,
            config.spacing_px,
            config.rotation_degrees,
            stagger=config.stagger
        )
        stamp = self.create_stamp(config)

        base_image = buffer.to_image()
        watermark_layer = Image.new("RGBA", base_image.size, (0, 0, 0, 0))
        for placement in placements:
            left = int(round(placement.x - stamp.width / 2))
            top = int(round(placement.y - stamp.height / 2))
            self._composite_at(watermark_layer, stamp, left, top)

        result = Image.alpha_composite(base_image, watermark_layer)
        logger.debug("Rendered %d %s stamps on %dx%d", len(placements), config.kind.value,
                     buffer.width, buffer.height)
        return PixelBuffer.from_image(result)


# Convenience function for simple usage
def render(buffer: PixelBuffer, config: WatermarkConfig) -> PixelBuffer:
    """
    Render a tiled watermark with a fresh compositor.

    Args:
        buffer: Source pixels.
        config: Watermark configuration.

    Returns:
        Watermarked copy of the buffer.
    """
    return WatermarkCompositor().render(buffer, config)

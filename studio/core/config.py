"""
Watermark Configuration
=======================
Describes what to stamp and how: text or image content, colour, opacity,
rotation and tile spacing.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional, Tuple, Union

from .buffer import PixelBuffer
from .errors import UnrenderableConfig


class WatermarkKind(Enum):
    TEXT = "text"
    IMAGE = "image"


def parse_hex_color(value: str) -> Tuple[int, int, int]:
    """
    Parse "#rrggbb" or "#rgb" into an RGB tuple.

    Raises:
        UnrenderableConfig: If the string is not a valid hex colour.
    """
    digits = (value or "").strip().lstrip("#")
    if len(digits) == 3:
        digits = "".join(ch * 2 for ch in digits)

    if len(digits) != 6:
        raise UnrenderableConfig(f"Invalid hex colour: {value!r}")

    try:
        return int(digits[0:2], 16), int(digits[2:4], 16), int(digits[4:6], 16)
    except ValueError as e:
        raise UnrenderableConfig(f"Invalid hex colour: {value!r}") from e


@dataclass(frozen=True)
class WatermarkConfig:
    """
    Configuration for a tiled watermark.

    Attributes:
        kind: TEXT stamps `text`, IMAGE stamps `stamp_image`.
        text: Text content for TEXT watermarks.
        font_size: Font size in pixels.
        color: RGB text colour.
        opacity: 0.0 (invisible) to 1.0 (opaque); clamped into that range.
        rotation_degrees: Rotation of the whole tile layer, clockwise on screen.
        spacing_px: Distance between neighbouring tile anchors.
        image_size: Longest side of the scaled stamp image in pixels.
        stamp_image: Stamp pixels for IMAGE watermarks.
        stagger: Shift every other row by half a tile (brick layout).
        font_path: Optional TTF/OTF font file.
    """
    kind: WatermarkKind = WatermarkKind.TEXT
    text: str = ""
    font_size: int = 48
    color: Tuple[int, int, int] = (0, 0, 0)
    opacity: float = 0.3
    rotation_degrees: float = -45.0
    spacing_px: int = 250
    image_size: int = 100
    stamp_image: Optional[PixelBuffer] = None
    stagger: bool = False
    font_path: Optional[Union[str, Path]] = None

    @property
    def alpha(self) -> int:
        """Opacity as an 8-bit alpha value."""
        opacity = max(0.0, min(1.0, float(self.opacity)))
        return int(round(opacity * 255))

    def validate(self):
        """
        Check that the configuration can be rendered.

        Raises:
            UnrenderableConfig: On missing content or non-positive sizes.
        """
        if self.kind is WatermarkKind.TEXT:
            if not self.text or not self.text.strip():
                raise UnrenderableConfig("Watermark text cannot be empty")
            if self.font_size <= 0:
                raise UnrenderableConfig("Font size must be positive")
        elif self.kind is WatermarkKind.IMAGE:
            if self.stamp_image is None:
                raise UnrenderableConfig("Image watermark requires a stamp image")
            if self.image_size <= 0:
                raise UnrenderableConfig("Stamp image size must be positive")
        else:
            raise UnrenderableConfig(f"Unknown watermark kind: {self.kind!r}")

        if self.spacing_px <= 0:
            raise UnrenderableConfig("Tile spacing must be positive")

        if len(self.color) != 3 or not all(0 <= c <= 255 for c in self.color):
            raise UnrenderableConfig(f"Colour must be an RGB tuple of 0-255 values, got {self.color}")

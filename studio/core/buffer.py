"""
Pixel Buffer
============
The shared substrate of the detection and rendering engines: a width, a
height and a row-major RGBA byte plane.

Technical Notes:
- Buffers are immutable; every operation that changes pixels returns a new one
- `as_array()` exposes a read-only numpy view, no copy is made
- Image decode/encode helpers live here so the engines never touch files
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Union

import numpy as np
from PIL import Image

from .errors import InvalidBuffer

CHANNELS = 4

# EXIF orientation value -> counter-clockwise rotation in degrees
_EXIF_ROTATIONS = {
    3: 180,
    6: 270,
    8: 90
}
_EXIF_ORIENTATION_TAG = 0x0112


@dataclass(frozen=True)
class PixelBuffer:
    """
    Raw RGBA pixel data.

    Attributes:
        width: Width in pixels, must be positive.
        height: Height in pixels, must be positive.
        pixels: Row-major RGBA bytes, exactly width * height * 4 long.
    """
    width: int
    height: int
    pixels: bytes

    def __post_init__(self):
        if not isinstance(self.pixels, bytes):
            object.__setattr__(self, "pixels", bytes(self.pixels))
        self.validate()

    def validate(self):
        """
        Check the buffer invariants.

        Raises:
            InvalidBuffer: If a dimension is zero or the pixel plane has the wrong length.
        """
        if self.width <= 0 or self.height <= 0:
            raise InvalidBuffer(
                f"Buffer dimensions must be positive, got {self.width}x{self.height}"
            )

        expected = self.width * self.height * CHANNELS
        if len(self.pixels) != expected:
            raise InvalidBuffer(
                f"Pixel plane has {len(self.pixels)} bytes, "
                f"expected {expected} for {self.width}x{self.height} RGBA"
            )

    @property
    def size(self) -> tuple[int, int]:
        return self.width, self.height

    def as_array(self) -> np.ndarray:
        """Return a read-only (height, width, 4) uint8 view of the pixels."""
        return np.frombuffer(self.pixels, dtype=np.uint8).reshape(
            self.height, self.width, CHANNELS
        )

    def to_image(self) -> Image.Image:
        """Return a new RGBA PIL Image holding a copy of the pixels."""
        return Image.frombytes("RGBA", (self.width, self.height), self.pixels)

    @classmethod
    def from_array(cls, array: np.ndarray) -> "PixelBuffer":
        """
        Build a buffer from a (height, width, 4) array.

        Raises:
            InvalidBuffer: If the array is not three-dimensional with 4 channels.
        """
        if array.ndim != 3 or array.shape[2] != CHANNELS:
            raise InvalidBuffer(f"Expected a (height, width, 4) array, got {array.shape}")

        height, width = array.shape[:2]
        data = np.ascontiguousarray(array, dtype=np.uint8).tobytes()
        return cls(width=width, height=height, pixels=data)

    @classmethod
    def from_image(cls, image: Image.Image) -> "PixelBuffer":
        """Build a buffer from any PIL Image, converting it to RGBA first."""
        if image.mode != "RGBA":
            image = image.convert("RGBA")
        return cls(width=image.width, height=image.height, pixels=image.tobytes("raw", "RGBA"))

    @classmethod
    def filled(cls, width: int, height: int, rgba: tuple[int, int, int, int]) -> "PixelBuffer":
        """Build a buffer of a single colour."""
        if width <= 0 or height <= 0:
            raise InvalidBuffer(f"Buffer dimensions must be positive, got {width}x{height}")
        return cls(width=width, height=height, pixels=bytes(rgba) * (width * height))


def _apply_exif_orientation(image: Image.Image) -> Image.Image:
    """
    Apply EXIF orientation so phone photos are not sideways.

    Cameras often save rotation as metadata instead of rotating the pixels.
    """
    orientation = image.getexif().get(_EXIF_ORIENTATION_TAG)
    if orientation in _EXIF_ROTATIONS:
        return image.rotate(_EXIF_ROTATIONS[orientation], expand=True)
    return image


def load_buffer(image_path: Union[str, Path]) -> PixelBuffer:
    """
    Decode an image file into an RGBA pixel buffer.

    Args:
        image_path: Path to any image format Pillow can read.

    Returns:
        PixelBuffer with EXIF orientation applied.

    Raises:
        FileNotFoundError: If the file doesn't exist.
    """
    image_path = Path(image_path)
    if not image_path.exists():
        raise FileNotFoundError(f"Image not found: {image_path}")

    with Image.open(image_path) as image:
        image.load()
        oriented = _apply_exif_orientation(image)
        return PixelBuffer.from_image(oriented)


def save_buffer(buffer: PixelBuffer, output_path: Union[str, Path]) -> Path:
    """
    Encode a pixel buffer to disk, format chosen by the file extension.

    JPEG has no alpha channel, so the buffer is flattened onto white first.

    Returns:
        The path written.
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    image = buffer.to_image()
    suffix = output_path.suffix.lower()
    if suffix in [".jpg", ".jpeg"]:
        rgb_image = Image.new("RGB", image.size, (255, 255, 255))
        rgb_image.paste(image, mask=image.split()[3])
        rgb_image.save(output_path, quality=95)
    else:
        image.save(output_path)

    return output_path

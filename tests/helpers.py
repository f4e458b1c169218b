"""
Shared factories for synthetic test images.
"""

import numpy as np
from PIL import Image

from studio.core.buffer import PixelBuffer


def gradient_array(width: int = 400, height: int = 300) -> np.ndarray:
    """Opaque RGBA gradient, a stand-in for a natural photo."""
    xs = np.linspace(0, 255, width, dtype=np.float64)
    ys = np.linspace(0, 255, height, dtype=np.float64)
    arr = np.zeros((height, width, 4), dtype=np.uint8)
    arr[..., 0] = xs[np.newaxis, :].astype(np.uint8)
    arr[..., 1] = ys[:, np.newaxis].astype(np.uint8)
    arr[..., 2] = 128
    arr[..., 3] = 255
    return arr


def gradient_buffer(width: int = 400, height: int = 300) -> PixelBuffer:
    return PixelBuffer.from_array(gradient_array(width, height))


def tiled_block_buffer(tiles: int = 8, alpha: int = 128) -> PixelBuffer:
    """
    An identical 50x50 block repeated on a grid, with a fixed alpha.

    The block carries a gentle gradient so it is not a flat colour.
    """
    coords = np.arange(50)
    block = np.zeros((50, 50, 4), dtype=np.uint8)
    block[..., 0] = (100 + coords * 40 // 49)[np.newaxis, :]
    block[..., 1] = (100 + coords * 40 // 49)[:, np.newaxis]
    block[..., 2] = 120
    block[..., 3] = alpha
    return PixelBuffer.from_array(np.tile(block, (tiles, tiles, 1)))


def save_png(buffer: PixelBuffer, path) -> None:
    Image.frombytes("RGBA", buffer.size, buffer.pixels).save(path)

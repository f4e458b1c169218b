"""
Block Sampler
=============
Extracts fixed-size, stride-spaced blocks of channel values from a buffer.
"""

import numpy as np

from .buffer import PixelBuffer


class BlockSampler:
    """
    Reads square windows of RGBA values from a pixel buffer.

    Coordinates that fall outside the buffer are skipped rather than
    treated as errors, so a window hanging over an edge simply yields a
    shorter sample.
    """

    @staticmethod
    def _axis(origin: int, size: int, stride: int, limit: int) -> np.ndarray:
        coords = np.arange(origin, origin + size, stride)
        return coords[(coords >= 0) & (coords < limit)]

    def sample(
            self,
            buffer: PixelBuffer,
            origin_x: int,
            origin_y: int,
            size: int,
            stride: int
    ) -> np.ndarray:
        """
        Sample a size x size window starting at (origin_x, origin_y).

        Args:
            buffer: Source pixels.
            origin_x: Left edge of the window (may be negative).
            origin_y: Top edge of the window (may be negative).
            size: Window side length in pixels.
            stride: Distance between sampled pixels on both axes.

        Returns:
            1-D uint8 array of R, G, B, A values, row by row.
        """
        if size <= 0 or stride <= 0:
            return np.empty(0, dtype=np.uint8)

        ys = self._axis(origin_y, size, stride, buffer.height)
        xs = self._axis(origin_x, size, stride, buffer.width)
        if ys.size == 0 or xs.size == 0:
            return np.empty(0, dtype=np.uint8)

        block = buffer.as_array()[np.ix_(ys, xs)]
        return block.reshape(-1)

"""
Heuristic Detectors
===================
Four independent heuristics, each scoring in [0, 1] how strongly a buffer
shows one trait of a tiled, semi-transparent watermark overlay.

Technical Notes:
- No reference watermark is needed; every detector works on raw pixels only
- Every threshold is a named field of DetectionThresholds so it can be
  recalibrated without touching detector logic
- Missing signal (tiny images, no translucent pixels) scores 0, never raises
"""

import logging
import math
from collections import Counter
from dataclasses import dataclass
from typing import Optional

import numpy as np

from .buffer import PixelBuffer
from .sampler import BlockSampler

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DetectionThresholds:
    """Tunable constants shared by the detectors and the aggregator."""

    # Repeating patterns
    sample_count: int = 20
    sample_size: int = 50
    sample_stride: int = 5
    similarity_threshold: float = 0.7

    # Semi-transparent band (exclusive on both ends)
    alpha_low: int = 50
    alpha_high: int = 240

    # Overlay transparency
    transparency_grid_stride: int = 10
    transparency_amplification: float = 20.0

    # Diagonal arrangement
    diagonal_step: int = 100
    diagonal_max_difference: int = 100

    # Colour consistency
    color_byte_stride: int = 400
    color_quantization: int = 20
    color_amplification: float = 2.0

    # Aggregation
    pattern_weight: float = 0.3
    transparency_weight: float = 0.3
    diagonal_weight: float = 0.2
    color_weight: float = 0.2
    verdict_threshold: float = 0.5
    reason_threshold: float = 0.5
    max_confidence: int = 95
    clean_confidence_scale: float = 90.0


DEFAULT_THRESHOLDS = DetectionThresholds()


def clamp_score(value: float) -> float:
    """Clamp a score into [0, 1], mapping NaN to 0."""
    if math.isnan(value):
        return 0.0
    return max(0.0, min(1.0, float(value)))


def calculate_similarity(sample_a: np.ndarray, sample_b: np.ndarray) -> float:
    """
    Normalized inverse mean absolute difference of two samples.

    Returns:
        1.0 for identical samples, 0.0 for maximally different ones.
        Samples of different (or zero) length score 0.
    """
    if len(sample_a) != len(sample_b) or len(sample_a) == 0:
        return 0.0

    diff = np.abs(np.asarray(sample_a, dtype=np.int32) - np.asarray(sample_b, dtype=np.int32))
    max_diff = len(sample_a) * 255
    return clamp_score(1.0 - int(diff.sum()) / max_diff)


def semi_transparent_mask(alpha: np.ndarray, thresholds: DetectionThresholds) -> np.ndarray:
    return (alpha > thresholds.alpha_low) & (alpha < thresholds.alpha_high)


class PatternSimilarityDetector:
    """
    Looks for near-duplicate blocks at random positions.

    Tiled watermarks repeat identical content across the image, so random
    block pairs match far more often than they do in a natural photo.
    """

    def __init__(self, thresholds: Optional[DetectionThresholds] = None):
        self.thresholds = thresholds or DEFAULT_THRESHOLDS
        self._sampler = BlockSampler()

    def collect_samples(self, buffer: PixelBuffer, rng: np.random.Generator) -> list[np.ndarray]:
        t = self.thresholds
        samples = []
        for _ in range(t.sample_count):
            x = max(0, math.floor(rng.random() * (buffer.width - t.sample_size)))
            y = max(0, math.floor(rng.random() * (buffer.height - t.sample_size)))
            samples.append(self._sampler.sample(buffer, x, y, t.sample_size, t.sample_stride))
        return samples

    def score(self, buffer: PixelBuffer, rng: np.random.Generator) -> float:
        samples = self.collect_samples(buffer, rng)

        similar_pairs = 0
        total_comparisons = 0
        for i in range(len(samples) - 1):
            for j in range(i + 1, len(samples)):
                total_comparisons += 1
                if calculate_similarity(samples[i], samples[j]) > self.thresholds.similarity_threshold:
                    similar_pairs += 1

        if total_comparisons == 0:
            return 0.0
        return clamp_score(similar_pairs / total_comparisons)


class OverlayTransparencyDetector:
    """Measures how much of a sparse pixel grid sits in the semi-transparent band."""

    def __init__(self, thresholds: Optional[DetectionThresholds] = None):
        self.thresholds = thresholds or DEFAULT_THRESHOLDS

    def score(self, buffer: PixelBuffer) -> float:
        t = self.thresholds
        stride = t.transparency_grid_stride
        alpha = buffer.as_array()[::stride, ::stride, 3]
        if alpha.size == 0:
            return 0.0

        ratio = int(semi_transparent_mask(alpha, t).sum()) / alpha.size
        # A few percent of translucent pixels is already unusual for a photo
        return clamp_score(ratio * t.transparency_amplification)


class DiagonalPatternDetector:
    """Compares pixels a fixed step apart along the main diagonal."""

    def __init__(self, thresholds: Optional[DetectionThresholds] = None):
        self.thresholds = thresholds or DEFAULT_THRESHOLDS

    def score(self, buffer: PixelBuffer) -> float:
        step = self.thresholds.diagonal_step
        pixels = buffer.as_array()

        similar = 0
        checks = 0
        for i in range(0, min(buffer.width, buffer.height) - step * 2, step):
            first = pixels[i, i].astype(np.int32)
            second = pixels[i + step, i + step].astype(np.int32)
            difference = int(np.abs(first - second).sum())
            if difference < self.thresholds.diagonal_max_difference:
                similar += 1
            checks += 1

        if checks == 0:
            return 0.0
        return clamp_score(similar / checks)


class ColorConsistencyDetector:
    """
    Checks whether translucent pixels share one dominant colour.

    Sampling walks the flat byte plane at a fixed stride, ignoring rows and
    columns. Colours are quantized into coarse buckets; only the largest
    bucket matters, so bucket order is irrelevant.
    """

    def __init__(self, thresholds: Optional[DetectionThresholds] = None):
        self.thresholds = thresholds or DEFAULT_THRESHOLDS

    def bucket_colors(self, buffer: PixelBuffer) -> Counter:
        t = self.thresholds
        flat = np.frombuffer(buffer.pixels, dtype=np.uint8)
        offsets = np.arange(0, flat.size, t.color_byte_stride)
        # Offsets too close to the end cannot hold a whole pixel
        offsets = offsets[offsets + 3 < flat.size]

        alpha = flat[offsets + 3]
        keep = offsets[semi_transparent_mask(alpha, t)]
        rgb = np.stack([flat[keep], flat[keep + 1], flat[keep + 2]], axis=1) // t.color_quantization
        return Counter(map(tuple, rgb.tolist()))

    def score(self, buffer: PixelBuffer) -> float:
        buckets = self.bucket_colors(buffer)
        total = sum(buckets.values())
        if total == 0:
            return 0.0

        dominant = max(buckets.values())
        logger.debug("Colour buckets: %d distinct, dominant %d of %d", len(buckets), dominant, total)
        return clamp_score(dominant / total * self.thresholds.color_amplification)

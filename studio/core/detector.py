"""
Watermark Detector
==================
Combines the four heuristic scores into a verdict with a confidence and a
human-readable reason.

Technical Notes:
- Detection is deterministic for a given seed; the random source is created
  per run and never shared between runs
- A detector instance rejects (does not queue) a run while another is active
- Confidence is a 0-100 heuristic, not a calibrated probability
"""

import logging
import math
import threading
from dataclasses import dataclass, field
from typing import Optional

import numpy as np

from .buffer import PixelBuffer
from .detectors import (
    DEFAULT_THRESHOLDS,
    DetectionThresholds,
    PatternSimilarityDetector,
    OverlayTransparencyDetector,
    DiagonalPatternDetector,
    ColorConsistencyDetector,
    clamp_score,
)
from .errors import DetectionInProgress

logger = logging.getLogger(__name__)

NO_WATERMARK_REASON = "No obvious watermark patterns detected"
DETECTED_REASON_PREFIX = "Detected tiled watermark with "


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


@dataclass(frozen=True)
class DetectionScores:
    """Per-heuristic scores of one detection run."""
    pattern: float = 0.0
    transparency: float = 0.0
    diagonal: float = 0.0
    color_consistency: float = 0.0
    thresholds: DetectionThresholds = field(default=DEFAULT_THRESHOLDS, repr=False)

    @property
    def total(self) -> float:
        t = self.thresholds
        return clamp_score(
            self.pattern * t.pattern_weight
            + self.transparency * t.transparency_weight
            + self.diagonal * t.diagonal_weight
            + self.color_consistency * t.color_weight
        )

    def reasons(self) -> list[str]:
        """Labels of every heuristic that individually crossed the reason threshold."""
        limit = self.thresholds.reason_threshold
        labelled = [
            (self.pattern, "repeating patterns"),
            (self.transparency, "semi-transparent overlay"),
            (self.diagonal, "diagonal arrangements"),
            (self.color_consistency, "consistent coloring"),
        ]
        return [label for score, label in labelled if score > limit]


@dataclass(frozen=True)
class DetectionVerdict:
    """Outcome of one detection run."""
    has_watermark: bool
    confidence: int
    reason: str
    scores: DetectionScores = field(default_factory=DetectionScores)

    @classmethod
    def from_scores(cls, scores: DetectionScores) -> "DetectionVerdict":
        t = scores.thresholds
        total = scores.total

        if total > t.verdict_threshold:
            confidence = min(t.max_confidence, round_half_up(total * 100))
            reason = DETECTED_REASON_PREFIX + ", ".join(scores.reasons())
            has_watermark = True
        else:
            confidence = round_half_up((1 - total) * t.clean_confidence_scale)
            reason = NO_WATERMARK_REASON
            has_watermark = False

        return cls(
            has_watermark=has_watermark,
            confidence=max(0, min(100, confidence)),
            reason=reason,
            scores=scores
        )


class WatermarkDetector:
    """
    Heuristic detector for tiled, semi-transparent watermark overlays.

    Usage:
        detector = WatermarkDetector()
        verdict = detector.detect(buffer, rng_seed=42)
    """

    def __init__(self, thresholds: Optional[DetectionThresholds] = None):
        """
        Initialize the detector.

        Args:
            thresholds: Optional recalibrated constants. Defaults to the
                        built-in DetectionThresholds.
        """
        self.thresholds = thresholds or DEFAULT_THRESHOLDS
        self.pattern_detector = PatternSimilarityDetector(self.thresholds)
        self.transparency_detector = OverlayTransparencyDetector(self.thresholds)
        self.diagonal_detector = DiagonalPatternDetector(self.thresholds)
        self.color_detector = ColorConsistencyDetector(self.thresholds)
        self._run_lock = threading.Lock()

    @property
    def is_running(self) -> bool:
        return self._run_lock.locked()

    def score(self, buffer: PixelBuffer, rng_seed: int) -> DetectionScores:
        """Run all four heuristics on a validated buffer."""
        rng = np.random.default_rng(rng_seed)
        scores = DetectionScores(
            pattern=clamp_score(self.pattern_detector.score(buffer, rng)),
            transparency=clamp_score(self.transparency_detector.score(buffer)),
            diagonal=clamp_score(self.diagonal_detector.score(buffer)),
            color_consistency=clamp_score(self.color_detector.score(buffer)),
            thresholds=self.thresholds
        )
        logger.debug(
            "Scores for %dx%d: pattern=%.3f transparency=%.3f diagonal=%.3f color=%.3f total=%.3f",
            buffer.width, buffer.height, scores.pattern, scores.transparency,
            scores.diagonal, scores.color_consistency, scores.total
        )
        return scores

    def detect(self, buffer: PixelBuffer, rng_seed: int) -> DetectionVerdict:
        """
        Estimate whether a tiled watermark is already present.

        Args:
            buffer: Pixels to analyze; never modified.
            rng_seed: Seed for block sampling, same seed gives the same verdict.

        Returns:
            A fresh DetectionVerdict.

        Raises:
            InvalidBuffer: If the buffer violates its invariants.
            DetectionInProgress: If this detector is already running.
        """
        if not self._run_lock.acquire(blocking=False):
            raise DetectionInProgress("A detection run is already in progress")

        try:
            buffer.validate()
            verdict = DetectionVerdict.from_scores(self.score(buffer, rng_seed))
        finally:
            self._run_lock.release()

        logger.info(
            "Detection finished: has_watermark=%s confidence=%d",
            verdict.has_watermark, verdict.confidence
        )
        return verdict


# Shared by the convenience function so re-entrant calls are rejected
default_detector = WatermarkDetector()


# Convenience function for simple usage
def detect(buffer: PixelBuffer, rng_seed: int) -> DetectionVerdict:
    """
    Detect a tiled watermark with the module-level default detector.

    Re-entry is rejected per detector instance; WatermarkDetector objects
    created elsewhere run independently of this one.

    Args:
        buffer: Pixels to analyze.
        rng_seed: Seed for block sampling.

    Returns:
        DetectionVerdict for the buffer.
    """
    return default_detector.detect(buffer, rng_seed)

"""
Export Policy
=============
Decides whether an image may receive a new watermark, based on the
detection verdict for it.
"""

from dataclasses import dataclass
from enum import Enum

from .detector import DetectionVerdict


class ExportAction(Enum):
    ALLOW = "allow"
    WARN = "warn"
    BLOCK = "block"


@dataclass(frozen=True)
class ExportDecision:
    action: ExportAction
    message: str = ""

    @property
    def allowed(self) -> bool:
        return self.action is not ExportAction.BLOCK


class ExportPolicy:
    """
    Blocks images that already carry a confidently detected watermark.

    A detected watermark at or above `block_confidence` blocks export; a
    detected watermark below it only warns.
    """

    DEFAULT_BLOCK_CONFIDENCE = 70

    def __init__(self, block_confidence: int = DEFAULT_BLOCK_CONFIDENCE):
        self.block_confidence = block_confidence

    def evaluate(self, verdict: DetectionVerdict) -> ExportDecision:
        if not verdict.has_watermark:
            return ExportDecision(ExportAction.ALLOW)

        if verdict.confidence >= self.block_confidence:
            return ExportDecision(
                ExportAction.BLOCK,
                f"Existing watermark detected (confidence {verdict.confidence}%). "
                "Applying another watermark is disabled."
            )

        return ExportDecision(
            ExportAction.WARN,
            f"Possible watermark detected (low confidence {verdict.confidence}%). "
            "Proceed with caution."
        )

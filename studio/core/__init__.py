"""
Core Module - Pure Algorithm Logic
==================================
This module contains no UI dependencies.
Watermark detection and tiled rendering are implemented here.
"""

from .buffer import PixelBuffer, load_buffer, save_buffer
from .compositor import WatermarkCompositor, render
from .config import WatermarkConfig, WatermarkKind, parse_hex_color
from .detector import DetectionScores, DetectionVerdict, WatermarkDetector, detect
from .detectors import DetectionThresholds, calculate_similarity
from .errors import DetectionInProgress, InvalidBuffer, UnrenderableConfig
from .layout import TileLayoutPlanner, TilePlacement
from .policy import ExportAction, ExportDecision, ExportPolicy
from .sampler import BlockSampler

__all__ = [
    "PixelBuffer",
    "load_buffer",
    "save_buffer",
    "BlockSampler",
    "DetectionThresholds",
    "calculate_similarity",
    "DetectionScores",
    "DetectionVerdict",
    "WatermarkDetector",
    "detect",
    "WatermarkConfig",
    "WatermarkKind",
    "parse_hex_color",
    "TileLayoutPlanner",
    "TilePlacement",
    "WatermarkCompositor",
    "render",
    "ExportAction",
    "ExportDecision",
    "ExportPolicy",
    "InvalidBuffer",
    "UnrenderableConfig",
    "DetectionInProgress",
]

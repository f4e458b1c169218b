"""
Workers Module - Async Thread Management
========================================
Contains QThread workers for non-blocking detection and watermarking.

Components:
- DetectWorker / DetectManager: Watermark detection, one run at a time
- RenderWorker: Batch tiled watermarking with progress tracking
"""

from .detect_worker import DetectWorker, DetectManager, DetectConfig, DetectResult
from .render_worker import RenderWorker, RenderConfig, RenderResult

__all__ = [
    # Detect
    "DetectWorker",
    "DetectManager",
    "DetectConfig",
    "DetectResult",
    # Render
    "RenderWorker",
    "RenderConfig",
    "RenderResult",
]

"""
Watermark Studio Package
========================
Tiled watermark detection and rendering on raw RGBA pixel buffers.

Modules:
    - core: Pure algorithm logic (no Qt dependencies)
    - workers: QThread workers for async processing

Usage:
    from studio.core import PixelBuffer, WatermarkConfig, detect, render
    from studio.workers import DetectManager, RenderWorker
"""

__version__ = "1.0.0"
__app_name__ = "Watermark Studio"

# Core exports
from .core import (
    PixelBuffer,
    WatermarkConfig,
    WatermarkKind,
    WatermarkDetector,
    WatermarkCompositor,
    DetectionVerdict,
    ExportPolicy,
    detect,
    render,
)

__all__ = [
    # Version info
    "__version__",
    "__app_name__",

    # Core
    "PixelBuffer",
    "WatermarkConfig",
    "WatermarkKind",
    "WatermarkDetector",
    "WatermarkCompositor",
    "DetectionVerdict",
    "ExportPolicy",
    "detect",
    "render",
]

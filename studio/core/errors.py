"""
Core Exceptions
===============
Typed failures raised by the detection and rendering engines.
"""


class InvalidBuffer(ValueError):
    """Pixel buffer has a zero dimension or a pixel plane of the wrong size."""


class UnrenderableConfig(ValueError):
    """Watermark configuration cannot be rendered (no text, no stamp image, ...)."""


class DetectionInProgress(RuntimeError):
    """A detection run was requested while another one is still active."""

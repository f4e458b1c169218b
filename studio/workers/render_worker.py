"""
Render Worker - Async Batch Watermarking
========================================
QThread worker that applies a tiled watermark to a batch of images.

Workflow:
1. For each image in the queue:
   a. Decode it into a pixel buffer
   b. Detect an existing watermark and consult the export policy
   c. Render the tiled watermark (unless blocked)
   d. Save to the output directory as filename_watermarked.png
2. Emit progress signals during processing
3. Emit finished signal with results
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, List

from PyQt6.QtCore import QThread, pyqtSignal

from studio.core.buffer import load_buffer, save_buffer
from studio.core.compositor import WatermarkCompositor
from studio.core.config import WatermarkConfig
from studio.core.detector import DetectionVerdict, WatermarkDetector
from studio.core.policy import ExportAction, ExportDecision, ExportPolicy

logger = logging.getLogger(__name__)


@dataclass
class RenderConfig:
    """Complete configuration for batch watermarking."""
    image_paths: List[Path] = field(default_factory=list)
    output_dir: Path = field(default_factory=lambda: Path.cwd() / "output")
    watermark: WatermarkConfig = field(default_factory=WatermarkConfig)
    rng_seed: int = 0

    # Skip detection and the export policy entirely
    force: bool = False
    block_confidence: int = ExportPolicy.DEFAULT_BLOCK_CONFIDENCE

    output_format: str = "png"


@dataclass
class RenderResult:
    """Result of watermarking a single image."""
    source_path: Path
    output_path: Optional[Path] = None
    verdict: Optional[DetectionVerdict] = None
    decision: Optional[ExportDecision] = None
    success: bool = False
    error_message: str = ""


class RenderWorker(QThread):
    """
    Worker thread for applying tiled watermarks to images.

    Signals:
        progress(int, int, str): (current, total, current_file_name)
        image_completed(RenderResult): Emitted when each image is processed
        finished_all(list[RenderResult]): Emitted when all images are done
        error(str): Emitted on critical errors
    """

    progress = pyqtSignal(int, int, str)  # current, total, filename
    image_completed = pyqtSignal(object)  # RenderResult
    finished_all = pyqtSignal(list)  # List[RenderResult]
    error = pyqtSignal(str)

    def __init__(self, config: RenderConfig, parent=None):
        """
        Initialize the render worker.

        Args:
            config: RenderConfig with all watermark settings.
            parent: Optional parent QObject.
        """
        super().__init__(parent)
        self.config = config
        self._is_cancelled = False

        self._compositor: Optional[WatermarkCompositor] = None
        self._detector: Optional[WatermarkDetector] = None
        self._policy = ExportPolicy(config.block_confidence)

    def cancel(self):
        """Request cancellation of the worker."""
        self._is_cancelled = True

    def _setup_processors(self):
        self._compositor = WatermarkCompositor()
        if not self.config.force:
            self._detector = WatermarkDetector()

    def _cleanup_processors(self):
        if self._compositor is not None:
            self._compositor.clear_cache()
            self._compositor = None
        self._detector = None

    def _generate_output_filename(self, source_path: Path) -> str:
        return f"{source_path.stem}_watermarked.{self.config.output_format}"

    def _process_single_image(self, image_path: Path) -> RenderResult:
        """
        Watermark a single image.

        Args:
            image_path: Path to the source image.

        Returns:
            RenderResult with processing outcome.
        """
        result = RenderResult(source_path=image_path)

        try:
            buffer = load_buffer(image_path)

            if self._detector is not None:
                result.verdict = self._detector.detect(buffer, self.config.rng_seed)
                result.decision = self._policy.evaluate(result.verdict)

                if result.decision.action is ExportAction.BLOCK:
                    result.error_message = result.decision.message
                    logger.warning("%s: %s", image_path.name, result.decision.message)
                    return result

                if result.decision.action is ExportAction.WARN:
                    logger.warning("%s: %s", image_path.name, result.decision.message)

            rendered = self._compositor.render(buffer, self.config.watermark)

            output_path = self.config.output_dir / self._generate_output_filename(image_path)
            result.output_path = save_buffer(rendered, output_path)
            result.success = True

        except Exception as e:
            result.success = False
            result.error_message = str(e)
            logger.exception("Failed to watermark %s", image_path)

        return result

    def run(self):
        """
        Main worker execution.

        Processes all images in the config and emits progress signals.
        """
        results: List[RenderResult] = []
        total = len(self.config.image_paths)

        if total == 0:
            self.error.emit("No images to process")
            self.finished_all.emit(results)
            return

        try:
            # Fail once for the whole batch rather than once per image
            self.config.watermark.validate()
            self.config.output_dir.mkdir(parents=True, exist_ok=True)

            self._setup_processors()

            for idx, image_path in enumerate(self.config.image_paths):
                if self._is_cancelled:
                    break

                self.progress.emit(idx + 1, total, image_path.name)

                result = self._process_single_image(image_path)
                results.append(result)

                self.image_completed.emit(result)

        except Exception as e:
            self.error.emit(f"Critical error: {str(e)}")
            logger.exception("Batch watermarking aborted")

        finally:
            self._cleanup_processors()

        self.finished_all.emit(results)

"""
Detect Worker - Async Watermark Detection
=========================================
QThread worker that runs watermark detection off the UI thread, plus a
manager that allows a single run at a time.

Workflow:
1. Load the image (or take an already decoded buffer)
2. Run the heuristic detector with the configured seed
3. Emit the verdict

Concurrency:
- DetectManager REJECTS a new request while a run is in flight; it never
  queues, since the random source of a run must not interleave with another
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from PyQt6.QtCore import QThread, QObject, pyqtSignal, QMutex, QMutexLocker

from studio.core.buffer import PixelBuffer, load_buffer
from studio.core.detector import DetectionVerdict, WatermarkDetector

logger = logging.getLogger(__name__)


@dataclass
class DetectConfig:
    """Configuration for one detection run."""
    image_path: Optional[Path] = None
    buffer: Optional[PixelBuffer] = None  # Takes precedence over image_path
    rng_seed: int = 0


@dataclass
class DetectResult:
    """Result of a detection run."""
    source_path: Optional[Path] = None
    verdict: Optional[DetectionVerdict] = None
    success: bool = False
    error_message: str = ""


class DetectWorker(QThread):
    """
    Worker thread for watermark detection.

    Signals:
        started_detection(str): Emitted when detection starts (source name)
        result_ready(DetectResult): Emitted with the detection result
        error(str): Emitted on errors
    """

    started_detection = pyqtSignal(str)
    result_ready = pyqtSignal(object)  # DetectResult
    error = pyqtSignal(str)

    def __init__(self, config: DetectConfig, detector: Optional[WatermarkDetector] = None, parent=None):
        """
        Initialize the detect worker.

        Args:
            config: DetectConfig with the image source and seed.
            detector: Shared detector; a new one is created if omitted.
            parent: Optional parent QObject.
        """
        super().__init__(parent)
        self.config = config
        self._detector = detector or WatermarkDetector()

    def _load(self) -> PixelBuffer:
        if self.config.buffer is not None:
            return self.config.buffer
        if self.config.image_path is None:
            raise ValueError("No image to analyze")
        return load_buffer(self.config.image_path)

    def run(self):
        result = DetectResult(source_path=self.config.image_path)

        try:
            name = self.config.image_path.name if self.config.image_path else "buffer"
            self.started_detection.emit(name)

            buffer = self._load()
            result.verdict = self._detector.detect(buffer, self.config.rng_seed)
            result.success = True

        except (ValueError, FileNotFoundError) as e:
            result.error_message = str(e)
            self.error.emit(result.error_message)

        except Exception as e:
            result.error_message = f"Detection failed: {e}"
            self.error.emit(result.error_message)
            logger.exception("Detection failed for %s", self.config.image_path)

        self.result_ready.emit(result)


class DetectManager(QObject):
    """
    Runs at most one detection at a time.

    USAGE:
        manager = DetectManager()
        manager.detection_finished.connect(on_result)
        manager.request_detection(DetectConfig(image_path=path, rng_seed=7))
    """

    detection_started = pyqtSignal()
    detection_finished = pyqtSignal(object)  # DetectResult
    request_rejected = pyqtSignal(str)

    def __init__(self, parent=None):
        super().__init__(parent)
        self._detector = WatermarkDetector()
        self._current_worker: Optional[DetectWorker] = None
        self._last_result: Optional[DetectResult] = None
        self._mutex = QMutex()

    @property
    def is_busy(self) -> bool:
        with QMutexLocker(self._mutex):
            return self._current_worker is not None

    def request_detection(self, config: DetectConfig) -> bool:
        """
        Start a detection run unless one is already active.

        Returns:
            True if the run was started, False if it was rejected.
        """
        with QMutexLocker(self._mutex):
            busy = self._current_worker is not None
            if not busy:
                worker = DetectWorker(config, self._detector)
                worker.result_ready.connect(self._on_result_ready)
                worker.finished.connect(self._on_worker_finished)
                self._current_worker = worker

        if busy:
            # Emitted outside the lock so slots may query is_busy
            logger.info("Detection already in progress, rejecting %s", config.image_path)
            self.request_rejected.emit("Detection already in progress")
            return False

        self.detection_started.emit()
        worker.start()
        return True

    def wait(self, timeout_ms: int = 30000) -> bool:
        """Block until the current worker thread ends."""
        with QMutexLocker(self._mutex):
            worker = self._current_worker
        if worker is None:
            return True
        return worker.wait(timeout_ms)

    def _on_result_ready(self, result: DetectResult):
        self._last_result = result

    def _on_worker_finished(self):
        with QMutexLocker(self._mutex):
            if self._current_worker is not None:
                self._current_worker.deleteLater()
                self._current_worker = None
            result, self._last_result = self._last_result, None

        # Emitted once the manager is idle, so slots may start the next run
        if result is not None:
            self.detection_finished.emit(result)

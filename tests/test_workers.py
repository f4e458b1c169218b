"""
Tests for worker threads.

Run with: python -m pytest tests/test_workers.py -v
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest
from PyQt6.QtCore import QCoreApplication, QEventLoop, QTimer, Qt

from studio.core.config import WatermarkConfig, WatermarkKind
from studio.core.policy import ExportAction
from studio.workers import (
    DetectWorker, DetectManager, DetectConfig, DetectResult,
    RenderWorker, RenderConfig, RenderResult
)

from helpers import gradient_buffer, tiled_block_buffer, save_png

# Global QCoreApplication instance
_app = None


def get_app():
    """Get or create the QCoreApplication instance."""
    global _app
    if _app is None:
        _app = QCoreApplication.instance() or QCoreApplication(sys.argv[:1])
    return _app


def start_and_wait(start, signal, timeout_ms: int = 30000):
    """
    Connect to a Qt signal, run `start`, and spin an event loop until the
    signal fires or the timeout expires.

    Returns:
        The value emitted by the signal, or None if timeout.
    """
    get_app()
    loop = QEventLoop()
    result = [None]

    def on_signal(*args):
        result[0] = args[0] if len(args) == 1 else args
        loop.quit()

    signal.connect(on_signal)

    timer = QTimer()
    timer.setSingleShot(True)
    timer.timeout.connect(loop.quit)
    timer.start(timeout_ms)

    start()
    if result[0] is None:
        loop.exec()
    timer.stop()

    return result[0]


@pytest.fixture
def watermark():
    return WatermarkConfig(kind=WatermarkKind.TEXT, text="Studio", font_size=30,
                           color=(128, 128, 128), opacity=0.4, spacing_px=150)


# ===== Detection =====

def test_detect_worker_with_buffer():
    get_app()
    worker = DetectWorker(DetectConfig(buffer=tiled_block_buffer(), rng_seed=4))
    result: DetectResult = start_and_wait(worker.start, worker.result_ready)
    worker.wait()

    assert result is not None, "Worker timed out"
    assert result.success, result.error_message
    assert result.verdict.has_watermark


def test_detect_worker_from_file(tmp_path):
    get_app()
    path = tmp_path / "photo.png"
    save_png(gradient_buffer(), path)

    worker = DetectWorker(DetectConfig(image_path=path, rng_seed=0))
    result = start_and_wait(worker.start, worker.result_ready)
    worker.wait()

    assert result.success
    assert result.source_path == path
    assert not result.verdict.has_watermark


def test_detect_worker_missing_file(tmp_path):
    get_app()
    worker = DetectWorker(DetectConfig(image_path=tmp_path / "missing.png"))
    errors = []
    worker.error.connect(errors.append)
    result = start_and_wait(worker.start, worker.result_ready)
    worker.wait()

    assert not result.success
    assert "not found" in result.error_message
    assert errors == [result.error_message]


def test_detect_manager_rejects_concurrent_request():
    get_app()
    manager = DetectManager()
    rejected = []
    manager.request_rejected.connect(rejected.append)

    def start_twice():
        assert manager.request_detection(DetectConfig(buffer=tiled_block_buffer(), rng_seed=1))
        # The first run is still registered until its finished signal is processed
        assert not manager.request_detection(DetectConfig(buffer=gradient_buffer(), rng_seed=1))

    result = start_and_wait(start_twice, manager.detection_finished)

    assert rejected == ["Detection already in progress"]
    assert result is not None, "Manager timed out"
    assert result.verdict.has_watermark
    assert not manager.is_busy


def test_detect_manager_accepts_after_finish():
    get_app()
    manager = DetectManager()
    config = DetectConfig(buffer=gradient_buffer(), rng_seed=5)

    first = start_and_wait(lambda: manager.request_detection(config), manager.detection_finished)
    second = start_and_wait(lambda: manager.request_detection(config), manager.detection_finished)

    assert first.success and second.success
    assert first.verdict == second.verdict


# ===== Rendering =====

def test_render_worker_clean_image(tmp_path, watermark):
    get_app()
    source = tmp_path / "photo.png"
    save_png(gradient_buffer(), source)
    output_dir = tmp_path / "out"

    worker = RenderWorker(RenderConfig(image_paths=[source], output_dir=output_dir, watermark=watermark))
    progress_log = []
    worker.progress.connect(lambda c, t, f: progress_log.append((c, t, f)))

    results = start_and_wait(worker.start, worker.finished_all)
    worker.wait()

    assert results is not None, "Worker timed out"
    assert len(results) == 1
    result: RenderResult = results[0]
    assert result.success, result.error_message
    assert result.output_path == output_dir / "photo_watermarked.png"
    assert result.output_path.exists()
    assert result.decision.action is ExportAction.ALLOW
    assert progress_log == [(1, 1, "photo.png")]


def test_render_worker_blocks_watermarked_image(tmp_path, watermark):
    get_app()
    source = tmp_path / "tiled.png"
    save_png(tiled_block_buffer(), source)

    worker = RenderWorker(RenderConfig(image_paths=[source], output_dir=tmp_path / "out", watermark=watermark))
    results = start_and_wait(worker.start, worker.finished_all)
    worker.wait()

    result = results[0]
    assert not result.success
    assert result.output_path is None
    assert result.decision.action is ExportAction.BLOCK
    assert result.error_message == result.decision.message


def test_render_worker_force_skips_detection(tmp_path, watermark):
    get_app()
    source = tmp_path / "tiled.png"
    save_png(tiled_block_buffer(), source)

    worker = RenderWorker(RenderConfig(
        image_paths=[source], output_dir=tmp_path / "out", watermark=watermark, force=True
    ))
    results = start_and_wait(worker.start, worker.finished_all)
    worker.wait()

    assert results[0].success
    assert results[0].verdict is None


def test_render_worker_multiple_images(tmp_path, watermark):
    get_app()
    sources = []
    for i in range(3):
        path = tmp_path / f"photo{i}.png"
        save_png(gradient_buffer(200 + i * 10, 150), path)
        sources.append(path)
    sources.append(tmp_path / "missing.png")

    worker = RenderWorker(RenderConfig(image_paths=sources, output_dir=tmp_path / "out", watermark=watermark))
    results = start_and_wait(worker.start, worker.finished_all)
    worker.wait()

    assert len(results) == 4
    assert [r.success for r in results] == [True, True, True, False]


def test_render_worker_cancel_mid_batch(tmp_path, watermark):
    get_app()
    sources = []
    for i in range(4):
        path = tmp_path / f"photo{i}.png"
        save_png(gradient_buffer(200, 150), path)
        sources.append(path)

    worker = RenderWorker(RenderConfig(image_paths=sources, output_dir=tmp_path / "out", watermark=watermark))
    # Direct connection runs the slot in the worker thread, before the first image is processed
    worker.progress.connect(lambda c, t, f: worker.cancel(), Qt.ConnectionType.DirectConnection)

    results = start_and_wait(worker.start, worker.finished_all)
    worker.wait()

    assert results is not None, "Worker timed out"
    assert len(results) == 1
    assert results[0].success
    assert not (tmp_path / "out" / "photo1_watermarked.png").exists()


def test_render_worker_invalid_watermark(tmp_path):
    get_app()
    source = tmp_path / "photo.png"
    save_png(gradient_buffer(), source)

    worker = RenderWorker(RenderConfig(
        image_paths=[source],
        output_dir=tmp_path / "out",
        watermark=WatermarkConfig(kind=WatermarkKind.TEXT, text="  ")
    ))
    errors = []
    worker.error.connect(errors.append)
    results = start_and_wait(worker.start, worker.finished_all)
    worker.wait()

    assert results == []
    assert errors and "text cannot be empty" in errors[0]


def test_render_worker_no_images(tmp_path, watermark):
    get_app()
    worker = RenderWorker(RenderConfig(image_paths=[], output_dir=tmp_path, watermark=watermark))
    results = start_and_wait(worker.start, worker.finished_all)
    worker.wait()

    assert results == []

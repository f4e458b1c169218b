"""
Watermark Studio - Main Entry Point
===================================
Headless front end for tiled watermark detection and application.

Usage:
    python main.py detect photo.png [more.png ...] [--seed 0]
    python main.py apply photo.png --out output --text "(c) Studio"
    python main.py apply photo.png --out output --stamp logo.png --image-size 120

Architecture:
    - Model: studio/core/ (pure algorithms)
    - Workers: studio/workers/ (QThread workers)
    - Controller: This file (signal/slot connections)
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from PyQt6.QtCore import QCoreApplication

from studio import __app_name__, __version__
from studio.core import (
    UnrenderableConfig, WatermarkConfig, WatermarkKind, load_buffer, parse_hex_color
)
from studio.workers import (
    DetectManager, DetectConfig, DetectResult,
    RenderWorker, RenderConfig, RenderResult
)


class StudioController:
    """
    Controller class that connects worker signals to console output.

    Responsibilities:
    - Validate user input before processing
    - Create and manage worker threads
    - Report worker progress/results
    """

    def __init__(self, app: QCoreApplication):
        self.app = app
        self.exit_code = 0

        self._detect_manager = DetectManager()
        self._detect_manager.detection_finished.connect(self._on_detection_finished)
        self._detect_manager.request_rejected.connect(self._on_detection_rejected)
        self._pending_detections: list[DetectConfig] = []

        self._render_worker: Optional[RenderWorker] = None

    # ===== Detect Operations =====

    def start_detection(self, image_paths: list[Path], seed: int):
        self._pending_detections = [
            DetectConfig(image_path=path, rng_seed=seed) for path in image_paths
        ]
        self._detect_next()

    def _detect_next(self):
        if not self._pending_detections:
            self.app.exit(self.exit_code)
            return
        self._detect_manager.request_detection(self._pending_detections.pop(0))

    def _on_detection_finished(self, result: DetectResult):
        name = result.source_path.name if result.source_path else "buffer"
        if result.success:
            verdict = result.verdict
            flag = "WATERMARK" if verdict.has_watermark else "clean"
            print(f"{name}: {flag} (confidence {verdict.confidence}%) - {verdict.reason}")
            if verdict.has_watermark:
                self.exit_code = max(self.exit_code, 1)
        else:
            print(f"{name}: error - {result.error_message}", file=sys.stderr)
            self.exit_code = 2

        self._detect_next()

    def _on_detection_rejected(self, message: str):
        print(message, file=sys.stderr)
        self.exit_code = 2

    # ===== Apply Operations =====

    def start_render(self, config: RenderConfig):
        self._render_worker = RenderWorker(config)

        self._render_worker.progress.connect(self._on_render_progress)
        self._render_worker.image_completed.connect(self._on_render_image_completed)
        self._render_worker.finished_all.connect(self._on_render_finished)
        self._render_worker.error.connect(self._on_render_error)

        self._render_worker.start()

    def _on_render_progress(self, current: int, total: int, filename: str):
        print(f"[{current}/{total}] {filename}")

    def _on_render_image_completed(self, result: RenderResult):
        if result.success:
            print(f"  -> {result.output_path}")
        else:
            print(f"  !! {result.source_path.name}: {result.error_message}", file=sys.stderr)

    def _on_render_finished(self, results: list):
        success_count = sum(1 for r in results if r.success)
        fail_count = len(results) - success_count
        print(f"Done: {success_count} watermarked, {fail_count} failed")

        if fail_count or not results:
            self.exit_code = 1

        if self._render_worker is not None:
            self._render_worker.wait()
            self._render_worker.deleteLater()
            self._render_worker = None

        self.app.exit(self.exit_code)

    def _on_render_error(self, error_message: str):
        print(f"Error: {error_message}", file=sys.stderr)
        self.exit_code = 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="watermark-studio", description=__app_name__)
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    commands = parser.add_subparsers(dest="command", required=True)

    detect_cmd = commands.add_parser("detect", help="check images for an existing tiled watermark")
    detect_cmd.add_argument("images", nargs="+", type=Path)
    detect_cmd.add_argument("--seed", type=int, default=0, help="block sampling seed")

    apply_cmd = commands.add_parser("apply", help="stamp a tiled watermark onto images")
    apply_cmd.add_argument("images", nargs="+", type=Path)
    apply_cmd.add_argument("--out", type=Path, required=True, help="output directory")
    content = apply_cmd.add_mutually_exclusive_group(required=True)
    content.add_argument("--text", help="watermark text")
    content.add_argument("--stamp", type=Path, help="stamp image file")
    apply_cmd.add_argument("--font-size", type=int, default=48)
    apply_cmd.add_argument("--font", type=Path, default=None, help="TTF/OTF font file")
    apply_cmd.add_argument("--color", default="#000000", help="hex colour, e.g. #808080")
    apply_cmd.add_argument("--opacity", type=float, default=0.3, help="0.0 - 1.0")
    apply_cmd.add_argument("--rotation", type=float, default=-45.0, help="degrees")
    apply_cmd.add_argument("--spacing", type=int, default=250, help="tile spacing in pixels")
    apply_cmd.add_argument("--image-size", type=int, default=100, help="stamp longest side in pixels")
    apply_cmd.add_argument("--stagger", action="store_true", help="offset every other row")
    apply_cmd.add_argument("--seed", type=int, default=0, help="detection sampling seed")
    apply_cmd.add_argument("--force", action="store_true",
                           help="skip existing-watermark detection")

    return parser


def create_watermark_config(args: argparse.Namespace) -> WatermarkConfig:
    """
    Create a WatermarkConfig from parsed arguments.

    Raises:
        UnrenderableConfig: If the arguments describe an unrenderable watermark.
        OSError: If the stamp image is missing or cannot be decoded.
    """
    common = dict(
        font_size=args.font_size,
        color=parse_hex_color(args.color),
        opacity=args.opacity,
        rotation_degrees=args.rotation,
        spacing_px=args.spacing,
        image_size=args.image_size,
        stagger=args.stagger,
        font_path=args.font,
    )

    if args.stamp is not None:
        config = WatermarkConfig(kind=WatermarkKind.IMAGE, stamp_image=load_buffer(args.stamp), **common)
    else:
        config = WatermarkConfig(kind=WatermarkKind.TEXT, text=args.text, **common)

    config.validate()
    return config


def main(argv: Optional[list[str]] = None) -> int:
    """Application entry point."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )

    app = QCoreApplication.instance() or QCoreApplication(sys.argv[:1])
    app.setApplicationName(__app_name__)
    app.setApplicationVersion(__version__)

    controller = StudioController(app)

    if args.command == "detect":
        controller.start_detection(args.images, args.seed)
    else:
        try:
            watermark = create_watermark_config(args)
        except (UnrenderableConfig, OSError) as e:
            print(f"Configuration error: {e}", file=sys.stderr)
            return 2

        controller.start_render(RenderConfig(
            image_paths=args.images,
            output_dir=args.out,
            watermark=watermark,
            rng_seed=args.seed,
            force=args.force
        ))

    return app.exec()


if __name__ == "__main__":
    sys.exit(main())

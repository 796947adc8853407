"""
Unblend - Main Entry Point
==========================
Command-line tool that removes the logo watermark from images.

Usage:
    python main.py photo.jpg                   # writes photo_cleaned.jpg
    python main.py photo.jpg -o clean.png
    python main.py input_dir -o output_dir -j 4
    python main.py photo.jpg --detect          # report scores only

Architecture:
    - Model: unblend/core/ (pure algorithms)
    - Workers: unblend/workers/ (QThread batch processing)
    - Controller: This file (signal/slot connections, console output)

Note:
    Only the visible logo is removed. Invisible watermarks embedded in the
    frequency domain are untouched.
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from PyQt6.QtCore import QCoreApplication

from unblend import __app_name__, __version__
from unblend.core import (
    ProcessOptions, ProcessResult, WatermarkEngine, WatermarkVariant, default_output_path
)
from unblend.core.engine import DEFAULT_THRESHOLD
from unblend.core.imageio import collect_images
from unblend.workers import (
    DetectConfig, DetectReport, DetectWorker, RemoveConfig, RemoveWorker
)


def _err(message: str = ""):
    print(message, file=sys.stderr)


class RemovalController:
    """
    Controller class that connects worker signals to console output.

    Responsibilities:
    - Run workers inside the Qt event loop
    - Print per-file status lines and the batch summary
    - Turn failures into the process exit code
    """

    def __init__(
            self,
            app: QCoreApplication,
            engine: WatermarkEngine,
            options: ProcessOptions
    ):
        self.app = app
        self.engine = engine
        self.options = options
        self.exit_code = 0

        # Worker reference (to prevent garbage collection)
        self._worker = None
        self._results: List[ProcessResult] = []

    # ===== Remove Operations =====

    def run_removal(self, config: RemoveConfig) -> int:
        """Run a removal batch to completion and return the exit code."""
        self._worker = RemoveWorker(config, engine=self.engine)

        self._worker.image_completed.connect(self._on_image_completed)
        self._worker.finished_all.connect(self._on_remove_finished)
        self._worker.error.connect(self._on_error)

        self._worker.start()
        self.app.exec()
        self._worker.wait()
        self._worker = None

        return self.exit_code

    def _on_image_completed(self, result: ProcessResult):
        print_result(result, self.options)

    def _on_remove_finished(self, results: list):
        self._results = results

        success_count = sum(1 for r in results if r.success and not r.skipped)
        skip_count = sum(1 for r in results if r.skipped)
        fail_count = sum(1 for r in results if not r.success)

        if len(results) > 1 and not self.options.quiet:
            summary = f"[Summary] Processed: {success_count}"
            if skip_count:
                summary += f", Skipped: {skip_count}"
            if fail_count:
                summary += f", Failed: {fail_count}"
            _err()
            _err(f"{summary} (Total: {len(results)})")

        if fail_count:
            self.exit_code = 1

        self.app.quit()

    # ===== Detect Operations =====

    def run_detection(self, image_path: Path) -> int:
        """Report detection scores for one image."""
        self._worker = DetectWorker(
            DetectConfig(image_path=image_path, options=self.options),
            engine=self.engine
        )

        if self.options.verbose:
            self._worker.started_detection.connect(self._on_detection_started)
        self._worker.result_ready.connect(self._on_detect_result)
        self._worker.error.connect(self._on_error)

        self._worker.start()
        self.app.exec()
        self._worker.wait()
        self._worker = None

        return self.exit_code

    def _on_detection_started(self, filename: str):
        _err(f"Analyzing {filename}...")

    def _on_detect_result(self, report: DetectReport):
        if report.success:
            detection = report.detection
            verdict = "DETECTED" if detection.detected else "NOT DETECTED"
            print(f"{report.source_path.name}: {verdict} ({detection.summary()})")
            if self.options.verbose:
                roi = report.roi
                print(
                    f"  -> {report.width}x{report.height}, "
                    f"{report.variant.name.lower()} watermark at "
                    f"({roi.x}, {roi.y}) size {roi.width}x{roi.height}"
                )
        self.app.quit()

    def _on_error(self, error_message: str):
        _err(f"Error: {error_message}")
        self.exit_code = 1


def print_result(result: ProcessResult, options: ProcessOptions):
    """Print one status line for a processed file."""
    if options.quiet and result.success:
        return

    filename = result.path.name if result.path is not None else "?"

    if result.skipped:
        _err(f"[SKIP] {filename}: {result.message}")
    elif result.success:
        if result.confidence > 0.0:
            _err(f"[OK] {filename} ({result.confidence * 100:.0f}% confidence)")
        else:
            _err(f"[OK] {filename}")
    else:
        _err(f"[FAIL] {filename}: {result.message}")

    if options.verbose and result.message:
        _err(f"  -> {result.message}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="unblend",
        description="Remove a semi-transparent logo watermark via reverse alpha blending",
        epilog="Simple usage: unblend <image>  (auto-detect, write <name>_cleaned.<ext>)",
    )
    parser.add_argument("input", help="Input image file or directory")
    parser.add_argument(
        "-o", "--output",
        help="Output file or directory (default: {name}_cleaned.{ext})"
    )
    parser.add_argument(
        "-f", "--force", action="store_true",
        help="Skip watermark detection, process unconditionally"
    )
    parser.add_argument(
        "-t", "--threshold", type=float, default=DEFAULT_THRESHOLD,
        help="Detection confidence threshold (0.0-1.0, default: %(default)s)"
    )
    parser.add_argument(
        "--force-small", action="store_true",
        help="Force the 48x48 watermark (images <= 1024px)"
    )
    parser.add_argument(
        "--force-large", action="store_true",
        help="Force the 96x96 watermark (images > 1024px)"
    )
    parser.add_argument(
        "-j", "--jobs", type=int, default=1,
        help="Number of images processed in parallel (default: 1)"
    )
    parser.add_argument(
        "-d", "--detect", action="store_true",
        help="Only report detection scores, write nothing"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose output")
    parser.add_argument("-q", "--quiet", action="store_true", help="Suppress all non-error output")
    parser.add_argument("--version", action="version", version=f"{__app_name__} {__version__}")
    return parser


def _options_from_args(args: argparse.Namespace) -> ProcessOptions:
    if args.force_small and args.force_large:
        raise ValueError("Cannot specify both --force-small and --force-large")

    force_variant = None
    if args.force_small:
        force_variant = WatermarkVariant.SMALL
    elif args.force_large:
        force_variant = WatermarkVariant.LARGE

    options = ProcessOptions(
        force=args.force,
        threshold=args.threshold,
        force_variant=force_variant,
        verbose=args.verbose,
        quiet=args.quiet,
    )
    options.validate()
    return options


def main(argv: Optional[List[str]] = None) -> int:
    """Application entry point."""
    args = build_parser().parse_args(argv)

    try:
        options = _options_from_args(args)
    except ValueError as e:
        _err(f"Error: {e}")
        return 1

    if args.jobs < 1:
        _err("Error: --jobs must be at least 1")
        return 1

    input_path = Path(args.input)
    if not input_path.exists():
        _err(f"Error: Input path does not exist: {args.input}")
        return 1

    try:
        engine = WatermarkEngine()
    except Exception as e:
        _err(f"Fatal: Failed to initialize engine: {e}")
        return 1

    app = QCoreApplication.instance() or QCoreApplication(sys.argv[:1])
    controller = RemovalController(app, engine, options)

    if args.detect:
        if input_path.is_dir():
            _err("Error: Detection report requires a single image")
            return 1
        return controller.run_detection(input_path)

    if not options.quiet:
        if options.force:
            _err("WARNING: Force mode - processing ALL images without detection!")
        else:
            _err(f"Auto-detection enabled (threshold: {options.threshold * 100:.0f}%)")
        _err()

    if input_path.is_dir():
        if not args.output:
            _err("Error: Output directory is required for batch processing")
            _err("Usage: unblend <input_dir> -o <output_dir>")
            return 1
        output_dir = Path(args.output)
        try:
            image_paths = collect_images(input_path)
        except OSError as e:
            _err(f"Error: Failed to read directory: {e}")
            return 1
        if not image_paths:
            _err(f"Error: No supported images found in {input_path}")
            return 1
        config = RemoveConfig(
            image_paths=image_paths,
            output_dir=output_dir,
            options=options,
            workers=args.jobs,
        )
    else:
        output_path = Path(args.output) if args.output else default_output_path(input_path)
        config = RemoveConfig(
            image_paths=[input_path],
            output_paths=[output_path],
            options=options,
        )

    return controller.run_removal(config)


if __name__ == "__main__":
    sys.exit(main())

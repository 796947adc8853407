"""
Watermark Engine
================
Sequences the core steps for one image:

1. Resolve the variant (override or size heuristic) and its opacity map
2. Place the region at the bottom-right corner
3. Detect, unless forced
4. Reverse-blend the region in place

The engine only holds the read-only AlphaMaskStore, so a single instance
can serve concurrent calls on different images.
"""

import traceback
from concurrent.futures import FIRST_COMPLETED, ThreadPoolExecutor, wait
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, Iterator, List, Optional, Tuple, Union

import numpy as np

from .blending import LOGO_VALUE, remove_watermark_alpha_blend
from .detection import DetectionResult, detect_watermark
from .errors import ImageTooSmallError
from .geometry import (
    Roi, WatermarkVariant, check_fits, resolve_variant, select_variant, watermark_roi
)
from .imageio import collect_images, load_image, save_image
from .masks import AlphaMaskStore

DEFAULT_THRESHOLD = 0.25


def _never_cancelled() -> bool:
    return False


@dataclass
class ProcessOptions:
    """Per-call processing options."""
    force: bool = False  # skip detection
    threshold: float = DEFAULT_THRESHOLD  # 0.0-1.0
    force_variant: Optional[WatermarkVariant] = None
    verbose: bool = False
    quiet: bool = False

    def validate(self):
        """Raise ValueError for out-of-range settings."""
        if not 0.0 <= self.threshold <= 1.0:
            raise ValueError("Threshold must be between 0.0 and 1.0")


@dataclass
class ProcessResult:
    """Outcome of processing a single image."""
    path: Optional[Path] = None
    output_path: Optional[Path] = None
    success: bool = False
    skipped: bool = False  # no watermark, or image too small
    confidence: float = 0.0
    message: str = ""
    detection: Optional[DetectionResult] = None


class WatermarkEngine:
    """
    Detects and removes the logo watermark.

    Create once and reuse: the opacity maps are decoded at construction.
    """

    def __init__(
            self,
            masks: Optional[AlphaMaskStore] = None,
            logo_value: float = LOGO_VALUE
    ):
        """
        Initialize the engine.

        Args:
            masks: Prebuilt opacity maps. If None, the packaged reference
                   captures are decoded.
            logo_value: Logo intensity used by the reverse blend.

        Raises:
            MaskDecodeError: If a packaged capture cannot be decoded.
        """
        self.masks = masks if masks is not None else AlphaMaskStore.build()
        self.logo_value = logo_value

    def watermark_size_for(self, width: int, height: int) -> WatermarkVariant:
        return select_variant(width, height)

    def config(
            self,
            width: int,
            height: int,
            force_variant: Optional[WatermarkVariant] = None
    ) -> Tuple[WatermarkVariant, np.ndarray]:
        """Variant and opacity map for an image of the given size."""
        variant = resolve_variant(width, height, force_variant)
        return variant, self.masks.for_variant(variant)

    def position(self, width: int, height: int, variant: WatermarkVariant) -> Roi:
        return watermark_roi(width, height, variant)

    def detect(
            self,
            image: np.ndarray,
            options: Optional[ProcessOptions] = None
    ) -> DetectionResult:
        """Run the three-stage detector at the expected watermark position."""
        options = options or ProcessOptions()
        height, width = image.shape[:2]
        variant, alpha_map = self.config(width, height, options.force_variant)
        roi = self.position(width, height, variant)
        return detect_watermark(image, alpha_map, roi, options.threshold)

    def remove(
            self,
            image: np.ndarray,
            force_variant: Optional[WatermarkVariant] = None
    ) -> None:
        """Reverse-blend the watermark region of the image in place."""
        height, width = image.shape[:2]
        variant, alpha_map = self.config(width, height, force_variant)
        roi = self.position(width, height, variant)
        remove_watermark_alpha_blend(image, alpha_map, roi, self.logo_value)

    def process_image(
            self,
            image: np.ndarray,
            options: Optional[ProcessOptions] = None,
            path: Optional[Path] = None
    ) -> ProcessResult:
        """
        Check size, detect and remove on an in-memory image.

        The image is modified in place only when the result is neither
        skipped nor failed.
        """
        options = options or ProcessOptions()
        result = ProcessResult(path=path)

        height, width = image.shape[:2]
        variant, _ = self.config(width, height, options.force_variant)
        try:
            check_fits(width, height, variant)
        except ImageTooSmallError as e:
            result.skipped = True
            result.success = True
            result.message = str(e)
            return result

        if not options.force:
            detection = self.detect(image, options)
            result.detection = detection
            result.confidence = detection.confidence

            if not detection.detected and detection.confidence < options.threshold:
                result.skipped = True
                result.success = True
                result.message = f"No watermark detected ({detection.summary()})"
                return result

        self.remove(image, options.force_variant)
        result.success = True
        result.message = "Watermark removed"
        return result

    def process_file(
            self,
            input_path: Union[str, Path],
            output_path: Union[str, Path],
            options: Optional[ProcessOptions] = None
    ) -> ProcessResult:
        """
        Load, process and save one file.

        Failures are reported in the result, never raised.
        """
        input_path = Path(input_path)
        output_path = Path(output_path)

        try:
            image = load_image(input_path)
        except Exception as e:
            return ProcessResult(path=input_path, message=f"Failed to load: {e}")

        result = self.process_image(image, options, path=input_path)
        if result.skipped or not result.success:
            return result

        try:
            output_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            result.success = False
            result.message = f"Failed to create output directory: {e}"
            return result

        try:
            save_image(image, output_path)
        except Exception as e:
            result.success = False
            result.message = f"Failed to save: {e}"
            return result

        result.output_path = output_path
        return result

    def _process_file_safe(
            self,
            input_path: Path,
            output_path: Path,
            options: Optional[ProcessOptions]
    ) -> ProcessResult:
        try:
            return self.process_file(input_path, output_path, options)
        except Exception as e:
            traceback.print_exc()
            return ProcessResult(path=Path(input_path), message=str(e))

    def iter_process_files(
            self,
            jobs: Iterable[Tuple[Path, Path]],
            options: Optional[ProcessOptions] = None,
            workers: int = 1,
            is_cancelled: Optional[Callable[[], bool]] = None
    ) -> Iterator[Tuple[int, ProcessResult]]:
        """
        Process (input, output) pairs, yielding (index, result) as each finishes.

        Args:
            jobs: Input and output path pairs.
            options: Processing options shared by every file.
            workers: At most this many files are in flight at once.
            is_cancelled: Polled before each new file is started. Once it
                returns True nothing new starts; running files still finish
                and are yielded.

        Yields:
            (job index, ProcessResult), in completion order.
        """
        jobs = list(jobs)
        is_cancelled = is_cancelled or _never_cancelled

        if workers <= 1:
            for idx, (src, dst) in enumerate(jobs):
                if is_cancelled():
                    return
                yield idx, self._process_file_safe(src, dst, options)
            return

        with ThreadPoolExecutor(max_workers=workers) as executor:
            pending = {}
            next_idx = 0

            while True:
                while (not is_cancelled() and next_idx < len(jobs)
                       and len(pending) < workers):
                    src, dst = jobs[next_idx]
                    future = executor.submit(self._process_file_safe, src, dst, options)
                    pending[future] = next_idx
                    next_idx += 1

                if not pending:
                    break

                finished, _ = wait(pending, return_when=FIRST_COMPLETED)
                for future in finished:
                    yield pending.pop(future), future.result()

    def process_files(
            self,
            jobs: Iterable[Tuple[Path, Path]],
            options: Optional[ProcessOptions] = None,
            workers: int = 1
    ) -> List[ProcessResult]:
        """Process (input, output) pairs; results keep the input order."""
        done = dict(self.iter_process_files(jobs, options, workers))
        return [done[idx] for idx in sorted(done)]

    def process_directory(
            self,
            input_dir: Union[str, Path],
            output_dir: Union[str, Path],
            options: Optional[ProcessOptions] = None,
            workers: int = 1
    ) -> List[ProcessResult]:
        """
        Process every supported image directly inside input_dir.

        Outputs keep their file names under output_dir.
        """
        input_dir = Path(input_dir)
        output_dir = Path(output_dir)

        try:
            entries = collect_images(input_dir)
        except OSError as e:
            return [ProcessResult(
                path=input_dir, message=f"Failed to read directory: {e}"
            )]

        try:
            output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            return [ProcessResult(
                path=output_dir, message=f"Failed to create output directory: {e}"
            )]

        return self.process_files(
            ((src, output_dir / src.name) for src in entries),
            options,
            workers=workers
        )

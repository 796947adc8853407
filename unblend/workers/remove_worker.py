"""
Remove Worker - Async Watermark Removal
=======================================
QThread worker for removing the watermark from a batch of images.

Workflow:
1. For each image in the queue:
   a. Load and check it is large enough for its watermark variant
   b. Detect the watermark (unless forced) and skip clean images
   c. Reverse-blend and save to the output location
2. Emit progress signals during processing
3. Emit finished signal with results (in input order)

With workers > 1 images are spread over the engine's thread pool.
Cancellation stops submitting new images; images already running are
allowed to finish and are reported.

Naming Convention:
- output_paths given: used as-is, one per image
- output_dir given: output_dir / filename
- neither: filename_cleaned.ext next to the source
"""

import traceback
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from PyQt6.QtCore import QThread, pyqtSignal

from unblend.core.engine import ProcessOptions, ProcessResult, WatermarkEngine
from unblend.core.imageio import default_output_path


@dataclass
class RemoveConfig:
    """Complete configuration for a removal batch."""
    image_paths: List[Path] = field(default_factory=list)
    output_dir: Optional[Path] = None
    output_paths: Optional[List[Path]] = None
    options: ProcessOptions = field(default_factory=ProcessOptions)
    workers: int = 1


class RemoveWorker(QThread):
    """
    Worker thread for removing watermarks from images.

    Signals:
        progress(int, int, str): (current, total, current_file_name)
        image_completed(ProcessResult): Emitted when each image is processed
        finished_all(list[ProcessResult]): Emitted when all images are done
        error(str): Emitted on critical errors
    """

    # Signals
    progress = pyqtSignal(int, int, str)  # current, total, filename
    image_completed = pyqtSignal(object)  # ProcessResult
    finished_all = pyqtSignal(list)  # List[ProcessResult]
    error = pyqtSignal(str)  # Error message

    def __init__(
            self,
            config: RemoveConfig,
            engine: Optional[WatermarkEngine] = None,
            parent=None
    ):
        """
        Initialize the remove worker.

        Args:
            config: RemoveConfig with paths and processing options.
            engine: Shared engine. If None, one is built when the run starts.
            parent: Optional parent QObject.
        """
        super().__init__(parent)
        self.config = config
        self._engine = engine
        self._is_cancelled = False

    def cancel(self):
        """Request cancellation of the worker."""
        self._is_cancelled = True

    def _output_path_for(self, index: int, image_path: Path) -> Path:
        if self.config.output_paths is not None:
            return Path(self.config.output_paths[index])
        if self.config.output_dir is not None:
            return Path(self.config.output_dir) / image_path.name
        return default_output_path(image_path)

    def _process_batch(self, paths: List[Path]) -> List[ProcessResult]:
        jobs = [(path, self._output_path_for(idx, path)) for idx, path in enumerate(paths)]
        done: Dict[int, ProcessResult] = {}
        total = len(paths)

        for idx, result in self._engine.iter_process_files(
                jobs,
                self.config.options,
                workers=self.config.workers,
                is_cancelled=self._cancel_requested
        ):
            done[idx] = result
            self.progress.emit(len(done), total, paths[idx].name)
            self.image_completed.emit(result)

        return [done[idx] for idx in sorted(done)]

    def _cancel_requested(self) -> bool:
        return self._is_cancelled

    def run(self):
        """
        Main worker execution.

        Processes all images in the config and emits progress signals.
        """
        results: List[ProcessResult] = []
        paths = [Path(p) for p in self.config.image_paths]

        if not paths:
            self.error.emit("No images to process")
            self.finished_all.emit(results)
            return

        try:
            # Validate config
            self.config.options.validate()

            if (self.config.output_paths is not None
                    and len(self.config.output_paths) != len(paths)):
                self.error.emit("Output paths do not match the number of images")
                self.finished_all.emit(results)
                return

            if self._engine is None:
                self._engine = WatermarkEngine()

            results = self._process_batch(paths)

        except ValueError as e:
            self.error.emit(str(e))

        except Exception as e:
            self.error.emit(f"Critical error: {str(e)}")
            traceback.print_exc()

        # Emit final results
        self.finished_all.emit(results)

"""
Detect Worker - Async Watermark Detection
=========================================
QThread worker that scores one image without modifying it.

Workflow:
1. Load the image
2. Resolve the watermark variant and region
3. Run the three-stage detector and emit the report
"""

import traceback
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from PyQt6.QtCore import QThread, pyqtSignal

from unblend.core.detection import DetectionResult
from unblend.core.engine import ProcessOptions, WatermarkEngine
from unblend.core.geometry import Roi, WatermarkVariant
from unblend.core.imageio import load_image


@dataclass
class DetectConfig:
    """Configuration for a detection run."""
    image_path: Path
    options: ProcessOptions = field(default_factory=ProcessOptions)


@dataclass
class DetectReport:
    """Result of a detection run."""
    source_path: Path
    width: int = 0
    height: int = 0
    variant: Optional[WatermarkVariant] = None
    roi: Optional[Roi] = None
    detection: Optional[DetectionResult] = None
    success: bool = False
    error_message: str = ""


class DetectWorker(QThread):
    """
    Worker thread for detecting the watermark in one image.

    Signals:
        started_detection(str): Emitted when detection starts (filename)
        result_ready(DetectReport): Emitted with the report
        error(str): Emitted on errors
    """

    # Signals
    started_detection = pyqtSignal(str)  # filename
    result_ready = pyqtSignal(object)  # DetectReport
    error = pyqtSignal(str)  # Error message

    def __init__(
            self,
            config: DetectConfig,
            engine: Optional[WatermarkEngine] = None,
            parent=None
    ):
        super().__init__(parent)
        self.config = config
        self._engine = engine

    def run(self):
        """
        Main worker execution.

        Scores the image and emits the report.
        """
        report = DetectReport(source_path=self.config.image_path)

        try:
            if not self.config.image_path.exists():
                raise FileNotFoundError(
                    f"Image not found: {self.config.image_path}"
                )
            self.config.options.validate()

            self.started_detection.emit(self.config.image_path.name)

            if self._engine is None:
                self._engine = WatermarkEngine()

            image = load_image(self.config.image_path)
            report.height, report.width = image.shape[:2]

            variant, _ = self._engine.config(
                report.width, report.height, self.config.options.force_variant
            )
            report.variant = variant
            report.roi = self._engine.position(report.width, report.height, variant)
            report.detection = self._engine.detect(image, self.config.options)
            report.success = True

        except (ValueError, FileNotFoundError) as e:
            report.error_message = str(e)
            self.error.emit(str(e))

        except Exception as e:
            report.error_message = f"Detection failed: {str(e)}"
            self.error.emit(report.error_message)
            traceback.print_exc()

        self.result_ready.emit(report)

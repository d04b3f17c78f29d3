"""Depth sensor interface driven by the scanner controller.

The interface owns one frame source while initialized and at most one
capture worker thread. It reads its options from the project settings when
it is created and again on every :meth:`initialize_interface`.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Optional

from PySide6.QtCore import QObject, QThread, Signal, Slot

from ..config import project_settings as keys
from ..config.calibration import load_intrinsics
from ..config.project_settings import ProjectSettings
from ..models import CaptureMode, DepthFrame
from ..project.layout import ProjectLayout
from .capture import CaptureOptions, CaptureSession, LongImageStore, write_long_images
from .capture_worker import CaptureWorker
from .sources import (
    FrameSource,
    OpenNiFrameSource,
    ReplayFrameSource,
    SensorUnavailableError,
    SyntheticFrameSource,
)

logger = logging.getLogger(__name__)

SourceFactory = Callable[[CaptureOptions], FrameSource]


class DepthSensorInterface(QObject):
    """Acquisition front-end: open/close the sensor and run capture modes."""

    frame_ready = Signal(object)       # DepthFrame
    long_image_ready = Signal(object)  # DepthFrame
    capture_finished = Signal()        # capture ended without a stop request
    error_reported = Signal(str)

    def __init__(
        self,
        settings: ProjectSettings,
        *,
        backend: str = "synthetic",
        long_images: LongImageStore | None = None,
        source_factory: SourceFactory | None = None,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self._settings = settings
        self._layout = ProjectLayout(settings.project_root)
        self._backend = backend
        self._long_images = long_images if long_images is not None else LongImageStore()
        self._source_factory = source_factory or self._default_source
        self._options = CaptureOptions.from_settings(settings)
        self._intrinsics = load_intrinsics(self._layout.calibration_dir)

        self._source: FrameSource | None = None
        self._session: CaptureSession | None = None
        self._thread: QThread | None = None
        self._worker: CaptureWorker | None = None

    # ------------------------------------------------------------------ state
    def is_init(self) -> bool:
        return self._source is not None and self._source.is_open

    def is_capturing(self) -> bool:
        return self._worker is not None

    @property
    def options(self) -> CaptureOptions:
        return self._options

    @property
    def long_images(self) -> LongImageStore:
        return self._long_images

    def _default_source(self, options: CaptureOptions) -> FrameSource:
        if options.replay:
            return ReplayFrameSource(self._layout.stream_dir, fps=options.fps)
        if self._backend == "openni":
            return OpenNiFrameSource()
        return SyntheticFrameSource(
            self._intrinsics,
            fps=options.fps,
            center_z=self._settings.float_value(keys.ROTATION_CENTER_Z, 800.0),
        )

    # ------------------------------------------------------------- lifecycle
    def initialize_interface(self) -> bool:
        """Open the frame source; failures are logged and leave is_init() False."""
        if self.is_init():
            return True
        self._options = CaptureOptions.from_settings(self._settings)
        if self._options.replay and self._options.record_stream:
            logger.warning("Stream recording is disabled while replaying the recorded stream")
        try:
            source = self._source_factory(self._options)
            source.open()
        except (SensorUnavailableError, OSError, ValueError) as exc:
            logger.error("Sensor initialization failed: %s", exc)
            self.error_reported.emit(str(exc))
            return False

        self._source = source
        self._session = CaptureSession(
            source, self._layout, self._options, self._intrinsics, self._long_images
        )
        logger.info("Sensor interface initialized (%s source)", source.name)
        return True

    def shutdown_interface(self, wait_timeout_ms: int = 5000) -> None:
        """Stop any running capture, wait for its thread and close the source."""
        worker, thread = self._worker, self._thread
        self._worker = None
        self._thread = None
        if worker is not None:
            worker.stop()
        if thread is not None:
            thread.quit()
            if not thread.wait(max(0, int(wait_timeout_ms))):
                logger.warning("Capture thread did not stop within %d ms", wait_timeout_ms)

        source, self._source = self._source, None
        self._session = None
        if source is not None:
            try:
                source.close()
            except Exception:
                logger.exception("Failed to close frame source")
            logger.info("Sensor interface shut down")

    # ----------------------------------------------------------------- modes
    def start_stream(self) -> bool:
        return self._start_capture(CaptureMode.STREAM)

    def start_rotation_stream(self) -> bool:
        return self._start_capture(CaptureMode.ROTATION)

    def take_long_images(self) -> bool:
        return self._start_capture(CaptureMode.LONG_IMAGES)

    def take_one_long_image(self) -> DepthFrame | None:
        """Capture one long image synchronously in the calling thread."""
        if not self.is_init() or self._session is None:
            logger.warning("take_one_long_image called before the sensor was initialized")
            return None
        if self.is_capturing():
            logger.warning("take_one_long_image ignored while a capture is running")
            return None
        image = self._session.capture_long_image()
        if image is not None:
            self.long_image_ready.emit(image)
            self.frame_ready.emit(image)
        return image

    def save_long_image_data(self) -> int:
        """Write queued long images into the project; returns how many were saved."""
        images = self._long_images.drain()
        if not images:
            logger.info("No long images to save")
            return 0
        options = CaptureOptions.from_settings(self._settings)
        written: list[Path] = write_long_images(
            images, self._layout, self._intrinsics, undistort=options.undistort
        )
        logger.info("Saved %d long image(s) (%d files)", len(images), len(written))
        return len(images)

    def _start_capture(self, mode: CaptureMode) -> bool:
        if not self.is_init() or self._session is None:
            logger.warning("Cannot start %s capture: sensor not initialized", mode.value)
            return False
        if self._worker is not None:
            raise RuntimeError("A capture is already running.")

        thread = QThread(self)
        worker = CaptureWorker(self._session, mode)
        worker.moveToThread(thread)
        thread.started.connect(worker.run)
        worker.frame_ready.connect(self.frame_ready)
        worker.long_image_ready.connect(self.long_image_ready)
        worker.error.connect(self._on_worker_error)
        worker.finished.connect(self._on_worker_finished)
        worker.finished.connect(thread.quit)
        worker.finished.connect(worker.deleteLater)
        thread.finished.connect(thread.deleteLater)

        self._thread = thread
        self._worker = worker
        thread.start()
        logger.info("Started %s capture", mode.value)
        return True

    # ------------------------------------------------------------- callbacks
    @Slot(str)
    def _on_worker_error(self, message: str) -> None:
        logger.error("Capture error: %s", message)
        self.error_reported.emit(message)

    @Slot()
    def _on_worker_finished(self) -> None:
        # Only a worker that is still current ended on its own; one stopped by
        # shutdown_interface() has already been detached.
        if self._worker is None or self.sender() is not self._worker:
            return
        thread = self._thread
        self._worker = None
        self._thread = None
        if thread is not None:
            thread.quit()
            thread.wait()
        self.capture_finished.emit()

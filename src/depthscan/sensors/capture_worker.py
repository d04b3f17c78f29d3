"""Threaded worker that runs one capture mode and emits frames to the GUI."""

from __future__ import annotations

import logging
import time

from PySide6.QtCore import QObject, Signal, Slot

from ..models import CaptureMode
from ..tools.debug import debug_enabled
from .capture import CaptureSession

logger = logging.getLogger(__name__)


class CaptureWorker(QObject):
    """QObject-based worker meant to live in its own QThread.

    The loop checks a stop flag between frames. :meth:`stop` is called
    directly from the GUI thread because the worker thread is busy in the
    loop and would not process a queued call until it ends.
    """

    frame_ready = Signal(object)       # DepthFrame
    long_image_ready = Signal(object)  # DepthFrame
    error = Signal(str)
    finished = Signal()

    def __init__(self, session: CaptureSession, mode: CaptureMode, parent: QObject | None = None) -> None:
        super().__init__(parent)
        self._session = session
        self._mode = CaptureMode(mode)
        self._running = False
        # Set by stop(); run() never clears it, so a stop issued before the
        # thread starts is honoured.
        self._stop_flag = False

    @property
    def mode(self) -> CaptureMode:
        return self._mode

    def is_running(self) -> bool:
        return self._running

    @Slot()
    def run(self) -> None:
        """Entry point for the QThread."""
        self._running = True
        started = time.perf_counter()
        try:
            if self._mode is CaptureMode.STREAM:
                self._run_stream()
            elif self._mode is CaptureMode.ROTATION:
                self._run_rotation()
            else:
                self._run_long_images()
        except Exception as exc:
            logger.exception("Capture (%s) failed", self._mode.value)
            self.error.emit(str(exc))
        finally:
            self._running = False
            if debug_enabled():
                elapsed = max(1e-9, time.perf_counter() - started)
                logger.debug(
                    "Capture %s: %d frame(s), %.1f fps",
                    self._mode.value,
                    self._session.frames_processed,
                    self._session.frames_processed / elapsed,
                )
            self.finished.emit()

    @Slot()
    def stop(self) -> None:
        """Request the capture loop to terminate after the current frame."""
        self._stop_flag = True

    def _stop_requested(self) -> bool:
        return self._stop_flag

    def _run_stream(self) -> None:
        while not self._stop_flag:
            frame = self._session.read_and_process()
            if frame is None:
                logger.info("Frame source exhausted after %d frame(s)", self._session.frames_processed)
                return
            self.frame_ready.emit(frame)

    def _run_rotation(self) -> None:
        options = self._session.options
        source = self._session.source
        for angle in options.rotation_angles():
            if self._stop_flag:
                return
            if not source.set_angle(angle):
                logger.info("Turn the object to %.1f deg", angle)
                self._sleep(options.rotation_dwell_s)
                if self._stop_flag:
                    return
            frame = source.read()
            if frame is None:
                logger.info("Frame source exhausted during rotation stream")
                return
            frame.angle_deg = angle
            self.frame_ready.emit(self._session.process_frame(frame))
        logger.info("Rotation stream complete (%d views)", self._session.frames_processed)

    def _run_long_images(self) -> None:
        while not self._stop_flag:
            image = self._session.capture_long_image(self._stop_requested)
            if image is None:
                return
            self.long_image_ready.emit(image)
            self.frame_ready.emit(image)

    def _sleep(self, seconds: float) -> None:
        deadline = time.monotonic() + max(0.0, seconds)
        while not self._stop_flag and time.monotonic() < deadline:
            time.sleep(min(0.05, max(0.0, deadline - time.monotonic())))

"""Qt front-end that runs the reconstruction pipeline off the GUI thread."""

from __future__ import annotations

import logging
from typing import Optional

from PySide6.QtCore import QObject, QThread, Signal, Slot

from ..config.project_settings import ProjectSettings
from ..project.layout import ProjectLayout
from .pipeline import ReconstructionOptions, ReconstructionResult, run_reconstruction

logger = logging.getLogger(__name__)


class ReconstructionWorker(QObject):
    progress = Signal(str)
    finished = Signal(object)  # ReconstructionResult
    error = Signal(str)

    def __init__(self, layout: ProjectLayout, options: ReconstructionOptions) -> None:
        super().__init__()
        self._layout = layout
        self._options = options
        self._stop_flag = False

    @Slot()
    def run(self) -> None:
        try:
            result = run_reconstruction(
                self._layout,
                self._options,
                progress=self.progress.emit,
                stop_requested=lambda: self._stop_flag,
            )
        except Exception as exc:
            logger.exception("Reconstruction failed")
            self.error.emit(str(exc))
        else:
            self.finished.emit(result)

    @Slot()
    def stop(self) -> None:
        self._stop_flag = True


class ReconstructionInterface(QObject):
    """Owns the reconstruction options and at most one running reconstruction."""

    progress = Signal(str)
    finished = Signal(object)  # ReconstructionResult
    error = Signal(str)

    def __init__(self, settings: ProjectSettings, parent: Optional[QObject] = None) -> None:
        super().__init__(parent)
        self._settings = settings
        self._layout = ProjectLayout(settings.project_root)
        self._options = ReconstructionOptions.from_settings(settings)
        self._thread: QThread | None = None
        self._worker: ReconstructionWorker | None = None

    @property
    def options(self) -> ReconstructionOptions:
        return self._options

    def is_running(self) -> bool:
        return self._worker is not None

    def reload_settings(self, settings: ProjectSettings | None = None) -> None:
        """Re-read the pipeline options (optionally from a new settings object)."""
        if settings is not None:
            self._settings = settings
            self._layout = ProjectLayout(settings.project_root)
        self._options = ReconstructionOptions.from_settings(self._settings)
        logger.debug("Reconstruction options reloaded: %s", self._options)

    @Slot()
    def perform_reconstruction(self) -> bool:
        """Start the pipeline on a worker thread; False if one is already running."""
        if self._worker is not None:
            logger.warning("Reconstruction already running; request ignored")
            return False

        worker = ReconstructionWorker(self._layout, self._options)
        thread = QThread(self)
        worker.moveToThread(thread)

        worker.progress.connect(self.progress)
        worker.finished.connect(self._on_finished)
        worker.error.connect(self._on_error)

        thread.started.connect(worker.run)
        worker.finished.connect(thread.quit)
        worker.error.connect(thread.quit)
        worker.finished.connect(worker.deleteLater)
        worker.error.connect(worker.deleteLater)
        thread.finished.connect(thread.deleteLater)

        self._worker = worker
        self._thread = thread
        logger.info(
            "Starting reconstruction of frames %d..%d from %s",
            self._options.read_from,
            self._options.read_to,
            self._options.source,
        )
        thread.start()
        return True

    def stop(self, wait_timeout_ms: int = 5000) -> None:
        worker, thread = self._worker, self._thread
        self._worker = None
        self._thread = None
        if worker is not None:
            worker.stop()
        if thread is not None:
            thread.quit()
            thread.wait(max(0, int(wait_timeout_ms)))

    def _is_current(self) -> bool:
        # A worker detached by stop() may still deliver a late signal.
        return self._worker is not None and self.sender() is self._worker

    def _release(self) -> None:
        thread = self._thread
        self._worker = None
        self._thread = None
        if thread is not None:
            # The worker has returned from run(), so the thread exits at once.
            thread.quit()
            thread.wait()

    @Slot(object)
    def _on_finished(self, result: ReconstructionResult) -> None:
        if not self._is_current():
            return
        self._release()
        self.finished.emit(result)

    @Slot(str)
    def _on_error(self, message: str) -> None:
        if not self._is_current():
            return
        self._release()
        self.error.emit(message)

"""Non-visual controller behind the scanner window.

It owns the open project's settings, the depth sensor interface and the
reconstruction interface, and translates button clicks into calls on them.
The window only renders the state this controller reports through signals.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Callable, Optional

from PySide6.QtCore import QObject, Signal, Slot

from ..config import project_settings as keys
from ..config.app_config import AppConfig
from ..config.project_settings import ProjectSettings
from ..dataio.frame_range import auto_set_range
from ..models import CaptureMode, DepthFrame
from ..project.layout import ProjectLayout
from ..project.scaffold import ScaffoldReport, make_project
from ..reconstruction.interface import ReconstructionInterface
from ..reconstruction.pipeline import ReconstructionResult
from ..sensors.capture import LongImageStore
from ..sensors.depth_interface import DepthSensorInterface

logger = logging.getLogger(__name__)

# (start label, stop label) for each toggle button.
MODE_LABELS: dict[CaptureMode, tuple[str, str]] = {
    CaptureMode.STREAM: ("Start Stream", "Stop Stream"),
    CaptureMode.ROTATION: ("Start Rotation Stream", "Stop Rotation Stream"),
    CaptureMode.LONG_IMAGES: ("Take Long Images", "Stop Taking Long Images"),
}

SensorFactory = Callable[[ProjectSettings, LongImageStore, QObject], DepthSensorInterface]
ReconstructionFactory = Callable[[ProjectSettings, QObject], ReconstructionInterface]


def mode_label(mode: CaptureMode, active_mode: CaptureMode | None) -> str:
    start, stop = MODE_LABELS[mode]
    return stop if mode is active_mode else start


class ScannerController(QObject):
    """Drive the sensor and reconstruction interfaces for one open project."""

    project_opened = Signal(str, bool)  # (project name, debug interface)
    settings_reloaded = Signal()
    mode_changed = Signal(object)       # CaptureMode | None
    capture_locked = Signal(bool)       # lock record/replay/PCD checkboxes
    status_message = Signal(str)
    frame_ready = Signal(object)        # DepthFrame
    reconstruction_finished = Signal(object)

    def __init__(
        self,
        app_config: AppConfig | None = None,
        *,
        sensor_factory: SensorFactory | None = None,
        reconstruction_factory: ReconstructionFactory | None = None,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self._app_config = (app_config or AppConfig()).sanitized()
        self._sensor_factory = sensor_factory or self._default_sensor
        self._reconstruction_factory = reconstruction_factory or self._default_reconstruction

        self._settings_path: Path | None = None
        self._settings: ProjectSettings | None = None
        self._sensor: DepthSensorInterface | None = None
        self._reconstruction: ReconstructionInterface | None = None
        self._long_images = LongImageStore()
        self._active_mode: CaptureMode | None = None

    # ------------------------------------------------------------ factories
    def _default_sensor(
        self, settings: ProjectSettings, long_images: LongImageStore, parent: QObject
    ) -> DepthSensorInterface:
        return DepthSensorInterface(
            settings,
            backend=self._app_config.normalized_sensor_backend(),
            long_images=long_images,
            parent=parent,
        )

    def _default_reconstruction(self, settings: ProjectSettings, parent: QObject) -> ReconstructionInterface:
        return ReconstructionInterface(settings, parent=parent)

    # ----------------------------------------------------------- properties
    @property
    def app_config(self) -> AppConfig:
        return self._app_config

    @property
    def settings(self) -> ProjectSettings | None:
        return self._settings

    @property
    def sensor(self) -> DepthSensorInterface | None:
        return self._sensor

    @property
    def reconstruction(self) -> ReconstructionInterface | None:
        return self._reconstruction

    @property
    def active_mode(self) -> CaptureMode | None:
        return self._active_mode

    @property
    def long_images(self) -> LongImageStore:
        return self._long_images

    def has_project(self) -> bool:
        return self._settings is not None

    def flag(self, key: str) -> bool:
        if self._settings is None:
            return False
        return self._settings.bool_value(key)

    # -------------------------------------------------------------- project
    def make_project(self, target: str | Path) -> ScaffoldReport:
        report = make_project(Path(target), self._app_config.template_dir)
        self.status_message.emit(report.summary())
        return report

    def open_project(self, settings_path: str | Path) -> bool:
        path = Path(settings_path)
        if not path.is_file():
            logger.error("Project settings file does not exist: %s", path)
            self.status_message.emit(f"Cannot open {path}")
            return False

        self.shutdown()
        self._settings_path = path
        self._settings = self._load_settings(path)
        self._install_sensor()
        self._install_reconstruction()

        name = self._settings.project_name
        debug = self._settings.bool_value(keys.DEBUG_INTERFACE)
        logger.info("Opened project %r (%s)", name, path)
        self.project_opened.emit(name, debug)
        return True

    def _load_settings(self, path: Path) -> ProjectSettings:
        settings = ProjectSettings(path)
        if settings.bool_value(keys.AUTO_SET_RANGE):
            source = settings.str_value(keys.READ_SOURCE, "stream").strip().lower()
            layout = ProjectLayout(settings.project_root)
            auto_set_range(settings, layout.source_dir(source), source)
        return settings

    def _install_sensor(self) -> None:
        old = self._sensor
        if old is not None:
            if old.is_init():
                old.shutdown_interface()
            old.deleteLater()
        sensor = self._sensor_factory(self._settings, self._long_images, self)
        sensor.frame_ready.connect(self.frame_ready)
        sensor.capture_finished.connect(self._on_capture_finished)
        sensor.error_reported.connect(self._on_sensor_error)
        self._sensor = sensor

    def _install_reconstruction(self) -> None:
        old = self._reconstruction
        if old is not None:
            old.finished.disconnect(self._on_reconstruction_finished)
            old.error.disconnect(self._on_reconstruction_error)
            old.progress.disconnect(self.status_message)
            old.deleteLater()
        recon = self._reconstruction_factory(self._settings, self)
        recon.finished.connect(self._on_reconstruction_finished)
        recon.error.connect(self._on_reconstruction_error)
        recon.progress.connect(self.status_message)
        self._reconstruction = recon

    def reload_settings(self) -> None:
        """
        Re-read the settings file and hand it to both collaborators.

        An idle sensor interface is replaced so it starts from the new
        settings; a running one is kept and picks them up on its next start.
        """
        if self._settings_path is None:
            raise RuntimeError("No project opened.")
        self._settings = self._load_settings(self._settings_path)
        if self._sensor is not None and self._sensor.is_init():
            logger.info("Sensor is running; settings apply on the next start")
        else:
            self._install_sensor()
        if self._reconstruction is not None:
            self._reconstruction.reload_settings(self._settings)
        self.settings_reloaded.emit()

    # -------------------------------------------------------------- capture
    def toggle_mode(self, mode: CaptureMode) -> None:
        """Start ``mode`` when the sensor is idle, otherwise stop the sensor."""
        mode = CaptureMode(mode)
        if self._sensor is None:
            self.status_message.emit("Open a project first.")
            return

        if self._sensor.is_init():
            self._stop_capture()
            return

        self.reload_settings()
        sensor = self._sensor
        if not sensor.initialize_interface():
            self.status_message.emit("Sensor could not be initialized.")
            return

        self.capture_locked.emit(True)
        self._set_active_mode(mode)
        if mode is CaptureMode.STREAM:
            started = sensor.start_stream()
        elif mode is CaptureMode.ROTATION:
            started = sensor.start_rotation_stream()
        else:
            started = sensor.take_long_images()
        if started is False:
            self._stop_capture()
            return
        self.status_message.emit(f"{MODE_LABELS[mode][0]}: running")

    def _set_active_mode(self, mode: CaptureMode | None) -> None:
        self._active_mode = mode
        self.mode_changed.emit(mode)

    def _stop_capture(self) -> None:
        if self._sensor is not None:
            self._sensor.shutdown_interface()
        self.capture_locked.emit(False)
        if self._active_mode is not None:
            self.status_message.emit(f"{MODE_LABELS[self._active_mode][0]}: stopped")
        self._set_active_mode(None)

    def take_one_long_image(self) -> DepthFrame | None:
        """Single-shot long image: initialize, capture, settle, shut down."""
        if self._sensor is None:
            self.status_message.emit("Open a project first.")
            return None
        if self._sensor.is_init():
            self._stop_capture()

        self.reload_settings()
        sensor = self._sensor
        image: DepthFrame | None = None
        if sensor.initialize_interface():
            self.capture_locked.emit(True)
            try:
                image = sensor.take_one_long_image()
            finally:
                self.capture_locked.emit(False)
            time.sleep(self._app_config.settle_delay_s)
        else:
            self.status_message.emit("Sensor could not be initialized.")
        sensor.shutdown_interface()

        if image is not None:
            self.status_message.emit(f"Long image captured ({len(self._long_images)} queued)")
        return image

    def save_long_image_data(self) -> int:
        if self._sensor is None:
            self.status_message.emit("Open a project first.")
            return 0
        count = self._sensor.save_long_image_data()
        self.status_message.emit(f"Saved {count} long image(s)")
        return count

    # ------------------------------------------------------- reconstruction
    def perform_reconstruction(self) -> bool:
        if self._reconstruction is None:
            self.status_message.emit("Open a project first.")
            return False
        self.reload_settings()
        started = self._reconstruction.perform_reconstruction()
        if started:
            self.status_message.emit("Reconstruction started")
        return bool(started)

    # ------------------------------------------------------------- settings
    def set_flag(self, key: str, checked: bool) -> None:
        """Write one checkbox state through to the settings file."""
        if self._settings is None:
            return
        self._settings.set_flag(key, checked)

    # ------------------------------------------------------------- shutdown
    def shutdown(self) -> None:
        if self._sensor is not None and self._sensor.is_init():
            self._stop_capture()
        if self._reconstruction is not None and self._reconstruction.is_running():
            self._reconstruction.stop()

    # ------------------------------------------------------------ callbacks
    @Slot()
    def _on_capture_finished(self) -> None:
        if self._active_mode is None:
            return
        logger.info("Capture %s finished on its own", self._active_mode.value)
        self._stop_capture()

    @Slot(str)
    def _on_sensor_error(self, message: str) -> None:
        self.status_message.emit(f"Sensor error: {message}")

    @Slot(object)
    def _on_reconstruction_finished(self, result: ReconstructionResult) -> None:
        self.status_message.emit(result.summary())
        self.reconstruction_finished.emit(result)

    @Slot(str)
    def _on_reconstruction_error(self, message: str) -> None:
        self.status_message.emit(f"Reconstruction failed: {message}")

"""Main window of the depth scanner."""

from __future__ import annotations

import logging

from PySide6.QtCore import QSignalBlocker, Qt, Slot
from PySide6.QtGui import QCloseEvent, QGuiApplication
from PySide6.QtWidgets import (
    QCheckBox,
    QFileDialog,
    QGroupBox,
    QHBoxLayout,
    QMainWindow,
    QPushButton,
    QVBoxLayout,
    QWidget,
)

from ..config import project_settings as keys
from ..config.app_config import AppConfig
from ..models import CaptureMode
from .scanner_controller import MODE_LABELS, ScannerController, mode_label
from .widgets.depth_preview import DepthPreviewWidget

logger = logging.getLogger(__name__)

NO_PROJECT_TITLE = "No project opened..."
PROJECT_TITLE = "Project: {name}"


class ScannerWindow(QMainWindow):
    """
    Small always-visible control window.

    Before a project is opened it only offers Make Project / Open Project.
    Once a project is open it shows the debug or release layout chosen by
    the project's ``PROJECT_SETTINGS/DEBUG_INTERFACE`` flag.
    """

    def __init__(
        self,
        app_config: AppConfig | None = None,
        controller: ScannerController | None = None,
    ) -> None:
        super().__init__()
        self._controller = controller or ScannerController(app_config)
        self._app_config = self._controller.app_config

        self._mode_buttons: dict[CaptureMode, QPushButton] = {}
        self._checkboxes: dict[str, QCheckBox] = {}
        self._preview: DepthPreviewWidget | None = None

        self.setWindowFlags(Qt.Window | Qt.CustomizeWindowHint | Qt.WindowTitleHint | Qt.WindowCloseButtonHint)
        self._connect_controller()
        self._build_open_dialog_interface()

    @property
    def controller(self) -> ScannerController:
        return self._controller

    def _connect_controller(self) -> None:
        c = self._controller
        c.project_opened.connect(self._on_project_opened)
        c.mode_changed.connect(self._on_mode_changed)
        c.capture_locked.connect(self._on_capture_locked)
        c.settings_reloaded.connect(self._refresh_checkboxes)
        c.status_message.connect(self._show_status)
        c.frame_ready.connect(self._on_frame_ready)

    # ---------------------------------------------------------------- layouts
    def _project_buttons(self) -> list[QPushButton]:
        make_btn = QPushButton("Make Project")
        make_btn.clicked.connect(self._on_make_project_clicked)
        open_btn = QPushButton("Open Project")
        open_btn.clicked.connect(self._on_open_project_clicked)
        return [make_btn, open_btn]

    def _build_open_dialog_interface(self) -> None:
        self.setWindowTitle(NO_PROJECT_TITLE)
        central = QWidget(self)
        layout = QHBoxLayout(central)
        for btn in self._project_buttons():
            layout.addWidget(btn)
        self.setCentralWidget(central)
        self._move_to_top_right()

    def _build_project_interface(self, debug: bool) -> None:
        self._mode_buttons.clear()
        self._checkboxes.clear()
        self._preview = None

        central = QWidget(self)
        layout = QVBoxLayout(central)

        row = QHBoxLayout()
        for btn in self._project_buttons():
            row.addWidget(btn)
        layout.addLayout(row)

        modes = (
            (CaptureMode.STREAM, CaptureMode.ROTATION, CaptureMode.LONG_IMAGES)
            if debug
            else (CaptureMode.STREAM, CaptureMode.ROTATION)
        )
        for mode in modes:
            btn = QPushButton(MODE_LABELS[mode][0])
            btn.clicked.connect(lambda _checked=False, m=mode: self._controller.toggle_mode(m))
            self._mode_buttons[mode] = btn
            layout.addWidget(btn)

        if debug:
            one_btn = QPushButton("Take One Long Image")
            one_btn.clicked.connect(self._controller.take_one_long_image)
            save_btn = QPushButton("Save Long Image Data")
            save_btn.clicked.connect(self._controller.save_long_image_data)
            layout.addWidget(one_btn)
            layout.addWidget(save_btn)
            layout.addWidget(self._flag_group("Stream settings", keys.STREAM_FLAGS))

        recon_btn = QPushButton("Perform Reconstruction")
        recon_btn.clicked.connect(self._controller.perform_reconstruction)
        layout.addWidget(recon_btn)

        if debug:
            layout.addWidget(self._flag_group("Reconstruction settings", keys.PIPELINE_FLAGS))
            self._preview = DepthPreviewWidget(self)
            layout.addWidget(self._preview)

        self.setCentralWidget(central)
        self.statusBar().showMessage("Started")
        self._on_mode_changed(self._controller.active_mode)
        self.adjustSize()
        self._move_to_top_right()

    def _flag_group(self, title: str, flags: tuple[tuple[str, str], ...]) -> QGroupBox:
        group = QGroupBox(title)
        vbox = QVBoxLayout(group)
        for key, label in flags:
            box = QCheckBox(label)
            box.setChecked(self._controller.flag(key))
            box.toggled.connect(lambda checked, k=key: self._controller.set_flag(k, checked))
            self._checkboxes[key] = box
            vbox.addWidget(box)
        return group

    def _move_to_top_right(self) -> None:
        screen = self.screen() or QGuiApplication.primaryScreen()
        if screen is None:
            return
        area = screen.availableGeometry()
        self.move(area.right() - self.frameGeometry().width() + 1, area.top())

    # ----------------------------------------------------------------- slots
    def _on_make_project_clicked(self) -> None:
        target = QFileDialog.getExistingDirectory(
            self, "Select new project directory...", str(self._app_config.dialog_start_dir)
        )
        if target:
            self._controller.make_project(target)

    def _on_open_project_clicked(self) -> None:
        path, _ = QFileDialog.getOpenFileName(
            self,
            "Select project ini file...",
            str(self._app_config.dialog_start_dir),
            "*.ini",
        )
        if path:
            self._controller.open_project(path)

    @Slot(str, bool)
    def _on_project_opened(self, name: str, debug: bool) -> None:
        self.setWindowTitle(PROJECT_TITLE.format(name=name))
        self._build_project_interface(debug)

    @Slot(object)
    def _on_mode_changed(self, active: CaptureMode | None) -> None:
        for mode, btn in self._mode_buttons.items():
            btn.setText(mode_label(mode, active))

    @Slot(bool)
    def _on_capture_locked(self, locked: bool) -> None:
        for key in keys.CAPTURE_LOCKED_FLAGS:
            box = self._checkboxes.get(key)
            if box is not None:
                box.setEnabled(not locked)

    @Slot()
    def _refresh_checkboxes(self) -> None:
        for key, box in self._checkboxes.items():
            blocker = QSignalBlocker(box)
            box.setChecked(self._controller.flag(key))
            del blocker

    @Slot(str)
    def _show_status(self, message: str) -> None:
        self.statusBar().showMessage(message)

    @Slot(object)
    def _on_frame_ready(self, frame) -> None:
        if self._preview is not None:
            self._preview.show_frame(frame)

    def closeEvent(self, event: QCloseEvent) -> None:
        try:
            self._controller.shutdown()
        except Exception:  # pragma: no cover - best-effort shutdown
            logger.exception("Failed to shut down the sensor on close")
        super().closeEvent(event)

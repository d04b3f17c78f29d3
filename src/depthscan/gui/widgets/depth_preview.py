from __future__ import annotations

import numpy as np
import pyqtgraph as pg
from PySide6.QtCore import QTimer, Slot
from PySide6.QtWidgets import QLabel, QVBoxLayout, QWidget

from ...models import DepthFrame


class DepthPreviewWidget(QWidget):
    """
    Live view of the most recent depth frame.

    Frames may arrive faster than the screen refreshes; only the newest one
    is kept and drawn on the next timer tick.
    """

    def __init__(
        self,
        parent: QWidget | None = None,
        *,
        refresh_hz: float = 15.0,
        max_depth_mm: float = 2000.0,
    ) -> None:
        super().__init__(parent)
        self._pending: DepthFrame | None = None
        self._max_depth = float(max_depth_mm)

        self.plot_widget = pg.PlotWidget()
        self.plot_widget.setAspectLocked(True)
        self.plot_widget.invertY(True)
        self.plot_widget.hideAxis("left")
        self.plot_widget.hideAxis("bottom")
        self._image = pg.ImageItem(axisOrder="row-major")
        self._image.setLookupTable(pg.colormap.get("viridis").getLookupTable(nPts=256))
        self.plot_widget.addItem(self._image)

        self._caption = QLabel("No frame")

        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.addWidget(self.plot_widget)
        layout.addWidget(self._caption)

        self._timer = QTimer(self)
        self._timer.setInterval(max(1, int(1000.0 / max(1.0, refresh_hz))))
        self._timer.timeout.connect(self._redraw)
        self._timer.start()

    @Slot(object)
    def show_frame(self, frame: DepthFrame) -> None:
        self._pending = frame

    def clear(self) -> None:
        self._pending = None
        self._image.clear()
        self._caption.setText("No frame")

    def _redraw(self) -> None:
        frame = self._pending
        if frame is None:
            return
        self._pending = None
        depth = np.asarray(frame.depth, dtype=np.float32)
        self._image.setImage(depth, levels=(0.0, self._max_depth), autoLevels=False)
        self._caption.setText(
            f"Frame {frame.index}  angle {frame.angle_deg:.1f} deg  "
            f"valid {frame.valid_fraction() * 100.0:.0f}%"
        )

"""Depth frame sources: synthetic scene, recorded stream replay and OpenNI2.

Sources are plain (non-Qt) objects with ``open()``/``read()``/``close()``.
``read()`` blocks until the next frame is due and returns ``None`` once a
finite source is exhausted.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Optional

import numpy as np

from ..config.calibration import CameraIntrinsics
from ..dataio.frame_store import indexed_files, load_frame
from ..models import DepthFrame
from ..processing.depth_filters import to_depth_units
from ..processing.geometry import rotation_y

logger = logging.getLogger(__name__)


class SensorUnavailableError(RuntimeError):
    """The requested frame source cannot be opened on this machine."""


class FrameSource:
    """Base class for depth frame providers."""

    name = "source"

    def __init__(self, fps: float = 30.0) -> None:
        self._fps = max(0.0, float(fps))
        self._is_open = False
        self._last_read: float | None = None

    @property
    def is_open(self) -> bool:
        return self._is_open

    def open(self) -> None:
        self._is_open = True
        self._last_read = None

    def close(self) -> None:
        self._is_open = False

    def read(self) -> Optional[DepthFrame]:
        raise NotImplementedError

    def set_angle(self, angle_deg: float) -> bool:
        """Move the turntable to ``angle_deg``; False if the source has none."""
        return False

    def _pace(self) -> None:
        if self._fps <= 0.0:
            return
        period = 1.0 / self._fps
        now = time.monotonic()
        if self._last_read is not None:
            remaining = period - (now - self._last_read)
            if remaining > 0:
                time.sleep(remaining)
                now = time.monotonic()
        self._last_read = now


class SyntheticFrameSource(FrameSource):
    """
    Ray-cast an ellipsoid standing on a virtual turntable in front of a wall.

    The turntable axis is the camera Y axis shifted to ``center_z``; the
    ellipsoid turns with :meth:`set_angle`. Gaussian noise and random
    dropouts mimic a structured-light sensor.
    """

    name = "synthetic"

    def __init__(
        self,
        intrinsics: CameraIntrinsics | None = None,
        *,
        fps: float = 30.0,
        center_z: float = 800.0,
        axes_mm: tuple[float, float, float] = (120.0, 160.0, 70.0),
        wall_z: float = 1400.0,
        noise_mm: float = 2.0,
        dropout: float = 0.01,
        seed: int | None = None,
    ) -> None:
        super().__init__(fps)
        self._intrinsics = intrinsics or CameraIntrinsics()
        self._center_z = float(center_z)
        self._axes = np.asarray(axes_mm, dtype=np.float64)
        self._wall_z = float(wall_z)
        self._noise_mm = max(0.0, float(noise_mm))
        self._dropout = min(1.0, max(0.0, float(dropout)))
        self._rng = np.random.default_rng(seed)
        self._angle_deg = 0.0
        self._index = 0

        intr = self._intrinsics
        v, u = np.mgrid[0 : intr.height, 0 : intr.width].astype(np.float64)
        self._rays = np.stack(
            ((u - intr.cx) / intr.fx, (v - intr.cy) / intr.fy, np.ones_like(u)), axis=-1
        )

    def set_angle(self, angle_deg: float) -> bool:
        self._angle_deg = float(angle_deg) % 360.0
        return True

    def render(self, angle_deg: float) -> np.ndarray:
        """Noise-free depth image (float mm) of the scene at ``angle_deg``."""
        to_object = rotation_y(-angle_deg)
        center = np.array([0.0, 0.0, self._center_z])
        origin = -(to_object @ center) / self._axes
        dirs = (self._rays @ to_object.T) / self._axes

        a = np.sum(dirs * dirs, axis=-1)
        b = 2.0 * np.sum(dirs * origin, axis=-1)
        c = float(np.sum(origin * origin)) - 1.0
        disc = b * b - 4.0 * a * c
        hit = disc >= 0.0
        t = np.full(a.shape, np.inf)
        t[hit] = (-b[hit] - np.sqrt(disc[hit])) / (2.0 * a[hit])
        t[t <= 0.0] = np.inf
        # Rays have unit z, so the ray parameter is the depth.
        return np.where(np.isfinite(t), t, self._wall_z)

    def read(self) -> Optional[DepthFrame]:
        if not self._is_open:
            raise RuntimeError("SyntheticFrameSource is not open")
        self._pace()
        depth = self.render(self._angle_deg)
        if self._noise_mm > 0.0:
            depth = depth + self._rng.normal(0.0, self._noise_mm, size=depth.shape)
        if self._dropout > 0.0:
            depth[self._rng.random(depth.shape) < self._dropout] = 0.0
        frame = DepthFrame(
            index=self._index,
            depth=to_depth_units(depth),
            timestamp_ns=time.monotonic_ns(),
            angle_deg=self._angle_deg,
        )
        self._index += 1
        return frame


class ReplayFrameSource(FrameSource):
    """Play back ``frame_NNNNNN.npz`` files from a project's stream folder."""

    name = "replay"

    def __init__(self, stream_dir: Path, *, fps: float = 30.0) -> None:
        super().__init__(fps)
        self._stream_dir = Path(stream_dir)
        self._pending: list[tuple[int, Path]] = []

    def open(self) -> None:
        files = indexed_files(self._stream_dir)
        if not files:
            raise SensorUnavailableError(f"No recorded frames to replay in {self._stream_dir}")
        self._pending = list(files.items())
        logger.info("Replaying %d frame(s) from %s", len(self._pending), self._stream_dir)
        super().open()

    def read(self) -> Optional[DepthFrame]:
        if not self._is_open:
            raise RuntimeError("ReplayFrameSource is not open")
        if not self._pending:
            return None
        self._pace()
        index, path = self._pending.pop(0)
        return load_frame(path, index)

    def close(self) -> None:
        self._pending = []
        super().close()


class OpenNiFrameSource(FrameSource):
    """Depth stream from an OpenNI2 device (requires the ``openni`` package)."""

    name = "openni"

    def __init__(self, redist_path: str | None = None) -> None:
        super().__init__(fps=0.0)
        self._redist_path = redist_path
        self._openni2 = None
        self._device = None
        self._stream = None
        self._index = 0

    def open(self) -> None:
        try:
            from openni import openni2
        except ImportError as exc:
            raise SensorUnavailableError(
                "OpenNI2 bindings are not installed (pip install openni)"
            ) from exc

        try:
            if self._redist_path:
                openni2.initialize(self._redist_path)
            else:
                openni2.initialize()
            self._openni2 = openni2
            self._device = openni2.Device.open_any()
            self._stream = self._device.create_depth_stream()
            self._stream.start()
        except Exception as exc:
            self._release()
            raise SensorUnavailableError(f"Could not open OpenNI2 device: {exc}") from exc
        self._index = 0
        super().open()

    def read(self) -> Optional[DepthFrame]:
        if not self._is_open or self._stream is None:
            raise RuntimeError("OpenNiFrameSource is not open")
        frame = self._stream.read_frame()
        buffer = np.ctypeslib.as_array(frame.get_buffer_as_uint16())
        depth = buffer.reshape(frame.height, frame.width).copy()
        result = DepthFrame(index=self._index, depth=depth, timestamp_ns=int(frame.timestamp) * 1000)
        self._index += 1
        return result

    def close(self) -> None:
        self._release()
        super().close()

    def _release(self) -> None:
        stream, self._stream = self._stream, None
        device, self._device = self._device, None
        if stream is not None:
            try:
                stream.stop()
            except Exception:
                logger.exception("Failed to stop OpenNI2 depth stream")
        if device is not None:
            try:
                device.close()
            except Exception:
                logger.exception("Failed to close OpenNI2 device")
        if self._openni2 is not None:
            self._openni2.unload()
            self._openni2 = None

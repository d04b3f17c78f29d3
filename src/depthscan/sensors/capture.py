"""Per-frame capture logic shared by all capture modes.

:class:`CaptureSession` has no Qt dependency. The capture worker thread
drives it, and single long-image captures call it directly.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

import numpy as np

from ..config import project_settings as keys
from ..config.calibration import CameraIntrinsics
from ..config.project_settings import ProjectSettings
from ..dataio.frame_store import (
    FRAME_PREFIX,
    FRAME_SUFFIX,
    LONG_PREFIX,
    PCD_SUFFIX,
    indexed_name,
    next_index,
    save_frame,
)
from ..dataio.pcd import write_pcd
from ..models import DepthFrame
from ..processing.depth_filters import average_frames, bilateral_filter, to_depth_units
from ..processing.geometry import depth_to_points
from ..project.layout import ProjectLayout
from .sources import FrameSource

logger = logging.getLogger(__name__)


@dataclass
class CaptureOptions:
    record_stream: bool = False
    replay: bool = False
    convert_to_pcd: bool = False
    undistort: bool = False
    bilateral: bool = False
    bilateral_diameter: int = 5
    bilateral_sigma_space: float = 2.0
    bilateral_sigma_range: float = 30.0
    long_image_frames: int = 30
    rotation_step_deg: float = 30.0
    rotation_dwell_s: float = 0.5
    fps: float = 30.0

    @classmethod
    def from_settings(cls, settings: ProjectSettings) -> CaptureOptions:
        return cls(
            record_stream=settings.bool_value(keys.ENABLE_STREAM_RECORDING),
            replay=settings.bool_value(keys.ENABLE_REPLAY_RECORD_STREAM),
            convert_to_pcd=settings.bool_value(keys.ENABLE_CONVERT_TO_PCD),
            undistort=settings.bool_value(keys.ENABLE_UNDISTORTION),
            bilateral=settings.bool_value(keys.ENABLE_BILATERAL_FILTER),
            bilateral_diameter=max(1, settings.int_value(keys.BILATERAL_DIAMETER, 5)),
            bilateral_sigma_space=max(1e-3, settings.float_value(keys.BILATERAL_SIGMA_SPACE, 2.0)),
            bilateral_sigma_range=max(1e-3, settings.float_value(keys.BILATERAL_SIGMA_RANGE, 30.0)),
            long_image_frames=max(1, settings.int_value(keys.LONG_IMAGE_FRAMES, 30)),
            rotation_step_deg=settings.float_value(keys.ROTATION_STEP_DEGREES, 30.0),
            rotation_dwell_s=max(0.0, settings.float_value(keys.ROTATION_DWELL_S, 0.5)),
            fps=max(0.0, settings.float_value(keys.STREAM_FPS, 30.0)),
        )

    @property
    def records(self) -> bool:
        """Recording is suppressed while replaying the recorded stream."""
        return self.record_stream and not self.replay

    def rotation_angles(self) -> list[float]:
        step = float(self.rotation_step_deg)
        if step <= 0.0 or step > 360.0:
            raise ValueError(f"Rotation step must be in (0, 360], got {step}")
        count = max(1, int(round(360.0 / step)))
        return [i * step for i in range(count)]


class LongImageStore:
    """Long images waiting to be saved; shared between threads."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._images: list[DepthFrame] = []

    def append(self, image: DepthFrame) -> None:
        with self._lock:
            self._images.append(image)

    def drain(self) -> list[DepthFrame]:
        with self._lock:
            images, self._images = self._images, []
        return images

    def __len__(self) -> int:
        with self._lock:
            return len(self._images)


def write_long_images(
    images: list[DepthFrame],
    layout: ProjectLayout,
    intrinsics: CameraIntrinsics,
    *,
    undistort: bool = False,
) -> list[Path]:
    """Write long images to ``stream/long_NNNN.npz`` and ``pcd/long_NNNN.pcd``."""
    written: list[Path] = []
    start = max(
        next_index(layout.stream_dir, LONG_PREFIX, FRAME_SUFFIX),
        next_index(layout.pcd_dir, LONG_PREFIX, PCD_SUFFIX),
    )
    for offset, image in enumerate(images):
        index = start + offset
        npz_path = save_frame(layout.stream_dir / indexed_name(LONG_PREFIX, index, FRAME_SUFFIX), image)
        points = depth_to_points(image.depth, intrinsics, undistort=undistort)
        pcd_path = write_pcd(
            layout.pcd_dir / indexed_name(LONG_PREFIX, index, PCD_SUFFIX),
            points,
            angle_deg=image.angle_deg,
        )
        written.extend([npz_path, pcd_path])
    return written


class CaptureSession:
    """Filter, record and convert frames read from a :class:`FrameSource`."""

    def __init__(
        self,
        source: FrameSource,
        layout: ProjectLayout,
        options: CaptureOptions,
        intrinsics: CameraIntrinsics,
        long_images: LongImageStore | None = None,
    ) -> None:
        self.source = source
        self.layout = layout
        self.options = options
        self.intrinsics = intrinsics
        self.long_images = long_images if long_images is not None else LongImageStore()
        self._next_index = max(
            next_index(layout.stream_dir, FRAME_PREFIX, FRAME_SUFFIX),
            next_index(layout.pcd_dir, FRAME_PREFIX, PCD_SUFFIX),
        )
        self.frames_processed = 0

    def _filtered_depth(self, depth: np.ndarray) -> np.ndarray:
        if not self.options.bilateral:
            return depth
        return to_depth_units(
            bilateral_filter(
                depth,
                self.options.bilateral_diameter,
                self.options.bilateral_sigma_space,
                self.options.bilateral_sigma_range,
            )
        )

    def process_frame(self, frame: DepthFrame) -> DepthFrame:
        """
        Apply the stream settings to one frame.

        The raw frame is recorded; filters only affect the PCD output and the
        returned preview frame. Replayed frames keep their original index.
        """
        if not self.options.replay:
            frame = DepthFrame(
                index=self._next_index,
                depth=frame.depth,
                timestamp_ns=frame.timestamp_ns,
                angle_deg=frame.angle_deg,
            )
            self._next_index += 1

        if self.options.records:
            save_frame(self.layout.stream_dir / indexed_name(FRAME_PREFIX, frame.index, FRAME_SUFFIX), frame)

        processed = frame.with_depth(self._filtered_depth(frame.depth))

        if self.options.convert_to_pcd:
            points = depth_to_points(processed.depth, self.intrinsics, undistort=self.options.undistort)
            write_pcd(
                self.layout.pcd_dir / indexed_name(FRAME_PREFIX, frame.index, PCD_SUFFIX),
                points,
                angle_deg=frame.angle_deg,
            )

        self.frames_processed += 1
        return processed

    def read_and_process(self) -> Optional[DepthFrame]:
        frame = self.source.read()
        if frame is None:
            return None
        return self.process_frame(frame)

    def capture_long_image(self, stop_requested: Callable[[], bool] | None = None) -> Optional[DepthFrame]:
        """
        Average ``long_image_frames`` consecutive frames into one long image
        and queue it for :func:`write_long_images`.

        Returns ``None`` when a stop is requested before all frames were
        read, or when the source delivers no frame at all. A source that runs
        dry part way (replay) yields an average of the frames it had.
        """
        wanted = self.options.long_image_frames
        depths: list[np.ndarray] = []
        first: DepthFrame | None = None
        for _ in range(wanted):
            if stop_requested is not None and stop_requested():
                logger.info("Long image discarded after %d of %d frame(s)", len(depths), wanted)
                return None
            frame = self.source.read()
            if frame is None:
                break
            if first is None:
                first = frame
            depths.append(self._filtered_depth(frame.depth))
        if first is None:
            return None
        if len(depths) < wanted:
            logger.warning("Source ran out; long image averages %d of %d frame(s)", len(depths), wanted)

        image = DepthFrame(
            index=len(self.long_images),
            depth=to_depth_units(average_frames(depths)),
            timestamp_ns=first.timestamp_ns,
            angle_deg=first.angle_deg,
        )
        self.long_images.append(image)
        logger.info("Captured long image from %d frame(s)", len(depths))
        return image

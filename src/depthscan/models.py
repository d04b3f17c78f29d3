"""Shared dataclasses for depth frames and capture modes."""

from __future__ import annotations

import enum
from dataclasses import dataclass, replace

import numpy as np


class CaptureMode(str, enum.Enum):
    STREAM = "stream"
    ROTATION = "rotation"
    LONG_IMAGES = "long_images"


@dataclass
class DepthFrame:
    """
    One depth image from the sensor.

    ``depth`` holds raw sensor units (uint16, 0 = no reading). ``angle_deg``
    is the turntable angle the frame was captured at.
    """

    index: int
    depth: np.ndarray
    timestamp_ns: int = 0
    angle_deg: float = 0.0

    @property
    def shape(self) -> tuple[int, int]:
        return tuple(self.depth.shape[:2])  # type: ignore[return-value]

    def valid_fraction(self) -> float:
        if self.depth.size == 0:
            return 0.0
        return float(np.count_nonzero(self.depth)) / float(self.depth.size)

    def with_depth(self, depth: np.ndarray) -> DepthFrame:
        return replace(self, depth=depth)

"""Depth acquisition: frame sources, capture sessions and the sensor interface."""

from .capture import CaptureOptions, CaptureSession, LongImageStore
from .depth_interface import DepthSensorInterface
from .sources import (
    FrameSource,
    OpenNiFrameSource,
    ReplayFrameSource,
    SensorUnavailableError,
    SyntheticFrameSource,
)

__all__ = [
    "CaptureOptions",
    "CaptureSession",
    "DepthSensorInterface",
    "FrameSource",
    "LongImageStore",
    "OpenNiFrameSource",
    "ReplayFrameSource",
    "SensorUnavailableError",
    "SyntheticFrameSource",
]

"""Helpers for recorded frames, PCD clouds and frame index ranges."""

from .frame_range import FrameRangeIterator, auto_set_range
from .frame_store import indexed_files, load_frame, save_frame
from .pcd import PcdFormatError, PointCloud, read_pcd, write_pcd

__all__ = [
    "FrameRangeIterator",
    "PcdFormatError",
    "PointCloud",
    "auto_set_range",
    "indexed_files",
    "load_frame",
    "read_pcd",
    "save_frame",
    "write_pcd",
]

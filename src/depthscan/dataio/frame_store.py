"""Recorded depth frames under ``<project>/stream``.

Each frame is a compressed ``.npz`` archive named ``frame_NNNNNN.npz`` with
``depth`` (uint16), ``timestamp_ns`` and ``angle_deg`` entries. Long images
use the ``long_`` prefix with four digits.
"""

from __future__ import annotations

import re
from pathlib import Path

import numpy as np

from ..models import DepthFrame

FRAME_PREFIX = "frame_"
LONG_PREFIX = "long_"
FILTERED_PREFIX = "filtered_"
FRAME_SUFFIX = ".npz"
PCD_SUFFIX = ".pcd"


def indexed_name(prefix: str, index: int, suffix: str) -> str:
    width = 4 if prefix == LONG_PREFIX else 6
    return f"{prefix}{int(index):0{width}d}{suffix}"


def indexed_files(directory: Path, prefix: str = FRAME_PREFIX, suffix: str = FRAME_SUFFIX) -> dict[int, Path]:
    """Return ``{index: path}`` for files named ``<prefix><digits><suffix>``."""
    directory = Path(directory)
    if not directory.is_dir():
        return {}
    pattern = re.compile(rf"^{re.escape(prefix)}(\d+){re.escape(suffix)}$")
    found: dict[int, Path] = {}
    for path in directory.iterdir():
        match = pattern.match(path.name)
        if match and path.is_file():
            found[int(match.group(1))] = path
    return dict(sorted(found.items()))


def next_index(directory: Path, prefix: str = FRAME_PREFIX, suffix: str = FRAME_SUFFIX) -> int:
    """First free index after the highest one already on disk."""
    existing = indexed_files(directory, prefix, suffix)
    return max(existing) + 1 if existing else 0


def save_frame(path: Path, frame: DepthFrame) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    np.savez_compressed(
        path,
        depth=np.asarray(frame.depth, dtype=np.uint16),
        timestamp_ns=np.int64(frame.timestamp_ns),
        angle_deg=np.float64(frame.angle_deg),
    )
    return path


def load_frame(path: Path, index: int | None = None) -> DepthFrame:
    path = Path(path)
    with np.load(path) as data:
        if "depth" not in data.files:
            raise ValueError(f"{path} does not contain a depth image")
        depth = np.array(data["depth"], dtype=np.uint16)
        timestamp_ns = int(data["timestamp_ns"]) if "timestamp_ns" in data.files else 0
        angle_deg = float(data["angle_deg"]) if "angle_deg" in data.files else 0.0
    if index is None:
        digits = re.findall(r"\d+", path.stem)
        index = int(digits[-1]) if digits else 0
    return DepthFrame(index=index, depth=depth, timestamp_ns=timestamp_ns, angle_deg=angle_deg)

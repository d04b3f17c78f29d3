"""Minimal reader/writer for ASCII PCD (v0.7) point clouds.

Only ``x y z`` float fields are written. The turntable angle of a view is
kept in the ``VIEWPOINT`` header as a rotation about the camera Y axis, so
a cloud can be put back into the turntable frame after it was saved.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from pathlib import Path

import numpy as np


class PcdFormatError(ValueError):
    """Raised for PCD files this module cannot parse."""


@dataclass
class PointCloud:
    points: np.ndarray
    angle_deg: float = 0.0

    def __len__(self) -> int:
        return int(self.points.shape[0])


def _viewpoint_for_angle(angle_deg: float) -> str:
    half = math.radians(angle_deg) / 2.0
    return f"0 0 0 {math.cos(half):.9f} 0 {math.sin(half):.9f} 0"


def _angle_from_viewpoint(values: list[str]) -> float:
    if len(values) != 7:
        raise PcdFormatError(f"VIEWPOINT needs 7 values, got {len(values)}")
    qw = float(values[3])
    qy = float(values[5])
    return math.degrees(2.0 * math.atan2(qy, qw))


def write_pcd(path: Path, points: np.ndarray, *, angle_deg: float = 0.0) -> Path:
    """Write ``points`` (N x 3, millimetres) as an ASCII PCD file."""
    path = Path(path)
    pts = np.asarray(points, dtype=np.float64).reshape(-1, 3)
    count = int(pts.shape[0])
    header = "\n".join(
        [
            "# .PCD v0.7 - Point Cloud Data file format",
            "VERSION 0.7",
            "FIELDS x y z",
            "SIZE 4 4 4",
            "TYPE F F F",
            "COUNT 1 1 1",
            f"WIDTH {count}",
            "HEIGHT 1",
            f"VIEWPOINT {_viewpoint_for_angle(angle_deg)}",
            f"POINTS {count}",
            "DATA ascii",
        ]
    )
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="ascii") as fh:
        fh.write(header + "\n")
        if count:
            np.savetxt(fh, pts, fmt="%.4f")
    return path


def read_pcd(path: Path) -> PointCloud:
    """Read an ASCII PCD file with at least ``x y z`` fields."""
    path = Path(path)
    header: dict[str, list[str]] = {}
    with path.open("r", encoding="ascii", errors="replace") as fh:
        for raw in fh:
            line = raw.strip()
            if not line or line.startswith("#"):
                continue
            key, *values = line.split()
            header[key.upper()] = values
            if key.upper() == "DATA":
                break
        else:
            raise PcdFormatError(f"{path}: missing DATA line")

        data_kind = header["DATA"][0].lower() if header["DATA"] else ""
        if data_kind != "ascii":
            raise PcdFormatError(f"{path}: only ASCII PCD is supported (got {data_kind!r})")

        fields_ = [name.lower() for name in header.get("FIELDS", [])]
        try:
            columns = [fields_.index(axis) for axis in ("x", "y", "z")]
        except ValueError as exc:
            raise PcdFormatError(f"{path}: FIELDS must include x y z") from exc

        try:
            count = int(header.get("POINTS", ["0"])[0])
        except ValueError as exc:
            raise PcdFormatError(f"{path}: bad POINTS value") from exc

        if count == 0:
            points = np.empty((0, 3), dtype=np.float64)
        else:
            table = np.loadtxt(fh, dtype=np.float64, ndmin=2)
            if table.shape[0] != count:
                raise PcdFormatError(
                    f"{path}: header announces {count} points, found {table.shape[0]}"
                )
            points = table[:, columns]

    angle = _angle_from_viewpoint(header["VIEWPOINT"]) if "VIEWPOINT" in header else 0.0
    return PointCloud(points=points, angle_deg=angle)

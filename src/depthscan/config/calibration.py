"""Camera intrinsics stored under ``<project>/calibration/intrinsics.yaml``."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Mapping

import yaml

logger = logging.getLogger(__name__)

INTRINSICS_FILENAME = "intrinsics.yaml"


@dataclass(frozen=True)
class CameraIntrinsics:
    """
    Pinhole model with two radial distortion terms.

    The defaults describe a 640x480 structured-light depth camera. Depth
    values are multiplied by ``depth_scale`` to obtain millimetres.
    """

    width: int = 640
    height: int = 480
    fx: float = 570.3
    fy: float = 570.3
    cx: float = 319.5
    cy: float = 239.5
    k1: float = 0.0
    k2: float = 0.0
    depth_scale: float = 1.0

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> CameraIntrinsics:
        if not data:
            return cls()
        if "intrinsics" in data and isinstance(data["intrinsics"], Mapping):
            data = data["intrinsics"]
        known = {f.name for f in fields(cls)}
        payload: dict[str, Any] = {}
        for key, value in data.items():
            if key not in known:
                continue
            payload[key] = int(value) if key in ("width", "height") else float(value)
        return cls(**payload)

    def to_mapping(self) -> dict[str, Any]:
        return {"intrinsics": asdict(self)}

    @property
    def has_distortion(self) -> bool:
        return self.k1 != 0.0 or self.k2 != 0.0


def load_intrinsics(calibration_dir: Path) -> CameraIntrinsics:
    """
    Load the intrinsics for a project.

    A missing or malformed file is logged and the defaults are used so that
    capture keeps working on a fresh project.
    """
    path = Path(calibration_dir) / INTRINSICS_FILENAME
    if not path.exists():
        logger.warning("No camera calibration at %s; using default intrinsics", path)
        return CameraIntrinsics()
    try:
        with path.open("r", encoding="utf-8") as fh:
            raw = yaml.safe_load(fh) or {}
        if not isinstance(raw, Mapping):
            raise ValueError(f"Expected mapping in {path}, got {type(raw).__name__}")
        return CameraIntrinsics.from_mapping(raw)
    except (OSError, ValueError, TypeError, yaml.YAMLError):
        logger.exception("Failed to read camera calibration %s; using defaults", path)
        return CameraIntrinsics()


def save_intrinsics(calibration_dir: Path, intrinsics: CameraIntrinsics) -> Path:
    path = Path(calibration_dir) / INTRINSICS_FILENAME
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as fh:
        yaml.safe_dump(intrinsics.to_mapping(), fh, default_flow_style=False, sort_keys=False)
    return path

"""Per-project settings stored in ``project.ini``.

The file is a plain INI document (``[GROUP]`` sections with ``KEY=value``
lines) handled through :class:`QSettings`. Keys are addressed as
``"GROUP/KEY"``. Every write is synced to disk straight away so the sensor
and reconstruction collaborators, which re-read the file when they reload,
always see the latest user choices.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from PySide6.QtCore import QSettings

logger = logging.getLogger(__name__)

SETTINGS_FILENAME = "project.ini"

# --- PROJECT_SETTINGS -------------------------------------------------------
PROJECT_NAME = "PROJECT_SETTINGS/NAME"
DEBUG_INTERFACE = "PROJECT_SETTINGS/DEBUG_INTERFACE"

# --- STREAM_SETTINGS --------------------------------------------------------
ENABLE_STREAM_RECORDING = "STREAM_SETTINGS/ENABLE_STREAM_RECORDING"
ENABLE_REPLAY_RECORD_STREAM = "STREAM_SETTINGS/ENABLE_REPLAY_RECORD_STREAM"
ENABLE_CONVERT_TO_PCD = "STREAM_SETTINGS/ENABLE_CONVERT_TO_PCD"
ENABLE_UNDISTORTION = "STREAM_SETTINGS/ENABLE_UNDISTORTION"
ENABLE_BILATERAL_FILTER = "STREAM_SETTINGS/ENABLE_BILATERAL_FILTER"
STREAM_FPS = "STREAM_SETTINGS/FPS"

# --- PIPELINE_SETTINGS ------------------------------------------------------
ENABLE_RECONSTRUCTION = "PIPELINE_SETTINGS/ENABLE_RECONSTRUCTION"
PIPELINE_UNDISTORTION = "PIPELINE_SETTINGS/UNDISTORTION"
PIPELINE_BILATERAL_FILTER = "PIPELINE_SETTINGS/OPENCV_BILATERAL_FILTER"
PIPELINE_OUTLIER_FILTER = "PIPELINE_SETTINGS/STATISTICAL_OUTLIER_REMOVAL_FILTER"
PIPELINE_MLS_FILTER = "PIPELINE_SETTINGS/MOVING_LEAST_SQUARES_FILTER"

# --- READING_SETTING --------------------------------------------------------
AUTO_SET_RANGE = "READING_SETTING/AUTO_SET_RANGE"
READ_FROM = "READING_SETTING/FROM"
READ_TO = "READING_SETTING/TO"
READ_STEP = "READING_SETTING/STEP"
READ_SOURCE = "READING_SETTING/SOURCE"

# --- capture / filter tuning ------------------------------------------------
LONG_IMAGE_FRAMES = "LONG_IMAGE_SETTINGS/FRAMES"
ROTATION_STEP_DEGREES = "ROTATION_SETTINGS/STEP_DEGREES"
ROTATION_CENTER_Z = "ROTATION_SETTINGS/CENTER_Z"
ROTATION_DWELL_S = "ROTATION_SETTINGS/DWELL_S"
BILATERAL_DIAMETER = "FILTER_SETTINGS/BILATERAL_DIAMETER"
BILATERAL_SIGMA_SPACE = "FILTER_SETTINGS/BILATERAL_SIGMA_SPACE"
BILATERAL_SIGMA_RANGE = "FILTER_SETTINGS/BILATERAL_SIGMA_RANGE"
SOR_MEAN_K = "FILTER_SETTINGS/SOR_MEAN_K"
SOR_STD_MUL = "FILTER_SETTINGS/SOR_STD_MUL"
MLS_K = "FILTER_SETTINGS/MLS_K"
VOXEL_SIZE = "FILTER_SETTINGS/VOXEL_SIZE"

# (settings key, checkbox label) pairs, in display order.
STREAM_FLAGS: tuple[tuple[str, str], ...] = (
    (ENABLE_STREAM_RECORDING, "Record stream"),
    (ENABLE_REPLAY_RECORD_STREAM, "Replay recorded stream"),
    (ENABLE_CONVERT_TO_PCD, "Save stream as PCD"),
    (ENABLE_UNDISTORTION, "Use lense undistortion"),
    (ENABLE_BILATERAL_FILTER, "Use Bilateral filter"),
)
PIPELINE_FLAGS: tuple[tuple[str, str], ...] = (
    (ENABLE_RECONSTRUCTION, "Reconstruct"),
    (PIPELINE_UNDISTORTION, "Undistortion"),
    (PIPELINE_BILATERAL_FILTER, "Bilateral filter"),
    (PIPELINE_OUTLIER_FILTER, "Statistic filter"),
    (PIPELINE_MLS_FILTER, "Smooth filter"),
)
# Flags that cannot change while the sensor interface is streaming.
CAPTURE_LOCKED_FLAGS: tuple[str, ...] = (
    ENABLE_STREAM_RECORDING,
    ENABLE_REPLAY_RECORD_STREAM,
    ENABLE_CONVERT_TO_PCD,
)

_TRUE_STRINGS = {"1", "true", "yes", "on"}
_FALSE_STRINGS = {"0", "false", "no", "off", ""}


def coerce_bool(value: Any, default: bool = False) -> bool:
    """Interpret INI text (``true``/``0``/``on`` ...) or Python values as bool."""
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    text = str(value).strip().lower()
    if text in _TRUE_STRINGS:
        return True
    if text in _FALSE_STRINGS:
        return False
    return default


class ProjectSettings:
    """Grouped key/value store for one project, synced on every write."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._qsettings = QSettings(str(self._path), QSettings.IniFormat)

    @property
    def path(self) -> Path:
        return self._path

    @property
    def project_root(self) -> Path:
        return self._path.parent

    @property
    def project_name(self) -> str:
        name = self.str_value(PROJECT_NAME).strip()
        return name or self.project_root.name

    def reload(self) -> None:
        """Drop cached values and re-read the file from disk."""
        self._qsettings = QSettings(str(self._path), QSettings.IniFormat)

    # ------------------------------------------------------------------ read
    def contains(self, key: str) -> bool:
        return bool(self._qsettings.contains(key))

    def value(self, key: str, default: Any = None) -> Any:
        return self._qsettings.value(key, default)

    def bool_value(self, key: str, default: bool = False) -> bool:
        return coerce_bool(self._qsettings.value(key, None), default)

    def int_value(self, key: str, default: int = 0) -> int:
        raw = self._qsettings.value(key, None)
        if raw is None:
            return default
        try:
            return int(float(raw))
        except (TypeError, ValueError):
            logger.warning("Setting %s=%r is not an integer; using %d", key, raw, default)
            return default

    def float_value(self, key: str, default: float = 0.0) -> float:
        raw = self._qsettings.value(key, None)
        if raw is None:
            return default
        try:
            return float(raw)
        except (TypeError, ValueError):
            logger.warning("Setting %s=%r is not a number; using %s", key, raw, default)
            return default

    def str_value(self, key: str, default: str = "") -> str:
        raw = self._qsettings.value(key, None)
        if raw is None:
            return default
        return str(raw)

    def groups(self) -> list[str]:
        return list(self._qsettings.childGroups())

    def keys(self) -> list[str]:
        return list(self._qsettings.allKeys())

    # ----------------------------------------------------------------- write
    def set_value(self, key: str, value: Any) -> bool:
        """Write ``value`` under ``key`` and sync the file immediately."""
        self._qsettings.setValue(key, value)
        return self.sync()

    def set_flag(self, key: str, enabled: bool) -> bool:
        return self.set_value(key, bool(enabled))

    def sync(self) -> bool:
        self._qsettings.sync()
        status = self._qsettings.status()
        if status != QSettings.NoError:
            logger.error("Failed to write settings file %s (status=%s)", self._path, status)
            return False
        return True

    def __repr__(self) -> str:
        return f"ProjectSettings({str(self._path)!r})"

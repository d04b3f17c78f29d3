"""Filesystem layout of a scanning project."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from ..config.project_settings import SETTINGS_FILENAME

CALIBRATION_SUBDIR = "calibration"
STREAM_SUBDIR = "stream"
PCD_SUBDIR = "pcd"


@dataclass(frozen=True)
class ProjectLayout:
    """
    Paths that make up a project directory::

        <root>/project.ini
        <root>/calibration/
        <root>/stream/
        <root>/pcd/
    """

    root: Path

    @classmethod
    def from_settings_path(cls, settings_path: str | Path) -> ProjectLayout:
        return cls(Path(settings_path).resolve().parent)

    @property
    def settings_file(self) -> Path:
        return self.root / SETTINGS_FILENAME

    @property
    def calibration_dir(self) -> Path:
        return self.root / CALIBRATION_SUBDIR

    @property
    def stream_dir(self) -> Path:
        return self.root / STREAM_SUBDIR

    @property
    def pcd_dir(self) -> Path:
        return self.root / PCD_SUBDIR

    def source_dir(self, source: str) -> Path:
        """Directory scanned for indexed input frames (``stream`` or ``pcd``)."""
        return self.pcd_dir if source == "pcd" else self.stream_dir

"""Index ranges over recorded frames.

Reconstruction reads frames ``FROM..TO`` (step ``STEP``) from either the
recorded depth stream or the converted clouds. With
``READING_SETTING/AUTO_SET_RANGE`` enabled the range is recomputed from the
files actually present whenever the project settings are loaded.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Iterator

from ..config import project_settings as keys
from ..config.project_settings import ProjectSettings
from .frame_store import FRAME_PREFIX, FRAME_SUFFIX, PCD_SUFFIX, indexed_files

logger = logging.getLogger(__name__)

MAX_INDEX = sys.maxsize
SOURCES = ("stream", "pcd")


def suffix_for_source(source: str) -> str:
    return PCD_SUFFIX if source == "pcd" else FRAME_SUFFIX


class FrameRangeIterator:
    """Iterate existing ``frame_NNNNNN`` files with indices in ``[lower, upper]``."""

    def __init__(
        self,
        directory: Path,
        lower: int = 0,
        upper: int = MAX_INDEX,
        step: int = 1,
        *,
        suffix: str = FRAME_SUFFIX,
    ) -> None:
        if step < 1:
            raise ValueError(f"step must be >= 1, got {step}")
        self._directory = Path(directory)
        self._lower = int(lower)
        self._upper = int(upper)
        self._step = int(step)
        self._files = {
            index: path
            for index, path in indexed_files(self._directory, FRAME_PREFIX, suffix).items()
            if self._lower <= index <= self._upper
        }

    @property
    def lower_bound(self) -> int | None:
        return min(self._files) if self._files else None

    @property
    def upper_bound(self) -> int | None:
        return max(self._files) if self._files else None

    def indices(self) -> list[int]:
        if not self._files:
            return []
        return [
            index
            for index in range(self._lower, self.upper_bound + 1, self._step)
            if index in self._files
        ]

    def missing(self) -> list[int]:
        """Indices in the requested range (up to the upper bound) with no file."""
        if not self._files:
            return []
        return [
            index
            for index in range(self._lower, self.upper_bound + 1, self._step)
            if index not in self._files
        ]

    def __iter__(self) -> Iterator[tuple[int, Path]]:
        for index in self.indices():
            yield index, self._files[index]

    def __len__(self) -> int:
        return len(self.indices())

    @classmethod
    def from_settings(cls, settings: ProjectSettings, directory: Path, source: str) -> FrameRangeIterator:
        lower = settings.int_value(keys.READ_FROM, 0)
        upper = settings.int_value(keys.READ_TO, 0)
        step = max(1, settings.int_value(keys.READ_STEP, 1))
        return cls(directory, lower, upper, step, suffix=suffix_for_source(source))


def auto_set_range(settings: ProjectSettings, directory: Path, source: str) -> tuple[int, int] | None:
    """
    Rewrite ``READING_SETTING/FROM`` and ``TO`` from the frames on disk.

    Returns the new range, or ``None`` (settings untouched) when the source
    directory holds no frames.
    """
    it = FrameRangeIterator(directory, 0, MAX_INDEX, 1, suffix=suffix_for_source(source))
    lower, upper = it.lower_bound, it.upper_bound
    if lower is None or upper is None:
        logger.info("No %s frames in %s; keeping reading range", source, directory)
        return None
    settings.set_value(keys.READ_FROM, lower)
    settings.set_value(keys.READ_TO, upper)
    logger.info("Reading range set to %d..%d from %s", lower, upper, directory)
    return lower, upper

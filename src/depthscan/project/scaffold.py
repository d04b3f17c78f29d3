"""Create a new project directory from the template project."""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass, field
from pathlib import Path

from ..config.project_settings import SETTINGS_FILENAME
from .layout import ProjectLayout

logger = logging.getLogger(__name__)


@dataclass
class ScaffoldReport:
    """Outcome of :func:`make_project`; failures never abort the scaffold."""

    root: Path
    created: list[Path] = field(default_factory=list)
    failures: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures

    def summary(self) -> str:
        if self.ok:
            return f"Project created at {self.root}"
        return f"Project at {self.root} created with {len(self.failures)} problem(s)"


def _ensure_dir(path: Path, report: ScaffoldReport) -> None:
    if path.is_dir():
        return
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        logger.error("Cannot create: %s (%s)", path, exc)
        report.failures.append(f"Cannot create: {path}")
        return
    report.created.append(path)


def copy_recursively(source: Path, target: Path) -> bool:
    """Copy the ``source`` tree into ``target``, merging with existing content."""
    source = Path(source)
    if not source.is_dir():
        logger.error("Template folder does not exist: %s", source)
        return False
    try:
        shutil.copytree(source, target, dirs_exist_ok=True)
    except (OSError, shutil.Error) as exc:
        logger.error("Failed to copy %s to %s: %s", source, target, exc)
        return False
    return True


def make_project(target: str | Path, template: str | Path) -> ScaffoldReport:
    """
    Build the project skeleton at ``target``.

    The calibration folder and ``project.ini`` are seeded from ``template``;
    ``stream/`` and ``pcd/`` are created empty. Each step is attempted even
    when an earlier one failed, and problems are logged and collected in the
    returned report.
    """
    layout = ProjectLayout(Path(target))
    template_layout = ProjectLayout(Path(template))
    report = ScaffoldReport(root=layout.root)

    _ensure_dir(layout.root, report)

    if copy_recursively(template_layout.calibration_dir, layout.calibration_dir):
        report.created.append(layout.calibration_dir)
    else:
        logger.error("Cannot create: %s", layout.calibration_dir)
        report.failures.append(f"Cannot create: {layout.calibration_dir}")

    _ensure_dir(layout.stream_dir, report)
    _ensure_dir(layout.pcd_dir, report)

    template_settings = template_layout.root / SETTINGS_FILENAME
    if not template_settings.is_file():
        logger.error("Default project does not exist: %s", template_settings)
        report.failures.append(f"Default project does not exist: {template_settings}")
    elif layout.settings_file.exists():
        logger.info("Keeping existing settings file %s", layout.settings_file)
    else:
        try:
            shutil.copyfile(template_settings, layout.settings_file)
        except OSError as exc:
            logger.error("Cannot create: %s (%s)", layout.settings_file, exc)
            report.failures.append(f"Cannot create: {layout.settings_file}")
        else:
            report.created.append(layout.settings_file)

    logger.info(report.summary())
    return report

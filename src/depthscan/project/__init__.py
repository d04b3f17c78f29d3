"""Project directory layout and creation from the template project."""

from .layout import ProjectLayout
from .scaffold import ScaffoldReport, make_project

__all__ = ["ProjectLayout", "ScaffoldReport", "make_project"]

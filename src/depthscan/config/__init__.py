"""Configuration objects and helpers for DepthScan.

Two layers of configuration exist:
- :mod:`app_config` holds application-wide defaults (template project,
  sensor backend, settle delay) loaded from an optional YAML file.
- :mod:`project_settings` wraps the per-project ``project.ini`` that the GUI
  checkboxes write through to and the collaborators read from.
Camera intrinsics live next to the project in ``calibration/``
(:mod:`calibration`).
"""

from .app_config import AppConfig, AppPaths, load_app_config
from .calibration import CameraIntrinsics, load_intrinsics
from .project_settings import ProjectSettings

__all__ = [
    "AppConfig",
    "AppPaths",
    "CameraIntrinsics",
    "ProjectSettings",
    "load_app_config",
    "load_intrinsics",
]

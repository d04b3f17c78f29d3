"""Default application paths and configuration helpers."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Mapping, MutableMapping

import yaml

SENSOR_BACKENDS = ("synthetic", "openni")


@dataclass
class AppPaths:
    """
    Commonly used paths for the desktop application.

    ``DEPTHSCAN_TEMPLATE_DIR`` and ``DEPTHSCAN_LOG_DIR`` override the default
    ``default_project``/``logs`` folders relative to the repository root so
    that packaged installs and alternate layouts can keep files elsewhere.
    """

    # repo_root points at the project root (one level above src/)
    repo_root: Path = Path(__file__).resolve().parents[3]
    template_dir: Path = field(init=False)
    logs: Path = field(init=False)

    def __post_init__(self) -> None:
        env_template = os.environ.get("DEPTHSCAN_TEMPLATE_DIR")
        if env_template:
            self.template_dir = Path(env_template).expanduser()
        else:
            self.template_dir = self.repo_root / "default_project"

        env_logs_dir = os.environ.get("DEPTHSCAN_LOG_DIR")
        if env_logs_dir:
            self.logs = Path(env_logs_dir).expanduser()
        else:
            self.logs = self.repo_root / "logs"

    def ensure(self) -> None:
        """Create the log directory if it does not yet exist."""
        self.logs.mkdir(parents=True, exist_ok=True)


@dataclass
class AppConfig:
    """In-memory configuration snapshot for the GUI runtime."""

    template_dir: Path = field(default_factory=lambda: AppPaths().template_dir)
    sensor_backend: str = "synthetic"
    # Pause after a single long-image capture before the sensor is shut down.
    settle_delay_s: float = 1.0
    dialog_start_dir: Path = Path(".")
    log_level: str = "INFO"

    def normalized_sensor_backend(self) -> str:
        """Return the canonical backend identifier (``synthetic`` or ``openni``)."""
        backend = str(self.sensor_backend or "").strip().lower()
        if backend in {"openni", "openni2", "oni"}:
            return "openni"
        return "synthetic"

    def sanitized(self) -> AppConfig:
        """Return a copy with paths expanded and limits applied."""
        try:
            delay = float(self.settle_delay_s)
        except (TypeError, ValueError):
            delay = 1.0
        return AppConfig(
            template_dir=Path(str(self.template_dir)).expanduser(),
            sensor_backend=self.normalized_sensor_backend(),
            settle_delay_s=max(0.0, delay),
            dialog_start_dir=Path(str(self.dialog_start_dir)).expanduser(),
            log_level=str(self.log_level or "INFO").upper(),
        )


def _recognized_fields() -> set[str]:
    return {f.name for f in fields(AppConfig)}


def app_config_from_mapping(data: Mapping[str, Any] | None) -> AppConfig:
    """Build :class:`AppConfig` from ``data`` (ignoring unknown keys)."""
    if not data:
        return AppConfig().sanitized()
    normalized: MutableMapping[str, Any] = dict(data)
    if "app" in normalized and isinstance(normalized["app"], Mapping):
        nested = dict(normalized.pop("app"))
        nested.update(normalized)
        normalized = nested
    known = _recognized_fields()
    payload = {key: normalized[key] for key in normalized.keys() & known}
    return AppConfig(**payload).sanitized()


def load_app_config(path: str | Path | None) -> AppConfig:
    """
    Load configuration from ``path``.

    Missing files fall back to a default :class:`AppConfig`.
    """
    if path is None:
        return AppConfig().sanitized()
    cfg_path = Path(path).expanduser()
    if not cfg_path.exists():
        return AppConfig().sanitized()
    with cfg_path.open("r", encoding="utf-8") as fh:
        raw = yaml.safe_load(fh) or {}
    if not isinstance(raw, Mapping):
        raise ValueError(f"Expected mapping in {cfg_path}, got {type(raw).__name__}")
    return app_config_from_mapping(raw)


__all__ = [
    "SENSOR_BACKENDS",
    "AppConfig",
    "AppPaths",
    "app_config_from_mapping",
    "load_app_config",
]

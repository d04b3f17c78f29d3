"""Qt application entry point for the depth scanner GUI.

This module wires up argument parsing and logging, builds the
:class:`~depthscan.gui.scanner_window.ScannerWindow`, and starts the Qt event
loop. ``python main.py``, ``python -m depthscan.gui.application`` and the
``depthscan`` console script all flow through ``main()`` here.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Tuple

from PySide6.QtCore import QLoggingCategory
from PySide6.QtWidgets import QApplication

from ..config.app_config import SENSOR_BACKENDS, AppConfig, AppPaths, load_app_config
from ..config.logging_config import setup_logging
from .scanner_window import ScannerWindow

logger = logging.getLogger(__name__)


def _build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Depth scanner GUI")
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="YAML file with application settings",
    )
    parser.add_argument(
        "--template-dir",
        type=str,
        default=None,
        help="Default project copied by 'Make Project'",
    )
    parser.add_argument(
        "--sensor",
        choices=SENSOR_BACKENDS,
        default=None,
        help="Depth sensor backend (default: synthetic)",
    )
    parser.add_argument(
        "--settle-delay",
        type=float,
        default=None,
        help="Seconds to wait after a single long image (default: 1.0)",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        help="Logging level (default: INFO)",
    )
    parser.add_argument(
        "--project",
        type=str,
        default=None,
        help="Project ini file to open on startup",
    )
    return parser


def _parse_cli_args(
    argv: list[str],
) -> tuple[argparse.Namespace, list[str]]:
    parser = _build_arg_parser()
    args, qt_args = parser.parse_known_args(argv[1:])
    qt_argv = [argv[0], *qt_args]
    return args, qt_argv


def build_app_config(args: argparse.Namespace) -> AppConfig:
    """Load the YAML config (if any) and apply command-line overrides."""
    config = load_app_config(args.config)
    if args.template_dir:
        config.template_dir = Path(args.template_dir)
    if args.sensor:
        config.sensor_backend = args.sensor
    if args.settle_delay is not None:
        config.settle_delay_s = args.settle_delay
    if args.log_level:
        config.log_level = args.log_level
    return config.sanitized()


def create_app(
    argv: list[str] | None = None,
    *,
    app_config: AppConfig | None = None,
) -> Tuple[QApplication, ScannerWindow]:
    """
    Create the QApplication and the scanner window.

    Returns
    -------
    app:
        The QApplication instance (owned by caller).
    window:
        The scanner window showing the open-project layout.
    """
    qt_args = argv if argv is not None else sys.argv
    app = QApplication.instance() or QApplication(qt_args)

    # Suppress noisy QObject::connect warnings from QStyleHints and similar internals
    QLoggingCategory.setFilterRules("qt.core.qobject.connect=false")

    window = ScannerWindow(app_config=app_config)
    return app, window


def main(argv: list[str] | None = None) -> None:
    raw_argv = argv if argv is not None else sys.argv
    args, qt_argv = _parse_cli_args(raw_argv)
    app_config = build_app_config(args)

    paths = AppPaths()
    paths.ensure()
    setup_logging(app_config.log_level, paths.logs)
    logger.info("Starting depth scanner (sensor backend: %s)", app_config.sensor_backend)

    app, win = create_app(qt_argv, app_config=app_config)
    if args.project:
        win.controller.open_project(args.project)

    win.show()
    raise SystemExit(app.exec())


if __name__ == "__main__":
    main()

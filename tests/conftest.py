import pathlib
import sys
import time

import pytest

# Ensure src/ is on path for direct test execution
ROOT = pathlib.Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from PySide6.QtCore import QCoreApplication  # noqa: E402

from depthscan.config.calibration import CameraIntrinsics  # noqa: E402

TEMPLATE_DIR = ROOT / "default_project"

# 64x48 keeps synthetic rendering and filtering fast.
SMALL_INTRINSICS = CameraIntrinsics(width=64, height=48, fx=57.0, fy=57.0, cx=31.5, cy=23.5)


@pytest.fixture(scope="session")
def qapp():
    app = QCoreApplication.instance() or QCoreApplication([])
    yield app


@pytest.fixture
def wait_for(qapp):
    """Pump queued cross-thread signals until ``predicate`` holds or time runs out."""

    def _wait(predicate, timeout: float = 5.0) -> bool:
        deadline = time.monotonic() + timeout
        while not predicate() and time.monotonic() < deadline:
            qapp.processEvents()
            time.sleep(0.01)
        qapp.processEvents()
        return predicate()

    return _wait


@pytest.fixture
def template_dir() -> pathlib.Path:
    return TEMPLATE_DIR


@pytest.fixture
def small_intrinsics() -> CameraIntrinsics:
    return SMALL_INTRINSICS


@pytest.fixture
def project(tmp_path, qapp):
    """A fresh project scaffolded from the default template."""
    from depthscan.config.calibration import save_intrinsics
    from depthscan.project.scaffold import make_project

    root = tmp_path / "scan"
    report = make_project(root, TEMPLATE_DIR)
    assert report.ok, report.failures
    save_intrinsics(root / "calibration", SMALL_INTRINSICS)
    return root

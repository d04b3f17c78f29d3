import pytest

from depthscan.config import project_settings as keys
from depthscan.config.project_settings import ProjectSettings
from depthscan.project.layout import ProjectLayout
from depthscan.reconstruction.interface import ReconstructionInterface
from depthscan.sensors.capture import CaptureOptions, CaptureSession
from depthscan.sensors.sources import SyntheticFrameSource


@pytest.fixture
def settings(project, small_intrinsics):
    layout = ProjectLayout(project)
    source = SyntheticFrameSource(small_intrinsics, fps=0, noise_mm=0.0, dropout=0.0)
    source.open()
    session = CaptureSession(source, layout, CaptureOptions(record_stream=True), small_intrinsics)
    for angle in (0.0, 120.0, 240.0):
        source.set_angle(angle)
        session.read_and_process()

    settings = ProjectSettings(project / "project.ini")
    settings.set_value(keys.READ_SOURCE, "stream")
    settings.set_value(keys.READ_FROM, 0)
    settings.set_value(keys.READ_TO, 2)
    settings.set_value(keys.READ_STEP, 1)
    settings.set_flag(keys.ENABLE_RECONSTRUCTION, False)
    return settings


class _Recorder:
    def __init__(self, recon: ReconstructionInterface) -> None:
        self.results = []
        self.errors = []
        self.progress = []
        recon.finished.connect(self.results.append)
        recon.error.connect(self.errors.append)
        recon.progress.connect(self.progress.append)


def test_reconstruction_runs_on_worker_thread(settings, project, wait_for) -> None:
    recon = ReconstructionInterface(settings)
    seen = _Recorder(recon)

    assert recon.perform_reconstruction()
    assert recon.is_running()
    assert recon.perform_reconstruction() is False

    assert wait_for(lambda: seen.results, timeout=10.0)
    assert not recon.is_running()
    assert seen.errors == []
    assert seen.results[0].frames_used == [0, 1, 2]
    assert len(seen.progress) == 3
    assert (project / "pcd" / "filtered_000001.pcd").is_file()


def test_reconstruction_can_run_again_after_finishing(settings, wait_for) -> None:
    recon = ReconstructionInterface(settings)
    seen = _Recorder(recon)

    recon.perform_reconstruction()
    assert wait_for(lambda: seen.results, timeout=10.0)
    assert recon.perform_reconstruction()
    assert wait_for(lambda: len(seen.results) == 2, timeout=10.0)


def test_unreadable_frame_is_reported_as_error(settings, project, wait_for) -> None:
    (project / "stream" / "frame_000001.npz").write_bytes(b"not a frame")
    recon = ReconstructionInterface(settings)
    seen = _Recorder(recon)

    assert recon.perform_reconstruction()
    assert wait_for(lambda: seen.errors, timeout=10.0)

    assert seen.results == []
    assert not recon.is_running()
    assert recon.perform_reconstruction()
    recon.stop()


def test_stopped_reconstruction_emits_nothing(settings, wait_for) -> None:
    recon = ReconstructionInterface(settings)
    seen = _Recorder(recon)

    assert recon.perform_reconstruction()
    recon.stop()
    assert not recon.is_running()

    wait_for(lambda: False, timeout=0.3)
    assert seen.results == []
    assert seen.errors == []


def test_reload_settings_picks_up_new_range(settings) -> None:
    recon = ReconstructionInterface(settings)
    settings.set_value(keys.READ_TO, 1)
    settings.set_flag(keys.ENABLE_RECONSTRUCTION, True)

    recon.reload_settings()

    assert recon.options.read_to == 1
    assert recon.options.merge

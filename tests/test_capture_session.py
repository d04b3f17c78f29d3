import numpy as np
import pytest

from depthscan.config import project_settings as keys
from depthscan.config.project_settings import ProjectSettings
from depthscan.dataio.frame_store import indexed_files, load_frame
from depthscan.dataio.pcd import read_pcd
from depthscan.project.layout import ProjectLayout
from depthscan.sensors.capture import (
    CaptureOptions,
    CaptureSession,
    LongImageStore,
    write_long_images,
)
from depthscan.sensors.sources import ReplayFrameSource, SensorUnavailableError, SyntheticFrameSource


def _synthetic(intrinsics, **kwargs):
    source = SyntheticFrameSource(intrinsics, fps=0, seed=1, **kwargs)
    source.open()
    return source


def test_options_follow_settings(project) -> None:
    settings = ProjectSettings(project / "project.ini")
    settings.set_flag(keys.ENABLE_STREAM_RECORDING, True)
    settings.set_flag(keys.ENABLE_REPLAY_RECORD_STREAM, True)
    settings.set_value(keys.ROTATION_STEP_DEGREES, 90)

    options = CaptureOptions.from_settings(settings)

    assert options.record_stream and options.replay
    assert not options.records
    assert options.rotation_angles() == [0.0, 90.0, 180.0, 270.0]


@pytest.mark.parametrize("step", [0.0, -10.0, 400.0])
def test_bad_rotation_step(step: float) -> None:
    with pytest.raises(ValueError):
        CaptureOptions(rotation_step_deg=step).rotation_angles()


def test_synthetic_source_sees_object_in_front_of_wall(small_intrinsics) -> None:
    source = SyntheticFrameSource(small_intrinsics, fps=0, center_z=800.0, wall_z=1400.0)
    depth = source.render(0.0)

    assert depth[24, 32] == pytest.approx(800.0 - 70.0, abs=1.0)
    assert depth[0, 0] == pytest.approx(1400.0)


def test_recording_and_pcd_conversion(project, small_intrinsics) -> None:
    layout = ProjectLayout(project)
    options = CaptureOptions(record_stream=True, convert_to_pcd=True)
    source = _synthetic(small_intrinsics)
    source.set_angle(30.0)
    session = CaptureSession(source, layout, options, small_intrinsics)

    first = session.read_and_process()
    second = session.read_and_process()

    assert (first.index, second.index) == (0, 1)
    assert list(indexed_files(layout.stream_dir)) == [0, 1]
    cloud = read_pcd(layout.pcd_dir / "frame_000001.pcd")
    assert cloud.angle_deg == pytest.approx(30.0, abs=1e-6)
    assert len(cloud) == int(np.count_nonzero(second.depth))


def test_new_session_continues_numbering(project, small_intrinsics) -> None:
    layout = ProjectLayout(project)
    options = CaptureOptions(record_stream=True)
    CaptureSession(_synthetic(small_intrinsics), layout, options, small_intrinsics).read_and_process()

    session = CaptureSession(_synthetic(small_intrinsics), layout, options, small_intrinsics)
    assert session.read_and_process().index == 1


def test_replay_does_not_record_again(project, small_intrinsics) -> None:
    layout = ProjectLayout(project)
    recorder = CaptureSession(
        _synthetic(small_intrinsics), layout, CaptureOptions(record_stream=True), small_intrinsics
    )
    for _ in range(3):
        recorder.read_and_process()

    replay = ReplayFrameSource(layout.stream_dir, fps=0)
    replay.open()
    options = CaptureOptions(record_stream=True, replay=True)
    session = CaptureSession(replay, layout, options, small_intrinsics)
    indices = []
    frame = session.read_and_process()
    while frame is not None:
        indices.append(frame.index)
        frame = session.read_and_process()

    assert indices == [0, 1, 2]
    assert list(indexed_files(layout.stream_dir)) == [0, 1, 2]


def test_replay_without_frames_is_unavailable(tmp_path) -> None:
    with pytest.raises(SensorUnavailableError):
        ReplayFrameSource(tmp_path, fps=0).open()


def test_long_image_is_queued_then_written(project, small_intrinsics) -> None:
    layout = ProjectLayout(project)
    store = LongImageStore()
    options = CaptureOptions(long_image_frames=4)
    session = CaptureSession(
        _synthetic(small_intrinsics, dropout=0.3), layout, options, small_intrinsics, store
    )

    image = session.capture_long_image()

    assert image is not None
    assert len(store) == 1
    # Averaging over several frames fills most dropouts.
    assert image.valid_fraction() > 0.9

    written = write_long_images(store.drain(), layout, small_intrinsics)
    assert [p.name for p in written] == ["long_0000.npz", "long_0000.pcd"]
    assert len(store) == 0
    np.testing.assert_array_equal(load_frame(written[0]).depth, image.depth)


def test_long_image_stops_before_first_frame(project, small_intrinsics) -> None:
    session = CaptureSession(
        _synthetic(small_intrinsics), ProjectLayout(project), CaptureOptions(), small_intrinsics
    )
    assert session.capture_long_image(stop_requested=lambda: True) is None
    assert len(session.long_images) == 0


def test_long_image_interrupted_midway_is_discarded(project, small_intrinsics) -> None:
    session = CaptureSession(
        _synthetic(small_intrinsics),
        ProjectLayout(project),
        CaptureOptions(long_image_frames=5),
        small_intrinsics,
    )
    checks = iter([False, False, True])

    assert session.capture_long_image(stop_requested=lambda: next(checks)) is None
    assert len(session.long_images) == 0


def test_long_image_from_short_replay_averages_what_is_left(project, small_intrinsics) -> None:
    layout = ProjectLayout(project)
    recorder = CaptureSession(
        _synthetic(small_intrinsics), layout, CaptureOptions(record_stream=True), small_intrinsics
    )
    for _ in range(3):
        recorder.read_and_process()
    replay = ReplayFrameSource(layout.stream_dir, fps=0)
    replay.open()
    session = CaptureSession(
        replay, layout, CaptureOptions(replay=True, long_image_frames=5), small_intrinsics
    )

    image = session.capture_long_image(stop_requested=lambda: False)

    assert image is not None
    assert len(session.long_images) == 1

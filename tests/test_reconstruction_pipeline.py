import pytest

from depthscan.dataio.pcd import read_pcd
from depthscan.project.layout import ProjectLayout
from depthscan.reconstruction.pipeline import ReconstructionOptions, run_reconstruction
from depthscan.sensors.capture import CaptureOptions, CaptureSession
from depthscan.sensors.sources import SyntheticFrameSource


def _record_views(layout, intrinsics, angles, *, convert=False):
    source = SyntheticFrameSource(intrinsics, fps=0, noise_mm=0.0, dropout=0.0)
    source.open()
    options = CaptureOptions(record_stream=True, convert_to_pcd=convert)
    session = CaptureSession(source, layout, options, intrinsics)
    for angle in angles:
        source.set_angle(angle)
        session.read_and_process()


def test_merged_reconstruction_is_written(project, small_intrinsics) -> None:
    layout = ProjectLayout(project)
    _record_views(layout, small_intrinsics, [0.0, 90.0, 180.0])
    options = ReconstructionOptions(merge=True, read_from=0, read_to=2, voxel_size=5.0)
    messages = []

    result = run_reconstruction(layout, options, intrinsics=small_intrinsics, progress=messages.append)

    assert result.frames_used == [0, 1, 2]
    assert result.outputs == [layout.pcd_dir / "reconstruction.pcd"]
    assert len(messages) == 3
    cloud = read_pcd(result.outputs[0])
    assert len(cloud) == result.point_count > 0


def test_views_are_brought_into_turntable_frame(project, small_intrinsics) -> None:
    layout = ProjectLayout(project)
    _record_views(layout, small_intrinsics, [0.0, 180.0])
    options = ReconstructionOptions(read_from=0, read_to=1)

    result = run_reconstruction(layout, options, intrinsics=small_intrinsics)

    assert [p.name for p in result.outputs] == ["filtered_000000.pcd", "filtered_000001.pcd"]
    front = read_pcd(result.outputs[0]).points
    back = read_pcd(result.outputs[1]).points
    # Seen from behind, the nearest object surface lies on the far side of the axis.
    assert front[:, 2].min() == pytest.approx(730.0, abs=2.0)
    assert back[:, 2].max() > 850.0


def test_missing_frames_are_skipped(project, small_intrinsics) -> None:
    layout = ProjectLayout(project)
    _record_views(layout, small_intrinsics, [0.0, 30.0, 60.0])
    (layout.stream_dir / "frame_000001.npz").unlink()

    result = run_reconstruction(
        layout, ReconstructionOptions(read_from=0, read_to=2), intrinsics=small_intrinsics
    )

    assert result.frames_used == [0, 2]
    assert result.frames_missing == [1]


def test_reconstruction_from_pcd_source(project, small_intrinsics) -> None:
    layout = ProjectLayout(project)
    _record_views(layout, small_intrinsics, [0.0, 45.0], convert=True)
    options = ReconstructionOptions(
        merge=True, source="pcd", outlier_removal=True, read_from=0, read_to=1, voxel_size=0.0
    )

    result = run_reconstruction(layout, options, intrinsics=small_intrinsics)

    assert result.frames_used == [0, 1]
    assert result.point_count > 0


def test_empty_range_writes_nothing(project, small_intrinsics) -> None:
    layout = ProjectLayout(project)
    result = run_reconstruction(layout, ReconstructionOptions(), intrinsics=small_intrinsics)
    assert result.frames_used == []
    assert result.outputs == []
    assert not (layout.pcd_dir / "reconstruction.pcd").exists()


def test_cancellation_stops_early(project, small_intrinsics) -> None:
    layout = ProjectLayout(project)
    _record_views(layout, small_intrinsics, [0.0, 10.0, 20.0])
    result = run_reconstruction(
        layout,
        ReconstructionOptions(read_from=0, read_to=2),
        intrinsics=small_intrinsics,
        stop_requested=lambda: True,
    )
    assert result.frames_used == []
    assert result.outputs == []

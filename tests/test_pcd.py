import numpy as np
import pytest

from depthscan.dataio.pcd import PcdFormatError, read_pcd, write_pcd


def test_points_and_angle_survive_a_file(tmp_path) -> None:
    points = np.array([[1.0, 2.0, 3.0], [-4.5, 0.25, 900.0]])
    path = write_pcd(tmp_path / "view.pcd", points, angle_deg=120.0)

    cloud = read_pcd(path)

    np.testing.assert_allclose(cloud.points, points, atol=1e-4)
    assert cloud.angle_deg == pytest.approx(120.0, abs=1e-6)
    assert len(cloud) == 2


def test_empty_cloud(tmp_path) -> None:
    cloud = read_pcd(write_pcd(tmp_path / "empty.pcd", np.empty((0, 3))))
    assert cloud.points.shape == (0, 3)


def test_point_count_mismatch_is_rejected(tmp_path) -> None:
    path = write_pcd(tmp_path / "bad.pcd", np.zeros((3, 3)))
    text = path.read_text(encoding="ascii").replace("POINTS 3", "POINTS 4")
    path.write_text(text, encoding="ascii")
    with pytest.raises(PcdFormatError):
        read_pcd(path)


def test_binary_data_is_rejected(tmp_path) -> None:
    path = tmp_path / "binary.pcd"
    path.write_text("VERSION 0.7\nFIELDS x y z\nPOINTS 0\nDATA binary\n", encoding="ascii")
    with pytest.raises(PcdFormatError):
        read_pcd(path)


def test_extra_fields_are_ignored(tmp_path) -> None:
    path = tmp_path / "rgb.pcd"
    path.write_text(
        "VERSION 0.7\nFIELDS rgb x y z\nPOINTS 1\nDATA ascii\n7 1 2 3\n", encoding="ascii"
    )
    np.testing.assert_allclose(read_pcd(path).points, [[1.0, 2.0, 3.0]])

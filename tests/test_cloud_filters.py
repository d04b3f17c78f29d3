import numpy as np

from depthscan.processing.cloud_filters import (
    moving_least_squares,
    statistical_outlier_removal,
    voxel_downsample,
)


def _grid(n: int = 10, spacing: float = 1.0) -> np.ndarray:
    xs, ys = np.meshgrid(np.arange(n) * spacing, np.arange(n) * spacing)
    return np.column_stack((xs.ravel(), ys.ravel(), np.zeros(n * n)))


def test_outlier_far_from_surface_is_removed() -> None:
    cloud = np.vstack((_grid(), [[4.5, 4.5, 300.0]]))
    filtered = statistical_outlier_removal(cloud, mean_k=8, std_mul=1.0)

    assert filtered.shape[0] == 100
    assert filtered[:, 2].max() == 0.0


def test_small_cloud_is_left_alone() -> None:
    cloud = np.array([[0.0, 0.0, 0.0], [100.0, 0.0, 0.0]])
    np.testing.assert_array_equal(statistical_outlier_removal(cloud, mean_k=5), cloud)
    np.testing.assert_array_equal(moving_least_squares(cloud, k=5), cloud)


def test_mls_flattens_noise_on_a_plane() -> None:
    rng = np.random.default_rng(3)
    cloud = _grid(15)
    cloud[:, 2] = rng.normal(0.0, 0.2, size=cloud.shape[0])

    smoothed = moving_least_squares(cloud, k=16)

    assert smoothed.shape == cloud.shape
    assert smoothed[:, 2].std() < cloud[:, 2].std() * 0.6


def test_voxel_downsample_merges_points_per_cell() -> None:
    cloud = np.array([[0.1, 0.1, 0.1], [0.3, 0.3, 0.3], [5.0, 5.0, 5.0]])
    out = voxel_downsample(cloud, 1.0)

    assert out.shape == (2, 3)
    assert any(np.allclose(row, [0.2, 0.2, 0.2]) for row in out)
    np.testing.assert_array_equal(voxel_downsample(cloud, 0.0), cloud)

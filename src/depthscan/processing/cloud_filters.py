"""Point-cloud filters used by the reconstruction pipeline."""

from __future__ import annotations

import numpy as np
from numpy.typing import ArrayLike
from scipy.spatial import cKDTree


def _as_points(points: ArrayLike) -> np.ndarray:
    return np.asarray(points, dtype=np.float64).reshape(-1, 3)


def statistical_outlier_removal(points: ArrayLike, mean_k: int = 20, std_mul: float = 2.0) -> np.ndarray:
    """
    Drop points whose mean distance to their ``mean_k`` nearest neighbours
    exceeds the global mean of that distance by more than ``std_mul``
    standard deviations.

    Clouds with ``mean_k`` points or fewer are returned unchanged.
    """
    pts = _as_points(points)
    if mean_k < 1:
        raise ValueError(f"mean_k must be >= 1, got {mean_k}")
    if pts.shape[0] <= mean_k:
        return pts.copy()

    tree = cKDTree(pts)
    distances, _ = tree.query(pts, k=mean_k + 1)
    mean_dist = distances[:, 1:].mean(axis=1)
    threshold = mean_dist.mean() + std_mul * mean_dist.std()
    return pts[mean_dist <= threshold]


def moving_least_squares(points: ArrayLike, k: int = 16) -> np.ndarray:
    """
    Smooth a cloud by projecting every point onto the plane fitted to its
    ``k`` nearest neighbours (first-order moving least squares).

    Clouds with fewer than ``k`` points are returned unchanged.
    """
    pts = _as_points(points)
    if k < 3:
        raise ValueError(f"k must be >= 3, got {k}")
    if pts.shape[0] < k:
        return pts.copy()

    tree = cKDTree(pts)
    _, idx = tree.query(pts, k=k)
    neighbours = pts[idx]                               # (N, k, 3)
    centroid = neighbours.mean(axis=1)                  # (N, 3)
    centered = neighbours - centroid[:, None, :]
    cov = np.einsum("nki,nkj->nij", centered, centered) / k
    _, eigvecs = np.linalg.eigh(cov)
    normals = eigvecs[:, :, 0]                          # smallest eigenvalue
    offset = np.einsum("ni,ni->n", pts - centroid, normals)
    return pts - offset[:, None] * normals


def voxel_downsample(points: ArrayLike, voxel_size: float) -> np.ndarray:
    """Replace all points inside each ``voxel_size`` cube by their centroid."""
    pts = _as_points(points)
    if voxel_size <= 0 or pts.shape[0] == 0:
        return pts.copy()
    keys = np.floor(pts / float(voxel_size)).astype(np.int64)
    _, inverse, counts = np.unique(keys, axis=0, return_inverse=True, return_counts=True)
    inverse = inverse.reshape(-1)
    sums = np.zeros((counts.shape[0], 3), dtype=np.float64)
    np.add.at(sums, inverse, pts)
    return sums / counts[:, None]

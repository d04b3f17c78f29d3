"""Back-projection of depth images and turntable transforms."""

from __future__ import annotations

import math

import numpy as np
from numpy.typing import ArrayLike

from ..config.calibration import CameraIntrinsics

UNDISTORT_ITERATIONS = 5


def undistort_normalized(x: np.ndarray, y: np.ndarray, k1: float, k2: float) -> tuple[np.ndarray, np.ndarray]:
    """
    Invert the radial model ``x_d = x * (1 + k1 r^2 + k2 r^4)``.

    Uses fixed-point iteration, which converges for the small distortion
    coefficients of depth cameras.
    """
    xu, yu = x.copy(), y.copy()
    for _ in range(UNDISTORT_ITERATIONS):
        r2 = xu * xu + yu * yu
        factor = 1.0 + k1 * r2 + k2 * r2 * r2
        xu = x / factor
        yu = y / factor
    return xu, yu


def depth_to_points(
    depth: ArrayLike,
    intrinsics: CameraIntrinsics,
    *,
    undistort: bool = False,
) -> np.ndarray:
    """
    Convert a depth image into an N x 3 point array in millimetres.

    Camera convention: x to the right, y down, z along the optical axis.
    Pixels with zero depth are dropped.
    """
    img = np.asarray(depth, dtype=np.float64)
    if img.ndim != 2:
        raise ValueError(f"depth must be 2-D, got shape {img.shape}")
    v, u = np.nonzero(img > 0)
    if v.size == 0:
        return np.empty((0, 3), dtype=np.float64)

    z = img[v, u] * float(intrinsics.depth_scale)
    x = (u.astype(np.float64) - intrinsics.cx) / intrinsics.fx
    y = (v.astype(np.float64) - intrinsics.cy) / intrinsics.fy
    if undistort and intrinsics.has_distortion:
        x, y = undistort_normalized(x, y, intrinsics.k1, intrinsics.k2)
    return np.column_stack((x * z, y * z, z))


def rotation_y(angle_deg: float) -> np.ndarray:
    """3 x 3 rotation matrix about the camera Y axis."""
    theta = math.radians(angle_deg)
    c, s = math.cos(theta), math.sin(theta)
    return np.array([[c, 0.0, s], [0.0, 1.0, 0.0], [-s, 0.0, c]])


def to_turntable_frame(points: ArrayLike, angle_deg: float, center_z: float) -> np.ndarray:
    """
    Undo a turntable rotation of ``angle_deg``.

    The turntable axis is parallel to the camera Y axis and passes through
    ``(0, 0, center_z)``. Views captured at different angles land in the
    same reference frame (the one at angle 0).
    """
    pts = np.asarray(points, dtype=np.float64).reshape(-1, 3)
    if pts.shape[0] == 0 or angle_deg == 0.0:
        return pts.copy()
    center = np.array([0.0, 0.0, float(center_z)])
    rot = rotation_y(-angle_deg)
    return (pts - center) @ rot.T + center

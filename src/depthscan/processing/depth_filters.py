"""Image-domain filters for depth frames.

Zero depth marks a pixel without a reading. Both helpers treat such pixels
as missing data rather than as a distance of zero.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np
from numpy.typing import ArrayLike


def bilateral_filter(
    depth: ArrayLike,
    diameter: int = 5,
    sigma_space: float = 2.0,
    sigma_range: float = 30.0,
) -> np.ndarray:
    """
    Edge-preserving smoothing of a depth image.

    Parameters
    ----------
    depth:
        2-D depth image. Zeros are ignored and stay zero.
    diameter:
        Window size in pixels (odd; even values are rounded up).
    sigma_space:
        Gaussian sigma of the spatial weight, in pixels.
    sigma_range:
        Gaussian sigma of the depth-difference weight, in depth units.

    Returns
    -------
    np.ndarray
        Filtered float32 image with the same shape as ``depth``.
    """
    if sigma_space <= 0 or sigma_range <= 0:
        raise ValueError("sigma_space and sigma_range must be > 0")
    img = np.asarray(depth, dtype=np.float32)
    if img.ndim != 2:
        raise ValueError(f"depth must be 2-D, got shape {img.shape}")

    radius = max(0, int(diameter) // 2)
    if radius == 0:
        return img.copy()

    valid = img > 0
    padded = np.pad(img, radius, mode="constant", constant_values=0.0)
    h, w = img.shape
    acc = np.zeros_like(img)
    weights = np.zeros_like(img)
    inv_space = -1.0 / (2.0 * sigma_space * sigma_space)
    inv_range = -1.0 / (2.0 * sigma_range * sigma_range)

    for dy in range(-radius, radius + 1):
        for dx in range(-radius, radius + 1):
            if dy * dy + dx * dx > radius * radius:
                continue
            neighbour = padded[radius + dy : radius + dy + h, radius + dx : radius + dx + w]
            diff = neighbour - img
            weight = np.exp((dy * dy + dx * dx) * inv_space) * np.exp(diff * diff * inv_range)
            weight = np.where(neighbour > 0, weight, 0.0).astype(np.float32)
            acc += weight * neighbour
            weights += weight

    out = np.zeros_like(img)
    np.divide(acc, weights, out=out, where=valid & (weights > 0))
    return out


def average_frames(frames: Sequence[ArrayLike]) -> np.ndarray:
    """
    Per-pixel mean over ``frames`` ignoring zero readings (a "long image").

    Pixels that never had a reading stay zero.
    """
    if len(frames) == 0:
        raise ValueError("average_frames needs at least one frame")
    stack = np.stack([np.asarray(f, dtype=np.float64) for f in frames])
    valid = stack > 0
    counts = valid.sum(axis=0)
    sums = np.where(valid, stack, 0.0).sum(axis=0)
    out = np.zeros(stack.shape[1:], dtype=np.float64)
    np.divide(sums, counts, out=out, where=counts > 0)
    return out


def to_depth_units(depth: ArrayLike) -> np.ndarray:
    """Round a float depth image back to the sensor's uint16 representation."""
    arr = np.asarray(depth, dtype=np.float64)
    return np.clip(np.rint(arr), 0, np.iinfo(np.uint16).max).astype(np.uint16)

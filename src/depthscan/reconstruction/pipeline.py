"""Point-cloud reconstruction from the recorded views of a project.

For every frame in the configured reading range the pipeline

1. loads the view (a recorded depth frame or a converted cloud),
2. for depth frames, optionally applies the bilateral filter and
   back-projects with or without lens undistortion,
3. optionally removes statistical outliers and smooths with MLS,
4. rotates the view back into the turntable reference frame.

With ``ENABLE_RECONSTRUCTION`` the views are merged, voxel-downsampled and
written as ``pcd/reconstruction.pcd``; otherwise each filtered view is
written as ``pcd/filtered_NNNNNN.pcd``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

import numpy as np

from ..config import project_settings as keys
from ..config.calibration import CameraIntrinsics, load_intrinsics
from ..config.project_settings import ProjectSettings
from ..dataio.frame_range import SOURCES, FrameRangeIterator, suffix_for_source
from ..dataio.frame_store import FILTERED_PREFIX, PCD_SUFFIX, indexed_name, load_frame
from ..dataio.pcd import read_pcd, write_pcd
from ..processing.cloud_filters import (
    moving_least_squares,
    statistical_outlier_removal,
    voxel_downsample,
)
from ..processing.depth_filters import bilateral_filter
from ..processing.geometry import depth_to_points, to_turntable_frame
from ..project.layout import ProjectLayout
from ..tools.debug import time_block

logger = logging.getLogger(__name__)

RECONSTRUCTION_FILENAME = "reconstruction.pcd"

ProgressCallback = Callable[[str], None]


@dataclass
class ReconstructionOptions:
    merge: bool = False
    undistort: bool = False
    bilateral: bool = False
    outlier_removal: bool = False
    smoothing: bool = False
    source: str = "stream"
    read_from: int = 0
    read_to: int = 0
    read_step: int = 1
    bilateral_diameter: int = 5
    bilateral_sigma_space: float = 2.0
    bilateral_sigma_range: float = 30.0
    sor_mean_k: int = 20
    sor_std_mul: float = 2.0
    mls_k: int = 16
    voxel_size: float = 2.0
    center_z: float = 800.0

    @classmethod
    def from_settings(cls, settings: ProjectSettings) -> ReconstructionOptions:
        source = settings.str_value(keys.READ_SOURCE, "stream").strip().lower()
        if source not in SOURCES:
            logger.warning("Unknown reading source %r; using 'stream'", source)
            source = "stream"
        return cls(
            merge=settings.bool_value(keys.ENABLE_RECONSTRUCTION),
            undistort=settings.bool_value(keys.PIPELINE_UNDISTORTION),
            bilateral=settings.bool_value(keys.PIPELINE_BILATERAL_FILTER),
            outlier_removal=settings.bool_value(keys.PIPELINE_OUTLIER_FILTER),
            smoothing=settings.bool_value(keys.PIPELINE_MLS_FILTER),
            source=source,
            read_from=settings.int_value(keys.READ_FROM, 0),
            read_to=settings.int_value(keys.READ_TO, 0),
            read_step=max(1, settings.int_value(keys.READ_STEP, 1)),
            bilateral_diameter=max(1, settings.int_value(keys.BILATERAL_DIAMETER, 5)),
            bilateral_sigma_space=max(1e-3, settings.float_value(keys.BILATERAL_SIGMA_SPACE, 2.0)),
            bilateral_sigma_range=max(1e-3, settings.float_value(keys.BILATERAL_SIGMA_RANGE, 30.0)),
            sor_mean_k=max(1, settings.int_value(keys.SOR_MEAN_K, 20)),
            sor_std_mul=settings.float_value(keys.SOR_STD_MUL, 2.0),
            mls_k=max(3, settings.int_value(keys.MLS_K, 16)),
            voxel_size=settings.float_value(keys.VOXEL_SIZE, 2.0),
            center_z=settings.float_value(keys.ROTATION_CENTER_Z, 800.0),
        )


@dataclass
class ReconstructionResult:
    frames_used: list[int] = field(default_factory=list)
    frames_missing: list[int] = field(default_factory=list)
    point_count: int = 0
    outputs: list[Path] = field(default_factory=list)

    def summary(self) -> str:
        return (
            f"Reconstruction used {len(self.frames_used)} view(s), "
            f"{self.point_count} point(s), wrote {len(self.outputs)} file(s)"
        )


def _load_view(
    index: int,
    path: Path,
    options: ReconstructionOptions,
    intrinsics: CameraIntrinsics,
) -> tuple[np.ndarray, float]:
    if options.source == "pcd":
        cloud = read_pcd(path)
        return cloud.points, cloud.angle_deg

    frame = load_frame(path, index)
    depth = frame.depth
    if options.bilateral:
        depth = bilateral_filter(
            depth,
            options.bilateral_diameter,
            options.bilateral_sigma_space,
            options.bilateral_sigma_range,
        )
    points = depth_to_points(depth, intrinsics, undistort=options.undistort)
    return points, frame.angle_deg


def filter_view(points: np.ndarray, options: ReconstructionOptions) -> np.ndarray:
    if options.outlier_removal:
        points = statistical_outlier_removal(points, options.sor_mean_k, options.sor_std_mul)
    if options.smoothing:
        points = moving_least_squares(points, options.mls_k)
    return points


def run_reconstruction(
    layout: ProjectLayout,
    options: ReconstructionOptions,
    *,
    intrinsics: CameraIntrinsics | None = None,
    progress: ProgressCallback | None = None,
    stop_requested: Callable[[], bool] | None = None,
) -> ReconstructionResult:
    """Run the pipeline over ``options.read_from..read_to`` and write the output."""
    intrinsics = intrinsics or load_intrinsics(layout.calibration_dir)
    source_dir = layout.source_dir(options.source)
    frames = FrameRangeIterator(
        source_dir,
        options.read_from,
        options.read_to,
        options.read_step,
        suffix=suffix_for_source(options.source),
    )
    result = ReconstructionResult(frames_missing=frames.missing())
    for index in result.frames_missing:
        logger.warning("Frame %d missing in %s; skipped", index, source_dir)
    if options.source == "pcd" and (options.bilateral or options.undistort):
        logger.info("Depth filters are skipped when reconstructing from PCD clouds")

    views: list[np.ndarray] = []
    for index, path in frames:
        if stop_requested is not None and stop_requested():
            logger.info("Reconstruction cancelled at frame %d", index)
            break
        with time_block(f"reconstruction frame {index}", log=logger):
            points, angle = _load_view(index, path, options, intrinsics)
            points = filter_view(points, options)
            points = to_turntable_frame(points, angle, options.center_z)
        result.frames_used.append(index)
        if progress is not None:
            progress(f"Processed frame {index} ({points.shape[0]} points)")

        if options.merge:
            views.append(points)
        else:
            out = write_pcd(layout.pcd_dir / indexed_name(FILTERED_PREFIX, index, PCD_SUFFIX), points)
            result.outputs.append(out)
            result.point_count += int(points.shape[0])

    if not result.frames_used:
        logger.warning(
            "No frames in range %d..%d of %s", options.read_from, options.read_to, source_dir
        )
        return result

    if options.merge:
        merged = np.concatenate(views, axis=0) if views else np.empty((0, 3))
        merged = voxel_downsample(merged, options.voxel_size)
        out = write_pcd(layout.pcd_dir / RECONSTRUCTION_FILENAME, merged)
        result.outputs.append(out)
        result.point_count = int(merged.shape[0])

    logger.info(result.summary())
    return result

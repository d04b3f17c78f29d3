"""Reconstruction pipeline and its Qt interface."""

from .interface import ReconstructionInterface
from .pipeline import ReconstructionOptions, ReconstructionResult, run_reconstruction

__all__ = [
    "ReconstructionInterface",
    "ReconstructionOptions",
    "ReconstructionResult",
    "run_reconstruction",
]

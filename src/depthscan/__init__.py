"""Depth scanner: project scaffolding, depth capture and point-cloud reconstruction."""

__version__ = "0.1.0"

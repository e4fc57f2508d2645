"""Procedural 3D fractal trees built from tapered cylinder segments."""

from fractal3d.controller import FractalTreeController
from fractal3d.generator import BranchNode, build_branches, build_segment, generate
from fractal3d.models.dataclass import Segment, TreeParameters, TreeShape

__all__ = [
    "BranchNode",
    "FractalTreeController",
    "Segment",
    "TreeParameters",
    "TreeShape",
    "build_branches",
    "build_segment",
    "generate",
]

"""Recursive construction of fractal tree hierarchies."""

from __future__ import annotations

import functools
import logging

import numpy as np
import pandas as pd

from fractal3d.models.dataclass import Segment, TreeParameters, TreeShape
from fractal3d.scene import SceneNode
from fractal3d.utils.geometry import attachment_offset, decay_length
from fractal3d.utils.transforms import (
    axis_angle_matrix,
    matrix_to_euler_xyz,
    transform_points,
)

_LOGGER = logging.getLogger(__name__)

SEGMENT_COLUMNS = [
    "level",
    "index",
    "length",
    "base_radius",
    "tip_radius",
    "offset_y",
    "rotation_x",
    "rotation_y",
    "rotation_z",
    "base_x",
    "base_y",
    "base_z",
    "tip_x",
    "tip_y",
    "tip_z",
]


def build_segment(length: float, shape: TreeShape | None = None) -> Segment:
    """Builds a tapered cylinder segment of the given length.

    The segment casts shadows and is offset by half its length along its
    growth axis (see `Segment.position`).
    """
    shape = shape or TreeShape()
    return Segment(
        length=length,
        base_radius=shape.base_radius,
        cast_shadow=True,
        radial_segments=shape.radial_segments,
    )


class BranchNode(SceneNode):
    """A scene node carrying one segment of the tree.

    Attributes:
    -----------
    segment : Segment
        the cylinder drawn in this node's frame
    level : int
        number of generations below the trunk, 0 for the trunk itself
    index : int
        1-based position among its siblings, 0 for the trunk
    """

    def __init__(self, segment: Segment, level: int = 0, index: int = 0) -> None:
        super().__init__(name=f"branch-{level}-{index}")
        self.segment = segment
        self.level = level
        self.index = index

    def branches(self):
        """Yields every BranchNode in this subtree in pre-order."""
        for node in self.traverse():
            if isinstance(node, BranchNode):
                yield node


def build_branches(
    current_depth: int,
    current_length: float,
    params: TreeParameters,
    shape: TreeShape | None = None,
) -> list[BranchNode]:
    """Builds the child branches of a segment, each with its whole subtree.

    Nothing outside the returned nodes is touched; attaching them to a parent
    is left to the caller (see `generate`).

    Parameters
    ----------
    current_depth : int
        depth of the parent segment, 0 for the trunk
    current_length : numeric
        length of the parent segment
    params : TreeParameters
        depth limit and number of branches per segment
    shape : TreeShape, optional
        geometric constants

    Returns:
    --------
    branches : list of BranchNode
        `params.branch_count` nodes, or none once `current_depth` exceeds
        `params.depth`
    """
    shape = shape or TreeShape()
    if current_depth > params.depth:
        return []

    branch_count = params.branch_count
    index = np.arange(1, branch_count + 1)
    child_lengths = decay_length(current_length, index, current_depth)
    offsets = attachment_offset(child_lengths / 2, index, current_length, branch_count)

    branches = []
    for i, child_length, offset_y in zip(
        range(1, branch_count + 1), child_lengths.tolist(), offsets.tolist()
    ):
        # lengths decay from a validated positive trunk, so skip re-validation
        segment = Segment.model_construct(
            length=child_length,
            base_radius=shape.base_radius,
            cast_shadow=True,
            radial_segments=shape.radial_segments,
        )
        node = BranchNode(segment, level=current_depth + 1, index=i)
        node.set_position(0.0, offset_y, 0.0)
        node.set_rotation(*branch_rotation(i, shape.branch_angle))

        node.add(*build_branches(current_depth + 1, child_length, params, shape))
        branches.append(node)

    return branches


@functools.lru_cache(maxsize=64)
def branch_rotation(index: int, angle: float) -> tuple[float, float, float]:
    """XYZ Euler angles of the `index`-th sibling relative to its parent.

    The node is turned about its local y-axis by `2 * index * angle` to
    scatter siblings around the parent, then about its (already turned) local
    z-axis by `angle` to tilt it outward.
    """
    matrix = axis_angle_matrix("y", 2 * index * angle) @ axis_angle_matrix("z", angle)
    return tuple(matrix_to_euler_xyz(matrix).tolist())


def generate(
    parent: SceneNode,
    current_depth: int,
    current_length: float,
    params: TreeParameters,
    shape: TreeShape | None = None,
) -> None:
    """Grows the branches of `parent` and attaches them to it."""
    parent.add(*build_branches(current_depth, current_length, params, shape))


def expected_level_counts(params: TreeParameters) -> dict[int, int]:
    """Number of branches at each level below the trunk for a set of parameters.

    Levels run from 1 (children of the trunk) to `depth + 1`; there are none
    at all when `branch_count` is 0.
    """
    if params.branch_count == 0:
        return {}
    return {
        level: params.branch_count**level for level in range(1, params.depth + 2)
    }


def segments_frame(root: SceneNode) -> pd.DataFrame:
    """Tabulates every segment under (and including) `root`.

    Returns:
    --------
    df : pandas DataFrame
        one row per segment in pre-order, with the columns in
        `SEGMENT_COLUMNS`. Base and tip coordinates are in the frame of the
        root's parent.
    """
    rows = []
    for node, world in root.traverse_with_matrices():
        if not isinstance(node, BranchNode):
            continue
        segment = node.segment
        base, tip = transform_points(
            world, np.array(((0.0, 0.0, 0.0), (0.0, segment.length, 0.0)))
        )
        rows.append(
            (
                node.level,
                node.index,
                segment.length,
                segment.base_radius,
                segment.tip_radius,
                node.position[1],
                *node.rotation,
                *base,
                *tip,
            )
        )
    return pd.DataFrame.from_records(rows, columns=SEGMENT_COLUMNS)

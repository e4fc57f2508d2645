"""Keeps a live fractal tree in step with its parameters and the frame clock."""

from __future__ import annotations

import logging

import pandas as pd

from fractal3d.generator import BranchNode, build_segment, generate, segments_frame
from fractal3d.models.dataclass import TreeParameters, TreeShape
from fractal3d.scene import SceneNode

_LOGGER = logging.getLogger(__name__)

LARGE_TREE_NODES = 100_000


class FractalTreeController:
    """Owns the permanent trunk and rebuilds or animates the branches beside it.

    Both entry points are synchronous and are expected to be called from a
    single event loop: `regenerate` when a structural parameter is committed,
    `on_frame` once per rendered frame.

    The trunk and the first-level branches are siblings under a root that
    never moves, so turning the trunk leaves the branches where they are.

    Attributes:
    -----------
    shape : TreeShape
        fixed geometric constants
    root : SceneNode
        static parent of the trunk and of every first-level branch
    trunk : BranchNode
        the trunk segment; reused across regenerations
    """

    def __init__(self, shape: TreeShape | None = None) -> None:
        self.shape = shape or TreeShape()
        self.root = SceneNode("fractal-tree")
        self.trunk = BranchNode(build_segment(self.shape.trunk_length, self.shape))
        self.root.add(self.trunk)

    def regenerate(self, params: TreeParameters) -> SceneNode:
        """Discards every branch and grows them again from the trunk's length.

        Calling this repeatedly with the same parameters yields new nodes with
        identical geometry. The trunk node, and any rotation it holds, is kept.
        """
        self.root.detach_all_children()
        self.root.add(self.trunk)
        generate(self.root, 0, self.shape.trunk_length, params, self.shape)

        count = self.node_count
        _LOGGER.info(
            "Regenerated tree (depth=%d, branch_count=%d): %d nodes",
            params.depth,
            params.branch_count,
            count,
        )
        if count > LARGE_TREE_NODES:
            _LOGGER.warning(
                "Tree has %d nodes; animating it every frame may be slow.", count
            )
        return self.root

    def on_frame(self, params: TreeParameters) -> None:
        """Advances the spin animation by one frame when it is enabled.

        Every segment, trunk included, turns about its own y-axis by
        `shape.spin_rate`. Nothing changes while `params.animated` is False, so
        re-enabling resumes from the held pose.
        """
        if not params.animated:
            return
        for node in self.branches():
            node.rotation[1] += self.shape.spin_rate

    def branches(self):
        """Yields the trunk and every branch in pre-order."""
        for node in self.root.traverse():
            if isinstance(node, BranchNode):
                yield node

    @property
    def node_count(self) -> int:
        """Number of segments, trunk included."""
        return self.root.count() - 1

    def levels(self) -> dict[int, int]:
        """Number of nodes at each level, the trunk being level 0."""
        counts: dict[int, int] = {}
        for node in self.branches():
            counts[node.level] = counts.get(node.level, 0) + 1
        return counts

    def to_dataframe(self) -> pd.DataFrame:
        """Tabulates every segment of the tree (see `segments_frame`)."""
        return segments_frame(self.root)

"""A minimal y-up scene graph of transformable nodes."""

from __future__ import annotations

import logging
from collections.abc import Iterator

import numpy as np

from fractal3d.utils.transforms import (
    axis_angle_matrix,
    compose,
    euler_xyz_to_matrix,
    matrix_to_euler_xyz,
)

_LOGGER = logging.getLogger(__name__)


class SceneNode:
    """A node with a local transform and an ordered list of children.

    Attributes:
    -----------
    position : array with shape (3,)
        translation relative to the parent node
    rotation : array with shape (3,)
        XYZ-ordered Euler angles in radians relative to the parent node
    parent : SceneNode or None
        the node this one is attached to
    children : list of SceneNode
        attached nodes, in insertion order
    """

    def __init__(self, name: str | None = None) -> None:
        self.name = name
        self.position = np.zeros(3)
        self.rotation = np.zeros(3)
        self.parent: SceneNode | None = None
        self.children: list[SceneNode] = []

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, children={len(self.children)})"

    def add(self, *nodes: SceneNode) -> SceneNode:
        """Attaches nodes as children, detaching them from any previous parent."""
        for node in nodes:
            if node is self:
                raise ValueError("A node cannot be attached to itself.")
            if node.parent is not None:
                node.parent.remove(node)
            node.parent = self
            self.children.append(node)
        return self

    def remove(self, *nodes: SceneNode) -> SceneNode:
        """Detaches nodes from this one. Nodes that are not children are ignored."""
        for node in nodes:
            if node.parent is self:
                self.children.remove(node)
                node.parent = None
        return self

    def detach_all_children(self) -> list[SceneNode]:
        """Detaches and returns every child; a no-op on a leaf."""
        children, self.children = self.children, []
        for child in children:
            child.parent = None
        if children:
            _LOGGER.debug("Detached %d children from %r", len(children), self)
        return children

    def set_position(self, x: float, y: float, z: float) -> None:
        self.position = np.array((x, y, z), dtype=float)

    def set_rotation(self, x: float, y: float, z: float) -> None:
        self.rotation = np.array((x, y, z), dtype=float)

    def rotate_on_axis(self, axis: str | np.ndarray, angle: float) -> None:
        """Rotates the node about one of its own (local) axes.

        The axis rotation is applied after the current one, so successive calls
        each act in the frame left by the previous call.
        """
        matrix = euler_xyz_to_matrix(self.rotation) @ axis_angle_matrix(axis, angle)
        self.rotation = matrix_to_euler_xyz(matrix)

    @property
    def matrix_local(self) -> np.ndarray:
        """4x4 transform from this node's frame to its parent's."""
        return compose(self.position, self.rotation)

    @property
    def matrix_world(self) -> np.ndarray:
        """4x4 transform from this node's frame to the frame of the root."""
        if self.parent is None:
            return self.matrix_local
        return self.parent.matrix_world @ self.matrix_local

    def traverse(self) -> Iterator[SceneNode]:
        """Yields this node and all of its descendants in pre-order."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def traverse_with_matrices(
        self, matrix_parent: np.ndarray | None = None
    ) -> Iterator[tuple[SceneNode, np.ndarray]]:
        """Yields (node, matrix_world) pairs in pre-order.

        World matrices are accumulated on the way down instead of being
        recomputed from the root for every node.
        """
        if matrix_parent is None:
            matrix_parent = (
                np.eye(4) if self.parent is None else self.parent.matrix_world
            )
        stack = [(self, matrix_parent)]
        while stack:
            node, parent_world = stack.pop()
            world = parent_world @ node.matrix_local
            yield node, world
            stack.extend((child, world) for child in reversed(node.children))

    def count(self) -> int:
        """Number of nodes in the subtree rooted here, this node included."""
        return sum(1 for _ in self.traverse())

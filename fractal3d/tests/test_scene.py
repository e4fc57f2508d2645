import numpy as np
import pytest

from fractal3d.scene import SceneNode


def test_add_reparents_nodes():
    a, b, child = SceneNode("a"), SceneNode("b"), SceneNode("child")
    a.add(child)
    b.add(child)

    assert child.parent is b
    assert a.children == []
    assert b.children == [child]


def test_add_rejects_self():
    node = SceneNode()
    with pytest.raises(ValueError):
        node.add(node)


def test_remove_ignores_strangers():
    parent, stranger = SceneNode(), SceneNode()
    parent.remove(stranger)
    assert parent.children == []


def test_detach_all_children_on_leaf_is_noop():
    leaf = SceneNode()
    assert leaf.detach_all_children() == []
    assert leaf.children == []


def test_detach_all_children_clears_parents():
    parent = SceneNode()
    children = [SceneNode(str(i)) for i in range(3)]
    parent.add(*children)

    assert parent.detach_all_children() == children
    assert parent.children == []
    assert all(child.parent is None for child in children)


def test_traverse_is_pre_order():
    root = SceneNode("root")
    a, b, a1 = SceneNode("a"), SceneNode("b"), SceneNode("a1")
    root.add(a, b)
    a.add(a1)
    assert [node.name for node in root.traverse()] == ["root", "a", "a1", "b"]
    assert root.count() == 4


def test_rotate_on_axis_acts_in_local_frame():
    node = SceneNode()
    node.rotate_on_axis("y", np.pi / 2)
    node.rotate_on_axis("z", np.pi / 2)
    # local +y tilts toward local -x, which the first turn moved onto world +z
    up = node.matrix_local[:3, :3] @ (0, 1, 0)
    assert np.allclose(up, (0, 0, 1))


def test_matrix_world_chains_parents():
    root, child = SceneNode(), SceneNode()
    root.add(child)
    root.set_position(0, 10, 0)
    root.set_rotation(0, 0, np.pi / 2)
    child.set_position(0, 5, 0)

    origin = child.matrix_world @ (0, 0, 0, 1)
    assert np.allclose(origin[:3], (-5, 10, 0))

    matrices = dict(
        (id(node), world) for node, world in root.traverse_with_matrices()
    )
    assert np.allclose(matrices[id(child)], child.matrix_world)

import numpy as np
import pytest

from fractal3d.controller import FractalTreeController
from fractal3d.models.dataclass import TreeParameters, TreeShape
from fractal3d.visualize import (
    _cylinder_triangles,
    _y_up_to_z_up,
    bind_boolean,
    bind_numeric,
    level_colors,
    tree_mesh_arrays,
)


def test_cylinder_triangles_cover_sides_and_caps():
    faces = _cylinder_triangles(8)
    assert faces.shape == (32, 3)
    assert faces.dtype == np.uint32
    assert faces.max() == 17
    assert set(np.unique(faces)) == set(range(18))

    # each side quad joins a top-ring edge to the bottom-ring edge below it
    assert faces[0].tolist() == [0, 8, 1]
    assert faces[8].tolist() == [1, 8, 9]
    assert faces[7].tolist() == [7, 15, 0]


def test_y_up_to_z_up():
    assert np.allclose(_y_up_to_z_up(np.array([[1.0, 2.0, 3.0]])), [[1.0, -3.0, 2.0]])


def test_tree_mesh_arrays_grouped_by_level():
    shape = TreeShape(radial_segments=8)
    controller = FractalTreeController(shape)
    controller.regenerate(TreeParameters(depth=0, branch_count=2))

    meshes = tree_mesh_arrays(controller.root, radial_segments=8)

    assert sorted(meshes) == [0, 1]
    trunk_vertices, trunk_indices = meshes[0]
    assert trunk_vertices.shape == (18, 3)
    assert trunk_indices.shape == (32, 3)
    # z-up: the trunk stands on the ground and reaches its full length
    assert trunk_vertices[:, 2].min() == pytest.approx(0.0, abs=1e-5)
    assert trunk_vertices[:, 2].max() == pytest.approx(shape.trunk_length, rel=1e-5)

    branch_vertices, branch_indices = meshes[1]
    assert branch_vertices.shape == (36, 3)
    assert branch_indices.shape == (64, 3)
    assert branch_indices.max() == 35


def test_tree_mesh_arrays_follow_animation():
    controller = FractalTreeController(TreeShape(radial_segments=8))
    params = TreeParameters(depth=0, branch_count=1)
    controller.regenerate(params)
    before = tree_mesh_arrays(controller.root, 8, checked=False)[1][0]

    controller.on_frame(params)
    after = tree_mesh_arrays(controller.root, 8, checked=False)[1][0]

    assert not np.allclose(before, after)


def test_level_colors():
    shape = TreeShape()
    assert level_colors([0, 1, 2], shape) == {0: 0xA52A2A, 1: 0xA52A2A, 2: 0xA52A2A}
    by_level = level_colors([0, 1, 2], shape, by_level=True)
    assert sorted(by_level) == [0, 1, 2]
    assert len(set(by_level.values())) == 3


def test_bind_numeric_commits_value():
    params = TreeParameters()
    committed = []
    slider = bind_numeric(
        params, "depth", min_value=0, max_value=5, step=1, on_commit=committed.append
    )

    assert slider.value == params.depth
    assert (slider.min, slider.max) == (0, 5)
    assert slider.continuous_update is False

    slider.value = 2
    assert params.depth == 2
    assert committed == [params]


def test_bind_boolean_toggles_without_callback():
    params = TreeParameters(animated=True)
    checkbox = bind_boolean(params, "animated")
    checkbox.value = False
    assert params.animated is False


def test_tree_mesh_arrays_branches_spin_in_place():
    controller = FractalTreeController(TreeShape(radial_segments=8))
    params = TreeParameters(depth=0, branch_count=3)
    controller.regenerate(params)
    before = tree_mesh_arrays(controller.root, 8, checked=False)

    for _ in range(50):
        controller.on_frame(params)
    after = tree_mesh_arrays(controller.root, 8, checked=False)

    # each segment turns about its own axis: rings move, cap centres stay put
    for first, second in zip(before[1][0].reshape(3, 18, 3), after[1][0].reshape(3, 18, 3)):
        assert np.allclose(first[16:], second[16:], atol=1e-3)
        assert not np.allclose(first[:16], second[:16], atol=1e-3)

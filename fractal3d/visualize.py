"""Functions for generating interactive visualizations of fractal trees."""

from __future__ import annotations

import logging
from collections.abc import Callable

import ipywidgets
import k3d
import numpy as np
import seaborn as sns
from ipywidgets import Checkbox, HBox, IntSlider, Layout, Play, VBox

from fractal3d.controller import FractalTreeController
from fractal3d.generator import BranchNode
from fractal3d.models.dataclass import (
    BRANCH_COUNT_RANGE,
    DEPTH_RANGE,
    TreeParameters,
    TreeShape,
)
from fractal3d.models.mesh_params import SegmentMeshParams
from fractal3d.scene import SceneNode
from fractal3d.utils.geometry import _make_segment_mesh_batched
from fractal3d.utils.mesh_checks import make_segment_meshes_checked

_LOGGER = logging.getLogger(__name__)

GROUND_COLOR = 0x8B4513
FRAME_INTERVAL_MS = 16


def bind_numeric(
    params: TreeParameters,
    name: str,
    min_value: int,
    max_value: int,
    step: int,
    on_commit: Callable[[TreeParameters], None],
    description: str | None = None,
) -> IntSlider:
    """Binds an integer field of `params` to a slider.

    The slider only reports a value once the user lets go of it, so
    `on_commit` runs once per edit rather than for every intermediate value.
    """
    slider = IntSlider(
        value=getattr(params, name),
        min=min_value,
        max=max_value,
        step=step,
        description=description or name,
        continuous_update=False,
    )

    def _commit(change):
        setattr(params, name, change["new"])
        on_commit(params)

    slider.observe(_commit, names="value")
    return slider


def bind_boolean(
    params: TreeParameters,
    name: str,
    on_toggle: Callable[[TreeParameters], None] | None = None,
    description: str | None = None,
) -> Checkbox:
    """Binds a boolean field of `params` to a checkbox."""
    checkbox = Checkbox(value=getattr(params, name), description=description or name)

    def _toggle(change):
        setattr(params, name, change["new"])
        if on_toggle is not None:
            on_toggle(params)

    checkbox.observe(_toggle, names="value")
    return checkbox


def build_frame_clock(
    on_frame: Callable[[], None], interval: int = FRAME_INTERVAL_MS
) -> Play:
    """Builds a Play widget that calls `on_frame` once per tick.

    The widget advances in the browser, so ticks only arrive while a notebook
    front end is displaying it.
    """
    clock = Play(
        value=0, min=0, max=1_000_000, step=1, interval=interval, repeat=True
    )
    clock.observe(lambda change: on_frame(), names="value")
    return clock


def build_tree_controls(
    params: TreeParameters,
    on_commit: Callable[[TreeParameters], None],
    on_frame: Callable[[], None],
    on_toggle: Callable[[TreeParameters], None] | None = None,
) -> tuple[VBox, dict[str, ipywidgets.Widget]]:
    """Builds the User Interface (UI) and controls for the fractal tree."""
    depth = bind_numeric(
        params, "depth", *DEPTH_RANGE, 1, on_commit=on_commit, description="Depth"
    )
    branch_count = bind_numeric(
        params,
        "branch_count",
        *BRANCH_COUNT_RANGE,
        1,
        on_commit=on_commit,
        description="Branch",
    )
    animated = bind_boolean(
        params, "animated", on_toggle=on_toggle, description="Animation"
    )
    clock = build_frame_clock(on_frame)

    controls = {
        "depth": depth,
        "branch_count": branch_count,
        "animated": animated,
        "clock": clock,
    }
    ui = VBox([depth, branch_count, animated, clock], layout=Layout(min_width="300px"))
    return ui, controls


def level_colors(levels, shape: TreeShape, by_level: bool = False) -> dict[int, int]:
    """Assigns a k3d colour to each tree level.

    All levels share the tree colour unless `by_level` is set, in which case
    each level gets its own colour from a seaborn palette.
    """
    levels = sorted(levels)
    if not by_level:
        r, g, b = shape.rgb
        return {level: _rgb_to_k3d_int((r / 255, g / 255, b / 255)) for level in levels}
    palette = sns.color_palette("colorblind", len(levels))
    return {level: _rgb_to_k3d_int(palette[i]) for i, level in enumerate(levels)}


def tree_mesh_arrays(
    root: SceneNode, radial_segments: int = 32, checked: bool = True
) -> dict[int, tuple[np.ndarray, np.ndarray]]:
    """Poses every segment of a tree and groups the meshes by level.

    Parameters
    -----------
    root (SceneNode): node holding the tree; every BranchNode below it is drawn
    radial_segments (int): number of faces around each segment
    checked (bool): validate segment geometry before meshing; invalid
        segments (e.g. lengths that underflowed to zero) raise an error

    Returns:
    --------
    meshes : dict
        level -> (vertices, indices) with z-up float32 vertices and uint32
        triangle indices, ready for `k3d.mesh`
    """
    nodes, matrices = [], []
    for node, world in root.traverse_with_matrices():
        if isinstance(node, BranchNode):
            nodes.append(node)
            matrices.append(world)

    params = SegmentMeshParams(
        length=np.array([n.segment.length for n in nodes], dtype=np.float32),
        base_radius=np.array([n.segment.base_radius for n in nodes], dtype=np.float32),
        tip_radius=np.array([n.segment.tip_radius for n in nodes], dtype=np.float32),
        matrix_world=np.stack(matrices).astype(np.float32),
    )
    if checked:
        err, points = make_segment_meshes_checked(params, radial_segments=radial_segments)
        err.throw()
    else:
        points = _make_segment_mesh_batched(params, radial_segments=radial_segments)
    points = _y_up_to_z_up(np.asarray(points))

    levels = np.array([n.level for n in nodes])
    base_faces = _cylinder_triangles(radial_segments)
    n_vertices = points.shape[1]

    meshes = {}
    for level in np.unique(levels):
        level_points = points[levels == level]
        offsets = np.arange(level_points.shape[0], dtype=np.uint32) * n_vertices
        indices = (base_faces[None, :, :] + offsets[:, None, None]).reshape(-1, 3)
        meshes[int(level)] = (
            level_points.reshape(-1, 3).astype(np.float32),
            indices.astype(np.uint32),
        )
    return meshes


def plot_fractal_tree_interactive(
    params: TreeParameters | None = None,
    shape: TreeShape | None = None,
    color_by_level: bool = False,
) -> HBox:
    """Plots an animated fractal tree with k3d next to its controls."""
    params = params or TreeParameters()
    shape = shape or TreeShape()
    controller = FractalTreeController(shape)
    controller.regenerate(params)

    plot = k3d.plot(grid_visible=False, height=600, camera_auto_fit=False)
    plot.layout = Layout(
        width="100%",
        min_width="0px",
        height="600px",
        flex="1 1 auto",
    )
    half = shape.ground_size / 2
    plot += k3d.surface(
        np.zeros((2, 2), dtype=np.float32),
        xmin=-half,
        xmax=half,
        ymin=-half,
        ymax=half,
        color=GROUND_COLOR,
        wireframe=False,
    )
    eye = _y_up_to_z_up(np.array([shape.camera_position], dtype=float))[0]
    plot.camera = [*eye, 0.0, 0.0, 0.0, 0.0, 0.0, 1.0]

    meshes: dict[int, k3d.objects.Mesh] = {}

    def redraw():
        nonlocal plot
        arrays = tree_mesh_arrays(controller.root, shape.radial_segments)
        colors = level_colors(arrays, shape, by_level=color_by_level)
        _LOGGER.debug("Redrawing %d tree levels", len(arrays))
        for mesh in meshes.values():
            plot -= mesh
        meshes.clear()
        for level, (vertices, indices) in arrays.items():
            meshes[level] = k3d.mesh(
                vertices=vertices, indices=indices, color=colors[level], opacity=1.0
            )
            plot += meshes[level]

    def on_commit(p: TreeParameters):
        controller.regenerate(p)
        redraw()

    def on_frame():
        if not params.animated:
            return
        controller.on_frame(params)
        arrays = tree_mesh_arrays(controller.root, shape.radial_segments, checked=False)
        with plot.hold_sync():
            for level, (vertices, _indices) in arrays.items():
                meshes[level].vertices = vertices

    ui, _controls = build_tree_controls(params, on_commit=on_commit, on_frame=on_frame)
    redraw()

    return HBox(
        [ui, plot],
        layout=Layout(
            width="100%",
            display="flex",
            align_items="stretch",
            justify_content="space-between",
            gap="12px",
        ),
    )


def _rgb_to_k3d_int(rgb_float_triplet) -> int:
    r, g, b = (int(round(255 * c)) for c in rgb_float_triplet)
    return (r << 16) + (g << 8) + b


def _y_up_to_z_up(points: np.ndarray) -> np.ndarray:
    """Rotates y-up coordinates a quarter turn about x so that z points up."""
    x, y, z = points[..., 0], points[..., 1], points[..., 2]
    return np.stack((x, -z, y), axis=-1)


def _cylinder_triangles(radial_segments: int) -> np.ndarray:
    """Generates triangles for a segment mesh.

    Matches the vertex layout of `_make_segment_mesh`: a top ring, a bottom
    ring, then the top and bottom cap centres.

    Returns:
        np.ndarray with shape (4 * radial_segments, 3)
    """
    n = radial_segments
    ring = np.arange(n, dtype=np.uint32)
    following = np.roll(ring, -1)
    sides = np.vstack(
        [
            np.column_stack([ring, ring + n, following]),
            np.column_stack([following, ring + n, following + n]),
        ]
    )

    top_center, bottom_center = 2 * n, 2 * n + 1
    top = np.column_stack([np.full(n, top_center, dtype=np.uint32), following, ring])
    bottom = np.column_stack(
        [np.full(n, bottom_center, dtype=np.uint32), ring + n, following + n]
    )
    return np.vstack([sides, top, bottom]).astype(np.uint32)

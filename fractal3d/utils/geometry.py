"""Functions for creating the 3D geometry of fractal trees."""

from __future__ import annotations

import jax
import jax.numpy as jnp
import numpy as np
from jax import Array
from jax.typing import ArrayLike

from fractal3d.models.mesh_params import SegmentMeshParams

DECAY_RATE = 0.1


def decay_length(
    current_length: float | np.ndarray,
    index: int | np.ndarray,
    current_depth: int | np.ndarray,
) -> float | np.ndarray:
    """Calculates the length of a child branch from its parent.

    Length decays exponentially with both the 1-based index of the branch
    among its siblings and the depth it is grown from, so later siblings and
    deeper levels are shorter.

    Parameters
    ----------
    current_length : numeric, or array of numeric values
        length of the parent segment, > 0
    index : int, or array of ints
        1-based position of the child among its siblings
    current_depth : int, or array of ints
        depth of the parent, 0 for the trunk

    Returns:
    --------
    child_length : numeric, or array of numeric values
        always > 0 for a positive parent length, though it can underflow to 0
        for extreme inputs
    """
    return current_length * np.exp(-DECAY_RATE * (np.asarray(index) + current_depth))


def attachment_offset(
    child_base_y: float | np.ndarray,
    index: int | np.ndarray,
    current_length: float | np.ndarray,
    branch_count: int,
) -> float | np.ndarray:
    """Calculates where along its parent a child branch is attached.

    Siblings are spread along the parent's local y-axis. The `+ 1` in the
    denominator keeps every offset within the parent's span.

    Parameters
    ----------
    child_base_y : numeric
        y-translation of the child's own centred cylinder (half its length)
    index : int
        1-based position of the child among its siblings
    current_length : numeric
        length of the parent segment
    branch_count : int
        number of siblings

    Returns:
    --------
    offset_y : numeric
        y-coordinate of the child node in its parent's frame
    """
    return (child_base_y + np.asarray(index) * current_length) / (branch_count + 1)


def _make_segment_mesh(
    length: ArrayLike,
    base_radius: ArrayLike,
    tip_radius: ArrayLike,
    radial_segments: int = 32,
) -> Array:
    """Makes the vertices of a tapered cylinder.

    The cylinder grows along +y from the origin: it is built centred between
    y = -length/2 and y = +length/2, like a primitive cylinder, and then
    shifted up by length/2.

    This function is kept free of eager validation so it can be composed with
    `jit`/`vmap`; see `fractal3d.utils.mesh_checks` for a validated variant.

    Parameters
    ----------
    length : numeric
        length of the segment along its growth axis
    base_radius : numeric
        radius of the bottom ring
    tip_radius : numeric
        radius of the top ring
    radial_segments : int, optional
        number of points around each ring (static under `jit`)

    Returns
    -------
    points : jax.Array, shape (2 * radial_segments + 2, 3)
        the top ring, the bottom ring, then the top and bottom cap centres.
    """
    length = jnp.asarray(length)
    base_radius = jnp.asarray(base_radius)
    tip_radius = jnp.asarray(tip_radius)

    thetas = jnp.linspace(0, 2 * jnp.pi, radial_segments, endpoint=False)
    half = length / 2

    radii = jnp.stack((tip_radius, base_radius))
    heights = jnp.stack((half, -half))

    ring_xs = radii[:, None] * jnp.sin(thetas)[None, :]
    ring_zs = radii[:, None] * jnp.cos(thetas)[None, :]
    ring_ys = jnp.broadcast_to(heights[:, None], ring_xs.shape)
    rings = jnp.column_stack((ring_xs.ravel(), ring_ys.ravel(), ring_zs.ravel()))

    zero = jnp.zeros_like(half)
    caps = jnp.stack(
        (
            jnp.stack((zero, half, zero)),
            jnp.stack((zero, -half, zero)),
        )
    )

    points = jnp.concatenate((rings, caps))
    # primitive is centred on its origin; move the base onto the attachment point
    return points + jnp.stack((zero, half, zero))


def _transform_points(matrix_world: ArrayLike, points: Array) -> Array:
    matrix_world = jnp.asarray(matrix_world)
    return points @ matrix_world[:3, :3].T + matrix_world[:3, 3]


def _make_segment_mesh_from_params(
    params: SegmentMeshParams, *, radial_segments: int = 32
) -> Array:
    """Makes the world-space vertices of one segment from a params container."""
    points = _make_segment_mesh(
        length=params.length,
        base_radius=params.base_radius,
        tip_radius=params.tip_radius,
        radial_segments=radial_segments,
    )
    return _transform_points(params.matrix_world, points)


def _make_segment_mesh_batched(
    params: SegmentMeshParams, *, radial_segments: int = 32
) -> Array:
    """Vectorized segment meshes over all segments of a tree.

    Parameters
    ----------
    params : SegmentMeshParams
        A params container whose fields are stacked with a leading batch dimension `B`.
    radial_segments : int
        Ring resolution. For best performance under `jit`, treat this as static
        configuration (compile once per resolution).

    Returns
    -------
    points : jax.Array, shape (B, 2 * radial_segments + 2, 3)
        Batched world-space segment vertices.
    """

    def _single(p: SegmentMeshParams) -> Array:
        return _make_segment_mesh_from_params(p, radial_segments=radial_segments)

    return jax.vmap(_single)(params)

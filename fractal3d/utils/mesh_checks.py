"""JAX-friendly validation utilities for segment mesh generation.

This module holds checkify-based 'fail fast' wrappers around the segment mesh
generator without cluttering the core geometry implementation.
"""

from __future__ import annotations

import jax.numpy as jnp
from jax import Array
from jax.experimental import checkify
from jax.typing import ArrayLike

from fractal3d.models.mesh_params import SegmentMeshParams
from fractal3d.utils.geometry import _make_segment_mesh, _make_segment_mesh_batched

_ERRORS = checkify.user_checks | checkify.float_checks


def _check_static(radial_segments: int) -> None:
    # shapes are static under jit, so this cannot be a checkify check
    if radial_segments < 3:
        raise ValueError(f"radial_segments must be >= 3, got {radial_segments}")


def _check_segment_values(
    length: Array, base_radius: Array, tip_radius: Array
) -> None:
    """Value invariants shared by the single and batched wrappers.

    A segment whose length decayed (or underflowed) to zero is reported here
    rather than silently clamped.
    """
    checkify.check(
        jnp.all(jnp.isfinite(length) & (length > 0)),
        "length must be finite and > 0.",
    )
    checkify.check(
        jnp.all(jnp.isfinite(base_radius) & (base_radius > 0)),
        "base_radius must be finite and > 0.",
    )
    checkify.check(
        jnp.all(jnp.isfinite(tip_radius) & (tip_radius > 0)),
        "tip_radius must be finite and > 0.",
    )
    checkify.check(
        jnp.all(tip_radius < base_radius),
        "tip_radius must be < base_radius (segments taper toward the tip).",
    )


def _make_segment_mesh_checked(
    *,
    length: ArrayLike,
    base_radius: ArrayLike,
    tip_radius: ArrayLike,
    radial_segments: int = 32,
) -> tuple[checkify.Error, Array]:
    """Checks for valid inputs to the segment mesh generator.

    `_make_segment_mesh` (in `fractal3d.utils.geometry`) is intentionally free
    of eager validation so it composes with JAX transforms. Degenerate inputs
    (zero or negative lengths, inverted taper) would otherwise produce
    collapsed or inside-out geometry without complaint.

    Returns
    -------
    err : checkify.Error
        A checkify error object (call `err.throw()` in Python to raise).
    points : jax.Array, shape (2 * radial_segments + 2, 3)
        Vertices of the segment in its branch node's frame.
    """
    _check_static(radial_segments)

    def _checked_impl(*, length, base_radius, tip_radius) -> Array:
        length_array = jnp.asarray(length)
        base_radius_array = jnp.asarray(base_radius)
        tip_radius_array = jnp.asarray(tip_radius)
        _check_segment_values(length_array, base_radius_array, tip_radius_array)
        return _make_segment_mesh(
            length=length_array,
            base_radius=base_radius_array,
            tip_radius=tip_radius_array,
            radial_segments=radial_segments,
        )

    checked = checkify.checkify(_checked_impl, errors=_ERRORS)
    return checked(length=length, base_radius=base_radius, tip_radius=tip_radius)


def make_segment_meshes_checked(
    params: SegmentMeshParams, *, radial_segments: int = 32
) -> tuple[checkify.Error, Array]:
    """Checks a batch of segments and returns their world-space vertices.

    This is the batched counterpart of `_make_segment_mesh_checked`, taking a
    `SegmentMeshParams` whose fields carry a leading batch dimension `B`.

    Returns
    -------
    err : checkify.Error
        A checkify error object (call `err.throw()` in Python to raise).
    points : jax.Array, shape (B, 2 * radial_segments + 2, 3)
    """
    _check_static(radial_segments)

    def _checked_impl(p: SegmentMeshParams) -> Array:
        _check_segment_values(
            jnp.asarray(p.length), jnp.asarray(p.base_radius), jnp.asarray(p.tip_radius)
        )
        checkify.check(
            jnp.all(jnp.isfinite(jnp.asarray(p.matrix_world))),
            "matrix_world must be finite (no NaN/inf).",
        )
        return _make_segment_mesh_batched(p, radial_segments=radial_segments)

    checked = checkify.checkify(_checked_impl, errors=_ERRORS)
    return checked(params)

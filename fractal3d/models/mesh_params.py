from __future__ import annotations

from dataclasses import dataclass

from jax import tree_util
from jax.typing import ArrayLike


@tree_util.register_dataclass
@dataclass(frozen=True)
class SegmentMeshParams:
    """Parameter container for segment meshes (PyTree-friendly).

    This is intended for vmap/jit workflows, where the segments of a whole
    tree are posed in one call. Each field may be a scalar, a JAX array, or a
    NumPy array; they will be converted via `jnp.asarray()` inside the mesh
    implementation.

    Batched usage
    ------------
    For batching with `vmap`, each field should be stacked with a leading batch
    dimension `B` (e.g., `length` has shape `(B,)` and `matrix_world` has
    shape `(B, 4, 4)`).
    """

    length: ArrayLike
    base_radius: ArrayLike
    tip_radius: ArrayLike
    matrix_world: ArrayLike

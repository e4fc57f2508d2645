import numpy as np
import pytest
from jax import jit

from fractal3d.models.mesh_params import SegmentMeshParams
from fractal3d.utils.geometry import (
    _make_segment_mesh,
    _make_segment_mesh_batched,
    attachment_offset,
    decay_length,
)
from fractal3d.utils.mesh_checks import (
    _make_segment_mesh_checked,
    make_segment_meshes_checked,
)


def test_decay_length_formula():
    assert decay_length(40.0, 1, 0) == pytest.approx(40.0 * np.exp(-0.1))
    assert decay_length(40.0, 3, 2) == pytest.approx(40.0 * np.exp(-0.5))


def test_decay_length_decreases_with_index():
    for depth in range(6):
        lengths = decay_length(40.0, np.arange(1, 11), depth)
        assert np.all(np.diff(lengths) < 0)
        assert np.all(lengths > 0)


def test_decay_length_decreases_with_depth():
    lengths = [decay_length(40.0, 2, depth) for depth in range(6)]
    assert np.all(np.diff(lengths) < 0)


def test_attachment_offset_uses_parent_length():
    child_length = decay_length(40.0, 1, 0)
    offset = attachment_offset(child_length / 2, 1, 40.0, 3)
    assert offset == pytest.approx((child_length / 2 + 40.0) / 4)


def test_attachment_offsets_within_parent_span():
    parent_length = 40.0
    for branch_count in range(1, 11):
        index = np.arange(1, branch_count + 1)
        child_lengths = decay_length(parent_length, index, 0)
        offsets = attachment_offset(child_lengths / 2, index, parent_length, branch_count)
        assert np.all(offsets > 0)
        assert np.all(offsets < parent_length)


def test_segment_mesh_rings_and_caps():
    points = np.asarray(_make_segment_mesh(8.0, 0.6, 0.36, radial_segments=8))

    assert points.shape == (18, 3)
    assert np.allclose(points[:8, 1], 8.0)
    assert np.allclose(points[8:16, 1], 0.0)
    assert np.allclose(points[16], (0.0, 8.0, 0.0))
    assert np.allclose(points[17], (0.0, 0.0, 0.0))

    assert np.allclose(np.hypot(points[:8, 0], points[:8, 2]), 0.36, atol=1e-5)
    assert np.allclose(np.hypot(points[8:16, 0], points[8:16, 2]), 0.6, atol=1e-5)


def test_batched_mesh_matches_single_meshes():
    matrix = np.eye(4)
    matrix[:3, 3] = (1.0, 2.0, 3.0)
    params = SegmentMeshParams(
        length=np.array([4.0, 6.0]),
        base_radius=np.array([0.6, 0.6]),
        tip_radius=np.array([0.36, 0.36]),
        matrix_world=np.stack([np.eye(4), matrix]),
    )
    batched = np.asarray(_make_segment_mesh_batched(params, radial_segments=8))

    assert batched.shape == (2, 18, 3)
    assert np.allclose(batched[0], _make_segment_mesh(4.0, 0.6, 0.36, 8), atol=1e-5)
    assert np.allclose(
        batched[1], np.asarray(_make_segment_mesh(6.0, 0.6, 0.36, 8)) + (1, 2, 3), atol=1e-5
    )


def _checked_mesh_err_message(**overrides) -> str | None:
    """Runs the checked mesh under `jit` and returns the first error message (or None)."""
    params = dict(length=10.0, base_radius=0.6, tip_radius=0.36)
    params.update(overrides)

    err, _pts = jit(lambda: _make_segment_mesh_checked(radial_segments=8, **params))()
    return err.get()


def test_checked_mesh_valid_inputs():
    assert _checked_mesh_err_message() is None


def test_checked_mesh_errors_on_zero_length():
    # a length that underflowed to zero is reported, not clamped
    msg = _checked_mesh_err_message(length=0.0)
    assert msg is not None
    assert "length" in msg


def test_checked_mesh_errors_on_inverted_taper():
    msg = _checked_mesh_err_message(tip_radius=0.8)
    assert msg is not None
    assert "tip_radius" in msg


def test_checked_mesh_rejects_too_few_radial_segments():
    with pytest.raises(ValueError):
        _make_segment_mesh_checked(
            length=1.0, base_radius=0.6, tip_radius=0.36, radial_segments=2
        )


def test_checked_batched_mesh_errors_on_any_bad_segment():
    params = SegmentMeshParams(
        length=np.array([4.0, 0.0]),
        base_radius=np.array([0.6, 0.6]),
        tip_radius=np.array([0.36, 0.36]),
        matrix_world=np.stack([np.eye(4), np.eye(4)]),
    )
    err, pts = make_segment_meshes_checked(params, radial_segments=8)
    assert err.get() is not None
    assert "length" in err.get()
    assert pts.shape == (2, 18, 3)

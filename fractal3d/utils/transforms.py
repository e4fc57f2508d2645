"""Rotation and transform helpers for y-up scene nodes.

Rotations follow the three.js conventions: Euler angles are applied in XYZ
order (the matrix is Rx @ Ry @ Rz) and rotating an object about one of its
local axes post-multiplies its current rotation.
"""

from __future__ import annotations

import numpy as np

AXES = {
    "x": np.array((1.0, 0.0, 0.0)),
    "y": np.array((0.0, 1.0, 0.0)),
    "z": np.array((0.0, 0.0, 1.0)),
}

# below this |m13| the XYZ decomposition is not in gimbal lock
_GIMBAL_THRESHOLD = 0.9999999


def _axis_vector(axis: str | np.ndarray) -> np.ndarray:
    """Resolves an axis name or vector into a unit vector."""
    if isinstance(axis, str):
        try:
            return AXES[axis.lower()]
        except KeyError:
            message = f"Unknown axis {axis!r}, expected one of {sorted(AXES)}"
            raise ValueError(message) from None

    vector = np.asarray(axis, dtype=float)
    if vector.shape != (3,):
        raise ValueError(f"Axis vectors must have shape (3,), got {vector.shape}")
    norm = np.linalg.norm(vector)
    if norm == 0:
        raise ValueError("Axis vectors must be non-zero.")
    return vector / norm


def axis_angle_matrix(axis: str | np.ndarray, angle: float) -> np.ndarray:
    """Returns the 3x3 matrix rotating by `angle` radians about `axis`.

    Parameters
    ----------
    axis : string or array with shape (3,)
        one of "x", "y", "z", or an arbitrary (non-zero) axis vector
    angle : numeric
        rotation in radians, counter-clockwise looking down the axis

    Returns:
    --------
    rotation : array with shape (3, 3)
    """
    x, y, z = _axis_vector(axis)
    c, s = np.cos(angle), np.sin(angle)
    t = 1 - c
    return np.array(
        (
            (t * x * x + c, t * x * y - s * z, t * x * z + s * y),
            (t * x * y + s * z, t * y * y + c, t * y * z - s * x),
            (t * x * z - s * y, t * y * z + s * x, t * z * z + c),
        )
    )


def euler_xyz_to_matrix(rotation: np.ndarray) -> np.ndarray:
    """Converts XYZ-ordered Euler angles into a 3x3 rotation matrix."""
    rx, ry, rz = rotation
    return (
        axis_angle_matrix("x", rx)
        @ axis_angle_matrix("y", ry)
        @ axis_angle_matrix("z", rz)
    )


def matrix_to_euler_xyz(matrix: np.ndarray) -> np.ndarray:
    """Decomposes a pure 3x3 rotation matrix into XYZ-ordered Euler angles.

    The decomposition matches three.js `Euler.setFromRotationMatrix`, so the
    y angle is always in [-pi/2, pi/2].
    """
    m = np.asarray(matrix, dtype=float)
    m13 = np.clip(m[0, 2], -1.0, 1.0)
    ry = np.arcsin(m13)
    if abs(m13) < _GIMBAL_THRESHOLD:
        rx = np.arctan2(-m[1, 2], m[2, 2])
        rz = np.arctan2(-m[0, 1], m[0, 0])
    else:
        rx = np.arctan2(m[2, 1], m[1, 1])
        rz = 0.0
    return np.array((rx, ry, rz), dtype=float)


def compose(position: np.ndarray, rotation: np.ndarray) -> np.ndarray:
    """Builds the 4x4 homogeneous matrix for a translation and Euler rotation."""
    matrix = np.eye(4)
    matrix[:3, :3] = euler_xyz_to_matrix(rotation)
    matrix[:3, 3] = position
    return matrix


def transform_points(matrix: np.ndarray, points: np.ndarray) -> np.ndarray:
    """Applies a 4x4 homogeneous transform to an (N, 3) array of points."""
    points = np.asarray(points, dtype=float)
    return points @ matrix[:3, :3].T + matrix[:3, 3]

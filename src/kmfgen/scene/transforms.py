"""4x4 transform helpers (column-vector convention, translation in column 3)."""

from __future__ import annotations

from typing import Sequence, Tuple

import numpy as np

__all__ = [
    "identity",
    "compose_trs",
    "quaternion_to_matrix",
    "matrix_to_quaternion",
    "decompose_matrix",
]

_EPS = 1e-12


def identity() -> np.ndarray:
    return np.eye(4, dtype=np.float64)


def quaternion_to_matrix(q: Sequence[float]) -> np.ndarray:
    """Rotation matrix (3x3) for a w-first quaternion ``(w, x, y, z)``."""
    w, x, y, z = (float(c) for c in q)
    n = w * w + x * x + y * y + z * z
    if n < _EPS:
        return np.eye(3, dtype=np.float64)
    s = 2.0 / n
    return np.array(
        [
            [1 - s * (y * y + z * z), s * (x * y - z * w), s * (x * z + y * w)],
            [s * (x * y + z * w), 1 - s * (x * x + z * z), s * (y * z - x * w)],
            [s * (x * z - y * w), s * (y * z + x * w), 1 - s * (x * x + y * y)],
        ],
        dtype=np.float64,
    )


def matrix_to_quaternion(r: np.ndarray) -> Tuple[float, float, float, float]:
    """w-first unit quaternion for a pure rotation matrix (Shepperd)."""
    m = np.asarray(r, dtype=np.float64)
    trace = m[0, 0] + m[1, 1] + m[2, 2]
    if trace > 0.0:
        s = np.sqrt(trace + 1.0) * 2.0
        w = 0.25 * s
        x = (m[2, 1] - m[1, 2]) / s
        y = (m[0, 2] - m[2, 0]) / s
        z = (m[1, 0] - m[0, 1]) / s
    elif m[0, 0] > m[1, 1] and m[0, 0] > m[2, 2]:
        s = np.sqrt(1.0 + m[0, 0] - m[1, 1] - m[2, 2]) * 2.0
        w = (m[2, 1] - m[1, 2]) / s
        x = 0.25 * s
        y = (m[0, 1] + m[1, 0]) / s
        z = (m[0, 2] + m[2, 0]) / s
    elif m[1, 1] > m[2, 2]:
        s = np.sqrt(1.0 + m[1, 1] - m[0, 0] - m[2, 2]) * 2.0
        w = (m[0, 2] - m[2, 0]) / s
        x = (m[0, 1] + m[1, 0]) / s
        y = 0.25 * s
        z = (m[1, 2] + m[2, 1]) / s
    else:
        s = np.sqrt(1.0 + m[2, 2] - m[0, 0] - m[1, 1]) * 2.0
        w = (m[1, 0] - m[0, 1]) / s
        x = (m[0, 2] + m[2, 0]) / s
        y = (m[1, 2] + m[2, 1]) / s
        z = 0.25 * s
    q = np.array([w, x, y, z], dtype=np.float64)
    q /= np.linalg.norm(q)
    # canonical hemisphere
    if q[0] < 0.0:
        q = -q
    return (float(q[0]), float(q[1]), float(q[2]), float(q[3]))


def compose_trs(
    translation: Sequence[float] = (0.0, 0.0, 0.0),
    rotation: Sequence[float] = (1.0, 0.0, 0.0, 0.0),
    scale: Sequence[float] = (1.0, 1.0, 1.0),
) -> np.ndarray:
    """Build ``T * R * S``. ``rotation`` is w-first."""
    m = identity()
    m[:3, :3] = quaternion_to_matrix(rotation) * np.asarray(
        scale, dtype=np.float64
    )
    m[:3, 3] = np.asarray(translation, dtype=np.float64)
    return m


def decompose_matrix(
    matrix: np.ndarray,
) -> Tuple[
    Tuple[float, float, float],
    Tuple[float, float, float, float],
    Tuple[float, float, float],
]:
    """Split an affine matrix into translation, w-first rotation and scale.

    A mirroring transform (negative determinant) is reported as a negative
    x scale. Zero scale axes yield an identity rotation for that axis.
    """
    m = np.asarray(matrix, dtype=np.float64).reshape(4, 4)
    translation = m[:3, 3]
    basis = m[:3, :3]
    scale = np.linalg.norm(basis, axis=0)
    if np.linalg.det(basis) < 0.0:
        scale[0] = -scale[0]
    rot = np.eye(3, dtype=np.float64)
    for i in range(3):
        if abs(scale[i]) > _EPS:
            rot[:, i] = basis[:, i] / scale[i]
    return (
        (float(translation[0]), float(translation[1]), float(translation[2])),
        matrix_to_quaternion(rot),
        (float(scale[0]), float(scale[1]), float(scale[2])),
    )

"""Per-vertex tangent synthesis (Lengyel's method) in float32.

Triangles are accumulated in ascending order and, within a triangle, onto
vertices i1, i2, i3 in that order, so identical inputs give bit-identical
tangents.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Sequence

import numpy as np

from ..models import ModelBlock
from ..packing.constants import TANGENT_EPSILON

__all__ = ["compute_tangents", "generate_tangents", "generate_all_tangents"]

_F32 = np.float32
_EPS = _F32(TANGENT_EPSILON)


def _normalize_rows(v: np.ndarray) -> np.ndarray:
    lengths = np.sqrt(np.sum(v * v, axis=1))
    out = np.zeros_like(v)
    good = lengths >= _EPS
    out[good] = v[good] / lengths[good][:, None]
    return out


def compute_tangents(
    positions: Sequence | np.ndarray,
    tex_coords: Sequence | np.ndarray,
    normals: Sequence | np.ndarray,
    indices: Sequence | np.ndarray,
) -> np.ndarray:
    """Return an ``(N, 4)`` float32 array of tangent xyz plus handedness.

    Handedness is 1.0 when ``dot(cross(n, t), bitangent) < 0`` and 0.0
    otherwise. Degenerate UV triangles use ``r = 1``; a tangent that vanishes
    after orthogonalization becomes ``(1, 0, 0)``.
    """
    pos = np.asarray(positions, dtype=_F32).reshape(-1, 3)
    uv = np.asarray(tex_coords, dtype=_F32).reshape(-1, 2)
    nrm = np.asarray(normals, dtype=_F32).reshape(-1, 3)
    idx = np.asarray(indices, dtype=np.int64).reshape(-1)
    count = pos.shape[0]
    if uv.shape[0] != count or nrm.shape[0] != count:
        raise ValueError(
            f"Attribute count mismatch: positions={count} "
            f"uvs={uv.shape[0]} normals={nrm.shape[0]}"
        )
    if idx.size % 3:
        raise ValueError(f"Index count {idx.size} is not a multiple of 3")
    if idx.size and (idx.min() < 0 or idx.max() >= count):
        raise ValueError(f"Index out of range for {count} vertices")

    tan1 = np.zeros((count, 3), dtype=_F32)
    tan2 = np.zeros((count, 3), dtype=_F32)

    if idx.size:
        tri = idx.reshape(-1, 3)
        i1, i2, i3 = tri[:, 0], tri[:, 1], tri[:, 2]
        p1, p2, p3 = pos[i1], pos[i2], pos[i3]
        w1, w2, w3 = uv[i1], uv[i2], uv[i3]

        e1 = p2 - p1
        e2 = p3 - p1
        s1 = w2[:, 0] - w1[:, 0]
        s2 = w3[:, 0] - w1[:, 0]
        t1 = w2[:, 1] - w1[:, 1]
        t2 = w3[:, 1] - w1[:, 1]

        r = s1 * t2 - s2 * t1
        degenerate = np.abs(r) < _EPS
        safe = np.where(degenerate, _F32(1.0), r)
        r = np.where(degenerate, _F32(1.0), _F32(1.0) / safe).astype(_F32)

        sdir = (t2[:, None] * e1 - t1[:, None] * e2) * r[:, None]
        tdir = (s1[:, None] * e2 - s2[:, None] * e1) * r[:, None]

        # ufunc.at is unbuffered and applies updates in index order.
        flat = tri.reshape(-1)
        np.add.at(tan1, flat, np.repeat(sdir, 3, axis=0))
        np.add.at(tan2, flat, np.repeat(tdir, 3, axis=0))

    n = _normalize_rows(nrm)
    ortho = tan1 - n * np.sum(n * tan1, axis=1)[:, None]
    lengths = np.sqrt(np.sum(ortho * ortho, axis=1))
    good = lengths >= _EPS

    out = np.zeros((count, 4), dtype=_F32)
    out[:, 0] = _F32(1.0)
    out[good, 0:3] = ortho[good] / lengths[good][:, None]

    handed = np.sum(np.cross(n, out[:, 0:3]) * tan2, axis=1) < _F32(0.0)
    out[:, 3] = np.where(handed, _F32(1.0), _F32(0.0))
    return out


def generate_tangents(block: ModelBlock) -> ModelBlock:
    """Fill ``tangent`` on every vertex of ``block`` in place."""
    if not block.vertices:
        return block
    tangents = compute_tangents(
        [v.position for v in block.vertices],
        [v.tex_coord for v in block.vertices],
        [v.normal for v in block.vertices],
        block.indices,
    )
    for v, t in zip(block.vertices, tangents.tolist()):
        v.tangent = (t[0], t[1], t[2], t[3])
    return block


def generate_all_tangents(
    blocks: Sequence[ModelBlock],
    workers: int | None = None,
    on_block: Callable[[ModelBlock], None] | None = None,
) -> None:
    """Run :func:`generate_tangents` over every block.

    Blocks share no state, so ``workers > 1`` spreads them over a thread pool
    with results identical to the sequential run. ``on_block`` is called on
    the calling thread, in block order, as each block completes.
    """
    if not workers or workers <= 1 or len(blocks) <= 1:
        for b in blocks:
            generate_tangents(b)
            if on_block is not None:
                on_block(b)
        return
    with ThreadPoolExecutor(max_workers=workers) as executor:
        # map re-raises the first worker exception here
        for b in executor.map(generate_tangents, blocks):
            if on_block is not None:
                on_block(b)

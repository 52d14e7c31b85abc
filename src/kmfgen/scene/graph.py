"""In-memory scene graph and its flattening into KMF model blocks."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, List, Sequence

import numpy as np

from ..logging import get_logger
from ..models import ModelBlock, Vertex
from ..packing.constants import (
    MESH_NAME_SIZE,
    NODE_NAME_SIZE,
    NODE_PATH_SIZE,
    SCALE_MULTIPLIER,
)
from ..packing.errors import (
    E_INDEX_OUT_OF_RANGE,
    E_SCENE_EMPTY,
    E_SIZE_MISMATCH,
    SceneError,
)
from ..packing.layout import fit_name
from .transforms import decompose_matrix, identity

__all__ = [
    "MeshData",
    "SceneNode",
    "flatten_scene",
    "join_identical_vertices",
    "require_blocks",
]


@dataclass(slots=True)
class MeshData:
    """Triangle mesh in node-local space.

    ``normals`` and ``tex_coords`` may be empty; they then read as zeros.
    """

    name: str = ""
    positions: Any = field(default_factory=list)
    normals: Any = field(default_factory=list)
    tex_coords: Any = field(default_factory=list)
    indices: Any = field(default_factory=list)


@dataclass(slots=True)
class SceneNode:
    name: str
    matrix: Any = field(default_factory=identity)
    meshes: List[MeshData] = field(default_factory=list)
    children: List["SceneNode"] = field(default_factory=list)


def _attribute(
    values: Any, count: int, width: int, label: str, owner: str
) -> np.ndarray:
    arr = np.asarray(values, dtype=np.float32)
    if arr.size == 0:
        return np.zeros((count, width), dtype=np.float32)
    arr = arr.reshape(-1, width)
    if arr.shape[0] != count:
        raise SceneError(
            code=E_SIZE_MISMATCH,
            message=(
                f"Mesh '{owner}' has {arr.shape[0]} {label} for "
                f"{count} positions"
            ),
            context={"mesh": owner, "attribute": label},
        )
    return arr


def _fit(name: str, size: int, what: str, logger: logging.Logger) -> str:
    fitted = fit_name(name, size)
    if fitted != name:
        logger.warning("Truncated %s '%s' to '%s'", what, name, fitted)
    return fitted


def _indices(values: Any, count: int, owner: str) -> np.ndarray:
    idx = np.asarray(values, dtype=np.int64).reshape(-1)
    if idx.size % 3:
        raise SceneError(
            code=E_SIZE_MISMATCH,
            message=(
                f"Mesh '{owner}' index count {idx.size} is not a multiple of 3"
            ),
            context={"mesh": owner, "index_count": int(idx.size)},
        )
    if idx.size and (idx.min() < 0 or idx.max() >= count):
        bad = int(idx[(idx < 0) | (idx >= count)][0])
        raise SceneError(
            code=E_INDEX_OUT_OF_RANGE,
            message=(
                f"Mesh '{owner}' references vertex {bad} but has "
                f"{count} vertices"
            ),
            context={"mesh": owner, "vertex_index": bad, "vertex_count": count},
        )
    return idx


def join_identical_vertices(
    attributes: np.ndarray, indices: np.ndarray
) -> tuple[np.ndarray, np.ndarray]:
    """Merge rows of ``attributes`` that are equal in every component.

    Survivors keep the order of their first occurrence and ``indices`` is
    remapped onto them.
    """
    if attributes.shape[0] == 0:
        return attributes, indices
    _, first, inverse = np.unique(
        attributes, axis=0, return_index=True, return_inverse=True
    )
    inverse = inverse.reshape(-1)
    order = np.argsort(first)
    rank = np.empty_like(order)
    rank[order] = np.arange(order.size)
    remap = rank[inverse]
    return attributes[first[order]], remap[indices]


def _mesh_block(
    mesh: MeshData,
    mesh_name: str,
    node_name: str,
    node_path: str,
    trs: tuple,
    scale_multiplier: float,
) -> ModelBlock:
    pos = np.asarray(mesh.positions, dtype=np.float32).reshape(-1, 3)
    count = pos.shape[0]
    nrm = _attribute(mesh.normals, count, 3, "normals", mesh_name)
    uv = _attribute(mesh.tex_coords, count, 2, "uvs", mesh_name)
    idx = _indices(mesh.indices, count, mesh_name)

    lengths = np.linalg.norm(nrm, axis=1)
    good = lengths > 0.0
    nrm[good] = nrm[good] / lengths[good][:, None]
    pos = pos * np.float32(scale_multiplier)

    joined, idx = join_identical_vertices(
        np.concatenate([pos, nrm, uv], axis=1).astype(np.float32), idx
    )
    pos, nrm, uv = joined[:, 0:3], joined[:, 3:6], joined[:, 6:8]

    vertices = [
        Vertex(
            position=(p[0], p[1], p[2]),
            normal=(n[0], n[1], n[2]),
            tex_coord=(t[0], t[1]),
        )
        for p, n, t in zip(pos.tolist(), nrm.tolist(), uv.tolist())
    ]
    translation, rotation, size = trs
    return ModelBlock(
        node_name=node_name,
        mesh_name=mesh_name,
        node_path=node_path,
        position=translation,
        rotation=rotation,
        size=size,
        vertices=vertices,
        indices=[int(i) for i in idx],
    )


def flatten_scene(
    root: SceneNode,
    scale_multiplier: float = SCALE_MULTIPLIER,
    logger: logging.Logger | None = None,
) -> List[ModelBlock]:
    """Produce one block per (node, mesh) in pre-order traversal.

    Each block carries the node's world transform decomposed into
    position, rotation and size. ``node_path`` lists the ancestor names
    joined by ``/``; the node's own name is not part of it. Vertices equal
    in position, normal and UV are joined, and index lists are checked
    against the vertex count before anything else runs on them.
    """
    logger = logger or get_logger()
    blocks: List[ModelBlock] = []
    stack: List[tuple[SceneNode, np.ndarray, tuple[str, ...]]] = [
        (root, identity(), ())
    ]
    while stack:
        node, parent_world, ancestors = stack.pop()
        world = parent_world @ np.asarray(node.matrix, dtype=np.float64)
        if node.meshes:
            trs = decompose_matrix(world)
            node_name = _fit(node.name, NODE_NAME_SIZE, "node name", logger)
            node_path = _fit(
                "/".join(ancestors), NODE_PATH_SIZE, "node path", logger
            )
            for i, mesh in enumerate(node.meshes):
                mesh_name = _fit(
                    mesh.name or f"{node.name}_mesh{i}",
                    MESH_NAME_SIZE,
                    "mesh name",
                    logger,
                )
                blocks.append(
                    _mesh_block(
                        mesh,
                        mesh_name,
                        node_name,
                        node_path,
                        trs,
                        scale_multiplier,
                    )
                )
        child_ancestors = ancestors + (node.name,)
        for child in reversed(node.children):
            stack.append((child, world, child_ancestors))
    logger.debug("Flattened scene '%s' into %d blocks", root.name, len(blocks))
    return blocks


def require_blocks(blocks: Sequence[ModelBlock], source: str) -> None:
    if not blocks:
        raise SceneError(
            code=E_SCENE_EMPTY,
            message=f"Scene '{source}' contains no meshes",
            context={"source": source},
        )

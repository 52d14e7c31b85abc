"""Dataclass models for the KMF entity model."""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import List, Tuple

from .packing.constants import (
    MAGIC,
    KMF_VERSION,
    HEADER_SIZE,
    FIXED_BLOCK_HEADER_SIZE,
    VERTEX_SIZE,
    INDEX_SIZE,
)

Vec2 = Tuple[float, float]
Vec3 = Tuple[float, float, float]
Vec4 = Tuple[float, float, float, float]


@dataclass(slots=True)
class Vertex:
    position: Vec3 = (0.0, 0.0, 0.0)
    normal: Vec3 = (0.0, 0.0, 0.0)
    tex_coord: Vec2 = (0.0, 0.0)
    # xyz unit tangent, w handedness (1.0 mirrored, 0.0 otherwise)
    tangent: Vec4 = (0.0, 0.0, 0.0, 0.0)


@dataclass(slots=True)
class ModelBlock:
    """One (node, mesh) pair with its world transform and geometry.

    The four payload layout fields are derived from the vertex and index
    counts, so they always agree with what the encoder writes.
    """

    node_name: str
    mesh_name: str = ""
    node_path: str = ""
    data_type_flags: int = 0
    render_type: int = 0
    position: Vec3 = (0.0, 0.0, 0.0)
    # w, x, y, z
    rotation: Vec4 = (1.0, 0.0, 0.0, 0.0)
    size: Vec3 = (1.0, 1.0, 1.0)
    vertices: List[Vertex] = field(default_factory=list)
    indices: List[int] = field(default_factory=list)

    @property
    def vertices_offset(self) -> int:
        return FIXED_BLOCK_HEADER_SIZE

    @property
    def vertices_size(self) -> int:
        return len(self.vertices) * VERTEX_SIZE

    @property
    def indices_offset(self) -> int:
        return self.vertices_offset + self.vertices_size

    @property
    def indices_size(self) -> int:
        return len(self.indices) * INDEX_SIZE

    @property
    def block_size(self) -> int:
        return FIXED_BLOCK_HEADER_SIZE + self.vertices_size + self.indices_size

    @property
    def triangle_count(self) -> int:
        return len(self.indices) // 3


@dataclass(slots=True)
class ModelTableEntry:
    node_name: str
    block_offset: int
    block_size: int


@dataclass(slots=True)
class ModelHeader:
    scale_factor: int = 0
    model_count: int = 0
    table_size_bytes: int = 0
    block_size_bytes: int = 0
    magic: bytes = MAGIC
    version: int = KMF_VERSION

    @property
    def total_size(self) -> int:
        return HEADER_SIZE + self.table_size_bytes + self.block_size_bytes


@dataclass(slots=True)
class KmfDocument:
    header: ModelHeader
    tables: List[ModelTableEntry] = field(default_factory=list)
    blocks: List[ModelBlock] = field(default_factory=list)


__all__ = [
    "Vec2",
    "Vec3",
    "Vec4",
    "Vertex",
    "ModelBlock",
    "ModelTableEntry",
    "ModelHeader",
    "KmfDocument",
]

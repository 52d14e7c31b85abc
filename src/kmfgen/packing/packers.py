"""Pure binary packing functions for KMFGen.

All functions are side-effect free and validate sizes.
"""

from __future__ import annotations

import struct
from typing import Sequence

from ..models import ModelBlock, ModelHeader, ModelTableEntry, Vertex
from .constants import (
    HEADER_SIZE,
    HEADER_RESERVED_SIZE,
    TABLE_ENTRY_SIZE,
    FIXED_BLOCK_HEADER_SIZE,
    VERTEX_SIZE,
    NODE_NAME_SIZE,
    MESH_NAME_SIZE,
    NODE_PATH_SIZE,
)
from .errors import E_SIZE_MISMATCH, E_VALUE_RANGE, encode_error
from .layout import pack_name_string

__all__ = [
    "HEADER_STRUCT",
    "TABLE_ENTRY_STRUCT",
    "BLOCK_HEADER_STRUCT",
    "VERTEX_STRUCT",
    "pack_header",
    "pack_table_entry",
    "pack_vertices",
    "pack_indices",
    "pack_block",
]

# magic, version, scale_factor, model_count, table_size_bytes, block_size_bytes
HEADER_STRUCT = struct.Struct("<4sBBIII")
# node_name, block_offset, block_size
TABLE_ENTRY_STRUCT = struct.Struct(f"<{NODE_NAME_SIZE}sII")
# node_name, mesh_name, node_path, data_type_flags, render_type,
# position(3f), rotation(4f, w-first), size(3f),
# vertices_offset, vertices_size, indices_offset, indices_size
BLOCK_HEADER_STRUCT = struct.Struct(
    f"<{NODE_NAME_SIZE}s{MESH_NAME_SIZE}s{NODE_PATH_SIZE}sBB3f4f3f4I"
)
# position(3f) + normal(3f) + tex_coord(2f) + tangent(4f)
VERTEX_STRUCT = struct.Struct("<12f")

assert HEADER_STRUCT.size + HEADER_RESERVED_SIZE == HEADER_SIZE
assert TABLE_ENTRY_STRUCT.size == TABLE_ENTRY_SIZE
assert BLOCK_HEADER_STRUCT.size == FIXED_BLOCK_HEADER_SIZE
assert VERTEX_STRUCT.size == VERTEX_SIZE


def pack_header(header: ModelHeader) -> bytes:
    try:
        out = HEADER_STRUCT.pack(
            header.magic,
            header.version,
            header.scale_factor,
            header.model_count,
            header.table_size_bytes,
            header.block_size_bytes,
        ) + (b"\x00" * HEADER_RESERVED_SIZE)
    except struct.error as exc:
        raise encode_error(
            E_VALUE_RANGE, f"Header field out of range: {exc}"
        ) from exc
    if len(out) != HEADER_SIZE:
        raise encode_error(
            E_SIZE_MISMATCH, f"Header size mismatch: {len(out)}"
        )
    return out


def pack_table_entry(entry: ModelTableEntry) -> bytes:
    return TABLE_ENTRY_STRUCT.pack(
        pack_name_string(entry.node_name, NODE_NAME_SIZE),
        entry.block_offset,
        entry.block_size,
    )


def pack_vertices(vertices: Sequence[Vertex]) -> bytes:
    buf = bytearray(len(vertices) * VERTEX_SIZE)
    pack_into = VERTEX_STRUCT.pack_into
    for i, v in enumerate(vertices):
        pack_into(
            buf,
            i * VERTEX_SIZE,
            *v.position,
            *v.normal,
            *v.tex_coord,
            *v.tangent,
        )
    return bytes(buf)


def pack_indices(indices: Sequence[int]) -> bytes:
    return struct.pack(f"<{len(indices)}I", *indices)


def pack_block(block: ModelBlock) -> bytes:
    """Serialize one block: fixed header, vertex array, index array."""
    try:
        head = BLOCK_HEADER_STRUCT.pack(
            pack_name_string(block.node_name, NODE_NAME_SIZE),
            pack_name_string(block.mesh_name, MESH_NAME_SIZE),
            pack_name_string(block.node_path, NODE_PATH_SIZE),
            block.data_type_flags,
            block.render_type,
            *block.position,
            *block.rotation,
            *block.size,
            block.vertices_offset,
            block.vertices_size,
            block.indices_offset,
            block.indices_size,
        )
        out = head + pack_vertices(block.vertices) + pack_indices(block.indices)
    except (struct.error, OverflowError) as exc:
        raise encode_error(
            E_VALUE_RANGE,
            f"Block '{block.node_name}' has a field out of range: {exc}",
            {"node_name": block.node_name, "mesh_name": block.mesh_name},
        ) from exc
    if len(out) != block.block_size:
        raise encode_error(
            E_SIZE_MISMATCH,
            f"Block size mismatch for '{block.node_name}': "
            f"expected {block.block_size} packed {len(out)}",
        )
    return out

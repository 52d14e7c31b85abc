"""KMF binary format constants.

All multi-byte values are little-endian. Sizes are in bytes.
"""

from __future__ import annotations

# Header ----------------------------------------------------------------------
MAGIC = b"KMF\x00"
MAGIC_U32 = 0x00464D4B
KMF_VERSION = 1

# magic(4) + version(1) + scale_factor(1) + model_count(4)
# + table_size_bytes(4) + block_size_bytes(4), padded with reserved zeros.
HEADER_FIELDS_SIZE = 18
HEADER_SIZE = 34
HEADER_RESERVED_SIZE = HEADER_SIZE - HEADER_FIELDS_SIZE

# Strings ---------------------------------------------------------------------
NODE_NAME_SIZE = 20
MESH_NAME_SIZE = 20
NODE_PATH_SIZE = 50

# Table -----------------------------------------------------------------------
# node_name(20) + block_offset(4) + block_size(4)
TABLE_ENTRY_SIZE = 28

# Block -----------------------------------------------------------------------
# names(90) + flags(2) + position(12) + rotation(16) + size(12) + layout(16)
FIXED_BLOCK_HEADER_SIZE = 148
# position(12) + normal(12) + tex_coord(8) + tangent(16)
VERTEX_SIZE = 48
INDEX_SIZE = 4

# Limits ----------------------------------------------------------------------
MAX_MODEL_COUNT = 1024
MAX_MODEL_TABLE_SIZE = 12 * 1024
MAX_MODEL_BLOCK_SIZE = 1024 * 1024

MIN_TOTAL_SIZE = HEADER_SIZE
MAX_TOTAL_SIZE = HEADER_SIZE + MAX_MODEL_TABLE_SIZE + MAX_MODEL_BLOCK_SIZE

MAX_SCALE_FACTOR = 8

# Export ----------------------------------------------------------------------
SCALE_MULTIPLIER = 0.01
KMF_EXTENSION = ".kmf"
GLTF_EXTENSIONS = (".gltf", ".glb")
SPEC_EXTENSIONS = (".yaml", ".yml", ".json")
ALLOWED_SOURCE_EXTENSIONS = GLTF_EXTENSIONS + SPEC_EXTENSIONS

# Tangent synthesis -----------------------------------------------------------
TANGENT_EPSILON = 1e-6

__all__ = [
    "MAGIC",
    "MAGIC_U32",
    "KMF_VERSION",
    "HEADER_FIELDS_SIZE",
    "HEADER_SIZE",
    "HEADER_RESERVED_SIZE",
    "NODE_NAME_SIZE",
    "MESH_NAME_SIZE",
    "NODE_PATH_SIZE",
    "TABLE_ENTRY_SIZE",
    "FIXED_BLOCK_HEADER_SIZE",
    "VERTEX_SIZE",
    "INDEX_SIZE",
    "MAX_MODEL_COUNT",
    "MAX_MODEL_TABLE_SIZE",
    "MAX_MODEL_BLOCK_SIZE",
    "MIN_TOTAL_SIZE",
    "MAX_TOTAL_SIZE",
    "MAX_SCALE_FACTOR",
    "SCALE_MULTIPLIER",
    "KMF_EXTENSION",
    "GLTF_EXTENSIONS",
    "SPEC_EXTENSIONS",
    "ALLOWED_SOURCE_EXTENSIONS",
    "TANGENT_EPSILON",
]

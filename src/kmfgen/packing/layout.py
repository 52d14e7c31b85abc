"""Low-level layout helpers (fixed-width names, shared limit policy)."""

from __future__ import annotations

from .constants import (
    TABLE_ENTRY_SIZE,
    MAX_MODEL_COUNT,
    MAX_MODEL_TABLE_SIZE,
    MAX_MODEL_BLOCK_SIZE,
)

__all__ = [
    "pack_name_string",
    "unpack_name_string",
    "fit_name",
    "check_model_limits",
]


def pack_name_string(name: str, size: int) -> bytes:
    """Encode ``name`` into exactly ``size`` bytes, truncating and null-padding.

    Truncation never splits a multi-byte UTF-8 sequence.
    """
    raw = name.encode("utf-8")
    if len(raw) > size:
        raw = raw[:size].decode("utf-8", "ignore").encode("utf-8")
    return raw + b"\x00" * (size - len(raw))


def unpack_name_string(raw: bytes) -> str:
    return raw.split(b"\x00", 1)[0].decode("utf-8", "replace")


def fit_name(name: str, size: int) -> str:
    """Return ``name`` as it reads back after a fixed-width round trip."""
    return unpack_name_string(pack_name_string(name, size))


def check_model_limits(
    model_count: int, block_bytes: int | None = None
) -> str | None:
    """Apply the protocol maximums shared by encoder and decoder.

    Checks run in a fixed order: model count, table size, block region size.
    Returns the first violated limit ("count", "table" or "block") or
    ``None``.
    """
    if model_count > MAX_MODEL_COUNT:
        return "count"
    if model_count * TABLE_ENTRY_SIZE > MAX_MODEL_TABLE_SIZE:
        return "table"
    if block_bytes is not None and block_bytes > MAX_MODEL_BLOCK_SIZE:
        return "block"
    return None

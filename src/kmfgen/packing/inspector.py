"""KMF decoding and inspection.

Public functions:
- decode_kmf(data) -> KmfDocument (raises DecodeError)
- read_kmf(path) -> KmfDocument (raises DecodeError)
- import_kmf(path) -> ImportOutcome (never raises)
- inspect_kmf(path) -> dict
- validate_kmf(info) -> list[str]

Checks run in a fixed order and the first failure wins; no read is attempted
past a failed check and no slice ever reaches beyond the buffer.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional
import logging
import struct

from ..logging import get_logger
from ..models import (
    KmfDocument,
    ModelBlock,
    ModelHeader,
    ModelTableEntry,
    Vertex,
)
from ..utils.io import read_kmf_bytes
from .constants import (
    MAGIC,
    KMF_VERSION,
    HEADER_SIZE,
    TABLE_ENTRY_SIZE,
    FIXED_BLOCK_HEADER_SIZE,
    VERTEX_SIZE,
    INDEX_SIZE,
    MIN_TOTAL_SIZE,
    MAX_TOTAL_SIZE,
)
from .errors import DecodeError, ImportResult, result_to_string
from .layout import check_model_limits, unpack_name_string
from .packers import (
    HEADER_STRUCT,
    TABLE_ENTRY_STRUCT,
    BLOCK_HEADER_STRUCT,
    VERTEX_STRUCT,
)

__all__ = [
    "ImportOutcome",
    "parse_header",
    "parse_table",
    "parse_block",
    "decode_kmf",
    "read_kmf",
    "import_kmf",
    "inspect_kmf",
    "validate_kmf",
]


@dataclass(slots=True)
class ImportOutcome:
    result: ImportResult
    header: Optional[ModelHeader] = None
    tables: List[ModelTableEntry] = field(default_factory=list)
    blocks: List[ModelBlock] = field(default_factory=list)
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.result is ImportResult.SUCCESS


def _read_exact(data: bytes, offset: int, size: int, label: str) -> bytes:
    end = offset + size
    if offset < 0 or size < 0 or end > len(data):
        raise DecodeError(
            ImportResult.UNEXPECTED_EOF,
            f"Out of range read for {label}: {offset}+{size}>{len(data)}",
            {"offset": offset, "size": size, "length": len(data)},
        )
    return data[offset:end]


def parse_header(data: bytes) -> ModelHeader:
    """Parse and gate the fixed header (size bounds, magic, version, limits)."""
    n = len(data)
    if n == 0:
        raise DecodeError(ImportResult.FILE_EMPTY, "Buffer is empty")
    if n < MIN_TOTAL_SIZE or n > MAX_TOTAL_SIZE:
        raise DecodeError(
            ImportResult.UNSUPPORTED_FILE_SIZE,
            f"Size {n} outside {MIN_TOTAL_SIZE}..{MAX_TOTAL_SIZE}",
            {"length": n},
        )
    raw = _read_exact(data, 0, HEADER_SIZE, "header")
    magic, version, scale, count, table_size, block_size = (
        HEADER_STRUCT.unpack_from(raw, 0)
    )
    if magic != MAGIC:
        raise DecodeError(
            ImportResult.INVALID_MAGIC, f"Bad magic {magic!r}"
        )
    if version != KMF_VERSION:
        raise DecodeError(
            ImportResult.INVALID_VERSION,
            f"Unsupported version {version}, expected {KMF_VERSION}",
        )
    violation = check_model_limits(count, block_size)
    if violation == "count":
        raise DecodeError(
            ImportResult.INVALID_MODEL_COUNT,
            f"Model count {count} above allowed maximum",
        )
    if violation == "table" or table_size != count * TABLE_ENTRY_SIZE:
        raise DecodeError(
            ImportResult.INVALID_MODEL_TABLE_SIZE,
            f"Table size {table_size} invalid for {count} models",
        )
    if violation == "block":
        raise DecodeError(
            ImportResult.INVALID_MODEL_BLOCK_SIZE,
            f"Block region size {block_size} above allowed maximum",
        )
    return ModelHeader(
        scale_factor=scale,
        model_count=count,
        table_size_bytes=table_size,
        block_size_bytes=block_size,
        magic=magic,
        version=version,
    )


def parse_table(data: bytes, header: ModelHeader) -> List[ModelTableEntry]:
    raw = _read_exact(data, HEADER_SIZE, header.table_size_bytes, "table")
    entries: List[ModelTableEntry] = []
    for name_raw, offset, size in TABLE_ENTRY_STRUCT.iter_unpack(raw):
        entries.append(
            ModelTableEntry(unpack_name_string(name_raw), offset, size)
        )
    return entries


def _check_table_sum(header: ModelHeader, tables: List[ModelTableEntry]) -> None:
    total = sum(e.block_size for e in tables)
    if total != header.block_size_bytes:
        raise DecodeError(
            ImportResult.INVALID_MODEL_BLOCK_SIZE,
            f"Table block sizes sum to {total}, header declares "
            f"{header.block_size_bytes}",
        )


def _check_table_layout(
    data: bytes, header: ModelHeader, tables: List[ModelTableEntry]
) -> None:
    cursor = HEADER_SIZE + header.table_size_bytes
    for i, e in enumerate(tables):
        if e.block_offset < cursor:
            raise DecodeError(
                ImportResult.INVALID_BLOCK_OFFSET,
                f"Block {i} offset {e.block_offset} overlaps preceding data "
                f"ending at {cursor}",
                {"block": i},
            )
        if e.block_offset + e.block_size > len(data):
            raise DecodeError(
                ImportResult.UNEXPECTED_EOF,
                f"Block {i} range {e.block_offset}+{e.block_size} exceeds "
                f"{len(data)} bytes",
                {"block": i},
            )
        cursor = e.block_offset + e.block_size


def parse_block(raw: bytes, label: str = "block") -> ModelBlock:
    """Parse one block payload; ``raw`` holds exactly the block's bytes."""
    if len(raw) < FIXED_BLOCK_HEADER_SIZE:
        raise DecodeError(
            ImportResult.INVALID_MODEL_BLOCK_SIZE,
            f"{label} is {len(raw)} bytes, smaller than its fixed header",
        )
    f = BLOCK_HEADER_STRUCT.unpack_from(raw, 0)
    node_name, mesh_name, node_path = (unpack_name_string(x) for x in f[0:3])
    v_off, v_size, i_off, i_size = f[15:19]
    if (
        v_off != FIXED_BLOCK_HEADER_SIZE
        or v_size % VERTEX_SIZE
        or i_off != v_off + v_size
        or i_size % (INDEX_SIZE * 3)
    ):
        raise DecodeError(
            ImportResult.INVALID_MODEL_BLOCK_SIZE,
            f"{label} ('{node_name}') declares inconsistent payload layout "
            f"vertices={v_off}+{v_size} indices={i_off}+{i_size}",
        )
    vertex_raw = _read_exact(raw, v_off, v_size, f"{label} vertices")
    index_raw = _read_exact(raw, i_off, i_size, f"{label} indices")
    if i_off + i_size != len(raw):
        raise DecodeError(
            ImportResult.INVALID_MODEL_BLOCK_SIZE,
            f"{label} ('{node_name}') has {len(raw) - i_off - i_size} "
            "unaccounted bytes",
        )
    vertices = [
        Vertex(
            position=vals[0:3],
            normal=vals[3:6],
            tex_coord=vals[6:8],
            tangent=vals[8:12],
        )
        for vals in VERTEX_STRUCT.iter_unpack(vertex_raw)
    ]
    indices = list(struct.unpack(f"<{i_size // INDEX_SIZE}I", index_raw))
    if indices and max(indices) >= len(vertices):
        raise DecodeError(
            ImportResult.INVALID_INDEX,
            f"{label} ('{node_name}') references vertex {max(indices)} of "
            f"{len(vertices)}",
        )
    return ModelBlock(
        node_name=node_name,
        mesh_name=mesh_name,
        node_path=node_path,
        data_type_flags=f[3],
        render_type=f[4],
        position=f[5:8],
        rotation=f[8:12],
        size=f[12:15],
        vertices=vertices,
        indices=indices,
    )


def decode_kmf(
    data: bytes, logger: logging.Logger | None = None
) -> KmfDocument:
    """Decode a complete KMF buffer.

    Every failure surfaces as :class:`DecodeError`; unexpected faults are
    reported as ``UNKNOWN_READ_ERROR``.
    """
    logger = logger or get_logger()
    try:
        header = parse_header(data)
        # the table sum is judged before the total whenever the table is readable
        tables: List[ModelTableEntry] = []
        if HEADER_SIZE + header.table_size_bytes <= len(data):
            tables = parse_table(data, header)
            _check_table_sum(header, tables)
        declared = header.total_size
        if len(data) < declared:
            raise DecodeError(
                ImportResult.UNEXPECTED_EOF,
                f"Buffer holds {len(data)} of {declared} declared bytes",
            )
        if len(data) > declared:
            raise DecodeError(
                ImportResult.INVALID_MODEL_BLOCK_SIZE,
                f"{len(data) - declared} trailing bytes after block region",
            )
        _check_table_layout(data, header, tables)
        blocks: List[ModelBlock] = []
        for i, entry in enumerate(tables):
            raw = _read_exact(
                data, entry.block_offset, entry.block_size, f"block {i}"
            )
            block = parse_block(raw, f"block {i}")
            if block.node_name != entry.node_name:
                logger.warning(
                    "Table entry %d names '%s' but block names '%s'",
                    i,
                    entry.node_name,
                    block.node_name,
                )
            blocks.append(block)
    except DecodeError as exc:
        logger.debug("Decode failed: %s", exc.message)
        raise
    except Exception as exc:
        raise DecodeError(
            ImportResult.UNKNOWN_READ_ERROR,
            f"Unexpected {type(exc).__name__} while decoding: {exc}",
        ) from exc
    logger.debug(
        "Decoded KMF: models=%d bytes=%d", header.model_count, len(data)
    )
    return KmfDocument(header=header, tables=tables, blocks=blocks)


def read_kmf(
    path: str | Path, logger: logging.Logger | None = None
) -> KmfDocument:
    try:
        data = read_kmf_bytes(path)
    except DecodeError:
        raise
    except Exception as exc:
        raise DecodeError(
            ImportResult.UNKNOWN_READ_ERROR,
            f"Unexpected {type(exc).__name__} while reading {path}: {exc}",
        ) from exc
    return decode_kmf(data, logger)


def import_kmf(
    path: str | Path, logger: logging.Logger | None = None
) -> ImportOutcome:
    """Read ``path`` and return a classified outcome instead of raising."""
    try:
        doc = read_kmf(path, logger)
    except DecodeError as exc:
        return ImportOutcome(result=exc.result, message=exc.message)
    return ImportOutcome(
        result=ImportResult.SUCCESS,
        header=doc.header,
        tables=doc.tables,
        blocks=doc.blocks,
    )


def inspect_kmf(path: str | Path) -> Dict[str, Any]:
    p = Path(path)
    outcome = import_kmf(p)
    info: Dict[str, Any] = {
        "file": p.name,
        "file_size": p.stat().st_size if p.is_file() else 0,
        "result": result_to_string(outcome.result),
        "message": outcome.message,
    }
    if not outcome.ok or outcome.header is None:
        return info
    h = outcome.header
    info["header"] = {
        "magic_ok": h.magic == MAGIC,
        "version": h.version,
        "scale_factor": h.scale_factor,
        "model_count": h.model_count,
        "table_size_bytes": h.table_size_bytes,
        "block_size_bytes": h.block_size_bytes,
    }
    info["tables"] = [
        {
            "node_name": e.node_name,
            "block_offset": e.block_offset,
            "block_size": e.block_size,
        }
        for e in outcome.tables
    ]
    info["blocks"] = [
        {
            "node_name": b.node_name,
            "mesh_name": b.mesh_name,
            "node_path": b.node_path,
            "data_type_flags": b.data_type_flags,
            "render_type": b.render_type,
            "position": list(b.position),
            "rotation": list(b.rotation),
            "size": list(b.size),
            "vertex_count": len(b.vertices),
            "index_count": len(b.indices),
        }
        for b in outcome.blocks
    ]
    return info


def validate_kmf(info: Dict[str, Any]) -> List[str]:
    """List problems found in an :func:`inspect_kmf` summary."""
    issues: List[str] = []
    if info["result"] != result_to_string(ImportResult.SUCCESS):
        issues.append(f"{info['result']}: {info.get('message', '')}")
        return issues
    tables = info.get("tables", [])
    blocks = info.get("blocks", [])
    if len(tables) != info["header"]["model_count"]:
        issues.append("Table entry count does not match header model count")
    for i, (t, b) in enumerate(zip(tables, blocks)):
        if t["node_name"] != b["node_name"]:
            issues.append(
                f"Table entry {i} name '{t['node_name']}' does not match "
                f"block name '{b['node_name']}'"
            )
        if b["index_count"] == 0:
            issues.append(f"Block {i} ('{b['node_name']}') has no triangles")
    return issues

"""Manifest generation for KMFGen.

The manifest is an optional JSON artifact that summarises a built KMF file.
It is only produced when the caller asks for it (``--emit-manifest``).

Contents:
- file size, scale factor and format version
- region layout (header, table, blocks)
- one entry per model block with its offset, size and geometry counts
- CRC32 and SHA-256 of the written file, plus a hash of the source
"""

from __future__ import annotations

from pathlib import Path
import json
from typing import Any

from .packing.planner import KmfPlan

__all__ = ["build_manifest", "manifest_dict"]


def manifest_dict(
    plan: KmfPlan,
    *,
    kmf_crc32: int | None = None,
    source_hash: str | None = None,
    file_sha256: str | None = None,
    warnings: list[str] | None = None,
) -> dict[str, Any]:
    regions = [
        {"name": r.name, "offset": r.offset, "size": r.size}
        for r in plan.regions
        if r.size
    ]
    d: dict[str, Any] = {
        "version": 1,
        "format_version": plan.version,
        "file_size": plan.file_size,
        "scale_factor": plan.scale_factor,
        "regions": regions,
        "counts": {
            "models": plan.model_count,
            "vertices": sum(b.vertex_count for b in plan.blocks),
            "indices": sum(b.index_count for b in plan.blocks),
        },
        "blocks": [
            {
                "index": b.index,
                "node_name": b.node_name,
                "mesh_name": b.mesh_name,
                "offset": b.offset,
                "size": b.size,
                "vertex_count": b.vertex_count,
                "index_count": b.index_count,
            }
            for b in plan.blocks
        ],
        "kmf_crc32": kmf_crc32,
        "source_hash": source_hash,
        "sha256": file_sha256,
    }
    if warnings:
        d["warnings"] = warnings
    return d


def build_manifest(
    plan: KmfPlan,
    output_path: Path,
    *,
    kmf_crc32: int | None = None,
    source_hash: str | None = None,
    file_sha256: str | None = None,
    warnings: list[str] | None = None,
) -> Path:
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    data = manifest_dict(
        plan,
        kmf_crc32=kmf_crc32,
        source_hash=source_hash,
        file_sha256=file_sha256,
        warnings=warnings,
    )
    with output_path.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, sort_keys=True)
        f.write("\n")
    return output_path

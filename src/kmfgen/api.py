"""High-level API for KMFGen.

Each entry point loads a source scene, flattens it into model blocks, fills
tangents and hands the blocks to the codec. The CLI is a thin shell over
these functions.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List
import hashlib
import zlib

from .logging import get_logger
from .reporting import task, get_reporter
from .models import ModelBlock
from .diff import diff_kmf_deep
from .geometry.tangents import generate_all_tangents
from .manifest import build_manifest
from .packing.constants import (
    ALLOWED_SOURCE_EXTENSIONS,
    SCALE_MULTIPLIER,
)
from .packing.inspector import (
    import_kmf,
    inspect_kmf as _inspect_kmf_impl,
    validate_kmf as _validate_kmf_impl,
)
from .packing.planner import KmfPlan, compute_kmf_plan, to_plan_dict
from .packing.writer import encode_with_plan, write_bytes_atomic
from .scene import flatten_scene, load_scene, require_blocks
from .utils.io import check_source_path, check_target_path

__all__ = [
    "BuildOptions",
    "BuildResult",
    "build_kmf",
    "load_blocks",
    "plan_dry_run",
    "inspect_kmf",
    "validate_kmf",
    "import_kmf",
    "diff_kmf_deep",
    "KmfPlan",
]


@dataclass(slots=True)
class BuildOptions:
    source: Path
    output: Path
    # stored in the header only, never applied to geometry
    scale_factor: int = 0
    # when set a manifest JSON is written alongside the model file
    manifest_path: Path | None = None
    force: bool = False
    # thread count for tangent generation; None or 1 runs sequentially
    workers: int | None = None


@dataclass(slots=True)
class BuildResult:
    output_file: Path
    bytes_written: int
    model_count: int
    warnings: List[str] = field(default_factory=list)


def load_blocks(
    source: str | Path, workers: int | None = None
) -> List[ModelBlock]:
    """Load ``source`` and return fully prepared blocks (tangents included)."""
    logger = get_logger()
    src = check_source_path(source, ALLOWED_SOURCE_EXTENSIONS)
    with task("scene.load", "Load scene"):
        root = load_scene(src, logger)
    blocks = flatten_scene(root, SCALE_MULTIPLIER, logger)
    require_blocks(blocks, src.name)
    vertex_total = sum(len(b.vertices) for b in blocks)
    index_total = sum(len(b.indices) for b in blocks)
    with task(
        "geometry.tangents",
        "Generate tangents",
        total=len(blocks),
        blocks=len(blocks),
        vertices=vertex_total,
    ) as rep:
        generate_all_tangents(
            blocks,
            workers,
            on_block=lambda b: rep.advance(
                "geometry.tangents", current_item=b.node_name
            ),
        )
    get_reporter().status(
        "Scene summary: "
        + f"blocks={len(blocks)} vertices={vertex_total} indices={index_total}"
    )
    return blocks


def build_kmf(options: BuildOptions) -> BuildResult:
    logger = get_logger()
    rep = get_reporter()
    source = check_source_path(options.source, ALLOWED_SOURCE_EXTENSIONS)
    target = check_target_path(options.output, force=options.force)

    blocks = load_blocks(source, options.workers)
    with task("plan.layout", "Compute layout plan", blocks=len(blocks)):
        plan = compute_kmf_plan(blocks, options.scale_factor)
        rep.status(
            "Plan summary: "
            + f"models={plan.model_count} table={plan.table.size} "
            + f"blocks={plan.blocks_region.size} file_size={plan.file_size}"
        )
    data = encode_with_plan(plan, blocks, logger)
    bytes_written = write_bytes_atomic(target, data)

    warnings = [
        f"Block {i} ('{b.node_name}') has no triangles"
        for i, b in enumerate(blocks)
        if not b.indices
    ]
    for w in warnings:
        logger.warning(w)

    if options.manifest_path is not None:
        with task("manifest.emit", "Emit manifest"):
            kmf_crc32 = zlib.crc32(data) & 0xFFFFFFFF
            file_sha256 = hashlib.sha256(data).hexdigest()
            source_hash = hashlib.sha256(source.read_bytes()).hexdigest()
            build_manifest(
                plan,
                Path(options.manifest_path),
                kmf_crc32=kmf_crc32,
                source_hash=source_hash,
                file_sha256=file_sha256,
                warnings=warnings or None,
            )
            logger.info(
                "Emitted manifest: %s (source_hash=%s crc32=%s sha256=%s)",
                Path(options.manifest_path).name,
                source_hash[:12],
                f"{kmf_crc32:08x}",
                file_sha256[:12],
            )

    logger.info(
        "Built KMF: %s (%d bytes, models=%d)",
        target.name,
        bytes_written,
        plan.model_count,
    )
    rep.status(
        "Build summary: file="
        + f"{target.name} bytes={bytes_written} models={plan.model_count}"
    )
    return BuildResult(
        output_file=target,
        bytes_written=bytes_written,
        model_count=plan.model_count,
        warnings=warnings,
    )


def plan_dry_run(
    source: str | Path,
    scale_factor: int = 0,
    workers: int | None = None,
) -> tuple[KmfPlan, dict]:
    """Compute the layout for ``source`` without writing anything.

    Returns (KmfPlan, plan_dict) where plan_dict is JSON-serialisable.
    """
    blocks = load_blocks(source, workers)
    plan = compute_kmf_plan(blocks, scale_factor)
    return plan, to_plan_dict(plan)


def inspect_kmf(path: str | Path) -> dict:
    return _inspect_kmf_impl(path)


def validate_kmf(path: str | Path) -> list[str]:
    return _validate_kmf_impl(_inspect_kmf_impl(path))
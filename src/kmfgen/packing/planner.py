"""Layout planning: validate a block list and compute every offset up front.

The plan is the single source of truth for where the header, table entries
and block payloads land. The writer consumes it and refuses to emit bytes that
diverge from it.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, List, Sequence

from ..models import ModelBlock
from .constants import (
    HEADER_SIZE,
    TABLE_ENTRY_SIZE,
    MAX_MODEL_COUNT,
    MAX_MODEL_TABLE_SIZE,
    MAX_MODEL_BLOCK_SIZE,
    MAX_SCALE_FACTOR,
    KMF_VERSION,
)
from .errors import (
    E_MODEL_COUNT,
    E_TABLE_SIZE,
    E_BLOCK_SIZE,
    E_VALUE_RANGE,
    E_SIZE_MISMATCH,
    E_INDEX_OUT_OF_RANGE,
    encode_error,
)
from .layout import check_model_limits


@dataclass(slots=True)
class RegionPlan:
    name: str
    offset: int
    size: int


@dataclass(slots=True)
class BlockPlan:
    index: int
    node_name: str
    mesh_name: str
    offset: int
    size: int
    vertex_count: int
    index_count: int


@dataclass(slots=True)
class KmfPlan:
    version: int
    scale_factor: int
    header: RegionPlan
    table: RegionPlan
    blocks_region: RegionPlan
    blocks: List[BlockPlan]
    file_size: int

    @property
    def model_count(self) -> int:
        return len(self.blocks)

    @property
    def regions(self) -> List[RegionPlan]:
        return [self.header, self.table, self.blocks_region]


def to_plan_dict(plan: KmfPlan) -> Dict[str, Any]:  # lightweight serializer
    def region(r: RegionPlan):
        return {"name": r.name, "offset": r.offset, "size": r.size}

    return {
        "version": plan.version,
        "scale_factor": plan.scale_factor,
        "file_size": plan.file_size,
        "model_count": plan.model_count,
        "regions": [region(r) for r in plan.regions],
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
    }


def _validate_geometry(index: int, block: ModelBlock) -> None:
    if len(block.indices) % 3:
        raise encode_error(
            E_SIZE_MISMATCH,
            f"Block {index} ('{block.node_name}') index count "
            f"{len(block.indices)} is not a multiple of 3",
            {"block": index, "index_count": len(block.indices)},
        )
    vcount = len(block.vertices)
    for i in block.indices:
        if i < 0 or i >= vcount:
            raise encode_error(
                E_INDEX_OUT_OF_RANGE,
                f"Block {index} ('{block.node_name}') references vertex {i} "
                f"but has {vcount} vertices",
                {"block": index, "vertex_index": i, "vertex_count": vcount},
            )


def compute_kmf_plan(
    blocks: Sequence[ModelBlock], scale_factor: int = 0
) -> KmfPlan:
    """Validate limits and compute the file layout for ``blocks``.

    Raises :class:`EncodeError` before any output exists when a limit or
    invariant does not hold.
    """
    if not 0 <= scale_factor <= MAX_SCALE_FACTOR:
        raise encode_error(
            E_VALUE_RANGE,
            f"Scale factor {scale_factor} outside 0..{MAX_SCALE_FACTOR}",
            {"scale_factor": scale_factor},
        )
    count = len(blocks)
    violation = check_model_limits(count)
    if violation == "count":
        raise encode_error(
            E_MODEL_COUNT,
            f"Model count {count} exceeds max allowed count {MAX_MODEL_COUNT}",
            {"model_count": count, "max": MAX_MODEL_COUNT},
        )
    if violation == "table":
        raise encode_error(
            E_TABLE_SIZE,
            f"Model table size {count * TABLE_ENTRY_SIZE} exceeds max "
            f"allowed size {MAX_MODEL_TABLE_SIZE}",
            {"table_size": count * TABLE_ENTRY_SIZE, "max": MAX_MODEL_TABLE_SIZE},
        )

    for i, b in enumerate(blocks):
        _validate_geometry(i, b)

    table_size = count * TABLE_ENTRY_SIZE
    cursor = HEADER_SIZE + table_size
    block_plans: List[BlockPlan] = []
    for i, b in enumerate(blocks):
        size = b.block_size
        block_plans.append(
            BlockPlan(
                index=i,
                node_name=b.node_name,
                mesh_name=b.mesh_name,
                offset=cursor,
                size=size,
                vertex_count=len(b.vertices),
                index_count=len(b.indices),
            )
        )
        cursor += size
    block_bytes = cursor - HEADER_SIZE - table_size
    if check_model_limits(count, block_bytes) == "block":
        raise encode_error(
            E_BLOCK_SIZE,
            f"Model block size {block_bytes} exceeds max allowed size "
            f"{MAX_MODEL_BLOCK_SIZE}",
            {"block_size": block_bytes, "max": MAX_MODEL_BLOCK_SIZE},
        )

    return KmfPlan(
        version=KMF_VERSION,
        scale_factor=scale_factor,
        header=RegionPlan("header", 0, HEADER_SIZE),
        table=RegionPlan("table", HEADER_SIZE, table_size),
        blocks_region=RegionPlan("blocks", HEADER_SIZE + table_size, block_bytes),
        blocks=block_plans,
        file_size=cursor,
    )


__all__ = [
    "RegionPlan",
    "BlockPlan",
    "KmfPlan",
    "to_plan_dict",
    "compute_kmf_plan",
]

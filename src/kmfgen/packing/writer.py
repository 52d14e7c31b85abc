"""Binary writer emitting a KMF file from a validated :class:`KmfPlan`.

The writer performs no layout math of its own. Every region and block is
appended at the position the planner assigned; any divergence is an internal
error. Nothing touches storage until the whole buffer exists.
"""

from __future__ import annotations
from pathlib import Path
from typing import Sequence
import logging
import os
import tempfile

from ..logging import get_logger
from ..models import ModelBlock, ModelHeader, ModelTableEntry
from ..reporting import TaskStatus, get_reporter
from .errors import E_WRITE_IO, EncodeError, internal_error
from .packers import pack_block, pack_header, pack_table_entry
from .planner import KmfPlan, compute_kmf_plan

__all__ = ["encode_kmf", "encode_with_plan", "write_kmf", "write_bytes_atomic"]


def _expect_at(buf: bytearray, offset: int, label: str) -> None:
    if len(buf) != offset:
        raise internal_error(
            f"Writer position {len(buf)} diverged from planned offset "
            f"{offset} for {label}"
        )


def encode_with_plan(
    plan: KmfPlan,
    blocks: Sequence[ModelBlock],
    logger: logging.Logger | None = None,
) -> bytes:
    logger = logger or get_logger()
    rep = get_reporter()
    header = ModelHeader(
        scale_factor=plan.scale_factor,
        model_count=plan.model_count,
        table_size_bytes=plan.table.size,
        block_size_bytes=plan.blocks_region.size,
        version=plan.version,
    )
    buf = bytearray()
    buf += pack_header(header)

    _expect_at(buf, plan.table.offset, "table")
    for bp in plan.blocks:
        buf += pack_table_entry(
            ModelTableEntry(bp.node_name, bp.offset, bp.size)
        )

    _expect_at(buf, plan.blocks_region.offset, "blocks")
    rep.start_task("write.blocks", "Model blocks", total=len(blocks))
    try:
        for bp, block in zip(plan.blocks, blocks):
            _expect_at(buf, bp.offset, f"block {bp.index}")
            buf += pack_block(block)
            rep.advance("write.blocks", current_item=block.node_name)
    except Exception:
        rep.end_task("write.blocks", status=TaskStatus.FAILED)
        raise
    rep.end_task(
        "write.blocks",
        blocks=len(blocks),
        bytes=plan.blocks_region.size,
    )
    _expect_at(buf, plan.file_size, "end of file")
    logger.debug(
        "Encoded KMF: models=%d table=%d blocks=%d total=%d",
        plan.model_count,
        plan.table.size,
        plan.blocks_region.size,
        len(buf),
    )
    return bytes(buf)


def encode_kmf(
    scale_factor: int,
    blocks: Sequence[ModelBlock],
    logger: logging.Logger | None = None,
) -> bytes:
    """Encode ``blocks`` into a complete KMF buffer.

    Raises :class:`EncodeError` before producing any bytes when a limit is
    exceeded.
    """
    logger = logger or get_logger()
    try:
        plan = compute_kmf_plan(blocks, scale_factor)
    except EncodeError as exc:
        logger.error("Failed to export models: %s", exc.message)
        raise
    return encode_with_plan(plan, blocks, logger)


def write_bytes_atomic(path: Path, data: bytes) -> int:
    """Write ``data`` to ``path`` through a sibling temp file.

    The target either receives all bytes or is left untouched.
    """
    path = Path(path)
    tmp_name: str | None = None
    try:
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{path.name}.", suffix=".tmp", dir=path.parent
        )
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        os.replace(tmp_name, path)
    except OSError as exc:
        if tmp_name is not None:
            Path(tmp_name).unlink(missing_ok=True)
        raise EncodeError(
            code=E_WRITE_IO,
            message=f"Failed to write '{path}': {exc}",
            context={"path": str(path)},
        ) from exc
    return len(data)


def write_kmf(
    path: str | Path,
    scale_factor: int,
    blocks: Sequence[ModelBlock],
    logger: logging.Logger | None = None,
) -> int:
    logger = logger or get_logger()
    target = Path(path)
    logger.debug("Starting to export models to path '%s'.", target)
    data = encode_kmf(scale_factor, blocks, logger)
    written = write_bytes_atomic(target, data)
    logger.info("Finished exporting %d models to '%s'.", len(blocks), target.name)
    return written

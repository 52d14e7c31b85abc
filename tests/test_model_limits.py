"""Encoder limit checks: every violation fails before any byte is produced."""

import pytest

from kmfgen.models import ModelBlock, Vertex
from kmfgen.packing.errors import (
    E_BLOCK_SIZE,
    E_INDEX_OUT_OF_RANGE,
    E_MODEL_COUNT,
    E_SIZE_MISMATCH,
    E_TABLE_SIZE,
    E_VALUE_RANGE,
    EncodeError,
)
from kmfgen.packing.writer import encode_kmf, write_kmf

from kmf_samples import triangle_block


def _empty_blocks(n: int):
    return [ModelBlock(node_name=f"n{i}") for i in range(n)]


def test_model_count_over_limit():
    with pytest.raises(EncodeError) as ei:
        encode_kmf(0, _empty_blocks(1025))
    assert ei.value.code == E_MODEL_COUNT


def test_table_size_over_limit():
    with pytest.raises(EncodeError) as ei:
        encode_kmf(0, _empty_blocks(439))
    assert ei.value.code == E_TABLE_SIZE


def test_largest_table_is_accepted():
    data = encode_kmf(0, _empty_blocks(438))
    assert int.from_bytes(data[6:10], "little") == 438


def test_block_region_over_limit():
    big = ModelBlock(
        node_name="Big", vertices=[Vertex() for _ in range(21846)]
    )
    with pytest.raises(EncodeError) as ei:
        encode_kmf(0, [big])
    assert ei.value.code == E_BLOCK_SIZE


def test_index_count_must_form_triangles():
    block = triangle_block()
    block.indices = [0, 1]
    with pytest.raises(EncodeError) as ei:
        encode_kmf(0, [block])
    assert ei.value.code == E_SIZE_MISMATCH


def test_index_must_reference_existing_vertex():
    block = triangle_block()
    block.indices = [0, 1, 3]
    with pytest.raises(EncodeError) as ei:
        encode_kmf(0, [block])
    assert ei.value.code == E_INDEX_OUT_OF_RANGE


def test_scale_factor_range():
    with pytest.raises(EncodeError) as ei:
        encode_kmf(9, [triangle_block()])
    assert ei.value.code == E_VALUE_RANGE


def test_failed_write_leaves_no_file(tmp_path):
    out = tmp_path / "model.kmf"
    with pytest.raises(EncodeError):
        write_kmf(out, 0, _empty_blocks(1025))
    assert not out.exists()
    assert list(tmp_path.iterdir()) == []

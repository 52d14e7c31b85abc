"""Decoder gating: each malformed input maps to one classified result."""

import struct

import pytest

from kmfgen.packing.constants import HEADER_SIZE, MAX_MODEL_BLOCK_SIZE
from kmfgen.packing.errors import DecodeError, ImportResult, result_to_string
from kmfgen.packing.inspector import decode_kmf
from kmfgen.packing.writer import encode_kmf

from kmf_samples import quad_block, triangle_block


def _sample() -> bytearray:
    return bytearray(encode_kmf(0, [triangle_block()]))


def _result(data) -> ImportResult:
    with pytest.raises(DecodeError) as ei:
        decode_kmf(bytes(data) if data is not None else None)
    return ei.value.result


def test_empty_buffer():
    assert _result(b"") is ImportResult.FILE_EMPTY


def test_buffer_smaller_than_header():
    assert _result(_sample()[:20]) is ImportResult.UNSUPPORTED_FILE_SIZE


def test_bad_magic():
    for pos in range(4):
        data = _sample()
        data[pos] ^= 0xFF
        assert _result(data) is ImportResult.INVALID_MAGIC, pos


def test_bad_version():
    data = _sample()
    data[4] = 2
    assert _result(data) is ImportResult.INVALID_VERSION


def test_model_count_over_limit():
    data = _sample()
    struct.pack_into("<I", data, 6, 1025)
    assert _result(data) is ImportResult.INVALID_MODEL_COUNT


def test_table_size_disagrees_with_count():
    data = _sample()
    struct.pack_into("<I", data, 10, 29)
    assert _result(data) is ImportResult.INVALID_MODEL_TABLE_SIZE


def test_table_size_over_limit():
    data = _sample()
    struct.pack_into("<II", data, 6, 439, 439 * 28)
    assert _result(data) is ImportResult.INVALID_MODEL_TABLE_SIZE


def test_block_region_over_limit():
    data = _sample()
    struct.pack_into("<I", data, 14, MAX_MODEL_BLOCK_SIZE + 1)
    assert _result(data) is ImportResult.INVALID_MODEL_BLOCK_SIZE


def test_every_truncation_is_rejected():
    full = bytes(encode_kmf(0, [triangle_block(), quad_block()]))
    for cut in range(HEADER_SIZE, len(full)):
        assert _result(full[:cut]) is ImportResult.UNEXPECTED_EOF


def test_trailing_bytes_are_rejected():
    data = _sample() + b"\x00"
    assert _result(data) is ImportResult.INVALID_MODEL_BLOCK_SIZE


def test_table_sizes_must_sum_to_block_region():
    data = bytearray(encode_kmf(0, [triangle_block(), triangle_block()]))
    struct.pack_into("<I", data, HEADER_SIZE + 24, 300)
    assert _result(data) is ImportResult.INVALID_MODEL_BLOCK_SIZE


def test_table_sum_is_checked_before_declared_total():
    data = _sample()
    # header now claims more block bytes than the table entries and the buffer hold
    struct.pack_into("<I", data, 14, len(data) - HEADER_SIZE - 28 + 16)
    assert _result(data) is ImportResult.INVALID_MODEL_BLOCK_SIZE


def test_overlapping_block_offset():
    data = _sample()
    struct.pack_into("<I", data, HEADER_SIZE + 20, HEADER_SIZE)
    assert _result(data) is ImportResult.INVALID_BLOCK_OFFSET


def test_block_layout_fields_must_be_consistent():
    data = _sample()
    block_start = HEADER_SIZE + 28
    # vertices_size no longer a multiple of the vertex stride
    struct.pack_into("<I", data, block_start + 136, 143)
    assert _result(data) is ImportResult.INVALID_MODEL_BLOCK_SIZE


def test_index_out_of_range():
    data = _sample()
    first_index = HEADER_SIZE + 28 + 148 + 3 * 48
    struct.pack_into("<I", data, first_index, 99)
    assert _result(data) is ImportResult.INVALID_INDEX


def test_unexpected_fault_is_unknown_read_error():
    assert _result(None) is ImportResult.UNKNOWN_READ_ERROR


def test_result_names():
    assert result_to_string(ImportResult.SUCCESS) == "RESULT_SUCCESS"
    assert result_to_string(15) == "RESULT_UNEXPECTED_EOF"
    assert result_to_string(10) == "RESULT_UNKNOWN"
    assert int(ImportResult.INVALID_MODEL_HEADER_SIZE) == 11

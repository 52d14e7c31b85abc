import logging
import struct

from kmfgen.packing.constants import HEADER_SIZE, MAGIC
from kmfgen.packing.errors import ImportResult
from kmfgen.packing.inspector import decode_kmf, import_kmf, inspect_kmf
from kmfgen.packing.writer import encode_kmf, write_kmf

from kmf_samples import quad_block, triangle_block


def test_round_trip_preserves_every_field():
    blocks = [triangle_block("A", shift=0.25), quad_block("B"), triangle_block("C")]
    doc = decode_kmf(encode_kmf(7, blocks))
    assert doc.header.magic == MAGIC
    assert doc.header.scale_factor == 7
    assert doc.header.model_count == 3
    assert [e.node_name for e in doc.tables] == ["A", "B", "C"]
    assert doc.blocks == blocks


def test_round_trip_truncates_long_names():
    block = triangle_block("N" * 25, mesh="M" * 25, path="P" * 60)
    (decoded,) = decode_kmf(encode_kmf(0, [block])).blocks
    assert decoded.node_name == "N" * 20
    assert decoded.mesh_name == "M" * 20
    assert decoded.node_path == "P" * 50


def test_empty_model_set_round_trip():
    doc = decode_kmf(encode_kmf(0, []))
    assert doc.header.model_count == 0
    assert doc.tables == []
    assert doc.blocks == []


def test_table_and_block_name_mismatch_only_warns(caplog):
    data = bytearray(encode_kmf(0, [triangle_block("Crate")]))
    data[HEADER_SIZE : HEADER_SIZE + 5] = b"Other"
    with caplog.at_level(logging.WARNING, logger="kmfgen"):
        doc = decode_kmf(bytes(data))
    assert doc.tables[0].node_name == "Other"
    assert doc.blocks[0].node_name == "Crate"
    assert "Table entry 0" in caplog.text


def test_import_outcome_on_success(tmp_path):
    path = tmp_path / "scene.kmf"
    write_kmf(path, 2, [quad_block()])
    outcome = import_kmf(path)
    assert outcome.ok
    assert outcome.result is ImportResult.SUCCESS
    assert outcome.header.scale_factor == 2
    assert outcome.blocks == [quad_block()]


def test_inspect_summary(tmp_path):
    path = tmp_path / "scene.kmf"
    write_kmf(path, 0, [triangle_block("A"), quad_block("B")])
    info = inspect_kmf(path)
    assert info["result"] == "RESULT_SUCCESS"
    assert info["header"]["model_count"] == 2
    assert info["file_size"] == path.stat().st_size
    assert [b["vertex_count"] for b in info["blocks"]] == [3, 4]
    assert info["tables"][1]["block_offset"] == struct.unpack_from(
        "<I", path.read_bytes(), HEADER_SIZE + 28 + 20
    )[0]

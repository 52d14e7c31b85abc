import os

import pytest

from kmfgen.packing.errors import E_SOURCE_ACCESS, E_TARGET_ACCESS, ImportResult, SourceError
from kmfgen.packing.inspector import import_kmf
from kmfgen.packing.writer import write_kmf
from kmfgen.utils.io import check_source_path, check_target_path

from kmf_samples import triangle_block


def test_missing_file(tmp_path):
    outcome = import_kmf(tmp_path / "missing.kmf")
    assert outcome.result is ImportResult.FILE_NOT_FOUND
    assert outcome.header is None
    assert outcome.blocks == []


def test_wrong_extension(tmp_path):
    path = tmp_path / "model.bin"
    path.write_bytes(b"KMF\x00")
    assert import_kmf(path).result is ImportResult.INVALID_EXTENSION


def test_directory_is_not_a_model(tmp_path):
    (tmp_path / "folder.kmf").mkdir()
    assert import_kmf(tmp_path / "folder.kmf").result is ImportResult.INVALID_EXTENSION


def test_empty_file(tmp_path):
    path = tmp_path / "empty.kmf"
    path.write_bytes(b"")
    assert import_kmf(path).result is ImportResult.FILE_EMPTY


@pytest.mark.skipif(os.name == "nt", reason="POSIX permission bits")
def test_unreadable_file(tmp_path):
    path = tmp_path / "locked.kmf"
    write_kmf(path, 0, [triangle_block()])
    path.chmod(0)
    try:
        assert import_kmf(path).result is ImportResult.UNAUTHORIZED_READ
    finally:
        path.chmod(0o644)


def test_source_checks(tmp_path):
    with pytest.raises(SourceError) as ei:
        check_source_path(tmp_path / "nope.glb", [".glb"])
    assert ei.value.code == E_SOURCE_ACCESS
    src = tmp_path / "scene.txt"
    src.write_text("x")
    with pytest.raises(SourceError):
        check_source_path(src, [".glb"])
    good = tmp_path / "scene.glb"
    good.write_bytes(b"x")
    assert check_source_path(good, [".glb"]) == good.resolve()


def test_target_checks(tmp_path):
    with pytest.raises(SourceError) as ei:
        check_target_path(tmp_path / "out.obj")
    assert ei.value.code == E_TARGET_ACCESS
    with pytest.raises(SourceError):
        check_target_path(tmp_path / "missing_dir" / "out.kmf")
    existing = tmp_path / "out.kmf"
    existing.write_bytes(b"")
    with pytest.raises(SourceError):
        check_target_path(existing)
    assert check_target_path(existing, force=True) == existing.resolve()

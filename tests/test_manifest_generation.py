import hashlib
import json
import zlib

from kmfgen.api import BuildOptions, build_kmf

from kmf_samples import write_scene


def test_manifest_describes_build(tmp_path):
    src = write_scene(tmp_path / "scene.yaml")
    out = tmp_path / "scene.kmf"
    manifest_path = tmp_path / "out" / "scene.manifest.json"
    build_kmf(BuildOptions(source=src, output=out, manifest_path=manifest_path))
    data = out.read_bytes()
    manifest = json.loads(manifest_path.read_text())
    assert manifest["file_size"] == len(data)
    assert manifest["kmf_crc32"] == zlib.crc32(data) & 0xFFFFFFFF
    assert manifest["sha256"] == hashlib.sha256(data).hexdigest()
    assert manifest["source_hash"] == hashlib.sha256(src.read_bytes()).hexdigest()
    assert manifest["counts"] == {"models": 3, "vertices": 9, "indices": 9}
    assert [b["node_name"] for b in manifest["blocks"]] == ["Crate", "Lid", "Floor"]
    assert [r["name"] for r in manifest["regions"]] == ["header", "table", "blocks"]
    assert "warnings" not in manifest


def test_manifest_is_opt_in(tmp_path):
    src = write_scene(tmp_path / "scene.yaml")
    build_kmf(BuildOptions(source=src, output=tmp_path / "scene.kmf"))
    assert sorted(p.name for p in tmp_path.iterdir()) == ["scene.kmf", "scene.yaml"]

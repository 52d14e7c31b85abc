import json

import pytest

from kmfgen.packing.errors import E_SCENE_LOAD, E_SPEC_TYPE_MISMATCH, SceneError
from kmfgen.scene import flatten_scene, load_scene, load_scene_spec

from kmf_samples import scene_dict, triangle_mesh, write_scene


def test_yaml_scene_loads(tmp_path):
    root = load_scene_spec(write_scene(tmp_path / "scene.yaml"))
    assert root.name == "Scene"
    assert [c.name for c in root.children] == ["Crate", "Floor"]
    assert root.children[0].children[0].name == "Lid"


def test_json_scene_flattens(tmp_path):
    path = tmp_path / "scene.json"
    path.write_text(json.dumps(scene_dict(translation=(2.0, 0.0, 0.0))))
    blocks = flatten_scene(load_scene(path))
    assert [(b.node_name, b.mesh_name, b.node_path) for b in blocks] == [
        ("Crate", "CrateMesh", "Scene"),
        ("Lid", "LidMesh", "Scene/Crate"),
        ("Floor", "Floor_mesh0", "Scene"),
    ]
    assert blocks[1].position == pytest.approx((2.0, 1.0, 0.0))


def test_rotation_is_given_xyzw(tmp_path):
    data = {
        "nodes": [
            {
                "name": "Turned",
                "rotation": [0.0, 0.0, 1.0, 0.0],
                "meshes": [triangle_mesh()],
            }
        ]
    }
    (block,) = flatten_scene(load_scene(write_scene(tmp_path / "r.yaml", data)))
    assert block.rotation == pytest.approx((0.0, 0.0, 0.0, 1.0))


def test_row_major_matrix(tmp_path):
    data = {
        "nodes": [
            {
                "name": "Moved",
                "matrix": [
                    [1, 0, 0, 5],
                    [0, 1, 0, 6],
                    [0, 0, 1, 7],
                    [0, 0, 0, 1],
                ],
                "meshes": [triangle_mesh()],
            }
        ]
    }
    (block,) = flatten_scene(load_scene(write_scene(tmp_path / "m.yaml", data)))
    assert block.position == pytest.approx((5.0, 6.0, 7.0))


def test_missing_indices_become_sequential(tmp_path):
    mesh = triangle_mesh()
    del mesh["indices"]
    data = {"nodes": [{"name": "N", "meshes": [mesh]}]}
    (block,) = flatten_scene(load_scene(write_scene(tmp_path / "i.yaml", data)))
    assert block.indices == [0, 1, 2]


@pytest.mark.parametrize(
    "node",
    [
        {"meshes": []},
        {"name": "N", "translation": [1, 2]},
        {"name": "N", "meshes": [{"positions": "nope"}]},
        {"name": "N", "meshes": [{"positions": [[0, 0, 0]], "indices": [0.5]}]},
        {"name": "N", "children": {"name": "X"}},
    ],
)
def test_type_mismatches(tmp_path, node):
    path = write_scene(tmp_path / "bad.yaml", {"nodes": [node]})
    with pytest.raises(SceneError) as ei:
        load_scene(path)
    assert ei.value.code == E_SPEC_TYPE_MISMATCH


def test_unparseable_file(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{not json")
    with pytest.raises(SceneError) as ei:
        load_scene(path)
    assert ei.value.code == E_SCENE_LOAD


def test_root_must_be_mapping(tmp_path):
    path = tmp_path / "list.yaml"
    path.write_text("- 1\n- 2\n")
    with pytest.raises(SceneError):
        load_scene(path)

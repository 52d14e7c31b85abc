import logging

import numpy as np
import pygltflib
import pytest

from kmfgen.geometry.tangents import generate_tangents
from kmfgen.scene import flatten_scene, load_gltf_scene, load_scene

POSITIONS = np.array(
    [[0.0, 0.0, 0.0], [100.0, 0.0, 0.0], [0.0, 100.0, 0.0]], dtype=np.float32
)
NORMALS = np.array([[0.0, 0.0, 1.0]] * 3, dtype=np.float32)
INDICES = np.array([0, 1, 2], dtype=np.uint32)


def _write_glb(path, *, with_indices=True, extra_points_mesh=False, uvs=None):
    idx_blob = INDICES.tobytes()
    pos_blob = POSITIONS.tobytes()
    nrm_blob = NORMALS.tobytes()
    uv_blob = b"" if uvs is None else np.asarray(uvs, dtype=np.float32).tobytes()
    blob = idx_blob + pos_blob + nrm_blob + uv_blob
    views = [
        pygltflib.BufferView(
            buffer=0,
            byteOffset=0,
            byteLength=len(idx_blob),
            target=pygltflib.ELEMENT_ARRAY_BUFFER,
        ),
        pygltflib.BufferView(
            buffer=0,
            byteOffset=len(idx_blob),
            byteLength=len(pos_blob),
            target=pygltflib.ARRAY_BUFFER,
        ),
        pygltflib.BufferView(
            buffer=0,
            byteOffset=len(idx_blob) + len(pos_blob),
            byteLength=len(nrm_blob),
            target=pygltflib.ARRAY_BUFFER,
        ),
    ]
    if uvs is not None:
        views.append(
            pygltflib.BufferView(
                buffer=0,
                byteOffset=len(idx_blob) + len(pos_blob) + len(nrm_blob),
                byteLength=len(uv_blob),
                target=pygltflib.ARRAY_BUFFER,
            )
        )
    accessors = [
        pygltflib.Accessor(
            bufferView=0,
            componentType=pygltflib.UNSIGNED_INT,
            count=3,
            type=pygltflib.SCALAR,
        ),
        pygltflib.Accessor(
            bufferView=1,
            componentType=pygltflib.FLOAT,
            count=3,
            type=pygltflib.VEC3,
            min=[0.0, 0.0, 0.0],
            max=[100.0, 100.0, 0.0],
        ),
        pygltflib.Accessor(
            bufferView=2,
            componentType=pygltflib.FLOAT,
            count=3,
            type=pygltflib.VEC3,
        ),
    ]
    if uvs is not None:
        accessors.append(
            pygltflib.Accessor(
                bufferView=3,
                componentType=pygltflib.FLOAT,
                count=3,
                type=pygltflib.VEC2,
            )
        )
    tri = pygltflib.Primitive(
        attributes=pygltflib.Attributes(
            POSITION=1, NORMAL=2, TEXCOORD_0=None if uvs is None else 3
        ),
        indices=0 if with_indices else None,
        mode=pygltflib.TRIANGLES,
    )
    meshes = [pygltflib.Mesh(name="TriMesh", primitives=[tri])]
    nodes = [
        pygltflib.Node(name="Holder", translation=[1.0, 0.0, 0.0], children=[1]),
        pygltflib.Node(name="Tri", mesh=0, translation=[0.0, 2.0, 0.0]),
    ]
    if extra_points_mesh:
        points = pygltflib.Primitive(
            attributes=pygltflib.Attributes(POSITION=1),
            mode=pygltflib.POINTS,
        )
        meshes.append(pygltflib.Mesh(name="Cloud", primitives=[points]))
        nodes.append(pygltflib.Node(name="Points", mesh=1))
    gltf = pygltflib.GLTF2(
        scene=0,
        scenes=[pygltflib.Scene(name="Level", nodes=[n for n in (0, 2) if n < len(nodes)])],
        nodes=nodes,
        meshes=meshes,
        accessors=accessors,
        bufferViews=views,
        buffers=[pygltflib.Buffer(byteLength=len(blob))],
    )
    gltf.set_binary_blob(blob)
    gltf.save_binary(str(path))
    return path


def test_glb_scene_flattens(tmp_path):
    root = load_scene(_write_glb(tmp_path / "tri.glb"))
    (block,) = flatten_scene(root)
    assert block.node_name == "Tri"
    assert block.mesh_name == "TriMesh"
    assert block.node_path == "Level/Holder"
    assert block.position == pytest.approx((1.0, 2.0, 0.0))
    assert block.indices == [0, 1, 2]
    assert block.vertices[1].position == pytest.approx((1.0, 0.0, 0.0))
    assert block.vertices[0].normal == (0.0, 0.0, 1.0)
    assert block.vertices[0].tex_coord == (0.0, 0.0)


def test_missing_indices_are_sequential(tmp_path):
    root = load_scene(_write_glb(tmp_path / "seq.glb", with_indices=False))
    (block,) = flatten_scene(root)
    assert block.indices == [0, 1, 2]


def test_non_triangle_primitives_are_skipped(tmp_path, caplog):
    path = _write_glb(tmp_path / "pts.glb", extra_points_mesh=True)
    with caplog.at_level(logging.WARNING, logger="kmfgen"):
        blocks = flatten_scene(load_scene(path))
    assert [b.node_name for b in blocks] == ["Tri"]
    assert "not triangles" in caplog.text


def test_texture_v_is_flipped_on_load(tmp_path):
    path = _write_glb(tmp_path / "uv.glb", uvs=[[0.0, 0.0], [1.0, 0.0], [0.0, 1.0]])
    (block,) = flatten_scene(load_scene(path))
    assert [v.tex_coord for v in block.vertices] == [(0.0, 1.0), (1.0, 1.0), (0.0, 0.0)]
    generate_tangents(block)
    # V now runs against +Y, so the bitangent is mirrored
    assert all(v.tangent == pytest.approx((1.0, 0.0, 0.0, 1.0)) for v in block.vertices)


def test_texture_v_kept_when_flip_disabled(tmp_path):
    path = _write_glb(tmp_path / "uv.glb", uvs=[[0.0, 0.0], [1.0, 0.0], [0.0, 1.0]])
    (block,) = flatten_scene(load_gltf_scene(path, flip_uvs=False))
    assert [v.tex_coord for v in block.vertices] == [(0.0, 0.0), (1.0, 0.0), (0.0, 1.0)]
    generate_tangents(block)
    assert all(v.tangent == pytest.approx((1.0, 0.0, 0.0, 0.0)) for v in block.vertices)

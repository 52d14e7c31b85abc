"""Hand-authored scene descriptions (JSON/YAML) for KMFGen.

Layout::

    name: Scene
    nodes:
      - name: Crate
        translation: [0, 1, 0]
        rotation: [0, 0, 0, 1]     # x, y, z, w
        scale: [1, 1, 1]
        # or: matrix: [16 floats, row-major]
        meshes:
          - name: CrateMesh
            positions: [[0, 0, 0], [1, 0, 0], [0, 1, 0]]
            normals: [[0, 0, 1], [0, 0, 1], [0, 0, 1]]
            uvs: [[0, 0], [1, 0], [0, 1]]
            indices: [0, 1, 2]
        children: [...]
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import numpy as np
import yaml

from ..packing.errors import E_SPEC_TYPE_MISMATCH, SceneError
from .graph import MeshData, SceneNode
from .transforms import compose_trs, identity

__all__ = ["load_scene_spec", "parse_scene_dict"]


def _type_error(path: str, expected: str, got: Any) -> SceneError:
    return SceneError(
        code=E_SPEC_TYPE_MISMATCH,
        message=f"{path}: expected {expected}, got {type(got).__name__}",
        context={"path": path},
    )


def _vector(value: Any, width: int, path: str, default: list) -> list:
    if value is None:
        return default
    if not isinstance(value, (list, tuple)) or len(value) != width:
        raise _type_error(path, f"list of {width} numbers", value)
    try:
        return [float(v) for v in value]
    except (TypeError, ValueError):
        raise _type_error(path, f"list of {width} numbers", value) from None


def _array(value: Any, width: int, path: str) -> np.ndarray:
    if value is None:
        return np.zeros((0, width), dtype=np.float32)
    if not isinstance(value, list):
        raise _type_error(path, "list", value)
    try:
        return np.asarray(value, dtype=np.float32).reshape(-1, width)
    except (TypeError, ValueError):
        raise _type_error(path, f"list of {width}-component vectors", value) from None


def _node_matrix(data: dict[str, Any], path: str) -> np.ndarray:
    if "matrix" in data:
        m = data["matrix"]
        if isinstance(m, list) and len(m) == 4:
            m = [c for row in m for c in row]
        flat = _vector(m, 16, f"{path}.matrix", [])
        return np.asarray(flat, dtype=np.float64).reshape(4, 4)
    t = _vector(data.get("translation"), 3, f"{path}.translation", [0.0] * 3)
    r = _vector(
        data.get("rotation"), 4, f"{path}.rotation", [0.0, 0.0, 0.0, 1.0]
    )
    s = _vector(data.get("scale"), 3, f"{path}.scale", [1.0] * 3)
    return compose_trs(t, (r[3], r[0], r[1], r[2]), s)


def _mesh(data: Any, path: str) -> MeshData:
    if not isinstance(data, dict):
        raise _type_error(path, "object", data)
    positions = _array(data.get("positions"), 3, f"{path}.positions")
    raw_indices = data.get("indices")
    if raw_indices is None:
        indices = list(range(positions.shape[0]))
    elif isinstance(raw_indices, list) and all(
        isinstance(i, int) and not isinstance(i, bool) for i in raw_indices
    ):
        indices = list(raw_indices)
    else:
        raise _type_error(f"{path}.indices", "list of integers", raw_indices)
    name = data.get("name", "")
    if not isinstance(name, str):
        raise _type_error(f"{path}.name", "string", name)
    return MeshData(
        name=name,
        positions=positions,
        normals=_array(data.get("normals"), 3, f"{path}.normals"),
        tex_coords=_array(data.get("uvs"), 2, f"{path}.uvs"),
        indices=indices,
    )


def _node(data: Any, path: str) -> SceneNode:
    if not isinstance(data, dict):
        raise _type_error(path, "object", data)
    name = data.get("name")
    if not isinstance(name, str) or not name:
        raise _type_error(f"{path}.name", "non-empty string", name)
    meshes = data.get("meshes", []) or []
    children = data.get("children", []) or []
    if not isinstance(meshes, list):
        raise _type_error(f"{path}.meshes", "list", meshes)
    if not isinstance(children, list):
        raise _type_error(f"{path}.children", "list", children)
    return SceneNode(
        name=name,
        matrix=_node_matrix(data, path),
        meshes=[_mesh(m, f"{path}.meshes[{i}]") for i, m in enumerate(meshes)],
        children=[
            _node(c, f"{path}.children[{i}]") for i, c in enumerate(children)
        ],
    )


def parse_scene_dict(data: dict[str, Any], default_name: str = "Scene") -> SceneNode:
    nodes = data.get("nodes", []) or []
    if not isinstance(nodes, list):
        raise _type_error("nodes", "list", nodes)
    name = data.get("name", default_name)
    if not isinstance(name, str):
        raise _type_error("name", "string", name)
    return SceneNode(
        name=name,
        matrix=identity(),
        children=[_node(n, f"nodes[{i}]") for i, n in enumerate(nodes)],
    )


def load_scene_spec(path: str | Path) -> SceneNode:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(p)
    text = p.read_text(encoding="utf-8")
    if p.suffix.lower() in {".yaml", ".yml"}:
        data: Any = yaml.safe_load(text)
    else:
        data = json.loads(text)
    if not isinstance(data, dict):
        raise _type_error("<root>", "object", data)
    return parse_scene_dict(data, default_name=p.stem)

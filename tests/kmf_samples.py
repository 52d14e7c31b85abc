"""Shared builders for KMFGen tests.

All float values are exactly representable in float32 so decoded blocks
compare equal to the originals.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from kmfgen.models import ModelBlock, Vertex


def triangle_block(
    name: str = "Tri",
    *,
    mesh: str = "TriMesh",
    path: str = "Root",
    shift: float = 0.0,
) -> ModelBlock:
    return ModelBlock(
        node_name=name,
        mesh_name=mesh,
        node_path=path,
        position=(1.0, 2.0, 3.0),
        rotation=(1.0, 0.0, 0.0, 0.0),
        size=(1.0, 1.0, 1.0),
        vertices=[
            Vertex((shift, 0.0, 0.0), (0.0, 0.0, 1.0), (0.0, 0.0), (1.0, 0.0, 0.0, 0.0)),
            Vertex((1.0, 0.0, 0.0), (0.0, 0.0, 1.0), (1.0, 0.0), (1.0, 0.0, 0.0, 0.0)),
            Vertex((0.0, 1.0, 0.0), (0.0, 0.0, 1.0), (0.0, 1.0), (1.0, 0.0, 0.0, 1.0)),
        ],
        indices=[0, 1, 2],
    )


def quad_block(name: str = "Quad") -> ModelBlock:
    return ModelBlock(
        node_name=name,
        mesh_name="QuadMesh",
        node_path="Root/Level",
        data_type_flags=1,
        render_type=2,
        position=(0.5, -0.25, 4.0),
        rotation=(0.5, 0.5, 0.5, 0.5),
        size=(2.0, 2.0, 0.5),
        vertices=[
            Vertex((0.0, 0.0, 0.0), (0.0, 1.0, 0.0), (0.0, 0.0), (1.0, 0.0, 0.0, 0.0)),
            Vertex((1.0, 0.0, 0.0), (0.0, 1.0, 0.0), (1.0, 0.0), (1.0, 0.0, 0.0, 0.0)),
            Vertex((1.0, 0.0, 1.0), (0.0, 1.0, 0.0), (1.0, 1.0), (1.0, 0.0, 0.0, 0.0)),
            Vertex((0.0, 0.0, 1.0), (0.0, 1.0, 0.0), (0.0, 1.0), (1.0, 0.0, 0.0, 0.0)),
        ],
        indices=[0, 1, 2, 0, 2, 3],
    )


def triangle_mesh(name: str = "TriMesh") -> dict[str, Any]:
    return {
        "name": name,
        "positions": [[0, 0, 0], [100, 0, 0], [0, 100, 0]],
        "normals": [[0, 0, 1], [0, 0, 1], [0, 0, 1]],
        "uvs": [[0, 0], [1, 0], [0, 1]],
        "indices": [0, 1, 2],
    }


def scene_dict(translation=(0.0, 0.0, 0.0)) -> dict[str, Any]:
    return {
        "name": "Scene",
        "nodes": [
            {
                "name": "Crate",
                "translation": list(translation),
                "meshes": [triangle_mesh("CrateMesh")],
                "children": [
                    {
                        "name": "Lid",
                        "translation": [0, 1, 0],
                        "meshes": [triangle_mesh("LidMesh")],
                    }
                ],
            },
            {"name": "Floor", "meshes": [triangle_mesh("")]},
        ],
    }


def write_scene(path: Path, data: dict[str, Any] | None = None) -> Path:
    path.write_text(yaml.safe_dump(data or scene_dict()), encoding="utf-8")
    return path

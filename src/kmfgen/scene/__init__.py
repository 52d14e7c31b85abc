"""Scene acquisition: source files to a scene graph to flat model blocks."""

from __future__ import annotations

import logging
from pathlib import Path

import yaml

from ..packing.constants import GLTF_EXTENSIONS, SPEC_EXTENSIONS
from ..packing.errors import E_SCENE_LOAD, SceneError
from .gltf_loader import load_gltf_scene
from .graph import (
    MeshData,
    SceneNode,
    flatten_scene,
    join_identical_vertices,
    require_blocks,
)
from .spec_loader import load_scene_spec, parse_scene_dict
from .transforms import compose_trs, decompose_matrix

__all__ = [
    "MeshData",
    "SceneNode",
    "flatten_scene",
    "join_identical_vertices",
    "require_blocks",
    "load_gltf_scene",
    "load_scene_spec",
    "parse_scene_dict",
    "load_scene",
    "compose_trs",
    "decompose_matrix",
]


def load_scene(
    path: str | Path, logger: logging.Logger | None = None
) -> SceneNode:
    """Load a scene graph, choosing the reader from the file extension."""
    p = Path(path)
    suffix = p.suffix.lower()
    try:
        if suffix in GLTF_EXTENSIONS:
            return load_gltf_scene(p, logger)
        if suffix in SPEC_EXTENSIONS:
            return load_scene_spec(p)
    except (OSError, ValueError, yaml.YAMLError) as exc:
        raise SceneError(
            code=E_SCENE_LOAD,
            message=f"Failed to load scene '{p.name}': {exc}",
            context={"path": str(p)},
        ) from exc
    raise SceneError(
        code=E_SCENE_LOAD,
        message=f"Unsupported scene format '{p.suffix}'",
        context={"path": str(p)},
    )

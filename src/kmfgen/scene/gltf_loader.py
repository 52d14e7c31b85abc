"""glTF 2.0 (.gltf / .glb) scene loading via pygltflib."""

from __future__ import annotations

import base64
import logging
from pathlib import Path
from typing import List, Optional

import numpy as np
from pygltflib import GLTF2

from ..logging import get_logger
from ..packing.errors import E_SPEC_TYPE_MISMATCH, SceneError
from .graph import MeshData, SceneNode
from .transforms import compose_trs, identity

__all__ = ["GltfSceneReader", "load_gltf_scene"]

# glTF primitive mode 4
_TRIANGLES = 4

_COMPONENT_TYPES = {
    5120: np.int8,
    5121: np.uint8,
    5122: np.int16,
    5123: np.uint16,
    5125: np.uint32,
    5126: np.float32,
}

_TYPE_WIDTHS = {
    "SCALAR": 1,
    "VEC2": 2,
    "VEC3": 3,
    "VEC4": 4,
    "MAT2": 4,
    "MAT3": 9,
    "MAT4": 16,
}

_NORMALIZE_DIVISORS = {
    np.int8: 127.0,
    np.uint8: 255.0,
    np.int16: 32767.0,
    np.uint16: 65535.0,
}


class GltfSceneReader:
    """Reads a glTF scene into a :class:`SceneNode` tree.

    With ``flip_uvs`` (the default) texture V is stored as ``1 - v``, the
    bottom-left origin KMF consumers expect.
    """

    def __init__(
        self,
        path: Path,
        logger: logging.Logger | None = None,
        flip_uvs: bool = True,
    ):
        self.path = Path(path)
        self.logger = logger or get_logger()
        self.flip_uvs = flip_uvs
        self.gltf = GLTF2.load(str(self.path))
        self._buffers: dict[int, bytes] = {}

    def _buffer_bytes(self, index: int) -> bytes:
        if index in self._buffers:
            return self._buffers[index]
        buf = self.gltf.buffers[index]
        data: Optional[bytes] = None
        if buf.uri is None:
            data = self.gltf.binary_blob()
        elif buf.uri.startswith("data:"):
            _, encoded = buf.uri.split(",", 1)
            data = base64.b64decode(encoded)
        else:
            data = (self.path.parent / buf.uri).read_bytes()
        if data is None:
            raise SceneError(
                code=E_SPEC_TYPE_MISMATCH,
                message=f"Buffer {index} of '{self.path.name}' has no data",
                context={"buffer": index},
            )
        self._buffers[index] = data
        return data

    def accessor_data(self, accessor_idx: Optional[int]) -> Optional[np.ndarray]:
        """Decode an accessor into an ``(count, width)`` array.

        Respects ``bufferView.byteStride`` and normalized integer components.
        """
        if accessor_idx is None:
            return None
        accessor = self.gltf.accessors[accessor_idx]
        if getattr(accessor, "sparse", None):
            raise SceneError(
                code=E_SPEC_TYPE_MISMATCH,
                message=f"Sparse accessor {accessor_idx} is not supported",
                context={"accessor": accessor_idx},
            )
        if accessor.bufferView is None:
            return None
        dtype = _COMPONENT_TYPES.get(accessor.componentType)
        if dtype is None:
            raise SceneError(
                code=E_SPEC_TYPE_MISMATCH,
                message=(
                    f"Accessor {accessor_idx} has unknown component type "
                    f"{accessor.componentType}"
                ),
                context={"accessor": accessor_idx},
            )
        count = int(accessor.count or 0)
        width = int(_TYPE_WIDTHS.get(accessor.type, 1))
        if count <= 0:
            return np.zeros((0, width), dtype=dtype)

        view = self.gltf.bufferViews[accessor.bufferView]
        blob = self._buffer_bytes(view.buffer)
        start = int(view.byteOffset or 0) + int(accessor.byteOffset or 0)
        element_size = width * np.dtype(dtype).itemsize
        stride = int(view.byteStride or 0) or element_size

        if stride == element_size:
            arr = np.frombuffer(
                blob, dtype=dtype, count=count * width, offset=start
            ).reshape(count, width)
        else:
            arr = np.empty((count, width), dtype=dtype)
            for i in range(count):
                arr[i, :] = np.frombuffer(
                    blob, dtype=dtype, count=width, offset=start + i * stride
                )

        if accessor.normalized and dtype in _NORMALIZE_DIVISORS:
            arr = arr.astype(np.float32) / np.float32(_NORMALIZE_DIVISORS[dtype])
        return arr

    def _node_matrix(self, node) -> np.ndarray:
        if node.matrix:
            # glTF stores matrices column-major
            return np.asarray(node.matrix, dtype=np.float64).reshape(4, 4).T
        rot = node.rotation or [0.0, 0.0, 0.0, 1.0]
        return compose_trs(
            node.translation or [0.0, 0.0, 0.0],
            (rot[3], rot[0], rot[1], rot[2]),
            node.scale or [1.0, 1.0, 1.0],
        )

    def _meshes(self, mesh_idx: int) -> List[MeshData]:
        mesh = self.gltf.meshes[mesh_idx]
        out: List[MeshData] = []
        multi = len(mesh.primitives) > 1
        for p_idx, prim in enumerate(mesh.primitives):
            mode = _TRIANGLES if prim.mode is None else prim.mode
            if mode != _TRIANGLES:
                self.logger.warning(
                    "Skipping primitive %d of mesh %d: mode %d is not triangles",
                    p_idx,
                    mesh_idx,
                    mode,
                )
                continue
            pos = self.accessor_data(prim.attributes.POSITION)
            if pos is None or len(pos) == 0:
                self.logger.warning(
                    "Skipping primitive %d of mesh %d: no positions",
                    p_idx,
                    mesh_idx,
                )
                continue
            indices = self.accessor_data(prim.indices)
            if indices is None:
                indices = np.arange(len(pos), dtype=np.uint32)
            normals = self.accessor_data(prim.attributes.NORMAL)
            uvs = self.accessor_data(prim.attributes.TEXCOORD_0)
            if uvs is not None:
                uvs = uvs.astype(np.float32, copy=True)
                if self.flip_uvs:
                    uvs[:, 1] = np.float32(1.0) - uvs[:, 1]
            name = mesh.name or ""
            if name and multi:
                name = f"{name}_{p_idx}"
            out.append(
                MeshData(
                    name=name,
                    positions=pos.astype(np.float32),
                    normals=(
                        normals.astype(np.float32)
                        if normals is not None
                        else []
                    ),
                    tex_coords=uvs if uvs is not None else [],
                    indices=indices.reshape(-1).astype(np.int64),
                )
            )
        return out

    def read(self) -> SceneNode:
        scene_idx = self.gltf.scene or 0
        if not self.gltf.scenes:
            roots = list(range(len(self.gltf.nodes)))
            scene_name = self.path.stem
        else:
            scene = self.gltf.scenes[scene_idx]
            roots = list(scene.nodes or [])
            scene_name = scene.name or self.path.stem
        root = SceneNode(name=scene_name, matrix=identity())
        # siblings pop in declaration order
        stack = [(root, idx) for idx in reversed(roots)]
        while stack:
            parent, idx = stack.pop()
            node = self.gltf.nodes[idx]
            sn = SceneNode(
                name=node.name or f"node{idx}",
                matrix=self._node_matrix(node),
                meshes=self._meshes(node.mesh) if node.mesh is not None else [],
            )
            parent.children.append(sn)
            for child in reversed(node.children or []):
                stack.append((sn, child))
        return root


def load_gltf_scene(
    path: str | Path,
    logger: logging.Logger | None = None,
    flip_uvs: bool = True,
) -> SceneNode:
    return GltfSceneReader(Path(path), logger, flip_uvs).read()

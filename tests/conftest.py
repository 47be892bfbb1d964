"""Shared fixtures: hand-packed GLB containers and small glTF documents."""

from __future__ import annotations

import json
import struct

import numpy as np
import pytest

GLB_MAGIC = 0x46546C67
CHUNK_JSON = 0x4E4F534A
CHUNK_BIN = 0x004E4942


def _pad(data: bytes, fill: bytes) -> bytes:
    return data + fill * (-len(data) % 4)


def pack_glb_bytes(
    document: dict | None,
    binary: bytes | None = None,
    *,
    version: int = 2,
    extra_chunks: tuple[tuple[int, bytes], ...] = (),
) -> bytes:
    chunks = b""
    if document is not None:
        text = _pad(json.dumps(document).encode("utf-8"), b" ")
        chunks += struct.pack("<II", len(text), CHUNK_JSON) + text
    if binary is not None:
        payload = _pad(binary, b"\x00")
        chunks += struct.pack("<II", len(payload), CHUNK_BIN) + payload
    for chunk_type, payload in extra_chunks:
        payload = _pad(payload, b"\x00")
        chunks += struct.pack("<II", len(payload), chunk_type) + payload
    return struct.pack("<III", GLB_MAGIC, version, 12 + len(chunks)) + chunks


@pytest.fixture
def pack_glb():
    return pack_glb_bytes


@pytest.fixture
def two_vec3_glb():
    """One buffer of 24 bytes from the BIN chunk, one view, one VEC3 FLOAT accessor of 2."""
    floats = [1.0, 2.0, 3.0, 4.0, 5.0, 6.0]
    binary = np.array(floats, dtype="<f4").tobytes()
    document = {
        "asset": {"version": "2.0", "generator": "fixture"},
        "buffers": [{"byteLength": 24}],
        "bufferViews": [{"buffer": 0, "byteOffset": 0, "byteLength": 24}],
        "accessors": [{"bufferView": 0, "componentType": 5126, "count": 2, "type": "VEC3"}],
    }
    return pack_glb_bytes(document, binary), floats


@pytest.fixture
def cube_bounds_document():
    """Node T(1,0,0) S(2) holding a mesh whose POSITION declares min -1 / max 1."""
    positions = np.array(
        [[-1.0, -1.0, -1.0], [1.0, 1.0, 1.0], [1.0, -1.0, 0.0]], dtype="<f4"
    ).tobytes()
    document = {
        "asset": {"version": "2.0"},
        "buffers": [{"byteLength": len(positions)}],
        "bufferViews": [{"buffer": 0, "byteLength": len(positions), "target": 34962}],
        "accessors": [
            {
                "bufferView": 0,
                "componentType": 5126,
                "count": 3,
                "type": "VEC3",
                "min": [-1.0, -1.0, -1.0],
                "max": [1.0, 1.0, 1.0],
            }
        ],
        "meshes": [{"primitives": [{"attributes": {"POSITION": 0}}]}],
        "nodes": [{"mesh": 0, "translation": [1.0, 0.0, 0.0], "scale": [2.0, 2.0, 2.0]}],
        "scenes": [{"nodes": [0]}],
        "scene": 0,
    }
    return document, positions


@pytest.fixture
def hierarchy_document():
    """Root node 2 declared last; children 0 and 1 declared before it (forward references)."""
    positions = np.array(
        [[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [0.0, 1.0, 0.0]], dtype="<f4"
    ).tobytes()
    document = {
        "asset": {"version": "2.0"},
        "buffers": [{"byteLength": len(positions)}],
        "bufferViews": [{"buffer": 0, "byteLength": len(positions)}],
        "accessors": [
            {
                "bufferView": 0,
                "componentType": 5126,
                "count": 3,
                "type": "VEC3",
                "min": [0.0, 0.0, 0.0],
                "max": [1.0, 1.0, 0.0],
            }
        ],
        "materials": [{"name": "red", "pbrMetallicRoughness": {"baseColorFactor": [1, 0, 0, 1]}}],
        "meshes": [{"primitives": [{"attributes": {"POSITION": 0}, "material": 0}]}],
        "nodes": [
            {"name": "left", "mesh": 0, "translation": [-5.0, 0.0, 0.0]},
            {"name": "right", "mesh": 0, "translation": [5.0, 0.0, 0.0]},
            {"name": "root", "children": [0, 1]},
        ],
        "scenes": [{"nodes": [2]}],
        "scene": 0,
    }
    return document, positions


def layout_accessors(arrays) -> tuple[dict, bytes]:
    """Pack ``(values, type, componentType)`` triples into one buffer, one view and accessor each."""
    binary = b""
    views = []
    accessors = []
    for values, type_name, component_type in arrays:
        data = values.tobytes()
        views.append({"buffer": 0, "byteOffset": len(binary), "byteLength": len(data)})
        accessors.append(
            {
                "bufferView": len(views) - 1,
                "componentType": component_type,
                "count": len(values),
                "type": type_name,
            }
        )
        binary += _pad(data, b"\x00")
    document = {
        "asset": {"version": "2.0"},
        "buffers": [{"byteLength": len(binary)}],
        "bufferViews": views,
        "accessors": accessors,
    }
    return document, binary


@pytest.fixture
def accessor_layout():
    return layout_accessors

"""Inspection diagnostics for decoded assets."""

from __future__ import annotations

from io import StringIO

import numpy as np
from ruamel.yaml import YAML

from gltfgraph.asset import Asset
from gltfgraph.bounds import BoundingBox
from gltfgraph.graph import Node


def inspect_asset(asset: Asset, *, include_accessors: bool = False) -> dict[str, object]:
    """Return deterministic diagnostics for a decoded asset."""
    summary = {
        "version": asset.version,
        "generator": asset.generator,
        "copyright": asset.copyright,
        "extensions_used": list(asset.extensions_used),
        "extensions_required": list(asset.extensions_required),
        "counts": {
            "buffers": len(asset.buffers),
            "buffer_views": len(asset.buffer_views),
            "accessors": len(asset.accessors),
            "images": len(asset.images),
            "textures": len(asset.textures),
            "materials": len(asset.materials),
            "meshes": len(asset.meshes),
            "skins": len(asset.skins),
            "cameras": len(asset.cameras),
            "lights": len(asset.lights),
            "animations": len(asset.animations),
            "nodes": len(asset.nodes),
            "scenes": len(asset.scenes),
        },
        "bounds": _box_payload(asset.bounding_box()),
    }

    default_scene = asset.default_scene
    result: dict[str, object] = {
        "inspect_schema_version": 1,
        "summary": summary,
        "default_scene": default_scene.index if default_scene is not None else None,
        "scenes": [
            {
                "index": scene.index,
                "name": scene.name,
                "bounds": _box_payload(scene.bounding_box),
                "nodes": [_node_payload(node) for node in scene.nodes],
            }
            for scene in asset.scenes
        ],
        "materials": [
            {
                "index": material.index,
                "name": material.name,
                "shading_model": material.shading_model,
                "alpha_mode": material.alpha_mode,
                "double_sided": material.double_sided,
                "textures": {
                    slot: {"texture": ref.texture.index, "tex_coord": ref.tex_coord}
                    for slot, ref in sorted(material.textures().items())
                },
            }
            for material in asset.materials
        ],
        "animations": [
            {
                "index": animation.index,
                "name": animation.name,
                "channels": len(animation.channels),
                "duration": animation.duration,
            }
            for animation in asset.animations
        ],
    }
    if include_accessors:
        result["accessors"] = [
            {
                "index": acc.index,
                "type": acc.type,
                "component_type": acc.component_type,
                "normalized": acc.normalized,
                "count": acc.count,
                "sparse": len(acc.sparse) if acc.sparse is not None else 0,
            }
            for acc in asset.accessors
        ]
    return result


def render_text(payload: dict[str, object]) -> str:
    """Render human-readable text output for inspect diagnostics."""
    lines: list[str] = []

    isv = payload.get("inspect_schema_version")
    if isv is not None:
        lines.append(f"inspect_schema_version: {isv}")

    summary = payload["summary"]
    lines.append("summary:")
    lines.append(f"  version: {summary['version']}")
    lines.append(f"  generator: {summary['generator']}")
    if summary.get("copyright"):
        lines.append(f"  copyright: {summary['copyright']}")
    used = summary["extensions_used"]
    lines.append(f"  extensions_used: {', '.join(used) if used else '[]'}")
    for name, count in summary["counts"].items():
        lines.append(f"  {name}: {count}")
    lines.append(f"  bounds.min: {_fmt_vec(summary['bounds']['min'])}")
    lines.append(f"  bounds.max: {_fmt_vec(summary['bounds']['max'])}")

    lines.append("scenes:")
    scenes = payload.get("scenes", [])
    if isinstance(scenes, list) and scenes:
        default_scene = payload.get("default_scene")
        for scene in scenes:
            marker = " (default)" if scene["index"] == default_scene else ""
            lines.append(f"  - index: {scene['index']}{marker}")
            lines.append(f"    name: {scene['name']}")
            for node in scene["nodes"]:
                _render_node(node, lines, depth=2)
    else:
        lines.append("  []")

    materials = payload.get("materials", [])
    lines.append("materials:")
    if isinstance(materials, list) and materials:
        for material in materials:
            lines.append(f"  - index: {material['index']} name: {material['name']}")
            lines.append(
                f"    shading: {material['shading_model']} alpha: {material['alpha_mode']}"
            )
    else:
        lines.append("  []")

    animations = payload.get("animations", [])
    lines.append("animations:")
    if isinstance(animations, list) and animations:
        for animation in animations:
            lines.append(
                f"  - index: {animation['index']} channels: {animation['channels']} "
                f"duration: {animation['duration']:.6g}"
            )
    else:
        lines.append("  []")

    accessors = payload.get("accessors")
    if isinstance(accessors, list):
        lines.append("accessors:")
        for acc in accessors:
            lines.append(
                f"  - index: {acc['index']} {acc['type']}/{acc['component_type']} "
                f"count: {acc['count']}"
            )

    return "\n".join(lines) + "\n"


def render_yaml(payload: dict[str, object]) -> str:
    yml = YAML(typ="safe")
    yml.default_flow_style = False
    stream = StringIO()
    yml.dump(payload, stream)
    return stream.getvalue()


def _render_node(node: dict, lines: list[str], depth: int) -> None:
    indent = "  " * depth
    label = f"node {node['index']}"
    if node["name"]:
        label += f" ({node['name']})"
    attached = [key for key in ("mesh", "camera", "skin", "light") if node.get(key) is not None]
    if attached:
        label += " [" + ", ".join(f"{key}={node[key]}" for key in attached) + "]"
    lines.append(f"{indent}- {label}")
    bounds = node["bounds"]
    lines.append(f"{indent}  bounds: {_fmt_vec(bounds['min'])} .. {_fmt_vec(bounds['max'])}")
    for child in node["children"]:
        _render_node(child, lines, depth + 1)


def _node_payload(node: Node) -> dict[str, object]:
    return {
        "index": node.index,
        "name": node.name,
        "mesh": node.mesh.index if node.mesh is not None else None,
        "camera": node.camera.index if node.camera is not None else None,
        "skin": node.skin.index if node.skin is not None else None,
        "light": node.light.index if node.light is not None else None,
        "bounds": _box_payload(node.bounding_box),
        "children": [_node_payload(child) for child in node.children],
    }


def _box_payload(box: BoundingBox) -> dict[str, list[float]]:
    if box.is_empty:
        zeros = [0.0, 0.0, 0.0]
        return {"min": zeros, "max": zeros}
    return {"min": _to_list(box.min_point), "max": _to_list(box.max_point)}


def _to_list(vec: np.ndarray) -> list[float]:
    return [float(v) for v in vec.tolist()]


def _fmt_vec(vec: object) -> str:
    if not isinstance(vec, list):
        return str(vec)
    return "[" + ", ".join(f"{float(v):.6g}" for v in vec) + "]"

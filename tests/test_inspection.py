"""Tests for inspection payloads and renderers."""

import json

from gltfgraph import load_asset
from gltfgraph.inspection import inspect_asset, render_text, render_yaml


class TestInspectAsset:
    def test_empty_asset(self):
        asset = load_asset(json.dumps({"asset": {"version": "2.0", "generator": "g"}}).encode())
        payload = inspect_asset(asset)
        assert payload["summary"]["generator"] == "g"
        assert payload["summary"]["bounds"] == {"min": [0.0, 0.0, 0.0], "max": [0.0, 0.0, 0.0]}
        assert payload["default_scene"] is None
        assert payload["scenes"] == []

    def test_counts(self, pack_glb, hierarchy_document):
        document, positions = hierarchy_document
        payload = inspect_asset(load_asset(pack_glb(document, positions)))
        counts = payload["summary"]["counts"]
        assert counts["nodes"] == 3
        assert counts["materials"] == 1
        assert counts["scenes"] == 1
        assert payload["materials"][0]["shading_model"] == "metallic_roughness"

    def test_accessor_details(self, pack_glb, hierarchy_document):
        document, positions = hierarchy_document
        payload = inspect_asset(load_asset(pack_glb(document, positions)), include_accessors=True)
        assert payload["accessors"] == [
            {"index": 0, "type": "VEC3", "component_type": 5126, "normalized": False, "count": 3, "sparse": 0}
        ]


class TestRenderers:
    def test_text_lists_empty_sections(self):
        asset = load_asset(json.dumps({"asset": {"version": "2.0"}}).encode())
        text = render_text(inspect_asset(asset))
        assert "inspect_schema_version: 1" in text
        assert "scenes:\n  []" in text
        assert "animations:\n  []" in text
        assert text.endswith("\n")

    def test_text_node_bounds(self, pack_glb, cube_bounds_document):
        document, positions = cube_bounds_document
        text = render_text(inspect_asset(load_asset(pack_glb(document, positions))))
        assert "bounds: [-1, -2, -2] .. [3, 2, 2]" in text

    def test_yaml_is_block_style(self, pack_glb, hierarchy_document):
        document, positions = hierarchy_document
        text = render_yaml(inspect_asset(load_asset(pack_glb(document, positions))))
        assert "inspect_schema_version: 1" in text
        assert "summary:" in text

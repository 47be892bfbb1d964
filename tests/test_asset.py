"""Tests for the Asset facade and load_asset entry point."""

import json
import math
from concurrent.futures import ThreadPoolExecutor

import numpy as np
import pygltflib
import pytest

from gltfgraph import Asset, DecodeOptions, HeapAllocator, MemoryMapAllocator, load_asset
from gltfgraph.errors import FormatError, GltfGraphError, InvalidReferenceError, MissingDataError
from gltfgraph.extensions import Light
from gltfgraph.graph import Camera
from gltfgraph.warning_policy import GltfGraphWarning


def _encode(document) -> bytes:
    return json.dumps(document).encode("utf-8")


class TestLoadAsset:
    def test_metadata(self):
        document = {
            "asset": {"version": "2.0", "generator": "tool 1.2", "copyright": "(c) someone", "minVersion": "2.0"},
            "extensionsUsed": ["VENDOR_x"],
            "extras": {"note": "hi"},
        }
        asset = load_asset(_encode(document))
        assert isinstance(asset, Asset)
        assert asset.version == "2.0"
        assert asset.generator == "tool 1.2"
        assert asset.copyright == "(c) someone"
        assert asset.min_version == "2.0"
        assert asset.extensions_used == ["VENDOR_x"]
        assert asset.extras == {"note": "hi"}

    def test_metadata_object_extras_and_extensions(self):
        document = {
            "asset": {"version": "2.0", "extras": {"author": "x"}, "extensions": {"VENDOR_meta": {"rev": 3}}},
            "extras": {"note": "root"},
        }
        with pytest.warns(GltfGraphWarning, match="VENDOR_meta"):
            asset = load_asset(_encode(document))
        assert asset.info_extras == {"author": "x"}
        assert asset.info_extensions == {"VENDOR_meta": {"rev": 3}}
        assert asset.extras == {"note": "root"}
        assert asset.extensions == {}

    def test_read_rejects_negative_accessor(self, two_vec3_glb):
        data, _floats = two_vec3_glb
        asset = load_asset(data)
        with pytest.raises(InvalidReferenceError, match="read.accessor: index -1"):
            asset.read(-1, 0)

    def test_read_rejects_accessor_past_end(self, two_vec3_glb):
        data, _floats = two_vec3_glb
        asset = load_asset(data)
        with pytest.raises(InvalidReferenceError, match="out of range for accessors"):
            asset.read(5, 0)

    def test_arrays_are_tuples(self, two_vec3_glb):
        data, _floats = two_vec3_glb
        asset = load_asset(data)
        assert isinstance(asset.accessors, tuple)
        assert asset.nodes == ()
        assert asset.default_scene is None

    def test_all_floats_decoded(self, two_vec3_glb):
        data, floats = two_vec3_glb
        acc = load_asset(data).accessors[0]
        np.testing.assert_array_equal(acc.read_all().flatten(), floats)

    def test_glb_file(self, tmp_path, two_vec3_glb):
        data, _floats = two_vec3_glb
        path = tmp_path / "pair.glb"
        path.write_bytes(data)
        asset = load_asset(path)
        np.testing.assert_array_equal(asset.read(0, 1), [4.0, 5.0, 6.0])

    def test_gltf_with_external_buffer(self, tmp_path):
        (tmp_path / "data.bin").write_bytes(np.array([1.5, -2.5], dtype="<f4").tobytes())
        document = {
            "asset": {"version": "2.0"},
            "buffers": [{"byteLength": 8, "uri": "data.bin"}],
            "bufferViews": [{"buffer": 0, "byteLength": 8}],
            "accessors": [{"bufferView": 0, "componentType": 5126, "count": 2, "type": "SCALAR"}],
        }
        path = tmp_path / "scene.gltf"
        path.write_text(json.dumps(document))
        for allocator in (HeapAllocator(), MemoryMapAllocator(), HeapAllocator(deferred=True)):
            asset = load_asset(path, DecodeOptions(allocator=allocator))
            assert asset.read(0, 1) == -2.5

    def test_allocator_used_once_for_chunk(self, two_vec3_glb):
        data, _floats = two_vec3_glb
        allocator = HeapAllocator()
        load_asset(data, DecodeOptions(allocator=allocator))
        assert allocator.allocation_count == 1
        assert allocator.allocated_bytes == 24

    def test_shared_allocator_across_threads(self, two_vec3_glb):
        data, _floats = two_vec3_glb
        allocator = HeapAllocator()
        options = DecodeOptions(allocator=allocator)
        with ThreadPoolExecutor(max_workers=4) as pool:
            assets = list(pool.map(lambda _: load_asset(data, options), range(16)))
        assert allocator.allocation_count == 16
        for asset in assets:
            np.testing.assert_array_equal(asset.read(0, 1), [4.0, 5.0, 6.0])

    def test_buffer_without_chunk(self):
        document = {"asset": {"version": "2.0"}, "buffers": [{"byteLength": 4}]}
        with pytest.raises(MissingDataError):
            load_asset(_encode(document))

    def test_failure_raises_library_error(self):
        with pytest.raises(GltfGraphError):
            load_asset(b"glTF\x01")

    def test_pygltflib_container(self, tmp_path):
        points = np.array([[0, 0, 0], [1, 0, 0], [0, 2, 0]], dtype="<f4")
        gltf = pygltflib.GLTF2(
            scene=0,
            scenes=[pygltflib.Scene(nodes=[0])],
            nodes=[pygltflib.Node(mesh=0, translation=[0.0, 0.0, 3.0])],
            meshes=[
                pygltflib.Mesh(primitives=[pygltflib.Primitive(attributes=pygltflib.Attributes(POSITION=0))])
            ],
            accessors=[
                pygltflib.Accessor(
                    bufferView=0,
                    componentType=pygltflib.FLOAT,
                    count=3,
                    type=pygltflib.VEC3,
                    min=[0.0, 0.0, 0.0],
                    max=[1.0, 2.0, 0.0],
                )
            ],
            bufferViews=[
                pygltflib.BufferView(
                    buffer=0, byteOffset=0, byteLength=points.nbytes, target=pygltflib.ARRAY_BUFFER
                )
            ],
            buffers=[pygltflib.Buffer(byteLength=points.nbytes)],
        )
        gltf.set_binary_blob(points.tobytes())
        path = tmp_path / "tri.glb"
        gltf.save(str(path))

        asset = load_asset(path)
        np.testing.assert_array_equal(asset.read(0, 2), [0.0, 2.0, 0.0])
        box = asset.bounding_box()
        np.testing.assert_allclose(box.min_point, [0.0, 0.0, 3.0])
        np.testing.assert_allclose(box.max_point, [1.0, 2.0, 3.0])


class TestCameras:
    def _asset(self):
        document = {
            "asset": {"version": "2.0"},
            "cameras": [
                {"type": "perspective", "perspective": {"yfov": math.pi / 2, "znear": 0.1, "zfar": 100.0}},
                {"type": "perspective", "perspective": {"yfov": 1.0, "znear": 0.5, "aspectRatio": 2.0}},
                {"type": "orthographic", "orthographic": {"xmag": 2.0, "ymag": 1.0, "znear": 0.0, "zfar": 10.0}},
            ],
            "nodes": [{"camera": 2}],
        }
        return load_asset(_encode(document))

    def test_node_camera(self):
        asset = self._asset()
        assert asset.nodes[0].camera is asset.cameras[2]

    def test_perspective_projection(self):
        m = self._asset().cameras[0].projection_matrix(aspect_ratio=1.0)
        assert m[1, 1] == pytest.approx(1.0)
        assert m[3, 2] == -1.0
        assert m[2, 2] == pytest.approx((100.0 + 0.1) / (0.1 - 100.0))

    def test_infinite_projection(self):
        camera = self._asset().cameras[1]
        m = camera.projection_matrix(aspect_ratio=5.0)
        assert m[2, 2] == -1.0
        assert m[2, 3] == pytest.approx(-1.0)
        assert m[0, 0] == pytest.approx(m[1, 1] / 2.0)

    def test_orthographic_projection(self):
        m = self._asset().cameras[2].projection_matrix()
        assert m[0, 0] == pytest.approx(0.5)
        assert m[1, 1] == pytest.approx(1.0)
        assert m[3, 3] == 1.0

    def test_missing_projection_object(self):
        document = {"asset": {"version": "2.0"}, "cameras": [{"type": "perspective"}]}
        with pytest.raises(FormatError, match="perspective"):
            load_asset(_encode(document))

    def test_zfar_before_znear(self):
        document = {
            "asset": {"version": "2.0"},
            "cameras": [{"type": "orthographic", "orthographic": {"xmag": 1, "ymag": 1, "znear": 5, "zfar": 1}}],
        }
        with pytest.raises(FormatError, match="zfar"):
            load_asset(_encode(document))


class TestAppendOnlyMutation:
    def test_add_light(self):
        asset = load_asset(_encode({"asset": {"version": "2.0"}}))
        first = asset.add_light(Light(index=-1, type="point"))
        second = asset.add_light(Light(index=-1, type="directional", intensity=2.0))
        assert (first, second) == (0, 1)
        assert asset.lights[1].intensity == 2.0
        assert asset.lights[0].index == 0

    def test_add_camera_keeps_existing_indices(self):
        document = {
            "asset": {"version": "2.0"},
            "cameras": [{"type": "perspective", "perspective": {"yfov": 1.0, "znear": 0.1}}],
            "nodes": [{"camera": 0}],
        }
        asset = load_asset(_encode(document))
        original = asset.cameras[0]
        index = asset.add_camera(Camera(index=-1, type="perspective", yfov=0.5, znear=1.0))
        assert index == 1
        assert asset.cameras[0] is original
        assert asset.nodes[0].camera is original
        assert len(asset.cameras) == 2


class TestLoadImages:
    def test_handles_and_errors_collected(self):
        document = {
            "asset": {"version": "2.0"},
            "images": [{"uri": "a.png"}, {"uri": "b.png"}, {"uri": "c.png"}],
        }
        asset = load_asset(_encode(document))

        def loader(image):
            if image.uri == "b.png":
                raise MissingDataError("b.png is gone")
            return f"handle:{image.uri}"

        result = asset.load_images(loader)
        assert result.handles == {0: "handle:a.png", 2: "handle:c.png"}
        assert list(result.errors) == [1]
        assert isinstance(result.errors[1], MissingDataError)

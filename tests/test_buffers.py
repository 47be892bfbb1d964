"""Tests for buffer and buffer view resolution."""

import base64
import json

import pytest

from gltfgraph.buffers import Buffer, BufferView, resolve_buffer_views, resolve_buffers
from gltfgraph.errors import InvalidReferenceError, MissingDataError, RangeError
from gltfgraph.parser import parse_document
from gltfgraph.storage import HeapAllocator, MemoryMapAllocator


def _doc(buffers, views=()):
    return parse_document(
        json.dumps({"asset": {"version": "2.0"}, "buffers": list(buffers), "bufferViews": list(views)}).encode()
    )


class TestBufferView:
    def test_span_inside_buffer(self):
        buffer = Buffer(0, 8, storage=HeapAllocator().wrap(bytes(range(8))))
        view = BufferView(index=0, buffer=buffer, byte_offset=2, byte_length=4, target=34962)
        assert bytes(view.data) == b"\x02\x03\x04\x05"
        assert view.is_vertex_data
        assert not view.is_index_data

    def test_span_past_buffer(self):
        buffer = Buffer(0, 8, storage=HeapAllocator().wrap(bytes(8)))
        with pytest.raises(RangeError, match="bufferViews\\[3\\]"):
            BufferView(index=3, buffer=buffer, byte_offset=6, byte_length=4)

    def test_buffer_needs_storage_or_loader(self):
        with pytest.raises(ValueError):
            Buffer(0, 4)


class TestResolveBuffers:
    def test_binary_chunk_shared(self):
        chunk = memoryview(bytes(range(8)))
        allocator = HeapAllocator()
        buffers = resolve_buffers(_doc([{"byteLength": 8}, {"byteLength": 4}]), chunk, allocator, None)
        assert bytes(buffers[1].data) == b"\x00\x01\x02\x03"
        assert allocator.allocation_count == 1

    def test_binary_chunk_missing(self):
        with pytest.raises(MissingDataError, match="binary chunk"):
            resolve_buffers(_doc([{"byteLength": 4}]), None, HeapAllocator(), None)

    def test_binary_chunk_too_short(self):
        with pytest.raises(RangeError):
            resolve_buffers(_doc([{"byteLength": 16}]), memoryview(bytes(8)), HeapAllocator(), None)

    def test_data_uri(self):
        uri = "data:application/octet-stream;base64," + base64.b64encode(b"\x09\x08\x07\x06").decode()
        (buffer,) = resolve_buffers(_doc([{"byteLength": 4, "uri": uri}]), None, HeapAllocator(), None)
        assert bytes(buffer.data) == b"\x09\x08\x07\x06"
        assert buffer.data.readonly

    def test_data_uri_too_short(self):
        uri = "data:application/octet-stream;base64," + base64.b64encode(b"\x01").decode()
        with pytest.raises(RangeError, match="data URI"):
            resolve_buffers(_doc([{"byteLength": 4, "uri": uri}]), None, HeapAllocator(), None)

    def test_external_file(self, tmp_path):
        (tmp_path / "geo.bin").write_bytes(b"\x01\x02\x03\x04\x05")
        (buffer,) = resolve_buffers(_doc([{"byteLength": 4, "uri": "geo.bin"}]), None, HeapAllocator(), tmp_path)
        assert buffer.is_loaded
        assert bytes(buffer.data) == b"\x01\x02\x03\x04"

    def test_external_file_missing(self, tmp_path):
        with pytest.raises(MissingDataError):
            resolve_buffers(_doc([{"byteLength": 4, "uri": "gone.bin"}]), None, HeapAllocator(), tmp_path)

    def test_deferred_loads_on_first_access(self, tmp_path):
        path = tmp_path / "geo.bin"
        allocator = HeapAllocator(deferred=True)
        (buffer,) = resolve_buffers(_doc([{"byteLength": 4, "uri": "geo.bin"}]), None, allocator, tmp_path)
        assert not buffer.is_loaded
        assert allocator.allocation_count == 0
        path.write_bytes(b"\xaa\xbb\xcc\xdd")
        assert bytes(buffer.data) == b"\xaa\xbb\xcc\xdd"
        assert buffer.is_loaded
        assert allocator.allocation_count == 1

    def test_deferred_missing_file_raises_on_access(self, tmp_path):
        allocator = HeapAllocator(deferred=True)
        (buffer,) = resolve_buffers(_doc([{"byteLength": 4, "uri": "gone.bin"}]), None, allocator, tmp_path)
        with pytest.raises(MissingDataError):
            buffer.data

    def test_memory_mapped_file(self, tmp_path):
        (tmp_path / "geo.bin").write_bytes(b"\x10\x20\x30\x40")
        (buffer,) = resolve_buffers(
            _doc([{"byteLength": 4, "uri": "geo.bin"}]), None, MemoryMapAllocator(), tmp_path
        )
        assert bytes(buffer.data) == b"\x10\x20\x30\x40"


class TestResolveBufferViews:
    def test_views_reference_buffers(self):
        doc = _doc([{"byteLength": 8}], [{"buffer": 0, "byteOffset": 4, "byteLength": 4, "byteStride": 4}])
        buffers = resolve_buffers(doc, memoryview(bytes(range(8))), HeapAllocator(), None)
        (view,) = resolve_buffer_views(doc, buffers)
        assert view.buffer is buffers[0]
        assert view.byte_stride == 4
        assert bytes(view.data) == b"\x04\x05\x06\x07"

    def test_unknown_buffer(self):
        doc = _doc([{"byteLength": 8}], [{"buffer": 2, "byteLength": 4}])
        buffers = resolve_buffers(doc, memoryview(bytes(8)), HeapAllocator(), None)
        with pytest.raises(InvalidReferenceError, match=r"bufferViews\[0\].buffer"):
            resolve_buffer_views(doc, buffers)

    def test_view_past_buffer(self):
        doc = _doc([{"byteLength": 8}], [{"buffer": 0, "byteOffset": 4, "byteLength": 8}])
        buffers = resolve_buffers(doc, memoryview(bytes(8)), HeapAllocator(), None)
        with pytest.raises(RangeError):
            resolve_buffer_views(doc, buffers)

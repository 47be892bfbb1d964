"""Buffer and BufferView entities and their resolution against storage."""

from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from gltfgraph.errors import MissingDataError, RangeError
from gltfgraph.models import GltfDocument
from gltfgraph.parser import decode_data_uri, is_data_uri, resolve_uri
from gltfgraph.references import lookup
from gltfgraph.storage import BufferAllocator, BufferStorage

TARGET_ARRAY_BUFFER = 34962
TARGET_ELEMENT_ARRAY_BUFFER = 34963


class Buffer:
    """A contiguous byte region backing one or more buffer views.

    ``byte_length`` is fixed at parse time. Storage is either supplied up front
    or produced by ``loader`` on first access to :attr:`data`.
    """

    def __init__(
        self,
        index: int,
        byte_length: int,
        *,
        storage: BufferStorage | None = None,
        loader: Callable[[], BufferStorage] | None = None,
        uri: str | None = None,
        name: str | None = None,
        extensions: dict[str, Any] | None = None,
        extras: Any = None,
    ) -> None:
        if storage is None and loader is None:
            raise ValueError("Buffer needs either storage or a loader")
        self.index = index
        self.byte_length = byte_length
        self.uri = uri
        self.name = name
        self.extensions = extensions or {}
        self.extras = extras
        self._storage = storage
        self._loader = loader
        self._lock = threading.Lock()

    @property
    def is_loaded(self) -> bool:
        return self._storage is not None

    @property
    def data(self) -> memoryview:
        """Read-only view of exactly ``byte_length`` bytes."""
        if self._storage is None:
            with self._lock:
                if self._storage is None:
                    self._storage = self._loader()
        return self._storage.view()[: self.byte_length]

    def __repr__(self) -> str:
        return f"Buffer(index={self.index}, byte_length={self.byte_length}, uri={self.uri!r})"


@dataclass(eq=False)
class BufferView:
    index: int
    buffer: Buffer
    byte_offset: int
    byte_length: int
    byte_stride: int | None = None
    target: int | None = None
    name: str | None = None
    extensions: dict[str, Any] = field(default_factory=dict)
    extras: Any = None

    def __post_init__(self) -> None:
        end = self.byte_offset + self.byte_length
        if self.byte_offset < 0 or end > self.buffer.byte_length:
            raise RangeError(
                f"bufferViews[{self.index}]: byteOffset {self.byte_offset} + byteLength "
                f"{self.byte_length} exceeds buffers[{self.buffer.index}] byteLength "
                f"{self.buffer.byte_length}"
            )

    @property
    def data(self) -> memoryview:
        return self.buffer.data[self.byte_offset : self.byte_offset + self.byte_length]

    @property
    def is_vertex_data(self) -> bool:
        return self.target == TARGET_ARRAY_BUFFER

    @property
    def is_index_data(self) -> bool:
        return self.target == TARGET_ELEMENT_ARRAY_BUFFER


def resolve_buffers(
    document: GltfDocument,
    binary_chunk: memoryview | None,
    allocator: BufferAllocator,
    base_path: Path | None,
) -> list[Buffer]:
    """Create one Buffer per declaration, asking ``allocator`` for storage.

    Buffers without a URI share the container's binary chunk (wrapped once).
    Data URIs are decoded eagerly. External files are loaded now, or on first
    access when ``allocator.deferred`` is set.
    """
    buffers: list[Buffer] = []
    chunk_storage: BufferStorage | None = None

    for index, buf in enumerate(document.buffers):
        where = f"buffers[{index}]"
        common = dict(uri=buf.uri, name=buf.name, extensions=buf.extensions, extras=buf.extras)

        if buf.uri is None:
            if binary_chunk is None:
                raise MissingDataError(f"{where}: no uri and the source has no binary chunk")
            if chunk_storage is None:
                chunk_storage = allocator.wrap(binary_chunk)
            if buf.byte_length > chunk_storage.length:
                raise RangeError(
                    f"{where}: byteLength {buf.byte_length} exceeds binary chunk "
                    f"length {chunk_storage.length}"
                )
            buffers.append(Buffer(index, buf.byte_length, storage=chunk_storage, **common))
        elif is_data_uri(buf.uri):
            _mime, payload = decode_data_uri(buf.uri)
            if len(payload) < buf.byte_length:
                raise RangeError(
                    f"{where}: data URI holds {len(payload)} bytes, byteLength declares "
                    f"{buf.byte_length}"
                )
            storage = allocator.allocate(buf.byte_length)
            storage.write(0, payload[: buf.byte_length])
            buffers.append(Buffer(index, buf.byte_length, storage=storage, **common))
        else:
            path = resolve_uri(buf.uri, base_path)
            loader = _file_loader(allocator, buf.byte_length, path)
            if allocator.deferred:
                buffers.append(Buffer(index, buf.byte_length, loader=loader, **common))
            else:
                buffers.append(Buffer(index, buf.byte_length, storage=loader(), **common))

    return buffers


def _file_loader(allocator: BufferAllocator, length: int, path: Path) -> Callable[[], BufferStorage]:
    def load() -> BufferStorage:
        return allocator.allocate(length, source=path)

    return load


def resolve_buffer_views(document: GltfDocument, buffers: list[Buffer]) -> list[BufferView]:
    """Create BufferViews, checking each span lies inside its buffer."""
    views: list[BufferView] = []
    for index, view in enumerate(document.buffer_views):
        where = f"bufferViews[{index}]"
        buffer = lookup(buffers, view.buffer, f"{where}.buffer", "buffers")
        views.append(
            BufferView(
                index=index,
                buffer=buffer,
                byte_offset=view.byte_offset,
                byte_length=view.byte_length,
                byte_stride=view.byte_stride,
                target=view.target,
                name=view.name,
                extensions=view.extensions,
                extras=view.extras,
            )
        )
    return views

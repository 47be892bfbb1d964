"""Buffer storage strategies.

The decoder never allocates buffer memory itself; it asks a ``BufferAllocator``
for a ``BufferStorage`` handle once per buffer. Allocators keep their own
bookkeeping under a lock so one instance can serve concurrent decodes.
"""

from __future__ import annotations

import mmap
import threading
from pathlib import Path

from gltfgraph.errors import MissingDataError, RangeError


class BufferStorage:
    """An addressable byte region handed out by an allocator."""

    def __init__(self, data: bytes | bytearray | memoryview | mmap.mmap, length: int) -> None:
        view = memoryview(data)
        if view.nbytes < length:
            raise RangeError(f"Storage holds {view.nbytes} bytes, {length} required")
        self._backing = data
        self._view = view[:length]
        self.length = length

    @property
    def writable(self) -> bool:
        return not self._view.readonly

    def view(self) -> memoryview:
        """Read-only view over the stored bytes."""
        return self._view.toreadonly()

    def write(self, offset: int, payload: bytes) -> None:
        end = offset + len(payload)
        if offset < 0 or end > self.length:
            raise RangeError(f"Write of {len(payload)} bytes at {offset} exceeds storage length {self.length}")
        self._view[offset:end] = payload


class BufferAllocator:
    """Base strategy: converts a byte length (and optional file) into storage.

    ``deferred`` asks the decoder to materialize external-URI buffers on first
    access instead of during decode.
    """

    def __init__(self, *, deferred: bool = False) -> None:
        self.deferred = deferred
        self._lock = threading.Lock()
        self._allocated_bytes = 0
        self._allocation_count = 0

    @property
    def allocated_bytes(self) -> int:
        with self._lock:
            return self._allocated_bytes

    @property
    def allocation_count(self) -> int:
        with self._lock:
            return self._allocation_count

    def allocate(self, length: int, source: Path | None = None) -> BufferStorage:
        """Return storage of ``length`` bytes, filled from ``source`` when given."""
        if length < 0:
            raise RangeError(f"Cannot allocate negative length {length}")
        if source is None:
            storage = self._allocate_blank(length)
        else:
            storage = self._allocate_from_file(length, source)
        self._record(length)
        return storage

    def wrap(self, data: bytes | memoryview) -> BufferStorage:
        """Adopt an existing region (the container's binary chunk) without copying."""
        view = memoryview(data)
        self._record(view.nbytes)
        return BufferStorage(view, view.nbytes)

    def _record(self, length: int) -> None:
        with self._lock:
            self._allocated_bytes += length
            self._allocation_count += 1

    def _allocate_blank(self, length: int) -> BufferStorage:
        raise NotImplementedError

    def _allocate_from_file(self, length: int, source: Path) -> BufferStorage:
        raise NotImplementedError


class HeapAllocator(BufferAllocator):
    """Default strategy: plain heap copies."""

    def _allocate_blank(self, length: int) -> BufferStorage:
        return BufferStorage(bytearray(length), length)

    def _allocate_from_file(self, length: int, source: Path) -> BufferStorage:
        try:
            data = bytearray(source.read_bytes())
        except OSError as e:
            raise MissingDataError(f"Cannot read buffer file {source}: {e}") from e
        if len(data) < length:
            raise RangeError(
                f"Buffer file {source} holds {len(data)} bytes, byteLength declares {length}"
            )
        return BufferStorage(data, length)


class MemoryMapAllocator(BufferAllocator):
    """Maps external buffer files read-only; anonymous maps for everything else."""

    def _allocate_blank(self, length: int) -> BufferStorage:
        # mmap rejects zero-length anonymous maps
        return BufferStorage(mmap.mmap(-1, max(length, 1)), length)

    def _allocate_from_file(self, length: int, source: Path) -> BufferStorage:
        try:
            with open(source, "rb") as f:
                size = source.stat().st_size
                if size < length:
                    raise RangeError(
                        f"Buffer file {source} holds {size} bytes, byteLength declares {length}"
                    )
                if size == 0:
                    return BufferStorage(b"", 0)
                mapped = mmap.mmap(f.fileno(), 0, access=mmap.ACCESS_READ)
        except OSError as e:
            raise MissingDataError(f"Cannot map buffer file {source}: {e}") from e
        return BufferStorage(mapped, length)

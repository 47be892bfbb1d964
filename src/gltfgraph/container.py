"""Binary container (GLB) header and chunk parsing."""

from __future__ import annotations

import struct
from dataclasses import dataclass

from gltfgraph.errors import FormatError, MissingChunkError

GLB_MAGIC = 0x46546C67  # "glTF"
GLB_VERSION = 2
CHUNK_JSON = 0x4E4F534A  # "JSON"
CHUNK_BIN = 0x004E4942  # "BIN\0"

HEADER_SIZE = 12
CHUNK_HEADER_SIZE = 8


@dataclass(frozen=True)
class Container:
    json_bytes: bytes
    binary_chunk: memoryview | None = None


def is_binary_container(data: bytes | memoryview) -> bool:
    """True when ``data`` starts with the GLB magic."""
    return len(data) >= 4 and struct.unpack_from("<I", data, 0)[0] == GLB_MAGIC


def parse_container(data: bytes | memoryview) -> Container:
    """Split a GLB byte string into its JSON text and optional binary chunk.

    The binary chunk is returned as a zero-copy view into ``data``.

    Raises:
        FormatError: On bad magic, unsupported version, or broken chunk framing.
        MissingChunkError: When the leading JSON chunk is absent.
    """
    view = memoryview(data)
    if len(view) < HEADER_SIZE:
        raise FormatError(f"Container too small for header: {len(view)} bytes")

    magic, version, total_length = struct.unpack_from("<III", view, 0)
    if magic != GLB_MAGIC:
        raise FormatError(f"Bad container magic: 0x{magic:08X}")
    if version != GLB_VERSION:
        raise FormatError(f"Unsupported container version: {version}")
    if total_length > len(view):
        raise FormatError(
            f"Container declares length {total_length} but only {len(view)} bytes are present"
        )
    if total_length < HEADER_SIZE:
        raise FormatError(f"Container declares length {total_length}, smaller than its header")

    chunks: list[tuple[int, memoryview]] = []
    offset = HEADER_SIZE
    while offset < total_length:
        if offset + CHUNK_HEADER_SIZE > total_length:
            raise FormatError(f"Truncated chunk header at byte {offset}")
        chunk_length, chunk_type = struct.unpack_from("<II", view, offset)
        start = offset + CHUNK_HEADER_SIZE
        end = start + chunk_length
        if end > total_length:
            raise FormatError(
                f"Chunk {len(chunks)} declares length {chunk_length} past container end "
                f"({end} > {total_length})"
            )
        chunks.append((chunk_type, view[start:end]))
        # chunks are 4-byte aligned; trailing padding may be omitted on the last one
        offset = min(end + (-chunk_length % 4), total_length)

    if not chunks or chunks[0][0] != CHUNK_JSON:
        raise MissingChunkError("Container has no leading JSON chunk")

    binary_chunk: memoryview | None = None
    if len(chunks) > 1:
        chunk_type, payload = chunks[1]
        if chunk_type != CHUNK_BIN:
            raise FormatError(f"Second chunk has type 0x{chunk_type:08X}, expected BIN")
        binary_chunk = payload
    for index, (chunk_type, _payload) in enumerate(chunks[2:], start=2):
        if chunk_type in (CHUNK_JSON, CHUNK_BIN):
            raise FormatError(f"Chunk {index}: duplicate chunk of type 0x{chunk_type:08X}")
        # unknown trailing chunk types are skipped

    return Container(json_bytes=bytes(chunks[0][1]), binary_chunk=binary_chunk)

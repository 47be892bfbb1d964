"""Source loading: bytes or location -> container -> validated JSON document."""

from __future__ import annotations

import base64
import binascii
import json
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import unquote, urlparse

from pydantic import ValidationError as PydanticValidationError

from gltfgraph.container import is_binary_container, parse_container
from gltfgraph.errors import FormatError, MissingDataError, UnsupportedFeatureError
from gltfgraph.models import GltfDocument

Source = str | Path | bytes | bytearray | memoryview


@dataclass(frozen=True)
class ParsedSource:
    document: GltfDocument
    binary_chunk: memoryview | None
    base_path: Path | None


def parse_source(source: Source, base_path: Path | None = None) -> ParsedSource:
    """Read ``source`` and decode it into a schema-validated document.

    Args:
        source: Raw bytes, a file path, or a ``file:`` URL.
        base_path: Directory used for relative URIs. Defaults to the source's directory.

    Raises:
        FormatError: On container framing, JSON or schema errors.
        MissingDataError: When the file cannot be read or ``asset`` is absent.
        UnsupportedFeatureError: On non-file URL schemes.
    """
    data, source_dir = _read_source_bytes(source)
    if base_path is None:
        base_path = source_dir

    binary_chunk: memoryview | None = None
    if is_binary_container(data):
        container = parse_container(data)
        json_bytes = container.json_bytes
        binary_chunk = container.binary_chunk
    else:
        json_bytes = bytes(data)

    document = parse_document(json_bytes)
    return ParsedSource(document=document, binary_chunk=binary_chunk, base_path=base_path)


def parse_document(json_bytes: bytes) -> GltfDocument:
    """Decode JSON text and validate it against the document schema."""
    try:
        data = json.loads(json_bytes.decode("utf-8").rstrip(" \t\r\n\x00"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise FormatError(f"Invalid JSON: {e}") from e

    if not isinstance(data, dict):
        raise FormatError("Top-level JSON value must be an object")

    asset = data.get("asset")
    if not isinstance(asset, dict) or "version" not in asset:
        raise MissingDataError("Missing required field: asset.version")
    _check_version(str(asset["version"]))

    try:
        return GltfDocument.model_validate(data)
    except PydanticValidationError as e:
        raise FormatError(f"Schema validation failed:\n{e}") from e


def decode_data_uri(uri: str) -> tuple[str | None, bytes]:
    """Split a ``data:`` URI into its MIME type and decoded payload."""
    header, sep, payload = uri.partition(",")
    if not sep or not header.startswith("data:"):
        raise FormatError(f"Malformed data URI: {uri[:40]!r}")
    meta = header[len("data:") :].split(";")
    mime_type = meta[0] or None
    if "base64" not in meta[1:]:
        return mime_type, unquote(payload).encode("utf-8")
    try:
        return mime_type, base64.b64decode(payload, validate=True)
    except binascii.Error as e:
        raise FormatError(f"Malformed base64 in data URI: {e}") from e


def is_data_uri(uri: str) -> bool:
    return uri.startswith("data:")


def resolve_uri(uri: str, base_path: Path | None) -> Path:
    """Map a relative or ``file:`` URI onto a local path."""
    parsed = urlparse(uri)
    if parsed.scheme == "file":
        return Path(unquote(parsed.path))
    # single letters are drive names, not schemes
    if parsed.scheme and len(parsed.scheme) > 1:
        raise UnsupportedFeatureError(f"Unsupported URI scheme {parsed.scheme!r} in {uri!r}")
    path = Path(unquote(uri))
    if path.is_absolute() or base_path is None:
        return path
    return base_path / path


def _read_source_bytes(source: Source) -> tuple[bytes | memoryview, Path | None]:
    if isinstance(source, (bytes, bytearray, memoryview)):
        return memoryview(source), None
    path = resolve_uri(source, None) if isinstance(source, str) else source
    try:
        return path.read_bytes(), path.resolve().parent
    except OSError as e:
        raise MissingDataError(f"Cannot read file: {e}") from e


def _check_version(version: str) -> None:
    """Accept any 2.x document."""
    parts = version.split(".")
    if len(parts) != 2:
        raise FormatError(f"Invalid asset version format: {version!r}")

    try:
        major = int(parts[0])
        int(parts[1])
    except ValueError:
        raise FormatError(f"Invalid asset version format: {version!r}")

    if major != 2:
        raise FormatError(f"Unsupported asset version: {version!r} (only 2.x is supported)")

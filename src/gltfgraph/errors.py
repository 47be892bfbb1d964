"""Custom exception hierarchy for the gltfgraph decoder."""


class GltfGraphError(Exception):
    """Base exception for all gltfgraph errors."""


class FormatError(GltfGraphError):
    """Raised on malformed container framing, JSON, or schema shape."""


class InvalidReferenceError(GltfGraphError):
    """Raised when an index is out of bounds for its target array, or the node graph is not a forest."""


class RangeError(GltfGraphError):
    """Raised when a computed byte span exceeds its owning buffer or buffer view."""


class UnsupportedFeatureError(GltfGraphError):
    """Raised for recognized but unimplementable layouts, interpolations or URI schemes."""


class MissingDataError(GltfGraphError):
    """Raised when required data is absent (no JSON chunk, missing default scene, unreadable file)."""


class MissingChunkError(FormatError, MissingDataError):
    """Raised when a container lacks its required leading JSON chunk."""

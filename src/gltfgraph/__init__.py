"""gltfgraph: decode glTF 2.0 and GLB files into a resolved, read-only scene graph."""

__version__ = "0.1.0"

from gltfgraph.asset import Asset, DecodeOptions, load_asset  # noqa: E402
from gltfgraph.errors import (  # noqa: E402
    FormatError,
    GltfGraphError,
    InvalidReferenceError,
    MissingDataError,
    RangeError,
    UnsupportedFeatureError,
)
from gltfgraph.storage import HeapAllocator, MemoryMapAllocator  # noqa: E402

__all__ = [
    "Asset",
    "DecodeOptions",
    "FormatError",
    "GltfGraphError",
    "HeapAllocator",
    "InvalidReferenceError",
    "MemoryMapAllocator",
    "MissingDataError",
    "RangeError",
    "UnsupportedFeatureError",
    "load_asset",
]

"""Top-level Asset facade: decode a source into a finished, read-only graph."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from gltfgraph.accessors import Accessor
from gltfgraph.assembler import AssembledGraph, assemble
from gltfgraph.bounds import BoundingBox
from gltfgraph.buffers import Buffer, BufferView
from gltfgraph.errors import GltfGraphError
from gltfgraph.extensions import ExtensionRegistry, Light, default_registry
from gltfgraph.graph import Animation, Camera, Mesh, Node, Scene, Skin
from gltfgraph.materials import Image, Material, Texture, TextureSampler
from gltfgraph.models import AssetInfo
from gltfgraph.parser import Source, parse_source
from gltfgraph.references import lookup
from gltfgraph.storage import BufferAllocator, HeapAllocator
from gltfgraph.warning_policy import WarningPolicy


@dataclass(frozen=True)
class DecodeOptions:
    """Per-decode configuration. Nothing here is process-wide."""

    allocator: BufferAllocator = field(default_factory=HeapAllocator)
    base_path: Path | None = None
    warning_policy: WarningPolicy | None = None
    registry: ExtensionRegistry = default_registry


@dataclass
class ImageLoadResult:
    handles: dict[int, Any] = field(default_factory=dict)
    errors: dict[int, GltfGraphError] = field(default_factory=dict)


class Asset:
    """The decoded graph and its metadata.

    Entity arrays are exposed as tuples; relations between entities are direct
    object references valid for the lifetime of the Asset.
    """

    def __init__(
        self,
        graph: AssembledGraph,
        info: AssetInfo,
        *,
        extensions_used: list[str],
        extensions_required: list[str],
        extras: Any = None,
    ) -> None:
        self._graph = graph
        self.generator = info.generator
        self.copyright = info.copyright
        self.version = info.version
        self.min_version = info.min_version
        self.extensions_used = list(extensions_used)
        self.extensions_required = list(extensions_required)
        self.extras = extras
        # extras and extensions of the `asset` metadata object itself
        self.info_extras = info.extras
        self.info_extensions = dict(graph.info_extensions)

    # -- entity arrays -----------------------------------------------------

    @property
    def buffers(self) -> tuple[Buffer, ...]:
        return tuple(self._graph.buffers)

    @property
    def buffer_views(self) -> tuple[BufferView, ...]:
        return tuple(self._graph.buffer_views)

    @property
    def accessors(self) -> tuple[Accessor, ...]:
        return tuple(self._graph.accessors)

    @property
    def images(self) -> tuple[Image, ...]:
        return tuple(self._graph.images)

    @property
    def samplers(self) -> tuple[TextureSampler, ...]:
        return tuple(self._graph.samplers)

    @property
    def textures(self) -> tuple[Texture, ...]:
        return tuple(self._graph.textures)

    @property
    def materials(self) -> tuple[Material, ...]:
        return tuple(self._graph.materials)

    @property
    def meshes(self) -> tuple[Mesh, ...]:
        return tuple(self._graph.meshes)

    @property
    def skins(self) -> tuple[Skin, ...]:
        return tuple(self._graph.skins)

    @property
    def cameras(self) -> tuple[Camera, ...]:
        return tuple(self._graph.cameras)

    @property
    def lights(self) -> tuple[Light, ...]:
        return tuple(self._graph.lights)

    @property
    def animations(self) -> tuple[Animation, ...]:
        return tuple(self._graph.animations)

    @property
    def nodes(self) -> tuple[Node, ...]:
        return tuple(self._graph.nodes)

    @property
    def scenes(self) -> tuple[Scene, ...]:
        return tuple(self._graph.scenes)

    @property
    def default_scene(self) -> Scene | None:
        return self._graph.default_scene

    @property
    def extensions(self) -> dict[str, Any]:
        """Asset-level extensions not decoded into typed fields; unknown ones verbatim."""
        return dict(self._graph.extensions)

    @property
    def root_nodes(self) -> tuple[Node, ...]:
        return tuple(n for n in self._graph.nodes if n.parent is None)

    # -- derived data ------------------------------------------------------

    def read(self, accessor: int, element: int) -> float | int | Any:
        """Shorthand for ``asset.accessors[accessor].read(element)``.

        Raises:
            InvalidReferenceError: If ``accessor`` is out of range.
            IndexError: If ``element`` is outside the accessor's count.
        """
        return lookup(self._graph.accessors, accessor, "read.accessor", "accessors").read(element)

    def bounding_box(self, scene: Scene | None = None) -> BoundingBox:
        """Bounds of ``scene`` (default scene if omitted), or of every root node without scenes."""
        scene = scene or self.default_scene
        if scene is not None:
            return scene.bounding_box
        box = BoundingBox.empty()
        for node in self.root_nodes:
            box = box.union(node.bounding_box)
        return box

    # -- append-only mutation ----------------------------------------------

    def add_light(self, light: Light) -> int:
        """Append ``light`` and return its index; existing indices are untouched."""
        light.index = len(self._graph.lights)
        self._graph.lights.append(light)
        return light.index

    def add_camera(self, camera: Camera) -> int:
        """Append ``camera`` and return its index; existing indices are untouched."""
        camera.index = len(self._graph.cameras)
        self._graph.cameras.append(camera)
        return camera.index

    # -- collaborators -----------------------------------------------------

    def load_images(self, loader: Callable[[Image], Any]) -> ImageLoadResult:
        """Hand every image to ``loader`` and collect the returned handles.

        Failures reported by the loader as ``GltfGraphError`` are recorded per
        image and do not stop the remaining images from loading.
        """
        result = ImageLoadResult()
        for image in self._graph.images:
            try:
                result.handles[image.index] = loader(image)
            except GltfGraphError as e:
                result.errors[image.index] = e
        return result

    def __repr__(self) -> str:
        return (
            f"Asset(version={self.version!r}, generator={self.generator!r}, "
            f"nodes={len(self._graph.nodes)}, meshes={len(self._graph.meshes)})"
        )


def load_asset(source: Source, options: DecodeOptions | None = None) -> Asset:
    """Decode a glTF or GLB source into an :class:`Asset`.

    Args:
        source: Raw bytes, a file path, or a ``file:`` URL.
        options: Allocator, base path, warning policy and extension registry.

    Returns:
        A fully resolved Asset.

    Raises:
        GltfGraphError: Any decoding failure; no partially built Asset is returned.
    """
    options = options or DecodeOptions()
    parsed = parse_source(source, base_path=options.base_path)
    graph = assemble(
        parsed,
        allocator=options.allocator,
        registry=options.registry,
        warning_policy=options.warning_policy,
    )
    doc = parsed.document
    return Asset(
        graph,
        doc.asset,
        extensions_used=doc.extensions_used,
        extensions_required=doc.extensions_required,
        extras=doc.extras,
    )

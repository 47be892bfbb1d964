"""Material, texture, image and sampler entities."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

from gltfgraph.buffers import BufferView
from gltfgraph.models import GltfDocument, TextureInfoDef
from gltfgraph.parser import decode_data_uri, is_data_uri
from gltfgraph.references import lookup, lookup_optional

AlphaMode = Literal["OPAQUE", "MASK", "BLEND"]

WRAP_REPEAT = 10497
WRAP_CLAMP_TO_EDGE = 33071
WRAP_MIRRORED_REPEAT = 33648


@dataclass(eq=False)
class Image:
    """An encoded image, referenced by URI, data URI, or BufferView. Never decoded here."""

    index: int
    uri: str | None = None
    mime_type: str | None = None
    buffer_view: BufferView | None = None
    name: str | None = None
    extensions: dict[str, Any] = field(default_factory=dict)
    extras: Any = None

    @property
    def is_embedded(self) -> bool:
        return self.buffer_view is not None or (self.uri is not None and is_data_uri(self.uri))

    def encoded_bytes(self) -> bytes | None:
        """Still-encoded payload for embedded images; None for external URIs."""
        if self.buffer_view is not None:
            return bytes(self.buffer_view.data)
        if self.uri is not None and is_data_uri(self.uri):
            return decode_data_uri(self.uri)[1]
        return None


@dataclass(eq=False)
class TextureSampler:
    index: int
    mag_filter: int | None = None
    min_filter: int | None = None
    wrap_s: int = WRAP_REPEAT
    wrap_t: int = WRAP_REPEAT
    name: str | None = None
    extensions: dict[str, Any] = field(default_factory=dict)
    extras: Any = None


DEFAULT_SAMPLER = TextureSampler(index=-1)


@dataclass(eq=False)
class Texture:
    index: int
    source: Image | None = None
    sampler: TextureSampler = DEFAULT_SAMPLER
    name: str | None = None
    extensions: dict[str, Any] = field(default_factory=dict)
    extras: Any = None


@dataclass(frozen=True)
class TextureRef:
    """A texture reference plus the texcoord set it samples with."""

    texture: Texture
    tex_coord: int = 0
    scale: float = 1.0  # normal textures
    strength: float = 1.0  # occlusion textures
    extensions: dict[str, Any] = field(default_factory=dict, hash=False)
    extras: Any = field(default=None, hash=False)


@dataclass(frozen=True)
class MetallicRoughness:
    base_color_factor: tuple[float, float, float, float] = (1.0, 1.0, 1.0, 1.0)
    base_color_texture: TextureRef | None = None
    metallic_factor: float = 1.0
    roughness_factor: float = 1.0
    metallic_roughness_texture: TextureRef | None = None
    extensions: dict[str, Any] = field(default_factory=dict, hash=False)
    extras: Any = field(default=None, hash=False)


@dataclass(frozen=True)
class SpecularGlossiness:
    diffuse_factor: tuple[float, float, float, float] = (1.0, 1.0, 1.0, 1.0)
    diffuse_texture: TextureRef | None = None
    specular_factor: tuple[float, float, float] = (1.0, 1.0, 1.0)
    glossiness_factor: float = 1.0
    specular_glossiness_texture: TextureRef | None = None


@dataclass(eq=False)
class Material:
    index: int
    metallic_roughness: MetallicRoughness = MetallicRoughness()
    specular_glossiness: SpecularGlossiness | None = None
    normal_texture: TextureRef | None = None
    occlusion_texture: TextureRef | None = None
    emissive_texture: TextureRef | None = None
    emissive_factor: tuple[float, float, float] = (0.0, 0.0, 0.0)
    alpha_mode: AlphaMode = "OPAQUE"
    alpha_cutoff: float = 0.5
    double_sided: bool = False
    name: str | None = None
    extensions: dict[str, Any] = field(default_factory=dict)
    extras: Any = None

    @property
    def shading_model(self) -> Literal["metallic_roughness", "specular_glossiness"]:
        if self.specular_glossiness is not None:
            return "specular_glossiness"
        return "metallic_roughness"

    def textures(self) -> dict[str, TextureRef]:
        """Every texture slot that is set, keyed by slot name."""
        slots: dict[str, TextureRef | None] = {
            "baseColor": self.metallic_roughness.base_color_texture,
            "metallicRoughness": self.metallic_roughness.metallic_roughness_texture,
            "normal": self.normal_texture,
            "occlusion": self.occlusion_texture,
            "emissive": self.emissive_texture,
        }
        if self.specular_glossiness is not None:
            slots["diffuse"] = self.specular_glossiness.diffuse_texture
            slots["specularGlossiness"] = self.specular_glossiness.specular_glossiness_texture
        return {slot: ref for slot, ref in slots.items() if ref is not None}


def texture_ref(
    info: TextureInfoDef | None,
    textures: list[Texture],
    where: str,
    **extra: float,
) -> TextureRef | None:
    if info is None:
        return None
    texture = lookup(textures, info.index, f"{where}.index", "textures")
    return TextureRef(
        texture=texture,
        tex_coord=info.tex_coord,
        extensions=dict(info.extensions),
        extras=info.extras,
        **extra,
    )


def build_images(document: GltfDocument, views: list[BufferView]) -> list[Image]:
    images: list[Image] = []
    for index, img in enumerate(document.images):
        where = f"images[{index}]"
        view = lookup_optional(views, img.buffer_view, f"{where}.bufferView", "bufferViews")
        images.append(
            Image(
                index=index,
                uri=img.uri,
                mime_type=img.mime_type,
                buffer_view=view,
                name=img.name,
                extensions=img.extensions,
                extras=img.extras,
            )
        )
    return images


def build_samplers(document: GltfDocument) -> list[TextureSampler]:
    return [
        TextureSampler(
            index=index,
            mag_filter=s.mag_filter,
            min_filter=s.min_filter,
            wrap_s=s.wrap_s,
            wrap_t=s.wrap_t,
            name=s.name,
            extensions=s.extensions,
            extras=s.extras,
        )
        for index, s in enumerate(document.samplers)
    ]


def build_textures(
    document: GltfDocument, images: list[Image], samplers: list[TextureSampler]
) -> list[Texture]:
    textures: list[Texture] = []
    for index, tex in enumerate(document.textures):
        where = f"textures[{index}]"
        sampler = lookup_optional(samplers, tex.sampler, f"{where}.sampler", "samplers")
        textures.append(
            Texture(
                index=index,
                source=lookup_optional(images, tex.source, f"{where}.source", "images"),
                sampler=sampler if sampler is not None else DEFAULT_SAMPLER,
                name=tex.name,
                extensions=tex.extensions,
                extras=tex.extras,
            )
        )
    return textures


def build_material(index: int, document: GltfDocument, textures: list[Texture]) -> Material:
    """Decode the core (non-extension) fields of ``materials[index]``."""
    mat = document.materials[index]
    where = f"materials[{index}]"
    pbr = mat.pbr_metallic_roughness
    metallic_roughness = MetallicRoughness()
    if pbr is not None:
        metallic_roughness = MetallicRoughness(
            base_color_factor=tuple(pbr.base_color_factor),
            base_color_texture=texture_ref(
                pbr.base_color_texture, textures, f"{where}.pbrMetallicRoughness.baseColorTexture"
            ),
            metallic_factor=pbr.metallic_factor,
            roughness_factor=pbr.roughness_factor,
            metallic_roughness_texture=texture_ref(
                pbr.metallic_roughness_texture,
                textures,
                f"{where}.pbrMetallicRoughness.metallicRoughnessTexture",
            ),
            extensions=dict(pbr.extensions),
            extras=pbr.extras,
        )

    normal = mat.normal_texture
    occlusion = mat.occlusion_texture
    return Material(
        index=index,
        metallic_roughness=metallic_roughness,
        normal_texture=texture_ref(
            normal, textures, f"{where}.normalTexture", scale=normal.scale if normal else 1.0
        ),
        occlusion_texture=texture_ref(
            occlusion,
            textures,
            f"{where}.occlusionTexture",
            strength=occlusion.strength if occlusion else 1.0,
        ),
        emissive_texture=texture_ref(mat.emissive_texture, textures, f"{where}.emissiveTexture"),
        emissive_factor=tuple(mat.emissive_factor),
        alpha_mode=mat.alpha_mode,
        alpha_cutoff=mat.alpha_cutoff,
        double_sided=mat.double_sided,
        name=mat.name,
        extras=mat.extras,
    )

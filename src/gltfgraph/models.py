"""Pydantic v2 schema models for the raw glTF 2.0 JSON document.

These mirror the wire format one-to-one: every cross reference is still an
integer index. ``gltfgraph.assembler`` turns them into resolved entities.
Unknown properties are kept (``extra="allow"``) so nothing in the source is lost.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class GltfModel(BaseModel):
    model_config = ConfigDict(extra="allow", alias_generator=to_camel, populate_by_name=True)

    extensions: dict[str, Any] = Field(default_factory=dict)
    extras: Any = None


class NamedModel(GltfModel):
    name: str | None = None


class AssetInfo(GltfModel):
    version: str
    min_version: str | None = None
    generator: str | None = None
    copyright: str | None = None


class BufferDef(NamedModel):
    uri: str | None = None
    byte_length: int = Field(ge=0)


class BufferViewDef(NamedModel):
    buffer: int = Field(ge=0)
    byte_offset: int = Field(default=0, ge=0)
    byte_length: int = Field(ge=0)
    byte_stride: int | None = Field(default=None, ge=1)
    target: int | None = None


class SparseIndicesDef(GltfModel):
    buffer_view: int = Field(ge=0)
    byte_offset: int = Field(default=0, ge=0)
    component_type: int


class SparseValuesDef(GltfModel):
    buffer_view: int = Field(ge=0)
    byte_offset: int = Field(default=0, ge=0)


class SparseDef(GltfModel):
    count: int = Field(ge=1)
    indices: SparseIndicesDef
    values: SparseValuesDef


class AccessorDef(NamedModel):
    buffer_view: int | None = Field(default=None, ge=0)
    byte_offset: int = Field(default=0, ge=0)
    component_type: int
    normalized: bool = False
    count: int = Field(ge=1)
    type: str
    min: list[float] | None = None
    max: list[float] | None = None
    sparse: SparseDef | None = None


class TextureInfoDef(GltfModel):
    index: int = Field(ge=0)
    tex_coord: int = Field(default=0, ge=0)


class NormalTextureInfoDef(TextureInfoDef):
    scale: float = 1.0


class OcclusionTextureInfoDef(TextureInfoDef):
    strength: float = 1.0


class PbrMetallicRoughnessDef(GltfModel):
    base_color_factor: tuple[float, float, float, float] = (1.0, 1.0, 1.0, 1.0)
    base_color_texture: TextureInfoDef | None = None
    metallic_factor: float = 1.0
    roughness_factor: float = 1.0
    metallic_roughness_texture: TextureInfoDef | None = None


class MaterialDef(NamedModel):
    pbr_metallic_roughness: PbrMetallicRoughnessDef | None = None
    normal_texture: NormalTextureInfoDef | None = None
    occlusion_texture: OcclusionTextureInfoDef | None = None
    emissive_texture: TextureInfoDef | None = None
    emissive_factor: tuple[float, float, float] = (0.0, 0.0, 0.0)
    alpha_mode: Literal["OPAQUE", "MASK", "BLEND"] = "OPAQUE"
    alpha_cutoff: float = Field(default=0.5, ge=0.0)
    double_sided: bool = False


class ImageDef(NamedModel):
    uri: str | None = None
    mime_type: str | None = None
    buffer_view: int | None = Field(default=None, ge=0)


class SamplerDef(NamedModel):
    mag_filter: int | None = None
    min_filter: int | None = None
    wrap_s: int = 10497
    wrap_t: int = 10497


class TextureDef(NamedModel):
    sampler: int | None = Field(default=None, ge=0)
    source: int | None = Field(default=None, ge=0)


class PrimitiveDef(GltfModel):
    attributes: dict[str, int]
    indices: int | None = Field(default=None, ge=0)
    material: int | None = Field(default=None, ge=0)
    mode: int = Field(default=4, ge=0, le=6)
    targets: list[dict[str, int]] = Field(default_factory=list)


class MeshDef(NamedModel):
    primitives: list[PrimitiveDef] = Field(min_length=1)
    weights: list[float] = Field(default_factory=list)


class SkinDef(NamedModel):
    joints: list[int] = Field(min_length=1)
    inverse_bind_matrices: int | None = Field(default=None, ge=0)
    skeleton: int | None = Field(default=None, ge=0)


class PerspectiveDef(GltfModel):
    yfov: float = Field(gt=0.0)
    znear: float = Field(gt=0.0)
    zfar: float | None = Field(default=None, gt=0.0)
    aspect_ratio: float | None = Field(default=None, gt=0.0)


class OrthographicDef(GltfModel):
    xmag: float
    ymag: float
    znear: float = Field(ge=0.0)
    zfar: float = Field(gt=0.0)


class CameraDef(NamedModel):
    type: Literal["perspective", "orthographic"]
    perspective: PerspectiveDef | None = None
    orthographic: OrthographicDef | None = None


class AnimationTargetDef(GltfModel):
    node: int | None = Field(default=None, ge=0)
    path: Literal["translation", "rotation", "scale", "weights"]


class AnimationChannelDef(GltfModel):
    sampler: int = Field(ge=0)
    target: AnimationTargetDef


class AnimationSamplerDef(GltfModel):
    input: int = Field(ge=0)
    output: int = Field(ge=0)
    interpolation: Literal["LINEAR", "STEP", "CUBICSPLINE"] = "LINEAR"


class AnimationDef(NamedModel):
    channels: list[AnimationChannelDef] = Field(default_factory=list)
    samplers: list[AnimationSamplerDef] = Field(default_factory=list)


class NodeDef(NamedModel):
    children: list[int] = Field(default_factory=list)
    mesh: int | None = Field(default=None, ge=0)
    camera: int | None = Field(default=None, ge=0)
    skin: int | None = Field(default=None, ge=0)
    matrix: list[float] | None = Field(default=None, min_length=16, max_length=16)
    translation: tuple[float, float, float] | None = None
    rotation: tuple[float, float, float, float] | None = None
    scale: tuple[float, float, float] | None = None
    weights: list[float] | None = None


class SceneDef(NamedModel):
    nodes: list[int] = Field(default_factory=list)


class GltfDocument(GltfModel):
    asset: AssetInfo
    extensions_used: list[str] = Field(default_factory=list)
    extensions_required: list[str] = Field(default_factory=list)
    buffers: list[BufferDef] = Field(default_factory=list)
    buffer_views: list[BufferViewDef] = Field(default_factory=list)
    accessors: list[AccessorDef] = Field(default_factory=list)
    images: list[ImageDef] = Field(default_factory=list)
    samplers: list[SamplerDef] = Field(default_factory=list)
    textures: list[TextureDef] = Field(default_factory=list)
    materials: list[MaterialDef] = Field(default_factory=list)
    meshes: list[MeshDef] = Field(default_factory=list)
    skins: list[SkinDef] = Field(default_factory=list)
    cameras: list[CameraDef] = Field(default_factory=list)
    animations: list[AnimationDef] = Field(default_factory=list)
    nodes: list[NodeDef] = Field(default_factory=list)
    scenes: list[SceneDef] = Field(default_factory=list)
    scene: int | None = Field(default=None, ge=0)

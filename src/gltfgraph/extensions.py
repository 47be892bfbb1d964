"""Extension registry and the extensions decoded into typed entities.

Each recognized ``(scope, name)`` pair maps to a decode routine that runs only
when that key is present on an owner. Everything else is handed back as
opaque data and kept on the owner's ``extensions`` dict.
"""

from __future__ import annotations

import math
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from gltfgraph.errors import FormatError
from gltfgraph.materials import SpecularGlossiness, Texture, texture_ref
from gltfgraph.models import TextureInfoDef
from gltfgraph.references import lookup
from gltfgraph.warning_policy import WarningPolicy, emit_warning

KHR_LIGHTS_PUNCTUAL = "KHR_lights_punctual"
KHR_LIGHTS = "KHR_lights"
KHR_MATERIALS_PBR_SPECULAR_GLOSSINESS = "KHR_materials_pbrSpecularGlossiness"

Scope = Literal["asset", "node", "material", "generic"]

LightType = Literal["ambient", "directional", "point", "spot"]


@dataclass(eq=False)
class Light:
    """A light from either the punctual-lights extension or its legacy draft."""

    index: int
    type: LightType
    color: tuple[float, float, float] = (1.0, 1.0, 1.0)
    intensity: float = 1.0
    range: float | None = None
    inner_cone_angle: float = 0.0
    outer_cone_angle: float = math.pi / 4.0
    # legacy draft attenuation model
    distance: float = 0.0
    constant_attenuation: float = 1.0
    linear_attenuation: float = 0.0
    quadratic_attenuation: float = 0.0
    falloff_angle: float = math.pi / 2.0
    falloff_exponent: float = 0.0
    source_extension: str = KHR_LIGHTS_PUNCTUAL
    name: str | None = None
    extras: Any = None


@dataclass
class ExtensionContext:
    """State an extension decoder may consult while its owner is being built."""

    textures: list[Texture] = field(default_factory=list)
    lights: list[Light] = field(default_factory=list)
    warning_policy: WarningPolicy | None = None
    reported: set[str] = field(default_factory=set)


ExtensionDecoder = Callable[[Any, str, ExtensionContext], Any]


class ExtensionRegistry:
    def __init__(self) -> None:
        self._decoders: dict[tuple[Scope, str], ExtensionDecoder] = {}

    def register(self, scope: Scope, name: str) -> Callable[[ExtensionDecoder], ExtensionDecoder]:
        def decorator(fn: ExtensionDecoder) -> ExtensionDecoder:
            self._decoders[(scope, name)] = fn
            return fn

        return decorator

    def copy(self) -> ExtensionRegistry:
        """Independent registry with the same decoders, for adding custom ones."""
        clone = ExtensionRegistry()
        clone._decoders = dict(self._decoders)
        return clone

    def is_recognized(self, name: str) -> bool:
        return any(key[1] == name for key in self._decoders)

    def names(self) -> list[str]:
        return sorted({name for _scope, name in self._decoders})

    def decode(
        self,
        scope: Scope,
        extensions: dict[str, Any],
        where: str,
        context: ExtensionContext,
    ) -> tuple[dict[str, Any], dict[str, Any]]:
        """Split ``extensions`` into ``(recognized results, opaque leftovers)``."""
        recognized: dict[str, Any] = {}
        opaque: dict[str, Any] = {}
        for name, payload in extensions.items():
            decoder = self._decoders.get((scope, name))
            if decoder is None:
                opaque[name] = payload
                if name not in context.reported and not self.is_recognized(name):
                    context.reported.add(name)
                    emit_warning(
                        "W01",
                        f"{where}: extension {name!r} is not recognized; kept as opaque data",
                        policy=context.warning_policy,
                    )
                continue
            recognized[name] = decoder(payload, f"{where}.extensions.{name}", context)
        return recognized, opaque


# ---------------------------------------------------------------------------
# Payload schemas
# ---------------------------------------------------------------------------


class _ExtensionModel(BaseModel):
    model_config = ConfigDict(extra="allow", alias_generator=to_camel, populate_by_name=True)


class SpotDef(_ExtensionModel):
    inner_cone_angle: float = Field(default=0.0, ge=0.0)
    outer_cone_angle: float = Field(default=math.pi / 4.0, gt=0.0, le=math.pi / 2.0)


class PunctualLightDef(_ExtensionModel):
    type: Literal["directional", "point", "spot"]
    name: str | None = None
    color: tuple[float, float, float] = (1.0, 1.0, 1.0)
    intensity: float = Field(default=1.0, ge=0.0)
    range: float | None = Field(default=None, gt=0.0)
    spot: SpotDef | None = None
    extras: Any = None


class LegacyLightParamsDef(_ExtensionModel):
    distance: float = Field(default=0.0, ge=0.0)
    constant_attenuation: float = 1.0
    linear_attenuation: float = 0.0
    quadratic_attenuation: float = 0.0
    falloff_angle: float = math.pi / 2.0
    falloff_exponent: float = 0.0


class LegacyLightDef(_ExtensionModel):
    type: Literal["ambient", "directional", "point", "spot"]
    name: str | None = None
    color: list[float] = Field(default_factory=lambda: [1.0, 1.0, 1.0], min_length=3, max_length=4)
    intensity: float = 1.0
    ambient: LegacyLightParamsDef | None = None
    directional: LegacyLightParamsDef | None = None
    point: LegacyLightParamsDef | None = None
    spot: LegacyLightParamsDef | None = None
    extras: Any = None


class LightListDef(_ExtensionModel):
    lights: list[dict[str, Any]] = Field(default_factory=list)


class NodeLightDef(_ExtensionModel):
    light: int = Field(ge=0)


class SpecularGlossinessDef(_ExtensionModel):
    diffuse_factor: tuple[float, float, float, float] = (1.0, 1.0, 1.0, 1.0)
    diffuse_texture: TextureInfoDef | None = None
    specular_factor: tuple[float, float, float] = (1.0, 1.0, 1.0)
    glossiness_factor: float = Field(default=1.0, ge=0.0, le=1.0)
    specular_glossiness_texture: TextureInfoDef | None = None


def _validate(model: type[BaseModel], payload: Any, where: str) -> Any:
    try:
        return model.model_validate(payload)
    except PydanticValidationError as e:
        raise FormatError(f"{where}: invalid extension payload:\n{e}") from e


# ---------------------------------------------------------------------------
# Built-in decoders
# ---------------------------------------------------------------------------

default_registry = ExtensionRegistry()


@default_registry.register("asset", KHR_LIGHTS_PUNCTUAL)
def _decode_punctual_lights(payload: Any, where: str, context: ExtensionContext) -> list[Light]:
    lights: list[Light] = []
    for raw in _validate(LightListDef, payload, where).lights:
        item_where = f"{where}.lights[{len(lights)}]"
        light = _validate(PunctualLightDef, raw, item_where)
        spot = light.spot
        if light.type == "spot" and spot is None:
            spot = SpotDef()
        if spot is not None and spot.inner_cone_angle >= spot.outer_cone_angle:
            raise FormatError(f"{item_where}.spot: innerConeAngle must be < outerConeAngle")
        lights.append(
            Light(
                index=len(context.lights) + len(lights),
                type=light.type,
                color=tuple(light.color),
                intensity=light.intensity,
                range=light.range,
                inner_cone_angle=spot.inner_cone_angle if spot else 0.0,
                outer_cone_angle=spot.outer_cone_angle if spot else math.pi / 4.0,
                source_extension=KHR_LIGHTS_PUNCTUAL,
                name=light.name,
                extras=light.extras,
            )
        )
    context.lights.extend(lights)
    return lights


@default_registry.register("asset", KHR_LIGHTS)
def _decode_legacy_lights(payload: Any, where: str, context: ExtensionContext) -> list[Light]:
    lights: list[Light] = []
    for raw in _validate(LightListDef, payload, where).lights:
        light = _validate(LegacyLightDef, raw, f"{where}.lights[{len(lights)}]")
        params = getattr(light, light.type) or LegacyLightParamsDef()
        lights.append(
            Light(
                index=len(context.lights) + len(lights),
                type=light.type,
                color=tuple(light.color[:3]),
                intensity=light.intensity,
                distance=params.distance,
                constant_attenuation=params.constant_attenuation,
                linear_attenuation=params.linear_attenuation,
                quadratic_attenuation=params.quadratic_attenuation,
                falloff_angle=params.falloff_angle,
                falloff_exponent=params.falloff_exponent,
                source_extension=KHR_LIGHTS,
                name=light.name,
                extras=light.extras,
            )
        )
    context.lights.extend(lights)
    return lights


def _node_light(extension: str) -> ExtensionDecoder:
    def decode(payload: Any, where: str, context: ExtensionContext) -> Light:
        ref = _validate(NodeLightDef, payload, where)
        candidates = [light for light in context.lights if light.source_extension == extension]
        return lookup(candidates, ref.light, f"{where}.light", f"{extension} lights")

    return decode


default_registry.register("node", KHR_LIGHTS_PUNCTUAL)(_node_light(KHR_LIGHTS_PUNCTUAL))
default_registry.register("node", KHR_LIGHTS)(_node_light(KHR_LIGHTS))


@default_registry.register("material", KHR_MATERIALS_PBR_SPECULAR_GLOSSINESS)
def _decode_specular_glossiness(
    payload: Any, where: str, context: ExtensionContext
) -> SpecularGlossiness:
    sg = _validate(SpecularGlossinessDef, payload, where)
    return SpecularGlossiness(
        diffuse_factor=tuple(sg.diffuse_factor),
        diffuse_texture=texture_ref(sg.diffuse_texture, context.textures, f"{where}.diffuseTexture"),
        specular_factor=tuple(sg.specular_factor),
        glossiness_factor=sg.glossiness_factor,
        specular_glossiness_texture=texture_ref(
            sg.specular_glossiness_texture, context.textures, f"{where}.specularGlossinessTexture"
        ),
    )

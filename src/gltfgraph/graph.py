"""Resolved scene-graph entities.

All cross references here are direct object relations into arrays owned by
the :class:`~gltfgraph.asset.Asset`; nothing holds raw indices any more.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Literal

import numpy as np

from gltfgraph.accessors import Accessor
from gltfgraph.bounds import BoundingBox
from gltfgraph.extensions import Light
from gltfgraph.materials import Material
from gltfgraph.transforms import IDENTITY_QUATERNION, compose_trs, quaternion_normalize, quaternion_slerp

Interpolation = Literal["LINEAR", "STEP", "CUBICSPLINE"]
TargetPath = Literal["translation", "rotation", "scale", "weights"]

MODE_POINTS = 0
MODE_LINES = 1
MODE_LINE_LOOP = 2
MODE_LINE_STRIP = 3
MODE_TRIANGLES = 4
MODE_TRIANGLE_STRIP = 5
MODE_TRIANGLE_FAN = 6


@dataclass(eq=False)
class Primitive:
    attributes: dict[str, Accessor]
    indices: Accessor | None = None
    material: Material | None = None
    mode: int = MODE_TRIANGLES
    targets: list[dict[str, Accessor]] = field(default_factory=list)
    extensions: dict[str, Any] = field(default_factory=dict)
    extras: Any = None
    bounding_box: BoundingBox = field(default_factory=BoundingBox.empty)

    @property
    def positions(self) -> Accessor | None:
        return self.attributes.get("POSITION")


@dataclass(eq=False)
class Mesh:
    index: int
    primitives: list[Primitive]
    weights: list[float] = field(default_factory=list)
    name: str | None = None
    extensions: dict[str, Any] = field(default_factory=dict)
    extras: Any = None
    bounding_box: BoundingBox = field(default_factory=BoundingBox.empty)


@dataclass(eq=False)
class Camera:
    index: int
    type: Literal["perspective", "orthographic"]
    znear: float
    zfar: float | None = None
    yfov: float | None = None
    aspect_ratio: float | None = None
    xmag: float | None = None
    ymag: float | None = None
    name: str | None = None
    extensions: dict[str, Any] = field(default_factory=dict)
    extras: Any = None
    # from the perspective or orthographic sub-object
    projection_extensions: dict[str, Any] = field(default_factory=dict)
    projection_extras: Any = None

    def projection_matrix(self, aspect_ratio: float | None = None) -> np.ndarray:
        """Projection matrix; ``aspect_ratio`` is used only when the camera declares none."""
        m = np.zeros((4, 4), dtype=np.float64)
        if self.type == "orthographic":
            near, far = self.znear, self.zfar
            m[0, 0] = 1.0 / self.xmag
            m[1, 1] = 1.0 / self.ymag
            m[2, 2] = 2.0 / (near - far)
            m[2, 3] = (far + near) / (near - far)
            m[3, 3] = 1.0
            return m

        aspect = self.aspect_ratio or aspect_ratio or 1.0
        focal = 1.0 / math.tan(0.5 * self.yfov)
        near = self.znear
        m[0, 0] = focal / aspect
        m[1, 1] = focal
        m[3, 2] = -1.0
        if self.zfar is None:
            m[2, 2] = -1.0
            m[2, 3] = -2.0 * near
        else:
            far = self.zfar
            m[2, 2] = (far + near) / (near - far)
            m[2, 3] = 2.0 * far * near / (near - far)
        return m


@dataclass(eq=False)
class Skin:
    index: int
    joints: list[Node]
    inverse_bind_matrices: Accessor | None = None
    skeleton: Node | None = None
    name: str | None = None
    extensions: dict[str, Any] = field(default_factory=dict)
    extras: Any = None

    def inverse_bind_matrix(self, joint: int) -> np.ndarray:
        """4x4 inverse bind matrix for ``joints[joint]``; identity when none are declared."""
        if not 0 <= joint < len(self.joints):
            raise IndexError(f"skins[{self.index}]: joint {joint} out of range")
        if self.inverse_bind_matrices is None:
            return np.eye(4, dtype=np.float64)
        return self.inverse_bind_matrices.read(joint)


@dataclass(eq=False)
class Node:
    index: int
    name: str | None = None
    children: list[Node] = field(default_factory=list)
    parent: Node | None = None
    mesh: Mesh | None = None
    camera: Camera | None = None
    skin: Skin | None = None
    light: Light | None = None
    matrix: np.ndarray | None = None
    translation: tuple[float, float, float] = (0.0, 0.0, 0.0)
    rotation: tuple[float, float, float, float] = IDENTITY_QUATERNION
    scale: tuple[float, float, float] = (1.0, 1.0, 1.0)
    weights: list[float] | None = None
    extensions: dict[str, Any] = field(default_factory=dict)
    extras: Any = None
    bounding_box: BoundingBox = field(default_factory=BoundingBox.empty)

    @property
    def local_matrix(self) -> np.ndarray:
        if self.matrix is not None:
            return self.matrix.copy()
        return compose_trs(self.translation, self.rotation, self.scale)

    @property
    def world_matrix(self) -> np.ndarray:
        chain: list[Node] = []
        node: Node | None = self
        while node is not None:
            chain.append(node)
            node = node.parent
        result = np.eye(4, dtype=np.float64)
        for ancestor in reversed(chain):
            result = result @ ancestor.local_matrix
        return result

    def walk(self):
        """Yield this node and its descendants depth-first, parents before children."""
        stack: list[Node] = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def __repr__(self) -> str:
        return f"Node(index={self.index}, name={self.name!r}, children={[c.index for c in self.children]})"


@dataclass(eq=False)
class Scene:
    index: int
    nodes: list[Node]
    name: str | None = None
    extensions: dict[str, Any] = field(default_factory=dict)
    extras: Any = None

    @property
    def bounding_box(self) -> BoundingBox:
        box = BoundingBox.empty()
        for node in self.nodes:
            box = box.union(node.bounding_box)
        return box


@dataclass(eq=False)
class AnimationSampler:
    index: int
    input: Accessor
    output: Accessor
    interpolation: Interpolation = "LINEAR"
    extensions: dict[str, Any] = field(default_factory=dict)
    extras: Any = None

    @property
    def start_time(self) -> float:
        return float(self.input.read(0))

    @property
    def end_time(self) -> float:
        return float(self.input.read(self.input.count - 1))

    def evaluate(self, t: float, path: TargetPath = "translation") -> np.ndarray:
        """Interpolated value at time ``t``, clamped to the keyframe range."""
        times = self.input.read_all().astype(np.float64)
        keys = len(times)
        values = self.output.read_all().astype(np.float64)
        if self.interpolation == "CUBICSPLINE":
            values = values.reshape(keys, 3, -1)
            points = values[:, 1]
        else:
            values = values.reshape(keys, -1)
            points = values

        if keys == 1 or t <= times[0]:
            return self._finish(points[0], path)
        if t >= times[-1]:
            return self._finish(points[-1], path)

        i = int(np.searchsorted(times, t, side="right")) - 1
        t0, t1 = float(times[i]), float(times[i + 1])
        span = t1 - t0
        u = (t - t0) / span if span > 0.0 else 0.0

        if self.interpolation == "STEP":
            return self._finish(points[i], path)
        if self.interpolation == "LINEAR":
            if path == "rotation":
                return quaternion_slerp(points[i], points[i + 1], u)
            return points[i] + (points[i + 1] - points[i]) * u

        # cubic Hermite with [in-tangent, value, out-tangent] per key
        p0, m0 = values[i, 1], values[i, 2] * span
        p1, m1 = values[i + 1, 1], values[i + 1, 0] * span
        u2, u3 = u * u, u * u * u
        result = (
            (2 * u3 - 3 * u2 + 1) * p0
            + (u3 - 2 * u2 + u) * m0
            + (-2 * u3 + 3 * u2) * p1
            + (u3 - u2) * m1
        )
        return self._finish(result, path)

    @staticmethod
    def _finish(value: np.ndarray, path: TargetPath) -> np.ndarray:
        if path == "rotation":
            return quaternion_normalize(value)
        return np.array(value, dtype=np.float64)


@dataclass(eq=False)
class AnimationChannel:
    sampler: AnimationSampler
    path: TargetPath
    node: Node | None = None
    extensions: dict[str, Any] = field(default_factory=dict)
    extras: Any = None
    target_extensions: dict[str, Any] = field(default_factory=dict)
    target_extras: Any = None

    def evaluate(self, t: float) -> np.ndarray:
        return self.sampler.evaluate(t, self.path)


@dataclass(eq=False)
class Animation:
    index: int
    channels: list[AnimationChannel]
    samplers: list[AnimationSampler]
    name: str | None = None
    extensions: dict[str, Any] = field(default_factory=dict)
    extras: Any = None

    @property
    def duration(self) -> float:
        if not self.samplers:
            return 0.0
        return max(s.end_time for s in self.samplers) - min(s.start_time for s in self.samplers)

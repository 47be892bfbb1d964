"""Axis-aligned bounding boxes and bounding spheres."""

from __future__ import annotations

import itertools
import math
from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True)
class BoundingBox:
    min_point: np.ndarray
    max_point: np.ndarray

    @classmethod
    def empty(cls) -> BoundingBox:
        return cls(
            min_point=np.full(3, np.inf, dtype=np.float64),
            max_point=np.full(3, -np.inf, dtype=np.float64),
        )

    @classmethod
    def from_min_max(cls, min_point, max_point) -> BoundingBox:
        return cls(
            min_point=np.asarray(min_point, dtype=np.float64)[:3].copy(),
            max_point=np.asarray(max_point, dtype=np.float64)[:3].copy(),
        )

    @classmethod
    def from_points(cls, points: np.ndarray) -> BoundingBox:
        pts = np.asarray(points, dtype=np.float64).reshape(-1, 3)
        if len(pts) == 0:
            return cls.empty()
        return cls(min_point=pts.min(axis=0), max_point=pts.max(axis=0))

    @property
    def is_empty(self) -> bool:
        return bool(np.any(self.min_point > self.max_point))

    @property
    def center(self) -> np.ndarray:
        return (self.min_point + self.max_point) * 0.5

    @property
    def extents(self) -> np.ndarray:
        return self.max_point - self.min_point

    def union(self, other: BoundingBox) -> BoundingBox:
        if other.is_empty:
            return self
        if self.is_empty:
            return other
        return BoundingBox(
            min_point=np.minimum(self.min_point, other.min_point),
            max_point=np.maximum(self.max_point, other.max_point),
        )

    def transformed(self, matrix: np.ndarray) -> BoundingBox:
        """Box enclosing all eight corners after applying ``matrix``."""
        if self.is_empty:
            return self
        corners = np.array(
            [
                [c[0], c[1], c[2], 1.0]
                for c in itertools.product(*zip(self.min_point, self.max_point))
            ],
            dtype=np.float64,
        )
        moved = (np.asarray(matrix, dtype=np.float64) @ corners.T).T[:, :3]
        return BoundingBox(min_point=moved.min(axis=0), max_point=moved.max(axis=0))

    def to_sphere(self) -> BoundingSphere:
        if self.is_empty:
            return BoundingSphere(center=np.zeros(3, dtype=np.float64), radius=0.0)
        half = self.extents * 0.5
        return BoundingSphere(
            center=self.center,
            radius=math.sqrt(float(np.dot(half, half))),
        )

    def as_dict(self) -> dict[str, list[float]]:
        return {
            "min": [float(v) for v in self.min_point],
            "max": [float(v) for v in self.max_point],
        }


@dataclass(frozen=True)
class BoundingSphere:
    center: np.ndarray
    radius: float

"""Accessor entities: typed, strided, optionally sparse element reads.

Every geometry consumer reads buffer memory through :meth:`Accessor.read` or
:meth:`Accessor.read_all`. Those two methods are the only place where strides,
component types, sparse overrides and integer normalization are applied.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import numpy as np

from gltfgraph.bounds import BoundingBox
from gltfgraph.buffers import BufferView
from gltfgraph.errors import FormatError, InvalidReferenceError, RangeError, UnsupportedFeatureError
from gltfgraph.models import AccessorDef, GltfDocument, SparseDef
from gltfgraph.references import lookup, lookup_optional

BYTE = 5120
UNSIGNED_BYTE = 5121
SHORT = 5122
UNSIGNED_SHORT = 5123
INT = 5124
UNSIGNED_INT = 5125
FLOAT = 5126

# little endian, as stored on the wire
COMPONENT_DTYPES: dict[int, np.dtype] = {
    BYTE: np.dtype("<i1"),
    UNSIGNED_BYTE: np.dtype("<u1"),
    SHORT: np.dtype("<i2"),
    UNSIGNED_SHORT: np.dtype("<u2"),
    INT: np.dtype("<i4"),
    UNSIGNED_INT: np.dtype("<u4"),
    FLOAT: np.dtype("<f4"),
}

NORMALIZABLE_COMPONENTS: frozenset[int] = frozenset({BYTE, UNSIGNED_BYTE, SHORT, UNSIGNED_SHORT})
SPARSE_INDEX_COMPONENTS: frozenset[int] = frozenset({UNSIGNED_BYTE, UNSIGNED_SHORT, UNSIGNED_INT})

TYPE_COMPONENTS: dict[str, int] = {
    "SCALAR": 1,
    "VEC2": 2,
    "VEC3": 3,
    "VEC4": 4,
    "MAT4": 16,
}


def element_layout(type_name: str, component_type: int, where: str = "accessor") -> tuple[int, np.dtype]:
    """Return ``(component count, dtype)`` or raise for combinations outside the recognized set."""
    components = TYPE_COMPONENTS.get(type_name)
    if components is None:
        raise UnsupportedFeatureError(f"{where}: unsupported element type {type_name!r}")
    dtype = COMPONENT_DTYPES.get(component_type)
    if dtype is None:
        raise UnsupportedFeatureError(f"{where}: unsupported componentType {component_type}")
    return components, dtype


@dataclass(frozen=True)
class SparseOverrides:
    """Sorted element indices and the raw component values replacing them."""

    indices: np.ndarray
    values: np.ndarray
    extensions: dict[str, Any] = field(default_factory=dict)
    extras: Any = None
    # extensions and extras of the indices and values sub-objects
    indices_extensions: dict[str, Any] = field(default_factory=dict)
    indices_extras: Any = None
    values_extensions: dict[str, Any] = field(default_factory=dict)
    values_extras: Any = None

    def __len__(self) -> int:
        return len(self.indices)

    def lookup(self, element: int) -> np.ndarray | None:
        pos = int(np.searchsorted(self.indices, element))
        if pos < len(self.indices) and int(self.indices[pos]) == element:
            return self.values[pos]
        return None


class Accessor:
    """A typed sequence of ``count`` elements over zero or one BufferView."""

    def __init__(
        self,
        index: int,
        *,
        component_type: int,
        type: str,
        count: int,
        buffer_view: BufferView | None = None,
        byte_offset: int = 0,
        normalized: bool = False,
        min: list[float] | None = None,
        max: list[float] | None = None,
        sparse: SparseOverrides | None = None,
        name: str | None = None,
        extensions: dict[str, Any] | None = None,
        extras: Any = None,
    ) -> None:
        where = f"accessors[{index}]"
        self.components, self.dtype = element_layout(type, component_type, where)
        if normalized and component_type not in NORMALIZABLE_COMPONENTS:
            raise UnsupportedFeatureError(
                f"{where}: normalized is not supported for componentType {component_type}"
            )
        if count < 1:
            raise FormatError(f"{where}: count must be >= 1, got {count}")

        self.index = index
        self.component_type = component_type
        self.type = type
        self.count = count
        self.buffer_view = buffer_view
        self.byte_offset = byte_offset
        self.normalized = normalized
        self.min = list(min) if min is not None else None
        self.max = list(max) if max is not None else None
        self.sparse = sparse
        self.name = name
        self.extensions = extensions or {}
        self.extras = extras

        self.element_size = self.components * self.dtype.itemsize
        self.byte_stride = self.element_size
        if buffer_view is not None:
            if buffer_view.byte_stride is not None:
                if buffer_view.byte_stride < self.element_size:
                    raise FormatError(
                        f"{where}: bufferViews[{buffer_view.index}] byteStride "
                        f"{buffer_view.byte_stride} is smaller than element size {self.element_size}"
                    )
                self.byte_stride = buffer_view.byte_stride
            span_end = byte_offset + self.byte_stride * (count - 1) + self.element_size
            if span_end > buffer_view.byte_length:
                raise RangeError(
                    f"{where}: elements span {span_end} bytes, bufferViews[{buffer_view.index}] "
                    f"byteLength is {buffer_view.byte_length}"
                )
        elif byte_offset != 0:
            raise FormatError(f"{where}: byteOffset requires a bufferView")

        if sparse is not None:
            if self.byte_stride != self.element_size:
                raise UnsupportedFeatureError(
                    f"{where}: sparse overrides on a strided base view are not supported"
                )
            if len(sparse) and int(sparse.indices[-1]) >= count:
                raise InvalidReferenceError(
                    f"{where}.sparse.indices: index {int(sparse.indices[-1])} out of range "
                    f"for {count} elements"
                )

    @property
    def is_tightly_packed(self) -> bool:
        return self.byte_stride == self.element_size

    @property
    def is_integer(self) -> bool:
        """True when reads produce integers (non-normalized integer components)."""
        return self.dtype.kind in "iu" and not self.normalized

    @property
    def element_shape(self) -> tuple[int, ...]:
        if self.type == "SCALAR":
            return ()
        if self.type == "MAT4":
            return (4, 4)
        return (self.components,)

    @property
    def has_declared_bounds(self) -> bool:
        return (
            self.min is not None
            and self.max is not None
            and len(self.min) == self.components
            and len(self.max) == self.components
        )

    def read(self, element: int) -> float | int | np.ndarray:
        """Decode one element.

        Scalars come back as Python ``float``/``int``; vectors as 1-D arrays;
        MAT4 as a 4x4 array (column-major storage already undone).
        """
        if not 0 <= element < self.count:
            raise IndexError(f"accessors[{self.index}]: element {element} out of range [0, {self.count})")
        raw = None
        if self.sparse is not None:
            raw = self.sparse.lookup(element)
        if raw is None:
            if self.buffer_view is None:
                raw = np.zeros(self.components, dtype=self.dtype)
            else:
                raw = np.frombuffer(
                    self.buffer_view.data,
                    dtype=self.dtype,
                    count=self.components,
                    offset=self.byte_offset + element * self.byte_stride,
                )
        value = self._convert(raw.reshape(1, self.components))[0]
        if self.type == "SCALAR":
            return value.item()
        return value

    def read_all(self) -> np.ndarray:
        """Decode every element into an array of shape ``(count, *element_shape)``."""
        if self.buffer_view is None:
            raw = np.zeros((self.count, self.components), dtype=self.dtype)
        else:
            data = np.frombuffer(self.buffer_view.data, dtype=np.uint8)
            block = np.lib.stride_tricks.as_strided(
                data[self.byte_offset :],
                shape=(self.count, self.element_size),
                strides=(self.byte_stride, 1),
                writeable=False,
            )
            raw = np.ascontiguousarray(block).view(self.dtype).reshape(self.count, self.components)
        if self.sparse is not None and len(self.sparse):
            raw = raw.copy()
            raw[self.sparse.indices] = self.sparse.values
        return self._convert(raw)

    def scan_bounds(self) -> tuple[np.ndarray, np.ndarray]:
        """Componentwise (min, max) computed from every element."""
        values = self.read_all().reshape(self.count, self.components).astype(np.float64)
        return values.min(axis=0), values.max(axis=0)

    def bounding_box(self) -> BoundingBox:
        """Box over the first three components, from declared bounds when present."""
        if self.components < 3:
            raise UnsupportedFeatureError(
                f"accessors[{self.index}]: bounding box needs at least 3 components, type is {self.type}"
            )
        if self.has_declared_bounds:
            return BoundingBox.from_min_max(self.min, self.max)
        lo, hi = self.scan_bounds()
        return BoundingBox.from_min_max(lo, hi)

    def _convert(self, raw: np.ndarray) -> np.ndarray:
        """Map raw ``(n, components)`` values to canonical numbers."""
        if self.dtype.kind == "f":
            values = raw.astype(np.float64)
        elif self.normalized:
            limit = float(np.iinfo(self.dtype).max)
            values = raw.astype(np.float64) / limit
            if self.dtype.kind == "i":
                values = np.maximum(values, -1.0)
        else:
            values = raw.astype(np.int64)
        n = values.shape[0]
        if self.type == "MAT4":
            return values.reshape(n, 4, 4).transpose(0, 2, 1).copy()
        if self.type == "SCALAR":
            return values.reshape(n)
        return values

    def __repr__(self) -> str:
        return (
            f"Accessor(index={self.index}, type={self.type}, componentType={self.component_type}, "
            f"count={self.count})"
        )


def resolve_accessors(document: GltfDocument, views: list[BufferView]) -> list[Accessor]:
    return [_resolve_accessor(index, acc, views) for index, acc in enumerate(document.accessors)]


def _resolve_accessor(index: int, acc: AccessorDef, views: list[BufferView]) -> Accessor:
    where = f"accessors[{index}]"
    view = lookup_optional(views, acc.buffer_view, f"{where}.bufferView", "bufferViews")
    sparse = None
    if acc.sparse is not None:
        components, dtype = element_layout(acc.type, acc.component_type, where)
        sparse = _resolve_sparse(where, acc.sparse, views, components, dtype)
    return Accessor(
        index,
        component_type=acc.component_type,
        type=acc.type,
        count=acc.count,
        buffer_view=view,
        byte_offset=acc.byte_offset,
        normalized=acc.normalized,
        min=acc.min,
        max=acc.max,
        sparse=sparse,
        name=acc.name,
        extensions=acc.extensions,
        extras=acc.extras,
    )


def _resolve_sparse(
    where: str,
    sparse: SparseDef,
    views: list[BufferView],
    components: int,
    dtype: np.dtype,
) -> SparseOverrides:
    index_dtype = COMPONENT_DTYPES.get(sparse.indices.component_type)
    if sparse.indices.component_type not in SPARSE_INDEX_COMPONENTS or index_dtype is None:
        raise UnsupportedFeatureError(
            f"{where}.sparse.indices: unsupported componentType {sparse.indices.component_type}"
        )

    index_view = lookup(views, sparse.indices.buffer_view, f"{where}.sparse.indices.bufferView", "bufferViews")
    value_view = lookup(views, sparse.values.buffer_view, f"{where}.sparse.values.bufferView", "bufferViews")

    indices = _read_packed(
        f"{where}.sparse.indices", index_view, sparse.indices.byte_offset, index_dtype, sparse.count
    ).astype(np.int64)
    values = _read_packed(
        f"{where}.sparse.values", value_view, sparse.values.byte_offset, dtype, sparse.count * components
    ).reshape(sparse.count, components)

    if len(indices) > 1 and np.any(np.diff(indices) <= 0):
        raise FormatError(f"{where}.sparse.indices: indices must be strictly increasing")
    return SparseOverrides(
        indices=indices,
        values=values,
        extensions=dict(sparse.extensions),
        extras=sparse.extras,
        indices_extensions=dict(sparse.indices.extensions),
        indices_extras=sparse.indices.extras,
        values_extensions=dict(sparse.values.extensions),
        values_extras=sparse.values.extras,
    )


def _read_packed(where: str, view: BufferView, byte_offset: int, dtype: np.dtype, n: int) -> np.ndarray:
    end = byte_offset + n * dtype.itemsize
    if end > view.byte_length:
        raise RangeError(
            f"{where}: {n} values span {end} bytes, bufferViews[{view.index}] byteLength "
            f"is {view.byte_length}"
        )
    return np.frombuffer(view.data, dtype=dtype, count=n, offset=byte_offset).copy()

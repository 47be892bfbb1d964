"""Index-to-object lookups shared by every resolution pass."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TypeVar

from gltfgraph.errors import InvalidReferenceError

T = TypeVar("T")


def lookup(items: Sequence[T], index: int, where: str, target: str) -> T:
    """Return ``items[index]`` or raise naming the referencing field.

    ``where`` is the referencing field (``"nodes[2].mesh"``), ``target`` the
    array it points into (``"meshes"``).
    """
    if not 0 <= index < len(items):
        raise InvalidReferenceError(
            f"{where}: index {index} out of range for {target} (len {len(items)})"
        )
    return items[index]


def lookup_optional(items: Sequence[T], index: int | None, where: str, target: str) -> T | None:
    if index is None:
        return None
    return lookup(items, index, where, target)

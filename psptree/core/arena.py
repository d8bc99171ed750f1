from __future__ import annotations

import enum
from typing import Any, List, Optional

import numpy as np

from psptree.core.position import Position

NULL = -1

_GROWTH_FACTOR = 2


class Side(enum.IntEnum):
    INNER = 0
    OUTER = 1


class NodeArena:
    """Column-wise node storage addressed by integer handles.

    Coordinates, split radii and the parent/inner/outer links live in numpy
    arrays; keys and values live in Python lists. ``NULL`` marks an absent
    link. Parent links never own anything: a node is owned by the single
    inner/outer slot that points at it.
    """

    __slots__ = (
        "dimension",
        "points",
        "radii",
        "parents",
        "children",
        "keys",
        "values",
        "_free",
        "_next",
        "_live",
    )

    def __init__(self, dimension: int, *, capacity: int = 16) -> None:
        if dimension <= 0:
            raise ValueError("dimension must be positive.")
        capacity = max(int(capacity), 1)
        self.dimension = int(dimension)
        self.points = np.zeros((capacity, self.dimension), dtype=np.float64)
        self.radii = np.zeros(capacity, dtype=np.float64)
        self.parents = np.full(capacity, NULL, dtype=np.int64)
        self.children = np.full((capacity, 2), NULL, dtype=np.int64)
        self.keys: List[Optional[Position]] = [None] * capacity
        self.values: List[Any] = [None] * capacity
        self._free: List[int] = []
        self._next = 0
        self._live = 0

    @property
    def capacity(self) -> int:
        return int(self.radii.shape[0])

    @property
    def live(self) -> int:
        return self._live

    def _grow(self) -> None:
        old = self.capacity
        new = old * _GROWTH_FACTOR
        points = np.zeros((new, self.dimension), dtype=np.float64)
        points[:old] = self.points
        radii = np.zeros(new, dtype=np.float64)
        radii[:old] = self.radii
        parents = np.full(new, NULL, dtype=np.int64)
        parents[:old] = self.parents
        children = np.full((new, 2), NULL, dtype=np.int64)
        children[:old] = self.children
        self.points = points
        self.radii = radii
        self.parents = parents
        self.children = children
        self.keys.extend([None] * (new - old))
        self.values.extend([None] * (new - old))

    def allocate(self, position: Position, value: Any, *, radius: float = np.inf) -> int:
        if position.dimension != self.dimension:
            raise ValueError(
                f"Position of dimension {position.dimension} does not match "
                f"arena dimension {self.dimension}."
            )
        if self._free:
            handle = self._free.pop()
        else:
            if self._next >= self.capacity:
                self._grow()
            handle = self._next
            self._next += 1
        self.points[handle] = position.coords
        self.radii[handle] = radius
        self.parents[handle] = NULL
        self.children[handle] = NULL
        self.keys[handle] = position
        self.values[handle] = value
        self._live += 1
        return handle

    def release(self, handle: int) -> None:
        if self.keys[handle] is None:
            raise ValueError(f"Handle {handle} is not allocated.")
        self.parents[handle] = NULL
        self.children[handle] = NULL
        self.keys[handle] = None
        self.values[handle] = None
        self._free.append(handle)
        self._live -= 1

    def child(self, handle: int, side: Side) -> int:
        return int(self.children[handle, side])

    def inner(self, handle: int) -> int:
        return int(self.children[handle, Side.INNER])

    def outer(self, handle: int) -> int:
        return int(self.children[handle, Side.OUTER])

    def parent(self, handle: int) -> int:
        return int(self.parents[handle])

    def radius(self, handle: int) -> float:
        return float(self.radii[handle])

    def key(self, handle: int) -> Position:
        key = self.keys[handle]
        if key is None:
            raise ValueError(f"Handle {handle} is not allocated.")
        return key

    def is_leaf(self, handle: int) -> bool:
        return self.inner(handle) == NULL and self.outer(handle) == NULL

    def slot_of(self, parent: int, child: int) -> Side:
        """Return which of ``parent``'s slots owns ``child``, by identity."""

        if self.inner(parent) == child:
            return Side.INNER
        if self.outer(parent) == child:
            return Side.OUTER
        raise ValueError(f"Node {child} is not a child of node {parent}.")

    def attach(self, parent: int, side: Side, child: int, radius: float) -> None:
        occupant = self.child(parent, side)
        if occupant != NULL:
            raise ValueError(
                f"Slot {side.name.lower()} of node {parent} is already owned by node {occupant}."
            )
        self.children[parent, side] = child
        self.parents[child] = parent
        self.radii[child] = radius

    def detach(self, child: int) -> tuple[int, Side]:
        """Unlink ``child`` from its parent and return where it hung."""

        parent = self.parent(child)
        if parent == NULL:
            raise ValueError(f"Node {child} is not attached.")
        side = self.slot_of(parent, child)
        self.children[parent, side] = NULL
        self.parents[child] = NULL
        return parent, side


__all__ = ["NULL", "NodeArena", "Side"]

from __future__ import annotations

from collections.abc import MutableMapping
from typing import Any, Callable, Generic, Iterator, List, Mapping, Optional, Set, TypeVar

from psptree.core.metrics import Metric
from psptree.core.position import Position, PositionLike
from psptree.core.tree import Entry, Neighbor, PSPTree
from psptree.diagnostics import log_operation
from psptree.logging import get_logger

LOGGER = get_logger("api.map")

T = TypeVar("T")

_MISSING = object()


class PSPTreeMap(MutableMapping, Generic[T]):
    """Map-style façade over `PSPTree`.

    Keys are `Position` objects (coordinate sequences are accepted and
    coerced). Enumeration walks the whole tree in pre-order and materialises
    the result, so ``keys()``/``entry_set()`` cost O(size).
    """

    def __init__(
        self,
        dimension: int,
        metric: Metric | str | Callable[..., float] | None = None,
        *,
        sentinel: PositionLike | None = None,
        seed: int | None = None,
    ) -> None:
        self._tree: PSPTree = PSPTree(dimension, metric, sentinel=sentinel, seed=seed)

    @property
    def tree(self) -> PSPTree:
        return self._tree

    @property
    def dimension(self) -> int:
        return self._tree.dimension

    # MutableMapping protocol -----------------------------------------

    def __getitem__(self, pos: PositionLike) -> T:
        value = self._tree.get(pos, _MISSING)
        if value is _MISSING:
            raise KeyError(pos)
        return value

    def __setitem__(self, pos: PositionLike, value: T) -> None:
        self._tree.insert(pos, value)

    def __delitem__(self, pos: PositionLike) -> None:
        if self._tree.delete(pos, _MISSING) is _MISSING:
            raise KeyError(pos)

    def __iter__(self) -> Iterator[Position]:
        return iter(list(self._tree.positions()))

    def __len__(self) -> int:
        return len(self._tree)

    def __contains__(self, pos: object) -> bool:
        return self._tree.contains(pos)  # type: ignore[arg-type]

    # Java-style surface ----------------------------------------------

    def put(self, pos: PositionLike, value: T) -> Optional[T]:
        return self._tree.insert(pos, value)

    def remove(self, pos: PositionLike, default: Any = None) -> Optional[T]:
        return self._tree.delete(pos, default)

    def contains_key(self, pos: PositionLike) -> bool:
        return self._tree.contains(pos)

    def contains_value(self, value: Any) -> bool:
        return any(stored == value for stored in self._tree.values())

    def size(self) -> int:
        return len(self._tree)

    def is_empty(self) -> bool:
        return self._tree.is_empty()

    def clear(self) -> None:
        with log_operation(LOGGER, "clear") as op_log:
            op_log.add_metadata(discarded=len(self._tree))
            self._tree.clear()

    # Enumeration reads values during the walk instead of re-looking each key up.
    def values(self) -> List[T]:  # type: ignore[override]
        return list(self._tree.values())

    def items(self) -> List[tuple[Position, T]]:  # type: ignore[override]
        return [(position, value) for position, value in self._tree.entries()]

    def key_set(self) -> Set[Position]:
        return set(self._tree.positions())

    def entry_set(self) -> List[Entry]:
        return list(self._tree.entries())

    def put_all(self, other: Mapping[PositionLike, T]) -> None:
        with log_operation(LOGGER, "bulk_load") as op_log:
            before = len(self._tree)
            for pos, value in other.items():
                self._tree.insert(pos, value)
            op_log.add_metadata(
                offered=len(other), inserted=len(self._tree) - before, size=len(self._tree)
            )

    def nearest(self, pos: PositionLike) -> Optional[Neighbor]:
        return self._tree.nearest_neighbor(pos)

    def k_nearest_neighbor(self, pos: PositionLike, k: int) -> List[Neighbor]:
        return self._tree.k_nearest_neighbors(pos, k)

    # Printing ----------------------------------------------------------

    def __str__(self) -> str:
        body = "".join(f"{position!r}={value} ;\n" for position, value in self._tree.entries())
        return "{\n" + body + "}"

    def __repr__(self) -> str:
        return (
            f"PSPTreeMap(dimension={self._tree.dimension}, "
            f"metric={self._tree.metric.name!r}, size={len(self._tree)})"
        )


__all__ = ["PSPTreeMap"]

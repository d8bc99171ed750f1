from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Callable, Iterator, List, NamedTuple, Optional, Set, Tuple

import numpy as np

from psptree import config as px_config
from psptree.core.arena import NULL, NodeArena, Side
from psptree.core.metrics import Metric, resolve_metric
from psptree.core.position import Position, PositionLike, as_position
from psptree.logging import get_logger

LOGGER = get_logger("core.tree")

_WARNED_METRICS: set[str] = set()


class Entry(NamedTuple):
    position: Position
    value: Any


class Neighbor(NamedTuple):
    position: Position
    value: Any
    distance: float


class Probe(NamedTuple):
    """Result of one nearest-neighbour search.

    ``distance`` is the candidate's own distance to the query; ``bound`` is the
    best distance seen anywhere during the search.
    """

    handle: int
    distance: float
    bound: float


@dataclass
class TreeAudit:
    """Structural report produced by `PSPTree.audit`."""

    nodes: int = 0
    depth: int = 0
    radius_violations: List[Position] = field(default_factory=list)
    partition_violations: List[Tuple[Position, Position, str]] = field(default_factory=list)
    link_violations: List[Position] = field(default_factory=list)
    duplicate_positions: List[Position] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not (
            self.radius_violations
            or self.partition_violations
            or self.link_violations
            or self.duplicate_positions
        )


class PSPTree:
    """Online vantage-point tree keyed by `Position`.

    Every real node hangs below a synthetic sentinel placed inside the unit
    hypercube. A node's split radius is its distance to its parent at the time
    it was attached; children within that radius go to the inner slot, the
    rest to the outer slot. The tree never rebalances.

    Not safe for concurrent use: deletion and k-NN pass through intermediate
    states where nodes are detached.
    """

    def __init__(
        self,
        dimension: int,
        metric: Metric | str | Callable[..., float] | None = None,
        *,
        sentinel: PositionLike | None = None,
        seed: int | None = None,
        capacity: int = 16,
    ) -> None:
        if int(dimension) <= 0:
            raise ValueError("dimension must be positive.")
        runtime = px_config.runtime_config()
        self._dimension = int(dimension)
        self._metric = resolve_metric(metric)
        self._kernel = self._metric.pointwise_kernel
        self._capacity = int(capacity)
        if seed is None:
            seed = runtime.sentinel_seed
        self._rng = np.random.default_rng(seed)
        self._fixed_sentinel = self._coerce(sentinel) if sentinel is not None else None
        self._arena = NodeArena(self._dimension, capacity=self._capacity)
        self._sentinel = self._create_sentinel()
        self._size = 0
        if not self._metric.satisfies_triangle_inequality:
            if self._metric.name not in _WARNED_METRICS:
                LOGGER.warning(
                    "Metric '%s' violates the triangle inequality; "
                    "nearest-neighbour results may be inexact.",
                    self._metric.name,
                )
                _WARNED_METRICS.add(self._metric.name)

    # ------------------------------------------------------------------
    # Properties

    @property
    def dimension(self) -> int:
        return self._dimension

    @property
    def metric(self) -> Metric:
        return self._metric

    @property
    def num_points(self) -> int:
        return self._size

    @property
    def sentinel_position(self) -> Position:
        return self._arena.key(self._sentinel)

    def __len__(self) -> int:
        return self._size

    def is_empty(self) -> bool:
        return self._size == 0

    def __contains__(self, pos: object) -> bool:
        return self.contains(pos)  # type: ignore[arg-type]

    def __iter__(self) -> Iterator[Position]:
        return self.positions()

    def __repr__(self) -> str:
        return (
            f"PSPTree(dimension={self._dimension}, metric={self._metric.name!r}, "
            f"size={self._size})"
        )

    # ------------------------------------------------------------------
    # Helpers

    def _create_sentinel(self) -> int:
        if self._fixed_sentinel is not None:
            position = self._fixed_sentinel
        else:
            position = Position(tuple(self._rng.random(self._dimension).tolist()))
        return self._arena.allocate(position, None, radius=0.0)

    def _coerce(self, pos: PositionLike) -> Position:
        position = as_position(pos)
        if position.dimension != self._dimension:
            raise ValueError(
                f"Expected a position of dimension {self._dimension}; "
                f"got dimension {position.dimension}."
            )
        return position

    def validate_position(self, pos: PositionLike) -> Position:
        """Return ``pos`` as a `Position`, failing fast on a dimension mismatch."""

        return self._coerce(pos)

    def _distance_to(self, handle: int, query: np.ndarray) -> float:
        return float(self._kernel(self._arena.points[handle], query))

    def _root(self) -> int:
        return self._arena.outer(self._sentinel)

    # ------------------------------------------------------------------
    # Search

    def _descend(self, start: int, query: np.ndarray, bound: float) -> Probe:
        """Walk one boundary-test path from ``start``; ``start`` is the default candidate."""

        arena = self._arena
        candidate = start
        candidate_dist = self._distance_to(start, query)
        node = start
        dist = candidate_dist
        while True:
            if dist < bound:
                candidate, candidate_dist, bound = node, dist, dist
            if dist <= arena.radius(node):
                node = arena.inner(node)
            else:
                node = arena.outer(node)
            if node == NULL:
                break
            dist = self._distance_to(node, query)
        return Probe(candidate, candidate_dist, bound)

    def _search(self, start: int, query: np.ndarray, bound: float) -> Probe:
        arena = self._arena
        best = self._descend(start, query, bound)
        bound = best.bound
        level = best
        # Each level revisits only the untaken side of its own candidate; a
        # deeper level wins only when strictly closer than every earlier one.
        while True:
            if level.distance <= arena.radius(level.handle):
                other = arena.outer(level.handle)
            else:
                other = arena.inner(level.handle)
            if other == NULL:
                break
            level = self._descend(other, query, bound)
            bound = level.bound
            if level.distance < best.distance:
                best = level
        return Probe(best.handle, best.distance, bound)

    def nearest_handle(self, query: PositionLike) -> Optional[Probe]:
        """Run the two-phase search from the real root; ``None`` when empty."""

        root = self._root()
        if root == NULL:
            return None
        query_arr = self._coerce(query).as_array()
        return self._search(root, query_arr, math.inf)

    def _find(self, position: Position) -> int:
        probe = self.nearest_handle(position)
        if probe is None:
            return NULL
        if self._arena.key(probe.handle) == position:
            return probe.handle
        return NULL

    def nearest_neighbor(self, query: PositionLike) -> Optional[Neighbor]:
        probe = self.nearest_handle(query)
        if probe is None:
            return None
        position, value = self.entry(probe.handle)
        return Neighbor(position, value, probe.distance)

    def k_nearest_neighbors(self, query: PositionLike, k: int) -> List[Neighbor]:
        from psptree.queries.knn import knn

        return knn(self, query, k=k)

    # ------------------------------------------------------------------
    # Lookup

    def get(self, pos: PositionLike, default: Any = None) -> Any:
        handle = self._find(self._coerce(pos))
        if handle == NULL:
            return default
        return self._arena.values[handle]

    def contains(self, pos: PositionLike) -> bool:
        return self._find(self._coerce(pos)) != NULL

    def entry(self, handle: int) -> Entry:
        return Entry(self._arena.key(handle), self._arena.values[handle])

    # ------------------------------------------------------------------
    # Mutation

    def _insertion_slot(self, query: np.ndarray) -> Tuple[int, Side, float]:
        arena = self._arena
        probe = self.nearest_handle(query)
        parent = self._sentinel if probe is None else probe.handle
        while True:
            dist = self._distance_to(parent, query)
            if parent == self._sentinel or dist > arena.radius(parent):
                side = Side.OUTER
            else:
                side = Side.INNER
            occupant = arena.child(parent, side)
            if occupant == NULL:
                return parent, side, dist
            parent = occupant

    def _attach(self, handle: int) -> None:
        query = self._arena.points[handle].copy()
        parent, side, dist = self._insertion_slot(query)
        self._arena.attach(parent, side, handle, dist)

    def insert(self, pos: PositionLike, value: Any = None) -> Any:
        """Store ``value`` at ``pos``; return the value it replaced, if any."""

        position = self._coerce(pos)
        handle = self._find(position)
        if handle != NULL:
            previous = self._arena.values[handle]
            self._arena.values[handle] = value
            return previous
        handle = self._arena.allocate(position, value)
        self._attach(handle)
        self._size += 1
        return None

    def delete(self, pos: PositionLike, default: Any = None) -> Any:
        """Remove ``pos`` and return its value, or ``default`` when absent."""

        handle = self._find(self._coerce(pos))
        if handle == NULL:
            return default
        return self.remove_handle(handle)

    def remove_handle(self, handle: int) -> Any:
        """Detach ``handle`` from the tree, repair its slot and release it."""

        if handle == self._sentinel:
            raise ValueError("The sentinel cannot be removed.")
        arena = self._arena
        parent, side = arena.detach(handle)
        inner = arena.inner(handle)
        outer = arena.outer(handle)
        if inner != NULL and outer != NULL:
            arena.detach(inner)
            arena.detach(outer)
            self._attach(inner)
            self._attach(outer)
            LOGGER.debug(
                "Reattached subtrees %s and %s after removing %s.",
                arena.key(inner),
                arena.key(outer),
                arena.key(handle),
            )
        elif not arena.is_leaf(handle):
            child = inner if inner != NULL else outer
            arena.detach(child)
            radius = self._distance_to(parent, arena.points[child])
            arena.attach(parent, side, child, radius)
            LOGGER.debug("Spliced %s into the slot of %s.", arena.key(child), arena.key(handle))
        value = arena.values[handle]
        arena.release(handle)
        self._size -= 1
        return value

    def clear(self) -> None:
        self._arena = NodeArena(self._dimension, capacity=self._capacity)
        self._sentinel = self._create_sentinel()
        self._size = 0

    # ------------------------------------------------------------------
    # Traversal

    def _walk(self) -> Iterator[Tuple[int, int]]:
        root = self._root()
        if root == NULL:
            return
        stack = [(root, 0)]
        while stack:
            handle, depth = stack.pop()
            yield handle, depth
            outer = self._arena.outer(handle)
            inner = self._arena.inner(handle)
            if outer != NULL:
                stack.append((outer, depth + 1))
            if inner != NULL:
                stack.append((inner, depth + 1))

    def entries(self) -> Iterator[Entry]:
        """Pre-order entries: node, then inner subtree, then outer subtree."""

        for handle, _ in self._walk():
            yield self.entry(handle)

    def positions(self) -> Iterator[Position]:
        for handle, _ in self._walk():
            yield self._arena.key(handle)

    def values(self) -> Iterator[Any]:
        for handle, _ in self._walk():
            yield self._arena.values[handle]

    # ------------------------------------------------------------------
    # Introspection

    def audit(self) -> TreeAudit:
        """Check split radii, partitions, parent links and key uniqueness of every node."""

        arena = self._arena
        report = TreeAudit()
        root = self._root()
        if root == NULL:
            return report
        seen: Set[Position] = set()
        # Each frame carries the (ancestor, side) path leading to the node.
        stack: List[Tuple[int, Tuple[Tuple[int, Side], ...]]] = [
            (root, ((self._sentinel, Side.OUTER),))
        ]
        while stack:
            handle, path = stack.pop()
            report.nodes += 1
            report.depth = max(report.depth, len(path))
            position = arena.key(handle)
            if position in seen:
                report.duplicate_positions.append(position)
            seen.add(position)
            point = arena.points[handle]
            parent, parent_side = path[-1]
            if arena.parent(handle) != parent or arena.child(parent, parent_side) != handle:
                report.link_violations.append(position)
            expected = self._distance_to(parent, point)
            if not math.isclose(arena.radius(handle), expected, rel_tol=1e-12, abs_tol=1e-12):
                report.radius_violations.append(position)
            for ancestor, side in path[1:]:
                dist = self._distance_to(ancestor, point)
                within = dist <= arena.radius(ancestor)
                if within != (side == Side.INNER):
                    report.partition_violations.append(
                        (arena.key(ancestor), position, side.name.lower())
                    )
            for side in (Side.OUTER, Side.INNER):
                child = arena.child(handle, side)
                if child != NULL:
                    stack.append((child, path + ((handle, side),)))
        return report

    def render(self) -> str:
        """Indented dump of the structure, one node per line."""

        lines: List[str] = []
        root = self._root()
        if root == NULL:
            return "<empty>"
        stack: List[Tuple[int, int, str]] = [(root, 0, "root")]
        while stack:
            handle, depth, label = stack.pop()
            lines.append(
                f"{'  ' * depth}[{label}] {self._arena.key(handle)!r} "
                f"r={self._arena.radius(handle):.6g} -> {self._arena.values[handle]!r}"
            )
            for side in (Side.OUTER, Side.INNER):
                child = self._arena.child(handle, side)
                if child != NULL:
                    stack.append((child, depth + 1, side.name.lower()))
        return "\n".join(lines)


__all__ = ["Entry", "Neighbor", "PSPTree", "Probe", "TreeAudit"]

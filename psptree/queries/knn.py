from __future__ import annotations

from typing import Any, Callable, List, Tuple

import numpy as np

from psptree.core.metrics import Metric, resolve_metric
from psptree.core.position import PositionLike
from psptree.core.tree import Neighbor, PSPTree
from psptree.diagnostics import OperationLog, log_operation
from psptree.logging import get_logger


LOGGER = get_logger("queries.knn")


def bruteforce_knn(
    points: Any,
    query: Any,
    k: int,
    *,
    metric: Metric | str | Callable[..., float] | None = None,
) -> Tuple[np.ndarray, np.ndarray]:
    """Compute k-NN via dense distances; the reference for tree answers."""

    resolved = resolve_metric(metric)
    points_arr = np.asarray(points, dtype=np.float64)
    query_arr = np.asarray(query, dtype=np.float64)
    if points_arr.ndim != 2 or points_arr.shape[0] == 0:
        return np.empty(0, dtype=np.int64), np.empty(0, dtype=np.float64)
    dists = resolved.pairwise(query_arr, points_arr)[0]
    order = np.argsort(dists, kind="stable")[: max(int(k), 0)]
    return order.astype(np.int64), dists[order].astype(np.float64)


def nearest_neighbor(tree: PSPTree, query: PositionLike) -> Neighbor | None:
    return tree.nearest_neighbor(query)


def knn(tree: PSPTree, query: PositionLike, *, k: int) -> List[Neighbor]:
    """Return up to ``k`` neighbours of ``query`` sorted by distance.

    Each neighbour is found with a single nearest-neighbour search and then
    removed from the tree so the next search sees the remainder; all removed
    entries are reinserted before returning. The tree is therefore mutated
    during the call and must not be shared with concurrent readers.
    """

    with log_operation(LOGGER, "knn_query") as op_log:
        return _knn_impl(op_log, tree, query, k=k)


def _knn_impl(
    op_log: OperationLog,
    tree: PSPTree,
    query: PositionLike,
    *,
    k: int,
) -> List[Neighbor]:
    if k < 0:
        raise ValueError("k must be non-negative.")
    position = tree.validate_position(query)
    target = min(int(k), tree.num_points)

    extracted: List[Neighbor] = []
    try:
        for _ in range(target):
            probe = tree.nearest_handle(position)
            if probe is None:
                break
            found_at, value = tree.entry(probe.handle)
            extracted.append(Neighbor(found_at, value, probe.distance))
            tree.remove_handle(probe.handle)
    finally:
        for neighbor in extracted:
            tree.insert(neighbor.position, neighbor.value)

    # Extraction order is not guaranteed monotone; sorting is stable on ties.
    ordered = sorted(extracted, key=lambda item: item.distance)
    op_log.add_metadata(k=k, returned=len(ordered), size=tree.num_points)
    return ordered


__all__ = ["bruteforce_knn", "knn", "nearest_neighbor"]

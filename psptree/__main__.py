#!/usr/bin/env python
"""Quick-start guide for psptree library usage.

Run with: python -m psptree

This module intentionally avoids importing psptree internals to provide
a fast, clean startup for displaying help text.
"""

from __future__ import annotations

QUICKSTART = """\
================================================================================
                                  PSPTREE
        Online vantage-point tree for nearest-neighbour lookups
================================================================================

INSTALLATION
------------
    pip install -e .

BASIC USAGE (map interface)
---------------------------
    from psptree import PSPTreeMap, Position

    points = PSPTreeMap(dimension=2, metric="euclidean")
    points[Position.of(0.0, 0.0)] = "A"
    points[(4.0, 2.0)] = "B"          # coordinate tuples are coerced
    points.put((5.0, 1.0), "C")

    points.nearest((3.0, 2.0))                # Neighbor(position, value, distance)
    points.k_nearest_neighbor((0.0, 0.0), 2)  # sorted by distance
    del points[(4.0, 2.0)]

TREE CORE
---------
    from psptree import PSPTree

    tree = PSPTree(3, "manhattan", seed=0)
    tree.insert((0.0, 1.0, 2.0), "value")
    tree.get((0.0, 1.0, 2.0))
    tree.delete((0.0, 1.0, 2.0))
    tree.audit().ok       # split radii, partitions, parent links
    print(tree.render())  # indented structure dump

METRICS
-------
    euclidean, sqeuclidean, manhattan, or any f(a, b) -> float.
    sqeuclidean breaks the triangle inequality; searches may be inexact.

CONFIGURATION (environment)
---------------------------
    PSPTREE_METRIC              default metric name (euclidean)
    PSPTREE_LOG_LEVEL           logging level for the psptree logger (INFO)
    PSPTREE_ENABLE_DIAGNOSTICS  CPU/RSS figures in operation logs (1)
    PSPTREE_SENTINEL_SEED       seed for the sentinel position (unset = random)

BENCHMARKING CLI
----------------
    python -m cli.bench dimensions --points 1000 --dimension 1 --dimension 10
    python -m cli.bench nodes --size 1000 --size 10000 --dimension 2
    python -m cli.bench knn --tree-points 2048 --queries 128 --k 8

================================================================================
"""


def main() -> None:
    """Print quick-start guide."""
    print(QUICKSTART)


if __name__ == "__main__":
    main()

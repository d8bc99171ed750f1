from __future__ import annotations

import argparse
import time
from dataclasses import dataclass
from typing import List, Sequence, Tuple

import numpy as np
from numpy.random import default_rng

from psptree import PSPTree, bruteforce_knn
from tests.utils.datasets import gaussian_points, uniform_points


@dataclass(frozen=True)
class InsertTimingResult:
    dimension: int
    points: int
    elapsed_seconds: float
    throughput_points_per_sec: float


@dataclass(frozen=True)
class KnnBenchmarkResult:
    tree_points: int
    queries: int
    k: int
    build_seconds: float
    elapsed_seconds: float
    latency_ms: float
    divergent_queries: int

    @property
    def divergence_rate(self) -> float:
        return self.divergent_queries / self.queries if self.queries else 0.0


def _time_inserts(tree: PSPTree, points: np.ndarray) -> float:
    elapsed = 0.0
    for idx, row in enumerate(points):
        start = time.perf_counter()
        tree.insert(row, idx)
        elapsed += time.perf_counter() - start
    return elapsed


def _timing_result(dimension: int, count: int, elapsed: float) -> InsertTimingResult:
    throughput = count / elapsed if elapsed > 0 else float("inf")
    return InsertTimingResult(
        dimension=dimension,
        points=count,
        elapsed_seconds=elapsed,
        throughput_points_per_sec=throughput,
    )


def benchmark_dimensions(
    dimensions: Sequence[int],
    *,
    points: int,
    metric: str = "sqeuclidean",
    seed: int = 0,
) -> List[InsertTimingResult]:
    """Insert ``points`` uniform points into one fresh tree per dimension."""

    results: List[InsertTimingResult] = []
    for offset, dimension in enumerate(dimensions):
        rng = default_rng(seed + offset)
        data = uniform_points(rng, points, dimension)
        tree = PSPTree(dimension, metric, seed=seed)
        elapsed = _time_inserts(tree, data)
        results.append(_timing_result(dimension, points, elapsed))
    return results


def benchmark_nodes(
    sizes: Sequence[int],
    *,
    dimension: int,
    metric: str = "sqeuclidean",
    seed: int = 0,
) -> List[InsertTimingResult]:
    """Total insertion time for trees of increasing size."""

    results: List[InsertTimingResult] = []
    for offset, size in enumerate(sizes):
        rng = default_rng(seed + offset)
        data = uniform_points(rng, size, dimension)
        tree = PSPTree(dimension, metric, seed=seed)
        elapsed = _time_inserts(tree, data)
        results.append(_timing_result(dimension, size, elapsed))
    return results


def _build_tree(
    points: np.ndarray, *, metric: str, seed: int
) -> Tuple[PSPTree, float]:
    tree = PSPTree(int(points.shape[1]), metric, seed=seed)
    elapsed = _time_inserts(tree, points)
    return tree, elapsed


def benchmark_knn(
    *,
    tree_points: int,
    queries: int,
    dimension: int,
    k: int,
    metric: str = "euclidean",
    seed: int = 0,
) -> Tuple[PSPTree, KnnBenchmarkResult]:
    """Time k-NN queries and count answers that differ from brute force.

    A query is divergent when the distance multiset returned by the tree is
    not the brute-force one.
    """

    points = gaussian_points(default_rng(seed), tree_points, dimension)
    query_points = gaussian_points(default_rng(seed + 1), queries, dimension)
    tree, build_seconds = _build_tree(points, metric=metric, seed=seed)

    divergent = 0
    elapsed = 0.0
    for query in query_points:
        start = time.perf_counter()
        neighbors = tree.k_nearest_neighbors(query, k)
        elapsed += time.perf_counter() - start
        _, expected = bruteforce_knn(points, query, k, metric=metric)
        returned = np.asarray([n.distance for n in neighbors], dtype=np.float64)
        if returned.shape != expected.shape or not np.allclose(returned, expected):
            divergent += 1

    latency_ms = (elapsed / queries) * 1e3 if queries else 0.0
    return tree, KnnBenchmarkResult(
        tree_points=tree_points,
        queries=queries,
        k=k,
        build_seconds=build_seconds,
        elapsed_seconds=elapsed,
        latency_ms=latency_ms,
        divergent_queries=divergent,
    )


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Time PSP tree insertion against dimension and tree size."
    )
    parser.add_argument(
        "mode",
        choices=("dimensions", "nodes"),
        help="Sweep to run.",
    )
    parser.add_argument(
        "--points",
        type=int,
        default=1000,
        help="Points inserted per tree in the dimension sweep.",
    )
    parser.add_argument(
        "--max-dimension",
        type=int,
        default=1000,
        help="Largest dimension in the dimension sweep (powers of ten from 10).",
    )
    parser.add_argument(
        "--max-nodes",
        type=int,
        default=100_000,
        help="Largest tree in the node sweep (ten evenly spaced sizes).",
    )
    parser.add_argument(
        "--dimension",
        type=int,
        default=2,
        help="Dimension used by the node sweep.",
    )
    parser.add_argument(
        "--metric",
        default="sqeuclidean",
        help="Registered metric name.",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=0,
        help="Random seed for data generation.",
    )
    return parser.parse_args()


def main() -> None:
    args = _parse_args()
    if args.mode == "dimensions":
        dimensions = []
        dim = 10
        while dim <= args.max_dimension:
            dimensions.append(dim)
            dim *= 10
        results = benchmark_dimensions(
            dimensions, points=args.points, metric=args.metric, seed=args.seed
        )
    else:
        step = max(args.max_nodes // 10, 1)
        sizes = list(range(step, args.max_nodes + 1, step))
        results = benchmark_nodes(
            sizes, dimension=args.dimension, metric=args.metric, seed=args.seed
        )

    for result in results:
        print(
            f"insert | dimension={result.dimension} "
            f"points={result.points} "
            f"time={result.elapsed_seconds:.4f}s "
            f"throughput={result.throughput_points_per_sec:,.1f} pts/s"
        )


if __name__ == "__main__":
    main()

import pytest

from benchmarks.insert_timing import (
    benchmark_dimensions,
    benchmark_knn,
    benchmark_nodes,
)


def test_benchmark_dimensions_smoke():
    results = benchmark_dimensions([1, 4], points=16, metric="sqeuclidean", seed=0)

    assert [result.dimension for result in results] == [1, 4]
    assert all(result.points == 16 for result in results)
    assert all(result.elapsed_seconds >= 0.0 for result in results)
    assert all(result.throughput_points_per_sec > 0.0 for result in results)


def test_benchmark_nodes_smoke():
    results = benchmark_nodes([8, 24], dimension=2, metric="euclidean", seed=1)

    assert [result.points for result in results] == [8, 24]
    assert all(result.dimension == 2 for result in results)


def test_benchmark_knn_smoke():
    tree, result = benchmark_knn(
        tree_points=48,
        queries=6,
        dimension=3,
        k=4,
        metric="euclidean",
        seed=0,
    )

    assert tree.num_points == 48
    assert result.queries == 6
    assert result.k == 4
    assert result.latency_ms >= 0.0
    assert result.build_seconds >= 0.0
    assert 0 <= result.divergent_queries <= 6
    assert result.divergence_rate == pytest.approx(result.divergent_queries / 6)

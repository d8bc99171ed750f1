import sys

import numpy as np
import pytest

from psptree import Position, PSPTree

from tests.utils.datasets import gaussian_points


_PLANE = [
    ((0.0, 0.0), "A"),
    ((4.0, 2.0), "B"),
    ((5.0, 1.0), "C"),
    ((-4.0, -6.0), "D"),
    ((0.0, -3.0), "E"),
    ((7.0, 10.0), "F"),
]


def _plane_tree() -> PSPTree:
    tree = PSPTree(2, "sqeuclidean", sentinel=(0.25, 0.5))
    for pos, value in _PLANE:
        assert tree.insert(pos, value) is None
    return tree


def test_plane_layout_matches_split_rules():
    tree = _plane_tree()

    assert len(tree) == 6
    assert list(tree.values()) == ["A", "B", "C", "D", "E", "F"]
    report = tree.audit()
    assert report.ok
    assert report.nodes == 6
    for pos, value in _PLANE:
        assert tree.get(pos) == value


def test_plane_delete_reattaches_both_subtrees():
    tree = _plane_tree()

    assert tree.delete((4.0, 2.0)) == "B"
    assert tree.delete((7.0, 10.0)) == "F"

    assert len(tree) == 4
    assert list(tree.values()) == ["A", "C", "D", "E"]
    assert tree.contains((0.0, 0.0))
    assert not tree.contains((4.0, 2.0))
    assert tree.get((5.0, 1.0)) == "C"
    assert tree.get((-4.0, -6.0)) == "D"
    assert tree.get((0.0, -3.0)) == "E"
    assert tree.audit().ok


def test_four_dimensional_leaf_delete():
    tree = PSPTree(4, "sqeuclidean", sentinel=(0.5, 0.5, 0.5, 0.5))
    tree.insert((0.0, 0.0, 5.0, 3.0), "A")
    tree.insert((4.0, 2.0, -8.0, 6.0), "B")
    tree.insert((5.0, 1.0, -4.0, 0.0), "C")
    tree.insert((-4.0, -6.0, 0.0, 0.0), "D")

    assert list(tree.values()) == ["A", "B", "C", "D"]
    assert tree.audit().ok

    assert tree.delete((5.0, 1.0, -4.0, 0.0)) == "C"

    assert list(tree.values()) == ["A", "B", "D"]
    assert tree.get((0.0, 0.0, 5.0, 3.0)) == "A"
    assert tree.get((4.0, 2.0, -8.0, 6.0)) == "B"
    assert tree.get((-4.0, -6.0, 0.0, 0.0)) == "D"


def test_insert_existing_position_updates_value():
    tree = _plane_tree()

    assert tree.insert((5.0, 1.0), "C2") == "C"
    assert len(tree) == 6
    assert tree.get((5.0, 1.0)) == "C2"


def test_delete_missing_position_is_a_no_op():
    tree = _plane_tree()

    assert tree.delete((100.0, 100.0)) is None
    assert tree.delete((100.0, 100.0), "missing") == "missing"
    assert len(tree) == 6
    assert tree.delete((0.0, -3.0)) == "E"
    assert tree.delete((0.0, -3.0)) is None
    assert len(tree) == 5


def test_delete_single_child_splices_and_recomputes_radius():
    tree = PSPTree(1, "euclidean", sentinel=(0.5,))
    tree.insert((0.0,), "root")
    tree.insert((3.0,), "mid")
    tree.insert((5.0,), "leaf")

    assert list(tree.values()) == ["root", "mid", "leaf"]
    assert tree.delete((3.0,)) == "mid"

    assert list(tree.values()) == ["root", "leaf"]
    assert tree.get((5.0,)) == "leaf"
    assert tree.audit().ok
    assert "r=5" in tree.render()


def test_delete_root_keeps_remaining_entries_reachable():
    tree = _plane_tree()

    assert tree.delete((0.0, 0.0)) == "A"

    assert len(tree) == 5
    assert sorted(tree.values()) == ["B", "C", "D", "E", "F"]
    report = tree.audit()
    assert not report.radius_violations
    assert not report.link_violations


def test_empty_tree_behaviour():
    tree = PSPTree(3, seed=0)

    assert tree.is_empty()
    assert len(tree) == 0
    assert tree.get((0.0, 0.0, 0.0)) is None
    assert not tree.contains((0.0, 0.0, 0.0))
    assert tree.nearest_neighbor((0.0, 0.0, 0.0)) is None
    assert tree.nearest_handle((0.0, 0.0, 0.0)) is None
    assert list(tree.entries()) == []
    assert tree.audit().ok
    assert tree.render() == "<empty>"


def test_sentinel_is_never_returned():
    tree = PSPTree(2, sentinel=(0.5, 0.5))
    tree.insert((10.0, 10.0), "far")

    neighbor = tree.nearest_neighbor((0.5, 0.5))

    assert neighbor is not None
    assert neighbor.value == "far"
    assert not tree.contains((0.5, 0.5))
    assert (0.5, 0.5) not in tree
    assert Position.of(0.5, 0.5) not in list(tree.positions())


def test_seeded_sentinel_lies_in_unit_cube():
    first = PSPTree(5, seed=7)
    second = PSPTree(5, seed=7)

    assert first.sentinel_position == second.sentinel_position
    assert all(0.0 <= coord < 1.0 for coord in first.sentinel_position)


def test_sentinel_seed_from_environment(monkeypatch: pytest.MonkeyPatch):
    from psptree import config as px_config

    monkeypatch.setenv("PSPTREE_SENTINEL_SEED", "11")
    px_config.reset_runtime_config_cache()

    assert PSPTree(3).sentinel_position == PSPTree(3, seed=11).sentinel_position


def test_sentinel_cannot_be_removed():
    tree = PSPTree(2, sentinel=(0.5, 0.5))
    with pytest.raises(ValueError):
        tree.remove_handle(tree._sentinel)


def test_dimension_mismatch_raises():
    tree = PSPTree(2)
    with pytest.raises(ValueError):
        tree.insert((1.0, 2.0, 3.0), "x")
    with pytest.raises(ValueError):
        tree.get((1.0,))
    with pytest.raises(ValueError):
        tree.nearest_neighbor([[1.0, 2.0]])
    with pytest.raises(ValueError):
        PSPTree(0)


def test_clear_drops_every_entry():
    tree = _plane_tree()
    tree.clear()

    assert len(tree) == 0
    assert tree.get((0.0, 0.0)) is None
    tree.insert((1.0, 1.0), "again")
    assert tree.get((1.0, 1.0)) == "again"


def test_insert_then_get_for_random_points():
    rng = np.random.default_rng(3)
    points = gaussian_points(rng, 200, 3)
    tree = PSPTree(3, "euclidean", seed=3)

    for idx, row in enumerate(points):
        tree.insert(row, idx)
        assert tree.get(row) == idx

    assert len(tree) == 200
    assert sorted(tree.values()) == list(range(200))
    report = tree.audit()
    assert not report.radius_violations
    assert not report.link_violations


def test_insert_then_delete_for_random_points():
    rng = np.random.default_rng(5)
    points = gaussian_points(rng, 120, 2)
    tree = PSPTree(2, "manhattan", seed=5)

    for idx, row in enumerate(points):
        tree.insert(row, idx)
        assert tree.delete(row) == idx
        assert not tree.contains(row)

    assert tree.is_empty()


def test_nearest_neighbor_never_beats_bruteforce():
    rng = np.random.default_rng(9)
    points = gaussian_points(rng, 150, 2)
    queries = gaussian_points(rng, 40, 2)
    tree = PSPTree(2, "euclidean", seed=9)
    for idx, row in enumerate(points):
        tree.insert(row, idx)

    for query in queries:
        neighbor = tree.nearest_neighbor(query)
        truth = np.min(np.linalg.norm(points - query, axis=1))
        assert neighbor is not None
        assert neighbor.distance >= truth - 1e-12
        assert neighbor.distance == pytest.approx(
            float(np.linalg.norm(points[neighbor.value] - query))
        )


def test_custom_callable_metric():
    def chebyshev(a, b):
        return float(np.max(np.abs(a - b)))

    tree = PSPTree(2, chebyshev, sentinel=(0.5, 0.5))
    tree.insert((0.0, 0.0), "origin")
    tree.insert((3.0, 1.0), "east")

    assert tree.metric.name == "chebyshev"
    neighbor = tree.nearest_neighbor((2.5, 0.0))
    assert neighbor.value == "east"
    assert neighbor.distance == pytest.approx(1.0)


def test_render_lists_every_node():
    tree = _plane_tree()
    lines = tree.render().splitlines()

    assert len(lines) == 6
    assert lines[0].startswith("[root] (0.0, 0.0)")
    assert any(line.strip().startswith("[inner] (5.0, 1.0)") for line in lines)
    assert repr(tree) == "PSPTree(dimension=2, metric='sqeuclidean', size=6)"


def test_audit_reports_corrupted_radius():
    tree = _plane_tree()
    handle = tree.nearest_handle((5.0, 1.0)).handle
    tree._arena.radii[handle] = 99.0

    report = tree.audit()

    assert not report.ok
    assert Position.of(5.0, 1.0) in report.radius_violations
    assert report.nodes == 6


def test_sorted_keys_build_a_deep_chain_without_recursion_limits():
    count = sys.getrecursionlimit() + 100
    tree = PSPTree(1, "euclidean", sentinel=(0.5,))
    for value in range(count):
        tree.insert((float(value),), value)

    assert len(tree) == count
    for value in (0, count // 2, count - 1):
        assert tree.get((float(value),)) == value
    assert not tree.contains((-1.0,))

    middle = float(count // 2)
    assert tree.delete((middle,)) == count // 2
    assert len(tree) == count - 1
    assert tree.get((float(count - 1),)) == count - 1

    neighbors = tree.k_nearest_neighbors((float(count - 1),), 3)
    assert neighbors[0].value == count - 1
    assert len(tree) == count - 1


def test_audit_reports_duplicate_positions():
    tree = _plane_tree()
    duplicate = tree._arena.allocate(Position.of(5.0, 1.0), "again")
    tree._attach(duplicate)

    report = tree.audit()

    assert report.duplicate_positions == [Position.of(5.0, 1.0)]
    assert not report.ok
    assert report.nodes == 7

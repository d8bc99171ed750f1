import numpy as np
import pytest

from psptree import Position
from psptree.core.arena import NULL, NodeArena, Side


def _arena_with_chain():
    arena = NodeArena(2, capacity=2)
    root = arena.allocate(Position.of(0, 0), "root", radius=0.0)
    child = arena.allocate(Position.of(1, 0), "child")
    arena.attach(root, Side.OUTER, child, 1.0)
    return arena, root, child


def test_allocate_initialises_empty_links():
    arena = NodeArena(2)
    handle = arena.allocate(Position.of(1, 2), "v")

    assert arena.parent(handle) == NULL
    assert arena.inner(handle) == NULL
    assert arena.outer(handle) == NULL
    assert arena.radius(handle) == np.inf
    assert arena.key(handle) == Position.of(1, 2)
    assert arena.values[handle] == "v"
    assert arena.points[handle].tolist() == [1.0, 2.0]
    assert arena.is_leaf(handle)
    assert arena.live == 1


def test_growth_preserves_existing_nodes():
    arena = NodeArena(1, capacity=1)
    handles = [arena.allocate(Position.of(i), i) for i in range(9)]

    assert arena.capacity >= 9
    for i, handle in enumerate(handles):
        assert arena.key(handle) == Position.of(i)
        assert arena.values[handle] == i
        assert arena.points[handle, 0] == float(i)


def test_release_recycles_handles():
    arena = NodeArena(1)
    first = arena.allocate(Position.of(0), "a")
    arena.allocate(Position.of(1), "b")
    arena.release(first)

    assert arena.live == 1
    reused = arena.allocate(Position.of(2), "c")
    assert reused == first
    assert arena.key(reused) == Position.of(2)
    arena.release(reused)
    with pytest.raises(ValueError):
        arena.release(reused)


def test_attach_and_detach_by_identity():
    arena, root, child = _arena_with_chain()

    assert arena.outer(root) == child
    assert arena.parent(child) == root
    assert arena.radius(child) == 1.0
    assert arena.slot_of(root, child) is Side.OUTER

    parent, side = arena.detach(child)

    assert (parent, side) == (root, Side.OUTER)
    assert arena.outer(root) == NULL
    assert arena.parent(child) == NULL


def test_attach_refuses_occupied_slot():
    arena, root, _ = _arena_with_chain()
    other = arena.allocate(Position.of(5, 5), "other")
    with pytest.raises(ValueError):
        arena.attach(root, Side.OUTER, other, 2.0)


def test_detach_requires_attached_node():
    arena = NodeArena(2)
    loose = arena.allocate(Position.of(0, 0), None)
    with pytest.raises(ValueError):
        arena.detach(loose)


def test_allocate_rejects_wrong_dimension():
    arena = NodeArena(3)
    with pytest.raises(ValueError):
        arena.allocate(Position.of(0, 0), None)

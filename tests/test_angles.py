import pytest

from holefill.angles import (RULE_1, RULE_2, RULE_3, RULE_REFLEX, Angle,
                             AngleArena, AngleId, BucketQueue, RuleQueues,
                             classify)
from holefill.errors import StaleAngleError
from holefill.geometry import Vertex

from conftest import unit


def make_angle(degrees):
    return Angle((Vertex(unit(degrees)), Vertex((0, 0, 0)), Vertex(unit(0))))


@pytest.mark.parametrize("degree, rule", [
    (10.0, RULE_1),
    (75.0, RULE_1),
    (75.5, RULE_2),
    (135.0, RULE_2),
    (135.5, RULE_3),
    (179.9, RULE_3),
    (180.0, RULE_REFLEX),
])
def test_classify(degree, rule):
    assert classify(degree) == rule


def test_angle_degree_follows_vertices():
    angle = make_angle(60)
    assert angle.degree == pytest.approx(60.0)
    vp, v, vn = angle.vertices
    angle.set_vertices((Vertex(unit(120)), v, vn))
    assert angle.degree == pytest.approx(120.0)


def test_arena_rejects_released_ids():
    arena = AngleArena()
    first = arena.add(make_angle(30))
    arena.release(first)
    assert first not in arena
    with pytest.raises(StaleAngleError):
        arena.get(first)

    # The slot is reused under a new generation
    second = arena.add(make_angle(40))
    assert second.index == first.index
    assert second.generation == first.generation + 1
    assert arena.get(second).degree == pytest.approx(40.0)
    assert len(arena) == 1


def test_arena_rejects_unknown_ids():
    with pytest.raises(StaleAngleError):
        AngleArena().get(AngleId(3, 0))


def test_bucket_queue_pops_smallest_first():
    queue = BucketQueue("2")
    queue.insert("a", 120.0)
    queue.insert("b", 80.0)
    queue.insert("c", 100.0)
    assert len(queue) == 3
    assert queue.pop_smallest() == "b"
    assert queue.pop_smallest() == "c"
    assert queue.pop_smallest() == "a"
    assert queue.pop_smallest() is None
    assert len(queue) == 0


def test_bucket_queue_keeps_insertion_order_on_ties():
    queue = BucketQueue("1")
    for name in "xyz":
        queue.insert(name, 60.0)
    assert list(queue) == ["x", "y", "z"]


def test_bucket_queue_remove_is_idempotent():
    queue = BucketQueue("3")
    queue.insert("a", 150.0)
    queue.insert("b", 140.0)
    assert queue.remove("a")
    assert not queue.remove("a")
    assert "a" not in queue
    assert list(queue) == ["b"]


def test_bucket_queue_skips_deferred_ids():
    queue = BucketQueue("2")
    queue.insert("a", 90.0)
    queue.insert("b", 100.0)
    assert queue.has_candidates(skip={"a"})
    assert not queue.has_candidates(skip={"a", "b"})
    assert queue.pop_smallest(skip={"a"}) == "b"
    assert queue.pop_smallest(skip={"a"}) is None
    assert list(queue) == ["a"]


def test_reinserting_moves_entry_to_new_degree():
    queue = BucketQueue("2")
    queue.insert("a", 90.0)
    queue.insert("b", 100.0)
    queue.insert("a", 110.0)
    assert len(queue) == 2
    assert list(queue) == ["b", "a"]


def test_rule_queues_membership_is_exclusive():
    arena = AngleArena()
    queues = RuleQueues(arena)
    ids = {deg: arena.add(make_angle(deg)) for deg in (30, 100, 150, 180)}
    for angle_id in ids.values():
        queues.insert(angle_id)

    assert queues.rule_of(ids[30]) == RULE_1
    assert queues.rule_of(ids[100]) == RULE_2
    assert queues.rule_of(ids[150]) == RULE_3
    assert queues.rule_of(ids[180]) == RULE_REFLEX
    assert sum(len(queues[rule]) for rule in (RULE_1, RULE_2, RULE_3, RULE_REFLEX)) == 4


def test_reclassify_unchanged_angle_keeps_queue():
    arena = AngleArena()
    queues = RuleQueues(arena)
    angle_id = arena.add(make_angle(100))
    queues.insert(angle_id)
    assert queues.reclassify(angle_id) == RULE_2
    assert queues.reclassify(angle_id) == RULE_2
    assert len(queues[RULE_2]) == 1


def test_reclassify_after_degree_change():
    arena = AngleArena()
    queues = RuleQueues(arena)
    angle_id = arena.add(make_angle(100))
    queues.insert(angle_id)

    angle = arena.get(angle_id)
    vp, v, vn = angle.vertices
    angle.set_vertices((Vertex(unit(40)), v, vn))
    assert queues.reclassify(angle_id) == RULE_1
    assert angle_id not in queues[RULE_2]
    assert angle_id in queues[RULE_1]


def test_pop_smallest_clears_membership():
    arena = AngleArena()
    queues = RuleQueues(arena)
    angle_id = arena.add(make_angle(50))
    queues.insert(angle_id)
    assert queues.pop_smallest(RULE_1) == angle_id
    assert queues.rule_of(angle_id) is None
    assert queues.pop_smallest(RULE_1) is None

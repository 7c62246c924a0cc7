"""Boundary corners of the front and the rule queues they are sorted into.

Every corner of the front is an :class:`Angle`. Angles live in an
:class:`AngleArena` and refer to their neighbours by :class:`AngleId`
(slot index plus generation), so a corner that was merged away or closed
by rule 1 can't be reached through an old link by accident.

The queues mirror the four rule classes. They are processed in fixed
order (rule 1 before 2 before 3) and only inside one queue the smallest
angle comes first; this is not a global min-heap over all corners.
"""
import bisect
import itertools
from collections import namedtuple

from .errors import StaleAngleError
from .geometry import corner_degree

RULE_1 = "1"
RULE_2 = "2"
RULE_3 = "3"
RULE_REFLEX = "R"

RULES = (RULE_1, RULE_2, RULE_3, RULE_REFLEX)

AngleId = namedtuple("AngleId", ["index", "generation"])


def classify(degree):
    """Rule queue an angle of the given degree belongs to."""
    if degree <= 75.0:
        return RULE_1
    elif degree <= 135.0:
        return RULE_2
    elif degree < 180.0:
        return RULE_3
    return RULE_REFLEX


class Angle:
    """Corner (previous, current, next) of the front with its degree at current."""
    __slots__ = ("vertices", "degree", "previous", "next")

    def __init__(self, vertices):
        self.previous = None
        self.next = None
        self.set_vertices(vertices)

    def set_vertices(self, vertices):
        self.vertices = tuple(vertices)
        self.calculate_angle()

    def calculate_angle(self):
        vp, v, vn = self.vertices
        self.degree = corner_degree(vp.co, v.co, vn.co)

    def __repr__(self):
        return f"Angle({self.degree:.2f}, {self.vertices[1]!r})"


class AngleArena:
    """Storage for the angles of one fill, addressed by generation-checked ids."""

    def __init__(self):
        self._slots = []
        self._generations = []
        self._free = []

    def add(self, angle):
        if self._free:
            index = self._free.pop()
            self._slots[index] = angle
        else:
            index = len(self._slots)
            self._slots.append(angle)
            self._generations.append(0)
        return AngleId(index, self._generations[index])

    def get(self, angle_id):
        if angle_id not in self:
            raise StaleAngleError(f"Angle {angle_id} is not alive anymore.")
        return self._slots[angle_id.index]

    def release(self, angle_id):
        self.get(angle_id)
        self._slots[angle_id.index] = None
        self._generations[angle_id.index] += 1
        self._free.append(angle_id.index)

    def __contains__(self, angle_id):
        index, generation = angle_id
        return (0 <= index < len(self._slots)
                and self._generations[index] == generation
                and self._slots[index] is not None)

    def __len__(self):
        return len(self._slots) - len(self._free)


class BucketQueue:
    """Angle ids sorted by ascending degree; equal degrees keep insertion order."""

    def __init__(self, name):
        self.name = name
        self._entries = []  # (degree, seq, angle_id), kept sorted
        self._keys = {}
        self._counter = itertools.count()

    def insert(self, angle_id, degree):
        self.remove(angle_id)
        key = (degree, next(self._counter))
        bisect.insort(self._entries, key + (angle_id,))
        self._keys[angle_id] = key

    def remove(self, angle_id):
        """Remove an angle id. Returns False if it wasn't queued."""
        key = self._keys.pop(angle_id, None)
        if key is None:
            return False
        del self._entries[bisect.bisect_left(self._entries, key)]
        return True

    def pop_smallest(self, skip=()):
        """Remove and return the id with the smallest degree, or None."""
        for i, (_, _, angle_id) in enumerate(self._entries):
            if angle_id in skip:
                continue
            del self._entries[i]
            del self._keys[angle_id]
            return angle_id
        return None

    def has_candidates(self, skip=()):
        return any(entry[2] not in skip for entry in self._entries)

    def __contains__(self, angle_id):
        return angle_id in self._keys

    def __iter__(self):
        return (entry[2] for entry in self._entries)

    def __len__(self):
        return len(self._entries)

    def __repr__(self):
        return f"BucketQueue({self.name!r}, size={len(self)})"


class RuleQueues:
    """The four rule queues. Every live angle sits in exactly one of them."""

    def __init__(self, arena):
        self.arena = arena
        self.queues = {rule: BucketQueue(rule) for rule in RULES}
        self._membership = {}

    def insert(self, angle_id):
        self.remove(angle_id)
        degree = self.arena.get(angle_id).degree
        rule = classify(degree)
        self.queues[rule].insert(angle_id, degree)
        self._membership[angle_id] = rule
        return rule

    def remove(self, angle_id):
        rule = self._membership.pop(angle_id, None)
        if rule is not None:
            self.queues[rule].remove(angle_id)
        return rule

    def reclassify(self, angle_id):
        return self.insert(angle_id)

    def pop_smallest(self, rule, skip=()):
        angle_id = self.queues[rule].pop_smallest(skip)
        if angle_id is not None:
            del self._membership[angle_id]
        return angle_id

    def rule_of(self, angle_id):
        return self._membership.get(angle_id)

    def __getitem__(self, rule):
        return self.queues[rule]

"""Advancing front hole filling.

The front starts as the hole's border loop. Each corner of the front is
sorted into a rule queue by its angle, and the main loop keeps applying
the most urgent rule until only 3 or 4 vertices are left, which are then
closed directly:

* rule 1 (<= 75 degrees) closes the corner with one triangle,
* rule 2 (<= 135 degrees) moves the corner inwards along its bisector,
* rule 3 (< 180 degrees) splits the corner with one new vertex.

Every new triangle has to pass :meth:`AdvancingFront.is_in_hole` first,
which rejects it if it cuts through the filling built so far (and, if
configured, through the rest of the mesh).
"""
import logging
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional

import numpy as np

from .angles import (RULE_1, RULE_2, RULE_3, RULE_REFLEX, Angle, AngleArena,
                     RuleQueues)
from .errors import (FrontInconsistencyError, NoRuleApplicableError,
                     VertexNotFoundError)
from .geometry import (EPSILON, Plane, Vertex, average_length,
                       calculate_variances, normalize,
                       segment_intersects_triangle, triangles_intersect)

logger = logging.getLogger(__name__)

COLLISION_TESTS = ("filling", "all")


class State(Enum):
    ACTIVE = "active"
    DONE = "done"
    STUCK = "stuck"


@dataclass
class FillingConfig:
    """Settings of one hole filling.

    collision_test: "filling" only tests new triangles against the filling
        itself, "all" also against every face of the mesh.
    merge_threshold: new vertices closer than this to a front neighbour
        are merged with it.
    stop_after_iter: stop the main loop after this many iterations
        (for debugging, leaves the hole partly open).
    """
    collision_test: str = "filling"
    merge_threshold: float = 0.1
    stop_after_iter: Optional[int] = None

    def __post_init__(self):
        if self.collision_test not in COLLISION_TESTS:
            raise ValueError(f"collision_test must be one of {COLLISION_TESTS}, got {self.collision_test!r}")
        if self.merge_threshold < 0:
            raise ValueError("merge_threshold must not be negative")
        if self.stop_after_iter is not None and self.stop_after_iter < 1:
            raise ValueError("stop_after_iter must be at least 1")


class Filling:
    """The patch built so far: vertices and triangles indexing into them."""

    def __init__(self, vertices=()):
        self.vertices = list(vertices)
        self.faces = []

    def index_of(self, vertex):
        try:
            return self.vertices.index(vertex)
        except ValueError:
            raise VertexNotFoundError(f"{vertex!r} is not part of the filling.") from None

    def add_vertex(self, vertex):
        self.vertices.append(vertex)
        return len(self.vertices) - 1

    def add_face(self, a, b, c):
        face = (self.index_of(a), self.index_of(b), self.index_of(c))
        self.faces.append(face)
        return face

    def remove_vertex(self, vertex, survivor):
        """Remove a vertex, pointing its faces to survivor. Returns the number of dropped faces."""
        old = self.index_of(vertex)
        new = self.index_of(survivor)
        del self.vertices[old]
        if new > old:
            new -= 1

        faces = []
        for face in self.faces:
            face = tuple(new if i == old else (i - 1 if i > old else i) for i in face)
            # Faces that had both vertices collapse into a line
            if len(set(face)) == 3:
                faces.append(face)
        dropped = len(self.faces) - len(faces)
        self.faces = faces
        return dropped

    def points(self):
        return np.array([v.co for v in self.vertices], dtype=float).reshape(-1, 3)

    def face_array(self):
        return np.array(self.faces, dtype=int).reshape(-1, 3)

    def boundary_edges(self):
        """Undirected edges (as sorted index pairs) used by exactly one face."""
        counts = Counter()
        for a, b, c in self.faces:
            for edge in ((a, b), (b, c), (c, a)):
                counts[tuple(sorted(edge))] += 1
        return {edge for edge, n in counts.items() if n == 1}

    def __repr__(self):
        return f"Filling({len(self.vertices)} vertices, {len(self.faces)} faces)"


@dataclass
class FillResult:
    """Outcome of one fill. front is empty once the hole is closed."""
    filling: Filling
    front: np.ndarray
    iterations: int
    hole_size: int
    rule_counts: Dict[str, int] = field(default_factory=dict)
    merges: int = 0
    ignored_angles: int = 0
    complete: bool = True

    @property
    def created(self):
        """Number of vertices the fill added to the hole's own."""
        return len(self.filling.vertices) - self.hole_size

    def new_points(self):
        return self.filling.points()[self.hole_size:]


def _face_blocks(triangle, shape, skip):
    """True if an existing face cuts the candidate shape (a triangle or a segment)."""
    for corner in triangle:
        for point in skip:
            if np.array_equal(corner, point):
                return False
    if len(shape) == 3:
        return triangles_intersect(triangle[0], triangle[1], triangle[2], *shape)
    return segment_intersects_triangle(shape[0], shape[1], *triangle)


def keep_near_plane(v, vn, co):
    """Keep a new point close to the plane of its creating points.

    The coordinate (x, y or z) on which v and vn vary least is set to
    their average.
    """
    variance, average = calculate_variances([v, vn])
    co = np.array(co, dtype=float)
    if variance[0] < variance[1]:
        axis = 0 if variance[0] < variance[2] else 2
    else:
        axis = 1 if variance[1] < variance[2] else 2
    co[axis] = average[axis]
    return co


class AdvancingFront:
    """State of one hole filling: front, filling, corner ring and rule queues."""

    def __init__(self, loop, mesh_vertices=None, mesh_faces=None, config=None):
        self.config = config if config is not None else FillingConfig()

        points = np.asarray(loop, dtype=float)
        if points.ndim != 2 or points.shape[1] != 3:
            raise ValueError(f"Hole loop must have shape (n, 3), got {points.shape}")
        if len(points) < 3:
            raise ValueError(f"Hole loop needs at least 3 vertices, got {len(points)}")

        self.hole = [Vertex(p) for p in points]
        # The original form of the hole is never changed by merging
        self._ignore = set(self.hole)
        self.front = list(self.hole)
        self.filling = Filling(self.hole)

        self._mesh_triangles = None
        if mesh_vertices is not None and mesh_faces is not None and len(mesh_faces):
            mesh_vertices = np.asarray(mesh_vertices, dtype=float)
            self._mesh_triangles = mesh_vertices[np.asarray(mesh_faces, dtype=int)]
            self._mesh_min = self._mesh_triangles.min(axis=1)
            self._mesh_max = self._mesh_triangles.max(axis=1)

        self.arena = AngleArena()
        self.queues = RuleQueues(self.arena)
        self._corners = {}
        self._deferred = set()
        self.iterations = 0
        self.rule_counts = {RULE_1: 0, RULE_2: 0, RULE_3: 0}
        self.merges = 0
        self.state = State.ACTIVE

        self.compute_angles()

    # --- Corner ring ---

    def compute_angles(self):
        """Build the corner ring of the front and sort it into the queues."""
        n = len(self.front)
        ids = []
        for i in range(n):
            angle = Angle((self.front[i - 1], self.front[i], self.front[(i + 1) % n]))
            ids.append(self.arena.add(angle))
        for i, angle_id in enumerate(ids):
            angle = self.arena.get(angle_id)
            angle.previous = ids[i - 1]
            angle.next = ids[(i + 1) % n]
            self._corners[self.front[i]] = angle_id
            self.queues.insert(angle_id)

    def corner(self, vertex):
        """Id of the angle whose middle vertex is the given front vertex."""
        try:
            return self._corners[vertex]
        except KeyError:
            raise VertexNotFoundError(f"{vertex!r} is not part of the front.") from None

    def corners(self):
        """Angles in front order, walking the ring from the first front vertex."""
        if not self.front:
            return []
        start = self.corner(self.front[0])
        angles, angle_id = [], start
        while True:
            angle = self.arena.get(angle_id)
            angles.append(angle)
            angle_id = angle.next
            if angle_id == start or len(angles) > len(self.front):
                break
        return angles

    def _front_index(self, vertex):
        try:
            return self.front.index(vertex)
        except ValueError:
            raise VertexNotFoundError(f"{vertex!r} is not part of the front.") from None

    def _update(self, angle_id, vertices):
        """Give an angle new vertices and move it to the matching queue."""
        angle = self.arena.get(angle_id)
        self.queues.remove(angle_id)
        old_mid = angle.vertices[1]
        angle.set_vertices(vertices)
        if angle.vertices[1] is not old_mid:
            if self._corners.get(old_mid) == angle_id:
                del self._corners[old_mid]
            self._corners[angle.vertices[1]] = angle_id
        self.queues.insert(angle_id)

    def _release(self, angle_id):
        angle = self.arena.get(angle_id)
        self.queues.remove(angle_id)
        if self._corners.get(angle.vertices[1]) == angle_id:
            del self._corners[angle.vertices[1]]
        self._deferred.discard(angle_id)
        self.arena.release(angle_id)

    # --- Validity ---

    def is_in_hole(self, candidate, anchor_a, anchor_b=None):
        """Check if connecting candidate to the anchor(s) stays inside the hole.

        The new triangle (candidate, anchor_a, anchor_b), or the segment
        (candidate, anchor_a) if there is no second anchor, must not cut
        through a filling face. Faces touching an anchor are neighbours and
        skipped. With collision_test "all", mesh faces are tested as well.
        """
        anchors = [anchor_a.co]
        if anchor_b is not None:
            anchors.append(anchor_b.co)
            skip = anchors
        else:
            skip = anchors + [candidate.co]
        shape = [candidate.co] + anchors

        points = self.filling.points()
        for face in self.filling.faces:
            if _face_blocks(points[list(face)], shape, skip):
                return False

        if self.config.collision_test == "all" and self._mesh_triangles is not None:
            lo = np.min(shape, axis=0) - EPSILON
            hi = np.max(shape, axis=0) + EPSILON
            near = np.all(self._mesh_max >= lo, axis=1) & np.all(self._mesh_min <= hi, axis=1)
            for triangle in self._mesh_triangles[near]:
                if _face_blocks(triangle, shape, anchors):
                    return False

        return True

    # --- Rules ---

    def _rule1(self, angle_id):
        """Close a corner of <= 75 degrees with one triangle."""
        angle = self.arena.get(angle_id)
        vp, v, vn = angle.vertices

        if not self.is_in_hole(v, vp, vn):
            return False

        self.filling.add_face(v, vp, vn)
        # The vertex v is not a part of the (moving) front anymore
        del self.front[self._front_index(v)]

        prev_id, next_id = angle.previous, angle.next
        prev, nxt = self.arena.get(prev_id), self.arena.get(next_id)
        prev.next = next_id
        nxt.previous = prev_id
        self._update(prev_id, (prev.vertices[0], prev.vertices[1], vn))
        self._update(next_id, (vp, nxt.vertices[1], nxt.vertices[2]))
        self._release(angle_id)
        return True

    def _rule2(self, angle_id):
        """Replace a corner of <= 135 degrees by a new vertex on its bisector."""
        angle = self.arena.get(angle_id)
        vp, v, vn = angle.vertices

        # Work around the origin and move the new point back afterwards
        vp_local = vp.co - v.co
        vn_local = vn.co - v.co
        plane = Plane(np.zeros(3), vp_local, vn_local)
        co = normalize(plane.get_point(1, 1)) * average_length(vp_local, vn_local) + v.co
        v_new = Vertex(co)

        if not self.is_in_hole(v_new, vp, vn):
            return None

        self.filling.add_vertex(v_new)
        self.filling.add_face(v, vp, v_new)
        self.filling.add_face(v, v_new, vn)
        self.front[self._front_index(v)] = v_new

        prev = self.arena.get(angle.previous)
        nxt = self.arena.get(angle.next)
        self._update(angle_id, (vp, v_new, vn))
        self._update(angle.previous, (prev.vertices[0], prev.vertices[1], v_new))
        self._update(angle.next, (v_new, nxt.vertices[1], nxt.vertices[2]))
        return v_new

    def _rule3(self, angle_id):
        """Split a corner of < 180 degrees with a new vertex beside the next edge."""
        angle = self.arena.get(angle_id)
        vp, v, vn = angle.vertices

        vp_local = vp.co - v.co
        vn_local = vn.co - v.co
        half = vn_local / 2.0

        normal = normalize(np.cross(vp_local, vn_local))
        side = np.cross(normal, vn_local - half)
        if angle.degree < 180.0:
            side = -side
        plane = Plane(np.zeros(3), vn_local - half, normalize(side))
        co = plane.get_point(0, np.linalg.norm(vn_local)) + v.co + half
        v_new = Vertex(keep_near_plane(v.co, vn.co, co))

        if not self.is_in_hole(v_new, vp, vn):
            return None

        self.filling.add_vertex(v_new)
        self.filling.add_face(vn, v, v_new)
        self.front.insert(self._front_index(v) + 1, v_new)

        next_id = angle.next
        nxt = self.arena.get(next_id)
        new_angle = Angle((v, v_new, vn))
        new_id = self.arena.add(new_angle)
        new_angle.previous = angle_id
        new_angle.next = next_id
        self._corners[v_new] = new_id
        self.queues.insert(new_id)

        nxt.previous = new_id
        self._update(next_id, (v_new, nxt.vertices[1], nxt.vertices[2]))
        angle.next = new_id
        self._update(angle_id, (vp, v, v_new))
        return v_new

    def apply(self, rule, angle_id):
        """Apply a rule at the given corner.

        Returns (applied, new_vertex). A corner the rule failed on goes
        back into its queue unchanged and is skipped until the front
        changes again.
        """
        self.queues.remove(angle_id)
        if rule == RULE_1:
            applied = self._rule1(angle_id)
            v_new = None
        elif rule == RULE_2:
            v_new = self._rule2(angle_id)
            applied = v_new is not None
        elif rule == RULE_3:
            v_new = self._rule3(angle_id)
            applied = v_new is not None
        else:
            raise ValueError(f"Unknown rule {rule!r}")

        if applied:
            self.rule_counts[rule] += 1
            self._deferred.clear()
            logger.debug("Rule %s applied, front has %d vertices", rule, len(self.front))
        else:
            self.queues.insert(angle_id)
            self._deferred.add(angle_id)
        return applied, v_new

    # --- Merging ---

    def merge_by_distance(self, vertex):
        """Merge the front neighbours of a new vertex into it if they are close.

        Vertices of the original hole loop are never merged. Returns the
        number of merged vertices.
        """
        if vertex is None:
            return 0
        self.filling.index_of(vertex)
        i = self._front_index(vertex)
        n = len(self.front)
        compare = [self.front[i - 1], self.front[(i + 1) % n]]

        merged = 0
        for other in compare:
            if other is vertex or other in self._ignore:
                continue
            if np.linalg.norm(vertex.co - other.co) <= self.config.merge_threshold:
                self._merge(other, vertex)
                merged += 1
        return merged

    def _merge(self, old, survivor):
        """Merge old into survivor in the filling, the front and the corner ring."""
        self._front_index(survivor)
        dropped = self.filling.remove_vertex(old, survivor)
        del self.front[self._front_index(old)]

        old_id = self.corner(old)
        angle = self.arena.get(old_id)
        prev_id, next_id = angle.previous, angle.next
        prev, nxt = self.arena.get(prev_id), self.arena.get(next_id)

        if prev.vertices[1] is survivor:
            prev_vertices = (prev.vertices[0], prev.vertices[1], angle.vertices[2])
            next_vertices = (survivor, nxt.vertices[1], nxt.vertices[2])
        elif nxt.vertices[1] is survivor:
            prev_vertices = (prev.vertices[0], prev.vertices[1], survivor)
            next_vertices = (angle.vertices[0], nxt.vertices[1], nxt.vertices[2])
        else:
            raise FrontInconsistencyError(
                "Neither previous nor next angle contain the vertex merged into."
            )

        prev.next = next_id
        nxt.previous = prev_id
        self._release(old_id)
        self._update(prev_id, prev_vertices)
        self._update(next_id, next_vertices)
        self.merges += 1
        logger.debug("Merged %r into %r, dropped %d faces", old, survivor, dropped)

    # --- Closing ---

    def close_hole3(self):
        f = self.front
        self.filling.add_face(f[1], f[0], f[2])
        self.front = []

    def close_hole4(self):
        f = self.front
        self.filling.add_face(f[3], f[2], f[0])
        self.filling.add_face(f[1], f[0], f[2])
        self.front = []

    # --- Main loop ---

    def _next_rule(self):
        for rule in (RULE_1, RULE_2, RULE_3):
            angle_id = self.queues.pop_smallest(rule, skip=self._deferred)
            if angle_id is not None:
                return rule, angle_id
        return None, None

    def step(self):
        """Run one iteration of the main loop and return the state reached."""
        n = len(self.front)
        if n == 4:
            self.close_hole4()
        elif n == 3:
            self.close_hole3()
        elif n < 3:
            logger.warning("Front collapsed to %d vertices: %s", n, self.front)
        else:
            rule, angle_id = self._next_rule()
            if rule is None:
                self.state = State.STUCK
                raise NoRuleApplicableError(
                    "No rule could be applied. Stopping before entering endless loop.",
                    front=list(self.front), filling=self.filling,
                )
            _, v_new = self.apply(rule, angle_id)
            if v_new is not None:
                # Compute the distances to the neighbours, they may be merged
                self.merge_by_distance(v_new)
            return self.state

        self.state = State.DONE
        return self.state

    def run(self):
        """Run the main loop until the hole is closed (or the iteration cap is hit)."""
        cap = self.config.stop_after_iter
        while self.state is State.ACTIVE:
            if cap is not None and self.iterations >= cap:
                logger.info("Stopped after %d iterations, front has %d vertices", cap, len(self.front))
                break
            self.iterations += 1
            self.step()

        created = len(self.filling.vertices) - len(self.hole)
        logger.info(
            "Finished after %d iterations: %d new vertices, %d new faces",
            self.iterations, created, len(self.filling.faces),
        )
        ignored = len(self.queues[RULE_REFLEX])
        if ignored > 0:
            logger.warning("Ignored %d angles, because they were >= 180 degrees.", ignored)

        return FillResult(
            filling=self.filling,
            front=np.array([v.co for v in self.front], dtype=float).reshape(-1, 3),
            iterations=self.iterations,
            rule_counts=dict(self.rule_counts),
            merges=self.merges,
            ignored_angles=ignored,
            complete=self.state is State.DONE and not self.front,
            hole_size=len(self.hole),
        )


def fill_hole(loop, mesh_vertices=None, mesh_faces=None, config=None):
    """Fill one hole with the advancing front method.

    loop is the ordered border of the hole as an (n, 3) array of points.
    mesh_vertices / mesh_faces are only read when config.collision_test
    is "all".
    """
    return AdvancingFront(loop, mesh_vertices, mesh_faces, config).run()

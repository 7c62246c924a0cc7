"""Vector, plane and triangle helpers used by the advancing front."""
import numpy as np

EPSILON = 1e-9


class Vertex:
    """A point of the front or the filling. Two vertices are the same only if they are the same object."""
    __slots__ = ("co",)

    def __init__(self, co):
        self.co = np.array(co, dtype=float).reshape(3)

    def __repr__(self):
        return f"V(x={self.co[0]:.2f}, y={self.co[1]:.2f}, z={self.co[2]:.2f})"


class Plane:
    """Plane through an origin, spanned by two (normalized) directions."""

    def __init__(self, origin, a, b):
        self.origin = np.array(origin, dtype=float)
        self.a = normalize(a)
        self.b = normalize(b)

    def get_point(self, t1, t2):
        """Point at parameters (t1, t2) along the spanning directions."""
        return self.origin + t1 * self.a + t2 * self.b


def normalize(vector):
    vector = np.array(vector, dtype=float)
    length = np.linalg.norm(vector)
    if length < EPSILON:
        return vector
    return vector / length


def average_length(a, b):
    return (np.linalg.norm(a) + np.linalg.norm(b)) / 2.0


def corner_degree(vp, v, vn):
    """Angle in degrees at v between the edges towards vp and vn, in [0, 180]."""
    a = np.asarray(vp, dtype=float) - v
    b = np.asarray(vn, dtype=float) - v
    norms = np.linalg.norm(a) * np.linalg.norm(b)
    if norms < EPSILON:
        return 0.0
    cos_angle = np.clip(np.dot(a, b) / norms, -1.0, 1.0)
    return float(np.degrees(np.arccos(cos_angle)))


def calculate_variances(points):
    """Per-axis variance and average of a set of 3D points."""
    points = np.asarray(points, dtype=float).reshape(-1, 3)
    return points.var(axis=0), points.mean(axis=0)


# --- Triangle intersection ---

def _drop_axis(points, normal):
    # Project onto the coordinate plane the triangle is least tilted against
    axis = int(np.argmax(np.abs(normal)))
    keep = [i for i in range(3) if i != axis]
    return np.asarray(points)[..., keep]


def _orient(p, q, r):
    return (q[0] - p[0]) * (r[1] - p[1]) - (q[1] - p[1]) * (r[0] - p[0])


def _opposite_sides(o1, o2):
    return (o1 > EPSILON and o2 < -EPSILON) or (o1 < -EPSILON and o2 > EPSILON)


def _segments_cross(p1, p2, q1, q2):
    """True if two 2D segments cross properly (touching endpoints don't count)."""
    return (_opposite_sides(_orient(p1, p2, q1), _orient(p1, p2, q2))
            and _opposite_sides(_orient(q1, q2, p1), _orient(q1, q2, p2)))


def _strictly_inside(point, tri):
    o = [_orient(tri[i], tri[(i + 1) % 3], point) for i in range(3)]
    return all(x > EPSILON for x in o) or all(x < -EPSILON for x in o)


def _coplanar_overlap(t1, t2, normal):
    p1, p2 = _drop_axis(t1, normal), _drop_axis(t2, normal)
    for i in range(3):
        for j in range(3):
            if _segments_cross(p1[i], p1[(i + 1) % 3], p2[j], p2[(j + 1) % 3]):
                return True
    if any(_strictly_inside(p, p2) for p in p1) or any(_strictly_inside(p, p1) for p in p2):
        return True
    # Identical triangles have no crossing edges and no strictly inner vertex
    return _strictly_inside(p1.mean(axis=0), p2) or _strictly_inside(p2.mean(axis=0), p1)


def _plane_interval(tri, dist, direction):
    """Interval covered by a triangle on the line where it crosses the other plane."""
    points = [tri[i] for i in range(3) if dist[i] == 0.0]
    for i, j in ((0, 1), (1, 2), (2, 0)):
        if dist[i] * dist[j] < 0.0:
            t = dist[i] / (dist[i] - dist[j])
            points.append(tri[i] + t * (tri[j] - tri[i]))
    if not points:
        return None
    proj = [np.dot(p, direction) for p in points]
    return min(proj), max(proj)


def _signed_distances(points, origin, normal):
    dist = (points - origin) @ normal
    dist[np.abs(dist) < EPSILON] = 0.0
    return dist


def triangles_intersect(a, b, c, d, e, f):
    """Check if triangle (a, b, c) and triangle (d, e, f) overlap in 3D.

    Triangles that only touch in a shared vertex or along a shared edge
    are not considered intersecting, and degenerate triangles never are.
    """
    t1 = np.array([a, b, c], dtype=float)
    t2 = np.array([d, e, f], dtype=float)

    n1 = np.cross(t1[1] - t1[0], t1[2] - t1[0])
    n2 = np.cross(t2[1] - t2[0], t2[2] - t2[0])
    len1, len2 = np.linalg.norm(n1), np.linalg.norm(n2)
    if len1 < EPSILON or len2 < EPSILON:
        return False
    n1 /= len1
    n2 /= len2

    d2 = _signed_distances(t2, t1[0], n1)
    if np.all(d2 > 0) or np.all(d2 < 0):
        return False
    d1 = _signed_distances(t1, t2[0], n2)
    if np.all(d1 > 0) or np.all(d1 < 0):
        return False

    direction = np.cross(n1, n2)
    if not np.any(d1) or np.linalg.norm(direction) < EPSILON:
        return _coplanar_overlap(t1, t2, n1)

    direction /= np.linalg.norm(direction)
    i1 = _plane_interval(t1, d1, direction)
    i2 = _plane_interval(t2, d2, direction)
    if i1 is None or i2 is None:
        return False
    return min(i1[1], i2[1]) - max(i1[0], i2[0]) > EPSILON


def segment_intersects_triangle(p, q, a, b, c):
    """Check if the segment pq passes through the interior of triangle (a, b, c)."""
    tri = np.array([a, b, c], dtype=float)
    seg = np.array([p, q], dtype=float)
    normal = np.cross(tri[1] - tri[0], tri[2] - tri[0])
    length = np.linalg.norm(normal)
    if length < EPSILON or np.linalg.norm(seg[1] - seg[0]) < EPSILON:
        return False
    normal /= length

    dist = _signed_distances(seg, tri[0], normal)
    if not np.any(dist):
        flat_seg, flat_tri = _drop_axis(seg, normal), _drop_axis(tri, normal)
        if any(_strictly_inside(point, flat_tri) for point in flat_seg):
            return True
        return any(_segments_cross(flat_seg[0], flat_seg[1], flat_tri[i], flat_tri[(i + 1) % 3])
                   for i in range(3))
    if dist[0] * dist[1] >= 0.0:
        return False
    hit = seg[0] + (seg[1] - seg[0]) * dist[0] / (dist[0] - dist[1])
    return _strictly_inside(_drop_axis(hit, normal), _drop_axis(tri, normal))

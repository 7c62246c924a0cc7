"""Half-edge structure, only as far as needed to find the holes of a mesh."""


class Vertex:
    def __init__(self, x, y, z, id=None):
        self.x = x
        self.y = y
        self.z = z
        self.id = id
        self.halfEdge = None

    def __repr__(self):
        return f"V(id={self.id}, x={self.x:.2f}, y={self.y:.2f}, z={self.z:.2f})"


class Face:
    def __init__(self, id=None):
        self.id = id
        self.halfEdge = None

    def __repr__(self):
        return f"F(id={self.id})"


class HalfEdge:
    def __init__(self, id=None):
        self.id = id
        self.origin = None
        self.twin = None
        self.face = None
        self.next = None

    @property
    def destination(self):
        return self.next.origin

    def __repr__(self):
        twin_id = self.twin.id if self.twin else "None"
        return f"HE(id={self.id}, O={self.origin.id}, D={self.destination.id}, T={twin_id})"


def VFtoHEDS(vertices_coords, faces_indices):
    """Builds the half-edge structure of a vertex/face list.

    Returns (verticesArray, halfEdgesArray, facesArray, edge_to_he_map),
    the map going from (origin id, destination id) to the half-edge.
    """
    verticesArray = {i: Vertex(*v[:3], id=i) for i, v in enumerate(vertices_coords)}
    facesArray = {}
    halfEdgesArray = []
    edge_to_he_map = {}

    for face_id, face_vertex_indices in enumerate(faces_indices):
        face = Face(id=face_id)
        facesArray[face_id] = face

        loop = []
        for vertex_id in face_vertex_indices:
            he = HalfEdge(id=len(halfEdgesArray))
            he.origin = verticesArray[vertex_id]
            he.face = face
            if he.origin.halfEdge is None:
                he.origin.halfEdge = he
            loop.append(he)
            halfEdgesArray.append(he)

        for he, he_next in zip(loop, loop[1:] + loop[:1]):
            he.next = he_next
            edge_to_he_map[(he.origin.id, he_next.origin.id)] = he
        face.halfEdge = loop[0]

    # Twins run the other way along the same edge
    for he in halfEdgesArray:
        if he.twin is None:
            other = edge_to_he_map.get((he.destination.id, he.origin.id))
            if other is not None:
                he.twin = other
                other.twin = he

    return verticesArray, halfEdgesArray, facesArray, edge_to_he_map


def _next_boundary_halfedge(he):
    """Boundary half-edge leaving the destination of he, or None on non-manifold vertices."""
    candidate = he.next
    # Pivot around the destination until an edge without twin shows up
    while candidate.twin is not None:
        candidate = candidate.twin.next
        if candidate is he.next:
            return None
    return candidate


def _trace_loop(start, visited):
    loop = []
    he = start
    while True:
        visited.add(he)
        loop.append(he.origin)
        he = _next_boundary_halfedge(he)
        if he is None or he in visited and he is not start:
            return None
        if he is start:
            return loop


def detect_holes(halfEdgesArray, ignore_largest=False):
    """Detects hole boundaries (loops of Vertex objects)."""
    visited = set()
    loops = []

    for he in halfEdgesArray:
        # A boundary half-edge has no twin
        if he.twin is None and he not in visited:
            loop = _trace_loop(he, visited)
            if loop:
                loops.append(loop)

    print(f"{len(loops)} hole boundary loop(s) detected.")

    if ignore_largest and len(loops) > 1:
        loops.sort(key=len, reverse=True)
        return loops[1:]
    return loops

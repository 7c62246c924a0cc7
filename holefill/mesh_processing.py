# Computational Geometry final project 2025
import argparse
import logging

import numpy as np
import matplotlib.pyplot as plt
from scipy.spatial import cKDTree

from .advancing_front import COLLISION_TESTS, FillingConfig, fill_hole
from .errors import FillingError
from .halfedge import VFtoHEDS, detect_holes


# read obj file
def readObjFile(file_path):
    vertices = []
    faces = []
    with open(file_path, 'r') as obj_file:
        for line in obj_file:
            if line.startswith('v '):
                vertex = list(map(float, line.strip().split()[1:4]))
                vertices.append(vertex)
            elif line.startswith('f '):
                face_str = line.strip().split()[1:]
                # Only the vertex index counts, texture/normal indices are dropped
                face = [int(v.split('/')[0]) - 1 for v in face_str]
                # Polygons are split into a triangle fan
                for k in range(1, len(face) - 1):
                    faces.append([face[0], face[k], face[k + 1]])
    return vertices, faces


def writeObjFile(vertices, faces, output_file):
    """Writes vertex and face lists to an OBJ file."""
    with open(output_file, 'w') as obj_file:
        for vertex_coords in vertices:
            obj_file.write('v ' + ' '.join(map(str, vertex_coords)) + '\n')
        for face_indices in faces:
            # OBJ faces are 1-indexed
            obj_file.write('f ' + ' '.join(str(i + 1) for i in face_indices) + '\n')


def weld_vertices(vertices, faces, tolerance=1e-9):
    """Merges vertices closer than tolerance, dropping faces that collapse.

    Files that store every triangle with its own corners (like STL exports)
    would otherwise show every edge as a hole border.
    """
    points = np.asarray(vertices, dtype=float).reshape(-1, 3)
    if len(points) == 0:
        return [], []

    parent = list(range(len(points)))

    def root(i):
        while parent[i] != i:
            parent[i] = parent[parent[i]]
            i = parent[i]
        return i

    for i, j in cKDTree(points).query_pairs(tolerance):
        ri, rj = root(i), root(j)
        if ri != rj:
            parent[max(ri, rj)] = min(ri, rj)

    roots = [root(i) for i in range(len(points))]
    unique_roots, inverse = np.unique(roots, return_inverse=True)

    welded_faces = []
    for face in faces:
        new_face = [int(inverse[i]) for i in face]
        if len(set(new_face)) == len(new_face):
            welded_faces.append(new_face)
    return points[unique_roots].tolist(), welded_faces


def find_holes(vertices, faces, ignore_largest=False):
    """Border loops of the mesh as lists of vertex indices."""
    _, halfEdgesArray, _, _ = VFtoHEDS(vertices, faces)
    loops = detect_holes(halfEdgesArray, ignore_largest=ignore_largest)
    return [[v.id for v in loop] for loop in loops]


def attach_filling(vertices, faces, loop, result):
    """Adds a hole filling to the mesh lists.

    The first len(loop) vertices of the filling are the hole's own border
    vertices, the rest are appended to the mesh.
    """
    vertices = [list(v) for v in vertices]
    faces = [list(f) for f in faces]

    index_map = list(loop)
    for co in result.new_points():
        index_map.append(len(vertices))
        vertices.append(co.tolist())

    new_faces = [[index_map[i] for i in face] for face in result.filling.faces]

    # The mesh runs loop[0] -> loop[1], a matching filling runs the other way
    edge = (loop[0], loop[1])
    for face in new_faces:
        directed = list(zip(face, face[1:] + face[:1]))
        if edge in directed:
            new_faces = [[f[0], f[2], f[1]] for f in new_faces]
            break

    faces.extend(new_faces)
    return vertices, faces


def visualizeMesh(vertices_coords, faces_indices, holes_loops=None, filled_faces=None):
    """Visualizes the mesh, detected holes and filled faces."""
    fig = plt.figure(figsize=(12, 10))
    ax = fig.add_subplot(111, projection='3d')

    if not vertices_coords:
        print("No vertices to visualize.")
        plt.show()
        return

    points = np.asarray(vertices_coords, dtype=float).reshape(-1, 3)
    ax.scatter(points[:, 0], points[:, 1], points[:, 2], c='k', s=10, depthshade=True, label='Vertices')

    def plot_faces(faces, label, **style):
        for n, face in enumerate(faces):
            outline = points[list(face) + [face[0]]]
            ax.plot(outline[:, 0], outline[:, 1], outline[:, 2], label=label if n == 0 else None, **style)

    filled = {tuple(f) for f in filled_faces or []}
    plot_faces([f for f in faces_indices if tuple(f) not in filled], 'Original Faces Edges', c='b', alpha=0.3)
    plot_faces(list(filled), 'Filled Faces Edges', color='g', linewidth=1.5, alpha=0.7)

    # Hole borders as they were before filling
    for n, loop in enumerate(holes_loops or []):
        outline = points[list(loop) + [loop[0]]]
        ax.plot(outline[:, 0], outline[:, 1], outline[:, 2], color='r', linewidth=3,
                label='Detected Hole Boundaries' if n == 0 else None)

    max_range = np.ptp(points, axis=0).max()
    if max_range == 0:
        max_range = 1.0  # Avoid a zero-size box if all points are the same
    mid = (points.max(axis=0) + points.min(axis=0)) * 0.5
    ax.set_xlim(mid[0] - max_range * 0.6, mid[0] + max_range * 0.6)
    ax.set_ylim(mid[1] - max_range * 0.6, mid[1] + max_range * 0.6)
    ax.set_zlim(mid[2] - max_range * 0.6, mid[2] + max_range * 0.6)

    ax.set_xlabel('X')
    ax.set_ylabel('Y')
    ax.set_zlabel('Z')
    ax.legend()
    plt.title("Mesh Visualization")
    plt.show()


# --- Main Processing Function ---
def process_mesh(input_name: str, output_name: str, ignore_outer_boundary_param=True,
                 config=None, weld_tolerance=1e-9, visualize=False):
    vertices_coords, faces_indices = readObjFile(input_name)
    if not vertices_coords:
        print(f"No vertices found in {input_name}. Exiting.")
        return [], []

    print(f"Read {len(vertices_coords)} vertices and {len(faces_indices)} faces from {input_name}")

    vertices_coords, faces_indices = weld_vertices(vertices_coords, faces_indices, weld_tolerance)
    hole_loops = find_holes(vertices_coords, faces_indices, ignore_largest=ignore_outer_boundary_param)

    all_filled_faces = []
    if not hole_loops:
        print("No holes targeted for filling (after considering 'ignore_outer_boundary').")
    else:
        print(f"Processing {len(hole_loops)} hole(s) for filling...")

    for i, loop in enumerate(hole_loops):
        if len(loop) < 3:
            continue

        mesh_points = np.asarray(vertices_coords, dtype=float)
        try:
            result = fill_hole(mesh_points[loop], mesh_points, faces_indices, config)
        except FillingError as e:
            print(f"  Hole {i + 1}/{len(hole_loops)}: filling failed ({e}), left open.")
            continue

        if not result.complete:
            print(f"  Hole {i + 1}/{len(hole_loops)}: stopped early, {len(result.front)} border vertices left open.")
        if result.ignored_angles:
            print(f"  Hole {i + 1}/{len(hole_loops)}: ignored {result.ignored_angles} angle(s) >= 180 degrees.")

        n_faces = len(faces_indices)
        vertices_coords, faces_indices = attach_filling(vertices_coords, faces_indices, loop, result)
        all_filled_faces.extend(faces_indices[n_faces:])

    print(f"Total new faces created: {len(all_filled_faces)}")
    print(f"Writing processed mesh ({len(vertices_coords)} V, {len(faces_indices)} F) to {output_name}")
    writeObjFile(vertices_coords, faces_indices, output_name)

    if visualize:
        print("Visualizing mesh...")
        visualizeMesh(vertices_coords, faces_indices, holes_loops=hole_loops, filled_faces=all_filled_faces)

    return vertices_coords, faces_indices


def main(argv=None):
    parser = argparse.ArgumentParser(description="Fill the holes of an OBJ mesh with the advancing front method.")
    parser.add_argument("input", help="OBJ file to read")
    parser.add_argument("output", help="OBJ file to write")
    parser.add_argument("--keep-outer", action="store_true",
                        help="also fill the largest border loop (the outer border of an open surface)")
    parser.add_argument("--collision", choices=COLLISION_TESTS, default="filling",
                        help="test new faces against the filling only, or against the whole mesh")
    parser.add_argument("--merge-threshold", type=float, default=0.1)
    parser.add_argument("--stop-after", type=int, default=None, help="stop each fill after N iterations")
    parser.add_argument("--show", action="store_true", help="plot the result")
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format="%(levelname)s %(name)s: %(message)s")

    config = FillingConfig(collision_test=args.collision, merge_threshold=args.merge_threshold,
                           stop_after_iter=args.stop_after)
    process_mesh(args.input, args.output, ignore_outer_boundary_param=not args.keep_outer,
                 config=config, visualize=args.show)


if __name__ == "__main__":
    main()

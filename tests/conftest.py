import numpy as np
import pytest


def unit(degrees):
    r = np.radians(degrees)
    return np.array([np.cos(r), np.sin(r), 0.0])


def loop_edges(n):
    """Border edges of a filling whose first n vertices are the hole loop."""
    return {tuple(sorted((i, (i + 1) % n))) for i in range(n)}


@pytest.fixture
def square():
    return np.array([[0, 0, 0], [1, 0, 0], [1, 1, 0], [0, 1, 0]], dtype=float)


@pytest.fixture
def hexagon():
    return np.array([unit(60 * k) for k in range(6)])


@pytest.fixture
def dodecagon():
    return np.array([unit(30 * k) for k in range(12)])


@pytest.fixture
def star_pentagon():
    """Regular pentagon visited in star order, every corner is 36 degrees."""
    corners = [unit(90 + 72 * k) for k in range(5)]
    return np.array([corners[k] for k in (0, 2, 4, 1, 3)])


@pytest.fixture
def pentagon():
    """Convex pentagon, 100 degrees at vertex 0 and 110 degrees at the others.

    The edges at vertex 0 have lengths 3 (to vertex 1) and 2 (to vertex 4).
    """
    v0 = np.zeros(3)
    v1 = 3 * unit(0)
    v4 = 2 * unit(100)
    # v1 -> v2 -> v3 -> v4 turns by 70 degrees each time, |v2 v3| = 1
    rhs = (v4 - v1 - unit(140))[:2]
    a, c = np.linalg.solve(np.column_stack([unit(70)[:2], unit(210)[:2]]), rhs)
    v2 = v1 + a * unit(70)
    v3 = v2 + unit(140)
    return np.array([v0, v1, v2, v3, v4])


@pytest.fixture
def blocking_mesh():
    """One huge triangle lying in the z = 0 plane, covering every test hole."""
    vertices = np.array([[-100, -100, 0], [100, -100, 0], [0, 100, 0]], dtype=float)
    faces = np.array([[0, 1, 2]])
    return vertices, faces

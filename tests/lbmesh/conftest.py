from __future__ import annotations

import numpy as np
import pytest

from lbmesh import config
from lbmesh.mesh import TriMesh


@pytest.fixture(autouse=True)
def _reset_config():
    """Each test starts from (and leaves behind) the environment defaults."""
    config.reset()
    yield
    config.reset()


@pytest.fixture
def simple_triangle_mesh():
    """
    Provides a TriMesh with a single triangle:
        v0 = [0, 0, 0]
        v1 = [1, 0, 0]
        v2 = [0, 1, 0]
    """
    verts = np.array(
        [
            [0.0, 0.0, 0.0],  # v0
            [1.0, 0.0, 0.0],  # v1
            [0.0, 1.0, 0.0],  # v2
        ]
    )
    connectivity = np.array([[0, 1, 2]])  # One triangle
    return TriMesh(verts=verts, connectivity=connectivity)


@pytest.fixture
def two_triangle_square():
    """
    Unit square split into two triangles along the diagonal (0-2):
      v3 (0,1) ---- v2 (1,1)
        |  \\           |
        |    \\         |
        |      \\       |
      v0 (0,0) ---- v1 (1,0)
    Triangles: [0,1,2] and [0,2,3]
    Boundary edges (undirected): (0,1),(1,2),(2,3),(0,3)
    Interior edge: (0,2)
    """
    verts = np.array(
        [
            [0.0, 0.0, 0.0],  # v0
            [1.0, 0.0, 0.0],  # v1
            [1.0, 1.0, 0.0],  # v2
            [0.0, 1.0, 0.0],  # v3
        ],
        dtype=float,
    )
    conn = np.array([[0, 1, 2], [0, 2, 3]], dtype=int)
    return TriMesh(verts=verts, connectivity=conn)


@pytest.fixture
def skew_quad():
    """
    Quad split along (0-2) whose two opposite angles differ:
        v0 (0,0), v1 (1,-0.5), v2 (2,0), v3 (1,1)
    Triangles: [0,1,2] and [0,2,3] (both counter-clockwise).
    """
    verts = np.array(
        [
            [0.0, 0.0, 0.0],
            [1.0, -0.5, 0.0],
            [2.0, 0.0, 0.0],
            [1.0, 1.0, 0.0],
        ],
        dtype=float,
    )
    conn = np.array([[0, 1, 2], [0, 2, 3]], dtype=int)
    return TriMesh(verts=verts, connectivity=conn)


@pytest.fixture
def tetra_surface():
    """
    Closed, consistently oriented tetrahedron surface (no boundary).
    Vertices: (0,0,0),(1,0,0),(0,1,0),(0,0,1)
    Faces: (0,2,1),(0,1,3),(1,2,3),(0,3,2)
    """
    verts = np.array(
        [
            [0.0, 0.0, 0.0],  # 0
            [1.0, 0.0, 0.0],  # 1
            [0.0, 1.0, 0.0],  # 2
            [0.0, 0.0, 1.0],  # 3
        ],
        dtype=float,
    )
    conn = np.array([[0, 2, 1], [0, 1, 3], [1, 2, 3], [0, 3, 2]], dtype=int)
    return TriMesh(verts=verts, connectivity=conn)


@pytest.fixture
def flat_fan():
    """
    Flat, irregular fan of six triangles around interior vertex 0.

    Ring vertices 1..6 sit at increasing polar angles with varying radii,
    so vertex 0 is the only interior vertex.
    """
    angles = np.deg2rad([0.0, 55.0, 125.0, 180.0, 235.0, 300.0])
    radii = np.array([1.0, 1.3, 0.8, 1.1, 0.9, 1.2])
    ring = np.column_stack(
        [radii * np.cos(angles), radii * np.sin(angles), np.zeros(6)]
    )
    verts = np.vstack([[0.0, 0.0, 0.0], ring])
    conn = np.array([[0, k + 1, (k + 1) % 6 + 1] for k in range(6)], dtype=int)
    return TriMesh(verts=verts, connectivity=conn)

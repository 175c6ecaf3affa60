"""Module defining the TriMesh container for half-edge triangle meshes.

This module provides:
  - Loading from any mesh format meshio reads, or direct arrays.
  - Arena construction of vertices, triangles and paired half-edges.
  - Vectorized triangle geometry (areas, normals).
  - Entry points for Laplacian assembly, divergence and verification.
  - VTU/meshio export of point and cell data.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

import meshio
import numpy as np
import scipy.sparse as sp
from numpy.typing import NDArray

from .config import eps as _eps, verify_on_build
from .divergence import compute_divergence
from .errors import DuplicateHalfEdgeError
from .halfedge import HalfEdge
from .laplacian import LaplacianBuffers, assemble_laplacian, laplacian_matrix
from .triangle import Triangle
from .verify import VerificationReport, verify_connectivity
from .vertex import Vertex

_LOGGER = logging.getLogger(__name__)


class TriMesh:
    """Triangle surface mesh with half-edge connectivity.

    Vertices, triangles and half-edges are stored in arenas (lists) and refer
    to each other by integer id. Vertex and triangle ids equal their row in
    `verts` and `connectivity`.

    Args:
        filename (Optional[str]): Mesh file to load (any meshio format).
        verts (Optional[NDArray[Any]]): Vertex coordinates (n_vertices×3).
        connectivity (Optional[NDArray[Any]]): Triangle indices (n_triangles×3).

    Attributes:
        verts (NDArray[Any]): Vertex array, shape (n_vertices, 3).
        connectivity (NDArray[Any]): Triangle indices, shape (n_triangles, 3).
        vertices (List[Vertex]): Vertex arena.
        triangles (List[Triangle]): Triangle arena.
        halfedges (List[HalfEdge]): Half-edge arena.
        skipped_halfedges (List[Tuple[int, int, int]]): ``(v0, v1, triangle)``
            half-edges dropped because the directed edge already existed.
    """

    verts: NDArray[Any]
    connectivity: NDArray[Any]
    vertices: List[Vertex]
    triangles: List[Triangle]
    halfedges: List[HalfEdge]
    skipped_halfedges: List[Tuple[int, int, int]]

    def __init__(
        self,
        filename: Optional[str] = None,
        verts: Optional[NDArray[Any]] = None,
        connectivity: Optional[NDArray[Any]] = None,
    ) -> None:
        """Initialize mesh from a file or provided arrays.

        Raises:
            ValueError: If neither `filename` nor both arrays are provided,
                or if the arrays are malformed.
        """
        if filename is not None:
            verts, connectivity = self.load(filename)
        if verts is None or connectivity is None:
            raise ValueError("TriMesh needs either `filename` or both `verts` and `connectivity`.")

        # Own a copy: coordinates are shared by reference with every Vertex.
        self.verts = np.array(verts, dtype=float)
        conn = np.array(connectivity, dtype=np.int64)
        self.connectivity = conn.reshape(0, 3) if conn.size == 0 else conn
        self._validate()
        self.verts.setflags(write=False)

        self.vertices = [Vertex(self, vid) for vid in range(self.verts.shape[0])]
        self.triangles = []
        self.halfedges = []
        self.skipped_halfedges = []

        for row in self.connectivity:
            self.add_triangle(int(row[0]), int(row[1]), int(row[2]))

        _LOGGER.info(
            "TriMesh initialized with %d vertices, %d triangles, %d half-edges "
            "(%d boundary, %d skipped)",
            self.n_vertices,
            self.n_triangles,
            self.n_halfedges,
            len(self.boundary_halfedges()),
            len(self.skipped_halfedges),
        )

        if verify_on_build():
            self.verify()

    # ---- Construction -------------------------------------------------------
    @staticmethod
    def load(filename: str) -> Tuple[NDArray[Any], NDArray[Any]]:
        """Read a mesh file with meshio and return (verts, connectivity).

        Only triangle cell blocks are used; 2D points are padded with z=0.

        Raises:
            ValueError: If the file has no triangle cells.
        """
        m = meshio.read(filename)
        blocks = [c.data for c in m.cells if c.type == "triangle"]
        if not blocks:
            _LOGGER.error("load: '%s' contains no triangle cells.", filename)
            raise ValueError(f"No triangle cells in mesh file {filename!r}")

        pts = np.asarray(m.points, dtype=float)
        if pts.shape[1] == 2:
            pts = np.hstack([pts, np.zeros((pts.shape[0], 1))])
        connectivity = np.vstack(blocks).astype(np.int64)
        _LOGGER.info(
            "Loaded '%s' with %d vertices and %d triangles",
            filename,
            pts.shape[0],
            connectivity.shape[0],
        )
        return pts[:, :3], connectivity

    def _validate(self) -> None:
        if self.verts.ndim != 2 or self.verts.shape[1] != 3:
            raise ValueError(f"verts must be (n_vertices, 3); got {self.verts.shape}")
        conn = self.connectivity
        if conn.ndim != 2 or conn.shape[1] != 3:
            raise ValueError(f"connectivity must be (n_triangles, 3); got {conn.shape}")
        n_verts = self.verts.shape[0]
        if conn.size and ((conn < 0).any() or (conn >= n_verts).any()):
            _LOGGER.error("TriMesh: connectivity has out-of-range indices.")
            raise ValueError("Connectivity contains out-of-range vertex indices.")
        repeated = (conn[:, 0] == conn[:, 1]) | (conn[:, 1] == conn[:, 2]) | (conn[:, 0] == conn[:, 2])
        if repeated.any():
            bad = np.flatnonzero(repeated).tolist()
            _LOGGER.error("TriMesh: triangle(s) %s repeat a vertex.", bad[:10])
            raise ValueError(f"Triangles {bad[:10]} reference the same vertex twice.")

    def new_halfedge(self, v0: int, v1: int, triangle: int) -> HalfEdge:
        """Append a half-edge to the arena (used by `Vertex.add_halfedge_to`)."""
        he = HalfEdge(self, len(self.halfedges), v0, v1, triangle)
        self.halfedges.append(he)
        return he

    def add_triangle(self, a: int, b: int, c: int) -> Triangle:
        """Register triangle (a, b, c) and its half-edges ``a->b, b->c, c->a``.

        A half-edge whose directed edge already exists (duplicate face or
        inconsistent orientation) is skipped and recorded in
        `skipped_halfedges`; the triangle is then incomplete and the
        verifier reports it.
        """
        tri = Triangle(self, len(self.triangles), a, b, c)
        self.triangles.append(tri)

        for v in (a, b, c):
            self.vertices[v].add_triangle(tri.id)
        for p, q in ((a, b), (b, c), (c, a)):
            self.vertices[p].add_vertex(q)
            self.vertices[q].add_vertex(p)

        for p, q in ((a, b), (b, c), (c, a)):
            try:
                he = self.vertices[p].add_halfedge_to(q, tri.id)
            except DuplicateHalfEdgeError as err:
                _LOGGER.warning("add_triangle: T%d skips %d->%d: %s", tri.id, p, q, err)
                self.skipped_halfedges.append((p, q, tri.id))
                continue
            tri.attach_halfedge(he)

            reverse = self.vertices[q].get_halfedge_to(p)
            if reverse is not None:
                he.pair_with(reverse)

        return tri

    # ---- Sizes --------------------------------------------------------------
    @property
    def n_vertices(self) -> int:
        return len(self.vertices)

    @property
    def n_triangles(self) -> int:
        return len(self.triangles)

    @property
    def n_halfedges(self) -> int:
        return len(self.halfedges)

    @property
    def n_edges(self) -> int:
        """Number of undirected edges carried by half-edges."""
        paired = sum(1 for he in self.halfedges if he.part_of_full_edge())
        return paired // 2 + (self.n_halfedges - paired)

    def edges(self) -> List[Tuple[int, int]]:
        """Return the undirected edges as sorted ``(i, j)`` tuples."""
        return sorted({(min(he.v0, he.v1), max(he.v0, he.v1)) for he in self.halfedges})

    def boundary_halfedges(self) -> List[HalfEdge]:
        return [he for he in self.halfedges if not he.part_of_full_edge()]

    # ---- Geometry -----------------------------------------------------------
    def triangle_areas(self) -> NDArray[Any]:
        """Return triangle areas, shape (n_triangles,)."""
        tri = self.connectivity
        a = self.verts[tri[:, 0], :]
        b = self.verts[tri[:, 1], :]
        c = self.verts[tri[:, 2], :]
        areas = 0.5 * np.linalg.norm(np.cross(b - a, c - a), axis=1)

        deg = areas <= _eps()
        if np.any(deg):
            _LOGGER.warning(
                "triangle_areas: %d degenerate triangle(s) with near-zero area.",
                int(deg.sum()),
            )
        return areas

    def triangle_normals(self) -> NDArray[Any]:
        """Return unit triangle normals; degenerate triangles get zeros."""
        tri = self.connectivity
        a = self.verts[tri[:, 0], :]
        n = np.cross(self.verts[tri[:, 1], :] - a, self.verts[tri[:, 2], :] - a)
        nn = np.linalg.norm(n, axis=1)
        safe = np.where(nn > _eps(), nn, 1.0)
        n_unit = n / safe[:, None]
        n_unit[nn <= _eps()] = 0.0
        return n_unit

    # ---- Operators ----------------------------------------------------------
    def laplacian(
        self,
        weight_type: Optional[Any] = None,
        workers: Optional[int] = None,
    ) -> Tuple[sp.csr_matrix, NDArray[Any]]:
        """Assemble the Laplacian; see `lbmesh.laplacian.laplacian_matrix`."""
        return laplacian_matrix(self, weight_type=weight_type, workers=workers)

    def laplacian_buffers(
        self,
        weight_type: Optional[Any] = None,
        workers: Optional[int] = None,
    ) -> LaplacianBuffers:
        """Assemble the Laplacian into raw COO buffers."""
        return assemble_laplacian(self, weight_type=weight_type, workers=workers)

    def divergence(self, field: Any, workers: Optional[int] = None) -> NDArray[Any]:
        """Per-vertex divergence of a per-triangle vector field."""
        return compute_divergence(self, field, workers=workers)

    def verify(self) -> VerificationReport:
        """Run the connectivity verifier over every vertex."""
        return verify_connectivity(self)

    def log_status(self, level: int = logging.INFO) -> None:
        """Log the half-edge listing of every vertex."""
        if not _LOGGER.isEnabledFor(level):
            return
        for vertex in self.vertices:
            _LOGGER.log(level, "%s", vertex.status())

    # ---- Export -------------------------------------------------------------
    def write(
        self,
        filename: str,
        point_data: Optional[Dict[str, NDArray[Any]]] = None,
        cell_data: Optional[Dict[str, NDArray[Any]]] = None,
    ) -> None:
        """Export this mesh (and optional point/cell data) with meshio.

        The format follows the file extension (e.g. ``"mesh.vtu"``).
        `cell_data` is normalized to meshio's dict of name -> list-of-arrays.

        Raises:
            ValueError: If provided data have incompatible lengths.
        """
        pts = np.asarray(self.verts, dtype=float)
        con = np.asarray(self.connectivity, dtype=int)
        m = meshio.Mesh(points=pts, cells=[("triangle", con)])

        for name, arr in (point_data or {}).items():
            arr_np = np.asarray(arr)
            if arr_np.shape[0] != pts.shape[0]:
                msg = f"point_data['{name}'] length {arr_np.shape[0]} != n_vertices {pts.shape[0]}"
                _LOGGER.error("write: %s", msg)
                raise ValueError(msg)
            m.point_data[name] = arr_np

        if cell_data:
            normalized: Dict[str, List[NDArray[Any]]] = {}
            for name, arr in cell_data.items():
                arr_np = np.asarray(arr)
                if arr_np.shape[0] != con.shape[0]:
                    msg = f"cell_data['{name}'] length {arr_np.shape[0]} != n_triangles {con.shape[0]}"
                    _LOGGER.error("write: %s", msg)
                    raise ValueError(msg)
                normalized[name] = [arr_np]
            m.cell_data = normalized

        try:
            m.write(filename)
        except Exception:
            _LOGGER.exception("write failed for '%s'.", filename)
            raise
        _LOGGER.info(
            "Mesh written to '%s' (vertices=%d, triangles=%d, point_data=%d, cell_data=%d)",
            filename,
            pts.shape[0],
            con.shape[0],
            len(point_data or {}),
            len(cell_data or {}),
        )

    def __repr__(self) -> str:
        return f"TriMesh(n_vertices={self.n_vertices}, n_triangles={self.n_triangles})"

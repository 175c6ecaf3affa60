"""Module defining the Vertex class and its per-vertex operator routines.

A vertex owns the ids of the half-edges leaving it, its adjacent vertices
and its incident triangles. On top of that connectivity it computes its own
row of the Laplacian, its divergence value and its connectivity diagnostics.
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Iterator, List, Optional, Set

import numpy as np
from numpy.typing import NDArray

from .errors import DuplicateHalfEdgeError
from .geometry import cot_of_angle, dot
from .laplacian import LaplacianBuffers, owns_edge, weight_function
from .verify import ConnectivityViolation, ViolationKind

if TYPE_CHECKING:
    from .halfedge import HalfEdge
    from .mesh import TriMesh

_LOGGER = logging.getLogger(__name__)


class Vertex:
    """A mesh vertex and its half-edge connectivity.

    Attributes:
        id (int): Index of the vertex; row/column of every per-vertex array.
        halfedges (Set[int]): Ids of half-edges whose origin is this vertex.
        vertices (Set[int]): Ids of adjacent vertices.
        triangles (Set[int]): Ids of incident triangles.
    """

    __slots__ = ("mesh", "id", "halfedges", "vertices", "triangles")

    def __init__(self, mesh: TriMesh, vertex_id: int) -> None:
        self.mesh = mesh
        self.id = vertex_id
        self.halfedges: Set[int] = set()
        self.vertices: Set[int] = set()
        self.triangles: Set[int] = set()

    @property
    def coords(self) -> NDArray[Any]:
        """View of this vertex's row of the mesh coordinate array."""
        return self.mesh.verts[self.id]

    # ---- Connectivity -------------------------------------------------------
    def add_triangle(self, triangle: int) -> None:
        self.triangles.add(triangle)

    def add_vertex(self, vertex: int) -> None:
        self.vertices.add(vertex)

    def add_halfedge_to(self, vertex: int, triangle: int) -> HalfEdge:
        """Create and register the half-edge ``self -> vertex`` on `triangle`.

        The caller attaches the returned half-edge to its triangle.

        Raises:
            DuplicateHalfEdgeError: If a half-edge to `vertex` already exists.
                The existing half-edge is kept and nothing is created.
        """
        existing = self.get_halfedge_to(vertex)
        if existing is not None:
            _LOGGER.warning(
                "V%d already has HE%d to V%d (T%d); not adding one for T%d.",
                self.id,
                existing.id,
                vertex,
                existing.triangle,
                triangle,
            )
            raise DuplicateHalfEdgeError(self.id, vertex, existing)

        he = self.mesh.new_halfedge(self.id, vertex, triangle)
        self.halfedges.add(he.id)
        _LOGGER.debug("V%d is now connected to HE%d (->V%d)", self.id, he.id, vertex)
        return he

    def outgoing(self) -> Iterator[HalfEdge]:
        """Iterate over the outgoing half-edges in id order."""
        arena = self.mesh.halfedges
        for he_id in sorted(self.halfedges):
            yield arena[he_id]

    def get_halfedge_to(self, vertex: int) -> Optional[HalfEdge]:
        for he in self.outgoing():
            if he.v1 == vertex:
                return he
        return None

    def halfedge_on_triangle(self, triangle: int) -> Optional[HalfEdge]:
        for he in self.outgoing():
            if he.triangle == triangle:
                return he
        return None

    def degree(self) -> int:
        return len(self.vertices)

    def is_on_boundary(self) -> bool:
        """Return True if an outgoing edge is a boundary edge.

        Vertices without any half-edge count as boundary vertices.
        """
        if not self.halfedges:
            return True
        return any(not he.part_of_full_edge() for he in self.outgoing())

    # ---- Laplacian ----------------------------------------------------------
    def calculate_laplacian_operator(
        self, buffers: LaplacianBuffers, offset: int, weight_type: Any
    ) -> int:
        """Write this vertex's Laplacian contributions into `buffers`.

        For every outgoing half-edge ``i -> j`` the triangle area is added to
        the vertex area. Edges owned by this vertex (see
        `lbmesh.laplacian.owns_edge`) are written as ``(i, j, -w)`` and
        ``(j, i, -w)`` at `offset` and ``offset + 1``, and `w` is added to
        both diagonal slots. Finally ``areas[i]`` is set to a third of the
        incident area.

        Args:
            buffers: Shared, pre-sized output.
            offset: First free off-diagonal slot reserved for this vertex.
            weight_type: Weighting scheme (`WeightType` or its name).

        Returns:
            int: The offset after the last slot written.

        Raises:
            UnsupportedWeightTypeError: If `weight_type` is unknown; raised
                before anything is written.
        """
        weight = weight_function(weight_type)
        i = self.id
        area = 0.0
        for he in self.outgoing():
            area += he.face.area()
            if not owns_edge(he):
                continue

            j = he.v1
            w_ij = weight(he)
            buffers.rows[offset] = i
            buffers.cols[offset] = j
            buffers.weights[offset] = -w_ij
            offset += 1
            buffers.rows[offset] = j
            buffers.cols[offset] = i
            buffers.weights[offset] = -w_ij
            offset += 1
            buffers.add_to_diagonal(i, j, w_ij)

        # Each incident triangle gives a third of its area to each corner.
        buffers.areas[i] = area / 3.0
        return offset

    # ---- Divergence ---------------------------------------------------------
    def divergence(self, t_vector_field: NDArray[Any], v_scalar_divergence: NDArray[Any]) -> float:
        """Store the divergence of a ``(T, 3)`` triangle field at this vertex.

        Returns:
            float: The value written to ``v_scalar_divergence[id]``.
        """
        total = 0.0
        for he in self.outgoing():
            nxt = he.clockwise_around_triangle()
            last = nxt.clockwise_around_triangle() if nxt is not None else None
            if last is None:
                _LOGGER.warning(
                    "divergence: V%d HE%d sits on incomplete triangle T%d; skipped.",
                    self.id,
                    he.id,
                    he.triangle,
                )
                continue

            field = t_vector_field[he.triangle]
            e1 = he.difference_vector()
            # Reversed so it points from this vertex to the third corner.
            e2 = -last.difference_vector()
            cot_theta1 = cot_of_angle(he.gamma_angle())
            cot_theta2 = cot_of_angle(he.beta_angle())
            total += cot_theta1 * dot(e1, field) + cot_theta2 * dot(e2, field)

        value = total / 2.0
        v_scalar_divergence[self.id] = value
        return value

    # ---- Diagnostics --------------------------------------------------------
    def verify_halfedge_connectivity(self) -> List[ConnectivityViolation]:
        """Check the half-edge invariants around this vertex (read-only)."""
        violations: List[ConnectivityViolation] = []

        def _report(kind: ViolationKind, he: HalfEdge, message: str) -> None:
            violations.append(ConnectivityViolation(kind, self.id, he.id, message))

        for he in self.outgoing():
            triangle = he.face
            if not triangle.contains_vertex(self.id):
                _report(
                    ViolationKind.NOT_ON_TRIANGLE,
                    he,
                    f"triangle T{triangle.id} {triangle.corners} does not contain V{self.id}",
                )
            if he.v0 != self.id:
                _report(
                    ViolationKind.WRONG_ORIGIN,
                    he,
                    f"half-edge starts at V{he.v0}, not V{self.id}",
                )

            nxt = he.clockwise_around_triangle()
            last = nxt.clockwise_around_triangle() if nxt is not None else None
            if last is None or last.v1 != he.v0 or last.clockwise_around_triangle() is not he:
                _report(
                    ViolationKind.BROKEN_CYCLE,
                    he,
                    f"walking around T{triangle.id} does not return to HE{he.id}",
                )

            pair = he.pair
            if pair is not None and (
                pair.v0 != he.v1 or pair.v1 != he.v0 or pair.halfedge != he.id
            ):
                _report(
                    ViolationKind.UNPAIRED_BUDDY,
                    he,
                    f"paired HE{pair.id} ({pair.v0}->{pair.v1}) is not its reverse",
                )
        return violations

    def status(self) -> str:
        """Return a text listing of the outgoing half-edges.

        ``|=V3 (T0=T1)`` marks a full edge to V3 shared by T0 and T1,
        ``|-V2 (T0)`` a boundary edge.
        """
        lines = [f"V{self.id}"]
        for he in self.outgoing():
            pair = he.pair
            if pair is not None:
                lines.append(f"|=V{he.v1} (T{he.triangle}=T{pair.triangle})")
            else:
                lines.append(f"|-V{he.v1} (T{he.triangle})")
        return "\n".join(lines)

    def __sub__(self, other: Vertex) -> NDArray[Any]:
        return np.asarray(self.coords, dtype=float) - np.asarray(other.coords, dtype=float)

    def __repr__(self) -> str:
        x, y, z = (float(c) for c in self.coords)
        return f"V:{self.id} ({x:g},{y:g},{z:g})"

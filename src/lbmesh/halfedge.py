"""Module defining the HalfEdge class for directed triangle edges.

A half-edge is one directed traversal ``v0 -> v1`` of an edge of exactly one
triangle. Interior (manifold) edges are represented by two half-edges paired
with each other; boundary edges have a single unpaired half-edge.
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Optional

from numpy.typing import NDArray

from . import geometry

if TYPE_CHECKING:
    from .mesh import TriMesh
    from .triangle import Triangle
    from .vertex import Vertex

_LOGGER = logging.getLogger(__name__)


class HalfEdge:
    """Directed edge ``v0 -> v1`` bound to one triangle.

    All relations are integer ids into the arenas of the owning `TriMesh`.

    Attributes:
        id (int): Index of this half-edge in ``mesh.halfedges``.
        v0 (int): Origin vertex id.
        v1 (int): Destination vertex id.
        triangle (int): Id of the triangle this half-edge belongs to.
        halfedge (Optional[int]): Id of the opposite half-edge on the
            neighbouring triangle, or None on a boundary edge.
    """

    __slots__ = ("mesh", "id", "v0", "v1", "triangle", "halfedge")

    def __init__(
        self, mesh: TriMesh, he_id: int, v0: int, v1: int, triangle: int
    ) -> None:
        self.mesh = mesh
        self.id = he_id
        self.v0 = v0
        self.v1 = v1
        self.triangle = triangle
        self.halfedge: Optional[int] = None

    # ---- Topology -----------------------------------------------------------
    @property
    def origin(self) -> Vertex:
        return self.mesh.vertices[self.v0]

    @property
    def destination(self) -> Vertex:
        return self.mesh.vertices[self.v1]

    @property
    def face(self) -> Triangle:
        return self.mesh.triangles[self.triangle]

    @property
    def pair(self) -> Optional[HalfEdge]:
        """Return the paired half-edge object, or None on a boundary edge."""
        if self.halfedge is None:
            return None
        return self.mesh.halfedges[self.halfedge]

    def part_of_full_edge(self) -> bool:
        """Return True if this half-edge is paired (interior edge)."""
        return self.halfedge is not None

    def pair_with(self, other: HalfEdge) -> None:
        """Pair this half-edge with its reverse `other` (both directions).

        Raises:
            ValueError: If `other` does not run ``v1 -> v0``.
        """
        if other.v0 != self.v1 or other.v1 != self.v0:
            _LOGGER.error(
                "pair_with: HE%d (%d->%d) is not the reverse of HE%d (%d->%d)",
                other.id,
                other.v0,
                other.v1,
                self.id,
                self.v0,
                self.v1,
            )
            raise ValueError(
                f"Half-edge {other.id} ({other.v0}->{other.v1}) cannot pair with "
                f"half-edge {self.id} ({self.v0}->{self.v1})"
            )
        self.halfedge = other.id
        other.halfedge = self.id

    def clockwise_around_triangle(self) -> Optional[HalfEdge]:
        """Return the next half-edge of the owning triangle.

        The triangle is traversed ``v0->v1``, ``v1->v2``, ``v2->v0``, so the
        result starts where this half-edge ends. Returns None when the
        triangle is missing that half-edge (incomplete construction).
        """
        return self.face.next_halfedge(self)

    def opposite_vertex(self) -> int:
        """Return the id of the triangle corner not on this half-edge."""
        return self.face.third_vertex(self.v0, self.v1)

    # ---- Geometry -----------------------------------------------------------
    def difference_vector(self) -> NDArray[Any]:
        """Return the displacement ``p(v1) - p(v0)``."""
        return geometry.difference(self.origin.coords, self.destination.coords)

    def length(self) -> float:
        return geometry.edge_length(self.origin.coords, self.destination.coords)

    def alpha_angle(self) -> float:
        """Interior angle of the triangle at the origin ``v0``."""
        coords = self.mesh.verts
        return geometry.interior_angle(
            coords[self.v0], coords[self.v1], coords[self.opposite_vertex()]
        )

    def beta_angle(self) -> float:
        """Interior angle of the triangle at the destination ``v1``."""
        coords = self.mesh.verts
        return geometry.interior_angle(
            coords[self.v1], coords[self.opposite_vertex()], coords[self.v0]
        )

    def gamma_angle(self) -> float:
        """Interior angle of the triangle opposite this half-edge."""
        coords = self.mesh.verts
        return geometry.interior_angle(
            coords[self.opposite_vertex()], coords[self.v0], coords[self.v1]
        )

    def __repr__(self) -> str:
        pair = "-" if self.halfedge is None else f"HE{self.halfedge}"
        return (
            f"HalfEdge(id={self.id}, v0={self.v0}, v1={self.v1}, "
            f"triangle={self.triangle}, pair={pair})"
        )

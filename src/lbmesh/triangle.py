"""Module defining the Triangle class for oriented mesh faces."""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, List, Optional, Tuple

from numpy.typing import NDArray

from . import geometry

if TYPE_CHECKING:
    from .halfedge import HalfEdge
    from .mesh import TriMesh

_LOGGER = logging.getLogger(__name__)


class Triangle:
    """A single oriented face of a `TriMesh`.

    Attributes:
        id (int): Index of this triangle; also its row in per-triangle arrays.
        v0 (int), v1 (int), v2 (int): Corner vertex ids in winding order.
        halfedges (List[Optional[int]]): Half-edge ids for ``v0->v1``,
            ``v1->v2`` and ``v2->v0``; a slot stays None if that half-edge
            could not be created.
    """

    __slots__ = ("mesh", "id", "v0", "v1", "v2", "halfedges")

    def __init__(self, mesh: TriMesh, tri_id: int, v0: int, v1: int, v2: int) -> None:
        self.mesh = mesh
        self.id = tri_id
        self.v0 = v0
        self.v1 = v1
        self.v2 = v2
        self.halfedges: List[Optional[int]] = [None, None, None]

    @property
    def corners(self) -> Tuple[int, int, int]:
        return (self.v0, self.v1, self.v2)

    def contains_vertex(self, vertex: int) -> bool:
        return vertex in (self.v0, self.v1, self.v2)

    def corner_index(self, vertex: int) -> int:
        """Return 0, 1 or 2 for the position of `vertex` in the winding.

        Raises:
            ValueError: If `vertex` is not a corner of this triangle.
        """
        try:
            return self.corners.index(vertex)
        except ValueError:
            raise ValueError(
                f"Vertex {vertex} is not a corner of triangle {self.id} {self.corners}"
            ) from None

    def third_vertex(self, a: int, b: int) -> int:
        """Return the corner that is neither `a` nor `b`."""
        for v in self.corners:
            if v != a and v != b:
                return v
        raise ValueError(f"Triangle {self.id} {self.corners} has no third vertex for ({a}, {b})")

    def attach_halfedge(self, he: HalfEdge) -> None:
        """Store `he` in the slot matching its origin corner."""
        self.halfedges[self.corner_index(he.v0)] = he.id

    def next_halfedge(self, he: HalfEdge) -> Optional[HalfEdge]:
        """Return the half-edge following `he` in the triangle traversal."""
        try:
            k = self.corner_index(he.v0)
        except ValueError:
            _LOGGER.debug("next_halfedge: HE%d does not start on triangle %d", he.id, self.id)
            return None
        nxt = self.halfedges[(k + 1) % 3]
        if nxt is None:
            return None
        return self.mesh.halfedges[nxt]

    def is_complete(self) -> bool:
        """Return True if all three half-edges were created."""
        return all(h is not None for h in self.halfedges)

    def points(self) -> Tuple[NDArray[Any], NDArray[Any], NDArray[Any]]:
        coords = self.mesh.verts
        return coords[self.v0], coords[self.v1], coords[self.v2]

    def area(self) -> float:
        return geometry.triangle_area(*self.points())

    def angles(self) -> Tuple[float, float, float]:
        """Return the interior angles at v0, v1 and v2 (radians)."""
        return geometry.triangle_angles(*self.points())

    def normal(self) -> NDArray[Any]:
        return geometry.triangle_normal(*self.points())

    def __repr__(self) -> str:
        return f"Triangle(id={self.id}, v0={self.v0}, v1={self.v1}, v2={self.v2})"

"""Read-only half-edge connectivity checks.

The numerical routines silently return wrong values on broken topology, so
this pass is meant to run after construction and before assembly. It never
mutates the mesh and never raises on a violation; violations are returned
as `ConnectivityViolation` records and logged as warnings.
"""
from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
import enum
import logging
from typing import TYPE_CHECKING, Dict, List, Optional

if TYPE_CHECKING:
    from .mesh import TriMesh

_LOGGER = logging.getLogger(__name__)


class ViolationKind(str, enum.Enum):
    """Kinds of half-edge invariant violations."""

    NOT_ON_TRIANGLE = "not_on_triangle"
    WRONG_ORIGIN = "wrong_origin"
    BROKEN_CYCLE = "broken_cycle"
    UNPAIRED_BUDDY = "unpaired_buddy"


@dataclass(frozen=True)
class ConnectivityViolation:
    """One violated invariant.

    Attributes:
        kind (ViolationKind): Which invariant failed.
        vertex (int): Id of the vertex whose half-edge set was checked.
        halfedge (int): Id of the offending half-edge.
        message (str): Human-readable description.
    """

    kind: ViolationKind
    vertex: int
    halfedge: int
    message: str


@dataclass
class VerificationReport:
    """All violations found over a mesh."""

    violations: List[ConnectivityViolation] = field(default_factory=list)
    n_vertices: int = 0
    n_halfedges: int = 0

    @property
    def ok(self) -> bool:
        return not self.violations

    def by_kind(self) -> Dict[ViolationKind, int]:
        return dict(Counter(v.kind for v in self.violations))

    def for_vertex(self, vertex: int) -> List[ConnectivityViolation]:
        return [v for v in self.violations if v.vertex == vertex]

    def __len__(self) -> int:
        return len(self.violations)


def verify_connectivity(
    mesh: TriMesh, vertices: Optional[List[int]] = None
) -> VerificationReport:
    """Check the half-edge invariants of every (or the given) vertex.

    Args:
        mesh: Mesh to check.
        vertices: Optional subset of vertex ids.

    Returns:
        VerificationReport: Collected violations.
    """
    ids = range(mesh.n_vertices) if vertices is None else vertices
    report = VerificationReport(n_vertices=len(ids))
    for vid in ids:
        vertex = mesh.vertices[vid]
        report.n_halfedges += len(vertex.halfedges)
        report.violations.extend(vertex.verify_halfedge_connectivity())

    for violation in report.violations:
        _LOGGER.warning(
            "verify_connectivity: [%s] V%d HE%d: %s",
            violation.kind.value,
            violation.vertex,
            violation.halfedge,
            violation.message,
        )
    _LOGGER.info(
        "verify_connectivity: checked %d vertices / %d half-edges, %d violation(s)",
        report.n_vertices,
        report.n_halfedges,
        len(report),
    )
    return report

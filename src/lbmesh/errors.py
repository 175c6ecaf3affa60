"""Exception types raised by lbmesh.

Topology violations found by the verifier are not exceptions; they are
returned as `lbmesh.verify.ConnectivityViolation` records.
"""
from __future__ import annotations

from typing import Any


class LBMeshError(Exception):
    """Base class for lbmesh errors."""


class DuplicateHalfEdgeError(LBMeshError, ValueError):
    """A half-edge between the same ordered vertex pair already exists.

    Attributes:
        v0 (int): Origin vertex id.
        v1 (int): Destination vertex id.
        existing (HalfEdge): The half-edge already registered for the pair.
    """

    def __init__(self, v0: int, v1: int, existing: Any) -> None:
        self.v0 = v0
        self.v1 = v1
        self.existing = existing
        super().__init__(
            f"Vertex {v0} already has a half-edge to vertex {v1} "
            f"(halfedge {existing.id} on triangle {existing.triangle})"
        )


class UnsupportedWeightTypeError(LBMeshError, ValueError):
    """The requested Laplacian weighting scheme is not recognized."""

    def __init__(self, weight_type: Any) -> None:
        self.weight_type = weight_type
        super().__init__(
            f"Unsupported Laplacian weight type {weight_type!r}; "
            "expected one of 'cotangent', 'distance', 'combinatorial'"
        )

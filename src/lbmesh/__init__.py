"""The lbmesh package provides half-edge triangle meshes and discrete operators.

This package offers:
  - Half-edge connectivity over an arena of vertices, triangles and half-edges.
  - Discrete Laplace-Beltrami assembly (cotangent, distance, combinatorial).
  - Discrete divergence of per-triangle vector fields.
  - A read-only connectivity verifier.

Submodules:
  - config: Environment-driven defaults and logging level.
  - geometry: Triangle-local geometry primitives.
  - halfedge, triangle, vertex: Connectivity records.
  - mesh: TriMesh container, construction and I/O.
  - laplacian: Weighting schemes, COO buffers and assembly drivers.
  - divergence: Divergence driver.
  - verify: Connectivity verifier and violation records.

Classes:
  TriMesh, Vertex, HalfEdge, Triangle, WeightType, LaplacianBuffers,
  ConnectivityViolation, VerificationReport
"""

from .config import (
    config,
    configure,
    use,
    set_log_level,
)

from lbmesh.errors import (
    DuplicateHalfEdgeError,
    LBMeshError,
    UnsupportedWeightTypeError,
)
from lbmesh.halfedge import HalfEdge
from lbmesh.triangle import Triangle
from lbmesh.vertex import Vertex
from lbmesh.laplacian import (
    LaplacianBuffers,
    WeightType,
    assemble_laplacian,
    count_laplacian_entries,
    inverse_mass_matrix,
    laplacian_matrix,
    mass_matrix,
)
from lbmesh.divergence import compute_divergence
from lbmesh.verify import (
    ConnectivityViolation,
    VerificationReport,
    ViolationKind,
    verify_connectivity,
)
from lbmesh.mesh import TriMesh

__all__ = [
    # Core classes
    "TriMesh",
    "Vertex",
    "HalfEdge",
    "Triangle",
    # Operators
    "WeightType",
    "LaplacianBuffers",
    "assemble_laplacian",
    "count_laplacian_entries",
    "laplacian_matrix",
    "mass_matrix",
    "inverse_mass_matrix",
    "compute_divergence",
    # Verification
    "ConnectivityViolation",
    "VerificationReport",
    "ViolationKind",
    "verify_connectivity",
    # Errors
    "LBMeshError",
    "DuplicateHalfEdgeError",
    "UnsupportedWeightTypeError",
    # Configuration
    "config",
    "configure",
    "use",
    "set_log_level",
]

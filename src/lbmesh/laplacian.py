"""Discrete Laplace-Beltrami operator assembly.

This module provides:
  - The supported edge weighting schemes (`WeightType`).
  - Caller-owned COO output buffers (`LaplacianBuffers`).
  - Mesh-level drivers that run the per-vertex assembly
    (`Vertex.calculate_laplacian_operator`) sequentially or on a thread pool.
  - Helpers turning the result into SciPy sparse matrices.

The assembled matrix ``L`` has ``L[i, j] = -w_ij`` for adjacent ``i != j`` and
``L[i, i] = sum_j w_ij``, so every row sums to zero. ``areas[i]`` holds one
third of the total area of the triangles incident to vertex ``i``.
"""
from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
import enum
import logging
import math
import threading
from typing import TYPE_CHECKING, Any, Callable, Optional, Tuple

import numpy as np
import scipy.sparse as sp
from numpy.typing import NDArray

from .config import default_weight_type, workers as configured_workers
from .errors import UnsupportedWeightTypeError
from .geometry import cot_of_angle

if TYPE_CHECKING:
    from .halfedge import HalfEdge
    from .mesh import TriMesh

_LOGGER = logging.getLogger(__name__)


class WeightType(str, enum.Enum):
    """Edge weighting schemes for the Laplacian.

    COTANGENT:
        ``w_ij = (cot gamma + cot gamma') / 2`` with gamma, gamma' the angles
        opposite edge ij in its two triangles. On a boundary edge only one
        triangle exists and its single cotangent is still halved.
    DISTANCE:
        ``w_ij = 1 / |p_j - p_i|^2``.
    COMBINATORIAL:
        ``w_ij = 1`` (graph Laplacian).
    """

    COTANGENT = "cotangent"
    DISTANCE = "distance"
    COMBINATORIAL = "combinatorial"

    @classmethod
    def parse(cls, value: Any) -> WeightType:
        """Return the member named by `value` (member or case-insensitive name).

        Raises:
            UnsupportedWeightTypeError: If `value` names no scheme.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        _LOGGER.error("Unsupported Laplacian weight type: %r", value)
        raise UnsupportedWeightTypeError(value)


def cot_weight(he: HalfEdge) -> float:
    """Cotangent weight of the edge carrying `he`."""
    cot_op = cot_of_angle(he.gamma_angle())
    pair = he.pair
    if pair is not None:
        cot_op += cot_of_angle(pair.gamma_angle())
    return cot_op / 2.0


def distance_weight(he: HalfEdge) -> float:
    """Return ``1 / length^2``; a zero-length edge gets an infinite weight."""
    length = he.length()
    if length == 0.0:
        _LOGGER.warning(
            "distance_weight: HE%d (%d->%d) has zero length; weight is infinite.",
            he.id,
            he.v0,
            he.v1,
        )
        return math.inf
    return 1.0 / (length * length)


def combinatorial_weight(he: HalfEdge) -> float:
    return 1.0


WEIGHT_FUNCTIONS: dict[WeightType, Callable[[HalfEdge], float]] = {
    WeightType.COTANGENT: cot_weight,
    WeightType.DISTANCE: distance_weight,
    WeightType.COMBINATORIAL: combinatorial_weight,
}


def weight_function(weight_type: Any) -> Callable[[HalfEdge], float]:
    """Return the per-half-edge weight function for `weight_type`.

    Raises:
        UnsupportedWeightTypeError: If the scheme is unknown.
    """
    wt = WeightType.parse(weight_type)
    try:
        return WEIGHT_FUNCTIONS[wt]
    except KeyError:
        _LOGGER.error("No weight function registered for %s", wt)
        raise UnsupportedWeightTypeError(weight_type) from None


def owns_edge(he: HalfEdge) -> bool:
    """Return True if the origin of `he` emits the entries of its edge.

    A full edge is emitted once, by its lower-indexed endpoint. A boundary
    edge has a single half-edge, which always emits it.
    """
    return he.v0 < he.v1 or not he.part_of_full_edge()


@dataclass(eq=False)
class LaplacianBuffers:
    """Caller-owned COO output of the Laplacian assembly.

    The first ``n_vertices`` slots of `rows`/`cols`/`weights` hold the
    diagonal (``rows[k] == cols[k] == k``); off-diagonal entries are written
    from offset ``n_vertices`` onwards, two per undirected edge.

    Attributes:
        n_vertices (int): Number of vertices ``N``.
        rows (NDArray[Any]): Row indices, length ``N + 2E``.
        cols (NDArray[Any]): Column indices, length ``N + 2E``.
        weights (NDArray[Any]): Entry values, length ``N + 2E``.
        areas (NDArray[Any]): Per-vertex normalization areas, length ``N``.
        filled (int): Number of slots written so far (diagonal included).
    """

    n_vertices: int
    rows: NDArray[Any]
    cols: NDArray[Any]
    weights: NDArray[Any]
    areas: NDArray[Any]
    filled: int = 0
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    @classmethod
    def allocate(cls, n_vertices: int, n_offdiagonal: int) -> LaplacianBuffers:
        """Allocate zeroed buffers for `n_vertices` and `n_offdiagonal` entries."""
        if n_vertices < 0 or n_offdiagonal < 0:
            raise ValueError(
                f"allocate: sizes must be non-negative (N={n_vertices}, "
                f"offdiagonal={n_offdiagonal})"
            )
        size = n_vertices + n_offdiagonal
        rows = np.zeros(size, dtype=np.int64)
        cols = np.zeros(size, dtype=np.int64)
        rows[:n_vertices] = np.arange(n_vertices)
        cols[:n_vertices] = np.arange(n_vertices)
        return cls(
            n_vertices=n_vertices,
            rows=rows,
            cols=cols,
            weights=np.zeros(size, dtype=float),
            areas=np.zeros(n_vertices, dtype=float),
            filled=n_vertices,
        )

    @classmethod
    def for_mesh(cls, mesh: TriMesh) -> LaplacianBuffers:
        """Allocate buffers sized for every edge of `mesh`."""
        return cls.allocate(mesh.n_vertices, 2 * mesh.n_edges)

    @property
    def diagonal(self) -> NDArray[Any]:
        """View of the diagonal accumulators."""
        return self.weights[: self.n_vertices]

    @property
    def capacity(self) -> int:
        return int(self.weights.shape[0])

    def add_to_diagonal(self, i: int, j: int, w_ij: float) -> None:
        """Add `w_ij` to the diagonal slots of both `i` and `j`."""
        with self.lock:
            self.weights[i] += w_ij
            self.weights[j] += w_ij

    def to_coo(self) -> sp.coo_matrix:
        n = self.n_vertices
        k = self.filled
        return sp.coo_matrix(
            (self.weights[:k], (self.rows[:k], self.cols[:k])),
            shape=(n, n),
            dtype=float,
        )

    def to_csr(self) -> sp.csr_matrix:
        return self.to_coo().tocsr()


def count_laplacian_entries(mesh: TriMesh) -> NDArray[Any]:
    """Return the number of off-diagonal slots each vertex will write."""
    counts = np.zeros(mesh.n_vertices, dtype=np.int64)
    for vertex in mesh.vertices:
        counts[vertex.id] = 2 * sum(1 for he in vertex.outgoing() if owns_edge(he))
    return counts


def assemble_laplacian(
    mesh: TriMesh,
    weight_type: Optional[Any] = None,
    workers: Optional[int] = None,
    buffers: Optional[LaplacianBuffers] = None,
) -> LaplacianBuffers:
    """Run the per-vertex Laplacian assembly over every vertex of `mesh`.

    With one worker the vertices are processed in id order sharing a single
    running offset. With more, a counting pre-pass gives every vertex a
    disjoint slice of the output and the vertices run on a thread pool;
    diagonal updates are serialized through ``buffers.lock``.

    Args:
        mesh: The mesh to assemble over.
        weight_type: Weighting scheme; defaults to the configured one.
        workers: Thread count; defaults to the configured one.
        buffers: Pre-sized output; allocated with `LaplacianBuffers.for_mesh`
            when omitted.

    Returns:
        The filled `LaplacianBuffers`.

    Raises:
        UnsupportedWeightTypeError: If the scheme is unknown. Nothing is
            written in that case.
        ValueError: If `buffers` is too small for `mesh`.
    """
    wt = WeightType.parse(
        default_weight_type() if weight_type is None else weight_type
    )
    n_workers = configured_workers() if workers is None else int(workers)
    if n_workers < 1:
        raise ValueError(f"workers must be >= 1; got {n_workers}")

    counts = count_laplacian_entries(mesh)
    needed = mesh.n_vertices + int(counts.sum())
    if buffers is None:
        buffers = LaplacianBuffers.allocate(mesh.n_vertices, int(counts.sum()))
    elif buffers.n_vertices != mesh.n_vertices or buffers.capacity < needed:
        _LOGGER.error(
            "assemble_laplacian: buffers (N=%d, capacity=%d) too small for mesh "
            "(N=%d, needed=%d)",
            buffers.n_vertices,
            buffers.capacity,
            mesh.n_vertices,
            needed,
        )
        raise ValueError(
            f"Laplacian buffers hold {buffers.capacity} slots for "
            f"{buffers.n_vertices} vertices; mesh needs {needed} for "
            f"{mesh.n_vertices} vertices"
        )

    if n_workers == 1:
        offset = buffers.n_vertices
        for vertex in mesh.vertices:
            offset = vertex.calculate_laplacian_operator(buffers, offset, wt)
        buffers.filled = offset
    else:
        # Exclusive prefix sum: vertex k writes [starts[k], starts[k] + counts[k]).
        starts = buffers.n_vertices + np.concatenate(([0], np.cumsum(counts)))[:-1]

        def _run(vid: int) -> Tuple[int, int]:
            start = int(starts[vid])
            end = mesh.vertices[vid].calculate_laplacian_operator(buffers, start, wt)
            return vid, end

        with ThreadPoolExecutor(max_workers=n_workers) as pool:
            for vid, end in pool.map(_run, range(mesh.n_vertices)):
                expected = int(starts[vid] + counts[vid])
                if end != expected:
                    raise RuntimeError(
                        f"Vertex {vid} wrote up to slot {end}, expected {expected}"
                    )
        buffers.filled = needed

    _LOGGER.info(
        "assemble_laplacian: N=%d, entries=%d, weight_type=%s, workers=%d",
        mesh.n_vertices,
        buffers.filled,
        wt.value,
        n_workers,
    )
    return buffers


def laplacian_matrix(
    mesh: TriMesh,
    weight_type: Optional[Any] = None,
    workers: Optional[int] = None,
) -> Tuple[sp.csr_matrix, NDArray[Any]]:
    """Assemble the Laplacian of `mesh` as CSR plus its per-vertex areas.

    Returns:
        Tuple[sp.csr_matrix, NDArray[Any]]: ``(L, areas)``.
    """
    buffers = assemble_laplacian(mesh, weight_type=weight_type, workers=workers)
    L = buffers.to_csr()
    _LOGGER.debug("laplacian_matrix: nnz=%d, shape=%s", L.nnz, L.shape)
    return L, buffers.areas


def mass_matrix(areas: Any) -> sp.csr_matrix:
    """Return the diagonal (lumped) mass matrix built from vertex areas."""
    a = np.asarray(areas, dtype=float).reshape(-1)
    return sp.diags(a, format="csr")


def inverse_mass_matrix(areas: Any) -> sp.csr_matrix:
    """Return the diagonal matrix of inverse vertex areas.

    Vertices with zero area (isolated vertices) map to 0.
    """
    a = np.asarray(areas, dtype=float).reshape(-1)
    inv = np.zeros_like(a)
    valid = a > 0.0
    inv[valid] = 1.0 / a[valid]
    n_bad = int((~valid).sum())
    if n_bad:
        _LOGGER.warning(
            "inverse_mass_matrix: %d vertex area(s) are zero; inverse set to 0.",
            n_bad,
        )
    return sp.diags(inv, format="csr")

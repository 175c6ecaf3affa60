"""Discrete divergence of per-triangle vector fields.

Reduces a field holding one 3-vector per triangle to one scalar per vertex
with the cotangent formula

    div_i = 1/2 * sum_T [cot(gamma) * (e1 . X_T) + cot(beta) * (e2 . X_T)]

where, for each half-edge ``i -> j`` on triangle T, ``e1`` runs from i to j,
``e2`` runs from i to the third vertex k, gamma is the angle at k and beta
the angle at j. This is the source term of the discrete Poisson problems
used in heat-method style surface processing.
"""
from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
import logging
from typing import TYPE_CHECKING, Any, Optional

import numpy as np
from numpy.typing import NDArray

from .config import workers as configured_workers

if TYPE_CHECKING:
    from .mesh import TriMesh

_LOGGER = logging.getLogger(__name__)


def as_triangle_field(field: Any, n_triangles: int) -> NDArray[Any]:
    """Return `field` as a contiguous ``(n_triangles, 3)`` float array.

    Accepts either a ``(T, 3)`` array or a flat array of length ``3T``.

    Raises:
        ValueError: If the size does not match `n_triangles`.
    """
    arr = np.asarray(field, dtype=float)
    if arr.ndim == 1 and arr.shape[0] == 3 * n_triangles:
        arr = arr.reshape(n_triangles, 3)
    if arr.shape != (n_triangles, 3):
        _LOGGER.error(
            "as_triangle_field: field shape %s does not match %d triangles",
            arr.shape,
            n_triangles,
        )
        raise ValueError(
            f"Triangle field must have shape ({n_triangles}, 3) or "
            f"({3 * n_triangles},); got {arr.shape}"
        )
    return np.ascontiguousarray(arr)


def compute_divergence(
    mesh: TriMesh,
    field: Any,
    workers: Optional[int] = None,
    out: Optional[NDArray[Any]] = None,
) -> NDArray[Any]:
    """Compute the per-vertex divergence of a per-triangle vector field.

    Each vertex writes only its own slot of `out`, so the thread-pool path
    needs no synchronization.

    Args:
        mesh: Mesh the field lives on.
        field: Per-triangle vectors, ``(T, 3)`` or flat ``(3T,)``.
        workers: Thread count; defaults to the configured one.
        out: Optional ``(N,)`` output array.

    Returns:
        NDArray[Any]: Divergence per vertex, shape ``(N,)``.
    """
    tri_field = as_triangle_field(field, mesh.n_triangles)
    n_workers = configured_workers() if workers is None else int(workers)
    if n_workers < 1:
        raise ValueError(f"workers must be >= 1; got {n_workers}")

    if out is None:
        out = np.zeros(mesh.n_vertices, dtype=float)
    elif out.shape != (mesh.n_vertices,):
        raise ValueError(
            f"Output must have shape ({mesh.n_vertices},); got {out.shape}"
        )

    if n_workers == 1:
        for vertex in mesh.vertices:
            vertex.divergence(tri_field, out)
    else:
        with ThreadPoolExecutor(max_workers=n_workers) as pool:
            list(pool.map(lambda v: v.divergence(tri_field, out), mesh.vertices))

    _LOGGER.debug(
        "compute_divergence: N=%d, T=%d, min=%.6g, max=%.6g",
        mesh.n_vertices,
        mesh.n_triangles,
        float(out.min(initial=0.0)),
        float(out.max(initial=0.0)),
    )
    return out

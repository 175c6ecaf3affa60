"""Unit tests for the Laplacian assembly."""
from __future__ import annotations

import logging

import numpy as np
import pytest
import scipy.sparse as sp
from numpy.testing import assert_allclose

import lbmesh
from lbmesh.errors import UnsupportedWeightTypeError
from lbmesh.laplacian import (
    LaplacianBuffers,
    WeightType,
    assemble_laplacian,
    count_laplacian_entries,
    inverse_mass_matrix,
    laplacian_matrix,
    mass_matrix,
)
from lbmesh.mesh import TriMesh


def _cot(apex, p, q):
    """Cotangent of the angle at `apex` in triangle (apex, p, q)."""
    u = np.asarray(p) - np.asarray(apex)
    v = np.asarray(q) - np.asarray(apex)
    return float(np.dot(u, v) / np.linalg.norm(np.cross(u, v)))


def test_single_triangle_combinatorial(simple_triangle_mesh):
    m = simple_triangle_mesh
    L, areas = laplacian_matrix(m, WeightType.COMBINATORIAL)

    expected = np.array([[2.0, -1.0, -1.0], [-1.0, 2.0, -1.0], [-1.0, -1.0, 2.0]])
    assert_allclose(L.toarray(), expected)
    assert_allclose(areas, np.full(3, 0.5 / 3.0))


def test_buffers_layout(simple_triangle_mesh):
    buffers = assemble_laplacian(simple_triangle_mesh, "combinatorial")

    assert buffers.capacity == 3 + 2 * 3
    assert buffers.filled == buffers.capacity
    assert_allclose(buffers.diagonal, [2.0, 2.0, 2.0])
    assert buffers.rows[:3].tolist() == [0, 1, 2]
    assert buffers.cols[:3].tolist() == [0, 1, 2]
    assert_allclose(buffers.weights[3:], -1.0)

    # Both entries of an edge are written next to each other, mirrored.
    for k in range(3, buffers.capacity, 2):
        assert buffers.rows[k] == buffers.cols[k + 1]
        assert buffers.cols[k] == buffers.rows[k + 1]
        assert buffers.weights[k] == buffers.weights[k + 1]


def test_cotangent_uses_both_opposite_angles(skew_quad):
    m = skew_quad
    p = m.verts
    L, _ = laplacian_matrix(m, "cotangent")

    # Interior edge (0, 2): opposite corners 1 (in T0) and 3 (in T1).
    w02 = 0.5 * (_cot(p[1], p[0], p[2]) + _cot(p[3], p[0], p[2]))
    assert_allclose(L[0, 2], -w02)
    assert_allclose(L[2, 0], -w02)

    # Boundary edges keep half of their single cotangent.
    assert_allclose(L[0, 1], -0.5 * _cot(p[2], p[0], p[1]))
    assert_allclose(L[1, 2], -0.5 * _cot(p[0], p[1], p[2]))
    assert_allclose(L[2, 3], -0.5 * _cot(p[0], p[2], p[3]))
    assert_allclose(L[0, 3], -0.5 * _cot(p[2], p[3], p[0]))

    # No edge between 1 and 3.
    assert L[1, 3] == 0.0


def test_cotangent_square_values(two_triangle_square):
    L, areas = laplacian_matrix(two_triangle_square, "cotangent")

    # Right angles opposite the diagonal: cot(pi/2) = 0.
    assert_allclose(L[0, 2], 0.0, atol=1e-12)
    for i, j in [(0, 1), (1, 2), (2, 3), (0, 3)]:
        assert_allclose(L[i, j], -0.5)
    assert_allclose(L.diagonal(), [1.0, 1.0, 1.0, 1.0])
    assert_allclose(areas, [1.0 / 3.0, 0.5 / 3.0, 1.0 / 3.0, 0.5 / 3.0])


def test_distance_weights(skew_quad):
    m = skew_quad
    L, _ = laplacian_matrix(m, WeightType.DISTANCE)
    for i, j in m.edges():
        d2 = float(np.sum((m.verts[i] - m.verts[j]) ** 2))
        assert_allclose(L[i, j], -1.0 / d2)


@pytest.mark.parametrize("weight_type", list(WeightType))
@pytest.mark.parametrize("mesh_name", ["flat_fan", "tetra_surface", "skew_quad"])
def test_symmetry_and_zero_row_sums(request, mesh_name, weight_type):
    m = request.getfixturevalue(mesh_name)
    L, areas = laplacian_matrix(m, weight_type)

    # Mirrored entries carry the identical value.
    assert abs(L - L.T).max() == 0.0
    assert_allclose(np.asarray(L.sum(axis=1)).ravel(), 0.0, atol=1e-12)

    # Diagonal equals the sum of neighbour weights.
    off = L - sp.diags(L.diagonal())
    assert_allclose(L.diagonal(), -np.asarray(off.sum(axis=1)).ravel(), atol=1e-12)

    # Every triangle hands out exactly its area.
    assert_allclose(areas.sum(), m.triangle_areas().sum())


def test_adjacency_pattern_matches_edges(flat_fan):
    L, _ = laplacian_matrix(flat_fan, "combinatorial")
    off = sp.triu(L, k=1).tocoo()
    pattern = sorted(zip(off.row.tolist(), off.col.tolist()))
    assert pattern == flat_fan.edges()
    assert_allclose(L.diagonal(), [v.degree() for v in flat_fan.vertices])


def test_count_laplacian_entries(flat_fan, tetra_surface):
    for m in (flat_fan, tetra_surface):
        counts = count_laplacian_entries(m)
        assert counts.shape == (m.n_vertices,)
        assert int(counts.sum()) == 2 * m.n_edges


@pytest.mark.parametrize("weight_type", ["cotangent", "distance", "combinatorial"])
def test_parallel_matches_sequential(flat_fan, weight_type):
    L_seq, a_seq = laplacian_matrix(flat_fan, weight_type, workers=1)
    L_par, a_par = laplacian_matrix(flat_fan, weight_type, workers=4)

    assert_allclose(L_par.toarray(), L_seq.toarray(), atol=1e-14)
    assert_allclose(a_par, a_seq)


def test_unsupported_weight_type_writes_nothing(two_triangle_square):
    m = two_triangle_square
    buffers = LaplacianBuffers.for_mesh(m)

    with pytest.raises(UnsupportedWeightTypeError):
        m.vertices[0].calculate_laplacian_operator(buffers, m.n_vertices, "harmonic")

    assert not buffers.weights.any()
    assert not buffers.areas.any()

    with pytest.raises(UnsupportedWeightTypeError):
        assemble_laplacian(m, weight_type=42)


def test_undersized_buffers_rejected(two_triangle_square):
    small = LaplacianBuffers.allocate(4, 2)
    with pytest.raises(ValueError):
        assemble_laplacian(two_triangle_square, "combinatorial", buffers=small)


def test_caller_buffers_are_filled_in_place(two_triangle_square):
    buffers = LaplacianBuffers.for_mesh(two_triangle_square)
    out = assemble_laplacian(two_triangle_square, "combinatorial", buffers=buffers)

    assert out is buffers
    assert_allclose(buffers.diagonal, [3.0, 2.0, 3.0, 2.0])


def test_weight_type_parse():
    assert WeightType.parse("COTANGENT") is WeightType.COTANGENT
    assert WeightType.parse(" distance ") is WeightType.DISTANCE
    assert WeightType.parse(WeightType.COMBINATORIAL) is WeightType.COMBINATORIAL
    with pytest.raises(UnsupportedWeightTypeError):
        WeightType.parse("umbrella")


def test_configured_defaults_are_used(two_triangle_square):
    with lbmesh.use(weight_type="combinatorial", workers=2):
        L, _ = two_triangle_square.laplacian()
    assert_allclose(L.diagonal(), [3.0, 2.0, 3.0, 2.0])

    L_default, _ = two_triangle_square.laplacian()
    assert_allclose(L_default.diagonal(), [1.0, 1.0, 1.0, 1.0])


def test_mass_matrices():
    areas = np.array([0.5, 0.25, 0.0])
    M = mass_matrix(areas)
    assert_allclose(M.toarray(), np.diag(areas))

    Minv = inverse_mass_matrix(areas)
    assert_allclose(Minv.diagonal(), [2.0, 4.0, 0.0])


def test_distance_weight_zero_length_edge_completes(caplog):
    """Coincident vertices give an infinite weight, not a half-written diagonal."""
    verts = np.array([[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [1.0, 0.0, 0.0]])
    m = TriMesh(verts=verts, connectivity=np.array([[0, 1, 2]]))

    with caplog.at_level(logging.WARNING, logger="lbmesh"):
        buffers = assemble_laplacian(m, "distance")

    assert buffers.filled == buffers.capacity
    assert buffers.diagonal[0] == 2.0
    assert np.isposinf(buffers.diagonal[1:]).all()
    assert any("zero length" in rec.getMessage() for rec in caplog.records)

"""Unit tests for the connectivity verifier."""
from __future__ import annotations

import logging

import numpy as np

import lbmesh
from lbmesh.mesh import TriMesh
from lbmesh.verify import ViolationKind, verify_connectivity


def test_clean_meshes_have_no_violations(simple_triangle_mesh, two_triangle_square, tetra_surface, flat_fan):
    for m in (simple_triangle_mesh, two_triangle_square, tetra_surface, flat_fan):
        report = m.verify()
        assert report.ok
        assert len(report) == 0
        assert report.by_kind() == {}
        assert report.n_vertices == m.n_vertices
        assert report.n_halfedges == m.n_halfedges


def test_broken_pairing_is_reported(two_triangle_square):
    m = two_triangle_square
    he02 = m.vertices[0].get_halfedge_to(2)
    he01 = m.vertices[0].get_halfedge_to(1)
    he02.halfedge = he01.id

    report = verify_connectivity(m)

    assert not report.ok
    kinds = report.by_kind()
    # Both HE0->2 and its former buddy HE2->0 now fail the check.
    assert kinds[ViolationKind.UNPAIRED_BUDDY] == 2
    bad = report.for_vertex(0)
    assert [v.halfedge for v in bad] == [he02.id]
    # The verifier never repairs anything.
    assert he02.halfedge == he01.id


def test_wrong_origin_and_broken_cycle(two_triangle_square):
    m = two_triangle_square
    he01 = m.vertices[0].get_halfedge_to(1)
    he01.v0 = 3

    report = verify_connectivity(m, vertices=[0])
    kinds = {v.kind for v in report.violations}

    assert ViolationKind.WRONG_ORIGIN in kinds
    assert ViolationKind.BROKEN_CYCLE in kinds
    assert all(v.vertex == 0 for v in report.violations)


def test_halfedge_off_its_triangle(two_triangle_square):
    m = two_triangle_square
    he12 = m.vertices[1].get_halfedge_to(2)
    he12.triangle = 1  # T1 = (0, 2, 3) has no corner 1

    report = m.verify()

    assert ViolationKind.NOT_ON_TRIANGLE in report.by_kind()
    assert any(
        v.kind is ViolationKind.NOT_ON_TRIANGLE and v.vertex == 1 and v.halfedge == he12.id
        for v in report.violations
    )


def test_inconsistently_oriented_surface_is_flagged(caplog):
    """Faces (0,1,2),(0,1,3),(1,2,3),(0,2,3) are not consistently oriented."""
    verts = np.array(
        [[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [0.0, 1.0, 0.0], [0.0, 0.0, 1.0]]
    )
    conn = np.array([[0, 1, 2], [0, 1, 3], [1, 2, 3], [0, 2, 3]])
    m = TriMesh(verts=verts, connectivity=conn)

    with caplog.at_level(logging.WARNING, logger="lbmesh"):
        report = m.verify()

    assert m.skipped_halfedges
    assert not report.ok
    assert ViolationKind.BROKEN_CYCLE in report.by_kind()
    assert any("broken_cycle" in rec.getMessage() for rec in caplog.records)


def test_verify_on_build(caplog):
    verts = np.array([[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [0.0, 1.0, 0.0]])
    conn = np.array([[0, 1, 2]])

    with lbmesh.use(verify_on_build=True):
        with caplog.at_level(logging.INFO, logger="lbmesh"):
            TriMesh(verts=verts, connectivity=conn)

    assert any("verify_connectivity" in rec.getMessage() for rec in caplog.records)

"""Triangle-local geometry primitives used by the operator assembly.

All functions take points as length-3 array-likes and return Python floats
or NumPy arrays on CPU.
"""
from __future__ import annotations

import logging
import math
from typing import Any, Tuple

import numpy as np
from numpy.typing import NDArray

from .config import eps as _eps

_LOGGER = logging.getLogger(__name__)


def difference(p: Any, q: Any) -> NDArray[Any]:
    """Return the displacement vector ``q - p``."""
    return np.asarray(q, dtype=float) - np.asarray(p, dtype=float)


def dot(a: Any, b: Any) -> float:
    """Return the dot product of two 3-vectors as a Python float."""
    return float(np.dot(np.asarray(a, dtype=float), np.asarray(b, dtype=float)))


def edge_length(p: Any, q: Any) -> float:
    """Return the Euclidean distance between two points."""
    return float(np.linalg.norm(difference(p, q)))


def triangle_normal(a: Any, b: Any, c: Any) -> NDArray[Any]:
    """Return the unit normal of triangle (a, b, c) following its winding.

    Degenerate triangles get a zero normal.
    """
    n = np.cross(difference(a, b), difference(a, c))
    nn = float(np.linalg.norm(n))
    if nn <= _eps():
        _LOGGER.debug("triangle_normal: degenerate triangle; returning zero normal.")
        return np.zeros(3, dtype=float)
    return n / nn


def triangle_area(a: Any, b: Any, c: Any) -> float:
    """Return the area of triangle (a, b, c), i.e. half of ``|(b-a) x (c-a)|``."""
    cross = np.cross(difference(a, b), difference(a, c))
    return 0.5 * float(np.linalg.norm(cross))


def angle_between(u: Any, v: Any) -> float:
    """Return the unsigned angle in radians between vectors `u` and `v`.

    Uses ``atan2(|u x v|, u . v)``, which stays accurate for angles near 0
    and pi where ``arccos`` loses precision.
    """
    u = np.asarray(u, dtype=float)
    v = np.asarray(v, dtype=float)
    return float(math.atan2(float(np.linalg.norm(np.cross(u, v))), float(np.dot(u, v))))


def interior_angle(apex: Any, p: Any, q: Any) -> float:
    """Return the interior angle at `apex` of the triangle (apex, p, q)."""
    return angle_between(difference(apex, p), difference(apex, q))


def triangle_angles(a: Any, b: Any, c: Any) -> Tuple[float, float, float]:
    """Return the interior angles at a, b and c (radians)."""
    return (
        interior_angle(a, b, c),
        interior_angle(b, c, a),
        interior_angle(c, a, b),
    )


def cot_of_angle(theta: float) -> float:
    """Return the cotangent of `theta`.

    Angles whose sine vanishes (degenerate triangles) give a signed
    infinity and a logged warning.
    """
    s = math.sin(theta)
    c = math.cos(theta)
    if abs(s) <= _eps():
        _LOGGER.warning(
            "cot_of_angle: angle %.6g rad has vanishing sine; cotangent is infinite.",
            theta,
        )
        return math.copysign(math.inf, c)
    return c / s

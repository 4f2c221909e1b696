"""
Affine transformations in homogeneous coordinates.

A Transformation keeps both the 4x4 matrix and its inverse, so that
shapes can move rays into object space without inverting a matrix for every
intersection test. Composition follows matrix multiplication: in `A * B`
the transformation B is applied first.
"""

from __future__ import annotations
import math
from typing import overload, TYPE_CHECKING

import numpy as np

from .errors import DegenerateGeometryError
from .vec3 import Vec3, Point, Normal

if TYPE_CHECKING:
    from .ray import Ray


IDENTITY_MATRIX = np.eye(4, dtype=np.float64)


class Transformation:
    """A 4x4 affine matrix paired with its precomputed inverse."""

    __slots__ = ('m', 'invm')

    def __init__(self, m: np.ndarray = IDENTITY_MATRIX, invm: np.ndarray = IDENTITY_MATRIX):
        self.m = np.asarray(m, dtype=np.float64)
        self.invm = np.asarray(invm, dtype=np.float64)

    def inverse(self) -> Transformation:
        """Return the inverse transformation (swaps the two matrices)."""
        return Transformation(self.invm, self.m)

    def is_consistent(self) -> bool:
        """Check that m * invm is the identity."""
        return bool(np.allclose(self.m @ self.invm, IDENTITY_MATRIX))

    @overload
    def __mul__(self, other: Transformation) -> Transformation: ...

    @overload
    def __mul__(self, other: Vec3) -> Vec3: ...

    def __mul__(self, other):
        if isinstance(other, Transformation):
            # (A B)^-1 = B^-1 A^-1
            return Transformation(self.m @ other.m, other.invm @ self.invm)
        if isinstance(other, Point):
            p = self.m[:3, :3] @ other._data + self.m[:3, 3]
            w = self.m[3, :3] @ other._data + self.m[3, 3]
            if w != 1.0:
                p = p / w
            return Point.from_array(p)
        if isinstance(other, Normal):
            return Normal.from_array(self.invm[:3, :3].T @ other._data)
        if isinstance(other, Vec3):
            return Vec3.from_array(self.m[:3, :3] @ other._data)

        from .ray import Ray
        if isinstance(other, Ray):
            return other.transform(self)
        return NotImplemented

    def __pow__(self, exponent: int) -> Transformation:
        """Apply the transformation `exponent` times (0 gives the identity)."""
        if exponent < 0:
            return self.inverse() ** (-exponent)
        return Transformation(
            np.linalg.matrix_power(self.m, exponent),
            np.linalg.matrix_power(self.invm, exponent),
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Transformation):
            return NotImplemented
        return bool(np.allclose(self.m, other.m, atol=1e-5) and np.allclose(self.invm, other.invm, atol=1e-5))

    __hash__ = None

    def __repr__(self) -> str:
        rows = "; ".join(" ".join(f"{value:.4g}" for value in row) for row in self.m)
        return f"Transformation([{rows}])"


def identity() -> Transformation:
    return Transformation()


def translation(vec: Vec3) -> Transformation:
    """Create a translation by the vector `vec`."""
    m = np.eye(4)
    m[:3, 3] = vec._data
    invm = np.eye(4)
    invm[:3, 3] = -vec._data
    return Transformation(m, invm)


def scaling(sx: float, sy: float, sz: float) -> Transformation:
    """Create a scaling along the three axes.

    Raises:
        DegenerateGeometryError: if any factor is zero
    """
    if sx == 0 or sy == 0 or sz == 0:
        raise DegenerateGeometryError(f"cannot scale by a zero factor: ({sx}, {sy}, {sz})")
    m = np.diag([sx, sy, sz, 1.0])
    invm = np.diag([1.0 / sx, 1.0 / sy, 1.0 / sz, 1.0])
    return Transformation(m, invm)


def _rotation(axis: int, angle_deg: float) -> Transformation:
    angle = math.radians(angle_deg)
    cosang, sinang = math.cos(angle), math.sin(angle)

    # Indices of the two coordinates mixed by a rotation around `axis`
    i, j = [(1, 2), (2, 0), (0, 1)][axis]
    m = np.eye(4)
    m[i, i] = cosang
    m[i, j] = -sinang
    m[j, i] = sinang
    m[j, j] = cosang
    # Rotation matrices are orthogonal: the inverse is the transpose
    return Transformation(m, m.T.copy())


def rotation_x(angle_deg: float) -> Transformation:
    """Counter-clockwise rotation around the x axis, angle in degrees."""
    return _rotation(0, angle_deg)


def rotation_y(angle_deg: float) -> Transformation:
    """Counter-clockwise rotation around the y axis, angle in degrees."""
    return _rotation(1, angle_deg)


def rotation_z(angle_deg: float) -> Transformation:
    """Counter-clockwise rotation around the z axis, angle in degrees."""
    return _rotation(2, angle_deg)

"""
Vector types for 3D math operations.

This is the fundamental building block of the ray tracer, used for:
- Points in 3D space (Point)
- Direction vectors (Vec3)
- Surface normals (Normal)
- RGB color values (Color)

Points and normals are subclasses of Vec3 so that transformations can tell
them apart: a point carries an implicit homogeneous coordinate of 1, vectors
and normals a coordinate of 0, and normals transform with the inverse
transpose of the matrix.
"""

from __future__ import annotations
import math
from typing import NamedTuple, Tuple, Union
import numpy as np

from .errors import DegenerateGeometryError


class Vec3:
    """A 3D vector class supporting common vector operations.

    Uses numpy internally for efficient computation while providing
    a clean, Pythonic API.
    """

    __slots__ = ('_data',)

    def __init__(self, x: float = 0.0, y: float = 0.0, z: float = 0.0):
        self._data = np.array([x, y, z], dtype=np.float64)

    @classmethod
    def from_array(cls, arr: np.ndarray) -> Vec3:
        """Create a vector of this kind from a numpy array."""
        v = cls.__new__(cls)
        v._data = np.asarray(arr, dtype=np.float64)
        return v

    @property
    def x(self) -> float:
        return float(self._data[0])

    @property
    def y(self) -> float:
        return float(self._data[1])

    @property
    def z(self) -> float:
        return float(self._data[2])

    # Aliases for color operations
    @property
    def r(self) -> float:
        return self.x

    @property
    def g(self) -> float:
        return self.y

    @property
    def b(self) -> float:
        return self.z

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.x:.4f}, {self.y:.4f}, {self.z:.4f})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Vec3):
            return NotImplemented
        return np.allclose(self._data, other._data, rtol=1e-5, atol=1e-5)

    def __hash__(self) -> int:
        return hash(tuple(self._data))

    def __neg__(self) -> Vec3:
        return type(self).from_array(-self._data)

    def __add__(self, other: Union[Vec3, float]) -> Vec3:
        if isinstance(other, Vec3):
            return Vec3.from_array(self._data + other._data)
        return Vec3.from_array(self._data + other)

    def __radd__(self, other: float) -> Vec3:
        return Vec3.from_array(other + self._data)

    def __sub__(self, other: Union[Vec3, float]) -> Vec3:
        if isinstance(other, Vec3):
            return Vec3.from_array(self._data - other._data)
        return Vec3.from_array(self._data - other)

    def __rsub__(self, other: float) -> Vec3:
        return Vec3.from_array(other - self._data)

    def __mul__(self, other: Union[Vec3, float]) -> Vec3:
        if isinstance(other, Vec3):
            return Vec3.from_array(self._data * other._data)
        return type(self).from_array(self._data * other)

    def __rmul__(self, other: float) -> Vec3:
        return type(self).from_array(other * self._data)

    def __truediv__(self, other: Union[Vec3, float]) -> Vec3:
        if isinstance(other, Vec3):
            return Vec3.from_array(self._data / other._data)
        return type(self).from_array(self._data / other)

    def __getitem__(self, index: int) -> float:
        return float(self._data[index])

    def __iter__(self):
        return iter((self.x, self.y, self.z))

    def length(self) -> float:
        """Return the magnitude (length) of the vector."""
        return float(np.linalg.norm(self._data))

    def length_squared(self) -> float:
        """Return the squared magnitude (avoids sqrt for comparisons)."""
        return float(np.dot(self._data, self._data))

    def normalize(self) -> Vec3:
        """Return a unit vector in the same direction.

        A zero-length input gives back a zero vector; callers that need a
        real direction must check `near_zero()` first.
        """
        length = self.length()
        if length == 0:
            return type(self).from_array(np.zeros(3))
        return type(self).from_array(self._data / length)

    def dot(self, other: Vec3) -> float:
        """Compute dot product with another vector."""
        return float(np.dot(self._data, other._data))

    def cross(self, other: Vec3) -> Vec3:
        """Compute cross product with another vector."""
        return Vec3.from_array(np.cross(self._data, other._data))

    def reflect(self, normal: Vec3) -> Vec3:
        """Reflect this vector around the given normal."""
        return self - normal * 2 * self.dot(normal)

    def near_zero(self, epsilon: float = 1e-8) -> bool:
        """Check if vector is close to zero in all dimensions."""
        return all(abs(c) < epsilon for c in self._data)

    def max_component(self) -> float:
        return float(np.max(self._data))

    def to_vec(self) -> Vec3:
        return Vec3.from_array(self._data.copy())

    def to_array(self) -> np.ndarray:
        """Return the underlying numpy array (copy)."""
        return self._data.copy()

    def clamp(self, min_val: float = 0.0, max_val: float = 1.0) -> Vec3:
        """Clamp all components to the given range."""
        return type(self).from_array(np.clip(self._data, min_val, max_val))


class Point(Vec3):
    """A position in space.

    Point + Vec3 is a Point, Point - Point is a Vec3.
    """

    __slots__ = ()

    def __add__(self, other: Union[Vec3, float]) -> Point:
        if isinstance(other, Vec3):
            return Point.from_array(self._data + other._data)
        return Point.from_array(self._data + other)

    def __sub__(self, other: Union[Vec3, float]) -> Vec3:
        if isinstance(other, Point):
            return Vec3.from_array(self._data - other._data)
        if isinstance(other, Vec3):
            return Point.from_array(self._data - other._data)
        return Point.from_array(self._data - other)


class Normal(Vec3):
    """A surface normal; transforms with the inverse transpose."""

    __slots__ = ()


class Vec2D(NamedTuple):
    """Surface (u, v) coordinates of a hit point."""
    u: float
    v: float


def onb_from_z(normal: Vec3) -> Tuple[Vec3, Vec3, Vec3]:
    """Build a right-handed orthonormal basis whose third axis is `normal`.

    Uses the branchless construction from Duff et al., "Building an
    Orthonormal Basis, Revisited" (JCGT 2017).
    """
    length = normal.length()
    if length < 1e-12:
        raise DegenerateGeometryError("cannot build a basis around a zero-length normal")
    x, y, z = normal.x / length, normal.y / length, normal.z / length

    sign = math.copysign(1.0, z)
    a = -1.0 / (sign + z)
    b = x * y * a

    e1 = Vec3(1.0 + sign * x * x * a, sign * b, -sign * x)
    e2 = Vec3(b, sign + y * y * a, -y)
    return e1, e2, Vec3(x, y, z)


# Convenience type aliases
Color = Vec3

BLACK = Color(0.0, 0.0, 0.0)
WHITE = Color(1.0, 1.0, 1.0)

VEC_X = Vec3(1.0, 0.0, 0.0)
VEC_Y = Vec3(0.0, 1.0, 0.0)
VEC_Z = Vec3(0.0, 0.0, 1.0)

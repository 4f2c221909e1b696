"""
Geometric shapes for the ray tracer.

Every shape is defined in its own object space (unit sphere at the origin,
the z = 0 plane, the unit cube centred on the origin) and placed in the
world by a Transformation. Intersection tests move the ray into object
space, solve there and map the result back.

Besides the nearest hit, each shape reports the intervals of the ray
parameter where the ray is inside the solid; CSG nodes combine these.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from typing import Optional, TYPE_CHECKING
import math

from .vec3 import Vec3, Point, Normal, Vec2D
from .ray import Ray
from .transformations import Transformation

if TYPE_CHECKING:
    from .materials import Material


@dataclass
class HitRecord:
    """Stores information about a ray-object intersection.

    Attributes:
        world_point: The intersection point in world space
        normal: The unit surface normal (always points against the ray)
        surface_point: (u, v) texture coordinates at the hit point
        t: The ray parameter at intersection
        ray: The ray that produced the hit
        shape: The primitive that was hit (its material shades the point)
    """
    world_point: Point
    normal: Normal
    surface_point: Vec2D
    t: float
    ray: Ray
    shape: Shape

    @property
    def material(self) -> Material:
        return self.shape.material

    def transformed(self, transformation: Transformation, ray: Ray) -> HitRecord:
        """Map the record through `transformation`, attributing it to `ray`."""
        return replace(
            self,
            world_point=transformation * self.world_point,
            normal=(transformation * self.normal).normalize(),
            ray=ray,
        )

    def is_close(self, other: Optional[HitRecord], epsilon: float = 1e-5) -> bool:
        """Compare point, normal, uv and t within a tolerance (for tests)."""
        if other is None:
            return False
        return (
            (self.world_point - other.world_point).near_zero(epsilon)
            and (self.normal - other.normal).near_zero(epsilon)
            and abs(self.surface_point.u - other.surface_point.u) < epsilon
            and abs(self.surface_point.v - other.surface_point.v) < epsilon
            and abs(self.t - other.t) < epsilon
        )


@dataclass
class Interval:
    """A stretch of the ray line [t_in, t_out] lying inside a solid.

    `enter` and `leave` are the boundary records; they are None for an
    unbounded end (t_in = -inf or t_out = +inf).
    """
    t_in: float
    t_out: float
    enter: Optional[HitRecord] = None
    leave: Optional[HitRecord] = None

    def transformed(self, transformation: Transformation, ray: Ray) -> Interval:
        return Interval(
            self.t_in,
            self.t_out,
            self.enter.transformed(transformation, ray) if self.enter is not None else None,
            self.leave.transformed(transformation, ray) if self.leave is not None else None,
        )

    def boundaries(self) -> list[HitRecord]:
        return [record for record in (self.enter, self.leave) if record is not None]


def _orient(normal: Normal, ray: Ray) -> Normal:
    """Flip the normal so that it faces against the incoming ray."""
    return normal if normal.dot(ray.direction) < 0 else -normal


def _in_range(ray: Ray, t: float) -> bool:
    return ray.tmin < t < ray.tmax


class Shape(ABC):
    """Abstract base class for everything that can be placed in a World.

    Subclasses provide `all_hits`, `intervals` and `is_inside`; `hit` is
    the first element of `all_hits`.
    """

    def __init__(
        self,
        transformation: Optional[Transformation] = None,
        material: Optional[Material] = None,
        name: str = "",
    ):
        """Create a shape.

        Args:
            transformation: Object-to-world transformation (identity if None)
            material: Material for shading (white diffuse if None)
            name: Name used by the scene parser and in error messages
        """
        if material is None:
            from .materials import Material
            material = Material()
        self.transformation = transformation if transformation is not None else Transformation()
        self.material = material
        self.name = name

    def hit(self, ray: Ray) -> Optional[HitRecord]:
        """Return the nearest intersection with tmin < t < tmax, or None."""
        hits = self.all_hits(ray)
        return hits[0] if hits else None

    @abstractmethod
    def all_hits(self, ray: Ray) -> list[HitRecord]:
        """Every surface crossing with tmin < t < tmax, sorted by t."""
        pass

    @abstractmethod
    def intervals(self, ray: Ray) -> list[Interval]:
        """Disjoint, sorted intervals over the whole ray line inside the solid."""
        pass

    @abstractmethod
    def is_inside(self, point: Point) -> bool:
        """Strict containment test for a point given in the parent frame."""
        pass

    def copy(self, name: str, transformation: Optional[Transformation] = None) -> Shape:
        """Return an independent duplicate named `name`.

        If `transformation` is given it is applied on top of the current
        placement of the shape.
        """
        new_transformation = self.transformation
        if transformation is not None:
            new_transformation = transformation * self.transformation
        return type(self)(transformation=new_transformation, material=self.material, name=name)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


class _Primitive(Shape):
    """A shape described by an implicit surface in object space."""

    @abstractmethod
    def _crossings(self, local_ray: Ray) -> list[tuple[float, Normal]]:
        """All crossings of the untransformed surface along the whole line.

        Returns (t, outward normal) pairs sorted by t.
        """
        pass

    @abstractmethod
    def _uv(self, local_point: Point) -> Vec2D:
        pass

    def _record(self, ray: Ray, local_ray: Ray, t: float, outward: Normal) -> HitRecord:
        local_point = local_ray.at(t)
        return HitRecord(
            world_point=self.transformation * local_point,
            normal=(self.transformation * _orient(outward, local_ray)).normalize(),
            surface_point=self._uv(local_point),
            t=t,
            ray=ray,
            shape=self,
        )

    def all_hits(self, ray: Ray) -> list[HitRecord]:
        local_ray = ray.transform(self.transformation.inverse())
        return [
            self._record(ray, local_ray, t, outward)
            for t, outward in self._crossings(local_ray)
            if _in_range(ray, t)
        ]

    def intervals(self, ray: Ray) -> list[Interval]:
        local_ray = ray.transform(self.transformation.inverse())
        crossings = self._crossings(local_ray)
        if len(crossings) == 2:
            (t_in, n_in), (t_out, n_out) = crossings
            return [Interval(
                t_in, t_out,
                self._record(ray, local_ray, t_in, n_in),
                self._record(ray, local_ray, t_out, n_out),
            )]
        return []

    def is_inside(self, point: Point) -> bool:
        return self._contains(self.transformation.inverse() * point)

    @abstractmethod
    def _contains(self, local_point: Point) -> bool:
        pass


class Sphere(_Primitive):
    """The unit sphere centred on the origin."""

    def _crossings(self, local_ray: Ray) -> list[tuple[float, Normal]]:
        """Solve |O + t d|^2 = 1.

        This expands to t^2 (d.d) + 2t (O.d) + O.O - 1 = 0. Tangent rays
        (zero discriminant) are not counted as hits.
        """
        origin = local_ray.origin.to_vec()
        direction = local_ray.direction
        a = direction.length_squared()
        half_b = origin.dot(direction)
        c = origin.length_squared() - 1.0

        discriminant = half_b * half_b - a * c
        if discriminant <= 0:
            return []

        sqrtd = math.sqrt(discriminant)
        crossings = []
        for t in ((-half_b - sqrtd) / a, (-half_b + sqrtd) / a):
            p = local_ray.at(t)
            crossings.append((t, Normal(p.x, p.y, p.z)))
        return crossings

    def _uv(self, local_point: Point) -> Vec2D:
        """Spherical coordinates: u is the azimuth, v the polar angle."""
        u = math.atan2(local_point.y, local_point.x) / (2 * math.pi)
        if u < 0:
            u += 1.0
        v = math.acos(max(-1.0, min(1.0, local_point.z))) / math.pi
        return Vec2D(u, v)

    def _contains(self, local_point: Point) -> bool:
        return local_point.length_squared() < 1.0


class Plane(_Primitive):
    """The infinite z = 0 plane; the solid half-space is z < 0."""

    def _crossings(self, local_ray: Ray) -> list[tuple[float, Normal]]:
        # Ray is parallel to plane
        if local_ray.direction.z == 0:
            return []
        t = -local_ray.origin.z / local_ray.direction.z
        return [(t, Normal(0.0, 0.0, 1.0))]

    def _uv(self, local_point: Point) -> Vec2D:
        return Vec2D(local_point.x - math.floor(local_point.x),
                     local_point.y - math.floor(local_point.y))

    def intervals(self, ray: Ray) -> list[Interval]:
        local_ray = ray.transform(self.transformation.inverse())
        crossings = self._crossings(local_ray)
        if not crossings:
            if local_ray.origin.z < 0:
                return [Interval(-math.inf, math.inf)]
            return []

        t, outward = crossings[0]
        record = self._record(ray, local_ray, t, outward)
        if local_ray.direction.z < 0:
            # Moving downwards: the ray enters the half-space at t
            return [Interval(t, math.inf, enter=record)]
        return [Interval(-math.inf, t, leave=record)]

    def _contains(self, local_point: Point) -> bool:
        return local_point.z < 0


class Cube(_Primitive):
    """The axis-aligned cube [-0.5, 0.5]^3."""

    HALF_SIDE = 0.5

    def _crossings(self, local_ray: Ray) -> list[tuple[float, Normal]]:
        """Slab method over the three pairs of faces."""
        t_near, t_far = -math.inf, math.inf
        near_axis = far_axis = -1

        for i in range(3):
            o, d = local_ray.origin[i], local_ray.direction[i]
            if abs(d) < 1e-12:
                # Parallel to this slab: either always within it or never
                if abs(o) >= self.HALF_SIDE:
                    return []
                continue

            t0 = (-self.HALF_SIDE - o) / d
            t1 = (self.HALF_SIDE - o) / d
            if t0 > t1:
                t0, t1 = t1, t0

            if t0 > t_near:
                t_near, near_axis = t0, i
            if t1 < t_far:
                t_far, far_axis = t1, i

        if near_axis < 0 or far_axis < 0 or t_near >= t_far:
            return []

        return [
            (t_near, self._face_normal(local_ray.at(t_near), near_axis)),
            (t_far, self._face_normal(local_ray.at(t_far), far_axis)),
        ]

    @staticmethod
    def _face_normal(local_point: Point, axis: int) -> Normal:
        components = [0.0, 0.0, 0.0]
        components[axis] = math.copysign(1.0, local_point[axis])
        return Normal(*components)

    def _uv(self, local_point: Point) -> Vec2D:
        """Map the two in-face coordinates of the hit face onto [0, 1]."""
        x, y, z = (c + self.HALF_SIDE for c in local_point)
        # The face is the axis where the point sits on the boundary
        axis = max(range(3), key=lambda i: abs(local_point[i]))
        if axis == 0:  # X face
            u, v = z, y
        elif axis == 1:  # Y face
            u, v = x, z
        else:  # Z face
            u, v = x, y
        return Vec2D(max(0.0, min(1.0, u)), max(0.0, min(1.0, v)))

    def _contains(self, local_point: Point) -> bool:
        return all(abs(c) < self.HALF_SIDE for c in local_point)

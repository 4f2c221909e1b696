"""
Ray class for representing rays in 3D space.

A ray is defined by an origin point and a direction vector.
Ray(t) = origin + t * direction

Intersections are only accepted in the open range tmin < t < tmax; `depth`
counts how many bounces produced this ray.
"""

from __future__ import annotations
import math
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING

from .vec3 import Vec3, Point

if TYPE_CHECKING:
    from .transformations import Transformation


@dataclass(frozen=True)
class Ray:
    """An immutable ray with origin, direction and valid parameter range.

    The parametric form is: P(t) = origin + t * direction
    """

    origin: Point
    direction: Vec3
    tmin: float = 1e-5
    tmax: float = math.inf
    depth: int = 0

    def at(self, t: float) -> Point:
        """Get the point along the ray at parameter t.

        Args:
            t: The parameter value (distance if direction is normalized)

        Returns:
            The point at origin + t * direction
        """
        return self.origin + self.direction * t

    def transform(self, transformation: Transformation) -> Ray:
        """Return the ray mapped by `transformation`.

        The direction is not renormalised, so `t` values stay comparable
        between world space and object space.
        """
        return replace(
            self,
            origin=transformation * self.origin,
            direction=transformation * self.direction,
        )

    def is_close(self, other: Ray, epsilon: float = 1e-5) -> bool:
        """Compare origin and direction within a tolerance."""
        return (self.origin - other.origin).near_zero(epsilon) and \
            (self.direction - other.direction).near_zero(epsilon)

    def __repr__(self) -> str:
        return f"Ray(origin={self.origin}, direction={self.direction}, depth={self.depth})"

"""
Camera module for generating primary rays.

Supports:
- Perspective projection
- Orthogonal (parallel) projection
- Arbitrary placement via a Transformation
- Camera animation (Motion)

In camera space the observer looks along +x, with +y to the left and +z
up. Screen coordinates (u, v) span [-1, 1]: u = -1 is the left edge of
the image and v = +1 its top edge.
"""

from __future__ import annotations
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace

from .errors import ConfigurationError, DegenerateGeometryError
from .ray import Ray
from .transformations import Transformation
from .vec3 import Vec3, Point, VEC_X


class Camera(ABC):
    """Abstract base class for cameras."""

    transformation: Transformation

    @abstractmethod
    def fire_ray(self, u: float, v: float) -> Ray:
        """Generate a ray through the screen point (u, v).

        Args:
            u: Horizontal coordinate in [-1, 1] (-1 = left, 1 = right)
            v: Vertical coordinate in [-1, 1] (-1 = bottom, 1 = top)

        Returns:
            A ray in world space
        """
        pass

    def with_transformation(self, transformation: Transformation) -> Camera:
        """Return the same camera placed by `transformation`."""
        return replace(self, transformation=transformation)


@dataclass(frozen=True)
class PerspectiveCamera(Camera):
    """A pinhole camera.

    The eye sits at (-screen_distance, 0, 0); the screen is the square
    x = 0, |y| <= aspect_ratio, |z| <= 1. Directions are normalised.
    """
    screen_distance: float = 1.0
    aspect_ratio: float = 1.0
    transformation: Transformation = field(default_factory=Transformation)

    def fire_ray(self, u: float, v: float) -> Ray:
        origin = Point(-self.screen_distance, 0.0, 0.0)
        direction = Vec3(self.screen_distance, -u * self.aspect_ratio, v)
        ray = Ray(origin, direction).transform(self.transformation)

        length = ray.direction.length()
        if length < 1e-12:
            raise DegenerateGeometryError(f"camera produced a zero-length direction at ({u}, {v})")
        return replace(ray, direction=ray.direction / length)


@dataclass(frozen=True)
class OrthogonalCamera(Camera):
    """A camera firing parallel rays along +x from the plane x = -1."""
    aspect_ratio: float = 1.0
    transformation: Transformation = field(default_factory=Transformation)

    def fire_ray(self, u: float, v: float) -> Ray:
        origin = Point(-1.0, -u * self.aspect_ratio, v)
        return Ray(origin, VEC_X).transform(self.transformation)


@dataclass(frozen=True)
class Motion:
    """Camera animation: each frame applies `transformation` once more.

    Frame k places the camera with `transformation ** k * camera`, so frame
    0 is the static camera.
    """
    transformation: Transformation
    frames: int

    def __post_init__(self):
        if self.frames <= 0 or self.frames != math.floor(self.frames):
            raise ConfigurationError(f"motion needs a positive whole number of frames, got {self.frames}")
        object.__setattr__(self, 'frames', int(self.frames))

    def camera_at(self, camera: Camera, frame: int) -> Camera:
        """The camera for frame `frame` (0-based)."""
        if not 0 <= frame < self.frames:
            raise IndexError(f"frame {frame} outside [0, {self.frames})")
        return camera.with_transformation((self.transformation ** frame) * camera.transformation)

    def cameras(self, camera: Camera):
        """Yield the camera for every frame in order."""
        for frame in range(self.frames):
            yield self.camera_at(camera, frame)

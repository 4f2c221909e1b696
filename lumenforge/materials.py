"""
Materials: a BRDF for reflected light plus a pigment for emitted light.

Implements:
- Diffuse (ideal Lambertian) BRDF with cosine-weighted importance sampling
- Specular (ideal mirror) BRDF
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional
import math

from .pcg import PCG
from .pigments import Pigment, UniformPigment
from .ray import Ray
from .vec3 import Vec3, Point, Normal, Color, Vec2D, BLACK, onb_from_z

# Scattered rays start slightly away from the surface to avoid self-hits
SCATTER_TMIN = 1e-3


class BRDF(ABC):
    """Abstract base class for reflectance models."""

    def __init__(self, pigment: Optional[Pigment] = None):
        self.pigment = pigment if pigment is not None else UniformPigment()

    @abstractmethod
    def eval(self, normal: Normal, in_dir: Vec3, out_dir: Vec3, uv: Vec2D) -> Color:
        """Value of the BRDF for the given pair of directions.

        Both `in_dir` and `out_dir` point away from the surface.
        """
        pass

    @abstractmethod
    def scatter_ray(
        self,
        pcg: PCG,
        incoming_dir: Vec3,
        interaction_point: Point,
        normal: Normal,
        depth: int,
    ) -> Ray:
        """Draw an outgoing ray from the interaction point.

        Args:
            pcg: Random source (diffuse BRDFs consume exactly two draws)
            incoming_dir: Direction of the incoming ray
            interaction_point: Hit point in world space
            normal: Surface normal facing the incoming ray
            depth: Depth to give the new ray

        Returns:
            The scattered ray
        """
        pass

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.pigment!r})"


class DiffuseBRDF(BRDF):
    """Ideal diffuse reflection: the same radiance in every direction."""

    def eval(self, normal: Normal, in_dir: Vec3, out_dir: Vec3, uv: Vec2D) -> Color:
        return self.pigment.get_color(uv) * (1.0 / math.pi)

    def scatter_ray(self, pcg, incoming_dir, interaction_point, normal, depth):
        # Importance sampling of cos(theta): with X1, X2 uniform in [0, 1),
        # theta = acos(sqrt(X1)) and phi = 2 pi X2
        e1, e2, e3 = onb_from_z(normal)
        cos_theta_sq = pcg.random_float()
        cos_theta, sin_theta = math.sqrt(cos_theta_sq), math.sqrt(1.0 - cos_theta_sq)
        phi = 2.0 * math.pi * pcg.random_float()

        direction = (e1 * (math.cos(phi) * sin_theta)
                     + e2 * (math.sin(phi) * sin_theta)
                     + e3 * cos_theta)
        return Ray(
            origin=interaction_point,
            direction=direction,
            tmin=SCATTER_TMIN,
            tmax=math.inf,
            depth=depth,
        )


class SpecularBRDF(BRDF):
    """A perfect mirror.

    `eval` is non-zero only when the two directions make the same angle with
    the normal, within `angle_tolerance` radians.
    """

    def __init__(self, pigment: Optional[Pigment] = None, angle_tolerance: float = math.pi / 1800.0):
        super().__init__(pigment)
        self.angle_tolerance = angle_tolerance

    def eval(self, normal: Normal, in_dir: Vec3, out_dir: Vec3, uv: Vec2D) -> Color:
        n = normal.normalize()
        theta_in = math.acos(max(-1.0, min(1.0, n.dot(in_dir.normalize()))))
        theta_out = math.acos(max(-1.0, min(1.0, n.dot(out_dir.normalize()))))
        if abs(theta_in - theta_out) < self.angle_tolerance:
            return self.pigment.get_color(uv)
        return BLACK

    def scatter_ray(self, pcg, incoming_dir, interaction_point, normal, depth):
        # Deterministic: no random numbers are drawn
        direction = incoming_dir.normalize().reflect(normal.normalize())
        return Ray(
            origin=interaction_point,
            direction=direction,
            tmin=SCATTER_TMIN,
            tmax=math.inf,
            depth=depth,
        )


@dataclass(frozen=True)
class Material:
    """Surface description: how light is reflected and how much is emitted."""
    brdf: BRDF = field(default_factory=DiffuseBRDF)
    emitted_radiance: Pigment = field(default_factory=lambda: UniformPigment(BLACK))

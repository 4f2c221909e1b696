"""
Rendering algorithms.

Each tracer is a pure function of the world, a ray and a random source,
returning the radiance carried back along the ray:

- onoff_tracer: visibility only
- flat_tracer: pigment plus emission at the first hit, no lighting
- path_tracer: Monte-Carlo estimate of the rendering equation with
  Russian roulette termination

Bind the world and options with functools.partial to obtain the
`(ray, pcg) -> Color` callable the ImageTracer expects.
"""

from __future__ import annotations
from typing import Optional

from .materials import SpecularBRDF
from .pcg import PCG
from .ray import Ray
from .vec3 import Color, BLACK, WHITE
from .world import World


def onoff_tracer(
    world: World,
    ray: Ray,
    pcg: Optional[PCG] = None,
    background: Color = BLACK,
    color: Color = WHITE,
) -> Color:
    """Return `color` if the ray hits anything, `background` otherwise."""
    return background if world.hit(ray) is None else color


def flat_tracer(world: World, ray: Ray, pcg: Optional[PCG] = None, background: Color = BLACK) -> Color:
    """Return the pigment plus emitted radiance of the first surface hit."""
    hit_record = world.hit(ray)
    if hit_record is None:
        return background

    material = hit_record.material
    uv = hit_record.surface_point
    return material.brdf.pigment.get_color(uv) + material.emitted_radiance.get_color(uv)


def path_tracer(
    world: World,
    ray: Ray,
    pcg: PCG,
    background: Color = BLACK,
    n_rays: int = 10,
    max_depth: int = 2,
    russian_roulette_limit: int = 3,
) -> Color:
    """Compute the radiance along a ray using path tracing.

    Args:
        world: The shapes to trace against
        ray: The ray to trace
        pcg: Random source for BRDF sampling and Russian roulette
        background: Radiance of rays that escape the scene
        n_rays: Number of scattered rays per diffuse hit
        max_depth: Rays deeper than this return only the emitted radiance
        russian_roulette_limit: Depth from which Russian roulette applies

    Returns:
        The estimated radiance for this ray
    """
    hit_record = world.hit(ray)
    if hit_record is None:
        return background

    material = hit_record.material
    uv = hit_record.surface_point
    emitted = material.emitted_radiance.get_color(uv)

    if ray.depth > max_depth:
        return emitted

    hit_color = material.brdf.pigment.get_color(uv)
    lum = hit_color.max_component()

    # Russian roulette
    if ray.depth >= russian_roulette_limit:
        q = min(0.95, lum)
        if pcg.random_float() >= q:
            return emitted
        # Keep the estimator unbiased
        hit_color = hit_color * (1.0 / q)

    if lum <= 0.0:
        return emitted

    options = dict(
        background=background,
        n_rays=n_rays,
        max_depth=max_depth,
        russian_roulette_limit=russian_roulette_limit,
    )

    # A mirror has a single outgoing direction, sampling it more adds nothing
    samples = 1 if isinstance(material.brdf, SpecularBRDF) else n_rays

    cum_radiance = BLACK
    for _ in range(samples):
        new_ray = material.brdf.scatter_ray(
            pcg,
            ray.direction,
            hit_record.world_point,
            hit_record.normal,
            ray.depth + 1,
        )
        new_radiance = path_tracer(world, new_ray, pcg, **options)
        cum_radiance = cum_radiance + hit_color * new_radiance

    return emitted + cum_radiance * (1.0 / samples)

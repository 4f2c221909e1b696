"""Tests for pigments, BRDFs and materials."""

import pytest
import math
import numpy as np

from lumenforge.hdrimage import HdrImage
from lumenforge.materials import Material, DiffuseBRDF, SpecularBRDF, SCATTER_TMIN
from lumenforge.pcg import PCG
from lumenforge.pigments import UniformPigment, CheckeredPigment, ImagePigment
from lumenforge.vec3 import Vec3, Point, Normal, Vec2D, Color, BLACK, WHITE


class TestPigments:
    """Colour lookups in uv space."""

    def test_uniform(self):
        color = Color(1, 2, 3)
        pigment = UniformPigment(color)
        for uv in (Vec2D(0, 0), Vec2D(1, 0), Vec2D(0.3, 0.9)):
            assert pigment.get_color(uv) == color

    def test_checkered(self):
        color1 = Color(1, 2, 3)
        color2 = Color(10, 20, 30)
        pigment = CheckeredPigment(color1, color2, 2)

        assert pigment.get_color(Vec2D(0.25, 0.25)) == color1
        assert pigment.get_color(Vec2D(0.75, 0.25)) == color2
        assert pigment.get_color(Vec2D(0.25, 0.75)) == color2
        assert pigment.get_color(Vec2D(0.75, 0.75)) == color1

    def test_checkered_needs_squares(self):
        with pytest.raises(ValueError):
            CheckeredPigment(BLACK, WHITE, 0)

    def test_image(self):
        image = HdrImage(2, 2)
        image.set_pixel(0, 0, Color(1, 2, 3))
        image.set_pixel(1, 0, Color(2, 3, 1))
        image.set_pixel(0, 1, Color(2, 1, 3))
        image.set_pixel(1, 1, Color(3, 2, 1))
        pigment = ImagePigment(image)

        assert pigment.get_color(Vec2D(0, 0)) == Color(1, 2, 3)
        assert pigment.get_color(Vec2D(1, 0)) == Color(2, 3, 1)
        assert pigment.get_color(Vec2D(0, 1)) == Color(2, 1, 3)
        assert pigment.get_color(Vec2D(1, 1)) == Color(3, 2, 1)


class TestDiffuseBRDF:
    """Lambertian reflection with cosine-weighted sampling."""

    def test_eval_is_constant(self):
        brdf = DiffuseBRDF(UniformPigment(Color(0.5, 0.5, 0.5)))
        value = brdf.eval(Normal(0, 0, 1), Vec3(0, 0, 1), Vec3(1, 0, 1), Vec2D(0, 0))
        assert value == Color(0.5, 0.5, 0.5) * (1 / math.pi)

    def test_scattered_in_hemisphere(self):
        brdf = DiffuseBRDF()
        pcg = PCG()
        normal = Normal(0, 1, 0)
        for _ in range(100):
            ray = brdf.scatter_ray(pcg, Vec3(0, -1, 0), Point(1, 2, 3), normal, depth=4)
            assert ray.direction.dot(normal) >= 0
            assert ray.direction.length() == pytest.approx(1.0)
            assert ray.origin == Point(1, 2, 3)
            assert ray.tmin == SCATTER_TMIN
            assert ray.depth == 4

    def test_consumes_two_random_numbers(self):
        pcg = PCG()
        reference = PCG()
        DiffuseBRDF().scatter_ray(pcg, Vec3(0, 0, -1), Point(), Normal(0, 0, 1), 1)
        reference.random()
        reference.random()
        assert pcg.state == reference.state

    def test_cosine_distribution(self):
        # E[cos theta] = 2/3 for a cosine-weighted hemisphere
        brdf = DiffuseBRDF()
        pcg = PCG()
        normal = Normal(0, 0, 1)
        cosines = [
            brdf.scatter_ray(pcg, Vec3(0, 0, -1), Point(), normal, 1).direction.z
            for _ in range(2000)
        ]
        assert np.mean(cosines) == pytest.approx(2 / 3, abs=0.03)


class TestSpecularBRDF:
    """Perfect mirror."""

    def test_scatter_reflects(self):
        brdf = SpecularBRDF()
        ray = brdf.scatter_ray(PCG(), Vec3(1, 0, -1), Point(0, 0, 0), Normal(0, 0, 1), 1)
        assert ray.direction == Vec3(1, 0, 1).normalize()

    def test_scatter_is_deterministic(self):
        pcg = PCG()
        state = pcg.state
        SpecularBRDF().scatter_ray(pcg, Vec3(1, 0, -1), Point(), Normal(0, 0, 1), 1)
        assert pcg.state == state

    def test_eval(self):
        color = Color(0.2, 0.4, 0.6)
        brdf = SpecularBRDF(UniformPigment(color))
        normal = Normal(0, 0, 1)
        # Both directions point away from the surface
        assert brdf.eval(normal, Vec3(1, 0, 1), Vec3(-1, 0, 1), Vec2D(0, 0)) == color
        assert brdf.eval(normal, Vec3(1, 0, 1), Vec3(0, 0, 1), Vec2D(0, 0)) == BLACK


class TestMaterial:
    """Material defaults."""

    def test_defaults(self):
        material = Material()
        assert isinstance(material.brdf, DiffuseBRDF)
        assert material.brdf.pigment.get_color(Vec2D(0, 0)) == WHITE
        assert material.emitted_radiance.get_color(Vec2D(0, 0)) == BLACK

    def test_defaults_are_not_shared(self):
        assert Material().brdf is not Material().brdf

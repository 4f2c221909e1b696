"""Tests for the World container."""

import pytest

from lumenforge.ray import Ray
from lumenforge.shapes import Sphere
from lumenforge.transformations import translation
from lumenforge.vec3 import Vec3, Point, VEC_X
from lumenforge.world import World


class TestWorld:
    """Membership and nearest-hit queries."""

    def test_nearest_hit(self):
        sphere1 = Sphere(translation(VEC_X * 2))
        sphere2 = Sphere(translation(VEC_X * 8))
        world = World([sphere1, sphere2])

        record = world.hit(Ray(Point(0, 0, 0), VEC_X))
        assert record.t == pytest.approx(1.0)
        assert record.shape is sphere1

        record = world.hit(Ray(Point(10, 0, 0), -VEC_X))
        assert record.t == pytest.approx(1.0)
        assert record.shape is sphere2

    def test_miss(self):
        world = World([Sphere(translation(VEC_X * 2))])
        assert world.hit(Ray(Point(0, 0, 0), -VEC_X)) is None
        assert World().hit(Ray(Point(0, 0, 0), VEC_X)) is None

    def test_tie_goes_to_first_added(self):
        first = Sphere(name="first")
        second = Sphere(name="second")
        world = World()
        world.add(first)
        world.add(second)
        assert world.hit(Ray(Point(0, 0, 3), Vec3(0, 0, -1))).shape is first

    def test_membership_is_by_identity(self):
        sphere = Sphere()
        world = World([sphere])
        assert sphere in world
        assert Sphere() not in world
        assert len(world) == 1
        assert list(world) == [sphere]

    def test_remove(self):
        sphere = Sphere()
        world = World([sphere])
        world.remove(sphere)
        assert len(world) == 0
        with pytest.raises(ValueError):
            world.remove(sphere)

"""Tests for constructive solid geometry."""

import pytest
import math

from lumenforge.csg import CSG, CSGOperation, combine_intervals
from lumenforge.ray import Ray
from lumenforge.shapes import HitRecord, Interval, Sphere, Plane, Cube
from lumenforge.transformations import translation, scaling
from lumenforge.vec3 import Vec3, Point, Normal, Vec2D, VEC_X, VEC_Z

UNION = CSGOperation.UNION
FUSION = CSGOperation.FUSION
INTERSECTION = CSGOperation.INTERSECTION
DIFFERENCE = CSGOperation.DIFFERENCE

# Downward ray along the z axis, crossing every shape below
RAY_Z = Ray(Point(0, 0, 3), -VEC_Z)


@pytest.fixture
def shapes():
    """Unit spheres at z = 0, 1 and -0.5; planes at z = 0 and 0.5."""
    return {
        "sphere1": Sphere(name="sphere1"),
        "sphere2": Sphere(translation(Vec3(0, 0, 1)), name="sphere2"),
        "sphere3": Sphere(translation(Vec3(0, 0, -0.5)), name="sphere3"),
        "plane1": Plane(name="plane1"),
        "plane2": Plane(translation(Vec3(0, 0, 0.5)), name="plane2"),
    }


def expected_hits(shapes):
    """Crossings of RAY_Z keyed by t; the normals all face the ray."""
    up = Normal(0, 0, 1)
    return {
        1.0: HitRecord(Point(0, 0, 2), up, Vec2D(0, 0), 1.0, RAY_Z, shapes["sphere2"]),
        2.0: HitRecord(Point(0, 0, 1), up, Vec2D(0, 0), 2.0, RAY_Z, shapes["sphere1"]),
        2.5: HitRecord(Point(0, 0, 0.5), up, Vec2D(0, 0), 2.5, RAY_Z, shapes["sphere3"]),
        "2.5p": HitRecord(Point(0, 0, 0.5), up, Vec2D(0, 0), 2.5, RAY_Z, shapes["plane2"]),
        3.0: HitRecord(Point(0, 0, 0), up, Vec2D(0, 1), 3.0, RAY_Z, shapes["sphere2"]),
        "3.0p": HitRecord(Point(0, 0, 0), up, Vec2D(0, 0), 3.0, RAY_Z, shapes["plane1"]),
        4.0: HitRecord(Point(0, 0, -1), up, Vec2D(0, 1), 4.0, RAY_Z, shapes["sphere1"]),
        4.5: HitRecord(Point(0, 0, -1.5), up, Vec2D(0, 1), 4.5, RAY_Z, shapes["sphere3"]),
    }


def check_all_hits(shape, shapes, keys):
    table = expected_hits(shapes)
    hits = shape.all_hits(RAY_Z)
    assert len(hits) == len(keys), [record.t for record in hits]
    for record, key in zip(hits, keys):
        expected = table[key]
        assert record.is_close(expected), f"{record} != {expected}"
        assert record.shape is expected.shape


class TestCombineIntervals:
    """The interval sweep on its own."""

    def test_union_merges_touching_intervals(self):
        result = combine_intervals([Interval(0, 1)], [Interval(1, 2)], UNION.predicate)
        assert [(i.t_in, i.t_out) for i in result] == [(0, 2)]

    def test_intersection_drops_zero_length(self):
        result = combine_intervals([Interval(0, 1)], [Interval(1, 2)], INTERSECTION.predicate)
        assert result == []

    def test_difference_splits(self):
        result = combine_intervals([Interval(0, 10)], [Interval(2, 3), Interval(5, 6)], DIFFERENCE.predicate)
        assert [(i.t_in, i.t_out) for i in result] == [(0, 2), (3, 5), (6, 10)]

    def test_unbounded_intervals(self):
        result = combine_intervals([Interval(-math.inf, math.inf)], [Interval(1, 2)], DIFFERENCE.predicate)
        assert [(i.t_in, i.t_out) for i in result] == [(-math.inf, 1), (2, math.inf)]


class TestCSGConstruction:
    """Operands must be distinct."""

    def test_same_operand_twice(self, shapes):
        with pytest.raises(ValueError):
            CSG(shapes["sphere1"], shapes["sphere1"], UNION)

    def test_operation_values(self):
        assert CSGOperation("fusion") is FUSION
        assert {op.value for op in CSGOperation} == {"union", "fusion", "intersection", "difference"}


class TestTwoSpheres:
    """sphere1 spans t in [2, 4], sphere2 spans [1, 3]."""

    def test_union_keeps_interior_surfaces(self, shapes):
        check_all_hits(CSG(shapes["sphere1"], shapes["sphere2"], UNION), shapes, [1.0, 2.0, 3.0, 4.0])

    def test_intersection(self, shapes):
        check_all_hits(CSG(shapes["sphere1"], shapes["sphere2"], INTERSECTION), shapes, [2.0, 3.0])

    def test_fusion_drops_interior_surfaces(self, shapes):
        check_all_hits(CSG(shapes["sphere1"], shapes["sphere2"], FUSION), shapes, [1.0, 4.0])

    def test_difference(self, shapes):
        check_all_hits(CSG(shapes["sphere1"], shapes["sphere2"], DIFFERENCE), shapes, [3.0, 4.0])

    def test_nearest_hit(self, shapes):
        csg = CSG(shapes["sphere1"], shapes["sphere2"], DIFFERENCE)
        assert csg.hit(RAY_Z).t == pytest.approx(3.0)


class TestTwoPlanes:
    """Half-spaces below z = 0 and below z = 0.5."""

    def test_union(self, shapes):
        check_all_hits(CSG(shapes["plane1"], shapes["plane2"], UNION), shapes, ["2.5p", "3.0p"])

    def test_intersection(self, shapes):
        check_all_hits(CSG(shapes["plane1"], shapes["plane2"], INTERSECTION), shapes, ["3.0p"])

    def test_difference(self, shapes):
        check_all_hits(CSG(shapes["plane1"], shapes["plane2"], DIFFERENCE), shapes, [])
        check_all_hits(CSG(shapes["plane2"], shapes["plane1"], DIFFERENCE), shapes, ["2.5p", "3.0p"])

    def test_fusion(self, shapes):
        check_all_hits(CSG(shapes["plane1"], shapes["plane2"], FUSION), shapes, ["2.5p"])


class TestSphereAndPlane:
    """sphere1 against the half-space z < 0."""

    def test_union(self, shapes):
        check_all_hits(CSG(shapes["sphere1"], shapes["plane1"], UNION), shapes, [2.0, "3.0p", 4.0])

    def test_intersection(self, shapes):
        check_all_hits(CSG(shapes["sphere1"], shapes["plane1"], INTERSECTION), shapes, ["3.0p", 4.0])

    def test_difference(self, shapes):
        check_all_hits(CSG(shapes["sphere1"], shapes["plane1"], DIFFERENCE), shapes, [2.0, "3.0p"])
        check_all_hits(CSG(shapes["plane1"], shapes["sphere1"], DIFFERENCE), shapes, [4.0])

    def test_fusion(self, shapes):
        check_all_hits(CSG(shapes["sphere1"], shapes["plane1"], FUSION), shapes, [2.0])


class TestNestedCSG:
    """CSG nodes used as operands of other nodes."""

    def test_three_spheres(self, shapes):
        s1, s2, s3 = shapes["sphere1"], shapes["sphere2"], shapes["sphere3"]

        check_all_hits(CSG(CSG(s1, s2, UNION), s3, UNION), shapes, [1.0, 2.0, 2.5, 3.0, 4.0, 4.5])
        check_all_hits(CSG(CSG(s1, s2, INTERSECTION), s3, INTERSECTION), shapes, [2.5, 3.0])
        check_all_hits(CSG(CSG(s1, s2, INTERSECTION), s3, FUSION), shapes, [2.0, 4.5])
        check_all_hits(CSG(CSG(s1, s2, INTERSECTION), s3, DIFFERENCE), shapes, [2.0, 2.5])

    def test_two_spheres_and_a_plane(self, shapes):
        s1, s2, p2 = shapes["sphere1"], shapes["sphere2"], shapes["plane2"]

        check_all_hits(CSG(CSG(s1, s2, UNION), p2, UNION), shapes, [1.0, 2.0, "2.5p", 3.0, 4.0])
        check_all_hits(CSG(CSG(s1, s2, INTERSECTION), p2, INTERSECTION), shapes, ["2.5p", 3.0])
        check_all_hits(CSG(CSG(s1, s2, INTERSECTION), p2, DIFFERENCE), shapes, [2.0, "2.5p"])

    def test_transformed_node(self, shapes):
        lens = CSG(shapes["sphere1"], shapes["sphere2"], INTERSECTION, transformation=translation(Vec3(5, 0, 0)))
        ray = Ray(Point(5, 0, 3), -VEC_Z)
        hits = lens.all_hits(ray)
        assert [record.t for record in hits] == pytest.approx([2.0, 3.0])
        assert hits[0].world_point == Point(5, 0, 1)
        assert lens.hit(RAY_Z) is None


class TestCubeMinusSphere:
    """A cube of side 4 with the unit sphere carved out of its centre."""

    def setup_method(self):
        self.cube = Cube(scaling(4, 4, 4), name="cube")
        self.sphere = Sphere(name="sphere")
        self.csg = CSG(self.cube, self.sphere, DIFFERENCE)

    def test_hits(self):
        hits = self.csg.all_hits(Ray(Point(-5, 0, 0), VEC_X))
        assert [record.t for record in hits] == pytest.approx([3.0, 4.0, 6.0, 7.0])
        assert [record.shape for record in hits] == [self.cube, self.sphere, self.sphere, self.cube]
        assert hits[1].world_point == Point(-1, 0, 0)
        assert hits[1].normal == Normal(-1, 0, 0)

    def test_intervals(self):
        intervals = self.csg.intervals(Ray(Point(-5, 0, 0), VEC_X))
        assert [(i.t_in, i.t_out) for i in intervals] == [
            pytest.approx((3.0, 4.0)), pytest.approx((6.0, 7.0)),
        ]

    def test_ray_outside_the_hole(self):
        # Passes beside the sphere: only the cube faces are crossed
        hits = self.csg.all_hits(Ray(Point(-5, 1.5, 0), VEC_X))
        assert [record.t for record in hits] == pytest.approx([3.0, 7.0])

    @pytest.mark.parametrize("point, inside", [
        (Point(1.5, 1.5, 0), True),
        (Point(1.9, -1.9, 1.9), True),
        (Point(0, 0, 1.5), True),
        (Point(0, 0, 0), False),
        (Point(0.5, 0.5, 0), False),
        (Point(3, 0, 0), False),
    ])
    def test_is_inside(self, point, inside):
        assert self.csg.is_inside(point) == inside


class TestHitCounts:
    """Union reports at least as many crossings as its operands or an intersection."""

    def test_scan_across_two_spheres(self, shapes):
        s1, s2 = shapes["sphere1"], shapes["sphere2"]
        union = CSG(s1, s2, UNION)
        intersection = CSG(s1, s2, INTERSECTION)

        union_total = intersection_total = 0
        for i in range(-9, 10):
            for j in range(-9, 20):
                ray = Ray(Point(-3, i * 0.1 + 0.05, j * 0.1 + 0.05), VEC_X)
                n_union = len(union.all_hits(ray))
                n_intersection = len(intersection.all_hits(ray))

                assert n_union >= len(s1.all_hits(ray))
                assert n_union >= len(s2.all_hits(ray))
                assert n_union >= n_intersection
                union_total += n_union
                intersection_total += n_intersection

        assert union_total > intersection_total > 0


class TestIsInside:
    """Point membership follows the operation's predicate."""

    def test_primitives(self, shapes):
        origin = Point(0, 0, 0)
        assert shapes["sphere1"].is_inside(origin)
        assert not shapes["sphere2"].is_inside(origin)
        assert shapes["plane2"].is_inside(origin)
        assert not shapes["plane1"].is_inside(Point(0, 0, 0.25))

    def test_operations(self, shapes):
        s1, s2 = shapes["sphere1"], shapes["sphere2"]
        point = Point(0, 0, -0.5)  # inside sphere1 only
        assert CSG(s1, s2, UNION).is_inside(point)
        assert CSG(s1, s2, FUSION).is_inside(point)
        assert not CSG(s1, s2, INTERSECTION).is_inside(point)
        assert CSG(s1, s2, DIFFERENCE).is_inside(point)
        assert not CSG(s2, s1, DIFFERENCE).is_inside(point)


class TestCSGCopy:
    """Copies are deep and renamed."""

    def test_copy(self, shapes):
        csg = CSG(shapes["sphere1"], shapes["sphere2"], INTERSECTION, name="lens")
        clone = csg.copy("lens2", translation(Vec3(5, 0, 0)))

        assert clone.name == "lens2"
        assert clone.first is not csg.first
        assert clone.first.name == "lens2/sphere1"
        assert clone.second.name == "lens2/sphere2"
        assert clone.operation is INTERSECTION
        assert [r.t for r in clone.all_hits(Ray(Point(5, 0, 3), -VEC_Z))] == pytest.approx([2.0, 3.0])
        assert [r.t for r in csg.all_hits(RAY_Z)] == pytest.approx([2.0, 3.0])

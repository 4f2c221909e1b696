"""
Constructive Solid Geometry.

A CSG node combines two solids with a boolean operation. Evaluation is
purely interval based: each operand reports where the ray is inside it, and
the node sweeps over the interval endpoints of both operands, tracking
which of them currently contains the ray. A boundary of the result is
emitted wherever the operation's predicate changes value.

Example:
    >>> a = Sphere()
    >>> b = Sphere(translation(Vec3(0, 0, 1)))
    >>> lens = CSG(a, b, CSGOperation.INTERSECTION)
"""

from __future__ import annotations
from enum import Enum
from typing import Callable, Optional, TYPE_CHECKING

from .ray import Ray
from .shapes import Shape, HitRecord, Interval
from .transformations import Transformation
from .vec3 import Point

if TYPE_CHECKING:
    from .materials import Material


class CSGOperation(Enum):
    """Boolean operations between two solids."""
    UNION = "union"
    FUSION = "fusion"
    INTERSECTION = "intersection"
    DIFFERENCE = "difference"

    @property
    def predicate(self) -> Callable[[bool, bool], bool]:
        """Membership of a point given membership in the two operands."""
        if self in (CSGOperation.UNION, CSGOperation.FUSION):
            return lambda a, b: a or b
        if self is CSGOperation.INTERSECTION:
            return lambda a, b: a and b
        if self is CSGOperation.DIFFERENCE:
            return lambda a, b: a and not b
        raise ValueError(f"unknown CSG operation {self!r}")


def combine_intervals(
    first: list[Interval],
    second: list[Interval],
    predicate: Callable[[bool, bool], bool],
) -> list[Interval]:
    """Combine two sorted interval lists with a boolean predicate.

    Endpoints sharing the same t are processed entries first, so that
    touching intervals merge under union and meet in a zero-length interval
    (which is dropped) under intersection.
    """
    events = []
    for operand, intervals in enumerate((first, second)):
        for interval in intervals:
            events.append((interval.t_in, 0, operand, True, interval.enter))
            events.append((interval.t_out, 1, operand, False, interval.leave))
    events.sort(key=lambda event: (event[0], event[1]))

    inside = [False, False]
    state = False
    start_t = 0.0
    start_record: Optional[HitRecord] = None
    result: list[Interval] = []

    for t, _, operand, entering, record in events:
        inside[operand] = entering
        new_state = predicate(inside[0], inside[1])
        if new_state and not state:
            start_t, start_record = t, record
        elif state and not new_state and t > start_t:
            result.append(Interval(start_t, t, start_record, record))
        state = new_state

    return result


class CSG(Shape):
    """Boolean combination of two shapes.

    The node owns its two operands exclusively; use `copy` to place the same
    geometry elsewhere. Hit records keep the primitive that contributed the
    boundary, so normals, uv coordinates and materials come from the
    operands.
    """

    def __init__(
        self,
        first: Shape,
        second: Shape,
        operation: CSGOperation = CSGOperation.UNION,
        transformation: Optional[Transformation] = None,
        name: str = "",
        material: Optional[Material] = None,
    ):
        """Create a CSG node.

        Args:
            first: The left operand (order matters for DIFFERENCE)
            second: The right operand
            operation: Boolean operation to apply
            transformation: Placement of the whole node
            name: Name of the node
            material: Unused for shading; kept for a uniform Shape interface
        """
        if first is second:
            raise ValueError("a CSG node needs two distinct operands")
        super().__init__(transformation=transformation, material=material, name=name)
        self.first = first
        self.second = second
        self.operation = operation

    def _local(self, ray: Ray) -> Ray:
        return ray.transform(self.transformation.inverse())

    def _local_intervals(self, local_ray: Ray) -> list[Interval]:
        return combine_intervals(
            self.first.intervals(local_ray),
            self.second.intervals(local_ray),
            self.operation.predicate,
        )

    def intervals(self, ray: Ray) -> list[Interval]:
        return [
            interval.transformed(self.transformation, ray)
            for interval in self._local_intervals(self._local(ray))
        ]

    def all_hits(self, ray: Ray) -> list[HitRecord]:
        """Surface crossings of the combined solid.

        A UNION keeps every crossing of either operand, interior surfaces
        included. The other operations keep only the boundaries of the
        combined intervals.
        """
        local_ray = self._local(ray)
        if self.operation is CSGOperation.UNION:
            records = self.first.all_hits(local_ray) + self.second.all_hits(local_ray)
        else:
            records = [
                record
                for interval in self._local_intervals(local_ray)
                for record in interval.boundaries()
                if ray.tmin < record.t < ray.tmax
            ]
        records.sort(key=lambda record: record.t)
        return [record.transformed(self.transformation, ray) for record in records]

    def is_inside(self, point: Point) -> bool:
        local_point = self.transformation.inverse() * point
        return self.operation.predicate(
            self.first.is_inside(local_point),
            self.second.is_inside(local_point),
        )

    def copy(self, name: str, transformation: Optional[Transformation] = None) -> CSG:
        """Deep-copy the node; operands are cloned as `<name>/<operand>`."""
        new_transformation = self.transformation
        if transformation is not None:
            new_transformation = transformation * self.transformation
        return CSG(
            self.first.copy(f"{name}/{self.first.name}"),
            self.second.copy(f"{name}/{self.second.name}"),
            self.operation,
            transformation=new_transformation,
            name=name,
            material=self.material,
        )

    def __repr__(self) -> str:
        return (f"CSG(name={self.name!r}, operation={self.operation.value}, "
                f"first={self.first!r}, second={self.second!r})")

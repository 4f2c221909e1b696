"""
The collection of top-level shapes in a scene.
"""

from __future__ import annotations
from typing import Iterable, Iterator, Optional

from .ray import Ray
from .shapes import Shape, HitRecord


class World:
    """An ordered collection of shapes.

    Shapes owned by a CSG node are not members of the world; only the node
    itself is.
    """

    def __init__(self, shapes: Optional[Iterable[Shape]] = None):
        self.shapes: list[Shape] = list(shapes) if shapes is not None else []

    def add(self, shape: Shape) -> None:
        """Add a shape to the world."""
        self.shapes.append(shape)

    def remove(self, shape: Shape) -> None:
        """Remove a shape (compared by identity)."""
        for i, candidate in enumerate(self.shapes):
            if candidate is shape:
                del self.shapes[i]
                return
        raise ValueError(f"{shape!r} is not a member of the world")

    def hit(self, ray: Ray) -> Optional[HitRecord]:
        """Find the closest intersection among all shapes.

        Ties are resolved in favour of the shape added first.
        """
        closest: Optional[HitRecord] = None

        for shape in self.shapes:
            record = shape.hit(ray)
            if record is not None and (closest is None or record.t < closest.t):
                closest = record

        return closest

    def __contains__(self, shape: object) -> bool:
        return any(candidate is shape for candidate in self.shapes)

    def __len__(self) -> int:
        return len(self.shapes)

    def __iter__(self) -> Iterator[Shape]:
        return iter(self.shapes)

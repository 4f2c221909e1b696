"""
Pigments: colour as a function of surface (u, v) coordinates.

Implements:
- Uniform colours
- Checkered patterns
- Image textures (sampled from an HdrImage)
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING
import math

from .vec3 import Color, Vec2D, WHITE

if TYPE_CHECKING:
    from .hdrimage import HdrImage


class Pigment(ABC):
    """Abstract base class for pigments."""

    @abstractmethod
    def get_color(self, uv: Vec2D) -> Color:
        """Get the pigment colour at the given surface coordinates.

        Args:
            uv: Surface coordinates, both nominally in [0, 1]

        Returns:
            Color at this location
        """
        pass


class UniformPigment(Pigment):
    """A single colour everywhere."""

    def __init__(self, color: Color = WHITE):
        self.color = color

    def get_color(self, uv: Vec2D) -> Color:
        return self.color

    def __repr__(self) -> str:
        return f"UniformPigment({self.color!r})"


class CheckeredPigment(Pigment):
    """A checkerboard alternating two colours in uv space."""

    def __init__(self, color1: Color, color2: Color, squares_per_unit: int = 2):
        """Create a checkered pigment.

        Args:
            color1: Colour of the squares whose indices add up to an even number
            color2: Colour of the other squares
            squares_per_unit: Number of squares along a unit of u (and of v)
        """
        if squares_per_unit <= 0:
            raise ValueError(f"squares_per_unit must be positive, got {squares_per_unit}")
        self.color1 = color1
        self.color2 = color2
        self.squares_per_unit = squares_per_unit

    def get_color(self, uv: Vec2D) -> Color:
        col = math.floor(uv.u * self.squares_per_unit)
        row = math.floor(uv.v * self.squares_per_unit)
        return self.color1 if (col + row) % 2 == 0 else self.color2

    def __repr__(self) -> str:
        return f"CheckeredPigment({self.color1!r}, {self.color2!r}, {self.squares_per_unit})"


class ImagePigment(Pigment):
    """Nearest-neighbour lookup into an image.

    u runs along the columns and v along the rows; row 0 corresponds to
    v = 0. Coordinates are clamped so that u = 1 maps to the last column.
    """

    def __init__(self, image: HdrImage):
        self.image = image

    def get_color(self, uv: Vec2D) -> Color:
        col = min(max(int(math.floor(uv.u * self.image.width)), 0), self.image.width - 1)
        row = min(max(int(math.floor(uv.v * self.image.height)), 0), self.image.height - 1)
        return self.image.get_pixel(col, row)

    def __repr__(self) -> str:
        return f"ImagePigment({self.image.width}x{self.image.height})"

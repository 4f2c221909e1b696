"""
Scene description language parser.

A recursive-descent parser with one token of lookahead over the tokens
produced by `lexer.InputStream`. Example scene:

```
float angle(0)

material sky(diffuse(uniform(<0, 0, 0>)), uniform(<0.7, 0.5, 1>))
material ground(
    diffuse(checkered(<0.3, 0.5, 0.1>, <0.1, 0.2, 0.5>, 4)),
    uniform(<0, 0, 0>)
)
material mirror(specular(uniform(<0.5, 0.5, 0.5>)), uniform(<0, 0, 0>))

sphere globe(mirror, translation([0, 0, 1]))
cube box(ground, scaling(1.5, 1.5, 1.5) * translation([0, 0, 0.8]))
csg dice(box, globe, intersection)
copy dice2(dice, translation([0, 3, 0]))
plane(ground, identity)
plane(sky, translation([0, 0, 100]))

camera(perspective, rotation_z(angle) * translation([-4, 0, 1]), 1.0)
motion(rotation_z(10), 36)
```

Statements may be separated by ';'. Comments start with '#'.
"""

from __future__ import annotations
import io
import logging
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional, Set, TextIO, Union

from .camera import Camera, Motion, OrthogonalCamera, PerspectiveCamera
from .csg import CSG, CSGOperation
from .errors import ConfigurationError, GrammarError, ResourceError
from .hdrimage import load_image
from .lexer import (
    IdentifierToken,
    InputStream,
    KeywordEnum,
    KeywordToken,
    LiteralNumberToken,
    StopToken,
    StringToken,
    SymbolToken,
    Token,
)
from .materials import BRDF, DiffuseBRDF, Material, SpecularBRDF
from .pigments import CheckeredPigment, ImagePigment, Pigment, UniformPigment
from .shapes import Cube, Plane, Shape, Sphere
from .transformations import (
    Transformation,
    rotation_x,
    rotation_y,
    rotation_z,
    scaling,
    translation,
)
from .vec3 import Color, Vec3
from .world import World

logger = logging.getLogger(__name__)

# Float variable holding the camera aspect ratio (set by the command line)
ASPECT_RATIO_VARIABLE = "aspect_ratio"

SHAPE_CLASSES = {
    KeywordEnum.SPHERE: Sphere,
    KeywordEnum.PLANE: Plane,
    KeywordEnum.CUBE: Cube,
}

CSG_OPERATIONS = {
    KeywordEnum.UNION: CSGOperation.UNION,
    KeywordEnum.FUSION: CSGOperation.FUSION,
    KeywordEnum.INTERSECTION: CSGOperation.INTERSECTION,
    KeywordEnum.DIFFERENCE: CSGOperation.DIFFERENCE,
}


@dataclass
class Scene:
    """Everything a scene file defines."""
    materials: Dict[str, Material] = field(default_factory=dict)
    world: World = field(default_factory=World)
    camera: Optional[Camera] = None
    motion: Optional[Motion] = None
    float_variables: Dict[str, float] = field(default_factory=dict)
    # Variables supplied from outside the file; in-file declarations are ignored
    overridden_variables: Set[str] = field(default_factory=set)
    # Every named shape, including those owned by a CSG node
    shapes: Dict[str, Shape] = field(default_factory=dict)


class SceneParser:
    """Parsing context for a single scene file.

    Each instance holds its own symbol tables, so independent parses never
    share state.
    """

    def __init__(
        self,
        stream: InputStream,
        variables: Optional[Dict[str, float]] = None,
        base_dir: Optional[Union[str, Path]] = None,
    ):
        """Create a parser.

        Args:
            stream: Token source
            variables: Float variables that take precedence over the file
            base_dir: Directory against which relative image paths resolve
        """
        self.stream = stream
        variables = dict(variables) if variables else {}
        self.scene = Scene(float_variables=variables, overridden_variables=set(variables))
        self.base_dir = Path(base_dir) if base_dir is not None else None
        # CSG operand name -> name of the CSG node that owns it
        self._owners: Dict[str, str] = {}
        self._anonymous_count = 0

        self._statements = {
            KeywordEnum.FLOAT: self.parse_float_statement,
            KeywordEnum.MATERIAL: self.parse_material_statement,
            KeywordEnum.SPHERE: self.parse_primitive_statement,
            KeywordEnum.PLANE: self.parse_primitive_statement,
            KeywordEnum.CUBE: self.parse_primitive_statement,
            KeywordEnum.SHAPE: self.parse_shape_statement,
            KeywordEnum.CSG: self.parse_csg_statement,
            KeywordEnum.COPY: self.parse_copy_statement,
            KeywordEnum.CAMERA: self.parse_camera_statement,
            KeywordEnum.MOTION: self.parse_motion_statement,
        }

    # -- token helpers ------------------------------------------------------

    def expect_symbol(self, symbol: str) -> None:
        token = self.stream.read_token()
        if not isinstance(token, SymbolToken) or token.symbol != symbol:
            raise GrammarError(token.location, f"got '{token}' instead of '{symbol}'")

    def accept_symbol(self, symbol: str) -> bool:
        """Consume the next token if it is `symbol`."""
        token = self.stream.read_token()
        if isinstance(token, SymbolToken) and token.symbol == symbol:
            return True
        self.stream.unread_token(token)
        return False

    def expect_keywords(self, keywords) -> KeywordEnum:
        token = self.stream.read_token()
        if not isinstance(token, KeywordToken):
            raise GrammarError(token.location, f"expected a keyword instead of '{token}'")
        if token.keyword not in keywords:
            expected = ", ".join(keyword.value for keyword in keywords)
            raise GrammarError(token.location, f"expected one of {expected} instead of '{token}'")
        return token.keyword

    def expect_identifier(self) -> IdentifierToken:
        token = self.stream.read_token()
        if not isinstance(token, IdentifierToken):
            raise GrammarError(token.location, f"expected an identifier instead of '{token}'")
        return token

    def expect_string(self) -> str:
        token = self.stream.read_token()
        if not isinstance(token, StringToken):
            raise GrammarError(token.location, f"got '{token}' instead of a string")
        return token.string

    def expect_number(self) -> float:
        """Read a literal or a float variable, with an optional leading '-'."""
        token = self.stream.read_token()
        sign = 1.0
        if isinstance(token, SymbolToken) and token.symbol == "-":
            sign = -1.0
            token = self.stream.read_token()

        if isinstance(token, LiteralNumberToken):
            return sign * token.value
        if isinstance(token, IdentifierToken):
            if token.identifier not in self.scene.float_variables:
                raise GrammarError(token.location, f"unknown variable '{token}'")
            return sign * self.scene.float_variables[token.identifier]
        raise GrammarError(token.location, f"expected a number instead of '{token}'")

    def _expect_whole_number(self, what: str) -> int:
        token = self.stream.read_token()
        self.stream.unread_token(token)
        value = self.expect_number()
        if value <= 0 or value != math.floor(value):
            raise GrammarError(token.location, f"{what} must be a positive whole number, got {value}")
        return int(value)

    # -- values -------------------------------------------------------------

    def parse_vector(self) -> Vec3:
        self.expect_symbol("[")
        x = self.expect_number()
        self.expect_symbol(",")
        y = self.expect_number()
        self.expect_symbol(",")
        z = self.expect_number()
        self.expect_symbol("]")
        return Vec3(x, y, z)

    def parse_color(self) -> Color:
        self.expect_symbol("<")
        red = self.expect_number()
        self.expect_symbol(",")
        green = self.expect_number()
        self.expect_symbol(",")
        blue = self.expect_number()
        self.expect_symbol(">")
        return Color(red, green, blue)

    def parse_pigment(self) -> Pigment:
        keyword = self.expect_keywords((KeywordEnum.UNIFORM, KeywordEnum.CHECKERED, KeywordEnum.IMAGE))
        self.expect_symbol("(")

        if keyword == KeywordEnum.UNIFORM:
            result = UniformPigment(self.parse_color())
        elif keyword == KeywordEnum.CHECKERED:
            color1 = self.parse_color()
            self.expect_symbol(",")
            color2 = self.parse_color()
            self.expect_symbol(",")
            squares = self._expect_whole_number("the number of squares")
            result = CheckeredPigment(color1, color2, squares)
        else:
            path = Path(self.expect_string())
            if self.base_dir is not None and not path.is_absolute():
                path = self.base_dir / path
            result = ImagePigment(load_image(path))

        self.expect_symbol(")")
        return result

    def parse_brdf(self) -> BRDF:
        keyword = self.expect_keywords((KeywordEnum.DIFFUSE, KeywordEnum.SPECULAR))
        self.expect_symbol("(")
        pigment = self.parse_pigment()
        self.expect_symbol(")")
        if keyword == KeywordEnum.DIFFUSE:
            return DiffuseBRDF(pigment)
        return SpecularBRDF(pigment)

    def parse_transformation(self) -> Transformation:
        """Parse `factor (* factor)*`; factors compose left to right."""
        result = Transformation()

        while True:
            keyword = self.expect_keywords((
                KeywordEnum.IDENTITY,
                KeywordEnum.TRANSLATION,
                KeywordEnum.ROTATION_X,
                KeywordEnum.ROTATION_Y,
                KeywordEnum.ROTATION_Z,
                KeywordEnum.SCALING,
            ))

            if keyword == KeywordEnum.TRANSLATION:
                self.expect_symbol("(")
                result = result * translation(self.parse_vector())
                self.expect_symbol(")")
            elif keyword in (KeywordEnum.ROTATION_X, KeywordEnum.ROTATION_Y, KeywordEnum.ROTATION_Z):
                rotation = {
                    KeywordEnum.ROTATION_X: rotation_x,
                    KeywordEnum.ROTATION_Y: rotation_y,
                    KeywordEnum.ROTATION_Z: rotation_z,
                }[keyword]
                self.expect_symbol("(")
                result = result * rotation(self.expect_number())
                self.expect_symbol(")")
            elif keyword == KeywordEnum.SCALING:
                self.expect_symbol("(")
                x = self.expect_number()
                self.expect_symbol(",")
                y = self.expect_number()
                self.expect_symbol(",")
                z = self.expect_number()
                self.expect_symbol(")")
                result = result * scaling(x, y, z)

            if not self.accept_symbol("*"):
                break

        return result

    # -- statements ---------------------------------------------------------

    def parse_float_statement(self, keyword_token: KeywordToken) -> None:
        name_token = self.expect_identifier()
        name = name_token.identifier
        self.expect_symbol("(")
        value = self.expect_number()
        self.expect_symbol(")")

        if name in self.scene.overridden_variables:
            logger.warning(
                "%s: variable '%s' is set from the command line, ignoring the value %g in the scene",
                name_token.location, name, value,
            )
            return
        if name in self.scene.float_variables:
            raise GrammarError(name_token.location, f"variable '{name}' cannot be redefined")
        self.scene.float_variables[name] = value

    def parse_material_statement(self, keyword_token: KeywordToken) -> None:
        name_token = self.expect_identifier()
        name = name_token.identifier
        if name in self.scene.materials:
            raise GrammarError(name_token.location, f"material '{name}' is already defined")

        self.expect_symbol("(")
        brdf = self.parse_brdf()
        self.expect_symbol(",")
        emitted_radiance = self.parse_pigment()
        self.expect_symbol(")")
        self.scene.materials[name] = Material(brdf=brdf, emitted_radiance=emitted_radiance)

    def _optional_name(self) -> Optional[IdentifierToken]:
        token = self.stream.read_token()
        if isinstance(token, IdentifierToken):
            return token
        self.stream.unread_token(token)
        return None

    def _lookup_material(self) -> Material:
        token = self.expect_identifier()
        if token.identifier not in self.scene.materials:
            raise GrammarError(token.location, f"unknown material '{token}'")
        return self.scene.materials[token.identifier]

    def _lookup_shape(self) -> IdentifierToken:
        token = self.expect_identifier()
        if token.identifier not in self.scene.shapes:
            raise GrammarError(token.location, f"unknown shape '{token}'")
        return token

    def _check_new_shape_name(self, name_token: Optional[IdentifierToken]) -> None:
        if name_token is not None and name_token.identifier in self.scene.shapes:
            raise GrammarError(name_token.location, f"shape '{name_token}' is already defined")

    def _shape_name(self, name_token: Optional[IdentifierToken], kind: KeywordEnum) -> str:
        if name_token is not None:
            return name_token.identifier
        self._anonymous_count += 1
        return f"<{kind.value}#{self._anonymous_count}>"

    def _add_shape(self, shape: Shape) -> None:
        self.scene.world.add(shape)
        self.scene.shapes[shape.name] = shape

    def _build_primitive(self, kind: KeywordEnum, name_token: Optional[IdentifierToken]) -> None:
        material = self._lookup_material()
        self.expect_symbol(",")
        transformation = self.parse_transformation()
        self.expect_symbol(")")
        shape_class = SHAPE_CLASSES[kind]
        self._add_shape(shape_class(
            transformation=transformation,
            material=material,
            name=self._shape_name(name_token, kind),
        ))

    def parse_primitive_statement(self, keyword_token: KeywordToken) -> None:
        """`sphere|plane|cube [name](material, transformation)`"""
        name_token = self._optional_name()
        self._check_new_shape_name(name_token)
        self.expect_symbol("(")
        self._build_primitive(keyword_token.keyword, name_token)

    def parse_shape_statement(self, keyword_token: KeywordToken) -> None:
        """`shape [name](sphere|plane|cube, material, transformation)`"""
        name_token = self._optional_name()
        self._check_new_shape_name(name_token)
        self.expect_symbol("(")
        kind = self.expect_keywords(tuple(SHAPE_CLASSES))
        self.expect_symbol(",")
        self._build_primitive(kind, name_token)

    def parse_csg_statement(self, keyword_token: KeywordToken) -> None:
        """`csg name(first, second, operation[, transformation])`

        Both operands leave the world and become owned by the new node.
        """
        name_token = self.expect_identifier()
        self._check_new_shape_name(name_token)
        self.expect_symbol("(")
        first_token = self._lookup_shape()
        self.expect_symbol(",")
        second_token = self._lookup_shape()
        self.expect_symbol(",")
        operation = CSG_OPERATIONS[self.expect_keywords(tuple(CSG_OPERATIONS))]
        transformation = None
        if self.accept_symbol(","):
            transformation = self.parse_transformation()
        self.expect_symbol(")")

        if first_token.identifier == second_token.identifier:
            raise GrammarError(second_token.location, f"shape '{second_token}' used twice in the same csg")
        for operand in (first_token, second_token):
            owner = self._owners.get(operand.identifier)
            if owner is not None:
                raise GrammarError(
                    operand.location,
                    f"shape '{operand}' already belongs to csg '{owner}', use 'copy' to reuse it",
                )

        first = self.scene.shapes[first_token.identifier]
        second = self.scene.shapes[second_token.identifier]
        for operand in (first, second):
            self.scene.world.remove(operand)
            self._owners[operand.name] = name_token.identifier

        self._add_shape(CSG(first, second, operation, transformation=transformation, name=name_token.identifier))

    def parse_copy_statement(self, keyword_token: KeywordToken) -> None:
        """`copy name(source[, transformation])`"""
        name_token = self.expect_identifier()
        self._check_new_shape_name(name_token)
        self.expect_symbol("(")
        source_token = self._lookup_shape()
        transformation = None
        if self.accept_symbol(","):
            transformation = self.parse_transformation()
        self.expect_symbol(")")

        source = self.scene.shapes[source_token.identifier]
        self._add_shape(source.copy(name_token.identifier, transformation))

    def parse_camera_statement(self, keyword_token: KeywordToken) -> None:
        """`camera(perspective|orthogonal, transformation[, distance])`"""
        if self.scene.camera is not None:
            raise GrammarError(keyword_token.location, "the camera is already defined")

        self.expect_symbol("(")
        kind = self.expect_keywords((KeywordEnum.PERSPECTIVE, KeywordEnum.ORTHOGONAL))
        self.expect_symbol(",")
        transformation = self.parse_transformation()
        distance = 1.0
        if self.accept_symbol(","):
            distance = self.expect_number()
        self.expect_symbol(")")

        aspect_ratio = self.scene.float_variables.get(ASPECT_RATIO_VARIABLE, 1.0)
        if kind == KeywordEnum.PERSPECTIVE:
            self.scene.camera = PerspectiveCamera(
                screen_distance=distance,
                aspect_ratio=aspect_ratio,
                transformation=transformation,
            )
        else:
            self.scene.camera = OrthogonalCamera(aspect_ratio=aspect_ratio, transformation=transformation)

    def parse_motion_statement(self, keyword_token: KeywordToken) -> None:
        """`motion(transformation, frames)`"""
        if self.scene.motion is not None:
            raise GrammarError(keyword_token.location, "the motion is already defined")

        self.expect_symbol("(")
        transformation = self.parse_transformation()
        self.expect_symbol(",")
        frames = self._expect_whole_number("the number of frames")
        self.expect_symbol(")")
        self.scene.motion = Motion(transformation, frames)

    # -- driver -------------------------------------------------------------

    def _parse_statement(self, token: Token) -> None:
        if not isinstance(token, KeywordToken) or token.keyword not in self._statements:
            raise GrammarError(token.location, f"expected a statement instead of '{token}'")
        self._statements[token.keyword](token)

    def parse(self) -> Scene:
        """Parse statements until the end of the stream.

        Raises:
            GrammarError: on malformed input
            ConfigurationError: if the scene defines no camera
        """
        while True:
            token = self.stream.read_token()
            if isinstance(token, StopToken):
                break
            if isinstance(token, SymbolToken) and token.symbol == ";":
                continue
            self._parse_statement(token)

        if self.scene.camera is None:
            raise ConfigurationError(f"{self.stream.location.file_name or 'scene'}: no camera defined")

        logger.debug(
            "Parsed scene: %d materials, %d shapes in the world, %d float variables, motion=%s",
            len(self.scene.materials),
            len(self.scene.world),
            len(self.scene.float_variables),
            "yes" if self.scene.motion is not None else "no",
        )
        return self.scene


def parse_scene(
    source: Union[str, TextIO],
    variables: Optional[Dict[str, float]] = None,
    file_name: str = "",
    base_dir: Optional[Union[str, Path]] = None,
) -> Scene:
    """Parse scene text (a string or a text stream).

    Args:
        source: The scene description
        variables: Float variables overriding in-file declarations
        file_name: Name reported in error messages
        base_dir: Directory for relative image paths (current directory if None)

    Returns:
        The parsed Scene
    """
    if isinstance(source, str):
        source = io.StringIO(source)
    parser = SceneParser(InputStream(source, file_name=file_name), variables, base_dir)
    return parser.parse()


def load_scene(path: Union[str, Path], variables: Optional[Dict[str, float]] = None) -> Scene:
    """Parse a scene file; relative image paths resolve against its directory."""
    path = Path(path)
    if not path.is_file():
        raise ResourceError(f"scene file not found: {path}")

    with open(path, encoding="utf-8") as f:
        return parse_scene(f, variables, file_name=str(path), base_dir=path.parent)

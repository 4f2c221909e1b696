"""
Tokenizer for the scene description language.

The InputStream reads characters from a text stream, keeping track of the
source location for error messages, and groups them into tokens. It
supports pushing back one character and one token, which is all the
lookahead the recursive-descent parser needs.

Comments start with '#' and run to the end of the line.
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional, TextIO, Union

from .errors import GrammarError

WHITESPACE = " \t\n\r"
SYMBOLS = "()[]<>,*;-"


@dataclass
class SourceLocation:
    """A position in a scene file (lines and columns start at 1)."""
    file_name: str = ""
    line_num: int = 1
    col_num: int = 1

    def __str__(self) -> str:
        return f"{self.file_name}:{self.line_num}:{self.col_num}"


class KeywordEnum(Enum):
    """Reserved words of the scene language."""
    FLOAT = "float"
    MATERIAL = "material"
    DIFFUSE = "diffuse"
    SPECULAR = "specular"
    UNIFORM = "uniform"
    CHECKERED = "checkered"
    IMAGE = "image"
    SHAPE = "shape"
    SPHERE = "sphere"
    PLANE = "plane"
    CUBE = "cube"
    CSG = "csg"
    COPY = "copy"
    UNION = "union"
    FUSION = "fusion"
    INTERSECTION = "intersection"
    DIFFERENCE = "difference"
    IDENTITY = "identity"
    TRANSLATION = "translation"
    ROTATION_X = "rotation_x"
    ROTATION_Y = "rotation_y"
    ROTATION_Z = "rotation_z"
    SCALING = "scaling"
    CAMERA = "camera"
    ORTHOGONAL = "orthogonal"
    PERSPECTIVE = "perspective"
    MOTION = "motion"


KEYWORDS = {keyword.value: keyword for keyword in KeywordEnum}


@dataclass
class Token:
    """Base class of all lexical tokens."""
    location: SourceLocation


@dataclass
class KeywordToken(Token):
    keyword: KeywordEnum

    def __str__(self) -> str:
        return self.keyword.value


@dataclass
class IdentifierToken(Token):
    identifier: str

    def __str__(self) -> str:
        return self.identifier


@dataclass
class StringToken(Token):
    string: str

    def __str__(self) -> str:
        return f'"{self.string}"'


@dataclass
class LiteralNumberToken(Token):
    value: float

    def __str__(self) -> str:
        return str(self.value)


@dataclass
class SymbolToken(Token):
    symbol: str

    def __str__(self) -> str:
        return self.symbol


@dataclass
class StopToken(Token):
    """End of input."""

    def __str__(self) -> str:
        return "end of file"


class InputStream:
    """A character stream with location tracking and one-token lookahead."""

    def __init__(self, stream: TextIO, file_name: str = "", tabulations: int = 8):
        """Wrap a text stream.

        Args:
            stream: Source of characters
            file_name: Name reported in error locations
            tabulations: Number of columns a tab advances
        """
        self.stream = stream
        self.location = SourceLocation(file_name=file_name, line_num=1, col_num=1)
        self.saved_char = ""
        self.saved_location = self.location
        self.tabulations = tabulations
        self.saved_token: Optional[Token] = None

    def _update_pos(self, ch: str) -> None:
        if ch == "":
            return
        if ch == "\n":
            self.location.line_num += 1
            self.location.col_num = 1
        elif ch == "\t":
            self.location.col_num += self.tabulations
        else:
            self.location.col_num += 1

    def read_char(self) -> str:
        """Read one character; the empty string marks end of input."""
        if self.saved_char != "":
            ch = self.saved_char
            self.saved_char = ""
        else:
            ch = self.stream.read(1)

        self.saved_location = replace(self.location)
        self._update_pos(ch)
        return ch

    def unread_char(self, ch: str) -> None:
        """Push back the character just read."""
        assert self.saved_char == ""
        self.saved_char = ch
        self.location = self.saved_location

    def skip_whitespaces_and_comments(self) -> None:
        ch = self.read_char()
        while ch in WHITESPACE or ch == "#":
            if ch == "":
                return
            if ch == "#":
                # Skip the rest of the line
                while self.read_char() not in ("\r", "\n", ""):
                    pass
            ch = self.read_char()
        self.unread_char(ch)

    def _parse_string_token(self, token_location: SourceLocation) -> StringToken:
        token = ""
        while True:
            ch = self.read_char()
            if ch == '"':
                break
            if ch == "":
                raise GrammarError(token_location, "unterminated string")
            token += ch
        return StringToken(token_location, token)

    def _parse_float_token(self, first_char: str, token_location: SourceLocation) -> LiteralNumberToken:
        token = first_char
        while True:
            ch = self.read_char()
            if ch != "" and (ch.isdigit() or ch in ".eE" or (ch in "+-" and token[-1] in "eE")):
                token += ch
            else:
                self.unread_char(ch)
                break

        try:
            value = float(token)
        except ValueError:
            raise GrammarError(token_location, f"'{token}' is an invalid floating-point number") from None
        return LiteralNumberToken(token_location, value)

    def _parse_keyword_or_identifier_token(
        self, first_char: str, token_location: SourceLocation
    ) -> Union[KeywordToken, IdentifierToken]:
        token = first_char
        while True:
            ch = self.read_char()
            if ch.isalnum() or ch == "_":
                token += ch
            else:
                self.unread_char(ch)
                break

        if token in KEYWORDS:
            return KeywordToken(token_location, KEYWORDS[token])
        return IdentifierToken(token_location, token)

    def _starts_number(self, ch: str) -> bool:
        """Whether a sign character is immediately followed by a digit."""
        following = self.read_char()
        self.unread_char(following)
        return following.isdigit() or following == "."

    def read_token(self) -> Token:
        """Read the next token from the stream.

        Raises:
            GrammarError: on an invalid character, number or string
        """
        if self.saved_token is not None:
            token = self.saved_token
            self.saved_token = None
            return token

        self.skip_whitespaces_and_comments()

        ch = self.read_char()
        if ch == "":
            return StopToken(location=replace(self.location))

        # At this point we must check what kind of token begins with the "ch" character
        # (which has been put back in the stream with self.unread_char). First,
        # we save the position in the stream
        token_location = replace(self.saved_location)

        if ch in "+-" and self._starts_number(ch):
            return self._parse_float_token(ch, token_location)
        if ch in SYMBOLS:
            return SymbolToken(token_location, ch)
        if ch == '"':
            return self._parse_string_token(token_location)
        if ch.isdigit() or ch == ".":
            return self._parse_float_token(ch, token_location)
        if ch.isalpha() or ch == "_":
            return self._parse_keyword_or_identifier_token(ch, token_location)
        raise GrammarError(token_location, f"invalid character '{ch}'")

    def unread_token(self, token: Token) -> None:
        """Make `token` the next one returned by read_token."""
        assert self.saved_token is None
        self.saved_token = token

"""
Error hierarchy for LumenForge.

Every error a user can fix (a bad scene file, a degenerate transform, a
missing texture, an impossible render configuration) derives from
LumenForgeError, so the command line can report it without a traceback.
Anything else is a defect and is left to propagate.
"""

from __future__ import annotations
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .lexer import SourceLocation


class LumenForgeError(Exception):
    """Base class for user-facing errors."""
    pass


class GrammarError(LumenForgeError):
    """Malformed scene text: unexpected token, unknown name, wrong arity."""

    def __init__(self, location: SourceLocation, message: str):
        self.location = location
        self.message = message
        super().__init__(f"{location}: {message}")


class DegenerateGeometryError(LumenForgeError):
    """Non-invertible transform or zero-length direction."""
    pass


class ConfigurationError(LumenForgeError):
    """A render precondition does not hold (no camera, bad sample count, ...)."""
    pass


class ResourceError(LumenForgeError):
    """An external file (texture image) is missing or unreadable."""
    pass

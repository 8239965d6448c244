# File: dalgen/errors.py
"""Exception types raised by dalgen."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from dalgen.sanitizer import Diagnostic


class DalgenError(Exception):
    """Base class for every dalgen exception."""


class ProgrammingError(DalgenError, RuntimeError):
    """
    A caller broke the contract of a helper (for example asked for
    placeholders starting at ``$0``).

    These are bugs in the calling template or generator, not data problems.
    Nothing inside dalgen catches them: continuing would emit malformed SQL.
    """


class SanitizeError(DalgenError, ValueError):
    """Generated source could not be parsed or formatted."""

    def __init__(self, diagnostic: "Diagnostic", path: Optional[str] = None) -> None:
        self.diagnostic: "Diagnostic" = diagnostic
        self.path: Optional[str] = path
        super().__init__(str(diagnostic) if path is None else f"{path}: {diagnostic}")


__all__ = ["DalgenError", "ProgrammingError", "SanitizeError"]

"""Exception hierarchy for dataflash decoding."""

from __future__ import annotations


class DataflashError(Exception):
    """Base exception for all dataflash errors."""


class InvalidLog(DataflashError):
    """The stream never declared a format within the lookback horizon."""


class UnknownFormat(DataflashError):
    """A record referenced a format name or type code that is not registered."""


class MalformedRecord(DataflashError, ValueError):
    """A line or frame could not be structurally decoded."""


class UnknownTypeCode(DataflashError, KeyError):
    """A format string contains a character with no converter."""

    def __init__(self, code: str, format_name: str = ""):
        self.code = code
        self.format_name = format_name
        where = f" in format {format_name}" if format_name else ""
        super().__init__(f"Unknown type code {code!r}{where}")

    def __str__(self) -> str:
        return self.args[0]


class TypeMismatch(DataflashError, TypeError):
    """A typed value cannot be coerced to the requested view."""

"""
Error taxonomy for the splat data engine.

Every error raised by the engine derives from SplatError so callers can catch
engine failures as a group. InvalidInput also derives from ValueError and
StorageError from OSError, so generic handlers keep working.
"""

from typing import Optional


class SplatError(Exception):
    """Base class for all splat engine errors."""


class FormatError(SplatError):
    """Malformed or unsupported container (bad marker, encoding or type)."""


class ParseError(SplatError):
    """
    Value-level failure while reading vertex records.

    Attributes:
        record: Index of the vertex record that failed to parse.
    """

    def __init__(self, message: str, record: Optional[int] = None):
        super().__init__(message)
        self.record = record


class CorruptData(SplatError):
    """Compressed payload failed its self-consistency checks."""


class InvalidInput(SplatError, ValueError):
    """Null, empty or out-of-range argument."""


class StorageError(SplatError, OSError):
    """Underlying storage access failure."""


class EmptySequenceError(SplatError):
    """A frame sequence has no frame that can be delivered."""

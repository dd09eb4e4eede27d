"""Exception taxonomy for record parsing and index maintenance."""

from __future__ import annotations

from pathlib import Path


class TrackdownError(Exception):
    """Base class for every error raised by trackdown."""


class ParseError(TrackdownError):
    """A single record file could not be parsed.

    Contained at the scan boundary: the scanner logs it and skips the file.
    """

    def __init__(self, path: str | Path, reason: str) -> None:
        self.path = str(path)
        self.reason = reason
        super().__init__(f"{self.path}: {reason}")


class IndexCorruption(TrackdownError):
    """The on-disk index is unreadable or has the wrong shape. Triggers a rebuild."""


class RebuildFailure(TrackdownError):
    """A full rebuild failed. Nothing is left to fall back to."""

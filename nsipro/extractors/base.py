"""Shared data structures and exceptions for the extraction pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


class NsiproError(Exception):
    """Base class for errors raised while reading a project file."""


class MarkupError(NsiproError):
    """The repaired text still is not well-formed markup."""


class DerivationError(NsiproError):
    """The fields needed to compute a derived value are missing or unusable."""


class ParseError(NsiproError):
    """
    A project file could not be turned into a record.

    Raised by the record assembler when normalization or tree construction
    fails; the original error is available as ``__cause__``.

    Parameters
    ----------
    fname
        The file being parsed
    message
        Description of the failure
    """

    def __init__(self, fname, message: str):
        super().__init__(f"{fname}: {message}")
        self.fname = fname


@dataclass(frozen=True)
class ExtractionContext:
    """
    The input of a single pipeline run.

    Parameters
    ----------
    file_path
        Path to the project file. Only used to tag the resulting record with
        its origin, never to make parsing decisions.
    text
        The file's contents. If ``None``, extractors read ``file_path``.
    """

    file_path: Path
    text: str | None = None

    def read_text(self) -> str:
        """Return ``text``, reading it from ``file_path`` if it was not given."""
        if self.text is not None:
            return self.text
        return Path(self.file_path).read_text(encoding="utf-8", errors="replace")

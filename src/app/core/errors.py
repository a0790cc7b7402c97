"""Error taxonomy for the transcript-to-minutes pipeline.

- ValidationError: malformed input or configuration (e.g. chunk overlap
  not smaller than chunk size).
- UpstreamError: the text-generation service or the key-value store failed
  or returned an unexpected shape.
- ParseError: structured data could not be extracted from free text.
- NotFoundError: a referenced job, transcript or minutes record is absent.

The job pipeline is the only place these are converted into persisted
job state; everything below it raises.
"""

from __future__ import annotations


class MinutesError(Exception):
    """Base class for all pipeline errors."""


class ValidationError(MinutesError):
    """Malformed input or configuration."""


class UpstreamError(MinutesError):
    """External text-generation or storage call failed."""


class ParseError(MinutesError):
    """Structured extraction from free text failed."""

    def __init__(self, message: str, raw_text: str | None = None) -> None:
        super().__init__(message)
        self.raw_text = raw_text


class NotFoundError(MinutesError):
    """Referenced job or artifact does not exist."""

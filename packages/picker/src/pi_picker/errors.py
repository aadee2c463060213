"""
Error taxonomy for the picker pipeline.

- SourceConfigError: a source has neither candidates nor a generator.
  Fatal for that source only; the session drops it and keeps going.
- FilterError: a predicate or filter rejected the pattern itself
  (e.g. malformed regular expression). Raised to the recompute caller.
- BackgroundError: a background producer failed. Reported, never raised
  out of the session loop.
"""
from __future__ import annotations


class PickerError(Exception):
    """Base class for all picker errors."""


class SourceConfigError(PickerError, ValueError):
    def __init__(self, source_name: str, message: str | None = None) -> None:
        self.source_name = source_name
        super().__init__(message or f"Source {source_name!r} has no candidates and no generator")


class FilterError(PickerError, ValueError):
    def __init__(self, pattern: str, message: str) -> None:
        self.pattern = pattern
        super().__init__(f"Invalid pattern {pattern!r}: {message}")


class BackgroundError(PickerError, RuntimeError):
    def __init__(self, source_name: str, cause: BaseException) -> None:
        self.source_name = source_name
        self.cause = cause
        super().__init__(f"Background producer for {source_name!r} failed: {cause}")

# Path: core/query/errors.py
# Purpose: Define the error taxonomy raised while compiling tag queries.
# Layer: core/query.
# Details: All compiler failures derive from TagQueryError; unknown tag labels are not errors.

from __future__ import annotations

from typing import Optional


class TagQueryError(Exception):
    """Base class for every failure raised by the tag query compiler."""


class TagQuerySyntaxError(TagQueryError):
    """Raised when a query, or a tag definition, is malformed."""

    def __init__(self, message: str, position: Optional[int] = None, tag: Optional[str] = None) -> None:
        self.message = message
        self.position = position
        self.tag = tag
        details = message
        if position is not None:
            details = f"{details} (at position {position})"
        if tag is not None:
            details = f"{details} in definition of tag '{tag}'"
        super().__init__(details)


class InvalidPseudoTagError(TagQueryError):
    """Raised when a query invokes a pseudo-tag that is not registered."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Unknown pseudo-tag: {name}")


class TagQueryTooLargeError(TagQueryError):
    """Raised when tag definition expansion exceeds the node bound."""

    def __init__(self, message: str = "Expanded query is too large") -> None:
        super().__init__(message)


class CycleDetectedError(TagQueryTooLargeError):
    """Raised when a compound tag definition refers back to itself."""

    def __init__(self, label: str) -> None:
        self.label = label
        super().__init__(f"Recursive definition detected for tag '{label}'")


__all__ = [
    "TagQueryError",
    "TagQuerySyntaxError",
    "InvalidPseudoTagError",
    "TagQueryTooLargeError",
    "CycleDetectedError",
]

"""
Courier — Error Taxonomy

Every failure the core can surface derives from CourierError so the
boundaries (activation callback, payload pipeline, CLI) can catch one
type and turn it into a user-facing string.
"""
from typing import List, Optional


class CourierError(Exception):
    """Base class for all Courier failures."""


class ParseError(CourierError):
    """The launch arguments did not resolve to a LaunchPayload."""


class NoPayloadFound(ParseError):
    """No resolution strategy produced a payload."""

    def __init__(self, message: str = "no launch payload found in arguments"):
        super().__init__(message)


class ExtractionError(CourierError):
    """A selected file could not be read, decoded or extracted."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class BusyError(CourierError):
    """An analysis is already in flight."""

    def __init__(self, message: str = "an analysis is already running"):
        super().__init__(message)


class ServiceError(CourierError):
    """The text-generation service was unreachable or answered with a failure."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


def describe_error(exc: BaseException) -> str:
    """
    Flatten an exception and its cause chain into one line.

    Walks __cause__ (falling back to __context__) and joins each distinct
    message with ": ", e.g.
    "failed to read report.pdf: [Errno 13] Permission denied: 'report.pdf'".
    """
    parts: List[str] = []
    seen = set()
    current: Optional[BaseException] = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        message = str(current) or type(current).__name__
        if message not in parts:
            parts.append(message)
        if current.__cause__ is not None:
            current = current.__cause__
        elif current.__suppress_context__:
            current = None
        else:
            current = current.__context__
    return ": ".join(parts)

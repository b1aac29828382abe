"""
Exception hierarchy for the comment engine.

Steady-state "no result" outcomes (a comment that cannot be located, an
attribution that is ambiguous) are returned as Enum variants by the engines.
Exceptions are reserved for callers that explicitly ask for them and for
broken internal invariants.
"""


class EngineError(Exception):
    """Base engine exception. Carries a machine-readable `type` and `code`."""

    def __init__(self, message: str = "", type: str = "internal", code: str = None, details=None):
        super().__init__(message or code or type)
        self.type = type
        self.code = code
        self.details = details or {}


class LocateCommentError(EngineError):
    """Raised when a comment cannot be found in the page source and the caller wants an error."""

    def __init__(self, message: str = "Couldn't locate the comment in the source code.", details=None):
        super().__init__(message, type="parse", code="locateComment", details=details)


class AttributionError(EngineError):
    """Raised when the edit that added a comment cannot be determined unambiguously."""

    def __init__(self, message: str = "Couldn't find the edit that added the comment.", details=None):
        super().__init__(message, type="parse", code="findEdit", details=details)


class ParseFailure(EngineError):
    """Raised by a markup renderer when wikitext cannot be rendered."""

    def __init__(self, message: str = "Couldn't render the markup.", details=None):
        super().__init__(message, type="api", code="parse", details=details)


class InvariantViolation(EngineError):
    """Raised when an internal invariant is broken (e.g. offsets out of bounds)."""

    def __init__(self, message: str, details=None):
        super().__init__(message, type="internal", code="invariant", details=details)

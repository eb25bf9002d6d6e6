"""Custom exception hierarchy for puzzle generation."""


class OneStrokeError(Exception):
    """Base exception for engine failures."""


class InvalidParametersError(OneStrokeError, ValueError):
    """Raised when a board size, relax level or obstacle count is out of range."""


class BoardLoadError(OneStrokeError):
    """Raised when a textual board cannot be parsed."""


class PathValidationError(OneStrokeError):
    """Raised when a path breaks one of the solution invariants."""


class SearchExhausted(OneStrokeError):
    """Raised inside a search when its iteration cap or deadline is reached."""

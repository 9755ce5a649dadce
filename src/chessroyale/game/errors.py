"""Errors raised by the match state model.

The engine catches every one of these at its intent boundary; none of them
is allowed to reach the match loop.
"""


class MatchError(Exception):
    """Base class for recoverable match errors.

    Attributes:
        code: Short machine-readable error code
        message: Human-readable description
    """

    code = "match_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(MatchError):
    """Bad position shape, off-board square or illegal move shape."""

    code = "invalid"


class NotFoundError(MatchError):
    """A request referenced a piece id that is not registered."""

    code = "not_found"


class DuplicateError(MatchError):
    """A piece id was registered twice."""

    code = "duplicate"


class ResourceExhaustedError(MatchError):
    """No free square was available for a spawn."""

    code = "exhausted"


class MatchFullError(MatchError):
    """The match already holds the maximum number of players."""

    code = "match_full"

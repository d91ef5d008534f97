"""Business-rule errors raised by the match and odds services.

All three kinds are reported to the caller unchanged; none of them is
retried.  Transport code maps them onto HTTP status codes.
"""


class MatchOddsError(Exception):
    """Base class for every business-rule outcome."""

    code = "ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(MatchOddsError):
    """A referenced Match or Odds row does not exist."""

    code = "NOT_FOUND"


class ConflictError(MatchOddsError):
    """Duplicate specifier, or a uniqueness constraint lost a race."""

    code = "CONFLICT"


class ValidationError(MatchOddsError):
    """Malformed or out-of-range input that the core refuses to repair."""

    code = "VALIDATION_ERROR"

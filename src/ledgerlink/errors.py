"""Exception types raised across ledgerlink."""


class LedgerError(Exception):
    """Base class for all ledgerlink errors."""


class AuthRequiredError(LedgerError):
    """Raised when a request must be signed but no session password is stored."""

    def __init__(self, message: str = "User not authenticated: no session password") -> None:
        super().__init__(message)


class NetworkError(LedgerError):
    """Raised when an API call fails at the transport or HTTP status level."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class BadResponseShape(LedgerError):
    """A payload matched none of the known response envelopes."""


class InvalidDate(LedgerError):
    """A record carried a date value that could not be parsed."""


class InvalidDocument(LedgerError):
    """A document reference carried no resolvable URL."""


class ValidationError(LedgerError):
    """Submission form values are incomplete or malformed."""


class ConfigError(LedgerError):
    """Configuration is missing required keys or holds invalid values."""

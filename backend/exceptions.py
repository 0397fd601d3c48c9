"""
Domain exceptions for the ledger and membership core.

Core helpers raise these instead of HTTP errors so they can be exercised
against a bare session. main.py translates each kind into a response status.
"""


class LedgerError(Exception):
    """Base exception for all ledger and membership errors."""

    status_code = 500

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class NotFoundError(LedgerError):
    """Raised when a group, expense, settlement or pending request is absent or not visible."""

    status_code = 404


class UnauthorizedError(LedgerError):
    """Raised when the caller lacks the required role (membership or creator)."""

    status_code = 403


class ConflictError(LedgerError):
    """Raised on a duplicate join attempt or duplicate pending request."""

    status_code = 409


class ValidationError(LedgerError):
    """Raised when a request is well-formed but breaks a business rule."""

    status_code = 400

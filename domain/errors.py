# domain/errors.py

from typing import Any, Optional


class InvoicingError(Exception):
    """Base class for all order/invoice failures."""


class NotFoundError(InvoicingError):
    """A sheet or customer the caller asked for does not exist."""


class ValidationError(InvoicingError):
    """Input rejected before anything was written."""


class ExternalServiceError(InvoicingError):
    def __init__(self, message: str, http_status: Optional[int] = None, body: Any = None):
        super().__init__(message)
        self.http_status = http_status
        self.body = body


class NotificationError(InvoicingError):
    def __init__(self, message: str, http_status: Optional[int] = None):
        super().__init__(message)
        self.http_status = http_status


class ConcurrencyConflict(InvoicingError):
    """
    The sheet changed between reading the ledger blocks and writing rows.
    Safe to retry from a fresh read.
    """

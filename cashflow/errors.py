"""Exception taxonomy shared by the gateway client and the view-models."""
from __future__ import annotations

from typing import Optional


class CashflowError(Exception):
    """Base class for every error raised by this package."""


class TransportError(CashflowError):
    """The backend could not be reached or answered with a server error."""


class UnauthenticatedError(CashflowError):
    """No session is active or the backend rejected the bearer token."""


class ValidationError(CashflowError):
    """Input was rejected, either locally before sending or by the backend."""


class RequestCancelled(CashflowError):
    """A newer request superseded this one before its result was used."""


class ApiError(CashflowError):
    """Any other non-successful response from the backend."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


__all__ = [
    "ApiError",
    "CashflowError",
    "RequestCancelled",
    "TransportError",
    "UnauthenticatedError",
    "ValidationError",
]

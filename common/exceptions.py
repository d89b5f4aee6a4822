"""
Orangepay Gateway - Custom Exceptions
======================================
Business-level exceptions that can be caught and converted to HTTP responses.
"""

from fastapi import HTTPException, status


class OrangepayError(Exception):
    """Base exception for all gateway errors."""
    def __init__(self, message: str = "Orangepay - unexpected error."):
        self.message = message
        super().__init__(self.message)


class GatewayConfigError(OrangepayError):
    """Raised when submitted admin options are invalid."""
    def __init__(self, field: str, message: str = ""):
        self.field = field
        super().__init__(message or f"Invalid value for '{field}'.")


class RemoteCallError(OrangepayError):
    """Raised inside the request adapter when a remote call yields no usable envelope."""
    TRANSPORT = "transport"
    MALFORMED = "malformed"

    def __init__(self, kind: str, message: str):
        self.kind = kind
        super().__init__(message)


class OrderNotFoundError(OrangepayError):
    """Raised when the host has no order for the given id or key."""
    pass


def raise_http(error: OrangepayError, status_code: int = status.HTTP_400_BAD_REQUEST):
    """Convert a business exception to an HTTP exception."""
    raise HTTPException(status_code=status_code, detail=error.message)

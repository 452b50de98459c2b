"""
Exceptions raised by the TPMA API client.

Exception Hierarchy:
    TPMAError (base, extends TPSupervisionException)
    ├── TPMAConnectionError       transport failure or timeout
    ├── TPMAResponseFormatError   response did not match the expected schema
    └── TPMAHTTPError             non-2xx response
        ├── TPMAAuthenticationError   401
        ├── TPMAAuthorizationError    403
        ├── TPMANotFoundError         404
        ├── TPMARequestError          other 4xx (remote validation)
        └── TPMAServiceError          5xx
"""

from typing import Optional

from fastapi import status

from shared.utils.exceptions import TPSupervisionException


class TPMAError(TPSupervisionException):
    """Base exception for all TPMA client errors."""

    status_code = status.HTTP_502_BAD_GATEWAY

    def __init__(self, message: str, endpoint: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.endpoint = endpoint


class TPMAConnectionError(TPMAError):
    """Raised when the TPMA API cannot be reached."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    def __init__(self, message: str, endpoint: Optional[str] = None, attempts: int = 1):
        super().__init__(message, endpoint)
        self.attempts = attempts


class TPMAResponseFormatError(TPMAError):
    """Raised when a response body does not have the expected shape."""

    def __init__(self, endpoint: Optional[str] = None, details: Optional[list] = None):
        super().__init__("Invalid response format from server", endpoint)
        self.details = details or []


class TPMAHTTPError(TPMAError):
    """Raised for any non-success HTTP status from the TPMA API."""

    def __init__(
        self,
        message: str,
        http_status: int,
        endpoint: Optional[str] = None,
        attempts: int = 1,
    ):
        super().__init__(message, endpoint)
        self.http_status = http_status
        self.attempts = attempts


class TPMAAuthenticationError(TPMAHTTPError):
    """401 - token missing, invalid or expired."""
    status_code = status.HTTP_401_UNAUTHORIZED


class TPMAAuthorizationError(TPMAHTTPError):
    """403 - authenticated but not allowed."""
    status_code = status.HTTP_403_FORBIDDEN


class TPMANotFoundError(TPMAHTTPError):
    """404 - the remote record does not exist or is not visible."""
    status_code = status.HTTP_404_NOT_FOUND


class TPMARequestError(TPMAHTTPError):
    """Other 4xx - the remote rejected the request (business rule or validation)."""
    status_code = status.HTTP_400_BAD_REQUEST


class TPMAServiceError(TPMAHTTPError):
    """5xx - the remote failed."""
    status_code = status.HTTP_502_BAD_GATEWAY


def error_for_status(
    http_status: int,
    message: str,
    endpoint: Optional[str] = None,
    attempts: int = 1,
) -> TPMAHTTPError:
    """Build the exception matching an HTTP status code."""
    if http_status == 401:
        cls = TPMAAuthenticationError
    elif http_status == 403:
        cls = TPMAAuthorizationError
    elif http_status == 404:
        cls = TPMANotFoundError
    elif 400 <= http_status < 500:
        cls = TPMARequestError
    else:
        cls = TPMAServiceError
    return cls(message, http_status, endpoint=endpoint, attempts=attempts)

"""
Exception classes for chatstream.
"""

from typing import Any, Dict, Optional


class ChatStreamError(Exception):
    """Base exception for chatstream errors."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.response = response

    def __str__(self) -> str:
        if self.status_code:
            return f"[{self.status_code}] {self.message}"
        return self.message


class ProxyConnectionError(ChatStreamError):
    """Error connecting to the proxy."""

    def __init__(self, message: str = "Failed to connect to proxy") -> None:
        super().__init__(message)


class ProxyTimeoutError(ChatStreamError):
    """Request to the proxy timed out."""

    def __init__(self, message: str = "Request timed out") -> None:
        super().__init__(message)


class APIError(ChatStreamError):
    """Error returned by the proxy API."""

    pass


class AuthenticationError(APIError):
    """Authentication error."""

    def __init__(self, message: str = "Authentication failed") -> None:
        super().__init__(message, status_code=401)


class PermissionDeniedError(APIError):
    """Permission denied error."""

    def __init__(self, message: str = "Permission denied") -> None:
        super().__init__(message, status_code=403)


class NotFoundError(APIError):
    """Resource not found error."""

    def __init__(self, message: str = "Resource not found") -> None:
        super().__init__(message, status_code=404)


class RateLimitError(APIError):
    """Rate limit exceeded error."""

    def __init__(self, message: str = "Rate limit exceeded") -> None:
        super().__init__(message, status_code=429)


class ServerError(APIError):
    """Server error."""

    def __init__(self, message: str = "Internal server error", status_code: int = 500) -> None:
        super().__init__(message, status_code=status_code)


class RequestValidationError(APIError):
    """Request validation error."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=422)


class StreamDecodeError(ChatStreamError):
    """A stream event could not be decoded."""

    pass


class StreamFailure(ChatStreamError):
    """
    Terminal failure of a completion stream.

    Wraps whatever went wrong (transport, status, decoding) so callers only
    ever see one outcome per stream.
    """

    def __init__(self, cause: BaseException) -> None:
        status_code = getattr(cause, "status_code", None)
        super().__init__(str(cause), status_code=status_code)
        self.cause = cause

    def __str__(self) -> str:
        return str(self.cause)


class CatalogFetchFailure(ChatStreamError):
    """Fetching the model list failed."""

    def __init__(self, cause: BaseException) -> None:
        super().__init__(f"Failed to fetch models: {cause}")
        self.cause = cause


class TranscriptError(ChatStreamError):
    """Illegal transcript mutation."""

    pass


def raise_for_status(status_code: int, message: str, response: Optional[Dict[str, Any]] = None) -> None:
    """Raise appropriate exception based on status code."""
    if status_code == 401:
        raise AuthenticationError(message)
    elif status_code == 403:
        raise PermissionDeniedError(message)
    elif status_code == 404:
        raise NotFoundError(message)
    elif status_code == 422:
        raise RequestValidationError(message)
    elif status_code == 429:
        raise RateLimitError(message)
    elif status_code >= 500:
        raise ServerError(message, status_code=status_code)
    elif status_code >= 400:
        raise APIError(message, status_code=status_code, response=response)

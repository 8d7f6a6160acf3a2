"""
errors.py — Client-side error taxonomy for calls to the Pajama Party API.

Every failure of ApiClient surfaces as one of these, so components can
decide what to show without looking at httpx internals:

  ApiError          — server answered with an error status (message from its {error} body)
  ValidationError   — 400 / 422, with field details when the server sent them
  RateLimitError    — 429, with Retry-After seconds when known
  RequestTimeout    — no answer within the client timeout
  NetworkError      — request never reached the server
"""

from typing import Any, Optional


class ApiError(Exception):
    def __init__(
        self,
        message: str,
        status: int = 500,
        code: str = "API_ERROR",
        details: Any = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status = status
        self.code = code
        self.details = details


class NetworkError(ApiError):
    def __init__(self, message: str = "Network request failed. Please check your connection.") -> None:
        super().__init__(message, status=0, code="NETWORK_ERROR")


class RequestTimeout(ApiError):
    def __init__(self, message: str = "Request timed out. Please try again.") -> None:
        super().__init__(message, status=408, code="TIMEOUT")


class ValidationError(ApiError):
    def __init__(self, message: str, details: Any = None, status: int = 400) -> None:
        super().__init__(message, status=status, code="VALIDATION_ERROR", details=details)


class RateLimitError(ApiError):
    def __init__(self, message: str, retry_after: Optional[int] = None) -> None:
        super().__init__(message, status=429, code="RATE_LIMIT")
        self.retry_after = retry_after


_GENERIC = "Something went wrong. Please try again."


def user_message(exc: BaseException) -> str:
    """Human-readable text for an error stored on a component's `error` attribute."""
    if isinstance(exc, NetworkError):
        return "Network connection failed. Please check your internet connection."
    if isinstance(exc, RateLimitError):
        return "Too many requests. Please wait a moment and try again."
    if isinstance(exc, ApiError):
        return exc.message or _GENERIC
    return _GENERIC

"""
Custom Exception Classes for the Raffle Profile API.

Every failure the service can report has its own exception class carrying a
stable `error_code` and a `details` dictionary. The kind is preserved from
the point of failure all the way to the HTTP response, where
`to_http_exception` maps it to a status code.

Key Components:
- `RaffleAPIException`: The root of the hierarchy. Catch it to handle every
  application error in one place.
- Lookup errors: `InvalidArgumentError` (caller error), `ProfileNotFoundError`
  (identifier unknown upstream), `UpstreamUnavailableError` (transient, the
  caller may retry) and `ConfigurationError` (deployment defect).
- Raffle errors: `DuplicateHostError`, `HostLimitError` and
  `DrawInProgressError` guard the host list and the draw session;
  `NoWinnerError` answers a winner request before any draw has finished.
- `to_http_exception`: Translates an application error into FastAPI's
  `HTTPException` so the routers never hard-code status codes.
"""

from typing import Optional, Dict, Any
from fastapi import HTTPException


class RaffleAPIException(Exception):
    """Base exception class for the Raffle Profile API"""

    status_code = 500
    retryable = False

    def __init__(
        self,
        message: str,
        error_code: str = "RAFFLE_API_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


class InvalidArgumentError(RaffleAPIException):
    """Raised when the caller supplies unusable input"""

    status_code = 400

    def __init__(self, field: str, value: Any, reason: str):
        super().__init__(
            f"Invalid value for '{field}': {reason}",
            "INVALID_ARGUMENT",
            {"field": field, "value": str(value), "reason": reason},
        )


class ProfileNotFoundError(RaffleAPIException):
    """Raised when the upstream reports that a profile does not exist"""

    status_code = 404

    def __init__(self, username: str, reason: str = "User not found or API error"):
        super().__init__(
            f"Profile not found for username: {username}",
            "PROFILE_NOT_FOUND",
            {"username": username, "reason": reason},
        )


class UpstreamUnavailableError(RaffleAPIException):
    """Raised when the profile upstream cannot be reached or fails in transport"""

    status_code = 500
    retryable = True

    def __init__(self, service: str, reason: str, upstream_status: Optional[int] = None):
        details: Dict[str, Any] = {"service": service, "reason": reason}
        if upstream_status is not None:
            details["upstream_status"] = upstream_status
        super().__init__(
            f"Service '{service}' is unavailable: {reason}",
            "UPSTREAM_UNAVAILABLE",
            details,
        )


class ConfigurationError(RaffleAPIException):
    """Raised when a required setting is missing"""

    status_code = 500

    def __init__(self, setting: str, reason: str = "not configured"):
        super().__init__(
            f"API configuration error: {setting} {reason}",
            "CONFIGURATION_ERROR",
            {"setting": setting, "reason": reason},
        )


class DuplicateHostError(RaffleAPIException):
    """Raised when a host with the same normalized username is already listed"""

    status_code = 409

    def __init__(self, username: str):
        super().__init__(
            f"Host already added: {username}",
            "DUPLICATE_HOST",
            {"username": username},
        )


class HostLimitError(RaffleAPIException):
    """Raised when the host list is full"""

    status_code = 409

    def __init__(self, limit: int):
        super().__init__(
            f"At most {limit} hosts can be displayed",
            "HOST_LIMIT_REACHED",
            {"limit": limit},
        )


class DrawInProgressError(RaffleAPIException):
    """Raised when a draw is requested while another one is still ticking"""

    status_code = 409

    def __init__(self):
        super().__init__(
            "A draw is already in progress; cancel it before starting another",
            "DRAW_IN_PROGRESS",
        )


class NoWinnerError(RaffleAPIException):
    """Raised when the winner is requested before a draw has finished"""

    status_code = 404

    def __init__(self, state: str):
        super().__init__(
            "No winner has been drawn",
            "NO_WINNER",
            {"state": state},
        )


class StoreError(RaffleAPIException):
    """Raised when the profile store cannot complete an operation"""

    status_code = 500

    def __init__(self, operation: str, reason: str):
        super().__init__(
            f"Profile store operation '{operation}' failed: {reason}",
            "STORE_ERROR",
            {"operation": operation, "reason": reason},
        )


def to_http_exception(exc: RaffleAPIException) -> HTTPException:
    """Convert RaffleAPIException to FastAPI HTTPException"""

    status_code_map = {
        "INVALID_ARGUMENT": 400,
        "PROFILE_NOT_FOUND": 404,
        "NO_WINNER": 404,
        "DUPLICATE_HOST": 409,
        "HOST_LIMIT_REACHED": 409,
        "DRAW_IN_PROGRESS": 409,
        "CONFIGURATION_ERROR": 500,
        "STORE_ERROR": 500,
        "UPSTREAM_UNAVAILABLE": 500,
    }

    status_code = status_code_map.get(exc.error_code, exc.status_code)

    return HTTPException(
        status_code=status_code,
        detail={
            "error_code": exc.error_code,
            "message": exc.message,
            "details": exc.details,
        },
    )

"""
Centralized error handling for feed fetches and the session API.
Exception types, user-facing messages and reusable helpers so controllers and routes stay thin.
"""
from __future__ import annotations

from fastapi import HTTPException


class SquibFeedError(Exception):
    """Base class for failures outside the cache store (network, location, session)."""


class FeedFetchError(SquibFeedError):
    """Backend request failed (transport error, non-2xx, or undecodable body)."""

    def __init__(self, message: str, *, status_code: int | None = None, detail: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail


class SessionMissingError(SquibFeedError):
    """No signed-in user for a personal-feed operation."""


class LocationError(SquibFeedError):
    """Device location could not be used for the public feed."""


class LocationPermissionDenied(LocationError):
    pass


class LocationTimeout(LocationError):
    pass


class LocationUnavailable(LocationError):
    pass


# ---------------------------------------------------------------------------
# Constants: status codes and user-facing messages
# ---------------------------------------------------------------------------

MSG_LOAD_FAILED = "Unable to load content. Please check your connection and try again."
MSG_LOCATION_TIMEOUT = "Location request timed out. Please try again or check your GPS settings."
MSG_LOCATION_UNAVAILABLE = "Location services not available. Please enable GPS or try on a real device."
MSG_LOCATION_DENIED = "Location permission is required to show squibs near you."
MSG_SESSION_MISSING = "No user session found."
MSG_UNEXPECTED = "Something went wrong. Please try again."

STATUS_UNAUTHORIZED = 401
STATUS_FORBIDDEN = 403
STATUS_BAD_GATEWAY = 502
STATUS_SERVICE_UNAVAILABLE = 503
STATUS_GATEWAY_TIMEOUT = 504
STATUS_INTERNAL_ERROR = 500


# ---------------------------------------------------------------------------
# Error rules: (exception type, status_code, user message)
# Add new rules here instead of scattering isinstance checks in controllers and routes.
# ---------------------------------------------------------------------------

# First match wins, so subclasses go before their bases.
FEED_ERROR_RULES: list[tuple[type[Exception], int, str]] = [
    (LocationTimeout, STATUS_GATEWAY_TIMEOUT, MSG_LOCATION_TIMEOUT),
    (LocationUnavailable, STATUS_SERVICE_UNAVAILABLE, MSG_LOCATION_UNAVAILABLE),
    (LocationPermissionDenied, STATUS_FORBIDDEN, MSG_LOCATION_DENIED),
    (SessionMissingError, STATUS_UNAUTHORIZED, MSG_SESSION_MISSING),
    (FeedFetchError, STATUS_BAD_GATEWAY, MSG_LOAD_FAILED),
]


def _match_rule(exc: Exception) -> tuple[int, str]:
    for exc_type, status_code, message in FEED_ERROR_RULES:
        if isinstance(exc, exc_type):
            return status_code, message
    return STATUS_INTERNAL_ERROR, MSG_UNEXPECTED


def user_message_for(exc: Exception) -> str:
    """Message shown to the user for a failed load; generic text for unknown errors."""
    return _match_rule(exc)[1]


def feed_error_to_http(exc: Exception) -> HTTPException:
    """
    Map an exception from a controller call into an HTTPException.
    Uses FEED_ERROR_RULES for known error types; otherwise returns 500 with a generic message.
    """
    status_code, message = _match_rule(exc)
    return HTTPException(status_code=status_code, detail=message)

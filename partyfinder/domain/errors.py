"""
Error taxonomy shared by the rules engines and the API client.

Precondition rejections are raised locally before any network call and are
never retried automatically. ``ApiError`` covers everything that went wrong
on the wire.
"""
from typing import Optional


class PartyFinderError(Exception):
    """Base class for every error raised by the domain and client layers."""


class PreconditionRejected(PartyFinderError):
    """An action was refused locally; nothing was sent to the server."""

    title = "Not Allowed"


class LocationUnavailable(PreconditionRejected):
    title = "Location Required"

    def __init__(self, message: str = "Enable location services to check in"):
        super().__init__(message)


class TooEarly(PreconditionRejected):
    title = "Too Early"

    def __init__(self, message: str = "This event hasn't started yet!"):
        super().__init__(message)


class TooFar(PreconditionRejected):
    title = "Too Far Away"

    def __init__(self, distance_km: float, message: str):
        super().__init__(message)
        self.distance_km = distance_km


class PermissionDenied(PreconditionRejected):
    title = "Permission Denied"


class LoginRequired(PreconditionRejected):
    title = "Login Required"

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message)


class ApiError(PartyFinderError):
    """Non-2xx response, network failure or malformed response body."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code

"""Protocol for device location. The public feed asks for permission, then for a position fix."""
from typing import Protocol

from squibfeed.core.errors import LocationUnavailable
from squibfeed.models.cache_record import GeoPoint


class LocationProvider(Protocol):
    """Interface for whatever knows where the device is (OS API, host UI, test double)."""

    async def has_permission(self) -> bool:
        """True if the user allowed location access (may prompt)."""
        ...

    async def current_position(self) -> GeoPoint:
        """
        Current device position.
        Raises LocationTimeout or LocationUnavailable when no fix can be obtained.
        """
        ...


class ReportedLocationProvider:
    """
    Location pushed in by the host UI. No report yet means no permission.
    Used by the session API, where the shell owns the GPS and sends coordinates with each request.
    """

    def __init__(self, point: GeoPoint | None = None) -> None:
        self._point = point

    def report(self, point: GeoPoint) -> None:
        self._point = point

    def revoke(self) -> None:
        self._point = None

    async def has_permission(self) -> bool:
        return self._point is not None

    async def current_position(self) -> GeoPoint:
        if self._point is None:
            raise LocationUnavailable("No location reported by host")
        return self._point

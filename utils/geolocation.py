"""Device geolocation outcomes.

The browser owns the actual permission prompt; the backend only sees the
outcome. ``request_location`` wraps any awaitable provider with a timeout and
``location_from_payload`` reads what a client reported over HTTP.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Dict, NamedTuple, Optional, Union

from utils.errors import GeolocationDenied, GeolocationUnavailable


class Coordinates(NamedTuple):
    lat: float
    lng: float


LocationOutcome = Union[Coordinates, GeolocationDenied, GeolocationUnavailable]


async def request_location(
    provider: Callable[[], Awaitable[Any]],
    timeout: float = 15.0,
) -> LocationOutcome:
    """Await ``provider`` for the device position.

    A ``PermissionError`` from the provider means the user denied access, a
    timeout or any ``OSError``/``LookupError`` means the position is
    unavailable. Cancellation is not caught.
    """
    try:
        position = await asyncio.wait_for(provider(), timeout=timeout)
    except PermissionError:
        return GeolocationDenied()
    except asyncio.TimeoutError:
        return GeolocationUnavailable(reason="timeout")
    except (OSError, LookupError):
        return GeolocationUnavailable()

    if position is None:
        return GeolocationUnavailable()
    lat, lng = position
    return Coordinates(float(lat), float(lng))


def location_from_payload(data: Dict[str, Any]) -> Optional[LocationOutcome]:
    """Read a client-reported location.

    Accepts ``{"lat": .., "lng": ..}`` (``latitude``/``longitude`` also work) or
    ``{"geolocation_error": "denied" | "unavailable" | "timeout"}``. Returns
    ``None`` when the client sent neither.
    """
    error = data.get("geolocation_error")
    if error == "denied":
        return GeolocationDenied()
    if error:
        return GeolocationUnavailable(reason="timeout" if error == "timeout" else "unavailable")

    lat = data.get("lat", data.get("latitude"))
    lng = data.get("lng", data.get("longitude"))
    if lat is None or lng is None:
        return None

    try:
        return Coordinates(float(lat), float(lng))
    except (TypeError, ValueError):
        return GeolocationUnavailable()

"""Utility helpers for delivery-related calculations."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Optional, Union

from utils.distance import haversine_km
from utils.errors import CheckoutError, DeliveryFeeUnresolved, NotServiceable
from utils.formatting import to_money
from utils.geolocation import LocationOutcome

FIXED = "fixed"
DISTANCE = "distance"


@dataclass(frozen=True)
class DeliveryQuote:
    fee: Decimal
    mode: str
    distance_km: Optional[float] = None

    def to_dict(self):
        return {
            "fee": float(self.fee),
            "mode": self.mode,
            "distance_km": round(self.distance_km, 2) if self.distance_km is not None else None,
        }


def _mode_value(mode) -> str:
    return getattr(mode, "value", mode)


def _active_zones(zones):
    return [zone for zone in zones if getattr(zone, "active", True)]


def resolve_delivery_fee(
    mode,
    fixed_fee,
    zones: Iterable,
    distance_km: Optional[float],
    top_boundary_fallback: bool = True,
) -> Union[Decimal, NotServiceable]:
    """Return the delivery fee for ``distance_km`` or ``NotServiceable``.

    Zones must be sorted ascending by ``min_distance``; the first zone with
    ``min <= distance < max`` wins. When nothing matches, a distance sitting
    inside the last zone's closed range ``[min, max]`` is charged that zone's fee
    so an exact hit on the top boundary is still served.
    """
    if _mode_value(mode) == FIXED:
        if fixed_fee is None:
            return NotServiceable(distance_km=distance_km)
        return to_money(fixed_fee)

    active = _active_zones(zones)
    if distance_km is None or not active:
        return NotServiceable(distance_km=distance_km)

    for zone in active:
        if zone.min_distance <= distance_km < zone.max_distance:
            return to_money(zone.fee)

    if top_boundary_fallback:
        last = active[-1]
        if last.min_distance <= distance_km <= last.max_distance:
            return to_money(last.fee)

    return NotServiceable(distance_km=distance_km)


def quote_delivery(settings, zones: Iterable, location: Optional[LocationOutcome]):
    """Resolve the delivery fee for a customer location under the store settings.

    ``location`` is whatever the device reported: coordinates, a geolocation
    failure or nothing. Fixed mode never looks at it. Returns a
    ``DeliveryQuote`` or one of ``DeliveryFeeUnresolved`` / ``NotServiceable``
    / the geolocation failure.
    """
    mode = _mode_value(settings.delivery_mode)

    if mode == FIXED:
        fee = resolve_delivery_fee(mode, settings.delivery_fee, (), None)
        if isinstance(fee, NotServiceable):
            return DeliveryFeeUnresolved(reason="Fixed delivery fee is not configured.")
        return DeliveryQuote(fee=fee, mode=mode)

    if isinstance(location, CheckoutError):
        return location

    if settings.store_lat is None or settings.store_lng is None:
        return DeliveryFeeUnresolved(reason="Store location is not configured.")

    if location is None:
        return DeliveryFeeUnresolved(reason="Share your location to calculate the delivery fee.")

    distance = haversine_km(settings.store_lat, settings.store_lng, location.lat, location.lng)
    fee = resolve_delivery_fee(mode, None, zones, distance)
    if isinstance(fee, NotServiceable):
        return fee
    return DeliveryQuote(fee=fee, mode=mode, distance_km=distance)

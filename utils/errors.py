"""Typed rejection results returned by the pricing and checkout helpers.

None of these are raised. Helpers return them in place of a value and the
resources translate them into JSON error payloads with ``to_response``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional, Tuple

from utils.formatting import format_price


@dataclass(frozen=True)
class CheckoutError:
    code = "checkout_error"
    http_status = 400

    @property
    def message(self) -> str:
        return "The order could not be processed."

    def to_response(self) -> Tuple[Dict[str, Any], int]:
        return {"error": self.message, "code": self.code}, self.http_status


@dataclass(frozen=True)
class StoreClosed(CheckoutError):
    next_open: Optional[str] = None
    manual: bool = False

    code = "store_closed"
    http_status = 409

    @property
    def message(self) -> str:
        if self.manual:
            return "The store is temporarily closed."
        if self.next_open:
            return f"The store is closed. Orders open at {self.next_open}."
        return "The store is closed today."


@dataclass(frozen=True)
class DeliveryFeeUnresolved(CheckoutError):
    reason: str = "Delivery fee has not been calculated yet."

    code = "delivery_fee_unresolved"
    http_status = 422

    @property
    def message(self) -> str:
        return self.reason


@dataclass(frozen=True)
class NotServiceable(CheckoutError):
    distance_km: Optional[float] = None

    code = "not_serviceable"
    http_status = 422

    @property
    def message(self) -> str:
        if self.distance_km is None:
            return "Delivery is not available for this address."
        return f"Sorry, we do not deliver that far ({self.distance_km:.1f}km)."


@dataclass(frozen=True)
class CouponRejection(CheckoutError):
    """Base for the four coupon rejections."""


@dataclass(frozen=True)
class CouponNotFound(CouponRejection):
    code_entered: str = ""

    code = "coupon_not_found"
    http_status = 404

    @property
    def message(self) -> str:
        if self.code_entered:
            return f"Coupon {self.code_entered.upper()} is invalid or inactive."
        return "Coupon is invalid or inactive."


@dataclass(frozen=True)
class CouponExpired(CouponRejection):
    expired_at: Optional[datetime] = None

    code = "coupon_expired"
    http_status = 422

    @property
    def message(self) -> str:
        if self.expired_at is None:
            return "This coupon has expired."
        return f"This coupon expired on {self.expired_at:%d/%m/%Y}."


@dataclass(frozen=True)
class CouponBelowMinimum(CouponRejection):
    minimum: Decimal = Decimal("0")

    code = "coupon_below_minimum"
    http_status = 422

    @property
    def message(self) -> str:
        return f"This coupon requires a minimum order of {format_price(self.minimum)}."


@dataclass(frozen=True)
class CouponExhausted(CouponRejection):
    max_uses: Optional[int] = None

    code = "coupon_exhausted"
    http_status = 422

    @property
    def message(self) -> str:
        return "This coupon has reached its usage limit."


@dataclass(frozen=True)
class InvalidSelection(CheckoutError):
    group_name: Optional[str] = None
    minimum: int = 0
    detail: Optional[str] = None

    code = "invalid_selection"
    http_status = 422

    @property
    def message(self) -> str:
        if self.detail:
            return self.detail
        if self.group_name:
            return f"Choose at least {self.minimum} option(s) in '{self.group_name}'."
        return "Selected options are not valid for this product."


@dataclass(frozen=True)
class GeolocationDenied(CheckoutError):
    code = "geolocation_denied"
    http_status = 422

    @property
    def message(self) -> str:
        return "Location permission was denied. Allow access and retry, or enter your address."


@dataclass(frozen=True)
class GeolocationUnavailable(CheckoutError):
    reason: str = "unavailable"

    code = "geolocation_unavailable"
    http_status = 422

    @property
    def message(self) -> str:
        if self.reason == "timeout":
            return "Getting your location took too long. Retry, or enter your address."
        return "Your location could not be determined. Retry, or enter your address."


@dataclass(frozen=True)
class PersistenceFailure(CheckoutError):
    code = "persistence_failure"
    http_status = 503

    @property
    def message(self) -> str:
        return "Your order could not be saved. Your cart was kept, please try again."


@dataclass(frozen=True)
class InvalidTransition(CheckoutError):
    current: str = ""
    requested: str = ""

    code = "invalid_transition"
    http_status = 409

    @property
    def message(self) -> str:
        return f"Cannot change order from '{self.current}' to '{self.requested}'."


@dataclass(frozen=True)
class EmptyCart(CheckoutError):
    code = "empty_cart"
    http_status = 400

    @property
    def message(self) -> str:
        return "Your cart is empty."


@dataclass(frozen=True)
class BelowStoreMinimum(CheckoutError):
    minimum: Decimal = Decimal("0")

    code = "below_store_minimum"
    http_status = 422

    @property
    def message(self) -> str:
        return f"The minimum order is {format_price(self.minimum)}."

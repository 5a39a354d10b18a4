"""Order total composition and the checkout gate."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional, Union

from utils.cart import Cart
from utils.coupons import validate_coupon
from utils.delivery import DeliveryQuote
from utils.errors import (
    BelowStoreMinimum,
    CheckoutError,
    CouponRejection,
    DeliveryFeeUnresolved,
    EmptyCart,
    StoreClosed,
)
from utils.formatting import to_money
from utils.store_status import StoreStatus


def compose_total(subtotal, delivery_fee, discount) -> Decimal:
    """``subtotal + delivery_fee - discount``, never below zero."""
    total = to_money(subtotal) + to_money(delivery_fee) - to_money(discount)
    return max(Decimal("0.00"), total)


@dataclass(frozen=True)
class CheckoutQuote:
    subtotal: Decimal
    delivery_fee: Decimal
    discount: Decimal
    total: Decimal
    distance_km: Optional[float] = None
    coupon: Any = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "subtotal": float(self.subtotal),
            "delivery_fee": float(self.delivery_fee),
            "discount": float(self.discount),
            "total": float(self.total),
            "distance_km": round(self.distance_km, 2) if self.distance_km is not None else None,
            "coupon_code": self.coupon.code if self.coupon is not None else None,
        }


def prepare_checkout(
    cart: Cart,
    status: StoreStatus,
    delivery: Union[DeliveryQuote, CheckoutError, None],
    now: datetime,
    coupon=None,
    coupon_code: str = "",
    min_order_value=None,
) -> Union[CheckoutQuote, CheckoutError]:
    """Price a cart for submission or return the reason it cannot be submitted.

    ``coupon`` is the looked-up record (or ``None`` when the code matched
    nothing); it is only validated when ``coupon_code`` was entered. The
    discount is always computed on the subtotal alone.
    """
    if not len(cart):
        return EmptyCart()

    if not status.is_open:
        return StoreClosed(next_open=status.next_open, manual=status.is_manual_close)

    if delivery is None:
        return DeliveryFeeUnresolved()
    if isinstance(delivery, CheckoutError):
        return delivery

    subtotal = cart.subtotal
    if min_order_value is not None and subtotal < to_money(min_order_value):
        return BelowStoreMinimum(minimum=to_money(min_order_value))

    discount = Decimal("0.00")
    if coupon_code:
        result = validate_coupon(coupon, subtotal, now, code_entered=coupon_code)
        if isinstance(result, CouponRejection):
            return result
        discount = result
    else:
        coupon = None

    return CheckoutQuote(
        subtotal=subtotal,
        delivery_fee=delivery.fee,
        discount=discount,
        total=compose_total(subtotal, delivery.fee, discount),
        distance_km=delivery.distance_km,
        coupon=coupon,
    )

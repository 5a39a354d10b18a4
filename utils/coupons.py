from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional, Union

from sqlalchemy import func, or_, update

from extensions import db
from models import Coupon
from utils.clock import ensure_utc
from utils.errors import (
    CouponBelowMinimum,
    CouponExhausted,
    CouponExpired,
    CouponNotFound,
    CouponRejection,
)
from utils.formatting import to_money

PERCENTAGE = "percentage"


def normalise_code(code: Optional[str]) -> str:
    return (code or "").strip().upper()


def find_coupon(code: Optional[str]) -> Optional[Coupon]:
    """Case-insensitive exact lookup of an active coupon."""
    code = normalise_code(code)
    if not code:
        return None
    return Coupon.query.filter(func.upper(Coupon.code) == code, Coupon.active.is_(True)).first()


def validate_coupon(coupon, subtotal, now: datetime, code_entered: str = "") -> Union[Decimal, CouponRejection]:
    """Check ``coupon`` against the cart subtotal and return the discount.

    Checks run in order and the first failure wins. The usage counter is
    only read, so calling this repeatedly is safe.
    """
    subtotal = to_money(subtotal)

    if coupon is None or not coupon.active:
        return CouponNotFound(code_entered=code_entered)

    if coupon.expires_at is not None and ensure_utc(coupon.expires_at) < ensure_utc(now):
        return CouponExpired(expired_at=coupon.expires_at)

    if coupon.min_order_value is not None and subtotal < to_money(coupon.min_order_value):
        return CouponBelowMinimum(minimum=to_money(coupon.min_order_value))

    if coupon.max_uses is not None and (coupon.current_uses or 0) >= coupon.max_uses:
        return CouponExhausted(max_uses=coupon.max_uses)

    value = Decimal(str(coupon.discount_value))
    if getattr(coupon.discount_type, "value", coupon.discount_type) == PERCENTAGE:
        raw = subtotal * value / Decimal("100")
    else:
        raw = value

    return to_money(min(raw, subtotal))


def redeem_coupon(coupon_id: int) -> bool:
    """Atomically bump ``current_uses`` if the coupon is still under its limit.

    Runs inside the caller's transaction; returns ``False`` when another
    order took the last use first.
    """
    result = db.session.execute(
        update(Coupon)
        .where(
            Coupon.id == coupon_id,
            Coupon.active.is_(True),
            or_(Coupon.max_uses.is_(None), Coupon.current_uses < Coupon.max_uses),
        )
        .values(current_uses=Coupon.current_uses + 1)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1

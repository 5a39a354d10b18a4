from datetime import datetime, timedelta, timezone
from decimal import Decimal
from types import SimpleNamespace

import pytest

from extensions import db
from models import Coupon, DiscountType
from utils.coupons import find_coupon, redeem_coupon, validate_coupon
from utils.errors import CouponBelowMinimum, CouponExhausted, CouponExpired, CouponNotFound

NOW = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


def coupon(**overrides):
    values = dict(
        code="PROMO",
        discount_type=DiscountType.PERCENTAGE,
        discount_value=Decimal("10"),
        min_order_value=None,
        max_uses=None,
        current_uses=0,
        expires_at=None,
        active=True,
    )
    values.update(overrides)
    return SimpleNamespace(**values)


class TestValidateCoupon:
    def test_percentage(self):
        assert validate_coupon(coupon(), Decimal("100"), NOW) == Decimal("10.00")

    def test_percentage_rounds_to_cents(self):
        assert validate_coupon(coupon(discount_value=Decimal("15")), Decimal("33.33"), NOW) == Decimal("5.00")

    def test_fixed_discount_is_clamped_to_subtotal(self):
        fixed = coupon(discount_type=DiscountType.FIXED, discount_value=Decimal("1000"))
        assert validate_coupon(fixed, Decimal("50"), NOW) == Decimal("50.00")

    def test_missing_coupon(self):
        result = validate_coupon(None, Decimal("50"), NOW, code_entered="nope")
        assert isinstance(result, CouponNotFound)
        assert result.http_status == 404
        assert "NOPE" in result.message

    def test_inactive_coupon_reads_as_not_found(self):
        assert isinstance(validate_coupon(coupon(active=False), Decimal("50"), NOW), CouponNotFound)

    def test_expired(self):
        result = validate_coupon(coupon(expires_at=NOW - timedelta(seconds=1)), Decimal("50"), NOW)
        assert isinstance(result, CouponExpired)

    def test_naive_expiry_is_read_as_utc(self):
        naive = datetime(2024, 3, 1, 13, 0)
        assert validate_coupon(coupon(expires_at=naive), Decimal("50"), NOW) == Decimal("5.00")

    def test_below_minimum(self):
        result = validate_coupon(coupon(min_order_value=Decimal("60")), Decimal("59.99"), NOW)
        assert isinstance(result, CouponBelowMinimum)
        assert result.message == "This coupon requires a minimum order of R$ 60,00."

    def test_exhausted(self):
        result = validate_coupon(coupon(max_uses=3, current_uses=3), Decimal("50"), NOW)
        assert isinstance(result, CouponExhausted)

    def test_checks_short_circuit_in_order(self):
        everything_wrong = coupon(
            expires_at=NOW - timedelta(days=1),
            min_order_value=Decimal("500"),
            max_uses=1,
            current_uses=1,
        )
        assert isinstance(validate_coupon(everything_wrong, Decimal("10"), NOW), CouponExpired)

    def test_validation_does_not_consume_uses(self):
        limited = coupon(max_uses=1, current_uses=0)
        first = validate_coupon(limited, Decimal("80"), NOW)
        second = validate_coupon(limited, Decimal("80"), NOW)
        assert first == second == Decimal("8.00")
        assert limited.current_uses == 0


class TestCouponStorage:
    def test_find_is_case_insensitive(self, app):
        db.session.add(Coupon(code="promo10", discount_type=DiscountType.PERCENTAGE, discount_value=10))
        db.session.commit()

        found = find_coupon("  Promo10 ")
        assert found is not None
        assert found.code == "PROMO10"

    def test_find_ignores_inactive(self, app):
        db.session.add(Coupon(code="OFF", discount_type=DiscountType.FIXED, discount_value=5, active=False))
        db.session.commit()
        assert find_coupon("OFF") is None
        assert find_coupon("") is None

    def test_redeem_stops_at_limit(self, app):
        limited = Coupon(code="ONCE", discount_type=DiscountType.FIXED, discount_value=5, max_uses=1)
        db.session.add(limited)
        db.session.commit()

        assert redeem_coupon(limited.id) is True
        assert redeem_coupon(limited.id) is False
        db.session.commit()

        db.session.refresh(limited)
        assert limited.current_uses == 1

    @pytest.mark.parametrize("times", [1, 3])
    def test_redeem_unlimited(self, app, times):
        unlimited = Coupon(code="ALWAYS", discount_type=DiscountType.PERCENTAGE, discount_value=5)
        db.session.add(unlimited)
        db.session.commit()

        assert all(redeem_coupon(unlimited.id) for _ in range(times))
        db.session.commit()
        db.session.refresh(unlimited)
        assert unlimited.current_uses == times

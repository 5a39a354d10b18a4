from flask import Blueprint, request, current_app
from flask_restful import Api, Resource
from marshmallow import ValidationError
from models import Product
from schemas import CartQuoteSchema
from utils.cart import Cart
from utils.checkout import compose_total
from utils.clock import utcnow
from utils.coupons import find_coupon, validate_coupon
from utils.errors import CheckoutError, CouponRejection, InvalidSelection
from utils.options import build_line_item
from resources.delivery import delivery_from_payload
from resources.store import load_settings


cart_bp = Blueprint("cart", __name__)
api = Api(cart_bp)

cart_quote_schema = CartQuoteSchema()


def build_cart(raw_items):
    """Price the submitted items against the live catalog.

    Returns a ``Cart`` or the first ``InvalidSelection`` met.
    """
    cart = Cart()
    for index, item in enumerate(raw_items):
        product = Product.query.filter_by(id=item["product_id"], active=True).first()
        if not product:
            return InvalidSelection(detail=f"Product {item['product_id']} is not available (item {index}).")

        line = build_line_item(
            product,
            product.option_groups,
            item.get("option_ids", []),
            quantity=item.get("quantity", 1),
            notes=item.get("notes"),
            removed_ingredients=item.get("removed_ingredients", []),
            ingredients=product.ingredients,
        )
        if isinstance(line, CheckoutError):
            return line
        cart.add(line)
    return cart


class CartQuoteResource(Resource):
    def post(self):
        """Merge and price a cart; delivery and coupon are included when given.

        Unlike checkout, a missing fee or a rejected coupon does not fail the
        quote; it is reported next to the totals so the page can show it live.
        """
        try:
            data = cart_quote_schema.load(request.get_json(silent=True) or {})
        except ValidationError as err:
            return {"error": "Invalid cart", "details": err.messages}, 400

        cart = build_cart(data["items"])
        if isinstance(cart, CheckoutError):
            return cart.to_response()

        subtotal = cart.subtotal
        payload = {
            "items": cart.snapshot(),
            "total_items": cart.total_items,
            "subtotal": float(subtotal),
        }

        settings = load_settings()
        delivery = delivery_from_payload(settings, data)
        fee = None
        if isinstance(delivery, CheckoutError):
            payload["delivery_error"] = {"error": delivery.message, "code": delivery.code}
        else:
            fee = delivery.fee
            payload["delivery"] = delivery.to_dict()

        discount = 0
        code = (data.get("coupon_code") or "").strip()
        if code:
            result = validate_coupon(find_coupon(code), subtotal, utcnow(), code_entered=code)
            if isinstance(result, CouponRejection):
                payload["coupon_error"] = {"error": result.message, "code": result.code}
            else:
                discount = result
        payload["discount"] = float(discount)

        payload["total"] = float(compose_total(subtotal, fee, discount)) if fee is not None else None
        current_app.logger.debug("Cart quoted: %s items, subtotal %s", cart.total_items, subtotal)
        return payload, 200


api.add_resource(CartQuoteResource, "/cart/quote")

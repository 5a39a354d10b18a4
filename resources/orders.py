from flask import Blueprint, request, current_app
from flask_restful import Api, Resource
from marshmallow import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from extensions import db, socketio
from models import Order, OrderStatus
from schemas import OrderSchema, CheckoutSchema, OrderQuerySchema
from utils.auth import staff_required
from utils.checkout import prepare_checkout
from utils.clock import day_bounds_utc, utcnow
from utils.coupons import find_coupon, redeem_coupon
from utils.errors import CheckoutError, CouponExhausted, PersistenceFailure
from utils.messaging import format_order_message, whatsapp_url
from utils.order_status import KITCHEN_STATUSES, advance, cancel, kitchen_view
from resources.cart import build_cart
from socket_events import KITCHEN_ROOM
from resources.delivery import delivery_from_payload
from resources.store import current_store_status, load_settings

# Create blueprint for orders
orders_bp = Blueprint("orders", __name__)
api = Api(orders_bp)

order_schema = OrderSchema()
orders_schema = OrderSchema(many=True)
checkout_schema = CheckoutSchema()
order_query_schema = OrderQuerySchema()


def _emit_status_change(order: Order) -> None:
    payload = {"order_id": order.id, "status": order.status.value}
    socketio.emit("order_status_changed", payload)
    socketio.emit("kitchen_update", payload, to=KITCHEN_ROOM)


def _order_message(order: Order, settings) -> str:
    return format_order_message(
        store_name=settings.store_name,
        order_id=order.id,
        customer_name=order.customer_name,
        customer_address=order.customer_address,
        items=order.items,
        subtotal=order.subtotal,
        delivery_fee=order.delivery_fee,
        discount=order.discount,
        total=order.total,
        payment_method=order.payment_method,
        coupon_code=order.coupon.code if order.coupon else None,
        notes=order.notes,
    )


class OrderList(Resource):
    def post(self):
        """Checkout: price the cart, persist the order and hand it off to WhatsApp."""
        try:
            data = checkout_schema.load(request.get_json(silent=True) or {})
        except ValidationError as err:
            return {"error": "Invalid order", "details": err.messages}, 400

        cart = build_cart(data["items"])
        if isinstance(cart, CheckoutError):
            return cart.to_response()

        settings = load_settings()
        code = (data.get("coupon_code") or "").strip()
        quote = prepare_checkout(
            cart,
            current_store_status(settings),
            delivery_from_payload(settings, data),
            utcnow(),
            coupon=find_coupon(code) if code else None,
            coupon_code=code,
            min_order_value=settings.min_order_value,
        )
        if isinstance(quote, CheckoutError):
            current_app.logger.info("Checkout rejected: %s", quote.code)
            return quote.to_response()

        try:
            order = Order(
                customer_name=data["customer_name"].strip(),
                customer_phone=data["customer_phone"].strip(),
                customer_address=data.get("customer_address"),
                items=cart.snapshot(),
                subtotal=quote.subtotal,
                delivery_fee=quote.delivery_fee,
                discount=quote.discount,
                total=quote.total,
                coupon_id=quote.coupon.id if quote.coupon is not None else None,
                payment_method=data["payment_method"],
                distance_km=quote.distance_km,
                notes=data.get("notes"),
                status=OrderStatus.PENDING,
            )
            db.session.add(order)
            db.session.flush()  # get order.id

            if quote.coupon is not None and not redeem_coupon(quote.coupon.id):
                db.session.rollback()
                return CouponExhausted(max_uses=quote.coupon.max_uses).to_response()

            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            current_app.logger.exception("Failed to persist order for %s", data["customer_phone"])
            return PersistenceFailure().to_response()

        message = _order_message(order, settings)
        socketio.emit("order_created", {"order_id": order.id, "status": order.status.value}, to=KITCHEN_ROOM)
        current_app.logger.info("Order %s placed, total %s", order.id, order.total)

        return {
            "message": "Order created successfully",
            "order": order_schema.dump(order),
            "whatsapp_message": message,
            "whatsapp_url": whatsapp_url(settings.whatsapp_number, message),
        }, 201


class AdminOrderList(Resource):
    @staff_required
    def get(self, current_staff):
        """List orders, newest first, filtered by status, store-local date or customer phone."""
        try:
            filters = order_query_schema.load(request.args)
        except ValidationError as err:
            return {"error": "Invalid filters", "details": err.messages}, 400

        query = Order.query
        if "status" in filters:
            query = query.filter(Order.status == filters["status"])
        if "date" in filters:
            start, end = day_bounds_utc(filters["date"], current_app.config["STORE_TIMEZONE"])
            query = query.filter(Order.created_at >= start, Order.created_at < end)
        if filters.get("customer_phone"):
            query = query.filter(Order.customer_phone == filters["customer_phone"])

        orders = query.order_by(Order.created_at.desc(), Order.id.desc()).all()
        return {"orders": orders_schema.dump(orders)}, 200


class OrderDetail(Resource):
    @staff_required
    def get(self, order_id, current_staff):
        order = db.get_or_404(Order, order_id)
        return {"order": order_schema.dump(order)}, 200


class OrderAdvance(Resource):
    @staff_required
    def post(self, order_id, current_staff):
        order = db.get_or_404(Order, order_id)
        target = advance(order)
        if target is None:
            return {"error": f"Order is already {order.status.value}", "code": "invalid_transition"}, 409

        order.status = target
        db.session.commit()
        current_app.logger.info("Order %s moved to %s by %s", order.id, target.value, current_staff)
        _emit_status_change(order)
        return {"message": "Order updated", "order": order_schema.dump(order)}, 200


class OrderCancel(Resource):
    @staff_required
    def post(self, order_id, current_staff):
        order = db.get_or_404(Order, order_id)
        result = cancel(order)
        if isinstance(result, CheckoutError):
            return result.to_response()

        order.status = result
        db.session.commit()
        current_app.logger.info("Order %s cancelled by %s", order.id, current_staff)
        _emit_status_change(order)
        return {"message": "Order cancelled", "order": order_schema.dump(order)}, 200


class KitchenResource(Resource):
    @staff_required
    def get(self, current_staff):
        orders = Order.query.filter(Order.status.in_(KITCHEN_STATUSES)).all()
        tickets = kitchen_view(orders, utcnow(), current_app.config["KITCHEN_LATE_MINUTES"])
        return {"orders": tickets}, 200


# Register resources
api.add_resource(OrderList, "/orders", endpoint="orders")
api.add_resource(AdminOrderList, "/admin/orders")
api.add_resource(OrderDetail, "/admin/orders/<int:order_id>")
api.add_resource(OrderAdvance, "/admin/orders/<int:order_id>/advance")
api.add_resource(OrderCancel, "/admin/orders/<int:order_id>/cancel")
api.add_resource(KitchenResource, "/admin/kitchen")

from flask import Blueprint, request, current_app
from flask_restful import Api, Resource
from marshmallow import ValidationError
from sqlalchemy.exc import IntegrityError
from extensions import db
from models import Coupon
from schemas import CouponSchema, CouponInputSchema, CouponValidateSchema
from utils.auth import admin_required
from utils.clock import utcnow
from utils.coupons import find_coupon, normalise_code, validate_coupon
from utils.errors import CouponRejection

coupons_bp = Blueprint("coupons", __name__)
api = Api(coupons_bp)

coupon_schema = CouponSchema()
coupons_schema = CouponSchema(many=True)
coupon_input_schema = CouponInputSchema()
coupon_validate_schema = CouponValidateSchema()


class CouponValidateResource(Resource):
    def post(self):
        """Preview a coupon against a subtotal. Never consumes a use."""
        try:
            data = coupon_validate_schema.load(request.get_json(silent=True) or {})
        except ValidationError as err:
            return {"error": "Invalid payload", "details": err.messages}, 400

        coupon = find_coupon(data["code"])
        result = validate_coupon(coupon, data["subtotal"], utcnow(), code_entered=data["code"])
        if isinstance(result, CouponRejection):
            return result.to_response()

        return {
            "code": coupon.code,
            "discount_type": coupon.discount_type.value,
            "discount": float(result),
        }, 200


class CouponList(Resource):
    @admin_required
    def get(self, current_staff):
        coupons = Coupon.query.order_by(Coupon.created_at.desc()).all()
        return {"coupons": coupons_schema.dump(coupons)}, 200

    @admin_required
    def post(self, current_staff):
        try:
            data = coupon_input_schema.load(request.get_json(silent=True) or {})
        except ValidationError as err:
            return {"error": "Invalid coupon", "details": err.messages}, 400

        data["code"] = normalise_code(data["code"])
        coupon = Coupon(**data)
        db.session.add(coupon)
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            return {"error": f"Coupon {data['code']} already exists"}, 409

        current_app.logger.info("Coupon %s created by %s", coupon.code, current_staff)
        return {"message": "Coupon saved", "coupon": coupon_schema.dump(coupon)}, 201


class CouponDetail(Resource):
    @admin_required
    def put(self, coupon_id, current_staff):
        coupon = db.get_or_404(Coupon, coupon_id)
        try:
            data = coupon_input_schema.load(request.get_json(silent=True) or {}, partial=True)
        except ValidationError as err:
            return {"error": "Invalid coupon", "details": err.messages}, 400

        if "code" in data:
            data["code"] = normalise_code(data["code"])
        for field, value in data.items():
            setattr(coupon, field, value)

        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            return {"error": f"Coupon {data['code']} already exists"}, 409
        return {"message": "Coupon saved", "coupon": coupon_schema.dump(coupon)}, 200

    @admin_required
    def delete(self, coupon_id, current_staff):
        coupon = db.get_or_404(Coupon, coupon_id)
        db.session.delete(coupon)
        db.session.commit()
        return {"message": "Coupon deleted"}, 200


api.add_resource(CouponValidateResource, "/coupons/validate")
api.add_resource(CouponList, "/admin/coupons")
api.add_resource(CouponDetail, "/admin/coupons/<int:coupon_id>")

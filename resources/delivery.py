from flask import Blueprint, request, current_app
from flask_restful import Api, Resource
from marshmallow import ValidationError
from extensions import db
from models import DeliveryZone
from schemas import DeliveryZoneSchema, DeliveryZoneInputSchema, LocationInputSchema
from utils.auth import admin_required
from utils.delivery import quote_delivery
from utils.errors import CheckoutError
from utils.geolocation import location_from_payload
from resources.store import load_settings

delivery_bp = Blueprint("delivery", __name__)
api = Api(delivery_bp)

zone_schema = DeliveryZoneSchema()
zones_schema = DeliveryZoneSchema(many=True)
zone_input_schema = DeliveryZoneInputSchema()
location_schema = LocationInputSchema()


def active_zones():
    return DeliveryZone.query.filter_by(active=True).order_by(DeliveryZone.min_distance.asc()).all()


def delivery_from_payload(settings, data):
    """Resolve the delivery fee from a client payload carrying a location outcome.

    In distance mode a reported geolocation failure is returned as-is so the
    customer is asked to retry; it never falls back to a default fee.
    """
    return quote_delivery(settings, active_zones(), location_from_payload(data))


class DeliveryQuoteResource(Resource):
    def post(self):
        try:
            data = location_schema.load(request.get_json(silent=True) or {})
        except ValidationError as err:
            return {"error": "Invalid location", "details": err.messages}, 400

        result = delivery_from_payload(load_settings(), data)
        if isinstance(result, CheckoutError):
            current_app.logger.info("Delivery quote rejected: %s", result.code)
            return result.to_response()

        return {"delivery": result.to_dict()}, 200


class DeliveryZoneList(Resource):
    @admin_required
    def get(self, current_staff):
        zones = DeliveryZone.query.order_by(DeliveryZone.min_distance.asc()).all()
        return {"zones": zones_schema.dump(zones)}, 200

    @admin_required
    def post(self, current_staff):
        try:
            data = zone_input_schema.load(request.get_json(silent=True) or {})
        except ValidationError as err:
            return {"error": "Invalid zone", "details": err.messages}, 400

        zone = DeliveryZone(**data)
        db.session.add(zone)
        db.session.commit()
        return {"message": "Delivery zone saved", "zone": zone_schema.dump(zone)}, 201


class DeliveryZoneDetail(Resource):
    @admin_required
    def put(self, zone_id, current_staff):
        zone = db.get_or_404(DeliveryZone, zone_id)
        try:
            data = zone_input_schema.load(request.get_json(silent=True) or {}, partial=True)
        except ValidationError as err:
            return {"error": "Invalid zone", "details": err.messages}, 400

        low = data.get("min_distance", zone.min_distance)
        high = data.get("max_distance", zone.max_distance)
        if low >= high:
            return {"error": "Invalid zone", "details": {"max_distance": ["max_distance must be greater than min_distance."]}}, 400

        for field, value in data.items():
            setattr(zone, field, value)
        db.session.commit()
        return {"message": "Delivery zone saved", "zone": zone_schema.dump(zone)}, 200

    @admin_required
    def delete(self, zone_id, current_staff):
        zone = db.get_or_404(DeliveryZone, zone_id)
        db.session.delete(zone)
        db.session.commit()
        return {"message": "Delivery zone deleted"}, 200


api.add_resource(DeliveryQuoteResource, "/delivery/quote")
api.add_resource(DeliveryZoneList, "/admin/delivery-zones")
api.add_resource(DeliveryZoneDetail, "/admin/delivery-zones/<int:zone_id>")

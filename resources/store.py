from flask import Blueprint, request, current_app
from flask_restful import Api, Resource
from marshmallow import ValidationError
import requests
from extensions import db, socketio
from models import StoreSettings
from schemas import StoreSettingsSchema, StoreSettingsInputSchema, StoreOpenSchema, GeocodeSchema
from utils.auth import admin_required
from utils.clock import store_now
from utils.geocoding import geocode_address
from utils.store_status import evaluate_store_status

store_bp = Blueprint("store", __name__)
api = Api(store_bp)

settings_schema = StoreSettingsSchema()
settings_input_schema = StoreSettingsInputSchema()
store_open_schema = StoreOpenSchema()
geocode_schema = GeocodeSchema()


def load_settings():
    return StoreSettings.current()


def current_store_status(settings=None):
    settings = settings or load_settings()
    now = store_now(current_app.config["STORE_TIMEZONE"])
    return evaluate_store_status(settings.is_open, settings.opening_hours, now)


def notify_settings_changed(settings):
    """Push the fresh status to every connected storefront and admin header."""
    socketio.emit("store_settings_changed", {
        "settings": settings_schema.dump(settings),
        "status": current_store_status(settings).to_dict(),
    })


class StoreStatusResource(Resource):
    def get(self):
        settings = load_settings()
        status = current_store_status(settings)
        return {
            "store_name": settings.store_name,
            "status": status.to_dict(),
            "schedule": settings.opening_hours,
        }, 200


class StoreSettingsResource(Resource):
    @admin_required
    def get(self, current_staff):
        return {"settings": settings_schema.dump(load_settings())}, 200

    @admin_required
    def put(self, current_staff):
        try:
            data = settings_input_schema.load(request.get_json(silent=True) or {}, partial=True)
        except ValidationError as err:
            return {"error": "Invalid settings", "details": err.messages}, 400

        settings = load_settings()
        for field, value in data.items():
            setattr(settings, field, value)

        db.session.commit()
        current_app.logger.info("Store settings updated by %s: %s", current_staff, sorted(data))
        notify_settings_changed(settings)
        return {"message": "Settings saved", "settings": settings_schema.dump(settings)}, 200


class StoreOpenResource(Resource):
    @admin_required
    def put(self, current_staff):
        """Manual override: closing here wins over the weekly schedule."""
        try:
            data = store_open_schema.load(request.get_json(silent=True) or {})
        except ValidationError as err:
            return {"error": "Invalid payload", "details": err.messages}, 400

        settings = load_settings()
        settings.is_open = data["is_open"]
        db.session.commit()

        current_app.logger.info("Store %s by %s", "opened" if settings.is_open else "closed", current_staff)
        notify_settings_changed(settings)
        message = "Store opened" if settings.is_open else "Store temporarily closed"
        return {"message": message, "status": current_store_status(settings).to_dict()}, 200


class StoreGeocodeResource(Resource):
    @admin_required
    def post(self, current_staff):
        """Look up the store address and save its coordinates."""
        try:
            data = geocode_schema.load(request.get_json(silent=True) or {})
        except ValidationError as err:
            return {"error": "Invalid payload", "details": err.messages}, 400

        try:
            coordinates = geocode_address(data["address"])
        except requests.RequestException as exc:
            current_app.logger.error("Geocoding failed for '%s': %s", data["address"], exc)
            return {"error": "Geocoding service is unavailable, try again later"}, 502

        if coordinates is None:
            return {"error": "Address not found"}, 404

        settings = load_settings()
        settings.store_address = data["address"]
        settings.store_lat, settings.store_lng = coordinates
        db.session.commit()

        notify_settings_changed(settings)
        return {
            "message": "Store location updated",
            "store_lat": settings.store_lat,
            "store_lng": settings.store_lng,
        }, 200


api.add_resource(StoreStatusResource, "/store/status")
api.add_resource(StoreSettingsResource, "/admin/settings")
api.add_resource(StoreOpenResource, "/admin/store/open")
api.add_resource(StoreGeocodeResource, "/admin/store/geocode")

from flask import Flask
from flask_migrate import Migrate
from decimal import Decimal
import json
from config import Config
from extensions import db, ma, jwt, socketio
import socket_events

# Custom JSON encoder for Decimal types
class DecimalEncoder(json.JSONEncoder):
    def default(self, obj):
        if isinstance(obj, Decimal):
            return float(obj)
        return super(DecimalEncoder, self).default(obj)

def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)
    app.logger.setLevel(app.config["LOG_LEVEL"])

    # Flask-RESTful serialises resource return values with these settings
    app.config["RESTFUL_JSON"] = {"cls": DecimalEncoder}

    # Initialize extensions
    db.init_app(app)
    ma.init_app(app)
    jwt.init_app(app)
    socketio.init_app(app, cors_allowed_origins="*")
    Migrate(app, db)

    # Import resources here (after extensions init)
    from resources.menu import menu_bp
    from resources.catalog import catalog_bp
    from resources.cart import cart_bp
    from resources.delivery import delivery_bp
    from resources.coupons import coupons_bp
    from resources.store import store_bp
    from resources.orders import orders_bp
    from resources.finance import finance_bp
    from resources.inventory import inventory_bp

    # Register blueprints
    for blueprint in (
        menu_bp, catalog_bp, cart_bp, delivery_bp, coupons_bp, store_bp, orders_bp, finance_bp, inventory_bp,
    ):
        app.register_blueprint(blueprint, url_prefix="/api")

    @app.route("/")
    def health():
        return {"status": "ok", "service": "storefront-backend"}

    return app

if __name__ == "__main__":
    app = create_app()
    with app.app_context():
        db.create_all()
    socketio.run(app, host="0.0.0.0", port=5000, debug=True)

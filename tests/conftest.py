from datetime import datetime
from decimal import Decimal
from types import SimpleNamespace

import pytest
from flask_jwt_extended import create_access_token

from app import create_app
from config import TestConfig
from extensions import db
from models import (
    Category,
    Product,
    OptionGroup,
    Option,
    ProductOptionGroup,
    ProductIngredient,
    DeliveryZone,
    StoreSettings,
    DeliveryMode,
)

STORE_LAT, STORE_LNG = -23.5614, -46.6559

EVERY_EVENING = {day: {"open": "18:00", "close": "23:00"} for day in ("mon", "tue", "wed", "thu", "fri", "sat", "sun")}


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


def _auth_headers(role):
    token = create_access_token(identity=f"{role}@storefront.test", additional_claims={"role": role})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers(app):
    return _auth_headers("admin")


@pytest.fixture
def staff_headers(app):
    return _auth_headers("staff")


@pytest.fixture
def store_time(monkeypatch):
    """Pin the store clock; defaults to a Friday at 20:00."""
    def pin(value=datetime(2024, 1, 5, 20, 0)):
        monkeypatch.setattr("resources.store.store_now", lambda tz_name: value)
        return value

    pin()
    return pin


@pytest.fixture
def settings(app):
    settings = StoreSettings(
        store_name="Burger Test",
        whatsapp_number="+55 (11) 99999-0000",
        is_open=True,
        opening_hours=EVERY_EVENING,
        store_lat=STORE_LAT,
        store_lng=STORE_LNG,
        delivery_mode=DeliveryMode.DISTANCE,
    )
    db.session.add(settings)
    db.session.add_all([
        DeliveryZone(min_distance=0, max_distance=5, fee=Decimal("8.00")),
        DeliveryZone(min_distance=5, max_distance=10, fee=Decimal("12.00")),
    ])
    db.session.commit()
    return settings


@pytest.fixture
def catalog(app):
    burgers = Category(name="Burgers", display_order=0)
    drinks = Category(name="Bebidas", display_order=1)

    doneness = OptionGroup(name="Ponto", min_selections=1, max_selections=1, is_required=True)
    doneness.options = [Option(name="Ao ponto", price=0), Option(name="Bem passado", price=0, display_order=1)]
    extras = OptionGroup(name="Adicionais", min_selections=0, max_selections=2, display_order=1)
    extras.options = [
        Option(name="Bacon", price=Decimal("5.00")),
        Option(name="Ovo", price=Decimal("3.00"), display_order=1),
        Option(name="Cheddar", price=Decimal("4.00"), display_order=2),
    ]

    burger = Product(category=burgers, name="X-Burger", price=Decimal("45.00"))
    burger.option_group_links = [
        ProductOptionGroup(option_group=doneness, display_order=0),
        ProductOptionGroup(option_group=extras, display_order=1),
    ]
    burger.ingredients = [ProductIngredient(name="Cebola"), ProductIngredient(name="Pão", removable=False)]
    soda = Product(category=drinks, name="Refrigerante", price=Decimal("6.50"))
    hidden = Product(category=drinks, name="Suco", price=Decimal("9.00"), active=False)

    db.session.add_all([burgers, drinks, doneness, extras, burger, soda, hidden])
    db.session.commit()

    return SimpleNamespace(
        burger=burger,
        soda=soda,
        hidden=hidden,
        doneness=doneness,
        extras=extras,
        medium=doneness.options[0],
        well_done=doneness.options[1],
        bacon=extras.options[0],
        egg=extras.options[1],
        cheddar=extras.options[2],
        onion=burger.ingredients[0],
        bread=burger.ingredients[1],
    )

from datetime import datetime, timedelta, UTC
from decimal import Decimal
import random
from faker import Faker
from extensions import db
from models import (
    Category,
    Product,
    OptionGroup,
    Option,
    ProductOptionGroup,
    ProductIngredient,
    Coupon,
    DeliveryZone,
    StoreSettings,
    Order,
    OrderStatus,
    PaymentMethod,
    DiscountType,
    DeliveryMode,
    Expense,
    InventoryItem,
)
from app import create_app
from utils.cart import Cart
from utils.checkout import compose_total
from utils.options import build_line_item

fake = Faker("pt_BR")
app = create_app()

OPENING_HOURS = {
    "mon": None,
    "tue": {"open": "18:00", "close": "23:00"},
    "wed": {"open": "18:00", "close": "23:00"},
    "thu": {"open": "18:00", "close": "23:00"},
    "fri": {"open": "18:00", "close": "00:00"},
    "sat": {"open": "18:00", "close": "00:00"},
    "sun": {"open": "18:00", "close": "23:00"},
}

MENU = {
    "Burgers": [
        ("Classic Burger", "Pão, blend 150g, queijo e salada", "28.90", ["Alface", "Tomate", "Cebola"]),
        ("Bacon Burger", "Pão, blend 150g, cheddar e bacon", "34.90", ["Cebola caramelizada", "Picles"]),
        ("Smash Duplo", "Dois smash de 90g com cheddar", "32.00", ["Picles"]),
    ],
    "Porções": [
        ("Batata Frita", "Porção de 400g", "22.00", []),
        ("Onion Rings", "Porção de 300g", "24.50", []),
    ],
    "Bebidas": [
        ("Refrigerante Lata", "350ml", "6.50", []),
        ("Suco Natural", "500ml", "9.00", []),
    ],
}


def _seed_menu():
    doneness = OptionGroup(name="Ponto da carne", min_selections=1, max_selections=1, is_required=True)
    doneness.options = [
        Option(name="Mal passado", price=0, display_order=0),
        Option(name="Ao ponto", price=0, display_order=1),
        Option(name="Bem passado", price=0, display_order=2),
    ]
    extras = OptionGroup(name="Adicionais", min_selections=0, max_selections=3, display_order=1)
    extras.options = [
        Option(name="Bacon extra", price=Decimal("5.00"), display_order=0),
        Option(name="Cheddar extra", price=Decimal("4.00"), display_order=1),
        Option(name="Ovo", price=Decimal("3.00"), display_order=2),
    ]
    db.session.add_all([doneness, extras])

    products = []
    for category_order, (category_name, items) in enumerate(MENU.items()):
        category = Category(name=category_name, display_order=category_order)
        db.session.add(category)
        for product_order, (name, description, price, ingredients) in enumerate(items):
            product = Product(
                category=category,
                name=name,
                description=description,
                price=Decimal(price),
                display_order=product_order,
            )
            product.ingredients = [ProductIngredient(name=ingredient) for ingredient in ingredients]
            if category_name == "Burgers":
                product.option_group_links = [
                    ProductOptionGroup(option_group=doneness, display_order=0),
                    ProductOptionGroup(option_group=extras, display_order=1),
                ]
            db.session.add(product)
            products.append(product)

    db.session.flush()
    return products


def _random_line(product):
    option_ids = []
    for group in product.option_groups:
        options = group.active_options
        if group.is_required:
            option_ids.append(random.choice(options).id)
        elif options and random.random() < 0.4:
            option_ids.append(random.choice(options).id)
    return build_line_item(
        product,
        product.option_groups,
        option_ids,
        quantity=random.randint(1, 3),
        ingredients=product.ingredients,
    )


def seed_data(num_orders=25):
    with app.app_context():
        confirm = input("This will DROP ALL TABLES. Type 'yes' to continue: ")
        if confirm.lower() != "yes":
            print("Aborted.")
            return

        db.drop_all()
        db.create_all()

        db.session.add(StoreSettings(
            store_name="Hamburgueria Demo",
            whatsapp_number="5511999999999",
            is_open=True,
            opening_hours=OPENING_HOURS,
            store_address="Av. Paulista, 1000 - São Paulo",
            store_lat=-23.5614,
            store_lng=-46.6559,
            delivery_mode=DeliveryMode.DISTANCE,
            min_order_value=Decimal("20.00"),
        ))
        db.session.add_all([
            DeliveryZone(min_distance=0, max_distance=3, fee=Decimal("5.00")),
            DeliveryZone(min_distance=3, max_distance=6, fee=Decimal("8.00")),
            DeliveryZone(min_distance=6, max_distance=10, fee=Decimal("12.00")),
        ])
        welcome = Coupon(code="BEMVINDO10", discount_type=DiscountType.PERCENTAGE, discount_value=10, max_uses=100)
        db.session.add_all([
            welcome,
            Coupon(code="FRETE5", discount_type=DiscountType.FIXED, discount_value=5, min_order_value=40),
            Coupon(
                code="VERAO",
                discount_type=DiscountType.PERCENTAGE,
                discount_value=15,
                expires_at=datetime.now(UTC) - timedelta(days=30),
            ),
        ])
        db.session.add_all([
            InventoryItem(name="Pão brioche", unit="un", quantity=120, min_quantity=40, last_cost=Decimal("1.20")),
            InventoryItem(name="Blend bovino", unit="kg", quantity=15, min_quantity=5, last_cost=Decimal("42.00")),
            InventoryItem(name="Cheddar", unit="kg", quantity=4, min_quantity=2, last_cost=Decimal("55.00")),
        ])

        products = _seed_menu()
        db.session.flush()

        print(f"Seeding {num_orders} fake orders...")

        customers = [(fake.name(), fake.msisdn()[:13], fake.street_address()) for _ in range(8)]
        for _ in range(num_orders):
            cart = Cart()
            for product in random.sample(products, random.randint(1, 3)):
                cart.add(_random_line(product))

            name, phone, address = random.choice(customers)
            delivery_fee = Decimal(random.choice(["5.00", "8.00", "12.00"]))
            use_coupon = random.random() < 0.2
            discount = (cart.subtotal * Decimal("0.10")).quantize(Decimal("0.01")) if use_coupon else Decimal("0")
            created_at = datetime.now(UTC) - timedelta(days=random.randint(0, 14), minutes=random.randint(0, 300))

            db.session.add(Order(
                customer_name=name,
                customer_phone=phone,
                customer_address=address,
                items=cart.snapshot(),
                subtotal=cart.subtotal,
                delivery_fee=delivery_fee,
                discount=discount,
                total=compose_total(cart.subtotal, delivery_fee, discount),
                coupon=welcome if use_coupon else None,
                payment_method=random.choice(list(PaymentMethod)),
                distance_km=round(random.uniform(0.5, 9.5), 2),
                status=random.choice(list(OrderStatus)),
                created_at=created_at,
            ))
            if use_coupon:
                welcome.current_uses += 1

        for _ in range(10):
            db.session.add(Expense(
                description=fake.sentence(nb_words=3),
                amount=Decimal(str(round(random.uniform(20, 400), 2))),
                category=random.choice(["ingredients", "packaging", "staff", "utilities"]),
                date=(datetime.now(UTC) - timedelta(days=random.randint(0, 14))).date(),
            ))

        db.session.commit()
        print(f"Seeded {num_orders} orders successfully!")

if __name__ == "__main__":
    seed_data()

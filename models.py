import enum
from datetime import datetime, UTC
from sqlalchemy.orm import validates
from extensions import db


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class OrderStatus(enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY = "ready"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentMethod(enum.Enum):
    PIX = "pix"
    CARD = "card"
    CASH = "cash"


class DiscountType(enum.Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class DeliveryMode(enum.Enum):
    FIXED = "fixed"
    DISTANCE = "distance"


class InventoryTransactionType(enum.Enum):
    PURCHASE = "purchase"
    USAGE = "usage"
    LOSS = "loss"
    ADJUSTMENT = "adjustment"


class Category(db.Model):
    __tablename__ = "categories"
    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    name = db.Column(db.String(100), nullable=False)
    icon = db.Column(db.String(50))
    display_order = db.Column(db.Integer, nullable=False, default=0)
    active = db.Column(db.Boolean, nullable=False, default=True)

    products = db.relationship("Product", back_populates="category", lazy=True)


class Product(db.Model):
    __tablename__ = "products"
    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    category_id = db.Column(db.Integer, db.ForeignKey("categories.id"), nullable=True)
    name = db.Column(db.String(150), nullable=False)
    description = db.Column(db.Text)
    image_url = db.Column(db.String(255))
    price = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    display_order = db.Column(db.Integer, nullable=False, default=0)
    active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(UTC))

    category = db.relationship("Category", back_populates="products")
    option_group_links = db.relationship(
        "ProductOptionGroup",
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="ProductOptionGroup.display_order",
    )
    ingredients = db.relationship("ProductIngredient", back_populates="product", cascade="all, delete-orphan")

    @property
    def option_groups(self):
        """Active option groups attached to this product, in display order."""
        return [link.option_group for link in self.option_group_links if link.option_group.active]


class OptionGroup(db.Model):
    __tablename__ = "option_groups"
    __table_args__ = (
        db.CheckConstraint("min_selections >= 0 AND min_selections <= max_selections", name="ck_option_groups_range"),
        db.CheckConstraint("NOT is_required OR min_selections >= 1", name="ck_option_groups_required_min"),
    )
    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    name = db.Column(db.String(100), nullable=False)
    min_selections = db.Column(db.Integer, nullable=False, default=0)
    max_selections = db.Column(db.Integer, nullable=False, default=1)
    is_required = db.Column(db.Boolean, nullable=False, default=False)
    display_order = db.Column(db.Integer, nullable=False, default=0)
    active = db.Column(db.Boolean, nullable=False, default=True)

    options = db.relationship(
        "Option",
        back_populates="group",
        cascade="all, delete-orphan",
        order_by="Option.display_order",
    )

    @property
    def active_options(self):
        return [option for option in self.options if option.active]


class Option(db.Model):
    __tablename__ = "options"
    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    option_group_id = db.Column(db.Integer, db.ForeignKey("option_groups.id"), nullable=False)
    name = db.Column(db.String(100), nullable=False)
    price = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    display_order = db.Column(db.Integer, nullable=False, default=0)
    active = db.Column(db.Boolean, nullable=False, default=True)

    group = db.relationship("OptionGroup", back_populates="options")


class ProductOptionGroup(db.Model):
    __tablename__ = "product_option_groups"
    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)
    option_group_id = db.Column(db.Integer, db.ForeignKey("option_groups.id"), nullable=False)
    display_order = db.Column(db.Integer, nullable=False, default=0)

    product = db.relationship("Product", back_populates="option_group_links")
    option_group = db.relationship("OptionGroup")


class ProductIngredient(db.Model):
    __tablename__ = "product_ingredients"
    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)
    name = db.Column(db.String(100), nullable=False)
    removable = db.Column(db.Boolean, nullable=False, default=True)

    product = db.relationship("Product", back_populates="ingredients")


class Coupon(db.Model):
    __tablename__ = "coupons"
    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    code = db.Column(db.String(50), unique=True, nullable=False)
    discount_type = db.Column(
        db.Enum(DiscountType, name="discount_type", values_callable=_enum_values),
        nullable=False,
        default=DiscountType.PERCENTAGE,
    )
    discount_value = db.Column(db.Numeric(10, 2), nullable=False)
    min_order_value = db.Column(db.Numeric(10, 2))
    max_uses = db.Column(db.Integer)
    current_uses = db.Column(db.Integer, nullable=False, default=0)
    expires_at = db.Column(db.DateTime)
    active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(UTC))

    @validates("code")
    def _uppercase_code(self, key, value):
        return value.strip().upper() if value else value


class DeliveryZone(db.Model):
    __tablename__ = "delivery_zones"
    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    min_distance = db.Column(db.Float, nullable=False, default=0)
    max_distance = db.Column(db.Float, nullable=False)
    fee = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    active = db.Column(db.Boolean, nullable=False, default=True)
    updated_at = db.Column(db.DateTime, default=lambda: datetime.now(UTC), onupdate=lambda: datetime.now(UTC))


class StoreSettings(db.Model):
    __tablename__ = "store_settings"
    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    store_name = db.Column(db.String(150), nullable=False, default="Storefront")
    whatsapp_number = db.Column(db.String(20), nullable=False, default="")
    is_open = db.Column(db.Boolean, nullable=False, default=True)
    opening_hours = db.Column(db.JSON)
    store_address = db.Column(db.String(255))
    store_lat = db.Column(db.Float)
    store_lng = db.Column(db.Float)
    delivery_mode = db.Column(
        db.Enum(DeliveryMode, name="delivery_mode", values_callable=_enum_values),
        nullable=False,
        default=DeliveryMode.DISTANCE,
    )
    delivery_fee = db.Column(db.Numeric(10, 2))
    min_order_value = db.Column(db.Numeric(10, 2))
    updated_at = db.Column(db.DateTime, default=lambda: datetime.now(UTC), onupdate=lambda: datetime.now(UTC))

    @classmethod
    def current(cls):
        """Return the singleton settings row, creating it on first access."""
        settings = cls.query.order_by(cls.id).first()
        if settings is None:
            settings = cls()
            db.session.add(settings)
            db.session.commit()
        return settings


class Order(db.Model):
    __tablename__ = "orders"
    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    customer_name = db.Column(db.String(150), nullable=False)
    customer_phone = db.Column(db.String(20), nullable=False)
    customer_address = db.Column(db.String(255))
    items = db.Column(db.JSON, nullable=False)
    subtotal = db.Column(db.Numeric(10, 2), nullable=False)
    delivery_fee = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    discount = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    total = db.Column(db.Numeric(10, 2), nullable=False)
    coupon_id = db.Column(db.Integer, db.ForeignKey("coupons.id"), nullable=True)
    payment_method = db.Column(
        db.Enum(PaymentMethod, name="payment_method", values_callable=_enum_values),
        nullable=False,
    )
    distance_km = db.Column(db.Float)
    notes = db.Column(db.Text)
    status = db.Column(
        db.Enum(OrderStatus, name="order_status", values_callable=_enum_values),
        nullable=False,
        default=OrderStatus.PENDING,
    )
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(UTC))
    updated_at = db.Column(db.DateTime, default=lambda: datetime.now(UTC), onupdate=lambda: datetime.now(UTC))

    coupon = db.relationship("Coupon")


class Expense(db.Model):
    __tablename__ = "expenses"
    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    description = db.Column(db.String(255), nullable=False)
    amount = db.Column(db.Numeric(10, 2), nullable=False)
    category = db.Column(db.String(50), nullable=False, default="other")
    date = db.Column(db.Date, nullable=False)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(UTC))


class InventoryItem(db.Model):
    __tablename__ = "inventory_items"
    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    name = db.Column(db.String(100), nullable=False)
    unit = db.Column(db.String(20), nullable=False, default="un")
    quantity = db.Column(db.Numeric(10, 3), nullable=False, default=0)
    min_quantity = db.Column(db.Numeric(10, 3), nullable=False, default=0)
    last_cost = db.Column(db.Numeric(10, 2))

    transactions = db.relationship("InventoryTransaction", back_populates="item", cascade="all, delete-orphan")


class InventoryTransaction(db.Model):
    __tablename__ = "inventory_transactions"
    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    item_id = db.Column(db.Integer, db.ForeignKey("inventory_items.id"), nullable=False)
    type = db.Column(
        db.Enum(InventoryTransactionType, name="inventory_transaction_type", values_callable=_enum_values),
        nullable=False,
    )
    quantity = db.Column(db.Numeric(10, 3), nullable=False)
    cost = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    notes = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(UTC))

    item = db.relationship("InventoryItem", back_populates="transactions")

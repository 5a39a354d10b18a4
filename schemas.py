from extensions import ma
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
    Expense,
    InventoryItem,
    InventoryTransaction,
    OrderStatus,
    PaymentMethod,
    DiscountType,
    DeliveryMode,
    InventoryTransactionType,
)
from marshmallow import fields, post_load, validate, validates, validates_schema, ValidationError
from utils.cart import NOTES_MAX_LENGTH
from utils.clock import to_naive_utc
from utils.store_status import validate_schedule


# --- Dump schemas -----------------------------------------------------------

class OptionSchema(ma.SQLAlchemyAutoSchema):
    # Explicitly define Decimal fields as Float for JSON serialization
    price = fields.Float()

    class Meta:
        model = Option
        include_fk = True
        load_instance = True


class OptionGroupSchema(ma.SQLAlchemyAutoSchema):
    options = fields.Method("get_options")

    class Meta:
        model = OptionGroup
        load_instance = True

    def get_options(self, group):
        return OptionSchema(many=True).dump(group.active_options)


class AdminOptionGroupSchema(ma.SQLAlchemyAutoSchema):
    # Back office sees inactive options too
    options = ma.Nested(OptionSchema, many=True)

    class Meta:
        model = OptionGroup
        load_instance = True


class ProductOptionGroupSchema(ma.SQLAlchemyAutoSchema):
    option_group = ma.Nested(OptionGroupSchema, only=("id", "name", "min_selections", "max_selections", "is_required", "active"))

    class Meta:
        model = ProductOptionGroup
        include_fk = True
        load_instance = True


class IngredientSchema(ma.SQLAlchemyAutoSchema):
    class Meta:
        model = ProductIngredient
        include_fk = True
        load_instance = True


class ProductSchema(ma.SQLAlchemyAutoSchema):
    price = fields.Float()

    class Meta:
        model = Product
        include_fk = True
        load_instance = True
        exclude = ("created_at",)


class ProductDetailSchema(ProductSchema):
    option_groups = ma.Nested(OptionGroupSchema, many=True)
    ingredients = ma.Nested(IngredientSchema, many=True)


class CategorySchema(ma.SQLAlchemyAutoSchema):
    products = fields.Method("get_products")

    class Meta:
        model = Category
        load_instance = True

    def get_products(self, category):
        active = sorted((p for p in category.products if p.active), key=lambda p: (p.display_order, p.id))
        return ProductSchema(many=True).dump(active)


class CouponSchema(ma.SQLAlchemyAutoSchema):
    discount_type = fields.Enum(DiscountType, by_value=True)
    discount_value = fields.Float()
    min_order_value = fields.Float(allow_none=True)

    class Meta:
        model = Coupon
        load_instance = True


class DeliveryZoneSchema(ma.SQLAlchemyAutoSchema):
    fee = fields.Float()

    class Meta:
        model = DeliveryZone
        load_instance = True


class StoreSettingsSchema(ma.SQLAlchemyAutoSchema):
    delivery_mode = fields.Enum(DeliveryMode, by_value=True)
    delivery_fee = fields.Float(allow_none=True)
    min_order_value = fields.Float(allow_none=True)

    class Meta:
        model = StoreSettings
        load_instance = True


class OrderSchema(ma.SQLAlchemyAutoSchema):
    items = fields.Raw()
    # Explicitly define Decimal fields as Float for JSON serialization
    subtotal = fields.Float()
    delivery_fee = fields.Float()
    discount = fields.Float()
    total = fields.Float()
    status = fields.Enum(OrderStatus, by_value=True)
    payment_method = fields.Enum(PaymentMethod, by_value=True)

    class Meta:
        model = Order
        include_fk = True
        load_instance = True


class ExpenseSchema(ma.SQLAlchemyAutoSchema):
    amount = fields.Float()

    class Meta:
        model = Expense
        load_instance = True


class InventoryItemSchema(ma.SQLAlchemyAutoSchema):
    quantity = fields.Float()
    min_quantity = fields.Float()
    last_cost = fields.Float(allow_none=True)

    class Meta:
        model = InventoryItem
        load_instance = True


class InventoryTransactionSchema(ma.SQLAlchemyAutoSchema):
    type = fields.Enum(InventoryTransactionType, by_value=True)
    quantity = fields.Float()
    cost = fields.Float()
    item_name = fields.Function(lambda t: t.item.name if t.item else None)

    class Meta:
        model = InventoryTransaction
        include_fk = True
        load_instance = True


# --- Request payloads -------------------------------------------------------

class LineItemInputSchema(ma.Schema):
    product_id = fields.Integer(required=True)
    quantity = fields.Integer(load_default=1, validate=validate.Range(min=1))
    option_ids = fields.List(fields.Integer(), load_default=list)
    removed_ingredients = fields.List(fields.Integer(), load_default=list)
    notes = fields.String(load_default="", allow_none=True, validate=validate.Length(max=NOTES_MAX_LENGTH))


class LocationInputSchema(ma.Schema):
    lat = fields.Float(allow_none=True)
    lng = fields.Float(allow_none=True)
    geolocation_error = fields.String(
        allow_none=True, validate=validate.OneOf(["denied", "unavailable", "timeout"])
    )


class CartQuoteSchema(LocationInputSchema):
    items = fields.List(fields.Nested(LineItemInputSchema), load_default=list)
    coupon_code = fields.String(load_default="", allow_none=True)


class CheckoutSchema(CartQuoteSchema):
    customer_name = fields.String(required=True, validate=validate.Length(min=1, max=150))
    customer_phone = fields.String(required=True, validate=validate.Length(min=8, max=20))
    customer_address = fields.String(allow_none=True, validate=validate.Length(max=255))
    payment_method = fields.Enum(PaymentMethod, by_value=True, required=True)
    notes = fields.String(allow_none=True, validate=validate.Length(max=500))


class CouponValidateSchema(ma.Schema):
    code = fields.String(required=True, validate=validate.Length(min=1))
    subtotal = fields.Decimal(required=True, validate=validate.Range(min=0))


class CouponInputSchema(ma.Schema):
    code = fields.String(required=True, validate=validate.Length(min=1, max=50))
    discount_type = fields.Enum(DiscountType, by_value=True, required=True)
    discount_value = fields.Decimal(required=True, validate=validate.Range(min=0, min_inclusive=False))
    min_order_value = fields.Decimal(allow_none=True, validate=validate.Range(min=0))
    max_uses = fields.Integer(allow_none=True, validate=validate.Range(min=1))
    expires_at = fields.DateTime(allow_none=True)
    active = fields.Boolean()

    @validates_schema
    def _percentage_cap(self, data, **kwargs):
        if data.get("discount_type") is DiscountType.PERCENTAGE and data.get("discount_value", 0) > 100:
            raise ValidationError("Percentage discount cannot exceed 100.", "discount_value")

    @post_load
    def _expiry_in_utc(self, data, **kwargs):
        if data.get("expires_at") is not None:
            data["expires_at"] = to_naive_utc(data["expires_at"])
        return data


class DeliveryZoneInputSchema(ma.Schema):
    min_distance = fields.Float(required=True, validate=validate.Range(min=0))
    max_distance = fields.Float(required=True, validate=validate.Range(min=0, min_inclusive=False))
    fee = fields.Decimal(required=True, validate=validate.Range(min=0))
    active = fields.Boolean()

    @validates_schema
    def _range_order(self, data, partial=None, **kwargs):
        low, high = data.get("min_distance"), data.get("max_distance")
        if low is not None and high is not None and low >= high:
            raise ValidationError("max_distance must be greater than min_distance.", "max_distance")


class StoreSettingsInputSchema(ma.Schema):
    store_name = fields.String(validate=validate.Length(min=1, max=150))
    whatsapp_number = fields.String(validate=validate.Length(max=20))
    is_open = fields.Boolean()
    opening_hours = fields.Dict(allow_none=True)
    store_address = fields.String(allow_none=True, validate=validate.Length(max=255))
    store_lat = fields.Float(allow_none=True, validate=validate.Range(min=-90, max=90))
    store_lng = fields.Float(allow_none=True, validate=validate.Range(min=-180, max=180))
    delivery_mode = fields.Enum(DeliveryMode, by_value=True)
    delivery_fee = fields.Decimal(allow_none=True, validate=validate.Range(min=0))
    min_order_value = fields.Decimal(allow_none=True, validate=validate.Range(min=0))

    @validates("opening_hours")
    def _schedule(self, value, **kwargs):
        if value:
            errors = validate_schedule(value)
            if errors:
                raise ValidationError(errors)


class StoreOpenSchema(ma.Schema):
    is_open = fields.Boolean(required=True)


class GeocodeSchema(ma.Schema):
    address = fields.String(required=True, validate=validate.Length(min=3, max=255))


class OrderQuerySchema(ma.Schema):
    status = fields.Enum(OrderStatus, by_value=True)
    date = fields.Date()
    customer_phone = fields.String()


class ClosingQuerySchema(ma.Schema):
    date = fields.Date(required=True)


class ExpenseInputSchema(ma.Schema):
    description = fields.String(required=True, validate=validate.Length(min=1, max=255))
    amount = fields.Decimal(required=True, validate=validate.Range(min=0, min_inclusive=False))
    category = fields.String(load_default="other", validate=validate.Length(min=1, max=50))
    date = fields.Date(required=True)


class InventoryItemInputSchema(ma.Schema):
    name = fields.String(required=True, validate=validate.Length(min=1, max=100))
    unit = fields.String(load_default="un", validate=validate.Length(min=1, max=20))
    quantity = fields.Decimal(load_default=0)
    min_quantity = fields.Decimal(load_default=0, validate=validate.Range(min=0))


class InventoryTransactionInputSchema(ma.Schema):
    item_id = fields.Integer(required=True)
    type = fields.Enum(InventoryTransactionType, by_value=True, required=True)
    quantity = fields.Decimal(required=True)
    cost = fields.Decimal(load_default=0, validate=validate.Range(min=0))
    notes = fields.String(allow_none=True)

    @validates_schema
    def _signed_quantity(self, data, **kwargs):
        # Only adjustments may carry a negative correction.
        if data.get("type") is not InventoryTransactionType.ADJUSTMENT and data.get("quantity", 0) <= 0:
            raise ValidationError("quantity must be positive.", "quantity")


def option_group_range_errors(min_selections, max_selections, is_required):
    """Field errors for an option group's selection limits, empty when valid."""
    errors = {}
    if min_selections > max_selections:
        errors["max_selections"] = ["max_selections must not be lower than min_selections."]
    if is_required and min_selections < 1:
        errors["min_selections"] = ["A required group needs min_selections of at least 1."]
    return errors


class CategoryInputSchema(ma.Schema):
    name = fields.String(required=True, validate=validate.Length(min=1, max=100))
    icon = fields.String(allow_none=True, validate=validate.Length(max=50))
    display_order = fields.Integer(validate=validate.Range(min=0))
    active = fields.Boolean()


class IngredientInputSchema(ma.Schema):
    name = fields.String(required=True, validate=validate.Length(min=1, max=100))
    removable = fields.Boolean(load_default=True)


class ProductInputSchema(ma.Schema):
    name = fields.String(required=True, validate=validate.Length(min=1, max=150))
    description = fields.String(allow_none=True)
    image_url = fields.String(allow_none=True, validate=validate.Length(max=255))
    price = fields.Decimal(required=True, validate=validate.Range(min=0))
    category_id = fields.Integer(allow_none=True)
    display_order = fields.Integer(validate=validate.Range(min=0))
    active = fields.Boolean()
    ingredients = fields.List(fields.Nested(IngredientInputSchema))


class OptionGroupInputSchema(ma.Schema):
    name = fields.String(required=True, validate=validate.Length(min=1, max=100))
    min_selections = fields.Integer(load_default=0, validate=validate.Range(min=0))
    max_selections = fields.Integer(load_default=1, validate=validate.Range(min=1))
    is_required = fields.Boolean(load_default=False)
    display_order = fields.Integer(validate=validate.Range(min=0))
    active = fields.Boolean()

    @validates_schema
    def _selection_limits(self, data, partial=None, **kwargs):
        # Partial updates are checked against the stored group by the resource.
        if partial:
            return
        errors = option_group_range_errors(data["min_selections"], data["max_selections"], data["is_required"])
        if errors:
            raise ValidationError(errors)


class OptionInputSchema(ma.Schema):
    name = fields.String(required=True, validate=validate.Length(min=1, max=100))
    price = fields.Decimal(load_default=0, validate=validate.Range(min=0))
    display_order = fields.Integer(validate=validate.Range(min=0))
    active = fields.Boolean()


class ProductOptionGroupInputSchema(ma.Schema):
    option_group_id = fields.Integer(required=True)
    display_order = fields.Integer(validate=validate.Range(min=0))

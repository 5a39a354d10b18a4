from flask import Blueprint, request
from flask_restful import Api, Resource
from marshmallow import ValidationError
from models import Category, Product
from schemas import CategorySchema, ProductSchema, ProductDetailSchema, LineItemInputSchema
from utils.errors import CheckoutError
from utils.formatting import format_price
from utils.options import build_line_item
from resources.store import current_store_status, load_settings

# Create blueprint for the public menu
menu_bp = Blueprint("menu", __name__)
api = Api(menu_bp)

categories_schema = CategorySchema(many=True)
products_schema = ProductSchema(many=True)
product_detail_schema = ProductDetailSchema()
line_item_schema = LineItemInputSchema()


class MenuResource(Resource):
    def get(self):
        """Active categories with their active products, plus the store status banner"""
        categories = (
            Category.query.filter_by(active=True)
            .order_by(Category.display_order.asc(), Category.id.asc())
            .all()
        )
        uncategorised = (
            Product.query.filter_by(active=True, category_id=None)
            .order_by(Product.display_order.asc(), Product.id.asc())
            .all()
        )
        settings = load_settings()
        return {
            "store_name": settings.store_name,
            "status": current_store_status(settings).to_dict(),
            "categories": categories_schema.dump(categories),
            "uncategorised": products_schema.dump(uncategorised),
        }, 200


class ProductDetail(Resource):
    def get(self, product_id):
        product = Product.query.filter_by(id=product_id, active=True).first()
        if not product:
            return {"error": "Product not found"}, 404
        return {"product": product_detail_schema.dump(product)}, 200


class ProductPrice(Resource):
    def post(self, product_id):
        """Price one customised unit before it goes into the cart"""
        product = Product.query.filter_by(id=product_id, active=True).first()
        if not product:
            return {"error": "Product not found"}, 404

        payload = dict(request.get_json(silent=True) or {})
        payload["product_id"] = product_id
        try:
            data = line_item_schema.load(payload)
        except ValidationError as err:
            return {"error": "Invalid selection", "details": err.messages}, 400

        line = build_line_item(
            product,
            product.option_groups,
            data["option_ids"],
            quantity=data["quantity"],
            notes=data.get("notes"),
            removed_ingredients=data["removed_ingredients"],
            ingredients=product.ingredients,
        )
        if isinstance(line, CheckoutError):
            return line.to_response()

        return {
            "line_item": line.to_dict(),
            "unit_price_label": format_price(line.unit_price),
            "line_total_label": format_price(line.line_total),
        }, 200


api.add_resource(MenuResource, "/menu")
api.add_resource(ProductDetail, "/products/<int:product_id>")
api.add_resource(ProductPrice, "/products/<int:product_id>/price")

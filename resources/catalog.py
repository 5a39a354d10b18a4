from flask import Blueprint, request, current_app
from flask_restful import Api, Resource
from marshmallow import ValidationError
from extensions import db
from models import Category, Product, OptionGroup, Option, ProductOptionGroup, ProductIngredient
from schemas import (
    AdminOptionGroupSchema,
    CategorySchema,
    CategoryInputSchema,
    OptionSchema,
    OptionInputSchema,
    OptionGroupInputSchema,
    ProductDetailSchema,
    ProductInputSchema,
    ProductOptionGroupSchema,
    ProductOptionGroupInputSchema,
    option_group_range_errors,
)
from utils.auth import admin_required

# Back-office menu management
catalog_bp = Blueprint("catalog", __name__)
api = Api(catalog_bp)

category_schema = CategorySchema(exclude=("products",))
categories_schema = CategorySchema(many=True, exclude=("products",))
category_input_schema = CategoryInputSchema()
product_schema = ProductDetailSchema()
products_schema = ProductDetailSchema(many=True)
product_input_schema = ProductInputSchema()
group_schema = AdminOptionGroupSchema()
groups_schema = AdminOptionGroupSchema(many=True)
group_input_schema = OptionGroupInputSchema()
option_schema = OptionSchema()
option_input_schema = OptionInputSchema()
link_schema = ProductOptionGroupSchema()
links_schema = ProductOptionGroupSchema(many=True)
link_input_schema = ProductOptionGroupInputSchema()


def next_display_order(column, *criteria):
    """One past the highest display order, so new rows land at the end."""
    highest = db.session.query(db.func.max(column)).filter(*criteria).scalar()
    return 0 if highest is None else highest + 1


def _unknown_category(data):
    category_id = data.get("category_id")
    return category_id is not None and db.session.get(Category, category_id) is None


def _ingredients(raw):
    return [ProductIngredient(name=item["name"].strip(), removable=item.get("removable", True)) for item in raw]


class CategoryList(Resource):
    @admin_required
    def get(self, current_staff):
        categories = Category.query.order_by(Category.display_order.asc(), Category.id.asc()).all()
        return {"categories": categories_schema.dump(categories)}, 200

    @admin_required
    def post(self, current_staff):
        try:
            data = category_input_schema.load(request.get_json(silent=True) or {})
        except ValidationError as err:
            return {"error": "Invalid category", "details": err.messages}, 400

        data.setdefault("display_order", next_display_order(Category.display_order))
        category = Category(**data)
        db.session.add(category)
        db.session.commit()
        return {"message": "Category saved", "category": category_schema.dump(category)}, 201


class CategoryDetail(Resource):
    @admin_required
    def put(self, category_id, current_staff):
        category = db.get_or_404(Category, category_id)
        try:
            data = category_input_schema.load(request.get_json(silent=True) or {}, partial=True)
        except ValidationError as err:
            return {"error": "Invalid category", "details": err.messages}, 400

        for field, value in data.items():
            setattr(category, field, value)
        db.session.commit()
        return {"message": "Category saved", "category": category_schema.dump(category)}, 200

    @admin_required
    def delete(self, category_id, current_staff):
        """Delete a category; its products stay on the menu without one."""
        category = db.get_or_404(Category, category_id)
        Product.query.filter_by(category_id=category.id).update({"category_id": None})
        db.session.delete(category)
        db.session.commit()
        current_app.logger.info("Category %s deleted by %s", category_id, current_staff)
        return {"message": "Category deleted"}, 200


class ProductList(Resource):
    @admin_required
    def get(self, current_staff):
        """Every product, inactive ones included; ``?category_id=`` narrows the list."""
        query = Product.query
        category_id = request.args.get("category_id", type=int)
        if category_id is not None:
            query = query.filter_by(category_id=category_id)
        products = query.order_by(Product.display_order.asc(), Product.id.asc()).all()
        return {"products": products_schema.dump(products)}, 200

    @admin_required
    def post(self, current_staff):
        try:
            data = product_input_schema.load(request.get_json(silent=True) or {})
        except ValidationError as err:
            return {"error": "Invalid product", "details": err.messages}, 400

        if _unknown_category(data):
            return {"error": "Invalid product", "details": {"category_id": ["Unknown category."]}}, 400

        ingredients = _ingredients(data.pop("ingredients", []))
        data.setdefault(
            "display_order",
            next_display_order(Product.display_order, Product.category_id == data.get("category_id")),
        )
        product = Product(**data)
        product.ingredients = ingredients
        db.session.add(product)
        db.session.commit()
        return {"message": "Product saved", "product": product_schema.dump(product)}, 201


class ProductAdminDetail(Resource):
    @admin_required
    def put(self, product_id, current_staff):
        product = db.get_or_404(Product, product_id)
        try:
            data = product_input_schema.load(request.get_json(silent=True) or {}, partial=True)
        except ValidationError as err:
            return {"error": "Invalid product", "details": err.messages}, 400

        if _unknown_category(data):
            return {"error": "Invalid product", "details": {"category_id": ["Unknown category."]}}, 400

        # Past orders keep their own item snapshot, so ingredients are replaced outright.
        if "ingredients" in data:
            product.ingredients = _ingredients(data.pop("ingredients"))
        for field, value in data.items():
            setattr(product, field, value)
        db.session.commit()
        return {"message": "Product saved", "product": product_schema.dump(product)}, 200

    @admin_required
    def delete(self, product_id, current_staff):
        product = db.get_or_404(Product, product_id)
        db.session.delete(product)
        db.session.commit()
        current_app.logger.info("Product %s deleted by %s", product_id, current_staff)
        return {"message": "Product deleted"}, 200


class OptionGroupList(Resource):
    @admin_required
    def get(self, current_staff):
        groups = OptionGroup.query.order_by(OptionGroup.display_order.asc(), OptionGroup.id.asc()).all()
        return {"option_groups": groups_schema.dump(groups)}, 200

    @admin_required
    def post(self, current_staff):
        try:
            data = group_input_schema.load(request.get_json(silent=True) or {})
        except ValidationError as err:
            return {"error": "Invalid option group", "details": err.messages}, 400

        data.setdefault("display_order", next_display_order(OptionGroup.display_order))
        group = OptionGroup(**data)
        db.session.add(group)
        db.session.commit()
        return {"message": "Option group saved", "option_group": group_schema.dump(group)}, 201


class OptionGroupDetail(Resource):
    @admin_required
    def put(self, group_id, current_staff):
        group = db.get_or_404(OptionGroup, group_id)
        try:
            data = group_input_schema.load(request.get_json(silent=True) or {}, partial=True)
        except ValidationError as err:
            return {"error": "Invalid option group", "details": err.messages}, 400

        errors = option_group_range_errors(
            data.get("min_selections", group.min_selections),
            data.get("max_selections", group.max_selections),
            data.get("is_required", group.is_required),
        )
        if errors:
            return {"error": "Invalid option group", "details": errors}, 400

        for field, value in data.items():
            setattr(group, field, value)
        db.session.commit()
        return {"message": "Option group saved", "option_group": group_schema.dump(group)}, 200

    @admin_required
    def delete(self, group_id, current_staff):
        """Delete a group with its options and detach it from every product."""
        group = db.get_or_404(OptionGroup, group_id)
        ProductOptionGroup.query.filter_by(option_group_id=group.id).delete()
        db.session.delete(group)
        db.session.commit()
        current_app.logger.info("Option group %s deleted by %s", group_id, current_staff)
        return {"message": "Option group deleted"}, 200


class OptionList(Resource):
    @admin_required
    def post(self, group_id, current_staff):
        group = db.get_or_404(OptionGroup, group_id)
        try:
            data = option_input_schema.load(request.get_json(silent=True) or {})
        except ValidationError as err:
            return {"error": "Invalid option", "details": err.messages}, 400

        data.setdefault(
            "display_order",
            next_display_order(Option.display_order, Option.option_group_id == group.id),
        )
        option = Option(option_group_id=group.id, **data)
        db.session.add(option)
        db.session.commit()
        return {"message": "Option saved", "option": option_schema.dump(option)}, 201


class OptionDetail(Resource):
    @admin_required
    def put(self, option_id, current_staff):
        option = db.get_or_404(Option, option_id)
        try:
            data = option_input_schema.load(request.get_json(silent=True) or {}, partial=True)
        except ValidationError as err:
            return {"error": "Invalid option", "details": err.messages}, 400

        for field, value in data.items():
            setattr(option, field, value)
        db.session.commit()
        return {"message": "Option saved", "option": option_schema.dump(option)}, 200

    @admin_required
    def delete(self, option_id, current_staff):
        option = db.get_or_404(Option, option_id)
        db.session.delete(option)
        db.session.commit()
        return {"message": "Option deleted"}, 200


class ProductOptionGroupList(Resource):
    @admin_required
    def get(self, product_id, current_staff):
        product = db.get_or_404(Product, product_id)
        return {"option_groups": links_schema.dump(product.option_group_links)}, 200

    @admin_required
    def post(self, product_id, current_staff):
        """Attach an option group to a product."""
        product = db.get_or_404(Product, product_id)
        try:
            data = link_input_schema.load(request.get_json(silent=True) or {})
        except ValidationError as err:
            return {"error": "Invalid link", "details": err.messages}, 400

        group = db.session.get(OptionGroup, data["option_group_id"])
        if group is None:
            return {"error": "Option group not found"}, 404
        if any(link.option_group_id == group.id for link in product.option_group_links):
            return {"error": f"'{group.name}' is already linked to this product"}, 409

        link = ProductOptionGroup(
            product_id=product.id,
            option_group_id=group.id,
            display_order=data.get(
                "display_order",
                next_display_order(ProductOptionGroup.display_order, ProductOptionGroup.product_id == product.id),
            ),
        )
        db.session.add(link)
        db.session.commit()
        return {"message": "Option group linked", "link": link_schema.dump(link)}, 201


class ProductOptionGroupDetail(Resource):
    @admin_required
    def delete(self, product_id, group_id, current_staff):
        link = ProductOptionGroup.query.filter_by(product_id=product_id, option_group_id=group_id).first()
        if link is None:
            return {"error": "Option group is not linked to this product"}, 404
        db.session.delete(link)
        db.session.commit()
        return {"message": "Option group unlinked"}, 200


api.add_resource(CategoryList, "/admin/categories")
api.add_resource(CategoryDetail, "/admin/categories/<int:category_id>")
api.add_resource(ProductList, "/admin/products")
api.add_resource(ProductAdminDetail, "/admin/products/<int:product_id>")
api.add_resource(ProductOptionGroupList, "/admin/products/<int:product_id>/option-groups")
api.add_resource(ProductOptionGroupDetail, "/admin/products/<int:product_id>/option-groups/<int:group_id>")
api.add_resource(OptionGroupList, "/admin/option-groups")
api.add_resource(OptionGroupDetail, "/admin/option-groups/<int:group_id>")
api.add_resource(OptionList, "/admin/option-groups/<int:group_id>/options")
api.add_resource(OptionDetail, "/admin/options/<int:option_id>")

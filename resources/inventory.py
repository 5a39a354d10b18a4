from flask import Blueprint, request, current_app
from flask_restful import Api, Resource
from marshmallow import ValidationError
from sqlalchemy import update
from extensions import db
from models import InventoryItem, InventoryTransaction, InventoryTransactionType
from schemas import (
    InventoryItemSchema,
    InventoryItemInputSchema,
    InventoryTransactionSchema,
    InventoryTransactionInputSchema,
)
from utils.auth import admin_required, staff_required
from utils.formatting import to_money

# Create blueprint for inventory
inventory_bp = Blueprint("inventory", __name__)
api = Api(inventory_bp)

item_schema = InventoryItemSchema()
items_schema = InventoryItemSchema(many=True)
item_input_schema = InventoryItemInputSchema()
transaction_schema = InventoryTransactionSchema()
transactions_schema = InventoryTransactionSchema(many=True)
transaction_input_schema = InventoryTransactionInputSchema()

# Usage and loss take stock out; purchases and adjustments carry their own sign.
OUTGOING = (InventoryTransactionType.USAGE, InventoryTransactionType.LOSS)


def stock_delta(kind, quantity):
    return -quantity if kind in OUTGOING else quantity


class InventoryItemList(Resource):
    @staff_required
    def get(self, current_staff):
        items = InventoryItem.query.order_by(InventoryItem.name.asc()).all()
        low_stock = [item.id for item in items if item.quantity <= item.min_quantity]
        return {"items": items_schema.dump(items), "low_stock": low_stock}, 200

    @admin_required
    def post(self, current_staff):
        try:
            data = item_input_schema.load(request.get_json(silent=True) or {})
        except ValidationError as err:
            return {"error": "Invalid item", "details": err.messages}, 400

        item = InventoryItem(**data)
        db.session.add(item)
        db.session.commit()
        return {"message": "Inventory item saved", "item": item_schema.dump(item)}, 201


class InventoryTransactionList(Resource):
    @staff_required
    def get(self, current_staff):
        query = InventoryTransaction.query
        item_id = request.args.get("item_id", type=int)
        if item_id is not None:
            query = query.filter(InventoryTransaction.item_id == item_id)
        transactions = query.order_by(InventoryTransaction.created_at.desc(), InventoryTransaction.id.desc()).all()
        return {"transactions": transactions_schema.dump(transactions)}, 200

    @staff_required
    def post(self, current_staff):
        """Record a stock movement and apply it to the item balance"""
        try:
            data = transaction_input_schema.load(request.get_json(silent=True) or {})
        except ValidationError as err:
            return {"error": "Invalid transaction", "details": err.messages}, 400

        item = db.session.get(InventoryItem, data["item_id"])
        if item is None:
            return {"error": "Inventory item not found"}, 404

        values = {"quantity": InventoryItem.quantity + stock_delta(data["type"], data["quantity"])}
        if data["type"] is InventoryTransactionType.PURCHASE and data["cost"]:
            values["last_cost"] = to_money(data["cost"] / data["quantity"])

        transaction = InventoryTransaction(**data)
        db.session.add(transaction)
        db.session.execute(
            update(InventoryItem)
            .where(InventoryItem.id == item.id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        db.session.commit()
        db.session.refresh(item)

        current_app.logger.info(
            "Inventory %s of %s %s for item %s by %s",
            data["type"].value, data["quantity"], item.unit, item.name, current_staff,
        )
        return {
            "message": "Transaction recorded",
            "transaction": transaction_schema.dump(transaction),
            "item": item_schema.dump(item),
        }, 201


api.add_resource(InventoryItemList, "/admin/inventory/items")
api.add_resource(InventoryTransactionList, "/admin/inventory/transactions")

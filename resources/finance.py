from decimal import Decimal
from flask import Blueprint, request, current_app
from flask_restful import Api, Resource
from marshmallow import ValidationError
from sqlalchemy import func
from extensions import db
from models import Order, OrderStatus, Expense, PaymentMethod
from schemas import ClosingQuerySchema, ExpenseSchema, ExpenseInputSchema
from utils.auth import admin_required
from utils.clock import day_bounds_utc, ensure_utc
from utils.formatting import to_money

# Create blueprint for finance
finance_bp = Blueprint("finance", __name__)
api = Api(finance_bp)

closing_query_schema = ClosingQuerySchema()
expense_schema = ExpenseSchema()
expenses_schema = ExpenseSchema(many=True)
expense_input_schema = ExpenseInputSchema()

CUSTOMER_RANKING_LIMIT = 50


def daily_closing(day, tz_name):
    """Revenue by payment method, expenses by category and the net result for one store day.

    Cancelled orders are left out of every figure.
    """
    start, end = day_bounds_utc(day, tz_name)
    orders = Order.query.filter(
        Order.created_at >= start,
        Order.created_at < end,
        Order.status != OrderStatus.CANCELLED,
    ).all()

    by_method = {method.value: Decimal("0.00") for method in PaymentMethod}
    for order in orders:
        by_method[order.payment_method.value] += to_money(order.total)
    revenue = to_money(sum(by_method.values(), Decimal("0")))

    expenses = Expense.query.filter(Expense.date == day).all()
    by_category = {}
    for expense in expenses:
        by_category[expense.category] = by_category.get(expense.category, Decimal("0.00")) + to_money(expense.amount)
    expense_total = to_money(sum(by_category.values(), Decimal("0")))

    return {
        "date": day.isoformat(),
        "order_count": len(orders),
        "revenue": float(revenue),
        "revenue_by_payment_method": {method: float(amount) for method, amount in by_method.items()},
        "delivery_fees": float(to_money(sum((to_money(o.delivery_fee) for o in orders), Decimal("0")))),
        "discounts": float(to_money(sum((to_money(o.discount) for o in orders), Decimal("0")))),
        "average_ticket": float(to_money(revenue / len(orders))) if orders else 0.0,
        "expenses": float(expense_total),
        "expenses_by_category": {category: float(amount) for category, amount in sorted(by_category.items())},
        "net_profit": float(revenue - expense_total),
    }


class DailyClosing(Resource):
    @admin_required
    def get(self, current_staff):
        try:
            query = closing_query_schema.load(request.args)
        except ValidationError as err:
            return {"error": "Invalid date", "details": err.messages}, 400

        return {"closing": daily_closing(query["date"], current_app.config["STORE_TIMEZONE"])}, 200


class CustomerRanking(Resource):
    @admin_required
    def get(self, current_staff):
        """Best customers by amount spent, keyed on phone number"""
        spent = func.sum(Order.total).label("total_spent")
        count = func.count(Order.id).label("order_count")
        last_order = func.max(Order.created_at).label("last_order_at")
        sort_columns = {"total_spent": spent, "order_count": count, "last_order_at": last_order}
        sort = request.args.get("sort", "total_spent")
        if sort not in sort_columns:
            return {"error": f"sort must be one of {sorted(sort_columns)}"}, 400

        rows = (
            db.session.query(
                Order.customer_phone,
                func.max(Order.customer_name).label("customer_name"),
                count,
                spent,
                last_order,
            )
            .filter(Order.status != OrderStatus.CANCELLED)
            .group_by(Order.customer_phone)
            .order_by(sort_columns[sort].desc())
            .limit(CUSTOMER_RANKING_LIMIT)
            .all()
        )
        return {
            "customers": [
                {
                    "customer_phone": row.customer_phone,
                    "customer_name": row.customer_name,
                    "order_count": row.order_count,
                    "total_spent": float(to_money(row.total_spent)),
                    "last_order_at": ensure_utc(row.last_order_at).isoformat() if row.last_order_at else None,
                }
                for row in rows
            ]
        }, 200


class ExpenseList(Resource):
    @admin_required
    def get(self, current_staff):
        query = Expense.query
        if request.args.get("date"):
            try:
                day = closing_query_schema.load({"date": request.args["date"]})["date"]
            except ValidationError as err:
                return {"error": "Invalid date", "details": err.messages}, 400
            query = query.filter(Expense.date == day)
        expenses = query.order_by(Expense.date.desc(), Expense.id.desc()).all()
        return {"expenses": expenses_schema.dump(expenses)}, 200

    @admin_required
    def post(self, current_staff):
        try:
            data = expense_input_schema.load(request.get_json(silent=True) or {})
        except ValidationError as err:
            return {"error": "Invalid expense", "details": err.messages}, 400

        expense = Expense(**data)
        db.session.add(expense)
        db.session.commit()
        current_app.logger.info("Expense of %s recorded by %s", expense.amount, current_staff)
        return {"message": "Expense recorded", "expense": expense_schema.dump(expense)}, 201


api.add_resource(DailyClosing, "/admin/finance/closing")
api.add_resource(CustomerRanking, "/admin/finance/customers")
api.add_resource(ExpenseList, "/admin/expenses")

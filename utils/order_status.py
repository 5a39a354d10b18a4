from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Union

from models import OrderStatus
from utils.clock import ensure_utc
from utils.errors import InvalidTransition

STATUS_SEQUENCE = [
    OrderStatus.PENDING,
    OrderStatus.CONFIRMED,
    OrderStatus.PREPARING,
    OrderStatus.READY,
    OrderStatus.DELIVERED,
]

KITCHEN_STATUSES = [OrderStatus.PENDING, OrderStatus.PREPARING]


def next_status(status: OrderStatus) -> Optional[OrderStatus]:
    """Next state in the fixed progression, ``None`` for delivered and cancelled."""
    if status not in STATUS_SEQUENCE:
        return None
    index = STATUS_SEQUENCE.index(status)
    if index + 1 >= len(STATUS_SEQUENCE):
        return None
    return STATUS_SEQUENCE[index + 1]


def advance(order) -> Optional[OrderStatus]:
    return next_status(order.status)


def cancel(order) -> Union[OrderStatus, InvalidTransition]:
    # Staff can only cancel before the order is accepted.
    if order.status is not OrderStatus.PENDING:
        return InvalidTransition(current=order.status.value, requested=OrderStatus.CANCELLED.value)
    return OrderStatus.CANCELLED


def elapsed_minutes(created_at: datetime, now: datetime) -> int:
    return max(0, int((ensure_utc(now) - ensure_utc(created_at)).total_seconds() // 60))


def kitchen_view(orders: Iterable, now: datetime, late_after_minutes: int = 20) -> List[Dict[str, Any]]:
    """Pending and preparing orders, oldest first, with lateness flags."""
    active = [order for order in orders if order.status in KITCHEN_STATUSES]
    active.sort(key=lambda order: ensure_utc(order.created_at))

    tickets = []
    for order in active:
        minutes = elapsed_minutes(order.created_at, now)
        tickets.append({
            "id": order.id,
            "customer_name": order.customer_name,
            "status": order.status.value,
            "items": order.items,
            "notes": order.notes,
            "created_at": ensure_utc(order.created_at).isoformat(),
            "elapsed_minutes": minutes,
            "late": minutes >= late_after_minutes,
        })
    return tickets

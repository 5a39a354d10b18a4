"""In-memory cart: line items with their customization and the subtotal."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from utils.formatting import to_money

NOTES_MAX_LENGTH = 180


@dataclass(frozen=True)
class SelectedOption:
    """A copy of an option as it was priced when the customer picked it."""

    group_id: int
    option_id: int
    name: str
    price: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {
            "group_id": self.group_id,
            "option_id": self.option_id,
            "name": self.name,
            "price": float(self.price),
        }


@dataclass(frozen=True)
class Customization:
    selected_options: Tuple[SelectedOption, ...] = ()
    removed_ingredients: Tuple[int, ...] = ()
    notes: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "selected_options": [option.to_dict() for option in self.selected_options],
            "removed_ingredients": list(self.removed_ingredients),
            "notes": self.notes,
        }


@dataclass(frozen=True)
class CartLineItem:
    product_id: int
    name: str
    unit_price: Decimal
    quantity: int = 1
    customization: Customization = field(default_factory=Customization)
    removed_ingredient_names: Tuple[str, ...] = ()

    @property
    def merge_key(self) -> Tuple[int, Customization]:
        return self.product_id, self.customization

    @property
    def line_total(self) -> Decimal:
        return to_money(self.unit_price * self.quantity)

    def to_dict(self) -> Dict[str, Any]:
        payload = {
            "product_id": self.product_id,
            "name": self.name,
            "unit_price": float(self.unit_price),
            "quantity": self.quantity,
            "line_total": float(self.line_total),
            "removed_ingredient_names": list(self.removed_ingredient_names),
        }
        payload.update(self.customization.to_dict())
        return payload


class Cart:
    """Ordered list of line items; identical configurations share one line."""

    def __init__(self, lines: Optional[List[CartLineItem]] = None):
        self.lines: List[CartLineItem] = []
        for line in lines or []:
            self.add(line)

    def __len__(self) -> int:
        return len(self.lines)

    def __iter__(self):
        return iter(self.lines)

    def _index_of(self, key) -> Optional[int]:
        for index, line in enumerate(self.lines):
            if line.merge_key == key:
                return index
        return None

    def add(self, line: CartLineItem) -> CartLineItem:
        if line.quantity < 1:
            raise ValueError("quantity must be at least 1")

        index = self._index_of(line.merge_key)
        if index is None:
            self.lines.append(line)
            return line

        merged = replace(self.lines[index], quantity=self.lines[index].quantity + line.quantity)
        self.lines[index] = merged
        return merged

    def update_quantity(self, index: int, quantity: int) -> None:
        """Set the quantity of a line; zero or less removes it."""
        if quantity <= 0:
            self.remove(index)
            return
        self.lines[index] = replace(self.lines[index], quantity=quantity)

    def remove(self, index: int) -> None:
        del self.lines[index]

    def clear(self) -> None:
        self.lines = []

    @property
    def total_items(self) -> int:
        return sum(line.quantity for line in self.lines)

    @property
    def subtotal(self) -> Decimal:
        return to_money(sum((line.unit_price * line.quantity for line in self.lines), Decimal("0")))

    def snapshot(self) -> List[Dict[str, Any]]:
        """JSON-ready copy of the lines, stored on the order."""
        return [line.to_dict() for line in self.lines]

"""Option group selection rules and add-on pricing."""

from __future__ import annotations

from decimal import Decimal
from typing import Iterable, List, Optional, Sequence, Union

from utils.cart import NOTES_MAX_LENGTH, CartLineItem, Customization, SelectedOption
from utils.errors import InvalidSelection
from utils.formatting import to_money


def _selected_in_group(group_id, selections: Iterable[SelectedOption]) -> List[SelectedOption]:
    return [selection for selection in selections if selection.group_id == group_id]


def toggle_option(group, option, selections: Sequence[SelectedOption]) -> List[SelectedOption]:
    """Apply a customer tap on ``option`` and return the new selection list.

    Tapping a selected option removes it. In a single-choice group the new
    option replaces the previous one; in a multi-choice group a tap past
    ``max_selections`` leaves the selection unchanged.
    """
    selections = list(selections)
    in_group = _selected_in_group(group.id, selections)

    if any(selection.option_id == option.id for selection in in_group):
        return [s for s in selections if not (s.group_id == group.id and s.option_id == option.id)]

    chosen = SelectedOption(group_id=group.id, option_id=option.id, name=option.name, price=to_money(option.price))

    if group.max_selections == 1:
        return [s for s in selections if s.group_id != group.id] + [chosen]

    if len(in_group) >= group.max_selections:
        return selections

    return selections + [chosen]


def first_unmet_group(groups: Iterable, selections: Sequence[SelectedOption]):
    for group in groups:
        if group.is_required and len(_selected_in_group(group.id, selections)) < group.min_selections:
            return group
    return None


def is_valid_selection(groups: Iterable, selections: Sequence[SelectedOption]) -> bool:
    return first_unmet_group(groups, selections) is None


def extra_price(selections: Iterable[SelectedOption]) -> Decimal:
    return to_money(sum((selection.price for selection in selections), Decimal("0")))


def unit_price(base_price, selections: Iterable[SelectedOption]) -> Decimal:
    return to_money(to_money(base_price) + extra_price(selections))


def build_line_item(
    product,
    groups: Sequence,
    option_ids: Sequence[int],
    quantity: int = 1,
    notes: Optional[str] = None,
    removed_ingredients: Sequence[int] = (),
    ingredients: Sequence = (),
) -> Union[CartLineItem, InvalidSelection]:
    """Turn a customer's choices for ``product`` into a priced line item.

    ``option_ids`` are replayed through ``toggle_option`` in the order given,
    so the same caps apply as on the product page.
    """
    options_by_id = {}
    for group in groups:
        for option in getattr(group, "active_options", group.options):
            options_by_id[option.id] = (group, option)

    selections: List[SelectedOption] = []
    for option_id in option_ids:
        if option_id not in options_by_id:
            return InvalidSelection(detail=f"Option {option_id} is not available for {product.name}.")
        group, option = options_by_id[option_id]
        selections = toggle_option(group, option, selections)

    unmet = first_unmet_group(groups, selections)
    if unmet is not None:
        return InvalidSelection(group_name=unmet.name, minimum=unmet.min_selections)

    removable = {ingredient.id: ingredient.name for ingredient in ingredients if ingredient.removable}
    removed = sorted(set(removed_ingredients))
    unknown = [ingredient_id for ingredient_id in removed if ingredient_id not in removable]
    if unknown:
        return InvalidSelection(detail=f"Ingredient {unknown[0]} cannot be removed from {product.name}.")

    notes = (notes or "").strip()
    if len(notes) > NOTES_MAX_LENGTH:
        return InvalidSelection(detail=f"Notes must be at most {NOTES_MAX_LENGTH} characters.")

    customization = Customization(
        selected_options=tuple(sorted(selections, key=lambda s: (s.group_id, s.option_id))),
        removed_ingredients=tuple(removed),
        notes=notes,
    )
    return CartLineItem(
        product_id=product.id,
        name=product.name,
        unit_price=unit_price(product.price, selections),
        quantity=quantity,
        customization=customization,
        removed_ingredient_names=tuple(removable[ingredient_id] for ingredient_id in removed),
    )

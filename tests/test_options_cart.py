from decimal import Decimal
from types import SimpleNamespace

import pytest

from utils.cart import Cart, CartLineItem, Customization, SelectedOption
from utils.errors import InvalidSelection
from utils.options import build_line_item, extra_price, is_valid_selection, toggle_option, unit_price


def option(option_id, name, price="0"):
    return SimpleNamespace(id=option_id, name=name, price=Decimal(price), active=True)


def group(group_id, name, options, min_selections=0, max_selections=1, is_required=False):
    return SimpleNamespace(
        id=group_id,
        name=name,
        options=options,
        active_options=options,
        min_selections=min_selections,
        max_selections=max_selections,
        is_required=is_required,
    )


SIZE = group(1, "Tamanho", [option(11, "Pequeno"), option(12, "Grande", "6.00")], 1, 1, True)
EXTRAS = group(2, "Adicionais", [option(21, "Bacon", "5.00"), option(22, "Ovo", "3.00"), option(23, "Queijo", "4.00")], 0, 2)
BURGER = SimpleNamespace(id=7, name="X-Burger", price=Decimal("30.00"))
INGREDIENTS = [SimpleNamespace(id=1, name="Cebola", removable=True), SimpleNamespace(id=2, name="Pão", removable=False)]


class TestToggleOption:
    def test_single_choice_replaces(self):
        selections = toggle_option(SIZE, SIZE.options[0], [])
        selections = toggle_option(SIZE, SIZE.options[1], selections)
        assert [s.option_id for s in selections] == [12]

    def test_tapping_selected_option_removes_it(self):
        selections = toggle_option(SIZE, SIZE.options[0], [])
        assert toggle_option(SIZE, SIZE.options[0], selections) == []

    def test_multi_choice_respects_cap(self):
        selections = []
        for extra in EXTRAS.options:
            selections = toggle_option(EXTRAS, extra, selections)
        assert [s.option_id for s in selections] == [21, 22]

    def test_groups_are_independent(self):
        selections = toggle_option(EXTRAS, EXTRAS.options[0], [])
        selections = toggle_option(SIZE, SIZE.options[1], selections)
        selections = toggle_option(SIZE, SIZE.options[0], selections)
        assert sorted(s.option_id for s in selections) == [11, 21]


class TestSelectionRules:
    def test_required_group_must_be_filled(self):
        assert not is_valid_selection([SIZE, EXTRAS], [])
        selections = toggle_option(SIZE, SIZE.options[0], [])
        assert is_valid_selection([SIZE, EXTRAS], selections)

    def test_optional_groups_are_always_valid(self):
        assert is_valid_selection([EXTRAS], [])

    def test_prices_sum_base_and_extras(self):
        selections = toggle_option(SIZE, SIZE.options[1], [])
        selections = toggle_option(EXTRAS, EXTRAS.options[0], selections)
        assert extra_price(selections) == Decimal("11.00")
        assert unit_price(BURGER.price, selections) == Decimal("41.00")


class TestBuildLineItem:
    def test_priced_line(self):
        line = build_line_item(BURGER, [SIZE, EXTRAS], [12, 22], quantity=2, notes=" sem sal ",
                               removed_ingredients=[1], ingredients=INGREDIENTS)
        assert line.unit_price == Decimal("39.00")
        assert line.line_total == Decimal("78.00")
        assert line.customization.notes == "sem sal"
        assert line.removed_ingredient_names == ("Cebola",)

    def test_unmet_required_group(self):
        result = build_line_item(BURGER, [SIZE, EXTRAS], [21])
        assert isinstance(result, InvalidSelection)
        assert result.group_name == "Tamanho"
        assert "Tamanho" in result.message

    def test_unknown_option(self):
        assert isinstance(build_line_item(BURGER, [SIZE], [11, 99]), InvalidSelection)

    def test_ingredient_that_cannot_be_removed(self):
        result = build_line_item(BURGER, [SIZE], [11], removed_ingredients=[2], ingredients=INGREDIENTS)
        assert isinstance(result, InvalidSelection)

    def test_notes_length_limit(self):
        assert isinstance(build_line_item(BURGER, [SIZE], [11], notes="x" * 181), InvalidSelection)

    def test_selection_order_does_not_change_the_line(self):
        first = build_line_item(BURGER, [SIZE, EXTRAS], [21, 22, 11])
        second = build_line_item(BURGER, [SIZE, EXTRAS], [11, 22, 21])
        assert first.merge_key == second.merge_key


def line(product_id=1, price="10.00", quantity=1, notes=""):
    return CartLineItem(
        product_id=product_id,
        name=f"Produto {product_id}",
        unit_price=Decimal(price),
        quantity=quantity,
        customization=Customization(notes=notes),
    )


class TestCart:
    def test_identical_lines_merge(self):
        cart = Cart()
        cart.add(line(quantity=1))
        cart.add(line(quantity=2))
        assert len(cart) == 1
        assert cart.total_items == 3
        assert cart.subtotal == Decimal("30.00")

    def test_different_customization_stays_separate(self):
        cart = Cart()
        cart.add(line())
        cart.add(line(notes="bem passado"))
        with_option = CartLineItem(
            product_id=1,
            name="Produto 1",
            unit_price=Decimal("15.00"),
            customization=Customization(selected_options=(SelectedOption(1, 12, "Grande", Decimal("5.00")),)),
        )
        cart.add(with_option)
        assert len(cart) == 3
        assert cart.subtotal == Decimal("35.00")

    def test_update_quantity_and_remove(self):
        cart = Cart()
        cart.add(line(1))
        cart.add(line(2, price="4.50"))
        cart.update_quantity(1, 4)
        assert cart.subtotal == Decimal("28.00")

        cart.update_quantity(0, 0)
        assert [item.product_id for item in cart] == [2]

        cart.clear()
        assert cart.subtotal == Decimal("0.00")

    def test_rejects_non_positive_quantity(self):
        with pytest.raises(ValueError):
            Cart().add(line(quantity=0))

    def test_snapshot_is_json_ready(self):
        cart = Cart()
        cart.add(line(quantity=2, notes="sem gelo"))
        assert cart.snapshot() == [{
            "product_id": 1,
            "name": "Produto 1",
            "unit_price": 10.0,
            "quantity": 2,
            "line_total": 20.0,
            "removed_ingredient_names": [],
            "selected_options": [],
            "removed_ingredients": [],
            "notes": "sem gelo",
        }]

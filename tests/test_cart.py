"""Tests for cart mutations and aggregation."""

from decimal import Decimal

import pytest

from basket_server.cart import Cart


@pytest.fixture
def stocked_cart(make_product):
    cart = Cart()
    cart.catalog.set_products(
        [
            make_product(id="1", price="5", stock=2),
            make_product(id="2", price="3"),
        ]
    )
    return cart


class TestAddToCart:
    def test_add_increments(self, stocked_cart):
        assert stocked_cart.add_to_cart("1") is True
        assert stocked_cart.add_to_cart(1) is True
        assert stocked_cart.items == {"1": 2}

    def test_add_at_stock_limit_fails(self, stocked_cart):
        stocked_cart.add_to_cart("1")
        stocked_cart.add_to_cart("1")

        assert stocked_cart.add_to_cart("1") is False
        assert stocked_cart.items["1"] == 2

    def test_float_id_respects_stock_limit(self, stocked_cart):
        assert stocked_cart.add_to_cart(1.0)
        assert stocked_cart.add_to_cart("1")

        assert stocked_cart.add_to_cart(1.0) is False
        assert stocked_cart.items == {"1": 2}
        assert stocked_cart.set_quantity(1.0, 3) is False

    def test_unlimited_stock(self, stocked_cart):
        for _ in range(50):
            assert stocked_cart.add_to_cart("2")
        assert stocked_cart.items["2"] == 50

    def test_unknown_product_has_no_constraint(self, stocked_cart):
        assert stocked_cart.add_to_cart("404") is True
        assert stocked_cart.can_add_to_cart("404") is True

    def test_zero_stock(self, make_product):
        cart = Cart()
        cart.catalog.set_products([make_product(id="1", stock=0)])
        assert cart.can_add_to_cart("1") is False
        assert cart.add_to_cart("1") is False
        assert "1" not in cart.items

    def test_can_add_to_cart(self, stocked_cart):
        assert stocked_cart.can_add_to_cart("1")
        stocked_cart.set_quantity("1", 2)
        assert not stocked_cart.can_add_to_cart("1")
        assert stocked_cart.get_product_stock("1") == 2


class TestRemoveAndSet:
    def test_remove_from_cart_leaves_zero_entry(self, stocked_cart):
        stocked_cart.add_to_cart("2")
        stocked_cart.remove_from_cart("2")
        stocked_cart.remove_from_cart("2")
        assert stocked_cart.items == {"2": 0}

    def test_remove_from_cart_on_missing_line(self, stocked_cart):
        stocked_cart.remove_from_cart("2")
        assert stocked_cart.items == {"2": 0}

    def test_set_quantity_zero_deletes(self, stocked_cart):
        stocked_cart.add_to_cart("2")
        assert stocked_cart.set_quantity("2", 0) is None
        assert "2" not in stocked_cart.items

    def test_set_quantity_negative_deletes(self, stocked_cart):
        stocked_cart.add_to_cart("2")
        assert stocked_cart.set_quantity("2", -3) is None
        assert "2" not in stocked_cart.items

    def test_set_quantity_over_stock_fails(self, stocked_cart):
        stocked_cart.add_to_cart("1")
        assert stocked_cart.set_quantity("1", 3) is False
        assert stocked_cart.items["1"] == 1

    def test_set_quantity(self, stocked_cart):
        assert stocked_cart.set_quantity("1", 2) is True
        assert stocked_cart.set_quantity(2, 9) is True
        assert stocked_cart.items == {"1": 2, "2": 9}

    def test_remove_item(self, stocked_cart):
        stocked_cart.set_quantity("2", 4)
        stocked_cart.remove_item(2)
        stocked_cart.remove_item("never-added")
        assert stocked_cart.items == {}


class TestBoxes:
    def test_low_stock_box_is_addable_without_limit(self, cart, make_box):
        cart.catalog.set_boxes([make_box(id="21", stocks=(1, None))])
        for _ in range(5):
            assert cart.add_box_to_cart("21") is True
        assert cart.boxes["21"] == 5

    def test_zero_stock_constituent_blocks_box(self, cart, make_box):
        cart.catalog.set_boxes([make_box(id="21", stocks=(4, 0))])
        assert cart.can_add_box_to_cart("21") is False
        assert cart.add_box_to_cart("21") is False
        assert cart.boxes == {}

    def test_unknown_box(self, cart):
        assert cart.can_add_box_to_cart("21") is False
        assert cart.add_box_to_cart("21") is False

    def test_box_without_product_list(self, cart):
        from basket_server.models import Box

        cart.catalog.set_boxes([Box(id=21, price=Decimal("12"))])
        assert cart.can_add_box_to_cart(21) is False

    def test_box_quantity_operations(self, cart, make_box):
        cart.catalog.set_boxes([make_box(id="21")])
        cart.add_box_to_cart(21)
        cart.remove_box_from_cart("21")
        assert cart.boxes == {"21": 0}

        assert cart.set_box_quantity("21", 3) is True
        assert cart.boxes == {"21": 3}
        assert cart.set_box_quantity("21", 0) is None
        assert cart.boxes == {}

        cart.set_box_quantity("21", 2)
        cart.remove_box_item(21)
        assert cart.boxes == {}


class TestAggregation:
    def test_total_item_count(self, cart, make_product, make_box):
        cart.catalog.set_products([make_product(id="1")])
        cart.catalog.set_boxes([make_box(id="21")])
        cart.set_quantity("1", 3)
        cart.set_box_quantity("21", 2)
        assert cart.total_item_count() == 5
        assert cart.box_item_count() == 2

    def test_mixed_cart_total(self, cart, make_product, make_box):
        cart.catalog.set_products([make_product(id="A", price="5")])
        cart.catalog.set_boxes([make_box(id="B", price="12")])
        cart.set_quantity("A", 2)
        cart.add_box_to_cart("B")

        assert cart.cart_total() == Decimal("22")

    def test_total_uses_promotional_index_first(self, cart, make_product, discount):
        cart.catalog.set_products([make_product(id="7", price="20")])
        cart.add_promotional_product(make_product(id="7", price="20", promotion=discount(25)))
        cart.set_quantity("7", 3)

        assert cart.cart_total() == Decimal("45")

    def test_add_promotional_product_ignores_bare_products(self, cart, make_product):
        cart.add_promotional_product(make_product(id="7"))
        cart.add_promotional_product(None)
        assert cart.promotional_products == {}

    def test_unresolved_lines_are_dropped(self, cart, make_product):
        cart.catalog.set_products([make_product(id="1", price="2")])
        cart.set_quantity("1", 1)
        cart.set_quantity("ghost", 4)
        cart.set_box_quantity("ghost-box", 1)

        lines = cart.cart_items_with_pricing()

        assert [line.id for line in lines] == ["1"]
        assert cart.cart_total() == Decimal("2")
        assert cart.total_item_count() == 6

    def test_items_with_pricing(self, cart, make_product, make_box, discount, two_plus_one):
        cart.catalog.set_products(
            [
                make_product(id="d", price="20", promotion=discount(25)),
                make_product(id="t", price="10", promotion=two_plus_one(2, 1)),
                make_product(id="p", price="4"),
            ]
        )
        cart.catalog.set_boxes([make_box(id="b", price="12")])
        cart.set_quantity("d", 3)
        cart.set_quantity("t", 5)
        cart.set_quantity("p", 2)
        cart.set_box_quantity("b", 2)

        lines = {line.id: line for line in cart.cart_items_with_pricing()}

        assert lines["d"].final_price == Decimal("15")
        assert lines["d"].promotional_price == Decimal("15")
        assert lines["d"].savings == Decimal("15")
        assert lines["d"].total_price == Decimal("45")

        assert lines["t"].original_price == Decimal("10")
        assert lines["t"].effective_price_per_item == Decimal("8")
        assert lines["t"].savings == Decimal("10")
        assert lines["t"].total_price == Decimal("40")

        assert lines["p"].savings == Decimal("0")
        assert lines["p"].total_price == Decimal("8")

        assert lines["b"].type == "box"
        assert lines["b"].savings == Decimal("0")
        assert lines["b"].total_price == Decimal("24")

        assert cart.cart_total() == Decimal("117")
        assert cart.total_savings() == Decimal("25")

    def test_zero_quantity_tiered_line(self, cart, make_product, two_plus_one):
        cart.catalog.set_products([make_product(id="t", price="10", promotion=two_plus_one())])
        cart.add_to_cart("t")
        cart.remove_from_cart("t")

        [line] = cart.cart_items_with_pricing()

        assert line.quantity == 0
        assert line.effective_price_per_item == Decimal("0")
        assert line.total_price == Decimal("0")

    def test_clear(self, cart, make_product, make_box):
        cart.catalog.set_boxes([make_box(id="21")])
        cart.add_to_cart("1")
        cart.add_box_to_cart("21")
        cart.clear()
        assert cart.items == {}
        assert cart.boxes == {}
        assert cart.is_empty()

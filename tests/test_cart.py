import random

import pytest

from app.models import UnitType
from app.services.cart import Cart, quantity_step, step_down, step_up


@pytest.fixture
def kibbeh(make_product):
    return make_product("كبة مقلية", price=500, unit_type=UnitType.PIECE)


@pytest.fixture
def grape_leaves(make_product):
    return make_product("ورق عنب", price=600, unit_type=UnitType.KILO)


def assert_totals_consistent(cart: Cart) -> None:
    assert cart.get_total_items() == sum(line.quantity for line in cart.items)
    assert cart.get_total_price() == sum(line.product.price * line.quantity for line in cart.items)
    assert all(line.quantity > 0 for line in cart.items)


class TestAddItem:
    def test_new_product_creates_line(self, kibbeh):
        cart = Cart()
        cart.add_item(kibbeh, 2)

        assert len(cart) == 1
        assert cart.get_item(kibbeh.id).quantity == 2

    def test_existing_product_accumulates(self, kibbeh):
        cart = Cart()
        cart.add_item(kibbeh, 2)
        cart.add_item(kibbeh, 3)

        assert len(cart) == 1
        assert cart.get_item(kibbeh.id).quantity == 5

    def test_no_upper_bound(self, kibbeh):
        cart = Cart()
        cart.add_item(kibbeh, 10_000)
        assert cart.get_total_items() == 10_000

    def test_non_positive_quantity_never_creates_line(self, kibbeh):
        cart = Cart()
        cart.add_item(kibbeh, 0)
        cart.add_item(kibbeh, -1)
        assert not cart

    def test_line_keeps_snapshot_of_product(self, kibbeh):
        cart = Cart()
        cart.add_item(kibbeh, 1)

        kibbeh.price = 9999

        assert cart.get_item(kibbeh.id).product.price == 500


class TestUpdateAndRemove:
    def test_update_sets_quantity(self, kibbeh):
        cart = Cart()
        cart.add_item(kibbeh, 1)
        cart.update_quantity(kibbeh.id, 7)
        assert cart.get_item(kibbeh.id).quantity == 7

    @pytest.mark.parametrize("quantity", [0, -0.5, -3])
    def test_update_to_non_positive_removes_line(self, kibbeh, quantity):
        cart = Cart()
        cart.add_item(kibbeh, 2)
        cart.update_quantity(kibbeh.id, quantity)
        assert cart.get_item(kibbeh.id) is None

    def test_update_unknown_product_is_noop(self, kibbeh):
        cart = Cart()
        cart.update_quantity(kibbeh.id, 3)
        assert not cart

    def test_remove_item(self, kibbeh, grape_leaves):
        cart = Cart()
        cart.add_item(kibbeh, 1)
        cart.add_item(grape_leaves, 0.5)

        cart.remove_item(kibbeh.id)

        assert [line.product.id for line in cart.items] == [grape_leaves.id]

    def test_clear_cart_resets_everything(self, kibbeh, grape_leaves):
        cart = Cart()
        cart.add_item(kibbeh, 3)
        cart.add_item(grape_leaves, 1.5)

        cart.clear_cart()

        assert cart.items == []
        assert cart.get_total_items() == 0
        assert cart.get_total_price() == 0


class TestTotals:
    def test_mixed_units(self, kibbeh, grape_leaves):
        cart = Cart()
        cart.add_item(kibbeh, 2)
        cart.add_item(grape_leaves, 1.5)

        assert cart.get_total_items() == 3.5
        assert cart.get_total_price() == 500 * 2 + 600 * 1.5

    def test_half_kilo_total_is_not_rounded(self, make_product):
        odd = make_product("زعتر", price=333, unit_type=UnitType.KILO)
        cart = Cart()
        cart.add_item(odd, 0.5)

        assert cart.get_total_price() == 166.5

    def test_random_operation_sequences_keep_totals_consistent(self, make_product):
        rng = random.Random(1234)
        products = [
            make_product(f"p{i}", price=rng.randint(0, 3000), unit_type=rng.choice(list(UnitType)))
            for i in range(5)
        ]
        cart = Cart()

        for _ in range(500):
            product = rng.choice(products)
            op = rng.choice(["add", "update", "remove", "increment", "decrement"])
            if op == "add":
                cart.add_item(product, rng.choice([0.5, 1, 2, -1, 0]))
            elif op == "update":
                cart.update_quantity(product.id, rng.choice([-1, 0, 0.5, 1, 3.5]))
            elif op == "remove":
                cart.remove_item(product.id)
            elif op == "increment":
                cart.increment(product.id)
            else:
                cart.decrement(product.id)

            assert_totals_consistent(cart)


class TestSteps:
    def test_step_by_unit(self):
        assert quantity_step(UnitType.KILO) == 0.5
        assert quantity_step(UnitType.PIECE) == 1
        assert quantity_step("dozen") == 1

    def test_step_down_floors_at_one_step(self):
        assert step_down(0.5, UnitType.KILO) == 0.5
        assert step_down(1, UnitType.PIECE) == 1
        assert step_down(2, UnitType.KILO) == 1.5

    def test_step_up(self):
        assert step_up(1.5, UnitType.KILO) == 2
        assert step_up(1, UnitType.DOZEN) == 2

    def test_increment_and_decrement_use_unit_step(self, grape_leaves):
        cart = Cart()
        cart.add_item(grape_leaves, 1)

        cart.increment(grape_leaves.id)
        assert cart.get_item(grape_leaves.id).quantity == 1.5

        cart.decrement(grape_leaves.id)
        cart.decrement(grape_leaves.id)
        assert cart.get_item(grape_leaves.id).quantity == 0.5

    def test_decrement_last_step_removes_line(self, kibbeh):
        cart = Cart()
        cart.add_item(kibbeh, 1)
        cart.decrement(kibbeh.id)
        assert cart.get_item(kibbeh.id) is None


class TestVisibility:
    def test_flags_do_not_touch_contents(self, kibbeh):
        cart = Cart()
        cart.add_item(kibbeh, 2)

        cart.open_cart()
        assert cart.is_cart_open
        cart.open_checkout()
        assert cart.is_checkout_open and not cart.is_cart_open
        cart.close_checkout()

        assert not cart.is_checkout_open
        assert cart.get_item(kibbeh.id).quantity == 2

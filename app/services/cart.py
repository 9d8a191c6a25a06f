"""
Shopping Cart

Session-owned cart state. A Cart is created per browsing session and
passed explicitly to whatever renders or checks it out; there is no
module-level cart. Nothing here touches storage or the network.

Quantities are rational: kilo-priced products move in steps of 0.5,
everything else in whole units.

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
from dataclasses import dataclass
from typing import Optional, Union

from app.models import UnitType
from app.schemas import Product

logger = logging.getLogger(__name__)

Quantity = Union[int, float]


def quantity_step(unit_type: Union[UnitType, str]) -> float:
    """0.5 for kilo-priced products, 1 otherwise."""
    return UnitType(unit_type).step


def step_up(quantity: Quantity, unit_type: Union[UnitType, str]) -> Quantity:
    return quantity + quantity_step(unit_type)


def step_down(quantity: Quantity, unit_type: Union[UnitType, str]) -> Quantity:
    """Decrease by one step, never going below a single step."""
    step = quantity_step(unit_type)
    return max(step, quantity - step)


@dataclass
class CartItem:
    """A product snapshot and how much of it the shopper wants."""
    product: Product
    quantity: Quantity

    @property
    def line_total(self) -> float:
        return self.product.price * self.quantity


class Cart:
    """
    Cart state for one shopper.

    Invariant: no line ever holds a quantity <= 0. Lines keep the
    product as it was when first added, so later catalog edits or
    deletions do not reach into an existing cart.

    Attributes:
        is_cart_open: Cart panel visibility
        is_checkout_open: Checkout dialog visibility

    Example:
        >>> cart = Cart()
        >>> cart.add_item(kibbeh, 2)
        >>> cart.get_total_price()
        1000
    """

    def __init__(self):
        self._lines: dict[int, CartItem] = {}
        self.is_cart_open = False
        self.is_checkout_open = False

    @property
    def items(self) -> list[CartItem]:
        """Lines in the order they were first added."""
        return list(self._lines.values())

    def get_item(self, product_id: int) -> Optional[CartItem]:
        return self._lines.get(product_id)

    def __len__(self) -> int:
        return len(self._lines)

    def __bool__(self) -> bool:
        return bool(self._lines)

    # =========================================================================
    # MUTATIONS
    # =========================================================================

    def add_item(self, product: Product, quantity: Quantity = 1) -> None:
        """
        Add a product, or add to its existing quantity.

        No upper bound is enforced. A non-positive result removes the
        line (or never creates it).
        """
        line = self._lines.get(product.id)
        if line is not None:
            self.update_quantity(product.id, line.quantity + quantity)
            return

        if quantity <= 0:
            logger.debug(f"Ignoring add of product {product.id} with quantity {quantity}")
            return

        self._lines[product.id] = CartItem(product=product.model_copy(), quantity=quantity)

    def update_quantity(self, product_id: int, quantity: Quantity) -> None:
        """Set a line's quantity; zero or less removes the line."""
        if quantity <= 0:
            self.remove_item(product_id)
            return

        line = self._lines.get(product_id)
        if line is not None:
            line.quantity = quantity

    def remove_item(self, product_id: int) -> None:
        self._lines.pop(product_id, None)

    def clear_cart(self) -> None:
        self._lines.clear()

    def increment(self, product_id: int) -> None:
        """Raise a line by one unit step."""
        line = self._lines.get(product_id)
        if line is not None:
            self.update_quantity(product_id, step_up(line.quantity, line.product.unit_type))

    def decrement(self, product_id: int) -> None:
        """Lower a line by one unit step; the last step removes it."""
        line = self._lines.get(product_id)
        if line is not None:
            self.update_quantity(product_id, line.quantity - quantity_step(line.product.unit_type))

    # =========================================================================
    # DERIVED VALUES
    # =========================================================================

    def get_total_items(self) -> Quantity:
        """Sum of quantities, fractional kilos included (badge count)."""
        return sum(line.quantity for line in self._lines.values())

    def get_total_price(self) -> float:
        """
        Sum of price × quantity in minor units.

        Not rounded: half-kilo lines can produce a fractional number of
        minor units. Rounding happens only when the value is displayed.
        """
        return sum(line.line_total for line in self._lines.values())

    # =========================================================================
    # VISIBILITY
    # =========================================================================

    def open_cart(self) -> None:
        self.is_cart_open = True

    def close_cart(self) -> None:
        self.is_cart_open = False

    def open_checkout(self) -> None:
        """Move from the cart panel to the checkout dialog."""
        self.is_cart_open = False
        self.is_checkout_open = True

    def close_checkout(self) -> None:
        self.is_checkout_open = False

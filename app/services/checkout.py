"""
WhatsApp Checkout

Turns a cart into a pre-filled WhatsApp message. Opening the wa.me link
is the whole order submission: there is no order record, payment or
acknowledgement on our side.

Message layout (Arabic):

    مرحباً، أريد طلب:

    - كبة مقلية: 2 حبة
    - كبة مشوية: 1.5 كيلو

    المجموع: 28.00 د.أ

    استلام من المحل            ← takeaway
  or
    التوصيل إلى: عبدون         ← delivery
    سعر التوصيل: 2.50 د.أ
    الإجمالي مع التوصيل: 30.50 د.أ

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
import re
import webbrowser
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional
from urllib.parse import quote

from app.core.config import get_settings
from app.schemas import DeliveryLocation
from app.services.cart import Cart, Quantity
from app.services.storage.base import BaseStorage

logger = logging.getLogger(__name__)

WHATSAPP_BASE_URL = "https://wa.me/"

MESSAGE_HEADER = "مرحباً، أريد طلب:"
SUBTOTAL_LABEL = "المجموع"
PICKUP_TEXT = "استلام من المحل"
DELIVERY_TO_LABEL = "التوصيل إلى"
DELIVERY_PRICE_LABEL = "سعر التوصيل"
GRAND_TOTAL_LABEL = "الإجمالي مع التوصيل"
NO_LOCATIONS_MESSAGE = "لا توجد مناطق توصيل متاحة حالياً، يمكنك الاستلام من المحل"

# Characters encodeURIComponent leaves alone besides alphanumerics and "_.-~"
_URI_COMPONENT_SAFE = "!*'()"


def format_money(minor_units: float) -> str:
    """Minor units → "12.50"."""
    return f"{minor_units / 100:.2f}"


def format_quantity(quantity: Quantity) -> str:
    """2.0 → "2", 1.5 → "1.5"."""
    if float(quantity).is_integer():
        return str(int(quantity))
    return str(quantity)


def build_order_message(
    cart: Cart,
    location: Optional[DeliveryLocation] = None,
    currency: Optional[str] = None,
) -> str:
    """
    Compose the order text for a cart.

    Args:
        cart: Cart whose lines are listed
        location: Delivery location, or None for takeaway
        currency: Currency label (defaults to settings.currency_label)

    Returns:
        str: Plain (not yet URL-encoded) message
    """
    currency = currency or get_settings().currency_label
    subtotal = cart.get_total_price()

    message = f"{MESSAGE_HEADER}\n\n"
    for line in cart.items:
        product = line.product
        message += f"- {product.name}: {format_quantity(line.quantity)} {product.unit_type.label}\n"

    message += f"\n{SUBTOTAL_LABEL}: {format_money(subtotal)} {currency}"

    if location is not None:
        message += f"\n\n{DELIVERY_TO_LABEL}: {location.name}"
        message += f"\n{DELIVERY_PRICE_LABEL}: {format_money(location.price)} {currency}"
        message += f"\n{GRAND_TOTAL_LABEL}: {format_money(subtotal + location.price)} {currency}"
    else:
        message += f"\n\n{PICKUP_TEXT}"

    return message


def build_whatsapp_link(message: str, phone: Optional[str] = None) -> str:
    """
    wa.me deep link with the message as its only parameter.

    Without a phone number WhatsApp asks the user to pick a chat.
    """
    digits = re.sub(r"\D", "", phone or "")
    return f"{WHATSAPP_BASE_URL}{digits}?text={quote(message, safe=_URI_COMPONENT_SAFE)}"


@dataclass
class OrderHandOff:
    """Everything needed to hand an order to WhatsApp."""
    message: str
    url: str
    subtotal: float
    delivery_price: Optional[int]
    total: float

    @property
    def is_delivery(self) -> bool:
        return self.delivery_price is not None


def compose_order(
    cart: Cart,
    location: Optional[DeliveryLocation] = None,
    phone: Optional[str] = None,
    currency: Optional[str] = None,
) -> OrderHandOff:
    """Build message, link and totals for a cart without side effects."""
    settings = get_settings()
    message = build_order_message(cart, location, currency)
    subtotal = cart.get_total_price()
    delivery_price = location.price if location is not None else None

    return OrderHandOff(
        message=message,
        url=build_whatsapp_link(message, phone if phone is not None else settings.whatsapp_phone),
        subtotal=subtotal,
        delivery_price=delivery_price,
        total=subtotal + (delivery_price or 0),
    )


# =============================================================================
# CHECKOUT FLOW
# =============================================================================

class CheckoutStep(str, Enum):
    CHOICE = "choice"
    DELIVERY = "delivery"


class CheckoutSession:
    """
    Checkout dialog state for one cart.

    Flow: CHOICE → (takeaway | DELIVERY → pick a location). Either path
    opens the WhatsApp link, then clears the cart and resets to CHOICE.
    Whether the link actually opened is not observable here.

    Example:
        >>> session = CheckoutSession(cart, opener=webbrowser.open)
        >>> session.choose_takeaway()
        'https://wa.me/?text=...'
    """

    def __init__(
        self,
        cart: Cart,
        opener: Callable[[str], object] = webbrowser.open,
        phone: Optional[str] = None,
        currency: Optional[str] = None,
    ):
        self.cart = cart
        self.opener = opener
        self.phone = phone
        self.currency = currency
        self.step = CheckoutStep.CHOICE
        self.locations: list[DeliveryLocation] = []
        self.selected_location: Optional[DeliveryLocation] = None

    async def load_locations(self, storage: BaseStorage) -> list[DeliveryLocation]:
        """
        Fetch delivery locations for the DELIVERY step.

        A failed fetch yields an empty list; takeaway stays available.
        """
        try:
            self.locations = await storage.get_delivery_locations()
        except Exception as e:
            logger.warning(f"Could not load delivery locations: {e}")
            self.locations = []
        return self.locations

    @property
    def empty_state_message(self) -> Optional[str]:
        """Fallback text shown when there is no location to pick."""
        return None if self.locations else NO_LOCATIONS_MESSAGE

    def choose_delivery(self) -> None:
        self.step = CheckoutStep.DELIVERY

    def back(self) -> None:
        self.step = CheckoutStep.CHOICE

    def close(self) -> None:
        self.cart.close_checkout()
        self.step = CheckoutStep.CHOICE
        self.selected_location = None

    def choose_takeaway(self) -> str:
        return self._hand_off(None)

    def select_location(self, location: DeliveryLocation) -> str:
        self.selected_location = location
        return self._hand_off(location)

    def _hand_off(self, location: Optional[DeliveryLocation]) -> str:
        if not self.cart:
            raise ValueError("Cannot check out an empty cart")

        order = compose_order(self.cart, location, self.phone, self.currency)
        self.opener(order.url)
        logger.info(
            f"📲 Order handed to WhatsApp "
            f"({'delivery' if order.is_delivery else 'takeaway'}, "
            f"total {format_money(order.total)})"
        )

        self.cart.clear_cart()
        self.close()
        return order.url

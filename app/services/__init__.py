"""
                        Services Module

Business logic services. External-facing services follow the hybrid
pattern: an abstract base plus interchangeable implementations chosen
once from configuration.

Services:
    - storage: Catalog store (in-memory or SQLAlchemy)
    - cdn: Image CDN listing and upload signing (mock or ImageKit)
    - sync: CDN → catalog import job and its scheduler
    - cart: Session cart state
    - checkout: WhatsApp order hand-off
"""

from app.services.cart import Cart, CartItem
from app.services.checkout import CheckoutSession, compose_order

__all__ = ["Cart", "CartItem", "CheckoutSession", "compose_order"]

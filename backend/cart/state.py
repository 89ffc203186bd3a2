"""
Client-side cart state.

The cart is never stored in the database: it lives in the customer's session
(or any other key-value store) until checkout turns it into an Order. Both
types are immutable; every cart mutation produces a new ``CartState``.
"""

from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Any, Dict, Mapping, Optional, Tuple

from core_backend.config import app_settings
from core_backend.utils.money import quantize


@dataclass(frozen=True)
class CartItem:
    """
    A menu item snapshot taken when it was added to the cart.

    ``unit_price`` is rounded to the currency's minor unit on construction.
    """

    id: str
    name: str
    unit_price: Decimal
    restaurant_id: str
    quantity: int = 1

    def __post_init__(self):
        object.__setattr__(self, "unit_price", quantize(app_settings.currency, self.unit_price))
        if self.unit_price < 0:
            raise ValueError(f"unit_price must be >= 0, got {self.unit_price}")
        if self.quantity < 1:
            raise ValueError(f"quantity must be >= 1, got {self.quantity}")

    @classmethod
    def from_menu_item(cls, menu_item: Mapping[str, Any], quantity: int = 1) -> "CartItem":
        """
        Build a cart item from a catalog record.

        Accepts ``price`` or ``unit_price`` and ``restaurant_id`` or
        ``restaurantId`` so catalog payloads can be passed through as-is.
        """
        price = menu_item.get("unit_price", menu_item.get("price"))
        restaurant_id = menu_item.get("restaurant_id", menu_item.get("restaurantId"))
        return cls(
            id=str(menu_item["id"]),
            name=menu_item["name"],
            unit_price=price,
            restaurant_id=str(restaurant_id),
            quantity=quantity,
        )

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity

    def with_quantity(self, quantity: int) -> "CartItem":
        return replace(self, quantity=quantity)

    def to_storage(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "unitPrice": str(self.unit_price),
            "quantity": self.quantity,
            "restaurantId": self.restaurant_id,
        }


@dataclass(frozen=True)
class CartState:
    """
    Invariants:
    - all items share ``restaurant_id``; ``restaurant_id`` is None iff there are no items
    - a coupon and loyalty points are never applied at the same time
    """

    items: Tuple[CartItem, ...] = field(default_factory=tuple)
    restaurant_id: Optional[str] = None
    applied_coupon_code: Optional[str] = None
    coupon_discount_amount: Decimal = Decimal("0.00")
    applied_loyalty_points: int = 0
    loyalty_discount_amount: Decimal = Decimal("0.00")

    @property
    def is_empty(self) -> bool:
        return not self.items

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items)

    @property
    def subtotal(self) -> Decimal:
        return sum((item.line_total for item in self.items), Decimal("0.00"))

    @property
    def has_discount(self) -> bool:
        return self.applied_coupon_code is not None or self.applied_loyalty_points > 0

    def get_item(self, item_id: str) -> Optional[CartItem]:
        for item in self.items:
            if item.id == item_id:
                return item
        return None

    def to_storage(self) -> Dict[str, Any]:
        """Blob persisted after every mutation. Discounts are not persisted."""
        return {
            "items": [item.to_storage() for item in self.items],
            "restaurantId": self.restaurant_id,
        }

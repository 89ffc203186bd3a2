"""
Cart service layer for managing the customer's shopping cart.

This service handles:
- Adding/updating/removing items (single restaurant per cart)
- Applying and removing a coupon or loyalty-point discount (never both)
- Persisting the cart to the session after every mutation and rebuilding it on load
- Price previews through the shared PricingEngine
"""

from dataclasses import replace
from typing import Any, Mapping, MutableMapping, Optional, Union
import json
import logging

from core_backend.config import app_settings
from core_backend.exceptions import (
    ConflictingDiscount,
    CrossRestaurantItem,
    InvalidLoyaltyRedemption,
    ValidationError,
)
from core_backend.utils.money import ZERO
from discounts.policy import DiscountPolicy
from orders.calculators import PriceQuote, PricingEngine

from .serializers import StoredCartSerializer
from .state import CartItem, CartState

logger = logging.getLogger(__name__)


class CartStore:
    """
    Authoritative cart for one client session.

    ``storage`` is any mutable mapping; in views it is ``request.session``.
    Mutations are synchronous and confined to a single client, so no locking
    is done here.
    """

    def __init__(
        self,
        storage: MutableMapping[str, Any],
        storage_key: Optional[str] = None,
        policy: Optional[DiscountPolicy] = None,
    ):
        self.storage = storage
        self.storage_key = storage_key or app_settings.cart_session_key
        self.policy = policy or DiscountPolicy()
        self._state = self._load()

    # ------------------------------------------------------------------
    # Read helpers
    # ------------------------------------------------------------------

    @property
    def state(self) -> CartState:
        return self._state

    @property
    def is_empty(self) -> bool:
        return self._state.is_empty

    @property
    def item_count(self) -> int:
        return self._state.item_count

    def quote(self) -> PriceQuote:
        """Price preview with the currently applied discount."""
        return PricingEngine.calculate_totals(
            self._state.items,
            coupon_discount=self._state.coupon_discount_amount,
            loyalty_discount=self._state.loyalty_discount_amount,
        )

    # ------------------------------------------------------------------
    # Item mutations
    # ------------------------------------------------------------------

    def add_item(self, item: Union[CartItem, Mapping[str, Any]]) -> CartState:
        """
        Add one unit of a menu item.

        Raises:
            CrossRestaurantItem: the cart holds items from another restaurant (cart unchanged)
        """
        if not isinstance(item, CartItem):
            item = CartItem.from_menu_item(item)

        state = self._state
        if state.is_empty:
            return self._commit(
                replace(state, items=(item.with_quantity(1),), restaurant_id=item.restaurant_id)
            )

        if item.restaurant_id != state.restaurant_id:
            logger.info(
                f"Rejected item {item.id} from restaurant {item.restaurant_id}; "
                f"cart belongs to restaurant {state.restaurant_id}"
            )
            raise CrossRestaurantItem(
                f"Cart belongs to restaurant {state.restaurant_id}, item {item.id} "
                f"is from restaurant {item.restaurant_id}",
                item_id=item.id,
            )

        existing = state.get_item(item.id)
        if existing:
            items = tuple(
                line.with_quantity(line.quantity + 1) if line.id == item.id else line
                for line in state.items
            )
        else:
            items = state.items + (item.with_quantity(1),)
        return self._commit(replace(state, items=items))

    def remove_item(self, item_id: str) -> CartState:
        state = self._state
        if state.get_item(item_id) is None:
            return state

        items = tuple(line for line in state.items if line.id != item_id)
        if not items:
            # Empty cart has no restaurant affinity and no discount
            return self._commit(CartState())
        return self._commit(replace(state, items=items))

    def update_quantity(self, item_id: str, quantity: int) -> CartState:
        """Set an item's quantity; zero or less removes the item."""
        if quantity <= 0:
            return self.remove_item(item_id)

        state = self._state
        if state.get_item(item_id) is None:
            return state

        items = tuple(
            line.with_quantity(quantity) if line.id == item_id else line for line in state.items
        )
        return self._commit(replace(state, items=items))

    def clear(self) -> CartState:
        return self._commit(CartState())

    # ------------------------------------------------------------------
    # Discounts
    # ------------------------------------------------------------------

    def apply_coupon(self, code: str) -> CartState:
        """
        Raises:
            ConflictingDiscount: loyalty points are applied
            InvalidCoupon: unknown code
            ValidationError: cart is empty
        """
        state = self._state
        if not self.policy.can_apply_coupon(state):
            raise ConflictingDiscount(
                "Remove the loyalty points discount before applying a coupon.",
                applied_loyalty_points=state.applied_loyalty_points,
            )

        normalized, amount = self.policy.coupon_discount_amount(code)
        if state.is_empty:
            raise ValidationError("Add items to the cart before applying a coupon.")

        logger.info(f"Applied coupon {normalized} ({amount}) to cart for restaurant {state.restaurant_id}")
        return self._commit(
            replace(state, applied_coupon_code=normalized, coupon_discount_amount=amount)
        )

    def remove_coupon(self) -> CartState:
        state = self._state
        if state.applied_coupon_code is None:
            return state
        return self._commit(replace(state, applied_coupon_code=None, coupon_discount_amount=ZERO))

    def apply_loyalty(self, points: int) -> CartState:
        """
        Redeem loyalty points at the best tier ``points`` unlocks.

        The points recorded on the cart are the tier's cost, not ``points``.

        Raises:
            ConflictingDiscount: a coupon is applied
            InvalidLoyaltyRedemption: ``points`` is below the lowest tier
            ValidationError: cart is empty
        """
        state = self._state
        if not self.policy.can_apply_loyalty(state):
            raise ConflictingDiscount(
                "Remove the coupon before redeeming loyalty points.",
                applied_coupon_code=state.applied_coupon_code,
            )

        tier = self.policy.applicable_tier(int(points))
        if tier is None:
            raise InvalidLoyaltyRedemption(
                f"{points} points do not unlock any discount tier", points=points
            )
        if state.is_empty:
            raise ValidationError("Add items to the cart before redeeming points.")

        cost = self.policy.redemption_cost(tier)
        logger.info(f"Applied loyalty tier {tier.label} ({cost} points) to cart")
        return self._commit(replace(state, applied_loyalty_points=cost))

    def remove_loyalty(self) -> CartState:
        state = self._state
        if state.applied_loyalty_points == 0:
            return state
        return self._commit(replace(state, applied_loyalty_points=0, loyalty_discount_amount=ZERO))

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _commit(self, state: CartState) -> CartState:
        self._state = self._refresh_discounts(state)
        self.storage[self.storage_key] = json.dumps(self._state.to_storage())
        return self._state

    def _refresh_discounts(self, state: CartState) -> CartState:
        """Recompute the loyalty amount against the current subtotal."""
        if state.applied_loyalty_points > 0:
            tier = self.policy.applicable_tier(state.applied_loyalty_points)
            amount = self.policy.loyalty_discount_amount(state.subtotal, tier) if tier else ZERO
            return replace(state, loyalty_discount_amount=amount)
        return state

    def _load(self) -> CartState:
        raw = self.storage.get(self.storage_key)
        if raw is None:
            return CartState()

        try:
            data = json.loads(raw) if isinstance(raw, (str, bytes)) else raw
        except ValueError as e:
            logger.warning(f"Discarding unparsable cart blob under '{self.storage_key}': {e}")
            self.storage.pop(self.storage_key, None)
            return CartState()

        serializer = StoredCartSerializer(data=data)
        if not serializer.is_valid():
            logger.warning(f"Discarding invalid cart blob under '{self.storage_key}': {serializer.errors}")
            self.storage.pop(self.storage_key, None)
            return CartState()

        validated = serializer.validated_data
        items = {}
        for entry in validated["items"]:
            item = CartItem(**entry)
            if item.id in items:
                item = items[item.id].with_quantity(items[item.id].quantity + item.quantity)
            items[item.id] = item

        if not items:
            return CartState()
        return CartState(items=tuple(items.values()), restaurant_id=validated["restaurant_id"])

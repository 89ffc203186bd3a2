"""
Discount rules shared by the cart and checkout.

Two mechanisms exist and only one may be active on a cart at a time:

* Coupons: a fixed code → flat amount table, matched case-insensitively.
* Loyalty points (supercoins): a tier table mapping a point threshold to a
  percentage of the subtotal. The applicable tier for a balance is the one
  with the highest threshold not exceeding it.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple
import logging

from core_backend.config import app_settings
from core_backend.exceptions import InvalidCoupon
from core_backend.utils.money import quantize, to_decimal

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DiscountTier:
    points_threshold: int
    discount_percent: int

    @property
    def label(self) -> str:
        return f"{self.discount_percent}% Off"


class DiscountPolicy:
    """
    Tier lookup, coupon validation and the coupon/loyalty exclusion rule.

    Tiers and coupons default to the configured tables; pass them explicitly
    to evaluate an alternative policy.
    """

    def __init__(
        self,
        tiers: Optional[Iterable[Tuple[int, int]]] = None,
        coupons: Optional[Dict[str, Decimal]] = None,
        currency: Optional[str] = None,
    ):
        if tiers is None:
            tiers = app_settings.loyalty_discount_tiers
        if coupons is None:
            coupons = app_settings.coupon_codes
        self.currency = currency or app_settings.currency
        self.tiers: List[DiscountTier] = sorted(
            (DiscountTier(int(threshold), int(percent)) for threshold, percent in tiers),
            key=lambda tier: tier.points_threshold,
            reverse=True,
        )
        self.coupons = {
            self.normalize_coupon_code(code): to_decimal(amount) for code, amount in coupons.items()
        }

    # ------------------------------------------------------------------
    # Loyalty tiers
    # ------------------------------------------------------------------

    def applicable_tier(self, point_balance: int) -> Optional[DiscountTier]:
        """Highest tier whose threshold is <= the balance, or None."""
        for tier in self.tiers:
            if tier.points_threshold <= point_balance:
                return tier
        return None

    def available_tiers(self, point_balance: int) -> List[DiscountTier]:
        """Every tier the balance unlocks, lowest threshold first."""
        return [tier for tier in reversed(self.tiers) if tier.points_threshold <= point_balance]

    def loyalty_discount_amount(self, subtotal, tier: DiscountTier) -> Decimal:
        subtotal = to_decimal(subtotal)
        amount = subtotal * Decimal(tier.discount_percent) / Decimal("100")
        return quantize(self.currency, min(subtotal, amount))

    @staticmethod
    def redemption_cost(tier: DiscountTier) -> int:
        """Points spent when a tier is redeemed."""
        return tier.points_threshold

    # ------------------------------------------------------------------
    # Coupons
    # ------------------------------------------------------------------

    @staticmethod
    def normalize_coupon_code(code) -> str:
        return str(code or "").strip().upper()

    def coupon_discount_amount(self, code) -> Tuple[str, Decimal]:
        """
        Look up a coupon.

        Returns:
            (normalized code, flat discount amount)

        Raises:
            InvalidCoupon: code is not in the coupon table
        """
        normalized = self.normalize_coupon_code(code)
        if not normalized or normalized not in self.coupons:
            logger.info(f"Rejected unknown coupon code '{normalized}'")
            raise InvalidCoupon(f"Coupon code '{code}' is not valid", code=normalized)
        return normalized, quantize(self.currency, self.coupons[normalized])

    # ------------------------------------------------------------------
    # Mutual exclusion
    # ------------------------------------------------------------------

    @staticmethod
    def can_apply_coupon(cart) -> bool:
        return cart.applied_loyalty_points == 0

    @staticmethod
    def can_apply_loyalty(cart) -> bool:
        return cart.applied_coupon_code is None

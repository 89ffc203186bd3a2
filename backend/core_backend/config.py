"""
Centralized access to order engine configuration.

Business logic reads its constants (tax rate, delivery fee, coupon table,
loyalty tiers, retry policy) through the ``app_settings`` singleton instead
of touching ``django.conf.settings`` directly. Values are resolved on every
access so ``override_settings`` takes effect immediately.
"""

from decimal import Decimal
from typing import Dict, List, Optional, Tuple
from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
import logging

logger = logging.getLogger(__name__)


class AppSettings:
    """
    Singleton wrapper around the ORDER_* / COUPON_* / LOYALTY_* Django settings.
    """

    _instance: Optional["AppSettings"] = None

    DEFAULTS = {
        "ORDER_CURRENCY": "INR",
        "ORDER_TAX_RATE": Decimal("0.05"),
        "ORDER_DELIVERY_FEE": Decimal("49.00"),
        "COUPON_CODES": {},
        "LOYALTY_DISCOUNT_TIERS": [],
        "DONATION_REWARD_POINTS": 0,
        "CART_SESSION_KEY": "cart",
        "ORDER_WRITE_MAX_ATTEMPTS": 3,
        "ORDER_WRITE_RETRY_DELAY": 0.1,
        "ORDER_NOTIFIER": "orders.services.notification_service.SignalNotifier",
    }

    def __new__(cls) -> "AppSettings":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def _get(self, name: str):
        return getattr(settings, name, self.DEFAULTS[name])

    @property
    def currency(self) -> str:
        return self._get("ORDER_CURRENCY")

    @property
    def tax_rate(self) -> Decimal:
        return Decimal(str(self._get("ORDER_TAX_RATE")))

    @property
    def delivery_fee(self) -> Decimal:
        return Decimal(str(self._get("ORDER_DELIVERY_FEE")))

    @property
    def coupon_codes(self) -> Dict[str, Decimal]:
        """Coupon table keyed by upper-cased code."""
        return {
            str(code).strip().upper(): Decimal(str(amount))
            for code, amount in self._get("COUPON_CODES").items()
        }

    @property
    def loyalty_discount_tiers(self) -> List[Tuple[int, int]]:
        tiers = []
        for entry in self._get("LOYALTY_DISCOUNT_TIERS"):
            try:
                threshold, percent = entry
            except (TypeError, ValueError):
                raise ImproperlyConfigured(
                    f"LOYALTY_DISCOUNT_TIERS entries must be (threshold, percent) pairs, got {entry!r}"
                )
            if int(threshold) < 1:
                raise ImproperlyConfigured(
                    f"Loyalty discount threshold must be at least 1 point, got {threshold}"
                )
            if not 0 <= int(percent) <= 100:
                raise ImproperlyConfigured(
                    f"Loyalty discount percent must be between 0 and 100, got {percent}"
                )
            tiers.append((int(threshold), int(percent)))
        return tiers

    @property
    def donation_reward_points(self) -> int:
        return int(self._get("DONATION_REWARD_POINTS"))

    @property
    def cart_session_key(self) -> str:
        return self._get("CART_SESSION_KEY")

    @property
    def order_write_max_attempts(self) -> int:
        return max(1, int(self._get("ORDER_WRITE_MAX_ATTEMPTS")))

    @property
    def order_write_retry_delay(self) -> float:
        return float(self._get("ORDER_WRITE_RETRY_DELAY"))

    @property
    def order_notifier_path(self) -> str:
        return self._get("ORDER_NOTIFIER")


# Create a single, globally accessible instance of the settings.
app_settings = AppSettings()

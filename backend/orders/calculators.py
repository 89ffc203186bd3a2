"""
Order and Cart financial calculators.

This module provides the single pricing implementation used for cart
previews and for the final order record, so both always agree.

Rules:
- subtotal = Σ unit_price * quantity
- tax is charged on the pre-discount subtotal
- discounts are clamped so they never exceed the subtotal
- total = (subtotal - coupon - loyalty) + delivery_fee + tax, never negative

Usage:
    from orders.calculators import PricingEngine
    quote = PricingEngine.calculate_totals(cart.items, coupon_discount=Decimal("50"))
"""

from dataclasses import asdict, dataclass
from decimal import Decimal
from typing import Any, Dict, Iterable, Optional

from core_backend.config import app_settings
from core_backend.utils.money import ZERO, quantize, to_decimal


@dataclass(frozen=True)
class PriceQuote:
    subtotal: Decimal
    coupon_discount: Decimal
    loyalty_discount: Decimal
    delivery_fee: Decimal
    tax: Decimal
    total: Decimal

    @property
    def discount_total(self) -> Decimal:
        return self.coupon_discount + self.loyalty_discount

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


class PricingEngine:
    """
    Stateless price calculator.

    Works on anything with ``unit_price`` and ``quantity`` attributes (cart
    items) or keys (order line dicts).
    """

    @staticmethod
    def _line_values(item):
        if isinstance(item, dict):
            return to_decimal(item["unit_price"]), int(item["quantity"])
        return to_decimal(item.unit_price), int(item.quantity)

    @staticmethod
    def calculate_subtotal(items: Iterable, currency: Optional[str] = None) -> Decimal:
        """
        Calculate subtotal from all items.

        Returns:
            Decimal: Subtotal (before discounts and tax)
        """
        currency = currency or app_settings.currency
        subtotal = ZERO
        for item in items:
            unit_price, quantity = PricingEngine._line_values(item)
            subtotal += unit_price * quantity
        return quantize(currency, subtotal)

    @staticmethod
    def calculate_tax(subtotal, tax_rate=None, currency: Optional[str] = None) -> Decimal:
        """Tax on the given (pre-discount) subtotal."""
        currency = currency or app_settings.currency
        tax_rate = app_settings.tax_rate if tax_rate is None else to_decimal(tax_rate)
        return quantize(currency, to_decimal(subtotal) * tax_rate)

    @staticmethod
    def calculate_totals(
        items: Iterable,
        coupon_discount=ZERO,
        loyalty_discount=ZERO,
        delivery_fee=None,
        tax_rate=None,
        currency: Optional[str] = None,
    ) -> PriceQuote:
        """
        Price a set of items with the given discount amounts.

        The returned quote reports the clamped discounts, so
        ``total == subtotal - coupon_discount - loyalty_discount + delivery_fee + tax``
        holds exactly.
        """
        currency = currency or app_settings.currency
        delivery_fee = app_settings.delivery_fee if delivery_fee is None else to_decimal(delivery_fee)
        delivery_fee = quantize(currency, delivery_fee)

        subtotal = PricingEngine.calculate_subtotal(items, currency)
        tax = PricingEngine.calculate_tax(subtotal, tax_rate, currency)

        # Clamp: coupon first, loyalty takes whatever subtotal remains
        coupon = quantize(currency, min(max(to_decimal(coupon_discount), ZERO), subtotal))
        loyalty = quantize(currency, min(max(to_decimal(loyalty_discount), ZERO), subtotal - coupon))

        discounted = max(ZERO, subtotal - coupon - loyalty)
        total = quantize(currency, discounted + delivery_fee + tax)

        return PriceQuote(
            subtotal=subtotal,
            coupon_discount=coupon,
            loyalty_discount=loyalty,
            delivery_fee=delivery_fee,
            tax=tax,
            total=total,
        )

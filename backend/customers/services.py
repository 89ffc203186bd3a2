"""
Customer loyalty (supercoin) ledger.
"""
from decimal import Decimal
from django.db import transaction
import logging

from core_backend.exceptions import InsufficientLoyaltyBalance, ValidationError
from core_backend.utils.retry import retry_on_db_error
from discounts.policy import DiscountPolicy

from .models import LoyaltyAccount, LoyaltyLedgerEntry

logger = logging.getLogger(__name__)


class LoyaltyService:
    """
    Balance movements for customer supercoins.

    Every movement tied to an order is recorded once per (order, kind); calling
    the same operation again for that order returns the existing entry without
    touching the balance.
    """

    @staticmethod
    def get_balance(customer_id: str) -> int:
        account = LoyaltyAccount.objects.filter(customer_id=customer_id).first()
        return account.points_balance if account else 0

    @staticmethod
    def available_tiers(customer_id: str, policy: DiscountPolicy = None):
        """Discount tiers the customer's current balance unlocks."""
        policy = policy or DiscountPolicy()
        return policy.available_tiers(LoyaltyService.get_balance(customer_id))

    @staticmethod
    def _existing_entry(order_id, kind):
        if order_id is None:
            return None
        return LoyaltyLedgerEntry.objects.filter(order_id=order_id, kind=kind).first()

    @staticmethod
    def _locked_account(customer_id: str) -> LoyaltyAccount:
        account, created = LoyaltyAccount.objects.select_for_update().get_or_create(
            customer_id=customer_id
        )
        if created:
            logger.info(f"Created loyalty account for customer {customer_id}")
        return account

    @staticmethod
    @retry_on_db_error("loyalty award")
    def award_points(
        customer_id: str,
        points: int,
        order_id=None,
        kind: str = LoyaltyLedgerEntry.Kind.AWARD,
    ) -> LoyaltyLedgerEntry:
        """Add points to a customer's balance."""
        if not customer_id or points <= 0:
            raise ValidationError(
                "Invalid customer id or amount for awarding points.", customer_id=customer_id, points=points
            )

        with transaction.atomic():
            existing = LoyaltyService._existing_entry(order_id, kind)
            if existing:
                logger.info(f"Points already awarded ({kind}) for order {order_id}, skipping")
                return existing

            account = LoyaltyService._locked_account(customer_id)
            account.points_balance += points
            account.save(update_fields=["points_balance", "updated_at"])

            entry = LoyaltyLedgerEntry.objects.create(
                customer_id=customer_id, order_id=order_id, kind=kind, points=points
            )

        logger.info(f"Awarded {points} points to customer {customer_id} ({kind})")
        return entry

    @staticmethod
    @retry_on_db_error("loyalty redemption")
    def redeem_points(
        customer_id: str, points: int, discount_amount: Decimal, order_id
    ) -> LoyaltyLedgerEntry:
        """
        Deduct redeemed points and add the discount to the customer's claimed total.

        Raises:
            InsufficientLoyaltyBalance: balance is lower than ``points``
        """
        if not customer_id or points <= 0 or discount_amount < 0:
            raise ValidationError(
                "Invalid parameters for applying a points discount.",
                customer_id=customer_id,
                points=points,
            )

        kind = LoyaltyLedgerEntry.Kind.REDEEM
        with transaction.atomic():
            existing = LoyaltyService._existing_entry(order_id, kind)
            if existing:
                logger.info(f"Points already redeemed for order {order_id}, skipping")
                return existing

            account = LoyaltyService._locked_account(customer_id)
            if account.points_balance < points:
                raise InsufficientLoyaltyBalance(
                    f"Customer {customer_id} has {account.points_balance} points, {points} required",
                    balance=account.points_balance,
                    required=points,
                )

            account.points_balance -= points
            account.total_discount_claimed += discount_amount
            account.save(update_fields=["points_balance", "total_discount_claimed", "updated_at"])

            entry = LoyaltyLedgerEntry.objects.create(
                customer_id=customer_id,
                order_id=order_id,
                kind=kind,
                points=-points,
                discount_amount=discount_amount,
            )

        logger.info(
            f"Redeemed {points} points ({discount_amount} discount) for customer {customer_id} "
            f"on order {order_id}"
        )
        return entry

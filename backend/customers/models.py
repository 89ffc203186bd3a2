from decimal import Decimal
from django.db import models
from django.utils.translation import gettext_lazy as _


class LoyaltyAccount(models.Model):
    """
    Supercoin balance for a customer.

    Customers are owned by the external auth provider; only their id is stored.
    """

    customer_id = models.CharField(max_length=128, unique=True)
    points_balance = models.PositiveIntegerField(default=0)
    total_discount_claimed = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
        help_text=_("Total monetary value of discounts redeemed with points"),
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.customer_id}: {self.points_balance} points"


class LoyaltyLedgerEntry(models.Model):
    """
    One balance movement. Entries tied to an order are unique per kind, which
    makes awarding or redeeming for the same order idempotent.
    """

    class Kind(models.TextChoices):
        REDEEM = "REDEEM", _("Redeemed at checkout")
        DONATION_REWARD = "DONATION_REWARD", _("Donation reward")
        AWARD = "AWARD", _("Manual award")

    customer_id = models.CharField(max_length=128, db_index=True)
    order_id = models.UUIDField(null=True, blank=True)
    kind = models.CharField(max_length=32, choices=Kind.choices)
    # Signed: negative for redemptions
    points = models.IntegerField()
    discount_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["order_id", "kind"],
                condition=models.Q(order_id__isnull=False),
                name="unique_ledger_entry_per_order_kind",
            ),
        ]

    def __str__(self):
        return f"{self.kind} {self.points:+d} for {self.customer_id}"

import uuid
from decimal import Decimal
from django.db import models
from django.utils.translation import gettext_lazy as _


class OrderStatus(models.TextChoices):
    PENDING = "Pending", _("Pending")
    CONFIRMED = "Confirmed", _("Confirmed")
    PREPARING = "Preparing", _("Preparing")
    READY_FOR_PICKUP = "Ready for Pickup", _("Ready for Pickup")
    OUT_FOR_DELIVERY = "Out for Delivery", _("Out for Delivery")
    DELIVERED = "Delivered", _("Delivered")
    CANCELLED = "Cancelled", _("Cancelled")
    FAILED = "Failed", _("Failed")


# Forward lifecycle, in order
STATUS_SEQUENCE = [
    OrderStatus.PENDING.value,
    OrderStatus.CONFIRMED.value,
    OrderStatus.PREPARING.value,
    OrderStatus.READY_FOR_PICKUP.value,
    OrderStatus.OUT_FOR_DELIVERY.value,
    OrderStatus.DELIVERED.value,
]

# Reachable from any non-terminal status
ABORT_STATUSES = frozenset({OrderStatus.CANCELLED.value, OrderStatus.FAILED.value})

TERMINAL_STATUSES = frozenset(
    {OrderStatus.DELIVERED.value, OrderStatus.CANCELLED.value, OrderStatus.FAILED.value}
)


class OrderDocument(models.Model):
    """
    The order payload shared by the global orders table and the per-customer
    mirror. Both copies carry exactly these fields with identical values.

    ``items`` holds frozen OrderLine snapshots
    ``{menu_item_id, name, quantity, unit_price}`` taken at checkout, so menu
    changes never alter historical orders.
    """

    customer_id = models.CharField(max_length=128, db_index=True)
    restaurant_id = models.CharField(max_length=128, db_index=True)
    items = models.JSONField(default=list)

    subtotal = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    coupon_code = models.CharField(max_length=50, null=True, blank=True)
    coupon_discount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    loyalty_points_applied = models.PositiveIntegerField(default=0)
    loyalty_discount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    delivery_fee = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    tax = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    total_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))

    status = models.CharField(
        max_length=32, choices=OrderStatus.choices, default=OrderStatus.PENDING, db_index=True
    )

    delivery_address = models.TextField()
    customer_name = models.CharField(max_length=255, blank=True, default="")
    customer_phone = models.CharField(max_length=32, blank=True, default="")
    payment_method = models.CharField(max_length=50)

    # Set explicitly (not auto_now) so both copies carry the same instant
    created_at = models.DateTimeField()
    updated_at = models.DateTimeField()

    donated = models.BooleanField(default=False)
    donation_target_id = models.CharField(max_length=128, null=True, blank=True)

    PAYLOAD_FIELDS = (
        "customer_id",
        "restaurant_id",
        "items",
        "subtotal",
        "coupon_code",
        "coupon_discount",
        "loyalty_points_applied",
        "loyalty_discount",
        "delivery_fee",
        "tax",
        "total_amount",
        "status",
        "delivery_address",
        "customer_name",
        "customer_phone",
        "payment_method",
        "created_at",
        "updated_at",
        "donated",
        "donation_target_id",
    )

    # Never changed after checkout
    IMMUTABLE_FIELDS = frozenset(
        {
            "id",
            "order_id",
            "customer_id",
            "restaurant_id",
            "items",
            "created_at",
            "subtotal",
            "coupon_code",
            "coupon_discount",
            "loyalty_points_applied",
            "loyalty_discount",
            "delivery_fee",
            "tax",
            "total_amount",
        }
    )

    # Editable through OrderStatusService.update_order_details
    DETAIL_FIELDS = frozenset(
        {
            "donated",
            "donation_target_id",
            "delivery_address",
            "customer_name",
            "customer_phone",
            "payment_method",
        }
    )

    class Meta:
        abstract = True

    @property
    def document_id(self):
        raise NotImplementedError

    @property
    def is_terminal(self) -> bool:
        return str(self.status) in TERMINAL_STATUSES

    def payload(self) -> dict:
        return {name: getattr(self, name) for name in self.PAYLOAD_FIELDS}


class Order(OrderDocument):
    """Global orders collection, keyed by order id."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["restaurant_id", "-created_at"], name="order_restaurant_created_idx"),
            models.Index(fields=["restaurant_id", "donated"], name="order_restaurant_donated_idx"),
        ]

    def __str__(self):
        return f"Order {self.id} ({self.status})"

    @property
    def document_id(self):
        return self.id


class CustomerOrder(OrderDocument):
    """
    Per-customer mirror of an order (``customers/<customer_id>/orders/<order_id>``).

    Written and updated in the same transaction as the global ``Order``.
    """

    order_id = models.UUIDField(db_index=True, editable=False)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["customer_id", "order_id"], name="unique_customer_order_mirror"
            ),
        ]

    def __str__(self):
        return f"Order {self.order_id} for customer {self.customer_id} ({self.status})"

    @property
    def document_id(self):
        return self.order_id

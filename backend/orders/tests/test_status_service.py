"""
Order Status Service Tests

Lifecycle rules and dual-location updates of status and order metadata.
"""
import pytest
import uuid
from unittest import mock

from django.db import OperationalError

from core_backend.exceptions import (
    IllegalTransition,
    ImmutableFieldError,
    MissingCustomerReference,
    OrderNotFound,
    PostCommitSideEffectFailure,
    TransactionFailure,
    ValidationError,
)
from customers.models import LoyaltyLedgerEntry
from customers.services import LoyaltyService
from orders.models import CustomerOrder, Order, OrderStatus
from orders.serializers import serialize_order
from orders.services import OrderStatusService
from orders.signals import order_status_changed


def _copies_agree(order_id, customer_id):
    order = Order.objects.get(id=order_id)
    mirror = CustomerOrder.objects.get(customer_id=customer_id, order_id=order_id)
    return serialize_order(order) == serialize_order(mirror)


class TestCanTransition:
    """Pure lifecycle rules"""

    @pytest.mark.parametrize(
        "current,new",
        [
            (OrderStatus.PENDING, OrderStatus.CONFIRMED),
            (OrderStatus.CONFIRMED, OrderStatus.PREPARING),
            (OrderStatus.PREPARING, OrderStatus.READY_FOR_PICKUP),
            (OrderStatus.READY_FOR_PICKUP, OrderStatus.OUT_FOR_DELIVERY),
            (OrderStatus.OUT_FOR_DELIVERY, OrderStatus.DELIVERED),
            (OrderStatus.PENDING, OrderStatus.PREPARING),
            (OrderStatus.PENDING, OrderStatus.CANCELLED),
            (OrderStatus.OUT_FOR_DELIVERY, OrderStatus.FAILED),
        ],
    )
    def test_allowed_transitions(self, current, new):
        assert OrderStatusService.can_transition(current, new) is True

    @pytest.mark.parametrize(
        "current,new",
        [
            (OrderStatus.DELIVERED, OrderStatus.PENDING),
            (OrderStatus.PREPARING, OrderStatus.CONFIRMED),
            (OrderStatus.PENDING, OrderStatus.PENDING),
            (OrderStatus.CANCELLED, OrderStatus.CONFIRMED),
            (OrderStatus.FAILED, OrderStatus.CANCELLED),
            (OrderStatus.DELIVERED, OrderStatus.CANCELLED),
        ],
    )
    def test_rejected_transitions(self, current, new):
        assert OrderStatusService.can_transition(current, new) is False

    def test_plain_strings_are_accepted(self):
        assert OrderStatusService.can_transition("Pending", "Ready for Pickup") is True

    def test_status_names_are_normalized(self):
        assert OrderStatusService.normalize_status("out for delivery") == "Out for Delivery"

        with pytest.raises(ValidationError):
            OrderStatusService.normalize_status("Shipped")


@pytest.mark.django_db
class TestSetStatus:
    """Status updates on both copies"""

    def test_status_updated_on_both_copies(self, placed_order, customer_id, django_capture_on_commit_callbacks):
        with django_capture_on_commit_callbacks(execute=True):
            order = OrderStatusService.set_status(placed_order.id, customer_id, OrderStatus.CONFIRMED)

        assert order.status == OrderStatus.CONFIRMED
        assert Order.objects.get(id=placed_order.id).status == OrderStatus.CONFIRMED
        assert _copies_agree(placed_order.id, customer_id)

    def test_full_lifecycle(self, placed_order, customer_id):
        for status in ["Confirmed", "Preparing", "Ready for Pickup", "Out for Delivery", "Delivered"]:
            OrderStatusService.set_status(str(placed_order.id), customer_id, status)

        assert Order.objects.get(id=placed_order.id).status == OrderStatus.DELIVERED
        assert _copies_agree(placed_order.id, customer_id)

    def test_illegal_transition_changes_nothing(self, placed_order, customer_id):
        OrderStatusService.set_status(placed_order.id, customer_id, OrderStatus.DELIVERED)

        with pytest.raises(IllegalTransition):
            OrderStatusService.set_status(placed_order.id, customer_id, OrderStatus.PENDING)

        assert Order.objects.get(id=placed_order.id).status == OrderStatus.DELIVERED
        assert CustomerOrder.objects.get(order_id=placed_order.id).status == OrderStatus.DELIVERED

    def test_forced_transition_is_applied(self, placed_order, customer_id):
        OrderStatusService.set_status(placed_order.id, customer_id, OrderStatus.CANCELLED)

        order = OrderStatusService.set_status(placed_order.id, customer_id, OrderStatus.PENDING, force=True)

        assert order.status == OrderStatus.PENDING
        assert _copies_agree(placed_order.id, customer_id)

    def test_missing_customer_id_is_rejected(self, placed_order):
        with pytest.raises(MissingCustomerReference):
            OrderStatusService.set_status(placed_order.id, "", OrderStatus.CONFIRMED)

    def test_other_customers_order_is_not_found(self, placed_order):
        with pytest.raises(OrderNotFound):
            OrderStatusService.set_status(placed_order.id, "cust-someone-else", OrderStatus.CONFIRMED)

    @pytest.mark.parametrize("order_id", ["not-a-uuid", uuid.uuid4()])
    def test_unknown_order_is_not_found(self, db, customer_id, order_id):
        with pytest.raises(OrderNotFound):
            OrderStatusService.set_status(order_id, customer_id, OrderStatus.CONFIRMED)

    def test_missing_mirror_rolls_back(self, placed_order, customer_id):
        CustomerOrder.objects.filter(order_id=placed_order.id).delete()

        with pytest.raises(OrderNotFound):
            OrderStatusService.set_status(placed_order.id, customer_id, OrderStatus.CONFIRMED)

        assert Order.objects.get(id=placed_order.id).status == OrderStatus.PENDING

    def test_status_signal_sent(self, placed_order, customer_id, django_capture_on_commit_callbacks):
        received = []

        def receiver(sender, event, **kwargs):
            received.append(event)

        order_status_changed.connect(receiver)
        try:
            with django_capture_on_commit_callbacks(execute=True):
                OrderStatusService.set_status(placed_order.id, customer_id, OrderStatus.CONFIRMED)
        finally:
            order_status_changed.disconnect(receiver)

        assert [(event.event, event.status) for event in received] == [("OrderStatusChanged", "Confirmed")]

    def test_persistent_database_error_becomes_transaction_failure(self, placed_order, customer_id):
        with mock.patch.object(
            CustomerOrder.objects, "filter", side_effect=OperationalError("database is locked")
        ):
            with pytest.raises(TransactionFailure):
                OrderStatusService.set_status(placed_order.id, customer_id, OrderStatus.CONFIRMED)

        assert Order.objects.get(id=placed_order.id).status == OrderStatus.PENDING


@pytest.mark.django_db
class TestUpdateOrderDetails:
    """Metadata updates on both copies"""

    def test_details_updated_on_both_copies(self, placed_order, customer_id):
        OrderStatusService.update_order_details(
            placed_order.id, customer_id, {"customer_phone": "+91 90000 11111", "payment_method": "upi"}
        )

        mirror = CustomerOrder.objects.get(order_id=placed_order.id)
        assert mirror.customer_phone == "+91 90000 11111"
        assert mirror.payment_method == "upi"
        assert _copies_agree(placed_order.id, customer_id)

    @pytest.mark.parametrize("field", ["items", "id", "created_at", "total_amount", "restaurant_id"])
    def test_immutable_fields_are_rejected(self, placed_order, customer_id, field):
        with pytest.raises(ImmutableFieldError):
            OrderStatusService.update_order_details(placed_order.id, customer_id, {field: "x"})

        assert _copies_agree(placed_order.id, customer_id)

    def test_status_must_use_set_status(self, placed_order, customer_id):
        with pytest.raises(ValidationError):
            OrderStatusService.update_order_details(placed_order.id, customer_id, {"status": "Confirmed"})

    @pytest.mark.parametrize("fields", [{}, {"favourite_colour": "blue"}])
    def test_empty_or_unknown_fields_are_rejected(self, placed_order, customer_id, fields):
        with pytest.raises(ValidationError):
            OrderStatusService.update_order_details(placed_order.id, customer_id, fields)

    @pytest.mark.parametrize(
        "fields",
        [{"donated": "maybe"}, {"delivery_address": ""}, {"payment_method": ""}, {"customer_phone": "9" * 40}],
    )
    def test_invalid_values_are_rejected(self, placed_order, customer_id, fields):
        with pytest.raises(ValidationError) as exc_info:
            OrderStatusService.update_order_details(placed_order.id, customer_id, fields)

        assert set(exc_info.value.context["errors"]) == set(fields)
        stored = Order.objects.get(id=placed_order.id)
        assert all(getattr(stored, name) == getattr(placed_order, name) for name in fields)
        assert _copies_agree(placed_order.id, customer_id)

    def test_values_are_normalized_before_writing(self, placed_order, customer_id):
        order = OrderStatusService.update_order_details(placed_order.id, customer_id, {"donated": "true"})

        assert order.donated is True
        assert CustomerOrder.objects.get(order_id=placed_order.id).donated is True


@pytest.mark.django_db
class TestMarkDonated:
    """Donating a delivered order"""

    def test_delivered_order_is_donated_and_rewarded(self, placed_order, customer_id):
        OrderStatusService.set_status(placed_order.id, customer_id, OrderStatus.DELIVERED)

        order = OrderStatusService.mark_donated(placed_order.id, customer_id, "ngo-feeding-india")

        assert order.donated is True
        assert order.donation_target_id == "ngo-feeding-india"
        assert _copies_agree(placed_order.id, customer_id)
        assert LoyaltyService.get_balance(customer_id) == 50
        assert LoyaltyLedgerEntry.objects.get(order_id=placed_order.id).kind == LoyaltyLedgerEntry.Kind.DONATION_REWARD

    def test_undelivered_order_cannot_be_donated(self, placed_order, customer_id):
        with pytest.raises(ValidationError):
            OrderStatusService.mark_donated(placed_order.id, customer_id, "ngo-feeding-india")

        assert Order.objects.get(id=placed_order.id).donated is False

    def test_order_cannot_be_donated_twice(self, placed_order, customer_id):
        OrderStatusService.set_status(placed_order.id, customer_id, OrderStatus.DELIVERED)
        OrderStatusService.mark_donated(placed_order.id, customer_id, "ngo-feeding-india")

        with pytest.raises(ValidationError):
            OrderStatusService.mark_donated(placed_order.id, customer_id, "ngo-robin-hood")

        assert LoyaltyService.get_balance(customer_id) == 50

    def test_reward_failure_is_reported_with_order(self, placed_order, customer_id):
        OrderStatusService.set_status(placed_order.id, customer_id, OrderStatus.DELIVERED)

        with mock.patch(
            "orders.services.status_service.LoyaltyService.award_points",
            side_effect=RuntimeError("ledger unavailable"),
        ):
            with pytest.raises(PostCommitSideEffectFailure) as exc_info:
                OrderStatusService.mark_donated(placed_order.id, customer_id, "ngo-feeding-india")

        assert exc_info.value.order.id == placed_order.id
        assert Order.objects.get(id=placed_order.id).donated is True

    def test_repeat_donation_retries_failed_reward(self, placed_order, customer_id):
        OrderStatusService.set_status(placed_order.id, customer_id, OrderStatus.DELIVERED)
        with mock.patch(
            "orders.services.status_service.LoyaltyService.award_points",
            side_effect=RuntimeError("ledger unavailable"),
        ):
            with pytest.raises(PostCommitSideEffectFailure):
                OrderStatusService.mark_donated(placed_order.id, customer_id, "ngo-feeding-india")

        order = OrderStatusService.mark_donated(placed_order.id, customer_id, "ngo-feeding-india")
        OrderStatusService.mark_donated(placed_order.id, customer_id, "ngo-feeding-india")

        assert order.donation_target_id == "ngo-feeding-india"
        assert LoyaltyService.get_balance(customer_id) == 50
        assert LoyaltyLedgerEntry.objects.filter(order_id=placed_order.id).count() == 1

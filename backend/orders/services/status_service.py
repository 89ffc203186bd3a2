from django.db import transaction
from django.utils import timezone
import logging
import uuid

from core_backend.config import app_settings
from core_backend.exceptions import (
    IllegalTransition,
    ImmutableFieldError,
    MissingCustomerReference,
    OrderNotFound,
    PostCommitSideEffectFailure,
    ValidationError,
)
from core_backend.utils.retry import run_with_retry
from customers.models import LoyaltyLedgerEntry
from customers.services import LoyaltyService
from orders.models import (
    ABORT_STATUSES,
    STATUS_SEQUENCE,
    TERMINAL_STATUSES,
    CustomerOrder,
    Order,
    OrderDocument,
    OrderStatus,
)
from orders.serializers import OrderDetailsSerializer, serialize_order

from .notification_service import ORDER_STATUS_CHANGED, broadcast_order_event

logger = logging.getLogger(__name__)


def parse_order_id(order_id) -> uuid.UUID:
    try:
        return order_id if isinstance(order_id, uuid.UUID) else uuid.UUID(str(order_id))
    except (TypeError, ValueError):
        raise OrderNotFound(f"Order {order_id} not found", order_id=order_id)


class OrderStatusService:
    """
    Status transitions and metadata updates applied to both copies of an order.

    Concurrent writers are last-write-wins; there is no version check.
    """

    @staticmethod
    def normalize_status(value) -> str:
        """Return the canonical status value, matching case-insensitively."""
        text = str(value or "").strip()
        for status in OrderStatus.values:
            if status.lower() == text.lower():
                return status
        raise ValidationError(f"Unknown order status '{value}'", status=value)

    @staticmethod
    def can_transition(current, new) -> bool:
        current, new = str(current), str(new)
        if current in TERMINAL_STATUSES or current == new:
            return False
        if new in ABORT_STATUSES:
            return True
        if current in STATUS_SEQUENCE and new in STATUS_SEQUENCE:
            return STATUS_SEQUENCE.index(new) > STATUS_SEQUENCE.index(current)
        return False

    @staticmethod
    def set_status(order_id, customer_id, new_status, force: bool = False) -> Order:
        """
        Move an order to ``new_status`` on both copies.

        ``force=True`` applies a transition the lifecycle would reject; it is
        meant for manual corrections and is logged.

        Raises:
            MissingCustomerReference: no customer id
            ValidationError: unknown status
            OrderNotFound: no such order for this customer, or its mirror is missing
            IllegalTransition: transition not allowed and not forced
            TransactionFailure: the update did not commit
        """
        if not customer_id:
            raise MissingCustomerReference("Cannot update an order status without a customer id.")
        new_status = OrderStatusService.normalize_status(new_status)
        order_id = parse_order_id(order_id)

        def check(order):
            previous = str(order.status)
            if OrderStatusService.can_transition(previous, new_status):
                return
            if not force:
                raise IllegalTransition(
                    f"Order {order.id} cannot move from {previous} to {new_status}",
                    current=previous,
                    requested=new_status,
                )
            logger.warning(f"Forcing order {order.id} from {previous} to {new_status}")

        order = run_with_retry(
            lambda: OrderStatusService._apply(
                order_id, customer_id, {"status": new_status}, check, ORDER_STATUS_CHANGED
            ),
            description=f"Order {order_id} status update",
        )
        logger.info(f"Order {order_id} status set to {new_status}")
        return order

    @staticmethod
    def update_order_details(order_id, customer_id, fields: dict) -> Order:
        """
        Update mutable order metadata on both copies.

        Raises:
            MissingCustomerReference: no customer id
            ImmutableFieldError: ``fields`` touches id, items, pricing or creation data
            ValidationError: empty update, unknown field, invalid value, or ``status``
            OrderNotFound: no such order for this customer, or its mirror is missing
            TransactionFailure: the update did not commit
        """
        if not customer_id:
            raise MissingCustomerReference("Cannot update an order without a customer id.")
        changes = OrderStatusService._validate_detail_fields(fields)
        order_id = parse_order_id(order_id)

        order = run_with_retry(
            lambda: OrderStatusService._apply(order_id, customer_id, changes),
            description=f"Order {order_id} details update",
        )
        logger.info(f"Order {order_id} details updated: {sorted(fields)}")
        return order

    @staticmethod
    def mark_donated(order_id, customer_id, donation_target_id) -> Order:
        """
        Donate a delivered order's leftovers and reward the customer.

        Repeating the call with the same target leaves the order as it is and
        only retries the reward, which is recorded once per order.

        Raises:
            ValidationError: no target, order not delivered or already donated
                to another target
            PostCommitSideEffectFailure: donation saved but reward points not awarded
        """
        if not donation_target_id:
            raise ValidationError("A donation target is required.")
        if not customer_id:
            raise MissingCustomerReference("Cannot donate an order without a customer id.")
        order_id = parse_order_id(order_id)

        def check(order):
            if str(order.status) != OrderStatus.DELIVERED.value:
                raise ValidationError(
                    f"Only delivered orders can be donated, order {order.id} is {order.status}"
                )
            if order.donated:
                raise ValidationError(f"Order {order.id} has already been donated")

        order = Order.objects.filter(id=order_id, customer_id=str(customer_id)).first()
        if order is not None and order.donated and order.donation_target_id == str(donation_target_id):
            logger.info(f"Order {order_id} already donated to {donation_target_id}, retrying reward only")
        else:
            order = run_with_retry(
                lambda: OrderStatusService._apply(
                    order_id,
                    customer_id,
                    {"donated": True, "donation_target_id": str(donation_target_id)},
                    check,
                ),
                description=f"Order {order_id} donation",
            )
            logger.info(f"Order {order_id} donated to {donation_target_id}")

        points = app_settings.donation_reward_points
        if points > 0:
            try:
                LoyaltyService.award_points(
                    order.customer_id,
                    points,
                    order_id=order.id,
                    kind=LoyaltyLedgerEntry.Kind.DONATION_REWARD,
                )
            except Exception as e:
                logger.critical(
                    f"CRITICAL: Order {order.id} donated but awarding {points} points to "
                    f"customer {order.customer_id} failed: {e}",
                    exc_info=True,
                )
                raise PostCommitSideEffectFailure(
                    f"Order {order.id} donated but reward points were not awarded", order=order
                ) from e
        return order

    @staticmethod
    def _validate_detail_fields(fields):
        if not fields:
            raise ValidationError("No fields to update.")
        if "status" in fields:
            raise ValidationError("Use set_status to change an order's status.")
        immutable = sorted(set(fields) & OrderDocument.IMMUTABLE_FIELDS)
        if immutable:
            raise ImmutableFieldError(f"Fields {immutable} cannot be changed", fields=immutable)
        unknown = sorted(set(fields) - OrderDocument.DETAIL_FIELDS)
        if unknown:
            raise ValidationError(f"Unknown order fields {unknown}", fields=unknown)

        serializer = OrderDetailsSerializer(data=fields, partial=True)
        if not serializer.is_valid():
            raise ValidationError(
                f"Invalid order details: {serializer.errors}", errors=serializer.errors
            )
        return dict(serializer.validated_data)

    @staticmethod
    def _apply(order_id, customer_id, changes, check=None, event_name=None) -> Order:
        """
        One attempt of a dual-location update. The global row is locked for
        the duration; a missing mirror rolls everything back.
        """
        with transaction.atomic():
            order = (
                Order.objects.select_for_update()
                .filter(id=order_id, customer_id=str(customer_id))
                .first()
            )
            if order is None:
                raise OrderNotFound(
                    f"Order {order_id} not found for customer {customer_id}", order_id=str(order_id)
                )
            if check:
                check(order)

            changes = dict(changes, updated_at=timezone.now())
            Order.objects.filter(id=order.id).update(**changes)
            mirrored = CustomerOrder.objects.filter(
                customer_id=order.customer_id, order_id=order.id
            ).update(**changes)
            if not mirrored:
                logger.error(f"Mirror copy of order {order.id} is missing for customer {customer_id}")
                raise OrderNotFound(
                    f"Customer copy of order {order.id} not found", order_id=str(order.id)
                )

            for name, value in changes.items():
                setattr(order, name, value)
            document = serialize_order(order)
            transaction.on_commit(lambda: broadcast_order_event(document, event_name))
        return order

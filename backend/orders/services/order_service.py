from dataclasses import dataclass
from typing import Any, Mapping, Union
from django.db import transaction
from django.utils import timezone
import logging
import uuid

from cart.services import CartStore
from core_backend.config import app_settings
from core_backend.exceptions import (
    InvalidCheckoutState,
    MissingCustomerReference,
    PostCommitSideEffectFailure,
)
from core_backend.utils.retry import run_with_retry
from customers.services import LoyaltyService
from orders.calculators import PricingEngine
from orders.models import CustomerOrder, Order, OrderStatus
from orders.serializers import DeliveryInfoSerializer, serialize_order

from .notification_service import ORDER_CREATED, broadcast_order_event

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeliveryInfo:
    address: str
    customer_name: str = ""
    customer_phone: str = ""

    @classmethod
    def from_data(cls, data: Union["DeliveryInfo", Mapping[str, Any], None]) -> "DeliveryInfo":
        """
        Raises:
            InvalidCheckoutState: missing or blank address, or malformed fields
        """
        if isinstance(data, cls):
            data = {
                "address": data.address,
                "customer_name": data.customer_name,
                "customer_phone": data.customer_phone,
            }
        serializer = DeliveryInfoSerializer(data=data or {})
        if not serializer.is_valid():
            raise InvalidCheckoutState(
                f"Invalid delivery information: {serializer.errors}", errors=serializer.errors
            )
        return cls(**serializer.validated_data)


class OrderWriter:
    """
    Turns a cart into an order.

    The order is written to the global orders table and to the customer's
    mirror in one transaction, so both copies exist with identical content or
    neither does.
    """

    @staticmethod
    def place_order(
        cart: CartStore,
        customer_id: str,
        delivery_info,
        payment_method: str,
        donation: bool = False,
    ) -> Order:
        """
        Place an order from the cart's current contents.

        Args:
            cart: The customer's CartStore; cleared once the order commits
            customer_id: Owner of the order, keys the mirror copy
            delivery_info: DeliveryInfo or mapping with ``address``,
                ``customer_name``, ``customer_phone``
            payment_method: Free-form payment method label
            donation: Initial donation flag for the order

        Raises:
            MissingCustomerReference: no customer id
            InvalidCheckoutState: empty cart, bad delivery info, no payment
                method or loyalty balance too low
            TransactionFailure: the dual write did not commit; cart untouched
            PostCommitSideEffectFailure: the order committed but the loyalty
                redemption failed; ``error.order`` is the placed order
        """
        if not customer_id:
            raise MissingCustomerReference("Cannot place an order without a customer id.")

        state = cart.state
        if state.is_empty or not state.restaurant_id:
            raise InvalidCheckoutState("Cannot place an order with an empty cart.")

        delivery = DeliveryInfo.from_data(delivery_info)

        if not payment_method or not str(payment_method).strip():
            raise InvalidCheckoutState("A payment method is required.")

        if state.applied_loyalty_points > 0:
            balance = LoyaltyService.get_balance(customer_id)
            if balance < state.applied_loyalty_points:
                raise InvalidCheckoutState(
                    f"Customer {customer_id} has {balance} points, "
                    f"{state.applied_loyalty_points} are applied to the cart",
                    balance=balance,
                )

        currency = app_settings.currency
        lines = [
            {
                "menu_item_id": str(item.id),
                "name": item.name,
                "quantity": item.quantity,
                "unit_price": str(item.unit_price),
            }
            for item in state.items
        ]

        quote = PricingEngine.calculate_totals(
            state.items,
            coupon_discount=state.coupon_discount_amount,
            loyalty_discount=state.loyalty_discount_amount,
            currency=currency,
        )

        order_id = uuid.uuid4()
        now = timezone.now()
        fields = {
            "customer_id": str(customer_id),
            "restaurant_id": str(state.restaurant_id),
            "items": lines,
            "subtotal": quote.subtotal,
            "coupon_code": state.applied_coupon_code,
            "coupon_discount": quote.coupon_discount,
            "loyalty_points_applied": state.applied_loyalty_points,
            "loyalty_discount": quote.loyalty_discount,
            "delivery_fee": quote.delivery_fee,
            "tax": quote.tax,
            "total_amount": quote.total,
            "status": OrderStatus.PENDING,
            "delivery_address": delivery.address,
            "customer_name": delivery.customer_name,
            "customer_phone": delivery.customer_phone,
            "payment_method": str(payment_method),
            "created_at": now,
            "updated_at": now,
            "donated": bool(donation),
            "donation_target_id": None,
        }

        order = run_with_retry(
            lambda: OrderWriter._write_order(order_id, fields),
            description=f"Order {order_id} placement",
        )
        logger.info(
            f"Order {order.id} placed by customer {customer_id} at restaurant "
            f"{order.restaurant_id} for {order.total_amount}"
        )

        cart.clear()

        if order.loyalty_points_applied > 0:
            OrderWriter._redeem_loyalty_points(order)

        return order

    @staticmethod
    def _write_order(order_id, fields) -> Order:
        with transaction.atomic():
            order = Order.objects.create(id=order_id, **fields)
            CustomerOrder.objects.create(order_id=order_id, **fields)

            document = serialize_order(order)
            transaction.on_commit(lambda: broadcast_order_event(document, ORDER_CREATED))
        return order

    @staticmethod
    def _redeem_loyalty_points(order: Order) -> None:
        try:
            LoyaltyService.redeem_points(
                order.customer_id,
                order.loyalty_points_applied,
                order.loyalty_discount,
                order_id=order.id,
            )
        except Exception as e:
            logger.critical(
                f"CRITICAL: Order {order.id} committed but redeeming "
                f"{order.loyalty_points_applied} points for customer {order.customer_id} failed: {e}",
                exc_info=True,
            )
            raise PostCommitSideEffectFailure(
                f"Order {order.id} placed but loyalty points were not deducted",
                order=order,
            ) from e

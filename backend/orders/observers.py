"""
Read-only order projections pushed to subscribers.

Two filters exist: every order of a restaurant (read from the global
orders table, newest first) and a single order of a customer (read from the
customer's mirror copy). Subscribers receive an initial snapshot when they
subscribe and a new one every time a matching order is committed.

Every publish is forwarded to the Channels layer as an ``order_update``
message so websocket consumers see the same events.
"""

from itertools import count
from typing import Callable, Dict, Optional
import logging
import re
import threading

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer

from core_backend.exceptions import MissingCustomerReference, ValidationError

logger = logging.getLogger(__name__)

_GROUP_UNSAFE = re.compile(r"[^A-Za-z0-9_.-]")


class OrderFilter:
    RESTAURANT = "restaurant"
    CUSTOMER_ORDER = "customer_order"

    def __init__(self, kind, restaurant_id=None, customer_id=None, order_id=None):
        self.kind = kind
        self.restaurant_id = restaurant_id
        self.customer_id = customer_id
        self.order_id = str(order_id) if order_id is not None else None

    @classmethod
    def for_restaurant(cls, restaurant_id) -> "OrderFilter":
        if not restaurant_id:
            raise ValidationError("A restaurant id is required to observe restaurant orders.")
        return cls(cls.RESTAURANT, restaurant_id=str(restaurant_id))

    @classmethod
    def for_customer_order(cls, customer_id, order_id) -> "OrderFilter":
        if not customer_id:
            raise MissingCustomerReference()
        if not order_id:
            raise ValidationError("An order id is required to observe an order.")
        return cls(cls.CUSTOMER_ORDER, customer_id=str(customer_id), order_id=order_id)

    @property
    def is_restaurant(self) -> bool:
        return self.kind == self.RESTAURANT

    @property
    def key(self):
        if self.is_restaurant:
            return (self.kind, self.restaurant_id)
        return (self.kind, self.customer_id, self.order_id)

    @property
    def group_name(self) -> str:
        """Channels group for this filter (ASCII, at most 100 characters)."""
        if self.is_restaurant:
            name = f"restaurant_{self.restaurant_id}_orders"
        else:
            name = f"customer_{self.customer_id}_order_{self.order_id}"
        return _GROUP_UNSAFE.sub("_", name)[:99]

    def matches(self, document: dict) -> bool:
        if self.is_restaurant:
            return str(document.get("restaurant_id")) == self.restaurant_id
        return (
            str(document.get("customer_id")) == self.customer_id
            and str(document.get("id")) == self.order_id
        )

    def load_snapshot(self):
        """
        Current committed state for this filter.

        Restaurant filters return a list of documents, newest first; customer
        order filters return one document or ``None``.
        """
        from orders.models import CustomerOrder, Order
        from orders.serializers import serialize_order

        if self.is_restaurant:
            orders = Order.objects.filter(restaurant_id=self.restaurant_id).order_by("-created_at")
            return [serialize_order(order) for order in orders]

        mirror = CustomerOrder.objects.filter(
            customer_id=self.customer_id, order_id=self.order_id
        ).first()
        return serialize_order(mirror) if mirror else None

    def __repr__(self):
        return f"OrderFilter{self.key}"


class Subscription:
    """Handle returned by ``OrderObserver.subscribe``."""

    def __init__(self, observer, subscription_id, order_filter, on_change, on_error=None):
        self.observer = observer
        self.id = subscription_id
        self.filter = order_filter
        self.on_change = on_change
        self.on_error = on_error
        self._active = True
        self._lock = threading.Lock()

    @property
    def active(self) -> bool:
        return self._active

    def unsubscribe(self) -> None:
        """Stop receiving updates. Safe to call any number of times."""
        with self._lock:
            if not self._active:
                return
            self._active = False
        self.observer._remove(self)
        logger.info(f"Subscription {self.id} on {self.filter} closed")


class OrderObserver:
    """
    In-process publish/subscribe hub for committed order documents.

    Callbacks run synchronously in the publishing thread. A callback that
    raises is logged and does not affect other subscribers.
    """

    def __init__(self):
        self._subscriptions: Dict[int, Subscription] = {}
        self._lock = threading.Lock()
        self._ids = count(1)

    def subscribe(
        self,
        order_filter: OrderFilter,
        on_change: Callable,
        on_error: Optional[Callable[[Exception], None]] = None,
    ) -> Subscription:
        with self._lock:
            subscription = Subscription(self, next(self._ids), order_filter, on_change, on_error)
            self._subscriptions[subscription.id] = subscription

        logger.info(f"Subscription {subscription.id} opened on {order_filter}")

        try:
            snapshot = order_filter.load_snapshot()
        except Exception as e:
            self._report_error(subscription, e)
        else:
            self._dispatch(subscription, snapshot)
        return subscription

    def publish(self, document: dict) -> None:
        """Push a committed order document to every matching subscriber."""
        with self._lock:
            subscriptions = list(self._subscriptions.values())

        restaurant_snapshots = {}
        for subscription in subscriptions:
            order_filter = subscription.filter
            if not order_filter.matches(document):
                continue

            if not order_filter.is_restaurant:
                self._dispatch(subscription, document)
                continue

            if order_filter.key not in restaurant_snapshots:
                try:
                    restaurant_snapshots[order_filter.key] = order_filter.load_snapshot()
                except Exception as e:
                    self._report_error(subscription, e)
                    continue
            self._dispatch(subscription, restaurant_snapshots[order_filter.key])

        self._forward_to_channels(document)

    @property
    def subscription_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    def clear(self) -> None:
        """Close every subscription."""
        with self._lock:
            subscriptions = list(self._subscriptions.values())
        for subscription in subscriptions:
            subscription.unsubscribe()

    def _remove(self, subscription: Subscription) -> None:
        with self._lock:
            self._subscriptions.pop(subscription.id, None)

    def _dispatch(self, subscription: Subscription, snapshot) -> None:
        if not subscription.active:
            return
        try:
            subscription.on_change(snapshot)
        except Exception as e:
            logger.error(
                f"Subscriber {subscription.id} on {subscription.filter} failed: {e}", exc_info=True
            )

    def _report_error(self, subscription: Subscription, error: Exception) -> None:
        if subscription.on_error is None:
            logger.error(f"Snapshot for subscription {subscription.id} on {subscription.filter} failed: {error}")
            return
        try:
            subscription.on_error(error)
        except Exception as e:
            logger.error(f"Error callback of subscription {subscription.id} failed: {e}", exc_info=True)

    def _forward_to_channels(self, document: dict) -> None:
        channel_layer = get_channel_layer()
        if not channel_layer:
            logger.warning("Channel layer not available. Order update not broadcast.")
            return

        groups = [OrderFilter.for_restaurant(document["restaurant_id"]).group_name]
        if document.get("customer_id"):
            groups.append(
                OrderFilter.for_customer_order(document["customer_id"], document["id"]).group_name
            )

        message = {"type": "order_update", "order": document}
        for group_name in groups:
            try:
                logger.debug(f"Broadcasting order {document['id']} to group: {group_name}")
                async_to_sync(channel_layer.group_send)(group_name, message)
            except Exception as e:
                logger.error(f"Failed to broadcast order {document['id']} to {group_name}: {e}")


# Create a single, globally accessible instance of the observer.
order_observer = OrderObserver()

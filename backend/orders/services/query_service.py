from dataclasses import dataclass, field
from datetime import timedelta
from typing import List, Optional, Tuple
from django.db import transaction
from django.db.models import Count, Sum
from django.utils import timezone
import logging

from core_backend.exceptions import MissingCustomerReference, OrderNotFound
from core_backend.utils.money import ZERO
from core_backend.utils.retry import run_with_retry
from orders.models import ABORT_STATUSES, CustomerOrder, Order
from orders.serializers import serialize_order

from .notification_service import broadcast_order_event
from .status_service import parse_order_id

logger = logging.getLogger(__name__)


class OrderQueryService:
    """Read-side access to orders for dashboards and order history."""

    @staticmethod
    def get_order(order_id) -> Order:
        order = Order.objects.filter(id=parse_order_id(order_id)).first()
        if order is None:
            raise OrderNotFound(f"Order {order_id} not found", order_id=str(order_id))
        return order

    @staticmethod
    def get_customer_order(customer_id, order_id) -> CustomerOrder:
        if not customer_id:
            raise MissingCustomerReference()
        mirror = CustomerOrder.objects.filter(
            customer_id=str(customer_id), order_id=parse_order_id(order_id)
        ).first()
        if mirror is None:
            raise OrderNotFound(
                f"Order {order_id} not found for customer {customer_id}", order_id=str(order_id)
            )
        return mirror

    @staticmethod
    def list_restaurant_orders(restaurant_id, limit: Optional[int] = None):
        """Orders of a restaurant, newest first."""
        queryset = Order.objects.filter(restaurant_id=str(restaurant_id)).order_by("-created_at")
        if limit:
            queryset = queryset[:limit]
        return list(queryset)

    @staticmethod
    def list_customer_orders(customer_id):
        if not customer_id:
            raise MissingCustomerReference()
        return list(
            CustomerOrder.objects.filter(customer_id=str(customer_id)).order_by("-created_at")
        )

    @staticmethod
    def list_donated_orders(restaurant_id):
        return list(
            Order.objects.filter(restaurant_id=str(restaurant_id), donated=True).order_by("-created_at")
        )

    @staticmethod
    def todays_summary(restaurant_id) -> dict:
        """
        Order count and earnings for today (local time), excluding cancelled
        and failed orders.
        """
        start = timezone.localtime().replace(hour=0, minute=0, second=0, microsecond=0)
        end = start + timedelta(days=1)

        summary = (
            Order.objects.filter(
                restaurant_id=str(restaurant_id), created_at__gte=start, created_at__lt=end
            )
            .exclude(status__in=ABORT_STATUSES)
            .aggregate(count=Count("id"), total_earnings=Sum("total_amount"))
        )
        return {
            "count": summary["count"],
            "total_earnings": summary["total_earnings"] or ZERO,
        }


@dataclass(frozen=True)
class MirrorDivergence:
    MISSING_MIRROR = "missing_mirror"
    PAYLOAD_MISMATCH = "payload_mismatch"

    order_id: str
    customer_id: str
    reason: str
    fields: Tuple[str, ...] = field(default_factory=tuple)


class OrderConsistencyService:
    """Detects and repairs global/mirror copies that no longer agree."""

    @staticmethod
    def compare(order: Order, mirror: Optional[CustomerOrder]) -> Optional[MirrorDivergence]:
        if mirror is None:
            return MirrorDivergence(
                order_id=str(order.id),
                customer_id=order.customer_id,
                reason=MirrorDivergence.MISSING_MIRROR,
            )

        expected = serialize_order(order)
        actual = serialize_order(mirror)
        differing = tuple(sorted(name for name in expected if expected[name] != actual.get(name)))
        if not differing:
            return None
        return MirrorDivergence(
            order_id=str(order.id),
            customer_id=order.customer_id,
            reason=MirrorDivergence.PAYLOAD_MISMATCH,
            fields=differing,
        )

    @staticmethod
    def find_divergences() -> List[MirrorDivergence]:
        mirrors = {
            (mirror.customer_id, mirror.order_id): mirror for mirror in CustomerOrder.objects.all()
        }
        divergences = []
        for order in Order.objects.order_by("created_at").iterator():
            divergence = OrderConsistencyService.compare(
                order, mirrors.get((order.customer_id, order.id))
            )
            if divergence:
                logger.warning(
                    f"Order {divergence.order_id} mirror diverges ({divergence.reason}) "
                    f"{list(divergence.fields)}"
                )
                divergences.append(divergence)
        return divergences

    @staticmethod
    def repair(order_id) -> CustomerOrder:
        """Rewrite the customer's copy from the global order."""
        order_id = parse_order_id(order_id)

        def rewrite():
            with transaction.atomic():
                order = Order.objects.select_for_update().filter(id=order_id).first()
                if order is None:
                    raise OrderNotFound(f"Order {order_id} not found", order_id=str(order_id))
                mirror, created = CustomerOrder.objects.update_or_create(
                    customer_id=order.customer_id,
                    order_id=order.id,
                    defaults=order.payload(),
                )
                document = serialize_order(order)
                transaction.on_commit(lambda: broadcast_order_event(document))
            return mirror, created

        mirror, created = run_with_retry(rewrite, description=f"Order {order_id} mirror repair")
        logger.info(f"{'Recreated' if created else 'Rewrote'} mirror of order {order_id}")
        return mirror

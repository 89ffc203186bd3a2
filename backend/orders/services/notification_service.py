"""
Post-commit order notifications.

The notifier is pluggable through the ``ORDER_NOTIFIER`` setting. Emission is
best-effort: a failing notifier is logged and never affects the order.
"""

from dataclasses import dataclass
from typing import Optional
import logging

from django.utils.module_loading import import_string

from core_backend.config import app_settings

logger = logging.getLogger(__name__)

ORDER_CREATED = "OrderCreated"
ORDER_STATUS_CHANGED = "OrderStatusChanged"


@dataclass(frozen=True)
class OrderEvent:
    event: str
    order_id: str
    status: Optional[str] = None


class Notifier:
    """Base notifier. Subclasses deliver an OrderEvent somewhere."""

    def emit(self, event: OrderEvent) -> None:
        raise NotImplementedError


class SignalNotifier(Notifier):
    """Sends order events as Django signals."""

    def emit(self, event: OrderEvent) -> None:
        from orders.signals import order_created, order_status_changed

        signal = order_created if event.event == ORDER_CREATED else order_status_changed
        for receiver, response in signal.send_robust(sender=self.__class__, event=event):
            if isinstance(response, Exception):
                logger.error(
                    f"Receiver {getattr(receiver, '__name__', receiver)} failed for "
                    f"{event.event} on order {event.order_id}: {response}"
                )


def get_notifier() -> Notifier:
    return import_string(app_settings.order_notifier_path)()


def emit_order_event(event: OrderEvent) -> None:
    """Emit ``event`` through the configured notifier, logging any failure."""
    try:
        get_notifier().emit(event)
    except Exception as e:
        logger.error(f"Failed to emit {event.event} for order {event.order_id}: {e}", exc_info=True)


def broadcast_order_event(document: dict, event_name: Optional[str] = None) -> None:
    """
    Publish a committed order document to observers and, when ``event_name``
    is given, emit the matching notifier event. Runs from ``on_commit``.
    """
    from orders.observers import order_observer

    try:
        order_observer.publish(document)
    except Exception as e:
        logger.error(f"Failed to publish order {document.get('id')} to observers: {e}", exc_info=True)

    if event_name:
        emit_order_event(
            OrderEvent(event=event_name, order_id=str(document["id"]), status=document.get("status"))
        )

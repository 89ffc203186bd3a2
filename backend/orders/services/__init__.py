"""
Orders services package - service layer for order placement and tracking.

- OrderWriter: Checkout, turning a cart into an order written to both locations
- OrderStatusService: Status transitions and metadata updates on both locations
- OrderQueryService: Order lookups and restaurant dashboard summaries
- OrderConsistencyService: Detection and repair of diverging mirror copies
- SignalNotifier: Post-commit order event notifications
"""

# Checkout
from .order_service import DeliveryInfo, OrderWriter

# Status and metadata updates
from .status_service import OrderStatusService

# Queries and consistency checks
from .query_service import MirrorDivergence, OrderConsistencyService, OrderQueryService

# Notification operations
from .notification_service import Notifier, OrderEvent, SignalNotifier, get_notifier

__all__ = [
    # Checkout
    'DeliveryInfo',
    'OrderWriter',
    # Status
    'OrderStatusService',
    # Queries
    'OrderQueryService',
    'OrderConsistencyService',
    'MirrorDivergence',
    # Notifications
    'Notifier',
    'OrderEvent',
    'SignalNotifier',
    'get_notifier',
]

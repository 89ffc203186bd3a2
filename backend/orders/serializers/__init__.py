"""
Orders serializers package.
"""

# Order document serializers
from .order_serializers import (
    OrderLineSerializer,
    OrderDocumentSerializer,
    serialize_order,
)

# Checkout input serializers
from .checkout_serializers import DeliveryInfoSerializer, OrderDetailsSerializer

__all__ = [
    # Orders
    'OrderLineSerializer',
    'OrderDocumentSerializer',
    'serialize_order',
    # Checkout
    'DeliveryInfoSerializer',
    'OrderDetailsSerializer',
]

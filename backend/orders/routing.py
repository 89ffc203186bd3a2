from django.urls import re_path
from . import consumers

websocket_urlpatterns = [
    re_path(r'ws/restaurants/(?P<restaurant_id>[^/]+)/orders/$', consumers.RestaurantOrdersConsumer.as_asgi()),
    re_path(
        r'ws/customers/(?P<customer_id>[^/]+)/orders/(?P<order_id>[0-9a-fA-F-]+)/$',
        consumers.OrderTrackingConsumer.as_asgi(),
    ),
]

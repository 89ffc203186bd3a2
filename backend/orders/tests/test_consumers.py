"""
WebSocket Tests

Restaurant dashboards and customer order tracking over Channels.
"""
import pytest
import uuid
from unittest import mock
from channels.db import database_sync_to_async
from channels.layers import get_channel_layer
from channels.routing import URLRouter
from channels.testing import WebsocketCommunicator

from cart.services import CartStore
from orders.models import OrderStatus
from orders.observers import OrderFilter
from orders.routing import websocket_urlpatterns
from orders.services import OrderStatusService, OrderWriter

application = URLRouter(websocket_urlpatterns)

RESTAURANT_ID = "rest-spice-route"
CUSTOMER_ID = "cust-ws"


def _place_order():
    cart = CartStore({})
    cart.add_item({"id": "item-thali", "name": "Veg Thali", "price": "200.00", "restaurant_id": RESTAURANT_ID})
    return OrderWriter.place_order(cart, CUSTOMER_ID, {"address": "12 MG Road, Bengaluru"}, "cash")


@pytest.mark.django_db(transaction=True)
@pytest.mark.asyncio
class TestOrderTrackingConsumer:
    """Customer tracking a single order"""

    async def test_connect_sends_snapshot(self):
        order = await database_sync_to_async(_place_order)()
        communicator = WebsocketCommunicator(application, f"/ws/customers/{CUSTOMER_ID}/orders/{order.id}/")

        connected, _ = await communicator.connect()
        message = await communicator.receive_json_from()

        assert connected
        assert message["type"] == "snapshot"
        assert message["order"]["id"] == str(order.id)
        assert message["order"]["total_amount"] == "259.00"

        await communicator.disconnect()

    async def test_status_change_is_pushed(self):
        order = await database_sync_to_async(_place_order)()
        communicator = WebsocketCommunicator(application, f"/ws/customers/{CUSTOMER_ID}/orders/{order.id}/")
        await communicator.connect()
        await communicator.receive_json_from()

        await database_sync_to_async(OrderStatusService.set_status)(order.id, CUSTOMER_ID, OrderStatus.PREPARING)
        message = await communicator.receive_json_from()

        assert message["type"] == "order_update"
        assert message["order"]["status"] == "Preparing"

        await communicator.disconnect()

    async def test_unknown_order_snapshot_is_empty(self):
        communicator = WebsocketCommunicator(application, f"/ws/customers/{CUSTOMER_ID}/orders/{uuid.uuid4()}/")

        connected, _ = await communicator.connect()
        message = await communicator.receive_json_from()

        assert connected
        assert message == {"type": "snapshot", "order": None}

        await communicator.disconnect()

    async def test_ping_and_unknown_actions(self):
        communicator = WebsocketCommunicator(application, f"/ws/customers/{CUSTOMER_ID}/orders/{uuid.uuid4()}/")
        await communicator.connect()
        await communicator.receive_json_from()

        await communicator.send_json_to({"action": "ping"})
        pong = await communicator.receive_json_from()
        await communicator.send_json_to({"action": "dance"})
        error = await communicator.receive_json_from()
        await communicator.send_to(text_data="not json")
        invalid = await communicator.receive_json_from()

        assert pong["type"] == "pong"
        assert error == {"type": "error", "message": "Unknown action: dance"}
        assert invalid == {"type": "error", "message": "Invalid JSON format"}

        await communicator.disconnect()


@pytest.mark.django_db(transaction=True)
@pytest.mark.asyncio
class TestRestaurantOrdersConsumer:
    """Restaurant dashboard feed"""

    async def test_new_order_is_pushed_to_dashboard(self):
        communicator = WebsocketCommunicator(application, f"/ws/restaurants/{RESTAURANT_ID}/orders/")
        connected, _ = await communicator.connect()
        snapshot = await communicator.receive_json_from()

        order = await database_sync_to_async(_place_order)()
        message = await communicator.receive_json_from()

        assert connected
        assert snapshot == {"type": "snapshot", "orders": []}
        assert message["type"] == "order_update"
        assert message["order"]["id"] == str(order.id)
        assert message["order"]["status"] == "Pending"

        await communicator.disconnect()

    async def test_refresh_sends_new_snapshot(self):
        order = await database_sync_to_async(_place_order)()
        communicator = WebsocketCommunicator(application, f"/ws/restaurants/{RESTAURANT_ID}/orders/")
        await communicator.connect()
        await communicator.receive_json_from()

        await communicator.send_json_to({"action": "refresh"})
        message = await communicator.receive_json_from()

        assert message["type"] == "snapshot"
        assert [document["id"] for document in message["orders"]] == [str(order.id)]

        await communicator.disconnect()

    async def test_failed_snapshot_leaves_group(self):
        group_name = OrderFilter.for_restaurant(RESTAURANT_ID).group_name
        communicator = WebsocketCommunicator(application, f"/ws/restaurants/{RESTAURANT_ID}/orders/")

        with mock.patch.object(OrderFilter, "load_snapshot", side_effect=RuntimeError("database down")):
            await communicator.connect()
            closed = await communicator.receive_output()

        assert closed["type"] == "websocket.close"
        assert not get_channel_layer().groups.get(group_name)

        await communicator.disconnect()

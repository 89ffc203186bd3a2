from channels.generic.websocket import AsyncWebsocketConsumer
from channels.db import database_sync_to_async
from django.utils import timezone
import json
import logging

from .observers import OrderFilter

logger = logging.getLogger(__name__)


class OrderStreamConsumer(AsyncWebsocketConsumer):
    """
    Base WebSocket consumer streaming committed order documents.

    Sends a snapshot on connect, then one ``order_update`` message per
    committed change. Clients may send ``ping`` or ``refresh`` actions.
    """

    order_filter = None
    group_name = None

    def build_filter(self) -> OrderFilter:
        raise NotImplementedError

    def snapshot_message(self, snapshot) -> dict:
        raise NotImplementedError

    async def connect(self):
        """Handle WebSocket connection"""
        try:
            self.order_filter = self.build_filter()
            self.group_name = self.order_filter.group_name

            await self.channel_layer.group_add(self.group_name, self.channel_name)
            await self.accept()
            await self.send_snapshot()

            logger.info(f"Order stream connected: {self.order_filter}")

        except Exception as e:
            logger.error(f"Error connecting order stream: {e}")
            if self.group_name:
                await self.channel_layer.group_discard(self.group_name, self.channel_name)
            self.order_filter = None
            self.group_name = None
            await self.close()

    async def disconnect(self, close_code):
        """Handle WebSocket disconnection"""
        if self.group_name is None:
            return
        await self.channel_layer.group_discard(self.group_name, self.channel_name)
        logger.info(f"Order stream disconnected: {self.order_filter}, code={close_code}")

    async def receive(self, text_data):
        """Handle messages from WebSocket"""
        try:
            data = json.loads(text_data)
            action = data.get('action')

            if action == 'ping':
                await self.send_json({'type': 'pong', 'timestamp': timezone.now().isoformat()})
            elif action == 'refresh':
                await self.send_snapshot()
            else:
                await self.send_error(f"Unknown action: {action}")

        except json.JSONDecodeError:
            await self.send_error("Invalid JSON format")
        except Exception as e:
            logger.error(f"Error processing order stream message: {e}")
            await self.send_error(f"Error processing request: {str(e)}")

    async def send_snapshot(self):
        snapshot = await database_sync_to_async(self.order_filter.load_snapshot)()
        await self.send_json(self.snapshot_message(snapshot))

    # Channel layer event handlers

    async def order_update(self, event):
        """Forward a committed order change to the client"""
        await self.send_json({'type': 'order_update', 'order': event['order']})

    async def send_json(self, payload):
        await self.send(text_data=json.dumps(payload))

    async def send_error(self, message):
        await self.send_json({'type': 'error', 'message': message})


class RestaurantOrdersConsumer(OrderStreamConsumer):
    """Live order feed for a restaurant dashboard."""

    def build_filter(self):
        return OrderFilter.for_restaurant(self.scope['url_route']['kwargs']['restaurant_id'])

    def snapshot_message(self, snapshot):
        return {'type': 'snapshot', 'orders': snapshot}


class OrderTrackingConsumer(OrderStreamConsumer):
    """Live tracking of one order for the customer who placed it."""

    def build_filter(self):
        kwargs = self.scope['url_route']['kwargs']
        return OrderFilter.for_customer_order(kwargs['customer_id'], kwargs['order_id'])

    def snapshot_message(self, snapshot):
        return {'type': 'snapshot', 'order': snapshot}

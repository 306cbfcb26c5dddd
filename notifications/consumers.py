"""
NOTIFICATIONS App - WebSocket Consumer

Clients connect to: ws://host/ws/notifications/
"""

import logging
from channels.generic.websocket import AsyncJsonWebsocketConsumer
from channels.db import database_sync_to_async

from .push import user_group_name

logger = logging.getLogger(__name__)


class NotificationConsumer(AsyncJsonWebsocketConsumer):
    """
    Live notifications for the logged-in user.

    Events sent to client:
    - connection_established: with current unread count
    - notification: a new notification
    """

    async def connect(self):
        user = self.scope.get('user')
        if user is None or not user.is_authenticated:
            await self.close(code=4001)
            return

        self.group_name = user_group_name(user.pk)
        await self.channel_layer.group_add(self.group_name, self.channel_name)
        await self.accept()

        await self.send_json({
            'type': 'connection_established',
            'unread_count': await self.get_unread_count(user),
        })
        logger.info(f"[WS] {user.employee_id} connected to notifications")

    async def disconnect(self, close_code):
        if hasattr(self, 'group_name'):
            await self.channel_layer.group_discard(self.group_name, self.channel_name)

    async def receive_json(self, content):
        if content.get('type') == 'ping':
            await self.send_json({'type': 'pong'})

    # ============================================
    # Event Handlers (called via channel_layer.group_send)
    # ============================================

    async def notification(self, event):
        await self.send_json({
            'type': 'notification',
            'notification': event['notification'],
        })

    @database_sync_to_async
    def get_unread_count(self, user):
        from .services import NotificationService
        return NotificationService.unread_count(user)

"""
NOTIFICATIONS App - Push via WebSocket

Each logged-in client keeps a WebSocket open on ws/notifications/ and
joins the group user_<id>.
"""

import logging
from typing import Any, Dict

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer

logger = logging.getLogger(__name__)


def user_group_name(user_id) -> str:
    return f"user_{user_id}"


class PushService:
    """Send real-time events to a user's connected clients."""

    @classmethod
    def send_to_user(cls, user_id, event_type: str, data: Dict[str, Any]) -> bool:
        """
        Send an event to every socket of one user.

        Args:
            user_id: UUID of the recipient
            event_type: Consumer handler name (e.g. "notification")
            data: Event payload

        Returns:
            True if the message was handed to the channel layer
        """
        try:
            channel_layer = get_channel_layer()
            if not channel_layer:
                logger.warning("[PUSH] No channel layer configured")
                return False

            async_to_sync(channel_layer.group_send)(
                user_group_name(user_id),
                {"type": event_type, **data}
            )
            logger.info(f"[PUSH] Sent {event_type} to user {str(user_id)[:8]}")
            return True

        except Exception as e:
            logger.error(f"[PUSH] Failed to send to user {user_id}: {e}")
            return False

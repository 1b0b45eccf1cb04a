"""Per-user notification stream."""

import logging

from realtime.notifications import DRIVERS_GROUP
from .base import BaseConsumer

logger = logging.getLogger(__name__)


class NotificationConsumer(BaseConsumer):
    """
    Pushes account-level events: offers, acceptances, cancellations,
    subscription changes and support replies.

    Drivers additionally receive ``new_ride`` broadcasts.
    """

    async def on_connect(self):
        if self.role == "driver":
            await self._join_group(DRIVERS_GROUP)

        await self.send_json({
            "type": "connection_established",
            "user_id": self.user_id,
            "role": self.role,
        })
        logger.debug("Notification socket opened for user %s", self.user_id)

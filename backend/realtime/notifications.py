"""
Notification helpers for pushing WebSocket events to connected clients.

Groups:
    user_<id>   every socket of one user
    drivers     every connected driver (new ride broadcasts)
    ride_<id>   client and driver tracking one ride

Every helper is best-effort: failures are logged, never raised.
"""

import logging
from typing import Any, Dict, Optional

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer

logger = logging.getLogger(__name__)

DRIVERS_GROUP = "drivers"


def user_group(user_id: int) -> str:
    return f"user_{user_id}"


def ride_group(ride_id: int) -> str:
    return f"ride_{ride_id}"


def _group_send(group: str, message: Dict[str, Any]) -> bool:
    channel_layer = get_channel_layer()
    if channel_layer is None:
        return False
    try:
        async_to_sync(channel_layer.group_send)(group, message)
        return True
    except Exception:
        logger.exception("Failed to send %s to group %s", message.get("type"), group)
        return False


def notify_user_event(user_id: int, event: str, payload: Optional[Dict[str, Any]] = None) -> bool:
    """Send ``event`` to every socket the user has open."""
    return _group_send(user_group(user_id), {
        "type": "user.event",
        "event": event,
        "payload": payload or {},
    })


def notify_ride_group(ride_id: int, event: str, payload: Optional[Dict[str, Any]] = None) -> bool:
    """Send ``event`` to everyone tracking the ride."""
    return _group_send(ride_group(ride_id), {
        "type": "ride.event",
        "event": event,
        "ride_id": ride_id,
        "payload": payload or {},
    })


def notify_drivers_new_ride(ride_data: Dict[str, Any]) -> bool:
    """Tell connected drivers a new pending ride is up for offers."""
    return _group_send(DRIVERS_GROUP, {
        "type": "user.event",
        "event": "new_ride",
        "payload": {"ride": ride_data},
    })

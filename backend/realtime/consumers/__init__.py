"""Realtime consumers for WebSocket communication."""

from .base import BaseConsumer
from .notification_consumer import NotificationConsumer
from .ride_consumer import RideConsumer

__all__ = [
    "BaseConsumer",
    "NotificationConsumer",
    "RideConsumer",
]

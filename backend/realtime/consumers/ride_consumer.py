"""Ride tracking WebSocket consumer for real-time ride updates."""

import logging
from typing import Dict, Any

from channels.db import database_sync_to_async

from realtime.notifications import ride_group
from .base import BaseConsumer

logger = logging.getLogger(__name__)


class RideConsumer(BaseConsumer):
    """
    WebSocket consumer for a single ride, shared by client and driver.

    Inbound:
        start_tracking / stop_tracking   join or leave ride_<id>
        tracking_update                  driver position (driver only)
        chat_message                     ride chat

    Position and chat updates are persisted and then fanned out to the
    ride group by the ride services.
    """

    async def handle_message(self, msg_type: str, data: Dict[str, Any]):
        if msg_type == "start_tracking":
            await self._handle_start_tracking(data)
        elif msg_type == "stop_tracking":
            await self._handle_stop_tracking(data)
        elif msg_type == "tracking_update":
            await self._handle_tracking_update(data)
        elif msg_type == "chat_message":
            await self._handle_chat_message(data)
        else:
            await self.send_error(f"Unknown message type: {msg_type}")

    # ---------------------- Message Handlers ----------------------

    async def _handle_start_tracking(self, data: Dict[str, Any]):
        ride_id = data.get("ride_id")
        if ride_id is None:
            await self.send_error("start_tracking requires ride_id")
            return

        if not await self._is_participant(ride_id):
            await self.send_error("You are not authorized to track this ride")
            return

        await self._join_group(ride_group(ride_id))
        await self.send_success("tracking_started", ride_id=ride_id)

    async def _handle_stop_tracking(self, data: Dict[str, Any]):
        ride_id = data.get("ride_id")
        if ride_id is None:
            return

        await self._leave_group(ride_group(ride_id))
        await self.send_success("tracking_stopped", ride_id=ride_id)

    async def _handle_tracking_update(self, data: Dict[str, Any]):
        if self.role != "driver":
            await self.send_error("Only drivers can send tracking updates")
            return

        ride_id = data.get("ride_id")
        lat = data.get("latitude")
        lng = data.get("longitude")
        if ride_id is None or lat is None or lng is None:
            await self.send_error("tracking_update requires ride_id, latitude, and longitude")
            return

        try:
            lat, lng = float(lat), float(lng)
        except (TypeError, ValueError):
            await self.send_error("latitude and longitude must be numbers")
            return
        if not (-90 <= lat <= 90 and -180 <= lng <= 180):
            await self.send_error("Coordinates out of range")
            return

        error = await self._update_position(ride_id, lat, lng, data.get("speed"), data.get("heading"))
        if error:
            await self.send_error(error)

    async def _handle_chat_message(self, data: Dict[str, Any]):
        ride_id = data.get("ride_id")
        text = (data.get("message") or "").strip()
        if ride_id is None or not text:
            await self.send_error("chat_message requires ride_id and message")
            return

        error = await self._send_chat(ride_id, text)
        if error:
            await self.send_error(error)

    # ---------------------- Database Helpers ----------------------

    @database_sync_to_async
    def _is_participant(self, ride_id) -> bool:
        from django.db.models import Q
        from rides.models import Ride

        return Ride.objects.filter(Q(client_id=self.user_id) | Q(driver_id=self.user_id), id=ride_id).exists()

    @database_sync_to_async
    def _update_position(self, ride_id, lat, lng, speed, heading):
        """Returns an error message, or None on success."""
        from django.contrib.auth import get_user_model
        from drivers.services import check_driver_access
        from rides.errors import HANDLED_RIDE_ERRORS
        from services.ride_management import update_live_position

        # Reload so a block issued after connect is seen
        driver = get_user_model().objects.get(pk=self.user_id)
        access = check_driver_access(driver)
        if not access.allowed:
            return access.message

        try:
            update_live_position(driver, ride_id, lat, lng, speed, heading)
        except HANDLED_RIDE_ERRORS as e:
            return str(e)
        return None

    @database_sync_to_async
    def _send_chat(self, ride_id, text):
        from rides.errors import HANDLED_RIDE_ERRORS
        from services.ride_management import send_message

        try:
            send_message(self.user, ride_id, text)
        except HANDLED_RIDE_ERRORS as e:
            return str(e)
        return None

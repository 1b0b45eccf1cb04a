"""Ride lifecycle operations and their exceptions."""

from .exceptions import (
    ActiveRideExistsError,
    NotRideParticipantError,
    OfferExpiredError,
    OfferNotFoundError,
    RideAlreadyTakenError,
    RideNotAvailableError,
    RideNotFoundError,
)
from .ride_lifecycle import (
    RideResult,
    accept_client_offer_price,
    accept_counter_offer,
    accept_offer_by_client,
    accept_ride_at_listed_price,
    cancel_ride_by_client,
    cancel_ride_by_driver,
    check_active_ride,
    client_ride_history,
    complete_ride,
    create_ride,
    driver_ride_history,
    get_current_client_ride,
    get_current_driver_ride,
    list_messages,
    list_ride_offers,
    mark_arrived,
    send_message,
    serialize_ride,
    start_ride,
    update_live_position,
)

__all__ = [
    "ActiveRideExistsError",
    "NotRideParticipantError",
    "OfferExpiredError",
    "OfferNotFoundError",
    "RideAlreadyTakenError",
    "RideNotAvailableError",
    "RideNotFoundError",
    "RideResult",
    "accept_client_offer_price",
    "accept_counter_offer",
    "accept_offer_by_client",
    "accept_ride_at_listed_price",
    "cancel_ride_by_client",
    "cancel_ride_by_driver",
    "check_active_ride",
    "client_ride_history",
    "complete_ride",
    "create_ride",
    "driver_ride_history",
    "get_current_client_ride",
    "get_current_driver_ride",
    "list_messages",
    "list_ride_offers",
    "mark_arrived",
    "send_message",
    "serialize_ride",
    "start_ride",
    "update_live_position",
]

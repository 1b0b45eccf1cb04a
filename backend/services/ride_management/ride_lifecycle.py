"""
Core ride lifecycle operations.

Business logic for creating, accepting, progressing and cancelling rides,
kept out of the views layer for testability and reuse. Functions raise the
exceptions in ``exceptions.py``; views map them to HTTP answers.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Optional

from django.db import transaction
from django.db.models import F
from django.utils import timezone

from accounts.models import User
from drivers.models import DriverProfile
from drivers.services import update_driver_location
from pricing.models import AppSettings
from pricing.services import calculate_price, estimate_eta_minutes, ride_distance_km
from rides.models import Ride, RideMessage, RideOffer
from .exceptions import (
    ActiveRideExistsError,
    NotRideParticipantError,
    OfferExpiredError,
    OfferNotFoundError,
    RideAlreadyTakenError,
    RideNotAvailableError,
    RideNotFoundError,
)

logger = logging.getLogger(__name__)


@dataclass
class RideResult:
    """Result object for ride operations."""
    success: bool
    ride: Optional[Ride] = None
    message: str = ""
    error_code: Optional[str] = None
    extra: Optional[Dict[str, Any]] = None


def serialize_ride(ride: Ride) -> Dict[str, Any]:
    from rides.serializers import RideSerializer
    return RideSerializer(ride).data


def _set_driver_status(driver_id: int, status: str):
    DriverProfile.objects.filter(user_id=driver_id).update(status=status)


def _notify_after_commit(func, *args):
    transaction.on_commit(lambda: func(*args))


# ===================== Client Operations =====================

def check_active_ride(client) -> Optional[Ride]:
    """Check if client has an active ride."""
    return Ride.objects.filter(client=client, status__in=Ride.ACTIVE_STATUSES).first()


@transaction.atomic
def create_ride(client, data: Dict[str, Any]) -> RideResult:
    """
    Create a ride request priced from the current AppSettings.

    Args:
        client: User model instance (client)
        data: validated RideCreateSerializer data

    Returns:
        RideResult with the created ride

    Raises:
        ActiveRideExistsError: If client already has an active ride
    """
    from realtime.notifications import notify_drivers_new_ride

    # Lock the client row so two concurrent requests cannot both pass the check
    User.objects.select_for_update().filter(pk=client.pk).first()
    if check_active_ride(client):
        raise ActiveRideExistsError("You already have an active ride")

    app_settings = AppSettings.load()
    pickup = (data['pickup_lat'], data['pickup_lng'])
    dropoff = (data.get('drop_lat'), data.get('drop_lng'))
    passengers = data.get('passengers') or 1

    distance = ride_distance_km(pickup, dropoff)
    price = calculate_price(app_settings, pickup, dropoff, passengers)

    ride = Ride.objects.create(
        client=client,
        pickup_lat=data['pickup_lat'],
        pickup_lng=data['pickup_lng'],
        pickup_address=data.get('pickup_address', ''),
        pickup_city=(data.get('pickup_city') or client.city or '').strip(),
        drop_lat=data.get('drop_lat'),
        drop_lng=data.get('drop_lng'),
        drop_address=data.get('drop_address', ''),
        distance_km=Decimal(str(round(distance, 2))) if distance is not None else None,
        estimated_time_minutes=estimate_eta_minutes(distance),
        passengers=passengers,
        base_price=price,
        currency=app_settings.currency,
        client_offer_price=data.get('client_offer_price'),
        payment_method=data.get('payment_method') or 'cash',
        status='pending',
    )
    logger.info("Ride %s created by client %s (price %s %s)", ride.id, client.id, price, ride.currency)

    _notify_after_commit(notify_drivers_new_ride, serialize_ride(ride))
    return RideResult(success=True, ride=ride, message="Ride requested. Waiting for driver offers.")


def get_current_client_ride(client) -> Optional[Ride]:
    return (
        Ride.objects.filter(client=client, status__in=Ride.ACTIVE_STATUSES)
        .select_related('driver__driver_profile')
        .first()
    )


def client_ride_history(client, limit: int = 100):
    return Ride.objects.filter(client=client).select_related('driver__driver_profile')[:limit]


@transaction.atomic
def cancel_ride_by_client(client, ride_id: int, reason: str = "") -> RideResult:
    """
    Cancel a ride by its client. Frees the driver and expires pending offers.
    """
    from realtime.notifications import notify_ride_group, notify_user_event

    try:
        ride = Ride.objects.select_for_update().get(id=ride_id, client=client)
    except Ride.DoesNotExist:
        raise RideNotFoundError("Ride not found")

    if not ride.is_active:
        raise RideNotAvailableError(f"Cannot cancel - ride is already {ride.status}")

    driver_id = ride.driver_id
    ride.status = 'cancelled'
    ride.cancelled_at = timezone.now()
    ride.cancellation_reason = reason or ''
    ride.save(update_fields=['status', 'cancelled_at', 'cancellation_reason', 'updated_at'])

    ride.offers.filter(status='pending').update(status='expired', updated_at=timezone.now())

    if driver_id:
        _set_driver_status(driver_id, 'available')
        _notify_after_commit(notify_user_event, driver_id, 'ride_cancelled', {
            'ride_id': ride.id, 'message': 'Client cancelled this ride.',
        })
    _notify_after_commit(notify_ride_group, ride.id, 'ride_cancelled', {'message': 'Client cancelled this ride.'})

    return RideResult(
        success=True,
        ride=ride,
        message="Ride cancelled successfully",
        extra={"was_assigned": driver_id is not None},
    )


def list_ride_offers(client, ride_id: int):
    try:
        ride = Ride.objects.get(id=ride_id, client=client)
    except Ride.DoesNotExist:
        raise RideNotFoundError("Ride not found")
    return ride.offers.select_related('driver').order_by('price_offer', 'updated_at')


# ===================== Assignment =====================

def _assign_driver(ride_id: int, driver, price, accepted_offer: Optional[RideOffer] = None) -> Ride:
    """
    Assign ``driver`` to a still-pending ride at ``price``.

    The update only matches while the ride is pending with no driver, so of
    two concurrent acceptances exactly one wins.

    Raises:
        ActiveRideExistsError: the driver is already on an ongoing ride
        RideAlreadyTakenError: the conditional update matched nothing
    """
    from realtime.notifications import notify_ride_group, notify_user_event

    if Ride.objects.filter(driver=driver, status__in=Ride.ONGOING_STATUSES).exists():
        raise ActiveRideExistsError("You already have an active ride")

    now = timezone.now()
    updated = Ride.objects.filter(id=ride_id, status='pending', driver__isnull=True).update(
        driver=driver,
        status='driver_assigned',
        final_price=price,
        accepted_at=now,
        updated_at=now,
    )
    if not updated:
        raise RideAlreadyTakenError("Ride already taken")

    ride = Ride.objects.select_related('client', 'driver__driver_profile').get(id=ride_id)

    if accepted_offer is None:
        accepted_offer = RideOffer.objects.filter(ride=ride, driver=driver).first()
    if accepted_offer is not None:
        RideOffer.objects.filter(pk=accepted_offer.pk).update(status='accepted', updated_at=now)

    losing_driver_ids = list(
        RideOffer.objects.filter(ride=ride, status='pending').exclude(driver=driver)
        .values_list('driver_id', flat=True)
    )
    RideOffer.objects.filter(ride=ride, status='pending').exclude(driver=driver).update(
        status='rejected', updated_at=now
    )

    _set_driver_status(driver.id, 'busy')
    logger.info("Ride %s assigned to driver %s at %s", ride.id, driver.id, price)

    ride_data = serialize_ride(ride)
    _notify_after_commit(notify_user_event, ride.client_id, 'ride_accepted', {'ride': ride_data})
    _notify_after_commit(notify_ride_group, ride.id, 'ride_accepted', {'ride': ride_data})
    for driver_id in losing_driver_ids:
        _notify_after_commit(notify_user_event, driver_id, 'offer_rejected', {'ride_id': ride.id})
    return ride


def _get_live_offer(offer_id: int, **filters) -> RideOffer:
    try:
        offer = RideOffer.objects.select_for_update().select_related('ride').get(id=offer_id, **filters)
    except RideOffer.DoesNotExist:
        raise OfferNotFoundError("Offer not found")

    if offer.status == 'expired' or (offer.expires_at and offer.expires_at <= timezone.now()):
        raise OfferExpiredError("Offer has expired")
    if offer.status != 'pending':
        raise RideNotAvailableError(f"Offer is already {offer.status}")
    return offer


@transaction.atomic
def accept_offer_by_client(client, offer_id: int) -> RideResult:
    """Client picks a driver's offer; the ride's final price is the offered price."""
    offer = _get_live_offer(offer_id, ride__client=client)
    ride = _assign_driver(offer.ride_id, offer.driver, offer.price_offer, accepted_offer=offer)
    return RideResult(success=True, ride=ride, message="Offer accepted")


@transaction.atomic
def accept_ride_at_listed_price(driver, ride_id: int) -> RideResult:
    try:
        price = Ride.objects.values_list('base_price', flat=True).get(id=ride_id)
    except Ride.DoesNotExist:
        raise RideNotFoundError("Ride not found")
    ride = _assign_driver(ride_id, driver, price)
    return RideResult(success=True, ride=ride, message="Ride accepted")


@transaction.atomic
def accept_client_offer_price(driver, ride_id: int) -> RideResult:
    """Driver agrees to the price the client proposed when requesting."""
    try:
        ride = Ride.objects.get(id=ride_id)
    except Ride.DoesNotExist:
        raise RideNotFoundError("Ride not found")
    if ride.client_offer_price is None:
        raise RideNotAvailableError("Client did not propose a price")
    ride = _assign_driver(ride.id, driver, ride.client_offer_price)
    return RideResult(success=True, ride=ride, message="Ride accepted at client price")


@transaction.atomic
def accept_counter_offer(driver, offer_id: int) -> RideResult:
    offer = _get_live_offer(offer_id, driver=driver)
    if offer.client_counter_price is None:
        raise RideNotAvailableError("There is no counter-offer to accept")
    ride = _assign_driver(offer.ride_id, driver, offer.client_counter_price, accepted_offer=offer)
    return RideResult(success=True, ride=ride, message="Counter-offer accepted")


# ===================== Driver Progress =====================

def _get_driver_ride(driver, ride_id: int, allowed_statuses) -> Ride:
    try:
        ride = Ride.objects.select_for_update().get(id=ride_id, driver=driver)
    except Ride.DoesNotExist:
        raise RideNotFoundError("Ride not found")
    if ride.status not in allowed_statuses:
        raise RideNotAvailableError(f"Ride is {ride.status}")
    return ride


def _advance(ride: Ride, status: str, timestamp_field: str, event: str, message: str) -> Ride:
    from realtime.notifications import notify_ride_group, notify_user_event

    ride.status = status
    setattr(ride, timestamp_field, timezone.now())
    ride.save(update_fields=['status', timestamp_field, 'updated_at'])

    ride_data = serialize_ride(ride)
    _notify_after_commit(notify_user_event, ride.client_id, event, {'ride': ride_data, 'message': message})
    _notify_after_commit(notify_ride_group, ride.id, event, {'ride': ride_data, 'message': message})
    return ride


@transaction.atomic
def mark_arrived(driver, ride_id: int) -> RideResult:
    ride = _get_driver_ride(driver, ride_id, ('driver_assigned',))
    _advance(ride, 'driver_arrived', 'arrived_at', 'driver_arrived', 'Your driver has arrived.')
    return RideResult(success=True, ride=ride, message="Marked as arrived")


@transaction.atomic
def start_ride(driver, ride_id: int) -> RideResult:
    ride = _get_driver_ride(driver, ride_id, ('driver_assigned', 'driver_arrived'))
    _advance(ride, 'in_progress', 'started_at', 'ride_started', 'Your ride has started.')
    return RideResult(success=True, ride=ride, message="Ride started")


@transaction.atomic
def complete_ride(driver, ride_id: int) -> RideResult:
    """Finish the ride: cash is settled on the spot, the driver becomes available."""
    ride = _get_driver_ride(driver, ride_id, ('in_progress',))

    if ride.payment_method == 'cash':
        ride.payment_status = 'paid'
    if ride.final_price is None:
        ride.final_price = ride.base_price
    ride.save(update_fields=['payment_status', 'final_price', 'updated_at'])

    _advance(ride, 'completed', 'completed_at', 'ride_completed', 'Ride completed.')

    User.objects.filter(id__in=[ride.client_id, ride.driver_id]).update(completed_rides=F('completed_rides') + 1)
    _set_driver_status(driver.id, 'available')

    logger.info("Ride %s completed by driver %s", ride.id, driver.id)
    return RideResult(success=True, ride=ride, message="Ride completed")


@transaction.atomic
def cancel_ride_by_driver(driver, ride_id: int, reason: str = "") -> RideResult:
    """
    Driver backs out before the trip starts. The ride goes back to pending
    with no driver so other drivers can take it.
    """
    from realtime.notifications import notify_drivers_new_ride, notify_ride_group, notify_user_event

    ride = _get_driver_ride(driver, ride_id, ('driver_assigned', 'driver_arrived'))

    ride.status = 'pending'
    ride.driver = None
    ride.final_price = None
    ride.accepted_at = None
    ride.arrived_at = None
    ride.cancellation_reason = reason or ''
    ride.save(update_fields=['status', 'driver', 'final_price', 'accepted_at', 'arrived_at',
                             'cancellation_reason', 'updated_at'])

    RideOffer.objects.filter(ride=ride, driver=driver).update(status='rejected', updated_at=timezone.now())
    _set_driver_status(driver.id, 'available')

    logger.info("Driver %s dropped ride %s", driver.id, ride.id)
    ride_data = serialize_ride(ride)
    _notify_after_commit(notify_user_event, ride.client_id, 'driver_cancelled', {
        'ride': ride_data, 'message': 'Your driver cancelled. Looking for another driver.',
    })
    _notify_after_commit(notify_ride_group, ride.id, 'driver_cancelled', {'ride': ride_data})
    _notify_after_commit(notify_drivers_new_ride, ride_data)
    return RideResult(success=True, ride=ride, message="Ride released to other drivers")


@transaction.atomic
def update_live_position(driver, ride_id: int, lat, lng, speed=None, heading=None) -> RideResult:
    """Store the driver's live position on the ride and the profile, then broadcast it."""
    from realtime.notifications import notify_ride_group

    ride = _get_driver_ride(driver, ride_id, Ride.ONGOING_STATUSES)
    now = timezone.now()
    ride.driver_lat = lat
    ride.driver_lng = lng
    ride.driver_speed = speed
    ride.driver_heading = heading
    ride.driver_location_updated_at = now
    ride.save(update_fields=['driver_lat', 'driver_lng', 'driver_speed', 'driver_heading',
                             'driver_location_updated_at', 'updated_at'])

    profile = getattr(driver, 'driver_profile', None)
    if profile is not None:
        update_driver_location(profile, lat, lng)

    _notify_after_commit(notify_ride_group, ride.id, 'driver_location', {
        'latitude': float(lat),
        'longitude': float(lng),
        'speed': speed,
        'heading': heading,
        'updated_at': now.isoformat(),
    })
    return RideResult(success=True, ride=ride, message="Location updated")


def get_current_driver_ride(driver) -> Optional[Ride]:
    return (
        Ride.objects.filter(driver=driver, status__in=Ride.ONGOING_STATUSES)
        .select_related('client')
        .first()
    )


def driver_ride_history(driver, limit: int = 100):
    return Ride.objects.filter(driver=driver).select_related('client')[:limit]


# ===================== Ride Chat =====================

def _get_participant_ride(user, ride_id: int) -> Ride:
    try:
        ride = Ride.objects.get(id=ride_id)
    except Ride.DoesNotExist:
        raise RideNotFoundError("Ride not found")
    if not ride.is_participant(user):
        raise NotRideParticipantError("You are not part of this ride")
    return ride


def list_messages(user, ride_id: int):
    ride = _get_participant_ride(user, ride_id)
    return ride.messages.select_related('sender')


def send_message(user, ride_id: int, text: str) -> RideMessage:
    from realtime.notifications import notify_ride_group

    ride = _get_participant_ride(user, ride_id)
    text = (text or '').strip()
    if not text or len(text) > RideMessage.MAX_LENGTH:
        raise ValueError("Message must be between 1 and 2000 characters")

    message = RideMessage.objects.create(ride=ride, sender=user, sender_role=user.role, message=text)
    notify_ride_group(ride.id, 'chat_message', {
        'id': message.id,
        'sender_id': user.id,
        'sender_role': message.sender_role,
        'message': message.message,
        'created_at': message.created_at.isoformat(),
    })
    return message

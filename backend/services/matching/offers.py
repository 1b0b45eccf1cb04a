"""
Driver price offers and client counter-offers on pending rides.
"""

import logging
from datetime import timedelta

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from rides.models import Ride, RideOffer
from services.ride_management.exceptions import (
    OfferNotFoundError,
    RideNotAvailableError,
    RideNotFoundError,
)

logger = logging.getLogger(__name__)


def _offer_payload(offer: RideOffer):
    from rides.serializers import RideOfferSerializer
    return RideOfferSerializer(offer).data


@transaction.atomic
def send_offer(driver, ride_id: int, price_offer, message: str = "", driver_lat=None, driver_lng=None) -> RideOffer:
    """
    Create or replace the driver's offer on a pending ride.

    An updated offer is pending again with a fresh expiry and no counter-offer.
    """
    from realtime.notifications import notify_user_event

    if price_offer is None or price_offer <= 0:
        raise ValueError("Offer price must be greater than zero")

    try:
        ride = Ride.objects.get(id=ride_id)
    except Ride.DoesNotExist:
        raise RideNotFoundError("Ride not found")
    if ride.status != 'pending' or ride.driver_id is not None:
        raise RideNotAvailableError("Ride is no longer open for offers")

    if driver_lat is None or driver_lng is None:
        profile = getattr(driver, 'driver_profile', None)
        if profile is not None and profile.has_position:
            driver_lat, driver_lng = profile.current_latitude, profile.current_longitude

    offer, created = RideOffer.objects.update_or_create(
        ride=ride,
        driver=driver,
        defaults={
            'price_offer': price_offer,
            'client_counter_price': None,
            'message': message or '',
            'driver_lat': driver_lat,
            'driver_lng': driver_lng,
            'status': 'pending',
            'expires_at': timezone.now() + timedelta(seconds=settings.RIDE_OFFER_TTL_SECONDS),
        },
    )
    logger.info("Driver %s %s offer %s on ride %s", driver.id, "sent" if created else "updated", offer.id, ride.id)

    payload = _offer_payload(offer)
    transaction.on_commit(lambda: notify_user_event(ride.client_id, 'new_offer', {'offer': payload}))
    return offer


@transaction.atomic
def counter_offer(client, offer_id: int, price) -> RideOffer:
    """Client proposes a different price on a driver's pending offer."""
    from realtime.notifications import notify_user_event

    if price is None or price <= 0:
        raise ValueError("Counter price must be greater than zero")

    try:
        offer = RideOffer.objects.select_for_update().select_related('ride').get(id=offer_id, ride__client=client)
    except RideOffer.DoesNotExist:
        raise OfferNotFoundError("Offer not found")

    if offer.status != 'pending' or offer.ride.status != 'pending' or offer.ride.driver_id is not None:
        raise RideNotAvailableError("Offer can no longer be countered")

    offer.client_counter_price = price
    offer.save(update_fields=['client_counter_price', 'updated_at'])

    payload = _offer_payload(offer)
    transaction.on_commit(lambda: notify_user_event(offer.driver_id, 'counter_offer', {'offer': payload}))
    return offer


def expire_stale_offers(now=None) -> int:
    """Mark pending offers past their expiry as expired."""
    now = now or timezone.now()
    count = RideOffer.objects.filter(status='pending', expires_at__lt=now).update(status='expired', updated_at=now)
    if count:
        logger.info("Expired %s stale ride offers", count)
    return count

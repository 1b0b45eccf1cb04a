"""
Pending rides visible to a driver.

Rides are matched by the driver's city first. When the city matches
nothing and the driver has a known position, every pending ride within the
fallback radius is offered instead.
"""

import logging
from typing import Dict, List

from django.conf import settings

from common.utils import calculate_distance_km
from rides.models import Ride, RideOffer

logger = logging.getLogger(__name__)

MAX_AVAILABLE_RIDES = 100


def _open_rides():
    return (
        Ride.objects.filter(status='pending', driver__isnull=True)
        .select_related('client')
        .order_by('-created_at')
    )


def _within_radius(rides, lat: float, lng: float, radius_km: float) -> List[Ride]:
    nearby = []
    for ride in rides:
        distance = calculate_distance_km(lat, lng, ride.pickup_lat, ride.pickup_lng)
        if distance <= radius_km:
            nearby.append(ride)
            if len(nearby) >= MAX_AVAILABLE_RIDES:
                break
    return nearby


def find_available_rides(driver, radius_km: float = None) -> List[Ride]:
    """Newest first, at most MAX_AVAILABLE_RIDES."""
    radius_km = radius_km if radius_km is not None else settings.DRIVER_FALLBACK_RADIUS_KM
    city = (driver.city or '').strip()

    rides = _open_rides()
    if city:
        rides = rides.filter(pickup_city__icontains=city)
    matched = list(rides[:MAX_AVAILABLE_RIDES])
    if matched:
        return matched

    profile = getattr(driver, 'driver_profile', None)
    if profile is None or not profile.has_position:
        return []

    logger.debug("No city match for driver %s, using %s km fallback", driver.id, radius_km)
    return _within_radius(
        _open_rides().iterator(),
        float(profile.current_latitude),
        float(profile.current_longitude),
        radius_km,
    )


def annotate_with_driver_offers(rides: List[Ride], driver) -> List[Dict]:
    """Serialize rides with the driver's own offer and pickup distance attached."""
    from rides.serializers import RideOfferSerializer, RideSerializer

    offers = {
        offer.ride_id: offer
        for offer in RideOffer.objects.filter(driver=driver, ride__in=rides).select_related('driver')
    }
    profile = getattr(driver, 'driver_profile', None)
    has_position = profile is not None and profile.has_position

    results = []
    for ride in rides:
        data = dict(RideSerializer(ride).data)
        offer = offers.get(ride.id)
        data['my_offer'] = RideOfferSerializer(offer).data if offer else None
        data['distance_to_pickup_km'] = (
            round(calculate_distance_km(profile.current_latitude, profile.current_longitude,
                                        ride.pickup_lat, ride.pickup_lng), 2)
            if has_position else None
        )
        results.append(data)
    return results

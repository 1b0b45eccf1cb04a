"""Server-side ride pricing and ETA estimation."""

from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from common.utils.geo import calculate_distance_km, has_coordinates

DEFAULT_SPEED_KMH = 30
MIN_SPEED_KMH = 3


def ride_distance_km(pickup, dropoff) -> Optional[float]:
    """Distance between two (lat, lng) pairs, None when either is incomplete."""
    if not pickup or not dropoff or not has_coordinates(*pickup, *dropoff):
        return None
    return calculate_distance_km(pickup[0], pickup[1], dropoff[0], dropoff[1])


def calculate_price(settings, pickup=None, dropoff=None, passengers=1) -> Decimal:
    """
    Compute the listed price of a ride.

    fixed:    fixed_price_amount x passengers
    distance: haversine km x price_per_km x passengers (0 without coordinates)

    Passengers below 1 count as 1. Result is rounded to a whole amount and
    never negative.
    """
    try:
        passengers = max(1, int(passengers or 1))
    except (TypeError, ValueError):
        passengers = 1

    if settings.pricing_mode == 'distance':
        distance = ride_distance_km(pickup, dropoff) or 0
        raw = Decimal(str(distance)) * Decimal(settings.price_per_km) * passengers
    else:
        raw = Decimal(settings.fixed_price_amount) * passengers

    price = raw.quantize(Decimal('1'), rounding=ROUND_HALF_UP)
    return max(price, Decimal('0'))


def estimate_eta_minutes(distance_km, speed_kmh=None) -> Optional[int]:
    """
    Travel time at speed_kmh, at least one minute, rounded half up.

    Speeds of MIN_SPEED_KMH or less are treated as unknown and replaced by
    DEFAULT_SPEED_KMH.
    """
    if not distance_km or distance_km <= 0:
        return None
    speed = speed_kmh if speed_kmh and speed_kmh > MIN_SPEED_KMH else DEFAULT_SPEED_KMH
    minutes = Decimal(str(distance_km)) * 60 / Decimal(str(speed))
    return max(1, int(minutes.quantize(Decimal("1"), rounding=ROUND_HALF_UP)))

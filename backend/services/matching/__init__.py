"""
Driver matching and price offers.

This module handles:
    - Finding pending rides a driver may bid on (city match, radius fallback)
    - Driver offers, client counter-offers and offer expiry
"""

from .available_rides import annotate_with_driver_offers, find_available_rides
from .offers import counter_offer, expire_stale_offers, send_offer

__all__ = [
    "annotate_with_driver_offers",
    "find_available_rides",
    "counter_offer",
    "expire_stale_offers",
    "send_offer",
]

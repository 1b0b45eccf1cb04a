"""Translate ride service exceptions into API responses."""

from rest_framework import status
from rest_framework.response import Response

from services.ride_management.exceptions import (
    ActiveRideExistsError,
    NotRideParticipantError,
    OfferExpiredError,
    OfferNotFoundError,
    RideAlreadyTakenError,
    RideNotAvailableError,
    RideNotFoundError,
)

RIDE_ERRORS = (
    (RideNotFoundError, 'ride_not_found', status.HTTP_404_NOT_FOUND),
    (OfferNotFoundError, 'offer_not_found', status.HTTP_404_NOT_FOUND),
    (NotRideParticipantError, 'not_participant', status.HTTP_403_FORBIDDEN),
    (RideAlreadyTakenError, 'ride_already_taken', status.HTTP_409_CONFLICT),
    (ActiveRideExistsError, 'active_ride_exists', status.HTTP_409_CONFLICT),
    (OfferExpiredError, 'offer_expired', status.HTTP_410_GONE),
    (RideNotAvailableError, 'ride_not_available', status.HTTP_400_BAD_REQUEST),
    (ValueError, 'invalid_request', status.HTTP_400_BAD_REQUEST),
)

HANDLED_RIDE_ERRORS = tuple(exc_class for exc_class, _, _ in RIDE_ERRORS)


def ride_error_response(exc):
    for exc_class, code, http_status in RIDE_ERRORS:
        if isinstance(exc, exc_class):
            return Response({'error': code, 'message': str(exc)}, status=http_status)
    raise exc

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated

from accounts.permissions import IsClient, IsDriver
from drivers.services import check_driver_access
from drivers.views import access_denied_response
from services import matching
from services import ride_management as lifecycle
from .errors import HANDLED_RIDE_ERRORS, ride_error_response
from .serializers import (
    CounterOfferSerializer,
    LivePositionSerializer,
    MessageCreateSerializer,
    OfferCreateSerializer,
    RideCancelSerializer,
    RideMessageSerializer,
    RideOfferSerializer,
    RideSerializer,
)


def _gate(request):
    """None when the driver may act on rides, else the 403 response."""
    access = check_driver_access(request.user)
    if not access.allowed:
        return access_denied_response(access)
    return None


def _ride_response(result, request, status_code=status.HTTP_200_OK):
    return Response({
        'message': result.message,
        'ride': RideSerializer(result.ride, context={'request': request}).data,
        **(result.extra or {}),
    }, status=status_code)


# ==================== Driver Ride APIs ====================

@api_view(['GET'])
@permission_classes([IsAuthenticated, IsDriver])
def available_rides(request):
    """Pending rides the driver can bid on, newest first"""
    denied = _gate(request)
    if denied:
        return denied

    found = matching.find_available_rides(request.user)
    data = matching.annotate_with_driver_offers(found, request.user)
    return Response({'rides': data, 'count': len(data)})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsDriver])
def send_offer(request, ride_id):
    """Create or update this driver's price offer on a ride"""
    denied = _gate(request)
    if denied:
        return denied

    serializer = OfferCreateSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data
    try:
        offer = matching.send_offer(
            request.user,
            ride_id,
            data['price_offer'],
            message=data.get('message', ''),
            driver_lat=data.get('driver_lat'),
            driver_lng=data.get('driver_lng'),
        )
    except HANDLED_RIDE_ERRORS as e:
        return ride_error_response(e)

    return Response(RideOfferSerializer(offer).data, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsDriver])
def accept_ride(request, ride_id):
    """Take the ride at its listed price"""
    denied = _gate(request)
    if denied:
        return denied
    try:
        result = lifecycle.accept_ride_at_listed_price(request.user, ride_id)
    except HANDLED_RIDE_ERRORS as e:
        return ride_error_response(e)
    return _ride_response(result, request)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsDriver])
def accept_client_price(request, ride_id):
    """Take the ride at the price the client proposed"""
    denied = _gate(request)
    if denied:
        return denied
    try:
        result = lifecycle.accept_client_offer_price(request.user, ride_id)
    except HANDLED_RIDE_ERRORS as e:
        return ride_error_response(e)
    return _ride_response(result, request)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsDriver])
def accept_counter_offer(request, offer_id):
    denied = _gate(request)
    if denied:
        return denied
    try:
        result = lifecycle.accept_counter_offer(request.user, offer_id)
    except HANDLED_RIDE_ERRORS as e:
        return ride_error_response(e)
    return _ride_response(result, request)


def _progress(request, ride_id, operation):
    denied = _gate(request)
    if denied:
        return denied
    try:
        result = operation(request.user, ride_id)
    except HANDLED_RIDE_ERRORS as e:
        return ride_error_response(e)
    return _ride_response(result, request)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsDriver])
def arrive(request, ride_id):
    return _progress(request, ride_id, lifecycle.mark_arrived)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsDriver])
def start(request, ride_id):
    return _progress(request, ride_id, lifecycle.start_ride)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsDriver])
def complete(request, ride_id):
    return _progress(request, ride_id, lifecycle.complete_ride)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsDriver])
def driver_cancel(request, ride_id):
    """Driver backs out; the ride returns to the pending pool"""
    denied = _gate(request)
    if denied:
        return denied

    serializer = RideCancelSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    try:
        result = lifecycle.cancel_ride_by_driver(request.user, ride_id, serializer.validated_data['reason'])
    except HANDLED_RIDE_ERRORS as e:
        return ride_error_response(e)
    return _ride_response(result, request)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsDriver])
def live_position(request, ride_id):
    denied = _gate(request)
    if denied:
        return denied

    serializer = LivePositionSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data
    try:
        lifecycle.update_live_position(
            request.user, ride_id, data['latitude'], data['longitude'],
            speed=data.get('speed'), heading=data.get('heading'),
        )
    except HANDLED_RIDE_ERRORS as e:
        return ride_error_response(e)
    return Response({'message': 'Location updated'})


# ==================== Ride Chat ====================

@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def ride_messages(request, ride_id):
    """Chat between the ride's client and its driver"""
    try:
        if request.method == 'GET':
            messages = lifecycle.list_messages(request.user, ride_id)
            return Response(RideMessageSerializer(messages, many=True).data)

        serializer = MessageCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        message = lifecycle.send_message(request.user, ride_id, serializer.validated_data['message'])
    except HANDLED_RIDE_ERRORS as e:
        return ride_error_response(e)
    return Response(RideMessageSerializer(message).data, status=status.HTTP_201_CREATED)


# ==================== Counter-offers (client) ====================

@api_view(['POST'])
@permission_classes([IsAuthenticated, IsClient])
def counter_offer(request, offer_id):
    serializer = CounterOfferSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    try:
        offer = matching.counter_offer(request.user, offer_id, serializer.validated_data['price'])
    except HANDLED_RIDE_ERRORS as e:
        return ride_error_response(e)
    return Response(RideOfferSerializer(offer).data)

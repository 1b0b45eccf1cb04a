# clients/views.py

from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated

from accounts.permissions import IsClient
from pricing.models import AppSettings
from pricing.services import calculate_price, estimate_eta_minutes, ride_distance_km
from rides.errors import HANDLED_RIDE_ERRORS, ride_error_response
from rides.serializers import RideCancelSerializer, RideCreateSerializer, RideOfferSerializer, RideSerializer
from services import ride_management as lifecycle

STATUS_MESSAGES = {
    "pending": "Waiting for driver offers...",
    "driver_assigned": "Driver is on the way!",
    "driver_arrived": "Your driver has arrived.",
    "in_progress": "Enjoy your ride.",
}


class ClientRideEstimateView(APIView):
    """
    POST: price, distance and ETA for a prospective ride, without creating it.
    """
    permission_classes = [IsAuthenticated, IsClient]

    def post(self, request):
        serializer = RideCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        app_settings = AppSettings.load()
        pickup = (data["pickup_lat"], data["pickup_lng"])
        dropoff = (data.get("drop_lat"), data.get("drop_lng"))
        distance = ride_distance_km(pickup, dropoff)

        return Response({
            "price": calculate_price(app_settings, pickup, dropoff, data.get("passengers", 1)),
            "currency": app_settings.currency,
            "pricing_mode": app_settings.pricing_mode,
            "distance_km": round(distance, 2) if distance is not None else None,
            "estimated_time_minutes": estimate_eta_minutes(distance),
        })


class ClientCreateRideView(APIView):
    """
    POST: Client creates a ride request.
    """
    permission_classes = [IsAuthenticated, IsClient]

    def post(self, request):
        serializer = RideCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            result = lifecycle.create_ride(request.user, serializer.validated_data)
        except HANDLED_RIDE_ERRORS as e:
            return ride_error_response(e)

        return Response({
            "message": result.message,
            "ride": RideSerializer(result.ride, context={"request": request}).data,
        }, status=201)


class ClientCurrentRideView(APIView):
    """
    GET: Client's active ride, if any.
    """
    permission_classes = [IsAuthenticated, IsClient]

    def get(self, request):
        ride = lifecycle.get_current_client_ride(request.user)

        if not ride:
            return Response({
                "has_active_ride": False,
                "message": "No active ride found"
            })

        return Response({
            "has_active_ride": True,
            "ride": RideSerializer(ride, context={"request": request}).data,
            "status": ride.status,
            "driver_assigned": ride.driver_id is not None,
            "message": STATUS_MESSAGES.get(ride.status, ""),
        })


class ClientRideHistoryView(APIView):
    permission_classes = [IsAuthenticated, IsClient]

    def get(self, request):
        rides = lifecycle.client_ride_history(request.user)
        data = RideSerializer(rides, many=True, context={"request": request}).data
        return Response({"rides": data, "count": len(data)})


class ClientCancelRideView(APIView):
    """
    POST: Client cancels a ride.
    """
    permission_classes = [IsAuthenticated, IsClient]

    def post(self, request, ride_id: int):
        serializer = RideCancelSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            result = lifecycle.cancel_ride_by_client(request.user, ride_id, serializer.validated_data["reason"])
        except HANDLED_RIDE_ERRORS as e:
            return ride_error_response(e)

        return Response({
            "message": result.message,
            "ride": RideSerializer(result.ride, context={"request": request}).data,
            **(result.extra or {}),
        })


class ClientRideOffersView(APIView):
    """
    GET: driver offers on the client's ride.
    """
    permission_classes = [IsAuthenticated, IsClient]

    def get(self, request, ride_id: int):
        try:
            offers = lifecycle.list_ride_offers(request.user, ride_id)
        except HANDLED_RIDE_ERRORS as e:
            return ride_error_response(e)

        data = RideOfferSerializer(offers, many=True).data
        return Response({"offers": data, "count": len(data)})


class ClientAcceptOfferView(APIView):
    """
    POST: accept a driver's offer. Answers 409 if another driver got the ride first.
    """
    permission_classes = [IsAuthenticated, IsClient]

    def post(self, request, offer_id: int):
        try:
            result = lifecycle.accept_offer_by_client(request.user, offer_id)
        except HANDLED_RIDE_ERRORS as e:
            return ride_error_response(e)

        return Response({
            "message": result.message,
            "ride": RideSerializer(result.ride, context={"request": request}).data,
        })

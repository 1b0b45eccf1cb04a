import logging

from django.core import signing
from django.http import FileResponse, Http404
from rest_framework.decorators import api_view, permission_classes
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from drivers import services
from drivers.models import DriverProfile, DriverVerification
from drivers.serializers import (
    DriverProfileSerializer,
    DriverStatusSerializer,
    DriverVerificationSerializer,
    LocationUpdateSerializer,
    VerificationSubmitSerializer,
)
from rides.serializers import RideSerializer
from services.ride_management import driver_ride_history, get_current_driver_ride

logger = logging.getLogger(__name__)


# Utility: Ensure request.user is a driver
def require_driver(user):
    if user.role != "driver":
        return False, Response({"error": "forbidden", "message": "Only drivers allowed"}, status=403)
    return True, services.get_or_create_profile(user)


def access_denied_response(access):
    return Response({
        "error": access.reason,
        "message": access.message,
        "access": access.as_dict(),
    }, status=403)


class DriverProfileView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        ok, profile = require_driver(request.user)
        if ok is False:
            return profile  # Response object

        serializer = DriverProfileSerializer(profile, context={"request": request})
        return Response(serializer.data)

    def patch(self, request):
        ok, profile = require_driver(request.user)
        if ok is False:
            return profile

        serializer = DriverProfileSerializer(profile, data=request.data, partial=True, context={"request": request})
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response(serializer.data, status=200)


class DriverStatusView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        ok, profile = require_driver(request.user)
        if ok is False:
            return profile

        return Response({"status": profile.status})

    def put(self, request):
        ok, profile = require_driver(request.user)
        if ok is False:
            return profile

        serializer = DriverStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        new_status = serializer.validated_data["status"]

        if new_status == "available":
            access = services.check_driver_access(request.user)
            if not access.allowed:
                return access_denied_response(access)

        if profile.status == "busy" and get_current_driver_ride(request.user):
            return Response({"error": "ride_in_progress", "message": "Finish your current ride first"}, status=409)

        services.update_driver_status(profile, new_status)

        return Response({
            "message": f"Status updated to {new_status}",
            "status": new_status
        })


class DriverLocationUpdateView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        ok, profile = require_driver(request.user)
        if ok is False:
            return profile

        return Response({
            "latitude": float(profile.current_latitude) if profile.has_position else None,
            "longitude": float(profile.current_longitude) if profile.has_position else None,
            "last_updated": profile.last_location_update,
            "status": profile.status,
        })

    def post(self, request):
        ok, profile = require_driver(request.user)
        if ok is False:
            return profile

        serializer = LocationUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        lat = serializer.validated_data["latitude"]
        lon = serializer.validated_data["longitude"]

        services.update_driver_location(profile, lat, lon)

        return Response({
            "message": "Location updated",
            "latitude": float(lat),
            "longitude": float(lon),
            "status": profile.status
        })


class DriverCurrentRideView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        ok, profile = require_driver(request.user)
        if ok is False:
            return profile

        ride = get_current_driver_ride(request.user)
        if not ride:
            return Response({"has_active_ride": False, "message": "No active ride"})

        return Response({
            "has_active_ride": True,
            "ride": RideSerializer(ride, context={"request": request}).data,
        })


class DriverRideHistoryView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        ok, profile = require_driver(request.user)
        if ok is False:
            return profile

        rides = driver_ride_history(request.user)
        data = RideSerializer(rides, many=True, context={"request": request}).data
        return Response({"rides": data, "count": len(data)})


class DriverAccessView(APIView):
    """GET: whether the driver may take rides, and why not."""
    permission_classes = [IsAuthenticated]

    def get(self, request):
        ok, profile = require_driver(request.user)
        if ok is False:
            return profile

        return Response(services.check_driver_access(request.user).as_dict())


class DriverVerificationView(APIView):
    """
    GET: the driver's own verification submission.
    POST (multipart): submit or resubmit documents.
    """
    permission_classes = [IsAuthenticated]
    parser_classes = [MultiPartParser, FormParser, JSONParser]

    def get(self, request):
        ok, profile = require_driver(request.user)
        if ok is False:
            return profile

        verification = DriverVerification.objects.filter(driver=request.user).first()
        if not verification:
            return Response({"verification": None, "admin_approved": request.user.admin_approved})
        return Response({
            "verification": DriverVerificationSerializer(verification, context={"request": request}).data,
            "admin_approved": request.user.admin_approved,
        })

    def post(self, request):
        ok, profile = require_driver(request.user)
        if ok is False:
            return profile

        serializer = VerificationSubmitSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            verification = services.submit_verification(request.user, serializer.validated_data, request.FILES)
        except services.VerificationError as e:
            return Response({"error": "invalid_documents", "message": str(e)}, status=400)

        return Response(
            DriverVerificationSerializer(verification, context={"request": request}).data,
            status=201,
        )


@api_view(["GET"])
@permission_classes([AllowAny])
def driver_document(request, token):
    """Serve a verification document behind a time-limited signed token."""
    try:
        verification_id, field_name = services.unsign_document(token)
    except signing.SignatureExpired:
        return Response({"error": "link_expired", "message": "Document link expired"}, status=410)
    except signing.BadSignature:
        raise Http404

    if field_name not in DriverVerification.DOCUMENT_FIELDS:
        raise Http404
    verification = DriverVerification.objects.filter(id=verification_id).first()
    document = getattr(verification, field_name, None) if verification else None
    if not document:
        raise Http404

    return FileResponse(document.open("rb"))

import logging

from django.db.models import Q
from django.shortcuts import get_object_or_404
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.models import User
from accounts.permissions import IsAdminOrOwner, IsOwner
from drivers.models import DriverVerification
from drivers.services import review_verification
from rides.serializers import RideSerializer
from subscriptions import services as subscription_services
from subscriptions.serializers import DriverSubscriptionSerializer, FreeAccessGrantSerializer
from . import services
from .serializers import DriverBlockSerializer, VerificationQueueSerializer, VerificationReviewSerializer

logger = logging.getLogger(__name__)


def _search_param(request):
    return (request.query_params.get("search") or "").strip()


class RideListView(APIView):
    permission_classes = [IsAuthenticated, IsAdminOrOwner]

    def get(self, request):
        rides = services.search_rides(_search_param(request), request.query_params.get("status") or "")
        data = RideSerializer(rides, many=True, context={"request": request}).data
        return Response({"rides": data, "count": len(data)})


class DriverListView(APIView):
    permission_classes = [IsAuthenticated, IsAdminOrOwner]

    def get(self, request):
        rows = []
        for driver, subscription in services.search_drivers(_search_param(request)):
            rows.append({
                "id": driver.id,
                "username": driver.username,
                "full_name": driver.full_name,
                "email": driver.email,
                "phone_number": driver.phone_number,
                "city": driver.city,
                "completed_rides": driver.completed_rides,
                "admin_approved": driver.admin_approved,
                "admin_blocked": driver.admin_blocked,
                "subscription_status": subscription.status if subscription else None,
                "subscription_expires_at": subscription.expires_at if subscription else None,
                "is_free_access": subscription.is_free_access if subscription else False,
            })
        return Response({"drivers": rows, "count": len(rows)})


class DriverBlockView(APIView):
    """
    POST {"blocked": true|false}: block or unblock a driver.
    """
    permission_classes = [IsAuthenticated, IsAdminOrOwner]

    def post(self, request, driver_id: int):
        driver = get_object_or_404(User, id=driver_id, role=User.ROLE_DRIVER)
        serializer = DriverBlockSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        driver.admin_blocked = serializer.validated_data["blocked"]
        driver.save(update_fields=["admin_blocked", "updated_at"])
        logger.info("Driver %s blocked=%s by %s", driver.id, driver.admin_blocked, request.user.id)

        return Response({"id": driver.id, "admin_blocked": driver.admin_blocked})


class VerificationQueueView(APIView):
    permission_classes = [IsAuthenticated, IsAdminOrOwner]

    def get(self, request):
        verifications = DriverVerification.objects.select_related("driver").order_by("-submitted_at")

        status_filter = request.query_params.get("status") or "pending"
        if status_filter != "all":
            verifications = verifications.filter(status=status_filter)

        search = _search_param(request)
        if search:
            verifications = verifications.filter(
                Q(driver__full_name__icontains=search)
                | Q(driver__username__icontains=search)
                | Q(vehicle_plate__icontains=search)
                | Q(license_number__icontains=search)
            )

        data = VerificationQueueSerializer(
            verifications[:services.LIST_LIMIT], many=True, context={"request": request}
        ).data
        return Response({"verifications": data, "count": len(data)})


class VerificationReviewView(APIView):
    """
    POST {"action": "approve"|"reject", "note": "..."}
    """
    permission_classes = [IsAuthenticated, IsAdminOrOwner]

    def post(self, request, verification_id: int):
        verification = get_object_or_404(DriverVerification.objects.select_related("driver"), id=verification_id)
        serializer = VerificationReviewSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        review_verification(verification, request.user, data["action"] == "approve", data["note"])
        return Response(VerificationQueueSerializer(verification, context={"request": request}).data)


class CrmView(APIView):
    permission_classes = [IsAuthenticated, IsAdminOrOwner]

    def get(self, request):
        return Response(services.driver_pairs(_search_param(request)))


class AffiliateStatsView(APIView):
    permission_classes = [IsAuthenticated, IsAdminOrOwner]

    def get(self, request):
        return Response(services.affiliate_stats(_search_param(request)))


class OwnerStatsView(APIView):
    permission_classes = [IsAuthenticated, IsOwner]

    def get(self, request):
        return Response(services.owner_overview())


class FreeAccessView(APIView):
    """
    POST {"days": N, "reason": "..."}: grant free access.
    DELETE: revoke it.
    """
    permission_classes = [IsAuthenticated, IsOwner]

    def post(self, request, driver_id: int):
        driver = get_object_or_404(User, id=driver_id, role=User.ROLE_DRIVER)
        serializer = FreeAccessGrantSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        subscription = subscription_services.grant_free_access(
            driver, serializer.validated_data["days"], serializer.validated_data["reason"]
        )
        return Response(DriverSubscriptionSerializer(subscription).data)

    def delete(self, request, driver_id: int):
        driver = get_object_or_404(User, id=driver_id, role=User.ROLE_DRIVER)
        subscription = subscription_services.revoke_free_access(driver)
        return Response(DriverSubscriptionSerializer(subscription).data)

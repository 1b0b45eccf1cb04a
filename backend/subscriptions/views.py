import logging

from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.permissions import IsDriver
from pricing.models import AppSettings
from . import services
from .exceptions import SubscriptionConfigError, SubscriptionNotActiveError, SubscriptionProviderError
from .serializers import (
    DriverSubscriptionSerializer,
    GooglePlayVerifySerializer,
    PayPalCreateSerializer,
    PayPalVerifySerializer,
)

logger = logging.getLogger(__name__)


def billing_error_response(exc):
    if isinstance(exc, SubscriptionConfigError):
        return Response({"error": "billing_not_configured", "message": str(exc)}, status=500)
    if isinstance(exc, SubscriptionNotActiveError):
        return Response({"error": "subscription_not_active", "message": str(exc)}, status=400)
    logger.warning("Billing provider error: %s", exc)
    return Response({
        "error": "provider_error",
        "message": str(exc),
        "provider_status": exc.status_code,
    }, status=502)


BILLING_ERRORS = (SubscriptionConfigError, SubscriptionNotActiveError, SubscriptionProviderError)


def subscription_state(driver):
    app_settings = AppSettings.load()
    subscription = services.get_subscription(driver)
    return {
        "subscription": DriverSubscriptionSerializer(subscription).data if subscription else None,
        "is_active": subscription.is_active if subscription else False,
        "required": app_settings.require_driver_subscription,
        "price": app_settings.driver_subscription_price,
        "currency": app_settings.subscription_currency,
        "period_days": app_settings.subscription_period_days,
    }


class SubscriptionStateView(APIView):
    """
    GET: the driver's subscription and the current plan terms.
    """
    permission_classes = [IsAuthenticated, IsDriver]

    def get(self, request):
        return Response(subscription_state(request.user))


class PayPalCreateView(APIView):
    """
    POST: start a PayPal subscription; the app redirects the driver to approve_url.
    """
    permission_classes = [IsAuthenticated, IsDriver]

    def post(self, request):
        serializer = PayPalCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            result = services.start_paypal_checkout(
                request.user,
                plan_id=data.get("plan_id") or None,
                return_url=data.get("return_url"),
                cancel_url=data.get("cancel_url"),
            )
        except BILLING_ERRORS as e:
            return billing_error_response(e)

        return Response({
            "subscription_id": result["id"],
            "status": result["status"],
            "approve_url": result["approve_url"],
            "plan_id": result["plan_id"],
        }, status=201)


class PayPalVerifyView(APIView):
    """
    POST: confirm an approved PayPal subscription and activate access.
    """
    permission_classes = [IsAuthenticated, IsDriver]

    def post(self, request):
        serializer = PayPalVerifySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            services.activate_paypal_subscription(request.user, serializer.validated_data["subscription_id"])
        except BILLING_ERRORS as e:
            return billing_error_response(e)

        return Response({"message": "Subscription activated", **subscription_state(request.user)})


class GooglePlayVerifyView(APIView):
    permission_classes = [IsAuthenticated, IsDriver]

    def post(self, request):
        serializer = GooglePlayVerifySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            subscription = services.verify_google_play_purchase(
                request.user,
                data["purchase_token"],
                data["product_id"],
                data.get("package_name") or None,
            )
        except BILLING_ERRORS as e:
            return billing_error_response(e)

        message = "Subscription activated" if subscription.is_active else "Purchase is no longer active"
        return Response({"message": message, **subscription_state(request.user)})

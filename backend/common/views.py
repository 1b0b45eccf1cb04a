from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from common.utils.currency import get_exchange_rate, resolve_currency_for_country
from common.utils.ip_location import detect_location_from_ip, get_client_ip


@api_view(["GET"])
@permission_classes([AllowAny])
def locate(request):
    """Best-effort city/country/coordinates for the caller's IP."""
    location = detect_location_from_ip(get_client_ip(request))
    if not location:
        return Response({"error": "location_unavailable", "message": "Could not detect location"},
                        status=status.HTTP_404_NOT_FOUND)
    return Response(location)


@api_view(["GET"])
@permission_classes([AllowAny])
def currency_for_country(request):
    country = request.query_params.get("country")
    fallback = request.query_params.get("fallback")
    return Response(resolve_currency_for_country(country, fallback))


@api_view(["GET"])
@permission_classes([AllowAny])
def exchange_rate(request):
    base = request.query_params.get("base")
    target = request.query_params.get("target")
    if not base or not target:
        return Response({"error": "invalid_request", "message": "base and target are required"},
                        status=status.HTTP_400_BAD_REQUEST)

    rate = get_exchange_rate(base, target)
    if rate is None:
        return Response({"error": "rate_unavailable", "message": "Exchange rate unavailable"},
                        status=status.HTTP_502_BAD_GATEWAY)
    return Response({"base": base.upper(), "target": target.upper(), "rate": rate})

import redis
from channels.layers import get_channel_layer
from django.conf import settings
from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from rides.models import Ride


def _check_database():
    Ride.objects.count()


def _check_redis():
    client = redis.Redis(
        host=settings.REDIS_HOST,
        port=settings.REDIS_PORT,
        db=0,
        socket_timeout=3,
    )
    client.ping()


def _check_channels():
    if get_channel_layer() is None:
        raise RuntimeError("no channel layer")


def _check_celery():
    from rides.tasks import expire_stale_offers_task
    from subscriptions.tasks import expire_subscriptions_task

    for task in (expire_stale_offers_task, expire_subscriptions_task):
        if not task:
            raise RuntimeError("task not registered")


HEALTH_CHECKS = {
    "database": _check_database,
    "redis": _check_redis,
    "channels": _check_channels,
    "celery": _check_celery,
}


@api_view(["GET"])
@permission_classes([AllowAny])
def health_check(request):
    """Health check endpoint for monitoring system status"""

    health_status = {
        "status": "healthy",
        "timestamp": timezone.now().isoformat(),
        "services": {}
    }

    for name, check in HEALTH_CHECKS.items():
        try:
            check()
            health_status["services"][name] = "healthy"
        except Exception as e:
            health_status["services"][name] = f"unhealthy: {e}"
            health_status["status"] = "unhealthy"

    status_code = (
        status.HTTP_200_OK
        if health_status["status"] == "healthy"
        else status.HTTP_503_SERVICE_UNAVAILABLE
    )

    return Response(health_status, status=status_code)

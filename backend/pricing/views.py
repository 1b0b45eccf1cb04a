import logging

from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import AllowAny

from accounts.permissions import IsOwner
from .models import AppSettings
from .serializers import AppSettingsSerializer, PublicAppSettingsSerializer

logger = logging.getLogger(__name__)


class AppSettingsView(APIView):
    """
    GET: public pricing/subscription settings.
    PUT/PATCH: owner updates the platform settings.
    """

    def get_permissions(self):
        if self.request.method == 'GET':
            return [AllowAny()]
        return [IsOwner()]

    def get(self, request):
        return Response(PublicAppSettingsSerializer(AppSettings.load()).data)

    def put(self, request):
        return self._update(request, partial=False)

    def patch(self, request):
        return self._update(request, partial=True)

    def _update(self, request, partial):
        settings_obj = AppSettings.load()
        serializer = AppSettingsSerializer(settings_obj, data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        logger.info("App settings updated by user %s", request.user.id)
        return Response(serializer.data)

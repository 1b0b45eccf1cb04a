from django.db.models import Q
from django.shortcuts import get_object_or_404
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.permissions import IsAdminOrOwner, IsClientOrDriver
from . import services
from .models import SupportThread
from .serializers import SupportMessageCreateSerializer, SupportMessageSerializer, SupportThreadSerializer


def thread_payload(thread):
    return {
        "thread": SupportThreadSerializer(thread).data,
        "messages": SupportMessageSerializer(thread.messages.select_related("sender"), many=True).data,
    }


class MySupportThreadView(APIView):
    """
    GET: the caller's thread and messages (created on first visit).
    POST: send a message to support.
    """
    permission_classes = [IsAuthenticated, IsClientOrDriver]

    def get(self, request):
        thread = services.get_or_create_thread(request.user)
        return Response(thread_payload(thread))

    def post(self, request):
        serializer = SupportMessageCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        thread = services.get_or_create_thread(request.user)
        message = services.post_message(thread, request.user, serializer.validated_data["message"])
        return Response(SupportMessageSerializer(message).data, status=201)


class SupportThreadListView(APIView):
    permission_classes = [IsAuthenticated, IsAdminOrOwner]

    def get(self, request):
        threads = SupportThread.objects.select_related("user")

        status_filter = request.query_params.get("status")
        if status_filter in ("open", "closed"):
            threads = threads.filter(status=status_filter)

        search = (request.query_params.get("search") or "").strip()
        if search:
            threads = threads.filter(
                Q(user__username__icontains=search)
                | Q(user__full_name__icontains=search)
                | Q(user__email__icontains=search)
            )

        data = SupportThreadSerializer(threads[:200], many=True).data
        return Response({"threads": data, "count": len(data)})


class SupportThreadDetailView(APIView):
    """
    GET: read a thread. POST: reply as staff.
    """
    permission_classes = [IsAuthenticated, IsAdminOrOwner]

    def get(self, request, thread_id: int):
        thread = get_object_or_404(SupportThread.objects.select_related("user"), id=thread_id)
        return Response(thread_payload(thread))

    def post(self, request, thread_id: int):
        thread = get_object_or_404(SupportThread, id=thread_id)
        serializer = SupportMessageCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        message = services.post_message(thread, request.user, serializer.validated_data["message"])
        return Response(SupportMessageSerializer(message).data, status=201)


class SupportThreadCloseView(APIView):
    permission_classes = [IsAuthenticated, IsAdminOrOwner]

    def post(self, request, thread_id: int):
        thread = get_object_or_404(SupportThread, id=thread_id)
        services.close_thread(thread)
        return Response({"message": "Thread closed", "thread": SupportThreadSerializer(thread).data})

"""WebSocket URL routing for the realtime app."""

from django.urls import re_path

from .consumers import NotificationConsumer, RideConsumer

websocket_urlpatterns = [
    # URL: ws://<host>/ws/notifications/?token=<jwt>
    re_path(r"ws/notifications/$", NotificationConsumer.as_asgi(), name="notifications-ws"),

    # Ride tracking and chat, shared by client and driver
    # URL: ws://<host>/ws/ride/?token=<jwt>
    re_path(r"ws/ride/$", RideConsumer.as_asgi(), name="ride-ws"),
]

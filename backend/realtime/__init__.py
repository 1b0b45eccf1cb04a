"""
Realtime app for WebSocket communication.

Key Components:
    - consumers/: notification stream and ride tracking/chat consumers
    - notifications.py: best-effort group_send helpers used by services
    - middleware.py: JWT / session authentication for sockets

Usage:
    from realtime.notifications import notify_user_event, notify_ride_group, notify_drivers_new_ride
"""

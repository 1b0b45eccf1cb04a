"""
Services package - Business logic layer.

Business logic that operates on Django models but is decoupled from the
HTTP/WebSocket layer.

Modules:
    - ride_management: Core ride lifecycle operations
    - matching: Available rides for drivers, price offers
"""

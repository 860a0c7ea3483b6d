"""services package"""

__all__ = [
    "auth_service",
    "membership",
    "room_generator",
    "upload_service",
    "ws_manager",
]

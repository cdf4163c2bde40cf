"""
HTTP clients for the event and user services.
"""

from .event_service_client import EventServiceClient
from .user_service_client import UserServiceClient

__all__ = ["EventServiceClient", "UserServiceClient"]

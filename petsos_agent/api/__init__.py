"""
API layer for the PetSOS schedule agent.
"""

from .app import create_app
from .webhooks import TelegramWebhook
from .middleware import SecurityHeaders, LoggingMiddleware

__all__ = [
    "create_app",
    "TelegramWebhook",
    "SecurityHeaders",
    "LoggingMiddleware",
]

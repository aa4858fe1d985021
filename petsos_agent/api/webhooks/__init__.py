"""
Webhook handlers module.
"""

from .telegram import TelegramWebhook

__all__ = ["TelegramWebhook"]

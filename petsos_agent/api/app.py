"""
FastAPI application factory and configuration.
"""

from typing import Optional
from fastapi import FastAPI

from ..config import get_settings
from ..services.external import TelegramAPIService
from ..services.intake import IntakeFlow
from .middleware import SecurityHeaders, LoggingMiddleware
from .webhooks import TelegramWebhook
from .handlers import HealthHandler


def create_app(
    flow: Optional[IntakeFlow] = None,
    telegram: Optional[TelegramAPIService] = None,
) -> FastAPI:
    """Create and configure FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Telegram bot collecting veterinarian availability slots",
        version=settings.app_version,
        debug=settings.debug,
    )

    app.add_middleware(SecurityHeaders)
    app.add_middleware(LoggingMiddleware)

    health_handler = HealthHandler()
    telegram_webhook = TelegramWebhook(flow=flow, telegram=telegram)

    app.include_router(health_handler.router, prefix="/health", tags=["health"])
    app.include_router(telegram_webhook.router, prefix="/webhook", tags=["webhooks"])

    return app

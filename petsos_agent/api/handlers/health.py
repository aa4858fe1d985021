"""
Health check handler.
"""

from datetime import datetime
from fastapi import APIRouter
from pydantic import BaseModel

from ...config import get_settings


class HealthResponse(BaseModel):
    status: str
    timestamp: str
    version: str
    uptime: float


class HealthHandler:
    """Liveness and readiness endpoints for the container platform."""

    def __init__(self):
        self.settings = get_settings()
        self.start_time = datetime.now()
        self.router = APIRouter()
        self._setup_routes()

    def _setup_routes(self):
        @self.router.get("/", response_model=HealthResponse)
        async def health_check():
            uptime = (datetime.now() - self.start_time).total_seconds()
            return HealthResponse(
                status="healthy",
                timestamp=datetime.now().isoformat(),
                version=self.settings.app_version,
                uptime=uptime,
            )

        @self.router.get("/ready")
        async def readiness_check():
            return {
                "status": "ready",
                "telegram_configured": bool(self.settings.telegram_bot_token),
                "openai_configured": bool(self.settings.openai_api_key),
            }

        @self.router.get("/live")
        async def liveness_check():
            return {"status": "alive"}

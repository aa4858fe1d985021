"""
Owner (veterinarian) data models.
"""

from dataclasses import dataclass
from typing import Optional
from pydantic import BaseModel, ConfigDict


@dataclass(frozen=True)
class OwnerRef:
    """Composite identity of a professional on a messaging platform."""

    platform: str
    user_id: str

    @property
    def key(self) -> str:
        """Session-store key for this owner."""
        return f"{self.platform}:{self.user_id}"


class Vet(BaseModel):
    """Persisted owner record."""

    model_config = ConfigDict(extra="forbid")

    id: int
    platform: str
    platform_user_id: str
    name: Optional[str] = None
    phone: Optional[str] = None
    is_admin: bool = False
    created_at: Optional[str] = None

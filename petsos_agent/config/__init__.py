"""
Configuration management for the PetSOS schedule agent.
"""

from .settings import Settings, get_settings
from .external_apis import ExternalAPIConfig

__all__ = [
    "Settings",
    "get_settings",
    "ExternalAPIConfig",
]

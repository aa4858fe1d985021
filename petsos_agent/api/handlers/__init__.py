"""
API handlers module.
"""

from .health import HealthHandler

__all__ = ["HealthHandler"]

"""
Intake flow service module.
"""

from .flow import IntakeFlow, encode_action, decode_action

__all__ = ["IntakeFlow", "encode_action", "decode_action"]

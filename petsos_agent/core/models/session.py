"""
Conversation session data models.
"""

from dataclasses import dataclass
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field

from ..enums import SourceType
from .slot import Slot


class PendingProposal(BaseModel):
    """Extracted slots held until the user confirms, edits or cancels."""

    model_config = ConfigDict(extra="forbid")

    slots: List[Slot] = Field(default_factory=list)
    source_text: str
    source_type: SourceType = SourceType.TEXT


@dataclass
class Button:
    """Inline button; ``data`` is returned verbatim when pressed."""

    label: str
    data: str


@dataclass
class Reply:
    """Transport-agnostic outbound message produced by the intake flow."""

    text: str = ""
    buttons: Optional[List[List[Button]]] = None
    # short acknowledgement for a button press (toast)
    notice: Optional[str] = None
    # replace the message that carried the pressed button
    edit: bool = False
    request_contact: bool = False

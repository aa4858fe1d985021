"""
Slot-related data models.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple
from pydantic import BaseModel, ConfigDict, Field

from ..enums import SlotType

DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"
TIME_PATTERN = r"^\d{2}:\d{2}$"

IdentityKey = Tuple[str, str, str]


class Slot(BaseModel):
    """A validated availability slot.

    Field aliases follow the JSON contract given to the language model
    (``startTime``/``endTime``); Python code uses the snake_case names.
    """

    model_config = ConfigDict(extra="forbid", populate_by_name=True, frozen=True)

    date: str = Field(pattern=DATE_PATTERN)
    start_time: str = Field(alias="startTime", pattern=TIME_PATTERN)
    end_time: str = Field(alias="endTime", pattern=TIME_PATTERN)
    type: SlotType

    @property
    def identity_key(self) -> IdentityKey:
        """Duplicate-detection key: end time and source do not take part."""
        return (self.date, self.start_time, self.type.value)

    def to_contract(self) -> Dict[str, str]:
        """Render the slot in the wire shape of the extraction contract."""
        return self.model_dump(by_alias=True, mode="json")


@dataclass
class SlotCandidate:
    """Raw or partially normalized slot fields travelling through the pipeline."""

    date: Any = None
    start_time: Any = None
    end_time: Any = None
    type: Any = None

    @classmethod
    def from_raw(cls, item: Dict[str, Any]) -> "SlotCandidate":
        """Build a candidate from one item of the completion's JSON array."""
        return cls(
            date=item.get("date"),
            start_time=item.get("startTime"),
            end_time=item.get("endTime"),
            type=item.get("type"),
        )

    def to_slot(self) -> Slot:
        return Slot(
            date=self.date,
            start_time=self.start_time,
            end_time=self.end_time,
            type=self.type,
        )


class StoredSlot(BaseModel):
    """A slot row as held by the persistent store."""

    model_config = ConfigDict(extra="forbid")

    id: int
    vet_id: int
    date: str
    start_time: str
    end_time: str
    type: SlotType
    source: str
    created_at: Optional[str] = None

"""
Per-item normalization pipeline for extracted slot candidates.

Stages run in a fixed order; each returns a transformed candidate or None
to drop the item. Rounding must see normalized times and validation must
see rounded ones, so the order lives here and nowhere else.
"""

from __future__ import annotations

import re
from collections import Counter
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Any, Callable, Iterable, List, Optional, Sequence, Tuple

from ...core.enums import SlotType
from ...core.models import Slot, SlotCandidate
from ...utils.date import DateNormalizer, TimeNormalizer
from ...utils.validation import SlotValidator
from ...utils.logging import get_logger

logger = get_logger("petsos.pipeline")

StageFn = Callable[[SlotCandidate, date], Optional[SlotCandidate]]

# Phrases in which the speaker rules out extended (VP) consultations.
# "not only urgent" and its uk/ru forms are negated and do not count.
_NOT_NEGATED = r"(?<!не )(?<!ні )(?<!not )"
_VP = r"(?:вп|vp)"
_URGENT = r"(?:ургент\w*|urgent)"
DISCLAIMER_PATTERNS = [
    re.compile(p)
    for p in (
        rf"{_NOT_NEGATED}\b(?:тільки|лише|тiльки|только|лишь|only)\s+{_URGENT}",
        rf"{_NOT_NEGATED}\b{_URGENT}\s+only\b",
        rf"\b{_VP}\s+не\s+(?:беру|буде|приймаю|можу)",
        rf"\bне\s+(?:беру|приймаю|буде)\s+{_VP}\b",
        rf"\bбез\s+{_VP}\b",
        rf"\bno\s+{_VP}\b",
        rf"\bnot\s+taking\s+{_VP}\b",
        rf"\b{_VP}\s+(?:is\s+)?(?:unavailable|not\s+available)\b",
    )
]


def disclaims_extended_type(transcript: str) -> bool:
    """True if the transcript itself rules out VP slots."""
    lowered = " ".join((transcript or "").lower().split())
    return any(p.search(lowered) for p in DISCLAIMER_PATTERNS)


def exclude_disclaimed_types(slots: Iterable[Slot], transcript: str) -> List[Slot]:
    slots = list(slots)
    if not disclaims_extended_type(transcript):
        return slots
    return [s for s in slots if s.type != SlotType.VP]


@dataclass
class PipelineResult:
    slots: List[Slot] = field(default_factory=list)
    dropped: Counter = field(default_factory=Counter)


class SlotPipeline:
    """normalize -> round -> planning_window -> validate."""

    def __init__(self, date_normalizer: Optional[DateNormalizer] = None):
        self.dates = date_normalizer or DateNormalizer()
        self.times = TimeNormalizer()
        self.stages: Sequence[Tuple[str, StageFn]] = (
            ("normalize", self._normalize),
            ("round", self._round),
            ("planning_window", self._check_window),
            ("validate", self._validate),
        )

    def _normalize(self, candidate: SlotCandidate, today: date) -> Optional[SlotCandidate]:
        normalized_date = self.dates.normalize_date(candidate.date, today)
        start = self.times.normalize_time(candidate.start_time)
        end = self.times.normalize_time(candidate.end_time)
        if not (normalized_date and start and end):
            return None
        return replace(candidate, date=normalized_date, start_time=start, end_time=end)

    def _round(self, candidate: SlotCandidate, today: date) -> Optional[SlotCandidate]:
        return replace(
            candidate,
            start_time=self.times.round_start_down(candidate.start_time),
            end_time=self.times.round_end_up(candidate.end_time),
        )

    def _check_window(self, candidate: SlotCandidate, today: date) -> Optional[SlotCandidate]:
        if not self.dates.is_within_planning_window(candidate.date, today):
            return None
        return candidate

    def _validate(self, candidate: SlotCandidate, today: date) -> Optional[SlotCandidate]:
        ok = SlotValidator.validate(
            candidate.date, candidate.start_time, candidate.end_time, candidate.type
        )
        return candidate if ok else None

    def run(self, candidate: SlotCandidate, today: date) -> Tuple[Optional[Slot], Optional[str]]:
        """Run one candidate; returns the slot, or None and the dropping stage."""
        current: Optional[SlotCandidate] = candidate
        for name, stage in self.stages:
            current = stage(current, today)
            if current is None:
                return None, name
        return current.to_slot(), None

    def run_all(self, raw_items: Sequence[Any], today: date) -> PipelineResult:
        result = PipelineResult()
        for item in raw_items:
            if not isinstance(item, dict):
                result.dropped["shape"] += 1
                continue
            slot, dropped_at = self.run(SlotCandidate.from_raw(item), today)
            if slot is None:
                logger.debug("dropped candidate at %s: %r", dropped_at, item)
                result.dropped[dropped_at] += 1
                continue
            result.slots.append(slot)
        return result

"""
Recovery of a slot array from free-form completion text.

The completion is asked for a bare JSON array but does not always comply.
Each strategy either returns the recovered list or None; the parser tries
them in a fixed order and fails only when all of them decline.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence

from ...core.exceptions import ExtractionFormatError

WRAPPER_KEYS = ("slots", "items", "result")

_FENCE_OPEN_RE = re.compile(r"^```(?:json)?\s*\n?", re.IGNORECASE)
_FENCE_CLOSE_RE = re.compile(r"\n?```\s*$")
_DECODER = json.JSONDecoder()


def strip_code_fence(text: str) -> str:
    cleaned = text.strip()
    if cleaned.startswith("```"):
        cleaned = _FENCE_OPEN_RE.sub("", cleaned)
        cleaned = _FENCE_CLOSE_RE.sub("", cleaned)
    return cleaned.strip()


def _loads(text: str) -> Any:
    try:
        return json.loads(text)
    except (TypeError, ValueError):
        return None


class ParseStrategy:
    name = "base"

    def parse(self, text: str) -> Optional[List[Any]]:
        raise NotImplementedError


class StrictArrayStrategy(ParseStrategy):
    """The whole text is a JSON array."""

    name = "strict_array"

    def parse(self, text: str) -> Optional[List[Any]]:
        value = _loads(text)
        return value if isinstance(value, list) else None


class WrappedObjectStrategy(ParseStrategy):
    """The whole text is a JSON object holding the array under a key."""

    name = "wrapped_object"

    def parse(self, text: str) -> Optional[List[Any]]:
        value = _loads(text)
        if not isinstance(value, dict):
            return None
        for key in WRAPPER_KEYS:
            if isinstance(value.get(key), list):
                return value[key]
        for entry in value.values():
            if isinstance(entry, list):
                return entry
        return None


class EmbeddedArrayStrategy(ParseStrategy):
    """An array literal is embedded in surrounding prose."""

    name = "embedded_array"

    def parse(self, text: str) -> Optional[List[Any]]:
        """First ``[`` from which a complete JSON array decodes; trailing text is ignored."""
        start = text.find("[")
        while start != -1:
            try:
                value, _ = _DECODER.raw_decode(text, start)
            except ValueError:
                value = None
            if isinstance(value, list):
                return value
            start = text.find("[", start + 1)
        return None


DEFAULT_STRATEGIES: Sequence[ParseStrategy] = (
    StrictArrayStrategy(),
    WrappedObjectStrategy(),
    EmbeddedArrayStrategy(),
)


@dataclass
class ParseOutcome:
    items: List[Any]
    strategy: str


class ResponseParser:
    """Ordered chain of parse strategies."""

    def __init__(self, strategies: Sequence[ParseStrategy] = DEFAULT_STRATEGIES):
        self.strategies = tuple(strategies)

    def parse(self, text: Optional[str]) -> ParseOutcome:
        """
        Recover the slot array from ``text``.

        Raises:
            ExtractionFormatError: when no strategy recovers an array
        """
        if not text or not text.strip():
            raise ExtractionFormatError("Empty response from language model")

        cleaned = strip_code_fence(text)
        for strategy in self.strategies:
            items = strategy.parse(cleaned)
            if items is not None:
                return ParseOutcome(items=items, strategy=strategy.name)

        raise ExtractionFormatError("No valid JSON array found in response")

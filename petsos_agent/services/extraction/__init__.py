"""
Slot extraction service module.
"""

from .service import SlotExtractor, CompletionFn
from .parsing import ResponseParser, ParseOutcome
from .pipeline import SlotPipeline, PipelineResult, disclaims_extended_type

__all__ = [
    "SlotExtractor",
    "CompletionFn",
    "ResponseParser",
    "ParseOutcome",
    "SlotPipeline",
    "PipelineResult",
    "disclaims_extended_type",
]

"""
Slot extraction service: transcript in, validated slots out.
"""

from datetime import date
from typing import Awaitable, Callable, List, Optional

from agents import Agent, ModelSettings, RunConfig, Runner, set_default_openai_key

from ...core.exceptions import ExtractionError, ExtractionFormatError
from ...core.models import Slot
from ...config import get_settings
from ...utils.date import DateNormalizer
from ...utils.event_log import log_event
from ...utils.logging import get_logger
from .parsing import ResponseParser
from .pipeline import SlotPipeline, exclude_disclaimed_types
from .prompts import SYSTEM_PROMPT, build_user_prompt

# (system_prompt, user_prompt) -> completion text
CompletionFn = Callable[[str, str], Awaitable[str]]

logger = get_logger("petsos.extract")


class SlotExtractor:
    """Extract availability slots from a transcript through a language model."""

    def __init__(
        self,
        complete: Optional[CompletionFn] = None,
        date_normalizer: Optional[DateNormalizer] = None,
        parser: Optional[ResponseParser] = None,
    ):
        self.settings = get_settings()
        self.dates = date_normalizer or DateNormalizer()
        self.pipeline = SlotPipeline(self.dates)
        self.parser = parser or ResponseParser()
        self._complete = complete or self._complete_with_agent
        self._agent: Optional[Agent] = None

    def _create_agent(self) -> Agent:
        """Create the extraction agent."""
        if self.settings.openai_api_key:
            set_default_openai_key(self.settings.openai_api_key)
        return Agent(
            name="PetSOS slot extractor",
            instructions=SYSTEM_PROMPT,
            model=self.settings.extraction_model,
            model_settings=ModelSettings(temperature=self.settings.extraction_temperature),
        )

    async def _complete_with_agent(self, system_prompt: str, user_prompt: str) -> str:
        if self._agent is None:
            self._agent = self._create_agent()
        result = await Runner.run(
            self._agent,
            input=user_prompt,
            run_config=RunConfig(trace_include_sensitive_data=False),
        )
        return str(result.final_output or "")

    def build_prompt(self, transcript: str, today: date) -> str:
        return build_user_prompt(
            transcript,
            today=today.strftime("%Y-%m-%d"),
            weekday=today.strftime("%A"),
            timezone=self.dates.timezone,
            window_days=self.dates.window_days,
        )

    async def extract(self, transcript: str, today: Optional[date] = None) -> List[Slot]:
        """
        Extract validated slots from ``transcript``.

        Args:
            transcript: Recognized voice text or typed message
            today: Current local date; defaults to today in the operating timezone

        Returns:
            The valid subset of extracted slots, possibly empty

        Raises:
            ExtractionError: the completion call failed
            ExtractionFormatError: no slot array could be recovered
        """
        today = today or self.dates.today()
        try:
            content = await self._complete(SYSTEM_PROMPT, self.build_prompt(transcript, today))
        except Exception as e:
            logger.exception("completion failed")
            raise ExtractionError(f"Slot extraction failed: {e}") from e

        try:
            outcome = self.parser.parse(content)
        except ExtractionFormatError:
            logger.warning("unparseable completion: %r", (content or "")[:200])
            raise

        result = self.pipeline.run_all(outcome.items, today)
        slots = exclude_disclaimed_types(result.slots, transcript)

        logger.info(
            "extracted %d/%d slots (strategy=%s, dropped=%s)",
            len(slots),
            len(outcome.items),
            outcome.strategy,
            dict(result.dropped),
        )
        log_event(
            "extraction",
            {
                "strategy": outcome.strategy,
                "raw_items": len(outcome.items),
                "accepted": len(slots),
                "dropped": dict(result.dropped),
                "disclaimed_vp": len(result.slots) - len(slots),
            },
        )
        return slots

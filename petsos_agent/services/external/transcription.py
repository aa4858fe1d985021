"""
Speech-to-text through the OpenAI audio API.
"""

import io
from typing import Optional
from openai import AsyncOpenAI

from ...core.exceptions import TranscriptionError
from ...config import ExternalAPIConfig, get_settings
from ...utils.logging import get_logger

logger = get_logger("petsos.transcribe")


class TranscriptionService:
    """Convert a voice payload into text."""

    def __init__(
        self,
        client: Optional[AsyncOpenAI] = None,
        config: Optional[ExternalAPIConfig] = None,
    ):
        self.config = config or ExternalAPIConfig.from_settings(get_settings())
        self._client = client

    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            if not self.config.is_openai_configured():
                raise TranscriptionError("OpenAI API key not configured")
            self._client = AsyncOpenAI(api_key=self.config.openai_api_key)
        return self._client

    async def transcribe(
        self, audio: bytes, filename: str = "voice.ogg", language: Optional[str] = None
    ) -> str:
        """
        Transcribe ``audio``.

        Returns:
            Recognized text, stripped; empty string when nothing was recognized

        Raises:
            TranscriptionError: the audio could not be converted to text
        """
        if not audio:
            raise TranscriptionError("Empty audio payload")

        file_obj = io.BytesIO(audio)
        file_obj.name = filename
        try:
            result = await self._get_client().audio.transcriptions.create(
                model=self.config.transcription_model,
                file=file_obj,
                language=language or self.config.transcription_language,
            )
        except TranscriptionError:
            raise
        except Exception as e:
            logger.error("transcription failed: %s", e)
            raise TranscriptionError(f"Transcription failed: {e}") from e

        text = getattr(result, "text", None) or ""
        return text.strip()

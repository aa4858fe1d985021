"""
Telegram Bot API client.
"""

import asyncio
from typing import Any, Dict, List, Optional
import httpx

from ...core.exceptions import TelegramAPIError
from ...core.models import Button
from ...config import ExternalAPIConfig, get_settings
from ...utils.logging import get_logger

logger = get_logger("petsos.telegram")

RETRIES = 3


def build_inline_keyboard(buttons: List[List[Button]]) -> Dict[str, Any]:
    return {
        "inline_keyboard": [
            [{"text": b.label, "callback_data": b.data} for b in row] for row in buttons
        ]
    }


def build_contact_keyboard(label: str) -> Dict[str, Any]:
    return {
        "keyboard": [[{"text": label, "request_contact": True}]],
        "one_time_keyboard": True,
        "resize_keyboard": True,
    }


def split_for_telegram(text: str, limit: int = 4096) -> List[str]:
    """Split ``text`` into chunks of at most ``limit`` characters, preferring line breaks."""
    if len(text) <= limit:
        return [text]
    chunks: List[str] = []
    current = ""
    for line in text.splitlines(keepends=True):
        while len(line) > limit:
            if current:
                chunks.append(current)
                current = ""
            chunks.append(line[:limit])
            line = line[limit:]
        if current and len(current) + len(line) > limit:
            chunks.append(current)
            current = ""
        current += line
    if current:
        chunks.append(current)
    return chunks


class TelegramAPIService:
    """Outbound calls to the Telegram Bot API."""

    def __init__(self, config: Optional[ExternalAPIConfig] = None):
        self.config = config or ExternalAPIConfig.from_settings(get_settings())

    async def _call(self, method: str, payload: Dict[str, Any]) -> Any:
        """POST a Bot API method, retrying on 429/5xx with exponential backoff."""
        url = self.config.get_telegram_method_url(method)
        backoff = 1
        for attempt in range(1, RETRIES + 1):
            try:
                async with httpx.AsyncClient(timeout=self.config.telegram_timeout) as client:
                    resp = await client.post(url, json=payload)
            except httpx.RequestError as e:
                logger.error("telegram %s failed on attempt %d: %s", method, attempt, e)
                if attempt < RETRIES:
                    await asyncio.sleep(backoff)
                    backoff *= 2
                    continue
                raise TelegramAPIError(f"{method} request failed: {e}") from e

            if 200 <= resp.status_code < 300:
                body = resp.json()
                if not body.get("ok", False):
                    raise TelegramAPIError(f"{method} rejected: {body.get('description')}")
                return body.get("result")

            logger.error(
                "telegram %s failed: status=%s body=%s",
                method,
                resp.status_code,
                resp.text[:200],
            )
            if (resp.status_code == 429 or resp.status_code >= 500) and attempt < RETRIES:
                await asyncio.sleep(backoff)
                backoff *= 2
                continue
            raise TelegramAPIError(f"{method} HTTP error {resp.status_code}")

        raise TelegramAPIError(f"{method} failed after {RETRIES} attempts")

    async def send_message(
        self,
        chat_id: int | str,
        text: str,
        reply_markup: Optional[Dict[str, Any]] = None,
    ) -> None:
        if not self.config.is_telegram_configured():
            logger.warning("Skipping Telegram send: bot token not configured")
            return
        chunks = split_for_telegram(text, self.config.telegram_max_message_length)
        for i, chunk in enumerate(chunks):
            payload: Dict[str, Any] = {"chat_id": chat_id, "text": chunk}
            # markup goes with the last chunk so buttons follow the full text
            if reply_markup and i == len(chunks) - 1:
                payload["reply_markup"] = reply_markup
            await self._call("sendMessage", payload)

    async def edit_message_text(
        self,
        chat_id: int | str,
        message_id: int,
        text: str,
        reply_markup: Optional[Dict[str, Any]] = None,
    ) -> None:
        if not self.config.is_telegram_configured():
            return
        payload: Dict[str, Any] = {"chat_id": chat_id, "message_id": message_id, "text": text}
        if reply_markup:
            payload["reply_markup"] = reply_markup
        await self._call("editMessageText", payload)

    async def answer_callback_query(self, callback_query_id: str, text: Optional[str] = None) -> None:
        if not self.config.is_telegram_configured():
            return
        payload: Dict[str, Any] = {"callback_query_id": callback_query_id}
        if text:
            payload["text"] = text
        await self._call("answerCallbackQuery", payload)

    async def download_file(self, file_id: str) -> bytes:
        """Resolve ``file_id`` with getFile and download its content into memory."""
        if not self.config.is_telegram_configured():
            raise TelegramAPIError("Telegram bot token not configured")
        info = await self._call("getFile", {"file_id": file_id})
        file_path = (info or {}).get("file_path")
        if not file_path:
            raise TelegramAPIError(f"getFile returned no path for {file_id}")
        try:
            async with httpx.AsyncClient(timeout=self.config.telegram_timeout) as client:
                resp = await client.get(self.config.get_telegram_file_url(file_path))
                resp.raise_for_status()
        except httpx.HTTPError as e:
            raise TelegramAPIError(f"file download failed: {e}") from e
        return resp.content

"""
Telegram webhook handler.
"""

from typing import Any, Dict, List, Optional, Tuple
from fastapi import APIRouter, Request, Response, status

from ...config import get_settings
from ...core.exceptions import TelegramAPIError
from ...core.models import OwnerRef, Reply
from ...services.extraction import SlotExtractor
from ...services.external import TelegramAPIService, TranscriptionService
from ...services.external.telegram import build_contact_keyboard, build_inline_keyboard
from ...services.intake import IntakeFlow
from ...services.intake import messages
from ...services.session import create_session_store
from ...services.storage import SlotRepository
from ...utils.date import DateNormalizer
from ...utils.event_log import log_event, set_update_id
from ...utils.logging import get_logger

PLATFORM = "telegram"
SECRET_HEADER = "X-Telegram-Bot-Api-Secret-Token"

logger = get_logger("petsos.webhook")


def build_default_flow() -> IntakeFlow:
    """Wire the intake flow from settings."""
    dates = DateNormalizer()
    return IntakeFlow(
        extractor=SlotExtractor(date_normalizer=dates),
        repository=SlotRepository(),
        sessions=create_session_store(),
        transcriber=TranscriptionService(),
        date_normalizer=dates,
    )


def parse_command(text: str) -> Tuple[str, Optional[str]]:
    """Split ``/cmd@bot arg`` into (``cmd``, ``arg``)."""
    head, _, rest = text.strip().partition(" ")
    command = head[1:].split("@", 1)[0].lower()
    return command, (rest.strip() or None)


def _display_name(user: Dict[str, Any]) -> Optional[str]:
    parts = [user.get("first_name"), user.get("last_name")]
    name = " ".join(p for p in parts if p)
    return name or user.get("username") or None


class TelegramWebhook:
    """Handler for Telegram Bot API updates."""

    def __init__(
        self,
        flow: Optional[IntakeFlow] = None,
        telegram: Optional[TelegramAPIService] = None,
    ):
        self.settings = get_settings()
        self.router = APIRouter()
        self.flow = flow or build_default_flow()
        self.telegram = telegram or TelegramAPIService()

        # Simple in-memory deduplication
        self._last_update_id: Dict[str, int] = {}

        self._setup_routes()

    def _setup_routes(self):
        @self.router.post("/telegram")
        async def receive_telegram_update(request: Request):
            """Handle an incoming Telegram update."""
            secret = self.settings.telegram_webhook_secret
            if secret and request.headers.get(SECRET_HEADER) != secret:
                logger.warning("rejected update with bad secret token")
                return Response(status_code=status.HTTP_401_UNAUTHORIZED)

            try:
                body = await request.json()
            except ValueError:
                return Response(status_code=status.HTTP_400_BAD_REQUEST)
            if not isinstance(body, dict):
                return Response(status_code=status.HTTP_400_BAD_REQUEST)

            update_id = body.get("update_id")
            set_update_id(update_id)

            sender_id = self._sender_id(body)
            if sender_id and update_id is not None:
                if self._last_update_id.get(sender_id) == update_id:
                    return {"ok": True, "dedupe": True}
                self._last_update_id[sender_id] = update_id

            if "callback_query" not in body and "message" not in body:
                return {"status": "ignored"}

            try:
                if "callback_query" in body:
                    await self._handle_callback(body["callback_query"])
                else:
                    await self._handle_message(body["message"])
            except Exception:
                logger.exception("update %s failed", update_id)
                log_event("update_failed", {"sender": sender_id})
                await self._send_fallback(body)

            return {"status": "ok"}

    async def _send_fallback(self, body: Dict[str, Any]) -> None:
        message = body.get("message") or (body.get("callback_query") or {}).get("message") or {}
        chat_id = (message.get("chat") or {}).get("id")
        if chat_id is not None:
            await self._send(chat_id, Reply(messages.UNEXPECTED_ERROR))

    @staticmethod
    def _sender_id(body: Dict[str, Any]) -> Optional[str]:
        for key in ("message", "callback_query"):
            sender = (body.get(key) or {}).get("from") or {}
            if "id" in sender:
                return str(sender["id"])
        return None

    async def _handle_message(self, message: Dict[str, Any]) -> None:
        sender = message.get("from") or {}
        chat_id = (message.get("chat") or {}).get("id")
        if "id" not in sender or chat_id is None:
            return

        owner = OwnerRef(PLATFORM, str(sender["id"]))
        name = _display_name(sender)
        text = (message.get("text") or "").strip()

        async def notify(reply: Reply) -> None:
            await self._send(chat_id, reply)

        log_event("inbound", {"owner": owner.key, "kind": self._message_kind(message)})

        if "contact" in message:
            phone = (message["contact"] or {}).get("phone_number") or ""
            replies = await self.flow.save_contact(owner, phone)
        elif "voice" in message:
            file_id = message["voice"].get("file_id")

            async def load_audio() -> bytes:
                return await self.telegram.download_file(file_id)

            replies = await self.flow.handle_voice(owner, load_audio, notify=notify)
        elif text.startswith("/"):
            replies = await self._handle_command(owner, name, text)
        elif text:
            replies = await self.flow.handle_text(owner, text, notify=notify)
        else:
            replies = []

        for reply in replies:
            await self._send(chat_id, reply)

    async def _handle_command(self, owner: OwnerRef, name: Optional[str], text: str) -> List[Reply]:
        command, arg = parse_command(text)
        if command == "start":
            return await self.flow.start(owner, name)
        if command == "add_slots":
            return await self.flow.begin_adding(owner, name)
        if command == "my_slots":
            return await self.flow.list_month(owner, arg)
        if command == "clear_month":
            return await self.flow.request_clear_month(owner, arg)
        # unknown commands fall through to the regular text path
        return await self.flow.handle_text(owner, text)

    async def _handle_callback(self, callback: Dict[str, Any]) -> None:
        sender = callback.get("from") or {}
        if "id" not in sender:
            return
        actor = OwnerRef(PLATFORM, str(sender["id"]))
        message = callback.get("message") or {}
        chat_id = (message.get("chat") or {}).get("id")
        message_id = message.get("message_id")

        replies = await self.flow.handle_action(actor, callback.get("data") or "")

        notice = next((r.notice for r in replies if r.notice), None)
        try:
            await self.telegram.answer_callback_query(callback.get("id", ""), notice)
        except TelegramAPIError as e:
            logger.error("answerCallbackQuery failed: %s", e)

        if chat_id is None:
            return
        for reply in replies:
            if not reply.text:
                continue
            if reply.edit and message_id is not None:
                try:
                    await self.telegram.edit_message_text(chat_id, message_id, reply.text)
                except TelegramAPIError as e:
                    logger.error("editMessageText failed: %s", e)
            else:
                await self._send(chat_id, reply)

    async def _send(self, chat_id: int, reply: Reply) -> None:
        if not reply.text:
            return
        markup = None
        if reply.buttons:
            markup = build_inline_keyboard(reply.buttons)
        elif reply.request_contact:
            markup = build_contact_keyboard(messages.SHARE_PHONE_BUTTON)
        try:
            await self.telegram.send_message(chat_id, reply.text, reply_markup=markup)
        except TelegramAPIError as e:
            logger.error("sendMessage to %s failed: %s", chat_id, e)

    @staticmethod
    def _message_kind(message: Dict[str, Any]) -> str:
        for kind in ("contact", "voice", "text"):
            if kind in message:
                return kind
        return "other"

from unittest.mock import AsyncMock, Mock

import pytest
from httpx import ASGITransport, AsyncClient

from petsos_agent.api.app import create_app
from petsos_agent.api.webhooks.telegram import SECRET_HEADER, parse_command
from petsos_agent.core.exceptions import TelegramAPIError
from petsos_agent.services.external import TelegramAPIService
from petsos_agent.services.intake import IntakeFlow, messages
from petsos_agent.services.session import SQLiteSessionStore


@pytest.fixture
def telegram():
    api = Mock(spec=TelegramAPIService)
    api.send_message = AsyncMock()
    api.edit_message_text = AsyncMock()
    api.answer_callback_query = AsyncMock()
    api.download_file = AsyncMock(return_value=b"OggS...")
    return api


def _client(app):
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


def _message(update_id, text, user_id=1001):
    return {
        "update_id": update_id,
        "message": {
            "message_id": update_id,
            "from": {"id": user_id, "first_name": "Olena"},
            "chat": {"id": user_id},
            "text": text,
        },
    }


def _sent_texts(telegram):
    return [c.args[1] for c in telegram.send_message.await_args_list]


def test_parse_command():
    assert parse_command("/my_slots 2025-02") == ("my_slots", "2025-02")
    assert parse_command("/start@PetSOSBot") == ("start", None)
    assert parse_command("/clear_month") == ("clear_month", None)


@pytest.mark.asyncio
async def test_health_endpoints(flow, telegram):
    app = create_app(flow=flow, telegram=telegram)
    async with _client(app) as ac:
        resp = await ac.get("/health/")
        assert resp.status_code == 200
        assert resp.json()["status"] == "healthy"
        assert resp.headers["X-Content-Type-Options"] == "nosniff"
        assert (await ac.get("/health/live")).json() == {"status": "alive"}
        assert (await ac.get("/health/ready")).json()["status"] == "ready"


@pytest.mark.asyncio
async def test_webhook_requires_secret(flow, telegram, monkeypatch):
    monkeypatch.setenv("TELEGRAM_WEBHOOK_SECRET", "expected")
    app = create_app(flow=flow, telegram=telegram)

    async with _client(app) as ac:
        resp = await ac.post("/webhook/telegram", json=_message(1, "/start"))
        assert resp.status_code == 401

        resp = await ac.post(
            "/webhook/telegram", headers={SECRET_HEADER: "wrong"}, json=_message(1, "/start")
        )
        assert resp.status_code == 401

        resp = await ac.post(
            "/webhook/telegram", headers={SECRET_HEADER: "expected"}, json=_message(1, "/start")
        )
        assert resp.status_code == 200

    telegram.send_message.assert_awaited_once()


@pytest.mark.asyncio
async def test_invalid_body_rejected(flow, telegram):
    app = create_app(flow=flow, telegram=telegram)
    async with _client(app) as ac:
        resp = await ac.post(
            "/webhook/telegram", content=b"not json", headers={"Content-Type": "application/json"}
        )
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_start_command_replies_with_welcome(flow, telegram):
    app = create_app(flow=flow, telegram=telegram)
    async with _client(app) as ac:
        resp = await ac.post("/webhook/telegram", json=_message(1, "/start"))

    assert resp.json() == {"status": "ok"}
    chat_id, text = telegram.send_message.await_args.args
    assert chat_id == 1001
    assert messages.WELCOME in text


@pytest.mark.asyncio
async def test_duplicate_update_is_ignored(flow, telegram):
    app = create_app(flow=flow, telegram=telegram)
    async with _client(app) as ac:
        await ac.post("/webhook/telegram", json=_message(7, "/start"))
        resp = await ac.post("/webhook/telegram", json=_message(7, "/start"))

    assert resp.json() == {"ok": True, "dedupe": True}
    assert telegram.send_message.await_count == 1


@pytest.mark.asyncio
async def test_full_text_flow_over_webhook(flow, telegram, completion, repository, reconciler):
    app = create_app(flow=flow, telegram=telegram)
    completion.queue([{"date": "завтра", "startTime": "10", "endTime": "13", "type": "URGENT"}])

    async with _client(app) as ac:
        await ac.post("/webhook/telegram", json=_message(1, "/add_slots"))
        await ac.post("/webhook/telegram", json=_message(2, "Завтра з 10 до 13 ургент"))

        markup = telegram.send_message.await_args.kwargs["reply_markup"]
        confirm_data = markup["inline_keyboard"][0][0]["callback_data"]
        assert confirm_data == "confirm:1001"

        resp = await ac.post(
            "/webhook/telegram",
            json={
                "update_id": 3,
                "callback_query": {
                    "id": "cb-1",
                    "from": {"id": 1001},
                    "data": confirm_data,
                    "message": {"message_id": 55, "chat": {"id": 1001}},
                },
            },
        )

    assert resp.status_code == 200
    assert messages.PROCESSING_TEXT in _sent_texts(telegram)
    telegram.answer_callback_query.assert_awaited_once_with("cb-1", messages.SAVED_NOTICE)
    chat_id, message_id, text = telegram.edit_message_text.await_args.args
    assert (chat_id, message_id) == (1001, 55)
    assert "2025-06-02 10:00-13:00 (URGENT)" in text

    vet = await repository.get_owner("telegram", "1001")
    assert len(await reconciler.list_month(vet.id, "2025-06")) == 1


@pytest.mark.asyncio
async def test_foreign_callback_only_answers(flow, telegram, completion, sessions):
    app = create_app(flow=flow, telegram=telegram)
    completion.queue([{"date": "завтра", "startTime": "10", "endTime": "13", "type": "URGENT"}])

    async with _client(app) as ac:
        await ac.post("/webhook/telegram", json=_message(1, "/add_slots"))
        await ac.post("/webhook/telegram", json=_message(2, "Завтра з 10 до 13 ургент"))
        await ac.post(
            "/webhook/telegram",
            json={
                "update_id": 3,
                "callback_query": {
                    "id": "cb-2",
                    "from": {"id": 2002},
                    "data": "confirm:1001",
                    "message": {"message_id": 55, "chat": {"id": 1001}},
                },
            },
        )

    telegram.answer_callback_query.assert_awaited_once_with("cb-2", messages.NOT_YOUR_MESSAGE)
    telegram.edit_message_text.assert_not_awaited()
    assert await sessions.get_proposal("telegram:1001") is not None


@pytest.mark.asyncio
async def test_contact_message_saves_phone(flow, telegram, repository):
    app = create_app(flow=flow, telegram=telegram)
    update = {
        "update_id": 10,
        "message": {
            "message_id": 10,
            "from": {"id": 1001},
            "chat": {"id": 1001},
            "contact": {"phone_number": "+380501234567", "user_id": 1001},
        },
    }
    async with _client(app) as ac:
        await ac.post("/webhook/telegram", json=update)

    assert await repository.has_phone("telegram", "1001")
    assert _sent_texts(telegram) == [messages.PHONE_SAVED.format(phone="+380501234567")]


@pytest.mark.asyncio
async def test_ask_phone_uses_contact_keyboard(flow, telegram):
    app = create_app(flow=flow, telegram=telegram)
    async with _client(app) as ac:
        await ac.post("/webhook/telegram", json=_message(1, "/add_slots"))

    first = telegram.send_message.await_args_list[0]
    assert first.args[1] == messages.ASK_PHONE
    keyboard = first.kwargs["reply_markup"]["keyboard"]
    assert keyboard[0][0]["request_contact"] is True


@pytest.mark.asyncio
async def test_send_failure_does_not_fail_webhook(flow, telegram):
    telegram.send_message.side_effect = TelegramAPIError("blocked by user")
    app = create_app(flow=flow, telegram=telegram)
    async with _client(app) as ac:
        resp = await ac.post("/webhook/telegram", json=_message(1, "/start"))
    assert resp.status_code == 200


@pytest.mark.asyncio
async def test_session_store_failure_gets_fallback_reply(extractor, repository, reconciler, dates, telegram, tmp_path):
    sessions = SQLiteSessionStore(str(tmp_path / "missing_dir" / "sessions.db"))
    flow = IntakeFlow(
        extractor=extractor,
        repository=repository,
        sessions=sessions,
        reconciler=reconciler,
        date_normalizer=dates,
    )
    app = create_app(flow=flow, telegram=telegram)

    async with _client(app) as ac:
        resp = await ac.post("/webhook/telegram", json=_message(1, "Завтра з 10 до 13 ургент"))

    assert resp.status_code == 200
    assert _sent_texts(telegram) == [messages.UNEXPECTED_ERROR]


@pytest.mark.asyncio
async def test_unexpected_callback_error_gets_fallback_reply(flow, telegram, monkeypatch):
    monkeypatch.setattr(flow, "handle_action", AsyncMock(side_effect=RuntimeError("boom")))
    app = create_app(flow=flow, telegram=telegram)

    async with _client(app) as ac:
        resp = await ac.post(
            "/webhook/telegram",
            json={
                "update_id": 3,
                "callback_query": {
                    "id": "cb-3",
                    "from": {"id": 1001},
                    "data": "confirm:1001",
                    "message": {"message_id": 55, "chat": {"id": 1001}},
                },
            },
        )

    assert resp.status_code == 200
    assert _sent_texts(telegram) == [messages.UNEXPECTED_ERROR]

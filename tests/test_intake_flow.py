from unittest.mock import AsyncMock, Mock

import pytest

from petsos_agent.core.enums import ConversationState, ProposalAction, SourceType
from petsos_agent.core.exceptions import StorageError, TranscriptionError
from petsos_agent.services.external import TranscriptionService
from petsos_agent.services.intake import IntakeFlow, decode_action, encode_action
from petsos_agent.services.intake import messages

TOMORROW_SLOTS = [
    {"date": "завтра", "startTime": "10", "endTime": "13", "type": "URGENT"},
    {"date": "завтра", "startTime": "15", "endTime": "17", "type": "VP"},
]
TEXT = "Завтра я доступний з 10 до 13 ургент, і з 15 до 17 ВП"


async def _propose(flow, owner, completion):
    await flow.begin_adding(owner)
    completion.queue(TOMORROW_SLOTS)
    return await flow.handle_text(owner, TEXT)


def _data(replies, label):
    for row in replies[-1].buttons:
        for button in row:
            if button.label == label:
                return button.data
    raise AssertionError(f"no button {label!r}")


def test_action_payload_round_trip(owner):
    data = encode_action(ProposalAction.CONFIRM, owner)
    assert data == "confirm:1001"
    assert decode_action(data) == (ProposalAction.CONFIRM, "1001")
    assert decode_action("bogus:1001") == (None, "1001")
    assert decode_action("") == (None, "")


@pytest.mark.asyncio
async def test_start_upserts_owner(flow, owner, repository):
    replies = await flow.start(owner, "Dr. Olena")

    assert messages.WELCOME in replies[0].text
    assert messages.WELCOME_ADMIN_LINE not in replies[0].text
    vet = await repository.get_owner("telegram", "1001")
    assert vet.name == "Dr. Olena"


@pytest.mark.asyncio
async def test_start_mentions_admin_role(flow, owner, repository):
    await repository.set_admin("telegram", "1001", True)
    replies = await flow.start(owner)
    assert messages.WELCOME_ADMIN_LINE in replies[0].text


@pytest.mark.asyncio
async def test_text_while_idle_is_not_interpreted(flow, owner, completion, sessions):
    replies = await flow.handle_text(owner, TEXT)

    assert replies[0].text == messages.USE_ADD_SLOTS_FIRST
    assert completion.calls == []
    assert await sessions.get_proposal(owner.key) is None


@pytest.mark.asyncio
async def test_begin_adding_asks_for_phone_once(flow, owner, sessions):
    replies = await flow.begin_adding(owner)
    assert replies[0].request_contact is True
    assert replies[-1].text == messages.ADD_INSTRUCTIONS
    assert await sessions.get_state(owner.key) == ConversationState.AWAITING_INPUT

    await flow.save_contact(owner, "+380501234567")
    replies = await flow.begin_adding(owner)
    assert len(replies) == 1
    assert not replies[0].request_contact


@pytest.mark.asyncio
async def test_text_produces_proposal(flow, owner, completion, sessions):
    replies = await _propose(flow, owner, completion)

    reply = replies[0]
    assert "2025-06-02 10:00-13:00 (URGENT)" in reply.text
    assert "2025-06-02 15:00-17:00 (VP)" in reply.text
    assert [row[0].data for row in reply.buttons] == [
        "confirm:1001",
        "edit:1001",
        "cancel:1001",
    ]
    proposal = await sessions.get_proposal(owner.key)
    assert len(proposal.slots) == 2
    assert proposal.source_type == SourceType.TEXT
    assert await sessions.get_state(owner.key) == ConversationState.AWAITING_INPUT


@pytest.mark.asyncio
async def test_processing_notice_is_sent_first(flow, owner, completion):
    await flow.begin_adding(owner)
    completion.queue(TOMORROW_SLOTS)
    notify = AsyncMock()

    await flow.handle_text(owner, TEXT, notify=notify)

    notify.assert_awaited_once()
    assert notify.await_args.args[0].text == messages.PROCESSING_TEXT


@pytest.mark.asyncio
async def test_confirm_saves_and_returns_to_idle(flow, owner, completion, sessions, repository, reconciler):
    replies = await _propose(flow, owner, completion)

    result = await flow.handle_action(owner, _data(replies, messages.BUTTON_CONFIRM))

    assert result[0].edit is True
    assert result[0].notice == messages.SAVED_NOTICE
    assert "2" in result[0].text
    assert await sessions.get_state(owner.key) == ConversationState.IDLE
    assert await sessions.get_proposal(owner.key) is None
    vet = await repository.get_owner("telegram", "1001")
    assert len(await reconciler.list_month(vet.id, "2025-06")) == 2


@pytest.mark.asyncio
async def test_confirming_same_statement_twice_adds_nothing(flow, owner, completion, repository, reconciler):
    replies = await _propose(flow, owner, completion)
    await flow.handle_action(owner, _data(replies, messages.BUTTON_CONFIRM))

    replies = await _propose(flow, owner, completion)
    result = await flow.handle_action(owner, _data(replies, messages.BUTTON_CONFIRM))

    assert messages.SAVED.format(slots="x", inserted=0).split("\n")[-1] in result[0].text
    vet = await repository.get_owner("telegram", "1001")
    assert len(await reconciler.list_month(vet.id, "2025-06")) == 2


@pytest.mark.asyncio
async def test_foreign_button_press_changes_nothing(flow, owner, other_owner, completion, sessions, repository):
    replies = await _propose(flow, owner, completion)
    before = await sessions.get_proposal(owner.key)

    for label in (messages.BUTTON_CONFIRM, messages.BUTTON_EDIT, messages.BUTTON_CANCEL):
        result = await flow.handle_action(other_owner, _data(replies, label))
        assert len(result) == 1
        assert result[0].notice == messages.NOT_YOUR_MESSAGE
        assert result[0].text == ""

    assert await sessions.get_proposal(owner.key) == before
    assert await sessions.get_state(owner.key) == ConversationState.AWAITING_INPUT
    assert await repository.get_owner("telegram", "2002") is None


@pytest.mark.asyncio
async def test_edit_then_new_text_replaces_proposal(flow, owner, completion, sessions):
    replies = await _propose(flow, owner, completion)

    result = await flow.handle_action(owner, _data(replies, messages.BUTTON_EDIT))
    assert result[0].edit is True
    assert "2025-06-02 10:00-13:00 (URGENT)" in result[0].text
    assert await sessions.get_state(owner.key) == ConversationState.AWAITING_CORRECTION

    completion.queue([{"date": "2025-06-03", "startTime": "11:00", "endTime": "12:00", "type": "VP"}])
    replies = await flow.handle_text(owner, "Ні, у вівторок з 11 до 12 ВП")

    assert "2025-06-03 11:00-12:00 (VP)" in replies[0].text
    proposal = await sessions.get_proposal(owner.key)
    assert [s.date for s in proposal.slots] == ["2025-06-03"]
    assert await sessions.get_state(owner.key) == ConversationState.AWAITING_INPUT


@pytest.mark.asyncio
async def test_cancel_discards_proposal(flow, owner, completion, sessions, repository):
    replies = await _propose(flow, owner, completion)

    result = await flow.handle_action(owner, _data(replies, messages.BUTTON_CANCEL))

    assert result[0].text == messages.CANCELLED
    assert await sessions.get_proposal(owner.key) is None
    assert await sessions.get_state(owner.key) == ConversationState.IDLE


@pytest.mark.asyncio
async def test_confirm_without_proposal(flow, owner):
    result = await flow.handle_action(owner, encode_action(ProposalAction.CONFIRM, owner))
    assert result[0].notice == messages.NOTHING_TO_CONFIRM


@pytest.mark.asyncio
async def test_unknown_action(flow, owner):
    result = await flow.handle_action(owner, "launch:1001")
    assert result[0].notice == messages.UNKNOWN_ACTION


@pytest.mark.asyncio
async def test_storage_failure_keeps_proposal(flow, owner, completion, sessions, monkeypatch):
    replies = await _propose(flow, owner, completion)
    monkeypatch.setattr(flow.reconciler, "save_slots", AsyncMock(side_effect=StorageError("disk full")))

    result = await flow.handle_action(owner, _data(replies, messages.BUTTON_CONFIRM))

    assert result[0].notice == messages.SAVE_FAILED
    assert await sessions.get_proposal(owner.key) is not None
    assert await sessions.get_state(owner.key) == ConversationState.AWAITING_INPUT


@pytest.mark.asyncio
async def test_no_valid_slots_keeps_waiting(flow, owner, completion, sessions):
    await flow.begin_adding(owner)
    completion.queue([{"date": "2025-09-01", "startTime": "10", "endTime": "13", "type": "URGENT"}])

    replies = await flow.handle_text(owner, "1 вересня з 10 до 13")

    assert replies[0].text.startswith(messages.NO_VALID_SLOTS.split("{")[0])
    assert await sessions.get_proposal(owner.key) is None
    assert await sessions.get_state(owner.key) == ConversationState.AWAITING_INPUT


@pytest.mark.asyncio
async def test_extraction_errors_are_reported(flow, owner, completion):
    await flow.begin_adding(owner)

    completion.queue("no json here")
    replies = await flow.handle_text(owner, "hello")
    assert replies[0].text == messages.EXTRACTION_UNCLEAR

    completion.queue(RuntimeError("rate limited"))
    replies = await flow.handle_text(owner, "hello")
    assert replies[0].text == messages.EXTRACTION_FAILED


@pytest.fixture
def transcriber():
    service = Mock(spec=TranscriptionService)
    service.transcribe = AsyncMock(return_value=TEXT)
    return service


@pytest.fixture
def voice_flow(extractor, repository, reconciler, sessions, dates, transcriber):
    return IntakeFlow(
        extractor=extractor,
        repository=repository,
        sessions=sessions,
        transcriber=transcriber,
        reconciler=reconciler,
        date_normalizer=dates,
    )


@pytest.mark.asyncio
async def test_voice_goes_through_same_pipeline(voice_flow, owner, completion, sessions, transcriber):
    await voice_flow.begin_adding(owner)
    completion.queue(TOMORROW_SLOTS)
    load_audio = AsyncMock(return_value=b"OggS...")

    replies = await voice_flow.handle_voice(owner, load_audio)

    transcriber.transcribe.assert_awaited_once_with(b"OggS...", "voice.ogg")
    assert replies[0].text.startswith(messages.TRANSCRIPT_LINE.format(transcript=TEXT))
    proposal = await sessions.get_proposal(owner.key)
    assert proposal.source_type == SourceType.VOICE
    assert proposal.source_text == TEXT


@pytest.mark.asyncio
async def test_voice_while_idle_is_not_downloaded(voice_flow, owner, transcriber):
    load_audio = AsyncMock(return_value=b"OggS...")

    replies = await voice_flow.handle_voice(owner, load_audio)

    assert replies[0].text == messages.USE_ADD_SLOTS_FIRST
    load_audio.assert_not_awaited()
    transcriber.transcribe.assert_not_awaited()


@pytest.mark.asyncio
async def test_voice_failures(voice_flow, owner, transcriber):
    await voice_flow.begin_adding(owner)
    load_audio = AsyncMock(return_value=b"OggS...")

    transcriber.transcribe.return_value = "   "
    replies = await voice_flow.handle_voice(owner, load_audio)
    assert replies[0].text == messages.TRANSCRIPT_EMPTY

    transcriber.transcribe.side_effect = TranscriptionError("whisper down")
    replies = await voice_flow.handle_voice(owner, load_audio)
    assert replies[0].text == messages.TRANSCRIPTION_FAILED


@pytest.mark.asyncio
async def test_list_month(flow, owner, completion):
    replies = await flow.list_month(owner, "2025-06")
    assert replies[0].text == messages.NO_SLOTS_FOR_MONTH.format(year_month="2025-06")

    proposal = await _propose(flow, owner, completion)
    await flow.handle_action(owner, _data(proposal, messages.BUTTON_CONFIRM))

    replies = await flow.list_month(owner)
    assert "2025-06" in replies[0].text
    assert "📅 2025-06-02 10:00-13:00 (URGENT)" in replies[0].text


@pytest.mark.asyncio
async def test_clear_month_requires_confirmation(flow, owner, other_owner, completion, sessions, repository, reconciler):
    proposal = await _propose(flow, owner, completion)
    await flow.handle_action(owner, _data(proposal, messages.BUTTON_CONFIRM))
    vet = await repository.get_owner("telegram", "1001")

    replies = await flow.request_clear_month(owner, "2025-06")
    assert replies[0].text == messages.CLEAR_QUESTION.format(count=2, year_month="2025-06")
    assert len(await reconciler.list_month(vet.id, "2025-06")) == 2

    foreign = await flow.handle_action(other_owner, _data(replies, messages.BUTTON_CLEAR_CONFIRM))
    assert foreign[0].notice == messages.NOT_YOUR_MESSAGE
    assert len(await reconciler.list_month(vet.id, "2025-06")) == 2

    result = await flow.handle_action(owner, _data(replies, messages.BUTTON_CLEAR_CONFIRM))
    assert result[0].text == messages.CLEARED.format(count=2, year_month="2025-06")
    assert await reconciler.list_month(vet.id, "2025-06") == []
    assert await sessions.get_pending_clear(owner.key) is None


@pytest.mark.asyncio
async def test_clear_month_cancel_and_empty(flow, owner, completion, sessions):
    replies = await flow.request_clear_month(owner, "2025-06")
    assert replies[0].text == messages.NOTHING_TO_CLEAR.format(year_month="2025-06")

    proposal = await _propose(flow, owner, completion)
    await flow.handle_action(owner, _data(proposal, messages.BUTTON_CONFIRM))
    replies = await flow.request_clear_month(owner, "2025-06")

    result = await flow.handle_action(owner, _data(replies, messages.BUTTON_CANCEL))
    assert result[0].text == messages.CLEAR_CANCELLED
    assert await sessions.get_pending_clear(owner.key) is None

    result = await flow.handle_action(owner, encode_action(ProposalAction.CLEAR_CONFIRM, owner))
    assert result[0].notice == messages.CLEAR_NOT_FOUND

"""
Add-availability conversation flow.

Owns the per-user state machine:

    idle --/add_slots--> awaiting_input --extract ok--> awaiting_input + proposal
    awaiting_input + proposal --edit--> awaiting_correction
    awaiting_correction --extract ok--> awaiting_input + new proposal
    any + proposal --confirm (saved) | cancel--> idle

Text arriving while idle is never interpreted as availability. The flow is
transport-agnostic: it receives owner identities and payloads and returns
``Reply`` objects for the transport to render.
"""

from __future__ import annotations

from typing import Awaitable, Callable, List, Optional, Tuple

from ...core.enums import ConversationState, ProposalAction, SourceType
from ...core.exceptions import (
    ExternalAPIError,
    ExtractionError,
    ExtractionFormatError,
    StorageError,
)
from ...core.models import Button, OwnerRef, PendingProposal, Reply
from ...utils.date import DateNormalizer
from ...utils.event_log import log_event
from ...utils.logging import get_logger
from ..extraction import SlotExtractor
from ..external import TranscriptionService
from ..session import SessionStore
from ..storage import ReconciliationService, SlotRepository
from . import messages

Notify = Callable[[Reply], Awaitable[None]]
AudioLoader = Callable[[], Awaitable[bytes]]

logger = get_logger("petsos.intake")

_ACCEPTING_INPUT = (ConversationState.AWAITING_INPUT, ConversationState.AWAITING_CORRECTION)


def encode_action(action: ProposalAction, owner: OwnerRef) -> str:
    """Button payload binding an action to the owner it was offered to."""
    return f"{action.value}:{owner.user_id}"


def decode_action(data: str) -> Tuple[Optional[ProposalAction], str]:
    action, _, user_id = (data or "").partition(":")
    try:
        return ProposalAction(action), user_id
    except ValueError:
        return None, user_id


def proposal_buttons(owner: OwnerRef) -> List[List[Button]]:
    return [
        [Button(messages.BUTTON_CONFIRM, encode_action(ProposalAction.CONFIRM, owner))],
        [Button(messages.BUTTON_EDIT, encode_action(ProposalAction.EDIT, owner))],
        [Button(messages.BUTTON_CANCEL, encode_action(ProposalAction.CANCEL, owner))],
    ]


def clear_buttons(owner: OwnerRef) -> List[List[Button]]:
    return [
        [Button(messages.BUTTON_CLEAR_CONFIRM, encode_action(ProposalAction.CLEAR_CONFIRM, owner))],
        [Button(messages.BUTTON_CANCEL, encode_action(ProposalAction.CLEAR_CANCEL, owner))],
    ]


class IntakeFlow:
    """Conversation state machine and command handlers."""

    def __init__(
        self,
        extractor: SlotExtractor,
        repository: SlotRepository,
        sessions: SessionStore,
        transcriber: Optional[TranscriptionService] = None,
        reconciler: Optional[ReconciliationService] = None,
        date_normalizer: Optional[DateNormalizer] = None,
    ):
        self.extractor = extractor
        self.repository = repository
        self.sessions = sessions
        self.transcriber = transcriber
        self.reconciler = reconciler or ReconciliationService(repository)
        self.dates = date_normalizer or DateNormalizer()

    async def _set_state(self, owner: OwnerRef, state: ConversationState) -> None:
        previous = await self.sessions.get_state(owner.key)
        await self.sessions.set_state(owner.key, state)
        if previous != state:
            log_event(
                "state_transition",
                {"owner": owner.key, "from": previous.value, "to": state.value},
            )

    # --- commands -----------------------------------------------------------

    async def start(self, owner: OwnerRef, name: Optional[str] = None) -> List[Reply]:
        is_admin = False
        try:
            vet = await self.repository.upsert_owner(owner.platform, owner.user_id, name)
            is_admin = vet.is_admin
        except StorageError:
            logger.exception("start: owner upsert failed for %s", owner.key)

        text = messages.WELCOME
        if is_admin:
            text += messages.WELCOME_ADMIN_LINE
        return [Reply(text + messages.WELCOME_EXAMPLES)]

    async def begin_adding(self, owner: OwnerRef, name: Optional[str] = None) -> List[Reply]:
        try:
            vet = await self.repository.upsert_owner(owner.platform, owner.user_id, name)
        except StorageError:
            return [Reply(messages.STORAGE_FAILED)]

        replies: List[Reply] = []
        if not vet.phone:
            replies.append(Reply(messages.ASK_PHONE, request_contact=True))

        await self._set_state(owner, ConversationState.AWAITING_INPUT)
        replies.append(Reply(messages.ADD_INSTRUCTIONS))
        return replies

    async def save_contact(self, owner: OwnerRef, phone: str) -> List[Reply]:
        try:
            await self.repository.set_phone(owner.platform, owner.user_id, phone)
        except StorageError:
            return [Reply(messages.PHONE_SAVE_FAILED)]
        return [Reply(messages.PHONE_SAVED.format(phone=phone))]

    async def list_month(self, owner: OwnerRef, arg: Optional[str] = None) -> List[Reply]:
        year_month = self.dates.parse_year_month(arg)
        try:
            vet = await self.repository.upsert_owner(owner.platform, owner.user_id)
            slots = await self.reconciler.list_month(vet.id, year_month)
        except StorageError:
            return [Reply(messages.STORAGE_FAILED)]

        if not slots:
            return [Reply(messages.NO_SLOTS_FOR_MONTH.format(year_month=year_month))]
        return [
            Reply(
                messages.MONTH_SLOTS.format(
                    year_month=year_month, slots=messages.format_stored_slots(slots)
                )
            )
        ]

    async def request_clear_month(self, owner: OwnerRef, arg: Optional[str] = None) -> List[Reply]:
        year_month = self.dates.parse_year_month(arg)
        try:
            vet = await self.repository.upsert_owner(owner.platform, owner.user_id)
            slots = await self.reconciler.list_month(vet.id, year_month)
        except StorageError:
            return [Reply(messages.STORAGE_FAILED)]

        if not slots:
            return [Reply(messages.NOTHING_TO_CLEAR.format(year_month=year_month))]

        await self.sessions.set_pending_clear(owner.key, year_month)
        return [
            Reply(
                messages.CLEAR_QUESTION.format(count=len(slots), year_month=year_month),
                buttons=clear_buttons(owner),
            )
        ]

    # --- free text and voice ------------------------------------------------

    async def handle_text(
        self, owner: OwnerRef, text: str, notify: Optional[Notify] = None
    ) -> List[Reply]:
        text = (text or "").strip()
        if not text:
            return []

        state = await self.sessions.get_state(owner.key)
        if state not in _ACCEPTING_INPUT:
            return [Reply(messages.USE_ADD_SLOTS_FIRST)]

        if notify:
            await notify(Reply(messages.PROCESSING_TEXT))
        return await self._extract_and_propose(owner, text, SourceType.TEXT)

    async def handle_voice(
        self,
        owner: OwnerRef,
        load_audio: AudioLoader,
        filename: str = "voice.ogg",
        notify: Optional[Notify] = None,
    ) -> List[Reply]:
        state = await self.sessions.get_state(owner.key)
        if state not in _ACCEPTING_INPUT:
            return [Reply(messages.USE_ADD_SLOTS_FIRST)]

        if notify:
            await notify(Reply(messages.PROCESSING_VOICE))

        if self.transcriber is None:
            logger.error("voice received but no transcriber is configured")
            return [Reply(messages.TRANSCRIPTION_FAILED)]

        try:
            audio = await load_audio()
            transcript = await self.transcriber.transcribe(audio, filename)
        except ExternalAPIError as e:
            logger.error("voice processing failed for %s: %s", owner.key, e)
            return [Reply(messages.TRANSCRIPTION_FAILED)]

        if not transcript.strip():
            return [Reply(messages.TRANSCRIPT_EMPTY)]

        prefix = messages.TRANSCRIPT_LINE.format(transcript=transcript)
        return await self._extract_and_propose(owner, transcript, SourceType.VOICE, prefix)

    async def _extract_and_propose(
        self, owner: OwnerRef, text: str, source_type: SourceType, prefix: str = ""
    ) -> List[Reply]:
        try:
            slots = await self.extractor.extract(text)
        except ExtractionFormatError:
            return [Reply(prefix + messages.EXTRACTION_UNCLEAR)]
        except ExtractionError:
            return [Reply(prefix + messages.EXTRACTION_FAILED)]

        if not slots:
            return [Reply(prefix + messages.NO_VALID_SLOTS.format(text=text))]

        proposal = PendingProposal(slots=slots, source_text=text, source_type=source_type)
        await self.sessions.set_proposal(owner.key, proposal)
        await self._set_state(owner, ConversationState.AWAITING_INPUT)
        return [
            Reply(
                prefix + messages.PROPOSAL.format(slots=messages.format_slots(slots)),
                buttons=proposal_buttons(owner),
            )
        ]

    # --- button actions -----------------------------------------------------

    async def handle_action(self, actor: OwnerRef, data: str) -> List[Reply]:
        """
        Apply a confirm/edit/cancel or clear-confirm/clear-cancel button press.

        The action is honored only when ``actor`` is the owner the button was
        offered to; otherwise nothing is mutated.
        """
        action, target_user_id = decode_action(data)
        if action is None:
            return [Reply(notice=messages.UNKNOWN_ACTION)]
        if str(actor.user_id) != target_user_id:
            logger.warning("action %s by %s on %s rejected", action.value, actor.key, target_user_id)
            return [Reply(notice=messages.NOT_YOUR_MESSAGE)]

        handlers = {
            ProposalAction.CONFIRM: self._confirm,
            ProposalAction.EDIT: self._edit,
            ProposalAction.CANCEL: self._cancel,
            ProposalAction.CLEAR_CONFIRM: self._confirm_clear,
            ProposalAction.CLEAR_CANCEL: self._cancel_clear,
        }
        return await handlers[action](actor)

    async def _confirm(self, owner: OwnerRef) -> List[Reply]:
        pending = await self.sessions.get_proposal(owner.key)
        if pending is None:
            return [Reply(notice=messages.NOTHING_TO_CONFIRM)]

        try:
            vet = await self.repository.upsert_owner(owner.platform, owner.user_id)
            inserted = await self.reconciler.save_slots(
                vet.id, pending.slots, pending.source_type.value
            )
        except StorageError:
            # proposal stays held so the user can press confirm again
            return [Reply(notice=messages.SAVE_FAILED)]

        await self.sessions.clear_proposal(owner.key)
        await self._set_state(owner, ConversationState.IDLE)
        return [
            Reply(
                messages.SAVED.format(
                    slots=messages.format_slots(pending.slots), inserted=inserted
                ),
                notice=messages.SAVED_NOTICE,
                edit=True,
            )
        ]

    async def _edit(self, owner: OwnerRef) -> List[Reply]:
        pending = await self.sessions.get_proposal(owner.key)
        if pending is None:
            return [Reply(notice=messages.NOTHING_TO_EDIT)]

        await self._set_state(owner, ConversationState.AWAITING_CORRECTION)
        return [
            Reply(
                messages.EDIT_PROMPT.format(slots=messages.format_slots(pending.slots)),
                edit=True,
            )
        ]

    async def _cancel(self, owner: OwnerRef) -> List[Reply]:
        await self.sessions.clear_proposal(owner.key)
        await self._set_state(owner, ConversationState.IDLE)
        return [Reply(messages.CANCELLED, notice=messages.CANCELLED_NOTICE, edit=True)]

    async def _confirm_clear(self, owner: OwnerRef) -> List[Reply]:
        year_month = await self.sessions.get_pending_clear(owner.key)
        if not year_month:
            return [Reply(notice=messages.CLEAR_NOT_FOUND)]

        try:
            vet = await self.repository.upsert_owner(owner.platform, owner.user_id)
            removed = await self.reconciler.delete_month(vet.id, year_month)
        except StorageError:
            return [Reply(notice=messages.CLEAR_FAILED)]

        await self.sessions.clear_pending_clear(owner.key)
        return [
            Reply(
                messages.CLEARED.format(count=removed, year_month=year_month),
                notice=messages.CLEARED_NOTICE,
                edit=True,
            )
        ]

    async def _cancel_clear(self, owner: OwnerRef) -> List[Reply]:
        await self.sessions.clear_pending_clear(owner.key)
        return [Reply(messages.CLEAR_CANCELLED, notice=messages.CANCELLED_NOTICE, edit=True)]

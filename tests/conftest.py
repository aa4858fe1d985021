"""
Pytest configuration and fixtures.
"""

import json
from datetime import date
from typing import List

import pytest

from petsos_agent.core.models import OwnerRef
from petsos_agent.services.extraction import SlotExtractor
from petsos_agent.services.intake import IntakeFlow
from petsos_agent.services.session import InMemorySessionStore
from petsos_agent.services.storage import ReconciliationService, SlotRepository
from petsos_agent.utils.date import DateNormalizer
from petsos_agent.utils.event_log import set_log_path

# Sunday
TODAY = date(2025, 6, 1)


class FixedDateNormalizer(DateNormalizer):
    """Date normalizer whose "today" never moves."""

    def __init__(self, today: date = TODAY):
        super().__init__(timezone="Europe/Kyiv", window_days=31)
        self._today = today

    def today(self) -> date:
        return self._today


class FakeCompletion:
    """Stands in for the language model; returns queued responses in order."""

    def __init__(self, *responses):
        self.responses: List = list(responses)
        self.calls: List[tuple] = []

    def queue(self, response) -> None:
        self.responses.append(response)

    async def __call__(self, system_prompt: str, user_prompt: str) -> str:
        self.calls.append((system_prompt, user_prompt))
        response = self.responses.pop(0) if self.responses else "[]"
        if isinstance(response, Exception):
            raise response
        if isinstance(response, (list, dict)):
            return json.dumps(response)
        return response


@pytest.fixture(autouse=True)
def event_log(tmp_path):
    """Route the JSONL event log into the test's temporary directory."""
    path = tmp_path / "events.jsonl"
    set_log_path(path)
    yield path
    set_log_path(None)


@pytest.fixture
def dates():
    return FixedDateNormalizer()


@pytest.fixture
def completion():
    return FakeCompletion()


@pytest.fixture
def extractor(completion, dates):
    return SlotExtractor(complete=completion, date_normalizer=dates)


@pytest.fixture
def repository(tmp_path):
    return SlotRepository(str(tmp_path / "petsos.db"))


@pytest.fixture
def reconciler(repository):
    return ReconciliationService(repository)


@pytest.fixture
def sessions():
    return InMemorySessionStore()


@pytest.fixture
def owner():
    return OwnerRef("telegram", "1001")


@pytest.fixture
def other_owner():
    return OwnerRef("telegram", "2002")


@pytest.fixture
def flow(extractor, repository, reconciler, sessions, dates):
    return IntakeFlow(
        extractor=extractor,
        repository=repository,
        sessions=sessions,
        reconciler=reconciler,
        date_normalizer=dates,
    )

import pytest

from livepoll.realtime.broadcast import BroadcastRouter
from livepoll.realtime.engine import PollRealtime
from livepoll.realtime.registry import ConnectionRegistry

from .fakes import SHORT_WINDOW
from .fakes import FakeParticipantStore
from .fakes import FakeQuestionStore
from .fakes import FakeSessionStore
from .fakes import RecordingEmitter


@pytest.fixture
def emitter() -> RecordingEmitter:
    return RecordingEmitter()


@pytest.fixture
def registry() -> ConnectionRegistry:
    return ConnectionRegistry()


@pytest.fixture
def router(emitter, registry) -> BroadcastRouter:
    return BroadcastRouter(emitter, registry)


@pytest.fixture
def question_store() -> FakeQuestionStore:
    return FakeQuestionStore(active={9, 42, 43})


@pytest.fixture
def participant_store() -> FakeParticipantStore:
    return FakeParticipantStore()


@pytest.fixture
def session_store() -> FakeSessionStore:
    return FakeSessionStore(owners={7: 1, 8: 2})


@pytest.fixture
def engine(emitter, session_store, participant_store, question_store) -> PollRealtime:
    return PollRealtime(
        emitter,
        session_store=session_store,
        participant_store=participant_store,
        question_store=question_store,
        transition_seconds=SHORT_WINDOW,
        closing_seconds=SHORT_WINDOW,
    )

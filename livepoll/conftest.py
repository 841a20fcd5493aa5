from __future__ import annotations

from dataclasses import dataclass
from dataclasses import field
from typing import Any

import pytest
from rest_framework.test import APIClient

from livepoll.polls.models import PollSession
from livepoll.polls.models import Question
from livepoll.realtime.events import polls as realtime_events
from livepoll.realtime.socketio import realtime
from livepoll.users.models import User

TEST_PASSWORD = "TestPass123!"  # noqa: S105 test-only password constant

PUBLISHERS = (
    "publish_question_selected",
    "publish_question_deselected",
    "publish_question_closing",
    "publish_question_close_cancelled",
    "publish_question_reopened",
    "publish_session_closed",
    "publish_session_reopened",
    "publish_anonymous_response",
)


@dataclass
class PublishRecorder:
    """Records calls to the realtime publish helpers made by HTTP views."""

    calls: list[tuple[str, tuple[Any, ...]]] = field(default_factory=list)
    results: dict[str, Any] = field(default_factory=dict)

    def hook(self, name: str):
        def publish(*args, **kwargs):
            self.calls.append((name, args))
            return self.results.get(name, True)

        return publish

    def names(self) -> list[str]:
        return [name for name, _ in self.calls]

    def args_of(self, name: str) -> list[tuple[Any, ...]]:
        return [args for called, args in self.calls if called == name]


@pytest.fixture(autouse=True)
def _reset_credential_cache():
    realtime.credentials.clear()
    yield
    realtime.credentials.clear()


@pytest.fixture
def published(monkeypatch) -> PublishRecorder:
    recorder = PublishRecorder()
    for name in PUBLISHERS:
        monkeypatch.setattr(realtime_events, name, recorder.hook(name))
    return recorder


def make_user(email: str, *, role: str = User.Role.PRESENTER, **extra) -> User:
    return User.objects.create_user(
        email=email,
        password=TEST_PASSWORD,
        role=role,
        **extra,
    )


@pytest.fixture
def presenter(db) -> User:
    return make_user("presenter@example.com", first_name="Pat", last_name="Presenter")


@pytest.fixture
def other_presenter(db) -> User:
    return make_user("other@example.com")


@pytest.fixture
def admin(db) -> User:
    return make_user("admin@example.com", role=User.Role.ADMIN)


@pytest.fixture
def api_client() -> APIClient:
    return APIClient()


@pytest.fixture
def presenter_client(presenter) -> APIClient:
    client = APIClient()
    client.force_authenticate(user=presenter)
    return client


@pytest.fixture
def admin_client(admin) -> APIClient:
    client = APIClient()
    client.force_authenticate(user=admin)
    return client


@pytest.fixture
def poll_session(presenter) -> PollSession:
    return PollSession.objects.create(
        presenter=presenter,
        title="Weekly sync",
        join_code="a2b3",
    )


@pytest.fixture
def question(poll_session) -> Question:
    return Question.objects.create(
        session=poll_session,
        presenter=poll_session.presenter,
        question_text="Favourite colour?",
        question_type=Question.QuestionType.MULTIPLE_CHOICE,
        options=["Red", "Green", "Blue"],
        correct_answer="Green",
    )

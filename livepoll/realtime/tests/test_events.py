import pytest

from livepoll.audience.models import AnonymousResponse
from livepoll.realtime.events import polls as realtime_events
from livepoll.realtime.socketio import realtime

pytestmark = pytest.mark.django_db


@pytest.fixture
def engine_calls(monkeypatch):
    calls = []

    def record(name, result=None):
        async def method(*args, **kwargs):
            calls.append((name, args, kwargs))
            return result

        monkeypatch.setattr(realtime, name, method)

    record("select_question")
    record("close_session")
    record("cancel_closing", result=False)
    record("new_anonymous_response", result=1)
    return calls


def test_audience_payload_hides_correct_answer(question):
    payload = realtime_events.build_question_payload(question)

    assert payload == {
        "id": question.pk,
        "question_text": "Favourite colour?",
        "question_type": "multiple_choice",
        "options": ["Red", "Green", "Blue"],
        "time_limit": None,
        "is_active": True,
    }


def test_staff_payload_adds_answer_and_session(question):
    payload = realtime_events.build_staff_question_payload(question)

    assert payload["correct_answer"] == "Green"
    assert payload["session_id"] == question.session_id


def test_publish_selection_sends_both_payloads(question, engine_calls):
    realtime_events.publish_question_selected(question.session_id, question, 3)

    ((name, args, kwargs),) = engine_calls
    assert name == "select_question"
    assert args[:2] == (question.session_id, question.pk)
    assert "correct_answer" not in args[2]
    assert kwargs["staff_question"]["correct_answer"] == "Green"
    assert kwargs["previous_question_id"] == 3  # noqa: PLR2004


def test_publish_session_closed(poll_session, engine_calls):
    realtime_events.publish_session_closed(poll_session.pk)
    assert engine_calls == [("close_session", (poll_session.pk,), {})]


def test_close_cancelled_reports_engine_result(question, engine_calls):
    assert realtime_events.publish_question_close_cancelled(question) is False


def test_publish_response_payload(question, engine_calls):
    participant = question.session.participants.create(display_name="Ann")
    response = AnonymousResponse.objects.create(
        question=question,
        participant=participant,
        answer_text="Blue",
        response_time=800,
    )

    realtime_events.publish_anonymous_response(question.session_id, response)

    ((_, (session_id, payload), _),) = engine_calls
    assert session_id == question.session_id
    assert payload["display_name"] == "Ann"
    assert payload["answer_text"] == "Blue"
    assert payload["isAnonymous"] is True
    assert payload["created_at"] == response.created_at.isoformat()


def test_closing_countdown_matches_engine():
    assert realtime_events.closing_countdown() == realtime.closing.countdown

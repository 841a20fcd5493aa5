import pytest
from rest_framework import status
from rest_framework.test import APIClient

from livepoll.audience.authentication import ANONYMOUS_TOKEN_HEADER
from livepoll.audience.models import AnonymousParticipant
from livepoll.audience.models import AnonymousResponse
from livepoll.polls.models import PollSession
from livepoll.polls.models import Question

pytestmark = pytest.mark.django_db

JOIN_URL = "/api/v1/anonymous/join/"
RESPONSE_URL = "/api/v1/anonymous/response/"


def join(client, code: str = "a2b3", name: str = "Guest"):
    return client.post(JOIN_URL, {"joinCode": code, "displayName": name}, format="json")


@pytest.fixture
def participant(poll_session) -> AnonymousParticipant:
    return AnonymousParticipant.objects.create(session=poll_session, display_name="Guest")


@pytest.fixture
def audience_client(participant) -> APIClient:
    client = APIClient()
    client.credentials(**{"HTTP_X_ANONYMOUS_TOKEN": participant.anonymous_token})
    return client


@pytest.fixture
def live_question(poll_session, question) -> Question:
    poll_session.selected_question = question
    poll_session.save()
    return question


def test_token_header_name():
    assert ANONYMOUS_TOKEN_HEADER == "X-Anonymous-Token"


class TestSessionByCode:
    def test_lookup_is_case_insensitive(self, api_client, poll_session):
        r = api_client.get("/api/v1/anonymous/session/A2B3/")

        assert r.status_code == status.HTTP_200_OK
        assert r.data["session"]["id"] == poll_session.pk
        assert r.data["session"]["presenterName"] == "Pat Presenter"
        assert r.data["selectedQuestion"] is None

    def test_selected_question_hides_answer(self, api_client, live_question):
        r = api_client.get("/api/v1/anonymous/session/a2b3/")

        selected = r.data["selectedQuestion"]
        assert selected["id"] == live_question.pk
        assert "correct_answer" not in selected

    def test_unknown_code(self, api_client, db):
        r = api_client.get("/api/v1/anonymous/session/zz99/")
        assert r.status_code == status.HTTP_404_NOT_FOUND

    def test_closed_session(self, api_client, poll_session):
        poll_session.is_active = False
        poll_session.save()

        r = api_client.get("/api/v1/anonymous/session/a2b3/")

        assert r.status_code == status.HTTP_400_BAD_REQUEST


class TestJoin:
    def test_join_hands_out_token(self, api_client, poll_session):
        r = join(api_client, "A2B3", "  Sam  ")

        assert r.status_code == status.HTTP_201_CREATED, r.content
        participant = AnonymousParticipant.objects.get(pk=r.data["participantId"])
        assert participant.display_name == "Sam"
        assert participant.anonymous_token == r.data["token"]
        assert len(r.data["token"]) == 64  # noqa: PLR2004
        assert r.data["sessionId"] == poll_session.pk

    def test_join_closed_session(self, api_client, poll_session):
        poll_session.is_active = False
        poll_session.save()

        r = join(api_client)

        assert r.status_code == status.HTTP_400_BAD_REQUEST
        assert r.data == {"error": "Session is no longer active"}

    def test_join_requires_display_name(self, api_client, poll_session):
        r = api_client.post(JOIN_URL, {"joinCode": "a2b3"}, format="json")
        assert r.status_code == status.HTTP_400_BAD_REQUEST


class TestSubmitResponse:
    def submit(self, client, question, answer="Green", **extra):
        body = {"questionId": question.pk, "answerText": answer, **extra}
        return client.post(RESPONSE_URL, body, format="json")

    def test_submit_publishes_to_staff(self, audience_client, live_question, published):
        r = self.submit(audience_client, live_question, responseTime=1500)

        assert r.status_code == status.HTTP_201_CREATED, r.content
        response = AnonymousResponse.objects.get(pk=r.data["responseId"])
        assert response.response_time == 1500  # noqa: PLR2004
        ((session_id, published_response),) = published.args_of(
            "publish_anonymous_response",
        )
        assert session_id == live_question.session_id
        assert published_response == response

    def test_second_answer_conflicts(self, audience_client, live_question, published):
        self.submit(audience_client, live_question)

        r = self.submit(audience_client, live_question, answer="Red")

        assert r.status_code == status.HTTP_409_CONFLICT
        assert AnonymousResponse.objects.filter(question=live_question).count() == 1
        assert len(published.calls) == 1

    def test_missing_token(self, api_client, live_question, published):
        r = self.submit(api_client, live_question)
        assert r.status_code in (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN)

    def test_unknown_token(self, api_client, live_question, published):
        api_client.credentials(HTTP_X_ANONYMOUS_TOKEN="f" * 64)
        r = self.submit(api_client, live_question)
        assert r.status_code == status.HTTP_401_UNAUTHORIZED

    def test_closed_session_token(self, audience_client, live_question, poll_session, published):
        poll_session.is_active = False
        poll_session.save()

        r = self.submit(audience_client, live_question)

        assert r.status_code == status.HTTP_400_BAD_REQUEST

    def test_unknown_question(self, audience_client, poll_session, published):
        r = audience_client.post(
            RESPONSE_URL,
            {"questionId": 999999, "answerText": "x"},
            format="json",
        )
        assert r.status_code == status.HTTP_404_NOT_FOUND

    def test_closed_question(self, audience_client, live_question, published):
        live_question.is_active = False
        live_question.save()

        r = self.submit(audience_client, live_question)

        assert r.status_code == status.HTTP_400_BAD_REQUEST
        assert r.data == {"error": "Question is no longer active"}

    def test_question_from_other_session(self, audience_client, other_presenter, published):
        other_session = PollSession.objects.create(
            presenter=other_presenter,
            title="Other",
            join_code="k7k7",
        )
        foreign = Question.objects.create(
            session=other_session,
            presenter=other_presenter,
            question_text="?",
            question_type=Question.QuestionType.SHORT_ANSWER,
        )
        other_session.selected_question = foreign
        other_session.save()

        r = self.submit(audience_client, foreign)

        assert r.status_code == status.HTTP_403_FORBIDDEN

    def test_question_not_selected(self, audience_client, question, published):
        r = self.submit(audience_client, question)

        assert r.status_code == status.HTTP_400_BAD_REQUEST
        assert published.calls == []


class TestMyResponse:
    def test_before_and_after_answering(self, audience_client, live_question, participant):
        url = f"/api/v1/anonymous/my-response/{live_question.pk}/"

        assert audience_client.get(url).data == {"hasResponded": False, "response": None}

        AnonymousResponse.objects.create(
            question=live_question,
            participant=participant,
            answer_text="Blue",
        )
        r = audience_client.get(url)

        assert r.data["hasResponded"] is True
        assert r.data["response"]["answer_text"] == "Blue"

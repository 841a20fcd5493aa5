from __future__ import annotations

from typing import TYPE_CHECKING
from typing import Any

from asgiref.sync import async_to_sync

if TYPE_CHECKING:  # import for type checking only
    from livepoll.audience.models import AnonymousResponse
    from livepoll.polls.models import Question
from livepoll.realtime.socketio import realtime


def build_question_payload(question: Question) -> dict[str, Any]:
    """Audience-safe view of a question (no correct answer)."""

    return {
        "id": question.id,
        "question_text": question.question_text,
        "question_type": question.question_type,
        "options": question.options,
        "time_limit": question.time_limit,
        "is_active": question.is_active,
    }


def build_staff_question_payload(question: Question) -> dict[str, Any]:
    payload = build_question_payload(question)
    payload["correct_answer"] = question.correct_answer
    payload["session_id"] = question.session_id
    return payload


def build_response_payload(response: AnonymousResponse) -> dict[str, Any]:
    return {
        "id": response.id,
        "question_id": response.question_id,
        "display_name": response.participant.display_name,
        "answer_text": response.answer_text,
        "response_time": response.response_time,
        "created_at": response.created_at.isoformat() if response.created_at else None,
        "isAnonymous": True,
    }


def publish_question_selected(
    session_id: int,
    question: Question,
    previous_question_id: int | None,
) -> None:
    async_to_sync(realtime.select_question)(
        session_id,
        question.id,
        build_question_payload(question),
        staff_question=build_staff_question_payload(question),
        previous_question_id=previous_question_id,
    )


def publish_question_deselected(session_id: int) -> None:
    async_to_sync(realtime.deselect_question)(session_id)


def publish_question_closing(question: Question) -> None:
    async_to_sync(realtime.start_closing)(question.session_id, question.id)


def publish_question_close_cancelled(question: Question) -> bool:
    """Returns ``False`` when the question was not closing."""

    return async_to_sync(realtime.cancel_closing)(question.id)


def publish_question_reopened(question: Question) -> bool:
    return async_to_sync(realtime.reopen_question)(question.session_id, question.id)


def publish_session_closed(session_id: int) -> None:
    async_to_sync(realtime.close_session)(session_id)


def publish_session_reopened(session_id: int) -> None:
    async_to_sync(realtime.reopen_session)(session_id)


def publish_anonymous_response(session_id: int, response: AnonymousResponse) -> None:
    async_to_sync(realtime.new_anonymous_response)(
        session_id,
        build_response_payload(response),
    )


def is_question_closing(question_id: int) -> bool:
    return realtime.is_closing(question_id)


def participant_count(session_id: int) -> int:
    return realtime.participant_count(session_id)


def closing_countdown() -> int:
    return realtime.closing.countdown

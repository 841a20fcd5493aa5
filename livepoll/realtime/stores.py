"""Storage collaborators used by the realtime engine.

The engine only depends on the protocols below. The Django implementations
run their ORM calls through ``database_sync_to_async`` so the event loop is
never blocked.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from channels.db import database_sync_to_async
from django.utils import timezone

from livepoll.audience.models import AnonymousParticipant
from livepoll.polls.models import PollSession
from livepoll.polls.models import Question


@dataclass(frozen=True)
class ParticipantRecord:
    """Denormalized snapshot of an anonymous participant."""

    id: int
    session_id: int
    display_name: str
    session_is_active: bool


class SessionStore(Protocol):
    async def is_owned_by(self, session_id: int, user_id: int) -> bool: ...

    async def is_active(self, session_id: int) -> bool: ...


class ParticipantStore(Protocol):
    async def resolve_by_token(self, token: str) -> ParticipantRecord | None: ...


class QuestionStore(Protocol):
    async def mark_closed(self, question_id: int) -> bool: ...

    async def mark_reopened(self, question_id: int) -> bool: ...


class DjangoSessionStore:
    @database_sync_to_async
    def is_owned_by(self, session_id: int, user_id: int) -> bool:
        return PollSession.objects.filter(pk=session_id, presenter_id=user_id).exists()

    @database_sync_to_async
    def is_active(self, session_id: int) -> bool:
        return PollSession.objects.filter(pk=session_id, is_active=True).exists()


class DjangoParticipantStore:
    @database_sync_to_async
    def resolve_by_token(self, token: str) -> ParticipantRecord | None:
        participant = (
            AnonymousParticipant.objects.select_related("session")
            .filter(anonymous_token=token)
            .first()
        )
        if participant is None:
            return None
        return ParticipantRecord(
            id=int(participant.id),
            session_id=int(participant.session_id),
            display_name=participant.display_name,
            session_is_active=bool(participant.session.is_active),
        )


class DjangoQuestionStore:
    @database_sync_to_async
    def mark_closed(self, question_id: int) -> bool:
        updated = Question.objects.filter(pk=question_id, is_active=True).update(
            is_active=False,
            closed_at=timezone.now(),
        )
        return bool(updated)

    @database_sync_to_async
    def mark_reopened(self, question_id: int) -> bool:
        updated = Question.objects.filter(pk=question_id).update(
            is_active=True,
            closed_at=None,
        )
        return bool(updated)

"""The realtime engine: one object owning every piece of in-memory live state.

HTTP views and Socket.IO handlers never touch the registry or the state
machines directly; they go through :class:`PollRealtime`.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Any

from django.conf import settings

from . import event_names
from .broadcast import BroadcastRouter
from .broadcast import Emitter
from .closing import QuestionClosingMachine
from .credentials import AnonymousCredentialCache
from .registry import AudienceIdentity
from .registry import Connection
from .registry import ConnectionRegistry
from .registry import StaffIdentity
from .selection import UNSET
from .selection import QuestionSelectionMachine
from .stores import DjangoParticipantStore
from .stores import DjangoQuestionStore
from .stores import DjangoSessionStore
from .stores import ParticipantStore
from .stores import QuestionStore
from .stores import SessionStore

logger = logging.getLogger(__name__)


class PollRealtime:
    def __init__(
        self,
        emitter: Emitter,
        *,
        session_store: SessionStore,
        participant_store: ParticipantStore,
        question_store: QuestionStore,
        transition_seconds: float = 5.0,
        closing_seconds: float = 5.0,
        token_ttl: float = 30.0,
        token_sweep_interval: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._sessions = session_store
        self._questions = question_store
        self.registry = ConnectionRegistry(is_pinned=self._has_pending_timers)
        self.router = BroadcastRouter(emitter, self.registry)
        self.credentials = AnonymousCredentialCache(
            participant_store,
            ttl_seconds=token_ttl,
            sweep_interval=token_sweep_interval,
            clock=clock,
        )
        self.selection = QuestionSelectionMachine(
            self.router,
            transition_seconds=transition_seconds,
            clock=clock,
            on_settle=self.registry.collect,
        )
        self.closing = QuestionClosingMachine(
            self.router,
            question_store,
            closing_seconds=closing_seconds,
            clock=clock,
            on_settle=self.registry.collect,
        )
        self.started = False

    @classmethod
    def from_settings(cls, emitter: Emitter) -> PollRealtime:
        return cls(
            emitter,
            session_store=DjangoSessionStore(),
            participant_store=DjangoParticipantStore(),
            question_store=DjangoQuestionStore(),
            transition_seconds=settings.LIVEPOLL_TRANSITION_SECONDS,
            closing_seconds=settings.LIVEPOLL_CLOSING_SECONDS,
            token_ttl=settings.LIVEPOLL_TOKEN_CACHE_TTL,
            token_sweep_interval=settings.LIVEPOLL_TOKEN_CACHE_SWEEP_INTERVAL,
        )

    # Lifecycle -------------------------------------------------------------
    async def startup(self) -> None:
        self.credentials.start()
        self.started = True
        logger.info("Realtime engine started")

    async def shutdown(self) -> None:
        self.selection.shutdown()
        self.closing.shutdown()
        await self.credentials.stop()
        self.started = False
        logger.info("Realtime engine stopped")

    def status(self) -> dict[str, Any]:
        rooms = self.registry.rooms()
        return {
            "started": self.started,
            "rooms": len(rooms),
            "staff_connections": sum(
                self.registry.count_staff(room.session_id) for room in rooms
            ),
            "audience_connections": sum(
                self.registry.count_audience(room.session_id) for room in rooms
            ),
            "pending_transitions": len(self.selection.pending_timers()),
            "pending_closings": len(self.closing.pending_timers()),
            "cached_tokens": len(self.credentials),
        }

    # Staff presence --------------------------------------------------------
    async def join_staff(self, session_id: int, connection: Connection) -> bool:
        """Put a staff connection in the session room if it owns the session.

        Non-owners (other than admins) are dropped without a reply.
        """
        identity = connection.identity
        if not isinstance(identity, StaffIdentity):
            return False
        if not identity.is_admin:
            owned = await self._sessions.is_owned_by(session_id, identity.user_id)
            if not owned:
                logger.debug(
                    "User %s may not join session %s",
                    identity.user_id,
                    session_id,
                )
                return False
        await self.router.enter(session_id, connection)
        logger.info("User %s joined session %s", identity.user_id, session_id)
        await self.router.to_staff(
            session_id,
            event_names.USER_JOINED,
            {"role": identity.role},
            skip_sid=connection.sid,
        )
        return True

    async def leave_staff(self, session_id: int, connection: Connection) -> bool:
        left = await self.router.exit(session_id, connection)
        if left:
            await self.router.to_staff(
                session_id,
                event_names.USER_LEFT,
                {"userId": getattr(connection.identity, "user_id", None)},
                skip_sid=connection.sid,
            )
        return left

    async def disconnect_staff(self, connection: Connection) -> list[int]:
        left = self.registry.disconnect(connection)
        identity = connection.identity
        for session_id in left:
            await self.router.to_staff(
                session_id,
                event_names.USER_LEFT,
                {"userId": getattr(identity, "user_id", None)},
                skip_sid=connection.sid,
            )
        return left

    # Audience presence -----------------------------------------------------
    async def connect_audience(self, connection: Connection) -> int:
        identity = connection.identity
        if not isinstance(identity, AudienceIdentity):
            msg = "audience connections need an AudienceIdentity"
            raise TypeError(msg)
        await self.router.enter(identity.session_id, connection)
        logger.info(
            "Participant %s joined session %s",
            identity.participant_id,
            identity.session_id,
        )
        return await self.broadcast_participant_count(identity.session_id)

    async def disconnect_audience(self, connection: Connection) -> list[int]:
        left = self.registry.disconnect(connection)
        for session_id in left:
            await self.broadcast_participant_count(session_id)
        return left

    async def broadcast_participant_count(self, session_id: int) -> int:
        count = self.registry.count_audience(session_id)
        await self.router.to_staff_filtered(
            session_id,
            event_names.ANONYMOUS_PARTICIPANT_COUNT,
            {"count": count},
        )
        return count

    def participant_count(self, session_id: int) -> int:
        return self.registry.count_audience(session_id)

    # Question selection ----------------------------------------------------
    async def select_question(
        self,
        session_id: int,
        question_id: int,
        question: dict[str, Any] | None = None,
        *,
        staff_question: dict[str, Any] | None = None,
        previous_question_id: int | None = UNSET,
    ):
        return await self.selection.select(
            session_id,
            question_id,
            question,
            staff_question=staff_question,
            previous_question_id=previous_question_id,
        )

    async def deselect_question(self, session_id: int) -> None:
        await self.selection.deselect(session_id)

    # Question closing ------------------------------------------------------
    async def start_closing(self, session_id: int, question_id: int):
        return await self.closing.start_closing(session_id, question_id)

    async def cancel_closing(self, question_id: int) -> bool:
        return await self.closing.cancel_closing(question_id)

    def is_closing(self, question_id: int) -> bool:
        return self.closing.is_closing(question_id)

    async def reopen_question(self, session_id: int, question_id: int) -> bool:
        """Persist the reopen, then tell both rooms.

        Any closing countdown for the question is discarded first so it
        cannot close the question again. Store errors propagate and nothing
        is broadcast.
        """
        if self.closing.discard(question_id):
            logger.info("Discarded pending close of question %s on reopen", question_id)
        reopened = await self._questions.mark_reopened(question_id)
        if not reopened:
            logger.warning("Question %s could not be reopened", question_id)
            return False
        await self.router.to_both(
            session_id,
            event_names.QUESTION_REOPENED,
            {"questionId": question_id},
        )
        return True

    # Session lifecycle -----------------------------------------------------
    async def close_session(self, session_id: int) -> None:
        self.credentials.invalidate_for_session(session_id)
        self.selection.clear(session_id)
        logger.info("Session %s closed", session_id)
        await self.router.to_both(session_id, event_names.SESSION_CLOSED, {})

    async def reopen_session(self, session_id: int) -> None:
        logger.info("Session %s reopened", session_id)
        await self.router.to_both(
            session_id,
            event_names.SESSION_REOPENED,
            {"sessionId": session_id},
        )

    # Responses -------------------------------------------------------------
    async def new_anonymous_response(
        self,
        session_id: int,
        payload: dict[str, Any],
    ) -> int:
        return await self.router.to_staff_filtered(
            session_id,
            event_names.NEW_ANONYMOUS_RESPONSE,
            payload,
        )

    def _has_pending_timers(self, session_id: int) -> bool:
        return self.selection.has_pending(session_id) or (
            self.closing.has_pending_for_session(session_id)
        )

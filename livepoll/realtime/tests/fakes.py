from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any

from livepoll.realtime.registry import AUDIENCE_NAMESPACE
from livepoll.realtime.registry import STAFF_NAMESPACE
from livepoll.realtime.registry import AudienceIdentity
from livepoll.realtime.registry import Connection
from livepoll.realtime.registry import StaffIdentity
from livepoll.realtime.stores import ParticipantRecord

SHORT_WINDOW = 0.02


@dataclass(frozen=True)
class Emitted:
    event: str
    data: Any
    to: str | None
    namespace: str | None
    skip_sid: str | None


class RecordingEmitter:
    """Stands in for ``socketio.AsyncServer`` and records every call."""

    def __init__(self):
        self.emitted: list[Emitted] = []
        self.memberships: set[tuple[str | None, str, str]] = set()

    async def emit(self, event, data=None, to=None, namespace=None, skip_sid=None):
        self.emitted.append(Emitted(event, data, to, namespace, skip_sid))

    async def enter_room(self, sid, room, namespace=None):
        self.memberships.add((namespace, room, sid))

    async def leave_room(self, sid, room, namespace=None):
        self.memberships.discard((namespace, room, sid))

    def events(self, namespace: str | None = None) -> list[str]:
        return [
            e.event
            for e in self.emitted
            if namespace is None or e.namespace == namespace
        ]

    def named(self, event: str) -> list[Emitted]:
        return [e for e in self.emitted if e.event == event]

    def audience_events(self) -> list[str]:
        return self.events(AUDIENCE_NAMESPACE)

    def staff_events(self) -> list[str]:
        return self.events(STAFF_NAMESPACE)


class FakeSessionStore:
    def __init__(self, owners: dict[int, int] | None = None):
        self.owners = owners or {}
        self.inactive: set[int] = set()

    async def is_owned_by(self, session_id, user_id):
        return self.owners.get(session_id) == user_id

    async def is_active(self, session_id):
        return session_id in self.owners and session_id not in self.inactive


class FakeParticipantStore:
    def __init__(self, records: dict[str, ParticipantRecord] | None = None):
        self.records = records or {}
        self.lookups: list[str] = []
        self.error: Exception | None = None
        # When set, resolve_by_token waits on it after recording the lookup.
        self.release: asyncio.Event | None = None

    async def resolve_by_token(self, token):
        self.lookups.append(token)
        if self.release is not None:
            await self.release.wait()
        if self.error is not None:
            raise self.error
        return self.records.get(token)


class FakeQuestionStore:
    def __init__(self, active: set[int] | None = None):
        self.active = set(active or ())
        self.closed: list[int] = []
        self.reopened: list[int] = []
        self.close_error: Exception | None = None
        self.reopen_error: Exception | None = None
        # When set, mark_closed waits on it after signalling ``closing_started``.
        self.release: asyncio.Event | None = None
        self.closing_started = asyncio.Event()

    async def mark_closed(self, question_id):
        self.closed.append(question_id)
        self.closing_started.set()
        if self.release is not None:
            await self.release.wait()
        if self.close_error is not None:
            raise self.close_error
        was_active = question_id in self.active
        self.active.discard(question_id)
        return was_active

    async def mark_reopened(self, question_id):
        if self.reopen_error is not None:
            raise self.reopen_error
        self.reopened.append(question_id)
        if question_id in self.active:
            return True
        self.active.add(question_id)
        return True


def staff(sid: str, user_id: int, role: str = "presenter") -> Connection:
    return Connection(sid=sid, identity=StaffIdentity(user_id=user_id, role=role))


def audience(sid: str, participant_id: int, session_id: int) -> Connection:
    return Connection(
        sid=sid,
        identity=AudienceIdentity(
            participant_id=participant_id,
            session_id=session_id,
            display_name=f"Guest {participant_id}",
        ),
    )



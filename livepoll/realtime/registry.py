"""Connection rooms for live sessions.

Every session has one room per namespace population: authenticated staff
(presenters and admins) on the default namespace and anonymous audience
members on ``/anonymous``. Rooms are created on first join and dropped once
both populations are empty and nothing else pins the session.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from collections.abc import Iterator
from dataclasses import dataclass
from dataclasses import field

logger = logging.getLogger(__name__)

STAFF_NAMESPACE = "/"
AUDIENCE_NAMESPACE = "/anonymous"

ROLE_PRESENTER = "presenter"
ROLE_ADMIN = "admin"
ELEVATED_ROLES = frozenset({ROLE_PRESENTER, ROLE_ADMIN})


def room_for_session(session_id: int) -> str:
    return f"session_{int(session_id)}"


@dataclass(frozen=True)
class StaffIdentity:
    user_id: int
    role: str

    @property
    def is_elevated(self) -> bool:
        return self.role in ELEVATED_ROLES

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN


@dataclass(frozen=True)
class AudienceIdentity:
    participant_id: int
    session_id: int
    display_name: str


@dataclass(frozen=True)
class Connection:
    sid: str
    identity: StaffIdentity | AudienceIdentity

    @property
    def is_staff(self) -> bool:
        return isinstance(self.identity, StaffIdentity)

    @property
    def namespace(self) -> str:
        return STAFF_NAMESPACE if self.is_staff else AUDIENCE_NAMESPACE


@dataclass
class SessionRoom:
    session_id: int
    staff: dict[str, Connection] = field(default_factory=dict)
    audience: dict[str, Connection] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.staff and not self.audience

    def population(self, connection: Connection) -> dict[str, Connection]:
        return self.staff if connection.is_staff else self.audience


class ConnectionRegistry:
    """Tracks which live connections sit in which session rooms.

    ``is_pinned`` lets the owner keep an empty room alive while timers still
    reference its session.
    """

    def __init__(self, is_pinned: Callable[[int], bool] | None = None):
        self._rooms: dict[int, SessionRoom] = {}
        # (namespace, sid) -> session ids, so a disconnect can leave every room.
        self._memberships: dict[tuple[str, str], set[int]] = {}
        self._is_pinned = is_pinned or (lambda _session_id: False)

    def room(self, session_id: int) -> SessionRoom | None:
        return self._rooms.get(session_id)

    def rooms(self) -> list[SessionRoom]:
        return list(self._rooms.values())

    def join(self, session_id: int, connection: Connection) -> SessionRoom:
        room = self._rooms.get(session_id)
        if room is None:
            room = SessionRoom(session_id=session_id)
            self._rooms[session_id] = room
            logger.debug("Created room for session %s", session_id)
        room.population(connection)[connection.sid] = connection
        key = (connection.namespace, connection.sid)
        self._memberships.setdefault(key, set()).add(session_id)
        return room

    def leave(self, session_id: int, connection: Connection) -> bool:
        room = self._rooms.get(session_id)
        if room is None:
            return False
        removed = room.population(connection).pop(connection.sid, None) is not None
        key = (connection.namespace, connection.sid)
        sessions = self._memberships.get(key)
        if sessions is not None:
            sessions.discard(session_id)
            if not sessions:
                del self._memberships[key]
        self.collect(session_id)
        return removed

    def disconnect(self, connection: Connection) -> list[int]:
        """Remove ``connection`` from every room; return the sessions it left."""
        session_ids = self.sessions_of(connection)
        left = [sid for sid in session_ids if self.leave(sid, connection)]
        self._memberships.pop((connection.namespace, connection.sid), None)
        return left

    def sessions_of(self, connection: Connection) -> list[int]:
        return sorted(self._memberships.get((connection.namespace, connection.sid), ()))

    def count_audience(self, session_id: int) -> int:
        room = self._rooms.get(session_id)
        return len(room.audience) if room else 0

    def count_staff(self, session_id: int) -> int:
        room = self._rooms.get(session_id)
        return len(room.staff) if room else 0

    def staff_connections(self, session_id: int) -> Iterator[Connection]:
        room = self._rooms.get(session_id)
        if room is None:
            return iter(())
        # Snapshot so callbacks may mutate the room.
        return iter(list(room.staff.values()))

    def for_each_staff(
        self,
        session_id: int,
        fn: Callable[[Connection], object],
    ) -> None:
        for connection in self.staff_connections(session_id):
            fn(connection)

    def collect(self, session_id: int) -> bool:
        """Drop the room when it is empty and unpinned."""
        room = self._rooms.get(session_id)
        if room is None or not room.is_empty or self._is_pinned(session_id):
            return False
        del self._rooms[session_id]
        logger.debug("Dropped empty room for session %s", session_id)
        return True

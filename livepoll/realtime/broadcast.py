"""Fan-out of session events to the staff and audience rooms."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any
from typing import Protocol

from .registry import AUDIENCE_NAMESPACE
from .registry import STAFF_NAMESPACE
from .registry import Connection
from .registry import ConnectionRegistry
from .registry import StaffIdentity
from .registry import room_for_session

logger = logging.getLogger(__name__)


class Emitter(Protocol):
    """The subset of ``socketio.AsyncServer`` the router relies on."""

    async def emit(
        self,
        event: str,
        data: Any = None,
        to: str | None = None,
        namespace: str | None = None,
        skip_sid: str | None = None,
    ) -> None: ...

    async def enter_room(self, sid: str, room: str, namespace: str | None = None): ...

    async def leave_room(self, sid: str, room: str, namespace: str | None = None): ...


def is_elevated_staff(identity: StaffIdentity) -> bool:
    return identity.is_elevated


class BroadcastRouter:
    def __init__(self, emitter: Emitter, registry: ConnectionRegistry):
        self._emitter = emitter
        self._registry = registry

    async def enter(self, session_id: int, connection: Connection) -> None:
        self._registry.join(session_id, connection)
        await self._emitter.enter_room(
            connection.sid,
            room_for_session(session_id),
            namespace=connection.namespace,
        )

    async def exit(self, session_id: int, connection: Connection) -> bool:
        left = self._registry.leave(session_id, connection)
        await self._emitter.leave_room(
            connection.sid,
            room_for_session(session_id),
            namespace=connection.namespace,
        )
        return left

    async def to_staff(
        self,
        session_id: int,
        event: str,
        payload: dict[str, Any],
        *,
        skip_sid: str | None = None,
    ):
        await self._emitter.emit(
            event,
            payload,
            to=room_for_session(session_id),
            namespace=STAFF_NAMESPACE,
            skip_sid=skip_sid,
        )

    async def to_audience(self, session_id: int, event: str, payload: dict[str, Any]):
        await self._emitter.emit(
            event,
            payload,
            to=room_for_session(session_id),
            namespace=AUDIENCE_NAMESPACE,
        )

    async def to_both(
        self,
        session_id: int,
        event: str,
        payload: dict[str, Any],
        *,
        audience_payload: dict[str, Any] | None = None,
    ):
        """Audience first, then staff; ``audience_payload`` strips staff-only fields."""
        await self.to_audience(
            session_id,
            event,
            payload if audience_payload is None else audience_payload,
        )
        await self.to_staff(session_id, event, payload)

    async def to_staff_filtered(
        self,
        session_id: int,
        event: str,
        payload: dict[str, Any],
        predicate: Callable[[StaffIdentity], bool] = is_elevated_staff,
    ) -> int:
        """Emit to each staff connection whose identity passes ``predicate``.

        Never touches the audience namespace. Returns the number of
        connections the event was sent to.
        """
        sent = 0
        for connection in self._registry.staff_connections(session_id):
            identity = connection.identity
            if not isinstance(identity, StaffIdentity) or not predicate(identity):
                continue
            await self._emitter.emit(
                event,
                payload,
                to=connection.sid,
                namespace=STAFF_NAMESPACE,
            )
            sent += 1
        logger.debug(
            "Sent %s to %s staff connection(s) in session %s",
            event,
            sent,
            session_id,
        )
        return sent

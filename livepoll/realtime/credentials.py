"""Short-lived cache of resolved anonymous participant tokens.

Both the HTTP layer and the ``/anonymous`` Socket.IO namespace resolve the
opaque participant token on every request/connection. Entries live for
``ttl_seconds`` after the lookup that stored them, are only stored while the
participant's session is active, and are evicted eagerly when a session
closes.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

from .exceptions import CredentialResolutionError
from .stores import ParticipantRecord
from .stores import ParticipantStore

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 30.0
DEFAULT_SWEEP_INTERVAL_SECONDS = 60.0


@dataclass(frozen=True)
class CacheEntry:
    token: str
    participant: ParticipantRecord
    expires_at: float


class AnonymousCredentialCache:
    def __init__(
        self,
        store: ParticipantStore,
        *,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        sweep_interval: float = DEFAULT_SWEEP_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._store = store
        self._ttl = float(ttl_seconds)
        self._sweep_interval = float(sweep_interval)
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        # Bumped by invalidate_for_session; a lookup that started before the
        # bump for its session must not store its result.
        self._generation = 0
        self._invalidated_at: dict[int, int] = {}
        self._sweeper: asyncio.Task | None = None

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, token: object) -> bool:
        return token in self._entries

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    async def resolve(self, token: str) -> tuple[ParticipantRecord | None, bool]:
        """Return ``(participant, from_cache)`` for ``token``.

        Raises ``CredentialResolutionError`` when the store lookup fails;
        callers must treat that as unauthenticated.
        """
        now = self._clock()
        entry = self._entries.get(token)
        if entry is not None:
            if entry.expires_at > now:
                return entry.participant, True
            del self._entries[token]

        started_at = self._generation
        try:
            participant = await self._store.resolve_by_token(token)
        except Exception as exc:
            logger.exception("Anonymous token lookup failed")
            msg = "resolution failed"
            raise CredentialResolutionError(msg) from exc

        if participant is None:
            return None, False
        if self._invalidated_at.get(participant.session_id, 0) > started_at:
            logger.debug(
                "Session %s was invalidated during lookup; not caching",
                participant.session_id,
            )
        elif participant.session_is_active:
            self._entries[token] = CacheEntry(
                token=token,
                participant=participant,
                expires_at=self._clock() + self._ttl,
            )
        return participant, False

    def invalidate(self, token: str) -> bool:
        return self._entries.pop(token, None) is not None

    def invalidate_for_session(self, session_id: int) -> int:
        self._generation += 1
        self._invalidated_at[session_id] = self._generation
        stale = [
            token
            for token, entry in self._entries.items()
            if entry.participant.session_id == session_id
        ]
        for token in stale:
            del self._entries[token]
        if stale:
            logger.info(
                "Evicted %s cached anonymous token(s) for session %s",
                len(stale),
                session_id,
            )
        return len(stale)

    def purge_expired(self) -> int:
        now = self._clock()
        expired = [t for t, e in self._entries.items() if e.expires_at <= now]
        for token in expired:
            del self._entries[token]
        return len(expired)

    def clear(self) -> None:
        self._entries.clear()

    # Lifecycle -------------------------------------------------------------
    def start(self) -> None:
        if self._sweeper is None or self._sweeper.done():
            self._sweeper = asyncio.get_running_loop().create_task(
                self._sweep_forever(),
                name="anonymous-token-cache-sweeper",
            )

    async def stop(self) -> None:
        sweeper, self._sweeper = self._sweeper, None
        if sweeper is not None:
            sweeper.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await sweeper
        self.clear()

    async def _sweep_forever(self) -> None:
        while True:
            await asyncio.sleep(self._sweep_interval)
            purged = self.purge_expired()
            if purged:
                logger.debug("Purged %s expired anonymous token(s)", purged)

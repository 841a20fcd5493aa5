"""Countdown-then-close lifecycle of individual questions.

``start_closing`` announces a countdown to both rooms of the question's
session. When it runs out the question is persisted as closed and
``question-closed`` follows. Until persistence starts the countdown can be
cancelled; after that the close is committed.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
import math
import time
from collections.abc import Callable
from dataclasses import dataclass
from dataclasses import field

from . import event_names
from .broadcast import BroadcastRouter
from .stores import QuestionStore

logger = logging.getLogger(__name__)

DEFAULT_CLOSING_SECONDS = 5.0


@dataclass
class ClosingEntry:
    session_id: int
    question_id: int
    closing_deadline: float
    started_at: float
    epoch: int
    committing: bool = False
    timer: asyncio.Task | None = field(default=None, repr=False, compare=False)


class QuestionClosingMachine:
    def __init__(
        self,
        router: BroadcastRouter,
        store: QuestionStore,
        *,
        closing_seconds: float = DEFAULT_CLOSING_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        on_settle: Callable[[int], object] | None = None,
    ):
        self._router = router
        self._store = store
        self._seconds = float(closing_seconds)
        self._clock = clock
        self._on_settle = on_settle
        self._entries: dict[int, ClosingEntry] = {}
        self._epochs = itertools.count(1)

    @property
    def countdown(self) -> int:
        return max(1, math.ceil(self._seconds))

    def entry(self, question_id: int) -> ClosingEntry | None:
        return self._entries.get(question_id)

    def is_closing(self, question_id: int) -> bool:
        return question_id in self._entries

    def closing_in_session(self, session_id: int) -> list[ClosingEntry]:
        return [e for e in self._entries.values() if e.session_id == session_id]

    def has_pending_for_session(self, session_id: int) -> bool:
        return bool(self.closing_in_session(session_id))

    def pending_timers(self) -> dict[int, asyncio.Task]:
        return {
            question_id: entry.timer
            for question_id, entry in self._entries.items()
            if entry.timer is not None and not entry.timer.done()
        }

    async def start_closing(self, session_id: int, question_id: int) -> ClosingEntry:
        self._drop(question_id)
        now = self._clock()
        entry = ClosingEntry(
            session_id=session_id,
            question_id=question_id,
            closing_deadline=now + self._seconds,
            started_at=time.time(),
            epoch=next(self._epochs),
        )
        self._entries[question_id] = entry
        entry.timer = asyncio.get_running_loop().create_task(
            self._complete_closing(entry),
            name=f"closing:{question_id}:{entry.epoch}",
        )
        logger.info(
            "Question %s in session %s closing in %ss",
            question_id,
            session_id,
            self.countdown,
        )
        await self._router.to_both(
            session_id,
            event_names.QUESTION_CLOSING,
            {"questionId": question_id, "countdown": self.countdown},
        )
        return entry

    async def cancel_closing(self, question_id: int) -> bool:
        """Abort a countdown. Returns ``False`` if none is pending or it has committed."""
        entry = self._entries.get(question_id)
        if entry is None or entry.committing:
            return False
        self._drop(question_id)
        logger.info("Closing of question %s cancelled", question_id)
        await self._router.to_both(
            entry.session_id,
            event_names.QUESTION_CLOSE_CANCELLED,
            {"questionId": question_id},
        )
        self._settle(entry.session_id)
        return True

    def discard(self, question_id: int) -> bool:
        """Forget any countdown for ``question_id`` without broadcasting."""
        entry = self._drop(question_id)
        if entry is None:
            return False
        self._settle(entry.session_id)
        return True

    def shutdown(self) -> None:
        for question_id in list(self._entries):
            self._drop(question_id)

    async def _complete_closing(self, entry: ClosingEntry) -> None:
        try:
            await asyncio.sleep(self._seconds)
        except asyncio.CancelledError:
            return
        if not self._is_current(entry):
            logger.debug("Discarding stale closing timer for question %s", entry.question_id)
            return

        entry.timer = None
        entry.committing = True
        try:
            closed = await self._store.mark_closed(entry.question_id)
        except Exception:
            # The rooms are still told so clients do not hang on the countdown.
            logger.exception("Failed to persist closing of question %s", entry.question_id)
        else:
            if not closed:
                logger.info("Question %s was already closed", entry.question_id)

        if not self._is_current(entry):
            logger.info(
                "Closing of question %s was superseded while persisting",
                entry.question_id,
            )
            return
        del self._entries[entry.question_id]
        await self._router.to_both(
            entry.session_id,
            event_names.QUESTION_CLOSED,
            {"questionId": entry.question_id},
        )
        self._settle(entry.session_id)

    def _is_current(self, entry: ClosingEntry) -> bool:
        current = self._entries.get(entry.question_id)
        return current is not None and current.epoch == entry.epoch

    def _drop(self, question_id: int) -> ClosingEntry | None:
        entry = self._entries.pop(question_id, None)
        if entry is not None and entry.timer is not None:
            if not entry.timer.done():
                entry.timer.cancel()
            entry.timer = None
        return entry

    def _settle(self, session_id: int) -> None:
        if self._on_settle is not None:
            self._on_settle(session_id)

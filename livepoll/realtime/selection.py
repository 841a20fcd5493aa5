"""Which question is live for a session's audience.

Per session the machine moves ``Idle -> Transitioning -> Live`` and back to
``Idle`` on deselection. Selecting a question starts a transition window
during which the audience sees a countdown; the staff room is told about the
new selection immediately. Re-selecting the question that was live before the
transition, while the window is still open, reverts without a second window.

Each session owns at most one transition timer. Every timer captures the
epoch of the state it was armed for and becomes a no-op once that state has
been replaced.
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
from typing import Any

from . import event_names
from .broadcast import BroadcastRouter

logger = logging.getLogger(__name__)

DEFAULT_TRANSITION_SECONDS = 5.0

IDLE = "idle"
TRANSITIONING = "transitioning"
LIVE = "live"

UNSET: Any = object()


@dataclass
class SelectionState:
    session_id: int
    current_question_id: int | None = None
    previous_question_id: int | None = None
    is_transitioning: bool = False
    transition_deadline: float | None = None
    epoch: int = 0
    question: dict[str, Any] | None = None
    timer: asyncio.Task | None = field(default=None, repr=False, compare=False)

    @property
    def phase(self) -> str:
        if self.current_question_id is None:
            return IDLE
        return TRANSITIONING if self.is_transitioning else LIVE


class QuestionSelectionMachine:
    def __init__(
        self,
        router: BroadcastRouter,
        *,
        transition_seconds: float = DEFAULT_TRANSITION_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        on_settle: Callable[[int], object] | None = None,
    ):
        self._router = router
        self._seconds = float(transition_seconds)
        self._clock = clock
        self._on_settle = on_settle
        self._states: dict[int, SelectionState] = {}
        self._epochs = itertools.count(1)

    @property
    def countdown(self) -> int:
        return max(1, math.ceil(self._seconds))

    def state(self, session_id: int) -> SelectionState | None:
        return self._states.get(session_id)

    def phase(self, session_id: int) -> str:
        state = self._states.get(session_id)
        return state.phase if state else IDLE

    def has_pending(self, session_id: int) -> bool:
        state = self._states.get(session_id)
        return bool(state and state.timer and not state.timer.done())

    def pending_timers(self) -> dict[int, asyncio.Task]:
        return {
            session_id: state.timer
            for session_id, state in self._states.items()
            if state.timer is not None and not state.timer.done()
        }

    async def select(
        self,
        session_id: int,
        question_id: int,
        question: dict[str, Any] | None = None,
        *,
        staff_question: dict[str, Any] | None = None,
        previous_question_id: int | None = UNSET,
    ) -> SelectionState:
        existing = self._states.get(session_id)
        self._cancel_timer(existing)

        if (
            existing is not None
            and existing.is_transitioning
            and existing.previous_question_id == question_id
        ):
            state = SelectionState(
                session_id=session_id,
                current_question_id=question_id,
                epoch=next(self._epochs),
                question=question,
            )
            self._states[session_id] = state
            logger.info(
                "Session %s reverted to question %s during transition",
                session_id,
                question_id,
            )
            await self._router.to_audience(
                session_id,
                event_names.TRANSITION_CANCELLED,
                {"questionId": question_id},
            )
            self._settle(session_id)
            return state

        if previous_question_id is UNSET:
            previous_question_id = existing.current_question_id if existing else None

        state = SelectionState(
            session_id=session_id,
            current_question_id=question_id,
            previous_question_id=previous_question_id,
            is_transitioning=True,
            transition_deadline=self._clock() + self._seconds,
            epoch=next(self._epochs),
            question=question,
        )
        self._states[session_id] = state
        # Armed before the first await so a concurrent select always finds it.
        state.timer = asyncio.get_running_loop().create_task(
            self._complete_transition(session_id, state.epoch),
            name=f"selection:{session_id}:{state.epoch}",
        )
        logger.info(
            "Session %s transitioning to question %s (previous %s)",
            session_id,
            question_id,
            previous_question_id,
        )

        await self._router.to_audience(
            session_id,
            event_names.QUESTION_TRANSITION_START,
            {
                "questionId": question_id,
                "question": question,
                "countdown": self.countdown,
            },
        )
        await self._router.to_staff(
            session_id,
            event_names.QUESTION_SELECTED,
            {
                "sessionId": session_id,
                "questionId": question_id,
                "question": staff_question if staff_question is not None else question,
            },
        )
        return state

    async def deselect(self, session_id: int) -> None:
        existing = self._states.pop(session_id, None)
        self._cancel_timer(existing)
        logger.info("Session %s deselected its question", session_id)
        await self._router.to_audience(session_id, event_names.QUESTION_DESELECTED, {})
        await self._router.to_staff(
            session_id,
            event_names.QUESTION_SELECTED,
            {"sessionId": session_id, "questionId": None, "question": None},
        )
        self._settle(session_id)

    def clear(self, session_id: int) -> None:
        """Drop the session's state without broadcasting."""
        self._cancel_timer(self._states.pop(session_id, None))
        self._settle(session_id)

    def shutdown(self) -> None:
        for state in self._states.values():
            self._cancel_timer(state)
        self._states.clear()

    async def _complete_transition(self, session_id: int, epoch: int) -> None:
        try:
            await asyncio.sleep(self._seconds)
        except asyncio.CancelledError:
            return

        state = self._states.get(session_id)
        if state is None or state.epoch != epoch or not state.is_transitioning:
            logger.debug("Discarding stale transition timer for session %s", session_id)
            return

        state.timer = None
        state.is_transitioning = False
        state.transition_deadline = None
        state.previous_question_id = None
        await self._router.to_audience(
            session_id,
            event_names.QUESTION_CHANGED,
            {"questionId": state.current_question_id, "question": state.question},
        )
        self._settle(session_id)

    def _cancel_timer(self, state: SelectionState | None) -> None:
        if state is None or state.timer is None:
            return
        if not state.timer.done():
            state.timer.cancel()
        state.timer = None

    def _settle(self, session_id: int) -> None:
        if self._on_settle is not None:
            self._on_settle(session_id)

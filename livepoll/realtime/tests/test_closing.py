import asyncio
import logging

import pytest

from livepoll.realtime.closing import QuestionClosingMachine

from .fakes import SHORT_WINDOW


@pytest.fixture
def machine(router, question_store):
    return QuestionClosingMachine(
        router,
        question_store,
        closing_seconds=SHORT_WINDOW,
    )


async def _finish(machine, question_id):
    await machine.entry(question_id).timer


@pytest.mark.asyncio
async def test_countdown_then_close_reaches_both_rooms(machine, emitter, question_store):
    entry = await machine.start_closing(3, 9)

    assert machine.is_closing(9)
    assert entry.session_id == 3
    closing = emitter.named("question-closing")
    assert [e.namespace for e in closing] == ["/anonymous", "/"]
    assert closing[0].data == {"questionId": 9, "countdown": 1}

    await _finish(machine, 9)

    assert question_store.closed == [9]
    assert not machine.is_closing(9)
    closed = emitter.named("question-closed")
    assert [e.namespace for e in closed] == ["/anonymous", "/"]
    assert {e.to for e in closed} == {"session_3"}
    assert closed[0].data == {"questionId": 9}


@pytest.mark.asyncio
async def test_cancel_then_restart_closes_once(machine, emitter, question_store):
    await machine.start_closing(3, 9)
    assert await machine.cancel_closing(9) is True
    await machine.start_closing(3, 9)

    await _finish(machine, 9)
    await asyncio.sleep(SHORT_WINDOW * 3)

    assert question_store.closed == [9]
    assert len(emitter.named("question-closed")) == 2  # one per room
    cancelled = emitter.named("question-close-cancelled")
    assert [e.data for e in cancelled] == [{"questionId": 9}, {"questionId": 9}]


@pytest.mark.asyncio
async def test_restarting_replaces_pending_countdown(machine, question_store):
    first = await machine.start_closing(3, 9)
    second = await machine.start_closing(3, 9)

    assert second.epoch > first.epoch
    assert list(machine.pending_timers()) == [9]
    await _finish(machine, 9)
    await asyncio.sleep(SHORT_WINDOW * 3)

    assert question_store.closed == [9]


@pytest.mark.asyncio
async def test_cancel_without_countdown_is_refused(machine, emitter):
    assert await machine.cancel_closing(9) is False
    assert emitter.emitted == []


@pytest.mark.asyncio
async def test_cancel_during_persistence_is_refused(machine, emitter, question_store):
    question_store.release = asyncio.Event()
    await machine.start_closing(3, 9)
    await question_store.closing_started.wait()

    assert machine.entry(9).committing is True
    assert await machine.cancel_closing(9) is False

    question_store.release.set()
    await asyncio.sleep(SHORT_WINDOW)

    assert "question-close-cancelled" not in emitter.events()
    assert len(emitter.named("question-closed")) == 2
    assert not machine.is_closing(9)


@pytest.mark.asyncio
async def test_store_failure_still_announces_close(
    machine,
    emitter,
    question_store,
    caplog,
):
    question_store.close_error = RuntimeError("db down")

    with caplog.at_level(logging.ERROR, logger="livepoll.realtime.closing"):
        await machine.start_closing(3, 9)
        await _finish(machine, 9)

    assert len(emitter.named("question-closed")) == 2
    assert not machine.is_closing(9)
    assert "Failed to persist closing of question 9" in caplog.text


@pytest.mark.asyncio
async def test_discard_is_silent(machine, emitter, question_store):
    await machine.start_closing(3, 9)
    sent = len(emitter.emitted)

    assert machine.discard(9) is True
    assert machine.discard(9) is False
    await asyncio.sleep(SHORT_WINDOW * 3)

    assert len(emitter.emitted) == sent
    assert question_store.closed == []


@pytest.mark.asyncio
async def test_closing_in_session_lists_entries(machine):
    await machine.start_closing(3, 9)
    await machine.start_closing(3, 42)
    await machine.start_closing(4, 43)

    assert sorted(e.question_id for e in machine.closing_in_session(3)) == [9, 42]
    assert machine.has_pending_for_session(4)
    assert not machine.has_pending_for_session(5)
    machine.shutdown()
    await asyncio.sleep(0)
    assert machine.pending_timers() == {}

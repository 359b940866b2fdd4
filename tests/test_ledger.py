"""Completion ledger writes."""

import asyncio
from datetime import date, datetime

import pytest

from lifesync.errors import StoreError, WriteConflictError
from lifesync.events import COMPLETION
from lifesync.habits.ledger import CompletionLedger
from lifesync.habits.models import CompletionProof, Habit
from lifesync.sync.store import PROOFS, TASKS

USER = "user-1"


def make_proof(habit, day, proof_id="proof-1"):
    return CompletionProof(
        id=proof_id,
        task_id=habit.id,
        date=day,
        remark="Done",
        timestamp=datetime(2024, 3, 15, 9, 30),
    )


def seed(store, habit):
    asyncio.run(store.write(USER, TASKS, habit.id, habit.to_document()))


def test_record_completion_writes_habit_and_proof(store, notifier, make_habit):
    habit = make_habit(completed_dates=["2024-03-13"], streaks=3, max_streaks=5)
    seed(store, habit)
    ledger = CompletionLedger(store, notifier)

    updated = asyncio.run(ledger.record_completion(USER, habit, make_proof(habit, date(2024, 3, 14))))

    stored = store.get(USER, TASKS, habit.id)
    assert stored["completedDates"] == ["2024-03-13", "2024-03-14"]
    assert stored["streaks"] == 4
    assert stored["maxStreaks"] == 5
    assert store.get(USER, PROOFS, "proof-1")["taskId"] == habit.id
    assert store.get(USER, PROOFS, "proof-1")["date"] == "2024-03-14"
    assert updated.streaks == 4
    # Write-through: the caller's copy is untouched
    assert habit.streaks == 3


def test_record_completion_emits_event(store, notifier, make_habit):
    habit = make_habit()
    seed(store, habit)
    events = []
    notifier.subscribe(COMPLETION, lambda habit, proof: events.append((habit.id, proof.date)))

    asyncio.run(CompletionLedger(store, notifier).record_completion(USER, habit, make_proof(habit, date(2024, 3, 15))))

    assert events == [(habit.id, date(2024, 3, 15))]


def test_stale_habit_conflicts_and_writes_no_proof(store, notifier, make_habit):
    habit = make_habit()
    seed(store, habit)
    ledger = CompletionLedger(store, notifier)
    asyncio.run(ledger.record_completion(USER, habit, make_proof(habit, date(2024, 3, 15), "first")))

    # Second caller still holds the pre-update habit
    with pytest.raises(WriteConflictError):
        asyncio.run(ledger.record_completion(USER, habit, make_proof(habit, date(2024, 3, 15), "second")))

    assert store.get(USER, PROOFS, "second") is None
    assert store.get(USER, TASKS, habit.id)["completedDates"] == ["2024-03-15"]


def test_same_day_with_fresh_habit_is_not_deduplicated(store, notifier, make_habit):
    habit = make_habit()
    seed(store, habit)
    ledger = CompletionLedger(store, notifier)

    first = asyncio.run(ledger.record_completion(USER, habit, make_proof(habit, date(2024, 3, 15), "a")))
    asyncio.run(ledger.record_completion(USER, first, make_proof(first, date(2024, 3, 15), "b")))

    stored = store.get(USER, TASKS, habit.id)
    assert stored["completedDates"] == ["2024-03-15", "2024-03-15"]
    assert stored["streaks"] == 2


def test_proof_for_other_habit_is_rejected(store, notifier, make_habit):
    habit, other = make_habit(), make_habit()
    seed(store, habit)

    with pytest.raises(ValueError):
        asyncio.run(CompletionLedger(store, notifier).record_completion(USER, habit, make_proof(other, date(2024, 3, 15))))


def test_timestamped_completed_dates_still_match(store, notifier, make_habit):
    document = make_habit(streaks=1, max_streaks=1).to_document()
    document["completedDates"] = ["2024-03-13T09:30:00.000Z"]
    asyncio.run(store.write(USER, TASKS, document["id"], document))
    habit = Habit.model_validate(store.get(USER, TASKS, document["id"]))

    asyncio.run(CompletionLedger(store, notifier).record_completion(USER, habit, make_proof(habit, date(2024, 3, 14))))

    stored = store.get(USER, TASKS, habit.id)
    assert stored["completedDates"] == ["2024-03-13", "2024-03-14"]
    assert stored["streaks"] == 2


def test_failed_habit_update_removes_proof(store, notifier, make_habit):
    # Never written, so the update has nothing to apply to
    habit = make_habit()

    with pytest.raises(StoreError):
        asyncio.run(CompletionLedger(store, notifier).record_completion(USER, habit, make_proof(habit, date(2024, 3, 15))))

    assert store.documents(USER, PROOFS) == []


def test_failed_proof_write_leaves_habit_untouched(store, notifier, make_habit, monkeypatch):
    habit = make_habit()
    seed(store, habit)
    write = store.write

    async def write_except_proofs(user_id, collection, doc_id, document):
        if collection == PROOFS:
            raise StoreError("proofs unavailable")
        await write(user_id, collection, doc_id, document)

    monkeypatch.setattr(store, "write", write_except_proofs)

    with pytest.raises(StoreError):
        asyncio.run(CompletionLedger(store, notifier).record_completion(USER, habit, make_proof(habit, date(2024, 3, 15))))

    stored = store.get(USER, TASKS, habit.id)
    assert stored["completedDates"] == []
    assert stored["streaks"] == 0

import asyncio
import itertools
import os
import sys

import pytest

sys.path.append(os.path.dirname(os.path.dirname(__file__)))
from algorithms import DerivedMetrics
from db import AsyncExerciseRepository, AsyncWeightLogRepository
from exercise_store import ExerciseStore, reconcile_history
from models import Exercise, ExerciseInput, WeightLog


def _ids(prefix: str = "ex"):
    counter = itertools.count(1)
    return lambda: f"{prefix}{next(counter)}"


def _bench(**overrides) -> ExerciseInput:
    data = dict(
        name="Supino Reto",
        category="Peito / Empurrar",
        last_weight=80,
        last_date="12 Out",
        pb_weight=95,
        pb_date="01 Set",
        avg_volume=2.4,
    )
    data.update(overrides)
    return ExerciseInput(**data)


def _row(ex_id: str, name: str) -> tuple:
    return (ex_id, name, "Peito", 80.0, "12 Out", 95.0, "01 Set", 2.4, 70)


class GatedExerciseRepo:
    """Returns canned rows once the matching gate is released."""

    def __init__(self, responses):
        self.responses = list(responses)

    async def fetch_for_user(self, user_id):
        gate, rows = self.responses.pop(0)
        await gate.wait()
        return rows


class FailingExerciseRepo:
    async def fetch_for_user(self, user_id):
        raise ConnectionError("offline")


class EmptyLogRepo:
    async def fetch_recent(self, exercise_id, limit=3):
        return []


def test_reconcile_history_orders_record_before_load():
    previous = Exercise(
        id="1",
        **_bench().model_dump(),
        history=[
            WeightLog(weight=75, date="05 Out", type="LOAD"),
            WeightLog(weight=90, date="20 Set", type="PR"),
        ],
    )
    history = reconcile_history(previous, _bench(last_weight=85, pb_weight=100))
    assert history == [
        WeightLog(weight=95, date="01 Set", type="PR"),
        WeightLog(weight=80, date="12 Out", type="LOAD"),
        WeightLog(weight=75, date="05 Out", type="LOAD"),
    ]
    assert reconcile_history(previous, _bench(name="Supino")) == previous.history


@pytest.mark.asyncio
async def test_local_create_update_delete():
    store = ExerciseStore(id_factory=_ids())
    seen = []
    unsubscribe = store.subscribe(seen.append)

    first = await store.create(_bench())
    second = await store.create(_bench(name="Agachamento", category="Pernas"))
    assert [ex.id for ex in store.exercises] == ["ex1", "ex2"]
    assert first.progress == DerivedMetrics.initial_progress("ex1")
    assert first.history == []

    updated = await store.update(first.id, first, _bench(last_weight=85, last_date="14 Out"))
    assert updated.last_weight == 85
    assert updated.progress == first.progress
    assert updated.history == [WeightLog(weight=80, date="12 Out", type="LOAD")]

    with pytest.raises(KeyError):
        await store.update("missing", None, _bench())

    await store.delete(second.id)
    await store.delete(second.id)
    assert [ex.id for ex in store.exercises] == ["ex1"]
    assert len(seen) == 4

    unsubscribe()
    await store.delete(first.id)
    assert len(seen) == 4


@pytest.mark.asyncio
async def test_history_is_capped_at_three():
    store = ExerciseStore(id_factory=_ids())
    ex = await store.create(_bench())
    for weight in (81, 82, 83, 84):
        ex = await store.update(ex.id, ex, _bench(last_weight=weight))
    assert [log.weight for log in ex.history] == [83, 82, 81]


@pytest.mark.asyncio
async def test_remote_store_roundtrip(tmp_path):
    db_file = str(tmp_path / "evolution.db")
    store = ExerciseStore(
        "u1",
        AsyncExerciseRepository(db_file),
        AsyncWeightLogRepository(db_file),
        id_factory=_ids(),
    )
    await store.create(_bench())
    await store.create(_bench(name="Agachamento", category="Pernas"))
    assert [ex.id for ex in store.exercises] == ["ex2", "ex1"]

    reloaded = ExerciseStore(
        "u1", AsyncExerciseRepository(db_file), AsyncWeightLogRepository(db_file)
    )
    await reloaded.load()
    assert [ex.name for ex in reloaded.exercises] == ["Agachamento", "Supino Reto"]

    previous = reloaded.get("ex1")
    updated = await reloaded.update(
        "ex1", previous, _bench(last_weight=85, last_date="14 Out", pb_weight=100)
    )
    assert updated.last_weight == 85
    assert updated.pb_weight == 100
    assert updated.history == [
        WeightLog(weight=95, date="01 Set", type="PR"),
        WeightLog(weight=80, date="12 Out", type="LOAD"),
    ]

    other_user = ExerciseStore(
        "u2", AsyncExerciseRepository(db_file), AsyncWeightLogRepository(db_file)
    )
    assert await other_user.load() == []

    await reloaded.delete("ex1")
    assert await AsyncWeightLogRepository(db_file).fetch_recent("ex1") == []
    assert [ex.id for ex in await reloaded.load()] == ["ex2"]


@pytest.mark.asyncio
async def test_remote_update_clears_record(tmp_path):
    db_file = str(tmp_path / "clear.db")
    store = ExerciseStore(
        "u1",
        AsyncExerciseRepository(db_file),
        AsyncWeightLogRepository(db_file),
        id_factory=_ids(),
    )
    await store.create(_bench())
    updated = await store.update("ex1", None, _bench(pb_weight=0, pb_date="-"))
    assert (updated.pb_weight, updated.pb_date) == (0.0, "-")
    assert updated.history == [WeightLog(weight=95, date="01 Set", type="PR")]

    fresh = ExerciseStore(
        "u1", AsyncExerciseRepository(db_file), AsyncWeightLogRepository(db_file)
    )
    await fresh.load()
    cleared = fresh.get("ex1")
    assert (cleared.pb_weight, cleared.pb_date) == (0.0, "-")


@pytest.mark.asyncio
async def test_overlapping_loads_keep_latest():
    first, second = asyncio.Event(), asyncio.Event()
    repo = GatedExerciseRepo(
        [(first, [_row("a", "stale")]), (second, [_row("b", "fresh")])]
    )
    store = ExerciseStore("u1", repo, EmptyLogRepo())
    t1 = asyncio.create_task(store.load())
    t2 = asyncio.create_task(store.load())
    await asyncio.sleep(0)
    second.set()
    await t2
    first.set()
    await t1
    assert [ex.name for ex in store.exercises] == ["fresh"]
    assert store.is_loading is False


@pytest.mark.asyncio
async def test_load_failure_sets_error():
    store = ExerciseStore("u1", FailingExerciseRepo(), EmptyLogRepo())
    with pytest.raises(ConnectionError):
        await store.load()
    assert store.error == ExerciseStore.LOAD_ERROR
    assert store.is_loading is False


def test_remote_store_requires_user_and_logs():
    with pytest.raises(ValueError):
        ExerciseStore(None, FailingExerciseRepo(), EmptyLogRepo())
    with pytest.raises(ValueError):
        ExerciseStore("u1", FailingExerciseRepo(), None)

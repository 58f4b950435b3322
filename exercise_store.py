from __future__ import annotations
import logging
import uuid
from typing import Callable, Iterable, List, Optional

from algorithms import DerivedMetrics
from db import AsyncExerciseRepository, AsyncWeightLogRepository
from models import HISTORY_LIMIT, Exercise, ExerciseInput, WeightLog

logger = logging.getLogger(__name__)

Listener = Callable[[List[Exercise]], None]


def new_id() -> str:
    return uuid.uuid4().hex[:12]


def reconcile_history(previous: Exercise, patch: ExerciseInput) -> List[WeightLog]:
    """Return ``previous.history`` with the values superseded by ``patch``.

    A changed load logs the previous load and a changed record logs the
    previous record, newest first, keeping at most three entries.
    """
    history = list(previous.history)
    if patch.last_weight != previous.last_weight:
        history.insert(
            0,
            WeightLog(weight=previous.last_weight, date=previous.last_date, type="LOAD"),
        )
    if patch.pb_weight != previous.pb_weight:
        history.insert(
            0,
            WeightLog(weight=previous.pb_weight, date=previous.pb_date, type="PR"),
        )
    return history[:HISTORY_LIMIT]


class ExerciseStore:
    """Own the exercise list and its weight-log history.

    Without a repository the store works purely in memory. With one, every
    mutation is written through for ``user_id`` and repository errors
    propagate to the caller unchanged.
    """

    LOAD_ERROR = "Falha na conexão com o banco de dados."

    def __init__(
        self,
        user_id: str | None = None,
        repo: AsyncExerciseRepository | None = None,
        log_repo: AsyncWeightLogRepository | None = None,
        initial: Iterable[Exercise] = (),
        id_factory: Callable[[], str] = new_id,
    ) -> None:
        if repo is not None and (user_id is None or log_repo is None):
            raise ValueError("remote store needs a user id and a weight log repository")
        self.user_id = user_id
        self.repo = repo
        self.logs = log_repo
        self._exercises: List[Exercise] = list(initial)
        self._id_factory = id_factory
        self._listeners: list[Listener] = []
        self._generation = 0
        self.is_loading = False
        self.error: Optional[str] = None

    @property
    def remote(self) -> bool:
        return self.repo is not None

    @property
    def exercises(self) -> List[Exercise]:
        return list(self._exercises)

    def get(self, exercise_id: str) -> Optional[Exercise]:
        for ex in self._exercises:
            if ex.id == exercise_id:
                return ex
        return None

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self.exercises)

    async def _hydrate(self, row: tuple) -> Exercise:
        (ex_id, name, category, last_weight, last_date, pb_weight, pb_date,
         avg_volume, progress) = row
        logs = await self.logs.fetch_recent(ex_id, HISTORY_LIMIT)
        return Exercise(
            id=ex_id,
            name=name,
            category=category,
            last_weight=last_weight,
            last_date=last_date,
            pb_weight=pb_weight,
            pb_date=pb_date,
            avg_volume=avg_volume,
            progress=progress,
            history=[WeightLog(weight=w, date=d, type=t) for w, d, t in logs],
        )

    async def load(self) -> List[Exercise]:
        """Reload from the repository; only the latest call may apply."""
        if not self.remote:
            return self.exercises
        self._generation += 1
        generation = self._generation
        self.is_loading = True
        self.error = None
        try:
            rows = await self.repo.fetch_for_user(self.user_id)
            loaded = [await self._hydrate(row) for row in rows]
        except Exception:
            logger.exception("Failed to load exercises for user %s", self.user_id)
            if generation == self._generation:
                self.error = self.LOAD_ERROR
                self.is_loading = False
            raise
        if generation != self._generation:
            logger.debug("Discarding superseded exercise load %d", generation)
            return self.exercises
        self._exercises = loaded
        self.is_loading = False
        self._notify()
        return self.exercises

    async def create(self, data: ExerciseInput) -> Exercise:
        exercise_id = self._id_factory()
        exercise = Exercise(
            id=exercise_id,
            progress=DerivedMetrics.initial_progress(exercise_id),
            history=[],
            **data.model_dump(),
        )
        if self.remote:
            try:
                await self.repo.add(
                    self.user_id,
                    exercise.id,
                    exercise.name,
                    exercise.category,
                    exercise.last_weight,
                    exercise.last_date,
                    exercise.pb_weight,
                    exercise.pb_date,
                    exercise.avg_volume,
                    exercise.progress,
                )
            except Exception:
                logger.exception("Failed to add exercise %s", exercise.name)
                raise
            self._exercises.insert(0, exercise)
        else:
            self._exercises.append(exercise)
        self._notify()
        return exercise

    async def update(
        self,
        exercise_id: str,
        previous: Exercise | None,
        patch: ExerciseInput,
    ) -> Exercise:
        previous = previous or self.get(exercise_id)
        if previous is None:
            raise KeyError(f"exercise not found: {exercise_id}")
        history = reconcile_history(previous, patch)
        if self.remote:
            try:
                if patch.last_weight != previous.last_weight:
                    await self.logs.add(
                        exercise_id, previous.last_weight, "LOAD", previous.last_date
                    )
                if patch.pb_weight != previous.pb_weight:
                    await self.logs.add(
                        exercise_id, previous.pb_weight, "PR", previous.pb_date
                    )
                await self.repo.update(exercise_id, **patch.model_dump())
            except Exception:
                logger.exception("Failed to update exercise %s", exercise_id)
                raise
            await self.load()
            updated = self.get(exercise_id)
            if updated is None:
                raise KeyError(f"exercise not found: {exercise_id}")
            return updated
        updated = previous.model_copy(
            update={**patch.model_dump(), "id": exercise_id, "history": history}
        )
        for idx, ex in enumerate(self._exercises):
            if ex.id == exercise_id:
                self._exercises[idx] = updated
                break
        else:
            raise KeyError(f"exercise not found: {exercise_id}")
        self._notify()
        return updated

    async def delete(self, exercise_id: str) -> None:
        if self.remote:
            try:
                await self.repo.remove(exercise_id)
            except Exception:
                logger.exception("Failed to delete exercise %s", exercise_id)
                raise
        before = len(self._exercises)
        self._exercises = [ex for ex in self._exercises if ex.id != exercise_id]
        if len(self._exercises) != before:
            self._notify()

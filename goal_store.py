from __future__ import annotations
import logging
from typing import Callable, Iterable, List, Optional

from db import AsyncGoalRepository
from exercise_store import new_id
from models import Goal

logger = logging.getLogger(__name__)


class GoalStore:
    """Own the goal list. Titles and descriptions are validated by the caller."""

    def __init__(
        self,
        user_id: str | None = None,
        repo: AsyncGoalRepository | None = None,
        initial: Iterable[Goal] = (),
        id_factory: Callable[[], str] = new_id,
    ) -> None:
        if repo is not None and user_id is None:
            raise ValueError("remote store needs a user id")
        self.user_id = user_id
        self.repo = repo
        self._goals: List[Goal] = list(initial)
        self._id_factory = id_factory
        self._listeners: list[Callable[[List[Goal]], None]] = []
        self._generation = 0
        self.is_loading = False
        self.error: Optional[str] = None

    @property
    def goals(self) -> List[Goal]:
        return list(self._goals)

    def subscribe(self, listener: Callable[[List[Goal]], None]) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self.goals)

    async def load(self) -> List[Goal]:
        if self.repo is None:
            return self.goals
        self._generation += 1
        generation = self._generation
        self.is_loading = True
        self.error = None
        try:
            rows = await self.repo.fetch_for_user(self.user_id)
        except Exception:
            logger.exception("Failed to load goals for user %s", self.user_id)
            if generation == self._generation:
                self.error = "Falha na conexão com o banco de dados."
                self.is_loading = False
            raise
        if generation != self._generation:
            return self.goals
        self._goals = [Goal(id=gid, title=t, description=d) for gid, t, d in rows]
        self.is_loading = False
        self._notify()
        return self.goals

    async def create(self, title: str, description: str) -> Goal:
        goal = Goal(id=self._id_factory(), title=title, description=description)
        if self.repo is not None:
            try:
                await self.repo.add(self.user_id, goal.id, goal.title, goal.description)
            except Exception:
                logger.exception("Failed to add goal %r", title)
                raise
            self._goals.insert(0, goal)
        else:
            self._goals.append(goal)
        self._notify()
        return goal

    async def delete(self, goal_id: str) -> None:
        if self.repo is not None:
            try:
                await self.repo.delete(goal_id)
            except Exception:
                logger.exception("Failed to delete goal %s", goal_id)
                raise
        before = len(self._goals)
        self._goals = [g for g in self._goals if g.id != goal_id]
        if len(self._goals) != before:
            self._notify()

import datetime
import logging
from typing import Callable, Optional

from fastapi import FastAPI, HTTPException, Response, APIRouter

from algorithms import DateParser, DerivedMetrics
from analysis_service import AnalysisEngine
from coaching_service import CoachingService
from config import APP_VERSION
from db import (
    AsyncExerciseRepository,
    AsyncGoalRepository,
    AsyncProfileRepository,
    AsyncWeightLogRepository,
    SettingsRepository,
)
from exercise_store import ExerciseStore
from export_service import ExportService
from goal_store import GoalStore
from models import LEVELS, Exercise, ExerciseInput, UserProfile
from profile_store import ProfileStore

logger = logging.getLogger(__name__)


class EvolutionAPI:
    """Provides REST endpoints for the performance dashboard."""

    def __init__(
        self,
        db_path: str = "evolution.db",
        yaml_path: str = "settings.yaml",
        *,
        clock: Callable[[], datetime.datetime] = datetime.datetime.now,
    ) -> None:
        self.db_path = db_path
        self.clock = clock
        self.settings = SettingsRepository(db_path, yaml_path)
        self.user_id = self.settings.get_text("user_id", "local")
        self.profile_repo = AsyncProfileRepository(db_path)
        self.exercise_repo = AsyncExerciseRepository(db_path)
        self.weight_logs = AsyncWeightLogRepository(db_path)
        self.goal_repo = AsyncGoalRepository(db_path)
        self.exercise_store = ExerciseStore(
            self.user_id, self.exercise_repo, self.weight_logs
        )
        self.goal_store = GoalStore(self.user_id, self.goal_repo)
        self.profile_store = ProfileStore(self.user_id, self.profile_repo)
        self.app = FastAPI(
            title="Evolution API",
            description="REST API for exercise tracking and performance analysis",
        )
        self._setup_routes()
        logger.info("Evolution API ready for user %s (db=%s)", self.user_id, db_path)

    def _date_parser(self) -> DateParser:
        return DateParser(self.settings.get_text("unknown_date_policy", "january"))

    async def _exercises(self) -> list[Exercise]:
        return await self.exercise_store.load()

    async def _profile(self) -> UserProfile:
        return await self.profile_store.load(
            self.settings.get_text("user_name", "Atleta Evolution")
        )

    @staticmethod
    def _check_timeframe(timeframe: str) -> str:
        if timeframe not in ("WEEK", "MONTH"):
            raise HTTPException(status_code=400, detail="invalid timeframe")
        return timeframe

    def _engine(
        self,
        category: str,
        window: str,
        start: Optional[str],
        end: Optional[str],
        sort: str,
        desc: bool,
        expanded: Optional[str],
    ) -> AnalysisEngine:
        try:
            engine = AnalysisEngine(window, self._date_parser())
            engine.select_category(category)
            engine.set_custom_range(
                datetime.date.fromisoformat(start) if start else None,
                datetime.date.fromisoformat(end) if end else None,
            )
            if sort != engine.sort_key:
                engine.sort_by(sort)
            if desc:
                engine.sort_by(sort)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        if expanded:
            engine.toggle_row(expanded)
        return engine

    def _setup_routes(self) -> None:
        exercises_router = APIRouter(prefix="/exercises", tags=["Exercises"])
        goals_router = APIRouter(prefix="/goals", tags=["Goals"])
        coach_router = APIRouter(prefix="/coach", tags=["Coach"])

        @self.app.get(
            "/health",
            summary="Health check",
            description="Verify API and database connectivity.",
        )
        async def health():
            try:
                await self.exercise_repo.fetch_all("SELECT 1;")
            except Exception as e:
                logger.exception("Health check failed")
                raise HTTPException(status_code=503, detail=str(e))
            return {"status": "ok", "version": APP_VERSION}

        @self.app.get("/settings")
        def get_settings():
            return self.settings.all_settings()

        @self.app.put("/settings/{key}")
        def set_setting(key: str, value: str):
            try:
                self.settings.set_text(key, value)
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))
            return {"status": "updated"}

        @self.app.get("/profile")
        async def get_profile():
            profile = await self._profile()
            return profile.model_dump()

        @self.app.put("/profile")
        async def update_profile(
            name: str,
            weight: float,
            level: str,
            photo: Optional[str] = None,
        ):
            if not name.strip():
                raise HTTPException(status_code=400, detail="name required")
            if level not in LEVELS:
                raise HTTPException(status_code=400, detail="invalid level")
            profile = UserProfile(name=name, weight=weight, level=level, photo=photo)
            await self.profile_store.update(profile)
            return {"status": "updated"}

        @exercises_router.get("")
        async def list_exercises(timeframe: str = "WEEK"):
            self._check_timeframe(timeframe)
            rows = DerivedMetrics.scale_for_timeframe(await self._exercises(), timeframe)
            return [ex.model_dump() for ex in rows]

        @exercises_router.post("")
        async def add_exercise(
            name: str,
            category: str,
            last_weight: float = 0.0,
            last_date: Optional[str] = None,
            pb_weight: float = 0.0,
            pb_date: Optional[str] = None,
            avg_volume: float = 0.0,
        ):
            if not name.strip() or not category.strip():
                raise HTTPException(status_code=400, detail="name and category required")
            today = DateParser.format(self.clock().date())
            ex = await self.exercise_store.create(
                ExerciseInput(
                    name=name,
                    category=category,
                    last_weight=last_weight,
                    last_date=last_date or today,
                    pb_weight=pb_weight,
                    pb_date=pb_date or today,
                    avg_volume=avg_volume,
                )
            )
            return ex.model_dump()

        @exercises_router.put("/{exercise_id}")
        async def update_exercise(
            exercise_id: str,
            name: Optional[str] = None,
            category: Optional[str] = None,
            last_weight: Optional[float] = None,
            last_date: Optional[str] = None,
            pb_weight: Optional[float] = None,
            pb_date: Optional[str] = None,
            avg_volume: Optional[float] = None,
        ):
            await self._exercises()
            previous = self.exercise_store.get(exercise_id)
            if previous is None:
                raise HTTPException(status_code=404, detail="exercise not found")
            changes = {
                "name": name,
                "category": category,
                "last_weight": last_weight,
                "last_date": last_date,
                "pb_weight": pb_weight,
                "pb_date": pb_date,
                "avg_volume": avg_volume,
            }
            current = ExerciseInput(
                **previous.model_dump(include=set(ExerciseInput.model_fields))
            )
            patch = current.model_copy(
                update={k: v for k, v in changes.items() if v is not None}
            )
            try:
                updated = await self.exercise_store.update(exercise_id, previous, patch)
            except (KeyError, ValueError) as e:
                raise HTTPException(status_code=404, detail=str(e))
            return updated.model_dump()

        @exercises_router.delete("/{exercise_id}")
        async def delete_exercise(exercise_id: str):
            await self.exercise_store.delete(exercise_id)
            return {"status": "deleted"}

        @exercises_router.get("/{exercise_id}/trend")
        async def exercise_trend(exercise_id: str):
            await self._exercises()
            ex = self.exercise_store.get(exercise_id)
            if ex is None:
                raise HTTPException(status_code=404, detail="exercise not found")
            points = DerivedMetrics.trend_sequence(ex)
            return {
                "points": points,
                "bounds": list(DerivedMetrics.trend_bounds(points)),
                "progress": ex.progress,
            }

        @goals_router.get("")
        async def list_goals():
            return [g.model_dump() for g in await self.goal_store.load()]

        @goals_router.post("")
        async def add_goal(title: str, description: str):
            if not title.strip() or not description.strip():
                raise HTTPException(
                    status_code=400, detail="title and description required"
                )
            goal = await self.goal_store.create(title, description)
            return goal.model_dump()

        @goals_router.delete("/{goal_id}")
        async def delete_goal(goal_id: str):
            await self.goal_store.delete(goal_id)
            return {"status": "deleted"}

        @coach_router.get("/tip")
        async def coach_tip():
            return {"tip": CoachingService.short_tip(await self._exercises())}

        @coach_router.get("/analysis")
        async def coach_analysis():
            return {"analysis": CoachingService.deep_analysis(await self._exercises())}

        @self.app.get("/analysis", tags=["Analysis"])
        async def analysis(
            category: str = "ALL",
            window: Optional[str] = None,
            start: Optional[str] = None,
            end: Optional[str] = None,
            sort: str = "name",
            desc: bool = False,
            expanded: Optional[str] = None,
        ):
            window = window or self.settings.get_text("timeframe", "WEEK")
            engine = self._engine(category, window, start, end, sort, desc, expanded)
            exercises = await self._exercises()
            result = engine.summary(exercises, self.clock())
            result["expanded"] = {
                "id": engine.expanded_id,
                "history": [
                    log.model_dump() for log in engine.expanded_history(exercises)
                ],
            }
            return result

        @self.app.get("/analysis/export_csv", tags=["Analysis"])
        async def analysis_export_csv(
            category: str = "ALL",
            window: Optional[str] = None,
            start: Optional[str] = None,
            end: Optional[str] = None,
            sort: str = "name",
            desc: bool = False,
        ):
            window = window or self.settings.get_text("timeframe", "WEEK")
            engine = self._engine(category, window, start, end, sort, desc, None)
            now = self.clock()
            data = engine.export_csv(await self._exercises(), now)
            filename = engine.export_filename(now.date())
            return Response(
                content=data,
                media_type="text/csv; charset=utf-8",
                headers={"Content-Disposition": f'attachment; filename="{filename}"'},
            )

        @self.app.get("/export/csv", tags=["Export"])
        async def export_csv(timeframe: str = "WEEK"):
            self._check_timeframe(timeframe)
            exercises = DerivedMetrics.scale_for_timeframe(
                await self._exercises(), timeframe
            )
            data = ExportService.report_csv(
                exercises, await self.goal_store.load(), await self._profile(), timeframe
            )
            filename = ExportService.report_filename("csv", self.clock().date())
            return Response(
                content=data,
                media_type="text/csv; charset=utf-8",
                headers={"Content-Disposition": f'attachment; filename="{filename}"'},
            )

        @self.app.get("/export/html", tags=["Export"])
        async def export_html(timeframe: str = "WEEK"):
            self._check_timeframe(timeframe)
            exercises = DerivedMetrics.scale_for_timeframe(
                await self._exercises(), timeframe
            )
            data = ExportService.report_html(
                exercises,
                await self.goal_store.load(),
                await self._profile(),
                timeframe,
                self.clock().date(),
            )
            return Response(content=data, media_type="text/html; charset=utf-8")

        self.app.include_router(exercises_router)
        self.app.include_router(goals_router)
        self.app.include_router(coach_router)


def create_app() -> FastAPI:
    from config import log_format, runtime_paths
    from log_config import setup_logging

    db_path, yaml_path = runtime_paths()
    settings = SettingsRepository(db_path, yaml_path)
    setup_logging(log_format(settings.get_text("log_format", "text")))
    return EvolutionAPI(db_path, yaml_path).app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(create_app())

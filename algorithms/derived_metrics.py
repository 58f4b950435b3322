from __future__ import annotations
import math
from typing import Iterable, List

from models import Exercise


class DerivedMetrics:
    """Display-only metrics computed from exercise records."""

    WEEKS_PER_MONTH: float = 4.3
    PROGRESS_FLOOR: int = 60
    PROGRESS_SPAN: int = 40
    TREND_POINTS: int = 8
    TREND_RECORD_POINTS: int = 3
    TREND_START: float = 0.85
    TREND_GAIN: float = 0.15
    TREND_WOBBLE: float = 3.0
    PB_DISCOUNT: float = 0.95

    @staticmethod
    def id_seed(exercise_id: str) -> int:
        """Return the sum of the code points of ``exercise_id``."""
        return sum(ord(ch) for ch in exercise_id)

    @classmethod
    def initial_progress(cls, exercise_id: str) -> int:
        """Return a reproducible starting progress in [60, 100)."""
        return cls.PROGRESS_FLOOR + cls.id_seed(exercise_id) % cls.PROGRESS_SPAN

    @classmethod
    def display_volume(cls, avg_volume: float, timeframe: str) -> float:
        """Scale weekly volume to the requested timeframe."""
        if timeframe == "MONTH":
            return round(avg_volume * cls.WEEKS_PER_MONTH, 1)
        if timeframe != "WEEK":
            raise ValueError(f"unknown timeframe: {timeframe}")
        return avg_volume

    @classmethod
    def scale_for_timeframe(
        cls, exercises: Iterable[Exercise], timeframe: str
    ) -> List[Exercise]:
        return [
            ex.model_copy(
                update={"avg_volume": cls.display_volume(ex.avg_volume, timeframe)}
            )
            for ex in exercises
        ]

    @classmethod
    def trend_sequence(cls, exercise: Exercise) -> list[dict]:
        """Simulate a short load/record trend for sparkline rendering.

        The sequence is not derived from logged history; it depends only on
        the exercise id and its current weights so repeated renders match.
        """
        seed = cls.id_seed(exercise.id)
        last = cls.TREND_POINTS - 1
        points: list[dict] = []
        for i in range(cls.TREND_POINTS):
            factor = cls.TREND_START + cls.TREND_GAIN * (i / last)
            weight = exercise.last_weight * factor + cls.TREND_WOBBLE * math.sin(seed + i)
            if i < cls.TREND_POINTS - cls.TREND_RECORD_POINTS:
                pb = exercise.pb_weight * cls.PB_DISCOUNT
            else:
                pb = exercise.pb_weight
            points.append(
                {
                    "index": i,
                    "label": f"{i + 1} Out",
                    "weight": round(weight, 1),
                    "pb": round(pb, 1),
                }
            )
        return points

    @staticmethod
    def trend_bounds(points: list[dict]) -> tuple[float, float]:
        """Return the padded (min, max) range for charting ``points``."""
        if not points:
            return 0.0, 0.0
        high = max(max(p["weight"], p["pb"]) for p in points)
        low = min(min(p["weight"], p["pb"]) for p in points)
        return round(low * 0.9, 2), round(high * 1.1, 2)

from __future__ import annotations
import csv
import datetime
import io
from typing import List, Optional, Sequence

from algorithms import DateParser
from coaching_service import CoachingService
from models import Exercise, WeightLog


class AnalysisEngine:
    """Filter, sort and summarise exercises for the analysis screen."""

    ALL = "ALL"
    ALL_ALIASES = {"ALL", "TODOS"}
    WINDOWS = ("WEEK", "MONTH", "YEAR", "CUSTOM")
    WINDOW_DAYS = {"WEEK": 7, "MONTH": 30, "YEAR": 365}
    WINDOW_LABELS = {
        "WEEK": "Semanal",
        "MONTH": "Mensal",
        "YEAR": "Anual",
        "CUSTOM": "Personalizado",
    }
    SORT_KEYS = ("name", "category", "last_weight", "pb_weight", "progress")
    NO_DATA = "Sem dados para análise no período selecionado."
    CSV_HEADERS = [
        "Exercicio",
        "Categoria",
        "Carga Atual (kg)",
        "Recorde Pessoal (kg)",
        "Progresso (%)",
        "Ultima Atualizacao",
    ]

    def __init__(
        self,
        window: str = "WEEK",
        date_parser: DateParser | None = None,
    ) -> None:
        self.category = self.ALL
        self.window = "WEEK"
        self.select_window(window)
        self.custom_start: Optional[datetime.date] = None
        self.custom_end: Optional[datetime.date] = None
        self.sort_key = "name"
        self.sort_desc = False
        self.expanded_id: Optional[str] = None
        self.dates = date_parser or DateParser()

    # state -----------------------------------------------------------------

    def select_category(self, category: str) -> None:
        token = (category or self.ALL).strip().upper()
        self.category = self.ALL if token in self.ALL_ALIASES else token

    def select_window(self, window: str) -> None:
        if window not in self.WINDOWS:
            raise ValueError(f"unknown window: {window}")
        self.window = window

    def set_custom_range(
        self, start: Optional[datetime.date], end: Optional[datetime.date]
    ) -> None:
        if start is not None and end is not None and start > end:
            raise ValueError("start must not be after end")
        self.custom_start = start
        self.custom_end = end

    def clear_custom_range(self) -> None:
        self.custom_start = None
        self.custom_end = None

    def sort_by(self, key: str) -> None:
        """Select ``key``; selecting the current key flips the direction."""
        if key not in self.SORT_KEYS:
            raise ValueError(f"unknown sort key: {key}")
        if key == self.sort_key:
            self.sort_desc = not self.sort_desc
        else:
            self.sort_key = key
            self.sort_desc = False

    def toggle_row(self, exercise_id: str) -> None:
        self.expanded_id = None if self.expanded_id == exercise_id else exercise_id

    def timeframe_label(self) -> str:
        return self.WINDOW_LABELS[self.window]

    # computation -----------------------------------------------------------

    @staticmethod
    def categories(exercises: Sequence[Exercise]) -> List[str]:
        result = [AnalysisEngine.ALL]
        for ex in exercises:
            token = ex.primary_category
            if token not in result:
                result.append(token)
        return result

    def _in_window(self, ex: Exercise, now: datetime.datetime) -> bool:
        if self.window == "CUSTOM":
            if self.custom_start is None or self.custom_end is None:
                return True
            parsed = self.dates.parse(ex.last_date, now.year)
            return parsed is not None and self.custom_start <= parsed <= self.custom_end
        # the row's midnight is compared with the exact instant N days ago
        cutoff = now - datetime.timedelta(days=self.WINDOW_DAYS[self.window])
        parsed = self.dates.parse(ex.last_date, now.year)
        return (
            parsed is not None
            and datetime.datetime.combine(parsed, datetime.time()) >= cutoff
        )

    def _sort_value(self, ex: Exercise):
        value = getattr(ex, self.sort_key)
        if isinstance(value, str):
            return value.casefold()
        return value

    def filtered(
        self, exercises: Sequence[Exercise], now: datetime.datetime | None = None
    ) -> List[Exercise]:
        now = now or datetime.datetime.now()
        rows = list(exercises)
        if self.category != self.ALL:
            rows = [ex for ex in rows if self.category in ex.category.upper()]
        rows = [ex for ex in rows if self._in_window(ex, now)]
        return sorted(rows, key=self._sort_value, reverse=self.sort_desc)

    def expanded_history(self, exercises: Sequence[Exercise]) -> List[WeightLog]:
        for ex in exercises:
            if ex.id == self.expanded_id:
                return list(ex.history)
        return []

    def insight(
        self, exercises: Sequence[Exercise], now: datetime.datetime | None = None
    ) -> str:
        rows = self.filtered(exercises, now)
        if not rows:
            return self.NO_DATA
        return CoachingService.deep_analysis(rows)

    # export ----------------------------------------------------------------

    @staticmethod
    def export_rows(rows: Sequence[Exercise]) -> list[dict]:
        return [
            {
                "name": ex.name,
                "category": ex.category,
                "last_weight": ex.last_weight,
                "pb_weight": ex.pb_weight,
                "progress": ex.progress,
                "last_date": ex.last_date,
            }
            for ex in rows
        ]

    def export_csv(
        self, exercises: Sequence[Exercise], now: datetime.datetime | None = None
    ) -> str:
        """Return the filtered table as CSV text; empty when nothing matches."""
        rows = self.filtered(exercises, now)
        if not rows:
            return ""
        buf = io.StringIO()
        writer = csv.writer(buf, lineterminator="\n")
        writer.writerow(self.CSV_HEADERS)
        for row in self.export_rows(rows):
            writer.writerow(
                [
                    row["name"],
                    row["category"],
                    row["last_weight"],
                    row["pb_weight"],
                    row["progress"],
                    row["last_date"],
                ]
            )
        return buf.getvalue()

    def export_filename(self, today: datetime.date | None = None) -> str:
        today = today or datetime.date.today()
        return f"evolution_performance_{self.category.lower()}_{today.isoformat()}.csv"

    def summary(
        self, exercises: Sequence[Exercise], now: datetime.datetime | None = None
    ) -> dict:
        now = now or datetime.datetime.now()
        rows = self.filtered(exercises, now)
        return {
            "category": self.category,
            "window": self.window,
            "label": self.timeframe_label(),
            "categories": self.categories(exercises),
            "count": len(rows),
            "insight": CoachingService.deep_analysis(rows) if rows else self.NO_DATA,
            "rows": self.export_rows(rows),
            "sort": {"key": self.sort_key, "desc": self.sort_desc},
        }

from __future__ import annotations
from typing import List, Literal, Optional, get_args

from pydantic import BaseModel, ConfigDict, Field

LogType = Literal["LOAD", "PR"]
Timeframe = Literal["WEEK", "MONTH"]
Level = Literal["Iniciante", "Intermediário", "Avançado", "Elite"]
LEVELS = get_args(Level)
HISTORY_LIMIT = 3
NO_DATE = "-"


class WeightLog(BaseModel):
    """A superseded load or record value."""

    model_config = ConfigDict(frozen=True)

    weight: float
    date: str
    type: LogType


class ExerciseInput(BaseModel):
    """Fields supplied by the exercise form on create and edit."""

    name: str
    category: str
    last_weight: float = 0.0
    last_date: str = NO_DATE
    pb_weight: float = 0.0
    pb_date: str = NO_DATE
    avg_volume: float = 0.0


class Exercise(ExerciseInput):
    id: str
    progress: int = Field(default=60, ge=0, le=100)
    history: List[WeightLog] = Field(default_factory=list)

    @property
    def primary_category(self) -> str:
        return self.category.split("/")[0].strip().upper()


class Goal(BaseModel):
    id: str
    title: str
    description: str


class UserProfile(BaseModel):
    name: str = "Atleta Evolution"
    weight: float = 85.0
    level: Level = "Intermediário"
    photo: Optional[str] = None

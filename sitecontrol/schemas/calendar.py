import datetime
from typing import List

from pydantic import BaseModel, Field, field_validator

from ..config import settings


class Holiday(BaseModel):
    date: datetime.date
    name: str
    is_recurring: bool = False  # annual holidays match on month/day only


class WorkCalendar(BaseModel):
    weekend_days: List[int] = Field(default_factory=lambda: list(settings.weekend_days))
    holidays: List[Holiday] = []
    include_weekends: bool = False  # compressed projects work through weekends

    @field_validator("weekend_days")
    @classmethod
    def _check_weekdays(cls, v: List[int]) -> List[int]:
        for day in v:
            if day < 0 or day > 6:
                raise ValueError(f"weekend day must be 0 (Monday) .. 6 (Sunday), got {day}")
        return sorted(set(v))

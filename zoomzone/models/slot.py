from datetime import datetime, timedelta

from pydantic import BaseModel, ConfigDict, model_validator


class TimeInterval(BaseModel):
    """Half-open ``[start, end)`` between two UTC instants."""

    model_config = ConfigDict(frozen=True)

    start: datetime
    end: datetime

    @model_validator(mode="after")
    def _check_order(self) -> "TimeInterval":
        if not self.start < self.end:
            raise ValueError(f"interval start {self.start} must be before end {self.end}")
        return self


class Slot(BaseModel):
    model_config = ConfigDict(frozen=True)

    time: str  # local wall-clock label, HH:MM in the business timezone
    start_utc: datetime
    duration_minutes: int
    busy: bool = False

    @property
    def end_utc(self) -> datetime:
        return self.start_utc + timedelta(minutes=self.duration_minutes)

    @property
    def interval(self) -> TimeInterval:
        return TimeInterval(start=self.start_utc, end=self.end_utc)

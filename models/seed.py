from datetime import datetime
from pydantic import Field, field_validator
from typing import List, Optional

from .base import BaseScoreModel
from .event import DEFAULT_STEP_FACTOR, EventDetails, PlayerAssignment, parse_end_date
from .snapshot import Scores


def check_end_date(v: Optional[str]) -> Optional[str]:
    if v is not None and parse_end_date(v) is None:
        raise ValueError(f"end_date '{v}' is not an ISO-8601 timestamp")
    return v


class SeedEvent(BaseScoreModel):
    name: str
    score_view_step_factor: float = Field(DEFAULT_STEP_FACTOR, ge=0)
    end_date: Optional[str] = None

    @field_validator("end_date")
    @classmethod
    def validate_end_date(cls, v):
        return check_end_date(v)


class EventSeed(BaseScoreModel):
    """An admin seed document: event metadata, roster and an optional initial snapshot."""
    event: SeedEvent
    refresh_from_espn: int = 1
    golfers: List[PlayerAssignment]
    score_struct: Optional[List[Scores]] = None
    last_refresh: Optional[datetime] = None

    def to_event_details(self, event_id: int) -> EventDetails:
        return EventDetails(
            event_id=event_id,
            event_name=self.event.name,
            score_view_step_factor=self.event.score_view_step_factor,
            refresh_from_espn=self.refresh_from_espn,
            end_date=self.event.end_date,
        )

    def naive_last_refresh(self) -> Optional[datetime]:
        """`last_refresh` as naive UTC, the format snapshots are stamped with."""
        if self.last_refresh is None or self.last_refresh.tzinfo is None:
            return self.last_refresh
        return self.last_refresh.replace(tzinfo=None) - self.last_refresh.utcoffset()

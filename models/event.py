from datetime import datetime, timezone
from pydantic import Field, field_validator
from typing import Optional

from .base import BaseScoreModel

DEFAULT_STEP_FACTOR = 3.0


class EventDetails(BaseScoreModel):
    """Tournament metadata for one provider event."""
    event_id: Optional[int] = None
    event_name: str
    score_view_step_factor: float = Field(DEFAULT_STEP_FACTOR, ge=0)
    refresh_from_espn: int = 1
    end_date: Optional[str] = None

    @field_validator('end_date')
    @classmethod
    def validate_end_date(cls, v):
        if v is not None and parse_end_date(v) is None:
            raise ValueError(f"end_date '{v}' is not an ISO-8601 timestamp")
        return v

    def end_date_utc(self) -> Optional[datetime]:
        """Parsed end date as an aware UTC datetime."""
        if self.end_date is None:
            return None
        return parse_end_date(self.end_date)

    def has_ended(self, now: Optional[datetime] = None) -> bool:
        """True once the end date is strictly in the past."""
        end = self.end_date_utc()
        if end is None:
            return False
        now = now or datetime.now(timezone.utc)
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        return now > end


def parse_end_date(value: str) -> Optional[datetime]:
    """Parse an RFC 3339 / ISO-8601 date, treating naive values and trailing Z as UTC."""
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


class PlayerAssignment(BaseScoreModel):
    """A tracked golfer picked by a bettor for an event."""
    eup_id: int
    espn_id: int
    golfer_name: str = ""
    bettor_name: str
    group: int = 0
    score_view_step_factor: Optional[float] = None

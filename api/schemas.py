"""API-specific request and response models."""

from pydantic import BaseModel, field_validator
from typing import Optional

from models.seed import EventSeed, check_end_date

SeedEventRequest = EventSeed


class SeedEventResponse(BaseModel):
    event_id: int
    golfers: int
    scores: int = 0


class DeleteScoresResponse(BaseModel):
    event_id: int
    deleted: bool


class EndDateUpdate(BaseModel):
    end_date: Optional[str] = None

    @field_validator("end_date")
    @classmethod
    def validate_end_date(cls, v):
        return check_end_date(v)


class ProviderFailureToggle(BaseModel):
    event_id: int
    enabled: bool = True


class ProviderFailureResponse(BaseModel):
    event_id: int
    forced_failure: bool

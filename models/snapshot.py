from datetime import datetime
from enum import Enum
from pydantic import Field
from typing import Any, Dict, List

from .base import BaseScoreModel, utc_now
from .event import PlayerAssignment
from .score import Statistic


class RefreshSource(str, Enum):
    """Where a snapshot handed to the view layer came from."""
    DB = "Db"
    ESPN = "Espn"

    def __str__(self) -> str:
        return "database" if self is RefreshSource.DB else "ESPN"


class Scores(PlayerAssignment):
    """One roster row joined with its normalized statistics."""
    detailed_statistics: Statistic

    @classmethod
    def from_assignment(cls, assignment: PlayerAssignment, statistic: Statistic) -> "Scores":
        return cls(**assignment.model_dump(exclude={"detailed_statistics"}), detailed_statistics=statistic)

    def to_assignment(self) -> PlayerAssignment:
        return PlayerAssignment(**self.model_dump(exclude={"detailed_statistics"}))


class ScoresAndLastRefresh(BaseScoreModel):
    """The full per-event result set plus when and where it was refreshed."""
    score_struct: List[Scores] = Field(default_factory=list)
    last_refresh: datetime = Field(default_factory=utc_now)
    last_refresh_source: RefreshSource = RefreshSource.DB


class PlayerJsonResponse(BaseScoreModel):
    """Raw provider payload: one JSON object per player, aligned with eup_ids."""
    data: List[Dict[str, Any]] = Field(default_factory=list)
    eup_ids: List[int] = Field(default_factory=list)

    def extend(self, other: "PlayerJsonResponse") -> None:
        self.data.extend(other.data)
        self.eup_ids.extend(other.eup_ids)

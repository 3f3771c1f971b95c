"""View-model types derived from a snapshot. Never persisted."""

from enum import Enum
from pydantic import Field
from typing import Dict, List

from .base import BaseScoreModel
from .snapshot import RefreshSource, ScoresAndLastRefresh


class Bettor(BaseScoreModel):
    bettor_name: str
    total_score: int
    scoreboard_position_name: str = ""
    scoreboard_position: int = 0


class BettorScoreByRound(BaseScoreModel):
    bettor_name: str
    computed_rounds: List[int] = Field(default_factory=list)
    scores_aggregated_by_golf_grp_by_rd: List[int] = Field(default_factory=list)


class DetailedScore(BaseScoreModel):
    bettor_name: str
    golfer_name: str
    golfer_espn_id: int = 0
    rounds: List[int] = Field(default_factory=list)
    scores: List[int] = Field(default_factory=list)


class Direction(str, Enum):
    LEFT = "left"
    RIGHT = "right"
    TICK = "tick"


class Bar(BaseScoreModel):
    """One segment of a golfer's diverging bar. Positions and widths are percentages."""
    score: int
    direction: Direction
    start_position: float
    width: float
    round: int


class GolferBars(BaseScoreModel):
    short_name: str
    total_score: int
    bars: List[Bar] = Field(default_factory=list)
    is_even: bool = True


class ScoreView(BaseScoreModel):
    """Everything the rendering layer needs for one event."""
    event_id: int
    event_name: str = ""
    bettor_struct: List[Bettor] = Field(default_factory=list)
    summary_scores: List[BettorScoreByRound] = Field(default_factory=list)
    detailed_scores: List[DetailedScore] = Field(default_factory=list)
    golfer_bars: Dict[str, List[GolferBars]] = Field(default_factory=dict)
    snapshot: ScoresAndLastRefresh
    last_refresh: str = ""
    last_refresh_source: RefreshSource = RefreshSource.DB
    cache_hit: bool = False

from enum import Enum
from pydantic import Field
from typing import List

from .base import BaseScoreModel


class ScoreDisplay(str, Enum):
    """Per-hole score class, one bucket per offset from -5 to +10."""
    DOUBLE_CONDOR = "DoubleCondor"
    CONDOR = "Condor"
    ALBATROSS = "Albatross"
    EAGLE = "Eagle"
    BIRDIE = "Birdie"
    PAR = "Par"
    BOGEY = "Bogey"
    DOUBLE_BOGEY = "DoubleBogey"
    TRIPLE_BOGEY = "TripleBogey"
    QUADRUPLE_BOGEY = "QuadrupleBogey"
    QUINTUPLE_BOGEY = "QuintupleBogey"
    SEXTUPLE_BOGEY = "SextupleBogey"
    SEPTUPLE_BOGEY = "SeptupleBogey"
    OCTUPLE_BOGEY = "OctupleBogey"
    NONUPLE_BOGEY = "NonupleBogey"
    DODECUPLE_BOGEY = "DodecupleBogey"

    @classmethod
    def from_offset(cls, offset: int) -> "ScoreDisplay":
        """Map an offset to its bucket, clamping into [-5, 10]."""
        clamped = max(MIN_DISPLAY_OFFSET, min(MAX_DISPLAY_OFFSET, offset))
        return _DISPLAY_LADDER[clamped - MIN_DISPLAY_OFFSET]


MIN_DISPLAY_OFFSET = -5
MAX_DISPLAY_OFFSET = 10
_DISPLAY_LADDER = list(ScoreDisplay)


class IntStat(BaseScoreModel):
    val: int


class StringStat(BaseScoreModel):
    val: str


class LineScore(BaseScoreModel):
    """One hole of one round."""
    round: int = Field(..., ge=0)
    hole: int = Field(..., ge=1)
    score: int
    par: int
    score_display: ScoreDisplay = ScoreDisplay.PAR
    # False when par or strokes were missing and defaulted to 0
    had_data: bool = True


class DataQuality(BaseScoreModel):
    """Counts of provider fields that were missing and defaulted during normalization."""
    defaulted_pars: int = 0
    defaulted_scores: int = 0
    defaulted_round_scores: int = 0
    dropped_tee_times: int = 0

    @property
    def is_complete(self) -> bool:
        return not (
            self.defaulted_pars
            or self.defaulted_scores
            or self.defaulted_round_scores
            or self.dropped_tee_times
        )


class Statistic(BaseScoreModel):
    """Normalized per-player round data for one event."""
    eup_id: int
    rounds: List[IntStat] = Field(default_factory=list)
    round_scores: List[IntStat] = Field(default_factory=list)
    tee_times: List[StringStat] = Field(default_factory=list)
    holes_completed_by_round: List[IntStat] = Field(default_factory=list)
    line_scores: List[LineScore] = Field(default_factory=list)
    total_score: int = 0
    data_quality: DataQuality = Field(default_factory=DataQuality)

    def calculate_total_score(self) -> int:
        """Sum of per-round scores."""
        return sum(s.val for s in self.round_scores)

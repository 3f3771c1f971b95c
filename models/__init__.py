from .base import BaseScoreModel, utc_now
from .event import DEFAULT_STEP_FACTOR, EventDetails, PlayerAssignment
from .score import DataQuality, IntStat, LineScore, ScoreDisplay, Statistic, StringStat
from .snapshot import PlayerJsonResponse, RefreshSource, Scores, ScoresAndLastRefresh
from .seed import EventSeed, SeedEvent
from .scoreboard import (
    Bar,
    Bettor,
    BettorScoreByRound,
    DetailedScore,
    Direction,
    GolferBars,
    ScoreView,
)

__all__ = [
    "BaseScoreModel",
    "utc_now",
    "DEFAULT_STEP_FACTOR",
    "EventDetails",
    "PlayerAssignment",
    "DataQuality",
    "IntStat",
    "LineScore",
    "ScoreDisplay",
    "Statistic",
    "StringStat",
    "PlayerJsonResponse",
    "RefreshSource",
    "Scores",
    "ScoresAndLastRefresh",
    "Bar",
    "Bettor",
    "BettorScoreByRound",
    "DetailedScore",
    "Direction",
    "GolferBars",
    "ScoreView",
    "EventSeed",
    "SeedEvent",
]

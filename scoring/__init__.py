from scoring.context import build_score_view, load_score_context
from scoring.coordinator import RefreshCoordinator
from scoring.exceptions import ConfigError
from scoring.freshness import (
    ENDED_EVENT_MAX_AGE,
    NO_CACHE_MAX_AGE,
    cache_max_age_for_event,
)
from scoring.locks import LockRegistry
from scoring.request import ScoreRequest, parse_score_request

__all__ = [
    "build_score_view",
    "load_score_context",
    "RefreshCoordinator",
    "ConfigError",
    "ENDED_EVENT_MAX_AGE",
    "NO_CACHE_MAX_AGE",
    "cache_max_age_for_event",
    "LockRegistry",
    "ScoreRequest",
    "parse_score_request",
]

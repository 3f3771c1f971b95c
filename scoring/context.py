"""Assemble the full view model for one event."""

from datetime import datetime
from typing import Optional

from models import EventDetails, RefreshSource, ScoresAndLastRefresh, ScoreView, utc_now
from analytics.aggregation import (
    build_scoreboard,
    format_time_ago,
    group_by_bettor_golfer_round,
    group_by_bettor_name_and_round,
)
from analytics.bars import build_golfer_bars
from database.base import StepFactors, StorageBackend
from scoring.coordinator import RefreshCoordinator
from scoring.request import ScoreRequest


def build_score_view(
    event_id: int,
    details: EventDetails,
    snapshot: ScoresAndLastRefresh,
    player_factors: StepFactors,
    now: Optional[datetime] = None,
) -> ScoreView:
    """Pure aggregation of a snapshot into everything the renderer needs."""
    summary = group_by_bettor_name_and_round(snapshot.score_struct)
    detailed = group_by_bettor_golfer_round(snapshot.score_struct)
    now = now or utc_now()

    return ScoreView(
        event_id=event_id,
        event_name=details.event_name,
        bettor_struct=build_scoreboard(snapshot),
        summary_scores=summary,
        detailed_scores=detailed,
        golfer_bars=build_golfer_bars(
            summary, detailed, details.score_view_step_factor, player_factors
        ),
        snapshot=snapshot,
        last_refresh=format_time_ago(now - snapshot.last_refresh),
        last_refresh_source=snapshot.last_refresh_source,
        cache_hit=snapshot.last_refresh_source == RefreshSource.DB,
    )


async def load_score_context(
    coordinator: RefreshCoordinator,
    storage: StorageBackend,
    request: ScoreRequest,
) -> ScoreView:
    """Get (or refresh) the snapshot, then aggregate it."""
    snapshot = await coordinator.get(
        request.event_id, request.year, use_cache=request.use_cache
    )
    details = await storage.get_event_details(request.event_id)
    player_factors = await storage.get_player_step_factors(request.event_id)
    return build_score_view(request.event_id, details, snapshot, player_factors)

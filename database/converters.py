"""Conversion between asyncpg database rows and Pydantic domain models.

Round data is stored as JSON text in `eup_statistic`; this module owns
encoding those columns on write and decoding them on read.
"""

import json
from typing import Any, List

from models import (
    DataQuality,
    EventDetails,
    IntStat,
    LineScore,
    PlayerAssignment,
    Scores,
    Statistic,
    StringStat,
)
from database.exceptions import StorageError


def _load_json(value: Any, default: Any) -> Any:
    """Decode a JSON text column, tolerating NULL and already-decoded values."""
    if value is None:
        return default
    if isinstance(value, (list, dict)):
        return value
    try:
        return json.loads(value)
    except (TypeError, ValueError) as e:
        raise StorageError(f"Corrupt JSON column: {e}") from e


# ================================================================
# Row -> Model (reads)
# ================================================================

def event_from_row(row) -> EventDetails:
    """event row -> EventDetails model."""
    return EventDetails(
        event_id=row["espn_id"],
        event_name=row["name"],
        score_view_step_factor=float(row["score_view_step_factor"]),
        refresh_from_espn=row["refresh_from_espn"],
        end_date=row["end_date"],
    )


def assignment_from_row(row) -> PlayerAssignment:
    """event_user_player joined with golfer and bettor -> PlayerAssignment."""
    factor = row["score_view_step_factor"]
    return PlayerAssignment(
        eup_id=row["eup_id"],
        espn_id=row["espn_id"],
        golfer_name=row["golfer_name"],
        bettor_name=row["bettor_name"],
        group=row["grp"],
        score_view_step_factor=float(factor) if factor is not None else None,
    )


def statistic_from_row(row) -> Statistic:
    """eup_statistic row -> Statistic model."""
    return Statistic(
        eup_id=row["eup_id"],
        rounds=[IntStat(**s) for s in _load_json(row["rounds"], [])],
        round_scores=[IntStat(**s) for s in _load_json(row["round_scores"], [])],
        tee_times=[StringStat(**s) for s in _load_json(row["tee_times"], [])],
        holes_completed_by_round=[
            IntStat(**s) for s in _load_json(row["holes_completed_by_round"], [])
        ],
        line_scores=[LineScore(**s) for s in _load_json(row["line_scores"], [])],
        total_score=row["total_score"],
        data_quality=DataQuality(**_load_json(row["data_quality"], {})),
    )


def scores_from_rows(rows: list) -> List[Scores]:
    """Joined roster + statistic rows -> Scores, ordered by (group, eup_id)."""
    scores = [
        Scores.from_assignment(assignment_from_row(r), statistic_from_row(r))
        for r in rows
    ]
    return sorted(scores, key=lambda s: (s.group, s.eup_id))


# ================================================================
# Model -> Row tuple (writes)
# ================================================================

def _dump_list(items) -> str:
    return json.dumps([i.model_dump(mode="json") for i in items])


def statistic_to_row(event_id: int, score: Scores) -> tuple:
    """Scores -> tuple for eup_statistic INSERT (for executemany)."""
    stat = score.detailed_statistics
    return (
        event_id,
        score.espn_id,
        score.eup_id,
        score.group,
        _dump_list(stat.rounds),
        _dump_list(stat.round_scores),
        _dump_list(stat.tee_times),
        _dump_list(stat.holes_completed_by_round),
        _dump_list(stat.line_scores),
        json.dumps(stat.data_quality.model_dump()),
        stat.total_score,
    )

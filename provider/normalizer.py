"""Turn raw ESPN player-summary JSON into normalized statistics.

Every function here is total: missing or malformed provider fields are
defaulted (and counted in `DataQuality`) rather than raised.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple

from models import (
    DataQuality,
    IntStat,
    LineScore,
    PlayerAssignment,
    PlayerJsonResponse,
    Scores,
    ScoreDisplay,
    Statistic,
    StringStat,
)

logger = logging.getLogger(__name__)

# Tee times are shown in a fixed UTC-5 offset regardless of daylight saving.
CENTRAL_OFFSET = timezone(timedelta(hours=-5))
TEE_TIME_FORMAT = "%Y-%m-%dT%H:%MZ%z"


def parse_display_score(value: Any) -> Tuple[int, bool]:
    """Parse a display score like "4", "+2", "-3" or "E".

    Returns (value, had_data). A leading "+" is stripped; "E" (even) is 0.
    Anything else unparsable is (0, False).
    """
    if isinstance(value, bool):
        return 0, False
    if isinstance(value, int):
        return value, True
    if not isinstance(value, str):
        return 0, False
    text = value.strip()
    if text.upper() == "E":
        return 0, True
    try:
        return int(text.lstrip("+")), True
    except ValueError:
        return 0, False


def _parse_par(value: Any) -> Tuple[int, bool]:
    if isinstance(value, bool) or value is None:
        return 0, False
    if isinstance(value, int):
        return value, True
    if isinstance(value, float) and value.is_integer():
        return int(value), True
    return 0, False


def process_tee_time(tee_time: Optional[str]) -> Optional[StringStat]:
    """`2024-04-11T14:05Z` -> `4/11 9:05am` in UTC-5; None when unparsable."""
    if not tee_time or not isinstance(tee_time, str):
        return None
    text = f"{tee_time}+0000" if tee_time.endswith("Z") else tee_time
    try:
        parsed = datetime.strptime(text, TEE_TIME_FORMAT)
    except ValueError:
        return None

    local = parsed.astimezone(CENTRAL_OFFSET)
    hour = local.hour % 12 or 12
    meridiem = "am" if local.hour < 12 else "pm"
    return StringStat(val=f"{local.month}/{local.day:02d} {hour}:{local.minute:02d}{meridiem}")


def process_line_scores(
    line_scores_json: Sequence[Any], round_index: int, quality: DataQuality
) -> List[LineScore]:
    """One LineScore per hole of a round, holes numbered from 1 in payload order."""
    line_scores = []
    for idx, raw in enumerate(line_scores_json):
        raw = raw if isinstance(raw, dict) else {}
        par, had_par = _parse_par(raw.get("par"))
        score, had_score = parse_display_score(raw.get("displayValue"))
        if not had_par:
            quality.defaulted_pars += 1
        if not had_score:
            quality.defaulted_scores += 1

        line_scores.append(LineScore(
            round=round_index,
            hole=idx + 1,
            score=score,
            par=par,
            score_display=ScoreDisplay.from_offset(par - score),
            had_data=had_par and had_score,
        ))
    return line_scores


def process_player(player_json: Dict[str, Any], eup_id: int) -> Statistic:
    """Normalize one player's payload into a Statistic."""
    rounds = player_json.get("rounds")
    if not isinstance(rounds, list):
        rounds = []

    quality = DataQuality()
    stat = Statistic(eup_id=eup_id)
    line_scores: List[LineScore] = []
    round_indices, round_scores, tee_times, holes_completed = [], [], [], []

    for i, round_json in enumerate(rounds):
        round_json = round_json if isinstance(round_json, dict) else {}
        holes = round_json.get("linescores")
        line_scores.extend(
            process_line_scores(holes if isinstance(holes, list) else [], i, quality)
        )

        round_indices.append(IntStat(val=i))
        round_score, had_round_score = parse_display_score(round_json.get("displayValue"))
        if not had_round_score:
            quality.defaulted_round_scores += 1
        round_scores.append(IntStat(val=round_score))

        tee_time = process_tee_time(round_json.get("teeTime"))
        if tee_time is None:
            quality.dropped_tee_times += 1
        else:
            tee_times.append(tee_time)

        holes_completed.append(IntStat(val=len(line_scores)))

    stat.rounds = round_indices
    stat.round_scores = round_scores
    stat.tee_times = tee_times
    stat.holes_completed_by_round = holes_completed
    stat.line_scores = line_scores
    stat.total_score = stat.calculate_total_score()
    stat.data_quality = quality
    return stat


def normalize_payload(payload: PlayerJsonResponse) -> List[Statistic]:
    """One Statistic per player in the payload, in payload order."""
    statistics = []
    for player_json, eup_id in zip(payload.data, payload.eup_ids):
        stat = process_player(player_json, eup_id)
        if not stat.data_quality.is_complete:
            logger.debug(f"Defaulted provider fields for eup_id={eup_id}: {stat.data_quality}")
        statistics.append(stat)
    return statistics


def merge_statistics_with_scores(
    statistics: Sequence[Statistic], roster: Sequence[PlayerAssignment]
) -> List[Scores]:
    """Join statistics to roster rows by eup_id, sorted by (group, eup_id).

    Roster players with no statistic are left out, and statistics with no
    roster row are ignored.
    """
    by_eup_id = {p.eup_id: p for p in roster}
    merged = []
    for stat in statistics:
        assignment = by_eup_id.get(stat.eup_id)
        if assignment is None:
            logger.warning(f"Statistic for unknown eup_id={stat.eup_id} ignored")
            continue
        merged.append(Scores.from_assignment(assignment, stat))

    missing = len(roster) - len(merged)
    if missing > 0:
        logger.info(f"{missing} roster players missing from provider payload this cycle")
    return sorted(merged, key=lambda s: (s.group, s.eup_id))

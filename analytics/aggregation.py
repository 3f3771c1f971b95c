from __future__ import annotations

from datetime import timedelta
from typing import Dict, Iterable, List, Sequence, Tuple

from models import Bettor, BettorScoreByRound, DetailedScore, Scores, ScoresAndLastRefresh

SCOREBOARD_POSITION_NAMES = [
    "TOP GOLFER",
    "FIRST LOSER",
    "MEH",
    "SEEN BETTER DAYS",
    "NOT A CHANCE",
]
LAST_POSITION_NAME = "WORST OF THE WORST"

MINUTE = 60
HOUR = 60 * MINUTE
DAY = 24 * HOUR
WEEK = 7 * DAY
MONTH = 30 * DAY
YEAR = 365 * DAY


def position_name(position: int) -> str:
    if position < len(SCOREBOARD_POSITION_NAMES):
        return SCOREBOARD_POSITION_NAMES[position]
    return LAST_POSITION_NAME


def build_scoreboard(snapshot: ScoresAndLastRefresh) -> List[Bettor]:
    """Total each bettor's golfers and rank ascending by total, then name."""
    totals: Dict[str, int] = {}
    for row in snapshot.score_struct:
        totals[row.bettor_name] = totals.get(row.bettor_name, 0) + row.detailed_statistics.total_score

    ranked = sorted(totals.items(), key=lambda item: (item[1], item[0]))
    return [
        Bettor(
            bettor_name=name,
            total_score=total,
            scoreboard_position_name=position_name(i),
            scoreboard_position=i,
        )
        for i, (name, total) in enumerate(ranked)
    ]


def _bettor_golfer_rounds(
    scores: Iterable[Scores],
) -> Tuple[List[str], Dict[str, List[str]], Dict[Tuple[str, str], Dict[int, int]], Dict[Tuple[str, str], int]]:
    """Shared pass over rows.

    Returns bettor order (first appearance), golfer order per bettor
    (first appearance, de-duplicated), 1-based round -> summed score per
    (bettor, golfer), and the espn id per (bettor, golfer).
    """
    bettor_order: List[str] = []
    golfer_order: Dict[str, List[str]] = {}
    rounds: Dict[Tuple[str, str], Dict[int, int]] = {}
    espn_ids: Dict[Tuple[str, str], int] = {}

    for row in scores:
        bettor, golfer = row.bettor_name, row.golfer_name
        if bettor not in golfer_order:
            bettor_order.append(bettor)
            golfer_order[bettor] = []
        if golfer not in golfer_order[bettor]:
            golfer_order[bettor].append(golfer)

        key = (bettor, golfer)
        espn_ids[key] = row.espn_id
        by_round = rounds.setdefault(key, {})
        for idx, stat in enumerate(row.detailed_statistics.round_scores):
            by_round[idx + 1] = by_round.get(idx + 1, 0) + stat.val

    return bettor_order, golfer_order, rounds, espn_ids


def group_by_bettor_name_and_round(scores: Sequence[Scores]) -> List[BettorScoreByRound]:
    """Per bettor, the sum of their golfers' scores for each round (0-based rounds)."""
    bettor_order, golfer_order, rounds, _ = _bettor_golfer_rounds(scores)

    summary = []
    for bettor in bettor_order:
        per_round: Dict[int, int] = {}
        for golfer in golfer_order[bettor]:
            for round_number, score in rounds.get((bettor, golfer), {}).items():
                per_round[round_number - 1] = per_round.get(round_number - 1, 0) + score
        ordered = sorted(per_round.items())
        summary.append(
            BettorScoreByRound(
                bettor_name=bettor,
                computed_rounds=[r for r, _ in ordered],
                scores_aggregated_by_golf_grp_by_rd=[s for _, s in ordered],
            )
        )
    return summary


def group_by_bettor_golfer_round(scores: Sequence[Scores]) -> List[DetailedScore]:
    """One entry per (bettor, golfer) with 1-based round numbers and scores."""
    bettor_order, golfer_order, rounds, espn_ids = _bettor_golfer_rounds(scores)

    detailed = []
    for bettor in bettor_order:
        for golfer in golfer_order[bettor]:
            ordered = sorted(rounds.get((bettor, golfer), {}).items())
            detailed.append(
                DetailedScore(
                    bettor_name=bettor,
                    golfer_name=golfer,
                    golfer_espn_id=espn_ids.get((bettor, golfer), 0),
                    rounds=[r for r, _ in ordered],
                    scores=[s for _, s in ordered],
                )
            )
    return detailed


def short_golfer_name(golfer_name: str) -> str:
    """Abbreviate a full name: "Scottie Scheffler" -> "S. Scheffler"."""
    parts = golfer_name.split()
    if not parts:
        return golfer_name
    return f"{parts[0][0]}. {parts[-1]}"


def _plural(count: int, unit: str) -> str:
    return f"1 {unit}" if count == 1 else f"{count} {unit}s"


def format_time_ago(delta: timedelta) -> str:
    """Human-readable age: "1 year", "1.50 months", "2 weeks", "3 hours", "45 seconds"."""
    secs = max(0, int(delta.total_seconds()))

    if secs >= YEAR:
        years = secs / YEAR
        return "1 year" if secs == YEAR else f"{years:.2f} years"
    if secs >= MONTH:
        return f"{secs / MONTH:.2f} months"
    if secs >= WEEK:
        return _plural(secs // WEEK, "week")
    if secs >= DAY:
        return _plural(secs // DAY, "day")
    if secs >= HOUR:
        return _plural(secs // HOUR, "hour")
    if secs >= MINUTE:
        return _plural(secs // MINUTE, "minute")
    return _plural(secs, "second")

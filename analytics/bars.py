from __future__ import annotations

from typing import Dict, List, Mapping, Sequence, Tuple

from models import Bar, BettorScoreByRound, DetailedScore, Direction, GolferBars

from .aggregation import short_golfer_name

CENTER = 50.0
FULL_WIDTH = 100.0
TICK_WIDTH = 0.5


def golfer_bars(detail: DetailedScore, weight: float, index: int) -> GolferBars:
    """Diverging bar geometry for one golfer. Positions and widths are percentages.

    Negative rounds stack leftwards from center, positive rounds rightwards.
    If the unscaled widths sum past 100, every bar is scaled by one factor.
    Zero rounds become a centered tick.
    """
    total_width = sum(abs(score) * weight for score in detail.scores)
    scale = FULL_WIDTH / total_width if total_width > FULL_WIDTH else 1.0

    bars: List[Bar] = []
    cumulative_left = 0.0
    cumulative_right = 0.0
    for round_idx, score in enumerate(detail.scores):
        round_number = round_idx + 1
        if score < 0:
            width = abs(score) * weight * scale
            bars.append(Bar(
                score=score,
                direction=Direction.LEFT,
                start_position=CENTER - cumulative_left - width,
                width=width,
                round=round_number,
            ))
            cumulative_left += width
        elif score > 0:
            width = score * weight * scale
            bars.append(Bar(
                score=score,
                direction=Direction.RIGHT,
                start_position=CENTER + cumulative_right,
                width=width,
                round=round_number,
            ))
            cumulative_right += width
        else:
            width = min(TICK_WIDTH, FULL_WIDTH * scale)
            bars.append(Bar(
                score=0,
                direction=Direction.TICK,
                start_position=CENTER - width / 2,
                width=width,
                round=round_number,
            ))

    return GolferBars(
        short_name=short_golfer_name(detail.golfer_name),
        total_score=sum(detail.scores),
        bars=bars,
        is_even=index % 2 == 0,
    )


def build_golfer_bars(
    summary: Sequence[BettorScoreByRound],
    detailed: Sequence[DetailedScore],
    global_factor: float,
    player_factors: Mapping[Tuple[int, str], float],
) -> Dict[str, List[GolferBars]]:
    """Bars per bettor, golfers sorted by total score (stable)."""
    result: Dict[str, List[GolferBars]] = {}
    for bettor in summary:
        golfers = [d for d in detailed if d.bettor_name == bettor.bettor_name]
        rows = [
            golfer_bars(
                d,
                player_factors.get((d.golfer_espn_id, d.bettor_name), global_factor),
                i,
            )
            for i, d in enumerate(golfers)
        ]
        result[bettor.bettor_name] = sorted(rows, key=lambda g: g.total_score)
    return result

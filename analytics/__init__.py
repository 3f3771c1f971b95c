from .aggregation import (
    build_scoreboard,
    format_time_ago,
    group_by_bettor_golfer_round,
    group_by_bettor_name_and_round,
    short_golfer_name,
)
from .bars import build_golfer_bars, golfer_bars
from .visualizations import (
    plot_bettor_bars,
    plot_golfer_bars,
    plot_scoreboard,
)

__all__ = [
    "build_scoreboard",
    "format_time_ago",
    "group_by_bettor_golfer_round",
    "group_by_bettor_name_and_round",
    "short_golfer_name",
    "build_golfer_bars",
    "golfer_bars",
    "plot_bettor_bars",
    "plot_golfer_bars",
    "plot_scoreboard",
]

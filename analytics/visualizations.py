from __future__ import annotations

from typing import Mapping, Optional, Sequence

from models import Bettor, Direction, GolferBars

BAR_COLORS = {
    Direction.LEFT: "#2e7d32",
    Direction.RIGHT: "#c62828",
    Direction.TICK: "#616161",
}


def _load_plt():
    try:
        import matplotlib.pyplot as plt  # type: ignore
    except ImportError as exc:
        raise RuntimeError(
            "matplotlib is required for visualizations. Install it with: pip install matplotlib"
        ) from exc
    return plt


def plot_golfer_bars(golfers: Sequence[GolferBars], title: Optional[str] = None):
    """Diverging horizontal bars, one row per golfer, centered at 50%."""
    plt = _load_plt()

    fig, ax = plt.subplots(figsize=(10, max(2, 0.6 * len(golfers) + 1)))
    for row, golfer in enumerate(golfers):
        if not golfer.is_even:
            ax.axhspan(row - 0.5, row + 0.5, color="#f5f5f5", zorder=0)
        for bar in golfer.bars:
            ax.barh(
                row,
                bar.width,
                left=bar.start_position,
                height=0.6,
                color=BAR_COLORS[bar.direction],
                edgecolor="white",
            )
            if bar.direction != Direction.TICK:
                ax.text(
                    bar.start_position + bar.width / 2,
                    row,
                    str(bar.score),
                    ha="center",
                    va="center",
                    fontsize=8,
                    color="white",
                )

    ax.axvline(50, color="black", linewidth=1)
    ax.set_xlim(0, 100)
    ax.set_yticks(range(len(golfers)))
    ax.set_yticklabels([f"{g.short_name}: {g.total_score}" for g in golfers])
    ax.invert_yaxis()
    ax.set_xticks([])
    ax.set_title(title or "Score by Player")
    fig.tight_layout()
    return fig, ax


def plot_bettor_bars(golfer_bars: Mapping[str, Sequence[GolferBars]], bettor_name: str):
    """Bars for one bettor's golfers."""
    golfers = golfer_bars.get(bettor_name)
    if golfers is None:
        raise KeyError(f"No bars for bettor '{bettor_name}'")
    return plot_golfer_bars(golfers, title=f"{bettor_name}: Score by Player")


def plot_scoreboard(bettors: Sequence[Bettor]):
    """Bar chart: bettor totals in scoreboard order."""
    plt = _load_plt()
    names = [b.bettor_name for b in bettors]
    totals = [b.total_score for b in bettors]

    fig, ax = plt.subplots(figsize=(10, 5))
    x = list(range(len(names)))
    ax.bar(x, totals, color=["#2e7d32" if t < 0 else "#c62828" for t in totals])
    ax.axhline(0, color="black", linewidth=1)
    ax.set_xticks(x)
    ax.set_xticklabels(names, rotation=45, ha="right")
    ax.set_title("Scoreboard")
    ax.set_ylabel("Total to Par")
    ax.grid(axis="y", alpha=0.2)
    fig.tight_layout()
    return fig, ax

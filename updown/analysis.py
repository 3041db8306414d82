# updown/analysis.py
"""
Statistics over deal logs written by `game_log` (one row per deal and
player). Where a log has no tricks-taken column they are recovered from bids
and points.
"""
from __future__ import annotations

from pathlib import Path
from typing import Optional

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt  # noqa: E402
import numpy as np  # noqa: E402
import pandas as pd  # noqa: E402

from .engine import TOTAL_DEALS  # noqa: E402
from .scoring import get_taken_from_deal_points  # noqa: E402
from .seats import NUM_PLAYERS  # noqa: E402

REQUIRED_COLUMNS = [
    "game_id",
    "deal_number",
    "player_name",
    "bid",
    "deal_points",
    "total_score",
]
ROWS_PER_MATCH = TOTAL_DEALS * NUM_PLAYERS


def load_deal_log(path: str | Path) -> pd.DataFrame:
    df = pd.read_csv(path)
    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"{path}: missing columns {', '.join(missing)}")
    return with_recovered_taken(df)


def with_recovered_taken(df: pd.DataFrame) -> pd.DataFrame:
    """
    Fill 'taken' where the log lacks it (from bid and points) and add
    'miss' = taken - bid.
    """
    df = df.copy()
    recovered = pd.Series(
        [
            get_taken_from_deal_points(int(bid), int(points))
            for bid, points in zip(df["bid"], df["deal_points"])
        ],
        index=df.index,
    )
    if "taken" in df.columns:
        df["taken"] = df["taken"].fillna(recovered).astype(int)
    else:
        df["taken"] = recovered
    df["miss"] = df["taken"] - df["bid"]
    return df


def complete_matches(df: pd.DataFrame) -> pd.DataFrame:
    """Keep only games that have all 28 deals for all 4 players."""
    counts = df["game_id"].value_counts()
    valid_games = counts[counts == ROWS_PER_MATCH].index
    return df[df["game_id"].isin(valid_games)].copy()


def bid_accuracy_table(df: pd.DataFrame) -> pd.DataFrame:
    """
    Per player: deals played, exact bids, accuracy in percent, mean miss and
    mean points per deal.
    """
    exact = df["miss"] == 0
    table = (
        df.assign(exact=exact)
        .groupby("player_name")
        .agg(
            deals=("bid", "size"),
            exact_bids=("exact", "sum"),
            mean_miss=("miss", "mean"),
            mean_points=("deal_points", "mean"),
        )
    )
    table["accuracy_pct"] = (table["exact_bids"] / table["deals"] * 100).round(1)
    return table.sort_values("accuracy_pct", ascending=False)


def deal_type_summary(df: pd.DataFrame) -> pd.DataFrame:
    """Mean points and exact-bid rate for normal, no-trump and dark deals."""
    if "deal_type" not in df.columns:
        raise ValueError("deal log has no 'deal_type' column")
    return (
        df.assign(exact=df["miss"] == 0)
        .groupby("deal_type")
        .agg(
            deals=("bid", "size"),
            mean_points=("deal_points", "mean"),
            exact_rate=("exact", "mean"),
        )
    )


def table_bid_balance(df: pd.DataFrame) -> pd.DataFrame:
    """
    Per (game, deal): sum of bids minus tricks in the deal. Never zero,
    because the dealer may not make the bids add up.
    """
    if "tricks_in_deal" not in df.columns:
        raise ValueError("deal log has no 'tricks_in_deal' column")
    per_deal = (
        df.groupby(["game_id", "deal_number", "tricks_in_deal"])
        .agg(total_bid=("bid", "sum"))
        .reset_index()
    )
    per_deal["balance"] = per_deal["total_bid"] - per_deal["tricks_in_deal"]
    return per_deal


def plot_score_progression(
    df: pd.DataFrame,
    output_path: str | Path,
    title: Optional[str] = None,
) -> Path:
    """
    Save a chart of mean running score per deal with 95% confidence bars,
    one line per player name.
    """
    stats = (
        df.groupby(["player_name", "deal_number"])["total_score"]
        .agg(["mean", "std", "count"])
        .reset_index()
    )
    stats["std"] = stats["std"].fillna(0.0)
    stats["ci95"] = 1.96 * stats["std"] / np.sqrt(stats["count"])

    fig, ax = plt.subplots(figsize=(10, 6))
    for name in sorted(stats["player_name"].unique()):
        sub = stats[stats["player_name"] == name].sort_values("deal_number")
        ax.errorbar(
            sub["deal_number"],
            sub["mean"],
            yerr=sub["ci95"],
            marker="o",
            capsize=3,
            label=name,
        )

    ax.set_xlabel("Deal")
    ax.set_ylabel("Mean running score")
    ax.set_title(title or "Mean running score per deal (95% CI)")
    ax.grid(True)
    ax.legend()
    fig.tight_layout()

    path = Path(output_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(path, dpi=120)
    plt.close(fig)
    return path

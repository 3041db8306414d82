# tests/test_analysis.py
import random

import pandas as pd
import pytest

from updown.agents import HeuristicAgent, RandomAgent
from updown.analysis import (
    bid_accuracy_table,
    complete_matches,
    deal_type_summary,
    load_deal_log,
    plot_score_progression,
    table_bid_balance,
    with_recovered_taken,
)
from updown.game_log import build_deal_rows, write_deal_rows_csv
from updown.match import MatchRunner


@pytest.fixture
def deal_log(tmp_path):
    rows = []
    for game in range(2):
        agents = [HeuristicAgent(), RandomAgent(random.Random(game)), HeuristicAgent(), HeuristicAgent()]
        names = ["h0", "r1", "h2", "h3"]
        final = MatchRunner(agents, player_names=names, rng_seed=game).play_match()
        rows.extend(build_deal_rows(final, game_id=f"game-{game}"))
    # a third, unfinished game
    rows.extend(dict(r, game_id="partial") for r in rows[:20])
    path = tmp_path / "log.csv"
    write_deal_rows_csv(rows, path)
    return path


def test_load_and_filter(deal_log):
    df = load_deal_log(deal_log)
    assert len(df) == 2 * 112 + 20
    assert "miss" in df.columns
    full = complete_matches(df)
    assert set(full["game_id"]) == {"game-0", "game-1"}


def test_missing_columns_are_reported(tmp_path):
    path = tmp_path / "bad.csv"
    pd.DataFrame({"game_id": ["g"], "bid": [1]}).to_csv(path, index=False)
    with pytest.raises(ValueError):
        load_deal_log(path)


def test_log_without_running_totals_is_refused(tmp_path):
    path = tmp_path / "no_totals.csv"
    pd.DataFrame(
        {"game_id": ["g"], "deal_number": [1], "player_name": ["h0"], "bid": [1], "deal_points": [10]}
    ).to_csv(path, index=False)
    with pytest.raises(ValueError, match="total_score"):
        load_deal_log(path)


def test_taken_is_recovered_when_absent():
    df = pd.DataFrame({"bid": [0, 2, 3], "deal_points": [5, 20, -10]})
    out = with_recovered_taken(df)
    assert list(out["taken"]) == [0, 2, 2]
    assert list(out["miss"]) == [0, 0, -1]
    assert "taken" not in df.columns


def test_logged_taken_is_kept():
    df = pd.DataFrame({"bid": [0], "deal_points": [5], "taken": [5]})
    assert list(with_recovered_taken(df)["taken"]) == [5]


def test_tables(deal_log):
    df = complete_matches(load_deal_log(deal_log))
    acc = bid_accuracy_table(df)
    assert set(acc.index) == {"h0", "r1", "h2", "h3"}
    assert (acc["deals"] == 56).all()
    assert ((acc["accuracy_pct"] >= 0) & (acc["accuracy_pct"] <= 100)).all()

    by_type = deal_type_summary(df)
    assert set(by_type.index) == {"normal", "no-trump", "dark"}
    assert by_type.loc["dark", "deals"] == 2 * 4 * 4

    balance = table_bid_balance(df)
    assert len(balance) == 2 * 28
    assert (balance["balance"] != 0).all()


def test_plot_is_written(deal_log, tmp_path):
    df = complete_matches(load_deal_log(deal_log))
    out = plot_score_progression(df, tmp_path / "charts" / "scores.png", title="test")
    assert out.exists()
    assert out.stat().st_size > 0

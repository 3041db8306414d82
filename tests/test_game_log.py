# tests/test_game_log.py
import csv

from updown.agents import HeuristicAgent
from updown.game_log import FIELDNAMES, build_deal_rows, write_match_csv
from updown.match import MatchRunner


def _final_state(seed):
    names = ["Ann", "Bo", "Cy", "Di"]
    runner = MatchRunner([HeuristicAgent() for _ in range(4)], player_names=names, rng_seed=seed)
    return runner.play_match()


def test_one_row_per_deal_and_player():
    final = _final_state(1)
    rows = build_deal_rows(final, game_id="game-0")
    assert len(rows) == 28 * 4
    assert all(set(row) == set(FIELDNAMES) for row in rows)

    last = {row["player_index"]: row for row in rows if row["deal_number"] == 28}
    for i, p in enumerate(final.players):
        assert last[i]["total_score"] == p.score
        assert last[i]["player_name"] == p.name
        assert last[i]["deal_type"] == "dark"
        assert last[i]["tricks_in_deal"] == 9


def test_partial_match_logs_completed_deals_only(mid_game):
    rows = build_deal_rows(mid_game)
    assert len(rows) == len(mid_game.deal_history) * 4
    assert {row["deal_number"] for row in rows} == {1, 2, 3, 4}
    assert all(row["game_id"] is None for row in rows)


def test_written_csv_has_the_header(tmp_path):
    path = tmp_path / "log.csv"
    write_match_csv(_final_state(2), path, game_id="g")
    with open(path, newline="", encoding="utf-8") as f:
        reader = csv.DictReader(f)
        assert reader.fieldnames == FIELDNAMES
        rows = list(reader)
    assert len(rows) == 112
    assert {row["game_id"] for row in rows} == {"g"}

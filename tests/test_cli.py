# tests/test_cli.py
import csv

import pytest

from updown import cli
from updown.agents import HeuristicAgent
from updown.persistence import RatingStore, SnapshotStore


def test_simulate_then_stats(tmp_path, capsys):
    log = tmp_path / "log.csv"
    rc = cli.main(
        [
            "simulate",
            "--games",
            "2",
            "--seed",
            "5",
            "--agents",
            "heuristic",
            "random",
            "heuristic",
            "random",
            "--csv",
            str(log),
            "--verbose-log",
            str(tmp_path / "verbose.log"),
            "--parallel-games",
            "2",
            "--log-level",
            "WARNING",
        ]
    )
    assert rc == 0
    with open(log, newline="", encoding="utf-8") as f:
        rows = list(csv.DictReader(f))
    assert len(rows) == 2 * 112
    assert {r["game_id"] for r in rows} == {"game-0", "game-1"}
    assert (tmp_path / "verbose.log").read_text(encoding="utf-8")

    chart = tmp_path / "scores.png"
    assert cli.main(["stats", str(log), "--plot", str(chart)]) == 0
    assert chart.exists()
    out = capsys.readouterr().out
    assert "accuracy_pct" in out
    assert "no-trump" in out


def test_play_records_the_result(tmp_path, monkeypatch, capsys):
    snapshot_path = tmp_path / "game.json"
    rating_path = tmp_path / "rating.json"
    monkeypatch.setattr(cli, "SnapshotStore", lambda: SnapshotStore(snapshot_path))
    monkeypatch.setattr(cli, "RatingStore", lambda: RatingStore(rating_path))
    monkeypatch.setattr(cli, "ConsoleAgent", HeuristicAgent)

    assert cli.main(["play", "--seed", "4", "--name", "Tester"]) == 0
    out = capsys.readouterr().out
    assert "Tester" in out
    assert "Matches: 1" in out
    assert RatingStore(rating_path).get().games_played == 1
    assert not snapshot_path.exists()


def test_unknown_agent_kind_is_refused():
    with pytest.raises(SystemExit):
        cli.parse_args(["simulate", "--agents", "heuristic", "heuristic", "heuristic", "oracle"])


def test_a_command_is_required():
    with pytest.raises(SystemExit):
        cli.parse_args([])

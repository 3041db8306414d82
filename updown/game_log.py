# updown/game_log.py
from __future__ import annotations

import csv
from typing import Any, Dict, List, Optional

from .engine import get_deal_type, get_tricks_in_deal
from .scoring import taken_in_deal
from .state import GameState

FIELDNAMES = [
    "game_id",
    "deal_number",
    "deal_type",
    "tricks_in_deal",
    "player_index",
    "player_id",
    "player_name",
    "bid",
    "taken",
    "deal_points",
    "total_score",
]


def build_deal_rows(
    game_state: GameState,
    game_id: Optional[str] = None,
) -> List[Dict[str, Any]]:
    """
    Build one row per (deal, player) from the match's deal history.

    Tricks taken come from the record, or are recovered from the bid and
    points for records that predate the counts. Only completed deals appear, so a match still in
    progress can be logged as well.
    """
    players = game_state.players
    running: List[int] = [0] * len(players)
    rows: List[Dict[str, Any]] = []

    for record in game_state.deal_history:
        for idx, p in enumerate(players):
            bid = record.bids[idx]
            points = record.points[idx]
            running[idx] += points
            rows.append(
                {
                    "game_id": game_id,
                    "deal_number": record.deal_number,
                    "deal_type": get_deal_type(record.deal_number).value,
                    "tricks_in_deal": get_tricks_in_deal(record.deal_number),
                    "player_index": idx,
                    "player_id": p.id,
                    "player_name": p.name,
                    "bid": bid,
                    "taken": taken_in_deal(record, idx),
                    "deal_points": points,
                    "total_score": running[idx],
                }
            )

    return rows


def write_deal_rows_csv(
    rows: List[Dict[str, Any]],
    path,
) -> None:
    """
    Write deal rows to a CSV file.

    `path` can be a string or any path-like object accepted by `open`.
    """
    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=FIELDNAMES)
        writer.writeheader()
        for row in rows:
            writer.writerow({field: row.get(field) for field in FIELDNAMES})


def write_match_csv(
    game_state: GameState,
    path,
    game_id: Optional[str] = None,
) -> None:
    write_deal_rows_csv(build_deal_rows(game_state, game_id=game_id), path)

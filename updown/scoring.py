# updown/scoring.py
from __future__ import annotations

import math
from typing import Sequence

from .state import DealRecord


def calculate_deal_points(bid: int, taken: int) -> int:
    """
    Points one player earns for a deal:

    - bid 0, took 0: +5
    - bid 0, took some: +1 per trick
    - took exactly the bid: +10 per trick bid
    - took fewer than bid: -10 per missing trick
    - took more than a non-zero bid: +1 per trick
    """
    if bid == 0 and taken == 0:
        return 5
    if bid == 0:
        return taken
    if bid == taken:
        return 10 * bid
    if taken < bid:
        return -10 * (bid - taken)
    return taken


def get_taken_from_deal_points(bid: int, points: int) -> int:
    """
    Recover tricks taken from a bid and the points it scored.

    Inverts calculate_deal_points for every pair except a zero bid with 5
    tricks, which scores the same 5 points as a clean zero and comes back
    as 0. The branch order matters.
    """
    if bid == 0:
        return 0 if points == 5 else points
    if points == 10 * bid:
        return bid
    if points < 0:
        return bid + points // 10
    return points


def taken_in_deal(record: DealRecord, player_index: int) -> int:
    """
    Tricks the player took in a recorded deal. Records written without the
    counts fall back to get_taken_from_deal_points, which reads a zero bid
    with 5 tricks as a clean zero.
    """
    if record.taken is not None:
        return record.taken[player_index]
    return get_taken_from_deal_points(record.bids[player_index], record.points[player_index])


def bid_accuracy(deal_history: Sequence[DealRecord], player_index: int) -> int:
    """Percentage of recorded deals where the player took exactly the bid."""
    if not deal_history:
        return 0
    met = 0
    for record in deal_history:
        if record.bids[player_index] == taken_in_deal(record, player_index):
            met += 1
    return math.floor(met / len(deal_history) * 100 + 0.5)

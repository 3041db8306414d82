# updown/seats.py
from __future__ import annotations

from typing import Tuple

NUM_PLAYERS = 4

# Seen from above: South(0) at the bottom, North(1) on top, West(2) on the
# left, East(3) on the right. Play passes to the left: 0 -> 2 -> 1 -> 3 -> 0.
NEXT_PLAYER_LEFT: Tuple[int, int, int, int] = (2, 3, 1, 0)


def next_player_left(seat: int) -> int:
    """Seat that acts after `seat`."""
    return NEXT_PLAYER_LEFT[seat % NUM_PLAYERS]


def player_at_left_from(base: int, steps: int) -> int:
    """Seat reached by moving `steps` places to the left of `base`."""
    seat = base
    for _ in range(steps):
        seat = next_player_left(seat)
    return seat


def check_seat(seat: int) -> int:
    if not 0 <= seat < NUM_PLAYERS:
        raise ValueError(f"Seat index must be in 0..3, got {seat}")
    return seat

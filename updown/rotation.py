# updown/rotation.py
"""
Seat relabelling between the canonical room state and a client's view.

A room keeps one canonical GameState (slot 0 = host, and so on). Each client
renders a rotated copy in which its own slot is seat 0, and rotates back
before anything goes to the room again. Every field that names a seat is
remapped; arrays indexed by seat are shifted.
"""
from __future__ import annotations

import dataclasses
from typing import Callable, Optional, Sequence, Tuple, TypeVar

from .seats import NUM_PLAYERS, check_seat
from .state import DealRecord, GameState, LastCompletedTrick

T = TypeVar("T")


def canonical_to_display(seat: int, my_slot_index: int) -> int:
    return (seat - my_slot_index + NUM_PLAYERS) % NUM_PLAYERS


def display_to_canonical(seat: int, my_slot_index: int) -> int:
    return (seat + my_slot_index) % NUM_PLAYERS


def _shift(values: Sequence[T], offset: int) -> Tuple[T, ...]:
    # result[i] = values[(i + offset) mod 4]
    return tuple(values[(i + offset) % NUM_PLAYERS] for i in range(NUM_PLAYERS))


def _remap(
    state: GameState,
    offset: int,
    seat_map: Callable[[int], int],
) -> GameState:
    last: Optional[LastCompletedTrick] = state.last_completed_trick
    if last is not None:
        last = dataclasses.replace(
            last,
            winner_index=seat_map(last.winner_index),
            leader_index=seat_map(last.leader_index),
        )
    history = tuple(
        DealRecord(
            deal_number=record.deal_number,
            bids=_shift(record.bids, offset),
            points=_shift(record.points, offset),
            taken=_shift(record.taken, offset) if record.taken is not None else None,
        )
        for record in state.deal_history
    )
    return dataclasses.replace(
        state,
        players=_shift(state.players, offset),
        bids=_shift(state.bids, offset),
        dealer_index=seat_map(state.dealer_index),
        current_player_index=seat_map(state.current_player_index),
        trick_leader_index=seat_map(state.trick_leader_index),
        last_completed_trick=last,
        deal_history=history,
    )


def rotate_for_player(state: GameState, my_slot_index: int) -> GameState:
    """View of the canonical `state` in which `my_slot_index` sits at seat 0."""
    check_seat(my_slot_index)
    if my_slot_index == 0:
        return state
    return _remap(
        state,
        my_slot_index,
        lambda seat: canonical_to_display(seat, my_slot_index),
    )


def unrotate(state: GameState, my_slot_index: int) -> GameState:
    """Inverse of rotate_for_player: back to canonical seat numbers."""
    check_seat(my_slot_index)
    if my_slot_index == 0:
        return state
    return _remap(
        state,
        NUM_PLAYERS - my_slot_index,
        lambda seat: display_to_canonical(seat, my_slot_index),
    )

# tests/conftest.py
import random

import pytest

from updown.agents.heuristic import ai_bid, ai_play
from updown.engine import create_game, place_bid, play_card, start_deal, start_next_deal
from updown.state import BIDDING_PHASES, Phase


def drive_deal(state, rng):
    """Play the current deal to completion with the heuristic AI in every seat."""
    while state.phase in BIDDING_PHASES or state.phase == Phase.PLAYING:
        idx = state.current_player_index
        if state.phase in BIDDING_PHASES:
            new_state = place_bid(state, idx, ai_bid(state, idx), rng)
        else:
            new_state = play_card(state, idx, ai_play(state, idx))
        assert new_state is not state, "AI move was ignored"
        state = new_state
    return state


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def first_deal(rng):
    state = create_game(first_dealer=0, rng=rng)
    return start_deal(state, rng)


@pytest.fixture
def mid_game(rng):
    """A state a few deals in, halfway through a trick, with history."""
    state = start_deal(create_game(first_dealer=1, rng=rng), rng)
    for _ in range(4):
        state = start_next_deal(drive_deal(state, rng), rng)
    # bid everything, finish one trick of deal 5 and start the next
    while state.phase in BIDDING_PHASES:
        idx = state.current_player_index
        state = place_bid(state, idx, ai_bid(state, idx), rng)
    for _ in range(6):
        idx = state.current_player_index
        state = play_card(state, idx, ai_play(state, idx))
    return state

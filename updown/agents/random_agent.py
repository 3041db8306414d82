# updown/agents/random_agent.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
import random

from ..cards import Card
from ..engine import get_valid_plays
from ..rules import forbidden_dealer_bid
from ..state import GameState
from .base import UpDownAgent


@dataclass
class RandomAgent(UpDownAgent):
    """
    A baseline agent:

    - choose_bid: uniform over the bids that will be accepted.
    - choose_card: uniform over the legal cards.
    """

    rng: random.Random

    def choose_bid(self, state: GameState, player_index: int) -> int:
        options = list(range(state.tricks_in_deal + 1))
        if player_index == state.dealer_index:
            forbidden = forbidden_dealer_bid(
                state.bids, state.dealer_index, state.tricks_in_deal
            )
            options = [b for b in options if b != forbidden]
        return self.rng.choice(options)

    def choose_card(self, state: GameState, player_index: int) -> Optional[Card]:
        legal = get_valid_plays(state, player_index)
        if not legal:
            return None
        return self.rng.choice(legal)

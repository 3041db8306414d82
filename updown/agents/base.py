# updown/agents/base.py
from __future__ import annotations

from typing import Optional, Protocol, runtime_checkable

from ..cards import Card
from ..state import GameState


@runtime_checkable
class UpDownAgent(Protocol):
    """
    Interface that all Up&Down players must implement.

    Agents see the same GameState snapshot the engine works on and answer
    for the seat `player_index`. Their answers go through the normal engine
    transitions; nothing about a turn is special-cased for AI.
    """

    def choose_bid(self, state: GameState, player_index: int) -> int:
        """Return the bid (0..state.tricks_in_deal)."""

        raise NotImplementedError

    def choose_card(self, state: GameState, player_index: int) -> Optional[Card]:
        """
        Return the card to play from the player's hand.

        `engine.get_valid_plays(state, player_index)` lists the legal options.
        """
        raise NotImplementedError

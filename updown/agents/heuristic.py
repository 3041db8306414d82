# updown/agents/heuristic.py
from __future__ import annotations

from typing import List, Optional

from ..cards import Card, Rank, Suit
from ..engine import get_valid_plays
from ..rules import forbidden_dealer_bid, lead_suit_of
from ..state import GameState
from .base import UpDownAgent

_TRUMP_BONUS = 20


def card_strength(card: Card, trump: Optional[Suit]) -> int:
    strength = card.rank.order
    if trump is not None and card.suit == trump:
        strength += _TRUMP_BONUS
    return strength


def ai_bid(state: GameState, player_index: int) -> int:
    """
    Bid from a quick hand count: each trump is worth 2, every other jack or
    higher 1, and every 3 points is one trick. Without trump (no-trump and
    blind deals) the bid is a quarter of the tricks.

    As dealer, never the bid that makes the total equal the tricks.
    """
    hand = state.players[player_index].hand
    tricks = state.tricks_in_deal

    preferred = tricks // 4
    if state.trump is not None:
        count = 0
        for card in hand:
            if card.suit == state.trump:
                count += 2
            elif card.rank.order >= Rank.JACK.order:
                count += 1
        preferred = min(tricks, max(0, count // 3))

    if player_index == state.dealer_index:
        forbidden = forbidden_dealer_bid(state.bids, state.dealer_index, tricks)
        if forbidden is not None and preferred == forbidden:
            if forbidden == 0:
                alternative = 1
            elif forbidden == tricks:
                alternative = tricks - 1
            else:
                alternative = forbidden - 1
            return max(0, min(tricks, alternative))
    return preferred


def ai_play(state: GameState, player_index: int) -> Optional[Card]:
    """
    Weakest legal card; among equally weak cards, one of the led suit first.
    """
    valid: List[Card] = get_valid_plays(state, player_index)
    if not valid:
        return None

    lead = lead_suit_of(state)
    trump = state.trump
    # min() keeps the first of equal keys, so hand order breaks remaining ties.
    return min(
        valid,
        key=lambda c: (
            card_strength(c, trump),
            0 if lead is not None and c.suit == lead else 1,
        ),
    )


class HeuristicAgent(UpDownAgent):
    """The default computer opponent."""

    def choose_bid(self, state: GameState, player_index: int) -> int:
        return ai_bid(state, player_index)

    def choose_card(self, state: GameState, player_index: int) -> Optional[Card]:
        return ai_play(state, player_index)

# updown/rules.py
from __future__ import annotations

from typing import Optional, Sequence

from .cards import Card, Suit
from .seats import NUM_PLAYERS
from .state import BIDDING_PHASES, GameState, Phase


def is_valid_bid_sum(bids: Sequence[int], tricks_in_deal: int) -> bool:
    """
    Dealer responsibility: the four bids must not add up to the number of
    tricks in the deal, so at least one player is bound to miss.
    """
    return sum(bids) != tricks_in_deal


def forbidden_dealer_bid(
    bids: Sequence[Optional[int]],
    dealer_index: int,
    tricks_in_deal: int,
) -> Optional[int]:
    """
    The single bid the dealer may not make given the other three bids, or
    None when that value falls outside 0..tricks_in_deal.
    """
    others = sum(b for i, b in enumerate(bids) if i != dealer_index and b is not None)
    forbidden = tricks_in_deal - others
    if 0 <= forbidden <= tricks_in_deal:
        return forbidden
    return None


def _beats(a: Card, b: Card, lead_suit: Suit, trump: Optional[Suit]) -> bool:
    """True if card `a` beats card `b`."""
    a_trump = trump is not None and a.suit == trump
    b_trump = trump is not None and b.suit == trump

    if a_trump != b_trump:
        return a_trump
    if a_trump and b_trump:
        return a.rank.order > b.rank.order

    a_lead = a.suit == lead_suit
    b_lead = b.suit == lead_suit
    if a_lead != b_lead:
        return a_lead
    if a_lead and b_lead:
        return a.rank.order > b.rank.order
    # Two off-suit discards never beat each other.
    return False


def get_trick_winner(
    trick: Sequence[Card],
    lead_suit: Suit,
    trump: Optional[Suit] = None,
) -> int:
    """
    Return the position (within the trick, not the seat) of the winning card.

    Priority:
    1. Highest trump, if any trump was played.
    2. Highest card of the led suit.
    """
    if not trick:
        raise ValueError("Cannot determine winner of an empty trick")

    winner = 0
    best = trick[0]
    for i, card in enumerate(trick[1:], start=1):
        if _beats(card, best, lead_suit, trump):
            best = card
            winner = i
    return winner


def is_valid_play(
    card: Card,
    hand: Sequence[Card],
    lead_suit: Optional[Suit],
    trump: Optional[Suit] = None,
) -> bool:
    """
    Rules implemented:
    - Leading a trick: any card.
    - Holding the led suit: must follow suit.
    - Void in the led suit but holding trump: must play trump.
    - Holding neither: any card.
    """
    if lead_suit is None:
        return True
    if card.suit == lead_suit:
        return True
    if any(c.suit == lead_suit for c in hand):
        return False
    if trump is None:
        return True
    if card.suit == trump:
        return True
    return not any(c.suit == trump for c in hand)


def lead_suit_of(state: GameState) -> Optional[Suit]:
    return state.current_trick[0].suit if state.current_trick else None


def bid_rejection_reason(
    state: GameState,
    player_index: int,
    bid: int,
) -> Optional[str]:
    """
    Explain why this bid would not stick, or None if it would. Covers the
    bids `place_bid` ignores and the dealer bid it sends back for a re-bid.
    Only a query: nothing is changed.
    """
    if state.phase not in BIDDING_PHASES:
        return f"bids are not taken during {state.phase.value}"
    if not 0 <= player_index < NUM_PLAYERS:
        return f"no player at seat {player_index}"
    if player_index != state.current_player_index:
        return "not your turn to bid"
    if state.bids[player_index] is not None:
        return "bid already placed"
    if isinstance(bid, bool) or not isinstance(bid, int):
        return "bid must be a whole number"
    if not 0 <= bid <= state.tricks_in_deal:
        return f"bid must be between 0 and {state.tricks_in_deal}"
    if player_index == state.dealer_index:
        others_placed = all(
            b is not None for i, b in enumerate(state.bids) if i != player_index
        )
        if others_placed and bid == forbidden_dealer_bid(
            state.bids, state.dealer_index, state.tricks_in_deal
        ):
            # Accepted by place_bid, but it bounces straight back to the dealer.
            return f"dealer may not bid {bid}: bids would add up to {state.tricks_in_deal}"
    return None


def play_rejection_reason(
    state: GameState,
    player_index: int,
    card: Card,
) -> Optional[str]:
    """Explain why `play_card` would ignore this card, or None if legal."""
    if state.phase != Phase.PLAYING:
        return f"cards are not played during {state.phase.value}"
    if not 0 <= player_index < NUM_PLAYERS:
        return f"no player at seat {player_index}"
    if player_index != state.current_player_index:
        return "not your turn to play"
    hand = state.players[player_index].hand
    if card not in hand:
        return f"{card} is not in your hand"
    lead = lead_suit_of(state)
    if not is_valid_play(card, hand, lead, state.trump):
        if lead is not None and any(c.suit == lead for c in hand):
            return f"you must follow {lead.value}"
        return f"you must play a trump ({state.trump.value})" if state.trump else "illegal card"
    return None

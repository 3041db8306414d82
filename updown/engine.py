# updown/engine.py
from __future__ import annotations

import dataclasses
import logging
import random
from typing import List, Optional, Sequence, Tuple

from .cards import DECK_SIZE, Card, create_deck, deal_cards, shuffle_deck
from .rules import get_trick_winner, is_valid_bid_sum, is_valid_play, lead_suit_of
from .scoring import calculate_deal_points
from .seats import NUM_PLAYERS, next_player_left, player_at_left_from
from .state import (
    BIDDING_PHASES,
    DealRecord,
    DealType,
    GameState,
    LastCompletedTrick,
    Phase,
    Player,
)

logger = logging.getLogger(__name__)

TOTAL_DEALS = 28
DARK_DEAL_TRICKS = 9

HUMAN_ID = "human"
DEFAULT_AI_NAMES = ("AI North", "AI West", "AI East")

_EMPTY_BIDS: Tuple[Optional[int], ...] = (None,) * NUM_PLAYERS


# -------------------------------------------------------------------------
# Match setup
# -------------------------------------------------------------------------


def create_game(
    player_names: Optional[Sequence[str]] = None,
    human_name: str = "You",
    first_dealer: Optional[int] = None,
    rng: Optional[random.Random] = None,
) -> GameState:
    """
    Build a fresh offline match: the local human in seat 0, AI in seats 1..3.

    No cards are dealt yet; call `start_deal` to begin deal 1.
    """
    if player_names is None:
        player_names = [human_name, *DEFAULT_AI_NAMES]
    if len(player_names) != NUM_PLAYERS:
        raise ValueError("Up&Down is played by exactly 4 players")

    ids = [HUMAN_ID, "ai1", "ai2", "ai3"]
    players = tuple(Player(id=pid, name=name) for pid, name in zip(ids, player_names))

    if first_dealer is None:
        first_dealer = (rng or random).randrange(NUM_PLAYERS)
    return _new_match(players, first_dealer)


def create_online_game(player_names: Sequence[str]) -> GameState:
    """Match for a room: ids follow the room slots, the host (slot 0) deals first."""
    if len(player_names) != NUM_PLAYERS:
        raise ValueError("Up&Down is played by exactly 4 players")
    players = tuple(
        Player(id=f"slot-{i}", name=name) for i, name in enumerate(player_names)
    )
    return _new_match(players, 0)


def _new_match(players: Tuple[Player, ...], first_dealer: int) -> GameState:
    return GameState(
        phase=Phase.BIDDING,
        players=players,
        dealer_index=first_dealer % NUM_PLAYERS,
        current_player_index=0,
        trump=None,
        tricks_in_deal=1,
        current_trick=(),
        trick_leader_index=0,
        bids=_EMPTY_BIDS,
        deal_number=1,
    )


def get_tricks_in_deal(deal_number: int) -> int:
    """
    Cards per player for a deal: up 1..9, three more 9s, down 8..1, then four
    no-trump 9s and four dark 9s.
    """
    if deal_number <= 9:
        return deal_number
    if deal_number <= 12:
        return 9
    if deal_number <= 20:
        return 21 - deal_number
    if deal_number <= 24:
        return 9
    if deal_number <= 28:
        return DARK_DEAL_TRICKS
    return 1


def get_deal_type(deal_number: int) -> DealType:
    if deal_number <= 20:
        return DealType.NORMAL
    if deal_number <= 24:
        return DealType.NO_TRUMP
    if deal_number <= 28:
        return DealType.DARK
    return DealType.NORMAL


# -------------------------------------------------------------------------
# Deal lifecycle
# -------------------------------------------------------------------------


def _fresh_players(
    players: Sequence[Player],
    hands: Optional[List[List[Card]]] = None,
    keep_bids: bool = False,
) -> Tuple[Player, ...]:
    return tuple(
        dataclasses.replace(
            p,
            hand=tuple(hands[i]) if hands is not None else (),
            bid=p.bid if keep_bids else None,
            tricks_taken=0,
        )
        for i, p in enumerate(players)
    )


def start_deal(state: GameState, rng: Optional[random.Random] = None) -> GameState:
    """Shuffle and deal the deal named by `state.deal_number`."""
    deal_type = get_deal_type(state.deal_number)
    if deal_type == DealType.DARK:
        return start_dark_bidding(state)

    tricks_in_deal = get_tricks_in_deal(state.deal_number)
    deck = shuffle_deck(create_deck(), rng)
    dealer_index = state.dealer_index % NUM_PLAYERS
    first_receiver = next_player_left(dealer_index)
    hands = deal_cards(deck, NUM_PLAYERS, tricks_in_deal, first_receiver)

    trump_card: Optional[Card] = None
    if deal_type != DealType.NO_TRUMP:
        # Next undealt card; with the whole deck out it is the dealer's last card.
        cards_dealt = tricks_in_deal * NUM_PLAYERS
        trump_card = deck[cards_dealt] if cards_dealt < DECK_SIZE else deck[-1]

    logger.debug(
        "Dealt deal %d (%s, %d tricks), dealer %d, trump %s",
        state.deal_number,
        deal_type.value,
        tricks_in_deal,
        dealer_index,
        trump_card,
    )
    return dataclasses.replace(
        state,
        phase=Phase.BIDDING,
        players=_fresh_players(state.players, hands),
        dealer_index=dealer_index,
        current_player_index=first_receiver,
        trump=trump_card.suit if trump_card is not None else None,
        trump_card=trump_card,
        tricks_in_deal=tricks_in_deal,
        current_trick=(),
        trick_leader_index=first_receiver,
        bids=_EMPTY_BIDS,
        last_completed_trick=None,
    )


def start_dark_bidding(state: GameState) -> GameState:
    """Blind deal: everyone bids before any card is dealt."""
    dealer_index = state.dealer_index % NUM_PLAYERS
    first_bidder = next_player_left(dealer_index)
    return dataclasses.replace(
        state,
        phase=Phase.DARK_BIDDING,
        players=_fresh_players(state.players),
        dealer_index=dealer_index,
        current_player_index=first_bidder,
        trump=None,
        trump_card=None,
        tricks_in_deal=DARK_DEAL_TRICKS,
        current_trick=(),
        trick_leader_index=first_bidder,
        bids=_EMPTY_BIDS,
        last_completed_trick=None,
    )


def complete_dark_deal(
    state: GameState, rng: Optional[random.Random] = None
) -> GameState:
    """Deal the blind deal once the bids are locked in and start play."""
    deck = shuffle_deck(create_deck(), rng)
    dealer_index = state.dealer_index % NUM_PLAYERS
    first_receiver = next_player_left(dealer_index)
    hands = deal_cards(deck, NUM_PLAYERS, DARK_DEAL_TRICKS, first_receiver)

    # The whole deck is dealt: trump is the last card, which the dealer holds.
    trump_card = deck[-1]
    return dataclasses.replace(
        state,
        phase=Phase.PLAYING,
        players=_fresh_players(state.players, hands, keep_bids=True),
        trump=trump_card.suit,
        trump_card=trump_card,
        current_trick=(),
        trick_leader_index=first_receiver,
        current_player_index=first_receiver,
        last_completed_trick=None,
    )


def start_next_deal(
    state: GameState, rng: Optional[random.Random] = None
) -> Optional[GameState]:
    """Next deal of the match, or None once all 28 deals have been played."""
    if state.deal_number >= TOTAL_DEALS:
        return None
    prepared = dataclasses.replace(
        state,
        deal_number=state.deal_number + 1,
        dealer_index=next_player_left(state.dealer_index),
    )
    return start_deal(prepared, rng)


def finish_match(state: GameState) -> GameState:
    """Mark a match whose last deal is over as complete; otherwise unchanged."""
    if state.deal_number >= TOTAL_DEALS and state.phase == Phase.DEAL_COMPLETE:
        return dataclasses.replace(state, phase=Phase.GAME_COMPLETE)
    return state


# -------------------------------------------------------------------------
# Player actions
# -------------------------------------------------------------------------


def place_bid(
    state: GameState,
    player_index: int,
    bid: int,
    rng: Optional[random.Random] = None,
) -> GameState:
    """
    Record a bid. Out-of-turn, repeated or out-of-range bids are ignored and
    the input state is returned unchanged.
    """
    if (
        state.phase not in BIDDING_PHASES
        or player_index != state.current_player_index
        or state.bids[player_index] is not None
        or isinstance(bid, bool)
        or not isinstance(bid, int)
        or not 0 <= bid <= state.tricks_in_deal
    ):
        logger.debug("Ignored bid %r from seat %d", bid, player_index)
        return state

    bids = list(state.bids)
    bids[player_index] = bid
    players = tuple(
        dataclasses.replace(p, bid=bid) if i == player_index else p
        for i, p in enumerate(state.players)
    )

    if any(b is None for b in bids):
        return dataclasses.replace(
            state,
            bids=tuple(bids),
            players=players,
            current_player_index=next_player_left(player_index),
        )

    dealer = state.dealer_index
    if not is_valid_bid_sum(bids, state.tricks_in_deal):
        # The dealer has to change the bid; the other three stand.
        logger.debug(
            "Bids %s add up to %d; dealer %d must bid again",
            bids,
            state.tricks_in_deal,
            dealer,
        )
        bids[dealer] = None
        return dataclasses.replace(
            state,
            bids=tuple(bids),
            players=tuple(
                dataclasses.replace(p, bid=None) if i == dealer else p
                for i, p in enumerate(players)
            ),
            current_player_index=dealer,
        )

    locked = dataclasses.replace(state, bids=tuple(bids), players=players)
    if state.phase == Phase.DARK_BIDDING:
        return complete_dark_deal(locked, rng)

    return dataclasses.replace(
        locked,
        phase=Phase.PLAYING,
        current_player_index=state.trick_leader_index,
        current_trick=(),
    )


def play_card(state: GameState, player_index: int, card: Card) -> GameState:
    """
    Play a card. Illegal plays (wrong phase or turn, card not held, suit or
    trump obligations broken) are ignored and the input state is returned.
    """
    if (
        state.phase != Phase.PLAYING
        or player_index != state.current_player_index
        or card not in state.players[player_index].hand
        or not is_valid_play(
            card,
            state.players[player_index].hand,
            lead_suit_of(state),
            state.trump,
        )
    ):
        logger.debug("Ignored play of %s from seat %d", card, player_index)
        return state

    players = tuple(
        dataclasses.replace(p, hand=tuple(c for c in p.hand if c != card))
        if i == player_index
        else p
        for i, p in enumerate(state.players)
    )
    trick = state.current_trick + (card,)

    if len(trick) < NUM_PLAYERS:
        return dataclasses.replace(
            state,
            players=players,
            current_trick=trick,
            current_player_index=next_player_left(player_index),
        )

    offset = get_trick_winner(trick, trick[0].suit, state.trump)
    winner = player_at_left_from(state.trick_leader_index, offset)
    players = tuple(
        dataclasses.replace(p, tricks_taken=p.tricks_taken + 1) if i == winner else p
        for i, p in enumerate(players)
    )
    completed = LastCompletedTrick(
        cards=trick,
        winner_index=winner,
        leader_index=state.trick_leader_index,
    )

    if all(not p.hand for p in players):
        return _score_deal(state, players, completed)

    return dataclasses.replace(
        state,
        players=players,
        current_trick=(),
        trick_leader_index=winner,
        current_player_index=winner,
        last_completed_trick=completed,
    )


def _score_deal(
    state: GameState,
    players: Tuple[Player, ...],
    completed: LastCompletedTrick,
) -> GameState:
    points = tuple(
        calculate_deal_points(state.bids[i], p.tricks_taken)
        for i, p in enumerate(players)
    )
    record = DealRecord(
        deal_number=state.deal_number,
        bids=tuple(state.bids),
        points=points,
        taken=tuple(p.tricks_taken for p in players),
    )
    logger.info(
        "Finished deal %d/%d: bids %s, taken %s, points %s",
        state.deal_number,
        TOTAL_DEALS,
        list(state.bids),
        [p.tricks_taken for p in players],
        list(points),
    )
    return dataclasses.replace(
        state,
        phase=Phase.DEAL_COMPLETE,
        players=tuple(
            dataclasses.replace(p, score=p.score + points[i])
            for i, p in enumerate(players)
        ),
        current_trick=(),
        current_player_index=completed.winner_index,
        last_completed_trick=completed,
        deal_history=state.deal_history + (record,),
    )


# -------------------------------------------------------------------------
# Queries
# -------------------------------------------------------------------------


def get_valid_plays(state: GameState, player_index: int) -> List[Card]:
    """Cards from the player's hand that may legally be played now."""
    hand = state.players[player_index].hand
    lead = lead_suit_of(state)
    return [c for c in hand if is_valid_play(c, hand, lead, state.trump)]


def is_human_player(state: GameState, index: int) -> bool:
    return state.players[index].id == HUMAN_ID


def match_winners(state: GameState) -> List[int]:
    """Seats sharing the top score (more than one on a tie)."""
    best = max(p.score for p in state.players)
    return [i for i, p in enumerate(state.players) if p.score == best]

# tests/test_engine.py
import dataclasses
import random

import pytest

from updown.agents.heuristic import ai_bid
from updown.cards import Card, Rank, Suit
from updown.engine import (
    TOTAL_DEALS,
    create_game,
    create_online_game,
    finish_match,
    get_deal_type,
    get_tricks_in_deal,
    get_valid_plays,
    is_human_player,
    match_winners,
    place_bid,
    play_card,
    start_deal,
    start_next_deal,
)
from updown.scoring import calculate_deal_points
from updown.seats import next_player_left
from updown.state import DealType, Phase

from conftest import drive_deal


def test_create_game_seats_the_human_first():
    state = create_game(first_dealer=2)
    assert [p.id for p in state.players] == ["human", "ai1", "ai2", "ai3"]
    assert state.players[0].name == "You"
    assert state.dealer_index == 2
    assert state.deal_number == 1
    with pytest.raises(ValueError):
        create_game(player_names=["a", "b", "c"])


def test_create_online_game_follows_slots():
    state = create_online_game(["Host", "Guest", "AI North", "AI West"])
    assert [p.id for p in state.players] == ["slot-0", "slot-1", "slot-2", "slot-3"]
    assert state.dealer_index == 0


def test_deal_schedule():
    expected = list(range(1, 10)) + [9, 9, 9] + list(range(8, 0, -1)) + [9] * 8
    assert [get_tricks_in_deal(n) for n in range(1, 29)] == expected
    assert get_deal_type(20) == DealType.NORMAL
    assert get_deal_type(21) == DealType.NO_TRUMP
    assert get_deal_type(24) == DealType.NO_TRUMP
    assert get_deal_type(25) == DealType.DARK
    assert get_deal_type(28) == DealType.DARK
    assert get_deal_type(29) == DealType.NORMAL


def test_start_deal_one(first_deal):
    state = first_deal
    assert state.phase == Phase.BIDDING
    assert state.tricks_in_deal == 1
    assert all(len(p.hand) == 1 for p in state.players)
    assert state.trump_card is not None
    assert state.trump == state.trump_card.suit
    assert all(state.trump_card not in p.hand for p in state.players)
    assert state.current_player_index == next_player_left(state.dealer_index)
    assert state.trick_leader_index == state.current_player_index


def test_full_deck_deal_turns_up_the_dealers_last_card(rng):
    state = dataclasses.replace(create_game(first_dealer=3), deal_number=9)
    state = start_deal(state, rng)
    assert all(len(p.hand) == 9 for p in state.players)
    assert state.trump_card in state.players[3].hand


def test_no_trump_deal(rng):
    state = dataclasses.replace(create_game(first_dealer=0), deal_number=22)
    state = start_deal(state, rng)
    assert state.trump is None
    assert state.trump_card is None
    assert all(len(p.hand) == 9 for p in state.players)


def test_dark_deal_bids_before_the_cards(rng):
    state = dataclasses.replace(create_game(first_dealer=1), deal_number=25)
    state = start_deal(state, rng)
    assert state.phase == Phase.DARK_BIDDING
    assert state.tricks_in_deal == 9
    assert all(p.hand == () for p in state.players)
    assert state.trump is None

    for _ in range(4):
        state = place_bid(state, state.current_player_index, 1, rng)

    assert state.phase == Phase.PLAYING
    assert all(len(p.hand) == 9 for p in state.players)
    assert all(p.bid == 1 for p in state.players)
    # The whole deck is out: the turned-up card is the dealer's last one.
    assert state.trump_card in state.players[1].hand
    assert state.trump == state.trump_card.suit
    assert state.current_player_index == next_player_left(1)


def test_dealer_must_bid_again_when_bids_add_up(rng):
    state = dataclasses.replace(create_game(first_dealer=0), deal_number=2)
    state = start_deal(state, rng)
    order = [2, 1, 3]
    for seat, bid in zip(order, [0, 1, 0]):
        state = place_bid(state, seat, bid, rng)
    assert state.current_player_index == 0

    bounced = place_bid(state, 0, 1, rng)
    assert bounced.phase == Phase.BIDDING
    assert bounced.bids == (None, 1, 0, 0)
    assert bounced.players[0].bid is None
    assert bounced.current_player_index == 0

    final = place_bid(bounced, 0, 0, rng)
    assert final.phase == Phase.PLAYING
    assert final.bids == (0, 1, 0, 0)
    assert final.current_player_index == final.trick_leader_index == 2


def test_ignored_bids_return_the_same_state(first_deal, rng):
    state = first_deal
    seat = state.current_player_index
    other = next_player_left(seat)
    assert place_bid(state, other, 0, rng) is state
    assert place_bid(state, seat, 2, rng) is state
    assert place_bid(state, seat, -1, rng) is state
    after = place_bid(state, seat, 0, rng)
    assert place_bid(after, seat, 0, rng) is after


def _bid_out(state, rng):
    while state.phase == Phase.BIDDING:
        idx = state.current_player_index
        state = place_bid(state, idx, ai_bid(state, idx), rng)
    return state


def test_illegal_play_is_a_no_op(rng):
    state = dataclasses.replace(create_game(first_dealer=0), deal_number=5)
    state = _bid_out(start_deal(state, rng), rng)
    seat = state.current_player_index
    held = set(state.players[seat].hand)
    foreign = next(c for c in state.players[next_player_left(seat)].hand if c not in held)

    assert play_card(state, seat, foreign) == state
    assert play_card(state, next_player_left(seat), state.players[next_player_left(seat)].hand[0]) is state
    assert play_card(state, seat, foreign) is state


def test_must_follow_suit_in_play():
    base = create_game(first_dealer=3)
    spade_six = Card(Suit.SPADES, Rank.SIX)
    heart_seven = Card(Suit.HEARTS, Rank.SEVEN)
    players = tuple(
        dataclasses.replace(p, hand=(spade_six, heart_seven)) if i == 0 else p
        for i, p in enumerate(base.players)
    )
    state = dataclasses.replace(
        base,
        phase=Phase.PLAYING,
        players=players,
        tricks_in_deal=2,
        trump=Suit.HEARTS,
        current_trick=(Card(Suit.SPADES, Rank.ACE),),
        trick_leader_index=3,
        current_player_index=0,
        bids=(0, 0, 0, 0),
    )
    assert get_valid_plays(state, 0) == [spade_six]
    assert play_card(state, 0, heart_seven) is state
    assert play_card(state, 0, spade_six).current_trick == (Card(Suit.SPADES, Rank.ACE), spade_six)


def test_trick_goes_to_the_seat_that_played_the_winning_card():
    base = create_game(first_dealer=0)
    hands = {
        1: Card(Suit.SPADES, Rank.SIX),
        3: Card(Suit.SPADES, Rank.ACE),
        0: Card(Suit.HEARTS, Rank.KING),
        2: Card(Suit.SPADES, Rank.TEN),
    }
    state = dataclasses.replace(
        base,
        phase=Phase.PLAYING,
        players=tuple(
            dataclasses.replace(p, hand=(hands[i],), bid=0) for i, p in enumerate(base.players)
        ),
        tricks_in_deal=1,
        trump=Suit.HEARTS,
        current_trick=(),
        trick_leader_index=1,
        current_player_index=1,
        bids=(0, 0, 0, 0),
    )
    for seat in (1, 3, 0, 2):
        state = play_card(state, seat, hands[seat])

    assert state.phase == Phase.DEAL_COMPLETE
    assert state.last_completed_trick.winner_index == 0
    assert state.last_completed_trick.leader_index == 1
    assert state.players[0].tricks_taken == 1
    assert [p.score for p in state.players] == [1, 5, 5, 5]
    assert state.deal_history[-1].points == (1, 5, 5, 5)
    assert state.deal_history[-1].taken == (1, 0, 0, 0)
    assert state.current_player_index == 0


def test_full_match():
    rng = random.Random(99)
    state = start_deal(create_game(rng=rng), rng)
    totals = [0, 0, 0, 0]
    dealers = []

    for deal_number in range(1, TOTAL_DEALS + 1):
        assert state.deal_number == deal_number
        dealers.append(state.dealer_index)
        state = drive_deal(state, rng)
        assert state.phase == Phase.DEAL_COMPLETE
        record = state.deal_history[-1]
        assert sum(record.bids) != state.tricks_in_deal
        assert sum(p.tricks_taken for p in state.players) == state.tricks_in_deal
        for i, p in enumerate(state.players):
            points = calculate_deal_points(record.bids[i], p.tricks_taken)
            assert record.points[i] == points
            totals[i] += points
        if deal_number < TOTAL_DEALS:
            state = start_next_deal(state, rng)

    assert start_next_deal(state, rng) is None
    assert len(state.deal_history) == TOTAL_DEALS
    assert [p.score for p in state.players] == totals
    for prev, cur in zip(dealers, dealers[1:]):
        assert cur == next_player_left(prev)

    final = finish_match(state)
    assert final.phase == Phase.GAME_COMPLETE
    assert match_winners(final)
    assert finish_match(dataclasses.replace(state, deal_number=5)).phase == Phase.DEAL_COMPLETE


def test_only_the_local_seat_is_human():
    state = create_game()
    assert is_human_player(state, 0)
    assert not any(is_human_player(state, i) for i in (1, 2, 3))
    online = create_online_game(["Host", "Guest", "AI North", "AI West"])
    assert not any(is_human_player(online, i) for i in range(4))

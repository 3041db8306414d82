# tests/test_cards.py
import random

import pytest

from updown.cards import (
    DECK_SIZE,
    Card,
    Rank,
    Suit,
    create_deck,
    deal_cards,
    parse_card,
    shuffle_deck,
)
from updown.seats import next_player_left


def test_deck_has_36_distinct_cards():
    deck = create_deck()
    assert len(deck) == DECK_SIZE == 36
    assert len(set(deck)) == 36
    assert Card(Suit.SPADES, Rank.SIX) in deck
    assert Card(Suit.CLUBS, Rank.ACE) in deck


def test_card_str_and_validation():
    assert str(Card(Suit.SPADES, Rank.TEN)) == "10♠"
    assert str(Card(Suit.HEARTS, Rank.QUEEN)) == "Q♥"
    with pytest.raises(ValueError):
        Card("♠", Rank.TEN)


def test_shuffle_returns_a_permutation_and_leaves_input_alone():
    deck = create_deck()
    shuffled = shuffle_deck(deck, random.Random(3))
    assert sorted(map(str, shuffled)) == sorted(map(str, deck))
    assert deck == create_deck()


def test_shuffle_is_reproducible_with_a_seed():
    deck = create_deck()
    assert shuffle_deck(deck, random.Random(42)) == shuffle_deck(deck, random.Random(42))


def test_shuffle_position_of_a_card_is_uniform():
    # Chi-square on the final position of the ace of spades.
    rng = random.Random(2024)
    deck = create_deck()
    target = Card(Suit.SPADES, Rank.ACE)
    trials = 7200
    counts = [0] * DECK_SIZE
    for _ in range(trials):
        counts[shuffle_deck(deck, rng).index(target)] += 1

    expected = trials / DECK_SIZE
    chi2 = sum((c - expected) ** 2 / expected for c in counts)
    # 35 degrees of freedom; 80 is far beyond the 0.1% critical value (66.6).
    assert chi2 < 80


@pytest.mark.parametrize("first_receiver", [0, 1, 2, 3])
def test_deal_conservation(first_receiver):
    deck = shuffle_deck(create_deck(), random.Random(first_receiver))
    for n in range(1, 10):
        hands = deal_cards(deck, 4, n, first_receiver)
        assert [len(h) for h in hands] == [n] * 4
        dealt = [c for h in hands for c in h]
        assert len(set(dealt)) == 4 * n
        assert set(dealt) == set(deck[: 4 * n])


def test_deal_goes_around_to_the_left():
    deck = create_deck()
    hands = deal_cards(deck, 4, 2, first_receiver=2)
    # 2 -> 1 -> 3 -> 0 -> 2 ...
    order = [2, 1, 3, 0]
    for i, seat in enumerate(order):
        assert hands[seat][0] == deck[i]
        assert hands[seat][1] == deck[i + 4]
    assert next_player_left(0) == 2


def test_deal_rejects_bad_arguments():
    with pytest.raises(ValueError):
        deal_cards(create_deck(), 4, 10)
    with pytest.raises(ValueError):
        deal_cards(create_deck(), 3, 1)


def test_parse_card():
    assert parse_card("10s") == Card(Suit.SPADES, Rank.TEN)
    assert parse_card("Qh") == Card(Suit.HEARTS, Rank.QUEEN)
    assert parse_card(" a d ") == Card(Suit.DIAMONDS, Rank.ACE)
    assert parse_card("6♣") == Card(Suit.CLUBS, Rank.SIX)
    assert parse_card("1s") is None
    assert parse_card("Kx") is None
    assert parse_card("") is None

# updown/cards.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence
import enum
import random

from .seats import NUM_PLAYERS, next_player_left


class Suit(enum.Enum):
    SPADES = "♠"
    HEARTS = "♥"
    DIAMONDS = "♦"
    CLUBS = "♣"


class Rank(enum.Enum):
    SIX = "6"
    SEVEN = "7"
    EIGHT = "8"
    NINE = "9"
    TEN = "10"
    JACK = "J"
    QUEEN = "Q"
    KING = "K"
    ACE = "A"

    @property
    def order(self) -> int:
        """0 for a six up to 8 for an ace."""
        return _RANK_ORDER[self]


_RANK_ORDER: Dict[Rank, int] = {rank: i for i, rank in enumerate(Rank)}

SUITS: List[Suit] = list(Suit)
RANKS: List[Rank] = list(Rank)
DECK_SIZE = len(SUITS) * len(RANKS)


@dataclass(frozen=True)
class Card:
    """A single card of the 36-card deck."""

    suit: Suit
    rank: Rank

    def __post_init__(self) -> None:
        if not isinstance(self.suit, Suit) or not isinstance(self.rank, Rank):
            raise ValueError("Card needs a Suit and a Rank")

    def __str__(self) -> str:
        return f"{self.rank.value}{self.suit.value}"


def card_to_dict(card: Card) -> Dict[str, Any]:
    """Convert a Card to a JSON-serializable dict."""
    return {"suit": card.suit.value, "rank": card.rank.value}


def dict_to_card(data: Dict[str, Any]) -> Card:
    """Convert a dict back into a Card. Raises ValueError on unknown values."""
    return Card(suit=Suit(data["suit"]), rank=Rank(data["rank"]))


def parse_card(text: str) -> Optional[Card]:
    """
    Parse user input such as "10♠", "Qh" or "a d" into a Card.

    Suit letters s/h/d/c are accepted alongside the symbols. Returns None
    when the text does not name a card.
    """
    letters = {"s": Suit.SPADES, "h": Suit.HEARTS, "d": Suit.DIAMONDS, "c": Suit.CLUBS}
    cleaned = text.strip().replace(" ", "")
    if len(cleaned) < 2:
        return None
    rank_text, suit_text = cleaned[:-1].upper(), cleaned[-1]
    suit = letters.get(suit_text.lower())
    if suit is None:
        try:
            suit = Suit(suit_text)
        except ValueError:
            return None
    try:
        rank = Rank(rank_text)
    except ValueError:
        return None
    return Card(suit, rank)


def create_deck() -> List[Card]:
    """All 36 cards, suit by suit, ranks ascending."""
    return [Card(suit, rank) for suit in SUITS for rank in RANKS]


def shuffle_deck(
    deck: Sequence[Card],
    rng: Optional[random.Random] = None,
) -> List[Card]:
    """Return a shuffled copy of `deck`. Uses provided RNG if given."""
    result = list(deck)
    if rng is None:
        random.shuffle(result)
    else:
        rng.shuffle(result)
    return result


def deal_cards(
    deck: Sequence[Card],
    player_count: int = NUM_PLAYERS,
    cards_per_player: int = 1,
    first_receiver: int = 0,
) -> List[List[Card]]:
    """
    Deal cards one at a time around the table.

    The first card goes to `first_receiver`; each following card goes to
    the next player to the left (0 -> 2 -> 1 -> 3 -> 0), matching how the
    seats are arranged at the table. Returns one hand per seat index.
    """
    if player_count != NUM_PLAYERS:
        raise ValueError("Up&Down is dealt to exactly 4 players")
    total_needed = player_count * cards_per_player
    if total_needed > len(deck):
        raise ValueError("Not enough cards in deck to deal")

    hands: List[List[Card]] = [[] for _ in range(player_count)]
    receiver = first_receiver % player_count
    for card in deck[:total_needed]:
        hands[receiver].append(card)
        receiver = next_player_left(receiver)
    return hands

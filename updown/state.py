# updown/state.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Tuple
import enum

from .cards import Card, Suit


class Phase(enum.Enum):
    BIDDING = "bidding"
    DARK_BIDDING = "dark-bidding"  # blind deal: bids before any card is dealt
    PLAYING = "playing"
    DEAL_COMPLETE = "deal-complete"
    GAME_COMPLETE = "game-complete"


BIDDING_PHASES = (Phase.BIDDING, Phase.DARK_BIDDING)


class DealType(enum.Enum):
    NORMAL = "normal"
    NO_TRUMP = "no-trump"
    DARK = "dark"


@dataclass(frozen=True)
class Player:
    id: str
    name: str
    hand: Tuple[Card, ...] = ()
    bid: Optional[int] = None
    tricks_taken: int = 0
    score: int = 0


@dataclass(frozen=True)
class LastCompletedTrick:
    # cards in play order; both indices are seats
    cards: Tuple[Card, ...]
    winner_index: int
    leader_index: int


@dataclass(frozen=True)
class DealRecord:
    """Bids, tricks taken and points of one finished deal, indexed by seat."""

    deal_number: int
    bids: Tuple[int, int, int, int]
    points: Tuple[int, int, int, int]
    # None for records saved without it; recover from bids and points then.
    taken: Optional[Tuple[int, int, int, int]] = None


@dataclass(frozen=True)
class GameState:
    """
    One immutable snapshot of a match.

    Every engine transition takes a GameState and returns a new one; nothing
    here is ever mutated after construction.
    """

    phase: Phase
    players: Tuple[Player, ...]
    dealer_index: int
    current_player_index: int
    trump: Optional[Suit]
    tricks_in_deal: int
    current_trick: Tuple[Card, ...]
    trick_leader_index: int
    bids: Tuple[Optional[int], ...]
    deal_number: int
    trump_card: Optional[Card] = None
    last_completed_trick: Optional[LastCompletedTrick] = None
    deal_history: Tuple[DealRecord, ...] = field(default_factory=tuple)

    @property
    def num_players(self) -> int:
        return len(self.players)

    @property
    def current_player(self) -> Player:
        return self.players[self.current_player_index]

    @property
    def dealer(self) -> Player:
        return self.players[self.dealer_index]

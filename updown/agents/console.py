# updown/agents/console.py
from __future__ import annotations

from typing import Callable, List, Optional

from ..cards import Card, parse_card
from ..engine import get_valid_plays
from ..rules import bid_rejection_reason, play_rejection_reason
from ..state import GameState, Phase
from .base import UpDownAgent


def describe_table(state: GameState, player_index: int) -> List[str]:
    """Lines describing what the player at `player_index` may see."""
    me = state.players[player_index]
    trump = state.trump.value if state.trump is not None else "none"
    lines = [
        f"Deal {state.deal_number}: {state.tricks_in_deal} trick(s), trump {trump}, "
        f"dealer {state.dealer.name}",
    ]
    bids = ", ".join(
        f"{p.name}={'-' if b is None else b} ({p.tricks_taken} taken)"
        for p, b in zip(state.players, state.bids)
    )
    lines.append(f"Bids: {bids}")
    if state.current_trick:
        lines.append("On the table: " + " ".join(str(c) for c in state.current_trick))
    if state.phase == Phase.DARK_BIDDING:
        lines.append("Blind deal: bid before seeing your cards.")
    else:
        lines.append("Your hand: " + " ".join(str(c) for c in me.hand))
    return lines


class ConsoleAgent(UpDownAgent):
    """A human at a terminal. Keeps asking until the answer is legal."""

    def __init__(
        self,
        input_fn: Callable[[str], str] = input,
        print_fn: Callable[[str], None] = print,
    ) -> None:
        self._input = input_fn
        self._print = print_fn

    def choose_bid(self, state: GameState, player_index: int) -> int:
        for line in describe_table(state, player_index):
            self._print(line)
        while True:
            answer = self._input(f"Your bid (0-{state.tricks_in_deal}): ").strip()
            try:
                bid = int(answer)
            except ValueError:
                self._print("Please enter a number.")
                continue
            reason = bid_rejection_reason(state, player_index, bid)
            if reason is None:
                return bid
            self._print(reason)

    def choose_card(self, state: GameState, player_index: int) -> Optional[Card]:
        legal = get_valid_plays(state, player_index)
        if not legal:
            return None
        for line in describe_table(state, player_index):
            self._print(line)
        self._print("You may play: " + " ".join(str(c) for c in legal))
        while True:
            card = parse_card(self._input("Card to play (e.g. 10s, Qh): "))
            if card is None:
                self._print("Could not read that card.")
                continue
            reason = play_rejection_reason(state, player_index, card)
            if reason is None:
                return card
            self._print(reason)

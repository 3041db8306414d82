# updown/match.py
from __future__ import annotations

import logging
import random
from typing import List, Optional, Sequence

from .agents.base import UpDownAgent
from .agents.heuristic import ai_bid, ai_play
from .engine import (
    TOTAL_DEALS,
    create_game,
    finish_match,
    place_bid,
    play_card,
    start_deal,
    start_next_deal,
)
from .persistence import SnapshotStore
from .rules import bid_rejection_reason, play_rejection_reason
from .seats import NUM_PLAYERS
from .state import BIDDING_PHASES, GameState, Phase
from .transcript import MatchTranscript

logger = logging.getLogger(__name__)


class MatchRunner:
    """
    Drives a full 28-deal match with pluggable agents.

    This module only sequences engine transitions; every bid and card goes
    through `place_bid` / `play_card` exactly as a UI action would. An agent
    answer the rules refuse is logged and replaced by the heuristic AI's
    answer so the match keeps moving.
    """

    def __init__(
        self,
        agents: Sequence[UpDownAgent],
        player_names: Optional[Sequence[str]] = None,
        rng_seed: Optional[int] = None,
        game_label: Optional[str] = None,
        transcript: Optional[MatchTranscript] = None,
        snapshot_store: Optional[SnapshotStore] = None,
        first_dealer: Optional[int] = None,
    ) -> None:
        if len(agents) != NUM_PLAYERS:
            raise ValueError("Up&Down needs exactly 4 agents")

        self.agents: List[UpDownAgent] = list(agents)
        self.player_names = list(player_names) if player_names is not None else None
        self.rng = random.Random(rng_seed)
        self.game_label = game_label
        self.transcript = transcript
        self.snapshot_store = snapshot_store
        self.first_dealer = first_dealer
        self.rejections = 0

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def new_match(self) -> GameState:
        """Deal 1 of a fresh match, ready for bidding."""
        state = create_game(
            player_names=self.player_names,
            first_dealer=self.first_dealer,
            rng=self.rng,
        )
        return start_deal(state, self.rng)

    def play_match(self, state: Optional[GameState] = None) -> GameState:
        """
        Play a match to the end and return the final state.

        Pass a saved `state` to resume; it may be mid-deal.
        """
        if state is None:
            state = self.new_match()
        self._log_deal_start(state)

        while True:
            state = self.play_deal(state)
            next_state = start_next_deal(state, self.rng)
            if next_state is None:
                break
            state = next_state
            self._save(state)
            self._log_deal_start(state)

        state = finish_match(state)
        logger.info(
            "Finished match%s: scores %s",
            f" {self.game_label}" if self.game_label else "",
            [p.score for p in state.players],
        )
        if self.snapshot_store is not None:
            self.snapshot_store.clear()
        return state

    def play_deal(self, state: GameState) -> GameState:
        """Run actions until the current deal is complete."""
        while state.phase in BIDDING_PHASES or state.phase == Phase.PLAYING:
            state = self.step(state)
            self._save(state)
        logger.info(
            "Finished deal %d/%d%s",
            state.deal_number,
            TOTAL_DEALS,
            f" for {self.game_label}" if self.game_label else "",
        )
        results = ", ".join(
            f"{p.name} bid {b} took {p.tricks_taken} -> {p.score}"
            for p, b in zip(state.players, state.bids)
        )
        self._log(state, f"results: {results}")
        return state

    def step(self, state: GameState) -> GameState:
        """Ask whoever is on turn for one action and apply it."""
        idx = state.current_player_index
        if state.phase in BIDDING_PHASES:
            return self._bid(state, idx)
        if state.phase == Phase.PLAYING:
            return self._play(state, idx)
        return state

    # -------------------------------------------------------------------------
    # Turns
    # -------------------------------------------------------------------------

    def _bid(self, state: GameState, idx: int) -> GameState:
        bid = self.agents[idx].choose_bid(state, idx)
        reason = bid_rejection_reason(state, idx, bid)
        if reason is not None:
            fallback = ai_bid(state, idx)
            self._reject(state, idx, f"bid {bid!r}", reason, f"bid {fallback}")
            bid = fallback

        self._log(state, f"{state.players[idx].name} bids {bid}")
        return place_bid(state, idx, bid, self.rng)

    def _play(self, state: GameState, idx: int) -> GameState:
        card = self.agents[idx].choose_card(state, idx)
        reason = (
            "no card chosen"
            if card is None
            else play_rejection_reason(state, idx, card)
        )
        if reason is not None:
            fallback = ai_play(state, idx)
            if fallback is None:
                raise RuntimeError(f"Seat {idx} has no legal card to play")
            self._reject(state, idx, f"card {card}", reason, str(fallback))
            card = fallback

        self._log(state, f"{state.players[idx].name} plays {card}")
        new_state = play_card(state, idx, card)
        last = new_state.last_completed_trick
        if last is not None and last is not state.last_completed_trick:
            self._log(
                new_state,
                f"{new_state.players[last.winner_index].name} takes the trick "
                + " ".join(str(c) for c in last.cards),
            )
        return new_state

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _reject(
        self,
        state: GameState,
        idx: int,
        action: str,
        reason: str,
        replacement: str,
    ) -> None:
        self.rejections += 1
        label = f"seat {idx} ({state.players[idx].name})"
        logger.warning("Rejected %s from %s: %s", action, label, reason)
        if self.transcript is not None:
            self.transcript.log_rejection(
                game_id=self.game_label,
                deal_number=state.deal_number,
                agent_label=label,
                action=action,
                reason=reason,
                replacement=replacement,
            )

    def _log_deal_start(self, state: GameState) -> None:
        trump = state.trump_card if state.trump_card is not None else "none"
        self._log(
            state,
            f"deal of {state.tricks_in_deal}, dealer {state.dealer.name}, trump card {trump}",
        )

    def _log(self, state: GameState, message: str) -> None:
        if self.transcript is None:
            return
        self.transcript.log_event(
            game_id=self.game_label,
            deal_number=state.deal_number,
            phase=state.phase.value,
            message=message,
        )

    def _save(self, state: GameState) -> None:
        if self.snapshot_store is not None:
            self.snapshot_store.save(state)

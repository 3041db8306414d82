# updown/online/session.py
from __future__ import annotations

import logging
import random
import threading
from typing import List, Optional

from ..agents.heuristic import ai_bid, ai_play
from ..cards import Card
from ..codec import StateDecodeError, state_from_dict, state_to_dict
from ..engine import (
    DEFAULT_AI_NAMES,
    create_online_game,
    finish_match,
    place_bid,
    play_card,
    start_deal,
    start_next_deal,
)
from ..rotation import rotate_for_player
from ..rules import bid_rejection_reason, play_rejection_reason
from ..seats import NUM_PLAYERS
from ..state import BIDDING_PHASES, GameState, Phase
from .rooms import GameRoom, PlayerSlot, RoomFailure, RoomStore, STATUS_WAITING

logger = logging.getLogger(__name__)


def ai_name_for_slot(slot_index: int) -> str:
    return DEFAULT_AI_NAMES[(slot_index - 1) % len(DEFAULT_AI_NAMES)]


class OnlineGameSession:
    """
    One client's view of an online room.

    The room holds the canonical state; every action here is applied to that
    canonical state with the engine and written back as a whole blob, guarded
    by the room version seen last. `display_state` is the same state rotated
    so this client sits in seat 0. Sends return True/False and leave the
    reason for a False in `error`; nothing is retried.
    """

    def __init__(
        self,
        store: RoomStore,
        user_id: str,
        device_id: str,
        display_name: str,
        short_label: Optional[str] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.store = store
        self.user_id = user_id
        self.device_id = device_id
        self.display_name = display_name
        self.short_label = short_label
        self.rng = rng or random.Random()

        self.room_id: Optional[str] = None
        self.room_code: Optional[str] = None
        self.room_status: Optional[str] = None
        self.host_user_id: Optional[str] = None
        self.my_slot_index: Optional[int] = None
        self.player_slots: List[PlayerSlot] = []
        self.version: Optional[int] = None
        self.state: Optional[GameState] = None
        self.error: Optional[str] = None

        self._lock = threading.Lock()
        self._unsubscribe = None

    # -------------------------------------------------------------------------
    # Views
    # -------------------------------------------------------------------------

    @property
    def is_host(self) -> bool:
        return self.host_user_id is not None and self.host_user_id == self.user_id

    @property
    def display_state(self) -> Optional[GameState]:
        """Canonical state rotated so that this client is seat 0."""
        if self.state is None or self.my_slot_index is None:
            return None
        return rotate_for_player(self.state, self.my_slot_index)

    def is_ai_seat(self, seat: int) -> bool:
        for slot in self.player_slots:
            if slot.slot_index == seat:
                return slot.is_ai
        return True

    # -------------------------------------------------------------------------
    # Room membership
    # -------------------------------------------------------------------------

    def create_room(self) -> bool:
        result = self.store.create_room(
            self.user_id, self.device_id, self.display_name, self.short_label
        )
        if isinstance(result, RoomFailure):
            return self._fail(result.error)
        return self._attach(result.id, 0)

    def join_room(self, code: str) -> bool:
        result = self.store.join_room(
            code, self.user_id, self.device_id, self.display_name, self.short_label
        )
        if isinstance(result, RoomFailure):
            return self._fail(result.error)
        return self._attach(result.room_id, result.my_slot_index)

    def leave(self) -> bool:
        if self.room_id is None:
            return True
        failure = self.store.leave_room(self.room_id, self.device_id)
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        logger.info("Left room %s", self.room_code)
        with self._lock:
            self.room_id = None
            self.room_code = None
            self.room_status = None
            self.host_user_id = None
            self.my_slot_index = None
            self.player_slots = []
            self.version = None
            self.state = None
        if failure is not None:
            return self._fail(failure.error)
        return True

    def apply_room(self, room: GameRoom) -> None:
        """
        Take in a room snapshot from the store. Older versions are ignored and
        a state blob that does not decode leaves the current state in place.
        """
        if self.room_id is not None and room.id != self.room_id:
            return
        state = None
        if room.game_state is not None:
            try:
                state = state_from_dict(room.game_state)
            except StateDecodeError as exc:
                logger.warning("Ignoring malformed state in room %s: %s", room.code, exc)
                self.error = f"malformed room state: {exc}"
                return

        with self._lock:
            if self.version is not None and room.version < self.version:
                return
            self.room_id = room.id
            self.room_code = room.code
            self.room_status = room.status
            self.host_user_id = room.host_user_id
            self.player_slots = list(room.player_slots)
            self.version = room.version
            if state is not None:
                self.state = state

    # -------------------------------------------------------------------------
    # Game actions
    # -------------------------------------------------------------------------

    def start_game(self) -> bool:
        """Host only: seat AI in every empty slot and deal the first hand."""
        if not self.is_host:
            return self._fail("only the host can start the game")
        if self.room_status != STATUS_WAITING:
            return self._fail("game already started")

        taken = {s.slot_index: s for s in self.player_slots}
        slots = [
            taken.get(i) or PlayerSlot(slot_index=i, display_name=ai_name_for_slot(i))
            for i in range(NUM_PLAYERS)
        ]
        state = create_online_game([s.display_name for s in slots])
        state = start_deal(state, self.rng)
        logger.info(
            "Starting game in room %s: %s",
            self.room_code,
            ", ".join(s.display_name for s in slots),
        )
        return self._write(state, slots)

    def send_bid(self, bid: int) -> bool:
        if self.state is None or self.my_slot_index is None:
            return self._fail("no game in progress")
        reason = bid_rejection_reason(self.state, self.my_slot_index, bid)
        if reason is not None:
            return self._fail(reason)
        return self._write(place_bid(self.state, self.my_slot_index, bid, self.rng))

    def send_play(self, card: Card) -> bool:
        if self.state is None or self.my_slot_index is None:
            return self._fail("no game in progress")
        reason = play_rejection_reason(self.state, self.my_slot_index, card)
        if reason is not None:
            return self._fail(reason)
        return self._write(play_card(self.state, self.my_slot_index, card))

    def send_start_next_deal(self) -> bool:
        """Deal the next hand, or close the match after the last deal."""
        if self.state is None:
            return self._fail("no game in progress")
        if self.state.phase != Phase.DEAL_COMPLETE:
            return self._fail("the deal is not complete")
        next_state = start_next_deal(self.state, self.rng)
        if next_state is None:
            next_state = finish_match(self.state)
        return self._write(next_state)

    def play_ai_turn(self) -> bool:
        """Host only: make the move for an AI seat that is on turn."""
        if not self.is_host:
            return self._fail("only the host drives AI seats")
        state = self.state
        if state is None:
            return self._fail("no game in progress")
        if state.phase not in BIDDING_PHASES and state.phase != Phase.PLAYING:
            return False
        seat = state.current_player_index
        if not self.is_ai_seat(seat):
            return False

        if state.phase in BIDDING_PHASES:
            new_state = place_bid(state, seat, ai_bid(state, seat), self.rng)
        else:
            card = ai_play(state, seat)
            if card is None:
                return self._fail(f"seat {seat} has no card to play")
            new_state = play_card(state, seat, card)
        if new_state is state:
            return self._fail(f"AI move for seat {seat} was refused")
        return self._write(new_state)

    def run_ai_turns(self) -> int:
        """Play AI seats until a human is on turn or the deal ends. Returns moves made."""
        moves = 0
        while self.play_ai_turn():
            moves += 1
        return moves

    def replace_inactive_player(self, slot_index: int) -> bool:
        """Host only: hand a human slot over to the AI for the rest of the match."""
        if not self.is_host:
            return self._fail("only the host can replace players")
        if slot_index == self.my_slot_index:
            return self._fail("the host cannot replace themselves")
        slots = list(self.player_slots)
        for i, slot in enumerate(slots):
            if slot.slot_index == slot_index and not slot.is_ai:
                slots[i] = PlayerSlot(
                    slot_index=slot_index,
                    display_name=ai_name_for_slot(slot_index),
                    replaced_user_id=slot.user_id,
                    replaced_display_name=slot.display_name,
                )
                break
        else:
            return self._fail(f"slot {slot_index} has no player to replace")
        if self.state is None:
            return self._fail("no game in progress")
        logger.info("Replacing %s in slot %d with AI", self.player_slots[i].display_name, slot_index)
        return self._write(self.state, slots)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _attach(self, room_id: str, slot_index: int) -> bool:
        room = self.store.get_room(room_id)
        if room is None:
            return self._fail("room not found")
        self.my_slot_index = slot_index
        self.version = None
        self.room_id = room_id
        self.apply_room(room)
        if self._unsubscribe is not None:
            self._unsubscribe()
        self._unsubscribe = self.store.subscribe(room_id, self.apply_room)
        self.error = None
        logger.info("Joined room %s in slot %d", room.code, slot_index)
        return True

    def _write(self, state: GameState, slots: Optional[List[PlayerSlot]] = None) -> bool:
        if self.room_id is None:
            return self._fail("not in a room")
        result = self.store.update_room_state(
            self.room_id,
            state_to_dict(state),
            player_slots=slots,
            expected_version=self.version,
        )
        if isinstance(result, RoomFailure):
            logger.warning("Room %s update failed: %s", self.room_code, result.error)
            return self._fail(result.error)
        self.apply_room(result)
        self.error = None
        return True

    def _fail(self, error: str) -> bool:
        self.error = error
        return False

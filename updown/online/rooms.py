# updown/online/rooms.py
"""
Rooms for online matches and the store interface they live behind.

A room holds one canonical game-state blob plus the roster of player slots.
Stores replace the whole blob on every update (last writer wins); callers
that need to serialize writers pass `expected_version` for a
compare-and-swap. Store failures come back as RoomFailure values and are
never retried here.
"""
from __future__ import annotations

import copy
import logging
import random
import threading
import uuid
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, List, Optional, Protocol, Union

from ..seats import NUM_PLAYERS

logger = logging.getLogger(__name__)

CODE_LENGTH = 6
CODE_CHARS = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
CODE_ATTEMPTS = 5
MAX_NAME_LENGTH = 17
MAX_LABEL_LENGTH = 12

STATUS_WAITING = "waiting"
STATUS_PLAYING = "playing"
STATUS_FINISHED = "finished"


@dataclass(frozen=True)
class PlayerSlot:
    slot_index: int
    display_name: str
    # None means the seat is played by the AI.
    user_id: Optional[str] = None
    device_id: Optional[str] = None
    short_label: Optional[str] = None
    replaced_user_id: Optional[str] = None
    replaced_display_name: Optional[str] = None

    @property
    def is_ai(self) -> bool:
        return self.user_id is None


@dataclass(frozen=True)
class GameRoom:
    id: str
    code: str
    host_user_id: Optional[str]
    status: str
    # Canonical GameState as a JSON-compatible dict (see updown.codec).
    game_state: Optional[Dict[str, Any]]
    player_slots: List[PlayerSlot] = field(default_factory=list)
    version: int = 0


@dataclass(frozen=True)
class JoinedRoom:
    room_id: str
    my_slot_index: int


@dataclass(frozen=True)
class RoomFailure:
    """Explicit failure result from a room store."""

    error: str


RoomCallback = Callable[[GameRoom], None]


def slot_to_dict(slot: PlayerSlot) -> Dict[str, Any]:
    return {
        "slotIndex": slot.slot_index,
        "displayName": slot.display_name,
        "userId": slot.user_id,
        "deviceId": slot.device_id,
        "shortLabel": slot.short_label,
        "replacedUserId": slot.replaced_user_id,
        "replacedDisplayName": slot.replaced_display_name,
    }


def dict_to_slot(data: Dict[str, Any]) -> PlayerSlot:
    return PlayerSlot(
        slot_index=int(data["slotIndex"]),
        display_name=str(data.get("displayName") or ""),
        user_id=data.get("userId"),
        device_id=data.get("deviceId"),
        short_label=data.get("shortLabel"),
        replaced_user_id=data.get("replacedUserId"),
        replaced_display_name=data.get("replacedDisplayName"),
    )


def generate_room_code(rng: Optional[random.Random] = None) -> str:
    """Short code a player can read out or type: no 0/O or 1/I."""
    rng = rng or random.Random()
    return "".join(rng.choice(CODE_CHARS) for _ in range(CODE_LENGTH))


def normalize_room_code(code: str) -> str:
    return code.strip().upper()


def make_slot(
    slot_index: int,
    user_id: Optional[str],
    device_id: Optional[str],
    display_name: str,
    short_label: Optional[str] = None,
) -> PlayerSlot:
    return PlayerSlot(
        slot_index=slot_index,
        display_name=display_name[:MAX_NAME_LENGTH],
        user_id=user_id,
        device_id=device_id,
        short_label=short_label[:MAX_LABEL_LENGTH] if short_label else None,
    )


def pick_join_slot(
    slots: List[PlayerSlot],
    status: str,
    device_id: str,
) -> Union[int, RoomFailure]:
    """
    Slot a device gets when it joins: its existing slot if it is already
    seated, otherwise the lowest free slot of a room still waiting.
    """
    for slot in slots:
        if slot.device_id is not None and slot.device_id == device_id:
            return slot.slot_index
    if status != STATUS_WAITING:
        return RoomFailure("game already started")
    taken = {s.slot_index for s in slots}
    for index in range(NUM_PLAYERS):
        if index not in taken:
            return index
    return RoomFailure("room is full")


def status_for_state(state: Optional[Dict[str, Any]]) -> str:
    if state is not None and state.get("phase") == "game-complete":
        return STATUS_FINISHED
    return STATUS_PLAYING


class RoomStore(Protocol):
    """Persistence and broadcast channel for rooms."""

    def create_room(
        self,
        host_user_id: str,
        device_id: str,
        display_name: str,
        short_label: Optional[str] = None,
    ) -> Union[GameRoom, RoomFailure]:
        ...

    def join_room(
        self,
        code: str,
        user_id: str,
        device_id: str,
        display_name: str,
        short_label: Optional[str] = None,
    ) -> Union[JoinedRoom, RoomFailure]:
        ...

    def get_room(self, room_id: str) -> Optional[GameRoom]:
        ...

    def get_room_by_code(self, code: str) -> Optional[GameRoom]:
        ...

    def update_room_state(
        self,
        room_id: str,
        game_state: Dict[str, Any],
        player_slots: Optional[List[PlayerSlot]] = None,
        expected_version: Optional[int] = None,
    ) -> Union[GameRoom, RoomFailure]:
        ...

    def leave_room(self, room_id: str, device_id: str) -> Optional[RoomFailure]:
        ...

    def subscribe(self, room_id: str, callback: RoomCallback) -> Callable[[], None]:
        """Call `callback` with the new room after every change. Returns unsubscribe."""
        ...


class InMemoryRoomStore(RoomStore):
    """
    Process-local store. Thread-safe; subscribers are called synchronously,
    outside the lock, after each change.
    """

    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self._rooms: Dict[str, GameRoom] = {}
        self._subscribers: Dict[str, List[RoomCallback]] = {}
        self._lock = threading.Lock()
        self._rng = rng or random.Random()

    def create_room(
        self,
        host_user_id: str,
        device_id: str,
        display_name: str,
        short_label: Optional[str] = None,
    ) -> Union[GameRoom, RoomFailure]:
        with self._lock:
            codes = {r.code for r in self._rooms.values()}
            for _ in range(CODE_ATTEMPTS):
                code = generate_room_code(self._rng)
                if code in codes:
                    continue
                room = GameRoom(
                    id=str(uuid.uuid4()),
                    code=code,
                    host_user_id=host_user_id,
                    status=STATUS_WAITING,
                    game_state=None,
                    player_slots=[
                        make_slot(0, host_user_id, device_id, display_name, short_label)
                    ],
                )
                self._rooms[room.id] = room
                logger.info("Created room %s (%s)", room.code, room.id)
                return room
        return RoomFailure("could not generate a unique room code")

    def join_room(
        self,
        code: str,
        user_id: str,
        device_id: str,
        display_name: str,
        short_label: Optional[str] = None,
    ) -> Union[JoinedRoom, RoomFailure]:
        normalized = normalize_room_code(code)
        if not normalized:
            return RoomFailure("enter a room code")

        with self._lock:
            room = self._find_by_code(normalized)
            if room is None:
                return RoomFailure("room not found")
            picked = pick_join_slot(room.player_slots, room.status, device_id)
            if isinstance(picked, RoomFailure):
                return picked
            if any(s.slot_index == picked for s in room.player_slots):
                return JoinedRoom(room_id=room.id, my_slot_index=picked)

            slots = sorted(
                room.player_slots
                + [make_slot(picked, user_id, device_id, display_name, short_label)],
                key=lambda s: s.slot_index,
            )
            room = replace(room, player_slots=slots, version=room.version + 1)
            self._rooms[room.id] = room
        self._notify(room)
        return JoinedRoom(room_id=room.id, my_slot_index=picked)

    def get_room(self, room_id: str) -> Optional[GameRoom]:
        with self._lock:
            room = self._rooms.get(room_id)
            return self._copy(room) if room is not None else None

    def get_room_by_code(self, code: str) -> Optional[GameRoom]:
        with self._lock:
            room = self._find_by_code(normalize_room_code(code))
            return self._copy(room) if room is not None else None

    def update_room_state(
        self,
        room_id: str,
        game_state: Dict[str, Any],
        player_slots: Optional[List[PlayerSlot]] = None,
        expected_version: Optional[int] = None,
    ) -> Union[GameRoom, RoomFailure]:
        with self._lock:
            room = self._rooms.get(room_id)
            if room is None:
                return RoomFailure("room not found")
            if expected_version is not None and room.version != expected_version:
                return RoomFailure(
                    f"room changed (version {room.version}, expected {expected_version})"
                )
            room = replace(
                room,
                game_state=copy.deepcopy(game_state),
                status=status_for_state(game_state),
                player_slots=list(player_slots) if player_slots is not None else room.player_slots,
                version=room.version + 1,
            )
            self._rooms[room_id] = room
        self._notify(room)
        return self._copy(room)

    def leave_room(self, room_id: str, device_id: str) -> Optional[RoomFailure]:
        with self._lock:
            room = self._rooms.get(room_id)
            if room is None:
                return None
            slots = [s for s in room.player_slots if s.device_id != device_id]
            if len(slots) == len(room.player_slots):
                return None
            room = replace(room, player_slots=slots, version=room.version + 1)
            self._rooms[room_id] = room
        self._notify(room)
        return None

    def subscribe(self, room_id: str, callback: RoomCallback) -> Callable[[], None]:
        with self._lock:
            self._subscribers.setdefault(room_id, []).append(callback)

        def unsubscribe() -> None:
            with self._lock:
                callbacks = self._subscribers.get(room_id, [])
                if callback in callbacks:
                    callbacks.remove(callback)

        return unsubscribe

    # -------------------------------------------------------------------------

    def _find_by_code(self, code: str) -> Optional[GameRoom]:
        for room in self._rooms.values():
            if room.code == code:
                return room
        return None

    @staticmethod
    def _copy(room: GameRoom) -> GameRoom:
        # Blobs are plain dicts; hand out copies so callers cannot alias ours.
        return replace(
            room,
            game_state=copy.deepcopy(room.game_state),
            player_slots=list(room.player_slots),
        )

    def _notify(self, room: GameRoom) -> None:
        with self._lock:
            callbacks = list(self._subscribers.get(room.id, []))
        for callback in callbacks:
            callback(self._copy(room))

# updown/online/__init__.py
from .rooms import (
    GameRoom,
    InMemoryRoomStore,
    JoinedRoom,
    PlayerSlot,
    RoomFailure,
    RoomStore,
    generate_room_code,
    normalize_room_code,
)
from .session import OnlineGameSession

__all__ = [
    "GameRoom",
    "InMemoryRoomStore",
    "JoinedRoom",
    "OnlineGameSession",
    "PlayerSlot",
    "RoomFailure",
    "RoomStore",
    "generate_room_code",
    "normalize_room_code",
]

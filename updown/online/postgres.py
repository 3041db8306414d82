# updown/online/postgres.py
"""
PostgreSQL room store. Each room is one row; the game state and the slot
roster are JSONB columns. Changes are announced with NOTIFY on the
`game_rooms` channel and a background LISTEN thread fans them out to
subscribers.
"""
from __future__ import annotations

import logging
import random
import select
import threading
import uuid
from contextlib import contextmanager
from typing import Any, Callable, Dict, List, Optional, Union

import psycopg2
import psycopg2.errors
import psycopg2.extensions
from psycopg2.extras import Json, RealDictCursor

from .config import DATABASE_CONFIG, NOTIFY_CHANNEL
from .rooms import (
    CODE_ATTEMPTS,
    STATUS_WAITING,
    GameRoom,
    JoinedRoom,
    PlayerSlot,
    RoomCallback,
    RoomFailure,
    RoomStore,
    dict_to_slot,
    generate_room_code,
    make_slot,
    normalize_room_code,
    pick_join_slot,
    slot_to_dict,
    status_for_state,
)

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS game_rooms (
    id TEXT PRIMARY KEY,
    code TEXT NOT NULL UNIQUE,
    host_user_id TEXT,
    status TEXT NOT NULL DEFAULT 'waiting',
    game_state JSONB,
    player_slots JSONB NOT NULL DEFAULT '[]'::jsonb,
    version INTEGER NOT NULL DEFAULT 0,
    created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
)
"""


def row_to_room(row: Dict[str, Any]) -> GameRoom:
    """Build a GameRoom from a RealDictCursor row."""
    return GameRoom(
        id=str(row["id"]),
        code=row["code"],
        host_user_id=row.get("host_user_id"),
        status=row["status"],
        game_state=row.get("game_state"),
        player_slots=sorted(
            (dict_to_slot(s) for s in row.get("player_slots") or []),
            key=lambda s: s.slot_index,
        ),
        version=int(row.get("version") or 0),
    )


def slots_to_json(slots: List[PlayerSlot]) -> Json:
    return Json([slot_to_dict(s) for s in slots])


class PostgresRoomStore(RoomStore):
    def __init__(
        self,
        config: Optional[Dict[str, Any]] = None,
        rng: Optional[random.Random] = None,
        poll_interval: float = 1.0,
    ) -> None:
        self.config = dict(config or DATABASE_CONFIG)
        self.poll_interval = poll_interval
        self._rng = rng or random.Random()
        self._subscribers: Dict[str, List[RoomCallback]] = {}
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._listener: Optional[threading.Thread] = None

    # -------------------------------------------------------------------------
    # Connections
    # -------------------------------------------------------------------------

    @contextmanager
    def connection(self):
        """Get a database connection context manager."""
        conn = psycopg2.connect(**self.config)
        try:
            yield conn
        finally:
            conn.close()

    @contextmanager
    def cursor(self, commit: bool = False):
        """Get a database cursor context manager."""
        with self.connection() as conn:
            cursor = conn.cursor(cursor_factory=RealDictCursor)
            try:
                yield cursor
                if commit:
                    conn.commit()
            finally:
                cursor.close()

    def ensure_schema(self) -> None:
        with self.cursor(commit=True) as cur:
            cur.execute(SCHEMA)

    # -------------------------------------------------------------------------
    # RoomStore
    # -------------------------------------------------------------------------

    def create_room(
        self,
        host_user_id: str,
        device_id: str,
        display_name: str,
        short_label: Optional[str] = None,
    ) -> Union[GameRoom, RoomFailure]:
        slots = [make_slot(0, host_user_id, device_id, display_name, short_label)]
        for _ in range(CODE_ATTEMPTS):
            code = generate_room_code(self._rng)
            try:
                with self.cursor(commit=True) as cur:
                    cur.execute(
                        """
                        INSERT INTO game_rooms (id, code, host_user_id, status, player_slots)
                        VALUES (%s, %s, %s, %s, %s)
                        RETURNING *
                        """,
                        (str(uuid.uuid4()), code, host_user_id, STATUS_WAITING, slots_to_json(slots)),
                    )
                    room = row_to_room(cur.fetchone())
            except psycopg2.errors.UniqueViolation:
                logger.debug("Room code %s already taken, retrying", code)
                continue
            except psycopg2.Error as exc:
                logger.error("Could not create room: %s", exc)
                return RoomFailure(str(exc).strip())
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

        try:
            with self.cursor(commit=True) as cur:
                # Row lock so two joiners cannot take the same slot.
                cur.execute(
                    "SELECT * FROM game_rooms WHERE code = %s FOR UPDATE",
                    (normalized,),
                )
                row = cur.fetchone()
                if row is None:
                    return RoomFailure("room not found")
                room = row_to_room(row)
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
                cur.execute(
                    """
                    UPDATE game_rooms
                    SET player_slots = %s, version = version + 1, updated_at = now()
                    WHERE id = %s
                    """,
                    (slots_to_json(slots), room.id),
                )
                self._notify(cur, room.id)
        except psycopg2.Error as exc:
            logger.error("Could not join room %s: %s", normalized, exc)
            return RoomFailure(str(exc).strip())
        return JoinedRoom(room_id=room.id, my_slot_index=picked)

    def get_room(self, room_id: str) -> Optional[GameRoom]:
        try:
            with self.cursor() as cur:
                cur.execute("SELECT * FROM game_rooms WHERE id = %s", (room_id,))
                row = cur.fetchone()
        except psycopg2.Error as exc:
            logger.error("Could not load room %s: %s", room_id, exc)
            return None
        return row_to_room(row) if row is not None else None

    def get_room_by_code(self, code: str) -> Optional[GameRoom]:
        try:
            with self.cursor() as cur:
                cur.execute(
                    "SELECT * FROM game_rooms WHERE code = %s",
                    (normalize_room_code(code),),
                )
                row = cur.fetchone()
        except psycopg2.Error as exc:
            logger.error("Could not load room %s: %s", code, exc)
            return None
        return row_to_room(row) if row is not None else None

    def update_room_state(
        self,
        room_id: str,
        game_state: Dict[str, Any],
        player_slots: Optional[List[PlayerSlot]] = None,
        expected_version: Optional[int] = None,
    ) -> Union[GameRoom, RoomFailure]:
        slots_json = slots_to_json(player_slots) if player_slots is not None else None
        try:
            with self.cursor(commit=True) as cur:
                cur.execute(
                    """
                    UPDATE game_rooms
                    SET game_state = %s,
                        status = %s,
                        player_slots = COALESCE(%s, player_slots),
                        version = version + 1,
                        updated_at = now()
                    WHERE id = %s AND (%s::integer IS NULL OR version = %s)
                    RETURNING *
                    """,
                    (
                        Json(game_state),
                        status_for_state(game_state),
                        slots_json,
                        room_id,
                        expected_version,
                        expected_version,
                    ),
                )
                row = cur.fetchone()
                if row is None:
                    cur.execute("SELECT version FROM game_rooms WHERE id = %s", (room_id,))
                    current = cur.fetchone()
                    if current is None:
                        return RoomFailure("room not found")
                    return RoomFailure(
                        f"room changed (version {current['version']}, expected {expected_version})"
                    )
                self._notify(cur, room_id)
        except psycopg2.Error as exc:
            logger.error("Could not update room %s: %s", room_id, exc)
            return RoomFailure(str(exc).strip())
        return row_to_room(row)

    def leave_room(self, room_id: str, device_id: str) -> Optional[RoomFailure]:
        try:
            with self.cursor(commit=True) as cur:
                cur.execute(
                    "SELECT * FROM game_rooms WHERE id = %s FOR UPDATE", (room_id,)
                )
                row = cur.fetchone()
                if row is None:
                    return None
                room = row_to_room(row)
                slots = [s for s in room.player_slots if s.device_id != device_id]
                if len(slots) == len(room.player_slots):
                    return None
                cur.execute(
                    """
                    UPDATE game_rooms
                    SET player_slots = %s, version = version + 1, updated_at = now()
                    WHERE id = %s
                    """,
                    (slots_to_json(slots), room_id),
                )
                self._notify(cur, room_id)
        except psycopg2.Error as exc:
            logger.error("Could not leave room %s: %s", room_id, exc)
            return RoomFailure(str(exc).strip())
        return None

    def subscribe(self, room_id: str, callback: RoomCallback) -> Callable[[], None]:
        with self._lock:
            self._subscribers.setdefault(room_id, []).append(callback)
            if self._listener is None:
                self._stop.clear()
                self._listener = threading.Thread(
                    target=self._listen, name="updown-room-listener", daemon=True
                )
                self._listener.start()

        def unsubscribe() -> None:
            with self._lock:
                callbacks = self._subscribers.get(room_id, [])
                if callback in callbacks:
                    callbacks.remove(callback)

        return unsubscribe

    def close(self) -> None:
        """Stop the LISTEN thread, if one is running."""
        self._stop.set()
        listener = self._listener
        if listener is not None:
            listener.join(timeout=self.poll_interval * 2)
        self._listener = None

    # -------------------------------------------------------------------------
    # Notifications
    # -------------------------------------------------------------------------

    @staticmethod
    def _notify(cur, room_id: str) -> None:
        # Delivered to listeners when the surrounding transaction commits.
        cur.execute("SELECT pg_notify(%s, %s)", (NOTIFY_CHANNEL, room_id))

    def _listen(self) -> None:
        try:
            self._listen_until_stopped()
        finally:
            # Let the next subscribe() start a fresh listener.
            with self._lock:
                if self._listener is threading.current_thread():
                    self._listener = None

    def _listen_until_stopped(self) -> None:
        try:
            conn = psycopg2.connect(**self.config)
        except psycopg2.Error as exc:
            logger.error("Room listener could not connect: %s", exc)
            return
        try:
            conn.set_isolation_level(psycopg2.extensions.ISOLATION_LEVEL_AUTOCOMMIT)
            with conn.cursor() as cur:
                cur.execute(f"LISTEN {NOTIFY_CHANNEL}")
            while not self._stop.is_set():
                if select.select([conn], [], [], self.poll_interval) == ([], [], []):
                    continue
                conn.poll()
                while conn.notifies:
                    note = conn.notifies.pop(0)
                    self._dispatch(note.payload)
        except psycopg2.Error as exc:
            logger.error("Room listener stopped: %s", exc)
        finally:
            conn.close()

    def _dispatch(self, room_id: str) -> None:
        with self._lock:
            callbacks = list(self._subscribers.get(room_id, []))
        if not callbacks:
            return
        room = self.get_room(room_id)
        if room is None:
            return
        for callback in callbacks:
            callback(room)

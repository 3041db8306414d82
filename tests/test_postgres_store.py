# tests/test_postgres_store.py
import random
import threading

import psycopg2

from updown.online import OnlineGameSession, RoomFailure
from updown.online.postgres import SCHEMA, PostgresRoomStore


class FakeCursor:
    def __init__(self, rows):
        self.rows = list(rows)
        self.executed = []
        self.closed = False

    def execute(self, sql, params=None):
        self.executed.append((sql, params))

    def fetchone(self):
        return self.rows.pop(0) if self.rows else None

    def close(self):
        self.closed = True


class FakeConnection:
    def __init__(self, rows=()):
        self.cur = FakeCursor(rows)
        self.commits = 0
        self.closed = False

    def cursor(self, cursor_factory=None):
        return self.cur

    def commit(self):
        self.commits += 1

    def close(self):
        self.closed = True


def _connect_with(monkeypatch, *outcomes):
    """Each psycopg2.connect() call takes the next connection or raises the next error."""
    queue = list(outcomes)

    def connect(**kwargs):
        outcome = queue.pop(0) if queue else psycopg2.OperationalError("connection refused")
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    monkeypatch.setattr(psycopg2, "connect", connect)


def _room_row(**overrides):
    row = {
        "id": "room-1",
        "code": "ABC234",
        "host_user_id": "user-Host",
        "status": "waiting",
        "game_state": None,
        "player_slots": [
            {"slotIndex": 0, "displayName": "Host", "userId": "user-Host", "deviceId": "device-Host"},
        ],
        "version": 0,
    }
    row.update(overrides)
    return row


def _session(store):
    return OnlineGameSession(
        store,
        user_id="user-Host",
        device_id="device-Host",
        display_name="Host",
        rng=random.Random(1),
    )


def test_ensure_schema_creates_the_table(monkeypatch):
    conn = FakeConnection()
    _connect_with(monkeypatch, conn)

    PostgresRoomStore(config={}).ensure_schema()
    assert conn.cur.executed == [(SCHEMA, None)]
    assert conn.commits == 1
    assert conn.cur.closed and conn.closed


def test_get_room_reads_a_row(monkeypatch):
    _connect_with(monkeypatch, FakeConnection([_room_row(version=4)]), FakeConnection())
    store = PostgresRoomStore(config={})

    room = store.get_room("room-1")
    assert room.code == "ABC234"
    assert room.version == 4
    assert store.get_room_by_code("zzzzzz") is None


def test_lookup_errors_become_missing_rooms(monkeypatch):
    _connect_with(monkeypatch)
    store = PostgresRoomStore(config={})
    assert store.get_room("room-1") is None
    assert store.get_room_by_code("ABC234") is None


def test_session_reports_a_lost_database(monkeypatch):
    # The insert works, then the database goes away before the room is read back.
    _connect_with(monkeypatch, FakeConnection([_room_row()]))
    session = _session(PostgresRoomStore(config={}, rng=random.Random(0)))

    assert not session.create_room()
    assert session.error == "room not found"
    assert session.room_id is None


def test_listener_can_be_restarted_after_it_stops(monkeypatch):
    _connect_with(monkeypatch)
    store = PostgresRoomStore(config={}, poll_interval=0.05)

    for _ in range(2):
        store.subscribe("room-1", lambda room: None)
        for thread in threading.enumerate():
            if thread.name == "updown-room-listener":
                thread.join(timeout=5)
        assert store._listener is None


def test_unreachable_server_gives_failures():
    store = PostgresRoomStore(
        config={
            "host": "127.0.0.1",
            "port": 1,
            "dbname": "updown",
            "user": "updown",
            "password": "",
            "connect_timeout": 2,
        }
    )
    assert store.get_room("abc") is None

    failed = store.join_room("ABC234", "u1", "d1", "Guest")
    assert isinstance(failed, RoomFailure)

    session = _session(store)
    assert not session.create_room()
    assert session.error

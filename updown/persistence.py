# updown/persistence.py
"""
Local storage for offline play: one resumable game snapshot and the local
player's rating. Both live in small JSON files; anything unreadable is
treated as absent rather than trusted.
"""
from __future__ import annotations

import json
import logging
import math
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .codec import StateDecodeError, dumps, loads
from .paths import RATING_FILENAME, SNAPSHOT_FILENAME, resolve_results_path
from .state import GameState

logger = logging.getLogger(__name__)


class SnapshotStore:
    """Get/set/remove store for a single GameState blob."""

    def __init__(self, path: Optional[Path] = None) -> None:
        self.path = Path(path) if path is not None else resolve_results_path(SNAPSHOT_FILENAME)
        self._lock = threading.Lock()

    def load(self) -> Optional[GameState]:
        """Saved state, or None when nothing valid is stored."""
        with self._lock:
            if not self.path.exists():
                return None
            raw = self.path.read_bytes()
        try:
            return loads(raw.decode("utf-8"))
        except (StateDecodeError, UnicodeDecodeError) as exc:
            logger.warning("Ignoring corrupt saved game at %s: %s", self.path, exc)
            return None

    def save(self, state: GameState) -> None:
        payload = dumps(state)
        with self._lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self.path.with_suffix(self.path.suffix + ".tmp")
            tmp.write_text(payload, encoding="utf-8")
            tmp.replace(self.path)

    def clear(self) -> None:
        with self._lock:
            self.path.unlink(missing_ok=True)

    def has_saved_game(self) -> bool:
        return self.load() is not None


@dataclass(frozen=True)
class LocalRating:
    games_played: int = 0
    wins: int = 0
    bid_accuracy_sum: int = 0
    bid_accuracy_count: int = 0

    @property
    def average_bid_accuracy(self) -> Optional[int]:
        if self.bid_accuracy_count == 0:
            return None
        return math.floor(self.bid_accuracy_sum / self.bid_accuracy_count + 0.5)


def _count(raw: dict, key: str) -> int:
    value = raw.get(key)
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        return 0
    return value


class RatingStore:
    """Matches played and won by the local player, plus bid accuracy."""

    def __init__(self, path: Optional[Path] = None) -> None:
        self.path = Path(path) if path is not None else resolve_results_path(RATING_FILENAME)
        self._lock = threading.Lock()

    def get(self) -> LocalRating:
        with self._lock:
            if not self.path.exists():
                return LocalRating()
            data = self.path.read_bytes()
        try:
            raw = json.loads(data)
        except ValueError:
            logger.warning("Resetting unreadable rating file %s", self.path)
            return LocalRating()
        if not isinstance(raw, dict):
            return LocalRating()

        games = _count(raw, "gamesPlayed")
        return LocalRating(
            games_played=games,
            wins=min(_count(raw, "wins"), games),
            bid_accuracy_sum=_count(raw, "bidAccuracySum"),
            bid_accuracy_count=_count(raw, "bidAccuracyCount"),
        )

    def record_match(self, won: bool, bid_accuracy: Optional[int] = None) -> LocalRating:
        prev = self.get()
        rating = LocalRating(
            games_played=prev.games_played + 1,
            wins=prev.wins + (1 if won else 0),
            bid_accuracy_sum=prev.bid_accuracy_sum + (bid_accuracy or 0),
            bid_accuracy_count=prev.bid_accuracy_count + (0 if bid_accuracy is None else 1),
        )
        payload = {
            "gamesPlayed": rating.games_played,
            "wins": rating.wins,
            "bidAccuracySum": rating.bid_accuracy_sum,
            "bidAccuracyCount": rating.bid_accuracy_count,
        }
        with self._lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(payload), encoding="utf-8")
        return rating

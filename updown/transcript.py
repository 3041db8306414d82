# updown/transcript.py
from __future__ import annotations

from pathlib import Path
from threading import Lock
from typing import List, Optional


class MatchTranscript:
    """Accumulates a turn-by-turn, human-readable record of matches."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._entries: List[str] = []
        self._lock = Lock()

    def log_event(
        self,
        *,
        game_id: Optional[str],
        deal_number: Optional[int],
        phase: Optional[str],
        message: str,
    ) -> None:
        header_parts = []
        if game_id is not None:
            header_parts.append(f"Game: {game_id}")
        if deal_number is not None:
            header_parts.append(f"Deal: {deal_number}")
        if phase is not None:
            header_parts.append(f"Phase: {phase}")
        header = " | ".join(header_parts)

        entry = f"[{header}] {message.strip()}" if header else message.strip()
        with self._lock:
            self._entries.append(entry)

    def log_rejection(
        self,
        *,
        game_id: Optional[str],
        deal_number: Optional[int],
        agent_label: str,
        action: str,
        reason: str,
        replacement: str,
    ) -> None:
        """Record an agent answer the rules refused and what was used instead."""
        self.log_event(
            game_id=game_id,
            deal_number=deal_number,
            phase="rejected",
            message=(
                f"{agent_label} tried {action}: {reason}; "
                f"played {replacement} instead"
            ),
        )

    @property
    def entries(self) -> List[str]:
        with self._lock:
            return list(self._entries)

    def flush(self) -> None:
        with self._lock:
            if not self._entries:
                return
            to_write = "\n".join(self._entries) + "\n"
            self._entries.clear()
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "a", encoding="utf-8") as f:
            f.write(to_write)

# updown/paths.py
from __future__ import annotations

import os
from pathlib import Path

# Central location for saved games, ratings and generated results.
DATA_DIR = Path(
    os.getenv("UPDOWN_DATA_DIR", str(Path(__file__).resolve().parent / "results"))
)

SNAPSHOT_FILENAME = "updown_game_state.json"
RATING_FILENAME = "updown_local_rating.json"


def ensure_results_dir() -> Path:
    """Create the data directory if it does not exist and return it."""
    DATA_DIR.mkdir(parents=True, exist_ok=True)
    return DATA_DIR


def resolve_results_path(path_like: str | Path) -> Path:
    """
    Resolve a user-specified path into the data directory.

    Absolute paths are returned unchanged. Relative paths are anchored inside
    DATA_DIR so runs consistently write outputs under the same folder.
    """
    path = Path(path_like)
    if path.is_absolute():
        return path
    ensure_results_dir()
    return DATA_DIR / path

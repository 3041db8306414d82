# updown/agents/__init__.py
from .base import UpDownAgent
from .console import ConsoleAgent
from .heuristic import HeuristicAgent, ai_bid, ai_play
from .random_agent import RandomAgent

__all__ = [
    "UpDownAgent",
    "ConsoleAgent",
    "HeuristicAgent",
    "RandomAgent",
    "ai_bid",
    "ai_play",
]

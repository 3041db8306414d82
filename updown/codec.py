# updown/codec.py
"""
JSON encoding of GameState snapshots.

Saved games and room blobs arrive from disk or the network, so decoding
checks the whole structure and raises StateDecodeError instead of handing
a half-valid state to the engine. Keys use the camelCase names of the
shared wire format.
"""
from __future__ import annotations

import dataclasses
import json
from typing import Any, Dict, List, Optional

from .cards import Card, Suit, card_to_dict, dict_to_card
from .engine import TOTAL_DEALS, get_tricks_in_deal
from .seats import NUM_PLAYERS
from .state import BIDDING_PHASES, DealRecord, GameState, LastCompletedTrick, Phase, Player

MAX_TRICKS = 9


class StateDecodeError(ValueError):
    """A snapshot blob does not describe a well-formed GameState."""


# -------------------------------------------------------------------------
# Encoding
# -------------------------------------------------------------------------


def _player_to_dict(player: Player) -> Dict[str, Any]:
    return {
        "id": player.id,
        "name": player.name,
        "hand": [card_to_dict(c) for c in player.hand],
        "bid": player.bid,
        "tricksTaken": player.tricks_taken,
        "score": player.score,
    }


def state_to_dict(state: GameState) -> Dict[str, Any]:
    """Convert a GameState to a JSON-serializable dict."""
    last = state.last_completed_trick
    return {
        "phase": state.phase.value,
        "players": [_player_to_dict(p) for p in state.players],
        "dealerIndex": state.dealer_index,
        "currentPlayerIndex": state.current_player_index,
        "trump": state.trump.value if state.trump is not None else None,
        "tricksInDeal": state.tricks_in_deal,
        "currentTrick": [card_to_dict(c) for c in state.current_trick],
        "trickLeaderIndex": state.trick_leader_index,
        "bids": list(state.bids),
        "dealNumber": state.deal_number,
        "trumpCard": (
            card_to_dict(state.trump_card) if state.trump_card is not None else None
        ),
        "lastCompletedTrick": (
            {
                "cards": [card_to_dict(c) for c in last.cards],
                "winnerIndex": last.winner_index,
                "leaderIndex": last.leader_index,
            }
            if last is not None
            else None
        ),
        "dealHistory": [
            {
                "dealNumber": r.deal_number,
                "bids": list(r.bids),
                "points": list(r.points),
                "taken": list(r.taken) if r.taken is not None else None,
            }
            for r in state.deal_history
        ],
    }


def dumps(state: GameState) -> str:
    return json.dumps(state_to_dict(state), ensure_ascii=False)


# -------------------------------------------------------------------------
# Decoding
# -------------------------------------------------------------------------


def _require(data: Dict[str, Any], key: str, where: str) -> Any:
    if key not in data:
        raise StateDecodeError(f"{where}: missing '{key}'")
    return data[key]


def _int(value: Any, where: str, low: Optional[int] = None, high: Optional[int] = None) -> int:
    # bool is an int subclass; a JSON true is not a number here.
    if isinstance(value, bool) or not isinstance(value, int):
        raise StateDecodeError(f"{where}: expected an integer, got {value!r}")
    if low is not None and value < low:
        raise StateDecodeError(f"{where}: {value} is below {low}")
    if high is not None and value > high:
        raise StateDecodeError(f"{where}: {value} is above {high}")
    return value


def _seat(value: Any, where: str) -> int:
    return _int(value, where, 0, NUM_PLAYERS - 1)


def _str(value: Any, where: str) -> str:
    if not isinstance(value, str):
        raise StateDecodeError(f"{where}: expected a string, got {value!r}")
    return value


def _list(value: Any, where: str, length: Optional[int] = None) -> List[Any]:
    if not isinstance(value, list):
        raise StateDecodeError(f"{where}: expected a list, got {type(value).__name__}")
    if length is not None and len(value) != length:
        raise StateDecodeError(f"{where}: expected {length} entries, got {len(value)}")
    return value


def _dict(value: Any, where: str) -> Dict[str, Any]:
    if not isinstance(value, dict):
        raise StateDecodeError(f"{where}: expected an object, got {type(value).__name__}")
    return value


def _card(value: Any, where: str) -> Card:
    data = _dict(value, where)
    try:
        return dict_to_card(data)
    except (KeyError, ValueError) as exc:
        raise StateDecodeError(f"{where}: not a card: {data!r}") from exc


def _cards(value: Any, where: str) -> tuple:
    return tuple(_card(c, f"{where}[{i}]") for i, c in enumerate(_list(value, where)))


def _optional_bid(value: Any, where: str) -> Optional[int]:
    if value is None:
        return None
    return _int(value, where, 0, MAX_TRICKS)


def _player(value: Any, where: str) -> Player:
    data = _dict(value, where)
    return Player(
        id=_str(_require(data, "id", where), f"{where}.id"),
        name=_str(_require(data, "name", where), f"{where}.name"),
        hand=_cards(_require(data, "hand", where), f"{where}.hand"),
        # Older blobs leave "bid" out; state_from_dict fills it from "bids".
        bid=_optional_bid(data.get("bid"), f"{where}.bid"),
        tricks_taken=_int(_require(data, "tricksTaken", where), f"{where}.tricksTaken", 0, MAX_TRICKS),
        score=_int(_require(data, "score", where), f"{where}.score"),
    )


def _last_trick(value: Any) -> Optional[LastCompletedTrick]:
    if value is None:
        return None
    where = "lastCompletedTrick"
    data = _dict(value, where)
    cards = _cards(_require(data, "cards", where), f"{where}.cards")
    if len(cards) != NUM_PLAYERS:
        raise StateDecodeError(f"{where}.cards: expected {NUM_PLAYERS} cards")
    return LastCompletedTrick(
        cards=cards,
        winner_index=_seat(_require(data, "winnerIndex", where), f"{where}.winnerIndex"),
        leader_index=_seat(_require(data, "leaderIndex", where), f"{where}.leaderIndex"),
    )


def _deal_record(value: Any, where: str) -> DealRecord:
    data = _dict(value, where)
    bids = _list(_require(data, "bids", where), f"{where}.bids", NUM_PLAYERS)
    points = _list(_require(data, "points", where), f"{where}.points", NUM_PLAYERS)
    taken = None
    if data.get("taken") is not None:
        raw_taken = _list(data["taken"], f"{where}.taken", NUM_PLAYERS)
        taken = tuple(_int(t, f"{where}.taken[{i}]", 0, MAX_TRICKS) for i, t in enumerate(raw_taken))
    return DealRecord(
        deal_number=_int(_require(data, "dealNumber", where), f"{where}.dealNumber", 1, TOTAL_DEALS),
        bids=tuple(_int(b, f"{where}.bids[{i}]", 0, MAX_TRICKS) for i, b in enumerate(bids)),
        points=tuple(_int(p, f"{where}.points[{i}]") for i, p in enumerate(points)),
        taken=taken,
    )


def state_from_dict(data: Any) -> GameState:
    """
    Decode and validate a snapshot dict. Raises StateDecodeError when the
    shape is wrong anywhere; never returns a partially trusted state.
    """
    data = _dict(data, "state")

    phase_value = _str(_require(data, "phase", "state"), "phase")
    try:
        phase = Phase(phase_value)
    except ValueError as exc:
        raise StateDecodeError(f"phase: unknown phase {phase_value!r}") from exc

    raw_players = _list(_require(data, "players", "state"), "players", NUM_PLAYERS)
    players = tuple(_player(p, f"players[{i}]") for i, p in enumerate(raw_players))

    tricks_in_deal = _int(_require(data, "tricksInDeal", "state"), "tricksInDeal", 1, MAX_TRICKS)
    raw_bids = _list(_require(data, "bids", "state"), "bids", NUM_PLAYERS)
    bids = tuple(_optional_bid(b, f"bids[{i}]") for i, b in enumerate(raw_bids))

    trump_value = data.get("trump")
    trump: Optional[Suit] = None
    if trump_value is not None:
        try:
            trump = Suit(_str(trump_value, "trump"))
        except ValueError as exc:
            raise StateDecodeError(f"trump: unknown suit {trump_value!r}") from exc

    trump_card_value = data.get("trumpCard")
    trump_card = _card(trump_card_value, "trumpCard") if trump_card_value is not None else None

    current_trick = _cards(_require(data, "currentTrick", "state"), "currentTrick")
    if len(current_trick) >= NUM_PLAYERS:
        raise StateDecodeError("currentTrick: a trick in progress holds at most 3 cards")

    history = tuple(
        _deal_record(r, f"dealHistory[{i}]")
        for i, r in enumerate(_list(data.get("dealHistory", []), "dealHistory"))
    )

    players = tuple(
        p if "bid" in raw_players[i] else dataclasses.replace(p, bid=bids[i])
        for i, p in enumerate(players)
    )

    state = GameState(
        phase=phase,
        players=players,
        dealer_index=_seat(_require(data, "dealerIndex", "state"), "dealerIndex"),
        current_player_index=_seat(
            _require(data, "currentPlayerIndex", "state"), "currentPlayerIndex"
        ),
        trump=trump,
        tricks_in_deal=tricks_in_deal,
        current_trick=current_trick,
        trick_leader_index=_seat(
            _require(data, "trickLeaderIndex", "state"), "trickLeaderIndex"
        ),
        bids=bids,
        deal_number=_int(_require(data, "dealNumber", "state"), "dealNumber", 1, TOTAL_DEALS),
        trump_card=trump_card,
        last_completed_trick=_last_trick(data.get("lastCompletedTrick")),
        deal_history=history,
    )
    _check_consistency(state)
    return state


def _check_consistency(state: GameState) -> None:
    """Cross-field checks: every field may be well-formed and still disagree."""
    for i, p in enumerate(state.players):
        if p.bid != state.bids[i]:
            raise StateDecodeError(
                f"players[{i}].bid: {p.bid!r} does not match bids[{i}] {state.bids[i]!r}"
            )
    if state.phase not in BIDDING_PHASES and any(b is None for b in state.bids):
        raise StateDecodeError(f"bids: unset bid in phase {state.phase.value!r}")
    expected = get_tricks_in_deal(state.deal_number)
    if state.tricks_in_deal != expected:
        raise StateDecodeError(
            f"tricksInDeal: deal {state.deal_number} has {expected} tricks, "
            f"not {state.tricks_in_deal}"
        )
    if state.current_trick and state.phase != Phase.PLAYING:
        raise StateDecodeError(
            f"currentTrick: cards on the table in phase {state.phase.value!r}"
        )


def loads(text: str) -> GameState:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise StateDecodeError(f"not valid JSON: {exc}") from exc
    return state_from_dict(data)

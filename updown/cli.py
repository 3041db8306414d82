# updown/cli.py
from __future__ import annotations

import argparse
import asyncio
import logging
import random
from typing import Any, Dict, List, Optional, Tuple

from .agents import ConsoleAgent, HeuristicAgent, RandomAgent, UpDownAgent
from .engine import DEFAULT_AI_NAMES, match_winners
from .game_log import build_deal_rows, write_deal_rows_csv
from .match import MatchRunner
from .paths import ensure_results_dir, resolve_results_path
from .persistence import RatingStore, SnapshotStore
from .scoring import bid_accuracy
from .transcript import MatchTranscript

AGENT_KINDS = ("heuristic", "random")


def _make_agent(kind: str, seed: int) -> UpDownAgent:
    if kind == "heuristic":
        return HeuristicAgent()
    if kind == "random":
        return RandomAgent(random.Random(seed))
    raise ValueError(f"Unknown agent kind {kind!r}")


def parse_args(argv: List[str] | None = None) -> argparse.Namespace:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        help="Logging level (DEBUG, INFO, WARNING, ...). Default: INFO.",
    )

    parser = argparse.ArgumentParser(
        description="Up&Down: play against the computer, simulate matches, read deal logs."
    )
    sub = parser.add_subparsers(dest="command", required=True)

    play = sub.add_parser(
        "play",
        parents=[common],
        help="Play a match at the terminal against three AI players.",
    )
    play.add_argument("--name", type=str, default="You", help="Your name at the table.")
    play.add_argument(
        "--new",
        action="store_true",
        help="Start a new match even if a saved one exists.",
    )
    play.add_argument("--seed", type=int, default=None, help="Random seed for dealing.")
    play.add_argument(
        "--transcript",
        type=str,
        default=None,
        help="Optional path for a turn-by-turn transcript of the match.",
    )

    simulate = sub.add_parser(
        "simulate",
        parents=[common],
        help="Play AI-only matches and log per-deal results to a CSV file.",
    )
    simulate.add_argument(
        "--games",
        type=int,
        default=1,
        help="Number of full matches to play (default: 1).",
    )
    simulate.add_argument(
        "--agents",
        nargs=4,
        choices=AGENT_KINDS,
        default=["heuristic"] * 4,
        help="Agent kind for each of the four seats (default: heuristic x4).",
    )
    simulate.add_argument(
        "--seed",
        type=int,
        default=0,
        help="Base random seed for dealing and random agents.",
    )
    simulate.add_argument(
        "--csv",
        type=str,
        default="updown_deal_scores.csv",
        help="Path to the output CSV file (default: updown_deal_scores.csv).",
    )
    simulate.add_argument(
        "--verbose-log",
        type=str,
        default=None,
        help="Optional path for a detailed turn-by-turn log file.",
    )
    simulate.add_argument(
        "--parallel-games",
        type=int,
        default=1,
        help="Max number of matches to play concurrently (default: 1).",
    )

    stats = sub.add_parser(
        "stats",
        parents=[common],
        help="Summarize a deal log written by 'simulate'.",
    )
    stats.add_argument("csv", type=str, help="Deal log CSV.")
    stats.add_argument(
        "--plot",
        type=str,
        default=None,
        help="Optional PNG path for the running-score chart.",
    )

    return parser.parse_args(argv)


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


# --------------------------------------------------------------------------- #
# play                                                                        #
# --------------------------------------------------------------------------- #


def run_play(args: argparse.Namespace) -> int:
    snapshots = SnapshotStore()
    ratings = RatingStore()

    state = None
    if not args.new:
        state = snapshots.load()
        if state is not None:
            print(f"Resuming saved match at deal {state.deal_number}.")

    transcript = (
        MatchTranscript(resolve_results_path(args.transcript)) if args.transcript else None
    )
    agents: List[UpDownAgent] = [ConsoleAgent(), HeuristicAgent(), HeuristicAgent(), HeuristicAgent()]
    runner = MatchRunner(
        agents=agents,
        player_names=[args.name, *DEFAULT_AI_NAMES],
        rng_seed=args.seed,
        transcript=transcript,
        snapshot_store=snapshots,
    )
    try:
        final = runner.play_match(state)
    finally:
        if transcript is not None:
            transcript.flush()

    for p in sorted(final.players, key=lambda p: p.score, reverse=True):
        print(f"{p.name:>12}: {p.score}")
    won = 0 in match_winners(final)
    accuracy = bid_accuracy(final.deal_history, 0)
    rating = ratings.record_match(won, accuracy)
    print("You win!" if won else "Better luck next time.")
    print(
        f"Matches: {rating.games_played}, wins: {rating.wins}, "
        f"bid accuracy this match: {accuracy}%"
    )
    return 0


# --------------------------------------------------------------------------- #
# simulate                                                                    #
# --------------------------------------------------------------------------- #


def _play_single_game(
    game_index: int,
    *,
    args: argparse.Namespace,
    transcript: Optional[MatchTranscript],
) -> Tuple[List[Dict[str, Any]], str]:
    """Run one match synchronously (meant for thread execution)."""
    game_id = f"game-{game_index}"
    agents = [
        _make_agent(kind, args.seed + game_index * 1000 + i)
        for i, kind in enumerate(args.agents)
    ]
    names = [f"{kind}-{i}" for i, kind in enumerate(args.agents)]
    runner = MatchRunner(
        agents=agents,
        player_names=names,
        rng_seed=args.seed + game_index,
        game_label=game_id,
        transcript=transcript,
    )
    final = runner.play_match()
    if runner.rejections:
        logging.warning("%s: %d agent answers were replaced", game_id, runner.rejections)
    return build_deal_rows(final, game_id=game_id), game_id


async def _play_single_game_async(
    game_index: int,
    *,
    args: argparse.Namespace,
    transcript: Optional[MatchTranscript],
) -> Tuple[List[Dict[str, Any]], str]:
    return await asyncio.to_thread(
        _play_single_game,
        game_index,
        args=args,
        transcript=transcript,
    )


async def async_simulate(args: argparse.Namespace) -> int:
    ensure_results_dir()
    csv_path = resolve_results_path(args.csv)
    verbose_path = resolve_results_path(args.verbose_log) if args.verbose_log else None

    logging.info("Seats: %s", ", ".join(args.agents))
    logging.info("Games to play: %d", args.games)
    logging.info("Output CSV: %s", csv_path)
    if verbose_path:
        logging.info("Verbose log: %s", verbose_path)

    parallel_games = max(1, min(args.parallel_games, args.games))
    transcript = MatchTranscript(verbose_path) if verbose_path else None

    all_rows: List[Dict[str, Any]] = []
    failed = 0
    for batch_start in range(0, args.games, parallel_games):
        batch_indices = list(range(batch_start, min(batch_start + parallel_games, args.games)))
        tasks = [
            asyncio.create_task(
                _play_single_game_async(game_index, args=args, transcript=transcript)
            )
            for game_index in batch_indices
        ]
        results = await asyncio.gather(*tasks, return_exceptions=True)
        for result in results:
            if isinstance(result, Exception):
                logging.error("Game task failed: %s", result)
                failed += 1
                continue
            rows, game_id = result
            all_rows.extend(rows)
            logging.info("Finished %s", game_id)
        if transcript is not None:
            transcript.flush()

    write_deal_rows_csv(all_rows, csv_path)
    logging.info(
        "Finished %d/%d games; wrote %d rows to %s",
        args.games - failed,
        args.games,
        len(all_rows),
        csv_path,
    )
    return 1 if failed else 0


# --------------------------------------------------------------------------- #
# stats                                                                       #
# --------------------------------------------------------------------------- #


def run_stats(args: argparse.Namespace) -> int:
    # pandas and matplotlib are only needed here.
    from .analysis import (
        bid_accuracy_table,
        complete_matches,
        deal_type_summary,
        load_deal_log,
        plot_score_progression,
    )

    df = load_deal_log(args.csv)
    full = complete_matches(df)
    logging.info(
        "Loaded %d rows; %d complete matches",
        len(df),
        full["game_id"].nunique(),
    )
    print(bid_accuracy_table(df).to_string())
    print()
    print(deal_type_summary(df).to_string())
    if args.plot:
        path = plot_score_progression(full if not full.empty else df, resolve_results_path(args.plot))
        logging.info("Saved chart to %s", path)
    return 0


def main(argv: List[str] | None = None) -> int:
    args = parse_args(argv)
    _configure_logging(args.log_level)
    if args.command == "play":
        return run_play(args)
    if args.command == "simulate":
        return asyncio.run(async_simulate(args))
    return run_stats(args)


if __name__ == "__main__":
    raise SystemExit(main())

"""
Ringo CLI - Command-line interface for the engine.

Usage:
    ringo serve [--host HOST] [--port PORT]       Run the HTTP API
    ringo simulate --bots easy,hard [--rounds N]  Play bot-only rounds
"""

import argparse
import logging
import sys


def main(argv=None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Ringo - Card Game Engine with AI Opponents",
        prog="ringo",
    )
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Serve command
    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Bind address")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port")
    serve_parser.add_argument("--log-level", default="info", help="Logging level")

    # Simulate command
    simulate_parser = subparsers.add_parser("simulate", help="Play bot-only rounds")
    simulate_parser.add_argument(
        "--bots",
        default="medium,hard",
        help="Comma-separated bot tiers: easy, medium, hard, nightmare",
    )
    simulate_parser.add_argument("--rounds", type=int, default=1, help="Number of rounds")
    simulate_parser.add_argument("--seed", type=int, default=None, help="Seed for reproducible rounds")
    simulate_parser.add_argument("--special-cards", action="store_true", help="Use special cards")
    simulate_parser.add_argument(
        "--think-ms", type=int, default=200, help="Search budget per Nightmare decision"
    )
    simulate_parser.add_argument("--log-level", default="warning", help="Logging level")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == "serve":
        cmd_serve(args)
    elif args.command == "simulate":
        cmd_simulate(args)


def cmd_serve(args):
    """Run the HTTP API with uvicorn."""
    import uvicorn

    uvicorn.run("ringo.api.app:app", host=args.host, port=args.port, log_level=args.log_level.lower())


def cmd_simulate(args):
    """Play bot-only rounds and print the tally."""
    from .bots import Difficulty
    from .bots.search import SearchConfig
    from .engine_core.state import RoundSettings
    from .session import SessionManager, GameLoop

    try:
        tiers = [Difficulty.parse(name.strip()) for name in args.bots.split(",") if name.strip()]
    except ValueError as e:
        print(f"Error: {e}")
        sys.exit(1)
    if not 2 <= len(tiers) <= 5:
        print("Error: simulate needs 2-5 bots")
        sys.exit(1)

    manager = SessionManager(
        search_config=SearchConfig(time_budget_s=args.think_ms / 1000.0),
        seed=args.seed,
    )
    session, _ = manager.create_room(host_name=None)
    for tier in tiers:
        manager.add_bot(session.code, tier)

    settings = RoundSettings(special_cards=args.special_cards)
    print(f"Room {session.code}: " + ", ".join(seat.name for seat in session.seats))

    for round_index in range(args.rounds):
        seed = None if args.seed is None else args.seed + round_index
        manager.start_round(session.code, settings=settings, seed=seed)
        loop = GameLoop(manager, session)
        state = loop.play_out()
        if state.winner is None:
            print(f"Round {round_index + 1}: no winner after {state.action_count} actions")
            manager.abort(session, "step limit")
            break
        winner = session.seat(state.winner)
        print(f"Round {round_index + 1}: {winner.name} wins after {state.action_count} actions")

    print("\nWins:")
    for seat in session.seats:
        print(f"  {seat.name:<20} {session.wins.get(seat.seat_id, 0)}")


if __name__ == "__main__":
    main()

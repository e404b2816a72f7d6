"""Simple CLI entrypoint for discflip."""
import argparse
import logging

from . import __version__
from .ai import AIAgent, Policy, play_game
from .engine import Result, TurnController

POLICY_CHOICES = [p.value for p in Policy]


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(prog="discflip")
    parser.add_argument("--version", action="store_true", help="Show version")
    parser.add_argument("--serve", action="store_true", help="Run FastAPI server")
    parser.add_argument("--host", default="127.0.0.1", help="Server host")
    parser.add_argument("--port", type=int, default=8000, help="Server port")
    parser.add_argument(
        "--selfplay",
        type=int,
        default=0,
        metavar="GAMES",
        help="Play GAMES headless games between two automated sides and print the tally.",
    )
    parser.add_argument(
        "--black-policy",
        choices=POLICY_CHOICES,
        default=Policy.BASIC.value,
        help="Heuristic for Black during self-play (default: basic).",
    )
    parser.add_argument(
        "--white-policy",
        choices=POLICY_CHOICES,
        default=Policy.GREEDY_CORNER.value,
        help="Heuristic for White during self-play (default: greedy-corner).",
    )
    parser.add_argument("--seed", type=int, default=None, help="Random seed for self-play.")
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging verbosity (default: WARNING).",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.version:
        print(__version__)
        return 0

    if args.selfplay > 0:
        black_seed = args.seed
        white_seed = None if args.seed is None else args.seed + 1
        black = AIAgent(policy=args.black_policy, seed=black_seed)
        white = AIAgent(policy=args.white_policy, seed=white_seed)
        controller = TurnController()
        draws = 0
        for _ in range(args.selfplay):
            outcome = play_game(black, white, controller)
            if outcome.result is Result.DRAW:
                draws += 1
        tally = controller.match_tally()
        print(
            f"Games: {args.selfplay}  Black ({args.black_policy}): {tally['black_wins']}  "
            f"White ({args.white_policy}): {tally['white_wins']}  Draws: {draws}"
        )
        return 0

    if args.serve:
        try:
            from uvicorn import run
            from discflip.api import create_app
        except ImportError:
            print("uvicorn and fastapi are required to serve the API. Install extras.")
            return 1

        run(create_app(), host=args.host, port=args.port, reload=False)
        return 0

    parser.print_help()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

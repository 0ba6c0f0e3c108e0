"""Headless entry point for the match-3 engine.

Builds the world, event bus and systems, then lets a bot play hinted moves until
the move budget runs out, logging the move analysis after every turn.
"""
import argparse
import logging
import random

from match3.constants import DEFAULT_MOVE_BUDGET, GRID_COLS, GRID_ROWS
from match3.events.bus import EVENT_COMBO_MILESTONE, EVENT_RESHUFFLE_COMMITTED
from match3.world import Engine, create_engine

logger = logging.getLogger("match3.autoplay")


def run_autoplay(engine: Engine) -> int:
    """Play hinted moves until the budget is spent or no move exists; return the final score."""
    engine.event_bus.subscribe(
        EVENT_COMBO_MILESTONE, lambda sender, **k: logger.info("Combo x%d!", k.get("combo"))
    )
    engine.event_bus.subscribe(
        EVENT_RESHUFFLE_COMMITTED,
        lambda sender, **k: logger.info("Reshuffled (converged=%s, attempts=%d)", k.get("converged"), k.get("attempts")),
    )
    engine.move_finder.log_analysis(engine.move_finder.find_available_moves(), "Initial moves")
    state = engine.flow.state
    while state.moves_left > 0:
        hint = engine.flow.request_hint()
        if hint is None:
            logger.warning("No move available, stopping")
            break
        outcome = engine.flow.attempt_swap(*hint.src, *hint.dst)
        if not outcome.accepted:
            logger.warning("Hinted swap %s -> %s rejected: %s", hint.src, hint.dst, outcome.reason)
            break
        report = outcome.report
        logger.info(
            "Swap %s -> %s: %d levels, %d points, %d moves left",
            hint.src, hint.dst, report.levels, report.total_score, outcome.moves_left,
        )
        engine.move_finder.log_analysis(engine.move_finder.find_available_moves(), "Available moves", logger.debug)
    logger.info("Final score: %d", state.score)
    return state.score


def main(argv=None):
    parser = argparse.ArgumentParser(description="Let a bot play a match-3 session using engine hints")
    parser.add_argument("--cols", type=int, default=GRID_COLS, help="Board width")
    parser.add_argument("--rows", type=int, default=GRID_ROWS, help="Board height")
    parser.add_argument("--moves", type=int, default=DEFAULT_MOVE_BUDGET, help="Move budget")
    parser.add_argument("--seed", type=int, default=None, help="Seed for a reproducible session")
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    args = parser.parse_args(argv)

    logging.basicConfig(level=args.log_level, format="%(levelname)s %(name)s: %(message)s")
    engine = create_engine(cols=args.cols, rows=args.rows, rng=random.Random(args.seed), move_budget=args.moves)
    run_autoplay(engine)


if __name__ == "__main__":
    main()

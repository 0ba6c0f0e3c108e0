import random
from dataclasses import dataclass

from esper import World

from match3.components.session_state import SessionState
from match3.constants import (
    DEFAULT_MOVE_BUDGET,
    GRID_COLS,
    GRID_ROWS,
    MAX_CASCADE_DEPTH,
    MAX_DEADLOCK_RESHUFFLES,
)
from match3.events.bus import EventBus
from match3.systems.board import BoardSystem
from match3.systems.game_flow_system import GameFlowSystem
from match3.systems.match_resolution import MatchResolutionSystem
from match3.systems.move_finder import MoveFinder


def create_world(rng: random.Random | None = None) -> World:
    world = World()
    setattr(world, "random", rng or random.Random())
    # Register the session resource up front so every system sees the same instance.
    world.create_entity(SessionState())
    return world


@dataclass(slots=True)
class Engine:
    world: World
    event_bus: EventBus
    board: BoardSystem
    resolver: MatchResolutionSystem
    move_finder: MoveFinder
    flow: GameFlowSystem


def create_engine(
    event_bus: EventBus | None = None,
    *,
    cols: int = GRID_COLS,
    rows: int = GRID_ROWS,
    rng: random.Random | None = None,
    move_budget: int = DEFAULT_MOVE_BUDGET,
    max_cascade_depth: int = MAX_CASCADE_DEPTH,
    max_deadlock_reshuffles: int = MAX_DEADLOCK_RESHUFFLES,
) -> Engine:
    """Build a world with every system wired to one event bus and a freshly set-up board."""
    bus = event_bus or EventBus()
    world = create_world(rng)
    board = BoardSystem(world, bus, cols, rows)
    resolver = MatchResolutionSystem(world, bus, board, max_cascade_depth=max_cascade_depth)
    move_finder = MoveFinder(board)
    flow = GameFlowSystem(
        world,
        bus,
        board,
        resolver,
        move_finder,
        move_budget=move_budget,
        max_deadlock_reshuffles=max_deadlock_reshuffles,
    )
    flow.check_and_reshuffle()
    return Engine(world=world, event_bus=bus, board=board, resolver=resolver, move_finder=move_finder, flow=flow)

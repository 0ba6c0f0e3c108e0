"""Session-level coordinator: the caller that drives board, resolver and analyzer."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from esper import World

from match3.components.resolution import MoveHint, ReshuffleResult, ResolutionReport
from match3.components.session_state import SessionState
from match3.constants import DEFAULT_MOVE_BUDGET, MAX_DEADLOCK_RESHUFFLES
from match3.events.bus import (
    EVENT_DEADLOCK_DETECTED,
    EVENT_HINT_READY,
    EVENT_SESSION_RESET,
    EVENT_TILE_SWAP_INVALID,
    EVENT_TILE_SWAP_REQUEST,
    EVENT_TILE_SWAP_VALID,
    EventBus,
)
from match3.systems.board import BoardSystem
from match3.systems.board_ops import Cell, is_adjacent, matches_made_by_swap
from match3.systems.match_resolution import MatchResolutionSystem
from match3.systems.move_finder import MoveFinder
from match3.systems.session_state_utils import get_or_create_session_state

logger = logging.getLogger(__name__)

REJECT_LOCKED = "locked"
REJECT_NO_MOVES = "no_moves_left"
REJECT_NOT_ADJACENT = "not_adjacent"
REJECT_EMPTY_CELL = "empty_cell"
REJECT_NO_MATCH = "no_match"


@dataclass(slots=True)
class SwapOutcome:
    src: Cell
    dst: Cell
    accepted: bool
    reason: Optional[str] = None
    report: Optional[ResolutionReport] = None
    reshuffles: List[ReshuffleResult] = field(default_factory=list)
    moves_left: int = 0

    @property
    def score(self) -> int:
        return self.report.total_score if self.report else 0


class GameFlowSystem:
    """Owns the move budget and sequences swap -> resolve -> deadlock check."""

    def __init__(
        self,
        world: World,
        event_bus: EventBus,
        board_system: BoardSystem,
        resolver: MatchResolutionSystem,
        move_finder: MoveFinder,
        *,
        move_budget: int = DEFAULT_MOVE_BUDGET,
        max_deadlock_reshuffles: int = MAX_DEADLOCK_RESHUFFLES,
    ):
        self.world = world
        self.event_bus = event_bus
        self.board_system = board_system
        self.resolver = resolver
        self.move_finder = move_finder
        self.move_budget = move_budget
        self.max_deadlock_reshuffles = max_deadlock_reshuffles
        state = get_or_create_session_state(world)
        state.moves_left = move_budget
        self.event_bus.subscribe(EVENT_TILE_SWAP_REQUEST, self.on_swap_request)

    @property
    def state(self) -> SessionState:
        return get_or_create_session_state(self.world)

    def on_swap_request(self, sender, **kwargs):
        src = kwargs.get('src')
        dst = kwargs.get('dst')
        if not src or not dst:
            return
        self.attempt_swap(src[0], src[1], dst[0], dst[1])

    def attempt_swap(self, col1: int, row1: int, col2: int, row2: int) -> SwapOutcome:
        state = self.state
        src, dst = (col1, row1), (col2, row2)
        if state.locked:
            return self._reject(src, dst, REJECT_LOCKED)
        if state.moves_left <= 0:
            return self._reject(src, dst, REJECT_NO_MOVES)
        if not is_adjacent(src, dst):
            return self._reject(src, dst, REJECT_NOT_ADJACENT)
        if self.board_system.get_tile(*src) is None or self.board_system.get_tile(*dst) is None:
            return self._reject(src, dst, REJECT_EMPTY_CELL)

        state.locked = True
        try:
            before = self.board_system.find_matches()
            self.board_system.swap(col1, row1, col2, row2)
            if not matches_made_by_swap(before, self.board_system.find_matches(), src, dst):
                # Roll the swap back; the move budget is untouched.
                self.board_system.swap(col1, row1, col2, row2)
                return self._reject(src, dst, REJECT_NO_MATCH)
            state.moves_left -= 1
            self.event_bus.emit(EVENT_TILE_SWAP_VALID, src=src, dst=dst, moves_left=state.moves_left)
            report = self.resolver.resolve()
            state.score += report.total_score
            state.last_combo = report.combo
            reshuffles = self.check_and_reshuffle()
        finally:
            state.locked = False
        return SwapOutcome(
            src=src,
            dst=dst,
            accepted=True,
            report=report,
            reshuffles=reshuffles,
            moves_left=state.moves_left,
        )

    def check_and_reshuffle(self) -> List[ReshuffleResult]:
        """Reshuffle while the board is deadlocked, resolving any matches a reshuffle leaves."""
        results: List[ReshuffleResult] = []
        while not self.move_finder.has_moves():
            if len(results) >= self.max_deadlock_reshuffles:
                logger.warning("Board still deadlocked after %d reshuffles", len(results))
                break
            logger.info("No moves detected, reshuffling")
            self.event_bus.emit(EVENT_DEADLOCK_DETECTED, attempt=len(results) + 1)
            results.append(self._reshuffle())
        return results

    def force_reshuffle(self) -> Optional[ReshuffleResult]:
        state = self.state
        if state.locked:
            return None
        state.locked = True
        try:
            return self._reshuffle()
        finally:
            state.locked = False

    def request_hint(self) -> Optional[MoveHint]:
        hint = self.move_finder.get_random_move()
        if hint is not None:
            self.event_bus.emit(EVENT_HINT_READY, hint=hint)
        return hint

    def reset(self) -> None:
        state = self.state
        state.moves_left = self.move_budget
        state.score = 0
        state.last_combo = 0
        state.reshuffles = 0
        state.locked = False
        self.board_system.setup()
        self.check_and_reshuffle()
        self.event_bus.emit(EVENT_SESSION_RESET, moves_left=state.moves_left)

    def _reshuffle(self) -> ReshuffleResult:
        state = self.state
        result = self.board_system.reshuffle()
        state.reshuffles += 1
        if not result.converged:
            # Best-effort arrangement may still hold matches; settle it before play resumes.
            self.resolver.resolve()
        return result

    def _reject(self, src: Cell, dst: Cell, reason: str) -> SwapOutcome:
        self.event_bus.emit(EVENT_TILE_SWAP_INVALID, src=src, dst=dst, reason=reason)
        return SwapOutcome(src=src, dst=dst, accepted=False, reason=reason, moves_left=self.state.moves_left)

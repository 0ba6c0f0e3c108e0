from __future__ import annotations

import logging
from typing import Dict, Generator, List, Optional, Sequence, Set, Tuple

from esper import World

from match3.components.resolution import (
    Activation,
    ClearedTile,
    ClearPhase,
    ClearReason,
    GravityPhase,
    Phase,
    RefillPhase,
    RefillSpawn,
    ResolutionReport,
    SpecialsPhase,
)
from match3.components.tile import TileType, TileView
from match3.constants import COMBO_MILESTONE, MAX_CASCADE_DEPTH, POINTS_PER_TILE
from match3.events.bus import (
    EVENT_CASCADE_COMPLETE,
    EVENT_CASCADE_LIMIT_REACHED,
    EVENT_CASCADE_STEP,
    EVENT_COMBO_MILESTONE,
    EVENT_GRAVITY_APPLIED,
    EVENT_MATCH_CLEARED,
    EVENT_MATCH_FOUND,
    EVENT_REFILL_COMPLETED,
    EVENT_SCORE_EARNED,
    EVENT_SPECIALS_CREATED,
    EventBus,
)
from match3.systems.board import BoardSystem
from match3.systems.board_ops import (
    MatchResult,
    activation_footprint,
    apply_gravity_moves,
    compute_gravity_moves,
    empty_cells_by_column,
    tile_view,
)

logger = logging.getLogger(__name__)


class MatchResolutionSystem:
    """Resolves a board holding matches into a stable, fully populated board.

    Each cascade level runs Creating-Specials, Clearing, Gravity and Refilling.
    ``iter_phases`` commits a phase to the world and then yields its result, so a
    renderer can animate it before asking for the next one. ``resolve`` runs the
    whole thing without pausing.
    """

    def __init__(
        self,
        world: World,
        event_bus: EventBus,
        board_system: BoardSystem,
        *,
        max_cascade_depth: int = MAX_CASCADE_DEPTH,
        points_per_tile: int = POINTS_PER_TILE,
    ):
        self.world = world
        self.event_bus = event_bus
        self.board_system = board_system
        self.max_cascade_depth = max_cascade_depth
        self.points_per_tile = points_per_tile
        self.combo = 0
        self.last_report: Optional[ResolutionReport] = None

    def resolve(self) -> ResolutionReport:
        phases = self.iter_phases()
        while True:
            try:
                next(phases)
            except StopIteration as done:
                return done.value

    def iter_phases(self) -> Generator[Phase, None, ResolutionReport]:
        phases: List[Phase] = []
        level_scores: List[int] = []
        depth = 0
        best_combo = 0
        sweep_restarts = 0
        limit_reached = False
        self.combo = 0
        while True:
            matches = self.board_system.find_matches()
            while matches:
                if depth >= self.max_cascade_depth:
                    limit_reached = True
                    break
                depth += 1
                self.combo += 1
                best_combo = max(best_combo, self.combo)
                logger.debug("Cascade level %d (combo %d): %d matches", depth, self.combo, len(matches))
                self.event_bus.emit(EVENT_MATCH_FOUND, depth=depth, matches=list(matches))
                self.event_bus.emit(EVENT_CASCADE_STEP, depth=depth, combo=self.combo)
                if self.combo == COMBO_MILESTONE:
                    self.event_bus.emit(EVENT_COMBO_MILESTONE, combo=self.combo)

                specials, origin_ids = self._create_specials(depth, matches)
                phases.append(specials)
                self.event_bus.emit(EVENT_SPECIALS_CREATED, phase=specials)
                yield specials

                cleared = self._clear_matches(depth, matches, origin_ids)
                phases.append(cleared)
                level_scores.append(cleared.score)
                self.event_bus.emit(EVENT_MATCH_CLEARED, phase=cleared)
                self.event_bus.emit(EVENT_SCORE_EARNED, points=cleared.score, combo=self.combo, depth=depth)
                yield cleared

                gravity = self._apply_gravity(depth)
                phases.append(gravity)
                self.event_bus.emit(EVENT_GRAVITY_APPLIED, phase=gravity)
                yield gravity

                refill = self._refill(depth)
                phases.append(refill)
                self.event_bus.emit(EVENT_REFILL_COMPLETED, phase=refill)
                yield refill

                matches = self.board_system.find_matches()
            if limit_reached:
                break
            # Sweep: never hand back a board that still holds a match.
            if not self.board_system.find_matches():
                break
            sweep_restarts += 1
            self.combo = 0
            logger.warning("Sweep detected stuck matches after level %d, resolving again", depth)

        if limit_reached:
            logger.warning("Cascade stopped at depth %d with matches still on the board", depth)
            self.event_bus.emit(EVENT_CASCADE_LIMIT_REACHED, depth=depth, limit=self.max_cascade_depth)
        report = ResolutionReport(
            phases=tuple(phases),
            level_scores=tuple(level_scores),
            combo=best_combo,
            sweep_restarts=sweep_restarts,
            depth_limit_reached=limit_reached,
        )
        if depth:
            logger.info("Resolved %d cascade levels for %d points", depth, report.total_score)
        self.last_report = report
        self.event_bus.emit(EVENT_CASCADE_COMPLETE, report=report)
        return report

    def _create_specials(self, depth: int, matches: Sequence[MatchResult]) -> Tuple[SpecialsPhase, Set[int]]:
        board = self.board_system.board
        created: List[TileView] = []
        origin_ids: Set[int] = set()
        for match in matches:
            if match.special is None:
                continue
            col, row = match.origin
            entity = board.grid[row][col]
            if entity is None or entity in origin_ids:
                continue
            self.world.component_for_entity(entity, TileType).kind = match.special
            origin_ids.add(entity)
            created.append(TileView(id=entity, kind=match.special, col=col, row=row))
        return SpecialsPhase(depth=depth, created=tuple(created)), origin_ids

    def collect_clear_set(
        self, matches: Sequence[MatchResult], origin_ids: Set[int]
    ) -> Tuple[List[ClearedTile], List[Activation]]:
        """Tiles to remove for one level, each tagged with why it goes.

        Specials that were already special when their match was detected add their
        activation footprint once; tiles reached only through a footprint do not
        activate in turn. Freshly created specials stay on the board.
        """
        board = self.board_system.board
        targets: Dict[int, Tuple[TileView, ClearReason]] = {}
        for match in matches:
            for tile in match.tiles:
                targets.setdefault(tile.id, (tile, ClearReason.MATCH))

        activations: List[Activation] = []
        activated: Set[int] = set()
        for match in matches:
            for tile in match.tiles:
                if not tile.kind.is_special or tile.id in activated or tile.id in origin_ids:
                    continue
                activated.add(tile.id)
                footprint = activation_footprint(tile, board.cols, board.rows)
                if footprint is None:
                    continue
                reason, cells = footprint
                activations.append(Activation(special=tile, reason=reason, cells=cells))
                for col, row in cells:
                    view = tile_view(self.world, board, col, row)
                    if view is not None:
                        targets.setdefault(view.id, (view, reason))

        for origin in origin_ids:
            targets.pop(origin, None)
        cleared = [ClearedTile(tile=tile, reason=reason) for tile, reason in targets.values()]
        return cleared, activations

    def _clear_matches(self, depth: int, matches: Sequence[MatchResult], origin_ids: Set[int]) -> ClearPhase:
        board = self.board_system.board
        cleared, activations = self.collect_clear_set(matches, origin_ids)
        for entry in cleared:
            tile = entry.tile
            board.grid[tile.row][tile.col] = None
            self.world.delete_entity(tile.id, immediate=True)
        score = len(cleared) * self.points_per_tile * self.combo
        return ClearPhase(
            depth=depth,
            combo=self.combo,
            cleared=tuple(cleared),
            activations=tuple(activations),
            score=score,
        )

    def _apply_gravity(self, depth: int) -> GravityPhase:
        board = self.board_system.board
        moves = compute_gravity_moves(board)
        apply_gravity_moves(board, moves)
        return GravityPhase(depth=depth, moves=tuple(moves))

    def _refill(self, depth: int) -> RefillPhase:
        board = self.board_system.board
        spawned: List[RefillSpawn] = []
        for col, rows in empty_cells_by_column(board).items():
            # Lowest empty cell is filled first and has the shortest drop.
            for offset, row in enumerate(sorted(rows, reverse=True), start=1):
                entity = self.board_system.create_random_tile()
                board.grid[row][col] = entity
                kind = self.world.component_for_entity(entity, TileType).kind
                spawned.append(RefillSpawn(tile=TileView(id=entity, kind=kind, col=col, row=row), drop_offset=offset))
        return RefillPhase(depth=depth, spawned=tuple(spawned))

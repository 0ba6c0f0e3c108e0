from __future__ import annotations

import logging
import random
from typing import List, Optional, Sequence

from esper import World

from match3.components.board import Board, Cell
from match3.components.resolution import ReshuffleResult
from match3.components.tile import BASE_COLORS, TileKind, TileType, TileView
from match3.constants import GRID_COLS, GRID_ROWS, RESHUFFLE_MAX_ATTEMPTS
from match3.events.bus import (
    EVENT_BOARD_READY,
    EVENT_RESHUFFLE_COMMITTED,
    EVENT_TILE_SWAPPED,
    EventBus,
)
from match3.systems.board_ops import MatchResult, find_matches, snapshot_grid, tile_view

logger = logging.getLogger(__name__)


class BoardSystem:
    """Owns the tile grid and its pure mutators: setup, swap, detection, reshuffle."""

    def __init__(
        self,
        world: World,
        event_bus: EventBus,
        cols: int = GRID_COLS,
        rows: int = GRID_ROWS,
        *,
        rng: random.Random | None = None,
        populate: bool = True,
    ):
        if cols < 1 or rows < 1:
            raise ValueError(f"Board must be at least 1x1, got {cols}x{rows}")
        self.world = world
        self.event_bus = event_bus
        self.rng = rng or getattr(world, "random", None) or random.Random()
        # Create a single board entity with Board component
        self.board_entity = self.world.create_entity()
        self.world.add_component(self.board_entity, Board(cols=cols, rows=rows))
        if populate:
            self.setup()

    @property
    def board(self) -> Board:
        return self.world.component_for_entity(self.board_entity, Board)

    @property
    def cols(self) -> int:
        return self.board.cols

    @property
    def rows(self) -> int:
        return self.board.rows

    def setup(self) -> None:
        """Fill every cell with a random base tile, re-rolling matched tiles until none match."""
        board = self.board
        self._clear_entities(board)
        for row in range(board.rows):
            for col in range(board.cols):
                board.grid[row][col] = self.create_random_tile()
        rerolls = 0
        matches = self.find_matches()
        while matches:
            for match in matches:
                for tile in match.tiles:
                    self.world.delete_entity(tile.id, immediate=True)
                    board.grid[tile.row][tile.col] = self.create_random_tile()
                    rerolls += 1
            matches = self.find_matches()
        logger.debug("Board %dx%d set up after %d re-rolled tiles", board.cols, board.rows, rerolls)
        self.event_bus.emit(EVENT_BOARD_READY, cols=board.cols, rows=board.rows)

    def load_layout(self, layout: Sequence[Sequence[TileKind | None]]) -> None:
        """Replace the grid with fresh tiles taken from a row-major layout of kinds."""
        board = self.board
        if len(layout) != board.rows or any(len(row) != board.cols for row in layout):
            raise ValueError(f"Layout must be {board.rows} rows of {board.cols} kinds")
        self._clear_entities(board)
        for row, kinds in enumerate(layout):
            for col, kind in enumerate(kinds):
                board.grid[row][col] = None if kind is None else self.create_tile(TileKind(kind))

    def create_tile(self, kind: TileKind) -> int:
        return self.world.create_entity(TileType(kind=kind))

    def create_random_tile(self) -> int:
        return self.create_tile(self.rng.choice(BASE_COLORS))

    def swap(self, col1: int, row1: int, col2: int, row2: int) -> None:
        """Exchange two cells (either may be empty) and remember them as the last swap."""
        board = self.board
        for col, row in ((col1, row1), (col2, row2)):
            if not board.in_bounds(col, row):
                raise ValueError(f"Cell ({col}, {row}) is outside the {board.cols}x{board.rows} board")
        board.last_swap = ((col1, row1), (col2, row2))
        grid = board.grid
        grid[row1][col1], grid[row2][col2] = grid[row2][col2], grid[row1][col1]
        self.event_bus.emit(EVENT_TILE_SWAPPED, src=(col1, row1), dst=(col2, row2))

    def find_matches(self) -> List[MatchResult]:
        board = self.board
        return find_matches(snapshot_grid(self.world, board), board.last_swap)

    def reshuffle(self, max_attempts: int = RESHUFFLE_MAX_ATTEMPTS) -> ReshuffleResult:
        """Shuffle the existing tiles until no match remains, committing the last try regardless."""
        board = self.board
        tiles = [entity for row in board.grid for entity in row if entity is not None]
        cells = [(col, row) for row in range(board.rows) for col in range(board.cols)]
        attempts = 0
        converged = False
        while attempts < max(1, max_attempts):
            attempts += 1
            self.rng.shuffle(tiles)
            for index, (col, row) in enumerate(cells):
                board.grid[row][col] = tiles[index] if index < len(tiles) else None
            if not self.find_matches():
                converged = True
                break
        if converged:
            logger.debug("Reshuffle converged after %d attempts", attempts)
        else:
            logger.warning("Reshuffle did not converge after %d attempts; keeping last arrangement", attempts)
        result = ReshuffleResult(converged=converged, attempts=attempts)
        self.event_bus.emit(EVENT_RESHUFFLE_COMMITTED, converged=converged, attempts=attempts)
        return result

    def get_tile(self, col: int, row: int) -> Optional[TileView]:
        return tile_view(self.world, self.board, col, row)

    def snapshot(self):
        return snapshot_grid(self.world, self.board)

    def locate(self, tile_id: int) -> Optional[Cell]:
        """Cell currently holding ``tile_id``, derived from the grid."""
        for row, entities in enumerate(self.board.grid):
            for col, entity in enumerate(entities):
                if entity == tile_id:
                    return col, row
        return None

    def is_full(self) -> bool:
        return all(entity is not None for row in self.board.grid for entity in row)

    def _clear_entities(self, board: Board) -> None:
        for row in range(board.rows):
            for col in range(board.cols):
                entity = board.grid[row][col]
                if entity is not None:
                    self.world.delete_entity(entity, immediate=True)
                    board.grid[row][col] = None

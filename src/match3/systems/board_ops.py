from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from esper import World

from match3.components.board import Board
from match3.components.resolution import ClearReason, GravityMove
from match3.components.tile import TileKind, TileType, TileView
from match3.constants import (
    BOMB_RADIUS,
    COLOR_BOMB_LENGTH,
    MATCH_MIN_LENGTH,
    STRIPED_LENGTH,
    WRAPPED_RADIUS,
    WRAPPED_SEGMENT_LENGTH,
)

Cell = Tuple[int, int]  # (col, row)
Swap = Tuple[Cell, Cell]
GridRow = Sequence[Optional[TileView]]
Grid = Sequence[GridRow]


class MatchShape(Enum):
    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"
    INTERSECTION = "intersection"


@dataclass(frozen=True, slots=True)
class Segment:
    axis: MatchShape
    tiles: Tuple[TileView, ...]

    @property
    def kind(self) -> TileKind:
        return self.tiles[0].kind

    @property
    def length(self) -> int:
        return len(self.tiles)

    @property
    def cells(self) -> Tuple[Cell, ...]:
        return tuple(tile.cell for tile in self.tiles)


@dataclass(frozen=True, slots=True)
class MatchResult:
    tiles: Tuple[TileView, ...]
    special: Optional[TileKind]
    origin: Cell
    shape: MatchShape

    @property
    def color(self) -> TileKind:
        return self.tiles[0].kind

    @property
    def cells(self) -> Tuple[Cell, ...]:
        return tuple(tile.cell for tile in self.tiles)


# Best-match priority: color bomb > wrapped/bomb > striped > plain three.
SPECIAL_RANK: Dict[Optional[TileKind], int] = {
    None: 1,
    TileKind.STRIPED_H: 2,
    TileKind.STRIPED_V: 2,
    TileKind.BOMB: 3,
    TileKind.WRAPPED: 3,
    TileKind.COLOR_BOMB: 4,
}


def special_rank(special: Optional[TileKind]) -> int:
    return SPECIAL_RANK.get(special, 1)


def best_match(matches: Sequence[MatchResult]) -> MatchResult:
    """Return the highest-priority match; ties keep the earliest one."""
    best = matches[0]
    for match in matches[1:]:
        if special_rank(match.special) > special_rank(best.special):
            best = match
    return best


def match_key(match: MatchResult) -> Tuple[TileKind, frozenset]:
    return match.color, frozenset(match.cells)


def matches_made_by_swap(
    before: Sequence[MatchResult], after: Sequence[MatchResult], src: Cell, dst: Cell
) -> List[MatchResult]:
    """Matches in ``after`` that the swap of ``src`` and ``dst`` produced.

    A match counts only if it covers one of the swapped cells and was not
    already on the board, so matches left behind by a capped cascade never
    validate an unrelated swap.
    """
    existing = {match_key(match) for match in before}
    return [
        match
        for match in after
        if match_key(match) not in existing and (src in match.cells or dst in match.cells)
    ]


def is_adjacent(a: Cell, b: Cell) -> bool:
    ac, ar = a
    bc, br = b
    return (abs(ar - br) == 1 and ac == bc) or (abs(ac - bc) == 1 and ar == br)


def adjacent_pairs(cols: int, rows: int) -> Iterator[Swap]:
    """Every unordered orthogonal neighbour pair exactly once (right and down of each cell)."""
    for row in range(rows):
        for col in range(cols):
            if col + 1 < cols:
                yield (col, row), (col + 1, row)
            if row + 1 < rows:
                yield (col, row), (col, row + 1)


def tile_view(world: World, board: Board, col: int, row: int) -> Optional[TileView]:
    if not board.in_bounds(col, row):
        return None
    entity = board.grid[row][col]
    if entity is None:
        return None
    tile: TileType = world.component_for_entity(entity, TileType)
    return TileView(id=entity, kind=tile.kind, col=col, row=row)


def snapshot_grid(world: World, board: Board) -> Tuple[Tuple[Optional[TileView], ...], ...]:
    """Immutable view of the board with every tile's position taken from its cell."""
    return tuple(
        tuple(tile_view(world, board, col, row) for col in range(board.cols))
        for row in range(board.rows)
    )


def mutable_copy(grid: Grid) -> List[List[Optional[TileView]]]:
    return [list(row) for row in grid]


def swap_views(grid: List[List[Optional[TileView]]], a: Cell, b: Cell) -> None:
    """Exchange two cells of a scratch grid, re-deriving each view's position."""
    (c1, r1), (c2, r2) = a, b
    first = grid[r1][c1]
    second = grid[r2][c2]
    grid[r1][c1] = replace(second, col=c1, row=r1) if second is not None else None
    grid[r2][c2] = replace(first, col=c2, row=r2) if first is not None else None


def _scan_line(line: GridRow, axis: MatchShape) -> List[Segment]:
    segments: List[Segment] = []
    run: List[TileView] = []
    for tile in line:
        matchable = tile is not None and not tile.kind.is_special
        if matchable and run and tile.kind == run[-1].kind:
            run.append(tile)
            continue
        if len(run) >= MATCH_MIN_LENGTH:
            segments.append(Segment(axis=axis, tiles=tuple(run)))
        run = [tile] if matchable else []
    if len(run) >= MATCH_MIN_LENGTH:
        segments.append(Segment(axis=axis, tiles=tuple(run)))
    return segments


def find_segments(grid: Grid) -> Tuple[List[Segment], List[Segment]]:
    """Return (horizontal, vertical) maximal runs of same-kind, non-special tiles."""
    horizontal: List[Segment] = []
    for row in grid:
        horizontal.extend(_scan_line(row, MatchShape.HORIZONTAL))
    vertical: List[Segment] = []
    cols = len(grid[0]) if grid else 0
    for col in range(cols):
        column = [row[col] for row in grid]
        vertical.extend(_scan_line(column, MatchShape.VERTICAL))
    return horizontal, vertical


def _pick_origin(cells: Sequence[Cell], fallback: Cell, last_swap: Optional[Swap]) -> Cell:
    if last_swap:
        for swapped in last_swap:
            if swapped in cells:
                return swapped
    return fallback


def _merge_tiles(segments: Sequence[Segment]) -> Tuple[TileView, ...]:
    seen: set[int] = set()
    merged: List[TileView] = []
    for segment in segments:
        for tile in segment.tiles:
            if tile.id in seen:
                continue
            seen.add(tile.id)
            merged.append(tile)
    return tuple(merged)


def _straight_special(segment: Segment) -> Optional[TileKind]:
    if segment.length >= COLOR_BOMB_LENGTH:
        return TileKind.COLOR_BOMB
    if segment.length == STRIPED_LENGTH:
        if segment.axis is MatchShape.HORIZONTAL:
            return TileKind.STRIPED_H
        return TileKind.STRIPED_V
    return None


def find_matches(grid: Grid, last_swap: Optional[Swap] = None) -> List[MatchResult]:
    """Detect every match shape on ``grid``.

    Straight segments are found first, then every horizontal/vertical pair of the
    same kind sharing a cell is merged into one intersection shape. A segment that
    crosses several partners pulls all of them into the same shape, so a segment is
    never reported twice. Remaining segments are emitted as straight matches.
    """
    horizontal, vertical = find_segments(grid)
    segments: List[Segment] = horizontal + vertical
    offset = len(horizontal)

    # Union-find over segment indexes; vertical segments live at offset + j.
    parent: Dict[int, int] = {}
    pivots: Dict[int, Tuple[int, Cell]] = {}
    discovered = 0

    def find(node: int) -> int:
        while parent[node] != node:
            parent[node] = parent[parent[node]]
            node = parent[node]
        return node

    for i, h in enumerate(horizontal):
        h_cells = set(h.cells)
        for j, v in enumerate(vertical):
            if h.kind != v.kind:
                continue
            shared = [cell for cell in v.cells if cell in h_cells]
            if not shared:
                continue
            a, b = i, offset + j
            parent.setdefault(a, a)
            parent.setdefault(b, b)
            root_a, root_b = find(a), find(b)
            candidates = [pivots[root] for root in (root_a, root_b) if root in pivots]
            candidates.append((discovered, shared[0]))
            discovered += 1
            if root_a != root_b:
                parent[root_b] = root_a
                pivots.pop(root_b, None)
            pivots[root_a] = min(candidates)

    results: List[MatchResult] = []
    groups: Dict[int, List[int]] = {}
    for node in sorted(parent):
        groups.setdefault(find(node), []).append(node)
    for root in sorted(groups, key=lambda r: pivots[r][0]):
        members = [segments[node] for node in groups[root]]
        tiles = _merge_tiles(members)
        special = TileKind.BOMB
        if any(segment.length >= WRAPPED_SEGMENT_LENGTH for segment in members):
            special = TileKind.WRAPPED
        cells = [tile.cell for tile in tiles]
        results.append(
            MatchResult(
                tiles=tiles,
                special=special,
                origin=_pick_origin(cells, pivots[root][1], last_swap),
                shape=MatchShape.INTERSECTION,
            )
        )

    for index, segment in enumerate(segments):
        if index in parent:
            continue
        middle = segment.tiles[(segment.length - 1) // 2].cell
        results.append(
            MatchResult(
                tiles=segment.tiles,
                special=_straight_special(segment),
                origin=_pick_origin(segment.cells, middle, last_swap),
                shape=segment.axis,
            )
        )
    return results


def activation_footprint(special: TileView, cols: int, rows: int) -> Optional[Tuple[ClearReason, Tuple[Cell, ...]]]:
    """Cells cleared when ``special`` activates; None for kinds without a footprint."""
    col, row = special.col, special.row
    if special.kind == TileKind.STRIPED_H:
        return ClearReason.ROW, tuple((c, row) for c in range(cols))
    if special.kind == TileKind.STRIPED_V:
        return ClearReason.COLUMN, tuple((col, r) for r in range(rows))
    if special.kind == TileKind.BOMB:
        return ClearReason.AREA_3X3, _square(col, row, BOMB_RADIUS, cols, rows)
    if special.kind == TileKind.WRAPPED:
        return ClearReason.AREA_5X5, _square(col, row, WRAPPED_RADIUS, cols, rows)
    return None


def _square(col: int, row: int, radius: int, cols: int, rows: int) -> Tuple[Cell, ...]:
    return tuple(
        (c, r)
        for r in range(row - radius, row + radius + 1)
        for c in range(col - radius, col + radius + 1)
        if 0 <= c < cols and 0 <= r < rows
    )


def compute_gravity_moves(board: Board) -> List[GravityMove]:
    """Per column, bottom-up: each tile falls by the number of empty cells beneath it."""
    moves: List[GravityMove] = []
    for col in range(board.cols):
        empty = 0
        for row in range(board.rows - 1, -1, -1):
            entity = board.grid[row][col]
            if entity is None:
                empty += 1
            elif empty:
                moves.append(GravityMove(tile_id=entity, col=col, from_row=row, to_row=row + empty))
    return moves


def apply_gravity_moves(board: Board, moves: Sequence[GravityMove]) -> None:
    # Moves are ordered bottom-up per column, so every target is already vacant.
    for move in moves:
        board.grid[move.to_row][move.col] = board.grid[move.from_row][move.col]
        board.grid[move.from_row][move.col] = None


def empty_cells_by_column(board: Board) -> Dict[int, List[int]]:
    empty: Dict[int, List[int]] = {}
    for col in range(board.cols):
        rows = [row for row in range(board.rows) if board.grid[row][col] is None]
        if rows:
            empty[col] = rows
    return empty

"""Brute-force move analysis over an immutable snapshot of the board.

Every unordered pair of neighbouring cells is swapped on a private scratch grid,
scanned for matches, and swapped back before the next pair is considered. The
live board is never touched, so no half-simulated state is ever observable.
"""
from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, Iterator, List, Optional, Tuple

from match3.components.resolution import MoveHint
from match3.components.tile import BASE_COLORS, TileKind, TileView, color_name
from match3.systems.board import BoardSystem
from match3.systems.board_ops import (
    Cell,
    MatchResult,
    adjacent_pairs,
    best_match,
    find_matches,
    matches_made_by_swap,
    mutable_copy,
    special_rank,
    swap_views,
)

logger = logging.getLogger(__name__)


class MoveCategory(str, Enum):
    THREE = "3x Match"
    FOUR = "4x Match"
    FIVE = "5x Match"
    SHAPE = "L/T Shape"


_CATEGORY_BY_SPECIAL: Dict[Optional[TileKind], MoveCategory] = {
    None: MoveCategory.THREE,
    TileKind.STRIPED_H: MoveCategory.FOUR,
    TileKind.STRIPED_V: MoveCategory.FOUR,
    TileKind.BOMB: MoveCategory.SHAPE,
    TileKind.WRAPPED: MoveCategory.SHAPE,
    TileKind.COLOR_BOMB: MoveCategory.FIVE,
}


def _empty_breakdown() -> Dict[str, int]:
    return {category.value: 0 for category in MoveCategory}


@dataclass(slots=True)
class MoveAnalysis:
    total: int = 0
    by_type: Dict[str, int] = field(default_factory=_empty_breakdown)
    by_color: Dict[str, Dict[str, int]] = field(
        default_factory=lambda: {color_name(kind): _empty_breakdown() for kind in BASE_COLORS}
    )

    def record(self, category: MoveCategory, color: str) -> None:
        self.total += 1
        self.by_type[category.value] += 1
        # Specials never start a match, so an unknown colour is simply not tallied.
        if color in self.by_color:
            self.by_color[color][category.value] += 1


def categorize(special: Optional[TileKind]) -> MoveCategory:
    return _CATEGORY_BY_SPECIAL.get(special, MoveCategory.THREE)


class MoveFinder:
    def __init__(self, board_system: BoardSystem, *, rng: random.Random | None = None):
        self.board_system = board_system
        self.rng = rng or board_system.rng

    def _simulate(self) -> Iterator[Tuple[Cell, Cell, List[List[Optional[TileView]]], List[MatchResult]]]:
        scratch = mutable_copy(self.board_system.snapshot())
        board = self.board_system.board
        standing = find_matches(scratch)
        for src, dst in adjacent_pairs(board.cols, board.rows):
            swap_views(scratch, src, dst)
            try:
                matches = matches_made_by_swap(standing, find_matches(scratch, (src, dst)), src, dst)
                if matches:
                    yield src, dst, scratch, matches
            finally:
                swap_views(scratch, src, dst)

    def find_available_moves(self) -> MoveAnalysis:
        analysis = MoveAnalysis()
        for _, _, _, matches in self._simulate():
            best = best_match(matches)
            analysis.record(categorize(best.special), color_name(matches[0].color))
        return analysis

    def has_moves(self) -> bool:
        for _ in self._simulate():
            return True
        return False

    def candidate_moves(self) -> List[MoveHint]:
        moves: List[MoveHint] = []
        for src, dst, scratch, matches in self._simulate():
            involved: Dict[int, TileView] = {}
            for col, row in (src, dst):
                tile = scratch[row][col]
                if tile is not None:
                    involved.setdefault(tile.id, tile)
            for match in matches:
                for tile in match.tiles:
                    involved.setdefault(tile.id, tile)
            moves.append(
                MoveHint(
                    src=src,
                    dst=dst,
                    involved_tiles=tuple(involved.values()),
                    special=_best_special(matches),
                )
            )
        return moves

    def get_random_move(self) -> Optional[MoveHint]:
        moves = self.candidate_moves()
        if not moves:
            return None
        return self.rng.choice(moves)

    def log_analysis(self, analysis: MoveAnalysis, label: str = "Available moves",
                     log: Callable[..., None] | None = None) -> None:
        log = log or logger.info
        log("[Bot Analysis] %s: %d", label, analysis.total)
        if not analysis.total:
            return
        for category, count in analysis.by_type.items():
            if count:
                log("  %s: %d", category, count)
        for color, breakdown in analysis.by_color.items():
            details = ", ".join(f"{category} ({count})" for category, count in breakdown.items() if count)
            if details:
                log("  %s: %s", color, details)


def _best_special(matches: List[MatchResult]) -> Optional[TileKind]:
    best: Optional[TileKind] = None
    for match in matches:
        if match.special is None:
            continue
        if best is None or special_rank(match.special) > special_rank(best):
            best = match.special
    return best

"""Value objects describing what a resolution run did, phase by phase.

Renderers consume these to animate each step; nothing here touches the world.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple, Union

from match3.components.tile import TileKind, TileView

Cell = Tuple[int, int]


class ClearReason(Enum):
    MATCH = "match"
    ROW = "row"
    COLUMN = "column"
    AREA_3X3 = "area_3x3"
    AREA_5X5 = "area_5x5"


@dataclass(frozen=True, slots=True)
class ClearedTile:
    tile: TileView
    reason: ClearReason


@dataclass(frozen=True, slots=True)
class Activation:
    """A special tile swept into a match, with every cell its activation covers."""
    special: TileView
    reason: ClearReason
    cells: Tuple[Cell, ...]


@dataclass(frozen=True, slots=True)
class SpecialsPhase:
    depth: int
    created: Tuple[TileView, ...]


@dataclass(frozen=True, slots=True)
class ClearPhase:
    depth: int
    combo: int
    cleared: Tuple[ClearedTile, ...]
    activations: Tuple[Activation, ...]
    score: int


@dataclass(frozen=True, slots=True)
class GravityMove:
    tile_id: int
    col: int
    from_row: int
    to_row: int

    @property
    def distance(self) -> int:
        return self.to_row - self.from_row


@dataclass(frozen=True, slots=True)
class GravityPhase:
    depth: int
    moves: Tuple[GravityMove, ...]


@dataclass(frozen=True, slots=True)
class RefillSpawn:
    tile: TileView
    # Number of cells above the board the tile enters from (1 = just above row 0).
    drop_offset: int


@dataclass(frozen=True, slots=True)
class RefillPhase:
    depth: int
    spawned: Tuple[RefillSpawn, ...]


Phase = Union[SpecialsPhase, ClearPhase, GravityPhase, RefillPhase]


@dataclass(frozen=True, slots=True)
class ResolutionReport:
    phases: Tuple[Phase, ...]
    level_scores: Tuple[int, ...]
    combo: int
    sweep_restarts: int = 0
    depth_limit_reached: bool = False

    @property
    def total_score(self) -> int:
        return sum(self.level_scores)

    @property
    def levels(self) -> int:
        return len(self.level_scores)

    def phases_of(self, phase_type: type) -> list:
        return [phase for phase in self.phases if isinstance(phase, phase_type)]


@dataclass(frozen=True, slots=True)
class ReshuffleResult:
    converged: bool
    attempts: int


@dataclass(frozen=True, slots=True)
class MoveHint:
    """One matching swap, with the tiles it would involve in their post-swap cells."""
    src: Cell
    dst: Cell
    involved_tiles: Tuple[TileView, ...]
    special: Optional[TileKind]

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Dict, List


class TileKind(IntEnum):
    """Tile kinds ordered so that every special sits at or above STRIPED_H."""
    RED = 0
    BLUE = 1
    GREEN = 2
    YELLOW = 3
    PURPLE = 4
    ORANGE = 5
    STRIPED_H = 6
    STRIPED_V = 7
    BOMB = 8
    WRAPPED = 9
    COLOR_BOMB = 10

    @property
    def is_special(self) -> bool:
        return self >= TileKind.STRIPED_H


BASE_COLORS: List[TileKind] = [
    TileKind.RED,
    TileKind.BLUE,
    TileKind.GREEN,
    TileKind.YELLOW,
    TileKind.PURPLE,
    TileKind.ORANGE,
]

COLOR_NAMES: Dict[TileKind, str] = {
    TileKind.RED: "Red",
    TileKind.BLUE: "Blue",
    TileKind.GREEN: "Green",
    TileKind.YELLOW: "Yellow",
    TileKind.PURPLE: "Purple",
    TileKind.ORANGE: "Orange",
}


def color_name(kind: TileKind) -> str:
    return COLOR_NAMES.get(kind, "Special")


@dataclass(slots=True)
class TileType:
    """Per-tile kind assignment.

    The owning entity id is the tile's identity. Position is not stored here:
    the Board grid is the only record of where a tile sits.
    """
    kind: TileKind


@dataclass(frozen=True, slots=True)
class TileView:
    """Read-only picture of a tile at the moment it was observed on the grid."""
    id: int
    kind: TileKind
    col: int
    row: int

    @property
    def cell(self) -> tuple[int, int]:
        return self.col, self.row

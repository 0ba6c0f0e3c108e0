from __future__ import annotations

import random
from typing import Dict, List, Optional, Sequence, Tuple

from match3.components.tile import TileKind
from match3.events.bus import EventBus
from match3.systems.board import BoardSystem
from match3.world import create_world

KIND_CODES: Dict[str, Optional[TileKind]] = {
    'R': TileKind.RED,
    'B': TileKind.BLUE,
    'G': TileKind.GREEN,
    'Y': TileKind.YELLOW,
    'P': TileKind.PURPLE,
    'O': TileKind.ORANGE,
    'h': TileKind.STRIPED_H,
    'v': TileKind.STRIPED_V,
    'b': TileKind.BOMB,
    'w': TileKind.WRAPPED,
    'c': TileKind.COLOR_BOMB,
    '.': None,
}

# Red/blue/green diagonal stripes: no run of three and no swap that creates one.
_STRIPES = [TileKind.RED, TileKind.BLUE, TileKind.GREEN]


def parse_layout(rows: Sequence[str]) -> List[List[Optional[TileKind]]]:
    """Turn rows such as 'RBG.h' into kinds; row 0 is the top of the board."""
    return [[KIND_CODES[code] for code in row.replace(' ', '')] for row in rows]


def diagonal_layout(
    cols: int, rows: int, overrides: Dict[Tuple[int, int], str] | None = None
) -> List[List[Optional[TileKind]]]:
    layout = [[_STRIPES[(col + row) % 3] for col in range(cols)] for row in range(rows)]
    for (col, row), code in (overrides or {}).items():
        layout[row][col] = KIND_CODES[code]
    return layout


def build_board(layout, seed: int = 1234, bus: EventBus | None = None):
    """World, bus and board system loaded with ``layout`` instead of a random setup."""
    bus = bus or EventBus()
    world = create_world(random.Random(seed))
    rows = len(layout)
    cols = len(layout[0]) if rows else 0
    board = BoardSystem(world, bus, cols, rows, populate=False)
    board.load_layout(layout)
    return world, bus, board

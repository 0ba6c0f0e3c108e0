from dataclasses import dataclass, field
from typing import List, Optional, Tuple

Cell = Tuple[int, int]  # (col, row)


@dataclass(slots=True)
class Board:
    """Grid of tile entity ids, indexed grid[row][col] with row 0 at the top."""
    cols: int
    rows: int
    grid: List[List[Optional[int]]] = field(default_factory=list)
    # Cells of the most recent swap; biases which tile receives a created special.
    last_swap: Optional[Tuple[Cell, Cell]] = None

    def __post_init__(self) -> None:
        if not self.grid:
            self.grid = [[None] * self.cols for _ in range(self.rows)]

    def in_bounds(self, col: int, row: int) -> bool:
        return 0 <= col < self.cols and 0 <= row < self.rows

"""
grid.py - Mines grid value objects.

A Grid is exactly 25 index-addressed cells. Mine placement happens once, at
construction time, and the layout is never re-shuffled afterwards. JSON is
only produced/consumed at the storage boundary (to_json / from_json).
"""

import json
import random
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, List, Optional

TOTAL_TILES = 25
MIN_MINES = 1
MAX_MINES = 24

MULTIPLIER_BASE = Decimal("1.0")
MULTIPLIER_STEP = Decimal("0.1")
MULTIPLIER_CAP = Decimal("25.0")


@dataclass(frozen=True)
class Cell:
    index: int
    is_mine: bool
    revealed: bool = False

    def to_dict(self) -> dict:
        return {"index": self.index, "isMine": self.is_mine, "revealed": self.revealed}


class Grid:
    """Immutable 25-cell Mines board."""

    def __init__(self, cells: Iterable[Cell]):
        cells = tuple(cells)
        if len(cells) != TOTAL_TILES:
            raise ValueError(f"Grid must have {TOTAL_TILES} cells, got {len(cells)}")
        for pos, cell in enumerate(cells):
            if cell.index != pos:
                raise ValueError(f"Cell at position {pos} has index {cell.index}")
        self._cells = cells

    @classmethod
    def generate(cls, mines_count: int, rng: Optional[random.Random] = None) -> "Grid":
        """Place ``mines_count`` mines by rejection sampling over [0, 25)."""
        if not MIN_MINES <= mines_count <= MAX_MINES:
            raise ValueError(f"mines_count must be between {MIN_MINES} and {MAX_MINES}")
        rng = rng or random.SystemRandom()
        mines = set()
        while len(mines) < mines_count:
            mines.add(rng.randrange(TOTAL_TILES))
        return cls(Cell(index=i, is_mine=i in mines) for i in range(TOTAL_TILES))

    @property
    def cells(self) -> tuple:
        return self._cells

    def __getitem__(self, index: int) -> Cell:
        return self._cells[index]

    def __len__(self) -> int:
        return len(self._cells)

    def __eq__(self, other) -> bool:
        return isinstance(other, Grid) and self._cells == other._cells

    def mine_positions(self) -> List[int]:
        return [c.index for c in self._cells if c.is_mine]

    @property
    def mines_count(self) -> int:
        return sum(1 for c in self._cells if c.is_mine)

    @property
    def safe_count(self) -> int:
        return TOTAL_TILES - self.mines_count

    def reveal(self, index: int) -> "Grid":
        """Return a new grid with ``index`` revealed."""
        cells = list(self._cells)
        cell = cells[index]
        cells[index] = Cell(index=cell.index, is_mine=cell.is_mine, revealed=True)
        return Grid(cells)

    def public_view(self, show_mines: bool = False) -> List[dict]:
        """Cells as the player may see them; mines hidden until the game ends."""
        return [
            {
                "index": c.index,
                "revealed": c.revealed,
                "is_mine": c.is_mine if (show_mines or c.revealed) else False,
            }
            for c in self._cells
        ]

    # -------------------------------------------------------------------
    # Storage boundary
    # -------------------------------------------------------------------

    def to_json(self) -> str:
        return json.dumps([c.to_dict() for c in self._cells], separators=(",", ":"))

    @classmethod
    def from_json(cls, raw: str) -> "Grid":
        data = json.loads(raw)
        return cls(
            Cell(index=int(d["index"]), is_mine=bool(d["isMine"]), revealed=bool(d["revealed"]))
            for d in data
        )


def multiplier_for(revealed_safe: int) -> Decimal:
    """Linear payout multiplier: +0.1x per safe tile, capped at 25x."""
    return min(MULTIPLIER_BASE + MULTIPLIER_STEP * revealed_safe, MULTIPLIER_CAP)

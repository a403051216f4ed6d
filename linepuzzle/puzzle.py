"""Puzzle lattice, coordinate wrapping and symmetry mapping.

A 2x2 puzzle is stored as a 5x5 lattice::

    corner, edge, corner, edge, corner
    edge,   cell, edge,   cell, edge
    corner, edge, corner, edge, corner
    edge,   cell, edge,   cell, edge
    corner, edge, corner, edge, corner

Corners (both coordinates even) and edges (exactly one odd) hold a
:class:`LineCell`. Interior cells (both odd) hold a :class:`ContentCell` or
``None`` when empty. The grid is column-major: ``grid[x][y]``.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from .cells import CARDINALS, Cell, ContentCell, Direction, Gap, LineCell, LineState

logger = logging.getLogger(__name__)

Position = Tuple[int, int]


class Fold(IntEnum):
    """Per-axis symmetry fold."""

    NONE = 0
    MIRROR = 1
    ROTATE = 2  # shift by half a period


@dataclass(frozen=True)
class SymmetryConfig:
    """Symmetry group element: axis folds plus an optional diagonal swap."""

    x: Fold = Fold.NONE
    y: Fold = Fold.NONE
    diagonal: bool = False

    def is_active(self) -> bool:
        return self.x != Fold.NONE or self.y != Fold.NONE or self.diagonal


@dataclass
class PuzzleSettings:
    """Rule toggles persisted alongside the puzzle."""

    negations_cancel_negations: bool = False
    shapeless_zero_poly: bool = False
    precise_polyominos: bool = False
    flash_for_errors: bool = False
    fat_startpoints: bool = False


# Permutations of the cardinal index [top, right, left, bottom].
_X_MIRROR = (0, 2, 1, 3)
_Y_MIRROR = (3, 1, 2, 0)
_DIAGONAL = (2, 3, 0, 1)


def _fold_coordinate(value: int, size: int, fold: Fold, pillar: bool) -> int:
    if fold == Fold.NONE:
        return value
    if pillar:
        if fold == Fold.MIRROR:
            return size // 2 - value
        return size // 2 + value
    if fold == Fold.MIRROR:
        return size - value - 1
    period = max(size - 1, 1)
    return (value + period // 2) % period


class Puzzle:
    """Cell lattice of a line-drawing puzzle."""

    def __init__(
        self,
        width: int,
        height: int,
        pillar: Union[bool, Sequence[bool]] = (False, False),
        symmetry: Optional[SymmetryConfig] = None,
        name: str = "",
    ) -> None:
        """Create an empty puzzle of ``width x height`` logical cells."""
        if width <= 0 or height <= 0:
            raise ValueError("width and height must be positive integers")
        if isinstance(pillar, bool):
            pillar = (pillar, False)
        self.pillar: Tuple[bool, bool] = (bool(pillar[0]), bool(pillar[1]))
        self.symmetry = symmetry if symmetry is not None else SymmetryConfig()
        self.name = name
        self.settings = PuzzleSettings()
        self.auto_solved = False
        self.valid = False
        self.invalid_elements: List[Position] = []
        # Active start/end of a path being traced, if any.
        self.start_point: Optional[Position] = None
        self.end_point: Optional[Position] = None
        self.grid: List[List[Cell]] = []
        self.new_grid(2 * width + (not self.pillar[0]), 2 * height + (not self.pillar[1]))

    @classmethod
    def from_lattice_size(
        cls, width: int, height: int, pillar: Sequence[bool] = (False, False)
    ) -> "Puzzle":
        """Create a puzzle from lattice dimensions instead of logical ones."""
        logical_w, rem_w = divmod(width - (not pillar[0]), 2)
        logical_h, rem_h = divmod(height - (not pillar[1]), 2)
        if rem_w or rem_h:
            raise ValueError(
                f"lattice size {width}x{height} does not match pillar flags {tuple(pillar)}"
            )
        return cls(logical_w, logical_h, pillar=pillar)

    def new_grid(self, width: int, height: int) -> None:
        """Reallocate the lattice. Every other path-clearing call mutates in place."""
        self.grid = []
        for x in range(width):
            column: List[Cell] = []
            for y in range(height):
                column.append(None if x % 2 == 1 and y % 2 == 1 else LineCell())
            self.grid.append(column)
        self.width = width
        self.height = height

    def is_symmetry(self) -> bool:
        return self.symmetry.is_active()

    def is_pillar(self) -> bool:
        return self.pillar[0] or self.pillar[1]

    def wrap(self, x: int, y: int) -> Position:
        """Reduce coordinates modulo the lattice size on pillar axes only."""
        if self.pillar[0]:
            x %= self.width
        if self.pillar[1]:
            y %= self.height
        return x, y

    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def get_cell(self, x: int, y: int) -> Cell:
        x, y = self.wrap(x, y)
        if not self.in_bounds(x, y):
            return None
        return self.grid[x][y]

    def set_cell(self, x: int, y: int, value: Cell) -> None:
        x, y = self.wrap(x, y)
        if not self.in_bounds(x, y):
            return
        self.grid[x][y] = value

    def get_line(self, x: int, y: int) -> Optional[LineState]:
        """Line state at a node or edge; content cells count as absent."""
        cell = self.get_cell(x, y)
        if not isinstance(cell, LineCell):
            return None
        return cell.line

    def update_cell(self, x: int, y: int, **fields) -> None:
        """Assign attributes on an existing cell; no-op for absent cells."""
        cell = self.get_cell(x, y)
        if cell is None:
            return
        for key, value in fields.items():
            setattr(cell, key, value)

    def get_symmetric_position(self, x: int, y: int) -> Position:
        """Return the position the configured symmetry maps ``(x, y)`` to."""
        if not self.is_symmetry():
            return x, y
        x, y = self.wrap(x, y)
        if self.symmetry.diagonal:
            x, y = y, x
        x = _fold_coordinate(x, self.width, self.symmetry.x, self.pillar[0])
        y = _fold_coordinate(y, self.height, self.symmetry.y, self.pillar[1])
        return self.wrap(x, y)

    def get_symmetric_cell(self, x: int, y: int) -> Cell:
        return self.get_cell(*self.get_symmetric_position(x, y))

    def get_symmetric_direction(self, direction: Optional[Direction]) -> Optional[Direction]:
        """Remap a cardinal direction the same way positions are remapped."""
        if not self.is_symmetry() or direction not in CARDINALS:
            return direction
        z = int(direction)
        if self.symmetry.diagonal:
            z = _DIAGONAL[z]
        if self.symmetry.x == Fold.MIRROR:
            z = _X_MIRROR[z]
        if self.symmetry.y == Fold.MIRROR:
            z = _Y_MIRROR[z]
        return Direction(z)

    def _is_open(self, x: int, y: int) -> bool:
        cell = self.get_cell(x, y)
        return cell is None or (isinstance(cell, LineCell) and cell.gap == Gap.FULL)

    def get_valid_end_directions(self, x: int, y: int) -> List[Direction]:
        """Directions an end placed at ``(x, y)`` may exit through.

        A direction qualifies only when the neighbor and the neighbor's
        symmetric counterpart are both open.
        """
        x, y = self.wrap(x, y)
        if not self.in_bounds(x, y):
            return []
        candidates = (
            (Direction.LEFT, x - 1, y),
            (Direction.RIGHT, x + 1, y),
            (Direction.TOP, x, y - 1),
            (Direction.BOTTOM, x, y + 1),
        )
        dirs = []
        for direction, nx, ny in candidates:
            if self._is_open(nx, ny) and self._is_open(*self.get_symmetric_position(nx, ny)):
                dirs.append(direction)
        return dirs

    def clear_path(self) -> None:
        """Erase every traced line without reallocating the grid."""
        for column in self.grid:
            for cell in column:
                if isinstance(cell, LineCell):
                    cell.line = LineState.NONE
                    cell.dir = None
                    cell.color = 0

    def start_points(self) -> List[Position]:
        return [
            (x, y)
            for x in range(self.width)
            for y in range(self.height)
            if self.grid[x][y] is not None and self.grid[x][y].start
        ]

    def end_points(self) -> List[Position]:
        return [
            (x, y)
            for x in range(self.width)
            for y in range(self.height)
            if self.grid[x][y] is not None and self.grid[x][y].end is not None
        ]

    def end_count(self) -> int:
        return len(self.end_points())

    def clone(self) -> "Puzzle":
        return copy.deepcopy(self)

    def to_dict(self) -> Dict[str, Any]:
        """Return the legacy JSON-compatible form of this puzzle."""
        from .serializer import puzzle_to_dict

        return puzzle_to_dict(self)

    @classmethod
    def from_dict(cls, obj: Dict[str, Any]) -> "Puzzle":
        from .serializer import puzzle_from_dict

        return puzzle_from_dict(obj)

    def log_grid(self) -> str:
        """Render the lattice as text and emit it at DEBUG level."""
        rows = []
        for y in range(self.height):
            chars = []
            for x in range(self.width):
                cell = self.grid[x][y]
                if cell is None:
                    chars.append(" ")
                elif cell.start:
                    chars.append("S")
                elif cell.end is not None:
                    chars.append("E")
                elif isinstance(cell, ContentCell):
                    chars.append("?")
                elif cell.line == LineState.NONE:
                    chars.append(".")
                elif cell.line == LineState.YELLOW:
                    chars.append("o")
                else:
                    chars.append("#")
            rows.append("".join(chars))
        text = "\n".join(rows)
        logger.debug("Puzzle %r grid:\n%s", self.name, text)
        return text

    def __repr__(self) -> str:
        return (
            f"Puzzle(name={self.name!r}, lattice={self.width}x{self.height}, "
            f"pillar={self.pillar}, symmetry={self.symmetry})"
        )

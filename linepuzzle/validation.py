"""Default validity collaborators used by the solver.

The solver only relies on two contracts: a validator that sets
``puzzle.valid`` once a path reaches an end, and a region check returning a
:class:`RegionCheckResult`. The implementations here cover dots only;
element rules (squares, stars, polyominos, negations) plug in through the
same callables.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, List, Optional

from .cells import Dot, LineCell, LineState
from .puzzle import Position, Puzzle
from .regions import Region


@dataclass
class RegionCheckResult:
    """Outcome of checking one region against its constraints."""

    valid: bool
    invalid_elements: List[Position] = field(default_factory=list)


Validator = Callable[[Puzzle], None]
RegionCheck = Callable[[Puzzle, Optional[Region]], RegionCheckResult]


def validate_path(puzzle: Puzzle) -> None:
    """Mark the puzzle valid iff every dot lies on the traced path."""
    missed: List[Position] = []
    for x in range(puzzle.width):
        for y in range(puzzle.height):
            cell = puzzle.grid[x][y]
            if isinstance(cell, LineCell) and cell.dot > Dot.NONE and cell.line == LineState.NONE:
                missed.append((x, y))
    puzzle.invalid_elements = missed
    puzzle.valid = not missed


def check_region_dots(puzzle: Puzzle, region: Optional[Region]) -> RegionCheckResult:
    """A sealed-off region must not contain a dot the path can no longer reach."""
    if region is None:
        return RegionCheckResult(valid=True)
    missed = [
        (x, y)
        for x, y in region.cells
        if isinstance(puzzle.grid[x][y], LineCell) and puzzle.grid[x][y].dot > Dot.NONE
    ]
    return RegionCheckResult(valid=not missed, invalid_elements=missed)

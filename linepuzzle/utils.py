"""Utility helpers for building, generating and rendering puzzles."""

from __future__ import annotations

from typing import Iterable, List, Optional, Sequence, Tuple

import numpy as np

from .cells import Direction, Dot, Gap, LineCell, LineState
from .puzzle import Position, Puzzle, SymmetryConfig

_STEPS = {
    Direction.LEFT: (-1, 0),
    Direction.RIGHT: (1, 0),
    Direction.TOP: (0, -1),
    Direction.BOTTOM: (0, 1),
}

# RGB colors used by render_lattice.
BACKGROUND = (64, 64, 64)
TRACK = (160, 160, 160)
LINE_COLORS = {
    LineState.BLACK: (20, 20, 20),
    LineState.BLUE: (40, 110, 220),
    LineState.YELLOW: (235, 200, 40),
}
DOT_COLOR = (255, 255, 255)
START_COLOR = (60, 200, 90)
END_COLOR = (220, 60, 60)


def set_random_seed(seed: int = 42) -> np.random.Generator:
    """Create a deterministic numpy random generator."""
    return np.random.default_rng(seed)


def make_puzzle(
    width: int,
    height: int,
    starts: Iterable[Position] = (),
    ends: Iterable[Tuple[int, int, Direction]] = (),
    gaps: Iterable[Tuple[int, int, Gap]] = (),
    dots: Iterable[Position] = (),
    pillar: Sequence[bool] = (False, False),
    symmetry: Optional[SymmetryConfig] = None,
    name: str = "",
) -> Puzzle:
    """Build a puzzle of ``width x height`` cells from lattice coordinates."""
    puzzle = Puzzle(width, height, pillar=pillar, symmetry=symmetry, name=name)
    for x, y in starts:
        _line_cell(puzzle, x, y).start = True
    for x, y, direction in ends:
        _line_cell(puzzle, x, y).end = direction
    for x, y, gap in gaps:
        _line_cell(puzzle, x, y).gap = gap
    for x, y in dots:
        _line_cell(puzzle, x, y).dot = Dot.BLACK
    return puzzle


def _line_cell(puzzle: Puzzle, x: int, y: int) -> LineCell:
    cell = puzzle.get_cell(x, y)
    if not isinstance(cell, LineCell):
        raise ValueError(f"({x}, {y}) is not a node or edge of {puzzle!r}")
    return cell


def generate_random_puzzle(
    width: int = 4,
    height: int = 4,
    seed: int = 42,
    num_dots: int = 3,
    num_gaps: int = 2,
) -> Puzzle:
    """Generate a deterministic puzzle: bottom-left start, top-right end, random dots and breaks."""
    rng = set_random_seed(seed)
    puzzle = Puzzle(width, height, name=f"random-{width}x{height}-{seed}")
    start = (0, puzzle.height - 1)
    end = (puzzle.width - 1, 0)
    _line_cell(puzzle, *start).start = True
    _line_cell(puzzle, *end).end = puzzle.get_valid_end_directions(*end)[0]

    edges = [
        (x, y)
        for x in range(puzzle.width)
        for y in range(puzzle.height)
        if x % 2 != y % 2
    ]
    nodes = [
        (x, y)
        for x in range(0, puzzle.width, 2)
        for y in range(0, puzzle.height, 2)
        if (x, y) not in (start, end)
    ]
    for idx in rng.choice(len(edges), size=min(num_gaps, len(edges)), replace=False):
        x, y = edges[int(idx)]
        puzzle.grid[x][y].gap = Gap.BREAK
    for idx in rng.choice(len(nodes), size=min(num_dots, len(nodes)), replace=False):
        x, y = nodes[int(idx)]
        puzzle.grid[x][y].dot = Dot.BLACK
    return puzzle


def traced_path(puzzle: Puzzle, start: Position) -> List[Position]:
    """Follow the ``dir`` pointers of a solved puzzle from ``start`` to its end."""
    path: List[Position] = []
    x, y = puzzle.wrap(*start)
    limit = puzzle.width * puzzle.height
    while len(path) <= limit:
        cell = puzzle.get_cell(x, y)
        if not isinstance(cell, LineCell) or cell.dir is None:
            break
        path.append((x, y))
        if cell.dir == Direction.NONE:
            break
        dx, dy = _STEPS[cell.dir]
        x, y = puzzle.wrap(x + dx, y + dy)
    return path


def render_lattice(puzzle: Puzzle, scale: int = 8) -> np.ndarray:
    """Render the lattice as an RGB uint8 image, ``scale`` pixels per lattice cell."""
    if scale <= 0:
        raise ValueError("scale must be positive")
    canvas = np.zeros((puzzle.height, puzzle.width, 3), dtype=np.uint8)
    canvas[:, :] = BACKGROUND
    for x in range(puzzle.width):
        for y in range(puzzle.height):
            cell = puzzle.grid[x][y]
            if not isinstance(cell, LineCell) or cell.gap == Gap.FULL:
                continue
            color = TRACK
            if cell.line in LINE_COLORS:
                color = LINE_COLORS[cell.line]
            elif cell.start:
                color = START_COLOR
            elif cell.end is not None:
                color = END_COLOR
            elif cell.dot > Dot.NONE:
                color = DOT_COLOR
            if cell.gap == Gap.BREAK and cell.line == LineState.NONE:
                color = BACKGROUND
            canvas[y, x] = color
    return np.repeat(np.repeat(canvas, scale, axis=0), scale, axis=1)

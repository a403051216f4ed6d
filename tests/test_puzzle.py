"""Grid model tests: layout, wrapping, symmetry and end directions."""

from __future__ import annotations

import itertools

import pytest

from linepuzzle.cells import ContentCell, Direction, ElementType, Gap, LineCell, LineState
from linepuzzle.puzzle import Fold, Puzzle, SymmetryConfig
from linepuzzle.utils import make_puzzle


def _all_positions(puzzle: Puzzle):
    return itertools.product(range(puzzle.width), range(puzzle.height))


def test_lattice_layout() -> None:
    """A 2x2 puzzle is a 5x5 lattice with empty interior cells."""
    puzzle = Puzzle(2, 2)
    assert (puzzle.width, puzzle.height) == (5, 5)
    for x, y in _all_positions(puzzle):
        cell = puzzle.grid[x][y]
        if x % 2 == 1 and y % 2 == 1:
            assert cell is None
        else:
            assert isinstance(cell, LineCell)


def test_pillar_lattice_has_no_closing_column() -> None:
    """Pillar axes drop the duplicated boundary column."""
    assert (Puzzle(2, 2, pillar=True).width, Puzzle(2, 2, pillar=True).height) == (4, 5)
    assert Puzzle(2, 2, pillar=(False, True)).height == 4


def test_invalid_sizes_raise() -> None:
    """Non-positive sizes and mismatched lattice sizes are rejected."""
    with pytest.raises(ValueError, match="positive"):
        Puzzle(0, 2)
    with pytest.raises(ValueError, match="does not match"):
        Puzzle.from_lattice_size(4, 5)
    assert Puzzle.from_lattice_size(4, 5, pillar=(True, False)).pillar == (True, False)


def test_out_of_bounds_access_never_raises() -> None:
    """Reads outside a non-pillar lattice return None; writes are ignored."""
    puzzle = Puzzle(2, 2)
    for x, y in [(-1, 0), (5, 0), (0, -1), (0, 5), (100, -100)]:
        assert puzzle.get_cell(x, y) is None
        puzzle.set_cell(x, y, LineCell(line=LineState.BLACK))
    assert all(
        not isinstance(puzzle.grid[x][y], LineCell) or puzzle.grid[x][y].line == LineState.NONE
        for x, y in _all_positions(puzzle)
    )


def test_pillar_wrap() -> None:
    """Pillar x coordinates wrap around; y stays bounded."""
    puzzle = Puzzle(2, 2, pillar=True)
    assert puzzle.wrap(-1, 0) == (3, 0)
    assert puzzle.wrap(4, 2) == (0, 2)
    assert puzzle.get_cell(-1, 0) is puzzle.grid[3][0]
    assert puzzle.get_cell(4, 0) is puzzle.grid[0][0]
    assert puzzle.get_cell(0, -1) is None
    assert puzzle.get_cell(-401, 7) is None


def test_get_line_ignores_content_cells() -> None:
    """Content cells and absent cells have no line state."""
    puzzle = Puzzle(1, 1)
    puzzle.grid[1][1] = ContentCell(ElementType.SQUARE)
    assert puzzle.get_line(1, 1) is None
    assert puzzle.get_line(0, 0) == LineState.NONE
    assert puzzle.get_line(9, 9) is None


@pytest.mark.parametrize(
    "symmetry",
    [
        SymmetryConfig(x=Fold.MIRROR),
        SymmetryConfig(y=Fold.MIRROR),
        SymmetryConfig(x=Fold.MIRROR, y=Fold.MIRROR),
        SymmetryConfig(diagonal=True),
        SymmetryConfig(x=Fold.MIRROR, y=Fold.MIRROR, diagonal=True),
    ],
)
def test_mirror_symmetry_is_involution(symmetry: SymmetryConfig) -> None:
    """Applying a mirror symmetry twice returns every lattice position."""
    puzzle = Puzzle(3, 3, symmetry=symmetry)
    for x, y in _all_positions(puzzle):
        sx, sy = puzzle.get_symmetric_position(x, y)
        assert puzzle.in_bounds(sx, sy)
        assert puzzle.get_symmetric_position(sx, sy) == (x, y)


def test_pillar_mirror_is_involution() -> None:
    """Pillar mirroring wraps and still pairs positions up."""
    puzzle = Puzzle(3, 2, pillar=True, symmetry=SymmetryConfig(x=Fold.MIRROR))
    for x, y in _all_positions(puzzle):
        assert puzzle.get_symmetric_position(*puzzle.get_symmetric_position(x, y)) == (x, y)
    assert puzzle.get_symmetric_position(1, 0) == (2, 0)


def test_symmetric_position_examples() -> None:
    """Mirror, rotate and identity mappings on a 5x5 lattice."""
    assert Puzzle(2, 2).get_symmetric_position(1, 3) == (1, 3)
    assert Puzzle(2, 2, symmetry=SymmetryConfig(x=Fold.MIRROR)).get_symmetric_position(1, 3) == (3, 3)
    assert Puzzle(2, 2, symmetry=SymmetryConfig(y=Fold.MIRROR)).get_symmetric_position(1, 3) == (1, 1)
    assert Puzzle(2, 2, symmetry=SymmetryConfig(x=Fold.ROTATE)).get_symmetric_position(1, 3) == (3, 3)
    assert Puzzle(2, 2, symmetry=SymmetryConfig(diagonal=True)).get_symmetric_position(1, 4) == (4, 1)


def test_symmetric_direction() -> None:
    """Directions are remapped consistently with positions."""
    mirror_x = Puzzle(2, 2, symmetry=SymmetryConfig(x=Fold.MIRROR))
    assert mirror_x.get_symmetric_direction(Direction.LEFT) == Direction.RIGHT
    assert mirror_x.get_symmetric_direction(Direction.TOP) == Direction.TOP

    mirror_y = Puzzle(2, 2, symmetry=SymmetryConfig(y=Fold.MIRROR))
    assert mirror_y.get_symmetric_direction(Direction.TOP) == Direction.BOTTOM
    assert mirror_y.get_symmetric_direction(Direction.RIGHT) == Direction.RIGHT

    diagonal = Puzzle(2, 2, symmetry=SymmetryConfig(diagonal=True))
    assert diagonal.get_symmetric_direction(Direction.TOP) == Direction.LEFT
    assert diagonal.get_symmetric_direction(Direction.RIGHT) == Direction.BOTTOM

    assert mirror_x.get_symmetric_direction(Direction.NONE) == Direction.NONE
    assert mirror_x.get_symmetric_direction(None) is None
    assert Puzzle(2, 2).get_symmetric_direction(Direction.LEFT) == Direction.LEFT


def test_valid_end_directions() -> None:
    """Ends may only exit toward absent or fully gapped neighbors."""
    puzzle = Puzzle(2, 2)
    assert puzzle.get_valid_end_directions(4, 0) == [Direction.RIGHT, Direction.TOP]
    assert puzzle.get_valid_end_directions(2, 0) == [Direction.TOP]
    assert puzzle.get_valid_end_directions(2, 2) == []
    assert puzzle.get_valid_end_directions(9, 9) == []

    puzzle.grid[3][0].gap = Gap.FULL
    assert puzzle.get_valid_end_directions(4, 0) == [Direction.LEFT, Direction.RIGHT, Direction.TOP]


def test_valid_end_directions_respect_symmetry() -> None:
    """A direction is dropped when its symmetric counterpart is blocked."""
    puzzle = Puzzle(2, 2, symmetry=SymmetryConfig(x=Fold.ROTATE))
    assert puzzle.get_valid_end_directions(4, 0) == [Direction.TOP]


def test_clear_path_keeps_cell_identity() -> None:
    """Clearing a path resets trace fields on the existing cell objects."""
    puzzle = make_puzzle(2, 2, starts=[(0, 0)], ends=[(4, 4, Direction.BOTTOM)], dots=[(2, 2)])
    before = {(x, y): puzzle.grid[x][y] for x, y in _all_positions(puzzle)}
    for x in range(5):
        puzzle.update_cell(x, 0, line=LineState.BLACK, dir=Direction.RIGHT, color=1)

    puzzle.clear_path()

    for (x, y), cell in before.items():
        assert puzzle.grid[x][y] is cell
        if isinstance(cell, LineCell):
            assert cell.line == LineState.NONE
            assert cell.dir is None
            assert cell.color == 0
    assert puzzle.grid[0][0].start
    assert puzzle.grid[2][2].dot
    assert puzzle.grid[4][4].end == Direction.BOTTOM


def test_start_and_end_points() -> None:
    """Start and end points are discovered by scanning the lattice."""
    puzzle = make_puzzle(
        2, 2, starts=[(0, 4), (4, 4)], ends=[(0, 0, Direction.TOP), (2, 0, Direction.TOP)]
    )
    assert puzzle.start_points() == [(0, 4), (4, 4)]
    assert puzzle.end_count() == 2


def test_clone_is_deep() -> None:
    """A cloned puzzle shares no cells with the original."""
    puzzle = make_puzzle(1, 1, starts=[(0, 2)])
    copy = puzzle.clone()
    copy.grid[0][2].line = LineState.BLACK
    assert puzzle.grid[0][2].line == LineState.NONE
    assert copy.grid[0][2].start


def test_log_grid() -> None:
    """The text dump marks starts, ends and empty interior cells."""
    puzzle = make_puzzle(1, 1, starts=[(0, 2)], ends=[(2, 0, Direction.RIGHT)])
    assert puzzle.log_grid() == "..E\n. .\nS.."

"""Cell records stored in the puzzle lattice."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Optional, Union


class Direction(IntEnum):
    """Directions a path can take out of a cell.

    The first four values index the symmetry permutation tables, so their
    order is fixed.
    """

    TOP = 0
    RIGHT = 1
    LEFT = 2
    BOTTOM = 3
    NONE = 4

    @property
    def label(self) -> str:
        return self.name.lower()

    @classmethod
    def from_label(cls, label: str) -> "Direction":
        return cls[label.upper()]


CARDINALS = (Direction.TOP, Direction.RIGHT, Direction.LEFT, Direction.BOTTOM)


class LineState(IntEnum):
    """Traced state of a node or edge."""

    NONE = 0
    BLACK = 1  # primary path
    BLUE = 2  # primary path of a symmetric puzzle
    YELLOW = 3  # reflected path of a symmetric puzzle


class Gap(IntEnum):
    NONE = 0
    BREAK = 1
    FULL = 2


class Dot(IntEnum):
    NONE = 0
    BLACK = 1
    BLUE = 2
    YELLOW = 3
    INVISIBLE = 4


class ElementType(IntEnum):
    """Puzzle elements held by content cells. Values are the wire tags."""

    SQUARE = 2
    STAR = 3
    NEGATION = 4
    TRIANGLE = 5
    POLY = 6
    YLOP = 7


@dataclass
class LineCell:
    """A node or an edge: something the path can be drawn through."""

    line: LineState = LineState.NONE
    dir: Optional[Direction] = None
    dot: Dot = Dot.NONE
    gap: Gap = Gap.NONE
    color: int = 0
    start: bool = False
    end: Optional[Direction] = None

    def is_traced(self) -> bool:
        return self.line > LineState.NONE


@dataclass
class ContentCell:
    """An interior cell holding a puzzle element."""

    kind: ElementType
    color: str = "#000000ff"
    count: Optional[int] = None
    polyshape: Optional[int] = None
    start: bool = False
    end: Optional[Direction] = None


Cell = Union[LineCell, ContentCell, None]

"""Enclosed-region detection via a masked, two-pass flood fill."""

from __future__ import annotations

from typing import Iterator, List, Optional, Tuple

import numpy as np

from .cells import Dot, Gap, LineCell, LineState
from .puzzle import Position, Puzzle

# Markers of the masked grid.
PROCESSED = -1  # traced, outside, barrier, or already assigned to a region
NONCOUNT = 0  # passable but never reported as part of a region
COUNT = 1
GAP = 2  # full gap: the only edge the outside fill may cross
DOT = 3  # corners with a dot stop the outside fill


class Region:
    """A set of lattice positions with O(1) membership via column bitmasks."""

    def __init__(self, length: int) -> None:
        self.cells: List[Position] = []
        self.grid: List[int] = [0] * length

    def get_cell(self, x: int, y: int) -> bool:
        if not 0 <= x < len(self.grid) or y < 0:
            return False
        return (self.grid[x] >> y) & 1 == 1

    def set_cell(self, x: int, y: int) -> None:
        if self.get_cell(x, y):
            return
        self.grid[x] |= 1 << y
        self.cells.append((x, y))

    def to_mask(self, height: int) -> np.ndarray:
        """Return a boolean ``[width, height]`` array marking member cells."""
        mask = np.zeros((len(self.grid), height), dtype=bool)
        for x, y in self.cells:
            mask[x, y] = True
        return mask

    def __contains__(self, position: Tuple[int, int]) -> bool:
        return self.get_cell(*position)

    def __iter__(self) -> Iterator[Position]:
        return iter(self.cells)

    def __len__(self) -> int:
        return len(self.cells)

    def __repr__(self) -> str:
        return f"Region(size={len(self.cells)})"


class RegionDetector:
    """Compute enclosed regions of a puzzle without touching its grid."""

    def __init__(self, puzzle: Puzzle) -> None:
        self.puzzle = puzzle

    def masked_grid(self) -> np.ndarray:
        """Build the scratch marker grid and run the outside fill on it."""
        puzzle = self.puzzle
        mask = np.full((puzzle.width, puzzle.height), COUNT, dtype=np.int8)
        for x in range(puzzle.width):
            column = puzzle.grid[x]
            for y in range(puzzle.height):
                if x % 2 == 1 and y % 2 == 1:
                    continue
                cell = column[y]
                if not isinstance(cell, LineCell):
                    continue
                if cell.line > LineState.NONE:
                    mask[x, y] = PROCESSED
                elif cell.gap == Gap.FULL:
                    mask[x, y] = GAP
                elif cell.dot > Dot.NONE:
                    mask[x, y] = DOT

        # A mid-segment start is a barrier; a mid-segment end is passable.
        if puzzle.start_point is not None:
            sx, sy = puzzle.wrap(*puzzle.start_point)
            if sx % 2 != sy % 2 and puzzle.in_bounds(sx, sy):
                mask[sx, sy] = PROCESSED
        if puzzle.end_point is not None:
            ex, ey = puzzle.wrap(*puzzle.end_point)
            if ex % 2 != ey % 2 and puzzle.in_bounds(ex, ey):
                mask[ex, ey] = NONCOUNT

        if not puzzle.pillar[0]:
            for y in range(1, puzzle.height, 2):
                self._flood_outside(mask, 0, y)
                self._flood_outside(mask, puzzle.width - 1, y)
        if not puzzle.pillar[1]:
            for x in range(1, puzzle.width, 2):
                self._flood_outside(mask, x, 0)
                self._flood_outside(mask, x, puzzle.height - 1)
        return mask

    def _flood_outside(self, mask: np.ndarray, x: int, y: int) -> None:
        """Mark everything reachable from the boundary through full gaps."""
        puzzle = self.puzzle
        stack = [(x, y)]
        while stack:
            cx, cy = puzzle.wrap(*stack.pop())
            if not puzzle.in_bounds(cx, cy):
                continue
            marker = mask[cx, cy]
            if marker == PROCESSED:
                continue
            is_corner = cx % 2 == 0 and cy % 2 == 0
            if cx % 2 != cy % 2 and marker != GAP:
                continue
            if is_corner and marker == DOT:
                continue
            mask[cx, cy] = PROCESSED
            if is_corner:
                # Corners absorb the fill but never propagate it.
                continue
            stack.extend(((cx, cy + 1), (cx + 1, cy), (cx, cy - 1), (cx - 1, cy)))

    def _flood_region(self, mask: np.ndarray, x: int, y: int, region: Region) -> None:
        puzzle = self.puzzle
        stack = [(x, y)]
        while stack:
            cx, cy = puzzle.wrap(*stack.pop())
            if not puzzle.in_bounds(cx, cy):
                continue
            marker = mask[cx, cy]
            if marker == PROCESSED:
                continue
            if marker != NONCOUNT:
                region.set_cell(cx, cy)
            mask[cx, cy] = PROCESSED
            stack.extend(((cx, cy + 1), (cx + 1, cy), (cx, cy - 1), (cx - 1, cy)))

    def get_all_regions(self) -> List[Region]:
        """Partition every enclosed, untraced cell into disjoint regions."""
        mask = self.masked_grid()
        regions: List[Region] = []
        for x in range(self.puzzle.width):
            for y in range(self.puzzle.height):
                if mask[x, y] == PROCESSED:
                    continue
                region = Region(self.puzzle.width)
                self._flood_region(mask, x, y, region)
                if region.cells:
                    regions.append(region)
        return regions

    def get_region_containing(self, x: int, y: int) -> Optional[Region]:
        """Return the region holding ``(x, y)``, or None if it is outside or traced."""
        x, y = self.puzzle.wrap(x, y)
        if not self.puzzle.in_bounds(x, y):
            return None
        mask = self.masked_grid()
        if mask[x, y] == PROCESSED:
            return None
        region = Region(self.puzzle.width)
        self._flood_region(mask, x, y, region)
        return region


def get_all_regions(puzzle: Puzzle) -> List[Region]:
    return RegionDetector(puzzle).get_all_regions()


def get_region_containing(puzzle: Puzzle, x: int, y: int) -> Optional[Region]:
    return RegionDetector(puzzle).get_region_containing(x, y)

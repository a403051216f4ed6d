"""Depth-first backtracking search for line puzzle solutions."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from functools import partial
from typing import Iterator, List, Optional, Tuple

from .cells import Direction, Gap, LineCell, LineState
from .puzzle import Position, Puzzle
from .regions import RegionDetector
from .scheduler import CooperativeScheduler, ProgressCallback, TaskNode
from .validation import RegionCheck, Validator, check_region_dots, validate_path

logger = logging.getLogger(__name__)

MAX_SOLUTIONS = 10000

# Visitation colors.
UNVISITED = 0
VISITED = 1
VISITED_PRIMARY = 2
VISITED_REFLECTION = 3


@dataclass
class SolverConfig:
    """Configuration for the path solver."""

    max_solutions: int = MAX_SOLUTIONS
    use_region_pruning: bool = True
    # Branch points shallower than this are deferred through the scheduler.
    defer_depth: int = 4


@dataclass(frozen=True)
class PathStep:
    x: int = 0
    y: int = 0
    is_edge: bool = False


@dataclass(frozen=True)
class EdgeCutState:
    """The last two steps of a branch, for detecting edge-to-edge cuts."""

    has_left_edge: bool = False
    before_last: PathStep = field(default_factory=PathStep)
    last: PathStep = field(default_factory=PathStep)

    def seals_region(self, step: PathStep) -> bool:
        return (
            self.has_left_edge
            and not self.before_last.is_edge
            and self.last.is_edge
            and step.is_edge
        )

    def advance(self, step: PathStep) -> "EdgeCutState":
        return EdgeCutState(
            has_left_edge=self.has_left_edge or (not step.is_edge and self.last.is_edge),
            before_last=self.last,
            last=step,
        )


def sealed_region_origin(before_last: Position, last: Position, current: Position) -> Position:
    """Return the cell cut off once a path runs along the boundary.

    Tracing A -> B -> C, where A is interior and B and C lie on the boundary,
    splits the puzzle in two once C is known. The half the path turned away
    from can never be re-entered; it contains ``B + (A - C)``.
    """
    return (
        last[0] + (before_last[0] - current[0]),
        last[1] + (before_last[1] - current[1]),
    )


def _extensions(x: int, y: int) -> Iterator[Tuple[Direction, int, int]]:
    if y % 2 == 0:
        yield Direction.LEFT, x - 1, y
        yield Direction.RIGHT, x + 1, y
    if x % 2 == 0:
        yield Direction.TOP, x, y - 1
        yield Direction.BOTTOM, x, y + 1


PathPrefix = Tuple[Tuple[int, int, Direction], ...]


class PathSolver:
    """Enumerate every valid path of a puzzle by recursive backtracking.

    The puzzle's own cells hold the search state, so one solver run owns the
    puzzle exclusively until it returns. Solutions are deep copies.
    """

    def __init__(
        self,
        config: Optional[SolverConfig] = None,
        validate: Optional[Validator] = None,
        region_check: Optional[RegionCheck] = None,
    ) -> None:
        self.config = config if config is not None else SolverConfig()
        self.validate = validate if validate is not None else validate_path
        self.region_check = region_check if region_check is not None else check_region_dots

    def solve(self, puzzle: Puzzle) -> List[Puzzle]:
        """Return every solution found, up to ``config.max_solutions``."""
        start = time.perf_counter()
        num_endpoints = puzzle.end_count()
        solutions: List[Puzzle] = []
        for x, y in puzzle.start_points():
            self._solve_loop(puzzle, x, y, solutions, num_endpoints, EdgeCutState())
        self._report(puzzle, solutions, time.perf_counter() - start)
        return solutions

    async def solve_async(
        self, puzzle: Puzzle, on_progress: Optional[ProgressCallback] = None
    ) -> List[Puzzle]:
        """Run the same search through a cooperative scheduler.

        Each deferred unit replays its path prefix onto the grid, explores,
        then rolls the prefix back before yielding, so units never observe
        each other's marks.
        """
        start = time.perf_counter()
        num_endpoints = puzzle.end_count()
        solutions: List[Puzzle] = []
        starts = puzzle.start_points()

        def _root(node: TaskNode) -> None:
            for x, y in starts:
                node.schedule(
                    partial(self._run_unit, puzzle, (), x, y, solutions, num_endpoints, EdgeCutState())
                )

        scheduler = CooperativeScheduler(on_progress=on_progress)
        await scheduler.submit(_root)
        self._report(puzzle, solutions, time.perf_counter() - start)
        return solutions

    def _report(self, puzzle: Puzzle, solutions: List[Puzzle], elapsed: float) -> None:
        if len(solutions) >= self.config.max_solutions:
            logger.warning(
                "Stopped after reaching the solution limit (%d)", self.config.max_solutions
            )
        logger.info("Solved %r in %.3f seconds: %d solutions", puzzle, elapsed, len(solutions))

    def _solve_loop(
        self,
        puzzle: Puzzle,
        x: int,
        y: int,
        solutions: List[Puzzle],
        num_endpoints: int,
        edge_state: EdgeCutState,
    ) -> None:
        if len(solutions) >= self.config.max_solutions:
            return
        x, y = puzzle.wrap(x, y)
        entered = self._enter(puzzle, x, y, solutions, num_endpoints, edge_state)
        if entered is None:
            return
        num_endpoints, edge_state = entered

        try:
            # Fixed extension order: left, right, top, bottom.
            for direction, nx, ny in _extensions(x, y):
                self._set_direction(puzzle, x, y, direction)
                self._solve_loop(puzzle, nx, ny, solutions, num_endpoints, edge_state)
        finally:
            self._unmark(puzzle, x, y)

    def _run_unit(
        self,
        puzzle: Puzzle,
        prefix: PathPrefix,
        x: int,
        y: int,
        solutions: List[Puzzle],
        num_endpoints: int,
        edge_state: EdgeCutState,
        node: TaskNode,
    ) -> None:
        if len(solutions) >= self.config.max_solutions:
            return
        try:
            self._replay(puzzle, prefix)
            x, y = puzzle.wrap(x, y)
            entered = self._enter(puzzle, x, y, solutions, num_endpoints, edge_state)
            if entered is None:
                return
            num_endpoints, edge_state = entered
            try:
                for direction, nx, ny in _extensions(x, y):
                    if len(prefix) < self.config.defer_depth:
                        node.schedule(
                            partial(
                                self._run_unit,
                                puzzle,
                                prefix + ((x, y, direction),),
                                nx,
                                ny,
                                solutions,
                                num_endpoints,
                                edge_state,
                            )
                        )
                    else:
                        self._set_direction(puzzle, x, y, direction)
                        self._solve_loop(puzzle, nx, ny, solutions, num_endpoints, edge_state)
            finally:
                self._unmark(puzzle, x, y)
        finally:
            self._rollback(puzzle, prefix)

    def _enter(
        self,
        puzzle: Puzzle,
        x: int,
        y: int,
        solutions: List[Puzzle],
        num_endpoints: int,
        edge_state: EdgeCutState,
    ) -> Optional[Tuple[int, EdgeCutState]]:
        """Trace ``(x, y)`` and run the per-step checks.

        Returns the state to extend with, or None when the branch ends here.
        Unless the state is returned, every mark this call made is undone,
        also when a collaborator raises.
        """
        cell = puzzle.get_cell(x, y)
        if not self._is_free(cell):
            return None
        if puzzle.is_symmetry():
            sym = puzzle.get_symmetric_position(x, y)
            if sym == (x, y):
                # Only the start may sit on its own reflection.
                if not cell.start:
                    return None
            elif not self._is_free(puzzle.get_cell(*sym)):
                return None
        self._mark(puzzle, x, y)

        extended = False
        try:
            if not puzzle.is_pillar():
                step = PathStep(
                    x, y, is_edge=x <= 0 or y <= 0 or x >= puzzle.width - 1 or y >= puzzle.height - 1
                )
                if self.config.use_region_pruning and edge_state.seals_region(step):
                    before_last, last = edge_state.before_last, edge_state.last
                    origin = sealed_region_origin(
                        (before_last.x, before_last.y), (last.x, last.y), (x, y)
                    )
                    region = RegionDetector(puzzle).get_region_containing(*origin)
                    if region is not None and not self.region_check(puzzle, region).valid:
                        logger.debug("Pruned at %s: sealed region of %d cells", (x, y), len(region))
                        return None
                edge_state = edge_state.advance(step)

            if cell.end is not None:
                self._set_direction(puzzle, x, y, Direction.NONE)
                self.validate(puzzle)
                if puzzle.valid:
                    solutions.append(puzzle.clone())
                # Multi-end puzzles may pass through one end on the way to another.
                if num_endpoints == 1:
                    return None
                num_endpoints -= 1
            extended = True
            return num_endpoints, edge_state
        finally:
            if not extended:
                self._unmark(puzzle, x, y)

    @staticmethod
    def _is_free(cell) -> bool:
        return isinstance(cell, LineCell) and cell.gap == Gap.NONE and cell.color == UNVISITED

    def _mark(self, puzzle: Puzzle, x: int, y: int) -> None:
        if not puzzle.is_symmetry():
            puzzle.update_cell(x, y, color=VISITED, line=LineState.BLACK)
            return
        sym = puzzle.get_symmetric_position(x, y)
        if sym != puzzle.wrap(x, y):
            puzzle.update_cell(*sym, color=VISITED_REFLECTION, line=LineState.YELLOW)
        puzzle.update_cell(x, y, color=VISITED_PRIMARY, line=LineState.BLUE)

    def _unmark(self, puzzle: Puzzle, x: int, y: int) -> None:
        puzzle.update_cell(x, y, color=UNVISITED, line=LineState.NONE, dir=None)
        if puzzle.is_symmetry():
            sym = puzzle.get_symmetric_position(x, y)
            puzzle.update_cell(*sym, color=UNVISITED, line=LineState.NONE, dir=None)

    def _set_direction(self, puzzle: Puzzle, x: int, y: int, direction: Direction) -> None:
        puzzle.update_cell(x, y, dir=direction)
        if puzzle.is_symmetry():
            sym = puzzle.get_symmetric_position(x, y)
            if sym != puzzle.wrap(x, y):
                puzzle.update_cell(*sym, dir=puzzle.get_symmetric_direction(direction))

    def _replay(self, puzzle: Puzzle, prefix: PathPrefix) -> None:
        for px, py, direction in prefix:
            self._mark(puzzle, px, py)
            self._set_direction(puzzle, px, py, direction)

    def _rollback(self, puzzle: Puzzle, prefix: PathPrefix) -> None:
        for px, py, _ in reversed(prefix):
            self._unmark(puzzle, px, py)


def solve(
    puzzle: Puzzle,
    config: Optional[SolverConfig] = None,
    validate: Optional[Validator] = None,
    region_check: Optional[RegionCheck] = None,
) -> List[Puzzle]:
    """Convenience wrapper: solve ``puzzle`` with a fresh :class:`PathSolver`."""
    return PathSolver(config, validate=validate, region_check=region_check).solve(puzzle)

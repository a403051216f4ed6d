"""Enumerate every solution of a stored line puzzle."""

from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path
from typing import List

from linepuzzle.puzzle import Puzzle
from linepuzzle.serializer import SerializationError, deserialize_puzzle, dumps_json
from linepuzzle.solver import MAX_SOLUTIONS, PathSolver, SolverConfig
from linepuzzle.utils import render_lattice, traced_path


def positive_int(value: str) -> int:
    """Parse a strictly positive integer option."""
    try:
        number = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError("value must be an integer") from exc
    if number <= 0:
        raise argparse.ArgumentTypeError("value must be positive")
    return number


def load_puzzle(path: Path) -> Puzzle:
    """Load a puzzle document (binary ``_`` form or legacy JSON)."""
    text = path.read_text(encoding="utf-8").strip()
    try:
        return deserialize_puzzle(text)
    except SerializationError as exc:
        raise ValueError(f"failed to load puzzle from path: {path}: {exc}") from exc


def save_solutions(path: Path, solutions: List[Puzzle]) -> None:
    """Write solved puzzles as one JSON document per line."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as handle:
        for solution in solutions:
            handle.write(dumps_json(solution))
            handle.write("\n")


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(description="Solve a stored line puzzle.")
    parser.add_argument("--puzzle", required=True, help="Path to a serialized puzzle document")
    parser.add_argument(
        "--max-solutions",
        type=positive_int,
        default=MAX_SOLUTIONS,
        help=f"Stop after this many solutions (default: {MAX_SOLUTIONS})",
    )
    parser.add_argument(
        "--no-pruning",
        action="store_true",
        help="Disable sealed-region pruning",
    )
    parser.add_argument(
        "--async",
        dest="use_async",
        action="store_true",
        help="Run the search cooperatively on an asyncio loop and report progress",
    )
    parser.add_argument(
        "--output",
        default=None,
        help="Optional output path for solutions as JSON lines (default: do not save)",
    )
    parser.add_argument(
        "--show",
        action="store_true",
        help="Display the first solution with matplotlib",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args()


def main() -> None:
    """Load, solve, and report."""
    args = parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )
    puzzle_path = Path(args.puzzle)
    output_path = Path(args.output) if args.output else None

    puzzle = load_puzzle(puzzle_path)
    solver = PathSolver(
        SolverConfig(max_solutions=args.max_solutions, use_region_pruning=not args.no_pruning)
    )
    if args.use_async:

        def _progress(total: float) -> None:
            print(f"\rProgress: {total:6.1%}", end="", flush=True)

        solutions = asyncio.run(solver.solve_async(puzzle, on_progress=_progress))
        print()
    else:
        solutions = solver.solve(puzzle)

    if output_path is not None:
        save_solutions(output_path, solutions)

    print(f"Puzzle: {puzzle_path} ({puzzle.name or 'unnamed'})")
    print(f"Lattice: {puzzle.width}x{puzzle.height}")
    print(f"Solutions found: {len(solutions)}")
    if output_path is not None:
        print(f"Solutions file: {output_path.resolve()}")
    else:
        print("Solutions file: not saved (no --output specified)")
    if solutions:
        first = solutions[0]
        starts = first.start_points()
        path = next((p for p in (traced_path(first, s) for s in starts) if p), [])
        print(f"First solution ({len(path)} steps):")
        print(first.log_grid())

    if args.show and solutions:
        import matplotlib.pyplot as plt

        fig, axes = plt.subplots(1, 2, figsize=(10, 5))
        axes[0].imshow(render_lattice(puzzle))
        axes[0].set_title("Puzzle")
        axes[1].imshow(render_lattice(solutions[0]))
        axes[1].set_title("First solution")
        for ax in axes:
            ax.axis("off")
        plt.tight_layout()
        plt.show()


if __name__ == "__main__":
    main()

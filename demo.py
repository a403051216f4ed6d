"""Demo script for the line puzzle solver."""

from __future__ import annotations

import argparse
import time

import matplotlib.pyplot as plt

from linepuzzle.regions import get_all_regions
from linepuzzle.serializer import serialize_puzzle
from linepuzzle.solver import PathSolver, SolverConfig
from linepuzzle.utils import generate_random_puzzle, render_lattice, traced_path


def run_demo(size: int = 4, seed: int = 42, max_solutions: int = 1000, show: bool = True) -> None:
    """Generate a puzzle, solve it, and display the puzzle next to one solution."""
    puzzle = generate_random_puzzle(width=size, height=size, seed=seed)
    solver = PathSolver(SolverConfig(max_solutions=max_solutions))

    start = time.perf_counter()
    solutions = solver.solve(puzzle)
    duration = time.perf_counter() - start

    print(f"Puzzle: {puzzle.name}")
    print(f"Encoded: {serialize_puzzle(puzzle)}")
    print(f"Solutions: {len(solutions)}")
    print(f"Solve time: {duration:.4f}s")
    if not solutions:
        return

    best = max(solutions, key=lambda s: len(traced_path(s, s.start_points()[0])))
    path = traced_path(best, best.start_points()[0])
    regions = get_all_regions(best)
    print(f"Longest path: {len(path)} steps, splitting the grid into {len(regions)} regions")
    print(best.log_grid())

    if not show:
        return
    fig, axes = plt.subplots(1, 2, figsize=(10, 5))
    axes[0].imshow(render_lattice(puzzle))
    axes[0].set_title("Puzzle")
    axes[1].imshow(render_lattice(best))
    axes[1].set_title("Longest solution")
    for ax in axes:
        ax.axis("off")
    plt.tight_layout()
    plt.show()


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(description="Line puzzle solver demo")
    parser.add_argument("--size", type=int, default=4, help="Puzzle size in cells, default=4")
    parser.add_argument("--seed", type=int, default=42, help="Random seed, default=42")
    parser.add_argument(
        "--max-solutions", type=int, default=1000, help="Solution ceiling, default=1000"
    )
    parser.add_argument("--no-show", action="store_true", help="Do not display images")
    return parser.parse_args()


if __name__ == "__main__":
    args = parse_args()
    run_demo(
        size=args.size,
        seed=args.seed,
        max_solutions=args.max_solutions,
        show=not args.no_show,
    )

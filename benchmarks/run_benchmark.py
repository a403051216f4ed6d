"""Benchmark solver runtime across puzzle sizes, with and without region pruning."""

from __future__ import annotations

import argparse
import time
from dataclasses import dataclass
from pathlib import Path
from typing import List

import sys
import numpy as np

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from linepuzzle.solver import PathSolver, SolverConfig
from linepuzzle.utils import generate_random_puzzle


@dataclass
class BenchmarkRow:
    grid: str
    seeds: int
    solutions_mean: float
    capped: int
    runtime_pruned_sec: float
    runtime_unpruned_sec: float
    speedup: float


def run_case(size: int, seed: int, max_solutions: int, num_dots: int, pruning: bool):
    puzzle = generate_random_puzzle(width=size, height=size, seed=seed, num_dots=num_dots)
    solver = PathSolver(SolverConfig(max_solutions=max_solutions, use_region_pruning=pruning))
    t0 = time.perf_counter()
    solutions = solver.solve(puzzle)
    return len(solutions), time.perf_counter() - t0


def run_case_multi_seed(
    size: int, seeds: List[int], max_solutions: int, num_dots: int
) -> BenchmarkRow:
    pruned = [run_case(size, seed, max_solutions, num_dots, pruning=True) for seed in seeds]
    unpruned = [run_case(size, seed, max_solutions, num_dots, pruning=False) for seed in seeds]

    counts = np.array([count for count, _ in pruned], dtype=np.float64)
    rt_pruned = np.array([rt for _, rt in pruned], dtype=np.float64)
    rt_unpruned = np.array([rt for _, rt in unpruned], dtype=np.float64)
    pruned_mean = float(np.mean(rt_pruned))
    unpruned_mean = float(np.mean(rt_unpruned))
    return BenchmarkRow(
        grid=f"{size}x{size}",
        seeds=len(seeds),
        solutions_mean=float(np.mean(counts)),
        capped=int(np.sum(counts >= max_solutions)),
        runtime_pruned_sec=pruned_mean,
        runtime_unpruned_sec=unpruned_mean,
        speedup=unpruned_mean / pruned_mean if pruned_mean > 0 else float("nan"),
    )


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run line puzzle solver benchmark on multiple sizes.")
    parser.add_argument(
        "--sizes",
        type=int,
        nargs="+",
        default=[2, 3, 4],
        help="Puzzle sizes to benchmark (default: 2 3 4)",
    )
    parser.add_argument("--seed", type=int, default=42, help="Random seed")
    parser.add_argument(
        "--num-seeds",
        type=int,
        default=3,
        help="Number of seeds to evaluate per size (default: 3)",
    )
    parser.add_argument(
        "--max-solutions",
        type=int,
        default=10000,
        help="Solution ceiling per solve (default: 10000)",
    )
    parser.add_argument(
        "--dots",
        type=int,
        default=3,
        help="Dots placed on each generated puzzle (default: 3)",
    )
    return parser.parse_args()


def print_table(rows: List[BenchmarkRow]) -> None:
    header = (
        f"{'Grid':<8}{'Seeds':>7}{'SolMean':>11}{'Capped':>8}"
        f"{'Pruned(s)':>11}{'Unpruned(s)':>13}{'Speedup':>9}"
    )
    print(header)
    print("-" * len(header))
    for row in rows:
        print(
            f"{row.grid:<8}"
            f"{row.seeds:>7d}"
            f"{row.solutions_mean:>11.1f}"
            f"{row.capped:>8d}"
            f"{row.runtime_pruned_sec:>11.4f}"
            f"{row.runtime_unpruned_sec:>13.4f}"
            f"{row.speedup:>9.2f}"
        )


def main() -> None:
    args = parse_args()
    seeds = [args.seed + i for i in range(args.num_seeds)]
    rows = [
        run_case_multi_seed(
            size,
            seeds=seeds,
            max_solutions=args.max_solutions,
            num_dots=args.dots,
        )
        for size in args.sizes
    ]
    print_table(rows)


if __name__ == "__main__":
    main()

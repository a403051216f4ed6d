"""Line-drawing puzzle model, region detection and exhaustive solver package."""

from .cells import ContentCell, Direction, Dot, ElementType, Gap, LineCell, LineState
from .puzzle import Fold, Puzzle, PuzzleSettings, SymmetryConfig
from .regions import Region, RegionDetector, get_all_regions, get_region_containing
from .scheduler import CooperativeScheduler, TaskNode
from .serializer import SerializationError, deserialize_puzzle, serialize_puzzle
from .solver import MAX_SOLUTIONS, PathSolver, SolverConfig, sealed_region_origin, solve
from .validation import RegionCheckResult, check_region_dots, validate_path

__all__ = [
    "Direction",
    "LineState",
    "Gap",
    "Dot",
    "ElementType",
    "LineCell",
    "ContentCell",
    "Fold",
    "SymmetryConfig",
    "PuzzleSettings",
    "Puzzle",
    "Region",
    "RegionDetector",
    "get_all_regions",
    "get_region_containing",
    "TaskNode",
    "CooperativeScheduler",
    "SerializationError",
    "serialize_puzzle",
    "deserialize_puzzle",
    "MAX_SOLUTIONS",
    "SolverConfig",
    "PathSolver",
    "sealed_region_origin",
    "solve",
    "RegionCheckResult",
    "validate_path",
    "check_region_dots",
]

"""Public API for trajectory-density (Buddhabrot) rendering."""

from .canvas import BlendAccumulator, Canvas, DensityAccumulator
from .colour import colour_policy, hsv_to_rgba, hsv_to_rgba_array
from .config import MAX_GRID_SEEDS, RenderConfig
from .dispatch import BatchDispatcher, IncrementalRenderer
from .grid import CoordinateGrid, generate
from .kernel import TensorTrajectoryWorker, trace_orbits
from .orbit import TrajectoryWorker, step, trajectory
from .state import RenderState, SharedFrame

__all__ = [
    "BatchDispatcher",
    "BlendAccumulator",
    "Canvas",
    "CoordinateGrid",
    "DensityAccumulator",
    "IncrementalRenderer",
    "MAX_GRID_SEEDS",
    "RenderConfig",
    "RenderState",
    "SharedFrame",
    "TensorTrajectoryWorker",
    "TrajectoryWorker",
    "colour_policy",
    "generate",
    "hsv_to_rgba",
    "hsv_to_rgba_array",
    "step",
    "trace_orbits",
    "trajectory",
]

"""Iteration of the generalised Mandelbrot recurrence for single seeds."""

from __future__ import annotations

import math
from typing import Iterator, Optional

from .colour import RGBA, colour_policy
from .config import RenderConfig
from .state import SharedFrame

DIVERGED = complex(math.inf, math.inf)


def step(z: complex, c: complex, power: float) -> complex:
    """One step of ``z <- z**power + c``.

    Integer valued powers multiply, other powers go through the polar form.
    Values that overflow, and zero raised to a negative power, become
    ``inf + inf j`` instead of raising.
    """

    try:
        return z ** power + c
    except (OverflowError, ZeroDivisionError):
        return DIVERGED


def escaped(z: complex, bounds: float) -> bool:
    return abs(z.real) > bounds and abs(z.imag) > bounds


def point_colour(c: complex, z: complex, config: RenderConfig) -> Optional[RGBA]:
    """Colour plotted for ``z`` on the trajectory of ``c``; ``None`` when counting density."""

    if config.accumulation == "density":
        return None
    return colour_policy(config.colour_policy)(c, z, config)


def trajectory(seed: tuple[float, float], config: RenderConfig) -> Iterator[tuple[complex, Optional[RGBA]]]:
    """Yield the ``(z, colour)`` pairs produced by iterating ``seed``.

    Starts from ``config.offset``, optionally discards one warm-up step, then
    yields at most ``config.loop_limit`` points. With ``config.escape`` the
    walk ends at the first point outside the bounds, which is not yielded.
    """

    c = complex(seed[0], seed[1])
    power = config.power
    fixed = config.accumulation == "blend" and colour_policy(config.colour_policy).per_seed
    colour = point_colour(c, c, config) if fixed else None

    z = config.offset
    if config.skip_first:
        # From z = 0 the first value is c itself, which would plot the grid.
        z = step(z, c, power)

    for _ in range(config.loop_limit):
        z = step(z, c, power)
        if config.escape and escaped(z, config.bounds):
            return
        yield z, colour if fixed else point_colour(c, z, config)


class TrajectoryWorker:
    """Trace single seeds and plot them into a shared frame."""

    def __init__(self, config: RenderConfig, frame: SharedFrame):
        self.config = config
        self.frame = frame

    def trace(self, seed: tuple[float, float]) -> list[tuple[complex, Optional[RGBA]]]:
        return list(trajectory(seed, self.config))

    def run(self, seed: tuple[float, float]) -> int:
        """Trace ``seed`` outside the lock, then plot it in one critical section.

        Returns the number of points that landed on the canvas.
        """

        points = self.trace(seed)
        with self.frame.lock:
            written = self.frame.canvas.plot(points)
            self.frame.state.completed += 1
        return written

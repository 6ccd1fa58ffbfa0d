"""HSV colour model and the hue policies used to colour trajectories."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable

import numpy as np

from .config import RenderConfig

RGBA = tuple[int, int, int, int]


def hsv_to_rgba(hue: float, sat: float, val: float, depth: int = 8) -> RGBA:
    """Convert an HSV triple to an opaque RGBA colour of the given bit depth.

    ``hue`` is taken modulo 360 degrees. Channels are truncated to integers in
    ``[0, 2**depth - 1]``; the caller replaces the alpha channel.
    """

    top = (1 << depth) - 1
    if not math.isfinite(hue):
        return (0, 0, 0, top)

    hue = hue % 360.0
    if hue >= 360.0:
        # Tiny negative hues round up to a full turn.
        hue = 0.0
    sector = math.floor(hue / 60.0)
    f = hue / 60.0 - sector
    p = val * (1.0 - sat)
    q = val * (1.0 - f * sat)
    t = val * (1.0 - (1.0 - f) * sat)

    if sector == 0:
        rgb = (val, t, p)
    elif sector == 1:
        rgb = (q, val, p)
    elif sector == 2:
        rgb = (p, val, t)
    elif sector == 3:
        rgb = (p, q, val)
    elif sector == 4:
        rgb = (t, p, val)
    elif sector == 5:
        rgb = (val, p, q)
    else:
        return (0, 0, 0, top)

    r, g, b = (int(top * channel) for channel in rgb)
    return (r, g, b, top)


def hsv_to_rgba_array(hue: np.ndarray, sat: float, val: float, depth: int = 8) -> np.ndarray:
    """Vectorised :func:`hsv_to_rgba`, returning an ``(n, 4)`` integer array."""

    top = (1 << depth) - 1
    hue = np.asarray(hue, dtype=np.float64)
    finite = np.isfinite(hue)
    hue = np.where(finite, np.mod(np.where(finite, hue, 0.0), 360.0), 0.0)
    hue = np.where(hue >= 360.0, 0.0, hue)
    sector = np.floor(hue / 60.0)
    f = hue / 60.0 - sector
    v = np.full_like(hue, val)
    p = np.full_like(hue, val * (1.0 - sat))
    q = val * (1.0 - f * sat)
    t = val * (1.0 - (1.0 - f) * sat)

    conditions = [sector == k for k in range(6)]
    r = np.select(conditions, [v, q, p, p, t, v], default=0.0)
    g = np.select(conditions, [t, v, v, q, p, p], default=0.0)
    b = np.select(conditions, [p, p, t, v, v, q], default=0.0)

    rgba = np.empty(hue.shape + (4,), dtype=np.int64)
    rgba[..., 0] = (top * r).astype(np.int64)
    rgba[..., 1] = (top * g).astype(np.int64)
    rgba[..., 2] = (top * b).astype(np.int64)
    rgba[..., 3] = top
    rgba[~finite, :3] = 0
    return rgba


def trajectory_hue(value: complex, config: RenderConfig) -> float:
    """Hue in degrees for a complex value: rings of colour by distance from the origin."""

    return config.colour_factor * 360.0 * math.cos(abs(value) / config.bounds)


def seed_colour(c: complex, config: RenderConfig) -> RGBA:
    r, g, b, _ = hsv_to_rgba(trajectory_hue(c, config), 1.0, 1.0, config.depth)
    return (r, g, b, config.alpha)


@dataclass(frozen=True)
class ColourPolicy:
    """Where a trajectory point takes its hue from.

    ``colour`` colours one point of the trajectory of ``c``; ``radius`` gives
    the hue radius of every point of a ``(steps, n)`` block. ``per_seed``
    policies colour a whole trajectory alike.
    """

    name: str
    per_seed: bool
    colour: Callable[[complex, complex, RenderConfig], RGBA]
    radius: Callable[[np.ndarray, np.ndarray, np.ndarray], np.ndarray]

    def __call__(self, c: complex, z: complex, config: RenderConfig) -> RGBA:
        return self.colour(c, z, config)


def _seed_colour(c: complex, z: complex, config: RenderConfig) -> RGBA:
    return seed_colour(c, config)


def _step_colour(c: complex, z: complex, config: RenderConfig) -> RGBA:
    return seed_colour(z, config)


def _seed_radius(seeds: np.ndarray, points_re: np.ndarray, points_im: np.ndarray) -> np.ndarray:
    return np.broadcast_to(np.hypot(seeds[:, 0], seeds[:, 1]), points_re.shape)


def _step_radius(seeds: np.ndarray, points_re: np.ndarray, points_im: np.ndarray) -> np.ndarray:
    with np.errstate(over="ignore", invalid="ignore"):
        return np.hypot(points_re, points_im)


_POLICIES: dict[str, ColourPolicy] = {
    "seed": ColourPolicy("seed", True, _seed_colour, _seed_radius),
    "step": ColourPolicy("step", False, _step_colour, _step_radius),
}


def colour_policy(name: str) -> ColourPolicy:
    """Return the policy registered as ``name``."""

    try:
        return _POLICIES[name]
    except KeyError:
        raise ValueError(f"Unknown colour policy '{name}'.") from None


def policy_colours(seeds: np.ndarray, points_re: np.ndarray, points_im: np.ndarray, config: RenderConfig) -> np.ndarray:
    """Colours for a block of trajectory points shaped ``(steps, n)``.

    ``seeds`` holds the ``(n, 2)`` seed coordinates of each column.
    """

    radius = colour_policy(config.colour_policy).radius(seeds, points_re, points_im)
    with np.errstate(invalid="ignore"):
        hue = config.colour_factor * 360.0 * np.cos(radius / config.bounds)
    rgba = hsv_to_rgba_array(hue, 1.0, 1.0, config.depth)
    rgba[..., 3] = config.alpha
    return rgba

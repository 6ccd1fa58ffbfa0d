"""Render configuration shared by every part of the renderer."""

from __future__ import annotations

import math
from dataclasses import dataclass

ACCUMULATION_MODES = ("blend", "density")
COLOUR_POLICIES = ("seed", "step")
COLOUR_DEPTHS = (8, 16)

# Upper bound on the number of grid seeds a single session may walk.
MAX_GRID_SEEDS = 10 ** 9


def axis_length(bounds: float, delta: float) -> int:
    """Number of values ``-bounds + i * delta`` that stay below ``bounds``."""

    n = max(int(math.ceil(2.0 * bounds / delta)), 0)
    while n > 0 and -bounds + (n - 1) * delta >= bounds:
        n -= 1
    while -bounds + n * delta < bounds:
        n += 1
    return n


@dataclass(frozen=True)
class RenderConfig:
    """Parameters that describe a single render session."""

    width: int = 1280
    height: int = 720
    bounds: float = 0.6
    power: float = 2.0
    colour_factor: float = 0.7
    opacity: float = 0.08
    zoom: int = 350
    delta: float = 0.05
    loop_limit: int = 200
    speed: int = 1000
    factor: float = 50.0
    offset: complex = 0j
    skip_first: bool = True
    escape: bool = False
    accumulation: str = "density"
    colour_policy: str = "seed"
    depth: int = 8
    transparent: bool = False

    def __post_init__(self) -> None:
        for name in ("width", "height", "zoom", "loop_limit", "speed"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise ValueError(f"{name} must be a positive integer, got {value!r}.")

        for name in ("bounds", "delta", "factor"):
            value = getattr(self, name)
            if not math.isfinite(value) or value <= 0:
                raise ValueError(f"{name} must be a positive finite number, got {value!r}.")

        if not math.isfinite(self.power):
            raise ValueError(f"power must be finite, got {self.power!r}.")

        if not math.isfinite(self.colour_factor):
            raise ValueError(f"colour_factor must be finite, got {self.colour_factor!r}.")
        if not 0.0 <= self.opacity <= 1.0:
            raise ValueError(f"opacity must lie in [0, 1], got {self.opacity!r}.")

        offset = complex(self.offset)
        if not (math.isfinite(offset.real) and math.isfinite(offset.imag)):
            raise ValueError(f"offset must be finite, got {self.offset!r}.")
        object.__setattr__(self, "offset", offset)

        if self.accumulation not in ACCUMULATION_MODES:
            raise ValueError(
                f"Unknown accumulation mode '{self.accumulation}'. Valid choices: {', '.join(ACCUMULATION_MODES)}."
            )
        if self.colour_policy not in COLOUR_POLICIES:
            raise ValueError(
                f"Unknown colour policy '{self.colour_policy}'. Valid choices: {', '.join(COLOUR_POLICIES)}."
            )
        if self.depth not in COLOUR_DEPTHS:
            raise ValueError(f"depth must be 8 or 16, got {self.depth!r}.")

        if self.seed_count > MAX_GRID_SEEDS:
            raise ValueError(
                f"Grid of {self.seed_count} seeds exceeds the limit of {MAX_GRID_SEEDS}; increase delta or reduce bounds."
            )

    @property
    def axis_length(self) -> int:
        return axis_length(self.bounds, self.delta)

    @property
    def seed_count(self) -> int:
        return self.axis_length ** 2

    @property
    def colour_max(self) -> int:
        return (1 << self.depth) - 1

    @property
    def alpha(self) -> int:
        """Alpha channel of every plotted colour, in the configured depth."""

        return int(round(self.opacity * self.colour_max))

    def describe(self) -> list[str]:
        """One ``name: value`` line per field, used by the status overlay."""

        lines = ["RenderConfig {"]
        for name in self.__dataclass_fields__:
            lines.append(f"    {name}: {getattr(self, name)!r},")
        lines.append("}")
        return lines

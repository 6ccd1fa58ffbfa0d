"""Shared raster that trajectory points are accumulated into."""

from __future__ import annotations

import math
from typing import Iterable, Optional, Sequence

import numpy as np

from .config import RenderConfig
from .display import downsample, tone_map, unit_to_rgba16

COUNTER_MAX = np.iinfo(np.uint16).max


class BlendAccumulator:
    """Composite translucent colours "over" the existing pixel.

    Pixels are kept as straight (non premultiplied) RGBA in ``[0, 1]``.
    """

    mode = "blend"

    def __init__(self, width: int, height: int, depth: int = 8, transparent: bool = False):
        self.scale = float((1 << depth) - 1)
        self.background = (0.0, 0.0, 0.0, 0.0 if transparent else 1.0)
        self.pixels = np.empty((height, width, 4), dtype=np.float64)
        self.clear()

    def clear(self) -> None:
        self.pixels[...] = self.background

    def write(self, px: int, py: int, colour: Sequence[int]) -> None:
        sr, sg, sb, sa = (channel / self.scale for channel in colour)
        pixel = self.pixels[py, px]
        dr, dg, db, da = pixel
        keep = da * (1.0 - sa)
        out_a = sa + keep
        if out_a <= 0.0:
            pixel[:] = 0.0
            return
        pixel[0] = (sr * sa + dr * keep) / out_a
        pixel[1] = (sg * sa + dg * keep) / out_a
        pixel[2] = (sb * sa + db * keep) / out_a
        pixel[3] = out_a

    def write_many(self, xs: np.ndarray, ys: np.ndarray, colours: np.ndarray) -> None:
        # "over" is order dependent, so the points are composited one by one.
        for px, py, colour in zip(xs.tolist(), ys.tolist(), colours.tolist()):
            self.write(px, py, colour)

    def to_rgba16(self) -> np.ndarray:
        return unit_to_rgba16(self.pixels)


class DensityAccumulator:
    """Count how many trajectory points landed on each pixel, saturating at 65535."""

    mode = "density"

    def __init__(self, width: int, height: int):
        self.pixels = np.zeros((height, width), dtype=np.uint16)

    def clear(self) -> None:
        self.pixels.fill(0)

    def write(self, px: int, py: int, colour: Optional[Sequence[int]] = None) -> None:
        if self.pixels[py, px] < COUNTER_MAX:
            self.pixels[py, px] += 1

    def write_many(self, xs: np.ndarray, ys: np.ndarray, colours: Optional[np.ndarray] = None) -> None:
        if xs.size == 0:
            return
        flat = ys * self.pixels.shape[1] + xs
        index, hits = np.unique(flat, return_counts=True)
        view = self.pixels.reshape(-1)
        total = view[index].astype(np.int64) + hits
        view[index] = np.minimum(total, COUNTER_MAX).astype(np.uint16)

    def to_rgba16(self) -> np.ndarray:
        rgba = np.empty(self.pixels.shape + (4,), dtype=np.uint16)
        rgba[..., 0] = self.pixels
        rgba[..., 1] = self.pixels
        rgba[..., 2] = self.pixels
        rgba[..., 3] = COUNTER_MAX
        return rgba


def make_accumulator(config: RenderConfig):
    if config.accumulation == "blend":
        return BlendAccumulator(config.width, config.height, config.depth, config.transparent)
    return DensityAccumulator(config.width, config.height)


class Canvas:
    """Accumulation buffer plus the affine projection from the complex plane.

    The canvas does no locking of its own: writers and readers go through the
    lock of the :class:`~buddhabrot.dispatch.SharedFrame` that owns it.
    """

    def __init__(self, config: RenderConfig, accumulator=None):
        self.config = config
        self.width = config.width
        self.height = config.height
        self.zoom = float(config.zoom)
        self.accumulator = accumulator if accumulator is not None else make_accumulator(config)

    @property
    def mode(self) -> str:
        return self.accumulator.mode

    @property
    def pixels(self) -> np.ndarray:
        return self.accumulator.pixels

    def project(self, z: complex) -> Optional[tuple[int, int]]:
        """Pixel position of ``z`` or ``None`` when it falls outside the canvas."""

        pos_x = self.width / 2.0 + z.real * self.zoom - 0.5
        pos_y = self.height / 2.0 - z.imag * self.zoom + 0.5

        if not (math.isfinite(pos_x) and math.isfinite(pos_y)):
            return None
        if pos_x + 1.0 < 0.0 or pos_y < 0.0:
            return None

        # Truncate toward zero, the way an unsigned integer cast would.
        px = max(int(pos_x), 0)
        py = int(pos_y)
        if px >= self.width or py >= self.height:
            return None
        return px, py

    def project_many(self, re: np.ndarray, im: np.ndarray) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Vectorised :meth:`project` returning ``(xs, ys, keep)``.

        ``xs`` and ``ys`` only hold the kept points; ``keep`` is the mask over
        the input.
        """

        with np.errstate(over="ignore", invalid="ignore"):
            pos_x = self.width / 2.0 + np.asarray(re, dtype=np.float64) * self.zoom - 0.5
            pos_y = self.height / 2.0 - np.asarray(im, dtype=np.float64) * self.zoom + 0.5
            keep = (pos_x + 1.0 >= 0.0) & (pos_y >= 0.0) & (pos_x < self.width) & (pos_y < self.height)
        xs = np.maximum(np.trunc(pos_x[keep]), 0.0).astype(np.int64)
        ys = np.trunc(pos_y[keep]).astype(np.int64)
        return xs, ys, keep

    def write(self, px: int, py: int, colour: Optional[Sequence[int]] = None) -> None:
        self.accumulator.write(px, py, colour)

    def plot(self, points: Iterable[tuple[complex, Optional[Sequence[int]]]]) -> int:
        """Project and accumulate ``(z, colour)`` pairs, returning how many landed."""

        written = 0
        for z, colour in points:
            position = self.project(z)
            if position is None:
                continue
            self.accumulator.write(position[0], position[1], colour)
            written += 1
        return written

    def plot_arrays(self, re: np.ndarray, im: np.ndarray, colours: Optional[np.ndarray] = None) -> int:
        re = np.ravel(re)
        im = np.ravel(im)
        xs, ys, keep = self.project_many(re, im)
        if colours is not None:
            colours = np.reshape(colours, (-1, 4))[keep]
        self.accumulator.write_many(xs, ys, colours)
        return int(xs.size)

    def clear(self) -> None:
        self.accumulator.clear()

    def snapshot_for_display(self) -> np.ndarray:
        """Copy of the raw buffer; take it under the frame lock and release quickly."""

        return self.accumulator.pixels.copy()

    def to_rgba16(self) -> np.ndarray:
        return self.accumulator.to_rgba16()

    def to_rgba8(self, factor: Optional[float] = None, colormap: Optional[str] = None) -> np.ndarray:
        """Exportable 8-bit RGBA image.

        Blended canvases drop the low byte of the 16-bit export; density
        canvases go through the brightness tone map.
        """

        if self.mode == "density":
            return tone_map(self.pixels, self.config.factor if factor is None else factor, colormap)
        return downsample(self.to_rgba16())

    def histogram(self, step: int = 5000, buckets: int = 14) -> list[int]:
        """Count the non-empty density pixels per ``step``-wide bucket."""

        if self.mode != "density":
            raise ValueError("histogram is only defined for density canvases")
        counts = self.pixels[self.pixels > 0].astype(np.int64) // step
        return np.bincount(np.minimum(counts, buckets - 1), minlength=buckets).tolist()

"""Conversion of canvas buffers into displayable 8-bit images."""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Sequence

import numpy as np
import PIL.Image
import PIL.ImageDraw
import PIL.ImageFont

try:
    from matplotlib import colormaps as _mpl_colormaps
except ImportError:  # Matplotlib < 3.5
    from matplotlib import cm as _mpl_colormaps  # type: ignore


def get_colormap(name):
    return _mpl_colormaps.get_cmap(name)


def tone_map(counts: np.ndarray, factor: float, colormap: Optional[str] = None) -> np.ndarray:
    """Map density counts to RGBA through ``1 - exp(-count / factor)``.

    Without a colormap the result is grey, each channel truncated to
    ``int(value * 255)``.
    """

    value = 1.0 - np.exp(-counts.astype(np.float64) / factor)

    if colormap is not None:
        rgba = np.array(get_colormap(colormap)(value), copy=True)
        rgba[..., 3] = 1.0
        return np.uint8(np.clip(rgba * 255, 0, 255))

    grey = (value * 255.0).astype(np.uint8)
    rgba = np.empty(counts.shape + (4,), dtype=np.uint8)
    rgba[..., 0] = grey
    rgba[..., 1] = grey
    rgba[..., 2] = grey
    rgba[..., 3] = 255
    return rgba


def render_snapshot(snapshot: np.ndarray, mode: str, factor: float, colormap: Optional[str] = None) -> np.ndarray:
    """Turn a raw canvas snapshot into an 8-bit RGBA frame."""

    if mode == "density":
        return tone_map(snapshot, factor, colormap)
    return downsample(unit_to_rgba16(snapshot))


def unit_to_rgba16(pixels: np.ndarray) -> np.ndarray:
    return np.round(np.clip(pixels, 0.0, 1.0) * 65535).astype(np.uint16)


def downsample(rgba16: np.ndarray) -> np.ndarray:
    """Drop the low byte of a 16-bit image."""

    return (rgba16 >> 8).astype(np.uint8)


def status_lines(completed: int, total: int, elapsed: float, config_lines: Sequence[str] = ()) -> list[str]:
    percent = (completed / total * 100.0) if total else 100.0
    return [f"{percent:.2f}% - {int(elapsed)}s", *config_lines]


_FONT_CANDIDATES = (
    "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
    "/usr/share/fonts/truetype/liberation/LiberationSans-Regular.ttf",
    "/usr/share/fonts/truetype/freefont/FreeSans.ttf",
)


def _load_status_font(size: int = 12) -> PIL.ImageFont.ImageFont:
    for path in _FONT_CANDIDATES:
        font_path = Path(path)
        if font_path.exists():
            try:
                return PIL.ImageFont.truetype(str(font_path), size)
            except OSError:
                continue
    return PIL.ImageFont.load_default()


def overlay_status(frame: np.ndarray, lines: Sequence[str]) -> np.ndarray:
    """Draw the status line at (10, 10) and the remaining lines below it in white."""

    if not lines:
        return frame

    image = PIL.Image.fromarray(frame)
    draw = PIL.ImageDraw.Draw(image, "RGBA")
    font = _load_status_font()
    white = (255, 255, 255, 255)

    draw.text((10, 10), lines[0], font=font, fill=white)
    for i, line in enumerate(lines[1:]):
        draw.text((10, 26 + i * 13), line, font=font, fill=white)
    return np.array(image, copy=True)

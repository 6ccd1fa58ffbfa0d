"""Writers for exported frames: single images, numbered sequences and GIFs."""

from __future__ import annotations

import io
from pathlib import Path
from typing import Any, Optional

import imageio
import numpy as np
import PIL.Image


def _pil_format_name(ext: str) -> str:
    upper = ext.upper()
    if upper == "JPG":
        return "JPEG"
    if upper == "TIF":
        return "TIFF"
    return upper


def encode_image(frame: np.ndarray, image_format: str = "png") -> bytes:
    """Encode an RGBA frame in memory."""

    buffer = io.BytesIO()
    PIL.Image.fromarray(frame).save(buffer, format=_pil_format_name(image_format))
    return buffer.getvalue()


def write_single_image(image: PIL.Image.Image, output_path: Path, image_format: str) -> None:
    """Write a single image to ``output_path`` using the provided format."""

    pil_format = _pil_format_name(image_format)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    if pil_format == "JPEG" and image.mode == "RGBA":
        image = image.convert("RGB")
    image.save(str(output_path), format=pil_format)


def write_frame_sequence(
    image: PIL.Image.Image,
    frame_dir: Path,
    index: int,
    digits: int,
    image_format: str,
    prefix: str,
) -> Path:
    """Persist a frame in a numbered sequence inside ``frame_dir``."""

    frame_path = frame_dir / f"{prefix}{index:0{digits}d}.{image_format}"
    write_single_image(image, frame_path, image_format)
    return frame_path


class GifWriter:
    """Append frames of a growing render to an animated GIF."""

    def __init__(self, path: Path, duration: float = 0.1):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._writer: Optional[Any] = imageio.get_writer(str(self.path), mode="I", duration=duration, loop=0)
        self.frames = 0

    def append(self, frame: np.ndarray) -> None:
        if self._writer is None:
            raise ValueError(f"GIF writer for {self.path} is closed")
        self._writer.append_data(frame)
        self.frames += 1

    def close(self) -> None:
        if self._writer is not None:
            self._writer.close()
            self._writer = None

    def __enter__(self) -> "GifWriter":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

from __future__ import annotations

import shutil
import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path

import PIL.Image

EXAMPLES_ROOT = Path("examples/cli-options")
BASE_SIZE = (240, 240)
BASE_ARGS = [
    "--width", str(BASE_SIZE[0]), "--height", str(BASE_SIZE[1]),
    "--zoom", "100", "--delta", "0.02", "--loops", "100", "--no-progress",
]


@dataclass
class Example:
    name: str
    output: Path
    args: list[str]
    frame_dir: Path | None = None


def _image_example(name: str, filename: str, *extra: str) -> Example:
    output = EXAMPLES_ROOT / name / filename
    return Example(name, output, [*BASE_ARGS, *extra, "--output", str(output)])


def _gif_example(name: str, frames: int, *, store_frames: bool = False) -> Example:
    output = EXAMPLES_ROOT / name / "growing.gif"
    frame_dir = EXAMPLES_ROOT / name / "frames" if store_frames else None
    args = [*BASE_ARGS, "--mode", "gif", "--speed", "20000", "--frames", str(frames), "--output", str(output)]
    if frame_dir is not None:
        args += ["--frame-dir", str(frame_dir)]
    return Example(name, output, args, frame_dir)


EXAMPLES: list[Example] = [
    _image_example("defaults", "density.png"),
    _image_example("bounds", "wide-bounds.png", "--bounds", "1.2"),
    _image_example("power", "cubic.png", "--power", "3.0"),
    _image_example("negative-power", "inverse.png", "--power", "-2.0"),
    _image_example("factor", "bright.png", "--factor", "5"),
    _image_example("zoom", "close-up.png", "--zoom", "200"),
    _image_example("loops", "long-orbits.png", "--loops", "400"),
    _image_example("offset", "shifted-start.png", "--re", "0.1", "--im", "-0.05"),
    _image_example("no-skip-first", "with-grid.png", "--no-skip-first"),
    _image_example("escape", "escape.png", "--escape"),
    _image_example("blend", "blend.png", "--accumulate", "blend", "--colour-factor", "0.7", "--opacity", "0.08"),
    _image_example("colour-policy", "per-step.png", "--accumulate", "blend", "--colour-policy", "step"),
    _image_example("depth", "sixteen-bit.png", "--accumulate", "blend", "--depth", "16"),
    _image_example("transparent", "transparent.png", "--accumulate", "blend", "--transparent"),
    _image_example("workers", "single-worker.png", "--workers", "1"),
    _image_example("tensor", "tensor-backend.png", "--backend", "tensor", "--chunk-size", "512"),
    _image_example("colormap", "inferno.png", "--colormap", "inferno"),
    _image_example("show-status", "status.png", "--show-status"),
    _image_example("format", "custom.webp", "--format", "webp"),
    _image_example("verbose", "diagnostic.png", "--verbose"),
    _gif_example("gif", 12),
    _gif_example("frame-dir", 4, store_frames=True),
]


def _clean(example: Example) -> None:
    target = EXAMPLES_ROOT / example.name
    shutil.rmtree(target, ignore_errors=True)
    target.mkdir(parents=True)


def _check_image(path: Path) -> None:
    with PIL.Image.open(path) as image:
        if image.size != BASE_SIZE:
            raise RuntimeError(f"{path} is {image.size[0]}x{image.size[1]}, expected {BASE_SIZE[0]}x{BASE_SIZE[1]}")


def _check_frames(example: Example) -> None:
    with PIL.Image.open(example.output) as gif:
        frames = getattr(gif, "n_frames", 1)
    if example.frame_dir is not None:
        stored = sorted(example.frame_dir.glob("frame*.png"))
        if len(stored) != frames:
            raise RuntimeError(f"{example.frame_dir} holds {len(stored)} frames, the GIF {frames}")
        for path in stored:
            _check_image(path)


def main() -> None:
    for example in EXAMPLES:
        print(f"\n[cli-example] {example.name}")
        _clean(example)
        subprocess.run([sys.executable, "render.py", *example.args], check=True)
        if example.output.suffix == ".gif":
            _check_frames(example)
        else:
            _check_image(example.output)
    print("\nAll CLI examples generated successfully.")


if __name__ == "__main__":
    main()

import os
import sys
import threading
import time
import warnings
from argparse import ArgumentParser
from dataclasses import dataclass
from pathlib import Path

_VERBOSE_FLAGS = {"--verbose", "-v"}
_cli_verbose = any(arg in _VERBOSE_FLAGS for arg in sys.argv[1:])
_env_log_level = os.environ.get("TF_CPP_MIN_LOG_LEVEL")
_suppress_messages = (not _cli_verbose) and _env_log_level != "0"

if _suppress_messages and _env_log_level is None:
    os.environ["TF_CPP_MIN_LOG_LEVEL"] = "3"

if _suppress_messages:
    warnings.filterwarnings(
        "ignore",
        message=r"Protobuf gencode version .* is exactly one major version older than the runtime version .*",
        category=UserWarning,
        module="google.protobuf",
    )

VERBOSE = _cli_verbose


def log(message, *args, **kwargs):
    if VERBOSE:
        print(message, *args, **kwargs)


import numpy as np
import PIL.Image
import tensorflow as tf
from tqdm import tqdm

if _suppress_messages:
    tf.get_logger().setLevel("ERROR")

from buddhabrot import BatchDispatcher, IncrementalRenderer, RenderConfig, SharedFrame
from buddhabrot.display import overlay_status, status_lines
from buddhabrot.output import GifWriter, write_frame_sequence, write_single_image

MODES = ("image", "gif", "live")


@dataclass
class OutputConfig:
    mode: str
    output_path: Path
    image_format: str
    frame_dir: Path | None


def build_parser():
    parser = ArgumentParser(description="Render the trajectories of the Mandelbrot recurrence onto a shared canvas.")

    parser.add_argument('--mode', choices=MODES, default='image',
                        help='"image" renders the whole grid in parallel and saves it, "gif" records the render '
                             'growing tick by tick, "live" opens a window that fills in while you watch.')

    parser.add_argument('-W', '--width', type=int, dest='width', metavar='WIDTH', default=1280,
                        help='canvas width in pixels')
    parser.add_argument('-H', '--height', type=int, dest='height', metavar='HEIGHT', default=720,
                        help='canvas height in pixels')
    parser.add_argument('-b', '--bounds', type=float, dest='bounds', metavar='BOUNDS', default=0.6,
                        help='minimum and maximum value of the sampled seed coordinates')
    parser.add_argument('-p', '--power', type=float, dest='power', metavar='POWER', default=2.0,
                        help='power to use in the Mandelbrot equation, any finite real')
    parser.add_argument('-f', '--factor', type=float, dest='factor', metavar='FACTOR', default=50.0,
                        help='exponent used to determine the brightness curve of density renders')
    parser.add_argument('-c', '--colour-factor', type=float, dest='colour_factor', metavar='COLOUR_FACTOR',
                        default=0.7, help='multiplier on the hue derived from the distance to the origin')
    parser.add_argument('-o', '--opacity', type=float, dest='opacity', metavar='OPACITY', default=0.08,
                        help='alpha of every blended point, between 0 and 1')
    parser.add_argument('-z', '--zoom', type=int, dest='zoom', metavar='ZOOM', default=350,
                        help='pixels per unit of the complex plane')
    parser.add_argument('-d', '--delta', type=float, dest='delta', metavar='DELTA', default=0.05,
                        help='step between each seed coordinate')
    parser.add_argument('-l', '--loops', type=int, dest='loop_limit', metavar='LOOPS', default=200,
                        help='number of iterations for each coordinate')
    parser.add_argument('-s', '--speed', type=int, dest='speed', metavar='SPEED', default=1000,
                        help='iterations advanced per tick in gif and incremental live renders')
    parser.add_argument('--re', type=float, dest='off_real', metavar='RE', default=0.0,
                        help='real part of the starting value of z')
    parser.add_argument('--im', type=float, dest='off_imaginary', metavar='IM', default=0.0,
                        help='imaginary part of the starting value of z')
    parser.add_argument('--no-skip-first', dest='skip_first', action='store_false',
                        help='record the first iteration of every seed instead of discarding it')
    parser.add_argument('--escape', action='store_true',
                        help='end a trajectory once both parts of z leave the bounds')
    parser.add_argument('--accumulate', choices=['blend', 'density'], dest='accumulation', default='density',
                        help='"density" counts hits per pixel, "blend" composites translucent colours')
    parser.add_argument('--colour-policy', choices=['seed', 'step'], dest='colour_policy', default='seed',
                        help='colour each point by its seed ("seed") or by its own value ("step")')
    parser.add_argument('--depth', type=int, choices=[8, 16], default=8,
                        help='bit depth of the colours handed to the canvas')
    parser.add_argument('--transparent', action='store_true',
                        help='start blended renders from a transparent instead of an opaque black canvas')

    parser.add_argument('--workers', type=int, default=None,
                        help='number of worker threads for parallel renders (default: CPU count)')
    parser.add_argument('--backend', choices=['python', 'tensor'], default='python',
                        help='"python" traces one seed at a time, "tensor" iterates whole chunks with TensorFlow')
    parser.add_argument('--chunk-size', type=int, dest='chunk_size', default=256,
                        help='seeds handed to a worker at once')
    parser.add_argument('--engine', choices=['parallel', 'incremental'], default='parallel',
                        help='how the live window is filled: worker pool or a few iterations per tick')

    parser.add_argument('--output', dest='output', type=str,
                        help='destination file (default: out.png for image/live, movie.gif for gif)')
    parser.add_argument('--format', type=str, dest='format', metavar='FORMAT', default='png',
                        help='file format for image outputs. Can be any extension supported by Pillow.')
    parser.add_argument('--frame-dir', dest='frame_dir', type=str,
                        help='in gif mode, also store every frame in this directory')
    parser.add_argument('--frames', type=int, default=0,
                        help='in gif mode, stop after this many frames (0 renders the whole grid)')
    parser.add_argument('--gif-frame-duration', type=float, dest='gif_frame_duration', default=0.1,
                        help='seconds each GIF frame is shown')
    parser.add_argument('--colormap', type=str, default=None,
                        help='matplotlib colormap applied to density renders (default: greyscale)')
    parser.add_argument('--show-status', dest='show_status', action='store_true',
                        help='draw progress, elapsed time and the configuration onto the image')
    parser.add_argument('--no-progress', dest='progress', action='store_false',
                        help='hide the progress bar of image renders')
    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Enable verbose logging, including TensorFlow diagnostics.')

    return parser


def build_config(opt, parser: ArgumentParser) -> RenderConfig:
    try:
        return RenderConfig(
            width=opt.width,
            height=opt.height,
            bounds=opt.bounds,
            power=opt.power,
            colour_factor=opt.colour_factor,
            opacity=opt.opacity,
            zoom=opt.zoom,
            delta=opt.delta,
            loop_limit=opt.loop_limit,
            speed=opt.speed,
            factor=opt.factor,
            offset=complex(opt.off_real, opt.off_imaginary),
            skip_first=opt.skip_first,
            escape=opt.escape,
            accumulation=opt.accumulation,
            colour_policy=opt.colour_policy,
            depth=opt.depth,
            transparent=opt.transparent,
        )
    except ValueError as exc:
        parser.error(str(exc))


def resolve_output_config(opt, parser: ArgumentParser) -> OutputConfig:
    if opt.workers is not None and opt.workers <= 0:
        parser.error("--workers must be a positive integer.")
    if opt.chunk_size <= 0:
        parser.error("--chunk-size must be a positive integer.")
    if opt.frames < 0:
        parser.error("--frames must not be negative.")
    if opt.gif_frame_duration <= 0:
        parser.error("--gif-frame-duration must be positive.")

    image_format = (opt.format or "png").lower().lstrip(".") or "png"

    if opt.mode == "gif":
        output_path = Path(opt.output or "movie.gif").expanduser()
        if output_path.suffix:
            if output_path.suffix.lower() != ".gif":
                parser.error("GIF outputs must end with .gif.")
        else:
            output_path = output_path.with_suffix(".gif")
    else:
        output_path = Path(opt.output or f"out.{image_format}").expanduser()
        expected_suffix = f".{image_format}"
        if output_path.suffix:
            if output_path.suffix.lower() != expected_suffix.lower():
                parser.error(f"--output extension {output_path.suffix} does not match --format {image_format}.")
        else:
            output_path = output_path.with_suffix(expected_suffix)

    if output_path.exists() and output_path.is_dir():
        parser.error("--output must point to a file, not a directory.")

    frame_dir = None
    if opt.frame_dir:
        if opt.mode != "gif":
            parser.error("--frame-dir is only valid in gif mode.")
        frame_dir = Path(opt.frame_dir).expanduser().resolve()

    return OutputConfig(
        mode=opt.mode,
        output_path=output_path.resolve(),
        image_format=image_format,
        frame_dir=frame_dir,
    )


def frame_array(frame: SharedFrame, opt, started: float) -> np.ndarray:
    with frame.lock:
        rgba = frame.canvas.to_rgba8(colormap=opt.colormap)
        state = frame.state.copy()
    if opt.show_status:
        lines = status_lines(state.completed, state.total, time.monotonic() - started, frame.canvas.config.describe())
        rgba = overlay_status(rgba, lines)
    return rgba


def render_image(config: RenderConfig, opt, output: OutputConfig) -> None:
    frame = SharedFrame.create(config)
    dispatcher = BatchDispatcher(
        config,
        frame,
        workers=opt.workers,
        backend=opt.backend,
        chunk_size=opt.chunk_size,
    )
    log(f"Rendering {config.seed_count} seeds on {dispatcher.workers} {opt.backend} workers")

    started = time.monotonic()
    bar_lock = threading.Lock()
    with tqdm(total=config.seed_count, unit="seed", disable=not opt.progress) as bar:
        def advance_bar(count):
            with bar_lock:
                bar.update(count)

        dispatcher.run(progress=advance_bar)
    log(f"Render finished in {time.monotonic() - started:.2f}s")

    if config.accumulation == "density":
        log(f"Density buckets: {frame.canvas.histogram()}")

    write_single_image(PIL.Image.fromarray(frame_array(frame, opt, started)), output.output_path, output.image_format)
    print(f"Saved {output.output_path}")


def render_gif(config: RenderConfig, opt, output: OutputConfig) -> None:
    frame = SharedFrame.create(config)
    renderer = IncrementalRenderer(config, frame)
    started = time.monotonic()
    digits = max(3, len(str(opt.frames))) if opt.frames else 6

    with GifWriter(output.output_path, duration=opt.gif_frame_duration) as writer:
        index = 0
        while not renderer.finished and (opt.frames == 0 or index < opt.frames):
            renderer.advance()
            rgba = frame_array(frame, opt, started)
            writer.append(rgba)
            if output.frame_dir is not None:
                write_frame_sequence(PIL.Image.fromarray(rgba), output.frame_dir, index, digits, output.image_format, "frame")
            index += 1
            with frame.lock:
                log("frame {0}: {1:.2f}%".format(index, frame.state.fraction * 100), end='\r')

    print(f"Saved {output.output_path} ({index} frames)")


def render_live(config: RenderConfig, opt, output: OutputConfig) -> None:
    from buddhabrot.live import LiveSession, LiveWindow

    session = LiveSession(
        config,
        engine=opt.engine,
        workers=opt.workers,
        backend=opt.backend,
        chunk_size=opt.chunk_size,
    )
    window = LiveWindow(
        session,
        output_path=output.output_path,
        colormap=opt.colormap,
        show_status=True,
    )
    window.show()


def main(argv=None):
    parser = build_parser()
    opt = parser.parse_args(argv)

    global VERBOSE
    VERBOSE = bool(opt.verbose)

    config = build_config(opt, parser)
    output = resolve_output_config(opt, parser)
    log(f"TensorFlow version: {tf.__version__}")
    log("\n".join(config.describe()))

    if output.mode == "image":
        render_image(config, opt, output)
    elif output.mode == "gif":
        render_gif(config, opt, output)
    else:
        render_live(config, opt, output)


if __name__ == '__main__':
    main()

"""Live rendering: a background advance thread and a matplotlib window reading from it."""

from __future__ import annotations

import threading
import time
from pathlib import Path
from typing import Optional

import matplotlib.animation as animation
import matplotlib.pyplot as plt
import numpy as np
import PIL.Image

from .config import RenderConfig
from .dispatch import BatchDispatcher, IncrementalRenderer
from .display import overlay_status, render_snapshot, status_lines
from .output import write_single_image
from .state import RenderState, SharedFrame

ENGINES = ("parallel", "incremental")


class LiveSession:
    """Owns the shared frame and the thread that keeps advancing it.

    ``engine="parallel"`` runs the batch dispatcher in the background thread;
    ``engine="incremental"`` advances ``config.speed`` iterations per tick and
    sleeps ``tick_interval`` seconds between ticks so readers get the lock.
    Shutdown goes through a :class:`threading.Event` checked by the loop.
    """

    def __init__(
        self,
        config: RenderConfig,
        *,
        engine: str = "parallel",
        workers: Optional[int] = None,
        backend: str = "python",
        chunk_size: int = 256,
        tick_interval: float = 0.001,
    ):
        if engine not in ENGINES:
            raise ValueError(f"Unknown engine '{engine}'. Valid choices: {', '.join(ENGINES)}.")
        self.config = config
        self.engine = engine
        self.frame = SharedFrame.create(config)
        self.tick_interval = tick_interval
        self._dispatcher_args = dict(workers=workers, backend=backend, chunk_size=chunk_size)
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._error: Optional[BaseException] = None
        self.started_at = time.monotonic()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._error = None
        self.started_at = time.monotonic()
        self._thread = threading.Thread(target=self._advance_loop, name="live-advance", daemon=True)
        self._thread.start()

    def _advance_loop(self) -> None:
        try:
            if self.engine == "parallel":
                BatchDispatcher(self.config, self.frame, **self._dispatcher_args).run(stop=self._stop)
                return
            renderer = IncrementalRenderer(self.config, self.frame)
            while not self._stop.is_set() and not renderer.finished:
                renderer.advance()
                self._stop.wait(self.tick_interval)
        except BaseException as exc:
            self._error = exc

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def reset(self) -> None:
        """Stop the walk, clear canvas and state together, and start again."""

        self.stop()
        self.frame.reset()
        self.start()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the advance thread ends; ``False`` on timeout."""

        if self._thread is not None:
            self._thread.join(timeout)
            if self._thread.is_alive():
                return False
        self._raise_failure()
        return True

    def _raise_failure(self) -> None:
        if self._error is not None:
            raise RuntimeError("live render session failed") from self._error

    def snapshot(self) -> tuple[np.ndarray, RenderState]:
        self._raise_failure()
        return self.frame.snapshot()


class LiveWindow:
    """matplotlib window showing a :class:`LiveSession`.

    Scroll down doubles the brightness factor, scroll up halves it, a left
    click resets the session, a right click saves the shown frame and escape
    closes the window. The frame is rebuilt every ``refresh_every`` ticks or
    right after an input changes it.
    """

    def __init__(
        self,
        session: LiveSession,
        *,
        output_path: Path = Path("out.png"),
        colormap: Optional[str] = None,
        show_status: bool = True,
        interval_ms: int = 16,
        refresh_every: int = 30,
    ):
        self.session = session
        self.config = session.config
        self.output_path = Path(output_path)
        self.colormap = colormap
        self.show_status = show_status
        self.interval_ms = interval_ms
        self.refresh_every = refresh_every
        self.factor = self.config.factor
        self.force_rerender = True
        self.config_lines = self.config.describe()

        dpi = 100
        self.fig = plt.figure(figsize=(self.config.width / dpi, self.config.height / dpi), dpi=dpi, frameon=False)
        self.ax = self.fig.add_axes([0, 0, 1, 1])
        self.ax.axis("off")
        self.buffer = np.zeros((self.config.height, self.config.width, 4), dtype=np.uint8)
        self.img = self.ax.imshow(self.buffer, interpolation="nearest", aspect="auto")

        self.fig.canvas.mpl_connect("scroll_event", self.on_scroll)
        self.fig.canvas.mpl_connect("button_release_event", self.on_click)
        self.fig.canvas.mpl_connect("key_press_event", self.on_key)
        self.fig.canvas.mpl_connect("close_event", self.on_close)
        self._animation = None

    def tick(self, _frame=None):
        """Redraw callback: rebuild the frame when due, then show it."""

        pixels, state = self.session.snapshot()
        due = state.render_count >= self.refresh_every and (not state.just_finished or state.completed != state.total)

        rebuilt = self.force_rerender or due

        if rebuilt:
            frame = render_snapshot(pixels, self.session.frame.canvas.mode, self.factor, self.colormap)
            if self.show_status:
                elapsed = time.monotonic() - self.session.started_at
                frame = overlay_status(frame, status_lines(state.completed, state.total, elapsed, self.config_lines))
            self.buffer = frame
            self.img.set_data(frame)
            self.force_rerender = False

        with self.session.frame.lock:
            live_state = self.session.frame.state
            if rebuilt:
                live_state.just_finished = state.completed == state.total
                live_state.render_count = 0
            live_state.render_count += 1
        return [self.img]

    def on_scroll(self, event) -> None:
        if event.button == "down":
            self.factor *= 2.0
            self.force_rerender = True
        elif event.button == "up":
            self.factor /= 2.0
            self.force_rerender = True

    def on_click(self, event) -> None:
        if event.button == 1:
            self.session.reset()
            self.force_rerender = True
        elif event.button == 3:
            self.save()

    def on_key(self, event) -> None:
        if event.key == "escape":
            plt.close(self.fig)

    def on_close(self, _event) -> None:
        self.session.stop()

    def save(self) -> Path:
        write_single_image(PIL.Image.fromarray(self.buffer), self.output_path, self.output_path.suffix.lstrip(".") or "png")
        return self.output_path

    def show(self) -> None:
        self.session.start()
        self._animation = animation.FuncAnimation(
            self.fig,
            self.tick,
            interval=self.interval_ms,
            blit=False,
            cache_frame_data=False,
        )
        try:
            plt.show()
        finally:
            self.session.stop()

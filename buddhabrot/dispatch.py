"""Walk the seed grid, either in parallel batches or a few steps at a time."""

from __future__ import annotations

import os
import threading
from concurrent.futures import FIRST_COMPLETED, ThreadPoolExecutor, wait
from typing import Callable, Iterator, Optional

import numpy as np

from .config import RenderConfig
from .grid import CoordinateGrid
from .kernel import TensorTrajectoryWorker
from .orbit import TrajectoryWorker, escaped, point_colour, step
from .state import RenderState, SharedFrame

BACKENDS = ("python", "tensor")

ProgressCallback = Callable[[int], object]


class BatchDispatcher:
    """Fan the seed grid out over a thread pool.

    Seeds are grouped in chunks of ``chunk_size``. The python backend traces
    and plots each seed of a chunk separately; the tensor backend iterates a
    whole chunk at once and plots it in a single critical section. At most
    ``window`` chunks are queued, so the grid is never materialised.
    """

    def __init__(
        self,
        config: RenderConfig,
        frame: SharedFrame,
        *,
        workers: Optional[int] = None,
        backend: str = "python",
        chunk_size: int = 256,
        device: Optional[str] = None,
    ):
        if backend not in BACKENDS:
            raise ValueError(f"Unknown backend '{backend}'. Valid choices: {', '.join(BACKENDS)}.")
        if workers is not None and workers <= 0:
            raise ValueError("workers must be a positive integer")
        if chunk_size <= 0:
            raise ValueError("chunk_size must be a positive integer")

        self.config = config
        self.frame = frame
        self.workers = workers or os.cpu_count() or 1
        self.backend = backend
        self.chunk_size = chunk_size
        self.window = self.workers * 4
        self.grid = CoordinateGrid(config.bounds, config.delta)

        if backend == "tensor":
            self._chunk_worker = TensorTrajectoryWorker(config, frame, device=device)
        else:
            self._chunk_worker = None
        self._seed_worker = TrajectoryWorker(config, frame)

    def _chunks(self) -> Iterator[np.ndarray]:
        return self.grid.chunks(self.chunk_size)

    def _run_chunk(
        self,
        seeds: np.ndarray,
        progress: Optional[ProgressCallback],
        halt: Callable[[], bool],
    ) -> None:
        if self._chunk_worker is not None:
            if halt():
                return
            self._chunk_worker.run(seeds)
            if progress is not None:
                progress(len(seeds))
            return

        for x, y in seeds.tolist():
            if halt():
                return
            self._seed_worker.run((x, y))
            if progress is not None:
                progress(1)

    def run(
        self,
        progress: Optional[ProgressCallback] = None,
        stop: Optional[threading.Event] = None,
    ) -> RenderState:
        """Render every seed, blocking until the pool has drained.

        ``progress`` is called with the number of seeds completed since its
        last call. Setting ``stop`` ends the walk after the seeds in flight.
        A failing worker aborts the session with :class:`RuntimeError`.
        """

        abort = threading.Event()

        def halt() -> bool:
            return abort.is_set() or (stop is not None and stop.is_set())

        with ThreadPoolExecutor(max_workers=self.workers, thread_name_prefix="trajectory") as pool:
            pending: set = set()
            try:
                for chunk in self._chunks():
                    if halt():
                        break
                    pending.add(pool.submit(self._run_chunk, chunk, progress, halt))
                    if len(pending) >= self.window:
                        done, pending = wait(pending, return_when=FIRST_COMPLETED)
                        _collect(done)
                done, pending = wait(pending)
                _collect(done)
            except BaseException:
                abort.set()
                for future in pending:
                    future.cancel()
                raise

        with self.frame.lock:
            state = self.frame.state
            if not halt() and state.completed >= state.total:
                state.finished = True
            return state.copy()


def _collect(done) -> None:
    for future in done:
        exc = future.exception()
        if exc is not None:
            raise RuntimeError("trajectory worker failed; render session aborted") from exc


class IncrementalRenderer:
    """Advance the grid walk a bounded number of iterations per tick.

    Only one seed is in flight at a time. Each call to :meth:`advance` holds
    the frame lock for its whole duration, so it never overlaps a redraw.
    """

    def __init__(self, config: RenderConfig, frame: SharedFrame):
        self.config = config
        self.frame = frame
        self.grid = CoordinateGrid(config.bounds, config.delta)

    @property
    def finished(self) -> bool:
        with self.frame.lock:
            return self.frame.state.finished

    def advance(self, budget: Optional[int] = None) -> int:
        """Run at most ``budget`` (default ``config.speed``) iterations; return how many ran."""

        budget = self.config.speed if budget is None else budget
        with self.frame.lock:
            return self._advance(self.frame.state, budget)

    def _advance(self, state: RenderState, budget: int) -> int:
        config = self.config
        canvas = self.frame.canvas
        steps = 0

        while steps < budget and not state.finished:
            x, y = self.grid.seed_at(state.seed_index)
            c = complex(x, y)
            if not state.in_flight:
                state.z = config.offset
                state.loops = 0
                state.in_flight = True
                if config.skip_first:
                    state.z = step(state.z, c, config.power)

            z = step(state.z, c, config.power)
            steps += 1
            state.loops += 1

            if config.escape and escaped(z, config.bounds):
                self._finish_seed(state)
                continue

            state.z = z
            position = canvas.project(z)
            if position is not None:
                canvas.write(position[0], position[1], point_colour(c, z, config))

            if state.loops >= config.loop_limit:
                self._finish_seed(state)

        return steps

    def _finish_seed(self, state: RenderState) -> None:
        state.in_flight = False
        state.completed += 1
        state.seed_index += 1
        if state.seed_index >= len(self.grid):
            state.finished = True

    def run(self) -> RenderState:
        """Advance until the whole grid is done."""

        while not self.finished:
            self.advance()
        with self.frame.lock:
            return self.frame.state.copy()

    def reset(self) -> None:
        self.frame.reset()

"""Render progress and the lock-guarded frame shared by writers and readers."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field, replace

from .canvas import Canvas
from .config import RenderConfig


@dataclass
class RenderState:
    """Progress of one render session.

    ``completed``/``total`` count finished seeds. The incremental fields track
    the single seed in flight when the grid is walked step by step.
    """

    total: int
    completed: int = 0
    finished: bool = False
    seed_index: int = 0
    z: complex = 0j
    loops: int = 0
    in_flight: bool = False
    just_finished: bool = False
    render_count: int = 0

    def copy(self) -> "RenderState":
        return replace(self)

    @property
    def fraction(self) -> float:
        return self.completed / self.total if self.total else 1.0


@dataclass
class SharedFrame:
    """Canvas and render state guarded together by one lock.

    Every mutation of either field, and every read the presentation path
    makes, happens while holding ``lock``.
    """

    canvas: Canvas
    state: RenderState
    lock: threading.Lock = field(default_factory=threading.Lock)

    @classmethod
    def create(cls, config: RenderConfig) -> "SharedFrame":
        return cls(canvas=Canvas(config), state=RenderState(total=config.seed_count))

    def reset(self) -> None:
        with self.lock:
            self.canvas.clear()
            self.state = RenderState(total=self.state.total)

    def snapshot(self) -> tuple:
        """Copy of the canvas buffer and the state, taken in one critical section."""

        with self.lock:
            return self.canvas.snapshot_for_display(), self.state.copy()

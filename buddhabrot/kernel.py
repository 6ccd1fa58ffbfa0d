"""Vectorised trajectory kernel: iterate a whole chunk of seeds with TensorFlow."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np
import tensorflow as tf

from .colour import policy_colours
from .config import RenderConfig
from .state import SharedFrame

DEVICE = "/CPU:0"


@dataclass(frozen=True)
class OrbitBlock:
    """Trajectory points of ``n`` seeds over ``steps`` iterations.

    ``re``/``im``/``alive`` are shaped ``(steps, n)``; points with ``alive``
    false come after the seed escaped and are not plotted.
    """

    seeds: np.ndarray
    re: np.ndarray
    im: np.ndarray
    alive: np.ndarray


def _power(zr: tf.Tensor, zi: tf.Tensor, power: tf.Tensor, squared: bool) -> tuple[tf.Tensor, tf.Tensor]:
    if squared:
        return zr * zr - zi * zi, 2.0 * zr * zi
    r = tf.sqrt(zr * zr + zi * zi)
    theta = tf.atan2(zi, zr)
    rp = tf.pow(r, power)
    return rp * tf.cos(theta * power), rp * tf.sin(theta * power)


@tf.function
def _orbit_run(
    cr: tf.Tensor,
    ci: tf.Tensor,
    zr: tf.Tensor,
    zi: tf.Tensor,
    loop_limit: tf.Tensor,
    power: tf.Tensor,
    bounds: tf.Tensor,
    squared: bool,
    skip_first: bool,
    escape: bool,
) -> tuple[tf.Tensor, tf.Tensor, tf.Tensor]:
    """Iterate the recurrence for every seed using a TensorFlow while loop."""

    if skip_first:
        zr, zi = _power(zr, zi, power, squared)
        zr, zi = zr + cr, zi + ci

    alive = tf.ones_like(cr, tf.bool)
    ta_re = tf.TensorArray(tf.float64, size=loop_limit)
    ta_im = tf.TensorArray(tf.float64, size=loop_limit)
    ta_alive = tf.TensorArray(tf.bool, size=loop_limit)
    i = tf.constant(0, dtype=tf.int32)

    def cond(i, zr, zi, alive, ta_re, ta_im, ta_alive):
        return tf.less(i, loop_limit)

    def body(i, zr, zi, alive, ta_re, ta_im, ta_alive):
        nr, ni = _power(zr, zi, power, squared)
        zr, zi = nr + cr, ni + ci
        if escape:
            out = tf.logical_and(tf.abs(zr) > bounds, tf.abs(zi) > bounds)
            alive = tf.logical_and(alive, tf.logical_not(out))
        return (
            i + 1,
            zr,
            zi,
            alive,
            ta_re.write(i, zr),
            ta_im.write(i, zi),
            ta_alive.write(i, alive),
        )

    _, _, _, _, ta_re, ta_im, ta_alive = tf.while_loop(cond, body, (i, zr, zi, alive, ta_re, ta_im, ta_alive))
    return ta_re.stack(), ta_im.stack(), ta_alive.stack()


def trace_orbits(seeds: np.ndarray, config: RenderConfig, *, device: Optional[str] = None) -> OrbitBlock:
    """Iterate every seed of an ``(n, 2)`` array at once."""

    seeds = np.asarray(seeds, dtype=np.float64).reshape(-1, 2)
    n = seeds.shape[0]

    with tf.device(device if device is not None else DEVICE):
        cr = tf.convert_to_tensor(seeds[:, 0], dtype=tf.float64)
        ci = tf.convert_to_tensor(seeds[:, 1], dtype=tf.float64)
        zr = tf.fill([n], tf.constant(config.offset.real, dtype=tf.float64))
        zi = tf.fill([n], tf.constant(config.offset.imag, dtype=tf.float64))

        re, im, alive = _orbit_run(
            cr,
            ci,
            zr,
            zi,
            tf.constant(config.loop_limit, dtype=tf.int32),
            tf.constant(config.power, dtype=tf.float64),
            tf.constant(config.bounds, dtype=tf.float64),
            config.power == 2.0,
            config.skip_first,
            config.escape,
        )

    return OrbitBlock(seeds=seeds, re=re.numpy(), im=im.numpy(), alive=alive.numpy())


class TensorTrajectoryWorker:
    """Trace a chunk of seeds with :func:`trace_orbits` and plot it in one critical section."""

    def __init__(self, config: RenderConfig, frame: SharedFrame, *, device: Optional[str] = None):
        self.config = config
        self.frame = frame
        self.device = device

    def run(self, seeds: np.ndarray) -> int:
        block = trace_orbits(seeds, self.config, device=self.device)
        if self.config.accumulation == "blend":
            # Seed-major order keeps each trajectory contiguous and in step order.
            alive = block.alive.T
            colours = policy_colours(block.seeds, block.re, block.im, self.config).transpose(1, 0, 2)[alive]
            re = block.re.T[alive]
            im = block.im.T[alive]
        else:
            colours = None
            re = block.re[block.alive]
            im = block.im[block.alive]

        with self.frame.lock:
            written = self.frame.canvas.plot_arrays(re, im, colours)
            self.frame.state.completed += len(block.seeds)
        return written

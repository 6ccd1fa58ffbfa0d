import numpy as np
import pytest

from buddhabrot import BlendAccumulator, Canvas, DensityAccumulator, RenderConfig, SharedFrame, TrajectoryWorker
from buddhabrot.canvas import COUNTER_MAX
from buddhabrot.colour import seed_colour
from buddhabrot.output import encode_image


@pytest.fixture
def square():
    return Canvas(RenderConfig(width=100, height=100, zoom=50))


def blend_config(**overrides):
    values = dict(width=10, height=10, bounds=0.1, delta=0.1, zoom=10, loop_limit=5, accumulation="blend", opacity=0.2)
    values.update(overrides)
    return RenderConfig(**values)


@pytest.mark.parametrize(
    "z, expected",
    [
        (0j, (49, 50)),
        (complex(1.0, 0.0), (99, 50)),
        (complex(-1.0, 0.0), (0, 50)),
        (1j, (49, 0)),
        (complex(1.02, 0.0), None),
        (complex(-1.02, 0.0), None),
        (complex(0.0, 1.02), None),
        (complex(0.0, -1.0), None),
        (complex(float("nan"), 0.0), None),
        (complex(float("inf"), float("inf")), None),
    ],
)
def test_project(square, z, expected):
    assert square.project(z) == expected


def test_project_many_matches_project(square):
    rng = np.random.default_rng(7)
    re = rng.uniform(-1.5, 1.5, 500)
    im = rng.uniform(-1.5, 1.5, 500)
    re[:3] = [np.nan, np.inf, -np.inf]

    xs, ys, keep = square.project_many(re, im)

    expected = [square.project(complex(r, i)) for r, i in zip(re, im)]
    assert keep.tolist() == [position is not None for position in expected]
    assert list(zip(xs.tolist(), ys.tolist())) == [position for position in expected if position is not None]


def test_out_of_bounds_points_leave_the_canvas_untouched(square):
    assert square.plot([(complex(1.02, 0.0), None)]) == 0
    assert not square.pixels.any()


def test_density_counts_and_saturates():
    accumulator = DensityAccumulator(4, 2)
    accumulator.write(1, 0)
    accumulator.write(1, 0)
    accumulator.pixels[1, 3] = COUNTER_MAX - 1
    accumulator.write(3, 1)
    accumulator.write(3, 1)

    assert accumulator.pixels[0, 1] == 2
    assert accumulator.pixels[1, 3] == COUNTER_MAX


def test_density_write_many_counts_duplicates():
    accumulator = DensityAccumulator(4, 2)
    accumulator.pixels[1, 2] = COUNTER_MAX - 1

    accumulator.write_many(np.array([1, 1, 1, 2, 2, 2]), np.array([0, 0, 0, 1, 1, 1]))

    assert accumulator.pixels[0, 1] == 3
    assert accumulator.pixels[1, 2] == COUNTER_MAX
    assert accumulator.pixels.sum() == 3 + COUNTER_MAX


def test_blend_alpha_follows_closed_form():
    accumulator = BlendAccumulator(2, 2, transparent=True)
    colour = (255, 0, 0, 51)

    for n in range(1, 7):
        accumulator.write(0, 0, colour)
        assert accumulator.pixels[0, 0, 3] == pytest.approx(1.0 - 0.8 ** n)
        assert accumulator.pixels[0, 0, 0] == pytest.approx(1.0)


def test_blend_over_opaque_black():
    accumulator = BlendAccumulator(2, 2)
    accumulator.write(1, 1, (255, 0, 0, 51))

    assert accumulator.pixels[1, 1].tolist() == pytest.approx([0.2, 0.0, 0.0, 1.0])
    assert accumulator.pixels[0, 0].tolist() == [0.0, 0.0, 0.0, 1.0]


def test_blend_export_drops_low_byte():
    canvas = Canvas(blend_config())
    canvas.write(0, 0, (255, 0, 0, 51))

    rgba8 = canvas.to_rgba8()

    assert rgba8.dtype == np.uint8
    assert tuple(rgba8[0, 0]) == (51, 0, 0, 255)
    assert tuple(rgba8[9, 9]) == (0, 0, 0, 255)
    assert np.array_equal(rgba8, (canvas.to_rgba16() >> 8).astype(np.uint8))


def test_sixteen_bit_colours_blend_like_eight_bit():
    eight = BlendAccumulator(1, 1)
    sixteen = BlendAccumulator(1, 1, depth=16)

    eight.write(0, 0, (255, 0, 0, 51))
    sixteen.write(0, 0, (65535, 0, 0, 13107))

    assert sixteen.pixels == pytest.approx(eight.pixels)


def test_worker_blends_one_trajectory_onto_the_centre():
    config = blend_config(transparent=True)
    frame = SharedFrame.create(config)

    assert TrajectoryWorker(config, frame).run((0.0, 0.0)) == 5

    r, g, b, a = seed_colour(0j, config)
    pixel = frame.canvas.pixels[5, 4]
    assert pixel[3] == pytest.approx(1.0 - (1.0 - 0.2) ** 5)
    assert pixel[:3].tolist() == pytest.approx([r / 255, g / 255, b / 255])
    assert frame.canvas.pixels[..., 3].sum() == pytest.approx(pixel[3])


def test_density_tone_map():
    canvas = Canvas(RenderConfig(width=3, height=1, factor=50.0))
    canvas.pixels[0] = [0, 50, COUNTER_MAX]

    rgba8 = canvas.to_rgba8()

    assert rgba8[0, :, 0].tolist() == [0, 161, 255]
    assert rgba8[0, :, 3].tolist() == [255, 255, 255]
    assert canvas.to_rgba8(factor=25.0)[0, 1, 0] > 161


def test_density_colormap_is_opaque():
    canvas = Canvas(RenderConfig(width=3, height=1))
    canvas.pixels[0] = [0, 10, 100]

    rgba8 = canvas.to_rgba8(colormap="viridis")

    assert rgba8.shape == (1, 3, 4)
    assert rgba8[..., 3].tolist() == [[255, 255, 255]]


def test_export_is_idempotent():
    canvas = Canvas(RenderConfig(width=8, height=8))
    canvas.pixels[2, 3] = 40

    assert encode_image(canvas.to_rgba8()) == encode_image(canvas.to_rgba8())


def test_histogram_buckets():
    canvas = Canvas(RenderConfig(width=4, height=1))
    canvas.pixels[0] = [1, 5000, 12000, COUNTER_MAX]

    histogram = canvas.histogram()

    assert len(histogram) == 14
    assert histogram[0] == 1
    assert histogram[1] == 1
    assert histogram[2] == 1
    assert histogram[13] == 1
    assert sum(histogram) == 4


def test_histogram_needs_density():
    with pytest.raises(ValueError):
        Canvas(blend_config()).histogram()


def test_snapshot_is_a_copy():
    canvas = Canvas(RenderConfig(width=4, height=4))
    snapshot = canvas.snapshot_for_display()

    canvas.write(1, 1)

    assert snapshot[1, 1] == 0
    assert canvas.pixels[1, 1] == 1


def test_clear_restores_background():
    canvas = Canvas(blend_config())
    canvas.write(3, 3, (255, 255, 255, 255))

    canvas.clear()

    assert (canvas.pixels == [0.0, 0.0, 0.0, 1.0]).all()


def test_frame_reset_clears_canvas_and_state():
    frame = SharedFrame.create(RenderConfig(width=4, height=4, bounds=0.1, delta=0.1))
    frame.canvas.write(0, 0)
    frame.state.completed = 3

    frame.reset()
    pixels, state = frame.snapshot()

    assert not pixels.any()
    assert state.completed == 0
    assert state.total == 4

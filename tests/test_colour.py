import math

import numpy as np
import pytest

from buddhabrot import RenderConfig, colour_policy, hsv_to_rgba, hsv_to_rgba_array
from buddhabrot.colour import policy_colours, seed_colour, trajectory_hue


@pytest.mark.parametrize(
    "hue, expected",
    [
        (0.0, (255, 0, 0, 255)),
        (120.0, (0, 255, 0, 255)),
        (240.0, (0, 0, 255, 255)),
        (360.0, (255, 0, 0, 255)),
        (-120.0, (0, 0, 255, 255)),
    ],
)
def test_primary_hues(hue, expected):
    assert hsv_to_rgba(hue, 1.0, 1.0) == expected


def test_sixteen_bit_depth():
    assert hsv_to_rgba(0.0, 1.0, 1.0, depth=16) == (65535, 0, 0, 65535)


@pytest.mark.parametrize("hue", [math.nan, math.inf, -math.inf])
def test_non_finite_hue_is_opaque_black(hue):
    assert hsv_to_rgba(hue, 1.0, 1.0) == (0, 0, 0, 255)


def test_zero_saturation_is_grey():
    assert hsv_to_rgba(123.0, 0.0, 0.5) == (127, 127, 127, 255)


def test_full_saturation_spans_the_range():
    for hue in range(0, 360, 7):
        r, g, b, a = hsv_to_rgba(float(hue), 1.0, 1.0)
        assert max(r, g, b) == 255
        assert min(r, g, b) == 0
        assert a == 255


def test_array_conversion_matches_scalar():
    hues = np.array([0.0, 45.5, 120.0, 200.0, 359.9, -30.0, math.nan, 721.0])

    result = hsv_to_rgba_array(hues, 1.0, 1.0)

    assert result.shape == (len(hues), 4)
    for hue, row in zip(hues, result):
        assert tuple(row) == hsv_to_rgba(float(hue), 1.0, 1.0)


def test_seed_colour_uses_configured_alpha():
    config = RenderConfig(opacity=0.2)

    colour = seed_colour(0j, config)

    # cos(0) = 1, so the hue is 0.7 * 360 = 252 degrees: mostly blue with some red.
    assert trajectory_hue(0j, config) == pytest.approx(252.0)
    assert colour[1:] == (0, 255, 51)
    assert colour[0] == hsv_to_rgba(trajectory_hue(0j, config), 1.0, 1.0)[0]
    assert colour[0] in (50, 51)


def test_colour_policies():
    config = RenderConfig(opacity=0.5)
    c, z = 0j, complex(0.3, 0.4)

    assert colour_policy("seed")(c, z, config) == seed_colour(c, config)
    assert colour_policy("step")(c, z, config) == seed_colour(z, config)
    with pytest.raises(ValueError):
        colour_policy("rainbow")


@pytest.mark.parametrize("policy", ["seed", "step"])
def test_policy_colours_match_scalar_policy(policy):
    config = RenderConfig(colour_policy=policy, accumulation="blend", opacity=0.3)
    seeds = np.array([[0.1, -0.2], [0.3, 0.25]])
    re = np.array([[0.2, -0.1], [0.05, 0.4]])
    im = np.array([[0.0, 0.3], [-0.2, 0.1]])

    colours = policy_colours(seeds, re, im, config)

    assert colours.shape == (2, 2, 4)
    scalar = colour_policy(policy)
    for step in range(2):
        for n in range(2):
            c = complex(*seeds[n])
            z = complex(re[step, n], im[step, n])
            expected = scalar(c, z, config)
            assert tuple(colours[step, n, :3]) == pytest.approx(expected[:3], abs=1)
            assert colours[step, n, 3] == config.alpha


@pytest.mark.parametrize("hue", [-1e-15, -1e-300, -5e-324])
def test_tiny_negative_hue_is_red(hue):
    assert hsv_to_rgba(hue, 1.0, 1.0) == (255, 0, 0, 255)
    assert tuple(hsv_to_rgba_array(np.array([hue]), 1.0, 1.0)[0]) == (255, 0, 0, 255)


def test_negative_colour_factor_keeps_colour():
    config = RenderConfig(colour_factor=-1e-18)

    assert seed_colour(0j, config)[:3] == (255, 0, 0)


def test_policies_know_whether_they_colour_per_seed():
    assert colour_policy("seed").per_seed
    assert not colour_policy("step").per_seed
    assert colour_policy("step").name == "step"

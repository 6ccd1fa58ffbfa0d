import os

os.environ.setdefault("MPLBACKEND", "Agg")
os.environ.setdefault("TF_CPP_MIN_LOG_LEVEL", "3")

import pytest

from buddhabrot import RenderConfig


@pytest.fixture
def tiny_config():
    """10x10 canvas, four seeds, five recorded iterations each."""

    return RenderConfig(
        width=10,
        height=10,
        bounds=0.1,
        delta=0.1,
        zoom=10,
        loop_limit=5,
        speed=3,
    )


@pytest.fixture
def small_config():
    return RenderConfig(
        width=64,
        height=64,
        bounds=0.6,
        delta=0.1,
        zoom=20,
        loop_limit=20,
    )

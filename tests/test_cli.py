import PIL.Image
import pytest

import render

SMALL = ["--width", "32", "--height", "32", "--zoom", "10", "--delta", "0.2", "--loops", "10", "--no-progress"]


@pytest.mark.parametrize(
    "argv",
    [
        ["--width", "0"],
        ["--opacity", "2"],
        ["--delta", "-1"],
        ["--depth", "12"],
        ["--mode", "film"],
        ["--workers", "0"],
        ["--chunk-size", "0"],
        ["--frames", "-1"],
        ["--format", "png", "--output", "out.jpg"],
        ["--mode", "gif", "--output", "movie.png"],
        ["--frame-dir", "frames"],
    ],
)
def test_invalid_arguments_exit_with_usage_error(argv):
    with pytest.raises(SystemExit) as excinfo:
        render.main(argv)
    assert excinfo.value.code == 2


def test_defaults_follow_mode(tmp_path):
    parser = render.build_parser()

    image = render.resolve_output_config(parser.parse_args(["--output", str(tmp_path / "render")]), parser)
    gif = render.resolve_output_config(parser.parse_args(["--mode", "gif", "--output", str(tmp_path / "anim")]), parser)

    assert image.output_path.name == "render.png"
    assert gif.output_path.name == "anim.gif"
    assert gif.frame_dir is None


def test_build_config_reads_every_option():
    parser = render.build_parser()
    opt = parser.parse_args(
        ["--re", "0.1", "--im", "-0.2", "--no-skip-first", "--escape", "--accumulate", "blend", "--colour-policy", "step"]
    )

    config = render.build_config(opt, parser)

    assert config.offset == complex(0.1, -0.2)
    assert not config.skip_first
    assert config.escape
    assert config.accumulation == "blend"
    assert config.colour_policy == "step"


def test_image_render(tmp_path, capsys):
    output = tmp_path / "out.png"

    render.main(SMALL + ["--workers", "2", "--output", str(output)])

    assert output.name in capsys.readouterr().out
    with PIL.Image.open(output) as image:
        assert image.size == (32, 32)
        assert image.mode == "RGBA"


def test_blend_image_with_status(tmp_path):
    output = tmp_path / "blend.png"

    render.main(SMALL + ["--accumulate", "blend", "--show-status", "--output", str(output)])

    assert output.exists()


def test_tensor_backend_image(tmp_path):
    output = tmp_path / "tensor.png"

    render.main(SMALL + ["--backend", "tensor", "--output", str(output)])

    assert output.exists()


def test_gif_render(tmp_path):
    output = tmp_path / "movie.gif"
    frames = tmp_path / "frames"

    render.main(SMALL + ["--mode", "gif", "--speed", "50", "--frames", "3", "--output", str(output), "--frame-dir", str(frames)])

    assert output.exists()
    assert sorted(path.name for path in frames.iterdir()) == ["frame000.png", "frame001.png", "frame002.png"]


def test_negative_power_image(tmp_path):
    output = tmp_path / "inverse.png"

    render.main(SMALL + ["--power", "-2.0", "--output", str(output)])

    assert output.exists()

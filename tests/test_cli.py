"""Tests for the command line interface."""

import pytest
import logging
from functools import partial
from pathlib import Path
from PIL import Image

from lumenforge.cli import build_parser, main, make_ray_function, frame_path
from lumenforge.hdrimage import HdrImage, load_image, write_pfm
from lumenforge.renderer import RenderSettings
from lumenforge.tracers import path_tracer
from lumenforge.vec3 import Color, WHITE, BLACK
from lumenforge.world import World

SCENE = """
material white(diffuse(uniform(<1, 1, 1>)), uniform(<1, 1, 1>))
sphere(white, scaling(0.5, 0.5, 0.5))
camera(orthogonal, identity)
"""


@pytest.fixture
def scene_file(tmp_path):
    path = tmp_path / "scene.txt"
    path.write_text(SCENE)
    return path


class TestParser:
    """Argument parsing."""

    def test_render_defaults(self):
        args = build_parser().parse_args(["pathtracer", "scene.txt", "320", "240"])
        assert args.command == "pathtracer"
        assert (args.width, args.height) == (320, 240)
        assert args.output == "output/render.png"
        assert args.angle is None
        assert args.samples_per_pixel == 1
        assert args.seed == 42
        assert args.n_rays == 10
        assert args.max_depth == 2
        assert args.russian_roulette_limit == 3
        assert args.factor == 0.2
        assert args.gamma == 1.0
        assert not args.animate

    def test_tonemap_defaults(self):
        args = build_parser().parse_args(["tonemap", "in.pfm", "out.png"])
        assert args.luminosity == "max_min"
        assert args.weights is None

    def test_onoff_has_no_path_tracer_options(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["onoff", "scene.txt", "2", "2", "--n-rays", "4"])

    def test_command_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])


class TestHelpers:
    """Ray function binding and frame names."""

    def test_frame_path(self):
        assert frame_path(Path("out/render.png"), 3) == Path("out/render_0003.png")

    def test_path_tracer_options(self):
        settings = RenderSettings(n_rays=3, max_depth=5, russian_roulette_limit=1)
        func = make_ray_function("pathtracer", World(), settings)
        assert isinstance(func, partial)
        assert func.func is path_tracer
        assert func.keywords["n_rays"] == 3
        assert func.keywords["max_depth"] == 5
        assert func.keywords["russian_roulette_limit"] == 1

    def test_unknown_algorithm(self):
        with pytest.raises(ValueError):
            make_ray_function("raymarcher", World(), RenderSettings())


class TestRenderCommand:
    """End-to-end renders of a tiny scene."""

    def test_onoff(self, scene_file, tmp_path):
        output = tmp_path / "out" / "render.png"
        code = main(["onoff", str(scene_file), "3", "3", "--output", str(output), "--threads", "1"])

        assert code == 0
        assert output.exists()
        hdr = load_image(output.with_suffix(".pfm"))
        assert hdr.get_pixel(1, 1) == WHITE
        assert hdr.get_pixel(0, 0) == BLACK
        with Image.open(output) as image:
            assert image.size == (3, 3)

    def test_flat(self, scene_file, tmp_path):
        output = tmp_path / "flat.png"
        assert main(["flat", str(scene_file), "3", "3", "--output", str(output), "--threads", "1"]) == 0
        # Flat shading adds the pigment and the emission
        assert load_image(tmp_path / "flat.pfm").get_pixel(1, 1) == Color(2.0, 2.0, 2.0)

    def test_animation(self, tmp_path):
        scene = tmp_path / "scene.txt"
        scene.write_text(SCENE + "motion(rotation_z(10), 3)\n")
        output = tmp_path / "frames" / "demo.png"

        code = main(["onoff", str(scene), "2", "2", "--output", str(output), "--threads", "1", "--animate"])

        assert code == 0
        for frame in range(3):
            assert (tmp_path / "frames" / f"demo_{frame:04d}.png").exists()
            assert (tmp_path / "frames" / f"demo_{frame:04d}.pfm").exists()
        assert not output.exists()

    def test_angle_variable(self, tmp_path, caplog):
        scene = tmp_path / "scene.txt"
        scene.write_text("float angle(0)\ncamera(perspective, rotation_z(angle))\n")
        with caplog.at_level(logging.WARNING, logger="lumenforge.scene_parser"):
            code = main(["onoff", str(scene), "2", "2", "--output", str(tmp_path / "r.png"),
                         "--angle", "45", "--threads", "1"])
        assert code == 0
        assert "angle" in caplog.text

    def test_missing_camera(self, tmp_path, capsys):
        scene = tmp_path / "scene.txt"
        scene.write_text("float a(1)\n")
        code = main(["onoff", str(scene), "2", "2", "--output", str(tmp_path / "r.png")])
        assert code == 1
        assert "ConfigurationError:" in capsys.readouterr().err

    def test_grammar_error(self, tmp_path, capsys):
        scene = tmp_path / "scene.txt"
        scene.write_text("sphere(unknown_material, identity)\ncamera(orthogonal, identity)\n")
        code = main(["onoff", str(scene), "2", "2", "--output", str(tmp_path / "r.png")])
        assert code == 1
        err = capsys.readouterr().err
        assert err.startswith("GrammarError:")
        assert "scene.txt:1:" in err

    def test_missing_scene(self, tmp_path, capsys):
        code = main(["onoff", str(tmp_path / "nope.txt"), "2", "2", "--output", str(tmp_path / "r.png")])
        assert code == 1
        assert "ResourceError:" in capsys.readouterr().err

    def test_unsupported_output(self, scene_file, tmp_path):
        assert main(["onoff", str(scene_file), "2", "2", "--output", str(tmp_path / "r.gif")]) == 1
        assert not (tmp_path / "r.pfm").exists()


class TestTonemapCommand:
    """PFM to LDR conversion."""

    @pytest.fixture
    def pfm_file(self, tmp_path):
        image = HdrImage(4, 2)
        image.set_pixel(0, 0, Color(10.0, 5.0, 1.0))
        image.set_pixel(3, 1, Color(0.1, 0.2, 0.3))
        path = tmp_path / "image.pfm"
        write_pfm(image, path)
        return path

    def test_tonemap(self, pfm_file, tmp_path):
        output = tmp_path / "image.png"
        assert main(["tonemap", str(pfm_file), str(output), "--factor", "0.3", "--gamma", "2.2"]) == 0
        with Image.open(output) as image:
            assert image.size == (4, 2)

    def test_weighted_luminosity(self, pfm_file, tmp_path):
        output = tmp_path / "image.jpg"
        args = ["tonemap", str(pfm_file), str(output), "--luminosity", "weighted", "--weights", "1", "2", "1"]
        assert main(args) == 0
        assert output.exists()

    def test_weighted_without_weights(self, pfm_file, tmp_path, capsys):
        args = ["tonemap", str(pfm_file), str(tmp_path / "image.png"), "--luminosity", "weighted"]
        assert main(args) == 1
        assert "ConfigurationError:" in capsys.readouterr().err

    def test_input_must_be_pfm(self, tmp_path, capsys):
        assert main(["tonemap", str(tmp_path / "image.png"), str(tmp_path / "out.png")]) == 1
        assert "ConfigurationError:" in capsys.readouterr().err

    def test_invalid_factor(self, pfm_file, tmp_path):
        assert main(["tonemap", str(pfm_file), str(tmp_path / "out.png"), "--factor", "0"]) == 1

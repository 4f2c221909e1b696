"""
Command line interface.

Subcommands:
  onoff, flat, pathtracer   render a scene file
  tonemap                   convert a PFM image to an LDR format
"""

from __future__ import annotations
import argparse
import logging
import sys
import time
from functools import partial
from pathlib import Path
from typing import Callable, List, Optional

from .errors import ConfigurationError, LumenForgeError
from .hdrimage import HdrImage, load_image, write_pfm
from .renderer import RayFunction, RenderSettings, render_animation, render_scene
from .scene_parser import ASPECT_RATIO_VARIABLE, load_scene
from .tonemapping import LUMINOSITY_MODES, OUTPUT_FORMATS, LogAverageToneMapper, save_ldr_image
from .tracers import flat_tracer, onoff_tracer, path_tracer
from .world import World

logger = logging.getLogger(__name__)

ALGORITHMS = ("onoff", "flat", "pathtracer")


def make_ray_function(algorithm: str, world: World, settings: RenderSettings) -> RayFunction:
    """Bind a tracer to the world and the render options."""
    background = settings.background_color
    if algorithm == "onoff":
        return partial(onoff_tracer, world, background=background)
    if algorithm == "flat":
        return partial(flat_tracer, world, background=background)
    if algorithm == "pathtracer":
        return partial(
            path_tracer,
            world,
            background=background,
            n_rays=settings.n_rays,
            max_depth=settings.max_depth,
            russian_roulette_limit=settings.russian_roulette_limit,
        )
    raise ValueError(f"unknown algorithm '{algorithm}'")


def frame_path(output: Path, frame: int) -> Path:
    """Output file for an animation frame: render.png -> render_0003.png"""
    return output.with_name(f"{output.stem}_{frame:04d}{output.suffix}")


def _progress_bar(label: str) -> Callable[[float], None]:
    last_progress = [-1]

    def progress_callback(progress: float):
        pct = int(progress * 100)
        if pct > last_progress[0]:
            last_progress[0] = pct
            bar_len = 40
            filled = int(bar_len * progress)
            bar = '█' * filled + '░' * (bar_len - filled)
            print(f'\r{label}: [{bar}] {pct}%', end='', flush=True)

    return progress_callback


def _check_output(path: Path) -> None:
    suffix = path.suffix.lower()
    if suffix not in OUTPUT_FORMATS:
        raise ConfigurationError(
            f"unsupported output format '{suffix}', expected one of {', '.join(OUTPUT_FORMATS)}"
        )


def save_outputs(image: HdrImage, output: Path, settings: RenderSettings) -> None:
    """Write the raw PFM next to `output`, then the tone-mapped LDR image."""
    pfm_path = output.with_suffix(".pfm")
    write_pfm(image, pfm_path)
    save_ldr_image(image, output, LogAverageToneMapper(factor=settings.factor, gamma=settings.gamma))
    print(f"\nSaved {output} (raw data in {pfm_path})")


def run_render(args: argparse.Namespace) -> int:
    settings = RenderSettings(
        width=args.width,
        height=args.height,
        samples_per_pixel=args.samples_per_pixel,
        num_threads=args.threads,
        seed=args.seed,
        n_rays=getattr(args, "n_rays", 10),
        max_depth=getattr(args, "max_depth", 2),
        russian_roulette_limit=getattr(args, "russian_roulette_limit", 3),
        gamma=args.gamma,
        factor=args.factor,
    )
    output = Path(args.output)
    _check_output(output)

    variables = {ASPECT_RATIO_VARIABLE: settings.aspect_ratio}
    if args.angle is not None:
        variables["angle"] = args.angle

    print("=" * 60)
    print("LumenForge Ray Tracer")
    print("=" * 60)
    print(f"Scene: {args.scene}")
    print(f"Algorithm: {args.command}")
    print(f"  Resolution: {settings.width}x{settings.height}")
    print(f"  Samples: {settings.samples_per_pixel}")
    print(f"  Threads: {settings.num_threads}")
    if args.command == "pathtracer":
        print(f"  Rays: {settings.n_rays}, max depth: {settings.max_depth}, "
              f"russian roulette from depth {settings.russian_roulette_limit}")

    scene = load_scene(args.scene, variables)
    print(f"  Objects in scene: {len(scene.world)}")
    func = make_ray_function(args.command, scene.world, settings)
    output.parent.mkdir(parents=True, exist_ok=True)

    start_time = time.time()
    if args.animate:
        bars = {}

        def frame_progress(frame: int, fraction: float):
            if frame not in bars:
                bars[frame] = _progress_bar(f"Frame {frame}")
            bars[frame](fraction)

        for frame, image in render_animation(scene, settings, func, progress=frame_progress):
            save_outputs(image, frame_path(output, frame), settings)
    else:
        image = render_scene(scene, settings, func, progress=_progress_bar("Rendering"))
        save_outputs(image, output, settings)

    elapsed = time.time() - start_time
    print(f"Render completed in {elapsed:.2f} seconds")
    return 0


def run_tonemap(args: argparse.Namespace) -> int:
    input_path = Path(args.input)
    if input_path.suffix.lower() != ".pfm":
        raise ConfigurationError(f"tonemap reads PFM images, got '{input_path}'")
    output = Path(args.output)
    _check_output(output)

    image = load_image(input_path)
    tone_mapper = LogAverageToneMapper(
        factor=args.factor,
        gamma=args.gamma,
        mean_type=args.luminosity,
        weights=args.weights,
    )
    logger.debug("Tone mapping %s with %s", input_path, tone_mapper.get_parameters())
    output.parent.mkdir(parents=True, exist_ok=True)
    save_ldr_image(image, output, tone_mapper)
    print(f"Saved {output}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='lumenforge',
        description='LumenForge - a path tracer for a small scene description language',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog='''
Examples:
  lumenforge onoff scenes/demo.txt 320 240 --output onoff.png
  lumenforge pathtracer scenes/demo.txt 640 480 --samples-per-pixel 4 --n-rays 10
  lumenforge pathtracer scenes/demo.txt 320 240 --animate --output frames/demo.png
  lumenforge tonemap render.pfm render.png --factor 0.3 --gamma 2.2
        '''
    )

    verbosity = argparse.ArgumentParser(add_help=False)
    verbosity.add_argument('--verbose', action='store_true', help='Enable debug logging')

    tone = argparse.ArgumentParser(add_help=False)
    tone.add_argument('--factor', type=float, default=0.2,
                      help='Average luminosity after normalisation (default: 0.2)')
    tone.add_argument('--gamma', type=float, default=1.0, help='Display gamma (default: 1.0)')

    common = argparse.ArgumentParser(add_help=False, parents=[verbosity, tone])
    common.add_argument('scene', help='Scene description file')
    common.add_argument('width', type=int, help='Image width in pixels')
    common.add_argument('height', type=int, help='Image height in pixels')
    common.add_argument('--output', type=str, default='output/render.png',
                        help='Output image (.png/.jpg/.jpeg/.tif/.tiff/.bmp); a .pfm is written beside it')
    common.add_argument('--angle', type=float, default=None,
                        help="Value of the 'angle' scene variable, in degrees")
    common.add_argument('--samples-per-pixel', type=int, default=1,
                        help='Samples per pixel, a perfect square (default: 1)')
    common.add_argument('--threads', type=int, default=0, help='Number of threads (0=auto)')
    common.add_argument('--seed', type=int, default=42, help='Random seed (default: 42)')
    common.add_argument('--animate', action='store_true',
                        help="Render one frame per step of the scene's motion")

    subparsers = parser.add_subparsers(dest='command', required=True)
    subparsers.add_parser('onoff', parents=[common], help='White where something is hit')
    subparsers.add_parser('flat', parents=[common], help='Surface colour without lighting')
    pathtracer = subparsers.add_parser('pathtracer', parents=[common], help='Monte-Carlo path tracing')
    pathtracer.add_argument('--n-rays', type=int, default=10,
                            help='Rays scattered at each diffuse hit (default: 10)')
    pathtracer.add_argument('--max-depth', type=int, default=2, help='Maximum bounce depth (default: 2)')
    pathtracer.add_argument('--russian-roulette-limit', type=int, default=3,
                            help='Depth at which russian roulette starts (default: 3)')
    for name in ALGORITHMS:
        subparsers.choices[name].set_defaults(handler=run_render)

    tonemap = subparsers.add_parser('tonemap', parents=[verbosity, tone], help='Convert a PFM image')
    tonemap.add_argument('input', help='Input PFM image')
    tonemap.add_argument('output', help='Output image (.png/.jpg/.jpeg/.tif/.tiff/.bmp)')
    tonemap.add_argument('--luminosity', choices=LUMINOSITY_MODES, default='max_min',
                         help='How pixel luminosity is measured (default: max_min)')
    tonemap.add_argument('--weights', type=float, nargs=3, default=None, metavar=('R', 'G', 'B'),
                         help="Channel weights for --luminosity weighted")
    tonemap.set_defaults(handler=run_tonemap)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )

    try:
        return args.handler(args)
    except LumenForgeError as exc:
        print(f"{type(exc).__name__}: {exc}", file=sys.stderr)
        return 1

"""
Renderer module - drives a rendering algorithm over the image raster.

Implements:
- Mapping of pixels to camera rays
- Stratified supersampling (k x k samples per pixel)
- Multi-threaded tile-based rendering, reproducible for a given seed
- Animation rendering driven by the scene's Motion
"""

from __future__ import annotations
import logging
import math
import os
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Iterator, Optional, Tuple, TYPE_CHECKING

from .camera import Camera
from .errors import ConfigurationError
from .hdrimage import HdrImage
from .pcg import PCG
from .ray import Ray
from .vec3 import Color, BLACK

if TYPE_CHECKING:
    from .scene_parser import Scene

logger = logging.getLogger(__name__)

# A rendering algorithm bound to its world: (ray, pcg) -> radiance
RayFunction = Callable[[Ray, PCG], Color]
Tile = Tuple[int, int, int, int]


@dataclass
class RenderSettings:
    """Configuration for the renderer."""
    width: int = 640
    height: int = 480
    samples_per_pixel: int = 1
    tile_size: int = 32
    num_threads: int = 0  # 0 = auto-detect
    seed: int = 42
    background_color: Color = None
    n_rays: int = 10
    max_depth: int = 2
    russian_roulette_limit: int = 3
    gamma: float = 1.0
    factor: float = 0.2

    def __post_init__(self):
        if self.width <= 0 or self.height <= 0:
            raise ConfigurationError(f"image size must be positive, got {self.width}x{self.height}")
        if self.samples_per_pixel <= 0 or math.isqrt(self.samples_per_pixel) ** 2 != self.samples_per_pixel:
            raise ConfigurationError(
                f"samples per pixel must be a perfect square, got {self.samples_per_pixel}"
            )
        if self.tile_size <= 0:
            raise ConfigurationError(f"tile size must be positive, got {self.tile_size}")
        if self.n_rays <= 0:
            raise ConfigurationError(f"number of rays must be positive, got {self.n_rays}")
        if self.max_depth < 0 or self.russian_roulette_limit < 0:
            raise ConfigurationError("depth limits cannot be negative")
        if self.background_color is None:
            self.background_color = BLACK
        if self.num_threads == 0:
            self.num_threads = os.cpu_count() or 4

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height


class ImageTracer:
    """Fires camera rays through every pixel of an image.

    Screen coordinates: pixel (0, 0) is the top-left corner of the image;
    within a pixel, (u_pixel, v_pixel) = (0, 0) is its top-left corner and
    (1, 1) its bottom-right corner.
    """

    def __init__(self, image: HdrImage, camera: Camera, settings: Optional[RenderSettings] = None):
        """Create an image tracer.

        Args:
            image: The raster to fill
            camera: The camera generating the rays
            settings: Sampling, seed and threading options (defaults if None)
        """
        self.image = image
        self.camera = camera
        self.settings = settings if settings else RenderSettings(width=image.width, height=image.height)
        self._progress_callback: Optional[Callable[[float], None]] = None

    def set_progress_callback(self, callback: Callable[[float], None]) -> None:
        """Set a callback function for progress updates.

        Args:
            callback: Function that takes progress as float (0.0 to 1.0)
        """
        self._progress_callback = callback

    def fire_ray(self, col: int, row: int, u_pixel: float = 0.5, v_pixel: float = 0.5) -> Ray:
        """Return the camera ray through a point of pixel (col, row)."""
        u = 2.0 * (col + u_pixel) / self.image.width - 1.0
        v = 1.0 - 2.0 * (row + v_pixel) / self.image.height
        return self.camera.fire_ray(u, v)

    def fire_all_rays(self, func: RayFunction) -> HdrImage:
        """Evaluate `func` for every pixel and store the mean radiance.

        Every tile owns a PCG seeded with (settings.seed, tile index), so the
        result does not depend on the number of threads.

        Returns:
            The filled image
        """
        tiles = self._generate_tiles(self.image.width, self.image.height)
        total_tiles = len(tiles)
        completed_tiles = [0]  # Use list for mutable in closure
        lock = threading.Lock()
        logger.debug("Rendering %d tiles on %d threads", total_tiles, self.settings.num_threads)

        def render_tile(indexed_tile: Tuple[int, Tile]) -> None:
            index, tile = indexed_tile
            self._render_tile(index, tile, func)

            with lock:
                completed_tiles[0] += 1
                if self._progress_callback:
                    self._progress_callback(completed_tiles[0] / total_tiles)

        if self.settings.num_threads > 1:
            with ThreadPoolExecutor(max_workers=self.settings.num_threads) as executor:
                # Consume the iterator so that worker exceptions propagate
                list(executor.map(render_tile, enumerate(tiles)))
        else:
            for indexed_tile in enumerate(tiles):
                render_tile(indexed_tile)

        return self.image

    def _render_tile(self, index: int, tile: Tile, func: RayFunction) -> None:
        """Render a single tile into the image."""
        x0, y0, x1, y1 = tile
        pcg = PCG(init_state=self.settings.seed, init_seq=index)
        strata = math.isqrt(self.settings.samples_per_pixel)

        for row in range(y0, y1):
            for col in range(x0, x1):
                if strata == 1:
                    color = func(self.fire_ray(col, row), pcg)
                else:
                    color = BLACK
                    for i in range(strata):
                        for j in range(strata):
                            u_pixel = (j + pcg.random_float()) / strata
                            v_pixel = (i + pcg.random_float()) / strata
                            color = color + func(self.fire_ray(col, row, u_pixel, v_pixel), pcg)
                    color = color * (1.0 / (strata * strata))
                self.image.set_pixel(col, row, color)

    def _generate_tiles(self, width: int, height: int) -> list[Tile]:
        """Generate tiles for parallel rendering.

        Args:
            width: Image width
            height: Image height

        Returns:
            List of tiles as (x0, y0, x1, y1) tuples
        """
        tile_size = self.settings.tile_size
        tiles = []

        for y in range(0, height, tile_size):
            for x in range(0, width, tile_size):
                x1 = min(x + tile_size, width)
                y1 = min(y + tile_size, height)
                tiles.append((x, y, x1, y1))

        return tiles


def render_scene(
    scene: Scene,
    settings: RenderSettings,
    func: RayFunction,
    progress: Optional[Callable[[float], None]] = None,
    camera: Optional[Camera] = None,
) -> HdrImage:
    """Render one frame of a scene.

    Args:
        scene: Parsed scene (its camera is used unless `camera` is given)
        settings: Image size and sampling options
        func: Rendering algorithm bound to the scene's world
        progress: Optional progress callback

    Returns:
        The rendered HDR image
    """
    if camera is None:
        if scene.camera is None:
            raise ConfigurationError("the scene has no camera")
        camera = scene.camera

    image = HdrImage(settings.width, settings.height)
    tracer = ImageTracer(image, camera, settings)
    if progress is not None:
        tracer.set_progress_callback(progress)
    return tracer.fire_all_rays(func)


def render_animation(
    scene: Scene,
    settings: RenderSettings,
    func: RayFunction,
    progress: Optional[Callable[[int, float], None]] = None,
) -> Iterator[Tuple[int, HdrImage]]:
    """Render every frame of the scene's camera motion.

    Raises:
        ConfigurationError: if the scene has no camera or no motion

    Returns:
        An iterator of (frame index, image) pairs
    """
    if scene.camera is None:
        raise ConfigurationError("the scene has no camera")
    if scene.motion is None:
        raise ConfigurationError("animation requested but the scene has no 'motion' statement")

    motion = scene.motion
    logger.info("Rendering %d animation frames", motion.frames)

    def frames() -> Iterator[Tuple[int, HdrImage]]:
        for frame, camera in enumerate(motion.cameras(scene.camera)):
            frame_progress = None
            if progress is not None:
                frame_progress = lambda fraction, frame=frame: progress(frame, fraction)
            yield frame, render_scene(scene, settings, func, frame_progress, camera=camera)

    return frames()

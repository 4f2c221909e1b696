"""
Tone mapping operators for HDR to LDR conversion.

The pipeline follows three steps:
1. Measure the average (logarithmic) luminosity of the image
2. Normalise every pixel so that this average becomes `factor`
3. Compress the highlights with x / (1 + x), then gamma correct

The functions work on numpy arrays of shape (H, W, 3) so they can be
applied to `HdrImage.pixels` directly.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Sequence, Union

import numpy as np
from PIL import Image

from .errors import ConfigurationError
from .hdrimage import HdrImage

LUMINOSITY_MODES = ("max_min", "arithmetic", "weighted", "distance")

OUTPUT_FORMATS = {
    '.png': 'PNG',
    '.jpg': 'JPEG',
    '.jpeg': 'JPEG',
    '.tif': 'TIFF',
    '.tiff': 'TIFF',
    '.bmp': 'BMP',
}


def luminosity(
    rgb: np.ndarray,
    mean_type: str = "max_min",
    weights: Optional[Sequence[float]] = None,
) -> np.ndarray:
    """Per-pixel luminosity of an (..., 3) array.

    Args:
        rgb: Colours, last axis is R, G, B
        mean_type: One of
            "max_min" (average of the largest and smallest channel),
            "arithmetic" (mean of the channels),
            "weighted" (weighted mean using `weights`),
            "distance" (Euclidean norm)
        weights: Three channel weights, only for "weighted"

    Returns:
        Array with the last axis reduced
    """
    if mean_type == "max_min":
        return (rgb.max(axis=-1) + rgb.min(axis=-1)) / 2.0
    if mean_type == "arithmetic":
        return rgb.mean(axis=-1)
    if mean_type == "weighted":
        if weights is None or len(weights) != 3:
            raise ConfigurationError("weighted luminosity needs exactly three weights")
        w = np.asarray(weights, dtype=np.float64)
        return (rgb @ w) / w.sum()
    if mean_type == "distance":
        return np.sqrt((rgb * rgb).sum(axis=-1))
    raise ConfigurationError(
        f"unknown luminosity mode '{mean_type}', expected one of {', '.join(LUMINOSITY_MODES)}"
    )


def log_average(
    pixels: np.ndarray,
    delta: float = 1e-10,
    mean_type: str = "max_min",
    weights: Optional[Sequence[float]] = None,
) -> float:
    """Geometric mean of the pixel luminosities.

    `delta` keeps black pixels from sending the logarithm to -inf.
    """
    lum = luminosity(pixels, mean_type, weights)
    return float(10.0 ** np.mean(np.log10(lum + delta)))


def normalize_image(
    pixels: np.ndarray,
    factor: float = 0.2,
    lum: Optional[float] = None,
    **luminosity_options,
) -> np.ndarray:
    """Scale the image so that its average luminosity becomes `factor`.

    Args:
        pixels: HDR image (H, W, 3)
        factor: Target average luminosity
        lum: Precomputed average luminosity (computed with log_average if None)

    Returns:
        Normalised image (H, W, 3)
    """
    if lum is None:
        lum = log_average(pixels, **luminosity_options)
    return pixels * (factor / lum)


def clamp_image(pixels: np.ndarray) -> np.ndarray:
    """Compress bright spots into [0, 1) with x / (1 + x)."""
    return pixels / (1.0 + pixels)


def apply_gamma(image: np.ndarray, gamma: float = 2.2) -> np.ndarray:
    """Apply gamma correction to an image.

    Args:
        image: Input image (H, W, 3), values in [0, 1]
        gamma: Gamma value (2.2 for sRGB)

    Returns:
        Gamma-corrected image
    """
    return np.power(np.clip(image, 0.0, 1.0), 1.0 / gamma)


class ToneMapper(ABC):
    """Abstract base class for tone mapping operators."""

    @abstractmethod
    def apply(self, hdr_image: np.ndarray) -> np.ndarray:
        """Apply tone mapping to HDR image.

        Args:
            hdr_image: HDR image (H, W, 3), linear float values

        Returns:
            LDR image (H, W, 3), values in [0, 1]
        """
        pass

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable name of the operator."""
        pass

    def get_parameters(self) -> dict:
        """Get operator parameters for result metadata."""
        return {}


class LinearToneMapper(ToneMapper):
    """Simple linear clamping (no tone mapping).

    Only useful for already normalised images or testing.
    """

    @property
    def name(self) -> str:
        return "Linear"

    def apply(self, hdr_image: np.ndarray) -> np.ndarray:
        return np.clip(hdr_image, 0.0, 1.0)


class LogAverageToneMapper(ToneMapper):
    """Normalise to the logarithmic average, compress highlights, gamma correct."""

    def __init__(
        self,
        factor: float = 0.2,
        gamma: float = 1.0,
        mean_type: str = "max_min",
        weights: Optional[Sequence[float]] = None,
        delta: float = 1e-10,
    ):
        """Initialize the tone mapper.

        Args:
            factor: Average luminosity after normalisation
            gamma: Display gamma
            mean_type: Luminosity mode, see `luminosity`
            weights: Channel weights for the "weighted" mode
            delta: Offset used inside the logarithm
        """
        if factor <= 0:
            raise ConfigurationError(f"factor must be positive, got {factor}")
        if gamma <= 0:
            raise ConfigurationError(f"gamma must be positive, got {gamma}")
        self.factor = factor
        self.gamma = gamma
        self.mean_type = mean_type
        self.weights = weights
        self.delta = delta

    @property
    def name(self) -> str:
        return "Log average"

    def get_parameters(self) -> dict:
        return {"factor": self.factor, "gamma": self.gamma,
                "mean_type": self.mean_type, "delta": self.delta}

    def apply(self, hdr_image: np.ndarray) -> np.ndarray:
        normalized = normalize_image(
            hdr_image,
            self.factor,
            delta=self.delta,
            mean_type=self.mean_type,
            weights=self.weights,
        )
        return apply_gamma(clamp_image(normalized), self.gamma)


def to_ldr(ldr_image: np.ndarray) -> np.ndarray:
    """Convert a [0, 1] float image to 8-bit.

    Args:
        ldr_image: Image array with values in [0, 1]

    Returns:
        LDR image as uint8 array
    """
    return np.clip(ldr_image * 255 + 0.5, 0, 255).astype(np.uint8)


def save_ldr_image(
    image: Union[HdrImage, np.ndarray],
    filename: Union[str, Path],
    tone_mapper: Optional[ToneMapper] = None,
) -> None:
    """Tone map an image and save it with Pillow.

    Args:
        image: HDR image (an HdrImage or an (H, W, 3) array)
        filename: Output filename (extension determines format)
        tone_mapper: Operator to use (LogAverageToneMapper() if None)

    Raises:
        ConfigurationError: for an unsupported extension
    """
    suffix = Path(filename).suffix.lower()
    if suffix not in OUTPUT_FORMATS:
        raise ConfigurationError(
            f"unsupported output format '{suffix}', expected one of {', '.join(OUTPUT_FORMATS)}"
        )

    pixels = image.pixels if isinstance(image, HdrImage) else image
    mapper = tone_mapper if tone_mapper is not None else LogAverageToneMapper()
    ldr = to_ldr(mapper.apply(pixels))

    pil_image = Image.fromarray(ldr)
    pil_image.save(filename, format=OUTPUT_FORMATS[suffix])

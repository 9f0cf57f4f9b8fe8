# src/shadowhaptics/statistics.py
from __future__ import annotations
import warnings
from dataclasses import dataclass

import numpy as np

from .errors import DegenerateGeometryWarning
from .heightfield import HeightField
from .logging import get_logger
from .utils import disk_mask

logger = get_logger(__name__)

MAX_STD_DEV = 255.0 / 2.0
LUMA = np.array([0.2126, 0.7152, 0.0722], dtype=np.float64)


@dataclass(frozen=True)
class ImageStatistics:
    roughness_index: float = 0.0
    brightness_index: float = 0.0
    depth_std: float = 0.0
    brightness_mean: float = 0.0
    brightness_median: float = 0.0


def sampling_radius(reference_height: float) -> float:
    """Radius of the sampling disk: 40% of the reference height, as a diameter."""
    return reference_height * 0.4 / 2.0


def compute_statistics(
    image: np.ndarray | None,
    field: HeightField,
    reference_height: float = 1080.0,
) -> ImageStatistics:
    """
    Roughness and brightness indices over a centred disk.

    roughness = std(heights in disk) / 127.5, brightness = mean luminance / 255,
    both clamped to [0, 1]. An empty disk or a missing raster leaves the
    affected index at 0 and emits DegenerateGeometryWarning.
    """
    radius = sampling_radius(reference_height)

    depth_std = 0.0
    if field.is_empty():
        _degenerate("height field is empty")
    else:
        inside = field.values[disk_mask(field.width, field.height, radius)]
        if inside.size == 0:
            _degenerate("no height samples inside the sampling disk")
        else:
            depth_std = float(np.std(inside.astype(np.float64)))
            if depth_std == 0.0:
                _degenerate("height samples inside the disk are flat")
    roughness = float(np.clip(depth_std / MAX_STD_DEV, 0.0, 1.0))

    mean = median = 0.0
    if image is None or image.size == 0:
        _degenerate("no display image to sample brightness from")
    else:
        h, w = image.shape[:2]
        rgb = image[..., :3].astype(np.float64) if image.ndim == 3 else None
        luma = rgb @ LUMA if rgb is not None else image.astype(np.float64)
        inside = luma[disk_mask(w, h, radius)]
        if inside.size == 0:
            _degenerate("no image pixels inside the sampling disk")
        else:
            mean = float(inside.mean())
            median = float(np.median(inside))
    brightness = float(np.clip(mean / 255.0, 0.0, 1.0))

    logger.info(
        f"Roughness index {roughness:.3f} (std {depth_std:.2f}) | "
        f"brightness index {brightness:.3f} (median {median:.1f})"
    )
    return ImageStatistics(
        roughness_index=roughness,
        brightness_index=brightness,
        depth_std=depth_std,
        brightness_mean=mean,
        brightness_median=median,
    )


def _degenerate(reason: str):
    logger.debug(f"Degenerate sampling geometry: {reason}")
    warnings.warn(reason, DegenerateGeometryWarning, stacklevel=3)

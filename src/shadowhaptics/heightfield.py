from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path

import cv2
import numpy as np

from .errors import ImageDecodeError
from .logging import get_logger

logger = get_logger(__name__)


def _to_rgb(raster: np.ndarray) -> np.ndarray:
    # OpenCV hands back BGR / BGRA / single channel; everything downstream is RGB
    if raster.ndim == 2:
        return cv2.cvtColor(raster, cv2.COLOR_GRAY2RGB)
    if raster.shape[2] == 4:
        return cv2.cvtColor(raster, cv2.COLOR_BGRA2RGB)
    return cv2.cvtColor(raster, cv2.COLOR_BGR2RGB)


def load_image(path: str | Path) -> np.ndarray:
    """Read an image file as an (H, W, 3) RGB array; see `decode_image`."""
    try:
        data = Path(path).read_bytes()
    except OSError as e:
        raise ImageDecodeError(f"Cannot read image {path}: {e}") from e
    try:
        return decode_image(data)
    except ImageDecodeError as e:
        raise ImageDecodeError(f"Cannot decode image: {path}") from e


def decode_image(data: bytes) -> np.ndarray:
    """
    Decode encoded image bytes (PNG, JPEG, ...) into an 8-bit RGB array.

    Deeper rasters (16-bit depth maps) are rescaled to 0..255.
    """
    buf = np.frombuffer(data, dtype=np.uint8)
    raster = cv2.imdecode(buf, cv2.IMREAD_UNCHANGED) if buf.size else None
    if raster is None or raster.size == 0:
        raise ImageDecodeError("Cannot decode image bytes")
    if raster.dtype != np.uint8:
        raster = cv2.convertScaleAbs(raster, alpha=255.0 / max(1.0, float(raster.max())))
    return _to_rgb(raster)


@dataclass(frozen=True)
class HeightField:
    """
    Per-pixel heights in [0, 255], indexed as ``values[y, x]``.

    The grid has the pixel size of the image it was built from. The backing
    array is marked read-only.
    """

    values: np.ndarray

    @property
    def width(self) -> int:
        return int(self.values.shape[1]) if self.values.ndim == 2 else 0

    @property
    def height(self) -> int:
        return int(self.values.shape[0]) if self.values.ndim == 2 else 0

    @property
    def shape(self) -> tuple[int, int]:
        return self.height, self.width

    def is_empty(self) -> bool:
        return self.values.size == 0

    def contains(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def sample(self, x: int, y: int) -> int | None:
        """Height at cell (x, y), or None outside the grid."""
        if not self.contains(x, y):
            return None
        return int(self.values[y, x])

    @classmethod
    def empty(cls) -> HeightField:
        return cls(np.zeros((0, 0), dtype=np.int32))


def build_height_field(image: np.ndarray) -> HeightField:
    """
    Min-max normalise the per-pixel RGB mean of `image` into [0, 255].

    A flat image (max == min) yields an all-zero field.
    """
    if image is None or image.size == 0:
        raise ImageDecodeError("Empty raster")
    if image.ndim == 2:
        raw = image.astype(np.float64)
    else:
        raw = image[..., :3].astype(np.float64).mean(axis=2)

    lo = float(raw.min())
    hi = float(raw.max())
    if hi == lo:
        values = np.zeros(raw.shape, dtype=np.int32)
    else:
        scaled = np.floor((raw - lo) / (hi - lo) * 255.0 + 0.5)
        values = np.clip(scaled, 0, 255).astype(np.int32)

    values.flags.writeable = False
    logger.info(f"Height field ready: {values.shape[1]}x{values.shape[0]}")
    return HeightField(values)

from __future__ import annotations
import csv
import os
from enum import Enum

import numpy as np

from .logging import get_logger

logger = get_logger(__name__)

TAPER_LENGTH = 400


class CursorShape(str, Enum):
    PEN_SHAPE = "penShape"
    CURSOR = "cursor"

    @property
    def label(self) -> str:
        return "Pen Shape" if self is CursorShape.PEN_SHAPE else "Cursor"

    @property
    def fixed(self) -> bool:
        """Cursor mode ignores tilt: fixed direction, length and opacity."""
        return self is CursorShape.CURSOR

    def next(self) -> CursorShape:
        members = list(CursorShape)
        return members[(members.index(self) + 1) % len(members)]


def synthetic_profile(length: int = TAPER_LENGTH) -> np.ndarray:
    """Linear taper: width = max(0, 30 - 0.1 * index)."""
    return np.maximum(0.0, 30.0 - 0.1 * np.arange(length, dtype=np.float64))


def load_shape_profile(shape: CursorShape | str, directory: str | os.PathLike) -> np.ndarray:
    """
    Width profile for `shape` from ``<directory>/<shape>.csv``.

    The first row is a header; the width is the second column of each row.
    A missing file falls back to the synthetic taper; an unreadable one
    gives an empty profile.
    """
    name = CursorShape(shape).value
    path = os.path.join(directory, f"{name}.csv")
    if not os.path.exists(path):
        logger.info(f"No shape profile at {path}; using synthetic taper")
        return synthetic_profile()

    widths = []
    try:
        with open(path, mode="r", encoding="utf-8-sig", newline="") as f:
            reader = csv.reader(f)
            next(reader, None)
            for row in reader:
                if len(row) < 2:
                    continue
                try:
                    widths.append(float(row[1]))
                except ValueError:
                    continue
    except OSError as e:
        logger.warning(f"Could not read shape profile {path}: {e}")
        return np.zeros(0, dtype=np.float64)

    logger.info(f"Loaded shape profile '{name}' ({len(widths)} entries)")
    return np.asarray(widths, dtype=np.float64)

# src/shadowhaptics/calibration.py
from __future__ import annotations
import csv
import math
import os
from dataclasses import dataclass
from typing import Iterable, Sequence

from .errors import SingularMatrixError
from .logging import get_logger
from .regression import RegressionModel

logger = get_logger(__name__)

HISTORY_HEADER = (
    "Date",
    "Image1",
    "Image2",
    "Transparency",
    "DeltaPixel",
    "CDThreshold",
    "RoughnessIndex",
    "BrightnessIndex",
)
MIN_ROWS = 3


@dataclass(frozen=True)
class HistoryRow:
    transparency: float
    delta_pixel: float
    cd_threshold: float
    roughness_index: float
    brightness_index: float


@dataclass(frozen=True)
class CalibrationModels:
    """Fitted models; a None entry leaves that parameter at its default."""

    delta_pixel: RegressionModel | None = None
    cd_threshold: RegressionModel | None = None
    transparency: RegressionModel | None = None

    def is_empty(self) -> bool:
        return (
            self.delta_pixel is None
            and self.cd_threshold is None
            and self.transparency is None
        )


def parse_history_row(fields: Sequence[str]) -> HistoryRow | None:
    """Columns 3..7 of a log line, or None when any of them is missing or not a finite number."""
    if len(fields) < len(HISTORY_HEADER):
        return None
    try:
        transp, delta, cd, rough, bright = (float(f) for f in fields[3:8])
    except ValueError:
        return None
    if not all(math.isfinite(v) for v in (transp, delta, cd, rough, bright)):
        return None
    return HistoryRow(transp, delta, cd, rough, bright)


def read_history(path: str | os.PathLike) -> list[HistoryRow]:
    """Read the haptics log. A missing file is an empty history."""
    if not os.path.exists(path):
        logger.warning(f"History log not found: {path}")
        return []

    rows = []
    skipped = 0
    with open(path, mode="r", encoding="utf-8-sig", newline="") as f:
        reader = csv.reader(f)
        next(reader, None)  # header
        for fields in reader:
            if not fields:
                continue
            row = parse_history_row(fields)
            if row is None:
                skipped += 1
                continue
            rows.append(row)
    logger.info(f"Read {len(rows)} history rows from {path} ({skipped} skipped)")
    return rows


class Calibrator:
    """
    Fits the three parameter models from logged sessions:
    delta pixel and CD threshold against the roughness index, transparency
    against the brightness index.
    """

    def __init__(self, rows: Iterable[HistoryRow]):
        self.rows = list(rows)

    def _fit(self, name: str, xs: list[float], ys: list[float]) -> RegressionModel | None:
        if len(xs) < MIN_ROWS:
            logger.warning(f"{name}: {len(xs)} rows, need {MIN_ROWS}; keeping default")
            return None
        try:
            model = RegressionModel.fit(xs, ys)
        except SingularMatrixError as e:
            logger.warning(f"{name}: fit failed ({e}); keeping default")
            return None
        logger.info(f"{name}: y = {model.a:.4f}x^2 + {model.b:.4f}x + {model.c:.4f}")
        return model

    def calibrate(self) -> CalibrationModels:
        rough = [r.roughness_index for r in self.rows]
        bright = [r.brightness_index for r in self.rows]
        return CalibrationModels(
            delta_pixel=self._fit(
                "delta_pixel", rough, [r.delta_pixel for r in self.rows]
            ),
            cd_threshold=self._fit(
                "cd_threshold", rough, [r.cd_threshold for r in self.rows]
            ),
            transparency=self._fit(
                "transparency", bright, [r.transparency for r in self.rows]
            ),
        )


def calibrate(rows: Iterable[HistoryRow]) -> CalibrationModels:
    return Calibrator(rows).calibrate()


_calibration: CalibrationModels | None = None


def get_calibration(path: str | os.PathLike) -> CalibrationModels:
    """Build the models from `path` on first use and reuse them afterwards."""
    global _calibration
    if _calibration is None:
        _calibration = calibrate(read_history(path))
    return _calibration


def reset_calibration():
    global _calibration
    _calibration = None

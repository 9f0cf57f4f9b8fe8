# src/shadowhaptics/renderer.py
from __future__ import annotations
import math
from dataclasses import dataclass

import cv2
import numpy as np

from .binder import RenderParams
from .heightfield import HeightField
from .profiler import get_profiler
from .shapes import CursorShape
from .smoothing import SmoothedSignals

Point = tuple[float, float]

OPACITY_LEVELS = 10
MIN_OPACITY = 0.01
# tilt below BASE_ANGLE / 2 hides the shadow, above BASE_ANGLE it is fully shown
BASE_ANGLE = math.pi / 9.0
SHEAR_OFFSET = math.pi / 7.0
LENGTH_FADE = 0.5
WIDTH_FADE = 0.6
CURSOR_THETA = math.pi / 3.0
CURSOR_LENGTH = 100.0
SHADOW_LENGTH = 200.0


@dataclass(frozen=True, eq=False)
class OpacityBatch:
    """Cells drawn with one fill at opacity ``level / 10``."""

    level: int
    rects: np.ndarray  # (N, 4): x, y, w, h in the pen frame

    @property
    def opacity(self) -> float:
        return self.level / OPACITY_LEVELS


@dataclass(frozen=True, eq=False)
class ShadowFrame:
    """
    Draw commands for one frame.

    Rects live in the pen frame: translate by `origin`, then rotate by
    `rotation`, to reach screen space. Batches are ordered from lowest to
    highest opacity, the order they are composited in.
    """

    origin: Point = (0.0, 0.0)
    rotation: float = 0.0
    batches: tuple[OpacityBatch, ...] = ()

    def is_empty(self) -> bool:
        return not self.batches

    @property
    def cell_count(self) -> int:
        return sum(len(b.rects) for b in self.batches)

    def commands(self) -> list[tuple[tuple[float, float, float, float], int]]:
        return [
            (tuple(float(v) for v in rect), b.level)
            for b in self.batches
            for rect in b.rects
        ]

    def screen_polygons(self, batch: OpacityBatch) -> np.ndarray:
        """(N, 4, 2) screen-space corners of the batch's cells."""
        r = batch.rects
        x0, y0 = r[:, 0], r[:, 1]
        x1, y1 = x0 + r[:, 2], y0 + r[:, 3]
        corners = np.stack(
            [
                np.stack([x0, y0], axis=1),
                np.stack([x1, y0], axis=1),
                np.stack([x1, y1], axis=1),
                np.stack([x0, y1], axis=1),
            ],
            axis=1,
        )
        c, s = math.cos(self.rotation), math.sin(self.rotation)
        rot = np.array([[c, s], [-s, c]], dtype=np.float64)
        return corners @ rot + np.asarray(self.origin, dtype=np.float64)


def angle_opacity(angle: float, transparency: float) -> float:
    """Gate that suppresses the shadow while the stylus is held upright."""
    if BASE_ANGLE / 2.0 < angle < BASE_ANGLE:
        return transparency * (2.0 * angle - BASE_ANGLE) / BASE_ANGLE
    if angle < BASE_ANGLE:
        return 0.0
    return transparency


class ShadowRenderer:
    """
    Rasterises the pen silhouette as a grid of cells around the anchor.

    Each cell is pushed along a fixed direction by the height difference
    between the terrain under the cell and under the pen, then faded along
    the length, across the width and by tilt. Cells are bucketed into ten
    opacity levels so a frame costs at most ten fills.
    """

    def __init__(self, cell_size: float = 2.0):
        self.cell_size = cell_size
        self.profiler = get_profiler()

    def render(
        self,
        anchor: Point,
        signals: SmoothedSignals,
        field: HeightField | None,
        profile: np.ndarray | None,
        params: RenderParams,
        shape: CursorShape = CursorShape.PEN_SHAPE,
    ) -> ShadowFrame:
        if field is None or field.is_empty() or profile is None or len(profile) == 0:
            return ShadowFrame(origin=anchor)

        with self.profiler.record("shadow_render"):
            return self._render(anchor, signals, field, profile, params, shape)

    def _render(self, anchor, signals, field, profile, params, shape) -> ShadowFrame:
        cell = self.cell_size
        transparency = params.transparency
        fixed = CursorShape(shape).fixed

        if fixed:
            theta = CURSOR_THETA
            length = CURSOR_LENGTH
            x_step = 1.0
            gate = transparency
        else:
            theta = signals.theta
            x_step = max(1.0, (1.0 - signals.angle) * 2.0)
            length = SHADOW_LENGTH / x_step
            gate = angle_opacity(signals.angle, transparency)

        ax, ay = float(anchor[0]), float(anchor[1])
        frame_origin = (ax, ay)
        bx, by = int(ax), int(ay)
        if gate < MIN_OPACITY or not field.contains(bx, by):
            return ShadowFrame(origin=frame_origin, rotation=theta)

        heights = field.values
        base_height = int(heights[by, bx])
        cos_t, sin_t = math.cos(theta), math.sin(theta)
        shear_cos = math.cos(-theta - SHEAR_OFFSET)
        shear_sin = math.sin(-theta - SHEAR_OFFSET)
        move_scale = params.move_scale
        fade_x = length * LENGTH_FADE

        buckets: dict[int, list[np.ndarray]] = {}
        for x in np.arange(0.0, length, cell):
            x = float(x)
            op_x = transparency
            if not fixed and x >= fade_x:
                op_x = (x - length) * transparency / (fade_x - length)

            index = int(math.floor(x * x_step + 0.5))
            if index >= len(profile):
                continue
            half = float(profile[index]) / 2.0
            ys = np.arange(-half, half, cell)
            if ys.size == 0:
                continue

            sx = np.trunc(ax + x * cos_t - ys * sin_t).astype(np.int64)
            sy = np.trunc(ay + x * sin_t + ys * cos_t).astype(np.int64)
            inside = (sx >= 0) & (sx < field.width) & (sy >= 0) & (sy < field.height)

            op_y = np.full(ys.shape, transparency)
            if not fixed:
                fade_y = WIDTH_FADE * half
                edge = np.abs(ys) >= fade_y
                op_y[edge] = (np.abs(ys[edge]) - half) * transparency / (fade_y - half)

            opacity = np.minimum(np.minimum(op_x, op_y), gate)
            keep = inside & (opacity >= MIN_OPACITY)
            if not keep.any():
                continue

            ys_k = ys[keep]
            diff = (heights[sy[keep], sx[keep]] - base_height).astype(np.float64)
            shadow_x = x + move_scale * diff * shear_cos
            shadow_y = ys_k + move_scale * diff * shear_sin
            levels = np.clip(
                np.floor(opacity[keep] * OPACITY_LEVELS), 0, OPACITY_LEVELS
            ).astype(np.int64)

            rects = np.column_stack(
                [shadow_x, shadow_y, np.full(ys_k.shape, cell), np.full(ys_k.shape, cell)]
            )
            for level in np.unique(levels):
                if level < 1:
                    continue
                buckets.setdefault(int(level), []).append(rects[levels == level])

        batches = tuple(
            OpacityBatch(level=level, rects=np.concatenate(buckets[level]))
            for level in sorted(buckets)
        )
        return ShadowFrame(origin=frame_origin, rotation=theta, batches=batches)

    def rasterize(self, frame: ShadowFrame, size: tuple[int, int]) -> np.ndarray:
        """
        Composite `frame` into a float32 (h, w) alpha plane.

        Batches are filled back-to-front, lowest opacity first.
        """
        h, w = size
        alpha = np.zeros((h, w), dtype=np.float32)
        if frame.is_empty():
            return alpha

        shift = 4
        scale = float(1 << shift)
        with self.profiler.record("shadow_raster"):
            for batch in frame.batches:
                polys = np.round(frame.screen_polygons(batch) * scale).astype(np.int32)
                mask = np.zeros((h, w), dtype=np.uint8)
                cv2.fillPoly(mask, list(polys), 1, lineType=cv2.LINE_8, shift=shift)
                a = np.float32(batch.opacity)
                hit = mask.astype(bool)
                alpha[hit] = alpha[hit] + a * (1.0 - alpha[hit])
        return alpha


def render_frame(
    anchor: Point,
    signals: SmoothedSignals,
    field: HeightField | None,
    profile: np.ndarray | None,
    params: RenderParams,
    shape: CursorShape = CursorShape.PEN_SHAPE,
    cell_size: float = 2.0,
) -> ShadowFrame:
    return ShadowRenderer(cell_size).render(anchor, signals, field, profile, params, shape)

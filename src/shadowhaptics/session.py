# src/shadowhaptics/session.py
from __future__ import annotations
from concurrent import futures
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path

import numpy as np

from .binder import ParameterBinder, RenderParams
from .calibration import CalibrationModels, get_calibration
from .config import AppConfig
from .dynamics import ShadowDynamics, ShadowState
from .heightfield import HeightField, build_height_field, load_image
from .logging import get_logger
from .renderer import ShadowFrame, ShadowRenderer
from .shapes import CursorShape, load_shape_profile
from .statistics import ImageStatistics, compute_statistics

Point = tuple[float, float]


@dataclass(frozen=True)
class LoadedImages:
    """Result of the background load, published to the session in one step."""

    display: np.ndarray
    height_image: np.ndarray
    field: HeightField
    stats: ImageStatistics
    models: CalibrationModels


def prepare_images(
    display: np.ndarray,
    height_image: np.ndarray,
    reference_height: float,
    models: CalibrationModels | None = None,
    history_log: str | None = None,
) -> LoadedImages:
    """Build the height field, statistics and calibration off the owning thread."""
    if display.shape[:2] != height_image.shape[:2]:
        raise ValueError(
            f"Display image {display.shape[1]}x{display.shape[0]} and height image "
            f"{height_image.shape[1]}x{height_image.shape[0]} differ in size"
        )
    field = build_height_field(height_image)
    stats = compute_statistics(display, field, reference_height)
    if models is None:
        models = get_calibration(history_log) if history_log else CalibrationModels()
    return LoadedImages(display, height_image, field, stats, models)


def _prepare_from_paths(display_path, height_path, reference_height, models, history_log):
    return prepare_images(
        load_image(display_path),
        load_image(height_path),
        reference_height,
        models,
        history_log,
    )


class Session:
    """
    Everything one operator session mutates: render parameters, smoothed
    signals, the shadow state machine and the loaded images.

    Images load on a worker thread. Until `poll` publishes the result the
    session has no height field and renders nothing; pointer events, smoothing
    and rendering all run on the thread that calls `poll`.
    """

    def __init__(
        self,
        cfg: AppConfig | None = None,
        models: CalibrationModels | None = None,
        executor: ThreadPoolExecutor | None = None,
    ):
        self.cfg = cfg or AppConfig()
        self.logger = get_logger(__name__)
        self.models = models
        self._executor = executor
        self._owns_executor = executor is None
        self._pending: Future | None = None

        self.params = RenderParams.from_config(self.cfg)
        self.dynamics = ShadowDynamics(self.cfg)
        self.renderer = ShadowRenderer(self.cfg.cell_size)
        self.image_blend = self.cfg.image_blend
        self.images: LoadedImages | None = None
        self.raw_position: Point | None = None
        self.tilt: Point = (0.0, 0.0)

        self.cursor_shape = CursorShape(self.cfg.cursor_shape)
        self.profile = load_shape_profile(self.cursor_shape, self.cfg.shape_dir)

    # --- loading ---

    def _submit(self, fn, *args) -> Future:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=1)
        if self._pending is not None:
            # a load still queued behind the running one never starts
            self._pending.cancel()
        self.images = None
        self.dynamics.reset()
        self._pending = self._executor.submit(fn, *args)
        return self._pending

    def load(self, display_path: str | Path, height_path: str | Path) -> Future:
        """Start decoding both images; a new load discards the current field."""
        self.logger.info(f"Loading {display_path} with height map {height_path}")
        return self._submit(
            _prepare_from_paths,
            display_path,
            height_path,
            self.cfg.height,
            self.models,
            self.cfg.history_log,
        )

    def load_arrays(self, display: np.ndarray, height_image: np.ndarray) -> Future:
        return self._submit(
            prepare_images,
            display,
            height_image,
            self.cfg.height,
            self.models,
            self.cfg.history_log,
        )

    def poll(self) -> bool:
        """
        Publish a finished background load, binding render parameters.

        Returns True once images are available. Errors from the load
        (ImageDecodeError, size mismatch) are raised here, once.
        """
        if self._pending is not None and self._pending.done():
            pending, self._pending = self._pending, None
            self._publish(pending.result())
        return self.ready

    def wait(self, timeout: float | None = None) -> bool:
        if self._pending is not None:
            futures.wait([self._pending], timeout=timeout)
        return self.poll()

    def _publish(self, images: LoadedImages):
        self.images = images
        self.models = images.models
        self.params = ParameterBinder(images.models).bind(
            RenderParams.from_config(self.cfg),
            images.stats,
            has_height_field=not images.field.is_empty(),
        )

    @property
    def ready(self) -> bool:
        return self.images is not None

    @property
    def field(self) -> HeightField | None:
        return self.images.field if self.images is not None else None

    @property
    def stats(self) -> ImageStatistics:
        return self.images.stats if self.images is not None else ImageStatistics()

    # --- per event ---

    @property
    def state(self) -> ShadowState:
        return self.dynamics.state

    @property
    def anchor(self) -> Point:
        return self.dynamics.anchor

    def on_pointer(self, position: Point, tilt: Point = (0.0, 0.0), now: float | None = None) -> Point:
        """Feed one pointer-movement event, in arrival order."""
        self.raw_position = (float(position[0]), float(position[1]))
        self.tilt = (float(tilt[0]), float(tilt[1]))
        _, anchor = self.dynamics.advance(
            self.raw_position, self.tilt, self.field, self.params.cd_threshold, now
        )
        return anchor

    def set_cursor_shape(self, shape: CursorShape | str):
        self.cursor_shape = CursorShape(shape)
        self.profile = load_shape_profile(self.cursor_shape, self.cfg.shape_dir)

    def render(self) -> ShadowFrame:
        if self.raw_position is None or not self.ready:
            return ShadowFrame()
        return self.renderer.render(
            self.dynamics.anchor,
            self.dynamics.signals,
            self.field,
            self.profile,
            self.params,
            self.cursor_shape,
        )

    def rasterize(self, frame: ShadowFrame) -> np.ndarray:
        field = self.field
        if field is None:
            return np.zeros((0, 0), dtype=np.float32)
        return self.renderer.rasterize(frame, field.shape)

    def close(self):
        if self._pending is not None:
            self._pending.cancel()
        if self._executor is not None and self._owns_executor:
            self._executor.shutdown(wait=False)
            self._executor = None

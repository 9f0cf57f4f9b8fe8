from __future__ import annotations
from dataclasses import dataclass

from .calibration import CalibrationModels
from .config import AppConfig
from .logging import get_logger
from .statistics import ImageStatistics


def _clamp(v: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, float(v)))


@dataclass
class RenderParams:
    """Per-session shadow parameters; bound once, then operator-adjustable."""

    transparency: float = 0.80
    delta_pixel: float = 5.0
    cd_threshold: float = 10.0
    transparency_max: float = 1.0
    delta_pixel_max: float = 30.0
    cd_threshold_max: float = 100.0

    @classmethod
    def from_config(cls, cfg: AppConfig) -> RenderParams:
        return cls(
            transparency=cfg.transparency,
            delta_pixel=cfg.delta_pixel,
            cd_threshold=cfg.cd_threshold,
            transparency_max=cfg.transparency_max,
            delta_pixel_max=cfg.delta_pixel_max,
            cd_threshold_max=cfg.cd_threshold_max,
        )

    @property
    def move_scale(self) -> float:
        return self.delta_pixel * self.delta_pixel / 255.0

    def adjust(
        self,
        transparency: float | None = None,
        delta_pixel: float | None = None,
        cd_threshold: float | None = None,
    ):
        """Live change from the operator, clamped to the slider ranges."""
        if transparency is not None:
            self.transparency = _clamp(transparency, 0.0, self.transparency_max)
        if delta_pixel is not None:
            self.delta_pixel = _clamp(delta_pixel, 0.0, self.delta_pixel_max)
        if cd_threshold is not None:
            self.cd_threshold = _clamp(cd_threshold, 0.0, self.cd_threshold_max)


class ParameterBinder:
    def __init__(self, models: CalibrationModels):
        self.models = models
        self.logger = get_logger(__name__)

    def bind(
        self,
        params: RenderParams,
        stats: ImageStatistics,
        has_height_field: bool = True,
    ) -> RenderParams:
        """
        Overwrite `params` with model predictions at session start.

        Delta pixel and CD threshold follow the roughness index and are only
        bound when a height field was loaded; transparency follows the
        brightness index. Parameters without a model keep their value.
        """
        m = self.models
        if has_height_field:
            if m.delta_pixel is not None:
                params.delta_pixel = _clamp(
                    m.delta_pixel.predict(stats.roughness_index),
                    0.0,
                    params.delta_pixel_max,
                )
                self.logger.info(
                    f"Applied delta pixel from model: {params.delta_pixel:.2f} "
                    f"(index {stats.roughness_index:.3f})"
                )
            if m.cd_threshold is not None:
                params.cd_threshold = _clamp(
                    m.cd_threshold.predict(stats.roughness_index),
                    0.0,
                    params.cd_threshold_max,
                )
                self.logger.info(
                    f"Applied CD threshold from model: {params.cd_threshold:.2f} "
                    f"(index {stats.roughness_index:.3f})"
                )
        if m.transparency is not None:
            params.transparency = _clamp(
                m.transparency.predict(stats.brightness_index),
                0.0,
                params.transparency_max,
            )
            self.logger.info(
                f"Applied transparency from model: {params.transparency:.2f} "
                f"(index {stats.brightness_index:.3f})"
            )
        return params

from __future__ import annotations
import math
from dataclasses import dataclass


@dataclass
class SmoothedSignals:
    theta: float = 0.0  # tilt direction
    angle: float = 0.0  # tilt magnitude
    movement_angle: float = 0.0  # direction of travel


class PenSignalSmoother:
    """
    Exponential smoothing of stylus tilt and movement direction.

    Each update pulls every signal `k` of the way toward the new raw reading:
    ``stable = stable * (1 - k) + raw * k``.
    """

    def __init__(self, k: float = 0.9):
        self.k = k
        self.signals = SmoothedSignals()
        self.raw_movement_angle = 0.0

    def reset(self):
        self.signals = SmoothedSignals()
        self.raw_movement_angle = 0.0

    def _blend(self, stable: float, raw: float) -> float:
        return stable * (1.0 - self.k) + raw * self.k

    def update(self, tilt: tuple[float, float], dx: float, dy: float) -> SmoothedSignals:
        tx, ty = tilt
        raw_theta = math.atan2(-ty, tx) + math.pi / 4.0
        raw_angle = math.hypot(ty, tx)
        # a stationary pen keeps its last heading
        if dx != 0 or dy != 0:
            self.raw_movement_angle = math.atan2(dy, dx) + math.pi / 4.0 + math.pi

        s = self.signals
        s.theta = self._blend(s.theta, raw_theta)
        s.angle = self._blend(s.angle, raw_angle)
        s.movement_angle = self._blend(s.movement_angle, self.raw_movement_angle)
        return s

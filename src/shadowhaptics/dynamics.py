# src/shadowhaptics/dynamics.py
from __future__ import annotations
import math
import time
from dataclasses import dataclass
from typing import Union

from .config import AppConfig
from .heightfield import HeightField
from .logging import get_logger
from .smoothing import PenSignalSmoother

Point = tuple[float, float]


@dataclass(frozen=True)
class Idle:
    name = "idle"


@dataclass(frozen=True)
class Resistance:
    started: float
    name = "resistance"


@dataclass(frozen=True)
class Accelerate:
    started: float
    name = "accelerate"


ShadowState = Union[Idle, Resistance, Accelerate]


def depth_gradient(
    field: HeightField, pos: Point, dx: float, dy: float, look_ahead: float = 3.0
) -> float:
    """
    Height `look_ahead` pixels ahead along (dx, dy) minus the height under `pos`.

    Zero when the pen did not move or either sample falls outside the field.
    """
    dist = math.sqrt(dx * dx + dy * dy)
    if dist <= 0.0:
        return 0.0
    px, py = int(pos[0]), int(pos[1])
    tx = int(pos[0] + dx / dist * look_ahead)
    ty = int(pos[1] + dy / dist * look_ahead)
    here = field.sample(px, py)
    ahead = field.sample(tx, ty)
    if here is None or ahead is None:
        return 0.0
    return float(ahead - here)


class ShadowDynamics:
    """
    Idle / resistance / accelerate machine driving the shadow anchor.

    From Idle, a height step above the threshold starts a resistance cue and a
    drop below -threshold starts an acceleration cue. During a cue the anchor
    first follows the pen with a gain (hold phase), then eases back onto the
    pen (release phase), then the machine returns to Idle. Cues are only
    started from Idle.
    """

    def __init__(self, cfg: AppConfig | None = None, smoother: PenSignalSmoother | None = None):
        cfg = cfg or AppConfig()
        self.look_ahead = cfg.look_ahead
        self.resistance_ratio = cfg.resistance_ratio
        self.accelerate_ratio = cfg.accelerate_ratio
        self.hold_time = cfg.hold_time
        self.release_time = cfg.release_time
        self.frame_interval = cfg.frame_interval
        self.smoother = smoother or PenSignalSmoother(cfg.smoothing)
        self.logger = get_logger(__name__)

        self.state: ShadowState = Idle()
        self.anchor: Point = (0.0, 0.0)
        self.previous: Point | None = None
        self.last_gradient = 0.0

    @property
    def signals(self):
        return self.smoother.signals

    def reset(self):
        self.state = Idle()
        self.anchor = (0.0, 0.0)
        self.previous = None
        self.last_gradient = 0.0
        self.smoother.reset()

    def _ratio(self, state: ShadowState) -> float:
        if isinstance(state, Resistance):
            return self.resistance_ratio
        return self.accelerate_ratio

    def _enter(self, state: ShadowState):
        self.logger.debug(f"Shadow state {self.state.name} -> {state.name}")
        self.state = state

    def advance(
        self,
        raw: Point,
        tilt: Point,
        field: HeightField | None,
        threshold: float,
        now: float | None = None,
    ) -> tuple[ShadowState, Point]:
        """
        Apply one pointer event and return (state, anchor).

        Without a height field nothing is mutated and the raw position is
        returned. The first event only records the position.
        """
        raw = (float(raw[0]), float(raw[1]))
        if field is None or field.is_empty():
            return self.state, raw

        prev = self.previous if self.previous is not None else raw
        dx = raw[0] - prev[0]
        dy = raw[1] - prev[1]
        self.smoother.update(tilt, dx, dy)
        gradient = depth_gradient(field, raw, dx, dy, self.look_ahead)
        self.last_gradient = gradient

        if self.previous is None:
            self.anchor = raw
            self.previous = raw
            return self.state, self.anchor

        now = time.monotonic() if now is None else now

        if isinstance(self.state, Idle):
            if gradient > threshold:
                self._enter(Resistance(started=now))
            elif gradient < -threshold:
                self._enter(Accelerate(started=now))

        if isinstance(self.state, Idle):
            self.anchor = raw
        else:
            self.anchor = self._animate(raw, dx, dy, now - self.state.started)

        self.previous = raw
        return self.state, self.anchor

    def _animate(self, raw: Point, dx: float, dy: float, elapsed: float) -> Point:
        ax, ay = self.anchor
        if elapsed < self.hold_time:
            ratio = self._ratio(self.state)
            return ax + dx * ratio, ay + dy * ratio

        if elapsed < self.release_time:
            step = self.frame_interval / (self.release_time - elapsed)
            if step >= 1.0:
                return raw
            return ax + (raw[0] - ax) * step, ay + (raw[1] - ay) * step

        self._enter(Idle())
        return raw


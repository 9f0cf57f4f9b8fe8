import numpy as np
import pytest

from shadowhaptics.dynamics import (
    Accelerate,
    Idle,
    Resistance,
    ShadowDynamics,
    depth_gradient,
)

from conftest import make_field

TILT = (0.3, 0.3)


def walk(dyn, field, points, times, threshold=10.0):
    out = []
    for p, t in zip(points, times):
        out.append(dyn.advance(p, TILT, field, threshold, now=t))
    return out


def enter_resistance(dyn, field):
    """(45,50) first event, (46,50) idle, (47,50) looks into the step."""
    walk(dyn, field, [(45, 50), (46, 50)], [0.0, 0.5])
    return dyn.advance((47, 50), TILT, field, 10.0, now=1.0)


def test_depth_gradient(step_field):
    assert depth_gradient(step_field, (47, 50), 1.0, 0.0) == 11.0
    assert depth_gradient(step_field, (46, 50), 1.0, 0.0) == 0.0
    assert depth_gradient(step_field, (52, 50), -1.0, 0.0) == -11.0
    assert depth_gradient(step_field, (47, 50), 0.0, 0.0) == 0.0
    # look-ahead cell outside the field
    assert depth_gradient(step_field, (98, 50), 1.0, 0.0) == 0.0


def test_first_event_only_records_position(step_field):
    dyn = ShadowDynamics()
    state, anchor = dyn.advance((47, 50), TILT, step_field, 0.0, now=0.0)
    assert state == Idle()
    assert anchor == (47.0, 50.0)
    assert dyn.previous == (47.0, 50.0)


def test_no_field_mutates_nothing():
    dyn = ShadowDynamics()
    state, anchor = dyn.advance((10, 10), TILT, None, 10.0, now=0.0)
    assert state == Idle()
    assert anchor == (10.0, 10.0)
    assert dyn.previous is None
    assert dyn.signals.angle == 0.0


def test_idle_snaps_to_pointer(flat_field):
    dyn = ShadowDynamics()
    for i, t in enumerate([0.0, 0.1, 0.2]):
        state, anchor = dyn.advance((10 + i, 20), TILT, flat_field, 10.0, now=t)
        assert state == Idle()
        assert anchor == (10.0 + i, 20.0)


def test_threshold_is_strict():
    values = np.zeros((100, 100), dtype=np.int32)
    values[:, 50:] = 10
    field = make_field(values)
    dyn = ShadowDynamics()
    walk(dyn, field, [(45, 50), (46, 50)], [0.0, 0.5])
    state, anchor = dyn.advance((47, 50), TILT, field, 10.0, now=1.0)
    assert state == Idle()
    assert anchor == (47.0, 50.0)


def test_one_above_threshold_resists(step_field):
    dyn = ShadowDynamics()
    state, anchor = enter_resistance(dyn, step_field)
    assert state == Resistance(started=1.0)
    # anchor was on (46, 50); the pen moved +1 in x
    assert anchor == pytest.approx((46.0 - 0.3, 50.0))


def test_resistance_hold_phase(step_field):
    dyn = ShadowDynamics()
    enter_resistance(dyn, step_field)
    before = dyn.anchor
    state, anchor = dyn.advance((49, 51), TILT, step_field, 10.0, now=1.15)
    assert isinstance(state, Resistance)
    assert anchor == pytest.approx((before[0] + 2 * -0.3, before[1] + 1 * -0.3))


def test_release_phase_eases_toward_pointer(step_field):
    dyn = ShadowDynamics()
    enter_resistance(dyn, step_field)
    ax, ay = dyn.anchor
    state, anchor = dyn.advance((48, 50), TILT, step_field, 10.0, now=1.35)
    step = (1.0 / 60.0) / 0.05
    assert isinstance(state, Resistance)
    assert anchor == pytest.approx((ax + (48 - ax) * step, ay))


def test_release_phase_snaps_near_the_end(step_field):
    dyn = ShadowDynamics()
    enter_resistance(dyn, step_field)
    state, anchor = dyn.advance((48, 50), TILT, step_field, 10.0, now=1.39)
    assert isinstance(state, Resistance)
    assert anchor == (48.0, 50.0)


def test_returns_to_idle_after_release(step_field):
    dyn = ShadowDynamics()
    enter_resistance(dyn, step_field)
    state, anchor = dyn.advance((60, 55), TILT, step_field, 10.0, now=1.41)
    assert state == Idle()
    assert anchor == (60.0, 55.0)


def test_no_retrigger_while_animating(step_field):
    dyn = ShadowDynamics()
    enter_resistance(dyn, step_field)
    # moving back across the step would accelerate if we were idle
    state, _ = dyn.advance((52, 50), TILT, step_field, 10.0, now=1.1)
    state, _ = dyn.advance((51, 50), TILT, step_field, 10.0, now=1.2)
    assert state == Resistance(started=1.0)


def test_drop_accelerates(step_field):
    dyn = ShadowDynamics()
    walk(dyn, step_field, [(55, 50), (54, 50)], [0.0, 0.5])
    state, anchor = dyn.advance((52, 50), TILT, step_field, 10.0, now=1.0)
    assert state == Accelerate(started=1.0)
    # anchor was on (54, 50); the pen moved -2 in x with gain 2
    assert anchor == pytest.approx((50.0, 50.0))


def test_reset(step_field):
    dyn = ShadowDynamics()
    enter_resistance(dyn, step_field)
    dyn.reset()
    assert dyn.state == Idle()
    assert dyn.previous is None

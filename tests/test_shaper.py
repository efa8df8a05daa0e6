import math

import numpy as np
import pytest

from swerve_control import config
from swerve_control.shaper import SlewRateLimiter, VelocityShaper

TICK = 0.02
MAG_STEP = config.MAGNITUDE_SLEW_RATE * TICK


@pytest.fixture
def shaper():
    return VelocityShaper()


def run(shaper, x, y, rot, start_tick, ticks):
    """Feed a constant request for `ticks` ticks; return outputs and the next tick index."""
    outputs = []
    for i in range(start_tick, start_tick + ticks):
        outputs.append(shaper.shape(x, y, rot, True, i * TICK))
    return outputs, start_tick + ticks


def test_slew_rate_limiter():
    limiter = SlewRateLimiter(2.0)
    assert limiter.calculate(1.0, 0.1) == pytest.approx(0.2)
    assert limiter.calculate(1.0, 1.0) == pytest.approx(1.0)
    # Time going backwards does not move the output
    assert limiter.calculate(-1.0, 0.5) == pytest.approx(1.0)

    with pytest.raises(ValueError):
        SlewRateLimiter(0.0)


def test_without_rate_limit_is_pure_scaling(shaper):
    velocity = shaper.shape(0.5, -0.25, 1.0, False, 5.0, field_relative=True)

    assert velocity.vx == pytest.approx(0.5 * config.MAX_SPEED)
    assert velocity.vy == pytest.approx(-0.25 * config.MAX_SPEED)
    assert velocity.omega == pytest.approx(config.MAX_ANGULAR_SPEED)
    assert velocity.field_relative
    assert shaper.state.magnitude == 0.0
    assert shaper.state.last_update_time == 0.0
    assert shaper.rotation == 0.0


def test_magnitude_and_rotation_changes_are_bounded(shaper):
    rng = np.random.default_rng(1)
    previous_magnitude = 0.0
    previous_rotation = 0.0

    for i in range(1, 400):
        x, y, rot = rng.uniform(-1.0, 1.0, size=3)
        if i % 7 == 0:
            x = y = 0.0
        velocity = shaper.shape(x, y, rot, True, i * TICK)

        magnitude = shaper.state.magnitude
        assert abs(magnitude - previous_magnitude) <= MAG_STEP + 1e-9
        assert abs(shaper.rotation - previous_rotation) <= config.ROTATIONAL_SLEW_RATE * TICK + 1e-9
        assert math.hypot(velocity.vx, velocity.vy) == pytest.approx(magnitude * config.MAX_SPEED)
        previous_magnitude = magnitude
        previous_rotation = shaper.rotation


def test_direction_snaps_when_stationary(shaper):
    first = shaper.shape(0.0, 1.0, 0.0, True, TICK)
    assert shaper.state.direction == pytest.approx(math.pi / 2)
    assert first.vy == pytest.approx(0.0)

    second = shaper.shape(0.0, 1.0, 0.0, True, 2 * TICK)
    assert second.vy == pytest.approx(MAG_STEP * config.MAX_SPEED)
    assert second.vx == pytest.approx(0.0, abs=1e-12)


def test_reversal_brakes_then_flips(shaper):
    _, tick = run(shaper, 1.0, 0.0, 0.0, 1, 50)
    assert shaper.state.magnitude == pytest.approx(1.0)

    outputs, _ = run(shaper, -1.0, 0.0, 0.0, tick, 60)
    vx = [v.vx for v in outputs]
    flip = next(i for i, value in enumerate(vx) if value < 0)

    braking = vx[:flip]
    assert all(later <= earlier for earlier, later in zip(braking, braking[1:]))
    assert braking[-1] == pytest.approx(0.0, abs=1e-12)
    assert all(v >= 0 for v in braking)
    # After the flip it accelerates backwards without turning through the side
    assert all(v < 0 for v in vx[flip:])
    assert all(abs(v.vy) < 1e-9 for v in outputs)
    assert shaper.state.direction == pytest.approx(math.pi)


def test_large_turn_steers_while_braking(shaper):
    _, tick = run(shaper, 1.0, 0.0, 0.0, 1, 50)
    shaper.shape(0.0, 1.0, 0.0, True, tick * TICK)

    # At unit magnitude the direction moves by DIRECTION_SLEW_RATE * dt
    assert shaper.state.direction == pytest.approx(config.DIRECTION_SLEW_RATE * TICK, rel=1e-6)
    assert shaper.state.magnitude == pytest.approx(1.0 - MAG_STEP, rel=1e-6)


def test_turn_rate_scales_inversely_with_speed(shaper):
    _, tick = run(shaper, 0.5, 0.0, 0.0, 1, 30)
    assert shaper.state.magnitude == pytest.approx(0.5)

    shaper.shape(0.5 * math.cos(0.3), 0.5 * math.sin(0.3), 0.0, True, tick * TICK)

    assert shaper.state.direction == pytest.approx(config.DIRECTION_SLEW_RATE / 0.5 * TICK, rel=1e-6)
    assert shaper.state.magnitude == pytest.approx(0.5)


def test_zero_request_brakes_without_turning(shaper):
    _, tick = run(shaper, 0.0, 1.0, 0.0, 1, 30)
    outputs, _ = run(shaper, 0.0, 0.0, 0.0, tick, 100)

    magnitudes = [math.hypot(v.vx, v.vy) for v in outputs]
    assert all(later <= earlier for earlier, later in zip(magnitudes, magnitudes[1:]))
    assert magnitudes[-1] == 0.0
    assert shaper.state.direction == pytest.approx(math.pi / 2)
    assert all(abs(v.vx) < 1e-9 for v in outputs)


def test_rotation_is_slew_limited(shaper):
    velocity = shaper.shape(0.0, 0.0, 1.0, True, TICK)
    assert velocity.omega == pytest.approx(config.ROTATIONAL_SLEW_RATE * TICK * config.MAX_ANGULAR_SPEED)


def test_reset_clears_state(shaper):
    run(shaper, 1.0, 0.0, 1.0, 1, 20)
    shaper.reset(10.0)

    assert shaper.state.magnitude == 0.0
    assert shaper.rotation == 0.0
    assert shaper.state.last_update_time == 10.0
    # Elapsed time restarts from the reset timestamp
    velocity = shaper.shape(1.0, 0.0, 0.0, True, 10.0 + TICK)
    assert velocity.vx == pytest.approx(MAG_STEP * config.MAX_SPEED)


def test_invalid_limits():
    with pytest.raises(ValueError):
        VelocityShaper(max_speed=0.0)
    with pytest.raises(ValueError):
        VelocityShaper(magnitude_slew_rate=-1.0)

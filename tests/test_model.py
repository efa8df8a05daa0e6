import math

import pytest

from swerve_control.geometry import ChassisVelocity, ModulePosition, ModuleTarget, angle_difference
from swerve_control.model import cross_formation, desaturate


def test_pure_translation(solver):
    targets = solver.solve(ChassisVelocity(1.0, 0.0, 0.0))
    for target in targets:
        assert target.speed == pytest.approx(1.0)
        assert target.angle == pytest.approx(0.0)


def test_pure_strafe(solver):
    for target in solver.solve(ChassisVelocity(0.0, -2.0, 0.0)):
        assert target.speed == pytest.approx(2.0)
        assert target.angle == pytest.approx(-math.pi / 2)


def test_pure_rotation_is_tangential(solver, unit_square):
    targets = solver.solve(ChassisVelocity(0.0, 0.0, 1.0))

    for (rx, ry), target in zip(unit_square, targets):
        assert target.speed == pytest.approx(math.sqrt(0.5))
        # CCW rotation: each module points 90 degrees ahead of its offset
        assert angle_difference(target.angle, math.atan2(ry, rx) + math.pi / 2) == pytest.approx(
            0.0, abs=1e-12
        )

    assert targets[0].angle == pytest.approx(3 * math.pi / 4)


def test_field_relative_velocity_is_rejected(solver):
    with pytest.raises(ValueError):
        solver.solve(ChassisVelocity(1.0, 0.0, 0.0, field_relative=True))


def test_idle_modules_keep_last_angle(solver):
    solver.solve(ChassisVelocity(0.0, 1.0, 0.0))
    targets = solver.solve(ChassisVelocity())

    for target in targets:
        assert target.speed == 0.0
        assert target.angle == pytest.approx(math.pi / 2)


def test_desaturate_within_limit_is_noop():
    targets = [ModuleTarget(1.0, 0.1), ModuleTarget(-2.0, 0.2), ModuleTarget(0.5, 0.3), ModuleTarget(0.0, 0.4)]
    assert desaturate(targets, 2.0) == targets


def test_desaturate_preserves_ratios(solver):
    targets = solver.solve(ChassisVelocity(4.0, 1.0, 3.0))
    limited = desaturate(targets, 2.0)

    assert max(t.speed for t in limited) == pytest.approx(2.0)
    scale = limited[0].speed / targets[0].speed
    for before, after in zip(targets, limited):
        assert after.speed == pytest.approx(before.speed * scale)
        assert after.angle == before.angle


def test_desaturate_rejects_non_positive_limit():
    with pytest.raises(ValueError):
        desaturate([ModuleTarget(1.0, 0.0)], 0.0)


def test_cross_formation():
    angles = [t.angle for t in cross_formation()]
    assert angles == pytest.approx([math.pi / 4, -math.pi / 4, -math.pi / 4, math.pi / 4])
    assert all(t.speed == 0.0 for t in cross_formation())


def test_forward_kinematics_recovers_chassis_velocity(solver):
    commanded = ChassisVelocity(1.2, -0.4, 0.8)
    estimated = solver.to_chassis_velocity(solver.solve(commanded))

    assert (estimated.vx, estimated.vy, estimated.omega) == pytest.approx((1.2, -0.4, 0.8))
    assert not estimated.field_relative


def test_displacement_straight_line(solver):
    start = [ModulePosition(1.0, 0.0)] * 4
    end = [ModulePosition(1.1, 0.0)] * 4
    assert solver.to_displacement(start, end) == pytest.approx((0.1, 0.0, 0.0))


def test_displacement_in_place_rotation(solver):
    start = [ModulePosition(0.0, t.angle) for t in solver.solve(ChassisVelocity(0.0, 0.0, 1.0))]
    end = [ModulePosition(0.01 * math.sqrt(0.5), p.angle) for p in start]
    dx, dy, dtheta = solver.to_displacement(start, end)

    assert (dx, dy) == pytest.approx((0.0, 0.0), abs=1e-12)
    assert dtheta == pytest.approx(0.01)


def test_module_count_mismatch(solver):
    with pytest.raises(ValueError):
        solver.to_chassis_velocity([ModuleTarget(1.0, 0.0)] * 3)
    with pytest.raises(ValueError):
        solver.to_displacement([ModulePosition()] * 4, [ModulePosition()] * 3)

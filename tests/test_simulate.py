import pytest

from swerve_control.data_collector import CORRECTION_HEADERS, POSE_HEADERS, TARGET_HEADERS, DataCollector
from swerve_control.geometry import ModuleTarget, Pose2D
from swerve_control.model import KinematicsSolver
from swerve_control.modes import RobotMode
from swerve_control.plot_results import find_latest_run, load_csv_columns, main, plot_run_summary
from swerve_control.simulate import CROSS_TIME, GroundTruth, operator_input, run_simulation


def test_operator_script_lookup():
    assert operator_input(0.0) == (1.0, 0.0, 0.0, True)
    assert operator_input(2.5) == (0.0, 1.0, 0.0, True)
    assert operator_input(100.0) == (0.0, 0.0, 0.0, True)


def test_sim_run_moves_robot():
    result = run_simulation(RobotMode.SIM, duration=3.0)

    # Forward then strafe left, both in the positive quadrant
    for pose in (result.drive.get_pose(), result.truth):
        assert pose.x > 1.0
        assert pose.y > 0.5
    assert result.drive.estimator.get_diagnostics()["corrections_applied"] > 0


def test_sim_run_ends_in_cross():
    drive = run_simulation(RobotMode.SIM, duration=CROSS_TIME + 0.5).drive
    assert all(t.speed == 0.0 for t in drive.targets)
    assert [round(t.angle, 6) for t in drive.targets] == [0.785398, -0.785398, -0.785398, 0.785398]


def test_replay_run_stays_near_origin():
    result = run_simulation(RobotMode.REPLAY, duration=2.0)
    pose = result.drive.get_pose()
    # Only noisy corrections move the estimate
    assert result.truth == Pose2D()
    assert abs(pose.x) < 0.1
    assert abs(pose.y) < 0.1


def test_sim_run_is_seeded():
    first = run_simulation(RobotMode.SIM, duration=1.0, seed=3)
    second = run_simulation(RobotMode.SIM, duration=1.0, seed=3)
    assert first.drive.get_pose() == second.drive.get_pose()
    assert first.truth == second.truth


def test_exact_encoders_track_truth():
    result = run_simulation(RobotMode.SIM, duration=4.0, correction_period=None, encoder_scale=1.0)
    assert result.drive.estimator.get_diagnostics()["corrections_applied"] == 0
    assert result.position_error < 0.05


def test_corrections_pull_drifting_odometry_towards_truth():
    drifting = run_simulation(RobotMode.SIM, duration=4.0, correction_period=None)
    corrected = run_simulation(RobotMode.SIM, duration=4.0)

    # Over-reading encoders put the estimate ahead of the robot
    assert drifting.drive.get_pose().x > drifting.truth.x
    assert drifting.position_error > 0.1
    assert corrected.position_error < drifting.position_error


def test_ground_truth_integrates_targets():
    solver = KinematicsSolver()
    truth = GroundTruth(solver, tick_period=0.02, latency_ticks=2)

    forward = [ModuleTarget(1.0, 0.0)] * 4
    for i in range(1, 4):
        truth.advance(forward, i * 0.02)

    assert truth.pose.x == pytest.approx(0.06)
    assert truth.pose.y == pytest.approx(0.0)
    # Latency of two ticks: the oldest sample is one tick after the start
    timestamp, pose = truth.delayed()
    assert timestamp == pytest.approx(0.02)
    assert pose.x == pytest.approx(0.02)


def test_real_mode_is_rejected():
    with pytest.raises(ValueError):
        run_simulation(RobotMode.REAL)


def test_recorded_run_can_be_plotted(tmp_path):
    with DataCollector(output_dir=str(tmp_path), run_dir=str(tmp_path / "results" / "run_test")) as collector:
        run_simulation(RobotMode.SIM, duration=1.0, collector=collector)

    run_dir = find_latest_run(tmp_path / "results")
    assert run_dir.name == "run_test"

    pose = load_csv_columns(run_dir / "pose.csv")
    targets = load_csv_columns(run_dir / "targets.csv")
    corrections = load_csv_columns(run_dir / "corrections.csv")
    assert list(pose) == POSE_HEADERS
    assert list(targets) == TARGET_HEADERS
    assert list(corrections) == CORRECTION_HEADERS
    assert len(pose["x"]) == 51
    assert len(corrections["x"]) == 4

    plot_run_summary(run_dir, save_plots=True, show_plots=False)
    assert (run_dir / "trajectory.png").exists()
    assert (run_dir / "module_targets.png").exists()

    (run_dir / "trajectory.png").unlink()
    main(["--results-dir", str(tmp_path / "results"), "--save", "--no-show"])
    assert (run_dir / "trajectory.png").exists()

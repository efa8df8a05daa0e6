import csv
import logging

import pytest

from swerve_control.data_collector import DataCollector
from swerve_control.geometry import Correction, ModuleTarget, Pose2D
from swerve_control.plot_results import find_latest_run, list_available_runs, load_csv_columns


def read_rows(path):
    with open(path, newline="") as f:
        return list(csv.reader(f))


def test_creates_timestamped_run_dir(tmp_path, monkeypatch):
    monkeypatch.delenv("RUN_DIR", raising=False)
    collector = DataCollector(output_dir=str(tmp_path))
    assert collector.run_dir.parent == tmp_path / "results"
    assert collector.run_dir.name.startswith("run_")
    assert collector.run_dir.is_dir()


def test_run_dir_from_environment(tmp_path, monkeypatch):
    monkeypatch.setenv("RUN_DIR", str(tmp_path / "from_env"))
    collector = DataCollector(output_dir=str(tmp_path))
    assert collector.run_dir == tmp_path / "from_env"


def test_output_dir_must_be_directory(tmp_path):
    not_a_dir = tmp_path / "file.txt"
    not_a_dir.write_text("x")
    with pytest.raises(ValueError):
        DataCollector(output_dir=str(not_a_dir))


def test_logs_rows(tmp_path):
    run_dir = tmp_path / "run_a"
    with DataCollector(run_dir=str(run_dir)) as collector:
        collector.log_pose(0.02, Pose2D(1.0, 2.0, 0.5))
        collector.log_targets(0.02, [ModuleTarget(1.0, 0.1)] * 4)
        collector.log_correction(Correction(Pose2D(1.1, 2.1), 0.0, confidence=0.4))

    pose_rows = read_rows(run_dir / "pose.csv")
    assert pose_rows[0] == ["timestamp", "x", "y", "heading"]
    assert [float(v) for v in pose_rows[1]] == [0.02, 1.0, 2.0, 0.5]

    target_rows = read_rows(run_dir / "targets.csv")
    assert target_rows[0][:3] == ["timestamp", "front_left_speed", "front_left_angle"]
    assert len(target_rows[1]) == 9

    correction_rows = read_rows(run_dir / "corrections.csv")
    assert [float(v) for v in correction_rows[1]] == [0.0, 1.1, 2.1, 0.4]


def test_load_csv_columns(tmp_path):
    path = tmp_path / "data.csv"
    path.write_text("a,b\n1,2\n3,oops\n4\n")

    columns = load_csv_columns(path)
    assert list(columns["a"]) == [1.0, 3.0]
    assert columns["b"][0] == 2.0
    assert columns["b"][1] != columns["b"][1]  # NaN

    with pytest.raises(FileNotFoundError):
        load_csv_columns(tmp_path / "missing.csv")


def test_find_latest_run(tmp_path):
    (tmp_path / "run_20260101_000000").mkdir()
    (tmp_path / "run_20260102_000000").mkdir()
    (tmp_path / "other").mkdir()
    assert find_latest_run(tmp_path).name == "run_20260102_000000"

    with pytest.raises(FileNotFoundError):
        find_latest_run(tmp_path / "nope")


def test_list_available_runs(tmp_path, caplog):
    (tmp_path / "run_20260101_000000").mkdir()
    with caplog.at_level(logging.INFO):
        list_available_runs(tmp_path)
        list_available_runs(tmp_path / "nope")

    assert "run_20260101_000000" in caplog.text
    assert "Results directory not found" in caplog.text

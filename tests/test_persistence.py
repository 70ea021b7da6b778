import json
import os

from loadrunner.config import LoadConfig
from loadrunner.models import WorkerResult
from loadrunner.persistence import RunReporter, output_dir_name
from loadrunner.protocol import parse_payload
from loadrunner.stats import StatsAggregator


def test_output_dir_name():
    cfg = LoadConfig(script="scripts/user.py", total_runs=100, concurrency=10, ramp_up_s=5, profile="nightly")
    assert output_dir_name(cfg, started_ms=1329317523630) == "run_scripts_user.py_1329317523630_100_10_5_nightly"


def test_record_run_writes_result_and_log(tmp_path):
    reporter = RunReporter(str(tmp_path), total_runs=100)
    result = WorkerResult(status=200, actions=[], log="hello")
    reporter.record_run(7, True, 123.4, result)

    with open(tmp_path / "007-ok-123.json", encoding="utf-8") as f:
        assert json.load(f) == {"status": 200, "actions": [], "log": "hello"}
    assert (tmp_path / "007-ok-123.txt").read_text(encoding="utf-8") == "hello"
    assert not (tmp_path / "errors.txt").exists()


def test_failed_runs_go_to_errors_file(tmp_path):
    reporter = RunReporter(str(tmp_path), total_runs=9)
    reporter.record_run(1, False, 10, "Traceback: boom")
    reporter.record_run(2, False, 11, None)

    assert (tmp_path / "1-error-10.json").read_text(encoding="utf-8") == "RAW DATA\nTraceback: boom"
    errors = (tmp_path / "errors.txt").read_text(encoding="utf-8")
    assert "1:RAW DATA\nTraceback: boom" in errors
    assert "2:no content returned from test script" in errors


def test_write_failures_are_logged_not_raised(tmp_path, caplog):
    reporter = RunReporter(str(tmp_path / "missing"), total_runs=1)
    reporter.record_run(1, True, 1, WorkerResult(status=200))
    reporter.record_summary(StatsAggregator().finalize())
    assert reporter.write_errors == 2
    assert "Error writing file" in caplog.text


def test_create_makes_directory(tmp_path):
    cfg = LoadConfig(script="w.py", runs_dir=str(tmp_path / "runs"), output=True)
    reporter = RunReporter.create(cfg)
    assert os.path.isdir(reporter.output_dir)
    assert reporter.to_dict()["write_errors"] == 0


def test_run_file_keeps_everything_the_worker_wrote(tmp_path):
    raw = '{"status": 200, "actions": [], "requestId": "abc", "meta": {"x": 1}, "log": null}'
    result = parse_payload(raw).result
    reporter = RunReporter(str(tmp_path), total_runs=1)
    reporter.record_run(1, True, 5, result)
    with open(tmp_path / "1-ok-5.json", encoding="utf-8") as f:
        assert json.load(f) == json.loads(raw)
    assert not (tmp_path / "1-ok-5.txt").exists()


def test_structured_log_written_as_json(tmp_path):
    reporter = RunReporter(str(tmp_path), total_runs=1)
    reporter.record_run(1, True, 5, WorkerResult(status=200, log={"step": "login"}))
    assert json.loads((tmp_path / "1-ok-5.txt").read_text(encoding="utf-8")) == {"step": "login"}

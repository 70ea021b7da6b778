import sys

import pytest

from loadrunner import cli
from loadrunner.config import ConfigurationError, LoadConfig
from loadrunner.setup_script import before_script_args


def test_parse_args_and_script_args():
    args = cli.parse_args(["-s", "user.py", "-n", "50", "-c", "5", "-r", "2.5", "--pattern", "0", "1", "--", "--host", "{runNum}"])
    cfg = cli.config_from_args(args)
    assert cfg.script == "user.py"
    assert cfg.total_runs == 50
    assert cfg.concurrency == 5
    assert cfg.ramp_up_s == 2.5
    assert cfg.flow_pattern == (0, 1)
    assert cfg.flow_weights is None
    assert cfg.script_args == ("--host", "{runNum}")
    assert cfg.command() == [sys.executable, "user.py", "--host", "{runNum}"]


def test_flows_and_pattern_conflict():
    with pytest.raises(SystemExit):
        cli.parse_args(["-s", "user.py", "-f", "1", "2", "--pattern", "0", "1"])


def test_direct_execution_without_interpreter():
    cfg = LoadConfig(script="./user.sh", interpreter="", script_args=("x",))
    assert cfg.command() == ["./user.sh", "x"]


@pytest.mark.parametrize(
    "kwargs",
    [dict(total_runs=0), dict(concurrency=0), dict(ramp_up_s=-1), dict(seed=-5), dict(tick_s=0), dict(script="")],
)
def test_config_validation(kwargs):
    base = dict(script="user.py")
    base.update(kwargs)
    with pytest.raises(ConfigurationError):
        LoadConfig(**base)


@pytest.mark.asyncio
async def test_configuration_error_exits_with_2(capsys):
    code = await cli.run(["-s", "user.py", "--seed", "0"])
    assert code == 2
    assert "--seed must be positive number" in capsys.readouterr().err


@pytest.mark.asyncio
async def test_cli_runs_load_test(worker_script, tmp_path):
    code = await cli.run([
        "-s", worker_script, "-n", "3", "-c", "2", "-r", "0", "--tick", "0.01",
        "--no-progress", "-o", "--runs-dir", str(tmp_path / "runs"),
    ])
    assert code == 0
    (out_dir,) = list((tmp_path / "runs").iterdir())
    assert (out_dir / "summary.json").exists()
    assert (out_dir / "loadrunner.log").exists()


def test_before_script_args():
    cfg = LoadConfig(script="u.py", total_runs=10, concurrency=2, ramp_up_s=3, flow_pattern=(0, 2), script_args=("--x",))
    assert before_script_args(cfg) == [
        "--script", "u.py", "--concurrency", "2", "--numUsers", "10",
        "--rampUp", "3", "--pattern", "0 2", "--x",
    ]


@pytest.mark.asyncio
async def test_run_before_script(tmp_path):
    from loadrunner.setup_script import run_before_script

    marker = tmp_path / "before.out"
    script = tmp_path / "before.py"
    script.write_text(
        "import sys\n"
        f"open({str(marker)!r}, 'w').write(' '.join(sys.argv[1:]))\n"
        "sys.exit(4)\n"
    )
    cfg = LoadConfig(script="u.py", before_script=str(script), total_runs=2)
    assert await run_before_script(cfg) == 4
    assert marker.read_text().startswith("--script u.py --concurrency 1 --numUsers 2")

    assert await run_before_script(LoadConfig(script="u.py")) is None

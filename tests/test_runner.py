import json
import random

import pytest

from loadrunner.models import RunState
from loadrunner.protocol import Marker
from loadrunner.runner import ProcessRunner


@pytest.mark.asyncio
async def test_run_passes_environment_and_parses_result(python, worker_script):
    markers = []
    runner = ProcessRunner(
        [python, worker_script],
        total_runs=7,
        rng=random.Random(42),
        on_marker=lambda i, m: markers.append((i, m)),
    )
    handle = runner.spawn(3, 2)
    assert handle.state is RunState.PENDING
    task = await handle.run()

    assert task.state is RunState.PARSED
    assert task.exit_code == 0
    assert task.success
    assert task.duration_ms > 0
    assert task.steps_started == task.steps_finished == 1
    assert markers == [(3, Marker.STEP_STARTED), (3, Marker.STEP_FINISHED)]

    result = task.result
    assert result.status == 200
    assert [a.action for a in result.actions] == ["login", "pay"]
    env = json.loads(result.log)["env"]
    assert env["LR_RUN_NUMBER"] == "3"
    assert env["LR_TOTAL_RUNS"] == "7"
    assert env["LR_FLOW_NUMBER"] == "2"
    assert float(env["LR_RAND"]) == random.Random(42).random()


def test_draws_follow_spawn_order(python, worker_script):
    runner = ProcessRunner([python, worker_script], total_runs=3, rng=random.Random(9))
    draws = [runner.spawn(i, 0).task.rand for i in (1, 2, 3)]
    expected = random.Random(9)
    assert draws == [expected.random() for _ in range(3)]
    assert all(0 <= d < 1 for d in draws)


@pytest.mark.asyncio
async def test_run_number_placeholder(python, worker_script):
    runner = ProcessRunner([python, worker_script, "ok", "{runNum}"], total_runs=5, rng=random.Random(1))
    task = await runner.spawn(5, 0).run()
    assert json.loads(task.result.log)["argv"] == ["ok", "5"]


@pytest.mark.asyncio
async def test_nonzero_exit_still_parses_payload(python, worker_script):
    runner = ProcessRunner([python, worker_script, "fail"], total_runs=1, rng=random.Random(1))
    task = await runner.spawn(1, 0).run()
    assert task.exit_code == 3
    assert not task.success
    assert task.result.status == 500


@pytest.mark.asyncio
async def test_unparseable_output_is_kept_raw(python, worker_script):
    runner = ProcessRunner([python, worker_script, "garbage"], total_runs=1, rng=random.Random(1))
    task = await runner.spawn(1, 0).run()
    assert task.exit_code == 0
    assert task.result is None
    assert task.payload.error
    assert task.payload.raw == "this is not json\n"
    assert "this is not json" in task.raw_output()


@pytest.mark.asyncio
async def test_stderr_is_captured_separately(python, worker_script):
    runner = ProcessRunner([python, worker_script, "stderr"], total_runs=1, rng=random.Random(1))
    task = await runner.spawn(1, 0).run()
    assert task.result is not None
    assert task.stderr == "something went wrong\n"
    assert "something went wrong" in task.raw_output()


@pytest.mark.asyncio
async def test_spawn_failure_is_an_error_run(tmp_path):
    runner = ProcessRunner([str(tmp_path / "does-not-exist")], total_runs=1, rng=random.Random(1))
    task = await runner.spawn(1, 0).run()
    assert task.state is RunState.PARSED
    assert task.exit_code is None
    assert not task.success
    assert task.result is None
    assert "failed to spawn" in task.raw_output()


@pytest.mark.asyncio
async def test_handle_runs_once(python, worker_script):
    handle = ProcessRunner([python, worker_script], total_runs=1, rng=random.Random(1)).spawn(1, 0)
    await handle.run()
    with pytest.raises(RuntimeError):
        await handle.run()

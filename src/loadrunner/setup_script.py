import asyncio
import logging
import os

from .config import LoadConfig

logger = logging.getLogger(__name__)


def before_script_args(config: LoadConfig) -> list[str]:
    """Arguments handed to the setup script: the load-test parameters, then the script's own."""
    args = [
        "--script", config.script,
        "--concurrency", str(config.concurrency),
        "--numUsers", str(config.total_runs),
        "--rampUp", f"{config.ramp_up_s:g}",
        "--pattern", " ".join(str(p) for p in config.flow_pattern or ()),
    ]
    return args + list(config.script_args)


async def run_before_script(config: LoadConfig) -> int | None:
    """Run the optional setup script to completion before the load test starts.

    The load test starts regardless of the script's exit status.
    """
    if not config.before_script:
        return None

    argv = [config.before_script, *before_script_args(config)]
    if config.interpreter:
        argv.insert(0, config.interpreter)

    logger.info(f"Running before script: {config.before_script}")
    try:
        proc = await asyncio.create_subprocess_exec(*argv, env=dict(os.environ))
    except OSError as e:
        logger.error(f"Failed to start before script {config.before_script}: {e}")
        return None

    code = await proc.wait()
    if code != 0:
        logger.warning(f"Before script exited with code {code}, starting load test anyway")
    else:
        logger.info("Before script finished")
    return code

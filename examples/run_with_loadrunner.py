"""
Drive loadrunner from Python instead of the command line.
Run: uv run examples/run_with_loadrunner.py
"""
import asyncio
import json
import os

from loadrunner import LoadConfig, LoadRunner

HERE = os.path.dirname(os.path.abspath(__file__))

async def main():
    config = LoadConfig(
        script=os.path.join(HERE, "virtual_user.py"),
        total_runs=int(os.getenv("LR_EXAMPLE_RUNS", "12")),
        concurrency=4,
        ramp_up_s=2.0,
        seed=42,
        flow_weights=(3, 1),
    )
    summary = await LoadRunner(config).run()
    print("\nSummary:", json.dumps(summary.to_dict(), indent=2))

if __name__ == "__main__":
    asyncio.run(main())

"""
Sample virtual-user script for loadrunner.

Each run sleeps through a few fake steps, announcing them with the !+ / !-
markers, and prints its result as JSON at the end.

Run: loadrunner -s examples/virtual_user.py -n 20 -c 4 -r 2 --pattern 0 1
"""
import json
import os
import random
import sys
import time

run_number = int(os.environ.get("LR_RUN_NUMBER", "1"))
flow = int(os.environ.get("LR_FLOW_NUMBER", "0"))
rng = random.Random(float(os.environ.get("LR_RAND", "0.5")))

steps = ["login", "browse", "checkout"] if flow == 0 else ["login", "search"]
actions = []
for step in steps:
    print("!+", flush=True)
    t0 = time.perf_counter()
    time.sleep(rng.uniform(0.05, 0.3))
    status = 200 if rng.random() > 0.1 else "timeout"
    actions.append({
        "action": step,
        "duration": round((time.perf_counter() - t0) * 1000, 1),
        "status": status,
    })
    print("!-", flush=True)

failed = any(a["status"] != 200 for a in actions)
print(json.dumps({
    "status": "error" if failed else "ok",
    "actions": actions,
    "log": f"run {run_number} took flow {flow}",
}))
sys.exit(1 if failed else 0)

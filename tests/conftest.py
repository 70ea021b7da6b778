import sys
import textwrap

import pytest

WORKER = """
import json, os, sys
env = {k: os.environ[k] for k in ("LR_RUN_NUMBER", "LR_RAND", "LR_TOTAL_RUNS", "LR_FLOW_NUMBER")}
sys.stdout.write("!+\\n")
sys.stdout.flush()
sys.stdout.write("!-\\n")
sys.stdout.flush()
run = int(env["LR_RUN_NUMBER"])
mode = sys.argv[1] if len(sys.argv) > 1 else "ok"
if mode == "garbage":
    print("this is not json")
    sys.exit(0)
if mode == "stderr":
    sys.stderr.write("something went wrong\\n")
status = 200 if mode != "fail" else 500
print(json.dumps({
    "status": status,
    "actions": [
        {"action": "login", "duration": 10 + run, "status": 200},
        {"action": "pay", "duration": 20, "status": "timeout" if run % 2 else "ok"},
    ],
    "log": json.dumps({"env": env, "argv": sys.argv[1:]}),
}))
sys.exit(0 if mode != "fail" else 3)
"""


@pytest.fixture
def worker_script(tmp_path):
    path = tmp_path / "worker.py"
    path.write_text(textwrap.dedent(WORKER))
    return str(path)


@pytest.fixture
def python():
    return sys.executable


@pytest.fixture(autouse=True)
def restore_root_logger():
    import logging

    root = logging.getLogger()
    handlers, level, hook = list(root.handlers), root.level, sys.excepthook
    yield
    for h in root.handlers:
        if h not in handlers:
            h.close()
    root.handlers[:] = handlers
    root.setLevel(level)
    sys.excepthook = hook

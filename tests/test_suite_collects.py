from __future__ import annotations

import os
import subprocess
import sys

import pytest

ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

# Each module is imported first in a clean interpreter, so an import cycle
# between subpackages fails whichever side happens to load first.
MODULES = [
    "tempsudo.core.audit.models",
    "tempsudo.core.audit.store_jsonl",
    "tempsudo.core.privilege.models",
    "tempsudo.core.privilege",
    "tempsudo.core.errors",
    "tempsudo.core.error_reporter",
    "tempsudo.core.logger",
    "tempsudo.core.ops_log",
    "tempsudo.core.config",
    "tempsudo.core.host.artifacts",
    "tempsudo.core.host.probe",
    "tempsudo.web.api",
    "app",
]


@pytest.mark.parametrize("name", MODULES)
def test_module_imports_in_fresh_interpreter(name):
    env = dict(os.environ)
    env["PYTHONPATH"] = ROOT + os.pathsep + env.get("PYTHONPATH", "")
    proc = subprocess.run(
        [sys.executable, "-c", f"import {name}"],
        cwd=ROOT,
        env=env,
        capture_output=True,
        text=True,
        timeout=60,
    )
    assert proc.returncode == 0, proc.stderr


@pytest.mark.parametrize("script", ["list_orphans", "print_config", "verify_audit"])
def test_scripts_load_in_fresh_interpreter(script):
    env = dict(os.environ)
    env["PYTHONPATH"] = ROOT + os.pathsep + env.get("PYTHONPATH", "")
    code = (
        "import importlib.util, sys\n"
        f"spec = importlib.util.spec_from_file_location('s', r'{os.path.join(ROOT, 'scripts', script + '.py')}')\n"
        "mod = importlib.util.module_from_spec(spec)\n"
        "spec.loader.exec_module(mod)\n"
    )
    proc = subprocess.run([sys.executable, "-c", code], cwd=ROOT, env=env, capture_output=True, text=True, timeout=60)
    assert proc.returncode == 0, proc.stderr

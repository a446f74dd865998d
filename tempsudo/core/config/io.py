from __future__ import annotations

import json
import os
import shutil
import tempfile
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class ReadResult:
    ok: bool
    data: Dict[str, Any]
    error: Optional[str] = None


def read_json_file(path: str) -> ReadResult:
    """Read one config section; `error` is "missing", "not_object", "corrupt_json:..." or an OS message."""
    if not os.path.exists(path):
        return ReadResult(ok=False, data={}, error="missing")
    try:
        with open(path, "r", encoding="utf-8") as f:
            obj = json.load(f)
    except json.JSONDecodeError as e:
        return ReadResult(ok=False, data={}, error=f"corrupt_json:{e}")
    except OSError as e:
        return ReadResult(ok=False, data={}, error=str(e))
    if not isinstance(obj, dict):
        return ReadResult(ok=False, data={}, error="not_object")
    return ReadResult(ok=True, data=obj)


def atomic_write_json(path: str, data: Dict[str, Any]) -> None:
    directory = os.path.dirname(path) or "."
    os.makedirs(directory, exist_ok=True)
    fd, tmp = tempfile.mkstemp(prefix=".tmp_", suffix=".json", dir=directory)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, sort_keys=True)
            f.write("\n")
        os.replace(tmp, path)
    finally:
        if os.path.exists(tmp):
            os.remove(tmp)


def quarantine_corrupt(path: str, backups_dir: str) -> Optional[str]:
    """Move a corrupt section file to `backups_dir` so defaults can take its place."""
    if not os.path.exists(path):
        return None
    os.makedirs(backups_dir, exist_ok=True)
    stamp = time.strftime("%Y%m%d_%H%M%S", time.gmtime())
    dst = os.path.join(backups_dir, f"{os.path.basename(path)}.{stamp}.corrupt.json")
    shutil.move(path, dst)
    return dst

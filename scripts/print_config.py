from __future__ import annotations

import argparse
import json

from tempsudo.core.config import ConfigManager
from tempsudo.core.config.paths import ConfigFsPaths


def main() -> None:
    ap = argparse.ArgumentParser(description="Print the effective tempsudo configuration")
    ap.add_argument("--root", default=".")
    args = ap.parse_args()
    cm = ConfigManager(fs=ConfigFsPaths(args.root), logger=None, read_only=True)
    cfg = cm.load_all()
    print(json.dumps(cfg.model_dump(), indent=2, sort_keys=True))


if __name__ == "__main__":
    main()

from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class ConfigFsPaths:
    root: str = "."

    @property
    def config_dir(self) -> str:
        return os.path.join(self.root, "config")

    @property
    def backups_dir(self) -> str:
        return os.path.join(self.config_dir, "backups")

    # Files
    @property
    def privilege(self) -> str:
        return os.path.join(self.config_dir, "privilege.json")

    @property
    def audit(self) -> str:
        return os.path.join(self.config_dir, "audit.json")

    @property
    def sweeper(self) -> str:
        return os.path.join(self.config_dir, "sweeper.json")

    @property
    def web(self) -> str:
        return os.path.join(self.config_dir, "web.json")

    @property
    def logging(self) -> str:
        return os.path.join(self.config_dir, "logging.json")

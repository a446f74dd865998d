from __future__ import annotations

import os
from typing import Any, Dict, Mapping, Optional, Tuple, Type

from pydantic import BaseModel, ValidationError

from tempsudo.core.config.io import atomic_write_json, quarantine_corrupt, read_json_file
from tempsudo.core.config.models import AppConfig, AuditConfig, LoggingConfig, PrivilegeConfig, SweeperConfig, WebConfig
from tempsudo.core.config.paths import ConfigFsPaths
from tempsudo.core.errors import ConfigError

# section name -> (file attribute on ConfigFsPaths, model)
SECTIONS: Dict[str, Tuple[str, Type[BaseModel]]] = {
    "privilege": ("privilege", PrivilegeConfig),
    "audit": ("audit", AuditConfig),
    "sweeper": ("sweeper", SweeperConfig),
    "web": ("web", WebConfig),
    "logging": ("logging", LoggingConfig),
}

# env var -> (section, field)
ENV_OVERRIDES: Dict[str, Tuple[str, str]] = {
    "TEMPSUDO_ARTIFACT_DIR": ("privilege", "artifact_dir"),
    "TEMPSUDO_AUDIT_LOG": ("audit", "audit_log_path"),
    "TEMPSUDO_SWEEP_INTERVAL": ("sweeper", "sweep_interval_seconds"),
    "TEMPSUDO_PORT": ("web", "port"),
    "TEMPSUDO_LOG_DIR": ("logging", "log_dir"),
}


class ConfigManager:
    """
    Loads config/<section>.json files into a validated AppConfig.

    Missing files are created with defaults; a corrupt file is moved to
    config/backups/ and replaced by defaults. Invalid values are fatal.
    """

    def __init__(self, *, fs: Optional[ConfigFsPaths] = None, logger=None, read_only: bool = False, env: Optional[Mapping[str, str]] = None):
        self.fs = fs or ConfigFsPaths(".")
        self.logger = logger
        self.read_only = read_only
        self.env = os.environ if env is None else env
        self._cfg: Optional[AppConfig] = None

    # ---------- public API ----------
    def load_all(self) -> AppConfig:
        raw: Dict[str, Dict[str, Any]] = {}
        for section, (attr, model) in SECTIONS.items():
            raw[section] = self._load_section(getattr(self.fs, attr), model)
        self._apply_env(raw)
        try:
            cfg = AppConfig.model_validate(raw)
        except ValidationError as e:
            raise ConfigError("Invalid configuration.", errors=_short_errors(e)) from e
        self._cfg = cfg
        return cfg

    def get(self) -> AppConfig:
        if self._cfg is None:
            raise ConfigError("Config not loaded.")
        return self._cfg

    # ---------- internals ----------
    def _load_section(self, path: str, model: Type[BaseModel]) -> Dict[str, Any]:
        rr = read_json_file(path)
        if rr.ok:
            return rr.data
        defaults = model().model_dump()
        if rr.error and rr.error.startswith("corrupt_json"):
            if self.read_only:
                if self.logger:
                    self.logger.warning(f"Config file {os.path.basename(path)} is corrupt; using defaults.")
                return defaults
            try:
                moved = quarantine_corrupt(path, self.fs.backups_dir)
            except OSError as e:
                raise ConfigError("Corrupt configuration file could not be moved aside.", path=path, error=str(e)) from e
            if self.logger:
                self.logger.warning(f"Config file {os.path.basename(path)} is corrupt; moved to {moved}, using defaults.")
        elif rr.error not in {"missing"}:
            raise ConfigError("Unreadable configuration file.", path=path, error=rr.error)
        if not self.read_only:
            try:
                atomic_write_json(path, defaults)
            except OSError as e:
                raise ConfigError("Could not write default configuration.", path=path, error=str(e)) from e
        return defaults

    def _apply_env(self, raw: Dict[str, Dict[str, Any]]) -> None:
        for var, (section, field) in ENV_OVERRIDES.items():
            val = self.env.get(var)
            if val is None or val == "":
                continue
            raw.setdefault(section, {})[field] = val
            if self.logger:
                self.logger.info(f"Config override from {var}: {section}.{field}")


def _short_errors(e: ValidationError) -> list[str]:
    return [f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg', '')}" for err in e.errors()]


def get_config(*, root: str = ".", logger=None, read_only: bool = False) -> ConfigManager:
    cm = ConfigManager(fs=ConfigFsPaths(root), logger=logger, read_only=read_only)
    cm.load_all()
    return cm

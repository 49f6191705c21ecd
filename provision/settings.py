"""
Settings
--------
Reads the optional orchestrator config (bundled as ``provision/data/setup.yml``) and applies
environment overrides.

Order of precedence for every key:
1. SETUP_* environment variable
2. value in the YAML config
3. built-in default
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .errors import ConfigError
from .modules.base import DEFAULT_TIMEOUT, ModuleConfig

logger = logging.getLogger(__name__)

# Shipped as package data so an installed CLI finds them
DATA_DIR = Path(__file__).resolve().parent / "data"
CONFIG_DEFAULT = DATA_DIR / "setup.yml"
BUNDLED_MODULES_DIR = DATA_DIR / "modules"

CONFIG_ENV_VAR = "SETUP_CONFIG"
MODULES_DIR_ENV_VAR = "SETUP_MODULES_DIR"
LOG_DIR_ENV_VAR = "SETUP_LOG_DIR"
TIMEOUT_ENV_VAR = "SETUP_TIMEOUT"
DRY_RUN_ENV_VAR = "SETUP_DRY_RUN"

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass
class Settings:
    modules_dir: Path = BUNDLED_MODULES_DIR
    log_dir: Path = Path("~/.local/share/workstation-setup/logs").expanduser()
    log_retention: int = 10
    lock_file: Path = Path("~/.cache/workstation-setup/setup.lock").expanduser()
    lock_timeout: float = 30
    default_timeout: int = DEFAULT_TIMEOUT
    min_free_gb: float = 5
    dry_run: bool = False
    modules: Dict[str, Dict[str, Any]] = field(default_factory=dict)

    def module_config(self, name: str, descriptor_timeout: Optional[int] = None) -> ModuleConfig:
        """Build the recipe config for one module.

        Timeout precedence: ``modules.<name>.timeout`` in the config, then the
        descriptor's own timeout, then ``default_timeout``.
        """
        overrides = self.modules.get(name) or {}
        timeout = overrides.get("timeout")
        if timeout is not None and (isinstance(timeout, bool) or not isinstance(timeout, int) or timeout <= 0):
            raise ConfigError(f"'modules.{name}.timeout' must be a positive integer, got {timeout!r}")
        timeout = timeout or descriptor_timeout or self.default_timeout
        return ModuleConfig(
            enabled=bool(overrides.get("enabled", True)),
            flags=[str(f) for f in overrides.get("flags") or []],
            timeout=int(timeout),
        )


def load_config(path: Path) -> dict:
    """Load the YAML config; a missing file yields an empty mapping."""
    if not path.exists():
        logger.debug("Config file %s not found, using defaults", path)
        return {}
    try:
        with path.open("r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh) or {}
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigError(f"Failed to parse {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a mapping at the top level")
    return data


def _env_flag(name: str) -> Optional[bool]:
    value = os.getenv(name)
    if value is None:
        return None
    return value.strip().lower() in _TRUTHY


def _expand(value: Any, base: Path) -> Path:
    path = Path(str(value)).expanduser()
    return path if path.is_absolute() else base / path


def load_settings(path: Path | None = None) -> Settings:
    """Build Settings from the config file and the environment."""
    env_path = os.getenv(CONFIG_ENV_VAR)
    config_path = path or (Path(env_path).expanduser() if env_path else CONFIG_DEFAULT)
    data = load_config(config_path)
    settings = Settings()

    # Relative paths in the config are relative to the config file itself
    for key in ("modules_dir", "log_dir", "lock_file"):
        if data.get(key):
            setattr(settings, key, _expand(data[key], config_path.parent))

    try:
        for key, cast in (
            ("log_retention", int),
            ("lock_timeout", float),
            ("default_timeout", int),
            ("min_free_gb", float),
        ):
            if data.get(key) is not None:
                setattr(settings, key, cast(data[key]))
        if os.getenv(TIMEOUT_ENV_VAR):
            settings.default_timeout = int(os.environ[TIMEOUT_ENV_VAR])
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid numeric setting: {exc}") from exc

    modules = data.get("modules") or {}
    if not isinstance(modules, dict):
        raise ConfigError("'modules' must be a mapping of module name to overrides")
    settings.modules = {name: (cfg or {}) for name, cfg in modules.items()}
    for name, cfg in settings.modules.items():
        if not isinstance(cfg, dict):
            raise ConfigError(f"Overrides for module '{name}' must be a mapping")
        if not isinstance(cfg.get("flags") or [], list):
            raise ConfigError(f"'modules.{name}.flags' must be a list")
        settings.module_config(name)

    settings.dry_run = bool(data.get("dry_run", False))
    env_dry_run = _env_flag(DRY_RUN_ENV_VAR)
    if env_dry_run is not None:
        settings.dry_run = env_dry_run

    if os.getenv(MODULES_DIR_ENV_VAR):
        settings.modules_dir = Path(os.environ[MODULES_DIR_ENV_VAR]).expanduser()
    if os.getenv(LOG_DIR_ENV_VAR):
        settings.log_dir = Path(os.environ[LOG_DIR_ENV_VAR]).expanduser()

    return settings

"""Configuration loading helpers for novel-fetcher."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path

import yaml
from pydantic import ValidationError

from ..errors import ConfigError
from .models import GlobalConfig

CONFIG_EXTENSIONS = (".yaml", ".yml", ".json")
GLOBAL_CONFIG_FILENAME = "novel_fetcher.yaml"
HOME_ENV_VAR = "NOVEL_FETCHER_HOME"


def _read_file(path: Path) -> dict:
    text = path.read_text(encoding="utf-8")
    try:
        if path.suffix in (".yaml", ".yml"):
            data = yaml.safe_load(text) or {}
        else:
            data = json.loads(text)
    except (yaml.YAMLError, json.JSONDecodeError) as exc:
        raise ConfigError(f"Cannot parse configuration file {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Configuration file must contain a mapping: {path}")
    return data


def _write_file(path: Path, payload: dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as stream:
        if path.suffix in (".yaml", ".yml"):
            yaml.safe_dump(payload, stream, allow_unicode=True, sort_keys=False)
        else:
            json.dump(payload, stream, indent=2, ensure_ascii=False)


@dataclass(slots=True)
class ConfigLocator:
    """Resolve the config file and log directory from the project home."""

    project_root: Path | None = None
    config_path: Path | None = None
    logs_dir: Path | None = None

    def __post_init__(self) -> None:
        env_root = os.environ.get(HOME_ENV_VAR)
        if self.project_root is not None:
            root = Path(self.project_root)
        elif env_root:
            root = Path(env_root).expanduser()
        else:
            root = Path.cwd()
        self.project_root = root.resolve()
        if self.config_path is None:
            self.config_path = self.project_root / GLOBAL_CONFIG_FILENAME
        self.logs_dir = (self.project_root / "logs").resolve()

    def global_config_path(self) -> Path:
        return Path(self.config_path)


class ConfigRepository:
    """Repository encapsulating config IO and schema validation."""

    def __init__(self, locator: ConfigLocator | None = None) -> None:
        self.locator = locator or ConfigLocator()
        self._global_cache: GlobalConfig | None = None

    def load_global_config(self) -> GlobalConfig:
        if self._global_cache is not None:
            return self._global_cache
        path = self.locator.global_config_path()
        if path.exists():
            if path.suffix not in CONFIG_EXTENSIONS:
                raise ConfigError(f"Unsupported configuration format: {path}")
            payload = _read_file(path)
            try:
                global_cfg = GlobalConfig.model_validate(payload)
            except ValidationError as exc:
                raise ConfigError(f"Invalid configuration in {path}: {exc}") from exc
        else:
            global_cfg = GlobalConfig()
        self._global_cache = global_cfg
        return global_cfg

    def save_global_config(self, config: GlobalConfig) -> Path:
        path = self.locator.global_config_path()
        _write_file(path, config.model_dump(mode="json"))
        self._global_cache = config
        return path


__all__ = ["ConfigLocator", "ConfigRepository", "CONFIG_EXTENSIONS", "GLOBAL_CONFIG_FILENAME"]

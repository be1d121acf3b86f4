"""Configuration loading helpers for the leak checker."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path

import yaml
from pydantic import ValidationError

from ..exceptions import ConfigurationError
from .models import DownloaderConfig

CONFIG_EXTENSIONS = (".yaml", ".yml", ".json")
DEFAULT_CONFIG_FILENAME = "leaked-passwords-checker.json"


def _read_file(path: Path) -> dict:
    text = path.read_text(encoding="utf-8")
    if path.suffix in (".yaml", ".yml"):
        data = yaml.safe_load(text) or {}
    else:
        data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError(f"Configuration file must contain a mapping: {path}")
    return data


def _write_file(path: Path, payload: dict) -> None:
    with path.open("w", encoding="utf-8") as stream:
        if path.suffix in (".yaml", ".yml"):
            yaml.safe_dump(payload, stream, allow_unicode=True, sort_keys=False)
        else:
            json.dump(payload, stream, indent=2, ensure_ascii=False)
            stream.write("\n")


@dataclass(slots=True)
class ConfigLocator:
    """Resolve important paths from project root."""

    project_root: Path | None = None
    config_dir: Path | None = None
    database_dir: Path | None = None
    logs_dir: Path | None = None

    def __post_init__(self) -> None:
        env_root = os.environ.get("LEAK_CHECKER_HOME")
        if env_root:
            root = Path(env_root).expanduser().resolve()
        else:
            root = (self.project_root or Path.cwd()).resolve()
        self.project_root = root
        self.config_dir = (root / "configs").resolve()
        self.database_dir = (root / "database").resolve()
        self.logs_dir = (root / "logs").resolve()

    def ensure_directories(self) -> None:
        for directory in (self.config_dir, self.database_dir, self.logs_dir):
            directory.mkdir(parents=True, exist_ok=True)

    def default_config_path(self) -> Path:
        return self.config_dir / DEFAULT_CONFIG_FILENAME


class ConfigRepository:
    """Repository encapsulating config IO and schema validation."""

    def __init__(self, locator: ConfigLocator | None = None) -> None:
        self.locator = locator or ConfigLocator()

    def resolve_path(self, path: Path | None = None) -> Path:
        if path is None:
            return self.locator.default_config_path()
        path = path.expanduser()
        if not path.is_absolute():
            path = self.locator.project_root / path
        return path

    def load(self, path: Path | None = None) -> DownloaderConfig:
        """Read and validate the configuration file; any problem is fatal."""

        config_path = self.resolve_path(path)
        if not config_path.exists():
            raise ConfigurationError(f"Configuration file not found: {config_path}")
        if config_path.suffix not in CONFIG_EXTENSIONS:
            raise ConfigurationError(f"Unsupported configuration format: {config_path.suffix}")
        try:
            payload = _read_file(config_path)
            return DownloaderConfig.model_validate(payload)
        except (OSError, ValueError, yaml.YAMLError) as exc:
            # ValidationError and JSONDecodeError are both ValueErrors
            detail = exc.errors() if isinstance(exc, ValidationError) else exc
            raise ConfigurationError(f"Invalid configuration {config_path}: {detail}") from exc

    def save(self, config: DownloaderConfig, path: Path | None = None) -> Path:
        config_path = self.resolve_path(path)
        config_path.parent.mkdir(parents=True, exist_ok=True)
        _write_file(config_path, config.model_dump(mode="json"))
        return config_path

    def database_path(self, config: DownloaderConfig) -> Path:
        return config.resolved_database_path(self.locator.project_root)

    def log_path(self, config: DownloaderConfig) -> Path:
        return config.resolved_log_path(self.locator.project_root)


__all__ = ["CONFIG_EXTENSIONS", "ConfigLocator", "ConfigRepository", "DEFAULT_CONFIG_FILENAME"]

"""Configuration loading helpers for lite-crawler."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path

import yaml
from pydantic import ValidationError as PydanticValidationError

from ..errors import ValidationError
from .models import CrawlerConfig

CONFIG_EXTENSIONS = (".yaml", ".yml", ".json")
CONFIG_FILENAME = "crawler.yaml"


def _read_file(path: Path) -> dict:
    text = path.read_text(encoding="utf-8")
    if path.suffix in (".yaml", ".yml"):
        data = yaml.safe_load(text) or {}
    else:
        data = json.loads(text)
    if not isinstance(data, dict):
        raise ValidationError(f"Configuration file must contain a mapping: {path}")
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
    """Resolve the project home and the default config file beneath it."""

    project_root: Path | None = None

    def __post_init__(self) -> None:
        env_root = os.environ.get("LITE_CRAWLER_HOME")
        if env_root:
            root = Path(env_root).expanduser()
        else:
            root = self.project_root or Path.cwd()
        self.project_root = root.resolve()

    def config_path(self) -> Path:
        return self.project_root / CONFIG_FILENAME


def load_config(path: Path | str | None = None, locator: ConfigLocator | None = None) -> CrawlerConfig:
    """Load settings from ``path`` or the located default file.

    A missing default file yields the built-in defaults; an explicit path
    that does not exist raises ``FileNotFoundError``.
    """

    if path is None:
        candidate = (locator or ConfigLocator()).config_path()
        if not candidate.exists():
            return CrawlerConfig()
    else:
        candidate = Path(path)
        if not candidate.exists():
            raise FileNotFoundError(f"Configuration file not found: {candidate}")
    if candidate.suffix not in CONFIG_EXTENSIONS:
        raise ValidationError(f"Unsupported configuration format: {candidate.suffix}")
    payload = _read_file(candidate)
    try:
        return CrawlerConfig.model_validate(payload)
    except PydanticValidationError as exc:
        raise ValidationError(f"Invalid configuration in {candidate}: {exc}") from exc


def save_config(config: CrawlerConfig, path: Path | str) -> Path:
    target = Path(path)
    if target.suffix not in CONFIG_EXTENSIONS:
        raise ValidationError(f"Unsupported configuration format: {target.suffix}")
    _write_file(target, config.model_dump(mode="json"))
    return target


__all__ = ["CONFIG_EXTENSIONS", "ConfigLocator", "load_config", "save_config"]

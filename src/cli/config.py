"""Locate and load config.yaml into CultivateConfig."""

import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import ValidationError

from .config_models import CultivateConfig


def config_candidates() -> list[Path]:
    """Search order: cwd, $CULTIVATE_HOME, ~/.cultivate, ~/cultivate."""
    candidates = [Path.cwd() / "config.yaml"]
    home = os.getenv("CULTIVATE_HOME")
    if home:
        candidates.append(Path(home).expanduser() / "config.yaml")
    candidates += [
        Path.home() / ".cultivate" / "config.yaml",
        Path.home() / "cultivate" / "config.yaml",
    ]
    return candidates


def find_config() -> Optional[Path]:
    return next((p for p in config_candidates() if p.exists()), None)


def load_config_model(config_path: Optional[Path] = None) -> CultivateConfig:
    """Validated config; an absent file means all defaults.

    Raises:
        ValueError: unreadable YAML or a value the models reject.
    """
    path = config_path or find_config()
    data: dict = {}
    if path and path.exists():
        try:
            data = yaml.safe_load(path.read_text()) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in config file {path}: {e}")
        if not isinstance(data, dict):
            raise ValueError(f"Config file {path} must hold a mapping")

    try:
        return CultivateConfig.from_dict(data)
    except ValidationError as e:
        raise ValueError(f"Config validation failed: {e}")


def load_config(config_path: Optional[Path] = None) -> dict:
    """Plain-dict view of load_config_model()."""
    return load_config_model(config_path).to_dict()

"""Configuration management for the bizplan calculation engine."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml


@dataclass
class CacheSettings:
    """Memoization cache settings."""
    # None or 0 keeps every entry for the process lifetime
    max_entries: Optional[int] = 1024


@dataclass
class IRRSettings:
    """Bisection search settings for the internal rate of return."""
    lower_rate: float = 0.0
    upper_rate: float = 100.0
    max_iterations: int = 20
    tolerance: float = 0.01


@dataclass
class Settings:
    """Engine settings."""
    cache: CacheSettings = field(default_factory=CacheSettings)
    irr: IRRSettings = field(default_factory=IRRSettings)


DEFAULT_CONFIG_PATH = Path(__file__).parent.parent / "config" / "settings.yaml"
CONFIG_PATH_ENV_VAR = "BIZPLAN_SETTINGS"


def load_settings(config_path: Optional[Path] = None) -> Settings:
    """Load settings from YAML configuration file."""
    if config_path is None:
        env_path = os.environ.get(CONFIG_PATH_ENV_VAR)
        config_path = Path(env_path) if env_path else DEFAULT_CONFIG_PATH

    if not config_path.exists():
        return Settings()

    with config_path.open() as f:
        data = yaml.safe_load(f) or {}

    cache_data = data.get("cache", {}) or {}
    irr_data = data.get("irr", {}) or {}

    return Settings(
        cache=CacheSettings(**cache_data),
        irr=IRRSettings(**irr_data),
    )


# Global settings instance
settings = load_settings()

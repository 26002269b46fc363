"""Settings loading: ``config/settings.yaml`` plus environment overrides."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Optional

import yaml

DEFAULT_CONFIG_PATH = Path("config/settings.yaml")
CONFIG_PATH_ENV = "PAPERFORGE_CONFIG"
DEFAULT_DB_PATH = "data/db/paperforge.sqlite"
DEFAULT_TIMEOUT_SECONDS = 90.0


class Settings:
    """Lazily loaded application settings.

    The yaml file is optional; when it is missing every accessor falls back
    to its default so the service (and the tests) can run without it. With no
    explicit path, $PAPERFORGE_CONFIG is used before the default location.
    """

    def __init__(
        self,
        config_path: Optional[Path | str] = None,
        overrides: Optional[dict[str, Any]] = None,
    ):
        if config_path is None:
            config_path = os.environ.get(CONFIG_PATH_ENV) or DEFAULT_CONFIG_PATH
        self.config_path = Path(config_path)
        self._config: Optional[dict] = None
        self._overrides = overrides or {}

    @property
    def config(self) -> dict:
        if self._config is None:
            data: dict = {}
            if self.config_path.exists():
                with open(self.config_path) as f:
                    data = yaml.safe_load(f) or {}
            for key, value in self._overrides.items():
                section, _, name = key.partition(".")
                data.setdefault(section, {})[name] = value
            self._config = data
        return self._config

    def section(self, name: str) -> dict:
        return self.config.get(name) or {}

    @property
    def db_path(self) -> str:
        env = os.environ.get("PAPERFORGE_DB_PATH")
        if env:
            return env
        return self.section("app").get("database_path", DEFAULT_DB_PATH)

    @property
    def cors_origins(self) -> list[str]:
        return self.section("app").get("cors_origins", ["http://localhost:3000"])

    @property
    def generation_timeout(self) -> float:
        env = os.environ.get("PAPERFORGE_GENERATION_TIMEOUT")
        if env:
            return float(env)
        return float(self.section("generation").get("timeout_seconds", DEFAULT_TIMEOUT_SECONDS))

    @property
    def generation_temperature(self) -> float:
        return float(self.section("generation").get("temperature", 0.7))

    @property
    def generation_max_tokens(self) -> int:
        return int(self.section("generation").get("max_tokens", 8192))

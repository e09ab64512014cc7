"""
Governor TOML Configuration Loader

Loads governor.toml with environment variable overrides
(dataclass + from_dict + from_file + apply_env).

Environment variable mapping:
    [governor] execution_delay     → GOVERNOR_EXECUTION_DELAY
    [governor] default_vote_weight → GOVERNOR_DEFAULT_VOTE_WEIGHT
    [governor] admin               → GOVERNOR_ADMIN
    [governor] governors           → GOVERNOR_GOVERNORS (comma separated)
    [governor] log_level           → GOVERNOR_LOG_LEVEL
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from .constants import (
    GOVERNOR_CONFIG_FILE,
    GOVERNOR_DEFAULT_VOTE_WEIGHT,
    GOVERNOR_EXECUTION_DELAY_SECONDS,
)
from .exceptions import ConfigurationError
from .logger import get_logger

logger = get_logger(__name__)

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class GovernorConfig:
    """[governor] section."""
    execution_delay: int = GOVERNOR_EXECUTION_DELAY_SECONDS
    default_vote_weight: int = GOVERNOR_DEFAULT_VOTE_WEIGHT
    admin: str = ""
    governors: List[str] = field(default_factory=list)
    log_level: str = ""  # empty: keep LOG_LEVEL from .env

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        if self.execution_delay < 0:
            raise ConfigurationError(
                f"execution_delay must be >= 0 (got {self.execution_delay})"
            )
        if self.default_vote_weight <= 0:
            raise ConfigurationError(
                f"default_vote_weight must be > 0 (got {self.default_vote_weight})"
            )
        if self.log_level and self.log_level.upper() not in _LOG_LEVELS:
            raise ConfigurationError(f"Unknown log_level: {self.log_level!r}")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GovernorConfig":
        section = data.get("governor", data)
        return cls(
            execution_delay=int(section.get("execution_delay", GOVERNOR_EXECUTION_DELAY_SECONDS)),
            default_vote_weight=int(section.get("default_vote_weight", GOVERNOR_DEFAULT_VOTE_WEIGHT)),
            admin=section.get("admin", ""),
            governors=list(section.get("governors", [])),
            log_level=section.get("log_level", ""),
        )

    @classmethod
    def from_file(cls, path: str | Path) -> "GovernorConfig":
        """Load from TOML, then apply env overrides. Missing file → defaults."""
        path = Path(path)
        if path.exists():
            with path.open("rb") as fh:
                try:
                    data = tomllib.load(fh)
                except tomllib.TOMLDecodeError as e:
                    raise ConfigurationError(f"Cannot parse {path}: {e}") from e
            config = cls.from_dict(data)
            logger.info(f"Loaded governor config from {path}")
        else:
            config = cls()
            logger.debug(f"No config at {path}, using defaults")
        config.apply_env()
        return config

    def apply_env(self) -> None:
        """Override from environment variables."""
        try:
            if v := os.environ.get("GOVERNOR_EXECUTION_DELAY"):
                self.execution_delay = int(v)
            if v := os.environ.get("GOVERNOR_DEFAULT_VOTE_WEIGHT"):
                self.default_vote_weight = int(v)
        except ValueError as e:
            raise ConfigurationError(f"Invalid numeric override: {e}") from e
        if v := os.environ.get("GOVERNOR_ADMIN"):
            self.admin = v
        if v := os.environ.get("GOVERNOR_GOVERNORS"):
            self.governors = [g.strip() for g in v.split(",") if g.strip()]
        if v := os.environ.get("GOVERNOR_LOG_LEVEL"):
            self.log_level = v
        self.validate()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "executionDelay": self.execution_delay,
            "defaultVoteWeight": self.default_vote_weight,
            "admin": self.admin,
            "governors": list(self.governors),
            "logLevel": self.log_level,
        }


def load_config(path: Optional[str] = None) -> GovernorConfig:
    """
    Load governor configuration.

    Resolution order:
        1. Explicit *path* argument
        2. GOVERNOR_CONFIG env var
        3. ./governor.toml in current directory
        4. Defaults (with env overrides)
    """
    if path is None:
        path = os.environ.get("GOVERNOR_CONFIG", GOVERNOR_CONFIG_FILE)

    return GovernorConfig.from_file(path)

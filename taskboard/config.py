# taskboard: configuration
# Override paths via config.yaml, $TASKBOARD_CONFIG or $TASKBOARD_DB.

import logging
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import yaml

CONFIG_PATH = Path("~/.config/taskboard/config.yaml")
LOG_FORMAT = "%(asctime)s [taskboard] %(levelname)s: %(message)s"


class ConfigError(Exception):
    """Raised when configuration is invalid or incomplete."""
    pass


@dataclass
class Config:
    """Runtime configuration for a board store."""

    # Storage
    db_path: str = "~/.local/share/taskboard/taskboard.db"
    slot_key: str = "boards"

    # Behavior
    log_level: str = "INFO"
    flush_timeout: float = 5.0  # seconds close() waits for the last write

    def resolve(self) -> "Config":
        """Apply environment overrides, expand ~ and check values."""
        env_db = os.environ.get("TASKBOARD_DB")
        if env_db:
            self.db_path = env_db
        self.db_path = str(Path(self.db_path).expanduser())

        if not isinstance(self.slot_key, str) or not self.slot_key.strip():
            raise ConfigError("slot_key must be a non-empty string")
        level = logging.getLevelName(str(self.log_level).upper())
        if not isinstance(level, int):
            raise ConfigError(f"Unknown log_level: {self.log_level!r}")
        self.log_level = str(self.log_level).upper()
        try:
            self.flush_timeout = float(self.flush_timeout)
        except (TypeError, ValueError):
            raise ConfigError(f"flush_timeout must be a number, got {self.flush_timeout!r}")
        if self.flush_timeout < 0:
            raise ConfigError("flush_timeout must be >= 0")
        return self

    @classmethod
    def load(cls, path: Optional[str] = None) -> "Config":
        """Load config from YAML file, falling back to defaults."""
        cfg_path = Path(path or os.environ.get("TASKBOARD_CONFIG") or CONFIG_PATH).expanduser()
        if cfg_path.exists():
            try:
                with open(cfg_path, "r") as f:
                    data = yaml.safe_load(f) or {}
            except (OSError, yaml.YAMLError) as e:
                raise ConfigError(f"Cannot read config {cfg_path}: {e}") from e
            if not isinstance(data, dict):
                raise ConfigError(f"Config {cfg_path} must be a mapping")
            cfg = cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})
        else:
            cfg = cls()
        return cfg.resolve()


def configure_logging(level: str = "INFO") -> None:
    """Send taskboard log records to stdout."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stdout)],
    )

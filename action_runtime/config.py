"""
Action runtime configuration.

Settings come from an optional JSON file, then environment variables
(a .env file in the working directory is loaded first).

Configuration path priority:
1. Explicit config_path argument
2. ACTION_RUNTIME_CONFIG_PATH environment variable
3. None: built-in defaults only
"""

import json
import logging
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

ENV_CONFIG_PATH = 'ACTION_RUNTIME_CONFIG_PATH'
ENV_POLL_INTERVAL = 'ACTION_RUNTIME_POLL_INTERVAL'
ENV_MAX_WORKERS = 'ACTION_RUNTIME_MAX_WORKERS'
ENV_COMMAND_TIMEOUT = 'ACTION_RUNTIME_COMMAND_TIMEOUT'
ENV_LOG_LEVEL = 'ACTION_RUNTIME_LOG_LEVEL'
ENV_LOG_FILE = 'ACTION_RUNTIME_LOG_FILE'

LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "INFO"
    file: Optional[str] = None


@dataclass
class RuntimeConfig:
    """Runtime settings for the scheduler loop and command runner."""
    poll_interval_seconds: float = 1.0
    max_workers: int = 10
    command_timeout: Optional[float] = None  # None: commands may run indefinitely
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    config_path: Optional[Path] = None

    @classmethod
    def load(cls, config_path: Optional[str] = None) -> 'RuntimeConfig':
        """
        Load configuration from file and environment.

        Args:
            config_path: Path to a JSON configuration file. If None, uses
                the env var, or defaults when that is unset too.

        Raises:
            ValueError: If a setting cannot be parsed
        """
        if config_path:
            path = Path(config_path).expanduser()
        elif os.environ.get(ENV_CONFIG_PATH):
            path = Path(os.environ[ENV_CONFIG_PATH]).expanduser()
        else:
            path = None

        config = cls(config_path=path)
        if path is not None:
            if path.exists():
                config._load_file(path)
            else:
                logger.info(f"No config found at {path}, using defaults")

        config._apply_environment()
        return config

    def _load_file(self, path: Path):
        try:
            with open(path, 'r') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to load config from {path}: {e}")
            raise ValueError(f"Failed to load config from {path}: {e}") from e

        if 'poll_interval_seconds' in data:
            self.poll_interval_seconds = float(data['poll_interval_seconds'])
        if 'max_workers' in data:
            self.max_workers = int(data['max_workers'])
        if 'command_timeout' in data:
            timeout = data['command_timeout']
            self.command_timeout = float(timeout) if timeout is not None else None
        if 'logging' in data:
            self.logging = LoggingConfig(**data['logging'])

        logger.info(f"Loaded configuration from {path}")

    def _apply_environment(self):
        try:
            if os.environ.get(ENV_POLL_INTERVAL):
                self.poll_interval_seconds = float(os.environ[ENV_POLL_INTERVAL])
            if os.environ.get(ENV_MAX_WORKERS):
                self.max_workers = int(os.environ[ENV_MAX_WORKERS])
            if os.environ.get(ENV_COMMAND_TIMEOUT):
                self.command_timeout = float(os.environ[ENV_COMMAND_TIMEOUT])
        except ValueError as e:
            raise ValueError(f"Invalid runtime setting in environment: {e}") from e

        if os.environ.get(ENV_LOG_LEVEL):
            self.logging.level = os.environ[ENV_LOG_LEVEL]
        if os.environ.get(ENV_LOG_FILE):
            self.logging.file = os.environ[ENV_LOG_FILE]

    def validate(self) -> List[str]:
        """
        Validate configuration.

        Returns:
            List of validation errors (empty if valid)
        """
        errors = []

        if self.poll_interval_seconds <= 0:
            errors.append("'poll_interval_seconds' must be positive")
        if self.max_workers < 1:
            errors.append("'max_workers' must be at least 1")
        if self.command_timeout is not None and self.command_timeout <= 0:
            errors.append("'command_timeout' must be positive")
        if self.logging.level.upper() not in LOG_LEVELS:
            errors.append(f"'logging.level' must be one of {', '.join(LOG_LEVELS)}")

        return errors

    def to_dict(self) -> Dict[str, Any]:
        return {
            'config_path': str(self.config_path) if self.config_path else None,
            'poll_interval_seconds': self.poll_interval_seconds,
            'max_workers': self.max_workers,
            'command_timeout': self.command_timeout,
            'logging': asdict(self.logging),
        }

    def __repr__(self):
        return (
            f"RuntimeConfig(poll={self.poll_interval_seconds}s, "
            f"workers={self.max_workers}, path={self.config_path})"
        )

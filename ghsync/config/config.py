"""
Configuration management system for GitHub Mirror Sync.

Handles loading and validating configuration from a TOML file, with
overrides from the environment and an optional .env file.
"""

import os
import tomllib
from pathlib import Path
from typing import Any, Dict, Optional, Set

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator


class GitHubConfig(BaseModel):
    """GitHub API configuration."""
    user: Optional[str] = Field(default=None, description="Username for HTTP basic auth")
    token: Optional[str] = Field(default=None, description="GitHub personal access token (optional for public repos)")
    api_url: str = Field(default="https://api.github.com", description="GitHub API URL")
    timeout: float = Field(default=30.0, description="HTTP request timeout in seconds")

    @field_validator("user", "token")
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        """Treat empty credentials as absent."""
        if v is not None and v.strip() == "":
            return None
        return v.strip() if v else v

    @field_validator("timeout")
    @classmethod
    def timeout_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Timeout must be positive")
        return v


class SyncConfig(BaseModel):
    """Repository synchronization configuration."""
    base_dir: str = Field(default=".", description="Directory the mirrors are kept in")
    threads: int = Field(default=1, description="Number of repositories synced in parallel")
    retry_count: int = Field(default=0, description="Extra attempts on transient git errors")
    retry_delay: float = Field(default=5.0, description="Base back-off between attempts in seconds")
    low_speed_time: int = Field(default=60, description="Abort git transfers slower than 1KB/s for this many seconds")

    @field_validator("threads")
    @classmethod
    def threads_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Thread count must be at least 1")
        return v

    @field_validator("retry_count")
    @classmethod
    def retry_count_not_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("Retry count cannot be negative")
        return v


class OwnerTargets(BaseModel):
    """Explicit repositories to mirror for one owner."""
    repos: Set[str] = Field(default_factory=set)


class TargetsConfig(BaseModel):
    """What to mirror."""
    organizations: Set[str] = Field(default_factory=set)
    users: Set[str] = Field(default_factory=set)
    owners: Dict[str, OwnerTargets] = Field(default_factory=dict)
    ignore: Set[str] = Field(default_factory=set)


class LogConfig(BaseModel):
    """Logging configuration."""
    level: str = Field(default="INFO", description="Log level (DEBUG, INFO, WARNING, ERROR)")
    file_path: Optional[str] = Field(default=None, description="Log file path, console only when unset")
    max_file_size: int = Field(default=100, description="Max log file size in MB")
    backup_count: int = Field(default=10, description="Number of backup log files to keep")

    @field_validator("level")
    @classmethod
    def level_valid(cls, v: str) -> str:
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}")
        return v.upper()


class SystemConfig(BaseModel):
    """System-wide configuration."""
    github: GitHubConfig
    sync: SyncConfig
    targets: TargetsConfig
    log: LogConfig


class ConfigManager:
    """Manages application configuration from a TOML file and the environment."""

    def __init__(self, config_file: str, env_file: str = ".env"):
        """Initialize configuration manager.

        Args:
            config_file: Path to the TOML configuration file
            env_file: Path to .env file with overrides
        """
        self.config_file = Path(config_file)
        self.env_file = Path(env_file)
        self.config: Optional[SystemConfig] = None

    def load(self, **overrides: Any) -> SystemConfig:
        """Load and validate configuration.

        Values are resolved in this order, later ones winning:
        1. TOML config file
        2. .env file and process environment
        3. keyword overrides (e.g. from the command line), ignored when None

        Args:
            **overrides: ``base_dir`` and ``threads`` overrides

        Returns:
            Parsed SystemConfig object

        Raises:
            ValueError: If the file cannot be read or the configuration is invalid
        """
        data = self._read_file()

        if self.env_file.exists():
            load_dotenv(self.env_file)

        github_data = {
            "user": self._get_env("GITHUB_USER", data.get("user")),
            "token": self._get_env("GITHUB_TOKEN", data.get("token")),
            "api_url": self._get_env("GITHUB_API_URL", data.get("api_url", "https://api.github.com")),
            "timeout": self._get_env("GITHUB_TIMEOUT", data.get("timeout", 30.0)),
        }

        sync_data = {
            "base_dir": self._get_env("SYNC_BASE_DIR", data.get("base_dir", ".")),
            "threads": self._get_env("SYNC_THREADS", data.get("threads", 1)),
            "retry_count": self._get_env("SYNC_RETRY_COUNT", data.get("retry_count", 0)),
            "retry_delay": self._get_env("SYNC_RETRY_DELAY", data.get("retry_delay", 5.0)),
            "low_speed_time": self._get_env("SYNC_LOW_SPEED_TIME", data.get("low_speed_time", 60)),
        }
        for key in ("base_dir", "threads"):
            if overrides.get(key) is not None:
                sync_data[key] = overrides[key]

        targets_data = {
            "organizations": data.get("organizations", []),
            "users": data.get("users", []),
            "owners": data.get("owner", {}),
            "ignore": data.get("ignore", []),
        }

        log_data = {
            "level": self._get_env("LOG_LEVEL", data.get("log_level", "INFO")),
            "file_path": self._get_env("LOG_FILE", data.get("log_file")),
        }

        try:
            self.config = SystemConfig(
                github=GitHubConfig(**github_data),
                sync=SyncConfig(**sync_data),
                targets=TargetsConfig(**targets_data),
                log=LogConfig(**log_data),
            )
        except ValidationError as e:
            raise ValueError(f"Invalid configuration in {self.config_file}: {e}") from e

        return self.config

    def _read_file(self) -> Dict[str, Any]:
        """Read the TOML configuration file."""
        try:
            with open(self.config_file, "rb") as f:
                return tomllib.load(f)
        except OSError as e:
            raise ValueError(f"Cannot read configuration file {self.config_file}: {e}") from e
        except tomllib.TOMLDecodeError as e:
            raise ValueError(f"Invalid TOML in {self.config_file}: {e}") from e

    def get(self) -> SystemConfig:
        """Get current configuration.

        Returns:
            Current SystemConfig object

        Raises:
            RuntimeError: If configuration not loaded
        """
        if not self.config:
            raise RuntimeError("Configuration not loaded. Call load() first.")
        return self.config

    @staticmethod
    def _get_env(key: str, default: Any = None) -> Any:
        """Get environment variable, falling back to default when unset or empty."""
        value = os.getenv(key)
        if value is None or value == "":
            return default
        return value


def load_config(config_file: str, env_file: str = ".env", **overrides: Any) -> SystemConfig:
    """Load configuration from a TOML file.

    Args:
        config_file: Path to the TOML configuration file
        env_file: Path to .env file with overrides
        **overrides: ``base_dir`` and ``threads`` overrides

    Returns:
        Parsed SystemConfig object
    """
    return ConfigManager(config_file, env_file=env_file).load(**overrides)

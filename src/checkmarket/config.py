"""Configuration management for Checkmarket."""

import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .data_store import BackendType
from .errors import ValidationError

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class DataConfig:
    """Data storage configuration."""

    storage_dir: Path
    backend: str = "json"
    sqlite_timeout: float = 5.0


@dataclass
class DisplayConfig:
    """Display configuration."""

    currency: str = "$"


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "WARNING"


@dataclass
class Config:
    """Complete application configuration."""

    data: DataConfig
    display: DisplayConfig
    logging: LoggingConfig


class ConfigManager:
    """Manages application configuration from TOML files."""

    def __init__(self, config_path: Path | None = None):
        """Initialize configuration manager.

        Args:
            config_path: Optional explicit path to config file.
                        If not provided, searches standard locations.
        """
        self.config_path = config_path or self._find_config()
        self._config = self._load_config()

    @property
    def data(self) -> DataConfig:
        """Get data configuration."""
        return self._config.data

    @property
    def display(self) -> DisplayConfig:
        """Get display configuration."""
        return self._config.display

    @property
    def logging(self) -> LoggingConfig:
        """Get logging configuration."""
        return self._config.logging

    def _find_config(self) -> Path:
        """Find config file in standard locations."""
        locations = [
            Path.cwd() / "config.toml",
            Path.home() / ".config" / "checkmarket" / "config.toml",
            Path.home() / ".checkmarket" / "config.toml",
        ]

        for loc in locations:
            if loc.exists():
                return loc

        # Return default location if none found
        return Path.home() / ".config" / "checkmarket" / "config.toml"

    def _load_config(self) -> Config:
        """Load configuration from TOML file.

        Raises:
            ValidationError: If the file is not valid TOML, or the backend or
                logging level is not one we know
        """
        if not self.config_path.exists():
            return self._default_config()

        try:
            with open(self.config_path, "rb") as f:
                data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ValidationError(f"Invalid config file {self.config_path}: {e}") from e

        config = Config(
            data=DataConfig(
                storage_dir=Path(
                    data.get("data", {}).get("storage_dir", "~/checkmarket/data")
                ).expanduser(),
                backend=data.get("data", {}).get("backend", "json"),
                sqlite_timeout=data.get("data", {}).get("sqlite_timeout", 5.0),
            ),
            display=DisplayConfig(
                currency=data.get("display", {}).get("currency", "$"),
            ),
            logging=LoggingConfig(
                level=str(data.get("logging", {}).get("level", "WARNING")).upper(),
            ),
        )
        self._validate(config)
        return config

    def _validate(self, config: Config) -> None:
        backends = [b.value for b in BackendType]
        if config.data.backend not in backends:
            raise ValidationError(
                f"Unknown backend '{config.data.backend}' in {self.config_path}, "
                f"expected one of: {', '.join(backends)}"
            )
        if config.logging.level not in LOG_LEVELS:
            raise ValidationError(
                f"Unknown logging level '{config.logging.level}' in {self.config_path}, "
                f"expected one of: {', '.join(LOG_LEVELS)}"
            )

    def _default_config(self) -> Config:
        """Return default configuration."""
        return Config(
            data=DataConfig(storage_dir=Path.home() / "checkmarket" / "data"),
            display=DisplayConfig(),
            logging=LoggingConfig(),
        )

    def get(self, key_path: str, default: Any = None) -> Any:
        """Get config value by dot-notation path.

        Args:
            key_path: Dot-separated path like 'data.storage_dir'
            default: Default value if path not found

        Returns:
            Configuration value or default
        """
        keys = key_path.split(".")
        value: Any = self._config

        for key in keys:
            if not hasattr(value, key):
                return default
            value = getattr(value, key)

        return value if value is not None else default

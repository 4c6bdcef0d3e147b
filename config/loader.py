"""Configuration loader that reads from JSON file and environment variables."""

import json
import os
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv

from config.models import Config


class ConfigurationManager:
    """Manages loading and validation of configuration from multiple sources."""

    def __init__(
        self,
        config_path: Optional[str] = None,
        env_file: Optional[str] = None
    ):
        """Initialize configuration manager.

        Args:
            config_path: Path to JSON configuration file. When omitted the
                built-in defaults are used.
            env_file: Path to .env file (default: ./.env)
        """
        self.config_path = config_path
        self.env_file = env_file or "./.env"
        self._config: Optional[Config] = None

    def load_config(self) -> Config:
        """Load configuration from JSON file and environment variables.

        Environment variables take precedence over JSON file values.

        Returns:
            Validated Config object

        Raises:
            FileNotFoundError: If an explicit config file doesn't exist
            ValidationError: If configuration is invalid
            json.JSONDecodeError: If JSON is malformed
        """
        if Path(self.env_file).exists():
            load_dotenv(self.env_file)

        config_data = self._load_json_config()
        config_data = self._override_with_env(config_data)
        self._config = Config(**config_data)
        return self._config

    @property
    def config(self) -> Config:
        """Loaded configuration, loading it on first access."""
        if self._config is None:
            return self.load_config()
        return self._config

    def _load_json_config(self) -> Dict[str, Any]:
        """Load configuration from JSON file."""
        if self.config_path is None:
            return {}

        config_path = Path(self.config_path)

        if not config_path.exists():
            raise FileNotFoundError(
                f"Configuration file not found: {self.config_path}"
            )

        with open(config_path, "r") as f:
            try:
                return json.load(f)
            except json.JSONDecodeError as e:
                raise json.JSONDecodeError(
                    f"Invalid JSON in configuration file: {e.msg}",
                    e.doc,
                    e.pos
                )

    def _override_with_env(self, config_data: Dict[str, Any]) -> Dict[str, Any]:
        """Override configuration values with environment variables."""
        # Campaign configuration
        if "campaign" not in config_data:
            config_data["campaign"] = {}

        campaign_mapping = {
            "CUSTODY_EXAMPLES": ("examples", int),
            "CUSTODY_SEED": ("seed", int),
            "CUSTODY_MAX_STEPS": ("max_steps", int),
            "CUSTODY_MIN_CLASS_RATIO": ("min_class_ratio", float),
            "CUSTODY_VALIDATOR": ("validator", str),
        }

        for env_var, (key, converter) in campaign_mapping.items():
            value = os.getenv(env_var)
            if value:
                try:
                    config_data["campaign"][key] = converter(value)
                except ValueError:
                    raise ValueError(
                        f"Invalid {env_var}: must be {converter.__name__}"
                    )

        # Logging configuration
        if "logging" not in config_data:
            config_data["logging"] = {}

        log_level = os.getenv("LOG_LEVEL")
        if log_level:
            config_data["logging"]["level"] = log_level.upper()

        log_format = os.getenv("LOG_FORMAT")
        if log_format:
            config_data["logging"]["format"] = log_format

        return config_data

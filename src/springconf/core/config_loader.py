"""Configuration loader for springconf.yaml files."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from .errors import ValidationError
from .resolver import ResolveInputs
from .retry import RetryPolicy

CONFIG_FILE_NAME = "springconf.yaml"

USERNAME_ENV = "SPRINGCONF_USERNAME"
PASSWORD_ENV = "SPRINGCONF_PASSWORD"

_INPUT_KEYS = {
    "config_server_url",
    "application",
    "profile",
    "label",
    "username",
    "password",
    "property_sources",
    "secret_sources",
    "timeout_ms",
    "debug",
    "auto_detect_secrets",
    "enforce_https",
    "retry",
}


class ConfigLoader:
    """Handles loading and parsing of springconf.yaml configuration files."""

    def __init__(self, config_path: Optional[Union[str, Path]] = None):
        """Initialize config loader.

        Args:
            config_path: Path to springconf.yaml file. If None, looks in current
                directory and parent directories.
        """
        self.config_path = self._find_config_file(config_path)
        self._config: Optional[Dict[str, Any]] = None

    def _find_config_file(
        self, config_path: Optional[Union[str, Path]] = None
    ) -> Optional[Path]:
        """Find the springconf.yaml file.

        Args:
            config_path: Explicit path to config file, or None to search.

        Returns:
            Path to config file if found, None otherwise.
        """
        if config_path is not None:
            path = Path(config_path)
            if path.exists():
                return path
            return None

        current = Path.cwd()
        for directory in (current, *current.parents):
            candidate = directory / CONFIG_FILE_NAME
            if candidate.exists():
                return candidate
        return None

    def load(self) -> Dict[str, Any]:
        """Load the configuration file.

        Returns:
            Parsed configuration dictionary, or empty dict if no config file.

        Raises:
            ValueError: If the config file is invalid YAML or not a mapping.
        """
        if self.config_path is None:
            return {}

        if self._config is not None:
            return self._config

        try:
            with open(self.config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ValueError(
                f"Invalid {CONFIG_FILE_NAME} at {self.config_path}: {e}"
            ) from e

        if not isinstance(data, dict):
            raise ValueError(
                f"Invalid {CONFIG_FILE_NAME} at {self.config_path}: expected a mapping"
            )
        self._config = data
        return self._config

    def environment_names(self) -> List[str]:
        return list((self.load().get("environments") or {}).keys())

    def get_environment_config(
        self, environment_name: str
    ) -> Optional[Dict[str, Any]]:
        """Get configuration for a specific environment.

        Args:
            environment_name: Name of the environment.

        Returns:
            Environment configuration dict, or None if not found.
        """
        environments = self.load().get("environments") or {}
        return environments.get(environment_name)

    def get_inputs(
        self, environment_name: str, **overrides: Any
    ) -> ResolveInputs:
        """Build resolution inputs for an environment.

        Values from the file are combined with ``overrides`` (which win).
        Username and password fall back to the SPRINGCONF_USERNAME and
        SPRINGCONF_PASSWORD environment variables.

        Args:
            environment_name: Name of the environment.
            **overrides: Input fields that replace file values.

        Returns:
            ResolveInputs for the environment.

        Raises:
            ValidationError: If the environment is unknown or has unknown keys.
        """
        env_config = self.get_environment_config(environment_name)
        if env_config is None and not overrides:
            where = self.config_path or CONFIG_FILE_NAME
            available = ", ".join(self.environment_names()) or "none"
            raise ValidationError(
                f"Environment '{environment_name}' not found in {where}. "
                f"Available: {available}"
            )

        merged: Dict[str, Any] = dict(env_config or {})
        merged.update({k: v for k, v in overrides.items() if v is not None})
        return self.parse_inputs(merged)

    def parse_inputs(self, env_config: Dict[str, Any]) -> ResolveInputs:
        """Parse one environment's configuration into ResolveInputs.

        Args:
            env_config: Raw environment configuration from YAML.

        Returns:
            ResolveInputs built from the configuration.
        """
        unknown = set(env_config) - _INPUT_KEYS
        if unknown:
            raise ValidationError(
                f"Unknown configuration keys: {', '.join(sorted(unknown))}"
            )

        result: Dict[str, Any] = {}
        for key in ("config_server_url", "application", "profile"):
            result[key] = str(env_config.get(key) or "")
        if env_config.get("label") is not None:
            result["label"] = str(env_config["label"])

        result["username"] = env_config.get("username") or os.getenv(USERNAME_ENV)
        result["password"] = env_config.get("password") or os.getenv(PASSWORD_ENV)

        for key in ("property_sources", "secret_sources"):
            value = env_config.get(key)
            if value is not None:
                result[key] = self._parse_names(key, value)

        for key in ("timeout_ms", "debug", "auto_detect_secrets", "enforce_https"):
            if key in env_config:
                result[key] = env_config[key]

        retry = env_config.get("retry")
        if retry is not None:
            if isinstance(retry, RetryPolicy):
                result["retry"] = retry
            else:
                try:
                    result["retry"] = RetryPolicy.from_dict(retry)
                except (TypeError, ValueError) as e:
                    raise ValidationError(f"Invalid retry configuration: {e}") from e

        return ResolveInputs(**result)

    @staticmethod
    def _parse_names(key: str, value: Any) -> List[str]:
        if isinstance(value, str):
            return [part.strip() for part in value.split(",") if part.strip()]
        if isinstance(value, (list, tuple)):
            return [str(v) for v in value]
        raise ValidationError(f"{key} must be a list of names")

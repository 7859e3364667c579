from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional, Union

import httpx

from .config import Config
from .config_loader import ConfigLoader
from .resolver import ResolveInputs, resolve


class Environment:
    """Named environment whose config server settings come from springconf.yaml."""

    def __init__(
        self,
        name: str,
        config_path: Optional[Union[str, Path]] = None,
        **overrides: Any,
    ):
        """Initialize an Environment.

        Args:
            name: Name of the environment (e.g., "production", "development").
            config_path: Optional path to springconf.yaml file. If not provided,
                searches for springconf.yaml in current and parent directories.
            **overrides: Input fields that replace values from the file, e.g.
                ``profile="staging"``. With overrides only, no file entry is needed.
        """
        self.name = name
        self._config_loader = ConfigLoader(config_path)
        self._overrides = overrides
        self._inputs: Optional[ResolveInputs] = None

    @property
    def inputs(self) -> ResolveInputs:
        """Resolution inputs for this environment, parsed on first access."""
        if self._inputs is None:
            self._inputs = self._config_loader.get_inputs(self.name, **self._overrides)
        return self._inputs

    async def get_config(
        self,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        logger: Optional[logging.Logger] = None,
    ) -> Config:
        """Fetch and resolve configuration for this environment.

        Returns:
            Config wrapping the resolved state.
        """
        state = await resolve(self.inputs, transport=transport, logger=logger)
        return Config(state)

    @property
    def config_file_path(self) -> Optional[Path]:
        """Get the path to the loaded springconf.yaml file, if any."""
        return self._config_loader.config_path

"""
Configuration management.

Stores renderer settings in a JSON file in the user's home directory.
"""

import json
import logging
import os
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from edurender.exceptions import ConfigError
from edurender.models import RendererConfig

logger = logging.getLogger(__name__)

CONFIG_DIR_ENV = "EDURENDER_CONFIG_DIR"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ConfigManager:
    """Renderer configuration manager."""

    CONFIG_DIR_NAME = ".edurender"
    CONFIG_FILE_NAME = "config.json"

    def __init__(self, config_dir: Optional[Path] = None):
        """
        Args:
            config_dir: Configuration directory.
                        Defaults to $EDURENDER_CONFIG_DIR or ~/.edurender/
        """
        if config_dir is None:
            env_dir = os.environ.get(CONFIG_DIR_ENV)
            self.config_dir = Path(env_dir) if env_dir else Path.home() / self.CONFIG_DIR_NAME
        else:
            self.config_dir = Path(config_dir)

        self.config_file = self.config_dir / self.CONFIG_FILE_NAME
        self._config: Optional[RendererConfig] = None

    def _ensure_config_dir(self) -> None:
        self.config_dir.mkdir(parents=True, exist_ok=True)

    def load(self) -> RendererConfig:
        """
        Load the configuration from disk.

        A missing or corrupt file yields the defaults.

        Returns:
            Renderer configuration
        """
        if self._config is not None:
            return self._config

        if not self.config_file.exists():
            self._config = RendererConfig()
            return self._config

        try:
            with open(self.config_file, "r", encoding="utf-8") as f:
                data = json.load(f)
            self._config = RendererConfig(**data)
        except (OSError, json.JSONDecodeError, TypeError, ValidationError) as e:
            logger.warning(f"Ignoring unreadable config {self.config_file}: {e}")
            self._config = RendererConfig()

        return self._config

    def save(self, config: Optional[RendererConfig] = None) -> None:
        """
        Write the configuration to disk.

        Args:
            config: Configuration to store. Defaults to the current one.
        """
        if config is not None:
            self._config = config

        if self._config is None:
            return

        self._ensure_config_dir()

        with open(self.config_file, "w", encoding="utf-8") as f:
            json.dump(self._config.model_dump(), f, indent=2, ensure_ascii=False)

        logger.info(f"Config saved to: {self.config_file}")

    def get_config(self) -> RendererConfig:
        if self._config is None:
            return self.load()
        return self._config

    def set_strict_math(self, enabled: bool) -> None:
        config = self.get_config()
        config.strict_math = enabled
        self.save(config)

    def set_document_title(self, title: str) -> None:
        title = title.strip()
        if not title:
            raise ConfigError("Document title must not be empty")
        config = self.get_config()
        config.document_title = title
        self.save(config)

    def set_log_level(self, level: str) -> None:
        """
        Args:
            level: one of DEBUG, INFO, WARNING, ERROR, CRITICAL (any case)
        """
        level = level.upper()
        if level not in LOG_LEVELS:
            raise ConfigError(f"Unknown log level: {level}", details={"allowed": list(LOG_LEVELS)})
        config = self.get_config()
        config.log_level = level
        self.save(config)

    def reset(self) -> None:
        """Restore defaults and persist them."""
        self.save(RendererConfig())


# Global config manager instance
_config_manager: Optional[ConfigManager] = None


def get_config_manager(config_dir: Optional[Path] = None) -> ConfigManager:
    """
    Get the global configuration manager.

    Args:
        config_dir: Configuration directory; passing one replaces the instance

    Returns:
        ConfigManager
    """
    global _config_manager

    if _config_manager is None or config_dir is not None:
        _config_manager = ConfigManager(config_dir)

    return _config_manager

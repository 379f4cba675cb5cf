"""
Configuration management for the Kagane page engine.

Settings are read from ``settings.json`` in the config directory and may be
overridden by environment variables. Nothing cryptographic is stored here:
keys and seeds are always recomputed from page identifiers.
"""

import json
import os
from typing import Any, Dict, Optional

from .errors import ConfigError

DEFAULTS: Dict[str, Any] = {
    'grid_size': 10,
    'filename_template': 'page_%04d.jpg',
    'base_url': 'https://yukine.kagane.org',
    'timeout': 30.0,
}

ENV_OVERRIDES = {
    'grid_size': 'KAGANE_GRID_SIZE',
    'filename_template': 'KAGANE_FILENAME_TEMPLATE',
    'base_url': 'KAGANE_BASE_URL',
    'timeout': 'KAGANE_TIMEOUT',
}


class KaganeConfig:
    """
    Simple configuration manager.

    Values are resolved as: environment variable, then settings file, then
    built-in default.
    """

    def __init__(self, config_dir: Optional[str] = None):
        """
        Initialize configuration.

        Args:
            config_dir: Directory for configuration files. Defaults to ~/.kagane/
        """
        if config_dir is None:
            config_dir = os.path.expanduser("~/.kagane")

        self.config_dir = config_dir
        self.settings_path = os.path.join(config_dir, "settings.json")
        self._settings = dict(DEFAULTS)
        self._settings.update(self._load_file())
        self._settings.update(self._load_env())
        self._validate()

    def _load_file(self) -> Dict[str, Any]:
        if not os.path.exists(self.settings_path):
            return {}

        try:
            with open(self.settings_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise ConfigError(f"Failed to read settings: {e}")

        if not isinstance(data, dict):
            raise ConfigError("Settings file must contain a JSON object")

        unknown = set(data) - set(DEFAULTS)
        if unknown:
            raise ConfigError(f"Unknown settings: {', '.join(sorted(unknown))}")
        return data

    def _load_env(self) -> Dict[str, Any]:
        overrides = {}
        for name, env_var in ENV_OVERRIDES.items():
            value = os.environ.get(env_var)
            if value is not None:
                overrides[name] = value
        return overrides

    def _validate(self) -> None:
        settings = self._settings
        try:
            settings['grid_size'] = int(settings['grid_size'])
            settings['timeout'] = float(settings['timeout'])
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid numeric setting: {e}")

        if settings['grid_size'] < 1:
            raise ConfigError("grid_size must be a positive integer")
        if settings['timeout'] <= 0:
            raise ConfigError("timeout must be positive")

        template = settings['filename_template']
        try:
            template % 1
        except (TypeError, ValueError):
            raise ConfigError(f"filename_template must take one integer: {template!r}")

        settings['base_url'] = str(settings['base_url']).rstrip('/')

    def get(self, name: str) -> Any:
        if name not in self._settings:
            raise ConfigError(f"Unknown setting: {name}")
        return self._settings[name]

    def set(self, name: str, value: Any) -> None:
        """
        Change a setting in memory (call save() to persist).

        Raises:
            ConfigError: If the setting is unknown or the value invalid
        """
        if name not in DEFAULTS:
            raise ConfigError(f"Unknown setting: {name}")

        previous = self._settings[name]
        self._settings[name] = value
        try:
            self._validate()
        except ConfigError:
            self._settings[name] = previous
            raise

    def save(self) -> None:
        """
        Write current settings to the settings file.

        Raises:
            ConfigError: If the file cannot be written
        """
        try:
            os.makedirs(self.config_dir, exist_ok=True)
            with open(self.settings_path, 'w', encoding='utf-8') as f:
                json.dump(self._settings, f, indent=2, sort_keys=True)
        except OSError as e:
            raise ConfigError(f"Failed to save settings: {e}")

    def as_dict(self) -> Dict[str, Any]:
        return dict(self._settings)

    @property
    def grid_size(self) -> int:
        return self._settings['grid_size']

    @property
    def filename_template(self) -> str:
        return self._settings['filename_template']

    @property
    def base_url(self) -> str:
        return self._settings['base_url']

    @property
    def timeout(self) -> float:
        return self._settings['timeout']

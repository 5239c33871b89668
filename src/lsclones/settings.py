import os
import tomllib
from pathlib import Path

from .errors import ConfigurationError

# Settings key constants
SETTING_CLONES_LIST = 'clones_list'
SETTING_PRUNE = 'prune'
SETTING_ERROR_BEHAVIOR = 'error_behavior'
SETTING_LOGGING_PATH = 'logging.path'
SETTING_LOGGING_LEVEL = 'logging.level'

CONFIG_ENVIRONMENT_VARIABLE = 'LSCLONES_CONFIG'
CLONES_LIST_ENVIRONMENT_VARIABLE = 'CLONES_LIST'


def default_settings_path() -> Path:
    """Location of the settings file: $LSCLONES_CONFIG, else ~/.config/lsclones/settings.toml."""
    configured = os.environ.get(CONFIG_ENVIRONMENT_VARIABLE)
    if configured:
        return Path(configured)
    return Path.home() / '.config' / 'lsclones' / 'settings.toml'


class Settings:
    """Read-only view over the user's settings.toml.

    The class does not know the meaning of the keys; callers interpret the values.
    A missing file behaves like an empty one, so every get() returns its default.

    Example:
        settings = Settings()
        clones_list = settings.get(SETTING_CLONES_LIST)
        level = settings.get(SETTING_LOGGING_LEVEL, 'WARNING')
    """

    def __init__(self, path: Path | None = None):
        """Load settings from path (default: default_settings_path()).

        Raises:
            ConfigurationError: If the file exists but is not valid TOML
        """
        self.path = path if path is not None else default_settings_path()
        self._settings = {}

        if self.path.exists():
            try:
                with open(self.path, 'rb') as f:
                    self._settings = tomllib.load(f)
            except tomllib.TOMLDecodeError as e:
                raise ConfigurationError(f"invalid settings file {self.path}: {e}") from e

    def get(self, key: str, default=None):
        """Get a setting by key, using dots to reach nested tables.

        Returns the default when the key path does not exist or an intermediate value
        is not a table.

        Examples:
            >>> settings.get('logging.level', 'WARNING')
            'DEBUG'
            >>> settings.get('nonexistent.key', 'fallback')
            'fallback'
        """
        keys = key.split('.')
        value = self._settings

        for k in keys:
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default

        return value

    def get_bool(self, key: str, default: bool = False) -> bool:
        value = self.get(key, default)
        if not isinstance(value, bool):
            raise ConfigurationError(f"setting {key} in {self.path} must be a boolean, got {value!r}")
        return value

    def get_str(self, key: str, default: str | None = None) -> str | None:
        value = self.get(key, default)
        if value is not None and not isinstance(value, str):
            raise ConfigurationError(f"setting {key} in {self.path} must be a string, got {value!r}")
        return value

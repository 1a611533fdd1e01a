import json
import logging
from pathlib import Path
from typing import Any, Optional

import forkmanager.settings as default_settings

log = logging.getLogger(__name__)


class MergedSettings:
    """
    Merges the default settings with JSON overrides.

    Precedence, lowest first:
    1. Base values from `settings.py`.
    2. Environment variables / `.env` (read by `settings.py` itself).
    3. The overrides file, for keys listed in `MODIFIABLE_SETTINGS` only.
    """

    def __init__(self, overrides_path: Optional[Path] = None) -> None:
        self.OVERRIDES_JSON_PATH: Path = overrides_path or default_settings.OVERRIDES_JSON_PATH

        self._load_defaults()
        self._load_overrides()

    def _load_defaults(self) -> None:
        """Loads all uppercase attributes from the settings module as defaults."""
        for key in dir(default_settings):
            if key.isupper() and key != "OVERRIDES_JSON_PATH":
                setattr(self, key, getattr(default_settings, key))

    def _load_overrides(self) -> None:
        """
        Applies settings from the overrides file, if one exists.

        Keys outside `MODIFIABLE_SETTINGS` and unknown keys are ignored with a warning.
        """
        if not self.OVERRIDES_JSON_PATH.exists():
            return

        try:
            with self.OVERRIDES_JSON_PATH.open('r') as f:
                overrides = json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            log.error(f"Failed to load or parse overrides file '{self.OVERRIDES_JSON_PATH}': {e}")
            return

        if not isinstance(overrides, dict):
            log.error(f"Overrides file '{self.OVERRIDES_JSON_PATH}' must contain a JSON object. Ignoring.")
            return

        log.info(f"Loading configuration overrides from {self.OVERRIDES_JSON_PATH}")
        for key, value in overrides.items():
            if not hasattr(self, key):
                log.warning(f"Override setting '{key}' not found in default settings. Ignoring.")
                continue
            if key not in self.MODIFIABLE_SETTINGS:
                log.warning(f"Attempted to override non-modifiable setting '{key}'. Ignoring.")
                continue
            setattr(self, key, self._coerce(key, value))
            log.debug(f"Overridden setting: {key} = {value}")

    def _coerce(self, key: str, value: Any) -> Any:
        """Converts a JSON value to the type of the default it replaces."""
        if value is None:
            return None
        if key.endswith("_PATH"):
            return Path(value)
        original_value = getattr(self, key)
        if isinstance(original_value, bool):
            return str(value).lower() in ('true', '1', 't', 'yes', 'y')
        if original_value is not None:
            return type(original_value)(value)
        return value

    def get(self, item: str, default: Any = None) -> Any:
        """Provides dictionary-like access to settings with a default value."""
        return getattr(self, item, default)


# A singleton instance to be imported by other modules
effective_settings = MergedSettings()

"""
In-memory system settings store.

In production, this would read the `system_settings` table of the
restaurant database. Values are strings; callers supply the default used
when a key is absent or holds something unparseable.
"""

import logging
from typing import Optional

from table_assistant.config import DEFAULT_SETTINGS

logger = logging.getLogger(__name__)


class SettingsStore:
    """Keyed lookup of named configuration values with defaults."""

    def __init__(self, values: Optional[dict[str, str]] = None) -> None:
        self._values: dict[str, str] = dict(DEFAULT_SETTINGS)
        if values:
            self._values.update(values)

    def get(self, key: str, default: str) -> str:
        """Return the stored value for key, or default if unset."""
        return self._values.get(key, default)

    def get_int(self, key: str, default: int) -> int:
        raw = self.get(key, str(default))
        try:
            return int(raw)
        except (ValueError, TypeError):
            logger.warning("Setting '%s' is not an integer (%r); using %d", key, raw, default)
            return default

    def get_bool(self, key: str, default: bool) -> bool:
        return self.get(key, "true" if default else "false").strip().lower() == "true"

    def set(self, key: str, value: str) -> None:
        self._values[key] = str(value)
        logger.info("Setting updated: %s=%s", key, value)

    def reset(self) -> None:
        """Restore the defaults. Used by test fixtures for isolation."""
        self._values = dict(DEFAULT_SETTINGS)

from __future__ import annotations

"""
Internationalization (i18n) Utility.

Loads the user-facing message catalog from a JSON locale file and resolves
dot-notation keys with optional str.format interpolation.
"""

import json
import logging
import os
from typing import Any, Dict

logger = logging.getLogger(__name__)

# -----------------------------------------------------------------------------
# SYSTEM DEFAULTS
# -----------------------------------------------------------------------------

DEFAULT_LOCALE = "en"
LOCALES_REL_PATH = os.path.join("..", "interface", "locales")

# -----------------------------------------------------------------------------
# I18N MANAGER SERVICE
# -----------------------------------------------------------------------------

class I18n:
    """
    Message catalog for one locale.

    Missing keys resolve to the key itself, so a damaged catalog degrades
    to readable identifiers instead of failing the run.
    """

    def __init__(self, locale: str = DEFAULT_LOCALE):
        self._locale = locale
        self._translations: Dict[str, Any] = {}
        self.is_loaded = False

        base_dir = os.path.dirname(os.path.abspath(__file__))
        self._locales_path = os.path.abspath(os.path.join(base_dir, LOCALES_REL_PATH))

        self.load_locale(locale)

    @property
    def locale(self) -> str:
        return self._locale

    def load_locale(self, locale: str) -> None:
        """
        Load the catalog of 'locale' from the locales directory.

        Args:
            locale: ISO identifier of the language (e.g. 'en').
        """
        file_path = os.path.join(self._locales_path, f"{locale}.json")

        if not os.path.exists(file_path):
            logger.warning(f"I18n: Locale resource missing at '{file_path}'. Fallback active.")
            self._translations = {}
            self.is_loaded = False
            return

        try:
            with open(file_path, "r", encoding="utf-8") as f:
                self._translations = json.load(f)
        except (OSError, ValueError) as e:
            logger.error(f"I18n: Corruption in locale file {file_path}: {e}")
            self._translations = {}
            self.is_loaded = False
            return

        self._locale = locale
        self.is_loaded = True
        logger.debug(f"I18n: Loaded locale dictionary: {locale}")

    def t(self, key: str, **kwargs: Any) -> str:
        """
        Resolve and format a message using dot-notation.

        Args:
            key: Hierarchical identifier (e.g. 'cli.report.pass').
            **kwargs: Values interpolated with str.format.

        Returns:
            str: The formatted message, or the key itself if it is unknown.
        """
        current_val: Any = self._translations
        for k in key.split("."):
            if not isinstance(current_val, dict):
                return key
            current_val = current_val.get(k)

        if not isinstance(current_val, str):
            return key

        if not kwargs:
            return current_val
        try:
            return current_val.format(**kwargs)
        except (KeyError, IndexError, ValueError) as e:
            logger.debug(f"I18n: Formatting error for '{key}': {e}")
            return current_val

# -----------------------------------------------------------------------------
# SERVICE INITIALIZATION
# -----------------------------------------------------------------------------

i18n = I18n(DEFAULT_LOCALE)

from __future__ import annotations

"""
Configuration Domain Management.

Defines the run configuration dictionary and loads user overrides from an
optional JSON file. Missing or corrupted files fall back to the defaults.
"""

import json
import logging
import os
from typing import Any, Dict, Optional

from dirun.infra.fs import get_user_data_dir

logger = logging.getLogger(__name__)

# -----------------------------------------------------------------------------
# Constants & Defaults
# -----------------------------------------------------------------------------
CONFIG_FILE = os.path.join(get_user_data_dir(), "config.json")
DEFAULT_FILE_PATTERN = "*.*"
DEFAULT_LOG_LEVEL = "WARNING"


# -----------------------------------------------------------------------------
# Configuration Models (Dict-based)
# -----------------------------------------------------------------------------
def get_default_config() -> Dict[str, Any]:
    """
    Generate the default run configuration.
    This dictionary drives the behavior of the traversal engine.

    Returns:
        Dict[str, Any]: Default configuration values.
    """
    return {
        # Traversal
        "root_path": os.getcwd(),
        "file_pattern": DEFAULT_FILE_PATTERN,
        "recurse": True,

        # Execution
        "working_directory": "",
        "pass_code": 0,
        "collect_stdout": False,
        "collect_stderr": False,

        # Reporting
        "report_file_name": False,
        "verbose": False,

        # Diagnostics
        "log_level": DEFAULT_LOG_LEVEL,
    }


# -----------------------------------------------------------------------------
# Persistence Logic
# -----------------------------------------------------------------------------
def load_config(path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load a configuration file and merge it over the defaults.

    Unknown keys are kept so that the validator can report them.

    Args:
        path: JSON file to read (default: config.json in the user data dir).

    Returns:
        Dict[str, Any]: The merged configuration, or the defaults on failure.
    """
    config_file = path or CONFIG_FILE
    defaults = get_default_config()

    if not os.path.exists(config_file):
        logger.debug(f"Config file not found: {config_file}. Returning defaults.")
        return defaults

    try:
        with open(config_file, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        logger.warning(f"Failed to load config {config_file}: {e}. Using defaults.")
        return defaults

    if not isinstance(data, dict):
        logger.warning(f"Corrupted config file {config_file}. Using defaults.")
        return defaults

    defaults.update(data)
    logger.debug(f"Configuration loaded from {config_file}")
    return defaults

from __future__ import annotations

"""
Configuration Validator.

Acts as a gatekeeper to ensure that the configuration dictionary passed
to the engine contains valid types and normalized values.
Uses a schema-driven approach to minimize boilerplate.
"""

import logging
import os
from typing import Any, Dict, List, Tuple

from dirun.core.processing.variables import contains_variables
from dirun.domain.config import DEFAULT_LOG_LEVEL, get_default_config
from dirun.domain.errors import ConfigError

logger = logging.getLogger(__name__)

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def validate_config(
        config: Any,
        *,
        strict: bool = False,
) -> Tuple[Dict[str, Any], List[str]]:
    """
    Validate and normalize the configuration dictionary.

    Ensures types are correct (converting strings to bools/ints if needed)
    and fills in missing values with defaults using a declarative schema.
    A working directory without %DIRUN_*% markers must exist now. One with
    markers is only resolvable per file and is left to the executor.

    Args:
        config: The raw configuration dictionary (or untrusted input).
        strict: If True, raises ConfigError on invalid data.

    Returns:
        Tuple[Dict, List[str]]: (Normalized Config, List of Warnings).
    """
    warnings: List[str] = []
    defaults = get_default_config()

    # Base Validation: Type Check
    if not isinstance(config, dict):
        msg = f"Invalid config type: expected dict, received {type(config).__name__}."
        if strict:
            raise ConfigError(msg)
        warnings.append(f"{msg} Using defaults.")
        logger.warning(msg)
        return defaults, warnings

    merged: Dict[str, Any] = dict(defaults)
    merged.update(config)

    # Declarative Schema Definition
    string_fields = ["root_path", "file_pattern", "log_level"]
    bool_fields = [
        "recurse", "report_file_name", "verbose",
        "collect_stdout", "collect_stderr",
    ]
    int_fields = ["pass_code"]

    for field in string_fields:
        merged[field] = _as_str(
            merged.get(field), defaults.get(field, ""), field, warnings, strict
        )

    for field in bool_fields:
        merged[field] = _as_bool(
            merged.get(field), defaults.get(field, False), field, warnings, strict
        )

    for field in int_fields:
        merged[field] = _as_int(
            merged.get(field), defaults.get(field, 0), field, warnings, strict
        )

    # The working directory keeps its (possibly empty) value verbatim
    working = merged.get("working_directory")
    if working is None:
        working = ""
    if not isinstance(working, str):
        msg = f"Invalid field 'working_directory': expected str, received {type(working).__name__}."
        if strict:
            raise ConfigError(msg)
        warnings.append(f"{msg} Using fallback.")
        working = ""
    merged["working_directory"] = working.strip()

    # Post-processing normalization
    merged["log_level"] = _normalize_log_level(merged["log_level"], warnings, strict)
    merged["working_directory"] = _check_working_directory(
        merged["working_directory"], warnings, strict
    )

    if merged["verbose"]:
        merged["collect_stdout"] = True
        merged["collect_stderr"] = True

    unknown = sorted(k for k in merged if k not in defaults)
    for key in unknown:
        warnings.append(f"Unknown config key '{key}' ignored.")
        merged.pop(key)

    return merged, warnings


def _as_str(value: Any, fallback: str, field: str, warnings: List[str], strict: bool) -> str:
    """Ensure value is a string."""
    if value is None:
        return fallback
    if isinstance(value, str):
        v = value.strip()
        return v if v else fallback
    msg = f"Invalid field '{field}': expected str, received {type(value).__name__}."
    if strict:
        raise ConfigError(msg)
    warnings.append(f"{msg} Using fallback.")
    return fallback


def _as_bool(value: Any, fallback: bool, field: str, warnings: List[str], strict: bool) -> bool:
    """Coerce value to boolean."""
    if isinstance(value, bool):
        return value
    if value is None:
        return fallback

    if not strict:
        if isinstance(value, (int, float)) and value in (0, 1):
            warnings.append(f"Field '{field}' converted from number {value} to bool.")
            return bool(value)
        if isinstance(value, str):
            s = value.strip().lower()
            if s in ("true", "1", "yes", "y", "on"):
                warnings.append(f"Field '{field}' converted from '{value}' to True.")
                return True
            if s in ("false", "0", "no", "n", "off"):
                warnings.append(f"Field '{field}' converted from '{value}' to False.")
                return False

    msg = f"Invalid field '{field}': expected bool, received {type(value).__name__}."
    if strict:
        raise ConfigError(msg)
    warnings.append(f"{msg} Using fallback.")
    return fallback


def _as_int(value: Any, fallback: int, field: str, warnings: List[str], strict: bool) -> int:
    """Coerce value to integer."""
    if isinstance(value, bool):
        msg = f"Invalid field '{field}': expected int, received bool."
        if strict:
            raise ConfigError(msg)
        warnings.append(f"{msg} Using fallback.")
        return fallback
    if isinstance(value, int):
        return value
    if value is None:
        return fallback

    if isinstance(value, str) and not strict:
        try:
            converted = int(value.strip())
        except ValueError:
            pass
        else:
            warnings.append(f"Field '{field}' converted from '{value}' to {converted}.")
            return converted

    msg = f"Invalid field '{field}': expected int, received {type(value).__name__}."
    if strict:
        raise ConfigError(msg)
    warnings.append(f"{msg} Using fallback.")
    return fallback


def _normalize_log_level(level: str, warnings: List[str], strict: bool) -> str:
    """Ensure the log level is a known level name."""
    name = level.strip().upper()
    if name in _LOG_LEVELS:
        return name
    msg = f"Invalid log level '{level}'."
    if strict:
        raise ConfigError(msg)
    warnings.append(f"{msg} Using '{DEFAULT_LOG_LEVEL}'.")
    return DEFAULT_LOG_LEVEL


def _check_working_directory(path: str, warnings: List[str], strict: bool) -> str:
    """Reject a fixed working directory that does not exist."""
    if not path or contains_variables(path):
        return path
    if os.path.isdir(path):
        return path
    msg = f"invalid --working argument: {path}"
    if strict:
        raise ConfigError(msg)
    warnings.append(f"{msg}. Working directory ignored.")
    return ""

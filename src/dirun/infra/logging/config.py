from __future__ import annotations

"""
Logging Configuration Models.

Defines the settings used to initialize the logging subsystem and the
mapping from level names to native logging constants.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Optional

_LEVEL_MAP: Dict[str, int] = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


@dataclass(frozen=True)
class LoggingConfig:
    """
    Immutable settings of the logging subsystem.

    Diagnostics go to stderr so that they never interleave with the
    per-file report printed on stdout.

    Attributes:
        level: Minimum severity level to capture.
        console: Emit records on stderr.
        log_file: Optional path of a rotating diagnostic log.
        max_bytes: Size of one log segment before rotation.
        backup_count: Number of rotated segments kept.
        console_fmt: Record format on stderr.
        file_fmt: Record format in the log file.
        datefmt: Timestamp format of the log file.
    """
    level: str = "INFO"
    console: bool = True
    log_file: Optional[str] = None

    max_bytes: int = 1024 * 1024
    backup_count: int = 3

    console_fmt: str = "%(levelname)s | %(message)s"
    file_fmt: str = "%(asctime)s | %(levelname)s | %(threadName)s | %(name)s | %(message)s"
    datefmt: str = "%Y-%m-%d %H:%M:%S"

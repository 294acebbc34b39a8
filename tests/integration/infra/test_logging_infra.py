from __future__ import annotations

"""
Integration tests for Logging Infrastructure.

Verifies the asynchronous QueueListener architecture, idempotency
of configuration, log file rotation and shutdown.
"""

import logging
from logging.handlers import QueueHandler
from pathlib import Path

import pytest

from dirun.infra.logging import LoggingConfig, configure_logging, shutdown_logging
from dirun.infra.logging.core import _CONFIGURED_FLAG_ATTR, _QUEUE_LISTENER_ATTR
from dirun.infra.logging.handlers import _HANDLER_TAG_ATTR


@pytest.fixture(autouse=True)
def reset_logging():
    """Detach dirun handlers before and after each test."""
    shutdown_logging()
    yield
    shutdown_logging()


def _our_handlers():
    return [h for h in logging.getLogger().handlers if getattr(h, _HANDLER_TAG_ATTR, False)]


def test_logging_idempotency() -> None:
    """Repeated configuration does not duplicate handlers."""
    cfg = LoggingConfig(level="INFO", console=True)

    configure_logging(cfg)
    initial = len(_our_handlers())
    configure_logging(cfg)

    assert len(_our_handlers()) == initial == 1


def test_force_replaces_listener() -> None:
    cfg = LoggingConfig(level="INFO", console=True)
    configure_logging(cfg)
    first = getattr(logging.getLogger(), _QUEUE_LISTENER_ATTR)

    configure_logging(LoggingConfig(level="DEBUG", console=True), force=True)
    root = logging.getLogger()

    assert getattr(root, _QUEUE_LISTENER_ATTR) is not first
    assert root.level == logging.DEBUG
    assert len(_our_handlers()) == 1


def test_log_rotation(tmp_path: Path) -> None:
    """File rotation happens when the size limit is exceeded."""
    log_file = tmp_path / "logs" / "rotate.log"
    cfg = LoggingConfig(
        level="DEBUG",
        console=False,
        log_file=str(log_file),
        max_bytes=100,
        backup_count=1,
    )

    configure_logging(cfg)
    logger = logging.getLogger("dirun.test.rotate")
    for _ in range(10):
        logger.debug("This is a long log message to trigger rotation." * 5)

    # Stopping the listener drains the queue
    shutdown_logging()

    assert log_file.exists()
    assert (tmp_path / "logs" / "rotate.log.1").exists()


def test_queue_listener_architecture() -> None:
    """The root logger only carries the tagged QueueHandler."""
    configure_logging(LoggingConfig(level="INFO", console=True))
    root = logging.getLogger()

    ours = _our_handlers()
    assert len(ours) == 1
    assert isinstance(ours[0], QueueHandler)
    assert getattr(root, _QUEUE_LISTENER_ATTR) is not None
    assert getattr(root, _CONFIGURED_FLAG_ATTR) is True


def test_shutdown_detaches_handlers() -> None:
    configure_logging(LoggingConfig(level="INFO", console=True))

    shutdown_logging()

    root = logging.getLogger()
    assert _our_handlers() == []
    assert getattr(root, _QUEUE_LISTENER_ATTR) is None
    assert getattr(root, _CONFIGURED_FLAG_ATTR) is False


def test_unwritable_log_file_is_skipped(tmp_path: Path, capsys) -> None:
    blocker = tmp_path / "file"
    blocker.write_text("x", encoding="utf-8")

    configure_logging(LoggingConfig(level="INFO", console=False, log_file=str(blocker / "x.log")))

    assert _our_handlers() == []
    assert "cannot open log file" in capsys.readouterr().err

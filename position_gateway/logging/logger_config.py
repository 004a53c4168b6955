#!/usr/bin/env python3
"""
CENTRALIZED LOGGING CONFIGURATION
==================================

Purpose:
- Setup per-component loggers with rotating file handlers
- Each component has its own rotating log file (50MB, 10 backups)
- All logs also go to console with clean formatting
- Catch-all application.log so nothing is lost under systemd

USAGE:
    from position_gateway.logging.logger_config import setup_application_logging, get_component_logger

    # Setup once in main
    setup_application_logging(log_dir="logs", level="INFO")

    # Get logger in entry points
    logger = get_component_logger("gateway")

Modules that use logging.getLogger(__name__) are children of a registered
parent logger ('position_gateway.execution', 'position_gateway.brokers', ...)
and land in that component's file.
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Optional, Dict

# Standard format: [TIMESTAMP] [LEVEL] [COMPONENT] [MESSAGE]
LOG_FORMAT = '%(asctime)s | %(levelname)-8s | %(name)-20s | %(message)s'
LOG_DATETIME_FORMAT = '%Y-%m-%d %H:%M:%S'

# Key → logger name (log file is <key>.log)
COMPONENT_NAMES = {
    'gateway':       'GATEWAY',
    'http':          'position_gateway.api',
    'execution':     'position_gateway.execution',
    'broker':        'position_gateway.brokers',
    'core':          'position_gateway.core',
    'notifications': 'notifications',
}

_log_dir: Optional[Path] = None
_log_level: str = 'INFO'
_console_handler: Optional[logging.StreamHandler] = None
_component_handlers: Dict[str, logging.handlers.RotatingFileHandler] = {}


def setup_application_logging(
    log_dir: str = 'logs',
    level: str = 'INFO',
    max_bytes: int = 50 * 1024 * 1024,  # 50 MB per file
    backup_count: int = 10,
    quiet_waitress: bool = True
) -> None:
    """
    Initialize application-wide logging with per-component rotating handlers.

    This MUST be called once at application startup (in main()).

    Args:
        log_dir: Directory to store log files
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        max_bytes: Max size of a log file before rotation
        backup_count: Number of backup files to keep
        quiet_waitress: Raise waitress' own logger to WARNING
    """
    global _log_dir, _log_level, _console_handler

    _log_dir = Path(log_dir)
    _log_level = level.upper()
    _log_dir.mkdir(parents=True, exist_ok=True)

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, _log_level))

    # Remove any existing handlers to avoid duplicates
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)

    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATETIME_FORMAT)

    _console_handler = logging.StreamHandler(sys.stdout)
    _console_handler.setLevel(getattr(logging, _log_level))
    _console_handler.setFormatter(formatter)
    root_logger.addHandler(_console_handler)

    if quiet_waitress:
        logging.getLogger('waitress').setLevel(logging.WARNING)

    _setup_component_handlers(max_bytes, backup_count, formatter)

    # 🔒 CATCH-ALL: root file handler so NO log message is lost.
    root_fh = logging.handlers.RotatingFileHandler(
        _log_dir / "application.log",
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding='utf-8',
    )
    root_fh.setLevel(getattr(logging, _log_level))
    root_fh.setFormatter(formatter)
    root_logger.addHandler(root_fh)


def _setup_component_handlers(max_bytes: int, backup_count: int, formatter: logging.Formatter) -> None:
    """
    Create a rotating file handler per component and attach it immediately,
    so modules using logging.getLogger(__name__) are covered as well.
    """
    for key, component_name in COMPONENT_NAMES.items():
        handler = logging.handlers.RotatingFileHandler(
            _log_dir / f"{key}.log",
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding='utf-8'
        )
        handler.setLevel(getattr(logging, _log_level))
        handler.setFormatter(formatter)

        logger = logging.getLogger(component_name)

        previous = _component_handlers.get(component_name)
        if previous is not None:
            logger.removeHandler(previous)
            previous.close()

        _component_handlers[component_name] = handler
        logger.addHandler(handler)


def get_component_logger(component_key: str) -> logging.Logger:
    """
    Get the logger for a registered component.

    Example:
        logger = get_component_logger('gateway')
        logger.info("Starting gateway")
    """
    if component_key not in COMPONENT_NAMES:
        raise ValueError(f"Unknown component: {component_key}. Must be one of {list(COMPONENT_NAMES.keys())}")

    return logging.getLogger(COMPONENT_NAMES[component_key])


def get_log_files() -> Dict[str, Path]:
    """Paths of all active component log files."""
    return {
        name: Path(handler.baseFilename)
        for name, handler in _component_handlers.items()
    }

"""
Logging utilities with automatic API key masking.

Levels depend on a process-wide mode (LOG_MODE env var or
set_logging_mode). Providers and calculators log freely; the mode decides
how much of that reaches the console during a CLI run.
"""

import logging
import re
import os
from typing import Dict, Optional
from enum import Enum
from config.settings import settings


class LoggingContext(Enum):
    """Logging context modes for different execution scenarios."""
    STANDALONE = "standalone"          # Module run directly (full logging)
    ORCHESTRATED = "orchestrated"      # Text report from run_analysis.py (quiet sub-modules)
    SILENT = "silent"                  # Tests / embedding (minimal output)
    PIPELINE_QUIET = "pipeline_quiet"  # JSON output; errors only


try:
    _CURRENT_MODE = LoggingContext(os.getenv('LOG_MODE', 'standalone').lower())
except ValueError:
    _CURRENT_MODE = LoggingContext.STANDALONE

# Loggers that keep INFO level in orchestrated mode
CONSOLE_LOGGERS = {
    'run_analysis', 'data_orchestrator',
}

# name -> level requested at setup, so a mode switch can re-level them
_REQUESTED_LEVELS: Dict[str, int] = {}


def _effective_level(name: str, level: int) -> int:
    mode = _CURRENT_MODE
    if mode == LoggingContext.ORCHESTRATED:
        return level if name in CONSOLE_LOGGERS else max(level, logging.WARNING)
    if mode == LoggingContext.SILENT:
        return logging.CRITICAL
    if mode == LoggingContext.PIPELINE_QUIET:
        return max(level, logging.ERROR)
    return level


def _apply_level(logger: logging.Logger, level: int) -> None:
    logger.setLevel(level)
    for handler in logger.handlers:
        handler.setLevel(level)


def set_logging_mode(mode: LoggingContext):
    """
    Switch the logging mode and re-level every logger made by setup_logger.

    Args:
        mode: LoggingContext enum value
    """
    global _CURRENT_MODE
    _CURRENT_MODE = mode
    for name, requested in _REQUESTED_LEVELS.items():
        _apply_level(logging.getLogger(name), _effective_level(name, requested))


def get_logging_mode() -> LoggingContext:
    return _CURRENT_MODE


class SecureFormatter(logging.Formatter):
    """Formatter that masks API keys and bearer tokens in log messages."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        # Long alphanumeric runs look like provider keys
        self.api_key_pattern = re.compile(r'\b[A-Za-z0-9_\-]{20,}\b')
        self.bearer_pattern = re.compile(r'(Bearer\s+)(\S+)')

    def format(self, record):
        message = super().format(record)
        message = self.bearer_pattern.sub(
            lambda m: m.group(1) + settings.mask_api_key(m.group(2)), message
        )
        return self.api_key_pattern.sub(
            lambda m: settings.mask_api_key(m.group(0)), message
        )


def setup_logger(
    name: str,
    level: int = logging.INFO,
    log_file: Optional[str] = None
) -> logging.Logger:
    """
    Create (or reconfigure) a named logger with masking and a mode-aware level.

    Args:
        name: Logger name, usually the module name
        level: Level in standalone mode
        log_file: Optional file path; LOG_FILE in the environment applies otherwise

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    _REQUESTED_LEVELS[name] = level

    # Re-running setup must not stack handlers
    logger.handlers.clear()

    formatter = SecureFormatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    log_file = log_file or os.getenv('LOG_FILE')
    if log_file:
        file_handler = logging.FileHandler(log_file, encoding='utf-8')
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    _apply_level(logger, _effective_level(name, level))
    return logger

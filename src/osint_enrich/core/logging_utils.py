"""
Logging setup for enrichment runs.

Modules log through ``logging.getLogger(__name__)`` and tag pipeline stages in
brackets (``[ENRICH START]``, ``[LLM CALL START]``, ``[BATCH ENRICH COMPLETE]``)
so a single run can be followed with grep.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Optional

from osint_enrich.core.config import LOG_FILE, LOG_LEVEL

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# HTTP libraries under the ollama client log every request at INFO
NOISY_LOGGERS = ("httpx", "httpcore")


def configure_logging(
    level: str = LOG_LEVEL,
    log_file: Optional[Path] = None,
    quiet: Iterable[str] = NOISY_LOGGERS,
) -> None:
    """
    Install one console handler and, when ``log_file`` is set, a file handler.

    Replaces any handlers already on the root logger, so calling it twice does
    not duplicate output. Loggers named in ``quiet`` never go below WARNING.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    for handler in handlers:
        handler.setLevel(log_level)
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    for name in quiet:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))

    if log_file:
        root_logger.info(f"Logging to file: {log_file}")


def configure_from_env() -> None:
    """Apply OSINT_LOG_LEVEL and OSINT_LOG_FILE."""
    configure_logging(LOG_LEVEL, LOG_FILE)

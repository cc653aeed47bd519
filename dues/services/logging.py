"""Logging setup for the dues API server.

Records go to stdout and to a log file. The level comes from the explicit
argument (normally Settings.log_level), then the LOG_LEVEL environment
variable, then INFO.
"""

import logging
import os
import sys
from pathlib import Path

LOG_FORMAT = "[%(asctime)s] %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

LOG_LEVEL_MAP = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def get_log_level(level_name: str | None = None) -> int:
    """Resolve a level name to a logging constant.

    Args:
        level_name: Level name such as "debug"; falls back to LOG_LEVEL

    Returns:
        Logging level constant (INFO for unknown names)
    """
    name = level_name or os.getenv("LOG_LEVEL", "INFO")
    return LOG_LEVEL_MAP.get(name.upper(), logging.INFO)


def setup_server_logging(
    log_file: str = "logs/server.log",
    level_name: str | None = None,
    sql_echo: bool = False,
) -> None:
    """
    Install stdout and file handlers on the root logger.

    Args:
        log_file: Path to log file; parent directories are created
        level_name: Level for root and handlers (see get_log_level)
        sql_echo: Keep SQLAlchemy statement logging at the root level

    Existing root handlers are removed first, so calling this twice does
    not duplicate output.
    """
    log_path = Path(log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    level = get_log_level(level_name)
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    for handler in (logging.StreamHandler(sys.stdout), logging.FileHandler(log_path)):
        handler.setLevel(level)
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    engine_level = level if sql_echo else max(level, logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(engine_level)


__all__ = ["LOG_LEVEL_MAP", "get_log_level", "setup_server_logging"]

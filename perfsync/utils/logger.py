"""
Logging configuration

Console output always; daily rotating files under settings.log_dir unless
LOG_TO_FILE=false. Sync code binds `tenant` so every line of one pass can be
filtered by tenant id.
"""
import os
import sys

from loguru import logger

from perfsync.config import get_settings

settings = get_settings()

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<magenta>{extra[tenant]}</magenta> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {extra[tenant]} | {name}:{function}:{line} - {message}"


def setup_logger(level=None, log_dir=None, to_file=None):
    """Configure sinks. Arguments override the matching settings."""
    level = level or settings.log_level
    log_dir = log_dir or settings.log_dir
    to_file = settings.log_to_file if to_file is None else to_file

    logger.remove()
    logger.configure(extra={"tenant": "-"})

    logger.add(sys.stdout, colorize=True, format=CONSOLE_FORMAT, level=level)

    if to_file:
        logger.add(
            os.path.join(log_dir, "perfsync_{time:YYYY-MM-DD}.log"),
            format=FILE_FORMAT,
            rotation="00:00",
            retention="30 days",
            compression="zip",
            level="INFO"
        )
        logger.add(
            os.path.join(log_dir, "sync_errors_{time:YYYY-MM-DD}.log"),
            format=FILE_FORMAT,
            rotation="00:00",
            retention="90 days",
            level="ERROR"
        )

    return logger


def tenant_log(tenant_id):
    """Logger bound to one tenant's sync pass"""
    return logger.bind(tenant=tenant_id or "-")


log = setup_logger()

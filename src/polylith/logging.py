"""Logging configuration for the service runtime."""

import logging
import sys

from loguru import logger


class InterceptHandler(logging.Handler):
    """Forward stdlib log records into loguru.

    Services run on asyncio, whose diagnostics (slow callbacks, failed tasks,
    unclosed transports) and those of most libraries a service uses go
    through the stdlib ``logging`` module. Routing them here keeps a single
    sink for the runtime's own messages and everything around them.
    """

    def emit(self, record):
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Skip the frames of the logging module itself
        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def setup_logging(log_level: str | None = None):
    """Configure loguru logging for the host process.

    Args:
        log_level: Log level to use. Falls back to ``Settings.log_level``.
    """
    if log_level is None:
        from polylith.settings import get_settings

        log_level = get_settings().log_level

    log_level = log_level.upper()

    logger.remove()  # Remove default handler
    logger.add(
        sys.stderr,
        format=(
            "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan> - "
            "<level>{message}</level>"
        ),
        level=log_level,
        colorize=True,
    )

    logger.info(f"Log level set to: {log_level}")

    # Redirect all standard logging to loguru
    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)

    # Keep stdlib loggers of the runtime and asyncio on the same level.
    # The stdlib has no TRACE level.
    std_level = "DEBUG" if log_level == "TRACE" else log_level
    for name in ("asyncio", "polylith"):
        logging.getLogger(name).setLevel(std_level)

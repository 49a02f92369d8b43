"""
Central logging configuration for zhaomu.

Suppresses verbose debug logs from third-party libraries while keeping
INFO/WARNING/ERROR output from the service itself, and stamps every record
with the current request correlation ID.
"""

import logging
import os
from typing import Optional


class CorrelationIdFilter(logging.Filter):
    """Add correlation ID to all log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        # Imported lazily: the middleware module pulls in aiohttp.
        from zhaomu.api.middleware import get_request_id

        record.request_id = get_request_id()
        return True


_NOISY_LOGGERS: dict[str, int] = {
    "aiohttp.access": logging.WARNING,
    "aiohttp.server": logging.WARNING,
    "aiohttp.web": logging.INFO,
    "aiohttp.web_log": logging.WARNING,
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
    "asyncio": logging.WARNING,
    "PIL": logging.INFO,
    "charset_normalizer": logging.WARNING,
    "multipart": logging.WARNING,
}


def configure_logging(debug_mode: bool = False, force_debug: Optional[bool] = None) -> None:
    """
    Configure logging levels for zhaomu.

    Args:
        debug_mode: Whether to enable debug logging for zhaomu modules
        force_debug: Override debug mode setting (None to use env var detection)

    Environment Variables:
        ZHAOMU_DEBUG: Set to '1', 'true', 'yes' to force debug logging
        ZHAOMU_LOG_LEVEL: Override root log level (DEBUG, INFO, WARNING, ERROR)
    """
    env_debug = os.getenv("ZHAOMU_DEBUG", "").lower() in ("1", "true", "yes")
    env_log_level = os.getenv("ZHAOMU_LOG_LEVEL", "").upper()

    if force_debug is not None:
        final_debug = force_debug
    elif env_debug:
        final_debug = True
    else:
        final_debug = debug_mode

    root_level = logging.DEBUG if final_debug else logging.INFO
    if env_log_level in ("DEBUG", "INFO", "WARNING", "ERROR"):
        root_level = getattr(logging, env_log_level)

    root_logger = logging.getLogger()
    root_logger.setLevel(root_level)

    correlation_filter = CorrelationIdFilter()

    # Preserve the colorized handler installed by zhaomu._init_logging.
    if not root_logger.handlers:
        handler = logging.StreamHandler()
        handler.setLevel(root_level)
        handler.setFormatter(
            logging.Formatter("[%(asctime)s] [%(request_id)s] %(levelname)s - %(name)s - %(message)s")
        )
        handler.addFilter(correlation_filter)
        root_logger.addHandler(handler)
    else:
        for existing_handler in root_logger.handlers:
            if not any(isinstance(f, CorrelationIdFilter) for f in existing_handler.filters):
                existing_handler.addFilter(correlation_filter)

    logger_config = dict(_NOISY_LOGGERS)
    logger_config["zhaomu"] = logging.DEBUG if final_debug else logging.INFO

    for logger_name, level in logger_config.items():
        logging.getLogger(logger_name).setLevel(level)

    if final_debug:
        root_logger.info("Debug logging enabled for zhaomu modules")
    else:
        root_logger.info("Production logging configuration applied")

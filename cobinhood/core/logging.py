"""
Unified Logging Configuration

All modules log through the `cobinhood` logger hierarchy instead of print().
The library itself never installs handlers on import; applications and scripts
call setup_logging() to get console output.

Usage:
    from cobinhood.core.logging import get_logger

    logger = get_logger(__name__)   # "cobinhood.ws_client"
    logger.info("Connected")

Log Levels used by the client:
    DEBUG    - Requests, responses, lifecycle events when not verbose
    INFO     - Lifecycle events and subscription acks in verbose mode
    WARNING  - Unresponsive peers, reconnect attempts, unclassified events
    ERROR    - Transport failures, malformed error bodies, undecodable frames
"""

import logging
import sys
from typing import Optional

ROOT_LOGGER_NAME = "cobinhood"


def setup_logging(
    log_level: str = "INFO",
    log_format: Optional[str] = None,
    include_timestamp: bool = True,
    include_module: bool = True
) -> logging.Logger:
    """
    Configure console logging and return the package logger.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Custom log format string (uses default if None)
        include_timestamp: Include timestamp in log messages
        include_module: Include logger name in log messages

    Returns:
        logging.Logger: The configured `cobinhood` logger

    Example:
        >>> logger = setup_logging(log_level="DEBUG")
        >>> logger.info("Client started")
        2024-01-01 12:00:00 [INFO] cobinhood: Client started
    """
    if log_format is None:
        format_parts = []

        if include_timestamp:
            format_parts.append("%(asctime)s")

        format_parts.append("[%(levelname)s]")

        if include_module:
            format_parts.append("%(name)s:")

        format_parts.append("%(message)s")

        log_format = " ".join(format_parts)

    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.INFO),
        format=log_format,
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
        force=True
    )

    set_log_level(log_level)
    return logger


# Package logger; handlers are left to the application
logger = logging.getLogger(ROOT_LOGGER_NAME)
logger.addHandler(logging.NullHandler())


# ============================================
# Convenience Functions
# ============================================

def get_logger(name: str) -> logging.Logger:
    """
    Get a child logger of the package logger.

    Args:
        name: Module name (typically __name__)

    Returns:
        logging.Logger: Logger named "cobinhood.<module>"

    Example:
        >>> get_logger("cobinhood.pipeline").name
        'cobinhood.pipeline'
        >>> get_logger("scripts.stream_demo").name
        'cobinhood.scripts.stream_demo'
    """
    if name == ROOT_LOGGER_NAME or name.startswith(ROOT_LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def set_log_level(level: str) -> None:
    """
    Change the package log level at runtime.

    Args:
        level: New log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))


# ============================================
# Log Helper Functions
# ============================================

def log_api_request(method: str, endpoint: str, params: dict = None) -> None:
    """
    Log an API request with consistent formatting.

    Example:
        >>> log_api_request("GET", "/v1/market/orderbooks/COB-BTC", {"limit": 50})
        [DEBUG] API Request: GET /v1/market/orderbooks/COB-BTC | Params: {'limit': 50}
    """
    if params:
        logger.debug(f"API Request: {method} {endpoint} | Params: {params}")
    else:
        logger.debug(f"API Request: {method} {endpoint}")


def log_api_response(method: str, endpoint: str, status: int, response_time: float = None) -> None:
    """
    Log an API response with status and timing information.

    Example:
        >>> log_api_response("GET", "/v1/system/time", 200, 0.342)
        [DEBUG] API Response: GET /v1/system/time | Status: 200 | Time: 0.342s
    """
    time_str = f" | Time: {response_time:.3f}s" if response_time else ""
    logger.debug(f"API Response: {method} {endpoint} | Status: {status}{time_str}")


def log_websocket_event(event: str, details: str = None, verbose: bool = True) -> None:
    """
    Log a streaming lifecycle event.

    Args:
        event: Event type (e.g., "connected", "closed", "reconnecting", "error")
        details: Additional details (optional)
        verbose: Log at INFO when True, DEBUG otherwise (errors always at ERROR)

    Example:
        >>> log_websocket_event("connected", "wss://feed.cobinhood.com/ws")
        [INFO] WebSocket: connected | wss://feed.cobinhood.com/ws
    """
    details_str = f" | {details}" if details else ""

    if event == "error":
        level = logging.ERROR
    else:
        level = logging.INFO if verbose else logging.DEBUG
    logger.log(level, f"WebSocket: {event}{details_str}")

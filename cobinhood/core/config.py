"""
Configuration Management Module

This module defines the client configuration and loads it from environment
variables (or a .env file) using Pydantic Settings.

Key Features:
- Loads configuration from COBINHOOD_* environment variables or .env
- Immutable: a Settings value is built once per client and shared by reference
- Validates URLs, timeouts and log level before a client starts talking to the exchange

Usage:
    from cobinhood.core.config import Settings

    settings = Settings(api_key="...", verbose=True)
    print(settings.base_url)
"""

from typing import Dict
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Client Settings

    Values are read from environment variables prefixed with COBINHOOD_
    (e.g. COBINHOOD_API_KEY) or passed explicitly as keyword arguments.
    The instance is frozen; build a new one instead of mutating it.

    Attributes:
        api_key: API token sent as the `authorization` header
        base_url: REST API base URL
        ws_url: Streaming feed URL
        request_timeout: Timeout for REST requests in seconds
        verbose: Log connection lifecycle and subscription acks at INFO level
        user_agent: User-Agent header sent with REST requests
        log_level: Level applied to the `cobinhood` logger
        ws_heartbeat_interval: Seconds between application-level pings
        ws_reconnect_delay: Seconds to wait before reopening a closed stream
        ws_max_reconnect_delay: Cap for the backoff after failed connection attempts
        ws_close_timeout: Seconds to wait for the close handshake
    """

    # ============================================
    # Credentials & Endpoints
    # ============================================

    api_key: str = Field(
        default="",
        description="API token (required for trading and wallet endpoints)"
    )

    base_url: str = Field(
        default="https://api.cobinhood.com",
        description="REST API base URL"
    )

    ws_url: str = Field(
        default="wss://feed.cobinhood.com/ws",
        description="Streaming feed URL"
    )

    # ============================================
    # REST Behaviour
    # ============================================

    request_timeout: float = Field(
        default=30,
        description="HTTP request timeout in seconds"
    )

    user_agent: str = Field(
        default="Mozilla/4.0 (compatible; Python Cobinhood API)",
        description="User-Agent header for REST requests"
    )

    # ============================================
    # Logging
    # ============================================

    verbose: bool = Field(
        default=False,
        description="Log lifecycle events and subscription acks at INFO level"
    )

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    # ============================================
    # Streaming
    # ============================================

    ws_heartbeat_interval: float = Field(
        default=30,
        description="Seconds between ping frames; a missed pong terminates the connection"
    )

    ws_reconnect_delay: float = Field(
        default=0,
        description="Delay before reopening a closed stream (0 = immediately)"
    )

    ws_max_reconnect_delay: float = Field(
        default=30,
        description="Maximum backoff between failed connection attempts (seconds)"
    )

    ws_close_timeout: float = Field(
        default=5,
        description="Seconds to wait for the websocket close handshake"
    )

    # ============================================
    # Pydantic Settings Configuration
    # ============================================

    model_config = SettingsConfigDict(
        env_prefix="COBINHOOD_",
        env_file=".env",
        extra="ignore",
        case_sensitive=False,
        frozen=True
    )

    @property
    def has_credentials(self) -> bool:
        """True if an API key is configured."""
        return bool(self.api_key)

    def rest_headers(self) -> Dict[str, str]:
        """
        Get default HTTP headers for REST requests.

        Returns:
            Dictionary of headers shared by public and authenticated calls

        Note:
            The authorization header is added by the authenticated pipeline only.
        """
        return {
            "User-Agent": self.user_agent,
            "Content-Type": "application/json",
        }

    def stream_headers(self) -> Dict[str, str]:
        """Headers sent when opening the streaming connection."""
        if self.api_key:
            return {"authorization": self.api_key}
        return {}


# ============================================
# Configuration Validation
# ============================================

VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def validate_configuration(settings: Settings) -> None:
    """
    Validate settings before a client is created.

    Args:
        settings: Settings instance to check

    Raises:
        ValueError: If a URL, timeout, delay or log level is invalid
    """
    # Import logger here to avoid a circular import
    from cobinhood.core.logging import logger

    if not settings.base_url.startswith(("http://", "https://")):
        raise ValueError(f"Invalid base_url: '{settings.base_url}'. Must start with http:// or https://")

    if not settings.ws_url.startswith(("ws://", "wss://")):
        raise ValueError(f"Invalid ws_url: '{settings.ws_url}'. Must start with ws:// or wss://")

    if settings.request_timeout <= 0:
        raise ValueError(f"request_timeout must be positive, got {settings.request_timeout}")

    if settings.ws_heartbeat_interval <= 0:
        raise ValueError(f"ws_heartbeat_interval must be positive, got {settings.ws_heartbeat_interval}")

    if settings.ws_reconnect_delay < 0 or settings.ws_max_reconnect_delay < 0:
        raise ValueError("Reconnect delays cannot be negative")

    if settings.log_level.upper() not in VALID_LOG_LEVELS:
        raise ValueError(
            f"Invalid LOG_LEVEL: '{settings.log_level}'. "
            f"Must be one of: {', '.join(VALID_LOG_LEVELS)}"
        )

    logger.debug("Configuration validated successfully")
    logger.debug(f"REST API: {settings.base_url} (timeout={settings.request_timeout}s)")
    logger.debug(f"Stream: {settings.ws_url} (heartbeat={settings.ws_heartbeat_interval}s)")
    logger.debug(f"Credentials: {'configured' if settings.has_credentials else 'none'}")

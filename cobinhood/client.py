"""
Cobinhood Client

Bundles the REST client and the streaming supervisor around one Settings
value. This is the entry point most applications use.

Usage:
    async with CobinhoodClient(api_key="...", verbose=True) as client:
        pairs = (await client.api.trading_pairs()).unwrap()

        session = client.subscribe(
            [{"type": "ticker", "trading_pair_id": "COB-BTC"}],
            lambda error, data: print(error or data)
        )
        await asyncio.sleep(60)
        await session.stop()
"""

from typing import Iterable, List, Optional, Union

from cobinhood.api_client import CobinhoodAPIClient
from cobinhood.core.config import Settings, validate_configuration
from cobinhood.core.logging import get_logger, set_log_level
from cobinhood.ws_client import (
    ChannelInput,
    CobinhoodWebSocketClient,
    MessageCallback,
    StreamSession,
)


class CobinhoodClient:
    """
    Cobinhood exchange client.

    Attributes:
        settings: Frozen Settings shared by every component
        api: CobinhoodAPIClient for REST calls
        websocket: CobinhoodWebSocketClient for streaming sessions

    Example:
        >>> client = CobinhoodClient(Settings(api_key="..."))
        >>> await client.initialize()
        >>> print((await client.api.balances()).unwrap())
        >>> await client.shutdown()
    """

    def __init__(self, settings: Optional[Settings] = None, **overrides):
        """
        Build the client.

        Args:
            settings: Settings to use (loaded from the environment when None)
            **overrides: Field overrides applied on top of settings

        Raises:
            ValueError: If the resulting configuration is invalid
        """
        if settings is None:
            settings = Settings(**overrides)
        elif overrides:
            settings = settings.model_copy(update=overrides)

        validate_configuration(settings)
        set_log_level(settings.log_level)

        self.settings = settings
        self.api = CobinhoodAPIClient(settings)
        self.websocket = CobinhoodWebSocketClient(settings)
        self.sessions: List[StreamSession] = []
        self.logger = get_logger(__name__)

    async def __aenter__(self):
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.shutdown()

    async def initialize(self) -> None:
        """Open the REST session."""
        await self.api.__aenter__()
        self.logger.debug("CobinhoodClient initialized")

    async def shutdown(self) -> None:
        """Stop every streaming session started here and close the REST session."""
        for session in self.sessions:
            await session.stop()
        for session in self.sessions:
            await session.wait_closed()
        self.sessions.clear()

        await self.api.close()
        self.logger.debug("CobinhoodClient shut down")

    def subscribe(
        self,
        channels: Union[ChannelInput, Iterable[ChannelInput]],
        on_message: MessageCallback,
        reconnect: bool = True
    ) -> StreamSession:
        """
        Start a streaming session; see CobinhoodWebSocketClient.start.

        Sessions stopped since the last call are dropped from `sessions`.
        """
        session = self.websocket.start(channels, on_message, reconnect)
        self.sessions = [existing for existing in self.sessions if not existing.stopped]
        self.sessions.append(session)
        return session

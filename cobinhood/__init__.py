"""
Cobinhood Exchange Client

Async Python client for the Cobinhood exchange:
- api_client.py: REST endpoints (market data, trading, wallet)
- pipeline.py: response normalization into Ok/Err results
- ws_client.py: supervised streaming sessions with heartbeat and reconnect
- dispatcher.py: streaming control-frame handling
"""

from cobinhood.api_client import CobinhoodAPIClient
from cobinhood.client import CobinhoodClient
from cobinhood.core.config import Settings
from cobinhood.core.errors import (
    CobinhoodError,
    DecodeError,
    ErrorKind,
    HttpStatusError,
    MalformedResponseError,
    StreamDecodeError,
    TransportError,
)
from cobinhood.core.result import Err, Ok, Result
from cobinhood.core.schemas import ChannelSubscription, OrderBook, OrderBookLevel, RequestDescriptor
from cobinhood.ws_client import CobinhoodWebSocketClient, ConnectionState, StreamSession

__all__ = [
    "CobinhoodClient",
    "CobinhoodAPIClient",
    "CobinhoodWebSocketClient",
    "StreamSession",
    "ConnectionState",
    "Settings",
    "Result",
    "Ok",
    "Err",
    "ErrorKind",
    "CobinhoodError",
    "TransportError",
    "HttpStatusError",
    "MalformedResponseError",
    "DecodeError",
    "StreamDecodeError",
    "RequestDescriptor",
    "ChannelSubscription",
    "OrderBook",
    "OrderBookLevel",
]

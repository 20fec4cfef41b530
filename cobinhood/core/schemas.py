"""
Data Schemas

Pydantic models shared by the REST and streaming sides of the client.

Models:
    - RequestDescriptor: One REST call (method, path, query, body, headers)
    - ChannelSubscription: One streaming channel and its parameters
    - OrderBookLevel: A single order-book price level
    - OrderBook: Projected order-book snapshot
"""

from typing import Any, Dict, List, Literal, Mapping, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, field_validator


# ============================================
# REST Request Descriptor
# ============================================

class RequestDescriptor(BaseModel):
    """
    Immutable description of a single REST call.

    Attributes:
        method: HTTP method (GET, POST, PUT, DELETE)
        path: Endpoint path relative to the base URL (e.g. "/v1/system/time")
        query: Query string parameters; None values are dropped
        body: JSON payload for POST/PUT requests
        headers: Extra headers for this call only

    Example:
        >>> RequestDescriptor(path="/v1/market/orderbooks/COB-BTC", query={"limit": 50})
    """

    model_config = ConfigDict(frozen=True)

    method: Literal["GET", "POST", "PUT", "DELETE"] = "GET"
    path: str
    query: Dict[str, Any] = Field(default_factory=dict)
    body: Optional[Dict[str, Any]] = None
    headers: Dict[str, str] = Field(default_factory=dict)

    @field_validator("query")
    @classmethod
    def drop_empty_params(cls, v: Dict[str, Any]) -> Dict[str, Any]:
        """Remove parameters that were not supplied"""
        return {key: value for key, value in v.items() if value is not None}

    @property
    def is_mutating(self) -> bool:
        """True for requests that change exchange state (need a nonce)."""
        return self.method != "GET"


# ============================================
# Streaming Channel Subscription
# ============================================

class ChannelSubscription(BaseModel):
    """
    A streaming channel the session keeps subscribed across reconnects.

    Attributes:
        channel: Channel type (e.g. "order-book", "ticker", "trade", "candle", "order")
        params: Channel-specific parameters (e.g. {"trading_pair_id": "COB-BTC"})
        action: "subscribe" or "unsubscribe"

    Frame Format:
        {"action": "subscribe", "type": "order-book", "trading_pair_id": "COB-BTC", "precision": "1E-7"}
    """

    model_config = ConfigDict(frozen=True)

    channel: str
    params: Dict[str, Any] = Field(default_factory=dict)
    action: Literal["subscribe", "unsubscribe"] = "subscribe"

    @classmethod
    def from_value(cls, value: Union["ChannelSubscription", Mapping[str, Any], str]) -> "ChannelSubscription":
        """
        Normalize caller input into a ChannelSubscription.

        Accepts an existing subscription, a mapping with a "type" key plus
        parameters, or a bare channel name. The caller's mapping is copied.

        Raises:
            ValueError: If a mapping has no "type" key or the value has an unsupported type
        """
        if isinstance(value, ChannelSubscription):
            return value
        if isinstance(value, str):
            return cls(channel=value)
        if isinstance(value, Mapping):
            params = dict(value)
            channel = params.pop("type", None)
            params.pop("action", None)
            if not channel:
                raise ValueError(f"Channel mapping must include a 'type' key: {value!r}")
            return cls(channel=channel, params=params)
        raise ValueError(f"Unsupported channel value: {value!r}")

    def to_frame(self, action: Optional[str] = None) -> Dict[str, Any]:
        """Build the outbound control frame for this channel."""
        frame = {"action": action or self.action, "type": self.channel}
        frame.update(self.params)
        return frame

    def same_channel(self, other: "ChannelSubscription") -> bool:
        """True if both refer to the same channel and parameters."""
        return self.channel == other.channel and self.params == other.params


# ============================================
# Order Book
# ============================================

class OrderBookLevel(BaseModel):
    """
    One order-book price level.

    Raw Format:
        [price, order_count, quantity]  e.g. ["0.00012", "2", "150.5"]

    Values are passed through without numeric conversion.
    """

    price: Union[int, float, str]
    orders: Union[int, float, str]
    quantity: Union[int, float, str]

    @classmethod
    def from_raw(cls, level: List[Any]) -> "OrderBookLevel":
        return cls(price=level[0], orders=level[1], quantity=level[2])


class OrderBook(BaseModel):
    """
    Projected order-book snapshot.

    Attributes:
        sequence: Exchange sequence number, passed through unchanged
        bids: Levels taken from the raw `asks` list
        asks: Levels taken from the raw `bids` list

    Notes:
        The bid/ask cross-mapping reproduces the established client behaviour
        and is kept until the exchange's intent is confirmed (see DESIGN.md).
    """

    sequence: Any = None
    bids: List[OrderBookLevel] = Field(default_factory=list)
    asks: List[OrderBookLevel] = Field(default_factory=list)

    @classmethod
    def from_raw(cls, orderbook: Mapping[str, Any]) -> "OrderBook":
        return cls(
            sequence=orderbook.get("sequence"),
            bids=[OrderBookLevel.from_raw(level) for level in orderbook.get("asks", [])],
            asks=[OrderBookLevel.from_raw(level) for level in orderbook.get("bids", [])],
        )

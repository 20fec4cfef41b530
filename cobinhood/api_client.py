"""
Cobinhood REST API Client

This module provides an async client for the Cobinhood REST API. Every method
builds a RequestDescriptor and hands it to the request pipeline; the result is
always an Ok/Err value, never an exception for network or exchange failures.

Endpoints:
    System:   /v1/system/time, /v1/system/info
    Market:   /v1/market/currencies, /v1/market/trading_pairs,
              /v1/market/orderbooks/{pair}, /v1/market/stats,
              /v1/market/tickers[/{pair}], /v1/market/trades/{pair}
    Chart:    /v1/chart/candles/{pair}
    Trading:  /v1/trading/orders[/{id}[/trades]], /v1/trading/order_history   (authenticated)
    Wallet:   /v1/wallet/balances, /v1/wallet/ledger, /v1/wallet/deposit_addresses,
              /v1/wallet/deposits[/{id}], /v1/wallet/withdrawal_addresses,
              /v1/wallet/withdrawals[/{id}]                                 (authenticated)

Usage:
    async with CobinhoodAPIClient(Settings(api_key="...")) as client:
        book = (await client.order_book("COB-BTC", limit=10)).unwrap()
        result = await client.limit_buy("COB-BTC", "0.00001", 100)
"""

from typing import Any, Callable, Optional, Union

import aiohttp
from pydantic import ValidationError

from cobinhood.core.config import Settings
from cobinhood.core.errors import DecodeError
from cobinhood.core.logging import get_logger
from cobinhood.core.result import Err, Ok, Result
from cobinhood.core.schemas import OrderBook, RequestDescriptor
from cobinhood.pipeline import AiohttpTransport, AuthenticatedRequestPipeline, RequestPipeline

Number = Union[int, float, str]

PROJECTION_ERRORS = (IndexError, KeyError, TypeError, AttributeError, ValidationError)


def _success_flag(value: Any) -> Any:
    """Read `success` from a decoded value; None when it is not a mapping."""
    if isinstance(value, dict):
        return value.get("success")
    return None


class CobinhoodAPIClient:
    """
    Async client for the Cobinhood REST API.

    Attributes:
        settings: Client settings
        transport: Transport used by both pipelines (aiohttp unless injected)
        public: Pipeline for unauthenticated endpoints
        private: Pipeline that adds authorization and nonce headers

    Example:
        >>> async with CobinhoodAPIClient() as client:
        ...     result = await client.server_time()
        ...     print(result.unwrap())

    Notes:
        - Uses context manager for automatic session cleanup
        - A transport may be injected instead (the caller then owns its lifecycle)
    """

    def __init__(self, settings: Optional[Settings] = None, transport=None):
        self.settings = settings or Settings()
        self.logger = get_logger(__name__)
        self.session: Optional[aiohttp.ClientSession] = None
        self.transport = None
        self.public: Optional[RequestPipeline] = None
        self.private: Optional[AuthenticatedRequestPipeline] = None

        if transport is not None:
            self._bind(transport)

    # ============================================
    # Context Manager for Session Management
    # ============================================

    async def __aenter__(self):
        if self.transport is None:
            self.session = aiohttp.ClientSession()
            self._bind(AiohttpTransport(self.session, self.settings.request_timeout))
            self.logger.debug("CobinhoodAPIClient session created")
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self) -> None:
        """Close the HTTP session if this client created one."""
        if self.session is not None:
            if not self.session.closed:
                await self.session.close()
                self.logger.debug("CobinhoodAPIClient session closed")
            self.session = None
            self.transport = None
            self.public = None
            self.private = None

    def _bind(self, transport) -> None:
        self.transport = transport
        self.public = RequestPipeline(transport, self.settings)
        self.private = AuthenticatedRequestPipeline(transport, self.settings)

    # ============================================
    # Request Helpers
    # ============================================

    async def _request(self, descriptor: RequestDescriptor, result_key: Optional[str] = None) -> Result:
        if self.public is None:
            raise RuntimeError("Client session not initialized. Use 'async with' statement.")
        return await self.public.execute(descriptor, result_key)

    async def _request_auth(self, descriptor: RequestDescriptor, result_key: Optional[str] = None) -> Result:
        if self.private is None:
            raise RuntimeError("Client session not initialized. Use 'async with' statement.")
        if not self.settings.has_credentials:
            self.logger.warning(f"Calling {descriptor.path} without an API key")
        return await self.private.execute(descriptor, result_key)

    def _project(self, result: Result, projection: Callable[[Any], Any], path: str) -> Result:
        """
        Apply a projection to an Ok value.

        A decoded value without the expected shape becomes Err(DecodeError)
        instead of raising out of the call.
        """
        if not result.is_ok:
            return result
        try:
            return Ok(projection(result.value))
        except PROJECTION_ERRORS as e:
            self.logger.error(f"Unexpected response shape on {path}: {e!r}")
            return Err(DecodeError(repr(result.value), cause=e, message="Response body has an unexpected shape"))

    # ============================================
    # System
    # ============================================

    async def server_time(self) -> Result:
        """Server time in milliseconds (result key `time`)."""
        return await self._request(RequestDescriptor(path="/v1/system/time"), "time")

    async def server_info(self) -> Result:
        """Server build/phase information (result key `info`)."""
        return await self._request(RequestDescriptor(path="/v1/system/info"), "info")

    # ============================================
    # Market Data
    # ============================================

    async def currencies(self) -> Result:
        return await self._request(RequestDescriptor(path="/v1/market/currencies"), "currencies")

    async def trading_pairs(self) -> Result:
        return await self._request(RequestDescriptor(path="/v1/market/trading_pairs"), "trading_pairs")

    async def order_book(self, trading_pair_id: str, limit: int = 50) -> Result:
        """
        Fetch and project the order book of a trading pair.

        Args:
            trading_pair_id: Trading pair (e.g., "COB-BTC")
            limit: Levels per side (default 50)

        Returns:
            Ok(OrderBook) or Err

        Response Format:
            {"result": {"orderbook": {
                "sequence": 1938,
                "bids": [["0.00012", "2", "150.5"], ...],
                "asks": [["0.00013", "1", "20.0"], ...]
            }}}

        Notes:
            Raw asks are exposed as `bids` and raw bids as `asks` (see OrderBook).
        """
        descriptor = RequestDescriptor(
            path=f"/v1/market/orderbooks/{trading_pair_id}",
            query={"limit": limit}
        )
        result = await self._request(descriptor, "orderbook")
        return self._project(result, OrderBook.from_raw, descriptor.path)

    async def stats(self) -> Result:
        """Market statistics for every pair (whole envelope)."""
        return await self._request(RequestDescriptor(path="/v1/market/stats"))

    async def ticker(self, trading_pair_id: str) -> Result:
        return await self._request(RequestDescriptor(path=f"/v1/market/tickers/{trading_pair_id}"), "ticker")

    async def tickers(self) -> Result:
        return await self._request(RequestDescriptor(path="/v1/market/tickers"), "tickers")

    async def last_price(self, trading_pair_id: str) -> Result:
        """
        Last trade price from the pair's ticker.

        Returns Err(DecodeError) when the response carries no ticker with a
        `last_trade_price` field.
        """
        result = await self.ticker(trading_pair_id)
        return self._project(
            result,
            lambda ticker: ticker["last_trade_price"],
            f"/v1/market/tickers/{trading_pair_id}"
        )

    async def trades(self, trading_pair_id: str, limit: int = 20) -> Result:
        descriptor = RequestDescriptor(
            path=f"/v1/market/trades/{trading_pair_id}",
            query={"limit": limit}
        )
        return await self._request(descriptor, "trades")

    async def candles(
        self,
        trading_pair_id: str,
        timeframe: str,
        end_time: Optional[int] = None,
        start_time: Optional[int] = None
    ) -> Result:
        """
        Fetch candlestick data.

        Args:
            trading_pair_id: Trading pair (e.g., "COB-BTC")
            timeframe: 1m, 5m, 15m, 30m, 1h, 3h, 6h, 12h, 1D, 7D, 14D, 1M
            end_time: Optional end time in milliseconds since epoch
            start_time: Optional start time in milliseconds since epoch
        """
        descriptor = RequestDescriptor(
            path=f"/v1/chart/candles/{trading_pair_id}",
            query={"timeframe": timeframe, "end_time": end_time, "start_time": start_time}
        )
        return await self._request(descriptor, "candles")

    # ============================================
    # Trading (authenticated)
    # ============================================

    async def order_status(self, order_id: str) -> Result:
        return await self._request_auth(RequestDescriptor(path=f"/v1/trading/orders/{order_id}"), "order")

    async def order_trades(self, order_id: str) -> Result:
        return await self._request_auth(RequestDescriptor(path=f"/v1/trading/orders/{order_id}/trades"), "trades")

    async def open_orders(self, trading_pair_id: str, limit: int = 20) -> Result:
        descriptor = RequestDescriptor(
            path="/v1/trading/orders",
            query={"trading_pair_id": trading_pair_id, "limit": limit}
        )
        return await self._request_auth(descriptor, "orders")

    async def open_orders_all(self, limit: int = 20) -> Result:
        descriptor = RequestDescriptor(path="/v1/trading/orders", query={"limit": limit})
        return await self._request_auth(descriptor, "orders")

    async def order_cancel(self, order_id: str) -> Result:
        """
        Cancel an order.

        Returns:
            Ok(success flag) or Err

        Notes:
            The flag is read from the value under `result.orders` when present
            (None if that value is not a mapping), otherwise from the envelope.
        """
        descriptor = RequestDescriptor(method="DELETE", path=f"/v1/trading/orders/{order_id}")
        result = await self._request_auth(descriptor, "orders")
        return result.map(_success_flag)

    async def order_modify(self, order_id: str, price: Number, quantity: Number) -> Result:
        """Change price and size of an open order; Ok(success flag) or Err."""
        descriptor = RequestDescriptor(
            method="PUT",
            path=f"/v1/trading/orders/{order_id}",
            body={"price": str(price), "size": str(quantity)}
        )
        result = await self._request_auth(descriptor)
        return result.map(_success_flag)

    async def order_history(self, trading_pair_id: str, limit: int = 50) -> Result:
        descriptor = RequestDescriptor(
            path="/v1/trading/order_history",
            query={"trading_pair_id": trading_pair_id, "limit": limit}
        )
        return await self._request_auth(descriptor, "orders")

    async def order_history_all(self, limit: int = 50) -> Result:
        descriptor = RequestDescriptor(path="/v1/trading/order_history", query={"limit": limit})
        return await self._request_auth(descriptor, "orders")

    async def place_order(
        self,
        trading_pair_id: str,
        price: Number,
        quantity: Number,
        side: str,
        order_type: str
    ) -> Result:
        """
        Place an order.

        Args:
            trading_pair_id: Trading pair (e.g., "COB-BTC")
            price: Limit price ("" for market orders)
            quantity: Order size
            side: "bid" or "ask"
            order_type: "limit" or "market"

        Returns:
            Ok(order) or Err
        """
        descriptor = RequestDescriptor(
            method="POST",
            path="/v1/trading/orders",
            body={
                "trading_pair_id": trading_pair_id,
                "side": side,
                "type": order_type,
                "price": str(price),
                "size": str(quantity),
            }
        )
        self.logger.info(f"Placing {order_type} {side} order: {quantity} {trading_pair_id} @ {price or 'market'}")
        return await self._request_auth(descriptor, "order")

    async def limit_buy(self, trading_pair_id: str, price: Number, quantity: Number) -> Result:
        return await self.place_order(trading_pair_id, price, quantity, "bid", "limit")

    async def limit_sell(self, trading_pair_id: str, price: Number, quantity: Number) -> Result:
        return await self.place_order(trading_pair_id, price, quantity, "ask", "limit")

    async def market_buy(self, trading_pair_id: str, quantity: Number) -> Result:
        return await self.place_order(trading_pair_id, "", quantity, "bid", "market")

    async def market_sell(self, trading_pair_id: str, quantity: Number) -> Result:
        return await self.place_order(trading_pair_id, "", quantity, "ask", "market")

    # ============================================
    # Wallet (authenticated)
    # ============================================

    async def balances(self) -> Result:
        return await self._request_auth(RequestDescriptor(path="/v1/wallet/balances"), "balances")

    async def balance_history(self, currency: str, limit: int = 20) -> Result:
        descriptor = RequestDescriptor(path="/v1/wallet/ledger", query={"limit": limit, "currency": currency})
        return await self._request_auth(descriptor, "ledger")

    async def balance_history_all(self, limit: int = 20) -> Result:
        descriptor = RequestDescriptor(path="/v1/wallet/ledger", query={"limit": limit})
        return await self._request_auth(descriptor, "ledger")

    async def deposit_addresses(self, currency: str) -> Result:
        descriptor = RequestDescriptor(path="/v1/wallet/deposit_addresses", query={"currency": currency})
        return await self._request_auth(descriptor, "deposit_addresses")

    async def deposit_addresses_all(self) -> Result:
        return await self._request_auth(RequestDescriptor(path="/v1/wallet/deposit_addresses"), "deposit_addresses")

    async def deposit_status(self, deposit_id: str) -> Result:
        return await self._request_auth(RequestDescriptor(path=f"/v1/wallet/deposits/{deposit_id}"), "deposit")

    async def deposits(self) -> Result:
        return await self._request_auth(RequestDescriptor(path="/v1/wallet/deposits"), "deposits")

    async def withdrawal_addresses(self, currency: str) -> Result:
        descriptor = RequestDescriptor(path="/v1/wallet/withdrawal_addresses", query={"currency": currency})
        return await self._request_auth(descriptor, "withdrawal_addresses")

    async def withdrawal_addresses_all(self) -> Result:
        return await self._request_auth(
            RequestDescriptor(path="/v1/wallet/withdrawal_addresses"), "withdrawal_addresses"
        )

    async def withdrawal_status(self, withdrawal_id: str) -> Result:
        return await self._request_auth(RequestDescriptor(path=f"/v1/wallet/withdrawals/{withdrawal_id}"), "withdrawal")

    async def withdrawals(self) -> Result:
        return await self._request_auth(RequestDescriptor(path="/v1/wallet/withdrawals"), "withdrawals")

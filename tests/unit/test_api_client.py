"""
Unit Tests for the Cobinhood REST Client

These tests verify that CobinhoodAPIClient:
- Builds the right method, path, query and body for each endpoint
- Uses the authenticated pipeline for trading and wallet endpoints
- Projects order books and success flags from the decoded envelope

Run with:
    pytest tests/unit/test_api_client.py -v
"""

import pytest
import pytest_asyncio

from cobinhood.api_client import CobinhoodAPIClient
from cobinhood.core.errors import ErrorKind
from cobinhood.core.schemas import OrderBook, OrderBookLevel


# ============================================
# Fixtures
# ============================================

@pytest_asyncio.fixture
async def api_client(settings, transport):
    """Create a CobinhoodAPIClient backed by a fake transport"""
    async with CobinhoodAPIClient(settings, transport=transport) as client:
        yield client


# ============================================
# Tests for Session Management
# ============================================

class TestSessionManagement:
    """Tests for client lifecycle"""

    @pytest.mark.asyncio
    async def test_request_without_session_raises(self, settings):
        """Verify calls outside 'async with' raise RuntimeError"""
        client = CobinhoodAPIClient(settings)

        with pytest.raises(RuntimeError, match="not initialized"):
            await client.server_time()

    @pytest.mark.asyncio
    async def test_context_manager_creates_and_closes_session(self, settings):
        """Verify the aiohttp session lives exactly as long as the context"""
        client = CobinhoodAPIClient(settings)
        assert client.session is None

        async with client:
            assert client.session is not None
            assert client.public is not None
            session = client.session

        assert session.closed
        assert client.session is None


# ============================================
# Tests for Market Data
# ============================================

class TestMarketData:
    """Tests for public endpoints"""

    @pytest.mark.asyncio
    async def test_server_time(self, api_client, transport):
        """Verify server_time narrows to result.time"""
        transport.respond(payload={"success": True, "result": {"time": 1504459805123}})

        result = await api_client.server_time()

        assert result.unwrap() == 1504459805123
        assert transport.last_call["url"].endswith("/v1/system/time")
        assert "authorization" not in transport.last_call["headers"]

    @pytest.mark.asyncio
    async def test_order_book_projection(self, api_client, transport):
        """Verify raw levels become records with the established bid/ask cross-mapping"""
        transport.respond(payload={
            "success": True,
            "result": {"orderbook": {"sequence": 77, "asks": [[100, 2, 5]], "bids": [[99, 1, 3]]}}
        })

        result = await api_client.order_book("COB-BTC", limit=10)
        book = result.unwrap()

        assert isinstance(book, OrderBook)
        assert book.sequence == 77
        assert book.bids == [OrderBookLevel(price=100, orders=2, quantity=5)]
        assert book.asks == [OrderBookLevel(price=99, orders=1, quantity=3)]
        assert book.model_dump() == {
            "sequence": 77,
            "bids": [{"price": 100, "orders": 2, "quantity": 5}],
            "asks": [{"price": 99, "orders": 1, "quantity": 3}],
        }
        assert transport.last_call["url"].endswith("/v1/market/orderbooks/COB-BTC")
        assert transport.last_call["params"] == {"limit": 10}

    @pytest.mark.asyncio
    async def test_order_book_preserves_level_order_and_strings(self, api_client, transport):
        """Verify levels keep input order and string values"""
        transport.respond(payload={"result": {"orderbook": {
            "sequence": "12",
            "asks": [["0.3", "1", "10"], ["0.2", "4", "7.5"]],
            "bids": []
        }}})

        book = (await api_client.order_book("COB-BTC")).unwrap()

        assert [level.price for level in book.bids] == ["0.3", "0.2"]
        assert book.bids[1].quantity == "7.5"
        assert book.sequence == "12"
        assert book.asks == []
        assert transport.last_call["params"] == {"limit": 50}

    @pytest.mark.asyncio
    async def test_order_book_error_passes_through(self, api_client, transport):
        """Verify an error skips the projection"""
        transport.respond(status=404, payload={"error": {"error_code": "trading_pair_not_found"}})

        result = await api_client.order_book("NOPE-BTC")

        assert result.kind == ErrorKind.EXCHANGE
        assert result.error.code == "trading_pair_not_found"

    @pytest.mark.asyncio
    async def test_order_book_short_level_is_decode_error(self, api_client, transport):
        """Verify a level with fewer than three fields comes back as Err"""
        transport.respond(payload={"result": {"orderbook": {"sequence": 1, "asks": [["1", "2"]], "bids": []}}})

        result = await api_client.order_book("COB-BTC")

        assert not result.is_ok
        assert result.kind == ErrorKind.DECODE
        assert isinstance(result.error.cause, IndexError)

    @pytest.mark.asyncio
    async def test_order_book_array_body_is_decode_error(self, api_client, transport):
        """Verify a non-object order book comes back as Err"""
        transport.respond(body="[]")

        result = await api_client.order_book("COB-BTC")

        assert result.kind == ErrorKind.DECODE
        assert "unexpected shape" in result.detail

    @pytest.mark.asyncio
    async def test_order_book_non_list_level_is_decode_error(self, api_client, transport):
        """Verify a scalar level comes back as Err"""
        transport.respond(payload={"result": {"orderbook": {"asks": [7], "bids": []}}})

        result = await api_client.order_book("COB-BTC")

        assert result.kind == ErrorKind.DECODE

    @pytest.mark.asyncio
    async def test_last_price(self, api_client, transport):
        """Verify last_price reads the ticker's last trade price"""
        transport.respond(payload={"result": {"ticker": {"trading_pair_id": "COB-BTC", "last_trade_price": "0.0001"}}})

        result = await api_client.last_price("COB-BTC")

        assert result.unwrap() == "0.0001"
        assert transport.last_call["url"].endswith("/v1/market/tickers/COB-BTC")

    @pytest.mark.asyncio
    async def test_last_price_without_ticker_is_decode_error(self, api_client, transport):
        """Verify a response without a ticker is reported instead of Ok(None)"""
        transport.respond(payload={"success": True, "result": {}})

        result = await api_client.last_price("COB-BTC")

        assert result.kind == ErrorKind.DECODE
        assert isinstance(result.error.cause, KeyError)

    @pytest.mark.asyncio
    async def test_candles_omits_unset_times(self, api_client, transport):
        """Verify optional time bounds are only sent when given"""
        transport.respond(payload={"result": {"candles": []}})

        await api_client.candles("COB-BTC", "1h")
        assert transport.last_call["params"] == {"timeframe": "1h"}

        await api_client.candles("COB-BTC", "1h", end_time=2000, start_time=1000)
        assert transport.last_call["params"] == {"timeframe": "1h", "end_time": 2000, "start_time": 1000}
        assert transport.last_call["url"].endswith("/v1/chart/candles/COB-BTC")

    @pytest.mark.asyncio
    async def test_stats_returns_envelope(self, api_client, transport):
        """Verify stats has no result key"""
        envelope = {"success": True, "result": {"COB-BTC": {"last_price": "1"}}}
        transport.respond(payload=envelope)

        assert (await api_client.stats()).unwrap() == envelope


# ============================================
# Tests for Trading
# ============================================

class TestTrading:
    """Tests for authenticated trading endpoints"""

    @pytest.mark.asyncio
    async def test_limit_buy_payload(self, api_client, transport):
        """Verify limit orders POST the expected body with a nonce"""
        order = {"id": "37f550a2", "state": "queued"}
        transport.respond(payload={"success": True, "result": {"order": order}})

        result = await api_client.limit_buy("COB-BTC", 0.00012, 100)

        call = transport.last_call
        assert result.unwrap() == order
        assert call["method"] == "POST"
        assert call["url"].endswith("/v1/trading/orders")
        assert call["body"] == {
            "trading_pair_id": "COB-BTC",
            "side": "bid",
            "type": "limit",
            "price": "0.00012",
            "size": "100",
        }
        assert call["headers"]["authorization"] == "test-key"
        assert call["headers"]["nonce"].isdigit()

    @pytest.mark.asyncio
    async def test_market_sell_sends_empty_price(self, api_client, transport):
        """Verify market orders send an empty price"""
        transport.respond(payload={"result": {"order": {}}})

        await api_client.market_sell("COB-BTC", 5)

        body = transport.last_call["body"]
        assert body["side"] == "ask"
        assert body["type"] == "market"
        assert body["price"] == ""
        assert body["size"] == "5"

    @pytest.mark.asyncio
    async def test_open_orders_query(self, api_client, transport):
        """Verify open_orders filters by pair and sends no nonce"""
        transport.respond(payload={"result": {"orders": []}})

        result = await api_client.open_orders("COB-BTC")

        assert result.unwrap() == []
        assert transport.last_call["params"] == {"trading_pair_id": "COB-BTC", "limit": 20}
        assert "nonce" not in transport.last_call["headers"]

    @pytest.mark.asyncio
    async def test_order_cancel_reads_success_from_orders(self, api_client, transport):
        """Verify cancel reads `success` from result.orders when it is a mapping"""
        transport.respond(payload={"success": True, "result": {"orders": {"success": True}}})

        result = await api_client.order_cancel("abc")

        assert result.unwrap() is True
        assert transport.last_call["method"] == "DELETE"
        assert transport.last_call["url"].endswith("/v1/trading/orders/abc")
        assert "nonce" in transport.last_call["headers"]

    @pytest.mark.asyncio
    async def test_order_cancel_with_array_orders(self, api_client, transport):
        """Verify an array-shaped result.orders yields no success flag"""
        transport.respond(payload={"success": True, "result": {"orders": [{"id": "abc"}]}})

        result = await api_client.order_cancel("abc")

        assert result.is_ok
        assert result.value is None

    @pytest.mark.asyncio
    async def test_order_modify(self, api_client, transport):
        """Verify modify PUTs price/size and returns the envelope's success flag"""
        transport.respond(payload={"success": True})

        result = await api_client.order_modify("abc", 0.5, 10)

        call = transport.last_call
        assert result.unwrap() is True
        assert call["method"] == "PUT"
        assert call["body"] == {"price": "0.5", "size": "10"}


# ============================================
# Tests for Wallet
# ============================================

class TestWallet:
    """Tests for authenticated wallet endpoints"""

    @pytest.mark.asyncio
    async def test_balances(self, api_client, transport):
        """Verify balances narrows to result.balances and is authenticated"""
        balances = [{"currency": "BTC", "total": "1.0"}]
        transport.respond(payload={"result": {"balances": balances}})

        result = await api_client.balances()

        assert result.unwrap() == balances
        assert transport.last_call["headers"]["authorization"] == "test-key"

    @pytest.mark.asyncio
    async def test_balance_history_query(self, api_client, transport):
        """Verify ledger queries carry currency and limit"""
        transport.respond(payload={"result": {"ledger": []}})

        await api_client.balance_history("ETH", limit=5)

        assert transport.last_call["url"].endswith("/v1/wallet/ledger")
        assert transport.last_call["params"] == {"limit": 5, "currency": "ETH"}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("method_name, args, path, key", [
        ("deposit_status", ("d1",), "/v1/wallet/deposits/d1", "deposit"),
        ("deposits", (), "/v1/wallet/deposits", "deposits"),
        ("deposit_addresses_all", (), "/v1/wallet/deposit_addresses", "deposit_addresses"),
        ("withdrawal_status", ("w1",), "/v1/wallet/withdrawals/w1", "withdrawal"),
        ("withdrawals", (), "/v1/wallet/withdrawals", "withdrawals"),
        ("withdrawal_addresses", ("BTC",), "/v1/wallet/withdrawal_addresses", "withdrawal_addresses"),
    ])
    async def test_wallet_endpoints(self, api_client, transport, method_name, args, path, key):
        """Verify wallet endpoints hit the right path and result key"""
        transport.respond(payload={"result": {key: "value"}})

        result = await getattr(api_client, method_name)(*args)

        assert result.unwrap() == "value"
        assert transport.last_call["url"].endswith(path)
        assert transport.last_call["method"] == "GET"

"""
Shared fixtures: fake HTTP transport, fake websocket connections and a
polling helper for asynchronous assertions.
"""

import asyncio
import json

import aiohttp
import pytest
from aiohttp import WSMsgType

from cobinhood.core.config import Settings
from cobinhood.pipeline import TransportResponse


# ============================================
# Fake HTTP Transport
# ============================================

class FakeTransport:
    """Records requests and answers with a canned response or error"""

    def __init__(self, status=200, body="{}", error=None):
        self.status = status
        self.body = body
        self.error = error
        self.calls = []

    def respond(self, status=200, body=None, payload=None):
        self.status = status
        self.body = json.dumps(payload) if payload is not None else body
        self.error = None

    async def request(self, method, url, params=None, body=None, headers=None):
        self.calls.append({
            "method": method,
            "url": url,
            "params": params,
            "body": body,
            "headers": headers,
        })
        if self.error is not None:
            raise self.error
        return TransportResponse(status=self.status, body=self.body)

    @property
    def last_call(self):
        return self.calls[-1]


# ============================================
# Fake WebSocket
# ============================================

class MockWSMessage:
    """Mock aiohttp WebSocket message"""

    def __init__(self, msg_type, data=None):
        self.type = msg_type
        self.data = data


class FakeWebSocket:
    """In-memory stand-in for aiohttp.ClientWebSocketResponse"""

    def __init__(self, auto_pong=False):
        self.auto_pong = auto_pong
        self.sent = []
        self.closed = False
        self.close_code = None
        self._inbound = asyncio.Queue()

    def feed(self, payload):
        """Queue an inbound TEXT frame (dicts are JSON encoded)"""
        data = payload if isinstance(payload, str) else json.dumps(payload)
        self._inbound.put_nowait(MockWSMessage(WSMsgType.TEXT, data))

    def feed_close(self):
        """Simulate a peer-initiated close"""
        self._inbound.put_nowait(None)

    async def send_json(self, data):
        if self.closed:
            raise ConnectionResetError("Cannot write to closing transport")
        self.sent.append(data)
        if self.auto_pong and data == {"action": "ping"}:
            self.feed({"event": "pong"})

    async def close(self, code=aiohttp.WSCloseCode.OK):
        if not self.closed:
            self.closed = True
            self.close_code = code
            self._inbound.put_nowait(None)
        return True

    def __aiter__(self):
        return self

    async def __anext__(self):
        msg = await self._inbound.get()
        if msg is None:
            self.closed = True
            raise StopAsyncIteration
        return msg


class FakeConnector:
    """Hands out FakeWebSocket connections; can fail the first N attempts"""

    def __init__(self, failures=0, auto_pong=False):
        self.failures = failures
        self.auto_pong = auto_pong
        self.connections = []
        self.requests = []
        self.attempts = 0

    async def connect(self, url, headers):
        self.attempts += 1
        self.requests.append((url, headers))
        if self.failures:
            self.failures -= 1
            raise aiohttp.ClientConnectionError("Connection refused")
        ws = FakeWebSocket(auto_pong=self.auto_pong)
        self.connections.append(ws)
        return ws

    async def close(self):
        pass


# ============================================
# Fixtures
# ============================================

@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def connector():
    return FakeConnector()


@pytest.fixture
def make_connector():
    """Factory for connectors with custom failure / pong behaviour"""
    return FakeConnector


@pytest.fixture
def settings():
    return Settings(
        api_key="test-key",
        ws_heartbeat_interval=60,
        ws_reconnect_delay=0,
        ws_max_reconnect_delay=0,
    )


@pytest.fixture
def wait_until():
    """Poll a predicate until it holds or fail after a timeout"""

    async def _wait_until(predicate, timeout=2.0):
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while not predicate():
            if loop.time() > deadline:
                raise AssertionError("Condition not met before timeout")
            await asyncio.sleep(0.005)

    return _wait_until

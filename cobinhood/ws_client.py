"""
Cobinhood Streaming Client

This module supervises streaming sessions on the Cobinhood feed:
- Opens the connection with the API key as `authorization` header
- Subscribes every channel, in the order given, each time the connection opens
- Sends an application-level ping every heartbeat interval and terminates the
  connection if the previous ping went unanswered
- Reconnects after any close (unless disabled) and replays the same subscriptions
- Routes control frames to the MessageDispatcher and data frames to the caller

Session Lifecycle:
    IDLE -> CONNECTING -> OPEN -> CLOSED -> CONNECTING -> ...   (reconnect enabled)
    IDLE -> CONNECTING -> OPEN -> CLOSED                        (reconnect disabled / stopped)

Outbound Frames:
    {"action": "subscribe", "type": "ticker", "trading_pair_id": "COB-BTC"}
    {"action": "ping"}

Usage:
    client = CobinhoodWebSocketClient(settings)

    def on_message(error, data):
        if error:
            print("bad frame", error)
        else:
            print(data)

    session = client.start([{"type": "ticker", "trading_pair_id": "COB-BTC"}], on_message)
    ...
    await session.stop()
"""

import asyncio
import contextlib
import inspect
import json
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Tuple, Union

import aiohttp

from cobinhood.core.config import Settings
from cobinhood.core.errors import CobinhoodError, StreamDecodeError
from cobinhood.core.logging import get_logger, log_websocket_event
from cobinhood.core.schemas import ChannelSubscription
from cobinhood.core.utils.time import current_utc_datetime
from cobinhood.dispatcher import PONG, MessageDispatcher

PING_FRAME = {"action": "ping"}

MessageCallback = Callable[[Optional[CobinhoodError], Any], Any]
ChannelInput = Union[ChannelSubscription, Mapping[str, Any], str]


class ConnectionState(str, Enum):
    """State of a supervised streaming session."""

    IDLE = "idle"
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSING = "closing"
    CLOSED = "closed"


@dataclass
class HeartbeatState:
    """Liveness bookkeeping for the current connection."""

    alive_since_last_probe: bool = True
    last_ping_sent_at: Optional[datetime] = None

    def reset(self) -> None:
        self.alive_since_last_probe = True
        self.last_ping_sent_at = None


# ============================================
# Default Connector
# ============================================

class AiohttpStreamConnector:
    """
    Opens websocket connections through one aiohttp ClientSession.

    Protocol-level pings are left to aiohttp (autoping); liveness is checked
    with application-level ping frames by the supervisor.
    """

    def __init__(self, close_timeout: float = 5):
        self.close_timeout = close_timeout
        self.session: Optional[aiohttp.ClientSession] = None

    async def connect(self, url: str, headers: Dict[str, str]) -> aiohttp.ClientWebSocketResponse:
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession()
        return await self.session.ws_connect(
            url,
            headers=headers,
            autoping=True,
            timeout=aiohttp.ClientWSTimeout(ws_close=self.close_timeout)
        )

    async def close(self) -> None:
        if self.session and not self.session.closed:
            await self.session.close()


# ============================================
# Session Handle
# ============================================

class StreamSession:
    """
    Handle for one supervised streaming session.

    Attributes:
        channels: Subscriptions replayed on every (re)connect, in order
        on_message: Callback invoked as on_message(error, data)
        reconnect: Whether a closed connection is reopened
        state: Current ConnectionState
        heartbeat: HeartbeatState of the current connection
        connect_count: Number of connections opened so far
    """

    def __init__(
        self,
        supervisor: "CobinhoodWebSocketClient",
        channels: Tuple[ChannelSubscription, ...],
        on_message: MessageCallback,
        reconnect: bool = True
    ):
        self.channels = channels
        self.on_message = on_message
        self.reconnect = reconnect
        self.state = ConnectionState.IDLE
        self.heartbeat = HeartbeatState()
        self.connection = None
        self.connect_count = 0

        self._supervisor = supervisor
        self._stopped = asyncio.Event()
        self._task: Optional[asyncio.Task] = None

    @property
    def stopped(self) -> bool:
        return self._stopped.is_set()

    async def stop(self) -> None:
        """
        Close the session for good.

        Disables reconnect before closing, so a close event already in flight
        cannot reopen the connection. Safe to call more than once.
        """
        if self._stopped.is_set():
            return

        self.reconnect = False
        self._stopped.set()

        connection = self.connection
        if connection is not None and not connection.closed:
            self.state = ConnectionState.CLOSING
            await connection.close()

    async def wait_closed(self) -> None:
        """Wait until the supervising task has finished."""
        if self._task is not None:
            await asyncio.shield(self._task)

    async def subscribe(self, channel: ChannelInput) -> None:
        """Add a channel to the session and subscribe it now if connected."""
        subscription = ChannelSubscription.from_value(channel)
        if not any(existing.same_channel(subscription) for existing in self.channels):
            self.channels = self.channels + (subscription,)
        await self._send_if_open(subscription.to_frame("subscribe"))

    async def unsubscribe(self, channel: ChannelInput) -> None:
        """Remove a channel from the session and unsubscribe it now if connected."""
        subscription = ChannelSubscription.from_value(channel)
        self.channels = tuple(
            existing for existing in self.channels if not existing.same_channel(subscription)
        )
        await self._send_if_open(subscription.to_frame("unsubscribe"))

    async def _send_if_open(self, frame: Dict[str, Any]) -> None:
        if self.state == ConnectionState.OPEN and self.connection is not None:
            await self._supervisor.send_frame(self.connection, frame)


# ============================================
# Supervisor
# ============================================

class CobinhoodWebSocketClient:
    """
    Supervises streaming sessions on the Cobinhood feed.

    Every session runs in its own asyncio task. All handlers of a session
    (frames, heartbeat ticks, lifecycle changes) run on the event loop, so
    session state needs no locking.

    Attributes:
        settings: Client settings (feed URL, API key, heartbeat interval)
        connector: Object with async connect(url, headers) and close();
            a fresh AiohttpStreamConnector per session when None
        dispatcher: MessageDispatcher for control frames
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        connector=None,
        dispatcher: Optional[MessageDispatcher] = None
    ):
        self.settings = settings or Settings()
        self.connector = connector
        self.dispatcher = dispatcher or MessageDispatcher(verbose=self.settings.verbose)
        self.logger = get_logger(__name__)

    # ============================================
    # Public API
    # ============================================

    def start(
        self,
        channels: Union[ChannelInput, Iterable[ChannelInput]],
        on_message: MessageCallback,
        reconnect: bool = True
    ) -> StreamSession:
        """
        Start a supervised session and return its handle immediately.

        Args:
            channels: One channel or a sequence of channels
            on_message: Called as on_message(None, data) for data frames and
                on_message(StreamDecodeError, None) for undecodable frames;
                may be a coroutine function
            reconnect: Reopen the connection after it closes

        Returns:
            StreamSession handle

        Raises:
            ValueError: If a channel cannot be normalized
            RuntimeError: If called outside a running event loop
        """
        subscriptions = self.normalize_channels(channels)
        loop = asyncio.get_running_loop()

        session = StreamSession(self, subscriptions, on_message, reconnect)
        session.state = ConnectionState.CONNECTING
        session._task = loop.create_task(self._run(session))
        return session

    async def stop(self, session: StreamSession) -> None:
        """Stop a session started by this client."""
        await session.stop()

    @staticmethod
    def normalize_channels(
        channels: Union[ChannelInput, Iterable[ChannelInput]]
    ) -> Tuple[ChannelSubscription, ...]:
        """Wrap a single channel and copy everything into an immutable tuple."""
        if isinstance(channels, (ChannelSubscription, Mapping, str)):
            channels = [channels]
        return tuple(ChannelSubscription.from_value(channel) for channel in channels)

    async def send_frame(self, connection, frame: Dict[str, Any]) -> bool:
        """
        Send one JSON frame.

        Returns:
            False if the connection refused it (the failure is logged)
        """
        try:
            await connection.send_json(frame)
            return True
        except (aiohttp.ClientError, ConnectionError) as e:
            log_websocket_event("error", f"Failed to send {frame.get('action')} frame: {e}")
            return False

    # ============================================
    # Session Loop
    # ============================================

    async def _run(self, session: StreamSession) -> None:
        connector = self.connector or AiohttpStreamConnector(self.settings.ws_close_timeout)
        failures = 0

        try:
            while not session.stopped:
                session.state = ConnectionState.CONNECTING
                log_websocket_event("connecting", self.settings.ws_url, self.settings.verbose)

                try:
                    connection = await connector.connect(self.settings.ws_url, self.settings.stream_headers())
                except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
                    failures += 1
                    session.state = ConnectionState.CLOSED
                    log_websocket_event("error", f"Connection attempt {failures} failed: {e}")
                    if not session.reconnect:
                        break
                    delay = min(2 ** (failures - 1), self.settings.ws_max_reconnect_delay)
                    self.logger.warning(f"Reconnecting in {delay}s... (attempt {failures})")
                    await self._pause(session, delay)
                    continue
                except Exception:
                    self.logger.exception("Unexpected error while connecting; session ends")
                    session.reconnect = False
                    session._stopped.set()
                    break

                failures = 0
                await self._serve(session, connection)

                if not session.reconnect:
                    break

                log_websocket_event("reconnecting", f"{len(session.channels)} channel(s)", self.settings.verbose)
                await self._pause(session, self.settings.ws_reconnect_delay)
        finally:
            session.state = ConnectionState.CLOSED
            if self.connector is None:
                await connector.close()
            log_websocket_event("stopped", None, self.settings.verbose)

    async def _serve(self, session: StreamSession, connection) -> None:
        """Run one connection from open to close."""
        session.connection = connection
        session.connect_count += 1

        if session.stopped:
            await connection.close()
            session.connection = None
            session.state = ConnectionState.CLOSED
            return

        session.state = ConnectionState.OPEN
        session.heartbeat.reset()
        log_websocket_event("connected", self.settings.ws_url, self.settings.verbose)

        tasks = []
        try:
            for subscription in session.channels:
                await self.send_frame(connection, subscription.to_frame("subscribe"))

            reader = asyncio.create_task(self._read_frames(session, connection))
            heartbeat = asyncio.create_task(self._heartbeat(session, connection))
            tasks = [reader, heartbeat]

            done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)

            if heartbeat in done and not reader.done():
                reader.cancel()
                await self._terminate(connection)
        finally:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)

            session.connection = None
            session.state = ConnectionState.CLOSED
            log_websocket_event("closed", self.settings.ws_url, self.settings.verbose)

    async def _pause(self, session: StreamSession, delay: float) -> None:
        """Sleep for delay seconds, waking early if the session is stopped."""
        if delay <= 0:
            return
        with contextlib.suppress(asyncio.TimeoutError):
            await asyncio.wait_for(session._stopped.wait(), timeout=delay)

    # ============================================
    # Heartbeat
    # ============================================

    async def _heartbeat(self, session: StreamSession, connection) -> None:
        """
        Probe the peer every heartbeat interval.

        Returns when a tick finds the previous ping unanswered; the caller
        then terminates the connection.
        """
        while True:
            await asyncio.sleep(self.settings.ws_heartbeat_interval)

            if session.heartbeat.alive_since_last_probe:
                session.heartbeat.alive_since_last_probe = False
                session.heartbeat.last_ping_sent_at = current_utc_datetime()
                await self.send_frame(connection, PING_FRAME)
            else:
                self.logger.warning("Websocket not responding, terminating connection")
                return

    async def _terminate(self, connection) -> None:
        """
        Drop an unresponsive connection with GOING_AWAY.

        aiohttp still sends a close frame, but waits at most ws_close_timeout
        for the peer's reply before tearing the transport down, so a silent
        peer cannot hold the session open.
        """
        try:
            await connection.close(code=aiohttp.WSCloseCode.GOING_AWAY)
        except (aiohttp.ClientError, ConnectionError) as e:
            self.logger.debug(f"Error while terminating connection: {e}")

    # ============================================
    # Inbound Frames
    # ============================================

    async def _read_frames(self, session: StreamSession, connection) -> None:
        try:
            async for msg in connection:
                if msg.type in (aiohttp.WSMsgType.TEXT, aiohttp.WSMsgType.BINARY):
                    await self._handle_frame(session, msg.data)

                elif msg.type == aiohttp.WSMsgType.CLOSED:
                    break

                elif msg.type == aiohttp.WSMsgType.ERROR:
                    log_websocket_event("error", f"Connection error: {msg.data}")
                    break

                else:
                    self.logger.debug(f"Received message type: {msg.type}")

        except (aiohttp.ClientError, ConnectionError) as e:
            log_websocket_event("error", f"Connection lost: {e}")

    async def _handle_frame(self, session: StreamSession, raw: Union[str, bytes]) -> None:
        try:
            message = json.loads(raw)
        except ValueError as e:
            self.logger.error(f"Failed to parse frame: {raw[:100]!r}... Error: {e}")
            await self._emit(session, StreamDecodeError(raw, cause=e), None)
            return

        if isinstance(message, dict) and "event" in message:
            if message["event"] == PONG:
                session.heartbeat.alive_since_last_probe = True
            else:
                self.dispatcher.dispatch(message)
            return

        await self._emit(session, None, message)

    async def _emit(self, session: StreamSession, error: Optional[CobinhoodError], data: Any) -> None:
        try:
            outcome = session.on_message(error, data)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception:
            self.logger.exception("Message callback raised; stream stays open")

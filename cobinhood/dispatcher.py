"""
Streaming Control Message Dispatcher

Handles inbound control frames (anything carrying an "event" key other than
"pong") so they never reach the caller's data callback.

Inbound Control Frames:
    {"event": "subscribed",   "channel_id": "order-book.COB-BTC.1E-7"}
    {"event": "unsubscribed", "channel_id": "order-book.COB-BTC.1E-7"}
    {"event": "error",        "code": 4002, "message": "..."}

The dispatcher only logs; it never raises, so a strange frame cannot bring
the connection down.
"""

import logging
from typing import Any, Dict

from cobinhood.core.logging import get_logger

SUBSCRIBED = "subscribed"
UNSUBSCRIBED = "unsubscribed"
ERROR = "error"
PONG = "pong"

CONTROL_EVENTS = (SUBSCRIBED, UNSUBSCRIBED, ERROR)


class MessageDispatcher:
    """
    Classifies and logs decoded control frames.

    Attributes:
        verbose: Log subscription acks at INFO instead of DEBUG
    """

    def __init__(self, verbose: bool = False):
        self.verbose = verbose
        self.logger = get_logger(__name__)

    def dispatch(self, message: Dict[str, Any]) -> str:
        """
        Handle one control frame.

        Args:
            message: Decoded frame with an "event" key

        Returns:
            The event name, or "unclassified" for unknown events
        """
        try:
            event = message.get("event")
        except AttributeError:
            self.logger.warning(f"Websocket event message without mapping shape: {message!r}")
            return "unclassified"

        ack_level = logging.INFO if self.verbose else logging.DEBUG

        if event == SUBSCRIBED:
            self.logger.log(ack_level, f"Websocket channel subscribed: {message.get('channel_id')}")
        elif event == UNSUBSCRIBED:
            self.logger.log(ack_level, f"Websocket channel unsubscribed: {message.get('channel_id')}")
        elif event == ERROR:
            self.logger.error(f"Websocket error message: {message}")
        else:
            self.logger.warning(f"Websocket event message (unclassified): {message}")
            return "unclassified"

        return event

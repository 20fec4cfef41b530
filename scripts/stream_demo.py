#!/usr/bin/env python3
"""
Streaming demo for the Cobinhood feed.

Subscribes to ticker/order-book/trade channels for the given pairs and prints
every data frame until the duration elapses or Ctrl+C is pressed.

Usage examples:
  python scripts/stream_demo.py
  python scripts/stream_demo.py --pairs COB-BTC,ETH-BTC --channels ticker,trade --duration 120 --verbose
"""

import argparse
import asyncio
import sys
from typing import List

from cobinhood import CobinhoodClient
from cobinhood.core.logging import setup_logging


def build_channels(pairs: List[str], channel_types: List[str]) -> List[dict]:
    channels = []
    for pair in pairs:
        for channel_type in channel_types:
            channel = {"type": channel_type, "trading_pair_id": pair}
            if channel_type == "order-book":
                channel["precision"] = "1E-7"
            channels.append(channel)
    return channels


def print_frame(error, data) -> None:
    if error:
        print(f"[ERROR] {error}")
    else:
        print(f"[DATA] {data}")


async def main() -> None:
    parser = argparse.ArgumentParser(description="Print live frames from the Cobinhood feed")
    parser.add_argument("--pairs", default="COB-BTC", help="Comma-separated trading pairs (default: COB-BTC)")
    parser.add_argument("--channels", default="ticker", help="Comma-separated channel types: ticker,trade,order-book")
    parser.add_argument("--duration", type=int, default=0, help="Seconds to run (0 = run indefinitely)")
    parser.add_argument("--no-reconnect", action="store_true", help="Do not reopen the stream after it closes")
    parser.add_argument("--verbose", action="store_true", help="Log lifecycle events and subscription acks")
    args = parser.parse_args()

    setup_logging("DEBUG" if args.verbose else "INFO")

    pairs = [p.strip().upper() for p in args.pairs.split(",") if p.strip()]
    channel_types = [c.strip() for c in args.channels.split(",") if c.strip()]
    channels = build_channels(pairs, channel_types)

    print(f"[Info] Subscribing to {len(channels)} channel(s)")

    async with CobinhoodClient(verbose=args.verbose) as client:
        session = client.subscribe(channels, print_frame, reconnect=not args.no_reconnect)
        if args.duration > 0:
            await asyncio.sleep(args.duration)
            print("[Info] Duration reached; stopping.")
        else:
            await session.wait_closed()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\n[Info] Interrupted. Bye.")
        sys.exit(0)

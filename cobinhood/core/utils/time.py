"""
Time Utilities

Cobinhood timestamps are milliseconds since epoch, and every mutating
authenticated request carries a `nonce` header derived from the current time
in milliseconds. These helpers keep both conversions in one place.
"""

from datetime import datetime, timezone


def datetime_to_timestamp(dt: datetime, milliseconds: bool = False) -> int:
    """
    Convert a datetime object to Unix timestamp.

    Args:
        dt: Datetime object (naive values are treated as UTC)
        milliseconds: If True, return milliseconds; if False, return seconds

    Returns:
        int: Unix timestamp in seconds or milliseconds

    Examples:
        >>> dt = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
        >>> datetime_to_timestamp(dt, milliseconds=True)
        1704110400000
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)

    if milliseconds:
        return int(dt.timestamp() * 1000)
    return int(dt.timestamp())


def current_utc_timestamp(milliseconds: bool = False) -> int:
    """Get current UTC timestamp in seconds or milliseconds."""
    return datetime_to_timestamp(datetime.now(timezone.utc), milliseconds)


def current_utc_datetime() -> datetime:
    """Get current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def make_nonce() -> str:
    """
    Build the `nonce` header value for a mutating authenticated request.

    Returns:
        str: Current time in milliseconds

    Notes:
        Strictly increasing only at millisecond resolution; callers issuing
        more than one mutating call per millisecond must serialize them.
    """
    return str(current_utc_timestamp(milliseconds=True))

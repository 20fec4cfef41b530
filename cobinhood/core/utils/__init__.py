"""
Core Utilities Package

Modules:
    - time: Timestamp conversion and nonce generation
"""

from cobinhood.core.utils.time import current_utc_datetime, make_nonce

__all__ = ["current_utc_datetime", "make_nonce"]

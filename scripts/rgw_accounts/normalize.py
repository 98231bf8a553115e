"""Conversions of max_buckets between the gateway and the declared record.

The gateway reports its own default quota when none was set. Collapsing that
value to "not configured" keeps declared and persisted records comparable.
"""

from __future__ import annotations

from typing import Optional

DEFAULT_MAX_BUCKETS = 1000


def outbound_max_buckets(value: Optional[int]) -> Optional[int]:
    """Declared -> wire. None leaves the remote field unset."""
    if value is None:
        return None
    return value


def inbound_max_buckets(value: Optional[int]) -> Optional[int]:
    """Wire -> declared. The service default becomes None."""
    if value is None or value == DEFAULT_MAX_BUCKETS:
        return None
    return value


def comparable_max_buckets(value: Optional[int]) -> Optional[int]:
    """Declared value as it reads back after a round trip through the gateway."""
    return inbound_max_buckets(outbound_max_buckets(value))
